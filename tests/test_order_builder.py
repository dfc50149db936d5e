"""Tests for execution/order_builder.py."""

from __future__ import annotations

import pytest
from web3 import Web3

from order_engine.core.errors import InvalidIntentError, InvalidPriceError, PrecisionOverflowError
from order_engine.execution.fixed_point import FIXED_POINT_SCALE
from order_engine.execution.order_builder import OrderAssembler, ProtocolConfig, SaltGenerator
from order_engine.models.order import ZERO_ADDRESS, OrderIntent, Side

MAKER = "0x" + "ab" * 20
SIGNER = "0x" + "cd" * 20
EXCHANGE = "0x5f45344126d6488025b0b84a3a8189f2487a7246"
COLLATERAL = "0x55d398326f99059ff775485246999027b3197955"


def _config(**kwargs) -> ProtocolConfig:
    defaults = {
        "chain_id": 56,
        "exchange_address": EXCHANGE,
        "collateral_address": COLLATERAL,
        "maker_address": MAKER,
        "signer_address": SIGNER,
    }
    defaults.update(kwargs)
    return ProtocolConfig(**defaults)


def _intent(**kwargs) -> OrderIntent:
    defaults = {"side": Side.BUY, "price": "99.1", "quantity": "10", "token_id": "0xabc"}
    defaults.update(kwargs)
    return OrderIntent(**defaults)


# ── ProtocolConfig ───────────────────────────────────────────────────


class TestProtocolConfig:

    def test_addresses_checksummed(self) -> None:
        cfg = _config()
        assert cfg.exchange_address == Web3.to_checksum_address(EXCHANGE)
        assert cfg.maker_address == Web3.to_checksum_address(MAKER)
        assert cfg.signer_address == Web3.to_checksum_address(SIGNER)

    def test_maker_and_signer_are_distinct_fields(self) -> None:
        cfg = _config()
        assert cfg.maker_address != cfg.signer_address

    def test_invalid_address_rejected(self) -> None:
        with pytest.raises(ValueError, match="maker_address"):
            _config(maker_address="")


# ── SaltGenerator ────────────────────────────────────────────────────


class TestSaltGenerator:

    def test_time_derived(self) -> None:
        gen = SaltGenerator(clock=lambda: 1_700_000_000_000, entropy=lambda: 42)
        assert gen() == 1_700_000_000_000 * 1000 + 42

    def test_same_millisecond_same_entropy_distinct(self) -> None:
        gen = SaltGenerator(clock=lambda: 1_700_000_000_000, entropy=lambda: 7)
        salts = [gen() for _ in range(100)]
        assert len(set(salts)) == 100
        assert salts == sorted(salts)

    def test_clock_going_backwards_still_increases(self) -> None:
        ticks = iter([2_000, 1_000, 1_000])
        gen = SaltGenerator(clock=lambda: next(ticks), entropy=lambda: 0)
        first, second, third = gen(), gen(), gen()
        assert first < second < third

    def test_default_sources(self) -> None:
        gen = SaltGenerator()
        assert len({gen() for _ in range(1000)}) == 1000


# ── OrderAssembler ───────────────────────────────────────────────────


class TestOrderAssembler:

    @pytest.fixture
    def assembler(self) -> OrderAssembler:
        return OrderAssembler(_config(), salt_source=SaltGenerator(clock=lambda: 1, entropy=lambda: 0))

    def test_buy_amounts(self, assembler: OrderAssembler) -> None:
        order = assembler.build(_intent(), "0xabc")
        assert order.taker_amount == 10 * FIXED_POINT_SCALE
        assert order.maker_amount == 10 * FIXED_POINT_SCALE * 991 // 1000
        assert order.price == "0.991"
        assert order.side is Side.BUY

    def test_sell_amounts(self, assembler: OrderAssembler) -> None:
        order = assembler.build(_intent(side="sell"), "0xabc")
        assert order.maker_amount == 10 * FIXED_POINT_SCALE
        assert order.taker_amount == 9_910_000_000_000_000_000
        assert order.side is Side.SELL

    def test_static_fields(self, assembler: OrderAssembler) -> None:
        order = assembler.build(_intent(), "0xabc")
        assert order.chain_id == 56
        assert order.exchange_address == Web3.to_checksum_address(EXCHANGE)
        assert order.collateral_address == Web3.to_checksum_address(COLLATERAL)
        assert order.maker == Web3.to_checksum_address(MAKER)
        assert order.signer == Web3.to_checksum_address(SIGNER)
        assert order.taker == ZERO_ADDRESS
        assert order.signature_type == 2
        assert order.fee_rate_bps == 0
        assert order.nonce == 0
        assert order.expiration == 0

    def test_typed_message_integers(self, assembler: OrderAssembler) -> None:
        msg = assembler.build(_intent(), "0xabc").to_typed_message()
        assert msg["tokenId"] == 0xABC
        assert msg["side"] == 0
        assert msg["signatureType"] == 2

    def test_api_dict_strings(self, assembler: OrderAssembler) -> None:
        api = assembler.build(_intent(side=Side.SELL), "123").to_api_dict()
        assert api["tokenId"] == "123"
        assert api["makerAmount"] == str(10 * FIXED_POINT_SCALE)
        assert api["side"] == 1

    def test_salts_distinct_within_same_instant(self, assembler: OrderAssembler) -> None:
        a = assembler.build(_intent(), "0xabc")
        b = assembler.build(_intent(), "0xabc")
        assert a.salt != b.salt

    def test_default_expiration(self) -> None:
        assembler = OrderAssembler(_config(), default_expiration_seconds=3600, clock=lambda: 1_000.5)
        assert assembler.build(_intent(), "1").expiration == 4_600

    def test_explicit_expiration_kept(self) -> None:
        assembler = OrderAssembler(_config(), default_expiration_seconds=3600, clock=lambda: 1_000)
        assert assembler.build(_intent(expiration=9_999), "1").expiration == 9_999

    def test_missing_side(self, assembler: OrderAssembler) -> None:
        with pytest.raises(InvalidIntentError, match="side"):
            assembler.build(_intent(side=None), "1")

    def test_unknown_side(self, assembler: OrderAssembler) -> None:
        with pytest.raises(InvalidIntentError):
            assembler.build(_intent(side="HOLD"), "1")

    def test_zero_quantity(self, assembler: OrderAssembler) -> None:
        with pytest.raises(InvalidIntentError, match="quantity"):
            assembler.build(_intent(quantity="0"), "1")

    def test_negative_quantity(self, assembler: OrderAssembler) -> None:
        with pytest.raises(InvalidIntentError):
            assembler.build(_intent(quantity="-5"), "1")

    def test_zero_price_gives_empty_leg(self, assembler: OrderAssembler) -> None:
        with pytest.raises(InvalidIntentError, match="positive"):
            assembler.build(_intent(price="0"), "1")

    @pytest.mark.parametrize("side", [Side.BUY, Side.SELL])
    def test_quantity_beyond_uint256(self, assembler: OrderAssembler, side: Side) -> None:
        with pytest.raises(InvalidIntentError, match="uint256"):
            assembler.terms(_intent(side=side, quantity="1e60"))

    def test_over_precise_quantity(self, assembler: OrderAssembler) -> None:
        with pytest.raises(PrecisionOverflowError):
            assembler.build(_intent(quantity="1.0000000000000000001"), "1")

    def test_bad_price(self, assembler: OrderAssembler) -> None:
        with pytest.raises(InvalidPriceError):
            assembler.build(_intent(price="100.25"), "1")

    def test_bad_token_id(self, assembler: OrderAssembler) -> None:
        with pytest.raises(InvalidIntentError, match="token id"):
            assembler.build(_intent(), "not-a-token")

    def test_negative_expiration(self, assembler: OrderAssembler) -> None:
        with pytest.raises(InvalidIntentError, match="expiration"):
            assembler.build(_intent(expiration=-1), "1")
