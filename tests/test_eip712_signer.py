"""Tests for web3_infra/eip712_signer.py."""

from __future__ import annotations

import dataclasses

import pytest
from eth_account import Account
from pydantic import SecretStr

from order_engine.core.errors import ErrorKind, SigningFailureError
from order_engine.execution.order_builder import OrderAssembler, ProtocolConfig, SaltGenerator
from order_engine.models.order import CanonicalOrder, OrderIntent, Side, SignedOrder
from order_engine.web3_infra.eip712_signer import EIP712Signer, load_account

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
OTHER_KEY = "0x" + "11" * 32
MAKER = "0x" + "ab" * 20


@pytest.fixture
def account():
    return Account.from_key(PRIVATE_KEY)


@pytest.fixture
def order(account) -> CanonicalOrder:
    config = ProtocolConfig(
        chain_id=56,
        exchange_address="0x5f45344126d6488025b0b84a3a8189f2487a7246",
        collateral_address="0x55d398326f99059ff775485246999027b3197955",
        maker_address=MAKER,
        signer_address=account.address,
    )
    assembler = OrderAssembler(config, salt_source=SaltGenerator(clock=lambda: 1_700_000_000_000, entropy=lambda: 1))
    intent = OrderIntent(side=Side.BUY, price="99.1", quantity="10", token_id="0xabc")
    return assembler.build(intent, "0xabc")


class TestEIP712Signer:

    @pytest.fixture
    def signer(self) -> EIP712Signer:
        return EIP712Signer(domain_name="OPINION CTF Exchange", domain_version="1")

    def test_sign_returns_signed_order(self, signer: EIP712Signer, order: CanonicalOrder) -> None:
        result = signer.sign(order, PRIVATE_KEY)
        assert isinstance(result, SignedOrder)
        assert result.order is order
        assert result.digest.startswith("0x") and len(result.digest) == 2 + 64
        assert len(result.raw_signature) == 2 + 130

    def test_envelope_is_signer_then_signature(self, signer: EIP712Signer, order: CanonicalOrder) -> None:
        result = signer.sign(order, PRIVATE_KEY)
        assert len(result.signature) == 2 + 40 + 130
        assert result.signature[2:42] == order.signer[2:].lower()
        assert result.signature[42:] == result.raw_signature[2:]

    def test_digest_matches_standalone_digest(self, signer: EIP712Signer, order: CanonicalOrder) -> None:
        assert signer.sign(order, PRIVATE_KEY).digest == signer.digest(order)

    def test_deterministic_signing(self, signer: EIP712Signer, order: CanonicalOrder) -> None:
        # RFC 6979 nonces: digest and signature bytes are both stable.
        r1 = signer.sign(order, PRIVATE_KEY)
        r2 = signer.sign(order, PRIVATE_KEY)
        assert r1.digest == r2.digest
        assert r1.signature == r2.signature

    def test_different_salt_different_digest(self, signer: EIP712Signer, order: CanonicalOrder) -> None:
        other = dataclasses.replace(order, salt=order.salt + 1)
        assert signer.digest(order) != signer.digest(other)

    def test_domain_binds_digest(self, order: CanonicalOrder) -> None:
        a = EIP712Signer(domain_name="OPINION CTF Exchange").digest(order)
        b = EIP712Signer(domain_name="Other Exchange").digest(order)
        c = EIP712Signer().digest(dataclasses.replace(order, chain_id=97))
        assert len({a, b, c}) == 3

    def test_typed_data_domain(self, signer: EIP712Signer, order: CanonicalOrder) -> None:
        typed = signer.typed_data(order)
        assert typed["primaryType"] == "Order"
        assert typed["domain"] == {
            "name": "OPINION CTF Exchange",
            "version": "1",
            "chainId": 56,
            "verifyingContract": order.exchange_address,
        }
        assert typed["message"]["maker"] == order.maker
        assert typed["message"]["signer"] == order.signer

    def test_recover_signer(self, signer: EIP712Signer, order: CanonicalOrder, account) -> None:
        result = signer.sign(order, PRIVATE_KEY)
        assert signer.recover_signer(result) == account.address

    def test_recover_detects_tampering(self, signer: EIP712Signer, order: CanonicalOrder) -> None:
        result = signer.sign(order, PRIVATE_KEY)
        tampered = dataclasses.replace(
            result, order=dataclasses.replace(order, maker_amount=order.maker_amount + 1)
        )
        with pytest.raises(SigningFailureError):
            signer.recover_signer(tampered)

    def test_accepts_secret_str_and_account(self, signer: EIP712Signer, order: CanonicalOrder, account) -> None:
        expected = signer.sign(order, PRIVATE_KEY).signature
        assert signer.sign(order, SecretStr(PRIVATE_KEY)).signature == expected
        assert signer.sign(order, account).signature == expected

    def test_wrong_credential_rejected(self, signer: EIP712Signer, order: CanonicalOrder) -> None:
        with pytest.raises(SigningFailureError, match="not the order signer"):
            signer.sign(order, OTHER_KEY)

    def test_invalid_key_rejected_without_echo(self, signer: EIP712Signer, order: CanonicalOrder) -> None:
        bad_key = "0xnot-a-real-key"
        with pytest.raises(SigningFailureError) as exc_info:
            signer.sign(order, bad_key)
        assert exc_info.value.kind is ErrorKind.SIGNING_FAILURE
        assert bad_key not in str(exc_info.value)

    def test_empty_credential_rejected(self) -> None:
        with pytest.raises(SigningFailureError, match="empty"):
            load_account(SecretStr(""))

    def test_unencodable_order(self, signer: EIP712Signer, order: CanonicalOrder) -> None:
        broken = dataclasses.replace(order, maker_amount=-1)
        with pytest.raises(SigningFailureError):
            signer.sign(broken, PRIVATE_KEY)


class TestSignedOrderPayload:

    def test_payload_shape(self, order: CanonicalOrder) -> None:
        signed = EIP712Signer().sign(order, PRIVATE_KEY)
        payload = signed.to_payload(topicId="42", ignored=None)
        assert payload["price"] == "0.991"
        assert payload["signature"] == signed.signature
        assert payload["order"]["makerAmount"] == str(order.maker_amount)
        assert payload["topicId"] == "42"
        assert payload["chainId"] == 56
        assert "ignored" not in payload
