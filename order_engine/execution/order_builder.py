"""OrderAssembler — builds canonical orders from user intent.

Validation happens in :meth:`OrderAssembler.terms` so callers can reject
bad input before touching the cache, the network or the signer.
"""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Callable, Optional

import structlog
from web3 import Web3

from order_engine.config.settings import Settings
from order_engine.core.errors import InvalidIntentError
from order_engine.execution.fixed_point import (
    UINT256_LIMIT,
    derive_amounts,
    format_price,
    parse_price,
    to_fixed_point,
)
from order_engine.models.order import (
    ZERO_ADDRESS,
    CanonicalOrder,
    OrderIntent,
    Side,
    parse_token_id,
)

logger = structlog.get_logger("execution.order_builder")


@dataclass(frozen=True)
class ProtocolConfig:
    """Static protocol fields stamped on every order."""

    chain_id: int
    exchange_address: str
    collateral_address: str
    maker_address: str
    signer_address: str
    signature_type: int = 2
    fee_rate_bps: int = 0
    domain_name: str = "OPINION CTF Exchange"
    domain_version: str = "1"

    def __post_init__(self) -> None:
        for name in ("exchange_address", "collateral_address", "maker_address", "signer_address"):
            value = getattr(self, name)
            if not Web3.is_address(value):
                raise ValueError(f"{name} is not a valid address: {value!r}")
            object.__setattr__(self, name, Web3.to_checksum_address(value))

    @classmethod
    def from_settings(cls, cfg: Settings, signer_address: str) -> ProtocolConfig:
        """Build from settings; *signer_address* is derived from the credential."""
        return cls(
            chain_id=cfg.CHAIN_ID,
            exchange_address=cfg.EXCHANGE_ADDRESS,
            collateral_address=cfg.COLLATERAL_ADDRESS,
            maker_address=cfg.MAKER_ADDRESS,
            signer_address=signer_address,
            signature_type=cfg.SIGNATURE_TYPE,
            fee_rate_bps=cfg.FEE_RATE_BPS,
            domain_name=cfg.EXCHANGE_DOMAIN_NAME,
            domain_version=cfg.EXCHANGE_DOMAIN_VERSION,
        )


def _millis() -> int:
    return time.time_ns() // 1_000_000


def _tie_breaker() -> int:
    return secrets.randbelow(1000)


class SaltGenerator:
    """Time-derived, strictly increasing order salts.

    ``salt = clock_ms * 1000 + entropy()``, bumped to ``last + 1`` when
    it would not exceed the previous salt, so two orders built in the
    same millisecond never collide within a process.

    Parameters
    ----------
    clock:
        Returns the current time in milliseconds.
    entropy:
        Returns a tie-breaker in ``[0, 1000)``.
    """

    def __init__(
        self,
        clock: Callable[[], int] = _millis,
        entropy: Callable[[], int] = _tie_breaker,
    ) -> None:
        self._clock = clock
        self._entropy = entropy
        self._last = 0

    def __call__(self) -> int:
        candidate = self._clock() * 1000 + self._entropy() % 1000
        salt = max(candidate, self._last + 1)
        self._last = salt
        return salt


@dataclass(frozen=True)
class OrderTerms:
    """Validated economic terms of an intent."""

    side: Side
    price: str
    maker_amount: int
    taker_amount: int
    expiration: int


class OrderAssembler:
    """Turns an :class:`OrderIntent` into a :class:`CanonicalOrder`.

    Parameters
    ----------
    config:
        Static protocol fields and the maker / signer addresses.
    salt_source:
        Callable returning a fresh salt; defaults to :class:`SaltGenerator`.
    default_expiration_seconds:
        Lifetime applied when the intent carries no expiration.  ``0``
        means the order never expires.
    clock:
        Unix seconds, used only for relative expirations.
    """

    def __init__(
        self,
        config: ProtocolConfig,
        salt_source: Optional[Callable[[], int]] = None,
        default_expiration_seconds: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._salt = salt_source or SaltGenerator()
        self._default_expiration = default_expiration_seconds
        self._clock = clock

    @property
    def config(self) -> ProtocolConfig:
        return self._config

    def terms(self, intent: OrderIntent) -> OrderTerms:
        """Validate *intent* and compute its fixed-point amounts.

        Raises
        ------
        InvalidIntentError
            Missing side, non-positive or out-of-range quantity or amounts,
            bad expiration.
        InvalidPriceError
            Price out of range or over-precise.
        PrecisionOverflowError
            Quantity with more than 18 fractional digits.
        """
        if intent.side is None:
            raise InvalidIntentError("side is required")
        side = Side.parse(intent.side)
        numerator = parse_price(intent.price)
        shares = to_fixed_point(intent.quantity)
        if shares <= 0:
            raise InvalidIntentError(f"quantity must be positive, got {intent.quantity!r}")

        maker_amount, taker_amount = derive_amounts(side, shares, numerator)
        if maker_amount <= 0 or taker_amount <= 0:
            raise InvalidIntentError(
                f"order amounts must be positive (price={intent.price}, quantity={intent.quantity})"
            )
        if max(shares, maker_amount, taker_amount) >= UINT256_LIMIT:
            raise InvalidIntentError(f"quantity {intent.quantity} exceeds the uint256 range")

        if not isinstance(intent.expiration, int) or intent.expiration < 0:
            raise InvalidIntentError(f"expiration must be a non-negative int, got {intent.expiration!r}")
        expiration = intent.expiration
        if expiration == 0 and self._default_expiration > 0:
            expiration = int(self._clock()) + self._default_expiration

        return OrderTerms(
            side=side,
            price=format_price(numerator),
            maker_amount=maker_amount,
            taker_amount=taker_amount,
            expiration=expiration,
        )

    def assemble(self, terms: OrderTerms, token_id: str) -> CanonicalOrder:
        """Stamp validated *terms* with a salt and the protocol fields."""
        parse_token_id(token_id)
        cfg = self._config
        order = CanonicalOrder(
            salt=self._salt(),
            maker=cfg.maker_address,
            signer=cfg.signer_address,
            taker=ZERO_ADDRESS,
            token_id=str(token_id),
            maker_amount=terms.maker_amount,
            taker_amount=terms.taker_amount,
            side=terms.side,
            expiration=terms.expiration,
            nonce=0,
            fee_rate_bps=cfg.fee_rate_bps,
            signature_type=cfg.signature_type,
            price=terms.price,
            chain_id=cfg.chain_id,
            exchange_address=cfg.exchange_address,
            collateral_address=cfg.collateral_address,
        )
        logger.debug(
            "order_builder.assembled",
            salt=order.salt,
            side=order.side.value,
            price=order.price,
            token_id=order.token_id,
            maker_amount=order.maker_amount,
            taker_amount=order.taker_amount,
        )
        return order

    def build(self, intent: OrderIntent, token_id: str) -> CanonicalOrder:
        """Validate *intent* and assemble the order for *token_id*."""
        return self.assemble(self.terms(intent), token_id)
