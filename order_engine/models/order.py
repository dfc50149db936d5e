"""Order — intent, canonical on-chain record and signed envelope."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from order_engine.core.errors import InvalidIntentError, UnknownOutcomeError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class Side(str, Enum):
    """Order side."""

    BUY = "BUY"
    SELL = "SELL"

    @property
    def order_code(self) -> int:
        """``uint8`` used in the signed order struct (BUY=0, SELL=1)."""
        return 0 if self is Side.BUY else 1

    @classmethod
    def parse(cls, value: Any) -> Side:
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            raise InvalidIntentError(f"side must be BUY or SELL, got {value!r}")
        try:
            return cls(value.strip().upper())
        except ValueError as exc:
            raise InvalidIntentError(f"side must be BUY or SELL, got {value!r}") from exc


class Outcome(str, Enum):
    """Binary market outcome selector."""

    YES = "YES"
    NO = "NO"

    @classmethod
    def parse(cls, value: Any) -> Outcome:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError as exc:
            raise UnknownOutcomeError(f"outcome must be YES or NO, got {value!r}") from exc


@dataclass(frozen=True)
class OrderIntent:
    """User-level trading intent.

    ``price`` is the 0–100 human price (≤1 fractional digit), ``quantity``
    the share count.  Exactly one of ``market_id`` / ``token_id`` is set;
    ``outcome`` selects the token when ``market_id`` is used.
    """

    side: Union[Side, str, None]
    price: str
    quantity: str
    market_id: Union[str, int, None] = None
    token_id: Optional[str] = None
    outcome: Union[Outcome, str, None] = None
    expiration: int = 0


def parse_token_id(token_id: Any) -> int:
    """Token ids are uint256, given as ``0x``-hex or decimal strings."""
    text = str(token_id).strip() if token_id is not None else ""
    try:
        value = int(text, 16) if text.lower().startswith("0x") else int(text, 10)
    except ValueError as exc:
        raise InvalidIntentError(f"invalid token id: {token_id!r}") from exc
    if value < 0 or value >= 2**256:
        raise InvalidIntentError(f"token id out of uint256 range: {token_id!r}")
    return value


@dataclass(frozen=True)
class CanonicalOrder:
    """Order record as signed on-chain.

    ``maker`` is the custody account that owns the order, ``signer`` the
    delegated key that authorises it.  Addresses are checksummed.
    """

    salt: int
    maker: str
    signer: str
    taker: str
    token_id: str
    maker_amount: int
    taker_amount: int
    side: Side
    expiration: int
    nonce: int
    fee_rate_bps: int
    signature_type: int
    price: str
    chain_id: int
    exchange_address: str
    collateral_address: str

    def to_typed_message(self) -> dict[str, Any]:
        """The ``Order`` struct for typed-data encoding."""
        return {
            "salt": self.salt,
            "maker": self.maker,
            "signer": self.signer,
            "taker": self.taker,
            "tokenId": parse_token_id(self.token_id),
            "makerAmount": self.maker_amount,
            "takerAmount": self.taker_amount,
            "expiration": self.expiration,
            "nonce": self.nonce,
            "feeRateBps": self.fee_rate_bps,
            "side": self.side.order_code,
            "signatureType": self.signature_type,
        }

    def to_api_dict(self) -> dict[str, Any]:
        """camelCase wire form; uint256 fields as decimal strings."""
        return {
            "salt": str(self.salt),
            "maker": self.maker,
            "signer": self.signer,
            "taker": self.taker,
            "tokenId": str(parse_token_id(self.token_id)),
            "makerAmount": str(self.maker_amount),
            "takerAmount": str(self.taker_amount),
            "expiration": str(self.expiration),
            "nonce": str(self.nonce),
            "feeRateBps": str(self.fee_rate_bps),
            "side": self.side.order_code,
            "signatureType": self.signature_type,
        }


@dataclass(frozen=True)
class SignedOrder:
    """A canonical order plus its custody signature envelope.

    ``signature`` is ``0x`` + 20-byte signer address + 65-byte ``r‖s‖v``.
    """

    order: CanonicalOrder
    digest: str
    raw_signature: str
    signature: str

    def to_payload(self, **extra: Any) -> dict[str, Any]:
        """Submission payload; *extra* keys (e.g. ``topicId``) are merged in."""
        payload: dict[str, Any] = {
            "order": self.order.to_api_dict(),
            "signature": self.signature,
            "price": self.order.price,
            "chainId": self.order.chain_id,
            "currencyAddress": self.order.collateral_address,
        }
        payload.update({k: v for k, v in extra.items() if v is not None})
        return payload
