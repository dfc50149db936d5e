"""Error taxonomy shared by every component.

Each exception carries an ``ErrorKind`` so callers can branch on the
category without importing the concrete class.  Validation errors all
derive from ``InvalidIntentError`` (and therefore ``ValueError``); they
are raised before any cache, network or signing side effect.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

__all__ = [
    "ErrorKind",
    "InvalidIntentError",
    "InvalidPriceError",
    "MetadataUnavailableError",
    "OrderEngineError",
    "PrecisionOverflowError",
    "SigningFailureError",
    "TransportFailureError",
    "UnknownOutcomeError",
]


class ErrorKind(str, Enum):
    """Error categories."""

    INVALID_INTENT = "InvalidIntent"
    PRECISION_OVERFLOW = "PrecisionOverflow"
    INVALID_PRICE = "InvalidPrice"
    UNKNOWN_OUTCOME = "UnknownOutcome"
    METADATA_UNAVAILABLE = "MetadataUnavailable"
    SIGNING_FAILURE = "SigningFailure"
    TRANSPORT_FAILURE = "TransportFailure"


class OrderEngineError(Exception):
    """Base class for all order engine errors."""

    kind: ErrorKind


class InvalidIntentError(OrderEngineError, ValueError):
    """Bad price, quantity, side or identifier shape.  Not retryable."""

    kind = ErrorKind.INVALID_INTENT


class InvalidPriceError(InvalidIntentError):
    """Price outside [0, 100] or with more than one fractional digit."""

    kind = ErrorKind.INVALID_PRICE


class PrecisionOverflowError(InvalidIntentError):
    """Decimal input has more fractional digits than the fixed-point scale."""

    kind = ErrorKind.PRECISION_OVERFLOW


class UnknownOutcomeError(InvalidIntentError):
    """Outcome selector is neither YES nor NO."""

    kind = ErrorKind.UNKNOWN_OUTCOME


class MetadataUnavailableError(OrderEngineError):
    """Market metadata could not be fetched.  The caller may retry."""

    kind = ErrorKind.METADATA_UNAVAILABLE

    def __init__(self, market_id: str, reason: str = "") -> None:
        self.market_id = market_id
        msg = f"metadata unavailable for market {market_id}"
        super().__init__(f"{msg}: {reason}" if reason else msg)


class SigningFailureError(OrderEngineError):
    """Credential or digest construction failed."""

    kind = ErrorKind.SIGNING_FAILURE


class TransportFailureError(OrderEngineError):
    """Submission or query collaborator failed."""

    kind = ErrorKind.TRANSPORT_FAILURE

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        errno: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.errno = errno
