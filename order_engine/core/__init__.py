"""Order engine — core package (logging, errors)."""

from .errors import (
    ErrorKind,
    InvalidIntentError,
    InvalidPriceError,
    MetadataUnavailableError,
    OrderEngineError,
    PrecisionOverflowError,
    SigningFailureError,
    TransportFailureError,
    UnknownOutcomeError,
)
from .logger import setup_logging

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
    "setup_logging",
]
