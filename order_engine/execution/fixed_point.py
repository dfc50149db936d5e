"""Fixed-point helpers — exact decimal ↔ integer conversion for order amounts.

All scaling is done on the integer coefficient of a ``Decimal`` parsed
from a string; no ``Decimal`` arithmetic (which is subject to context
precision) and no floats are involved.  Floats are never accepted.

Rounding rule: currency legs are computed as
``shares * numerator // denominator`` over non-negative integers, i.e.
truncation toward zero.  The maker never signs for more than
``shares × price``.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Union

from order_engine.core.errors import (
    InvalidIntentError,
    InvalidPriceError,
    PrecisionOverflowError,
)
from order_engine.models.order import Side

DecimalInput = Union[str, int, Decimal]

FIXED_POINT_DECIMALS = 18
FIXED_POINT_SCALE = 10**FIXED_POINT_DECIMALS

# On-chain amounts are uint256; 2**256 has 78 decimal digits.
UINT256_LIMIT = 2**256
_UINT256_DIGITS = 78

# Human prices are 0–100 with one fractional digit; the market price is
# that divided by 100, i.e. tenths / 1000, printed with three digits.
PRICE_INPUT_DECIMALS = 1
PRICE_DENOMINATOR = 1000
MAX_HUMAN_PRICE = Decimal("100")


def to_fixed_point(value: DecimalInput, decimals: int = FIXED_POINT_DECIMALS) -> int:
    """Convert a decimal amount to an integer scaled by ``10**decimals``.

    Raises
    ------
    InvalidIntentError
        If *value* is not a finite decimal (floats included), or its
        scaled magnitude does not fit a uint256.
    PrecisionOverflowError
        If *value* is written with more than *decimals* fractional digits.
    """
    dec = _to_decimal(value, "amount", InvalidIntentError)
    if _fraction_digits(dec) > decimals:
        raise PrecisionOverflowError(
            f"amount {value} has more than {decimals} fractional digits"
        )
    # Reject huge exponents before building the integer.
    if dec and dec.adjusted() + decimals >= _UINT256_DIGITS:
        raise InvalidIntentError(f"amount {value} exceeds the uint256 range")
    scaled = _scaled_int(dec, decimals)
    if abs(scaled) >= UINT256_LIMIT:
        raise InvalidIntentError(f"amount {value} exceeds the uint256 range")
    return scaled


def from_fixed_point(amount: int, decimals: int = FIXED_POINT_DECIMALS) -> Decimal:
    """Inverse of :func:`to_fixed_point`; exact for any integer."""
    return _from_scaled(amount, decimals)


def parse_price(price: DecimalInput) -> int:
    """Parse a 0–100 human price into its numerator over ``PRICE_DENOMINATOR``.

    ``"99.1"`` → ``991`` (i.e. 991/1000 = 0.991).
    """
    dec = _to_decimal(price, "price", InvalidPriceError)
    if _fraction_digits(dec) > PRICE_INPUT_DECIMALS:
        raise InvalidPriceError(
            f"price {price} has more than {PRICE_INPUT_DECIMALS} fractional digit"
        )
    if dec < 0 or dec > MAX_HUMAN_PRICE:
        raise InvalidPriceError(f"price {price} outside [0, {MAX_HUMAN_PRICE}]")
    return _scaled_int(dec, PRICE_INPUT_DECIMALS)


def normalize_price(price: DecimalInput) -> str:
    """Human price (0–100, ≤1 fractional digit) → market price string (0–1, 3 digits)."""
    return format_price(parse_price(price))


def format_price(numerator: int) -> str:
    """Render ``numerator / PRICE_DENOMINATOR`` with exactly three fractional digits."""
    whole, frac = divmod(numerator, PRICE_DENOMINATOR)
    return f"{whole}.{frac:03d}"


def denormalize_price(normalized: DecimalInput) -> Decimal:
    """Market price (0–1, ≤3 fractional digits) → human price (0–100).

    ``"0.991"`` → ``Decimal("99.1")``.
    """
    dec = _to_decimal(normalized, "normalized price", InvalidPriceError)
    if _fraction_digits(dec) > 3:
        raise InvalidPriceError(f"normalized price {normalized} has more than 3 fractional digits")
    if dec < 0 or dec > 1:
        raise InvalidPriceError(f"normalized price {normalized} outside [0, 1]")
    return _from_scaled(_scaled_int(dec, 3), PRICE_INPUT_DECIMALS)


def derive_amounts(
    side: Side,
    shares: int,
    numerator: int,
    denominator: int = PRICE_DENOMINATOR,
) -> tuple[int, int]:
    """Return ``(maker_amount, taker_amount)`` for *shares* at *numerator/denominator*.

    BUY: maker gives collateral, takes shares.
    SELL: maker gives shares, takes collateral.
    The collateral leg is truncated (see module docstring).
    """
    if shares < 0 or numerator < 0 or denominator <= 0:
        raise InvalidIntentError("shares and price must be non-negative")
    collateral = shares * numerator // denominator
    if side is Side.BUY:
        return collateral, shares
    return shares, collateral


# ── Internal helpers ─────────────────────────────────────────────────


def _to_decimal(
    value: DecimalInput,
    name: str,
    error_cls: type[InvalidIntentError],
) -> Decimal:
    if value is None or isinstance(value, (bool, float)):
        raise error_cls(f"{name} must be a decimal string, got {type(value).__name__}")
    try:
        dec = Decimal(value) if isinstance(value, (int, Decimal)) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise error_cls(f"invalid {name}: {value!r}") from exc
    if not dec.is_finite():
        raise error_cls(f"{name} must be finite: {value!r}")
    return dec


def _fraction_digits(dec: Decimal) -> int:
    # Callers pass finite decimals only, so the exponent is an int.
    return max(0, -int(dec.as_tuple().exponent))


def _scaled_int(dec: Decimal, places: int) -> int:
    """``dec * 10**places`` computed on the integer coefficient."""
    sign, digits, exponent = dec.as_tuple()
    coefficient = int("".join(map(str, digits)))
    if coefficient == 0:
        return 0
    shift = places + int(exponent)
    scaled = coefficient * 10**shift if shift >= 0 else coefficient // 10**-shift
    return -scaled if sign else scaled


def _from_scaled(value: int, places: int) -> Decimal:
    sign = 1 if value < 0 else 0
    digits = tuple(int(d) for d in str(abs(value)))
    return Decimal((sign, digits, -places))
