"""
Module: logistics_kernel.db.types
Responsibility: Coercion, rounding and range rules for money, plus the rate
    helper used by performance statistics.  Centralizes precision so that
    every service and selector uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for money.  All monetary amounts are Decimal with two places.
    - Money is finite and fits the Numeric(18, 2) columns (|x| < 10**16).
    - round_money() is the only sanctioned rounding function for money.
    - percentage() is the only sanctioned rounding function for rates shown
      in performance statistics (one decimal place).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_DECIMAL_PLACES = 2
ZERO = Decimal("0")
DEFAULT_ROUNDING = ROUND_HALF_UP

# Numeric(18, 2): sixteen integer digits.
MONEY_LIMIT = Decimal(10) ** 16


def to_money(value: Decimal | int | float | str | None) -> Decimal:
    """
    Coerce a caller-supplied amount to a finite Decimal.

    Floats are converted through str() so 0.1 becomes Decimal("0.1"), not
    its binary expansion.  None becomes zero.

    Raises:
        ValueError: If the value is not numeric, or is NaN or infinite.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a finite monetary amount: {value!r}")
    return amount


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    Raises:
        ValueError: If the value is non-finite or outside MONEY_LIMIT.
    """
    quantizer = Decimal(10) ** -decimal_places
    try:
        rounded = value.quantize(quantizer, rounding=rounding)
    except InvalidOperation as exc:
        raise ValueError(f"Monetary amount out of range: {value!r}") from exc
    if abs(rounded) >= MONEY_LIMIT:
        raise ValueError(f"Monetary amount out of range: {value!r}")
    return rounded


def percentage(numerator: int, denominator: int) -> Decimal:
    """
    numerator / denominator * 100, rounded to one decimal place.

    Returns Decimal("0") when the denominator is zero.
    """
    if denominator == 0:
        return Decimal("0")
    raw = Decimal(numerator) * 100 / Decimal(denominator)
    return raw.quantize(Decimal("0.1"), rounding=DEFAULT_ROUNDING)
