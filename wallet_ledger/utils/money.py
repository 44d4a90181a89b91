"""
Money helpers.

All amounts are ``Decimal`` rounded half-up to the cent.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from wallet_ledger.config.constants import MONEY_QUANT
from wallet_ledger.utils.exceptions import InvalidAmount


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """
    Convert a value to Decimal without binary float artefacts.

    Args:
        value: Amount as Decimal, int, float or numeric string

    Returns:
        Decimal value

    Raises:
        InvalidAmount: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise InvalidAmount(f"Not a number: {value!r}") from e

    if not result.is_finite():
        raise InvalidAmount(f"Not a finite amount: {value!r}")
    return result


def quantize_money(value: Decimal | int | float | str) -> Decimal:
    """Round an amount half-up to the cent."""
    return to_decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def percentage_of(amount: Decimal, percentage: Decimal) -> Decimal:
    """
    Share of an amount for a percentage given in percent units.

    Example:
        percentage_of(Decimal("1000"), Decimal("5")) == Decimal("50.00")
    """
    return quantize_money(amount * percentage / Decimal("100"))


def require_positive(amount: Decimal | int | float | str, what: str = "Amount") -> Decimal:
    """Quantize an amount and reject zero or negative values."""
    value = quantize_money(amount)
    if value <= 0:
        raise InvalidAmount(f"{what} must be positive, got {value}")
    return value
