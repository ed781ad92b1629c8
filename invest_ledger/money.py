"""Monetary helpers: BRL amounts as centavo-quantized Decimals."""

from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

from invest_ledger.exceptions import InvalidAmountError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize(value: Decimal) -> Decimal:
    """Round to the smallest currency unit using round-half-even."""
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Convert caller input to a quantized Decimal.

    Floats go through ``str`` so that ``130.0`` becomes ``Decimal("130.00")``
    and not its binary expansion.

    Raises
    ------
    InvalidAmountError
        If the value is not a finite number.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        raise InvalidAmountError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    return quantize(amount)
