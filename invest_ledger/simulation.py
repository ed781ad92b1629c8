"""Investment simulator: month-by-month compound projection.

Each month earns ``rate`` on the running balance, rounded to centavos,
then the optional monthly contribution is added. Because every figure is
rounded before it is summed, ``valor_final`` always equals
``total_investido + total_rendimentos``.
"""

from decimal import Decimal

from invest_ledger.config import LedgerConfig
from invest_ledger.exceptions import InvalidAmountError, InvalidInputError
from invest_ledger.models import (
    MonthProjection,
    SimulationInput,
    SimulationResult,
    SimulationSummary,
)
from invest_ledger.money import ZERO, quantize, to_money

DEFAULT_MONTHLY_RATE = LedgerConfig.monthly_rate
DEFAULT_MAX_MONTHS = LedgerConfig.max_simulation_months


def validate_input(
    initial_deposit: Decimal | int | float | str,
    months: int,
    monthly_extra_deposit: Decimal | int | float | str = 0,
    max_months: int = DEFAULT_MAX_MONTHS,
) -> SimulationInput:
    """Normalize simulator input or raise InvalidInputError."""
    try:
        initial = to_money(initial_deposit)
        extra = to_money(monthly_extra_deposit)
    except InvalidAmountError as exc:
        raise InvalidInputError(str(exc)) from exc

    if initial <= 0:
        raise InvalidInputError("initial_deposit must be positive")
    if isinstance(months, bool) or not isinstance(months, int):
        raise InvalidInputError("months must be an integer")
    if months <= 0:
        raise InvalidInputError("months must be positive")
    if months > max_months:
        raise InvalidInputError(f"months must be at most {max_months}")
    if extra < 0:
        raise InvalidInputError("monthly_extra_deposit must not be negative")

    return SimulationInput(initial_deposit=initial, months=months, monthly_extra_deposit=extra)


def simulate(
    initial_deposit: Decimal | int | float | str,
    months: int,
    monthly_extra_deposit: Decimal | int | float | str = 0,
    rate: Decimal = DEFAULT_MONTHLY_RATE,
    max_months: int = DEFAULT_MAX_MONTHS,
) -> SimulationResult:
    """Project a balance month by month.

    Parameters
    ----------
    initial_deposit : Decimal | int | float | str
        Amount invested at month 0.
    months : int
        Number of months to project.
    monthly_extra_deposit : Decimal | int | float | str
        Contribution added at the end of every month.
    rate : Decimal
        Monthly yield rate.
    max_months : int
        Upper bound on ``months``.

    Returns
    -------
    SimulationResult
        Monthly history and summary totals.
    """
    params = validate_input(initial_deposit, months, monthly_extra_deposit, max_months)

    saldo = params.initial_deposit
    total_rendimentos = ZERO
    history = []
    for month in range(1, params.months + 1):
        rendimento = quantize(saldo * rate)
        saldo = saldo + rendimento + params.monthly_extra_deposit
        total_rendimentos += rendimento
        history.append(MonthProjection(month=month, rendimento=rendimento, saldo_acumulado=saldo))

    total_investido = params.initial_deposit + params.monthly_extra_deposit * params.months
    return SimulationResult(
        history=history,
        summary=SimulationSummary(
            total_investido=total_investido,
            total_rendimentos=total_rendimentos,
            valor_final=saldo,
        ),
    )
