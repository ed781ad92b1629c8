"""Value objects for the investment simulator."""

from dataclasses import dataclass, field
from decimal import Decimal

from invest_ledger.money import ZERO


@dataclass(frozen=True)
class SimulationInput:
    initial_deposit: Decimal
    months: int
    monthly_extra_deposit: Decimal = ZERO


@dataclass(frozen=True)
class MonthProjection:
    month: int
    rendimento: Decimal
    saldo_acumulado: Decimal


@dataclass(frozen=True)
class SimulationSummary:
    total_investido: Decimal
    total_rendimentos: Decimal
    valor_final: Decimal


@dataclass(frozen=True)
class SimulationResult:
    history: list[MonthProjection] = field(default_factory=list)
    summary: SimulationSummary | None = None
