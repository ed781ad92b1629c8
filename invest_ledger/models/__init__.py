"""Domain models for the investment ledger."""

from invest_ledger.models.account import Account, Balance
from invest_ledger.models.base import Event
from invest_ledger.models.enums import (
    ChargeStatus,
    InvestorProfile,
    MovementType,
    WithdrawalState,
)
from invest_ledger.models.investor import Investor
from invest_ledger.models.movement import Movement, MovementPage
from invest_ledger.models.pix import PixCharge
from invest_ledger.models.simulation import (
    MonthProjection,
    SimulationInput,
    SimulationResult,
    SimulationSummary,
)

__all__ = [
    "Account",
    "Balance",
    "ChargeStatus",
    "Event",
    "Investor",
    "InvestorProfile",
    "MonthProjection",
    "Movement",
    "MovementPage",
    "MovementType",
    "PixCharge",
    "SimulationInput",
    "SimulationResult",
    "SimulationSummary",
    "WithdrawalState",
]
