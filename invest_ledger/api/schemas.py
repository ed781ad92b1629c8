"""
Request and response models for the HTTP API.

Amounts are serialized as decimal strings ("1000.00") so that clients never
see binary floating point values.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from invest_ledger.models import ChargeStatus, MovementType, WithdrawalState


class LedgerModel(BaseModel):
    """Base for responses built from ledger dataclasses."""

    model_config = ConfigDict(from_attributes=True)


class OpenAccountRequest(BaseModel):
    owner_id: str = Field(..., min_length=1)
    account_id: Optional[str] = None


class AccountResponse(LedgerModel):
    account_id: str
    owner_id: str
    created_at: datetime
    principal: Decimal
    accrued_yield: Decimal
    total: Decimal


class BalanceSnapshot(LedgerModel):
    principal: Decimal
    accrued_yield: Decimal
    total: Decimal


class EligibilityResponse(LedgerModel):
    state: WithdrawalState
    can_withdraw_yield: bool
    can_withdraw_total: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    days_since_anchor: Optional[int] = None
    retry_after_days: Optional[int] = None
    next_window_date: Optional[date] = None


class BalanceResponse(BaseModel):
    """
    Account balance with its current withdrawal status.
    """
    account_id: str
    principal: Decimal
    accrued_yield: Decimal
    total: Decimal
    first_qualifying_deposit_at: Optional[datetime] = None
    eligibility: EligibilityResponse


class AllowedAmountsResponse(BaseModel):
    amounts: list[Decimal]


class GenerateChargeRequest(BaseModel):
    amount: Decimal

    model_config = ConfigDict(json_schema_extra={"example": {"amount": "1000.00"}})


class ChargeResponse(BaseModel):
    """
    Pending PIX charge. ``qr_payload`` is the BR Code rendered as a PNG QR
    image (``data:`` URI) and ``pix_string`` the same BR Code offered as
    copy-and-paste text.
    """
    charge_id: str
    status: ChargeStatus
    amount: Decimal
    txid: str
    qr_payload: str
    pix_string: str
    expires_at: datetime


class ConfirmChargeRequest(BaseModel):
    """
    Payment notification sent by the PIX gateway.
    """
    charge_id: str
    amount: Optional[Decimal] = None
    confirmed_at: Optional[AwareDatetime] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "charge_id": "9f1c2e7a0b6d4c3e8a5f1d2c3b4a5e6f",
                "amount": "1000.00",
                "confirmed_at": "2024-03-01T12:00:00Z",
            }
        }
    )


class MovementResponse(LedgerModel):
    movement_id: str
    movement_type: MovementType
    amount: Decimal
    created_at: datetime
    description: str
    correlation_id: Optional[str] = None


class ConfirmationResponse(BaseModel):
    movement: MovementResponse
    new_balance: BalanceSnapshot
    replayed: bool


class WithdrawalResponse(BaseModel):
    movement: MovementResponse
    new_balance: BalanceSnapshot


class YieldEstimateResponse(BaseModel):
    account_id: str
    principal: Decimal
    accrued_yield: Decimal
    monthly_rate: Decimal
    estimated_yield: Decimal


class SimulationRequest(BaseModel):
    initial_deposit: Decimal
    months: int
    monthly_extra_deposit: Decimal = Decimal("0")

    model_config = ConfigDict(
        json_schema_extra={"example": {"initial_deposit": "1000", "months": 12, "monthly_extra_deposit": "0"}}
    )


class MonthProjectionResponse(LedgerModel):
    month: int
    rendimento: Decimal
    saldo_acumulado: Decimal


class SimulationSummaryResponse(LedgerModel):
    total_investido: Decimal
    total_rendimentos: Decimal
    valor_final: Decimal


class SimulationResponse(LedgerModel):
    history: list[MonthProjectionResponse]
    summary: SimulationSummaryResponse


class MovementPageResponse(LedgerModel):
    items: list[MovementResponse]
    page: int
    page_size: int
    total: int
    has_next: bool


class AccrualRunRequest(BaseModel):
    period: Optional[str] = Field(None, description="Accrual period as YYYY-MM")


class AccrualRunResponse(BaseModel):
    period: str
    credited: int
    movements: list[MovementResponse]


class ErrorResponse(BaseModel):
    reason: str
    message: str
    retry_after_days: Optional[int] = None
    next_window_date: Optional[date] = None
