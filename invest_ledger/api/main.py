import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from invest_ledger import __version__
from invest_ledger.api.schemas import (
    AccountResponse,
    AccrualRunRequest,
    AccrualRunResponse,
    AllowedAmountsResponse,
    BalanceResponse,
    BalanceSnapshot,
    ChargeResponse,
    ConfirmationResponse,
    ConfirmChargeRequest,
    EligibilityResponse,
    ErrorResponse,
    GenerateChargeRequest,
    MovementPageResponse,
    MovementResponse,
    OpenAccountRequest,
    SimulationRequest,
    SimulationResponse,
    WithdrawalResponse,
    YieldEstimateResponse,
)
from invest_ledger.config import AppConfig
from invest_ledger.exceptions import (
    ConcurrencyConflictError,
    EligibilityError,
    EntityNotFoundError,
    IdempotencyConflict,
    InvalidEntityStateError,
    LedgerError,
    LedgerIntegrityError,
    ValidationError,
)
from invest_ledger.ledger.withdrawals import WithdrawalResult
from invest_ledger.logging import setup_logging
from invest_ledger.pix import qr_data_uri
from invest_ledger.service import LedgerService

logger = logging.getLogger(__name__)

# First match wins, so subclasses must come before their parents
STATUS_CODES: list[tuple[type[LedgerError], int]] = [
    (ValidationError, 400),
    (EligibilityError, 409),
    (EntityNotFoundError, 404),
    (InvalidEntityStateError, 409),
    (IdempotencyConflict, 409),
    (ConcurrencyConflictError, 503),
    (LedgerIntegrityError, 500),
]


def status_code_for(exc: LedgerError) -> int:
    for error_cls, status_code in STATUS_CODES:
        if isinstance(exc, error_cls):
            return status_code
    return 500


def error_body(exc: LedgerError) -> dict:
    detail = {}
    if isinstance(exc, EligibilityError):
        detail = {"retry_after_days": exc.retry_after_days, "next_window_date": exc.next_window_date}
    return ErrorResponse(reason=exc.reason, message=str(exc), **detail).model_dump(mode="json")


# --- Dependency Injection ---

def get_service(request: Request) -> LedgerService:
    return request.app.state.service


def current_account(x_account_id: str = Header(..., alias="X-Account-Id")) -> str:
    """Account resolved by the upstream identity layer."""
    return x_account_id


def withdrawal_response(result: WithdrawalResult) -> WithdrawalResponse:
    return WithdrawalResponse(
        movement=MovementResponse.model_validate(result.movement),
        new_balance=BalanceSnapshot.model_validate(result.balance),
    )


def create_app(service: Optional[LedgerService] = None) -> FastAPI:
    """
    Build the API around a ledger service.

    When no service is given, configuration is read from the environment and
    logging is set up the same way as the command line scripts.
    """
    if service is None:
        config = AppConfig.from_env()
        setup_logging(config.log_level, config.log_format)
        service = LedgerService.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.service.close()

    app = FastAPI(
        title="InvistaPRO Ledger API",
        version=__version__,
        description="Account ledger, PIX deposits, yield accrual and withdrawals",
        lifespan=lifespan,
    )
    app.state.service = service

    # --- Error Mapping ---

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        headers = {"Retry-After": "1"} if isinstance(exc, ConcurrencyConflictError) else None
        return JSONResponse(status_code=status_code, content=error_body(exc), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        body = ErrorResponse(reason=ValidationError.reason, message=message)
        return JSONResponse(status_code=400, content=body.model_dump(mode="json"))

    # --- Endpoints ---

    @app.get("/health")
    def health():
        return {"status": "healthy", "version": __version__}

    @app.post("/v1/accounts", response_model=AccountResponse, status_code=201)
    def open_account(body: OpenAccountRequest, svc: LedgerService = Depends(get_service)):
        account = svc.open_account(body.owner_id, account_id=body.account_id)
        return AccountResponse.model_validate(account)

    @app.get("/v1/balance", response_model=BalanceResponse)
    def get_balance(
        account_id: str = Depends(current_account),
        svc: LedgerService = Depends(get_service),
    ):
        account = svc.get_account(account_id)
        return BalanceResponse(
            account_id=account.account_id,
            principal=account.principal,
            accrued_yield=account.accrued_yield,
            total=account.total,
            first_qualifying_deposit_at=account.first_qualifying_deposit_at,
            eligibility=EligibilityResponse.model_validate(svc.eligibility(account_id)),
        )

    @app.get("/v1/deposit/amounts", response_model=AllowedAmountsResponse)
    def deposit_amounts(svc: LedgerService = Depends(get_service)):
        return AllowedAmountsResponse(amounts=svc.allowed_amounts())

    @app.post("/v1/pix/generate", response_model=ChargeResponse, status_code=201)
    def generate_charge(
        body: GenerateChargeRequest,
        account_id: str = Depends(current_account),
        svc: LedgerService = Depends(get_service),
    ):
        charge = svc.generate_charge(account_id, body.amount)
        return ChargeResponse(
            charge_id=charge.charge_id,
            status=charge.status,
            amount=charge.amount,
            txid=charge.txid,
            qr_payload=qr_data_uri(charge.pix_string),
            pix_string=charge.pix_string,
            expires_at=charge.expires_at,
        )

    @app.post("/v1/pix/confirm", response_model=ConfirmationResponse)
    def confirm_charge(body: ConfirmChargeRequest, svc: LedgerService = Depends(get_service)):
        """
        Gateway callback. Repeated notifications for the same charge return the
        original deposit with ``replayed`` set.
        """
        result = svc.confirm_charge(body.charge_id, confirmed_at=body.confirmed_at, amount=body.amount)
        return ConfirmationResponse(
            movement=MovementResponse.model_validate(result.movement),
            new_balance=BalanceSnapshot.model_validate(result.balance),
            replayed=result.replayed,
        )

    @app.get("/v1/yield/current", response_model=YieldEstimateResponse)
    def current_yield(
        account_id: str = Depends(current_account),
        svc: LedgerService = Depends(get_service),
    ):
        account = svc.get_account(account_id)
        return YieldEstimateResponse(
            account_id=account_id,
            principal=account.principal,
            accrued_yield=account.accrued_yield,
            monthly_rate=svc.config.ledger.monthly_rate,
            estimated_yield=svc.current_yield(account_id),
        )

    @app.post("/v1/yield/withdraw", response_model=WithdrawalResponse)
    def withdraw_yield(
        account_id: str = Depends(current_account),
        svc: LedgerService = Depends(get_service),
    ):
        return withdrawal_response(svc.withdraw_yield(account_id))

    @app.post("/v1/withdraw/total", response_model=WithdrawalResponse)
    def withdraw_total(
        account_id: str = Depends(current_account),
        svc: LedgerService = Depends(get_service),
    ):
        return withdrawal_response(svc.withdraw_total(account_id))

    @app.post("/v1/simulation", response_model=SimulationResponse)
    def simulation(body: SimulationRequest, svc: LedgerService = Depends(get_service)):
        result = svc.simulate(body.initial_deposit, body.months, body.monthly_extra_deposit)
        return SimulationResponse.model_validate(result)

    @app.get("/v1/movements", response_model=MovementPageResponse)
    def list_movements(
        page: int = Query(1, description="Page number, starting at 1"),
        page_size: Optional[int] = Query(None, description="Items per page"),
        account_id: str = Depends(current_account),
        svc: LedgerService = Depends(get_service),
    ):
        return MovementPageResponse.model_validate(svc.list_movements(account_id, page, page_size))

    @app.post("/v1/accrual/run", response_model=AccrualRunResponse)
    def run_accrual(
        body: Optional[AccrualRunRequest] = None,
        svc: LedgerService = Depends(get_service),
    ):
        """
        Scheduler hook: credits one period of yield to every account.
        """
        period = (body.period if body else None) or svc.accrual.current_period()
        movements = svc.accrue_all(period)
        return AccrualRunResponse(
            period=period,
            credited=len(movements),
            movements=[MovementResponse.model_validate(m) for m in movements],
        )

    return app


app = create_app()
