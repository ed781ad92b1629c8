"""Custom exception hierarchy for invest-ledger."""

from datetime import date


class LedgerError(Exception):
    """Base exception for all invest-ledger errors."""

    reason = "ledger_error"


class ValidationError(LedgerError):
    """Raised when caller input is invalid and can be fixed by the caller."""

    reason = "validation_error"


class InvalidAmountError(ValidationError):
    """Raised when a monetary amount is not acceptable for the operation."""

    reason = "invalid_amount"


class InvalidInputError(ValidationError):
    """Raised when simulation or period input is invalid."""

    reason = "invalid_input"


class InvalidPaginationError(ValidationError):
    """Raised when a page number or page size is out of range."""

    reason = "invalid_pagination"


class ChargeAmountMismatchError(ValidationError):
    """Raised when a gateway confirmation reports a different amount."""

    reason = "charge_amount_mismatch"


class PixPayloadError(ValidationError):
    """Raised when a BR Code payload cannot be rendered."""

    reason = "pix_payload_error"


class EligibilityError(LedgerError):
    """Raised when a withdrawal is not permitted at request time.

    These are expected business states and are surfaced to the user with
    the remaining-days detail.
    """

    reason = "not_eligible"

    def __init__(
        self,
        message: str,
        retry_after_days: int | None = None,
        next_window_date: date | None = None,
    ) -> None:
        super().__init__(message)
        self.retry_after_days = retry_after_days
        self.next_window_date = next_window_date


class NoYieldAvailableError(EligibilityError):
    """Raised when there is no accrued yield to withdraw."""

    reason = "no_yield_available"


class LockPeriodActiveError(EligibilityError):
    """Raised when the minimum holding period has not elapsed."""

    reason = "lock_period_active"


class OutsideWithdrawalWindowError(EligibilityError):
    """Raised when today is outside the monthly total-withdrawal window."""

    reason = "outside_withdrawal_window"


class NothingToWithdrawError(EligibilityError):
    """Raised when the account holds no balance to withdraw."""

    reason = "nothing_to_withdraw"


class EntityNotFoundError(LedgerError):
    """Raised when a referenced entity does not exist."""

    reason = "not_found"


class AccountNotFoundError(EntityNotFoundError):
    """Raised when an account id is unknown."""

    reason = "account_not_found"


class ChargeNotFoundError(EntityNotFoundError):
    """Raised when a PIX charge id is unknown."""

    reason = "charge_not_found"


class InvalidEntityStateError(LedgerError):
    """Raised when an entity is in an invalid state for the operation."""

    reason = "invalid_state"


class ChargeExpiredError(InvalidEntityStateError):
    """Raised when confirming a charge whose TTL has elapsed."""

    reason = "charge_expired"


class InsufficientYieldError(InvalidEntityStateError):
    """Raised when a yield withdrawal would drive accrued yield negative."""

    reason = "insufficient_yield"


class IdempotencyConflict(LedgerError):
    """Raised when an idempotency key has already been used."""

    reason = "idempotency_conflict"


class DuplicateCorrelationError(IdempotencyConflict):
    """Raised when a correlation id is already recorded for an account."""

    reason = "duplicate_correlation"

    def __init__(self, message: str, movement_id: str | None = None) -> None:
        super().__init__(message)
        self.movement_id = movement_id


class ConcurrencyConflictError(LedgerError):
    """Raised when the per-account lock could not be acquired in time."""

    reason = "concurrency_conflict"


class LedgerIntegrityError(LedgerError):
    """Raised when the cached balance disagrees with the movement history."""

    reason = "ledger_integrity"


class ConfigurationError(LedgerError):
    """Raised when configuration is invalid or missing."""

    reason = "configuration_error"


class SinkError(LedgerError):
    """Raised when a sink operation fails."""

    reason = "sink_error"
