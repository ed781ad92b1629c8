"""Tests for monthly yield accrual."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from invest_ledger.exceptions import InvalidInputError
from invest_ledger.ledger.accrual import YieldAccrual, accrue
from invest_ledger.models import MovementType
from invest_ledger.store import LedgerStore

RATE = Decimal("0.00835")


@pytest.fixture
def accrual(store: LedgerStore) -> YieldAccrual:
    return YieldAccrual(store)


class TestAccrue:
    """Tests for the pure accrual formula."""

    def test_standard_rate(self) -> None:
        assert accrue(Decimal("1000.00"), RATE) == Decimal("8.35")

    def test_rounds_to_centavos(self) -> None:
        assert accrue(Decimal("130.00"), RATE) == Decimal("1.09")
        assert accrue(Decimal("825.00"), RATE) == Decimal("6.89")

    def test_ties_round_to_even(self) -> None:
        # 300 * 0.00835 = 2.505, 900 * 0.00835 = 7.515
        assert accrue(Decimal("300.00"), RATE) == Decimal("2.50")
        assert accrue(Decimal("900.00"), RATE) == Decimal("7.52")

    def test_zero_principal(self) -> None:
        assert accrue(Decimal("0"), RATE) == Decimal("0.00")

    def test_zero_rate(self) -> None:
        assert accrue(Decimal("1000"), Decimal("0")) == Decimal("0.00")


class TestYieldAccrual:
    """Tests for crediting yield to accounts."""

    def test_current_period_uses_local_calendar(self, accrual: YieldAccrual, clock) -> None:
        assert accrual.current_period() == "2024-03"
        # 01:00 UTC on April 1st is still March 31st in Brasilia
        clock.set(datetime(2024, 4, 1, 1, 0, tzinfo=timezone.utc))
        assert accrual.current_period() == "2024-03"
        clock.set(datetime(2024, 4, 1, 3, 0, tzinfo=timezone.utc))
        assert accrual.current_period() == "2024-04"

    def test_accrue_account(self, accrual: YieldAccrual, store: LedgerStore, account_id: str, deposit) -> None:
        deposit(account_id, "1000")

        movement = accrual.accrue_account(account_id)

        assert movement is not None
        assert movement.movement_type == MovementType.YIELD_CREDIT
        assert movement.amount == Decimal("8.35")
        assert movement.correlation_id == "accrual:2024-03"
        assert movement.description == "Rendimento 2024-03"
        balance = store.get_balance(account_id)
        assert balance.principal == Decimal("1000.00")
        assert balance.accrued_yield == Decimal("8.35")

    def test_rerun_same_period_is_idempotent(self, accrual: YieldAccrual, store: LedgerStore, account_id: str, deposit) -> None:
        deposit(account_id, "1000")
        first = accrual.accrue_account(account_id, "2024-03")

        second = accrual.accrue_account(account_id, "2024-03")

        assert second == first
        assert store.get_balance(account_id).accrued_yield == Decimal("8.35")
        assert len(store.get_account_movements(account_id)) == 2

    def test_credit_flags_replayed_period(self, accrual: YieldAccrual, account_id: str, deposit) -> None:
        deposit(account_id, "1000")

        first = accrual.credit(account_id, "2024-03")
        second = accrual.credit(account_id, "2024-03")

        assert first.replayed is False
        assert second.replayed is True
        assert second.movement == first.movement

    def test_yield_is_simple_on_principal(self, accrual: YieldAccrual, store: LedgerStore, account_id: str, deposit) -> None:
        deposit(account_id, "1000")
        accrual.accrue_account(account_id, "2024-03")
        accrual.accrue_account(account_id, "2024-04")

        assert store.get_balance(account_id).accrued_yield == Decimal("16.70")

    def test_empty_account_gets_nothing(self, accrual: YieldAccrual, store: LedgerStore, account_id: str) -> None:
        assert accrual.accrue_account(account_id) is None
        assert store.get_account_movements(account_id) == []

    @pytest.mark.parametrize("period", ["2024-13", "2024-3", "march", "2024-00"])
    def test_invalid_period(self, accrual: YieldAccrual, account_id: str, period: str) -> None:
        with pytest.raises(InvalidInputError):
            accrual.accrue_account(account_id, period)

    def test_estimate(self, accrual: YieldAccrual, account_id: str, deposit) -> None:
        deposit(account_id, "350")
        assert accrual.estimate(account_id) == Decimal("2.92")

    def test_accrue_all(self, accrual: YieldAccrual, store: LedgerStore, account_id: str, deposit) -> None:
        deposit(account_id, "1000")
        other = store.open_account("owner-002").account_id
        deposit(other, "130")
        store.open_account("owner-003")

        credited = accrual.accrue_all("2024-03")

        assert sorted(m.amount for m in credited) == [Decimal("1.09"), Decimal("8.35")]
        assert accrual.accrue_all("2024-03") == credited
