"""Tests for money helpers and ledger models."""

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from invest_ledger.exceptions import InvalidAmountError
from invest_ledger.models import (
    Account,
    Balance,
    ChargeStatus,
    Movement,
    MovementPage,
    MovementType,
    PixCharge,
    WithdrawalState,
)
from invest_ledger.money import ZERO, quantize, to_money

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestMoney:
    """Tests for quantize and to_money."""

    def test_quantize_rounds_half_even(self) -> None:
        assert quantize(Decimal("0.125")) == Decimal("0.12")
        assert quantize(Decimal("0.135")) == Decimal("0.14")
        assert quantize(Decimal("8.35")) == Decimal("8.35")

    def test_to_money_from_int(self) -> None:
        assert to_money(1000) == Decimal("1000.00")

    def test_to_money_from_float_uses_decimal_text(self) -> None:
        assert to_money(10.1) == Decimal("10.10")
        assert str(to_money(130.0)) == "130.00"

    def test_to_money_from_string(self) -> None:
        assert to_money("825") == Decimal("825.00")

    @pytest.mark.parametrize("value", [True, "abc", "NaN", float("inf")])
    def test_to_money_rejects_invalid(self, value: object) -> None:
        with pytest.raises(InvalidAmountError):
            to_money(value)


class TestEnums:
    """Tests for ledger enumerations."""

    def test_movement_types(self) -> None:
        assert [t.value for t in MovementType] == [
            "DEPOSIT",
            "YIELD_CREDIT",
            "YIELD_WITHDRAWAL",
            "TOTAL_WITHDRAWAL",
        ]

    def test_charge_status_is_str(self) -> None:
        assert ChargeStatus.PENDING == "PENDING"

    def test_withdrawal_states(self) -> None:
        assert {s.value for s in WithdrawalState} == {"LOCKED", "YIELD_ONLY", "FULLY_ELIGIBLE"}


class TestBalanceAndAccount:
    """Tests for Balance and Account."""

    def test_balance_defaults_to_zero(self) -> None:
        balance = Balance()
        assert balance.principal == ZERO
        assert balance.total == ZERO

    def test_balance_total(self) -> None:
        balance = Balance(principal=Decimal("1000.00"), accrued_yield=Decimal("8.35"))
        assert balance.total == Decimal("1008.35")

    def test_balance_is_frozen(self) -> None:
        with pytest.raises(FrozenInstanceError):
            Balance().principal = Decimal("1")  # type: ignore[misc]

    def test_account_balance_view(self) -> None:
        account = Account(
            account_id="acct-001",
            owner_id="owner-001",
            created_at=NOW,
            principal=Decimal("350.00"),
            accrued_yield=Decimal("2.92"),
        )
        assert account.balance == Balance(Decimal("350.00"), Decimal("2.92"))
        assert account.total == Decimal("352.92")
        assert account.first_qualifying_deposit_at is None


class TestMovement:
    """Tests for Movement and MovementPage."""

    def _movement(self, sequence: int) -> Movement:
        return Movement(
            movement_id=f"mov-{sequence}",
            account_id="acct-001",
            movement_type=MovementType.DEPOSIT,
            amount=Decimal("130.00"),
            created_at=NOW,
            description="Depósito via PIX",
            sequence=sequence,
        )

    def test_movement_is_immutable(self) -> None:
        movement = self._movement(1)
        with pytest.raises(FrozenInstanceError):
            movement.amount = Decimal("0")  # type: ignore[misc]

    def test_page_has_next(self) -> None:
        items = [self._movement(i) for i in range(10)]
        assert MovementPage(items=items, page=1, page_size=10, total=25).has_next
        assert not MovementPage(items=items[:5], page=3, page_size=10, total=25).has_next


class TestPixCharge:
    """Tests for PixCharge."""

    def _charge(self, status: ChargeStatus = ChargeStatus.PENDING) -> PixCharge:
        return PixCharge(
            charge_id="chg-001",
            account_id="acct-001",
            amount=Decimal("130.00"),
            status=status,
            created_at=NOW,
            expires_at=NOW + timedelta(minutes=30),
            txid="DEPCHG001",
            pix_string="000201",
        )

    def test_pending_charge_expires_at_ttl(self) -> None:
        charge = self._charge()
        assert not charge.is_expired_at(NOW + timedelta(minutes=29))
        assert charge.is_expired_at(NOW + timedelta(minutes=30))

    def test_expired_status_is_expired(self) -> None:
        assert self._charge(ChargeStatus.EXPIRED).is_expired_at(NOW)

    def test_confirmed_charge_never_expires(self) -> None:
        assert not self._charge(ChargeStatus.CONFIRMED).is_expired_at(NOW + timedelta(days=1))
