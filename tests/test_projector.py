"""Tests for balance projection and replay."""

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from invest_ledger.exceptions import InsufficientYieldError, LedgerIntegrityError
from invest_ledger.ledger import projector
from invest_ledger.models import Balance, Movement, MovementType

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_movement(
    movement_type: MovementType,
    amount: str,
    sequence: int = 1,
    created_at: datetime = NOW,
) -> Movement:
    return Movement(
        movement_id=f"mov-{sequence}",
        account_id="acct-001",
        movement_type=movement_type,
        amount=Decimal(amount),
        created_at=created_at,
        description="test",
        sequence=sequence,
    )


class TestApply:
    """Tests for applying single movements."""

    def test_handlers_cover_every_movement_type(self) -> None:
        assert set(projector.HANDLERS) == set(MovementType)

    def test_deposit_increases_principal(self) -> None:
        after = projector.apply(Balance(), make_movement(MovementType.DEPOSIT, "1000.00"))
        assert after == Balance(principal=Decimal("1000.00"), accrued_yield=Decimal("0.00"))

    def test_yield_credit_increases_yield(self) -> None:
        before = Balance(principal=Decimal("1000.00"))
        after = projector.apply(before, make_movement(MovementType.YIELD_CREDIT, "8.35"))
        assert after.principal == Decimal("1000.00")
        assert after.accrued_yield == Decimal("8.35")

    def test_yield_withdrawal_decreases_yield(self) -> None:
        before = Balance(principal=Decimal("1000.00"), accrued_yield=Decimal("8.35"))
        after = projector.apply(before, make_movement(MovementType.YIELD_WITHDRAWAL, "8.35"))
        assert after.accrued_yield == Decimal("0.00")
        assert after.principal == Decimal("1000.00")

    def test_yield_withdrawal_cannot_go_negative(self) -> None:
        before = Balance(principal=Decimal("1000.00"), accrued_yield=Decimal("5.00"))
        with pytest.raises(InsufficientYieldError):
            projector.apply(before, make_movement(MovementType.YIELD_WITHDRAWAL, "5.01"))

    def test_total_withdrawal_zeroes_balance(self) -> None:
        before = Balance(principal=Decimal("1000.00"), accrued_yield=Decimal("8.35"))
        after = projector.apply(before, make_movement(MovementType.TOTAL_WITHDRAWAL, "1008.35"))
        assert after.total == Decimal("0")

    def test_total_withdrawal_must_match_balance(self) -> None:
        before = Balance(principal=Decimal("1000.00"), accrued_yield=Decimal("8.35"))
        with pytest.raises(LedgerIntegrityError):
            projector.apply(before, make_movement(MovementType.TOTAL_WITHDRAWAL, "1000.00"))


class TestReplay:
    """Tests for replaying a movement history."""

    def test_replay_empty(self) -> None:
        assert projector.replay([]) == Balance()

    def test_replay_orders_by_time_then_sequence(self) -> None:
        deposit = make_movement(MovementType.DEPOSIT, "100.00", sequence=1)
        credit = make_movement(MovementType.YIELD_CREDIT, "0.84", sequence=2)
        withdrawal = make_movement(
            MovementType.YIELD_WITHDRAWAL, "0.84", sequence=3, created_at=NOW + timedelta(days=1)
        )
        # Out of order input still replays in ledger order
        balance = projector.replay([withdrawal, credit, deposit])
        assert balance == Balance(principal=Decimal("100.00"), accrued_yield=Decimal("0.00"))

    def test_replay_sequence_breaks_timestamp_ties(self) -> None:
        deposit = make_movement(MovementType.DEPOSIT, "100.00", sequence=1)
        total = make_movement(MovementType.TOTAL_WITHDRAWAL, "100.00", sequence=2)
        assert projector.replay([total, deposit]).total == Decimal("0")


class TestAnchor:
    """Tests for lock-window anchor tracking."""

    def test_first_deposit_sets_anchor(self) -> None:
        movement = make_movement(MovementType.DEPOSIT, "130.00")
        assert projector.next_anchor(None, Balance(), movement) == NOW

    def test_additional_deposit_keeps_anchor(self) -> None:
        later = make_movement(MovementType.DEPOSIT, "130.00", created_at=NOW + timedelta(days=10))
        before = Balance(principal=Decimal("130.00"))
        assert projector.next_anchor(NOW, before, later) == NOW

    def test_deposit_into_emptied_account_resets_anchor(self) -> None:
        later_time = NOW + timedelta(days=120)
        later = make_movement(MovementType.DEPOSIT, "130.00", created_at=later_time)
        assert projector.next_anchor(NOW, Balance(), later) == later_time

    def test_non_deposit_keeps_anchor(self) -> None:
        credit = make_movement(MovementType.YIELD_CREDIT, "1.00")
        assert projector.next_anchor(None, Balance(), credit) is None

    def test_replay_anchor(self) -> None:
        movements = [
            make_movement(MovementType.DEPOSIT, "100.00", sequence=1),
            make_movement(MovementType.DEPOSIT, "50.00", sequence=2, created_at=NOW + timedelta(days=5)),
        ]
        assert projector.replay_anchor(movements) == NOW


class TestReplayEquivalence:
    """The cached balance always equals a full replay."""

    @pytest.mark.parametrize("run_seed", [1, 7, 42, 2024])
    def test_random_histories(self, store, account_id, clock, run_seed: int) -> None:
        rng = random.Random(run_seed)
        amounts = ["130", "350", "825", "1000", "10000"]

        for _ in range(60):
            clock.advance(hours=rng.randint(0, 72))
            account = store.get_account(account_id)
            choice = rng.random()
            if choice < 0.35:
                store.append(account_id, MovementType.DEPOSIT, Decimal(rng.choice(amounts)), "d")
            elif choice < 0.70 and account.principal > 0:
                store.append(
                    account_id,
                    MovementType.YIELD_CREDIT,
                    (account.principal * Decimal("0.00835")).quantize(Decimal("0.01")),
                    "y",
                )
            elif choice < 0.90 and account.accrued_yield > 0:
                cents = rng.randint(1, int(account.accrued_yield * 100))
                store.append(account_id, MovementType.YIELD_WITHDRAWAL, Decimal(cents) / 100, "w")
            elif account.total > 0:
                store.append(account_id, MovementType.TOTAL_WITHDRAWAL, account.total, "t")

            assert store.replay_balance(account_id) == store.get_balance(account_id)

        assert store.verify(account_id) == store.get_balance(account_id)
