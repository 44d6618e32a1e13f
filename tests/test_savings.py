from datetime import datetime, timedelta

import pytest

import savings
from errors import InsufficientProgress, InvalidInput
from models import SavingsGoal

NOW = datetime(2025, 6, 1, 12, 0)


def make_goal(current: int = 0, target: int = 10000, completed: bool = False) -> SavingsGoal:
    return SavingsGoal(
        user_id="alice",
        title="Laptop",
        target_amount_cents=target,
        current_amount_cents=current,
        deadline=NOW + timedelta(days=30),
        is_completed=completed,
    )


def test_adding_past_target_completes_goal() -> None:
    goal = make_goal(current=8000)

    savings.add_progress(goal, 2500)

    assert goal.current_amount_cents == 10500
    assert goal.is_completed is True


def test_adding_below_target_keeps_goal_active() -> None:
    goal = make_goal(current=1000)

    savings.add_progress(goal, 2000)

    assert goal.current_amount_cents == 3000
    assert goal.is_completed is False


def test_overdraft_is_rejected_and_amount_unchanged() -> None:
    goal = make_goal(current=3000)

    with pytest.raises(InsufficientProgress) as exc_info:
        savings.subtract_progress(goal, 3001)

    assert goal.current_amount_cents == 3000
    assert exc_info.value.kind == "InsufficientProgress"
    assert exc_info.value.status_code == 400


def test_subtracting_everything_reaches_zero() -> None:
    goal = make_goal(current=3000)

    savings.subtract_progress(goal, 3000)

    assert goal.current_amount_cents == 0


def test_completed_goal_does_not_revert_when_balance_drops() -> None:
    goal = make_goal(current=10000, completed=True)

    savings.subtract_progress(goal, 5000)

    assert goal.current_amount_cents == 5000
    assert goal.is_completed is True


@pytest.mark.parametrize("amount", [0, -5])
def test_progress_amount_must_be_positive(amount: int) -> None:
    goal = make_goal(current=100)

    with pytest.raises(InvalidInput):
        savings.add_progress(goal, amount)
    with pytest.raises(InvalidInput):
        savings.subtract_progress(goal, amount)


def test_explicit_transitions() -> None:
    goal = make_goal(current=500)

    savings.mark_completed(goal)
    assert goal.is_completed is True

    savings.mark_active(goal)
    assert goal.is_completed is False


def test_deadline_must_be_in_future() -> None:
    savings.validate_deadline(NOW + timedelta(seconds=1), now=NOW)
    with pytest.raises(InvalidInput):
        savings.validate_deadline(NOW, now=NOW)
    with pytest.raises(InvalidInput):
        savings.validate_deadline(NOW - timedelta(days=1), now=NOW)


def test_expiring_soon_window_bounds() -> None:
    assert savings.expiring_soon_cutoff(7, now=NOW) == NOW + timedelta(days=7)
    assert savings.expiring_soon_cutoff(365, now=NOW) == NOW + timedelta(days=365)
    with pytest.raises(InvalidInput):
        savings.expiring_soon_cutoff(0, now=NOW)
    with pytest.raises(InvalidInput):
        savings.expiring_soon_cutoff(366, now=NOW)


def test_derived_values() -> None:
    goal = make_goal(current=12000, target=10000)

    assert savings.progress_percentage(goal) == 100.0
    assert savings.remaining_cents(goal) == 0
    assert savings.days_remaining(goal, now=NOW) == 30

    partial = make_goal(current=2500)
    assert savings.progress_percentage(partial) == 25.0
    assert savings.remaining_cents(partial) == 7500


def test_total_progress_handles_empty_target() -> None:
    assert savings.total_progress(0, 0) == 0
    assert savings.total_progress(2500, 10000) == 25.0
    assert savings.total_progress(1, 3) == 33.33
