"""Savings goal progress engine.

A goal is Active while ``is_completed`` is false and Completed once it is
true. The Active -> Completed transition fires whenever the current amount
reaches the target; nothing here moves a goal back to Active except
:func:`mark_active`.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

from errors import InsufficientProgress, InvalidInput
from models import SavingsGoal, utcnow

MIN_EXPIRING_DAYS = 1
MAX_EXPIRING_DAYS = 365


def _require_positive(amount: int) -> None:
    if amount is None or amount <= 0:
        raise InvalidInput("Amount must be greater than 0")


def evaluate_completion(goal: SavingsGoal) -> bool:
    if not goal.is_completed and goal.current_amount_cents >= goal.target_amount_cents:
        goal.is_completed = True
    return bool(goal.is_completed)


def add_progress(goal: SavingsGoal, amount: int) -> SavingsGoal:
    _require_positive(amount)
    goal.current_amount_cents += amount
    evaluate_completion(goal)
    return goal


def subtract_progress(goal: SavingsGoal, amount: int) -> SavingsGoal:
    _require_positive(amount)
    if amount > goal.current_amount_cents:
        raise InsufficientProgress("Cannot subtract more than current amount")
    goal.current_amount_cents = _clamped_subtract(goal.current_amount_cents, amount)
    evaluate_completion(goal)
    return goal


def _clamped_subtract(current: int, amount: int) -> int:
    return max(0, current - amount)


def mark_completed(goal: SavingsGoal) -> SavingsGoal:
    goal.is_completed = True
    return goal


def mark_active(goal: SavingsGoal) -> SavingsGoal:
    goal.is_completed = False
    return goal


def validate_deadline(deadline: datetime, now: Optional[datetime] = None) -> None:
    now = now or utcnow()
    if deadline <= now:
        raise InvalidInput("Deadline must be in the future")


def expiring_soon_cutoff(days: int, now: Optional[datetime] = None) -> datetime:
    if days < MIN_EXPIRING_DAYS or days > MAX_EXPIRING_DAYS:
        raise InvalidInput(
            f"Days must be between {MIN_EXPIRING_DAYS} and {MAX_EXPIRING_DAYS}"
        )
    return (now or utcnow()) + timedelta(days=days)


def progress_percentage(goal: SavingsGoal) -> float:
    if not goal.target_amount_cents:
        return 0.0
    return min(100.0, goal.current_amount_cents / goal.target_amount_cents * 100)


def remaining_cents(goal: SavingsGoal) -> int:
    return max(0, goal.target_amount_cents - goal.current_amount_cents)


def days_remaining(goal: SavingsGoal, now: Optional[datetime] = None) -> int:
    delta = goal.deadline - (now or utcnow())
    return math.ceil(delta.total_seconds() / 86400)


def total_progress(total_current: int, total_target: int) -> float:
    if total_target <= 0:
        return 0
    return round(total_current / total_target * 100, 2)
