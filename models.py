import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


def _value_enum(enum_cls: type[Enum], name: str) -> SAEnum:
    return SAEnum(
        enum_cls,
        name=name,
        values_callable=lambda cls: [member.value for member in cls],
    )


class Currency(str, Enum):
    usd = "USD"
    eur = "EUR"
    gbp = "GBP"
    cad = "CAD"
    aud = "AUD"
    jpy = "JPY"
    inr = "INR"


class ProjectStatus(str, Enum):
    active = "active"
    completed = "completed"
    on_hold = "on-hold"


class IncomeCategory(str, Enum):
    project_payment = "project-payment"
    bonus = "bonus"
    other = "other"


class ExpenseCategory(str, Enum):
    software = "software"
    subscriptions = "subscriptions"
    equipment = "equipment"
    marketing = "marketing"
    other = "other"


class SavingsCategory(str, Enum):
    emergency_fund = "emergency-fund"
    vacation = "vacation"
    house = "house"
    car = "car"
    education = "education"
    retirement = "retirement"
    other = "other"


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class GoalType(str, Enum):
    monthly = "monthly"
    yearly = "yearly"


class GoalStatus(str, Enum):
    active = "active"
    completed = "completed"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class SoftDeleteMixin:
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class User(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)
    currency: Mapped[Currency] = mapped_column(
        _value_enum(Currency, "currency"), nullable=False, default=Currency.usd
    )
    join_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    # denormalized caches, refreshed by the batch totals rebuild only
    total_income_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_savings_cents: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    __table_args__ = (
        CheckConstraint("total_income_cents >= 0", name="ck_user_income_positive"),
        CheckConstraint("total_savings_cents >= 0", name="ck_user_savings_positive"),
    )


class Project(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    client_name: Mapped[str] = mapped_column(String(100), nullable=False)
    expected_payment_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ProjectStatus] = mapped_column(
        _value_enum(ProjectStatus, "projectstatus"),
        nullable=False,
        default=ProjectStatus.active,
    )
    budget_allocation: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    description: Mapped[Optional[str]] = mapped_column(Text)
    created_date: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_projects_user_active", "user_id", "is_active"),
        Index("ix_projects_user_status", "user_id", "status"),
        Index("ix_projects_user_created", "user_id", "created_date"),
        CheckConstraint(
            "expected_payment_cents >= 0", name="ck_projects_payment_positive"
        ),
        CheckConstraint(
            "budget_allocation >= 0 AND budget_allocation <= 100",
            name="ck_projects_budget_allocation_range",
        ),
    )


class IncomeEntry(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "income_entries"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    # plain reference, existence is checked at write time only
    project_id: Mapped[str] = mapped_column(String(32), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    category: Mapped[IncomeCategory] = mapped_column(
        _value_enum(IncomeCategory, "incomecategory"),
        nullable=False,
        default=IncomeCategory.project_payment,
    )

    __table_args__ = (
        Index("ix_income_user_active", "user_id", "is_active"),
        Index("ix_income_user_date", "user_id", "date"),
        Index("ix_income_user_project", "user_id", "project_id"),
        Index("ix_income_user_category", "user_id", "category"),
        CheckConstraint("amount_cents > 0", name="ck_income_amount_positive"),
    )


class ExpenseEntry(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "expense_entries"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    project_id: Mapped[str] = mapped_column(String(32), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    category: Mapped[ExpenseCategory] = mapped_column(
        _value_enum(ExpenseCategory, "expensecategory"),
        nullable=False,
        default=ExpenseCategory.other,
    )
    receipt_url: Mapped[Optional[str]] = mapped_column(String(500))

    __table_args__ = (
        Index("ix_expense_user_active", "user_id", "is_active"),
        Index("ix_expense_user_date", "user_id", "date"),
        Index("ix_expense_user_project", "user_id", "project_id"),
        Index("ix_expense_user_category", "user_id", "category"),
        CheckConstraint("amount_cents > 0", name="ck_expense_amount_positive"),
    )


class SavingsGoal(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "savings_goals"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    target_amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    current_amount_cents: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    deadline: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[SavingsCategory] = mapped_column(
        _value_enum(SavingsCategory, "savingscategory"),
        nullable=False,
        default=SavingsCategory.other,
    )
    priority: Mapped[Priority] = mapped_column(
        _value_enum(Priority, "priority"), nullable=False, default=Priority.medium
    )
    type: Mapped[GoalType] = mapped_column(
        _value_enum(GoalType, "goaltype"), nullable=False, default=GoalType.monthly
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        Index("ix_goals_user_active", "user_id", "is_active"),
        Index("ix_goals_user_completed", "user_id", "is_completed"),
        Index("ix_goals_user_deadline", "user_id", "deadline"),
        CheckConstraint("target_amount_cents >= 100", name="ck_goals_target_min"),
        CheckConstraint(
            "current_amount_cents >= 0", name="ck_goals_current_positive"
        ),
    )
