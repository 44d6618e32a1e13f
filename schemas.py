from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from models import (
    Currency,
    ExpenseCategory,
    GoalType,
    IncomeCategory,
    Priority,
    ProjectStatus,
    SavingsCategory,
)


class InputModel(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class UserIn(InputModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    currency: Currency = Currency.usd


class ProjectIn(InputModel):
    name: str = Field(..., min_length=2, max_length=100)
    client_name: str = Field(..., min_length=2, max_length=100)
    expected_payment_cents: int = Field(..., ge=0)
    status: ProjectStatus = ProjectStatus.active
    budget_allocation: int = Field(default=10, ge=0, le=100)
    description: Optional[str] = Field(default=None, max_length=500)


class ProjectUpdate(InputModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    client_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    expected_payment_cents: Optional[int] = Field(default=None, ge=0)
    status: Optional[ProjectStatus] = None
    budget_allocation: Optional[int] = Field(default=None, ge=0, le=100)
    description: Optional[str] = Field(default=None, max_length=500)


class IncomeEntryIn(InputModel):
    project_id: str = Field(..., min_length=1, max_length=32)
    amount_cents: int = Field(..., gt=0)
    description: str = Field(..., min_length=2, max_length=200)
    date: Optional[datetime] = None
    category: IncomeCategory = IncomeCategory.project_payment


class IncomeEntryUpdate(InputModel):
    project_id: Optional[str] = Field(default=None, min_length=1, max_length=32)
    amount_cents: Optional[int] = Field(default=None, gt=0)
    description: Optional[str] = Field(default=None, min_length=2, max_length=200)
    date: Optional[datetime] = None
    category: Optional[IncomeCategory] = None


class ExpenseEntryIn(InputModel):
    project_id: str = Field(..., min_length=1, max_length=32)
    amount_cents: int = Field(..., gt=0)
    description: str = Field(..., min_length=2, max_length=200)
    date: Optional[datetime] = None
    category: ExpenseCategory = ExpenseCategory.other
    receipt_url: Optional[str] = Field(default=None, max_length=500)


class ExpenseEntryUpdate(InputModel):
    project_id: Optional[str] = Field(default=None, min_length=1, max_length=32)
    amount_cents: Optional[int] = Field(default=None, gt=0)
    description: Optional[str] = Field(default=None, min_length=2, max_length=200)
    date: Optional[datetime] = None
    category: Optional[ExpenseCategory] = None
    receipt_url: Optional[str] = Field(default=None, max_length=500)


class SavingsGoalIn(InputModel):
    title: str = Field(..., min_length=2, max_length=100)
    target_amount_cents: int = Field(..., ge=100)
    current_amount_cents: int = Field(default=0, ge=0)
    deadline: datetime
    description: Optional[str] = Field(default=None, max_length=500)
    category: SavingsCategory = SavingsCategory.other
    priority: Priority = Priority.medium
    type: GoalType = GoalType.monthly


class SavingsGoalUpdate(InputModel):
    title: Optional[str] = Field(default=None, min_length=2, max_length=100)
    target_amount_cents: Optional[int] = Field(default=None, ge=100)
    current_amount_cents: Optional[int] = Field(default=None, ge=0)
    deadline: Optional[datetime] = None
    description: Optional[str] = Field(default=None, max_length=500)
    category: Optional[SavingsCategory] = None
    priority: Optional[Priority] = None
    type: Optional[GoalType] = None


class ProgressUpdateIn(InputModel):
    amount_cents: int = Field(..., gt=0)
    action: Literal["add", "subtract"]
