from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import savings
from aggregation import (
    EntryStats,
    MonthBucket,
    ProjectBreakdown,
    by_project,
    entry_stats,
    project_labels,
    summary,
)
from errors import Conflict, InvalidInput, NotFound
from models import (
    ExpenseEntry,
    IncomeEntry,
    Project,
    ProjectStatus,
    SavingsGoal,
    User,
    utcnow,
)
from pagination import Page, PageParams, paginate
from periods import DateRange, to_naive_utc
from queries import OwnedQuery, RecordFilters, coerce_enum
from schemas import (
    ExpenseEntryIn,
    IncomeEntryIn,
    ProgressUpdateIn,
    ProjectIn,
    ProjectUpdate,
    SavingsGoalIn,
    SavingsGoalUpdate,
    UserIn,
)

logger = logging.getLogger(__name__)


def _page(records: list, total: int, params: PageParams) -> Page:
    return Page(records=records, pagination=paginate(total, params.page, params.limit))


@dataclass(frozen=True)
class ProjectStats:
    total_projects: int = 0
    active_projects: int = 0
    completed_projects: int = 0
    on_hold_projects: int = 0
    total_expected_payment: int = 0
    average_expected_payment: float = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "totalProjects": self.total_projects,
            "activeProjects": self.active_projects,
            "completedProjects": self.completed_projects,
            "onHoldProjects": self.on_hold_projects,
            "totalExpectedPayment": self.total_expected_payment,
            "averageExpectedPayment": self.average_expected_payment,
        }


@dataclass(frozen=True)
class SavingsStats:
    total_goals: int = 0
    active_goals: int = 0
    completed_goals: int = 0
    expiring_soon_count: int = 0
    total_target_amount: int = 0
    total_current_amount: int = 0
    total_progress: float = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "totalGoals": self.total_goals,
            "activeGoals": self.active_goals,
            "completedGoals": self.completed_goals,
            "expiringSoonCount": self.expiring_soon_count,
            "totalTargetAmount": self.total_target_amount,
            "totalCurrentAmount": self.total_current_amount,
            "totalProgress": self.total_progress,
        }


@dataclass
class EntryView:
    """An entry joined with ``{name, client_name}`` of its project, if visible."""

    entry: object
    project: Optional[dict[str, str]] = None


@dataclass(frozen=True)
class UserTotals:
    total_income: int
    total_savings: int


class ProjectService:
    def __init__(self, session: Session, user_id: Optional[str]) -> None:
        self.session = session
        self.scope = OwnedQuery(Project, user_id)
        self.user_id = self.scope.owner_id

    def list(
        self,
        params: Optional[PageParams] = None,
        filters: Optional[RecordFilters] = None,
    ) -> Page:
        params = params or PageParams()
        records, total = self.scope.fetch_page(self.session, params, filters)
        return _page(records, total, params)

    def list_by_status(self, status: str, params: Optional[PageParams] = None) -> Page:
        member = coerce_enum(ProjectStatus, status)
        if member is None:
            raise InvalidInput("Invalid status value")
        return self.list(params, RecordFilters(status=member))

    def get(self, project_id: str) -> Project:
        project = self.scope.get(self.session, project_id)
        if not project:
            raise NotFound("Project not found")
        return project

    def create(self, data: ProjectIn) -> Project:
        project = Project(
            user_id=self.user_id,
            name=data.name,
            client_name=data.client_name,
            expected_payment_cents=data.expected_payment_cents,
            status=data.status,
            budget_allocation=data.budget_allocation,
            description=data.description,
            created_date=utcnow(),
            is_active=True,
        )
        self.session.add(project)
        self.session.commit()
        self.session.refresh(project)
        logger.info(f"project_created: id={project.id} user={self.user_id}")
        return project

    def update(self, project_id: str, data: ProjectUpdate) -> Project:
        project = self.get(project_id)
        for name, value in data.model_dump(exclude_unset=True).items():
            if value is None and name != "description":
                continue
            setattr(project, name, value)
        self.session.commit()
        self.session.refresh(project)
        logger.info(f"project_updated: id={project.id} user={self.user_id}")
        return project

    def soft_delete(self, project_id: str) -> None:
        project = self.get(project_id)
        project.is_active = False
        self.session.commit()
        logger.info(f"project_deleted: id={project.id} user={self.user_id}")

    def stats(self) -> ProjectStats:
        def status_count(status: ProjectStatus):
            return func.coalesce(func.sum(case((Project.status == status, 1), else_=0)), 0)

        row = self.session.execute(
            select(
                func.count(Project.id).label("total"),
                status_count(ProjectStatus.active).label("active"),
                status_count(ProjectStatus.completed).label("completed"),
                status_count(ProjectStatus.on_hold).label("on_hold"),
                func.coalesce(func.sum(Project.expected_payment_cents), 0).label(
                    "expected"
                ),
            ).where(*self.scope.base_clauses())
        ).one()
        total = int(row.total or 0)
        expected = int(row.expected or 0)
        return ProjectStats(
            total_projects=total,
            active_projects=int(row.active or 0),
            completed_projects=int(row.completed or 0),
            on_hold_projects=int(row.on_hold or 0),
            total_expected_payment=expected,
            average_expected_payment=round(expected / total, 2) if total else 0,
        )


class EntryService(ABC):
    """Shared behavior of income and expense entries."""

    model: type
    label = "Entry"

    def __init__(self, session: Session, user_id: Optional[str]) -> None:
        self.session = session
        self.scope = OwnedQuery(self.model, user_id)
        self.user_id = self.scope.owner_id

    def _require_project(self, project_id: str) -> Project:
        project = OwnedQuery(Project, self.user_id).get(self.session, project_id)
        if not project:
            raise NotFound("Project not found")
        return project

    def _views(self, entries: list) -> list[EntryView]:
        labels = project_labels(
            self.session, self.user_id, [entry.project_id for entry in entries]
        )
        views = []
        for entry in entries:
            label = labels.get(entry.project_id)
            project = {"name": label[0], "client_name": label[1]} if label else None
            views.append(EntryView(entry=entry, project=project))
        return views

    def _get_entry(self, entry_id: str):
        entry = self.scope.get(self.session, entry_id)
        if not entry:
            raise NotFound(f"{self.label} not found")
        return entry

    def list(
        self,
        filters: Optional[RecordFilters] = None,
        date_range: Optional[DateRange] = None,
        params: Optional[PageParams] = None,
    ) -> Page:
        params = params or PageParams()
        entries, total = self.scope.fetch_page(
            self.session, params, filters, date_range
        )
        return _page(self._views(entries), total, params)

    def get(self, entry_id: str) -> EntryView:
        return self._views([self._get_entry(entry_id)])[0]

    @abstractmethod
    def _new_entry(self, data):
        ...

    def create(self, data):
        project = self._require_project(data.project_id)
        entry = self._new_entry(data)
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        logger.info(
            f"{self.model.__tablename__}_created: id={entry.id} "
            f"amount_cents={entry.amount_cents} project={project.id} user={self.user_id}"
        )
        return entry

    def update(self, entry_id: str, data):
        entry = self._get_entry(entry_id)
        changes = data.model_dump(exclude_unset=True)

        project_id = changes.get("project_id")
        if project_id and project_id != entry.project_id:
            self._require_project(project_id)

        for name, value in changes.items():
            if value is None and name != "receipt_url":
                continue
            if name == "date":
                value = to_naive_utc(value)
            setattr(entry, name, value)
        self.session.commit()
        self.session.refresh(entry)
        logger.info(
            f"{self.model.__tablename__}_updated: id={entry.id} user={self.user_id}"
        )
        return entry

    def soft_delete(self, entry_id: str) -> None:
        entry = self._get_entry(entry_id)
        entry.is_active = False
        self.session.commit()
        logger.info(
            f"{self.model.__tablename__}_deleted: id={entry.id} user={self.user_id}"
        )

    def stats(
        self,
        date_range: Optional[DateRange] = None,
        filters: Optional[RecordFilters] = None,
    ) -> EntryStats:
        return entry_stats(self.session, self.scope, filters, date_range)

    def by_project(
        self, date_range: Optional[DateRange] = None
    ) -> list[ProjectBreakdown]:
        return by_project(self.session, self.scope, None, date_range)

    def total(self, date_range: Optional[DateRange] = None) -> int:
        return summary(self.session, self.scope, None, date_range).total

    def recent(self, limit: int = 5) -> list[EntryView]:
        stmt = (
            self.scope.select()
            .order_by(self.model.date.desc(), self.model.id.desc())
            .limit(limit)
        )
        return self._views(list(self.session.scalars(stmt).all()))


class IncomeService(EntryService):
    model = IncomeEntry
    label = "Income entry"

    def _new_entry(self, data: IncomeEntryIn) -> IncomeEntry:
        return IncomeEntry(
            user_id=self.user_id,
            project_id=data.project_id,
            amount_cents=data.amount_cents,
            description=data.description,
            date=to_naive_utc(data.date) if data.date else utcnow(),
            category=data.category,
            is_active=True,
        )


class ExpenseService(EntryService):
    model = ExpenseEntry
    label = "Expense entry"

    def _new_entry(self, data: ExpenseEntryIn) -> ExpenseEntry:
        return ExpenseEntry(
            user_id=self.user_id,
            project_id=data.project_id,
            amount_cents=data.amount_cents,
            description=data.description,
            date=to_naive_utc(data.date) if data.date else utcnow(),
            category=data.category,
            receipt_url=data.receipt_url or None,
            is_active=True,
        )


class SavingsGoalService:
    def __init__(self, session: Session, user_id: Optional[str]) -> None:
        self.session = session
        self.scope = OwnedQuery(SavingsGoal, user_id)
        self.user_id = self.scope.owner_id

    def list(
        self,
        params: Optional[PageParams] = None,
        filters: Optional[RecordFilters] = None,
    ) -> Page:
        params = params or PageParams()
        records, total = self.scope.fetch_page(self.session, params, filters)
        logger.info(f"savings_listed: count={len(records)} user={self.user_id}")
        return _page(records, total, params)

    def active(self) -> list[SavingsGoal]:
        stmt = (
            self.scope.select()
            .where(SavingsGoal.is_completed.is_(False))
            .order_by(SavingsGoal.deadline.asc(), SavingsGoal.id.asc())
        )
        return list(self.session.scalars(stmt).all())

    def completed(self) -> list[SavingsGoal]:
        stmt = (
            self.scope.select()
            .where(SavingsGoal.is_completed.is_(True))
            .order_by(SavingsGoal.updated_at.desc(), SavingsGoal.id.desc())
        )
        return list(self.session.scalars(stmt).all())

    def _expiring_soon_stmt(self, days: int):
        cutoff = savings.expiring_soon_cutoff(days)
        return self.scope.select().where(
            SavingsGoal.is_completed.is_(False), SavingsGoal.deadline <= cutoff
        )

    def expiring_soon(self, days: int = 7) -> list[SavingsGoal]:
        stmt = self._expiring_soon_stmt(days).order_by(
            SavingsGoal.deadline.asc(), SavingsGoal.id.asc()
        )
        return list(self.session.scalars(stmt).all())

    def get(self, goal_id: str) -> SavingsGoal:
        goal = self.scope.get(self.session, goal_id)
        if not goal:
            raise NotFound("Savings goal not found")
        return goal

    def create(self, data: SavingsGoalIn) -> SavingsGoal:
        deadline = to_naive_utc(data.deadline)
        savings.validate_deadline(deadline)
        goal = SavingsGoal(
            user_id=self.user_id,
            title=data.title,
            target_amount_cents=data.target_amount_cents,
            current_amount_cents=data.current_amount_cents,
            deadline=deadline,
            description=data.description,
            category=data.category,
            priority=data.priority,
            type=data.type,
            is_completed=False,
            is_active=True,
        )
        savings.evaluate_completion(goal)
        self.session.add(goal)
        self.session.commit()
        self.session.refresh(goal)
        logger.info(f"savings_created: id={goal.id} user={self.user_id}")
        return goal

    def _persist(self, goal: SavingsGoal) -> SavingsGoal:
        savings.evaluate_completion(goal)
        self.session.commit()
        self.session.refresh(goal)
        return goal

    def update(self, goal_id: str, data: SavingsGoalUpdate) -> SavingsGoal:
        goal = self.get(goal_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("deadline") is not None:
            changes["deadline"] = to_naive_utc(changes["deadline"])
            savings.validate_deadline(changes["deadline"])
        for name, value in changes.items():
            if value is None and name != "description":
                continue
            setattr(goal, name, value)
        self._persist(goal)
        logger.info(f"savings_updated: id={goal.id} user={self.user_id}")
        return goal

    def update_progress(self, goal_id: str, data: ProgressUpdateIn) -> SavingsGoal:
        goal = self.get(goal_id)
        if data.action == "add":
            savings.add_progress(goal, data.amount_cents)
        else:
            savings.subtract_progress(goal, data.amount_cents)
        self._persist(goal)
        logger.info(
            f"savings_progress: id={goal.id} action={data.action} "
            f"amount_cents={data.amount_cents} user={self.user_id}"
        )
        return goal

    def mark_completed(self, goal_id: str) -> SavingsGoal:
        goal = savings.mark_completed(self.get(goal_id))
        self.session.commit()
        self.session.refresh(goal)
        return goal

    def mark_active(self, goal_id: str) -> SavingsGoal:
        # explicit transition back; completion is not re-evaluated here
        goal = savings.mark_active(self.get(goal_id))
        self.session.commit()
        self.session.refresh(goal)
        logger.info(f"savings_reopened: id={goal.id} user={self.user_id}")
        return goal

    def soft_delete(self, goal_id: str) -> None:
        goal = self.get(goal_id)
        goal.is_active = False
        self.session.commit()
        logger.info(f"savings_deleted: id={goal.id} user={self.user_id}")

    def total_current(self) -> int:
        stmt = select(
            func.coalesce(func.sum(SavingsGoal.current_amount_cents), 0)
        ).where(*self.scope.base_clauses())
        return int(self.session.execute(stmt).scalar_one() or 0)

    def stats(self, expiring_days: int = 7) -> SavingsStats:
        row = self.session.execute(
            select(
                func.count(SavingsGoal.id).label("total"),
                func.coalesce(
                    func.sum(case((SavingsGoal.is_completed.is_(True), 1), else_=0)),
                    0,
                ).label("completed"),
                func.coalesce(func.sum(SavingsGoal.target_amount_cents), 0).label(
                    "target"
                ),
                func.coalesce(func.sum(SavingsGoal.current_amount_cents), 0).label(
                    "current"
                ),
            ).where(*self.scope.base_clauses())
        ).one()
        expiring = self._expiring_soon_stmt(expiring_days).subquery()
        expiring_count = int(
            self.session.execute(select(func.count(expiring.c.id))).scalar_one() or 0
        )
        total = int(row.total or 0)
        completed = int(row.completed or 0)
        target = int(row.target or 0)
        current = int(row.current or 0)
        logger.info(f"savings_stats: user={self.user_id}")
        return SavingsStats(
            total_goals=total,
            active_goals=total - completed,
            completed_goals=completed,
            expiring_soon_count=expiring_count,
            total_target_amount=target,
            total_current_amount=current,
            total_progress=savings.total_progress(current, target),
        )


class UserService:
    def __init__(self, session: Session, user_id: Optional[str] = None) -> None:
        self.session = session
        self.user_id = user_id

    def create(self, data: UserIn) -> User:
        email = data.email.lower()
        existing = self.session.scalar(select(User.id).where(User.email == email))
        if existing:
            raise Conflict(f"email '{email}' already exists")
        user = User(
            name=data.name,
            email=email,
            currency=data.currency,
            join_date=utcnow(),
            total_income_cents=0,
            total_savings_cents=0,
            is_active=True,
        )
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise Conflict(f"email '{email}' already exists") from exc
        self.session.refresh(user)
        logger.info(f"user_created: id={user.id}")
        return user

    def get(self) -> User:
        if not self.user_id:
            raise NotFound("User not found")
        user = self.session.scalar(
            select(User).where(User.id == self.user_id, User.is_active.is_(True))
        )
        if not user:
            raise NotFound("User not found")
        return user

    def totals(self) -> UserTotals:
        """Totals recomputed from the entries, independent of the cached fields."""
        return UserTotals(
            total_income=IncomeService(self.session, self.user_id).total(),
            total_savings=SavingsGoalService(self.session, self.user_id).total_current(),
        )

    def rebuild_cached_totals(self) -> User:
        user = self.get()
        totals = self.totals()
        user.total_income_cents = totals.total_income
        user.total_savings_cents = totals.total_savings
        self.session.commit()
        return user


def rebuild_all_user_totals(session: Session) -> int:
    user_ids = session.scalars(select(User.id).where(User.is_active.is_(True))).all()
    for user_id in user_ids:
        UserService(session, user_id).rebuild_cached_totals()
    logger.info(f"user_totals_rebuilt: users={len(user_ids)}")
    return len(user_ids)


@dataclass
class DashboardOverview:
    total_income: int = 0
    total_expenses: int = 0
    net_profit: int = 0
    active_projects: int = 0
    completed_projects: int = 0
    total_savings: int = 0
    savings_goals: int = 0
    recent_transactions: list[dict[str, object]] = field(default_factory=list)
    monthly_data: list[dict[str, object]] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "totalIncome": self.total_income,
            "totalExpenses": self.total_expenses,
            "netProfit": self.net_profit,
            "activeProjects": self.active_projects,
            "completedProjects": self.completed_projects,
            "totalSavings": self.total_savings,
            "savingsGoals": self.savings_goals,
            "recentTransactions": self.recent_transactions,
            "monthlyData": self.monthly_data,
        }


class DashboardService:
    def __init__(self, session: Session, user_id: Optional[str]) -> None:
        self.session = session
        self.income = IncomeService(session, user_id)
        self.expenses = ExpenseService(session, user_id)
        self.projects = ProjectService(session, user_id)
        self.goals = SavingsGoalService(session, user_id)

    @staticmethod
    def _merge_months(
        income: list[MonthBucket], expenses: list[MonthBucket]
    ) -> list[dict[str, object]]:
        months: dict[str, dict[str, int]] = {}
        for bucket in income:
            months.setdefault(bucket.month, {"income": 0, "expenses": 0})
            months[bucket.month]["income"] = bucket.amount
        for bucket in expenses:
            months.setdefault(bucket.month, {"income": 0, "expenses": 0})
            months[bucket.month]["expenses"] = bucket.amount
        return [
            {
                "month": month,
                "income": values["income"],
                "expenses": values["expenses"],
                "profit": values["income"] - values["expenses"],
            }
            for month, values in sorted(months.items())
        ]

    def _recent(self, limit: int) -> list[dict[str, object]]:
        rows = []
        for kind, service in (("income", self.income), ("expense", self.expenses)):
            for view in service.recent(limit):
                entry = view.entry
                rows.append(
                    {
                        "id": entry.id,
                        "type": kind,
                        "amount": entry.amount_cents,
                        "description": entry.description,
                        "date": entry.date,
                        "projectName": view.project["name"] if view.project else None,
                    }
                )
        rows.sort(key=lambda r: (r["date"], r["id"]), reverse=True)
        return rows[:limit]

    def overview(
        self, date_range: Optional[DateRange] = None, recent_limit: int = 5
    ) -> DashboardOverview:
        income_stats = self.income.stats(date_range)
        expense_stats = self.expenses.stats(date_range)
        project_stats = self.projects.stats()
        savings_stats = self.goals.stats()
        return DashboardOverview(
            total_income=income_stats.total,
            total_expenses=expense_stats.total,
            net_profit=income_stats.total - expense_stats.total,
            active_projects=project_stats.active_projects,
            completed_projects=project_stats.completed_projects,
            total_savings=savings_stats.total_current_amount,
            savings_goals=savings_stats.total_goals,
            recent_transactions=self._recent(recent_limit),
            monthly_data=self._merge_months(
                income_stats.monthly_trend, expense_stats.monthly_trend
            ),
        )
