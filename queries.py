"""Owner-scoped query construction.

Every owner-facing read in the project goes through :class:`OwnedQuery`. The
owner clause and the active-only clause are emitted unconditionally; caller
filters can only narrow the result further.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from errors import Unauthorized
from models import GoalStatus, Priority, ProjectStatus, SavingsGoal
from pagination import DEFAULT_SORT_FIELD, PageParams

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass
class RecordFilters:
    project_id: Optional[str] = None
    category: Optional[Any] = None
    status: Optional[Any] = None
    priority: Optional[Any] = None


def coerce_enum(enum_cls: type[Enum], value: Any) -> Optional[Enum]:
    """Return the member for ``value`` or ``None`` when it is not recognized."""
    if value is None or value == "":
        return None
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        logger.debug(f"ignoring unrecognized {enum_cls.__name__} filter: {value!r}")
        return None


def _column_enum(model: type, column: str) -> Optional[type[Enum]]:
    col = model.__table__.columns.get(column)
    if col is None:
        return None
    return getattr(col.type, "enum_class", None)


class OwnedQuery:
    def __init__(self, model: type, owner_id: Optional[str]) -> None:
        if not owner_id:
            raise Unauthorized("User not authenticated")
        self.model = model
        self.owner_id = owner_id

    def base_clauses(self) -> list:
        return [
            self.model.user_id == self.owner_id,
            self.model.is_active.is_(True),
        ]

    def filter_clauses(self, filters: Optional[RecordFilters]) -> list:
        if filters is None:
            return []
        model = self.model
        clauses = []

        if filters.project_id and hasattr(model, "project_id"):
            clauses.append(model.project_id == filters.project_id)

        if filters.category is not None:
            enum_cls = _column_enum(model, "category")
            member = coerce_enum(enum_cls, filters.category) if enum_cls else None
            if member is not None:
                clauses.append(model.category == member)

        if filters.status is not None:
            if model is SavingsGoal:
                goal_status = coerce_enum(GoalStatus, filters.status)
                if goal_status is GoalStatus.active:
                    clauses.append(model.is_completed.is_(False))
                elif goal_status is GoalStatus.completed:
                    clauses.append(model.is_completed.is_(True))
            elif hasattr(model, "status"):
                status = coerce_enum(ProjectStatus, filters.status)
                if status is not None:
                    clauses.append(model.status == status)

        if filters.priority is not None and hasattr(model, "priority"):
            priority = coerce_enum(Priority, filters.priority)
            if priority is not None:
                clauses.append(model.priority == priority)

        return clauses

    def date_clauses(self, date_range) -> list:
        if date_range is None or date_range.is_open:
            return []
        if not hasattr(self.model, "date"):
            return []
        clauses = []
        if date_range.start is not None:
            clauses.append(self.model.date >= date_range.start)
        if date_range.end is not None:
            clauses.append(self.model.date <= date_range.end)
        return clauses

    def where_clauses(
        self, filters: Optional[RecordFilters] = None, date_range=None
    ) -> list:
        return (
            self.base_clauses()
            + self.filter_clauses(filters)
            + self.date_clauses(date_range)
        )

    def select(
        self, filters: Optional[RecordFilters] = None, date_range=None
    ) -> Select:
        return select(self.model).where(*self.where_clauses(filters, date_range))

    def by_id(self, record_id: str) -> Select:
        return select(self.model).where(
            *self.base_clauses(), self.model.id == record_id
        )

    def get(self, session: Session, record_id: str):
        return session.scalar(self.by_id(record_id))

    def count(
        self,
        session: Session,
        filters: Optional[RecordFilters] = None,
        date_range=None,
    ) -> int:
        stmt = select(func.count(self.model.id)).where(
            *self.where_clauses(filters, date_range)
        )
        return int(session.execute(stmt).scalar_one() or 0)

    def fetch_page(
        self,
        session: Session,
        params: PageParams,
        filters: Optional[RecordFilters] = None,
        date_range=None,
    ) -> tuple[list, int]:
        total = self.count(session, filters, date_range)
        if params.skip >= total:
            # past the last page; also keeps huge offsets away from the driver
            return [], total
        stmt = apply_sort(
            self.select(filters, date_range),
            self.model,
            params.sort_by,
            params.sort_order,
        )
        records = session.scalars(stmt.offset(params.skip).limit(params.limit)).all()
        return list(records), total


def resolve_sort_column(model: type, sort_by: Optional[str]):
    if not sort_by:
        return None
    name = sort_by.strip()
    candidates = [name, _CAMEL_BOUNDARY.sub("_", name).lower()]
    columns = model.__table__.columns
    for candidate in candidates:
        if candidate in columns:
            return getattr(model, candidate)
    return None


def apply_sort(
    stmt: Select, model: type, sort_by: Optional[str], sort_order: str = "desc"
) -> Select:
    """Order ``stmt`` by ``sort_by``; unknown fields fall back to newest first."""
    column = resolve_sort_column(model, sort_by)
    if column is None:
        if sort_by and sort_by != DEFAULT_SORT_FIELD:
            logger.debug(
                f"unknown sort field {sort_by!r} on {model.__tablename__}, "
                "using default order"
            )
        column = getattr(model, DEFAULT_SORT_FIELD)
        sort_order = "desc"
    if sort_order == "asc":
        return stmt.order_by(column.asc(), model.id.asc())
    return stmt.order_by(column.desc(), model.id.desc())


def fetch_including_inactive(session: Session, model: type, record_id: str):
    """Administrative lookup that ignores ownership and the active flag.

    Not reachable from any owner-facing service.
    """
    return session.get(model, record_id)
