from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import extract, func, select
from sqlalchemy.orm import Session

from models import Project
from periods import DateRange
from queries import OwnedQuery, RecordFilters

UNKNOWN_PROJECT = "Unknown Project"
UNKNOWN_CLIENT = "Unknown Client"


@dataclass(frozen=True)
class Summary:
    total: int
    count: int
    average: float

    @classmethod
    def of(cls, total: int, count: int) -> "Summary":
        average = round(total / count, 2) if count else 0
        return cls(total=total, count=count, average=average)


@dataclass(frozen=True)
class MonthBucket:
    month: str
    amount: int
    count: int

    def to_dict(self) -> dict[str, object]:
        return {"month": self.month, "amount": self.amount, "count": self.count}


@dataclass(frozen=True)
class ProjectBreakdown:
    project_id: str
    project_name: str
    client_name: str
    total_amount: int
    entry_count: int

    def to_dict(self) -> dict[str, object]:
        return {
            "projectId": self.project_id,
            "projectName": self.project_name,
            "clientName": self.client_name,
            "totalAmount": self.total_amount,
            "entryCount": self.entry_count,
        }


@dataclass
class EntryStats:
    total: int = 0
    count: int = 0
    average: float = 0
    by_category: dict[str, int] = field(default_factory=dict)
    monthly_trend: list[MonthBucket] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "count": self.count,
            "average": self.average,
            "byCategory": dict(self.by_category),
            "monthlyTrend": [bucket.to_dict() for bucket in self.monthly_trend],
        }


def month_label(year: int, month: int) -> str:
    return f"{int(year):04d}-{int(month):02d}"


def _scoped(
    scoped: OwnedQuery,
    filters: Optional[RecordFilters],
    date_range: Optional[DateRange],
):
    # same clauses as the listing path, so both agree on what is in scope
    return scoped.select(filters, date_range).subquery()


def summary(
    session: Session,
    scoped: OwnedQuery,
    filters: Optional[RecordFilters] = None,
    date_range: Optional[DateRange] = None,
) -> Summary:
    sub = _scoped(scoped, filters, date_range)
    row = session.execute(
        select(
            func.coalesce(func.sum(sub.c.amount_cents), 0).label("total"),
            func.count(sub.c.id).label("count"),
        )
    ).one()
    return Summary.of(int(row.total or 0), int(row.count or 0))


def by_category(
    session: Session,
    scoped: OwnedQuery,
    filters: Optional[RecordFilters] = None,
    date_range: Optional[DateRange] = None,
) -> dict[str, int]:
    sub = _scoped(scoped, filters, date_range)
    rows = session.execute(
        select(sub.c.category, func.sum(sub.c.amount_cents).label("total"))
        .group_by(sub.c.category)
        .order_by(sub.c.category)
    ).all()
    breakdown: dict[str, int] = {}
    for row in rows:
        key = getattr(row.category, "value", row.category)
        breakdown[str(key)] = int(row.total or 0)
    return breakdown


def monthly_trend(
    session: Session,
    scoped: OwnedQuery,
    filters: Optional[RecordFilters] = None,
    date_range: Optional[DateRange] = None,
) -> list[MonthBucket]:
    sub = _scoped(scoped, filters, date_range)
    year = extract("year", sub.c.date).label("year")
    month = extract("month", sub.c.date).label("month")
    rows = session.execute(
        select(
            year,
            month,
            func.sum(sub.c.amount_cents).label("total"),
            func.count(sub.c.id).label("count"),
        )
        .group_by(year, month)
        .order_by(year.asc(), month.asc())
    ).all()
    return [
        MonthBucket(
            month=month_label(row.year, row.month),
            amount=int(row.total or 0),
            count=int(row.count or 0),
        )
        for row in rows
    ]


def project_labels(
    session: Session, owner_id: str, project_ids: list[str]
) -> dict[str, tuple[str, str]]:
    """Batch lookup of ``{id: (name, client_name)}`` for active owned projects."""
    if not project_ids:
        return {}
    projects = OwnedQuery(Project, owner_id)
    rows = session.execute(
        select(Project.id, Project.name, Project.client_name).where(
            *projects.base_clauses(), Project.id.in_(set(project_ids))
        )
    ).all()
    return {row.id: (row.name, row.client_name) for row in rows}


def by_project(
    session: Session,
    scoped: OwnedQuery,
    filters: Optional[RecordFilters] = None,
    date_range: Optional[DateRange] = None,
) -> list[ProjectBreakdown]:
    sub = _scoped(scoped, filters, date_range)
    total = func.sum(sub.c.amount_cents).label("total")
    rows = session.execute(
        select(sub.c.project_id, total, func.count(sub.c.id).label("count"))
        .group_by(sub.c.project_id)
        .order_by(total.desc(), sub.c.project_id.asc())
    ).all()

    labels = project_labels(session, scoped.owner_id, [row.project_id for row in rows])
    breakdown = []
    for row in rows:
        name, client = labels.get(row.project_id, (UNKNOWN_PROJECT, UNKNOWN_CLIENT))
        breakdown.append(
            ProjectBreakdown(
                project_id=row.project_id,
                project_name=name,
                client_name=client,
                total_amount=int(row.total or 0),
                entry_count=int(row.count or 0),
            )
        )
    return breakdown


def entry_stats(
    session: Session,
    scoped: OwnedQuery,
    filters: Optional[RecordFilters] = None,
    date_range: Optional[DateRange] = None,
) -> EntryStats:
    totals = summary(session, scoped, filters, date_range)
    return EntryStats(
        total=totals.total,
        count=totals.count,
        average=totals.average,
        by_category=by_category(session, scoped, filters, date_range),
        monthly_trend=monthly_trend(session, scoped, filters, date_range),
    )
