from datetime import datetime

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from aggregation import (
    UNKNOWN_CLIENT,
    UNKNOWN_PROJECT,
    by_category,
    by_project,
    entry_stats,
    month_label,
    monthly_trend,
    summary,
)
from database import Base
from models import ExpenseCategory, ExpenseEntry, Project
from periods import month_range
from queries import OwnedQuery


def make_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


def add_expense(session, amount: int, when: datetime, category, project_id="p1", user_id="alice"):
    session.add(
        ExpenseEntry(
            user_id=user_id,
            project_id=project_id,
            amount_cents=amount,
            description="Spend",
            date=when,
            category=category,
        )
    )
    session.commit()


def add_project(session, name: str, client: str, user_id="alice", active=True) -> Project:
    project = Project(
        user_id=user_id,
        name=name,
        client_name=client,
        expected_payment_cents=100000,
        is_active=active,
    )
    session.add(project)
    session.commit()
    return project


def test_month_label_is_zero_padded() -> None:
    assert month_label(2025, 3) == "2025-03"
    assert month_label(987, 11) == "0987-11"


def test_summary_of_empty_scope_is_all_zero() -> None:
    session = make_session()

    result = summary(session, OwnedQuery(ExpenseEntry, "alice"))

    assert result.total == 0
    assert result.count == 0
    assert result.average == 0


def test_summary_average_is_rounded() -> None:
    session = make_session()
    for amount in (100, 200, 200):
        add_expense(session, amount, datetime(2025, 1, 2), ExpenseCategory.software)

    result = summary(session, OwnedQuery(ExpenseEntry, "alice"))

    assert result.total == 500
    assert result.count == 3
    assert result.average == 166.67


def test_monthly_trend_skips_empty_months_and_is_ascending() -> None:
    session = make_session()
    add_expense(session, 100, datetime(2025, 3, 10), ExpenseCategory.software)
    add_expense(session, 200, datetime(2025, 1, 5), ExpenseCategory.software)
    add_expense(session, 300, datetime(2025, 1, 20), ExpenseCategory.marketing)

    buckets = monthly_trend(session, OwnedQuery(ExpenseEntry, "alice"))

    assert [(b.month, b.amount, b.count) for b in buckets] == [
        ("2025-01", 500, 2),
        ("2025-03", 100, 1),
    ]


def test_category_breakdown_adds_up_to_total() -> None:
    session = make_session()
    add_expense(session, 1500, datetime(2025, 2, 1), ExpenseCategory.software)
    add_expense(session, 2500, datetime(2025, 2, 2), ExpenseCategory.software)
    add_expense(session, 999, datetime(2025, 2, 3), ExpenseCategory.equipment)
    scope = OwnedQuery(ExpenseEntry, "alice")

    breakdown = by_category(session, scope)

    assert breakdown == {"equipment": 999, "software": 4000}
    assert sum(breakdown.values()) == summary(session, scope).total


def test_stats_exclude_other_owners_and_respect_date_range() -> None:
    session = make_session()
    add_expense(session, 1000, datetime(2025, 1, 31, 22, 0), ExpenseCategory.other)
    add_expense(session, 5000, datetime(2025, 2, 1), ExpenseCategory.other)
    add_expense(session, 7000, datetime(2025, 1, 10), ExpenseCategory.other, user_id="bob")

    stats = entry_stats(
        session, OwnedQuery(ExpenseEntry, "alice"), date_range=month_range(2025, 1)
    )

    assert stats.total == 1000
    assert stats.count == 1
    assert stats.to_dict()["byCategory"] == {"other": 1000}
    assert stats.to_dict()["monthlyTrend"] == [
        {"month": "2025-01", "amount": 1000, "count": 1}
    ]


def test_by_project_orders_by_total_and_labels_unknown_projects() -> None:
    session = make_session()
    site = add_project(session, "Website", "Acme")
    retired = add_project(session, "Old Gig", "Gone Inc", active=False)
    foreign = add_project(session, "Secret", "Other Co", user_id="bob")

    add_expense(session, 100, datetime(2025, 1, 1), ExpenseCategory.other, site.id)
    add_expense(session, 400, datetime(2025, 1, 2), ExpenseCategory.other, retired.id)
    add_expense(session, 200, datetime(2025, 1, 3), ExpenseCategory.other, foreign.id)
    add_expense(session, 50, datetime(2025, 1, 4), ExpenseCategory.other, site.id)

    rows = by_project(session, OwnedQuery(ExpenseEntry, "alice"))

    assert [(r.project_id, r.total_amount, r.entry_count) for r in rows] == [
        (retired.id, 400, 1),
        (foreign.id, 200, 1),
        (site.id, 150, 2),
    ]
    assert (rows[0].project_name, rows[0].client_name) == (UNKNOWN_PROJECT, UNKNOWN_CLIENT)
    assert rows[1].project_name == UNKNOWN_PROJECT
    assert rows[2].to_dict() == {
        "projectId": site.id,
        "projectName": "Website",
        "clientName": "Acme",
        "totalAmount": 150,
        "entryCount": 2,
    }


def test_by_project_omits_projects_without_matching_entries() -> None:
    session = make_session()
    kept = add_project(session, "Aaa", "Acme")
    deleted_only = add_project(session, "Bbb", "Beta")
    out_of_range = add_project(session, "Ccc", "Gamma")

    add_expense(session, 5, datetime(2025, 1, 10), ExpenseCategory.other, kept.id)
    session.add(
        ExpenseEntry(
            user_id="alice",
            project_id=deleted_only.id,
            amount_cents=700,
            description="Refunded",
            date=datetime(2025, 1, 11),
            category=ExpenseCategory.other,
            is_active=False,
        )
    )
    session.commit()
    add_expense(session, 900, datetime(2025, 3, 1), ExpenseCategory.other, out_of_range.id)

    rows = by_project(
        session, OwnedQuery(ExpenseEntry, "alice"), date_range=month_range(2025, 1)
    )

    assert [(r.project_name, r.total_amount) for r in rows] == [("Aaa", 5)]
