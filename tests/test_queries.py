from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database import Base
from errors import InvalidInput, Unauthorized
from models import IncomeCategory, IncomeEntry, SavingsGoal
from pagination import PageParams
from periods import resolve_date_range
from queries import OwnedQuery, RecordFilters, fetch_including_inactive


def make_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()


def add_income(session, user_id: str, amount: int, when: datetime, **kwargs):
    entry = IncomeEntry(
        user_id=user_id,
        project_id=kwargs.pop("project_id", "p1"),
        amount_cents=amount,
        description=kwargs.pop("description", "Invoice"),
        date=when,
        category=kwargs.pop("category", IncomeCategory.project_payment),
        **kwargs,
    )
    session.add(entry)
    session.commit()
    return entry


def test_owner_scope_hides_other_users_records() -> None:
    session = make_session()
    add_income(session, "alice", 1000, datetime(2025, 1, 5))
    add_income(session, "alice", 2000, datetime(2025, 1, 6))
    add_income(session, "bob", 9999, datetime(2025, 1, 7))

    records, total = OwnedQuery(IncomeEntry, "alice").fetch_page(
        session, PageParams()
    )

    assert total == 2
    assert {r.user_id for r in records} == {"alice"}


def test_soft_deleted_records_only_reachable_through_admin_path() -> None:
    session = make_session()
    kept = add_income(session, "alice", 1000, datetime(2025, 1, 5))
    gone = add_income(session, "alice", 2000, datetime(2025, 1, 6), is_active=False)
    scope = OwnedQuery(IncomeEntry, "alice")

    records, total = scope.fetch_page(session, PageParams())

    assert total == 1
    assert [r.id for r in records] == [kept.id]
    assert scope.get(session, gone.id) is None
    hidden = fetch_including_inactive(session, IncomeEntry, gone.id)
    assert hidden is not None
    assert hidden.is_active is False


def test_missing_owner_is_rejected() -> None:
    with pytest.raises(Unauthorized):
        OwnedQuery(IncomeEntry, None)
    with pytest.raises(Unauthorized):
        OwnedQuery(IncomeEntry, "")


def test_end_date_covers_whole_day() -> None:
    session = make_session()
    late = add_income(session, "alice", 1000, datetime(2025, 1, 31, 18, 0))
    scope = OwnedQuery(IncomeEntry, "alice")

    inclusive = resolve_date_range("2025-01-01", "2025-01-31")
    exclusive = resolve_date_range("2025-01-01", "2025-01-30")

    assert scope.count(session, date_range=inclusive) == 1
    assert scope.count(session, date_range=exclusive) == 0
    assert inclusive.end == datetime(2025, 1, 31, 23, 59, 59, 999000)
    assert late.date <= inclusive.end


def test_inverted_date_range_is_rejected() -> None:
    with pytest.raises(InvalidInput):
        resolve_date_range("2025-02-01", "2025-01-01")


def test_unrecognized_category_filter_is_ignored() -> None:
    session = make_session()
    add_income(session, "alice", 1000, datetime(2025, 1, 5))
    add_income(session, "alice", 500, datetime(2025, 1, 6), category=IncomeCategory.bonus)
    scope = OwnedQuery(IncomeEntry, "alice")

    assert scope.count(session, RecordFilters(category="lottery")) == 2
    assert scope.count(session, RecordFilters(category="bonus")) == 1


def test_project_filter_narrows_results() -> None:
    session = make_session()
    add_income(session, "alice", 1000, datetime(2025, 1, 5), project_id="p1")
    add_income(session, "alice", 500, datetime(2025, 1, 6), project_id="p2")

    scope = OwnedQuery(IncomeEntry, "alice")

    assert scope.count(session, RecordFilters(project_id="p2")) == 1


def test_unknown_sort_field_falls_back_to_newest_first() -> None:
    session = make_session()
    base = datetime(2025, 1, 1, 12, 0)
    first = add_income(session, "alice", 300, base, created_at=base)
    second = add_income(
        session, "alice", 100, base, created_at=base + timedelta(hours=1)
    )
    third = add_income(session, "alice", 200, base, created_at=base + timedelta(hours=2))

    params = PageParams(sort_by="doesNotExist", sort_order="asc")
    records, _ = OwnedQuery(IncomeEntry, "alice").fetch_page(session, params)

    assert [r.id for r in records] == [third.id, second.id, first.id]


def test_camel_case_sort_field_is_resolved() -> None:
    session = make_session()
    for amount in (300, 100, 200):
        add_income(session, "alice", amount, datetime(2025, 1, 1))

    params = PageParams(sort_by="amountCents", sort_order="asc")
    records, _ = OwnedQuery(IncomeEntry, "alice").fetch_page(session, params)

    assert [r.amount_cents for r in records] == [100, 200, 300]


def test_paging_applies_skip_and_limit() -> None:
    session = make_session()
    for amount in range(1, 6):
        add_income(session, "alice", amount * 100, datetime(2025, 1, amount))

    params = PageParams(page=2, limit=2, sort_by="date", sort_order="asc")
    records, total = OwnedQuery(IncomeEntry, "alice").fetch_page(session, params)

    assert total == 5
    assert [r.amount_cents for r in records] == [300, 400]


def test_goal_status_filter_maps_to_completion_flag() -> None:
    session = make_session()
    deadline = datetime(2030, 1, 1)
    for title, done in (("Open", False), ("Done", True)):
        session.add(
            SavingsGoal(
                user_id="alice",
                title=title,
                target_amount_cents=10000,
                current_amount_cents=10000 if done else 0,
                deadline=deadline,
                is_completed=done,
            )
        )
    session.commit()
    scope = OwnedQuery(SavingsGoal, "alice")

    records, _ = scope.fetch_page(session, PageParams(), RecordFilters(status="completed"))

    assert [g.title for g in records] == ["Done"]
    assert scope.count(session, RecordFilters(status="paused")) == 2


def test_end_date_excludes_first_instant_of_next_day() -> None:
    session = make_session()
    inside = add_income(session, "alice", 1000, datetime(2024, 1, 31, 23, 0, 0))
    add_income(session, "alice", 2000, datetime(2024, 2, 1, 0, 0, 1))
    scope = OwnedQuery(IncomeEntry, "alice")

    records, total = scope.fetch_page(
        session, PageParams(), date_range=resolve_date_range(None, "2024-01-31")
    )

    assert total == 1
    assert [r.id for r in records] == [inside.id]


def test_open_date_range_adds_no_clauses() -> None:
    scope = OwnedQuery(IncomeEntry, "alice")
    open_range = resolve_date_range(None, None)

    assert open_range.is_open is True
    assert scope.date_clauses(open_range) == []
    assert len(scope.date_clauses(resolve_date_range("2024-01-01"))) == 1


def test_page_far_past_the_end_is_empty() -> None:
    session = make_session()
    add_income(session, "alice", 1000, datetime(2025, 1, 5))

    params = PageParams(page=10**20, limit=10)
    records, total = OwnedQuery(IncomeEntry, "alice").fetch_page(session, params)

    assert records == []
    assert total == 1
