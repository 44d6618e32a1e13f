from database import Database
from models import User
from schemas import IncomeEntryIn, ProjectIn, UserIn
from scheduler import SchedulerManager
from services import IncomeService, ProjectService, UserService


def test_nightly_job_refreshes_cached_user_totals() -> None:
    db = Database("sqlite:///:memory:")
    db.create_all()
    with db.session_scope() as session:
        user = UserService(session).create(UserIn(name="Alice", email="alice@example.com"))
        project = ProjectService(session, user.id).create(
            ProjectIn(name="Website", client_name="Acme", expected_payment_cents=100000)
        )
        IncomeService(session, user.id).create(
            IncomeEntryIn(project_id=project.id, amount_cents=25000, description="Invoice")
        )
        user_id = user.id

    manager = SchedulerManager(db)
    assert manager.scheduler.running is False

    assert manager._run_job("test") == 1

    with db.session_scope() as session:
        refreshed = session.get(User, user_id)
        assert refreshed.total_income_cents == 25000
        assert refreshed.total_savings_cents == 0

    manager.stop()
    db.dispose()
