import logging
from typing import Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from config import get_settings
from database import Database
from errors import InvalidInput, ServiceError, Unauthorized
from models import ExpenseEntry, Project, SavingsGoal, User
from pagination import Page, PageParams
from periods import DateRange, month_range, resolve_date_range, year_range
from queries import RecordFilters
import savings
from scheduler import SchedulerManager
from schemas import (
    ExpenseEntryIn,
    ExpenseEntryUpdate,
    IncomeEntryIn,
    IncomeEntryUpdate,
    ProgressUpdateIn,
    ProjectIn,
    ProjectUpdate,
    SavingsGoalIn,
    SavingsGoalUpdate,
    UserIn,
)
from services import (
    DashboardService,
    EntryView,
    ExpenseService,
    IncomeService,
    ProjectService,
    SavingsGoalService,
    UserService,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def project_out(project: Project) -> dict[str, object]:
    return {
        "id": project.id,
        "name": project.name,
        "client_name": project.client_name,
        "expected_payment_cents": project.expected_payment_cents,
        "status": project.status.value,
        "budget_allocation": project.budget_allocation,
        "description": project.description,
        "created_date": _iso(project.created_date),
        "created_at": _iso(project.created_at),
        "updated_at": _iso(project.updated_at),
    }


def entry_out(view: EntryView) -> dict[str, object]:
    entry = view.entry
    data = {
        "id": entry.id,
        "project_id": entry.project_id,
        "amount_cents": entry.amount_cents,
        "description": entry.description,
        "date": _iso(entry.date),
        "category": entry.category.value,
        "project": view.project,
        "created_at": _iso(entry.created_at),
        "updated_at": _iso(entry.updated_at),
    }
    if isinstance(entry, ExpenseEntry):
        data["receipt_url"] = entry.receipt_url
    return data


def goal_out(goal: SavingsGoal) -> dict[str, object]:
    return {
        "id": goal.id,
        "title": goal.title,
        "target_amount_cents": goal.target_amount_cents,
        "current_amount_cents": goal.current_amount_cents,
        "deadline": _iso(goal.deadline),
        "description": goal.description,
        "category": goal.category.value,
        "priority": goal.priority.value,
        "type": goal.type.value,
        "is_completed": goal.is_completed,
        "progress_percentage": round(savings.progress_percentage(goal), 2),
        "remaining_cents": savings.remaining_cents(goal),
        "days_remaining": savings.days_remaining(goal),
        "created_at": _iso(goal.created_at),
        "updated_at": _iso(goal.updated_at),
    }


def user_out(user: User) -> dict[str, object]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "currency": user.currency.value,
        "join_date": _iso(user.join_date),
        "total_income_cents": user.total_income_cents,
        "total_savings_cents": user.total_savings_cents,
    }


def ok(data=None, message: str = "", page: Optional[Page] = None) -> dict[str, object]:
    body: dict[str, object] = {"success": True, "message": message, "data": data}
    if page is not None and page.pagination is not None:
        body["pagination"] = page.pagination.to_dict()
    return body


def created(data, message: str) -> JSONResponse:
    return JSONResponse(status_code=201, content=ok(data, message))


def get_db(request: Request):
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise Unauthorized("User not authenticated")
    return x_user_id.strip()


def page_params_from_request(request: Request) -> PageParams:
    settings = get_settings()
    params = request.query_params
    return PageParams.from_query(
        params.get("page"),
        params.get("limit"),
        params.get("sortBy"),
        params.get("sortOrder"),
        default_limit=settings.default_page_size,
        max_limit=settings.max_page_size,
    )


def _int_param(request: Request, name: str) -> Optional[int]:
    value = request.query_params.get(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise InvalidInput(f"{name} must be an integer") from exc


def date_range_from_request(request: Request) -> DateRange:
    start = request.query_params.get("startDate")
    end = request.query_params.get("endDate")
    if start or end:
        return resolve_date_range(start, end)
    year = _int_param(request, "year")
    month = _int_param(request, "month")
    if year is not None and month is not None:
        return month_range(year, month)
    if year is not None:
        return year_range(year)
    return DateRange()


def filters_from_request(request: Request) -> RecordFilters:
    params = request.query_params
    return RecordFilters(
        project_id=params.get("projectId") or None,
        category=params.get("category") or None,
        status=params.get("status") or None,
        priority=params.get("priority") or None,
    )


def create_app(database: Optional[Database] = None) -> FastAPI:
    app = FastAPI(title="Freelance Finance")
    if database is not None:
        database.create_all()
        app.state.db = database
    app.state.scheduler = None

    @app.on_event("startup")
    def startup_event():
        settings = get_settings()
        if getattr(app.state, "db", None) is None:
            app.state.db = Database(settings.database_url)
            app.state.db.create_all()
        if settings.enable_scheduler and database is None:
            app.state.scheduler = SchedulerManager(app.state.db)
            app.state.scheduler.start()

    @app.on_event("shutdown")
    def shutdown_event():
        if app.state.scheduler is not None:
            app.state.scheduler.stop()
        if database is None and getattr(app.state, "db", None) is not None:
            app.state.db.dispose()

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _invalid_input(exc.errors())

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return _invalid_input(exc.errors())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "kind": "Internal",
                "message": "Internal server error",
            },
        )

    register_routes(app)
    return app


def _invalid_input(errors) -> JSONResponse:
    message = "Invalid input"
    if errors:
        first = errors[0]
        loc = [str(part) for part in first.get("loc", ()) if part != "body"]
        message = f"{'.'.join(loc)}: {first.get('msg')}" if loc else first.get("msg")
    return JSONResponse(status_code=400, content=InvalidInput(message).to_dict())


def register_routes(app: FastAPI) -> None:
    # users

    @app.post(f"{API_PREFIX}/users")
    def create_user(data: UserIn, db: Session = Depends(get_db)):
        user = UserService(db).create(data)
        return created(user_out(user), "User created successfully")

    @app.get(f"{API_PREFIX}/users/me")
    def get_me(db: Session = Depends(get_db), user_id: str = Depends(current_user_id)):
        return ok(user_out(UserService(db, user_id).get()))

    @app.get(f"{API_PREFIX}/users/me/totals")
    def get_my_totals(
        db: Session = Depends(get_db), user_id: str = Depends(current_user_id)
    ):
        service = UserService(db, user_id)
        service.get()
        totals = service.totals()
        return ok(
            {"totalIncome": totals.total_income, "totalSavings": totals.total_savings}
        )

    # projects

    @app.get(f"{API_PREFIX}/projects")
    def list_projects(
        request: Request,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        page = ProjectService(db, user_id).list(
            page_params_from_request(request), filters_from_request(request)
        )
        return ok([project_out(p) for p in page.records], page=page)

    @app.get(f"{API_PREFIX}/projects/stats")
    def project_stats(
        db: Session = Depends(get_db), user_id: str = Depends(current_user_id)
    ):
        return ok(ProjectService(db, user_id).stats().to_dict())

    @app.get(f"{API_PREFIX}/projects/status/{{status}}")
    def projects_by_status(
        status: str,
        request: Request,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        page = ProjectService(db, user_id).list_by_status(
            status, page_params_from_request(request)
        )
        return ok([project_out(p) for p in page.records], page=page)

    @app.get(f"{API_PREFIX}/projects/{{project_id}}")
    def get_project(
        project_id: str,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        return ok(project_out(ProjectService(db, user_id).get(project_id)))

    @app.post(f"{API_PREFIX}/projects")
    def create_project(
        data: ProjectIn,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        project = ProjectService(db, user_id).create(data)
        return created(project_out(project), "Project created successfully")

    @app.put(f"{API_PREFIX}/projects/{{project_id}}")
    def update_project(
        project_id: str,
        data: ProjectUpdate,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        project = ProjectService(db, user_id).update(project_id, data)
        return ok(project_out(project), "Project updated successfully")

    @app.delete(f"{API_PREFIX}/projects/{{project_id}}")
    def delete_project(
        project_id: str,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        ProjectService(db, user_id).soft_delete(project_id)
        return ok(None, "Project deleted successfully")

    # income and expenses share one set of handlers

    entry_routes = (
        ("income", IncomeService, IncomeEntryIn, IncomeEntryUpdate, "Income entry"),
        (
            "expenses",
            ExpenseService,
            ExpenseEntryIn,
            ExpenseEntryUpdate,
            "Expense entry",
        ),
    )
    for path, service_cls, create_model, update_model, label in entry_routes:
        _register_entry_routes(
            app, f"{API_PREFIX}/{path}", service_cls, create_model, update_model, label
        )

    # savings goals

    @app.get(f"{API_PREFIX}/savings")
    def list_goals(
        request: Request,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        page = SavingsGoalService(db, user_id).list(
            page_params_from_request(request), filters_from_request(request)
        )
        return ok([goal_out(g) for g in page.records], page=page)

    @app.get(f"{API_PREFIX}/savings/stats")
    def goal_stats(
        db: Session = Depends(get_db), user_id: str = Depends(current_user_id)
    ):
        days = get_settings().expiring_soon_days
        return ok(SavingsGoalService(db, user_id).stats(days).to_dict())

    @app.get(f"{API_PREFIX}/savings/active")
    def active_goals(
        db: Session = Depends(get_db), user_id: str = Depends(current_user_id)
    ):
        goals = SavingsGoalService(db, user_id).active()
        return ok([goal_out(g) for g in goals])

    @app.get(f"{API_PREFIX}/savings/completed")
    def completed_goals(
        db: Session = Depends(get_db), user_id: str = Depends(current_user_id)
    ):
        goals = SavingsGoalService(db, user_id).completed()
        return ok([goal_out(g) for g in goals])

    @app.get(f"{API_PREFIX}/savings/expiring-soon")
    def expiring_goals(
        request: Request,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        days = _int_param(request, "days") or get_settings().expiring_soon_days
        goals = SavingsGoalService(db, user_id).expiring_soon(days)
        return ok([goal_out(g) for g in goals])

    @app.get(f"{API_PREFIX}/savings/{{goal_id}}")
    def get_goal(
        goal_id: str,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        return ok(goal_out(SavingsGoalService(db, user_id).get(goal_id)))

    @app.post(f"{API_PREFIX}/savings")
    def create_goal(
        data: SavingsGoalIn,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        goal = SavingsGoalService(db, user_id).create(data)
        return created(goal_out(goal), "Savings goal created successfully")

    @app.put(f"{API_PREFIX}/savings/{{goal_id}}")
    def update_goal(
        goal_id: str,
        data: SavingsGoalUpdate,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        goal = SavingsGoalService(db, user_id).update(goal_id, data)
        return ok(goal_out(goal), "Savings goal updated successfully")

    @app.put(f"{API_PREFIX}/savings/{{goal_id}}/progress")
    def update_goal_progress(
        goal_id: str,
        data: ProgressUpdateIn,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        goal = SavingsGoalService(db, user_id).update_progress(goal_id, data)
        return ok(goal_out(goal), "Progress updated successfully")

    @app.put(f"{API_PREFIX}/savings/{{goal_id}}/mark-active")
    def reopen_goal(
        goal_id: str,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        goal = SavingsGoalService(db, user_id).mark_active(goal_id)
        return ok(goal_out(goal), "Savings goal marked as active")

    @app.put(f"{API_PREFIX}/savings/{{goal_id}}/mark-completed")
    def complete_goal(
        goal_id: str,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        goal = SavingsGoalService(db, user_id).mark_completed(goal_id)
        return ok(goal_out(goal), "Savings goal marked as completed")

    @app.delete(f"{API_PREFIX}/savings/{{goal_id}}")
    def delete_goal(
        goal_id: str,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        SavingsGoalService(db, user_id).soft_delete(goal_id)
        return ok(None, "Savings goal deleted successfully")

    # dashboard

    @app.get(f"{API_PREFIX}/dashboard")
    def dashboard(
        request: Request,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        date_range = date_range_from_request(request)
        overview = DashboardService(db, user_id).overview(date_range)
        data = overview.to_dict()
        data["recentTransactions"] = [
            {**row, "date": _iso(row["date"])} for row in data["recentTransactions"]
        ]
        return ok(data)


def _register_entry_routes(
    app: FastAPI,
    prefix: str,
    service_cls,
    create_model,
    update_model,
    label: str,
) -> None:
    name = prefix.rsplit("/", 1)[-1]

    def list_entries(
        request: Request,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        page = service_cls(db, user_id).list(
            filters_from_request(request),
            date_range_from_request(request),
            page_params_from_request(request),
        )
        return ok([entry_out(v) for v in page.records], page=page)

    def entry_stats(
        request: Request,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        stats = service_cls(db, user_id).stats(date_range_from_request(request))
        return ok(stats.to_dict())

    def entries_by_project(
        request: Request,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        rows = service_cls(db, user_id).by_project(date_range_from_request(request))
        return ok([row.to_dict() for row in rows])

    def get_entry(
        entry_id: str,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        return ok(entry_out(service_cls(db, user_id).get(entry_id)))

    def create_entry(
        data: create_model,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        service = service_cls(db, user_id)
        entry = service.create(data)
        return created(entry_out(service.get(entry.id)), f"{label} created successfully")

    def update_entry(
        entry_id: str,
        data: update_model,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        service = service_cls(db, user_id)
        service.update(entry_id, data)
        return ok(entry_out(service.get(entry_id)), f"{label} updated successfully")

    def delete_entry(
        entry_id: str,
        db: Session = Depends(get_db),
        user_id: str = Depends(current_user_id),
    ):
        service_cls(db, user_id).soft_delete(entry_id)
        return ok(None, f"{label} deleted successfully")

    app.add_api_route(prefix, list_entries, methods=["GET"], name=f"list_{name}")
    app.add_api_route(
        f"{prefix}/stats", entry_stats, methods=["GET"], name=f"{name}_stats"
    )
    app.add_api_route(
        f"{prefix}/by-project",
        entries_by_project,
        methods=["GET"],
        name=f"{name}_by_project",
    )
    app.add_api_route(
        f"{prefix}/{{entry_id}}", get_entry, methods=["GET"], name=f"get_{name}"
    )
    app.add_api_route(prefix, create_entry, methods=["POST"], name=f"create_{name}")
    app.add_api_route(
        f"{prefix}/{{entry_id}}",
        update_entry,
        methods=["PUT"],
        name=f"update_{name}",
    )
    app.add_api_route(
        f"{prefix}/{{entry_id}}",
        delete_entry,
        methods=["DELETE"],
        name=f"delete_{name}",
    )


app = create_app()


def main():
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
