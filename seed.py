"""Populate the database with demo freelancers.

Usage: python seed.py [--no-clear] [--seed N]
"""

import argparse
import logging
import random
from datetime import timedelta

from sqlalchemy import delete
from sqlalchemy.orm import Session

from config import get_settings
from database import Database
from errors import Conflict
from models import (
    ExpenseCategory,
    ExpenseEntry,
    IncomeCategory,
    IncomeEntry,
    Priority,
    Project,
    ProjectStatus,
    SavingsCategory,
    SavingsGoal,
    User,
    utcnow,
)
from schemas import ExpenseEntryIn, IncomeEntryIn, ProjectIn, SavingsGoalIn, UserIn
from services import (
    ExpenseService,
    IncomeService,
    ProjectService,
    SavingsGoalService,
    UserService,
    rebuild_all_user_totals,
)

logger = logging.getLogger(__name__)

DEMO_USERS = [
    ("Sarah Johnson", "sarah.johnson@test.com", "beginner"),
    ("Mike Chen", "mike.chen@test.com", "intermediate"),
    ("Elena Rodriguez", "elena.rodriguez@test.com", "advanced"),
    ("Alex Thompson", "alex.thompson@test.com", "struggling"),
]

# (name, client, expected payment in whole units, status, budget allocation)
PROJECTS = {
    "beginner": [
        ("Logo Design", "StartupCo", 800, ProjectStatus.completed, 15),
        ("Website Mockup", "Local Bakery", 1200, ProjectStatus.active, 25),
    ],
    "intermediate": [
        ("E-commerce Website", "Fashion Boutique", 4500, ProjectStatus.active, 30),
        ("Mobile App UI", "FitnessTech", 3200, ProjectStatus.completed, 25),
        ("Brand Identity Package", "GreenTech Solutions", 2800, ProjectStatus.on_hold, 20),
    ],
    "advanced": [
        ("Enterprise Platform", "TechCorp Inc", 15000, ProjectStatus.active, 35),
        ("SaaS Application", "CloudSoft", 12000, ProjectStatus.completed, 30),
        ("API Integration", "FinanceHub", 6200, ProjectStatus.completed, 20),
    ],
    "struggling": [
        ("Simple Website", "Mom & Pop Store", 600, ProjectStatus.on_hold, 30),
        ("Flyer Design", "Community Event", 200, ProjectStatus.completed, 15),
    ],
}

GOALS = [
    ("Emergency Fund", SavingsCategory.emergency_fund, Priority.high, 5000, 0.4),
    ("New Laptop", SavingsCategory.education, Priority.medium, 2000, 0.75),
    ("Summer Vacation", SavingsCategory.vacation, Priority.low, 3000, 0.1),
]


def clear(session: Session) -> None:
    for model in (SavingsGoal, ExpenseEntry, IncomeEntry, Project, User):
        session.execute(delete(model))
    session.commit()
    logger.info("seed: cleared existing data")


def seed_user(session: Session, name: str, email: str, profile: str, rng) -> None:
    user = UserService(session).create(UserIn(name=name, email=email))
    projects = ProjectService(session, user.id)
    income = IncomeService(session, user.id)
    expenses = ExpenseService(session, user.id)
    now = utcnow()

    for title, client, payment, status, allocation in PROJECTS[profile]:
        project = projects.create(
            ProjectIn(
                name=title,
                client_name=client,
                expected_payment_cents=payment * 100,
                status=status,
                budget_allocation=allocation,
            )
        )
        for month_back in range(6):
            when = now - timedelta(days=30 * month_back + rng.randint(0, 27))
            if rng.random() < 0.7:
                income.create(
                    IncomeEntryIn(
                        project_id=project.id,
                        amount_cents=int(payment * 100 * rng.uniform(0.1, 0.35)),
                        description=f"{title} milestone",
                        date=when,
                        category=IncomeCategory.project_payment,
                    )
                )
            expenses.create(
                ExpenseEntryIn(
                    project_id=project.id,
                    amount_cents=rng.randint(500, 15000),
                    description=f"{title} costs",
                    date=when,
                    category=rng.choice(list(ExpenseCategory)),
                )
            )

    goals = SavingsGoalService(session, user.id)
    for title, category, priority, target, funded in GOALS:
        goals.create(
            SavingsGoalIn(
                title=title,
                target_amount_cents=target * 100,
                current_amount_cents=int(target * 100 * funded),
                deadline=now + timedelta(days=rng.randint(5, 365)),
                category=category,
                priority=priority,
            )
        )
    logger.info(f"seed: user={user.id} email={email} profile={profile}")


def run(db: Database, clear_first: bool = True, seed: int = 42) -> int:
    rng = random.Random(seed)
    db.create_all()
    with db.session_scope() as session:
        if clear_first:
            clear(session)
        for name, email, profile in DEMO_USERS:
            try:
                seed_user(session, name, email, profile, rng)
            except Conflict:
                logger.warning(f"seed: skipping existing user {email}")
        count = rebuild_all_user_totals(session)
    logger.info(f"seed: completed users={count}")
    return count


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Seed demo freelancer data")
    parser.add_argument(
        "--no-clear", action="store_true", help="keep existing data before seeding"
    )
    parser.add_argument("--seed", type=int, default=42, help="random seed")
    args = parser.parse_args()

    db = Database(get_settings().database_url)
    try:
        run(db, clear_first=not args.no_clear, seed=args.seed)
    finally:
        db.dispose()


if __name__ == "__main__":
    main()
