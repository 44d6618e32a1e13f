"""initial schema

Revision ID: 202610160900
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610160900"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=254), nullable=False, unique=True),
        sa.Column(
            "currency",
            sa.Enum("USD", "EUR", "GBP", "CAD", "AUD", "JPY", "INR", name="currency"),
            nullable=False,
        ),
        sa.Column("join_date", sa.DateTime(), nullable=False),
        sa.Column("total_income_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "total_savings_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        *_timestamps(),
        sa.CheckConstraint("total_income_cents >= 0", name="ck_user_income_positive"),
        sa.CheckConstraint(
            "total_savings_cents >= 0", name="ck_user_savings_positive"
        ),
    )

    op.create_table(
        "projects",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("client_name", sa.String(length=100), nullable=False),
        sa.Column("expected_payment_cents", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "completed", "on-hold", name="projectstatus"),
            nullable=False,
        ),
        sa.Column(
            "budget_allocation", sa.Integer(), nullable=False, server_default="10"
        ),
        sa.Column("description", sa.Text()),
        sa.Column("created_date", sa.DateTime(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "expected_payment_cents >= 0", name="ck_projects_payment_positive"
        ),
        sa.CheckConstraint(
            "budget_allocation >= 0 AND budget_allocation <= 100",
            name="ck_projects_budget_allocation_range",
        ),
    )
    op.create_index("ix_projects_user_active", "projects", ["user_id", "is_active"])
    op.create_index("ix_projects_user_status", "projects", ["user_id", "status"])
    op.create_index(
        "ix_projects_user_created", "projects", ["user_id", "created_date"]
    )

    op.create_table(
        "income_entries",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("project_id", sa.String(length=32), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column(
            "category",
            sa.Enum("project-payment", "bonus", "other", name="incomecategory"),
            nullable=False,
        ),
        *_timestamps(),
        sa.CheckConstraint("amount_cents > 0", name="ck_income_amount_positive"),
    )
    op.create_index("ix_income_user_active", "income_entries", ["user_id", "is_active"])
    op.create_index("ix_income_user_date", "income_entries", ["user_id", "date"])
    op.create_index(
        "ix_income_user_project", "income_entries", ["user_id", "project_id"]
    )
    op.create_index(
        "ix_income_user_category", "income_entries", ["user_id", "category"]
    )

    op.create_table(
        "expense_entries",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("project_id", sa.String(length=32), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column(
            "category",
            sa.Enum(
                "software",
                "subscriptions",
                "equipment",
                "marketing",
                "other",
                name="expensecategory",
            ),
            nullable=False,
        ),
        sa.Column("receipt_url", sa.String(length=500)),
        *_timestamps(),
        sa.CheckConstraint("amount_cents > 0", name="ck_expense_amount_positive"),
    )
    op.create_index(
        "ix_expense_user_active", "expense_entries", ["user_id", "is_active"]
    )
    op.create_index("ix_expense_user_date", "expense_entries", ["user_id", "date"])
    op.create_index(
        "ix_expense_user_project", "expense_entries", ["user_id", "project_id"]
    )
    op.create_index(
        "ix_expense_user_category", "expense_entries", ["user_id", "category"]
    )

    op.create_table(
        "savings_goals",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("target_amount_cents", sa.Integer(), nullable=False),
        sa.Column(
            "current_amount_cents", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("deadline", sa.DateTime(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column(
            "category",
            sa.Enum(
                "emergency-fund",
                "vacation",
                "house",
                "car",
                "education",
                "retirement",
                "other",
                name="savingscategory",
            ),
            nullable=False,
        ),
        sa.Column(
            "priority", sa.Enum("low", "medium", "high", name="priority"), nullable=False
        ),
        sa.Column(
            "type", sa.Enum("monthly", "yearly", name="goaltype"), nullable=False
        ),
        sa.Column(
            "is_completed", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        *_timestamps(),
        sa.CheckConstraint("target_amount_cents >= 100", name="ck_goals_target_min"),
        sa.CheckConstraint(
            "current_amount_cents >= 0", name="ck_goals_current_positive"
        ),
    )
    op.create_index("ix_goals_user_active", "savings_goals", ["user_id", "is_active"])
    op.create_index(
        "ix_goals_user_completed", "savings_goals", ["user_id", "is_completed"]
    )
    op.create_index("ix_goals_user_deadline", "savings_goals", ["user_id", "deadline"])


def downgrade():
    op.drop_table("savings_goals")
    op.drop_table("expense_entries")
    op.drop_table("income_entries")
    op.drop_table("projects")
    op.drop_table("users")
