"""Create users and expenses tables

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Initial schema: `users` (accounts) and `expenses` (spending entries).
Rollback: downgrade() drops both tables (destructive — all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column(
            "password_hash",
            sa.String(100),
            nullable=False,
            comment="bcrypt hash of the password",
        ),
        sa.Column("monthly_budget", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "preferred_currency",
            sa.String(10),
            nullable=False,
            server_default=sa.text("'USD'"),
            comment="Display label only; amounts are never converted",
        ),
        sa.Column(
            "notification_pref",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "expenses",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column(
            "category",
            sa.String(255),
            nullable=False,
            comment="User-supplied category or scanned item name",
        ),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_expenses"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_expenses_user_id", ondelete="CASCADE"
        ),
        sa.CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
    )
    op.create_index("idx_expenses_user_date", "expenses", ["user_id", "date"])


def downgrade() -> None:
    op.drop_index("idx_expenses_user_date", table_name="expenses")
    op.drop_table("expenses")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
