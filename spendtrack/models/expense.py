"""
SpendTrack Backend — Expense SQLAlchemy Model
===============================================

What:  ORM model for the `expenses` table.
How:   Rows are created by ExpenseService.add_expense and by the scan
       materializer; this service never updates them afterwards.

Invariants:
    - amount > 0 (checked by the services before insert, and by a
      CHECK constraint as a last line)
    - date is timezone-aware UTC

Index on (user_id, date):
    Serves the listing query: WHERE user_id = :id ORDER BY date DESC
    with optional date range bounds (the index is scanned backwards).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from spendtrack.database import Base

CATEGORY_MAX_LENGTH = 255


class Expense(Base):
    """
    A single spending entry owned by a user.

    `category` is either the label the user typed when adding an expense
    manually, or the item name extracted from a QR scan.
    """

    __tablename__ = "expenses"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    category: Mapped[str] = mapped_column(String(CATEGORY_MAX_LENGTH), nullable=False)

    amount: Mapped[float] = mapped_column(Float, nullable=False)

    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
        Index("idx_expenses_user_date", "user_id", "date"),
    )

    def __repr__(self) -> str:
        return (
            f"<Expense(id={self.id}, user_id={self.user_id}, "
            f"category='{self.category}', amount={self.amount})>"
        )
