"""
SpendTrack Backend — User SQLAlchemy Model
============================================

What:  ORM model for the `users` table (account + spending preferences).
Who:   AuthService for registration/login; Expense.user_id references it.

Table Design:
    - UUID primary key: user ids travel in URLs and request bodies, so
      they are non-sequential
    - email: unique, used as the login name
    - password_hash: bcrypt hash, never the plain password
    - preferred_currency: a display label only; amounts are never converted
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from spendtrack.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
        index=True,
    )

    password_hash: Mapped[str] = mapped_column(String(100), nullable=False)

    monthly_budget: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0.0,
        server_default=text("0"),
    )

    preferred_currency: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="USD",
        server_default=text("'USD'"),
    )

    notification_pref: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
