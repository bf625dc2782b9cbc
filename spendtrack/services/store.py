"""
SpendTrack Backend — Expense Persistence Sink
===============================================

What:  The write-side interface the scan pipeline and add-expense use.
How:   ExpenseStore is abstract; SqlExpenseStore implements it on the async
       SQLAlchemy session factory. Tests substitute an in-memory store.
Who:   ExpenseService and the batch materializer.

Session handling:
    A scan submits several inserts concurrently. An AsyncSession cannot run
    concurrent operations, so every SqlExpenseStore.insert() opens its own
    session and commits on its own. One failed insert therefore leaves the
    others committed; the materializer reports that instead of rolling back.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from spendtrack.database import async_session_factory
from spendtrack.exceptions import DatabaseError
from spendtrack.models.expense import Expense

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpenseDraft:
    """An expense ready to insert; the store assigns the id."""

    user_id: uuid.UUID
    category: str
    amount: float
    date: datetime


def parse_identity(value: Any) -> uuid.UUID:
    """
    Parse a user/record reference.

    Raises:
        ValueError: value is not a UUID string (or UUID instance)
    """
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Identity must be a string, got {type(value).__name__}")
    return uuid.UUID(value.strip())


class ExpenseStore(ABC):
    """
    Contract:
        - is_valid_identity() is a format check only; it does not look the
          user up
        - insert() durably stores one expense and returns it with its id,
          or raises DatabaseError
    """

    def is_valid_identity(self, value: Any) -> bool:
        try:
            parse_identity(value)
        except ValueError:
            return False
        return True

    @abstractmethod
    async def insert(self, draft: ExpenseDraft) -> Expense:
        ...


class SqlExpenseStore(ExpenseStore):
    """ExpenseStore backed by async SQLAlchemy, one session per insert."""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self._session_factory = session_factory

    async def insert(self, draft: ExpenseDraft) -> Expense:
        expense = Expense(
            user_id=draft.user_id,
            category=draft.category,
            amount=draft.amount,
            date=draft.date,
        )
        try:
            async with self._session_factory() as session:
                session.add(expense)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(
                "Insert failed for user %s category=%r: %s",
                draft.user_id,
                draft.category,
                e,
            )
            raise DatabaseError(
                message="Could not save the expense. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        logger.debug("Inserted expense %s for user %s", expense.id, draft.user_id)
        return expense


def get_expense_store() -> ExpenseStore:
    """FastAPI dependency returning the SQL-backed store (overridden in tests)."""
    return SqlExpenseStore(async_session_factory)
