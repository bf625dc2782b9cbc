"""
SpendTrack Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Services get an AsyncMock session or the in-memory ExpenseStore
       below; route tests swap both in through FastAPI dependency
       overrides. SqlExpenseStore tests get a throwaway SQLite database
       with the real schema.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session: Mock AsyncSession
    ├── store_class:     InMemoryExpenseStore (the class)
    ├── memory_store:    InMemoryExpenseStore
    ├── owner_id:        A well-formed user id string
    ├── sql_session_factory: Session factory over a fresh SQLite schema
    └── test_client:     HTTPX AsyncClient wired to the app with overrides
"""

import os
import tempfile

# Must run before any spendtrack import: settings are read at import time
os.environ["DATABASE_URL"] = (
    "sqlite+aiosqlite:///" + os.path.join(tempfile.mkdtemp(prefix="spendtrack_test_"), "test.db")
)
os.environ["JWT_SECRET"] = "test-secret-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Iterable, List, Optional  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import AsyncClient, ASGITransport  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from spendtrack.database import Base  # noqa: E402
from spendtrack.exceptions import DatabaseError  # noqa: E402
import spendtrack.models  # noqa: E402,F401
from spendtrack.models.expense import Expense  # noqa: E402
from spendtrack.services.store import ExpenseDraft, ExpenseStore  # noqa: E402


class InMemoryExpenseStore(ExpenseStore):
    """
    ExpenseStore that keeps inserted expenses in a list.

    Categories listed in `fail_categories` raise DatabaseError on insert,
    to exercise partial batch failures.
    """

    def __init__(self, fail_categories: Optional[Iterable[str]] = None):
        self.fail_categories = set(fail_categories or ())
        self.inserted: List[Expense] = []
        self.insert_calls = 0

    async def insert(self, draft: ExpenseDraft) -> Expense:
        self.insert_calls += 1
        if draft.category in self.fail_categories:
            raise DatabaseError(context={"category": draft.category})
        expense = Expense(
            id=uuid4(),
            user_id=draft.user_id,
            category=draft.category,
            amount=draft.amount,
            date=draft.date,
        )
        self.inserted.append(expense)
        return expense


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute = AsyncMock(side_effect=[rows_result, count_result])
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def store_class():
    """The InMemoryExpenseStore class, for tests that configure or subclass it."""
    return InMemoryExpenseStore


@pytest.fixture
def memory_store():
    return InMemoryExpenseStore()


@pytest.fixture
def owner_id():
    return str(uuid4())


@pytest_asyncio.fixture
async def test_client(memory_store, mock_db_session):
    """
    Async HTTP client talking to the app through ASGITransport.

    The expense store and DB session dependencies are replaced by the
    `memory_store` and `mock_db_session` fixtures of the same test.
    """
    from spendtrack.database import get_db_session
    from spendtrack.main import app
    from spendtrack.services.store import get_expense_store

    async def override_db_session():
        yield mock_db_session

    app.dependency_overrides[get_expense_store] = lambda: memory_store
    app.dependency_overrides[get_db_session] = override_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def sql_session_factory(tmp_path):
    """
    Session factory bound to a new SQLite file with every table created.

    NullPool: each session opens its own connection, as concurrent
    inserts do against the real pool.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'store.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()
