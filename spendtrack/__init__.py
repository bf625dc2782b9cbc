"""
SpendTrack Backend — Application Package Initializer
=====================================================

What: Personal spending-tracker API: accounts, expenses, and QR receipt scans.
Who:  Imported by uvicorn (`spendtrack.main:app`), Alembic, and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Extraction, validation, batching
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    The QR scan pipeline (services/extraction → validation → materializer)
    has no HTTP or database imports of its own; it only talks to an
    ExpenseStore, so it can be exercised with an in-memory store.
"""

__version__ = "1.0.0"
