"""
SpendTrack Backend — Expense Request/Response Schemas
======================================================

What:  Pydantic models defining the expense API contract.
How:   FastAPI validates request bodies against the *Request models and
       serializes ORM rows through ExpenseResponse (from_attributes).

Note on strictness:
    `amount` on AddExpenseRequest is StrictFloat | StrictInt so that
    "12" or true are rejected at the boundary instead of being coerced.
    The scan payload is deliberately NOT modelled here: its shape is
    unknown and it is walked by services/extraction.py instead.
"""

import uuid
from datetime import datetime
from typing import List, Union

from pydantic import BaseModel, Field, StrictFloat, StrictInt, field_validator

from spendtrack.models.expense import CATEGORY_MAX_LENGTH


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class AddExpenseRequest(BaseModel):
    """Body of POST /api/expenses/add."""
    user_id: str = Field(min_length=1, description="Owner user id (UUID)")
    category: str = Field(
        min_length=1, max_length=CATEGORY_MAX_LENGTH, description="Spending category label"
    )
    amount: Union[StrictInt, StrictFloat] = Field(description="Amount spent, must be > 0")

    @field_validator("category", mode="before")
    @classmethod
    def strip_category(cls, v):
        # Before the length check, so "   " fails min_length
        return v.strip() if isinstance(v, str) else v


class ScanRequest(BaseModel):
    """
    Body of POST /api/expenses/scan.

    `data` is the raw text decoded from the QR code. It is expected to be a
    JSON document but is accepted as a plain string so that a malformed code
    yields an invalid_payload_format error rather than a schema error.
    """
    user_id: str = Field(min_length=1, description="Owner user id (UUID)")
    data: str = Field(min_length=1, description="JSON-encoded QR payload")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ExpenseResponse(BaseModel):
    id: uuid.UUID = Field(description="Expense identifier")
    user_id: uuid.UUID = Field(description="Owner user id")
    category: str = Field(description="Category label or scanned item name")
    amount: float = Field(description="Amount spent (currency-agnostic)")
    date: datetime = Field(description="When the expense occurred (UTC ISO 8601)")

    model_config = {"from_attributes": True}


class AddExpenseResponse(BaseModel):
    message: str = Field(default="Expense added successfully")
    expense: ExpenseResponse


class ScanResponse(BaseModel):
    """
    Response of a successful QR scan: one expense per extracted line item,
    in the order the items appear in the payload.
    """
    message: str = Field(default="Expenses added via QR scan successfully")
    expenses: List[ExpenseResponse] = Field(description="Persisted expenses")


class ExpenseListResponse(BaseModel):
    """
    Page of a user's expenses, newest first.

    Pagination is offset based (page/limit) so that clients can jump to
    an arbitrary page; total_pages is ceil(total_expenses / limit).
    """
    expenses: List[ExpenseResponse]
    current_page: int = Field(ge=1)
    total_pages: int = Field(ge=0)
    total_expenses: int = Field(ge=0)
