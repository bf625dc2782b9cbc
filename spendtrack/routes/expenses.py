"""
SpendTrack Backend — Expense Route Handlers
=============================================

What:  POST /api/expenses/add, GET /api/expenses/{user_id}, POST /api/expenses/scan.
How:   Thin handlers: unpack the request, call ExpenseService, shape the
       response. Errors propagate to the global exception handlers.
"""

import logging

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from spendtrack.config import settings
from spendtrack.database import get_db_session
from spendtrack.schemas.common import ErrorResponse
from spendtrack.schemas.expense import (
    AddExpenseRequest,
    AddExpenseResponse,
    ExpenseListResponse,
    ExpenseResponse,
    ScanRequest,
    ScanResponse,
)
from spendtrack.services.expense_service import expense_service
from spendtrack.services.store import ExpenseStore, get_expense_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/expenses", tags=["Expenses"])


@router.post(
    "/add",
    status_code=201,
    response_model=AddExpenseResponse,
    responses={
        400: {"description": "Invalid amount or user id", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Add a single expense",
)
async def add_expense(
    body: AddExpenseRequest,
    store: ExpenseStore = Depends(get_expense_store),
) -> AddExpenseResponse:
    expense = await expense_service.add_expense(
        store=store,
        user_id=body.user_id,
        category=body.category,
        amount=body.amount,
    )
    return AddExpenseResponse(expense=ExpenseResponse.model_validate(expense))


@router.post(
    "/scan",
    status_code=201,
    response_model=ScanResponse,
    responses={
        400: {"description": "Malformed QR data or invalid item", "model": ErrorResponse},
        500: {"description": "Some expenses could not be saved", "model": ErrorResponse},
    },
    summary="Record expenses from a scanned QR code",
    description=(
        "`data` is the JSON text decoded from a QR code. Every object in it that "
        "has both `name` and `price` (optionally `quantity`, default 1) becomes "
        "one expense with amount = price × quantity. An optional top-level `date` "
        "dates every expense; otherwise the scan time is used. One invalid item "
        "rejects the whole scan."
    ),
)
async def scan_expenses(
    body: ScanRequest,
    store: ExpenseStore = Depends(get_expense_store),
) -> ScanResponse:
    logger.info("Received scan for user %s (%d chars)", body.user_id, len(body.data))
    expenses = await expense_service.scan(store=store, user_id=body.user_id, data=body.data)
    return ScanResponse(
        expenses=[ExpenseResponse.model_validate(expense) for expense in expenses],
    )


@router.get(
    "/{user_id}",
    response_model=ExpenseListResponse,
    responses={
        400: {"description": "Invalid user id or date bound", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List a user's expenses",
)
async def list_expenses(
    user_id: str,
    response: Response,
    start_date: str | None = Query(
        default=None,
        description="Only expenses on or after this date (ISO 8601)",
    ),
    end_date: str | None = Query(
        default=None,
        description="Only expenses on or before this date (ISO 8601; a plain date includes the whole day)",
    ),
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int = Query(
        default=settings.default_page_size,
        ge=1,
        le=settings.max_page_size,
        description="Items per page",
    ),
    db: AsyncSession = Depends(get_db_session),
) -> ExpenseListResponse:
    result = await expense_service.list_expenses(
        db=db,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    response.headers["X-Total-Count"] = str(result.total_expenses)
    return result
