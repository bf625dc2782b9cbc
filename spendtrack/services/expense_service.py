"""
SpendTrack Backend — Expense Service (Business Logic Orchestrator)
===================================================================

What:  Adds single expenses, lists a user's expenses, and runs QR scans.
How:   Writes go through an ExpenseStore; reads use the request session.
Who:   Called by routes/expenses.py.

Scan Flow (POST /api/expenses/scan):
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌─────────────┐
    │  Decode  │───▶│ Extract  │───▶│ Validate │───▶│ Materialize │
    │  (JSON)  │    │ (walk)   │    │ (per item│    │ (concurrent │
    └──────────┘    └──────────┘    │  ordered)│    │  inserts)   │
                                    └──────────┘    └─────────────┘
    Decode/validation errors stop the scan before any insert.
    Insert errors are reported as PartialPersistenceFailure.
"""

import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Union

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from spendtrack.config import settings
from spendtrack.exceptions import (
    DatabaseError,
    InvalidOwnerIdentity,
    InvalidPayloadFormat,
    ValidationError,
)
from spendtrack.models.expense import CATEGORY_MAX_LENGTH, Expense
from spendtrack.schemas.expense import ExpenseListResponse, ExpenseResponse
from spendtrack.services.extraction import (
    decode_payload,
    extract_items,
    extract_occurred_at,
    parse_timestamp,
)
from spendtrack.services.materializer import materialize
from spendtrack.services.store import ExpenseDraft, ExpenseStore, parse_identity
from spendtrack.services.validation import is_number, validate_items

logger = logging.getLogger(__name__)


class ExpenseService:
    """
    Stateless business logic for expenses; dependencies are passed per call.

    Error Handling Strategy:
        Client mistakes raise ValidationError subclasses (400).
        Query failures are wrapped in DatabaseError so SQL details stay in
        the server log.
    """

    async def add_expense(
        self,
        store: ExpenseStore,
        user_id: str,
        category: str,
        amount: Union[int, float],
    ) -> Expense:
        """
        Record one expense dated now.

        Raises:
            ValidationError: amount is not a positive number, or category is blank
                or too long
            InvalidOwnerIdentity: user_id is not a UUID
            DatabaseError: the insert failed
        """
        if not is_number(amount) or amount <= 0:
            raise ValidationError(
                message="Amount must be greater than zero",
                field="amount",
            )
        label = category.strip()
        if not label or len(label) > CATEGORY_MAX_LENGTH:
            raise ValidationError(
                message=f"Category must be 1 to {CATEGORY_MAX_LENGTH} characters",
                field="category",
            )
        if not store.is_valid_identity(user_id):
            raise InvalidOwnerIdentity(owner_id=user_id)

        expense = await store.insert(
            ExpenseDraft(
                user_id=parse_identity(user_id),
                category=label,
                amount=amount,
                date=datetime.now(timezone.utc),
            )
        )
        logger.info("Expense %s added for user %s", expense.id, user_id)
        return expense

    async def list_expenses(
        self,
        db: AsyncSession,
        user_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        page: int = 1,
        limit: int = settings.default_page_size,
    ) -> ExpenseListResponse:
        """
        Page through a user's expenses, newest first.

        Query plan:
            SELECT * FROM expenses
            WHERE user_id = :uid [AND date >= :start] [AND date <= :end]
            ORDER BY date DESC OFFSET (page - 1) * limit LIMIT limit
            → idx_expenses_user_date

        Args:
            start_date / end_date: ISO 8601 bounds, each optional and
                inclusive. A plain date as end_date covers that whole day.
            page: 1-based page number
            limit: page size (1..max_page_size)

        Raises:
            InvalidOwnerIdentity: user_id is not a UUID
            ValidationError: a date bound cannot be parsed
            DatabaseError: the query failed
        """
        try:
            owner = parse_identity(user_id)
        except ValueError:
            raise InvalidOwnerIdentity(owner_id=user_id)

        conditions = [Expense.user_id == owner]
        if start_date:
            conditions.append(Expense.date >= self._parse_bound(start_date, "start_date"))
        if end_date:
            conditions.append(
                Expense.date <= self._parse_bound(end_date, "end_date", end_of_day=True)
            )

        query = (
            select(Expense)
            .where(*conditions)
            .order_by(desc(Expense.date))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        count_query = select(func.count(Expense.id)).where(*conditions)

        try:
            result = await db.execute(query)
            expenses = list(result.scalars().all())

            count_result = await db.execute(count_query)
            total = count_result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error listing expenses for %s: %s", user_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not retrieve expenses. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return ExpenseListResponse(
            expenses=[ExpenseResponse.model_validate(expense) for expense in expenses],
            current_page=page,
            total_pages=math.ceil(total / limit),
            total_expenses=total,
        )

    async def scan(
        self,
        store: ExpenseStore,
        user_id: str,
        data: str,
    ) -> List[Expense]:
        """
        Record every line item found in a scanned QR payload.

        Returns:
            Persisted expenses in the order their items appear in the payload.

        Raises:
            InvalidPayloadFormat: data is not JSON, too long, too deeply
                nested, or has an unparseable top-level date
            MissingName / MissingPrice / InvalidPrice / InvalidQuantity:
                first invalid item (nothing is written)
            InvalidOwnerIdentity: user_id is not a UUID
            NoValidItems: no item-shaped objects in the payload
            PartialPersistenceFailure: some inserts failed
        """
        if len(data) > settings.max_payload_chars:
            raise InvalidPayloadFormat(
                message=(
                    f"QR data is too large ({len(data)} characters, "
                    f"maximum {settings.max_payload_chars})."
                ),
                context={"length": len(data), "max_length": settings.max_payload_chars},
            )

        payload = decode_payload(data)

        try:
            candidates = extract_items(payload)
        except RecursionError:
            raise InvalidPayloadFormat(message="QR data is nested too deeply.")
        logger.info("Scan for user %s: extracted %d candidate items", user_id, len(candidates))

        items = validate_items(candidates)
        occurred_at = extract_occurred_at(payload)

        return await materialize(user_id, items, store, occurred_at=occurred_at)

    @staticmethod
    def _parse_bound(value: str, field: str, end_of_day: bool = False) -> datetime:
        try:
            return parse_timestamp(value, end_of_day=end_of_day)
        except ValueError:
            raise ValidationError(
                message=f"{field} must be an ISO 8601 date or datetime",
                field=field,
                context={"value": value},
            )


expense_service = ExpenseService()
