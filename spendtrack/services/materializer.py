"""
SpendTrack Backend — Scan Batch Materializer
==============================================

What:  Turns validated scan items into persisted expense records.
How:   Checks preconditions, builds one draft per item sharing a single
       timestamp, submits every insert concurrently and joins them.
Who:   ExpenseService.scan().

Failure semantics:
    ┌──────────────────────────┬───────────────────────────────────────┐
    │ owner id malformed       │ InvalidOwnerIdentity, nothing written │
    │ no items                 │ NoValidItems, nothing written         │
    │ some inserts fail        │ PartialPersistenceFailure; the inserts│
    │                          │ that succeeded stay committed         │
    │ all inserts succeed      │ records in submission order           │
    └──────────────────────────┴───────────────────────────────────────┘
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from spendtrack.exceptions import InvalidOwnerIdentity, NoValidItems, PartialPersistenceFailure
from spendtrack.models.expense import Expense
from spendtrack.services.store import ExpenseDraft, ExpenseStore, parse_identity
from spendtrack.services.validation import ValidatedItem

logger = logging.getLogger(__name__)


def build_drafts(
    owner_id: Any,
    items: Sequence[ValidatedItem],
    occurred_at: datetime,
) -> List[ExpenseDraft]:
    user_id = parse_identity(owner_id)
    return [
        ExpenseDraft(
            user_id=user_id,
            category=item.name,
            amount=item.amount,
            date=occurred_at,
        )
        for item in items
    ]


async def materialize(
    owner_id: Any,
    items: Sequence[ValidatedItem],
    store: ExpenseStore,
    occurred_at: Optional[datetime] = None,
) -> List[Expense]:
    """
    Persist one expense per validated item.

    Args:
        owner_id: User reference; must pass store.is_valid_identity()
        items: Validated items in extraction order
        store: Persistence sink
        occurred_at: Date carried by the payload; defaults to now (UTC)

    Returns:
        Persisted expenses, in the same order as `items`

    Raises:
        InvalidOwnerIdentity: malformed owner id (checked first)
        NoValidItems: `items` is empty
        PartialPersistenceFailure: at least one insert failed
    """
    if not store.is_valid_identity(owner_id):
        raise InvalidOwnerIdentity(owner_id=str(owner_id))
    if not items:
        raise NoValidItems()

    when = occurred_at or datetime.now(timezone.utc)
    drafts = build_drafts(owner_id, items, when)

    # return_exceptions=True: every insert runs to completion even when a
    # sibling fails, so the failure report covers the whole batch
    results = await asyncio.gather(
        *(store.insert(draft) for draft in drafts),
        return_exceptions=True,
    )

    persisted: List[Expense] = []
    errors: List[Dict[str, Any]] = []
    for index, result in enumerate(results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                # CancelledError / KeyboardInterrupt must not be reported as data errors
                raise result
            errors.append(
                {
                    "item_index": index,
                    "category": drafts[index].category,
                    "error": getattr(result, "message", str(result)),
                }
            )
        else:
            persisted.append(result)

    if errors:
        persisted_ids = [str(expense.id) for expense in persisted]
        logger.error(
            "Scan batch for user %s: %d of %d inserts failed (persisted=%s)",
            owner_id,
            len(errors),
            len(drafts),
            persisted_ids,
        )
        raise PartialPersistenceFailure(
            attempted=len(drafts),
            persisted_ids=persisted_ids,
            errors=errors,
        )

    logger.info("Scan batch for user %s: persisted %d expenses", owner_id, len(persisted))
    return persisted
