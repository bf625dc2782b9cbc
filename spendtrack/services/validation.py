"""
SpendTrack Backend — Scan Item Validation
===========================================

What:  Checks and normalizes the candidate items extracted from a QR scan.
How:   Rules run in a fixed order per item and the first failure wins:
         1. name present and a non-blank string       → MissingName
            name fits the category column (255 chars) → NameTooLong
         2. price present (null counts as absent)     → MissingPrice
         3. price numeric, finite, > 0                → InvalidPrice
         4. quantity (default 1) numeric, finite, > 0 → InvalidQuantity
            price × quantity still finite             → InvalidQuantity
       A single invalid item rejects the whole scan before anything is
       written (all-or-nothing). Skipping only the bad item is NOT
       supported.

Numeric means int or float but never bool: JSON `true` decodes to a Python
bool, which is an int subclass, and must not be accepted as a price of 1.
JSON integers have no size limit, so one too large for a float is not
numeric either.
"""

import math
from dataclasses import dataclass
from typing import Any, List, Sequence, Union

from spendtrack.exceptions import (
    InvalidPrice,
    InvalidQuantity,
    MissingName,
    MissingPrice,
    NameTooLong,
)
from spendtrack.models.expense import CATEGORY_MAX_LENGTH
from spendtrack.services.extraction import CandidateItem

Number = Union[int, float]


@dataclass(frozen=True)
class ValidatedItem:
    name: str
    price: Number
    quantity: Number

    @property
    def amount(self) -> Number:
        return self.price * self.quantity


def is_number(value: Any) -> bool:
    """Strict numeric check: int/float, excluding bool, NaN, infinities and
    integers beyond float range."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def validate_item(item: CandidateItem, index: int = 0) -> ValidatedItem:
    """
    Validate one candidate.

    Args:
        item: Candidate produced by extract_items()
        index: Position of the item in extraction order (reported in errors)

    Raises:
        MissingName, NameTooLong, MissingPrice, InvalidPrice, InvalidQuantity
    """
    if not isinstance(item.name, str) or not item.name.strip():
        raise MissingName(index, field="name")

    name = item.name.strip()
    if len(name) > CATEGORY_MAX_LENGTH:
        raise NameTooLong(
            index,
            field="name",
            context={"length": len(name), "max_length": CATEGORY_MAX_LENGTH},
        )

    if item.price is None:
        raise MissingPrice(index, field="price")

    if not is_number(item.price) or item.price <= 0:
        raise InvalidPrice(index, field="price", context={"price": repr(item.price)})

    if not is_number(item.quantity) or item.quantity <= 0:
        raise InvalidQuantity(
            index, field="quantity", context={"quantity": repr(item.quantity)}
        )

    validated = ValidatedItem(name=name, price=item.price, quantity=item.quantity)
    if not is_number(validated.amount):
        raise InvalidQuantity(
            index,
            message=f"Item amount (price × quantity) is too large (item {index})",
            field="quantity",
            context={"quantity": repr(item.quantity), "price": repr(item.price)},
        )
    return validated


def validate_items(items: Sequence[CandidateItem]) -> List[ValidatedItem]:
    """Validate every candidate in order; raises on the first invalid one."""
    return [validate_item(item, index) for index, item in enumerate(items)]
