"""
SpendTrack Backend — QR Payload Extraction
============================================

What:  Turns the text of a scanned QR code into candidate line items.
How:   1. decode_payload() parses the text as strict JSON.
       2. extract_items() walks the decoded value depth-first and emits
          every object that has both a `name` and a `price` key.
Who:   ExpenseService.scan().

Walk order (pre-order, depth-first):
    {"a": {"name": "X", "price": 1},
     "b": [{"name": "Y", "price": 2}]}
    → [X, Y]

    An object that matches is emitted BEFORE its own children are walked,
    and the walk continues into it, so a wrapper item with nested items
    yields the wrapper first, then each nested item:
    {"name": "Box", "price": 5, "contents": {"name": "Widget", "price": 2}}
    → [Box, Widget]

Only key PRESENCE is tested here. Values are copied verbatim and checked
later by services/validation.py, so a bad price is reported as a bad price
instead of the item silently disappearing.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Union

from spendtrack.exceptions import InvalidPayloadFormat

logger = logging.getLogger(__name__)

# JSON value as produced by json.loads
JSONValue = Union[Dict[str, Any], List[Any], str, int, float, bool, None]

NAME_KEY = "name"
PRICE_KEY = "price"
QUANTITY_KEY = "quantity"
DATE_KEY = "date"

DEFAULT_QUANTITY = 1


@dataclass(frozen=True)
class CandidateItem:
    """A sub-object of the payload that looks like a purchasable line item."""

    name: Any
    price: Any
    quantity: Any = DEFAULT_QUANTITY


def _reject_constant(token: str) -> None:
    # json.loads accepts NaN / Infinity / -Infinity by default; they are not JSON
    raise ValueError(f"Non-standard JSON constant: {token}")


def decode_payload(raw: str) -> JSONValue:
    """
    Parse the QR text as strict JSON.

    Raises:
        InvalidPayloadFormat: text is not valid JSON, uses NaN/Infinity,
            or is nested deeper than the decoder can handle.
    """
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        # json.JSONDecodeError is a ValueError subclass
        logger.info("Rejected QR payload: %s", e)
        raise InvalidPayloadFormat(context={"reason": type(e).__name__})


def is_item(value: Dict[str, Any]) -> bool:
    """True when an object carries both a name and a price key."""
    return NAME_KEY in value and PRICE_KEY in value


def _to_candidate(value: Dict[str, Any]) -> CandidateItem:
    return CandidateItem(
        name=value[NAME_KEY],
        price=value[PRICE_KEY],
        quantity=value.get(QUANTITY_KEY, DEFAULT_QUANTITY),
    )


def extract_items(payload: JSONValue) -> List[CandidateItem]:
    """
    Collect every item-shaped object in `payload`, in pre-order.

    Pure: builds and returns a new list, never mutates `payload`.
    Scalars, null and empty containers yield an empty list.
    """
    if isinstance(payload, list):
        items: List[CandidateItem] = []
        for element in payload:
            items.extend(extract_items(element))
        return items

    if isinstance(payload, dict):
        items = [_to_candidate(payload)] if is_item(payload) else []
        for child in payload.values():
            items.extend(extract_items(child))
        return items

    return []


def extract_occurred_at(payload: JSONValue) -> Optional[datetime]:
    """
    Read the optional top-level `date` of a scan.

    Only a `date` key on the outermost object is honored; dates on nested
    items are ignored and every record of the scan shares this timestamp.
    Accepts ISO 8601 datetimes or plain dates (midnight). Naive values are
    taken as UTC.

    Returns:
        Timezone-aware datetime, or None when the payload carries no date.

    Raises:
        InvalidPayloadFormat: a date is present but cannot be parsed.
    """
    if not isinstance(payload, dict) or payload.get(DATE_KEY) is None:
        return None

    raw = payload[DATE_KEY]
    if not isinstance(raw, str):
        raise InvalidPayloadFormat(
            message="QR data 'date' must be an ISO 8601 string.",
            context={"date": raw},
        )

    try:
        return parse_timestamp(raw)
    except ValueError:
        raise InvalidPayloadFormat(
            message=f"QR data 'date' is not a valid ISO 8601 date: {raw!r}",
            context={"date": raw},
        )


def parse_timestamp(raw: str, end_of_day: bool = False) -> datetime:
    """
    Parse an ISO 8601 datetime or date into an aware UTC datetime.

    A plain date maps to midnight, or to the last microsecond of that day
    when `end_of_day` is set (inclusive upper bounds). Naive values are UTC.

    Raises:
        ValueError: not an ISO 8601 date or datetime
    """
    text = raw.strip()
    # fromisoformat() only accepts a trailing "Z" from Python 3.11 on
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        day = date.fromisoformat(text)
        parsed = datetime.combine(day, time.max if end_of_day else time.min)
    else:
        # Python 3.11+ fromisoformat() also accepts a bare date
        if end_of_day and len(text) == 10:
            parsed = datetime.combine(parsed.date(), time.max)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
