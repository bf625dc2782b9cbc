"""
SpendTrack Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions, one per error kind the API reports.
How:   Each class carries a class-level `kind` (machine-readable error code)
       and `status_code`, plus a per-instance message and context dict.
       The global handler in main.py turns any SpendTrackError into
       {"error": kind, "message": ..., "details": context, "request_id": ...}.
Who:   Raised by services; caught by the global handlers.

Exception Hierarchy:
    SpendTrackError (base)                       → 500
    ├── ValidationError                          → 400
    │   ├── InvalidPayloadFormat                 → 400 (scan data is not JSON)
    │   ├── ItemValidationError
    │   │   ├── MissingName
    │   │   ├── NameTooLong
    │   │   ├── MissingPrice
    │   │   ├── InvalidPrice
    │   │   └── InvalidQuantity
    │   ├── NoValidItems                         → 400 (nothing to record)
    │   └── InvalidOwnerIdentity                 → 400 (malformed user id)
    ├── AuthenticationError                      → 401
    ├── ConflictError                            → 409
    ├── DatabaseError                            → 500 (generic message to client)
    └── PartialPersistenceFailure                → 500 (batch partly written)
"""

from typing import Any, Dict, List, Optional


class SpendTrackError(Exception):
    """
    Base exception for all SpendTrack application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Structured details; returned as `details` unless the
                  handler for the subclass decides otherwise
    """

    kind = "server_error"
    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SpendTrackError):
    """Client input failed a business rule; the client can fix and resend."""

    kind = "validation_error"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class InvalidPayloadFormat(ValidationError):
    """The scanned QR data could not be decoded as a JSON document."""

    kind = "invalid_payload_format"

    def __init__(
        self,
        message: str = "Invalid QR data format. Expected JSON string.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, field="data", context=context)


class ItemValidationError(ValidationError):
    """
    A candidate line item extracted from a scan failed validation.

    `item_index` is the position of the offending item in extraction order,
    so the client can tell which entry of its payload was rejected.
    """

    default_message = "Invalid item in QR data"

    def __init__(
        self,
        item_index: int,
        message: Optional[str] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["item_index"] = item_index
        super().__init__(
            message=message or f"{self.default_message} (item {item_index})",
            field=field,
            context=ctx,
        )
        self.item_index = item_index


class MissingName(ItemValidationError):
    kind = "missing_name"
    default_message = "Item name is missing or not a string"


class MissingPrice(ItemValidationError):
    kind = "missing_price"
    default_message = "Item price is missing"


class InvalidPrice(ItemValidationError):
    kind = "invalid_price"
    default_message = "Item price must be a number greater than zero"


class NameTooLong(ItemValidationError):
    kind = "name_too_long"
    default_message = "Item name is too long"


class InvalidQuantity(ItemValidationError):
    kind = "invalid_quantity"
    default_message = "Item quantity must be a number greater than zero"


class NoValidItems(ValidationError):
    """The scan contained no line items (nothing with both a name and a price)."""

    kind = "no_valid_items"

    def __init__(
        self,
        message: str = "No expense items found in QR data.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, field="data", context=context)


class InvalidOwnerIdentity(ValidationError):
    """A user reference is not a well-formed identity (format check only)."""

    kind = "invalid_owner_identity"

    def __init__(
        self,
        owner_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if owner_id is not None:
            ctx["user_id"] = owner_id
        super().__init__(
            message="user_id is not a valid user identifier",
            field="user_id",
            context=ctx,
        )


class AuthenticationError(SpendTrackError):
    """Credentials were wrong or missing."""

    kind = "authentication_error"
    status_code = 401

    def __init__(
        self,
        message: str = "Invalid credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConflictError(SpendTrackError):
    """The resource being created already exists (e.g. a registered email)."""

    kind = "conflict"
    status_code = 409

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(SpendTrackError):
    """
    A database operation failed unexpectedly.

    The message returned to the client is always generic; `context` is
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PartialPersistenceFailure(SpendTrackError):
    """
    One or more inserts of a scan batch failed.

    Records that did commit are NOT rolled back; their ids are reported so
    the client can reconcile. Counts are always present in `context`.
    """

    kind = "partial_persistence_failure"

    def __init__(
        self,
        attempted: int,
        persisted_ids: List[str],
        errors: List[Dict[str, Any]],
    ):
        failed = len(errors)
        message = (
            f"Failed to save {failed} of {attempted} expenses from QR scan. "
            f"{len(persisted_ids)} were saved."
        )
        super().__init__(
            message=message,
            context={
                "attempted": attempted,
                "persisted": len(persisted_ids),
                "failed": failed,
                "persisted_ids": persisted_ids,
                "errors": errors,
            },
        )
        self.attempted = attempted
        self.persisted_ids = persisted_ids
        self.errors = errors
