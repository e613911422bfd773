"""Exceptions raised by storefront services.

The API layer turns them into HTTP responses:

    ValidationFailed -> 400
    NotFound         -> 404
    Conflict         -> 409 (AmbiguousMatch included)

Anything else is treated as unexpected and surfaces as an opaque 500.
"""

from __future__ import annotations

from typing import Any


class StorefrontError(Exception):
    """Base class for storefront errors."""

    code: str = "STOREFRONT_ERROR"

    def __init__(self, message: str, **data: Any):
        super().__init__(message)
        self.message = message
        self.data = data


class ValidationFailed(StorefrontError, ValueError):
    """Input is missing or malformed. Raised before any write."""

    code = "VALIDATION_FAILED"


class NotFound(StorefrontError):
    """The id, phone or slug does not resolve to a record."""

    code = "NOT_FOUND"


class Conflict(StorefrontError):
    """A uniqueness rule would be violated."""

    code = "CONFLICT"


class AmbiguousMatch(Conflict):
    """
    Several bonus accounts share the same normalized phone.

    No merge policy exists; the caller has to reconcile the accounts.
    """

    code = "AMBIGUOUS_MATCH"

    def __init__(self, message: str, account_ids: list[int] | None = None):
        super().__init__(message, account_ids=account_ids or [])
        self.account_ids = account_ids or []
