"""
Exception hierarchy for record_lock.

This module defines all public exceptions raised by the library.

Users are encouraged to catch `RecordLockError` when they want to handle
all library-related failures, or more specific subclasses such as
`LockConflict` when they need fine-grained control. Every exception carries
a stable `code` and the HTTP `status` the JSON views answer with.
"""

from __future__ import annotations

from datetime import datetime


class RecordLockError(Exception):
    """
    Base exception for all record_lock errors.

    Catch this exception to handle any failure raised by the library.

    Example
    -------
    >>> try:
    ...     acquire(kind, "PRD_0001_ABCDEF", owner_id="s-42")
    ... except RecordLockError as exc:
    ...     return JsonResponse(exc.as_dict(), status=exc.status)
    """

    #: Error code for programmatic handling.
    code: str = "record_lock_error"

    #: HTTP status used when the error reaches a view.
    status: int = 500

    def __init__(self, message: str | None = None) -> None:
        if message is None:
            message = "An unspecified record_lock error occurred."
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self.args[0])

    def as_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class LockValidationError(RecordLockError):
    """
    Raised when a request is missing the resource id or the owner id, or
    names an unknown resource kind.

    Always raised before any store access.
    """

    code: str = "validation_error"
    status: int = 400


class ResourceNotFound(RecordLockError):
    """
    Raised when the resource id does not exist in the store.

    Kept apart from `LockConflict` so callers can tell "nothing to lock"
    from "someone else holds it".
    """

    code: str = "not_found"
    status: int = 404


class LockConflict(RecordLockError):
    """
    Raised when the resource is held by a different owner whose lock has
    not expired yet.

    The holder identity and lock timestamp are attached so a UI can explain
    who is editing and since when.

    Example
    -------
    >>> try:
    ...     with hold(kind, "T42A1B2C3", owner_id="s-42"):
    ...         save()
    ... except LockConflict as exc:
    ...     show_banner(exc.locked_by, exc.locked_at)
    """

    code: str = "lock_conflict"
    status: int = 423

    def __init__(
        self,
        message: str | None = None,
        *,
        locked_by: str | None = None,
        locked_at: datetime | None = None,
    ) -> None:
        super().__init__(message or "Resource is locked by another owner.")
        self.locked_by = locked_by
        self.locked_at = locked_at

    def as_dict(self) -> dict:
        payload = super().as_dict()
        payload["locked_by"] = self.locked_by
        payload["locked_at"] = self.locked_at.isoformat() if self.locked_at else None
        return payload


class ReferentialIntegrityError(RecordLockError):
    """
    Raised when a delete is blocked because dependent records still point
    at the resource (e.g. a product referenced by sales transactions).
    """

    code: str = "referential_integrity"
    status: int = 409


class LockStorageError(RecordLockError):
    """
    Raised when the store fails while acquiring a lock or mutating a row.

    The surrounding transaction has been rolled back when this is raised.
    Release failures never raise this; they are logged and swallowed.
    """

    code: str = "storage_error"
    status: int = 500
