"""
Row-level advisory lock manager.

A lock is the ``locked_by`` / ``locked_at`` column pair on the resource row
itself (see `record_lock.models.LockableModel`). The database is the only
source of truth: there is no in-memory lock table and no background sweeper.

Expiry is pull-based. ``now - locked_at`` is evaluated wherever a lock is
read: by `acquire` to allow a takeover, and by `fetch` to clear a stale
lock as a side effect of reading the resource.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from django.db import DatabaseError, models, transaction
from django.utils import timezone

from .conf import OWNER_ID_MAX_LENGTH
from .exceptions import LockStorageError, LockValidationError, ResourceNotFound
from .kinds import ResourceKind, get_kind

logger = logging.getLogger(__name__)

HELD_BY_OTHER = "held by another owner"


def lock_is_stale(
    locked_by: str | None,
    locked_at: datetime | None,
    expiry: float,
    now: datetime | None = None,
) -> bool:
    """
    True when a lock exists and is older than ``expiry`` seconds.

    A holder without a timestamp breaks the paired-columns invariant; such a
    lock is treated as stale so it can be reclaimed.
    """
    if not locked_by:
        return False
    if locked_at is None:
        return True
    now = now or timezone.now()
    return (now - locked_at).total_seconds() > expiry


@dataclass(frozen=True)
class LockResult:
    """
    Outcome of `acquire`.

    ``locked_by`` / ``locked_at`` describe the lock as it stands after the
    call: the caller's own lock on a grant, the other holder's on a denial.
    """
    granted: bool
    locked_by: str | None = None
    locked_at: datetime | None = None
    reason: str | None = None

    def as_dict(self) -> dict:
        return {
            "granted": self.granted,
            "reason": self.reason,
            "locked_by": self.locked_by,
            "locked_at": self.locked_at.isoformat() if self.locked_at else None,
        }


def acquire(
    kind: ResourceKind | str,
    resource_id: str,
    owner_id: str,
    *,
    now: datetime | None = None,
) -> LockResult:
    """
    Try to take the edit lock on one resource row.

    The row is read with ``SELECT ... FOR UPDATE`` inside a transaction, so
    two acquire calls on the same row are serialised by the database.

    Grant rules
    -----------
    - no current holder: grant
    - current holder is ``owner_id``: grant and refresh ``locked_at``
    - current lock older than ``kind.expiry``: grant (takeover)
    - otherwise: deny, nothing is written

    Parameters
    ----------
    kind : ResourceKind | str
        Resource kind or its registered name.
    resource_id : str
        Primary key of the row.
    owner_id : str
        Opaque identity of the editor. Compared, never generated.
    now : datetime | None
        Clock override, mostly for tests. Defaults to ``timezone.now()``.

    Raises
    ------
    LockValidationError
        If ``resource_id`` or ``owner_id`` is empty, or ``owner_id`` does not fit
        the ``locked_by`` column.
    ResourceNotFound
        If no row has this primary key.
    LockStorageError
        If the database fails; the transaction is rolled back.
    """
    kind = get_kind(kind)
    if not resource_id or not owner_id:
        raise LockValidationError("Resource id and owner id are required.")
    if len(owner_id) > OWNER_ID_MAX_LENGTH:
        raise LockValidationError(
            f"Owner id is longer than {OWNER_ID_MAX_LENGTH} characters."
        )

    now = now or timezone.now()
    rows = kind.objects.filter(pk=resource_id)

    try:
        with transaction.atomic():
            current = list(rows.select_for_update().values("locked_by", "locked_at")[:1])
            if not current:
                raise ResourceNotFound(f"{kind.name} {resource_id!r} does not exist.")

            holder = current[0]["locked_by"]
            locked_at = current[0]["locked_at"]

            if holder and holder != owner_id and not lock_is_stale(
                holder, locked_at, kind.expiry, now
            ):
                logger.info(
                    "Lock denied on %s %s for %s: held by %s since %s",
                    kind.name, resource_id, owner_id, holder, locked_at,
                )
                return LockResult(
                    granted=False,
                    locked_by=holder,
                    locked_at=locked_at,
                    reason=HELD_BY_OTHER,
                )

            rows.update(locked_by=owner_id, locked_at=now)
    except DatabaseError as exc:
        raise LockStorageError(
            f"Failed to acquire lock on {kind.name} {resource_id!r}: {exc}"
        ) from exc

    if holder and holder != owner_id:
        logger.info(
            "Expired lock on %s %s taken over from %s by %s",
            kind.name, resource_id, holder, owner_id,
        )
    else:
        logger.debug("Lock granted on %s %s to %s", kind.name, resource_id, owner_id)

    return LockResult(granted=True, locked_by=owner_id, locked_at=now)


def release(kind: ResourceKind | str, resource_id: str, owner_id: str) -> bool:
    """
    Clear the lock on a row, but only if ``owner_id`` holds it.

    Returns True when a row was actually changed. False covers both "no such
    row" and "not locked by this owner".

    Release is best-effort: storage errors are logged and swallowed, leaving
    the lock to expire on its own.
    """
    kind = get_kind(kind)
    if not resource_id or not owner_id:
        return False

    try:
        changed = kind.objects.filter(pk=resource_id, locked_by=owner_id).update(
            locked_by=None, locked_at=None
        )
    except DatabaseError:
        logger.warning(
            "Failed to release lock on %s %s for %s; leaving it to expire",
            kind.name, resource_id, owner_id,
            exc_info=True,
        )
        return False

    if not changed:
        logger.debug(
            "Nothing to release on %s %s for %s", kind.name, resource_id, owner_id
        )
    return changed > 0


def clear_if_expired(
    instance: models.Model,
    kind: ResourceKind | str,
    now: datetime | None = None,
) -> bool:
    """
    Passive expiry: clear a stale lock found on ``instance``.

    The update matches the holder *and* timestamp that were read, so it is
    idempotent under concurrent readers and never clears a lock that was
    refreshed in the meantime. ``instance`` is updated in place. Returns
    True when the lock was considered stale.
    """
    kind = get_kind(kind)
    if not lock_is_stale(instance.locked_by, instance.locked_at, kind.expiry, now):
        return False

    try:
        kind.objects.filter(
            pk=instance.pk,
            locked_by=instance.locked_by,
            locked_at=instance.locked_at,
        ).update(locked_by=None, locked_at=None)
    except DatabaseError:
        logger.warning(
            "Failed to clear expired lock on %s %s", kind.name, instance.pk,
            exc_info=True,
        )
    else:
        logger.info(
            "Cleared expired lock on %s %s held by %s",
            kind.name, instance.pk, instance.locked_by,
        )

    instance.locked_by = None
    instance.locked_at = None
    return True


def fetch(
    kind: ResourceKind | str,
    resource_id: str,
    *,
    now: datetime | None = None,
) -> models.Model:
    """
    Load a resource for display, clearing its lock first if it is stale.

    Raises
    ------
    ResourceNotFound
        If no row has this primary key.
    """
    kind = get_kind(kind)
    try:
        instance = kind.objects.get(pk=resource_id)
    except kind.model.DoesNotExist:
        raise ResourceNotFound(f"{kind.name} {resource_id!r} does not exist.") from None

    clear_if_expired(instance, kind, now)
    return instance
