from __future__ import annotations

from datetime import datetime

from django.db import models
from django.utils import timezone

from .conf import OWNER_ID_MAX_LENGTH
from .manager import lock_is_stale

#: Columns owned by the lock manager. Domain saves must leave them alone.
LOCK_FIELDS = ("locked_by", "locked_at")


class LockableModel(models.Model):
    """
    Abstract base adding an advisory edit lock to a row.

    The lock is a pair of columns on the resource itself, so it is deleted
    together with the row and survives process restarts. ``locked_by`` and
    ``locked_at`` are written together or cleared together, and only by
    ``record_lock.manager``.
    """

    locked_by = models.CharField(max_length=OWNER_ID_MAX_LENGTH, null=True, blank=True)
    locked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        abstract = True

    @property
    def is_locked(self) -> bool:
        return bool(self.locked_by)

    def lock_age(self, now: datetime | None = None) -> float | None:
        """Seconds since the lock was taken, or None when unlocked."""
        if not self.locked_by or self.locked_at is None:
            return None
        now = now or timezone.now()
        return (now - self.locked_at).total_seconds()

    def lock_expired(self, expiry: float, now: datetime | None = None) -> bool:
        return lock_is_stale(self.locked_by, self.locked_at, expiry, now)

    def lock_state(self, owner_id: str | None = None) -> dict:
        return {
            "locked_by": self.locked_by,
            "locked_at": self.locked_at.isoformat() if self.locked_at else None,
            "is_locked_by_me": bool(owner_id) and self.locked_by == owner_id,
        }
