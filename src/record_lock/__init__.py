from .exceptions import (
    LockConflict,
    LockStorageError,
    LockValidationError,
    RecordLockError,
    ReferentialIntegrityError,
    ResourceNotFound,
)
from .gateway import gated_delete, gated_update, hold, lock_gated
from .manager import LockResult, acquire, fetch, release

__all__ = [
    "acquire",
    "release",
    "fetch",
    "hold",
    "lock_gated",
    "gated_update",
    "gated_delete",
    "LockResult",
    "RecordLockError",
    "LockValidationError",
    "LockConflict",
    "ResourceNotFound",
    "ReferentialIntegrityError",
    "LockStorageError",
]
