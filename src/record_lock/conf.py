from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from django.conf import settings

#: Long threshold. Used for transactions and for the gateway-level check.
LOCK_EXPIRY_SECONDS = 300

#: Short threshold the product detail read used to apply.
SHORT_LOCK_EXPIRY_SECONDS = 10

#: Width of the ``locked_by`` column; longer owner tokens are rejected.
OWNER_ID_MAX_LENGTH = 64


@dataclass(frozen=True)
class LockConfig:
    """
    Resolved view of the ``RECORD_LOCK`` Django setting.

    Example
    -------
    RECORD_LOCK = {
        "EXPIRY_SECONDS": {"product": 300, "transaction": 300},
        "DEFAULT_EXPIRY_SECONDS": 300,
        "AUTO_RELEASE_ON_MUTATE": False,
    }
    """
    expiry_seconds: Mapping[str, float] = field(default_factory=dict)
    default_expiry_seconds: float = LOCK_EXPIRY_SECONDS
    auto_release_on_mutate: bool = False

    def expiry_for(self, kind_name: str) -> float:
        return self.expiry_seconds.get(kind_name, self.default_expiry_seconds)


def get_config() -> LockConfig:
    """
    Read ``settings.RECORD_LOCK`` on every call so ``override_settings``
    in tests is honoured.
    """
    raw = getattr(settings, "RECORD_LOCK", None) or {}
    default_expiry = raw.get("DEFAULT_EXPIRY_SECONDS")
    return LockConfig(
        expiry_seconds=dict(raw.get("EXPIRY_SECONDS") or {}),
        default_expiry_seconds=LOCK_EXPIRY_SECONDS if default_expiry is None else default_expiry,
        auto_release_on_mutate=bool(raw.get("AUTO_RELEASE_ON_MUTATE", False)),
    )
