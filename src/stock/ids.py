from __future__ import annotations

import secrets
from datetime import datetime
from typing import Iterable

from django.utils import timezone

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"

#: Column width of ``t_jual.kd_trans``.
TRANSACTION_ID_MAX_LENGTH = 10


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("to_base36 expects a non-negative integer")
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_DIGITS[rem])
    return "".join(reversed(out))


def _millis(now: datetime | None) -> int:
    now = now or timezone.now()
    return int(now.timestamp() * 1000)


def generate_product_id(now: datetime | None = None) -> str:
    """``PRD_<last 4 base36 chars of the ms timestamp>_<6 hex chars>``, upper-cased."""
    stamp = to_base36(_millis(now))[-4:]
    return f"PRD_{stamp}_{secrets.token_hex(3)}".upper()


def generate_transaction_id(owner_id: str | None, now: datetime | None = None) -> str:
    """
    Short sale id: ``T`` + last 2 chars of the owner + last 3 base36
    timestamp chars + 2 hex chars, upper-cased and capped at 10 chars.

    Collisions are possible; callers retry against the store.
    """
    owner_part = owner_id[-2:] if owner_id else "XX"
    stamp = to_base36(_millis(now))[-3:]
    raw = f"T{owner_part}{stamp}{secrets.token_hex(1)}"
    return raw.upper()[:TRANSACTION_ID_MAX_LENGTH]


def next_sequential_id(last_code: str | None, prefix: str = "BRG", width: int = 4) -> str:
    """
    Sequential product code, e.g. ``BRG0001`` after ``None`` and ``BRG0013``
    after ``BRG0012``. Codes with a foreign prefix restart the sequence.
    """
    number = 0
    if last_code and last_code.startswith(prefix):
        suffix = last_code[len(prefix):]
        if suffix.isdigit():
            number = int(suffix)
    return f"{prefix}{number + 1:0{width}d}"


def highest_sequential_id(codes: Iterable[str], prefix: str = "BRG") -> str | None:
    """
    The code with the largest numeric suffix, compared as numbers so that
    ``BRG10000`` ranks above ``BRG9999``.
    """
    best, best_number = None, -1
    for code in codes:
        suffix = code[len(prefix):] if code.startswith(prefix) else ""
        if suffix.isdigit() and int(suffix) > best_number:
            best, best_number = code, int(suffix)
    return best
