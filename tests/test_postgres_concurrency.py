"""
PostgreSQL row-lock integration tests.

These tests validate real concurrency behavior (not mocks):
- Concurrent acquire attempts on the same row: exactly one owner wins.
- Acquire attempts on different rows do not block each other.

They require a reachable PostgreSQL instance via DATABASE_URL.
CI provides PostgreSQL automatically; locally you can use docker compose.
"""

import threading

import pytest
from django.db import connection

from record_lock import manager
from stock.models import Product

pytestmark = pytest.mark.skipif(
    connection.vendor != "postgresql",
    reason="DATABASE_URL is not a PostgreSQL URL; skipping row-lock concurrency tests.",
)


def _ensure_thread_connection() -> None:
    """Open a thread-local DB connection early to avoid first-connect races."""
    from django.db import connections

    connections["default"].ensure_connection()


def _close_thread_connection() -> None:
    """Close the thread-local DB connection to avoid leaks between tests."""
    from django.db import connections

    connections["default"].close()


def _race(attempts):
    """Run ``(code, owner)`` acquire attempts in parallel threads."""
    barrier = threading.Barrier(len(attempts))
    results: dict[str, bool] = {}
    errors: list[BaseException] = []

    def contender(code: str, owner: str) -> None:
        try:
            _ensure_thread_connection()
            barrier.wait(timeout=5.0)
            results[owner] = manager.acquire("product", code, owner).granted
        except BaseException as exc:  # surfaced via the errors list below
            errors.append(exc)
        finally:
            _close_thread_connection()

    threads = [
        threading.Thread(target=contender, args=attempt, name=f"acquire-{attempt[1]}")
        for attempt in attempts
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10.0)

    assert errors == []
    return results


def test_concurrent_acquire_single_winner(product):
    owners = [f"owner-{i}" for i in range(8)]

    results = _race([("P1", owner) for owner in owners])

    winners = [owner for owner, granted in results.items() if granted]
    assert len(results) == len(owners)
    assert len(winners) == 1
    assert Product.objects.get(pk="P1").locked_by == winners[0]


def test_different_rows_do_not_block(product):
    Product.objects.create(code="P2", name="Gadget", unit="pcs", quantity=1)

    results = _race([("P1", "A"), ("P2", "B")])

    assert results == {"A": True, "B": True}
