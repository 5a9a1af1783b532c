"""
Test configuration.

Django is configured at import time, before test modules import the
packages under test. PostgreSQL is used when DATABASE_URL points at one;
otherwise a throwaway SQLite file.
"""

import os
import tempfile
from datetime import timedelta
from urllib.parse import urlparse

import pytest


def _configure_django() -> None:
    """Configure a minimal Django setup (once per test run)."""
    from django.conf import settings

    if settings.configured:
        return

    database_url = os.environ.get("DATABASE_URL", "")
    u = urlparse(database_url)
    if u.scheme in {"postgres", "postgresql"}:
        database = {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": (u.path or "").lstrip("/"),
            "USER": u.username or "",
            "PASSWORD": u.password or "",
            "HOST": u.hostname or "localhost",
            "PORT": str(u.port or 5432),
            "CONN_MAX_AGE": 0,
        }
    else:
        database = {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.path.join(tempfile.mkdtemp(prefix="record-lock-"), "test.sqlite3"),
        }

    from record_lock.conf import LOCK_EXPIRY_SECONDS

    settings.configure(
        SECRET_KEY="test",
        INSTALLED_APPS=["stock"],
        DATABASES={"default": database},
        ROOT_URLCONF="stock.urls",
        ALLOWED_HOSTS=["testserver"],
        TIME_ZONE="UTC",
        USE_TZ=True,
        RECORD_LOCK={
            "EXPIRY_SECONDS": {
                "product": LOCK_EXPIRY_SECONDS,
                "transaction": LOCK_EXPIRY_SECONDS,
            },
            "AUTO_RELEASE_ON_MUTATE": False,
        },
    )

    import django

    django.setup()


_configure_django()


@pytest.fixture(scope="session", autouse=True)
def _schema() -> None:
    from django.core.management import call_command

    call_command("migrate", verbosity=0)


@pytest.fixture(autouse=True)
def _clean_tables():
    """Tests commit for real (locks are about committed state); wipe after each."""
    yield
    from stock.models import Product, Transaction

    Transaction.objects.all().delete()
    Product.objects.all().delete()


@pytest.fixture
def now():
    from django.utils import timezone

    return timezone.now().replace(microsecond=0)


@pytest.fixture
def later(now):
    """A moment past the default expiry window."""
    from record_lock.conf import LOCK_EXPIRY_SECONDS

    return now + timedelta(seconds=LOCK_EXPIRY_SECONDS + 1)


@pytest.fixture
def product():
    from stock.models import Product

    return Product.objects.create(code="P1", name="Widget", unit="pcs", quantity=10)


@pytest.fixture
def sale(product):
    from datetime import date

    from stock.models import Transaction

    product.quantity -= 3
    product.save(update_fields=["quantity"])
    return Transaction.objects.create(
        code="T1", date=date(2024, 5, 1), product=product, quantity=3
    )
