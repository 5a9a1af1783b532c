from datetime import timedelta

import pytest
from django.test import override_settings
from django.utils import timezone

from record_lock import gateway, manager
from record_lock.exceptions import (
    LockConflict,
    LockValidationError,
    ReferentialIntegrityError,
)
from stock.models import Product


def _lock_of(code):
    return Product.objects.values_list("locked_by", "locked_at").get(pk=code)


# hold()


def test_hold_keeps_lock_after_block_by_default(product):
    with gateway.hold("product", "P1", "A") as result:
        assert result.granted

    assert _lock_of("P1")[0] == "A"


def test_hold_auto_release_releases_after_block(product):
    with gateway.hold("product", "P1", "A", auto_release=True):
        assert _lock_of("P1")[0] == "A"

    assert _lock_of("P1") == (None, None)


@override_settings(RECORD_LOCK={"AUTO_RELEASE_ON_MUTATE": True})
def test_hold_auto_release_from_settings(product):
    with gateway.hold("product", "P1", "A"):
        pass

    assert _lock_of("P1") == (None, None)


@override_settings(RECORD_LOCK={"AUTO_RELEASE_ON_MUTATE": True})
def test_hold_failing_block_keeps_lock(product):
    with pytest.raises(RuntimeError):
        with gateway.hold("product", "P1", "A"):
            raise RuntimeError("save failed")

    assert _lock_of("P1")[0] == "A"


def test_hold_conflict_carries_holder(product):
    manager.acquire("product", "P1", "A")
    ran = []

    with pytest.raises(LockConflict) as excinfo:
        with gateway.hold("product", "P1", "B"):
            ran.append(True)

    assert ran == []
    assert excinfo.value.locked_by == "A"
    assert excinfo.value.locked_at is not None
    assert excinfo.value.as_dict()["locked_by"] == "A"


# lock_gated


@gateway.lock_gated("product", resource="code")
def rename(code, owner_id, name):
    Product.objects.filter(pk=code).update(name=name)
    return name


@gateway.lock_gated("product", resource="code")
def rename_then_fail(code, owner_id, name):
    Product.objects.filter(pk=code).update(name=name)
    raise RuntimeError("boom after write")


def test_lock_gated_applies_mutation_under_lock(product):
    assert rename("P1", "A", "Gadget") == "Gadget"

    product.refresh_from_db()
    assert product.name == "Gadget"
    assert product.locked_by == "A"


def test_lock_gated_accepts_keyword_arguments(product):
    rename(code="P1", owner_id="A", name="Gadget")

    assert Product.objects.get(pk="P1").name == "Gadget"


def test_lock_gated_rejects_without_grant(product):
    manager.acquire("product", "P1", "A")

    with pytest.raises(LockConflict):
        rename("P1", "B", "Hijacked")

    assert Product.objects.get(pk="P1").name == "Widget"


@pytest.mark.parametrize("code, owner", [("", "A"), ("P1", None)])
def test_lock_gated_requires_ids_before_storage(product, code, owner):
    with pytest.raises(LockValidationError):
        rename(code, owner, "Gadget")

    assert _lock_of("P1") == (None, None)


def test_lock_gated_rolls_back_mutation_but_keeps_lock(product):
    with pytest.raises(RuntimeError):
        rename_then_fail("P1", "A", "Half-done")

    product.refresh_from_db()
    assert product.name == "Widget"
    assert product.locked_by == "A"


def test_lock_gated_unknown_parameter_name():
    @gateway.lock_gated("product", resource="sku")
    def f(code, owner_id):
        return code

    with pytest.raises(TypeError, match="sku"):
        f("P1", "A")


def test_lock_gated_reacquires_expired_lock_of_other_owner(product):
    Product.objects.filter(pk="P1").update(
        locked_by="A", locked_at=timezone.now() - timedelta(seconds=301)
    )

    rename("P1", "B", "Taken over")

    product.refresh_from_db()
    assert product.name == "Taken over"
    assert product.locked_by == "B"


# functional forms


def test_gated_update_returns_callback_result(product):
    result = gateway.gated_update("product", "P1", "A", lambda: "done")

    assert result == "done"


def test_gated_delete_translates_protected_error(sale):
    def delete():
        Product.objects.filter(pk="P1").delete()

    with pytest.raises(ReferentialIntegrityError):
        gateway.gated_delete("product", "P1", "A", delete)

    assert Product.objects.filter(pk="P1").exists()


def test_gated_delete_removes_row_and_its_lock(product):
    gateway.gated_delete("product", "P1", "A", lambda: Product.objects.filter(pk="P1").delete())

    assert not Product.objects.filter(pk="P1").exists()
