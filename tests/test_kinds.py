import pytest

from record_lock import kinds
from record_lock.exceptions import LockValidationError
from stock.models import Product, Transaction


def test_stock_kinds_are_registered():
    names = {k.name for k in kinds.registered_kinds()}

    assert {"product", "transaction"} <= names
    assert kinds.get_kind("product").model is Product
    assert kinds.get_kind("transaction").model is Transaction


def test_get_kind_passes_kind_values_through():
    kind = kinds.get_kind("product")

    assert kinds.get_kind(kind) is kind


def test_explicit_kind_wins():
    payload = {"resourceKind": "product", "kd_trans": "T1", "resourceId": "P1"}

    assert kinds.resolve_kind(payload).name == "product"


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"kode_brg": "P1"}, "product"),
        ({"productId": "P1"}, "product"),
        ({"kd_trans": "T1"}, "transaction"),
        ({"transactionId": "T1"}, "transaction"),
        ({"kd_trans": "T1", "kode_brg": "P1"}, "transaction"),
    ],
)
def test_kind_inferred_from_id_field(payload, expected):
    assert kinds.resolve_kind(payload).name == expected


def test_unresolvable_kind():
    with pytest.raises(LockValidationError):
        kinds.resolve_kind({"resourceId": "X"})

    with pytest.raises(LockValidationError):
        kinds.get_kind("warehouse")


def test_extract_request_original_field_names():
    kind, resource_id, owner_id = kinds.extract_request({"kd_trans": "T1", "user_id": "s-1"})

    assert (kind.name, resource_id, owner_id) == ("transaction", "T1", "s-1")


def test_extract_request_explicit_fields_and_header_owner():
    kind, resource_id, owner_id = kinds.extract_request(
        {"resourceKind": "product", "resourceId": "P1"}, owner_id="header-token"
    )

    assert (kind.name, resource_id, owner_id) == ("product", "P1", "header-token")


@pytest.mark.parametrize(
    "payload",
    [
        {"kode_brg": "P1"},
        {"resourceKind": "product", "ownerId": "A"},
        {"ownerId": "A"},
    ],
)
def test_extract_request_missing_values(payload):
    with pytest.raises(LockValidationError):
        kinds.extract_request(payload)


def test_register_and_unregister_custom_kind():
    kind = kinds.register("stock-item", Product, id_field="sku")
    try:
        assert kinds.get_kind("stock-item") is kind
        assert kind.id_fields == ("sku",)
    finally:
        kinds.unregister("stock-item")

    with pytest.raises(LockValidationError):
        kinds.get_kind("stock-item")


def test_extract_request_rejects_overlong_owner():
    from record_lock.conf import OWNER_ID_MAX_LENGTH

    with pytest.raises(LockValidationError):
        kinds.extract_request({"kode_brg": "P1", "user_id": "s" * (OWNER_ID_MAX_LENGTH + 1)})
