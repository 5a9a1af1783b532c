"""
Stock and sales operations.

Create operations need no lock. Update and delete operations run through
`record_lock.lock_gated`, so they only touch a row whose edit lock the
caller holds. Domain writes list their ``update_fields`` explicitly and
never include the lock columns.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable

from django.conf import settings
from django.db import IntegrityError, models, transaction
from django.utils.dateparse import parse_date

from record_lock import ReferentialIntegrityError, lock_gated

from .exceptions import (
    DuplicateProduct,
    IdGenerationError,
    InsufficientStock,
    InvalidField,
    UnknownProduct,
)
from .ids import (
    generate_product_id,
    generate_transaction_id,
    highest_sequential_id,
    next_sequential_id,
)
from .models import PRODUCT, TRANSACTION, Product, Transaction

logger = logging.getLogger(__name__)

#: Attempts at finding an unused generated id before giving up.
MAX_ID_ATTEMPTS = 5

PRODUCT_FIELDS = ["name", "unit", "quantity"]
TRANSACTION_FIELDS = ["date", "product", "quantity"]


# Validation


def _required(value: Any, label: str) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidField(f"{label} is required.")
    return value.strip() if isinstance(value, str) else value


def _int(value: Any, label: str, *, minimum: int) -> int:
    value = _required(value, label)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidField(f"{label} must be a whole number.") from None
    if number < minimum:
        raise InvalidField(f"{label} must be at least {minimum}.")
    return number


def _date(value: Any, label: str) -> date:
    value = _required(value, label)
    if isinstance(value, date):
        return value
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise InvalidField(f"{label} must be a date (YYYY-MM-DD).")
    return parsed


def clean_product(name: Any, unit: Any, quantity: Any) -> dict:
    return {
        "name": _required(name, "nama_brg"),
        "unit": _required(unit, "satuan"),
        "quantity": _int(quantity, "jml_stok", minimum=0),
    }


def clean_transaction(tx_date: Any, product_code: Any, quantity: Any) -> dict:
    return {
        "date": _date(tx_date, "tgl_trans"),
        "product_code": _required(product_code, "kode_brg"),
        "quantity": _int(quantity, "jml_jual", minimum=1),
    }


# Identifiers


def _unique_code(model: type[models.Model], generate: Callable[[], str]) -> str:
    for attempt in range(1, MAX_ID_ATTEMPTS + 1):
        code = generate()
        if not model._default_manager.filter(pk=code).exists():
            return code
        logger.debug("Generated %s id %s already taken (attempt %d)", model.__name__, code, attempt)
    raise IdGenerationError(f"Could not generate a unique {model.__name__} id.")


def new_product_code() -> str:
    """
    Random ``PRD_`` code by default; ``STOCK_PRODUCT_ID_STYLE = "sequential"``
    issues ``BRG0001``, ``BRG0002``, ... instead.
    """
    if getattr(settings, "STOCK_PRODUCT_ID_STYLE", "random") == "sequential":
        codes = Product.objects.filter(code__startswith="BRG").values_list("code", flat=True)
        return next_sequential_id(highest_sequential_id(codes))
    return _unique_code(Product, generate_product_id)


def _locked_product(code: str) -> Product:
    try:
        return Product.objects.select_for_update().get(pk=code)
    except Product.DoesNotExist:
        raise UnknownProduct(f"Product {code!r} does not exist.") from None


def _save_product(product: Product, fields: list[str]) -> None:
    try:
        with transaction.atomic():
            product.save(update_fields=fields)
    except IntegrityError as exc:
        raise DuplicateProduct(f"A product named {product.name!r} already exists.") from exc


# Products


def create_product(name: Any, unit: Any, quantity: Any) -> Product:
    data = clean_product(name, unit, quantity)
    if Product.objects.filter(name=data["name"]).exists():
        raise DuplicateProduct(f"A product named {data['name']!r} already exists.")

    for attempt in range(1, MAX_ID_ATTEMPTS + 1):
        code = new_product_code()
        try:
            with transaction.atomic():
                product = Product.objects.create(code=code, **data)
        except IntegrityError as exc:
            if Product.objects.filter(name=data["name"]).exists():
                raise DuplicateProduct(
                    f"A product named {data['name']!r} already exists."
                ) from exc
            logger.debug("Product code %s already taken (attempt %d)", code, attempt)
            continue
        logger.info("Created product %s (%s)", product.code, product.name)
        return product

    raise IdGenerationError("Could not generate a unique Product id.")


@lock_gated(PRODUCT, resource="code")
def update_product(code: str, owner_id: str, *, name: Any, unit: Any, quantity: Any) -> Product:
    data = clean_product(name, unit, quantity)
    product = Product.objects.get(pk=code)
    for field, value in data.items():
        setattr(product, field, value)
    _save_product(product, PRODUCT_FIELDS)
    logger.info("Product %s updated by %s", code, owner_id)
    return product


@lock_gated(PRODUCT, resource="code")
def delete_product(code: str, owner_id: str) -> None:
    count = Transaction.objects.filter(product_id=code).count()
    if count:
        raise ReferentialIntegrityError(
            f"Product {code!r} cannot be deleted: {count} transaction(s) reference it."
        )
    Product.objects.filter(pk=code).delete()
    logger.info("Product %s deleted by %s", code, owner_id)


# Transactions


def create_transaction(owner_id: str, tx_date: Any, product_code: Any, quantity: Any) -> Transaction:
    """
    Record a sale and take its units out of stock.

    The stock check happens under a row lock on the product and before any
    write, so an oversized sale leaves no trace.
    """
    if not owner_id:
        raise InvalidField("user_id is required.")
    data = clean_transaction(tx_date, product_code, quantity)

    with transaction.atomic():
        product = _locked_product(data["product_code"])
        if data["quantity"] > product.quantity:
            raise InsufficientStock(
                f"Only {product.quantity} {product.unit} of {product.code} in stock, "
                f"{data['quantity']} requested."
            )

        code = _unique_code(Transaction, lambda: generate_transaction_id(owner_id))
        product.quantity -= data["quantity"]
        product.save(update_fields=["quantity"])
        sale = Transaction.objects.create(
            code=code,
            date=data["date"],
            product=product,
            quantity=data["quantity"],
        )

    logger.info("Created transaction %s: %s x%d", sale.code, product.code, sale.quantity)
    return sale


@lock_gated(TRANSACTION, resource="code")
def update_transaction(
    code: str,
    owner_id: str,
    *,
    tx_date: Any,
    product_code: Any,
    quantity: Any,
) -> Transaction:
    """
    Change a sale, moving stock back and forth.

    The old quantity goes back to the old product and the new quantity is
    taken from the new one. Product rows are locked in key order.
    """
    data = clean_transaction(tx_date, product_code, quantity)
    sale = Transaction.objects.select_for_update().get(pk=code)

    codes = sorted({sale.product_id, data["product_code"]})
    products = {c: _locked_product(c) for c in codes}
    old_product = products[sale.product_id]
    new_product = products[data["product_code"]]

    old_product.quantity += sale.quantity
    if data["quantity"] > new_product.quantity:
        raise InsufficientStock(
            f"Only {new_product.quantity} {new_product.unit} of {new_product.code} "
            f"available, {data['quantity']} requested."
        )
    new_product.quantity -= data["quantity"]

    for product in products.values():
        product.save(update_fields=["quantity"])

    sale.date = data["date"]
    sale.product = new_product
    sale.quantity = data["quantity"]
    sale.save(update_fields=TRANSACTION_FIELDS)
    logger.info("Transaction %s updated by %s", code, owner_id)
    return sale


@lock_gated(TRANSACTION, resource="code")
def delete_transaction(code: str, owner_id: str) -> None:
    sale = Transaction.objects.select_for_update().get(pk=code)
    product = _locked_product(sale.product_id)
    product.quantity += sale.quantity
    product.save(update_fields=["quantity"])
    sale.delete()
    logger.info("Transaction %s deleted by %s, %d unit(s) returned", code, owner_id, sale.quantity)
