from __future__ import annotations

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from record_lock import fetch
from record_lock.http import json_errors, parse_payload, session_owner
from record_lock.manager import clear_if_expired

from . import services
from .models import PRODUCT, TRANSACTION, Product, Transaction


def _json(data: dict | list, *, status: int = 200) -> JsonResponse:
    """
    Small helper to keep responses consistent across endpoints.
    """
    return JsonResponse(data, status=status, safe=False)


def _ok(message: str, *, data: dict | None = None, status: int = 200, **extra) -> JsonResponse:
    payload = {"success": True, "message": message, **extra}
    if data is not None:
        payload["data"] = data
    return _json(payload, status=status)


def _listing(queryset, kind: str, owner_id: str | None) -> list[dict]:
    now = timezone.now()
    rows = []
    for obj in queryset:
        clear_if_expired(obj, kind, now)
        rows.append(obj.as_dict(owner_id))
    return rows


@csrf_exempt  # callers identify themselves with X-Session-Id only
@require_http_methods(["GET", "POST", "PUT", "DELETE"])
@json_errors
def products(request: HttpRequest) -> HttpResponse:
    """
    Stock list endpoint.

    GET    list, or one product with ``?kode_brg=`` (stale locks are cleared
           on the way out)
    POST   create ``{nama_brg, satuan, jml_stok}``
    PUT    update ``{kode_brg, nama_brg, satuan, jml_stok}`` under the edit lock
    DELETE ``?kode_brg=`` under the edit lock; 409 while sales reference it
    """
    payload = parse_payload(request)
    owner_id = session_owner(request, payload)

    if request.method == "GET":
        code = payload.get("kode_brg")
        if code:
            return _json(fetch(PRODUCT, code).as_dict(owner_id))
        return _json(_listing(Product.objects.all(), PRODUCT, owner_id))

    if request.method == "POST":
        product = services.create_product(
            payload.get("nama_brg"), payload.get("satuan"), payload.get("jml_stok")
        )
        return _ok("Product saved", data=product.as_dict(owner_id), status=201)

    if request.method == "PUT":
        services.clean_product(
            payload.get("nama_brg"), payload.get("satuan"), payload.get("jml_stok")
        )
        product = services.update_product(
            payload.get("kode_brg"),
            owner_id,
            name=payload.get("nama_brg"),
            unit=payload.get("satuan"),
            quantity=payload.get("jml_stok"),
        )
        product.refresh_from_db()
        return _ok("Product updated", data=product.as_dict(owner_id))

    code = payload.get("kode_brg")
    services.delete_product(code, owner_id)
    return _ok("Product deleted", kode_brg=code)


@csrf_exempt  # callers identify themselves with X-Session-Id only
@require_http_methods(["GET", "POST", "PUT", "DELETE"])
@json_errors
def transactions(request: HttpRequest) -> HttpResponse:
    """
    Sales endpoint.

    GET    list (newest first), or one sale with ``?kd_trans=``
    POST   create ``{tgl_trans, kode_brg, jml_jual}``; rejected up front when
           the product has fewer units in stock
    PUT    update ``{kd_trans, tgl_trans, kode_brg, jml_jual}`` under the edit lock
    DELETE ``{kd_trans}`` under the edit lock; units go back into stock
    """
    payload = parse_payload(request)
    owner_id = session_owner(request, payload)

    if request.method == "GET":
        code = payload.get("kd_trans")
        if code:
            return _json(fetch(TRANSACTION, code).as_dict(owner_id))
        return _json(_listing(Transaction.objects.all(), TRANSACTION, owner_id))

    if request.method == "POST":
        sale = services.create_transaction(
            owner_id, payload.get("tgl_trans"), payload.get("kode_brg"), payload.get("jml_jual")
        )
        return _ok("Transaction saved", data=sale.as_dict(owner_id), status=201)

    if request.method == "PUT":
        services.clean_transaction(
            payload.get("tgl_trans"), payload.get("kode_brg"), payload.get("jml_jual")
        )
        sale = services.update_transaction(
            payload.get("kd_trans"),
            owner_id,
            tx_date=payload.get("tgl_trans"),
            product_code=payload.get("kode_brg"),
            quantity=payload.get("jml_jual"),
        )
        sale.refresh_from_db()
        return _ok("Transaction updated", data=sale.as_dict(owner_id))

    code = payload.get("kd_trans")
    services.delete_transaction(code, owner_id)
    return _ok("Transaction deleted", kd_trans=code)
