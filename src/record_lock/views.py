from __future__ import annotations

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from . import manager
from .exceptions import LockConflict
from .http import json_errors, parse_payload, session_owner
from .kinds import extract_request


@csrf_exempt  # callers authenticate by session token only
@require_http_methods(["POST", "DELETE"])
@json_errors
def lock_view(request: HttpRequest) -> HttpResponse:
    """
    Acquire (POST) or release (DELETE) the edit lock on one resource.

    Body: ``{"resourceId", "ownerId", "resourceKind"}``. The kind may be
    left out when the payload carries a kind-specific id field such as
    ``kd_trans`` or ``kode_brg``; the owner may come from ``X-Session-Id``.

    Responses
    ---------
    POST   200 granted, 423 held by someone else, 400 missing fields,
           404 unknown resource
    DELETE 200 released, 404 not found or not held by this owner
    """
    payload = parse_payload(request)
    kind, resource_id, owner_id = extract_request(payload, session_owner(request))

    if request.method == "POST":
        result = manager.acquire(kind, resource_id, owner_id)
        if not result.granted:
            raise LockConflict(
                "Resource is being edited by another owner.",
                locked_by=result.locked_by,
                locked_at=result.locked_at,
            )
        return JsonResponse(
            {
                "success": True,
                "message": "Lock acquired",
                "locked_by": result.locked_by,
                "locked_at": result.locked_at.isoformat(),
            }
        )

    if not manager.release(kind, resource_id, owner_id):
        return JsonResponse(
            {
                "error": "Lock not released: resource not found or not locked by this owner",
                "code": "not_found",
            },
            status=404,
        )
    return JsonResponse({"success": True, "message": "Lock released"})
