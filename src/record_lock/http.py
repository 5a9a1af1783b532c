from __future__ import annotations

import json
from functools import wraps
from typing import Any, Callable

from django.http import HttpRequest, HttpResponse, JsonResponse, QueryDict

from .exceptions import LockValidationError, RecordLockError

#: Header the front end sends its per-page-load session token in.
SESSION_HEADER = "X-Session-Id"


def parse_payload(request: HttpRequest) -> dict[str, Any]:
    """
    Read the request body as JSON, falling back to form data.

    Query parameters fill in keys the body does not carry.
    """
    payload: dict[str, Any] = {}
    if request.body:
        if request.content_type == "application/json":
            try:
                data = json.loads(request.body)
            except ValueError as exc:
                raise LockValidationError(f"Invalid JSON body: {exc}") from exc
            if not isinstance(data, dict):
                raise LockValidationError("JSON body must be an object.")
            payload.update(data)
        elif request.method == "POST":
            payload.update(request.POST.dict())
        else:
            payload.update(QueryDict(request.body).dict())

    for key, value in request.GET.items():
        payload.setdefault(key, value)
    return payload


def session_owner(request: HttpRequest, payload: dict[str, Any] | None = None) -> str | None:
    """Owner identity from the session header, else ``user_id`` in the payload."""
    owner = request.headers.get(SESSION_HEADER)
    if owner:
        return owner
    if payload:
        return payload.get("user_id") or payload.get("ownerId")
    return None


def error_response(exc: RecordLockError) -> JsonResponse:
    return JsonResponse(exc.as_dict(), status=exc.status)


def json_errors(view: Callable[..., HttpResponse]) -> Callable[..., HttpResponse]:
    """
    Turn `RecordLockError` (and subclasses raised by consumer apps) into
    JSON error responses. Anything else propagates to Django.
    """

    @wraps(view)
    def wrapper(request: HttpRequest, *args: Any, **kwargs: Any) -> HttpResponse:
        try:
            return view(request, *args, **kwargs)
        except RecordLockError as exc:
            return error_response(exc)

    return wrapper
