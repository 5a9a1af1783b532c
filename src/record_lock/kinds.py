"""
Registry mapping a resource kind name to its model, identifying payload
fields and expiry threshold.

Kinds are resolved once at the request boundary and the resulting
`ResourceKind` value is passed down to the lock manager, so no call site
branches on kind names.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from django.db import models

from .conf import OWNER_ID_MAX_LENGTH, get_config
from .exceptions import LockValidationError

#: Payload keys accepted for the owner identity.
OWNER_FIELDS = ("ownerId", "user_id")

#: Payload keys accepted for an explicit kind / resource id.
KIND_FIELD = "resourceKind"
RESOURCE_FIELD = "resourceId"


@dataclass(frozen=True)
class ResourceKind:
    name: str
    model: type[models.Model]
    id_field: str
    aliases: tuple[str, ...] = ()

    @property
    def id_fields(self) -> tuple[str, ...]:
        return (self.id_field, *self.aliases)

    @property
    def expiry(self) -> float:
        return get_config().expiry_for(self.name)

    @property
    def objects(self) -> models.Manager:
        return self.model._default_manager


_registry: dict[str, ResourceKind] = {}


def register(
    name: str,
    model: type[models.Model],
    id_field: str,
    aliases: tuple[str, ...] = (),
) -> ResourceKind:
    kind = ResourceKind(name=name, model=model, id_field=id_field, aliases=tuple(aliases))
    _registry[name] = kind
    return kind


def unregister(name: str) -> None:
    _registry.pop(name, None)


def registered_kinds() -> list[ResourceKind]:
    return list(_registry.values())


def get_kind(name: str | ResourceKind) -> ResourceKind:
    if isinstance(name, ResourceKind):
        return name
    try:
        return _registry[name]
    except KeyError:
        raise LockValidationError(
            f"Unknown resource kind {name!r}. Known: {sorted(_registry)}"
        ) from None


def resolve_kind(payload: Mapping[str, Any]) -> ResourceKind:
    """
    Pick the kind for a request payload.

    An explicit ``resourceKind`` wins. Otherwise the first registered kind
    whose identifying field is present in the payload is used; kinds
    registered later are checked first so a payload carrying both a
    transaction id and a product reference resolves to the transaction.
    """
    explicit = payload.get(KIND_FIELD)
    if explicit:
        return get_kind(explicit)

    for kind in reversed(_registry.values()):
        if any(payload.get(f) for f in kind.id_fields):
            return kind

    raise LockValidationError("Resource kind could not be determined from the request.")


def extract_request(
    payload: Mapping[str, Any],
    owner_id: str | None = None,
) -> tuple[ResourceKind, str, str]:
    """
    Return ``(kind, resource_id, owner_id)`` for a lock or mutation request.

    ``owner_id`` may be supplied from outside the payload (e.g. the
    ``X-Session-Id`` header); payload fields take precedence.
    Raises LockValidationError before any storage access when a value is
    missing.
    """
    owner = next((payload[f] for f in OWNER_FIELDS if payload.get(f)), None) or owner_id
    if not owner:
        raise LockValidationError("Owner id is required.")
    if len(str(owner)) > OWNER_ID_MAX_LENGTH:
        raise LockValidationError(
            f"Owner id is longer than {OWNER_ID_MAX_LENGTH} characters."
        )

    kind = resolve_kind(payload)

    resource_id = payload.get(RESOURCE_FIELD) or next(
        (payload[f] for f in kind.id_fields if payload.get(f)), None
    )
    if not resource_id:
        raise LockValidationError(f"Resource id is required for kind {kind.name!r}.")

    return kind, str(resource_id), str(owner)
