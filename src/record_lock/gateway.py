from __future__ import annotations

from contextlib import contextmanager
from functools import wraps
from inspect import signature
from typing import Any, Callable, Iterator, Mapping, TypeVar

from django.db import DatabaseError, transaction
from django.db.models import ProtectedError

from . import manager
from .conf import get_config
from .exceptions import (
    LockConflict,
    LockStorageError,
    LockValidationError,
    ReferentialIntegrityError,
)
from .kinds import ResourceKind, get_kind
from .manager import LockResult

T = TypeVar("T")


@contextmanager
def hold(
    kind: ResourceKind | str,
    resource_id: str,
    owner_id: str,
    *,
    auto_release: bool | None = None,
) -> Iterator[LockResult]:
    """
    Run a block only while ``owner_id`` holds the lock on the resource.

    The lock is (re-)acquired on entry, which also refreshes an existing
    lock of the same owner.

    Parameters
    ----------
    kind : ResourceKind | str
        Resource kind or its registered name.

    resource_id, owner_id : str
        Row primary key and the editor identity.

    auto_release : bool | None
        Release the lock after the block completes successfully.

        - None: use ``RECORD_LOCK["AUTO_RELEASE_ON_MUTATE"]``.
        - False: keep the lock so the editing session can continue.

    Raises
    ------
    LockConflict
        If another owner holds a fresh lock. The block does not run.

    Example
    -------
    >>> with hold("product", "PRD_0A1B_C0FFEE", owner_id="s-42"):
    ...     Product.objects.filter(pk="PRD_0A1B_C0FFEE").update(unit="box")

    Notes
    -----
    A failing block leaves the lock standing; callers must not assume that
    a failed mutation released it.
    """
    kind = get_kind(kind)
    result = manager.acquire(kind, resource_id, owner_id)

    if not result.granted:
        raise LockConflict(
            f"{kind.name} {resource_id!r} is locked by another owner.",
            locked_by=result.locked_by,
            locked_at=result.locked_at,
        )

    if auto_release is None:
        auto_release = get_config().auto_release_on_mutate

    yield result

    if auto_release:
        manager.release(kind, resource_id, owner_id)


def _bound_value(
    name: str,
    fn: Callable[..., Any],
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> Any:
    """
    Look up the value passed for parameter ``name``.

    We bind (args, kwargs) against the function signature so the gated
    function can receive the resource/owner ids positionally or by keyword.
    """
    bound = signature(fn).bind_partial(*args, **kwargs)
    bound.apply_defaults()
    values: Mapping[str, Any] = bound.arguments

    if name not in signature(fn).parameters:
        raise TypeError(
            f"record_lock: lock_gated refers to argument '{name}', "
            f"but {fn.__name__}() has no such parameter. "
            f"Available: {sorted(signature(fn).parameters)}"
        )
    return values.get(name)


def _mutate(kind: ResourceKind, resource_id: str, fn: Callable[[], T]) -> T:
    try:
        with transaction.atomic():
            return fn()
    except ProtectedError as exc:
        raise ReferentialIntegrityError(
            f"{kind.name} {resource_id!r} is still referenced by other records."
        ) from exc
    except DatabaseError as exc:
        raise LockStorageError(
            f"Failed to mutate {kind.name} {resource_id!r}: {exc}"
        ) from exc


def lock_gated(
    kind: ResourceKind | str,
    *,
    resource: str = "resource_id",
    owner: str = "owner_id",
    auto_release: bool | None = None,
):
    """
    Decorator that runs a mutation only under a confirmed lock grant.

    Examples
    --------
    @lock_gated("product", resource="code")
    def rename(code, owner_id, name):
        ...

    Behavior
    --------
    - missing resource/owner value: LockValidationError, no store access
    - lock held by someone else: LockConflict, function not called
    - granted: function runs inside ``transaction.atomic()``; on failure
      the mutation is rolled back and the lock stays
    - ``ProtectedError`` from the ORM becomes ReferentialIntegrityError
    """

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            resource_id = _bound_value(resource, fn, args, kwargs)
            owner_id = _bound_value(owner, fn, args, kwargs)
            if not resource_id or not owner_id:
                raise LockValidationError("Resource id and owner id are required.")

            resolved = get_kind(kind)
            with hold(resolved, resource_id, owner_id, auto_release=auto_release):
                return _mutate(resolved, resource_id, lambda: fn(*args, **kwargs))

        return wrapper

    return decorator


def gated_update(
    kind: ResourceKind | str,
    resource_id: str,
    owner_id: str,
    mutate: Callable[[], T],
    *,
    auto_release: bool | None = None,
) -> T:
    """Functional form of `lock_gated` for update callbacks."""
    if not resource_id or not owner_id:
        raise LockValidationError("Resource id and owner id are required.")

    kind = get_kind(kind)
    with hold(kind, resource_id, owner_id, auto_release=auto_release):
        return _mutate(kind, resource_id, mutate)


def gated_delete(
    kind: ResourceKind | str,
    resource_id: str,
    owner_id: str,
    delete: Callable[[], T],
) -> T:
    """
    Delete under the lock. The lock columns go away with the row, so there
    is nothing to release afterwards.
    """
    return gated_update(kind, resource_id, owner_id, delete, auto_release=False)
