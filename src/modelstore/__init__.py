"""In-process model store with cached reads and asynchronous storage adapters.

The module level functions operate on a lazily created default store configured
from the environment; construct a :class:`Store` directly for an isolated one.
"""

from __future__ import annotations

from importlib import metadata
from typing import TYPE_CHECKING, Any

from .config import StoreSettings, configure_logging, get_store_settings
from .definition import StorageDescriptor, connect
from .errors import (
    AccessError,
    DefinitionError,
    MutationError,
    NotFoundError,
    PendingStateError,
    StaleReferenceError,
    StoreError,
)
from .guards import EXPIRED, State
from .instance import Model, ModelList, asdict, model_values
from .store import Store

if TYPE_CHECKING:
    import asyncio

try:
    __version__ = metadata.version("modelstore")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0+local"

_default_store: Store | None = None


def get_default_store() -> Store:
    global _default_store  # noqa: PLW0603
    if _default_store is None:
        _default_store = Store(get_store_settings())
    return _default_store


def set_default_store(store: Store | None) -> None:
    """Replace the default store; ``None`` recreates it on next use."""

    global _default_store  # noqa: PLW0603
    _default_store = store


def get(definition: Any, id: Any = None) -> Any:  # noqa: A002
    return get_default_store().get(definition, id)


def set(target: Any, *values: Any) -> asyncio.Future[Any]:  # noqa: A001
    """Write through the default store; pass ``None`` as values to delete."""

    return get_default_store().set(target, *values)


def clear(target: Any, clear_value: bool = True) -> None:
    get_default_store().clear(target, clear_value)


def ready(value: object) -> bool:
    return get_default_store().ready(value)


def pending(value: object) -> Any:
    return get_default_store().pending(value)


def error(value: object) -> Any:
    return get_default_store().error(value)


def current(instance: Model | ModelList) -> Any:
    return get_default_store().current(instance)


def draft(definition: Any, id: Any = None) -> Model:  # noqa: A002
    return get_default_store().draft(definition, id)


def submit(instance: Model) -> asyncio.Future[Any]:
    return get_default_store().submit(instance)


__all__ = [
    "EXPIRED",
    "AccessError",
    "DefinitionError",
    "Model",
    "ModelList",
    "MutationError",
    "NotFoundError",
    "PendingStateError",
    "StaleReferenceError",
    "State",
    "StorageDescriptor",
    "Store",
    "StoreError",
    "StoreSettings",
    "__version__",
    "asdict",
    "clear",
    "configure_logging",
    "connect",
    "current",
    "draft",
    "error",
    "get",
    "get_default_store",
    "get_store_settings",
    "model_values",
    "pending",
    "ready",
    "set",
    "set_default_store",
    "submit",
]
