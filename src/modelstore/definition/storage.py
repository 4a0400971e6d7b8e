"""Storage adapters: descriptor normalization, validity policies and memory storage."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeAlias

from pydantic import ValidationError

from modelstore.errors import DefinitionError

from .schema import StorageDescriptor

if TYPE_CHECKING:
    from modelstore.guards import StateRegistry

    from .config import Config

GetAction: TypeAlias = Callable[[Any], Any]
SetAction: TypeAlias = Callable[[Any, Any, tuple[str, ...]], Any]
ListAction: TypeAlias = Callable[[Any], Any]
Validator: TypeAlias = Callable[[Any], bool]


@dataclass(frozen=True, slots=True)
class StorageAdapter:
    get: GetAction | None = None
    set: SetAction | None = None
    list: ListAction | None = None
    cache: bool | float = True
    validate: Validator | None = None


def _parse_descriptor(descriptor: object) -> StorageDescriptor:
    if isinstance(descriptor, StorageDescriptor):
        return descriptor
    if callable(descriptor):
        descriptor = {"get": descriptor}
    if not isinstance(descriptor, Mapping):
        raise DefinitionError(
            f"Storage must be a mapping or a callable: {type(descriptor).__name__}"
        )
    try:
        return StorageDescriptor.model_validate(dict(descriptor))
    except ValidationError as exc:
        details = "; ".join(error["msg"] for error in exc.errors())
        raise DefinitionError(f"Invalid storage definition: {details}") from exc


def validity_policy(cache: bool | float, states: StateRegistry) -> Validator | None:
    """Build the predicate deciding whether a cached instance may be reused."""

    if cache is True:
        return None

    if cache is False or cache == 0:
        return lambda cached: cached is None or states.timestamp(cached) == states.clock.now()

    lifetime = float(cache)
    return lambda cached: cached is None or states.timestamp(cached) + lifetime > states.clock.now()


def setup_storage(descriptor: object, states: StateRegistry) -> StorageAdapter:
    """Normalize a storage descriptor and derive its cache validity policy."""

    parsed = _parse_descriptor(descriptor)
    return StorageAdapter(
        get=parsed.get,
        set=parsed.set,
        list=parsed.list,
        cache=parsed.cache,
        validate=validity_policy(parsed.cache, states),
    )


def memory_storage(config: Config) -> StorageDescriptor:
    """In-process storage used when a definition declares none."""

    if not config.enumerable:
        return StorageDescriptor(
            get=lambda _id: {},
            # deleting a singleton resets it to its defaults
            set=lambda _id, values, _keys: {} if values is None else values,
        )

    def list_ids(id: Any = None) -> list[str]:  # noqa: A002
        if id:
            raise DefinitionError("Memory-based model definition does not support id")
        states = config.store.states
        return [
            entry.key
            for entry in config.store.cache.get_entries(config)
            if isinstance(entry.key, str)
            and entry.value is not None
            and not states.error(entry.value)
        ]

    return StorageDescriptor(
        get=lambda _id: None,
        set=lambda _id, values, _keys: values,
        list=list_ids,
    )
