"""Model and list configs, and the bootstrapper that compiles definitions into them."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from modelstore.errors import DefinitionError
from modelstore.guards import State
from modelstore.instance import Model, ModelList

from .fields import ComputedField, Field, ReferenceField, build_list, build_model, compile_field
from .storage import StorageAdapter, memory_storage, setup_storage

if TYPE_CHECKING:
    from modelstore.common.cache import KeyedCache
    from modelstore.common.clock import Scheduler
    from modelstore.store import Store

log = getLogger(__name__)


class _Connect:
    __slots__ = ()

    def __repr__(self) -> str:
        return "modelstore.connect"


connect: Final = _Connect()
"""Definition key holding the storage descriptor of an external model."""


class InvalidationDebouncer:
    """Coalesce parent invalidations of one config into a single flush per scheduler turn."""

    def __init__(self, config: Config, cache: KeyedCache, scheduler: Scheduler) -> None:
        self._config = config
        self._cache = cache
        self._scheduler = scheduler
        self._scheduled = False

    @property
    def scheduled(self) -> bool:
        return self._scheduled

    def __call__(self) -> None:
        if self._scheduled:
            return
        self._scheduled = True
        self._scheduler.call_soon(self._flush)

    def _flush(self) -> None:
        self._scheduled = False
        config = self._config
        if self._cache.get_entry(config, config).contexts:
            log.debug("Invalidating lists depending on %s definition", config.name)
            self._cache.invalidate(config, config, clear_value=True)


@dataclass(eq=False, slots=True, weakref_slot=True)
class Config:
    """Compiled form of one model (or list) definition."""

    definition: Any
    store: Store
    enumerable: bool = False
    external: bool = False
    is_list: bool = False
    nested: bool = False
    name: str = "Model"
    element: Config | None = None
    fields: tuple[Field, ...] = ()
    keys: tuple[str, ...] = ()
    computed: dict[str, Callable[[Model], Any]] = field(default_factory=dict[str, Any])
    references: dict[str, Any] = field(default_factory=dict[str, Any])
    storage: StorageAdapter = field(default_factory=StorageAdapter)
    contexts: set[Config] = field(default_factory=set["Config"])
    invalidate: Callable[[], None] = lambda: None

    def create(self, data: Any, last: Model | None = None, *, key: str | None = None) -> Any:
        """Build an instance from raw data, reusing ``last`` for omitted fields.

        ``key`` is the cache key a top-level list is stored under.
        """

        if self.is_list:
            return build_list(self, data, key)
        return build_model(self, data, last)

    def placeholder(self, id: str | None = None) -> Model | ModelList:  # noqa: A002
        """Return a fresh pending placeholder; no field of it can be read."""

        instance: Model | ModelList
        if self.is_list:
            instance = ModelList(self, key=id, placeholder=True)
        else:
            instance = Model.build(self, id, placeholder=True)
        return self.store.states.set_state(instance, State.PENDING)


class Bootstrapper:
    """Compile and memoize configs by definition identity."""

    def __init__(self, store: Store) -> None:
        self._store = store
        self._models: dict[int, Config] = {}
        self._lists: dict[int, Config] = {}
        # definitions are kept alive so their ids are never reused
        self._definitions: list[Any] = []

    def is_known(self, definition: Any) -> bool:
        if isinstance(definition, list | tuple):
            return bool(definition) and id(definition[0]) in self._lists
        return id(definition) in self._models

    def bootstrap(self, definition: Any) -> Config:
        if isinstance(definition, list | tuple):
            if len(definition) != 1:
                raise DefinitionError(
                    "Listing model definition must be an array with a single model definition"
                )
            return self.setup_list(definition[0])
        return self.setup_model(definition)

    def setup_model(self, definition: Any, *, name: str = "Model") -> Config:
        if not isinstance(definition, Mapping):
            raise DefinitionError(
                f"Model definition must be an object: {type(definition).__name__}"
            )

        config = self._models.get(id(definition))
        if config is not None:
            return config

        descriptor = definition.get(connect)
        keys = [key for key in definition if key is not connect]
        for key in keys:
            if not isinstance(key, str):
                raise DefinitionError(f"Model definition keys must be strings: {key!r}")

        store = self._store
        config = Config(
            definition=definition,
            store=store,
            enumerable="id" in definition,
            external=descriptor is not None,
            name=name,
        )
        config.invalidate = InvalidationDebouncer(config, store.cache, store.scheduler)
        config.storage = setup_storage(
            descriptor if descriptor is not None else memory_storage(config), store.states
        )

        compiled = tuple(compile_field(key, definition[key], config, self) for key in keys)
        config.fields = compiled
        config.keys = tuple(key for key in keys if key != "id")
        config.computed = {
            item.key: item.compute for item in compiled if isinstance(item, ComputedField)
        }
        config.references = {
            item.key: item.config.definition
            for item in compiled
            if isinstance(item, ReferenceField)
        }

        self._models[id(definition)] = config
        self._definitions.append(definition)
        log.debug(
            "Bootstrapped model definition: keys=%s enumerable=%s external=%s",
            config.keys,
            config.enumerable,
            config.external,
        )
        return config

    def setup_list(self, definition: Any, *, nested: bool = False) -> Config:
        config = self._lists.get(id(definition))
        if config is not None:
            if config.nested and not nested:
                raise DefinitionError(
                    "Nested listing definition is not supported in the store: "
                    "use a definition with 'id' key"
                )
            if not nested:
                _check_listable(config)
            return config

        element = self.setup_model(definition)
        config = Config(
            definition=definition,
            store=self._store,
            enumerable=element.enumerable,
            external=element.external,
            is_list=True,
            nested=nested and not element.enumerable,
            name=element.name,
            element=element,
            contexts={element},
            storage=setup_storage(
                {"cache": element.storage.cache, "get": element.storage.list},
                self._store.states,
            ),
        )
        if not nested:
            _check_listable(config)

        self._lists[id(definition)] = config
        log.debug("Bootstrapped list definition: enumerable=%s", config.enumerable)
        return config


def _check_listable(config: Config) -> None:
    element = config.element
    assert element is not None
    if not element.enumerable:
        raise DefinitionError("Listing model definition requires 'id' key set to True")
    if element.storage.list is None:
        raise DefinitionError("Model definition storage must support 'list' action")
