"""The store: cached reads, asynchronous mutations and explicit invalidation."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Mapping
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final, TypeAlias, TypeVar

from modelstore import _internal
from modelstore.common.cache import KeyedCache
from modelstore.common.clock import FrameClock, LoopScheduler
from modelstore.common.ids import stringify_id
from modelstore.config.settings import StoreSettings
from modelstore.definition.config import Bootstrapper
from modelstore.drafts import DraftRegistry
from modelstore.errors import (
    DefinitionError,
    MutationError,
    NotFoundError,
    StaleReferenceError,
)
from modelstore.guards import EXPIRED, State, StateRegistry
from modelstore.instance import Model, ModelList, asdict

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from modelstore.common.clock import ResolutionClock, Scheduler
    from modelstore.definition.config import Config

log = getLogger(__name__)

_UNSET: Final = object()

StateSetter: TypeAlias = "Callable[[State, Any], None]"

_T = TypeVar("_T", bound=Model | ModelList)


def _with_id(key: str | None) -> str:
    return f" with '{key}' id" if key is not None else ""


class Store:
    """Registry of configs and their cached instances.

    Reads are synchronous and return either a cached instance, a freshly created
    one, or a placeholder whose state is pending or error. Writes always go through
    ``set`` and settle asynchronously.
    """

    def __init__(
        self,
        settings: StoreSettings | None = None,
        *,
        clock: ResolutionClock | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.settings = settings or StoreSettings()
        self.clock = clock or FrameClock(self.settings.tick_seconds)
        self.scheduler = scheduler or LoopScheduler()
        self.cache = KeyedCache()
        self.states = StateRegistry(self.clock)
        self.definitions = Bootstrapper(self)
        self.drafts = DraftRegistry(self)

    def bootstrap(self, definition: Any) -> Config:
        return self.definitions.bootstrap(definition)

    # reads

    def get(self, definition: Any, id: Any = None) -> Any:  # noqa: A002
        """Return the instance of ``definition`` (with ``id`` for enumerable ones)."""

        config = self.bootstrap(definition)
        if config.storage.get is None:
            raise DefinitionError("Provided model definition does not support 'get' method")

        key: str | None = None
        if config.enumerable:
            key = stringify_id(id)
            if not config.is_list and not key:
                raise DefinitionError(
                    f"Provided model definition requires non-empty id: {id!r}"
                )
        elif id is not None:
            raise DefinitionError(f"Provided model definition does not support id: {id!r}")

        entry = self.cache.get_entry(config, key)
        revalidate = entry.stale and entry.value is not None
        return self.cache.get(
            config,
            key,
            partial(self._resolve, config, key, id, revalidate),
            config.storage.validate,
        )

    def current(self, instance: Model | ModelList) -> Any:
        """Read the instance now occupying the cache slot of ``instance``."""

        if not isinstance(instance, Model | ModelList):
            raise DefinitionError(
                f"The first argument must be a model instance: {type(instance).__name__}"
            )
        config = _internal.owner_config(instance)
        if config.is_list:
            return self.get([config.definition], instance.id)
        return self.get(config.definition, instance.id if config.enumerable else None)

    def _resolve(
        self,
        config: Config,
        key: str | None,
        id: Any,  # noqa: A002
        revalidate: bool,
        _target: Config,
        cached: Any,
    ) -> Any:
        if cached is not None and self.states.pending(cached):
            return cached

        contexts_valid = True
        for context in config.contexts:
            if self.cache.get(context, context, self._tick_marker) == self.clock.now():
                contexts_valid = False

        validate = config.storage.validate
        if (
            not revalidate
            and contexts_valid
            and cached is not None
            and (validate is None or validate(cached))
        ):
            return cached

        try:
            assert config.storage.get is not None
            result = config.storage.get(id)
            if inspect.isawaitable(result):
                loop = _running_loop(result)
                target = cached if cached is not None else config.placeholder(key)
                task = loop.create_task(self._settle(config, key, result, target))
                return self.states.set_state(target, State.PENDING, task)

            model = config.create(self._shape(config, key, result), key=key)
            if cached is not None:
                self.states.expire(cached)
            return self.states.touch(model)
        except Exception as exc:  # noqa: BLE001
            target = cached if cached is not None else config.placeholder(key)
            return self.states.touch(self._map_error(target, exc))

    def _tick_marker(self, _target: Config, last: float | None) -> float:
        return last if last is not None else self.clock.now()

    @staticmethod
    def _shape(config: Config, key: str | None, data: Any) -> Any:
        if config.is_list:
            if not isinstance(data, list | tuple | ModelList):
                raise NotFoundError(f"Model instances{_with_id(key)} do not exist: {data!r}")
            return data
        if isinstance(data, Model):
            data = asdict(data)
        if not isinstance(data, Mapping):
            raise NotFoundError(f"Model instance{_with_id(key)} does not exist: {data!r}")
        if key is None:
            return data
        return {"id": key, **data}

    async def _settle(
        self,
        config: Config,
        key: str | None,
        pending: Awaitable[Any],
        target: Model | ModelList,
    ) -> Any:
        try:
            data = await pending
            model = config.create(self._shape(config, key, data), key=key)
        except Exception as exc:  # noqa: BLE001
            return self.sync(config, key, self._map_error(target, exc))

        self.states.reset_state(target)
        return self.sync(config, key, model)

    # writes

    def sync(
        self,
        config: Config,
        key: str | None,
        value: Any,
        *,
        invalidate: bool = False,
    ) -> Any:
        """Write ``value`` as the current instance of ``(config, key)``."""

        def write(_target: Config, next_value: Any, last: Any) -> Any:
            fresh = last is None or not self.states.ready(last)
            if last is not None and last is not next_value:
                self.states.expire(last)
            if invalidate and (
                (config.external and next_value is not None)
                or fresh
                or self.states.error(next_value)
            ):
                config.invalidate()
            return next_value

        self.cache.set(config, key, write, value, force=True)
        return value

    def set(self, target: Any, values: Any = _UNSET) -> asyncio.Future[Any]:
        """Create, update or delete (``values=None``) an instance through its storage.

        ``target`` is a model definition (create, or update a singleton) or a bound
        instance (update or delete). The returned future settles with the new
        instance.
        """

        binding = self.states.binding(target)
        if binding is EXPIRED:
            raise StaleReferenceError(
                "Provided model instance has expired. Haven't you used stale value?"
            )
        instance = binding is not None
        config: Config = binding if instance else self.bootstrap(target)  # type: ignore[assignment]

        if config.is_list:
            raise DefinitionError("Listing model definition does not support 'set' method")
        if config.storage.set is None:
            raise DefinitionError(
                "Provided model definition storage does not support 'set' method"
            )

        loop = asyncio.get_running_loop()
        key: str | None = target.id if instance else None
        if values is _UNSET:
            values = {}

        created: Model | ModelList | None = None

        def set_state(state: State, value: Any) -> None:
            nonlocal created
            if instance:
                self.states.set_state(target, state, value)
                return
            entry = self.cache.get_entry(config, key)
            if entry.value is None:
                if state is not State.PENDING or config.enumerable:
                    return
                created = config.placeholder(key)
                self.cache.set(config, key, lambda _t, placeholder, _last: placeholder, created)
            self.states.set_state(entry.value, state, value)
            if state is State.ERROR and entry.value is created:
                # a failed first write leaves nothing behind for the next read
                self.cache.invalidate(config, key, clear_value=True)

        try:
            if config.enumerable and not instance and not isinstance(values, Mapping):
                raise DefinitionError(
                    f"Model values must be taken from an object instance: {values!r}"
                )
            if values is not None:
                if not isinstance(values, Mapping):
                    raise DefinitionError(f"Model values must be an object: {values!r}")
                if "id" in values:
                    raise DefinitionError(
                        f"Model values must not have 'id' property: {values['id']!r}"
                    )

            last = target if instance else self._current_singleton(config)
            local = config.create(values, last)
            keys = tuple(values) if values else ()
            if local is not None:
                key = local.id

            task = loop.create_task(
                self._commit(config, key if instance else None, key, local, keys, set_state)
            )
            set_state(State.PENDING, task)
            return task
        except Exception as exc:  # noqa: BLE001
            set_state(State.ERROR, exc)
            future = loop.create_future()
            future.set_exception(exc)
            return future

    def _current_singleton(self, config: Config) -> Model | None:
        if config.enumerable:
            return None
        value = self.cache.get_entry(config, None).value
        return value if self.states.ready(value) else None

    async def _commit(
        self,
        config: Config,
        storage_id: str | None,
        key: str | None,
        local: Model | None,
        keys: tuple[str, ...],
        set_state: StateSetter,
    ) -> Any:
        try:
            assert config.storage.set is not None
            data = config.storage.set(storage_id, local, keys)
            if inspect.isawaitable(data):
                data = await data

            result = local if data is local else config.create(data)
            if storage_id is not None and result is not None and result.id != storage_id:
                raise MutationError(
                    f"Local and storage data must have the same id: "
                    f"'{storage_id}', '{result.id}'"
                )

            if result is None:
                result = self._map_error(
                    config.placeholder(key),
                    NotFoundError(f"Model instance{_with_id(key)} does not exist: None"),
                    log_error=False,
                )
            else:
                key = result.id

            log.debug("Model instance%s written to storage", _with_id(key))
            return self.sync(config, key, result, invalidate=True)
        except Exception as exc:
            set_state(State.ERROR, exc)
            raise

    def clear(self, target: Any, clear_value: bool = True) -> None:
        """Invalidate one instance or every instance of a definition.

        With ``clear_value`` the entries are dropped; otherwise they are kept and the
        next read revalidates them against storage.
        """

        if not isinstance(target, Model | ModelList | Mapping | list | tuple):
            raise DefinitionError(
                "The first argument must be a model instance or a model definition: "
                f"{target!r}"
            )

        binding = self.states.binding(target)
        if binding is EXPIRED:
            raise StaleReferenceError(
                "Provided model instance has expired. "
                "Haven't you used stale value from the outer scope?"
            )
        if binding is not None:
            self.cache.invalidate(binding, target.id, clear_value=clear_value)
            return

        if isinstance(target, Model | ModelList) or not self.definitions.is_known(target):
            raise DefinitionError(
                "Model definition must be used before - "
                "passed argument is probably not a model definition"
            )
        self.cache.invalidate_all(self.bootstrap(target), clear_value=clear_value)

    # guards

    def ready(self, value: object) -> bool:
        return self.states.ready(value)

    def pending(self, value: object) -> Any:
        return self.states.pending(value)

    def error(self, value: object) -> Any:
        return self.states.error(value)

    # drafts

    def draft(self, definition: Any, id: Any = None) -> Model:  # noqa: A002
        return self.drafts.open(definition, id)

    def submit(self, draft: Model) -> asyncio.Future[Any]:
        return self.drafts.submit(draft)

    def _map_error(
        self,
        target: _T,
        exc: Exception,
        *,
        log_error: bool = True,
    ) -> _T:
        if log_error and self.settings.log_errors:
            log.error("Model instance %r failed: %s", target.id, exc)
        return self.states.set_state(target, State.ERROR, exc)


def _running_loop(awaitable: Awaitable[Any]) -> asyncio.AbstractEventLoop:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        raise DefinitionError(
            "Asynchronous storage requires a running event loop"
        ) from None
