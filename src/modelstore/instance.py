"""Immutable model instances, list instances and placeholders."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, overload

from modelstore.errors import AccessError

if TYPE_CHECKING:
    from modelstore.definition.config import Config

_GUARD_HINT = "use store.pending(), store.error(), or store.ready() guards"


class Model:
    """Frozen record produced by a config's creation pipeline.

    Plain values, references to other models (resolved through the store on every
    read) and memoized computed fields are all read as attributes.
    """

    __slots__ = ("__weakref__", "_config", "_id", "_memo", "_placeholder", "_refs", "_values")

    _config: Config
    _id: str | None
    _values: dict[str, Any]
    _refs: dict[str, str | None]
    _memo: dict[str, Any]
    _placeholder: bool

    @classmethod
    def build(
        cls,
        config: Config,
        id: str | None,  # noqa: A002
        values: dict[str, Any] | None = None,
        refs: dict[str, str | None] | None = None,
        *,
        placeholder: bool = False,
    ) -> Model:
        model = object.__new__(cls)
        object.__setattr__(model, "_config", config)
        object.__setattr__(model, "_id", id)
        object.__setattr__(model, "_values", values or {})
        object.__setattr__(model, "_refs", refs or {})
        object.__setattr__(model, "_memo", {})
        object.__setattr__(model, "_placeholder", placeholder)
        return model

    def __getattr__(self, name: str) -> Any:
        if name in Model.__slots__ or name.startswith("__"):
            raise AttributeError(name)
        if name == "id":
            return self._id

        config = self._config
        if self._placeholder:
            if name in config.keys:
                state = config.store.states.state_of(self).state
                raise AccessError(f"Model instance in {state} state - {_GUARD_HINT}")
        elif name in self._values:
            return self._values[name]
        elif name in self._refs:
            return config.store.get(config.references[name], self._refs[name])
        elif name in config.computed:
            if name not in self._memo:
                self._memo[name] = config.computed[name](self)
            return self._memo[name]

        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"Model instances are immutable: cannot set '{name}'")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"Model instances are immutable: cannot delete '{name}'")

    def __dir__(self) -> list[str]:
        return sorted({*object.__dir__(self), "id", *self._config.keys})

    def __repr__(self) -> str:
        name = self._config.name
        if self._placeholder:
            state = self._config.store.states.state_of(self).state
            return f"<{name} placeholder id={self._id!r} state={state}>"
        fields = ", ".join(f"{key}={value!r}" for key, value in asdict(self).items())
        return f"{name}({fields})"


class ModelList(Sequence[Any]):
    """Immutable sequence of models.

    For enumerable element configs only ids are stored and each element is resolved
    through the store when accessed.
    """

    __slots__ = ("__weakref__", "_config", "_items", "_key", "_placeholder")

    _config: Config
    _items: tuple[Any, ...]
    _key: str | None
    _placeholder: bool

    def __init__(
        self,
        config: Config,
        items: tuple[Any, ...] = (),
        *,
        key: str | None = None,
        placeholder: bool = False,
    ):
        object.__setattr__(self, "_config", config)
        object.__setattr__(self, "_items", items)
        object.__setattr__(self, "_key", key)
        object.__setattr__(self, "_placeholder", placeholder)

    @property
    def id(self) -> str | None:
        """Canonical id the list was read with; ``None`` for nested and unkeyed lists."""

        return self._key

    @property
    def ids(self) -> tuple[str, ...]:
        """Element ids without resolving the elements (enumerable lists only)."""

        self._check_access()
        if not self._config.enumerable:
            return ()
        return self._items

    def _check_access(self) -> None:
        if self._placeholder:
            state = self._config.store.states.state_of(self).state
            raise AccessError(f"Model list instance in '{state}' state - {_GUARD_HINT}")

    def _resolve(self, item: Any) -> Any:
        if self._config.enumerable:
            element = self._config.element
            assert element is not None
            return self._config.store.get(element.definition, item)
        return item

    @overload
    def __getitem__(self, index: int) -> Any: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Any, ...]: ...

    def __getitem__(self, index: int | slice) -> Any:
        self._check_access()
        if isinstance(index, slice):
            return tuple(self._resolve(item) for item in self._items[index])
        return self._resolve(self._items[index])

    def __len__(self) -> int:
        if self._placeholder:
            return 0
        return len(self._items)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"Model list instances are immutable: cannot set '{name}'")

    def __repr__(self) -> str:
        name = self._config.name
        if self._placeholder:
            state = self._config.store.states.state_of(self).state
            return f"<[{name}] placeholder state={state}>"
        return f"[{name}]{list(self._items)!r}"


def _plain(value: Any) -> Any:
    if isinstance(value, Model):
        return asdict(value)
    if isinstance(value, ModelList):
        return list_items(value)
    if isinstance(value, tuple):
        return list(value)
    return value


def list_items(models: ModelList) -> list[Any]:
    """Serialize a list instance: ids for enumerable elements, dicts otherwise."""

    models._check_access()  # noqa: SLF001
    if models._config.enumerable:  # noqa: SLF001
        return list(models._items)  # noqa: SLF001
    return [asdict(item) for item in models._items]  # noqa: SLF001


def asdict(model: Model) -> dict[str, Any]:
    """Serialize an instance to plain data.

    References and enumerable list elements become ids, nested objects become dicts
    and computed fields are left out.
    """

    config = model._config  # noqa: SLF001
    if model._placeholder:  # noqa: SLF001
        state = config.store.states.state_of(model).state
        raise AccessError(f"Model instance in {state} state - {_GUARD_HINT}")

    result: dict[str, Any] = {}
    if config.enumerable:
        result["id"] = model._id  # noqa: SLF001
    for key in config.keys:
        if key in model._values:  # noqa: SLF001
            result[key] = _plain(model._values[key])  # noqa: SLF001
        elif key in model._refs:  # noqa: SLF001
            result[key] = model._refs[key]  # noqa: SLF001
    return result


def model_values(model: Model) -> dict[str, Any]:
    """Serialized field values without the id, ready to be passed to ``set``."""

    values = asdict(model)
    values.pop("id", None)
    return values

