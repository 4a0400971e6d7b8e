"""Field compiler and the creation pipeline.

Each entry of a model definition compiles once into a tagged field variant. Creating
an instance runs every variant of the config, in declaration order, against the
incoming data and the previous instance.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeAlias

from modelstore import _internal
from modelstore.common.ids import new_id, stringify_id
from modelstore.errors import DefinitionError
from modelstore.instance import Model, ModelList, asdict

from .coercion import Coercion, is_primitive, type_constructor

if TYPE_CHECKING:
    from .config import Bootstrapper, Config


@dataclass(frozen=True, slots=True)
class IdField:
    key: str = "id"


@dataclass(frozen=True, slots=True)
class PrimitiveField:
    key: str
    coerce: Coercion
    default: Any


@dataclass(frozen=True, slots=True)
class ComputedField:
    key: str
    compute: Callable[[Model], Any]


@dataclass(frozen=True, slots=True)
class ObjectField:
    """Nested model embedded in place."""

    key: str
    config: Config


@dataclass(frozen=True, slots=True)
class ReferenceField:
    """Nested model that is enumerable or external, resolved through the store."""

    key: str
    config: Config


@dataclass(frozen=True, slots=True)
class ArrayField:
    key: str
    coerce: Coercion
    default: tuple[Any, ...]


@dataclass(frozen=True, slots=True)
class ListField:
    key: str
    config: Config
    defaults: tuple[Any, ...]


Field: TypeAlias = (
    IdField | PrimitiveField | ComputedField | ObjectField | ReferenceField | ArrayField | ListField
)


def _is_sequence(value: object) -> bool:
    return isinstance(value, list | tuple | ModelList)


def compile_field(key: str, default: Any, owner: Config, bootstrapper: Bootstrapper) -> Field:
    if key == "id":
        if default is not True:
            raise DefinitionError(
                f"The 'id' property value must be true or undefined: {type(default).__name__}"
            )
        return IdField()

    if is_primitive(default):
        return PrimitiveField(key, type_constructor(default, key), default)

    if default is None:
        raise DefinitionError(f"The value for the '{key}' must be an object instance: None")

    if isinstance(default, list | tuple):
        if not default:
            raise DefinitionError(f"The value for the '{key}' array must not be empty")
        first = default[0]

        if not isinstance(first, Mapping):
            coerce = type_constructor(first, key)
            return ArrayField(key, coerce, tuple(coerce(item) for item in default))

        list_config = bootstrapper.setup_list(first, nested=True)
        if list_config.enumerable and len(default) > 1:
            options = default[1]
            if not isinstance(options, Mapping):
                raise DefinitionError(
                    f"Options for '{key}' array property must be an object instance: "
                    f"{type(options).__name__}"
                )
            if options.get("loose"):
                owner.contexts.add(bootstrapper.setup_model(first))
        return ListField(key, list_config, (first,))

    if isinstance(default, Mapping):
        nested_config = bootstrapper.setup_model(default)
        if nested_config.enumerable or nested_config.external:
            return ReferenceField(key, nested_config)
        return ObjectField(key, nested_config)

    if callable(default):
        return ComputedField(key, default)

    raise DefinitionError(
        f"The value for the '{key}' must be a primitive, object, array or function: "
        f"{type(default).__name__}"
    )


@dataclass(slots=True)
class _Parts:
    id: str | None = None
    values: dict[str, Any] = field(default_factory=dict[str, Any])
    refs: dict[str, Any] = field(default_factory=dict[str, Any])


def _check_sequence(key: str, value: object) -> None:
    if not _is_sequence(value):
        raise DefinitionError(
            f"The value for '{key}' property must be an array: {type(value).__name__}"
        )


def _apply_reference(
    ref: ReferenceField,
    parts: _Parts,
    data: Mapping[str, Any],
    last: Model | None,
) -> None:
    key, config = ref.key, ref.config

    if key in data:
        nested = data[key]
        if nested is None:
            parts.values[key] = None
            return
        if isinstance(nested, Model | Mapping):
            bound = config.store.states.config_of(nested)
            if bound is not None:
                if bound.definition is not config.definition:
                    raise DefinitionError("Model instance must match the definition")
                parts.refs[key] = nested.id  # type: ignore[union-attr]
                return
            # full payload: authoritative update of the related instance
            model = config.create(nested)
            config.store.sync(config, model.id, model)
            parts.refs[key] = model.id
            return
        parts.refs[key] = nested
        return

    if last is not None and _internal.has_ref(last, key):
        parts.refs[key] = _internal.stored_ref(last, key)
    else:
        parts.values[key] = None


def apply_field(
    compiled: Field,
    parts: _Parts,
    data: Mapping[str, Any],
    last: Model | None,
) -> None:
    """Apply one compiled field to the instance under construction."""

    if isinstance(compiled, ComputedField):
        return

    if isinstance(compiled, IdField):
        if last is not None:
            parts.id = last.id
        elif "id" in data:
            parts.id = str(data["id"])
        else:
            parts.id = new_id()
        return

    if isinstance(compiled, ReferenceField):
        _apply_reference(compiled, parts, data, last)
        return

    key = compiled.key
    inherited = last is not None and _internal.has_value(last, key)
    previous = _internal.stored_value(last, key) if inherited else None  # type: ignore[arg-type]

    if isinstance(compiled, PrimitiveField):
        if key in data:
            parts.values[key] = compiled.coerce(data[key])
        elif inherited:
            parts.values[key] = previous
        else:
            parts.values[key] = compiled.default

    elif isinstance(compiled, ObjectField):
        if key in data:
            parts.values[key] = compiled.config.create(data[key], previous)
        elif inherited:
            parts.values[key] = previous
        else:
            parts.values[key] = compiled.config.create({})

    elif isinstance(compiled, ArrayField):
        if key in data:
            _check_sequence(key, data[key])
            parts.values[key] = tuple(compiled.coerce(item) for item in data[key])
        elif inherited:
            parts.values[key] = previous
        else:
            parts.values[key] = compiled.default

    elif isinstance(compiled, ListField):
        if key in data:
            _check_sequence(key, data[key])
            parts.values[key] = compiled.config.create(data[key])
        elif inherited and previous is not None:
            parts.values[key] = previous
        elif compiled.config.enumerable:
            parts.values[key] = compiled.config.create(())
        else:
            parts.values[key] = compiled.config.create(compiled.defaults)


def build_model(config: Config, data: Any, last: Model | None = None) -> Model | None:
    """Run the creation pipeline of ``config``; ``None`` data means deletion."""

    if data is None:
        return None
    if isinstance(data, Model):
        data = asdict(data)
    if not isinstance(data, Mapping):
        raise DefinitionError(f"Model values must be an object: {data!r}")

    parts = _Parts()
    for compiled in config.fields:
        apply_field(compiled, parts, data, last)

    model = Model.build(config, parts.id, parts.values, parts.refs)
    config.store.states.bind(model, config)
    return model


def build_list(config: Config, items: Any, key: str | None = None) -> ModelList:
    """Create a list instance; enumerable elements are written to the cache and kept as ids."""

    if not _is_sequence(items):
        raise DefinitionError(f"Model list values must be an array: {type(items).__name__}")

    element = config.element
    assert element is not None
    states = config.store.states
    result: list[Any] = []

    for data in items:
        if isinstance(data, Model | Mapping):
            bound = states.config_of(data)
            if bound is not None:
                if bound.definition is not element.definition:
                    raise DefinitionError("Model instance must match the definition")
                model = data
            else:
                model = element.create(data)
                if element.enumerable:
                    config.store.sync(element, model.id, model)
            result.append(model.id if element.enumerable else model)
        elif not element.enumerable:
            raise DefinitionError(f"Model instance must be an object: {type(data).__name__}")
        else:
            result.append(stringify_id(data))

    models = ModelList(config, tuple(result), key=key)
    states.bind(models, config)
    return models
