from __future__ import annotations

from typing import Any

import pytest

from modelstore import DefinitionError, Store, connect
from modelstore.definition.fields import (
    ArrayField,
    ComputedField,
    IdField,
    ListField,
    ObjectField,
    PrimitiveField,
    ReferenceField,
)


def _fetch(_id: Any) -> dict[str, Any]:
    return {}


def test_bootstrap_memoizes_config_per_definition(store: Store) -> None:
    definition = {"id": True, "title": ""}

    config = store.bootstrap(definition)

    assert store.bootstrap(definition) is config
    assert store.bootstrap({"id": True, "title": ""}) is not config
    assert config.enumerable
    assert not config.external
    assert config.keys == ("title",)


def test_bootstrap_compiles_field_variants(store: Store) -> None:
    author = {"id": True, "name": ""}
    address = {"city": ""}
    tag = {"id": True, "label": ""}
    definition = {
        "id": True,
        "title": "",
        "count": 0,
        "author": author,
        "address": address,
        "scores": [0],
        "tags": [tag],
        "summary": lambda model: model.title,
    }

    config = store.bootstrap(definition)
    kinds = {type(field).__name__: field for field in config.fields}

    assert isinstance(config.fields[0], IdField)
    assert isinstance(kinds["PrimitiveField"], PrimitiveField)
    assert isinstance(kinds["ReferenceField"], ReferenceField)
    assert isinstance(kinds["ObjectField"], ObjectField)
    assert isinstance(kinds["ArrayField"], ArrayField)
    assert isinstance(kinds["ListField"], ListField)
    assert isinstance(kinds["ComputedField"], ComputedField)
    assert config.references == {"author": author}
    assert set(config.computed) == {"summary"}


def test_external_nested_model_becomes_reference(store: Store) -> None:
    remote = {"value": "", connect: _fetch}

    config = store.bootstrap({"remote": remote})

    assert isinstance(config.fields[0], ReferenceField)
    assert store.bootstrap(remote).external


@pytest.mark.parametrize(
    ("definition", "message"),
    [
        ({"id": "yes"}, "'id' property value must be true"),
        ({"tags": []}, "must not be empty"),
        ({"value": None}, "must be an object instance"),
        ({"value": object()}, "must be a primitive, object, array or function"),
        ({"values": [None]}, "must be a string, number or boolean"),
        ({"items": [{"id": True}, "loose"]}, "Options for 'items' array property"),
        ({1: "numeric key"}, "keys must be strings"),
    ],
)
def test_bootstrap_rejects_invalid_definitions(
    store: Store, definition: dict[Any, Any], message: str
) -> None:
    with pytest.raises(DefinitionError, match=message):
        store.bootstrap(definition)


def test_bootstrap_rejects_non_mapping_definition(store: Store) -> None:
    with pytest.raises(DefinitionError, match="must be an object"):
        store.bootstrap("todo")


def test_loose_list_registers_element_as_context(store: Store) -> None:
    tag = {"id": True, "label": ""}

    config = store.bootstrap({"id": True, "tags": [tag, {"loose": True}]})

    assert store.bootstrap(tag) in config.contexts


def test_strict_list_has_no_context(store: Store) -> None:
    tag = {"id": True, "label": ""}

    config = store.bootstrap({"id": True, "tags": [tag]})

    assert config.contexts == set()


def test_list_config_requires_enumerable_element(store: Store) -> None:
    with pytest.raises(DefinitionError, match="requires 'id' key"):
        store.bootstrap([{"value": ""}])


def test_list_config_requires_list_action(store: Store) -> None:
    with pytest.raises(DefinitionError, match="must support 'list' action"):
        store.bootstrap([{"id": True, connect: _fetch}])


def test_nested_list_cannot_be_used_as_primary_definition(store: Store) -> None:
    item = {"label": ""}
    store.bootstrap({"items": [item]})

    with pytest.raises(DefinitionError, match="Nested listing definition"):
        store.bootstrap([item])


def test_list_definition_must_hold_single_model(store: Store) -> None:
    todo = {"id": True}

    with pytest.raises(DefinitionError, match="single model definition"):
        store.bootstrap([todo, todo])


def test_list_config_inherits_element_cache_policy(store: Store) -> None:
    element = {"id": True, connect: {"get": _fetch, "list": lambda _id: [], "cache": 30}}

    config = store.bootstrap([element])

    assert config.is_list
    assert config.element is store.bootstrap(element)
    assert config.storage.cache == 30
    assert config.contexts == {config.element}
