from __future__ import annotations

import asyncio
from typing import Any

import pytest

from modelstore import AccessError, DefinitionError, NotFoundError, Store, connect
from modelstore.common import ManualClock


def test_get_singleton_from_memory(store: Store) -> None:
    settings = {"theme": "light", "size": 12}

    model = store.get(settings)

    assert model.theme == "light"
    assert model.size == 12
    assert store.ready(model)
    assert store.get(settings) is model


def test_get_validates_id_against_definition(store: Store) -> None:
    todo = {"id": True, "title": ""}
    settings = {"theme": "light"}

    with pytest.raises(DefinitionError, match="requires non-empty id"):
        store.get(todo)
    with pytest.raises(DefinitionError, match="does not support id"):
        store.get(settings, "1")


def test_get_requires_get_action(store: Store) -> None:
    write_only = {"id": True, connect: {"set": lambda _id, values, _keys: values}}

    with pytest.raises(DefinitionError, match="does not support 'get' method"):
        store.get(write_only, "1")


def test_get_sync_storage_merges_id(store: Store) -> None:
    calls: list[Any] = []

    def fetch(id: Any) -> dict[str, Any]:  # noqa: A002
        calls.append(id)
        return {"name": f"user {id}"}

    user = {"id": True, "name": "", connect: fetch}

    model = store.get(user, 1)

    assert model.id == "1"
    assert model.name == "user 1"
    assert store.get(user, "1") is model
    assert calls == [1]


def test_get_composite_id_normalizes_key(store: Store) -> None:
    calls: list[Any] = []

    def fetch(id: Any) -> dict[str, Any]:  # noqa: A002
        calls.append(id)
        return {"value": id["a"]}

    item = {"id": True, "value": 0, connect: fetch}

    first = store.get(item, {"a": 1, "b": 2})
    second = store.get(item, {"b": 2, "a": 1})

    assert first is second
    assert first.id == '{"a":1,"b":2}'
    assert calls == [{"a": 1, "b": 2}]


def test_get_missing_data_is_captured_as_not_found(store: Store) -> None:
    user = {"id": True, "name": "", connect: lambda _id: None}

    model = store.get(user, "1")

    assert not store.ready(model)
    assert isinstance(store.error(model), NotFoundError)
    with pytest.raises(AccessError, match="error state"):
        _ = model.name


def test_get_storage_exception_is_captured(store: Store) -> None:
    failure = RuntimeError("backend down")

    def fetch(_id: Any) -> dict[str, Any]:
        raise failure

    user = {"id": True, "name": "", connect: fetch}

    model = store.get(user, "1")

    assert store.error(model) is failure
    assert store.get(user, "1") is model


def test_get_async_storage_returns_pending_placeholder(store: Store) -> None:
    calls: list[Any] = []

    async def fetch(id: Any) -> dict[str, Any]:  # noqa: A002
        calls.append(id)
        await asyncio.sleep(0)
        return {"name": f"user {id}"}

    user = {"id": True, "name": "", connect: fetch}

    async def scenario() -> None:
        placeholder = store.get(user, "1")

        assert store.pending(placeholder)
        assert not store.ready(placeholder)
        assert placeholder.id == "1"
        with pytest.raises(AccessError, match="pending state"):
            _ = placeholder.name
        # single flight
        assert store.get(user, "1") is placeholder

        resolved = await store.pending(placeholder)

        assert resolved.name == "user 1"
        assert store.ready(resolved)
        assert not store.pending(placeholder)
        assert store.get(user, "1") is resolved
        assert calls == ["1"]

    asyncio.run(scenario())


def test_get_async_storage_failure_marks_placeholder(store: Store) -> None:
    async def fetch(_id: Any) -> dict[str, Any]:
        raise LookupError("gone")

    user = {"id": True, "name": "", connect: fetch}

    async def scenario() -> None:
        placeholder = store.get(user, "1")
        settled = await store.pending(placeholder)

        assert settled is placeholder
        assert isinstance(store.error(placeholder), LookupError)
        assert not store.pending(placeholder)
        assert store.get(user, "1") is placeholder

    asyncio.run(scenario())


def test_get_async_storage_without_loop_is_an_error(store: Store) -> None:
    async def fetch(_id: Any) -> dict[str, Any]:
        return {}

    user = {"id": True, connect: fetch}

    model = store.get(user, "1")

    assert isinstance(store.error(model), DefinitionError)


def test_cache_false_refetches_every_tick(store: Store, clock: ManualClock) -> None:
    calls: list[int] = []

    def fetch(_id: Any) -> dict[str, Any]:
        calls.append(1)
        return {"value": len(calls)}

    ticker = {"value": 0, connect: {"get": fetch, "cache": False}}

    first = store.get(ticker)
    assert store.get(ticker) is first

    clock.advance()
    second = store.get(ticker)

    assert second is not first
    assert second.value == 2
    assert not store.ready(first)


def test_cache_lifetime_expires_after_seconds(store: Store, clock: ManualClock) -> None:
    calls: list[int] = []

    def fetch(_id: Any) -> dict[str, Any]:
        calls.append(1)
        return {}

    item = {"id": True, connect: {"get": fetch, "cache": 5}}

    first = store.get(item, "1")
    clock.advance(3)
    assert store.get(item, "1") is first
    clock.advance(3)
    assert store.get(item, "1") is not first
    assert len(calls) == 2


def test_get_external_reference_resolves_through_store(store: Store) -> None:
    profile = {"bio": "", connect: lambda _id: {"bio": "hello"}}
    user = {"id": True, "profile": profile}

    model = store.bootstrap(user).create({"profile": {"bio": "local"}})

    assert model.profile.bio == "local"
    assert model.profile is store.get(profile)
