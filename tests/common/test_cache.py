from __future__ import annotations

from modelstore.common import KeyedCache


class _Target:
    pass


def test_get_computes_once_and_reuses_value() -> None:
    cache = KeyedCache()
    target = _Target()
    calls: list[object] = []

    def getter(_target: object, last: object) -> str:
        calls.append(last)
        return "value"

    assert cache.get(target, "a", getter) == "value"
    assert cache.get(target, "a", getter) == "value"
    assert calls == [None]


def test_get_recomputes_when_validator_rejects() -> None:
    cache = KeyedCache()
    target = _Target()
    counter = iter(range(10))

    first = cache.get(target, "a", lambda _t, _last: next(counter), lambda _value: False)
    second = cache.get(target, "a", lambda _t, _last: next(counter), lambda _value: False)

    assert (first, second) == (0, 1)


def test_set_invalidates_dependent_entries() -> None:
    cache = KeyedCache()
    inner_target, outer_target = _Target(), _Target()
    cache.set(inner_target, "inner", lambda _t, value, _last: value, 1)

    def outer(_target: object, _last: object) -> int:
        return cache.get(inner_target, "inner", lambda _t, last: last) * 10

    assert cache.get(outer_target, "outer", outer) == 10
    assert cache.get_entry(outer_target, "outer").valid

    cache.set(inner_target, "inner", lambda _t, value, _last: value, 2)

    assert not cache.get_entry(outer_target, "outer").valid
    assert cache.get(outer_target, "outer", outer) == 20


def test_set_keeps_entry_when_setter_returns_same_value() -> None:
    cache = KeyedCache()
    target, dependent = _Target(), _Target()
    value = object()
    cache.set(target, "a", lambda _t, next_value, _last: next_value, value)
    cache.get(dependent, "b", lambda _t, _last: cache.get(target, "a", lambda _t, last: last))

    cache.set(target, "a", lambda _t, _next, last: last, object())

    assert cache.get_entry(dependent, "b").valid


def test_invalidate_without_clearing_marks_entry_stale() -> None:
    cache = KeyedCache()
    target = _Target()
    cache.get(target, "a", lambda _t, _last: "value")

    cache.invalidate(target, "a")

    entry = cache.get_entry(target, "a")
    assert entry.stale
    assert not entry.valid
    assert entry.value == "value"


def test_invalidate_with_clear_value_drops_entry() -> None:
    cache = KeyedCache()
    target = _Target()
    cache.get(target, "a", lambda _t, _last: "value")

    cache.invalidate(target, "a", clear_value=True)

    assert cache.get_entries(target) == []
    assert cache.get(target, "a", lambda _t, last: last) is None


def test_invalidate_all_propagates_to_contexts() -> None:
    cache = KeyedCache()
    target, dependent = _Target(), _Target()
    cache.get(target, "a", lambda _t, _last: 1)
    cache.get(target, "b", lambda _t, _last: 2)
    cache.get(dependent, "sum", lambda _t, _last: cache.get(target, "a", lambda _t, last: last))

    cache.invalidate_all(target, clear_value=True)

    assert cache.get_entries(target) == []
    assert not cache.get_entry(dependent, "sum").valid


def test_invalidate_unknown_entry_is_noop() -> None:
    cache = KeyedCache()

    cache.invalidate(_Target(), "missing")
    cache.invalidate_all(_Target())
