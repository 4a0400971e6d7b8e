"""Keyed compute-on-miss cache with dependency tracking.

Entries are addressed by an owner object and a hashable key. Reading an entry
while another entry is being computed records a dependency, so invalidating or
rewriting the inner entry marks every entry computed from it as invalid.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeAlias
from weakref import WeakKeyDictionary

if TYPE_CHECKING:
    from collections.abc import Callable, Hashable

Getter: TypeAlias = "Callable[[Any, Any], Any]"
Setter: TypeAlias = "Callable[[Any, Any, Any], Any]"
Validator: TypeAlias = "Callable[[Any], bool]"


@dataclass(eq=False, slots=True)
class CacheEntry:
    target: object
    key: Hashable
    value: Any = None
    valid: bool = False
    # set by an explicit invalidation that kept the value
    stale: bool = False
    contexts: set[CacheEntry] = field(default_factory=set["CacheEntry"])
    deps: set[CacheEntry] = field(default_factory=set["CacheEntry"])


class KeyedCache:
    """Cache substrate shared by every config of a store."""

    def __init__(self) -> None:
        self._entries: WeakKeyDictionary[object, dict[Hashable, CacheEntry]] = (
            WeakKeyDictionary()
        )
        self._stack: list[CacheEntry] = []

    def get_entry(self, target: object, key: Hashable) -> CacheEntry:
        entries = self._entries.get(target)
        if entries is None:
            entries = {}
            self._entries[target] = entries
        entry = entries.get(key)
        if entry is None:
            entry = CacheEntry(target=target, key=key)
            entries[key] = entry
        return entry

    def get_entries(self, target: object) -> list[CacheEntry]:
        entries = self._entries.get(target)
        return list(entries.values()) if entries else []

    def get(
        self,
        target: object,
        key: Hashable,
        getter: Getter,
        validate: Validator | None = None,
    ) -> Any:
        """Return the cached value, computing it with ``getter(target, last_value)`` on miss."""

        entry = self.get_entry(target, key)

        if self._stack:
            context = self._stack[-1]
            if context is not entry:
                entry.contexts.add(context)
                context.deps.add(entry)

        if entry.valid and (validate is None or validate(entry.value)):
            return entry.value

        self._unlink(entry)
        self._stack.append(entry)
        try:
            entry.value = getter(target, entry.value)
        finally:
            self._stack.pop()

        entry.valid = True
        entry.stale = False
        return entry.value

    def set(
        self,
        target: object,
        key: Hashable,
        setter: Setter,
        value: Any,
        force: bool = False,
    ) -> Any:
        """Write ``setter(target, value, last_value)`` and invalidate dependent entries."""

        entry = self.get_entry(target, key)
        next_value = setter(target, value, entry.value)

        if force or next_value is not entry.value or not entry.valid:
            entry.value = next_value
            entry.valid = True
            entry.stale = False
            self._invalidate_contexts(entry)

        return entry.value

    def invalidate(self, target: object, key: Hashable, *, clear_value: bool = False) -> None:
        """Mark an entry stale, or drop it entirely with ``clear_value``."""

        entries = self._entries.get(target)
        if not entries or key not in entries:
            return
        self._invalidate_entry(entries, entries[key], clear_value)

    def invalidate_all(self, target: object, *, clear_value: bool = False) -> None:
        entries = self._entries.get(target)
        if not entries:
            return
        for entry in list(entries.values()):
            self._invalidate_entry(entries, entry, clear_value)

    def _invalidate_entry(
        self,
        entries: dict[Hashable, CacheEntry],
        entry: CacheEntry,
        clear_value: bool,
    ) -> None:
        entry.valid = False
        self._invalidate_contexts(entry)

        if clear_value:
            entry.value = None
            self._unlink(entry)
            for context in entry.contexts:
                context.deps.discard(entry)
            entry.contexts.clear()
            entries.pop(entry.key, None)
        else:
            entry.stale = True

    def _invalidate_contexts(self, entry: CacheEntry) -> None:
        pending = list(entry.contexts)
        while pending:
            context = pending.pop()
            if context.valid:
                context.valid = False
                pending.extend(context.contexts)

    @staticmethod
    def _unlink(entry: CacheEntry) -> None:
        for dep in entry.deps:
            dep.contexts.discard(entry)
        entry.deps.clear()
