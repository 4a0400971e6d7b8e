"""Out-of-band instance bookkeeping and the ready/pending/error guards.

Every model or list instance may carry three pieces of state that never live on
the (frozen) instance itself: its binding to a config, its ready/pending/error
state, and the resolution tick it was last written in. All three are held in
weak mappings so discarded instances are released.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final, TypeVar
from weakref import WeakKeyDictionary

from modelstore.instance import Model, ModelList

if TYPE_CHECKING:
    from modelstore.common.clock import ResolutionClock
    from modelstore.definition.config import Config

_T = TypeVar("_T", bound=Model | ModelList)


class State(StrEnum):
    READY = "ready"
    PENDING = "pending"
    ERROR = "error"


class _Expired:
    __slots__ = ()

    def __repr__(self) -> str:
        return "EXPIRED"


EXPIRED: Final = _Expired()


@dataclass(frozen=True, slots=True)
class InstanceState:
    state: State
    value: Any = None


def _is_instance(value: object) -> bool:
    return isinstance(value, Model | ModelList)


class StateRegistry:
    """Bindings, states and timestamps of the instances of one store."""

    def __init__(self, clock: ResolutionClock) -> None:
        self.clock = clock
        self._bindings: WeakKeyDictionary[Any, Config | _Expired] = WeakKeyDictionary()
        self._states: WeakKeyDictionary[Any, InstanceState] = WeakKeyDictionary()
        self._timestamps: WeakKeyDictionary[Any, float] = WeakKeyDictionary()

    # bindings

    def bind(self, instance: Model | ModelList, config: Config) -> None:
        self._bindings[instance] = config

    def expire(self, instance: Model | ModelList) -> None:
        self._bindings[instance] = EXPIRED

    def binding(self, value: object) -> Config | _Expired | None:
        if not _is_instance(value):
            return None
        return self._bindings.get(value)

    def config_of(self, value: object) -> Config | None:
        """Return the live config of ``value``; expired or unbound values give ``None``."""

        binding = self.binding(value)
        if binding is None or isinstance(binding, _Expired):
            return None
        return binding

    # states

    def state_of(self, instance: Model | ModelList) -> InstanceState:
        return self._states.get(instance) or InstanceState(State.READY, instance)

    def set_state(self, instance: _T, state: State, value: Any = None) -> _T:
        self._states[instance] = InstanceState(state, instance if value is None else value)
        return instance

    def reset_state(self, instance: Model | ModelList) -> None:
        self._states.pop(instance, None)

    # timestamps

    def timestamp(self, instance: Model | ModelList) -> float:
        timestamp = self._timestamps.get(instance)
        if timestamp is None:
            timestamp = self.clock.now()
            self._timestamps[instance] = timestamp
        return timestamp

    def touch(self, instance: _T) -> _T:
        self._timestamps[instance] = self.clock.now()
        return instance

    # guards

    def ready(self, value: object) -> bool:
        """True while ``value`` is bound to a config and has not been superseded."""

        return self.config_of(value) is not None

    def pending(self, value: object) -> Any:
        """Return the in-flight future of ``value`` when it is pending, else ``False``."""

        if not _is_instance(value):
            return False
        current = self._states.get(value)
        if current is not None and current.state is State.PENDING:
            return current.value
        return False

    def error(self, value: object) -> Any:
        """Return the captured error of ``value`` when it is in error state, else ``False``."""

        if not _is_instance(value):
            return False
        current = self._states.get(value)
        if current is not None and current.state is State.ERROR:
            return current.value
        return False
