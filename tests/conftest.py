from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

import modelstore
from modelstore import Store, StoreSettings
from modelstore.common import ManualClock, ManualScheduler

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def store(clock: ManualClock, scheduler: ManualScheduler) -> Store:
    return Store(StoreSettings(log_errors=False), clock=clock, scheduler=scheduler)


@pytest.fixture
def default_store(store: Store) -> Iterator[Store]:
    modelstore.set_default_store(store)
    try:
        yield store
    finally:
        modelstore.set_default_store(None)
