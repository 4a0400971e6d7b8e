"""Private helpers for reading internal instance state.

Only the creation pipeline and the store should import this module.
"""

# ruff: noqa: SLF001

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from modelstore.definition.config import Config
    from modelstore.instance import Model, ModelList


def has_value(model: Model, key: str) -> bool:
    return key in model._values


def stored_value(model: Model, key: str) -> Any:
    return model._values[key]


def has_ref(model: Model, key: str) -> bool:
    return key in model._refs


def stored_ref(model: Model, key: str) -> Any:
    return model._refs[key]


def owner_config(instance: Model | ModelList) -> Config:
    """Config the instance was created by, even after its binding expired."""

    return instance._config
