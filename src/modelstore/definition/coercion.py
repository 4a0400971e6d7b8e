"""Primitive type coercion for field defaults."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeAlias

from modelstore.errors import DefinitionError

Coercion: TypeAlias = Callable[[Any], Any]


def is_primitive(value: object) -> bool:
    return isinstance(value, str | int | float | bool)


def type_constructor(value: object, key: str) -> Coercion:
    """Return the canonical constructor for the type of a primitive default."""

    # bool is a subclass of int
    if isinstance(value, bool):
        return bool
    if isinstance(value, int):
        return int
    if isinstance(value, float):
        return float
    if isinstance(value, str):
        return str
    raise DefinitionError(
        f"The value for the '{key}' array must be a string, number or boolean: "
        f"{type(value).__name__}"
    )
