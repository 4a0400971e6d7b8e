"""Identifier helpers."""

from __future__ import annotations

import json
from collections.abc import Mapping
from uuid import uuid4

from modelstore.errors import DefinitionError


def new_id() -> str:
    return str(uuid4())


def stringify_id(value: object) -> str | None:
    """Normalize a model id to its canonical cache key.

    Composite ids (mappings of primitives) are encoded as compact JSON with sorted
    keys so that key order never changes the identity.
    """

    if value is None:
        return None
    if isinstance(value, Mapping):
        record: dict[str, object] = {}
        for key in sorted(value):
            item = value[key]
            if item is not None and not isinstance(item, str | int | float | bool):
                raise DefinitionError(
                    f"You must use primitive value for '{key}' key: {type(item).__name__}"
                )
            record[str(key)] = item
        return json.dumps(record, separators=(",", ":"))
    return str(value)
