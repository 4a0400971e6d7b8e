"""Pydantic model describing a storage descriptor."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, StrictBool, StrictFloat, StrictInt, field_validator

CachePolicy: TypeAlias = bool | int | float


class StorageDescriptor(BaseModel):
    """The ``connect`` entry of an external model definition.

    ``cache`` is ``True`` (never invalidated), ``False``/``0`` (valid for the current
    resolution tick only) or a number of seconds an instance stays valid.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    get: Callable[..., Any] | None = None
    set: Callable[..., Any] | None = None
    list: Callable[..., Any] | None = None
    cache: StrictBool | StrictInt | StrictFloat = True

    @field_validator("cache", mode="before")
    @classmethod
    def _check_cache(cls, value: object) -> object:
        if not isinstance(value, bool | int | float):
            raise ValueError(  # noqa: TRY004
                f"Storage cache property must be a boolean or number: {type(value).__name__}"
            )
        return value
