"""Errors raised while reading store settings."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A store setting holds a value the store cannot run with."""

    def __init__(self, setting: str, value: object, expected: str) -> None:
        super().__init__(f"{setting} must be {expected}: {value!r}")
        self.setting = setting
        self.value = value
