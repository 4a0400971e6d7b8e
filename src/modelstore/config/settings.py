"""Store settings resolved from the environment."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from dotenv import find_dotenv, load_dotenv

from .env import env_bool, env_float
from .errors import ConfigurationError

if TYPE_CHECKING:
    from pathlib import Path

TICK_SECONDS_VAR: Final[str] = "MODELSTORE_TICK_SECONDS"
LOG_ERRORS_VAR: Final[str] = "MODELSTORE_LOG_ERRORS"

# one animation frame
DEFAULT_TICK_SECONDS: Final[float] = 1 / 60


@dataclass(frozen=True, slots=True)
class StoreSettings:
    tick_seconds: float = DEFAULT_TICK_SECONDS
    log_errors: bool = True

    def __post_init__(self) -> None:
        if self.tick_seconds <= 0:
            raise ConfigurationError("tick_seconds", self.tick_seconds, "positive")


def get_store_settings(
    *,
    env_file: str | Path | None = None,
    load_env: bool = True,
) -> StoreSettings:
    """Build settings from environment variables, loading a ``.env`` file first.

    Values already present in the process environment win over the file.
    """

    if load_env:
        load_dotenv(env_file or find_dotenv(usecwd=True), override=False)

    return StoreSettings(
        tick_seconds=env_float(TICK_SECONDS_VAR, DEFAULT_TICK_SECONDS),
        log_errors=env_bool(LOG_ERRORS_VAR, True),
    )
