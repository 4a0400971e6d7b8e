"""Definition compiler: fields, storage adapters and configs."""

from __future__ import annotations

from .config import Bootstrapper, Config, InvalidationDebouncer, connect
from .schema import StorageDescriptor
from .storage import StorageAdapter, memory_storage, setup_storage, validity_policy

__all__ = [
    "Bootstrapper",
    "Config",
    "InvalidationDebouncer",
    "StorageAdapter",
    "StorageDescriptor",
    "connect",
    "memory_storage",
    "setup_storage",
    "validity_policy",
]
