"""Error taxonomy for the model store."""

from __future__ import annotations


class StoreError(Exception):
    """Base class for all model store errors."""


class DefinitionError(StoreError, TypeError):
    """Raised synchronously for structurally invalid definitions or misuse of the API."""


class AccessError(StoreError, RuntimeError):
    """Raised when a field of a placeholder is read without checking a guard first."""


class NotFoundError(StoreError, LookupError):
    """Captured when storage has no data for a model instance."""


class MutationError(StoreError, ValueError):
    """Raised when storage returns data inconsistent with the mutated instance."""


class StaleReferenceError(StoreError, RuntimeError):
    """Raised when a superseded (expired) instance is used as a mutation target."""


class PendingStateError(StoreError, RuntimeError):
    """Raised when an operation requires a model instance that is not pending."""
