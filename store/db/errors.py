"""
Error taxonomy for the Store data-access layer.

A missing row is not an error: read operations return None instead.
"""


class StoreError(Exception):
    """Base class for data-access errors."""


class ConcurrencyConflict(StoreError):
    """Raised on commit when a row changed (or vanished) since it was read."""

    def __init__(self, entity_type: type, key: dict):
        self.entity_type = entity_type
        self.key = key
        super().__init__(
            f"{entity_type.__name__} {key} was modified or deleted by another writer"
        )


class ConstraintViolation(StoreError):
    """Raised on commit when the store rejects a foreign-key, unique or not-null constraint."""


class ConfigurationError(StoreError):
    """Raised when the entity mappings do not describe a consistent model."""
