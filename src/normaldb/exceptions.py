"""Custom exception hierarchy for normaldb."""


class NormalDbError(Exception):
    """Base exception for all normaldb errors."""


class SchemaError(NormalDbError):
    """Schema bootstrap failed, bad identifier, or unknown non-key column."""


class StoreError(NormalDbError):
    """Lower-level SQLite failure; the original message is passed through."""


class NotFoundError(NormalDbError):
    """No row matches the requested id or value."""


class UninitializedError(NormalDbError):
    """Row exists but the requested non-key column was never notated."""
