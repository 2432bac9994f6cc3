"""
Errors shared across services.

Entity-specific "not found" errors live with their service; this module holds
the ones that cross service boundaries.
"""


class DataAccessError(Exception):
    """A read or write against the database failed or returned malformed rows."""


class StorageError(Exception):
    """The media blob store rejected a write."""
