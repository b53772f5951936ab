"""Exceptions for the state store.

Infrastructure failures (connection, migration) are kept apart from the
caller-visible taxonomy in ``learnfeed.errors``.
"""


class StoreError(Exception):
    """Base exception for all state store errors."""


class StoreConnectionError(StoreError):
    """Raised when the database is not connected."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class MigrationError(StoreError):
    """Raised when a schema migration fails."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")
