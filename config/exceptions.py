"""Custom exception hierarchy for PocketLedger.

Provides specific exceptions for different error categories,
enabling better error handling and debugging.
"""

from typing import Optional


class PocketLedgerError(Exception):
    """Base exception for all PocketLedger errors.

    All custom exceptions in this application should inherit from this class.
    This allows catching all application-specific errors with a single except clause.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class StorageError(PocketLedgerError):
    """Data persistence errors.

    Raised when there are issues with:
    - Opening the database file
    - SQL statements failing (the driver message is appended)
    - Inserts or updates that affected no rows
    - Reading/writing the local store file

    Examples:
        >>> raise StorageError("Failed to add transaction: no rows affected")
    """

    pass


class ValidationError(PocketLedgerError):
    """Invalid input rejected before it reaches a store.

    Raised when there are issues with:
    - Non-positive amounts
    - Missing required text fields
    - Unknown record identifiers in collection mutations
    - Backup identifiers that are unsafe to use as table names

    Examples:
        >>> raise ValidationError("Amount must be positive", {"amount": -5})
    """

    pass


class BackupError(PocketLedgerError):
    """Backup snapshot errors.

    Raised when a snapshot identifier has no artifacts in either store.
    Partial failures during restore or delete are reported on the
    operation result instead of being raised.
    """

    pass


class ConfigurationError(PocketLedgerError):
    """Settings and configuration errors.

    Raised when there are issues with:
    - Unknown currency codes
    - Unsupported languages

    Examples:
        >>> raise ConfigurationError("Unknown currency", {"code": "XYZ"})
    """

    pass
