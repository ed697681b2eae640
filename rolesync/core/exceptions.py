"""Custom exception classes for the reconciliation engine."""

from typing import Optional


class RoleSyncError(Exception):
    """Base exception for rolesync."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(RoleSyncError):
    """Raised when required configuration is missing or invalid."""
    pass


class DirectoryError(RoleSyncError):
    """Raised when a directory operation fails."""
    pass


class DirectoryBindError(DirectoryError):
    """Raised when connecting or binding to the directory fails."""
    pass


class DirectorySearchError(DirectoryError):
    """Raised when a subtree search fails."""
    pass


class StoreError(RoleSyncError):
    """Raised when the relational store rejects an operation."""
    pass


class StoreConnectionError(StoreError):
    """Raised when the relational store cannot be reached."""
    pass


class SyncError(RoleSyncError):
    """Raised when a row cannot be written during an entity synchronization."""

    def __init__(self, message: str, entity: str, dn: Optional[str] = None):
        self.entity = entity
        self.dn = dn
        super().__init__(message)


# Errors that stop the process before any synchronization starts
FATAL_ERRORS = (ConfigurationError, DirectoryBindError, StoreConnectionError)
