"""Custom exceptions for the MLP2 to MLP3 migrator."""

from pathlib import Path
from typing import Any, List


class MigratorError(Exception):
    """Base exception for all migrator errors."""
    pass


# Configuration Errors

class ConfigError(MigratorError):
    """Configuration-related errors."""
    pass


class ConfigFileNotFoundError(ConfigError):
    """Configuration file does not exist."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Configuration file not found: {path}")


class ConfigValidationError(ConfigError):
    """Configuration validation failed."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(f"Configuration validation failed: {'; '.join(errors)}")


# Database Errors

class DatabaseError(MigratorError):
    """Database operation errors."""
    pass


class SchemaError(DatabaseError):
    """A table definition is malformed."""
    pass


class QueryPrepareError(DatabaseError):
    """Query parameters could not be bound."""

    def __init__(self, query: str, reason: str):
        self.query = query
        self.reason = reason
        super().__init__(f'Could not prepare query "{query}": {reason}')


class StoreError(DatabaseError):
    """The driver reported an error while executing a statement."""

    def __init__(self, message: str, query: str = ""):
        self.query = query
        super().__init__(message)


class StoreConnectionError(StoreError):
    """The store handle is unusable. Always fatal for a run."""
    pass


# Migration Errors

class MigrationItemError(MigratorError):
    """A single legacy record holds data that cannot be migrated."""
    pass


class InvalidStatusError(MigrationItemError):
    """A legacy module has a status other than on/off."""

    def __init__(self, status: Any, message: str = ""):
        self.status = status
        super().__init__(message or f'Invalid module status "{status}"')


class InvalidValueError(MigrationItemError):
    """A legacy record field holds a malformed value."""

    def __init__(self, field: str, value: Any, message: str = ""):
        self.field = field
        self.value = value
        super().__init__(message or f'Invalid value for "{field}": {value!r}')


class PersistError(MigratorError):
    """A write was rejected at the option layer."""

    def __init__(self, name: str, message: str = ""):
        self.name = name
        super().__init__(message or f'Network option "{name}" could not be updated')
