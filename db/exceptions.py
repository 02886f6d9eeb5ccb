"""
Database exceptions raised by the Kata statistics store.

Backend-specific errors (sqlite3, psycopg2) are translated into these by
`DatabaseManager` so managers and services only ever handle this hierarchy.
"""


class DatabaseError(Exception):
    """Base class for all statistics-store exceptions."""


class DBConnectionError(DatabaseError):
    """Raised when the store cannot be opened or the connection is gone."""


class ForeignKeyError(DatabaseError):
    """Raised when a foreign key constraint fails."""


class ConstraintError(DatabaseError):
    """Raised when a NOT NULL, UNIQUE or CHECK constraint is violated."""


class DatabaseTypeError(DatabaseError, TypeError):
    """Raised when a query parameter has a type the backend cannot bind."""


class IntegrityError(DatabaseError):
    """Raised when database integrity is violated."""


class SchemaError(DatabaseError):
    """Raised for unknown columns and other schema mismatches."""


class TableNotFoundError(DatabaseError):
    """Raised when a table is not found in the database."""
