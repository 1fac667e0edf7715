"""SQLite store access for the migration.

Wraps a single connection with the handful of operations the migrators
need. Driver exceptions are translated into the migrator's own error types.
"""

import sqlite3
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from mlp2to3.core.exceptions import (
    QueryPrepareError,
    StoreConnectionError,
    StoreError,
)
from mlp2to3.database.schema import FieldSpec, build_create_table, parse_create_table
from mlp2to3.utils.logging import get_logger

# OperationalError messages meaning the handle itself is unusable
_CONNECTION_ERRORS = (
    "unable to open database",
    "disk i/o error",
    "file is not a database",
    "database disk image is malformed",
)


def _translate_error(e: sqlite3.Error, query: str) -> Exception:
    """Map a driver exception onto the migrator error hierarchy."""
    message = str(e)
    lowered = message.lower()

    if isinstance(e, sqlite3.ProgrammingError) and "closed" in lowered:
        return StoreConnectionError(f"Store connection lost: {message}", query)
    if isinstance(e, sqlite3.OperationalError) and any(m in lowered for m in _CONNECTION_ERRORS):
        return StoreConnectionError(f"Store connection lost: {message}", query)
    if isinstance(e, (sqlite3.ProgrammingError, sqlite3.InterfaceError)):
        return QueryPrepareError(query, message)
    return StoreError(f'Error executing query "{query}": {message}', query)


class Database:
    """Statement execution against one externally owned connection.

    Args:
        connection: Open SQLite connection
        prefix: Table name prefix of the installation
        collation: Collation applied to text columns of created tables
    """

    def __init__(
        self,
        connection: sqlite3.Connection,
        prefix: str = "wp_",
        collation: Optional[str] = "BINARY",
    ):
        self.connection = connection
        self.prefix = prefix
        self.collation = collation
        self._generated_keys: Dict[str, bool] = {}
        self._dry_run = False

    @classmethod
    def open(cls, path: Path, prefix: str = "wp_", collation: Optional[str] = "BINARY") -> "Database":
        """Open a database file in autocommit mode.

        Raises:
            StoreConnectionError: If the file cannot be opened
        """
        if not path.exists():
            raise StoreConnectionError(f"Database file not found: {path}")
        try:
            con = sqlite3.connect(path, isolation_level=None)
        except sqlite3.Error as e:
            raise StoreConnectionError(f"Failed to open database {path}: {e}") from e
        return cls(con, prefix=prefix, collation=collation)

    def close(self) -> None:
        self.connection.close()

    @property
    def is_dry_run(self) -> bool:
        return self._dry_run

    def table(self, name: str) -> str:
        """Get the actual table name for a logical table name."""
        return f"{self.prefix}{name}"

    # Statement execution

    def _run(self, query: str, params: Sequence[Any]) -> sqlite3.Cursor:
        try:
            cur = self.connection.cursor()
            cur.execute(query, tuple(params))
        except sqlite3.Error as e:
            raise _translate_error(e, query) from e
        return cur

    def _commit(self) -> None:
        # Writes are their own atomic unit unless a dry run holds the transaction
        if self.connection.in_transaction and not self._dry_run:
            self.connection.commit()

    def select(self, query: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Run a read query with positional parameters.

        Args:
            query: SQL with ``?`` placeholders
            params: Values bound to the placeholders in order

        Returns:
            List of rows as dicts; empty if nothing matched

        Raises:
            QueryPrepareError: If the parameters cannot be bound
            StoreError: On driver errors while executing or fetching
        """
        cur = self._run(query, params)
        try:
            columns = [d[0] for d in cur.description or ()]
            rows = cur.fetchall()
        except sqlite3.Error as e:
            raise _translate_error(e, query) from e
        finally:
            cur.close()
        return [dict(zip(columns, row)) for row in rows]

    def execute(self, query: str, params: Sequence[Any] = ()) -> int:
        """Run a write or DDL statement.

        Returns:
            Number of rows affected (-1 for statements without a count)
        """
        cur = self._run(query, params)
        count = cur.rowcount
        cur.close()
        self._commit()
        return count

    def insert(self, table: str, record: Any) -> Optional[int]:
        """Insert one row.

        Args:
            table: Full table name
            record: Mapping or dataclass of column values

        Returns:
            The generated primary key, or None if the table has none

        Raises:
            StoreError: On driver errors
        """
        if is_dataclass(record):
            record = asdict(record)
        data = dict(record)

        columns = ", ".join(f"`{c}`" for c in data)
        placeholders = ", ".join("?" for _ in data)
        query = f"INSERT INTO `{table}` ({columns}) VALUES ({placeholders})"

        cur = self._run(query, list(data.values()))
        row_id = cur.lastrowid
        cur.close()
        self._commit()

        if not row_id or not self._has_generated_key(table):
            return None
        return row_id

    def exists(self, table: str, where: Mapping[str, Any]) -> bool:
        """Check whether a row matching all column values exists.

        NULL values match NULL.
        """
        conditions = " AND ".join(f"`{c}` IS ?" for c in where)
        rows = self.select(
            f"SELECT 1 FROM `{table}` WHERE {conditions} LIMIT 1",
            list(where.values()),
        )
        return bool(rows)

    # Schema operations

    def table_exists(self, table: str) -> bool:
        rows = self.select(
            "SELECT name FROM sqlite_master WHERE type='table' AND name = ?",
            (table,),
        )
        return bool(rows)

    def columns(self, table: str) -> List[Dict[str, Any]]:
        """Get column info (name, type, pk) for a table."""
        return self.select(
            "SELECT name, type, pk FROM PRAGMA_TABLE_INFO(?)",
            (table,),
        )

    def _has_generated_key(self, table: str) -> bool:
        if table not in self._generated_keys:
            keys = [c for c in self.columns(table) if c["pk"]]
            self._generated_keys[table] = (
                len(keys) == 1 and str(keys[0]["type"]).upper() == "INTEGER"
            )
        return self._generated_keys[table]

    def create_table(
        self,
        table: str,
        fields: Mapping[str, FieldSpec],
        primary_keys: Sequence[str],
    ) -> None:
        """Create a table from field descriptors.

        Args:
            table: Full table name
            fields: Map of field names to descriptors
            primary_keys: Names of the primary key fields

        Raises:
            SchemaError: If the descriptors are invalid
            StoreError: If the statement fails
        """
        query = build_create_table(table, fields, primary_keys, self.collation)
        self.apply_schema(query)

    def apply_schema(self, query: str) -> List[str]:
        """Apply a DDL statement so that it can be safely re-run.

        A CREATE TABLE for an existing table only adds the missing columns.
        Other statements are executed as given.

        Args:
            query: DDL statement

        Returns:
            Descriptions of the changes made

        Raises:
            StoreError: If a resulting statement fails
        """
        logger = get_logger()
        parsed = parse_create_table(query)

        if parsed is None:
            self.execute(query)
            return [f"Executed {' '.join(query.split()[:2]).upper()}"]

        table, definitions = parsed
        self._generated_keys.pop(table, None)

        if not self.table_exists(table):
            self.execute(query)
            logger.debug(f"Created table {table}")
            return [f"Created table {table}"]

        existing = {c["name"] for c in self.columns(table)}
        changes = []
        for column, definition in definitions.items():
            if column in existing:
                continue
            self.execute(f"ALTER TABLE `{table}` ADD COLUMN {definition}")
            changes.append(f"Added column {table}.{column}")
            logger.debug(f"Added column {column} to {table}")
        return changes

    def drop_table(self, table: str) -> None:
        self.execute(f"DROP TABLE IF EXISTS `{table}`")
        self._generated_keys.pop(table, None)

    @contextmanager
    def dry_run(self) -> Iterator["Database"]:
        """Hold all statements in one transaction and roll it back on exit."""
        self._run("BEGIN", ())
        self._dry_run = True
        try:
            yield self
        finally:
            self._dry_run = False
            if self.connection.in_transaction:
                self.connection.rollback()
