"""
PostgreSQL sink using binary COPY.

Each flush is one COPY ... FROM STDIN (FORMAT BINARY) on an autocommit
connection, so a batch is committed as soon as its COPY returns.
"""

from contextlib import contextmanager
from typing import Any, Iterable

import psycopg
from psycopg import sql

from logpush.core.errors import ConfigError, FlushError, PostLoadError
from logpush.core.models import FieldSpec, Null
from logpush.observability.logger import get_logger
from logpush.utils.validation import sql_identifier, validate_table_name
from logpush.warehouse.connection import DatabaseConnectionPool

from .base import BulkSink, SinkFactory

logger = get_logger(__name__)


class CopySink(BulkSink):
    """
    Bulk sink writing rows into one PostgreSQL table.
    """

    name = "postgres"

    def __init__(self, conn: psycopg.Connection, table: str, vacuum: bool = True):
        """
        Initialize COPY sink.

        Args:
            conn: Autocommit connection held for the whole file
            table: Target table, optionally schema-qualified
            vacuum: Run VACUUM on the table in finish()
        """
        super().__init__()
        self.conn = conn
        self.table = table
        self.vacuum = vacuum
        self._table_ident = sql.Identifier(*validate_table_name(table))
        self._types: list[str] = []

    def prepare(self, fields: list[FieldSpec]) -> list[str]:
        """
        Raises:
            ConfigError: If two fields sanitize to the same column name
        """
        columns: dict[str, str] = {}
        for field in fields:
            column = sql_identifier(field.name)
            if column in columns:
                raise ConfigError(
                    f"fields '{columns[column]}' and '{field.name}' both map to column '{column}'"
                )
            columns[column] = field.name
        self._types = [field.pg_type for field in fields]
        return list(columns)

    def copy_statement(self, column_names: list[str]) -> sql.Composed:
        return sql.SQL("COPY {table} ({columns}) FROM STDIN (FORMAT BINARY)").format(
            table=self._table_ident,
            columns=sql.SQL(", ").join(sql.Identifier(name) for name in column_names),
        )

    def flush(self, column_names: list[str], cursor: Iterable[list[Any]]) -> int:
        if len(column_names) != len(self._types):
            raise FlushError(
                f"{len(column_names)} column names for {len(self._types)} prepared columns"
            )

        count = 0
        try:
            with self.conn.cursor() as cur:
                with cur.copy(self.copy_statement(column_names)) as copy:
                    copy.set_types(self._types)
                    for values in cursor:
                        copy.write_row([None if value.__class__ is Null else value for value in values])
                        count += 1
        except psycopg.Error as e:
            raise FlushError(f"COPY into {self.table} failed: {e}") from e

        self.committed += count
        return count

    def finish(self) -> None:
        if not self.vacuum:
            return
        try:
            self.conn.execute(sql.SQL("VACUUM {table}").format(table=self._table_ident))
        except psycopg.Error as e:
            raise PostLoadError(f"VACUUM {self.table} failed: {e}") from e


class CopySinkFactory(SinkFactory):
    """
    One CopySink per file, each holding a pooled connection until the file is done.
    """

    name = CopySink.name

    def __init__(
        self,
        pool: DatabaseConnectionPool,
        table: str = "accesslogs",
        batch_size: int = 5000,
        vacuum: bool = True,
    ):
        validate_table_name(table)
        self.pool = pool
        self.table = table
        self.batch_size = batch_size
        self.vacuum = vacuum

    @contextmanager
    def acquire(self):
        with self.pool.get_connection() as conn:
            logger.debug(f"Acquired connection for COPY into {self.table}")
            yield CopySink(conn, self.table, vacuum=self.vacuum)
