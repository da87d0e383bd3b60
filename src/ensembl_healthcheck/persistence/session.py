"""DuckDB-backed database sessions for running read-only check queries."""

import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

import duckdb
import polars as pl

from ensembl_healthcheck.errors import CheckTimeoutError, ConnectivityError, QueryError

if TYPE_CHECKING:
    from ensembl_healthcheck.config.schema import DatabaseSource
    from ensembl_healthcheck.metadata.catalog import MetadataCatalog


class DatabaseSession:
    """
    One task's connection to one database.

    Sessions are never shared between tasks; queries on a session run
    sequentially. DuckDB failures are mapped onto the healthcheck error
    taxonomy so callers can tell "could not verify" from "verified".
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection, name: str = ""):
        """
        Initialize a session.

        Args:
            conn: DuckDB connection (or cursor) owned by this session
            name: Database name, used in error messages
        """
        self.conn = conn
        self.name = name
        self._interrupted = False

    def _execute(self, sql: str, params: Optional[list] = None) -> duckdb.DuckDBPyConnection:
        if self.conn is None:
            raise ConnectivityError(f"Session for {self.name} is closed")
        if self._interrupted:
            raise CheckTimeoutError(f"Session for {self.name} was interrupted")
        try:
            if params:
                return self.conn.execute(sql, params)
            return self.conn.execute(sql)
        except duckdb.InterruptException as e:
            if self._interrupted:
                raise CheckTimeoutError(f"Query on {self.name} interrupted") from e
            raise QueryError(f"Query on {self.name} interrupted: {e}", sql=sql) from e
        except (duckdb.ConnectionException, duckdb.IOException) as e:
            raise ConnectivityError(f"Lost connection to {self.name}: {e}") from e
        except duckdb.Error as e:
            raise QueryError(f"Query failed on {self.name}: {e}", sql=sql) from e

    def _fetch(self, result: duckdb.DuckDBPyConnection, method: str, sql: str) -> Any:
        try:
            return getattr(result, method)()
        except duckdb.InterruptException as e:
            if self._interrupted:
                raise CheckTimeoutError(f"Query on {self.name} interrupted") from e
            raise QueryError(f"Query on {self.name} interrupted: {e}", sql=sql) from e
        except duckdb.Error as e:
            raise QueryError(f"Fetching results failed on {self.name}: {e}", sql=sql) from e

    def execute_scalar(self, sql: str, params: Optional[list] = None) -> Any:
        """
        Execute a query and return the first column of the first row.

        Returns:
            The value, or None if the query returned no rows

        Raises:
            ConnectivityError: If the database cannot be reached
            QueryError: If the query cannot be executed
        """
        row = self._fetch(self._execute(sql, params), "fetchone", sql)
        return row[0] if row else None

    def execute_row(self, sql: str, params: Optional[list] = None) -> tuple | None:
        """Execute a query and return the first row, or None."""
        return self._fetch(self._execute(sql, params), "fetchone", sql)

    def execute_rows(self, sql: str, params: Optional[list] = None) -> list[tuple]:
        """Execute a query and return all rows."""
        return self._fetch(self._execute(sql, params), "fetchall", sql)

    def execute_frame(self, sql: str, params: Optional[list] = None) -> pl.DataFrame:
        """Execute a query and return a polars DataFrame."""
        return self._fetch(self._execute(sql, params), "pl", sql)

    def interrupt(self) -> None:
        """Abort the running query; it raises CheckTimeoutError."""
        self._interrupted = True
        if self.conn is not None:
            self.conn.interrupt()

    @property
    def interrupted(self) -> bool:
        return self._interrupted

    def close(self) -> None:
        """Close the session's connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class SessionFactory:
    """
    Hands out independent sessions for one registered database.

    Holds a single root DuckDB connection; every session gets its own
    cursor, which DuckDB treats as a separate connection to the same
    database, so concurrent tasks never share a connection.
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection, name: str):
        self.conn = conn
        self.name = name
        self._lock = threading.Lock()

    def session(self) -> DatabaseSession:
        """
        Open a new session.

        Raises:
            ConnectivityError: If the factory has been closed
        """
        with self._lock:
            if self.conn is None:
                raise ConnectivityError(f"Database {self.name} is closed")
            try:
                cursor = self.conn.cursor()
            except duckdb.Error as e:
                raise ConnectivityError(f"Cannot open session on {self.name}: {e}") from e
        return DatabaseSession(cursor, self.name)

    def close(self) -> None:
        with self._lock:
            if self.conn:
                self.conn.close()
                self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @classmethod
    def open(cls, db_path: Path, name: str) -> "SessionFactory":
        """
        Open a DuckDB database file read-only.

        Raises:
            ConnectivityError: If the file is missing or cannot be opened
        """
        db_path = Path(db_path)
        if not db_path.exists():
            raise ConnectivityError(f"Database file not found for {name}: {db_path}")
        try:
            conn = duckdb.connect(str(db_path), read_only=True)
        except duckdb.Error as e:
            raise ConnectivityError(f"Cannot open {name} at {db_path}: {e}") from e
        return cls(conn, name)

    @classmethod
    def from_source(cls, source: "DatabaseSource") -> "SessionFactory":
        """
        Create SessionFactory from a configured DatabaseSource.

        Args:
            source: DatabaseSource instance

        Returns:
            SessionFactory instance
        """
        return cls.open(source.path, source.name)


class SessionPool:
    """
    Session factories for every database of a run, opened on first use.

    A database that cannot be opened is remembered, and every later request
    for it raises the same ConnectivityError; other databases are unaffected.
    """

    def __init__(self, sources: Optional[dict] = None):
        """
        Args:
            sources: Mapping of database name -> DatabaseSource
        """
        self._sources = dict(sources or {})
        self._factories: dict[str, SessionFactory] = {}
        self._failures: dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, name: str, factory: SessionFactory) -> None:
        """Use an already open factory for a database."""
        with self._lock:
            self._factories[name] = factory

    def factory(self, name: str) -> SessionFactory:
        """
        Factory for a database, opening it if needed.

        Raises:
            ConnectivityError: If the database is unknown or cannot be opened
        """
        with self._lock:
            if name in self._factories:
                return self._factories[name]
            if name in self._failures:
                raise ConnectivityError(self._failures[name])
            source = self._sources.get(name)
            if source is None:
                raise ConnectivityError(f"No connection details for database {name}")
            try:
                factory = SessionFactory.from_source(source)
            except ConnectivityError as e:
                self._failures[name] = str(e)
                raise
            self._factories[name] = factory
            return factory

    def session(self, name: str) -> DatabaseSession:
        return self.factory(name).session()

    def close(self) -> None:
        with self._lock:
            for factory in self._factories.values():
                factory.close()
            self._factories.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @classmethod
    def from_catalog(cls, catalog: "MetadataCatalog") -> "SessionPool":
        """Pool over every database (current and previous) in a catalog."""
        names = [i.name for i in catalog.identities + catalog.previous_identities]
        return cls({name: catalog.source(name) for name in names})
