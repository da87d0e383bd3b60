"""Shared fixtures: in-memory DuckDB databases and check contexts."""

import duckdb
import polars as pl
import pytest

from ensembl_healthcheck.checks.base import CheckContext
from ensembl_healthcheck.metadata.check import CheckMetadata
from ensembl_healthcheck.metadata.identity import DatabaseIdentity
from ensembl_healthcheck.persistence.session import DatabaseSession
from ensembl_healthcheck.report.aggregator import ReportAggregator


def create_table(conn, name: str, df: pl.DataFrame) -> None:
    """Create a table from a polars DataFrame."""
    conn.execute(f"CREATE TABLE {name} AS SELECT * FROM df")


@pytest.fixture
def memory_db():
    """In-memory DuckDB connection."""
    conn = duckdb.connect()
    yield conn
    conn.close()


@pytest.fixture
def aggregator():
    return ReportAggregator()


@pytest.fixture
def make_context(memory_db, aggregator):
    """Factory for check contexts on the in-memory database."""
    sessions = []

    def _make(
        metadata=None,
        identity=None,
        catalog=None,
        previous_identity=None,
        previous_session=None,
        conn=None,
    ):
        metadata = metadata or CheckMetadata.builder("TestCheck").in_groups("release").build()
        identity = identity or DatabaseIdentity.from_name("homo_sapiens_core_113_38")
        session = DatabaseSession((conn or memory_db).cursor(), identity.name)
        sessions.append(session)
        return CheckContext(
            metadata=metadata,
            identity=identity,
            session=session,
            reporter=aggregator.reporter(metadata, identity),
            catalog=catalog,
            previous_identity=previous_identity,
            previous_session=previous_session,
        )

    yield _make
    for session in sessions:
        session.close()
