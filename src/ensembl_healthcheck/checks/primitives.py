"""Reusable SQL invariant primitives.

Each primitive issues read-only queries through the context's session,
emits report entries through its reporter and returns whether the
invariant held. Query and connectivity failures propagate unchanged: they
abort the current primitive only, and the owning check decides whether
that means "not applicable" or an ERROR. Nothing here retries.
"""

import re
from typing import Optional

import structlog

from ensembl_healthcheck.checks.base import CheckContext
from ensembl_healthcheck.errors import QueryError

logger = structlog.get_logger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_identifier(name: str) -> str:
    """
    Validate a table or column name for interpolation into SQL.

    Raises:
        QueryError: If the name is not a plain identifier
    """
    if not IDENTIFIER_PATTERN.match(name or ""):
        raise QueryError(f"Invalid SQL identifier: {name!r}")
    return name


def get_row_count(ctx: CheckContext, sql: str, params: Optional[list] = None) -> int:
    """
    Run a single-value count query.

    Args:
        ctx: Check context
        sql: Query returning one integer (e.g. SELECT COUNT(*) ...)
        params: Optional query parameters

    Returns:
        The count; a query returning no row or NULL counts as 0

    Raises:
        QueryError: If the query cannot be executed
        ConnectivityError: If the database cannot be reached
    """
    value = ctx.session.execute_scalar(sql, params)
    count = int(value) if value is not None else 0
    logger.debug("row_count", check=ctx.metadata.name, database=ctx.identity.name, count=count)
    return count


def table_exists(ctx: CheckContext, table: str) -> bool:
    """Whether the database has a table with this name."""
    table = quote_identifier(table)
    return get_row_count(
        ctx,
        "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = ?",
        [table],
    ) > 0


def table_has_rows(ctx: CheckContext, table: str, report_empty: bool = True) -> bool:
    """
    Guard for checks that have nothing to test on an empty table.

    An empty table is not a defect: when report_empty is set, an INFO
    entry records that the dependent assertions were skipped.
    """
    table = quote_identifier(table)
    has_rows = ctx.session.execute_row(f"SELECT 1 FROM {table} LIMIT 1") is not None
    if not has_rows and report_empty:
        report_nothing_to_test(ctx, table)
    return has_rows


def report_nothing_to_test(ctx: CheckContext, table: str) -> None:
    ctx.reporter.info(f"No rows in {table}, nothing to test")


def _dangling_sql(
    child_table: str,
    child_key: str,
    parent_table: str,
    parent_key: str,
) -> str:
    child_table = quote_identifier(child_table)
    child_key = quote_identifier(child_key)
    parent_table = quote_identifier(parent_table)
    parent_key = quote_identifier(parent_key)
    return (
        f"FROM {child_table} c "
        f"LEFT JOIN {parent_table} p ON c.{child_key} = p.{parent_key} "
        f"WHERE c.{child_key} IS NOT NULL AND p.{parent_key} IS NULL"
    )


def check_for_orphans(
    ctx: CheckContext,
    child_table: str,
    child_key: str,
    parent_table: str,
    parent_key: str,
) -> bool:
    """
    Check that every non-null child key references an existing parent row.

    Checks one direction only; call again with the tables swapped to check
    the reverse relation.

    Args:
        ctx: Check context
        child_table: Table holding the foreign key
        child_key: Foreign key column in child_table
        parent_table: Referenced table
        parent_key: Referenced column in parent_table

    Returns:
        True if there are no orphans (CORRECT), False otherwise (PROBLEM
        citing the orphan count)
    """
    dangling = _dangling_sql(child_table, child_key, parent_table, parent_key)
    orphans = get_row_count(ctx, f"SELECT COUNT(*) {dangling}")
    if orphans > 0:
        ctx.reporter.problem(
            f"{orphans} rows in {child_table}.{child_key} have no matching "
            f"{parent_table}.{parent_key}; "
            f"useful SQL: SELECT c.{child_key} {dangling}"
        )
        logger.info(
            "orphans_found",
            check=ctx.metadata.name,
            database=ctx.identity.name,
            relation=f"{child_table}.{child_key} -> {parent_table}.{parent_key}",
            count=orphans,
        )
        return False

    ctx.reporter.correct(
        f"All {child_table}.{child_key} values reference {parent_table}.{parent_key}"
    )
    return True


def check_optional_relation(
    ctx: CheckContext,
    child_table: str,
    child_key: str,
    parent_table: str,
    parent_key: str,
) -> bool:
    """
    Check an optional foreign key: NULL means "no relation" and is valid.

    Only non-null keys without a parent row are violations.
    """
    dangling = get_row_count(
        ctx,
        "SELECT COUNT(*) " + _dangling_sql(child_table, child_key, parent_table, parent_key),
    )
    if dangling > 0:
        ctx.reporter.problem(
            f"{dangling} non-null values of optional {child_table}.{child_key} "
            f"have no matching {parent_table}.{parent_key}"
        )
        logger.info(
            "dangling_optional_relation",
            check=ctx.metadata.name,
            database=ctx.identity.name,
            relation=f"{child_table}.{child_key} -> {parent_table}.{parent_key}",
            count=dangling,
        )
        return False

    ctx.reporter.correct(
        f"All non-null {child_table}.{child_key} values reference {parent_table}.{parent_key}"
    )
    return True


def check_no_nulls(ctx: CheckContext, table: str, column: str) -> bool:
    """Check that a mandatory column holds no NULLs."""
    table = quote_identifier(table)
    column = quote_identifier(column)
    nulls = get_row_count(ctx, f"SELECT COUNT(*) FROM {table} WHERE {column} IS NULL")
    if nulls > 0:
        ctx.reporter.problem(f"{table} has {nulls} NULL {column} values")
        return False
    ctx.reporter.correct(f"No NULL {column} values in {table}")
    return True


def check_duplicate_keys(ctx: CheckContext, table: str, key: str) -> bool:
    """
    Check that a key column holds no duplicate values.

    The duplicate count is COUNT(key) - COUNT(DISTINCT key), so NULLs are
    ignored and each extra copy of a value counts once.
    """
    table = quote_identifier(table)
    key = quote_identifier(key)
    duplicates = get_row_count(
        ctx, f"SELECT COUNT({key}) - COUNT(DISTINCT {key}) FROM {table}"
    )
    if duplicates > 0:
        ctx.reporter.problem(f"{table} has {duplicates} duplicate {key} values")
        return False
    ctx.reporter.correct(f"No duplicate {key} values in {table}")
    return True


def assert_zero_rows(
    ctx: CheckContext,
    sql: str,
    problem: str,
    correct: str,
    params: Optional[list] = None,
) -> bool:
    """
    Generic "this count must be zero" assertion.

    Args:
        ctx: Check context
        sql: Count query
        problem: PROBLEM message; "{count}" is replaced with the count
        correct: CORRECT message
        params: Optional query parameters
    """
    count = get_row_count(ctx, sql, params)
    if count > 0:
        ctx.reporter.problem(problem.format(count=count))
        return False
    ctx.reporter.correct(correct)
    return True


def assert_counts_equal(
    ctx: CheckContext,
    left_sql: str,
    right_sql: str,
    problem: str,
    correct: str,
) -> bool:
    """
    Assert that two count queries agree.

    Args:
        problem: PROBLEM message; "{left}" and "{right}" are replaced with
                 the two counts
    """
    left = get_row_count(ctx, left_sql)
    right = get_row_count(ctx, right_sql)
    if left != right:
        ctx.reporter.problem(problem.format(left=left, right=right))
        return False
    ctx.reporter.correct(correct)
    return True
