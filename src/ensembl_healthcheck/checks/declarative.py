"""Checks defined as data: foreign key relations and count assertions."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Union

from ensembl_healthcheck.checks import primitives
from ensembl_healthcheck.checks.base import CheckContext, SingleDatabaseCheck
from ensembl_healthcheck.metadata.check import CheckMetadata


@dataclass(frozen=True)
class Relation:
    """One foreign key direction: child_table.child_key -> parent_table.parent_key."""

    child_table: str
    child_key: str
    parent_table: str
    parent_key: str
    optional: bool = False

    def evaluate(self, ctx: CheckContext) -> bool:
        check = (
            primitives.check_optional_relation
            if self.optional
            else primitives.check_for_orphans
        )
        return check(ctx, self.child_table, self.child_key, self.parent_table, self.parent_key)


@dataclass(frozen=True)
class RelationGuard:
    """Relations that are only tested when a guard table has rows.

    An empty guard table yields an INFO entry and counts as passing.
    Guards nest, so a relation can depend on several tables being populated.
    """

    table: str
    relations: tuple[Union[Relation, "RelationGuard"], ...]

    def evaluate(self, ctx: CheckContext) -> bool:
        if not primitives.table_has_rows(ctx, self.table):
            return True
        result = True
        for relation in self.relations:
            result &= relation.evaluate(ctx)
        return result


class ForeignKeyCheck(SingleDatabaseCheck):
    """Orphan and optional-relation checks over a declared set of relations."""

    def __init__(self, metadata: CheckMetadata, guards: Sequence[RelationGuard]):
        super().__init__(metadata)
        self.guards = tuple(guards)

    def run(self, ctx: CheckContext) -> bool:
        result = True
        for guard in self.guards:
            result &= guard.evaluate(ctx)
        return result


@dataclass(frozen=True)
class ZeroCountAssertion:
    """A count query that must return 0. problem may use {count}."""

    sql: str
    problem: str
    correct: str


@dataclass(frozen=True)
class CountEquality:
    """Two count queries that must agree. problem may use {left} and {right}."""

    left_sql: str
    right_sql: str
    problem: str
    correct: str


class RowCountAssertionsCheck(SingleDatabaseCheck):
    """Runs every declared assertion in order and ANDs the results."""

    def __init__(
        self,
        metadata: CheckMetadata,
        assertions: Sequence[ZeroCountAssertion],
        equalities: Sequence[CountEquality] = (),
    ):
        super().__init__(metadata)
        self.assertions = tuple(assertions)
        self.equalities = tuple(equalities)

    def run(self, ctx: CheckContext) -> bool:
        result = True
        for assertion in self.assertions:
            result &= primitives.assert_zero_rows(
                ctx, assertion.sql, assertion.problem, assertion.correct
            )
        for equality in self.equalities:
            result &= primitives.assert_counts_equal(
                ctx, equality.left_sql, equality.right_sql, equality.problem, equality.correct
            )
        return result
