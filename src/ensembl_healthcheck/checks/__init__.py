"""Check cases, invariant primitives and the check registry."""

from ensembl_healthcheck.checks.base import Check, CheckContext, SingleDatabaseCheck
from ensembl_healthcheck.checks.declarative import (
    CountEquality,
    ForeignKeyCheck,
    Relation,
    RelationGuard,
    RowCountAssertionsCheck,
    ZeroCountAssertion,
)
from ensembl_healthcheck.checks.drift import (
    ComparePreviousVersionCheck,
    RatioDirection,
    ThresholdComparisonRecord,
    Verdict,
    compare_counts,
)
from ensembl_healthcheck.checks.registry import CheckRegistry, default_registry

__all__ = [
    "Check",
    "CheckContext",
    "SingleDatabaseCheck",
    "CountEquality",
    "ForeignKeyCheck",
    "Relation",
    "RelationGuard",
    "RowCountAssertionsCheck",
    "ZeroCountAssertion",
    "ComparePreviousVersionCheck",
    "RatioDirection",
    "ThresholdComparisonRecord",
    "Verdict",
    "compare_counts",
    "CheckRegistry",
    "default_registry",
]
