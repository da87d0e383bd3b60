"""Cross-version count drift comparison.

Compares grouped counts (e.g. xrefs per external database) between the
database under test and its previous-release counterpart. The ratio
direction is declared per check because it changes what the threshold
means:

- CURRENT_OVER_PREVIOUS: ratio = current / previous. A key that vanished
  has current 0, ratio 0, and always fails. Flags shrinkage.
- PREVIOUS_OVER_CURRENT: ratio = previous / current. A vanished key gives
  an infinite ratio and passes; this direction flags growth only.

In both directions a key fails iff ratio < threshold.
"""

import math
from abc import abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

import structlog

from ensembl_healthcheck.checks.base import CheckContext, SingleDatabaseCheck
from ensembl_healthcheck.metadata.check import CheckMetadata
from ensembl_healthcheck.metadata.identity import DatabaseIdentity
from ensembl_healthcheck.persistence.session import DatabaseSession

logger = structlog.get_logger(__name__)


class RatioDirection(str, Enum):
    CURRENT_OVER_PREVIOUS = "current/previous"
    PREVIOUS_OVER_CURRENT = "previous/current"


class Verdict(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class ThresholdComparisonRecord:
    """Comparison of one key's count across versions.

    Attributes:
        key: Category key (e.g. external database name)
        previous_count: Count in the previous release
        current_count: Count in the database under test (0 if absent)
        ratio: Computed ratio, None when the key was skipped
        verdict: PASS, FAIL, or SKIPPED (previous count 0 or below minimum)
    """

    key: str
    previous_count: int
    current_count: int
    ratio: float | None
    verdict: Verdict


def compute_ratio(previous: int, current: int, direction: RatioDirection) -> float:
    """Ratio of a key's counts in the declared direction."""
    if direction == RatioDirection.CURRENT_OVER_PREVIOUS:
        return current / previous
    if current == 0:
        return math.inf
    return previous / current


def compare_counts(
    previous: Mapping[str, int],
    current: Mapping[str, int],
    threshold: float,
    direction: RatioDirection = RatioDirection.CURRENT_OVER_PREVIOUS,
    minimum: int = 0,
) -> tuple[list[ThresholdComparisonRecord], list[str]]:
    """
    Compare grouped counts between two versions.

    Args:
        previous: key -> count in the previous release
        current: key -> count in the database under test
        threshold: Minimum acceptable ratio (exclusive: ratio < threshold fails)
        direction: Which way the ratio is computed
        minimum: Keys with a previous count below this are skipped

    Returns:
        Tuple of (one record per previous key, sorted by key; keys only
        present in current, sorted)

    Raises:
        ValueError: If threshold is not positive
    """
    if threshold <= 0:
        raise ValueError(f"Drift threshold must be positive, got {threshold}")

    records = []
    for key in sorted(previous):
        previous_count = int(previous[key])
        current_count = int(current.get(key, 0))

        if previous_count <= 0 or previous_count < minimum:
            records.append(ThresholdComparisonRecord(
                key, previous_count, current_count, None, Verdict.SKIPPED
            ))
            continue

        ratio = compute_ratio(previous_count, current_count, direction)
        verdict = Verdict.FAIL if ratio < threshold else Verdict.PASS
        records.append(ThresholdComparisonRecord(
            key, previous_count, current_count, ratio, verdict
        ))

    new_keys = sorted(key for key in current if key not in previous)
    return records, new_keys


def counts_by_sql(session: DatabaseSession, sql: str) -> dict[str, int]:
    """Run a two-column (key, count) query and return it as a dict."""
    return {
        str(key): int(count or 0)
        for key, count in session.execute_rows(sql)
        if key is not None
    }


class ComparePreviousVersionCheck(SingleDatabaseCheck):
    """
    Template for checks comparing grouped counts with the previous release.

    Subclasses supply get_counts() and may override threshold, direction,
    minimum_count and description_noun. Any schema-version-dependent SQL is
    resolved inside get_counts() using the identity passed in; the
    comparison itself does not look at schema versions.

    Every failing key is a PROBLEM citing the key, both counts and the
    ratio; every passing key is CORRECT; keys new in this release are INFO.
    Without a registered previous release the check passes with an INFO.
    """

    needs_previous_version = True

    threshold: float = 0.78
    direction: RatioDirection = RatioDirection.CURRENT_OVER_PREVIOUS
    minimum_count: int = 0
    description_noun: str = "rows"

    def __init__(self, metadata: CheckMetadata):
        super().__init__(metadata)

    @abstractmethod
    def get_counts(self, session: DatabaseSession, identity: DatabaseIdentity) -> dict[str, int]:
        """Grouped counts (key -> count) for one database."""

    def run(self, ctx: CheckContext) -> bool:
        if ctx.previous_session is None or ctx.previous_identity is None:
            ctx.reporter.info(
                f"No previous release of {ctx.identity.name} registered, "
                f"{self.description_noun} not compared"
            )
            return True

        previous = self.get_counts(ctx.previous_session, ctx.previous_identity)
        current = self.get_counts(ctx.session, ctx.identity)
        records, new_keys = compare_counts(
            previous,
            current,
            self.threshold,
            self.direction,
            self.minimum_count,
        )

        result = True
        previous_name = ctx.previous_identity.name
        for record in records:
            if record.verdict == Verdict.FAIL:
                result = False
                ctx.reporter.problem(
                    f"{record.key}: {ctx.identity.name} has {record.current_count} "
                    f"{self.description_noun}, {previous_name} had {record.previous_count} "
                    f"(ratio {self.direction.value} = {record.ratio:.2f}, "
                    f"threshold {self.threshold})"
                )
            elif record.verdict == Verdict.PASS:
                ctx.reporter.correct(
                    f"{record.key}: {record.current_count} {self.description_noun} "
                    f"vs {record.previous_count} in {previous_name} "
                    f"(ratio {record.ratio:.2f})"
                )

        for key in new_keys:
            ctx.reporter.info(
                f"{key}: {current[key]} {self.description_noun} new since {previous_name}"
            )

        logger.info(
            "version_drift_compared",
            check=self.metadata.name,
            database=ctx.identity.name,
            previous=previous_name,
            keys=len(records),
            failed=sum(1 for r in records if r.verdict == Verdict.FAIL),
            skipped=sum(1 for r in records if r.verdict == Verdict.SKIPPED),
            new_keys=len(new_keys),
        )
        return result
