"""Run-scoped, append-only sink for report entries and task outcomes."""

import threading
from collections import Counter, defaultdict
from collections.abc import Iterable

import polars as pl
import structlog

from ensembl_healthcheck.metadata.check import CheckMetadata, Team
from ensembl_healthcheck.metadata.identity import DatabaseIdentity
from ensembl_healthcheck.report.entry import CheckOutcome, ReportEntry, TaskStatus
from ensembl_healthcheck.report.severity import FindingKind, Severity

logger = structlog.get_logger(__name__)

ENTRY_SCHEMA = {
    "check_name": pl.Utf8,
    "database": pl.Utf8,
    "species": pl.Utf8,
    "db_kind": pl.Utf8,
    "schema_version": pl.Int64,
    "severity": pl.Utf8,
    "severity_level": pl.Int64,
    "finding_kind": pl.Utf8,
    "team": pl.Utf8,
    "message": pl.Utf8,
    "created_at": pl.Utf8,
}

OUTCOME_SCHEMA = {
    "check_name": pl.Utf8,
    "database": pl.Utf8,
    "status": pl.Utf8,
    "team": pl.Utf8,
    "duration_seconds": pl.Float64,
    "error": pl.Utf8,
}


class ReportAggregator:
    """
    Collects findings from every check of one run.

    Created at run start and passed explicitly to every task. Appends are
    safe under concurrent writers; there are no update or delete operations.
    Queries return snapshots, so they can be called while tasks still run.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: list[ReportEntry] = []
        self._outcomes: list[CheckOutcome] = []

    def append(self, entry: ReportEntry) -> None:
        """Record a finding."""
        with self._lock:
            self._entries.append(entry)

    def record_outcome(self, outcome: CheckOutcome) -> None:
        """Record the final status of one (database, check) task."""
        with self._lock:
            self._outcomes.append(outcome)

    def reporter(self, metadata: CheckMetadata, database: DatabaseIdentity) -> "Reporter":
        """Reporter bound to one check and database."""
        return Reporter(self, metadata, database)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def entries(
        self,
        min_severity: Severity = Severity.ALL,
        check_name: str | None = None,
        database: str | None = None,
        team: Team | None = None,
    ) -> list[ReportEntry]:
        """
        Entries at or above a severity, optionally filtered.

        Args:
            min_severity: Lowest severity included (ALL = everything,
                          NONE = nothing)
            check_name: Only entries from this check
            database: Only entries about this database name
            team: Only entries owned by this team

        Returns:
            Matching entries in emission order
        """
        with self._lock:
            snapshot = list(self._entries)
        return [
            e
            for e in snapshot
            if e.severity >= min_severity
            and (check_name is None or e.check_name == check_name)
            and (database is None or e.database.name == database)
            and (team is None or e.team == team)
        ]

    def by_team(self, min_severity: Severity = Severity.ALL) -> dict[Team, list[ReportEntry]]:
        grouped: dict[Team, list[ReportEntry]] = defaultdict(list)
        for entry in self.entries(min_severity):
            grouped[entry.team].append(entry)
        return dict(grouped)

    def by_database(self, min_severity: Severity = Severity.ALL) -> dict[str, list[ReportEntry]]:
        grouped: dict[str, list[ReportEntry]] = defaultdict(list)
        for entry in self.entries(min_severity):
            grouped[entry.database.name].append(entry)
        return dict(grouped)

    def outcomes(self, status: TaskStatus | None = None) -> list[CheckOutcome]:
        with self._lock:
            snapshot = list(self._outcomes)
        if status is None:
            return snapshot
        return [o for o in snapshot if o.status == status]

    def failed_checks(self) -> list[CheckOutcome]:
        """Tasks that verified and found a violation."""
        return self.outcomes(TaskStatus.FAILED)

    def errors(self) -> list[CheckOutcome]:
        """Tasks that could not verify (connectivity, query error, timeout)."""
        return self.outcomes(TaskStatus.ERROR)

    def has_failures(self, check_names: Iterable[str] | None = None) -> bool:
        """
        Whether any task FAILED or ERRORed.

        Args:
            check_names: Restrict to these checks (e.g. those in a required group)
        """
        names = set(check_names) if check_names is not None else None
        return any(
            o.status in (TaskStatus.FAILED, TaskStatus.ERROR)
            and (names is None or o.check_name in names)
            for o in self.outcomes()
        )

    def summary(self) -> dict:
        """Counts by severity, finding kind and task status."""
        entries = self.entries()
        outcomes = self.outcomes()
        severity_counts = Counter(e.severity.name for e in entries)
        status_counts = Counter(o.status.value for o in outcomes)
        return {
            "total_entries": len(entries),
            "severity_counts": {
                level.name: severity_counts.get(level.name, 0)
                for level in Severity
                if not level.is_sentinel
            },
            "configuration_problems": sum(
                1 for e in entries if e.kind == FindingKind.CONFIGURATION
            ),
            "total_tasks": len(outcomes),
            "status_counts": {
                status.value: status_counts.get(status.value, 0)
                for status in TaskStatus
            },
        }

    def to_dataframe(self, min_severity: Severity = Severity.ALL) -> pl.DataFrame:
        """Entries as a polars DataFrame (one row per entry)."""
        rows = [e.to_dict() for e in self.entries(min_severity)]
        return pl.DataFrame(rows, schema=ENTRY_SCHEMA)

    def outcomes_dataframe(self) -> pl.DataFrame:
        rows = [o.to_dict() for o in self.outcomes()]
        return pl.DataFrame(rows, schema=OUTCOME_SCHEMA)


class Reporter:
    """Emits entries for one (check, database) pair into an aggregator."""

    def __init__(
        self,
        aggregator: ReportAggregator,
        metadata: CheckMetadata,
        database: DatabaseIdentity,
    ):
        self.aggregator = aggregator
        self.metadata = metadata
        self.database = database

    def _emit(
        self,
        severity: Severity,
        message: str,
        kind: FindingKind = FindingKind.DATA,
    ) -> ReportEntry:
        entry = ReportEntry(
            check_name=self.metadata.name,
            database=self.database,
            severity=severity,
            message=message,
            team=self.metadata.team,
            kind=kind,
        )
        self.aggregator.append(entry)
        if severity >= Severity.PROBLEM:
            logger.warning(
                "problem_reported",
                check=self.metadata.name,
                database=self.database.name,
                kind=kind.value,
                message=message,
            )
        else:
            logger.debug(
                "entry_reported",
                check=self.metadata.name,
                database=self.database.name,
                severity=severity.name,
                message=message,
            )
        return entry

    def correct(self, message: str) -> ReportEntry:
        return self._emit(Severity.CORRECT, message)

    def info(self, message: str) -> ReportEntry:
        return self._emit(Severity.INFO, message)

    def warning(self, message: str) -> ReportEntry:
        return self._emit(Severity.WARNING, message)

    def problem(self, message: str) -> ReportEntry:
        return self._emit(Severity.PROBLEM, message)

    def configuration_problem(self, message: str) -> ReportEntry:
        """PROBLEM caused by missing metadata rather than bad data."""
        return self._emit(Severity.PROBLEM, message, FindingKind.CONFIGURATION)
