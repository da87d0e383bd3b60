"""Immutable report values: findings and per-task outcomes."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from ensembl_healthcheck.metadata.check import Team
from ensembl_healthcheck.metadata.identity import DatabaseIdentity
from ensembl_healthcheck.report.severity import FindingKind, Severity


@dataclass(frozen=True)
class ReportEntry:
    """One finding emitted by a check against a database.

    Attributes:
        check_name: Name of the emitting check
        database: Identity of the database the finding is about
        severity: Severity level (never a sentinel)
        message: Human-readable finding
        team: Team responsible for triage
        kind: DATA for data findings, CONFIGURATION for missing metadata
        created_at: Emission time (UTC)
    """

    check_name: str
    database: DatabaseIdentity
    severity: Severity
    message: str
    team: Team
    kind: FindingKind = FindingKind.DATA
    created_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
        compare=False,
    )

    def __post_init__(self):
        if self.severity.is_sentinel:
            raise ValueError(
                f"Severity {self.severity.name} is a filter sentinel and cannot be emitted"
            )

    def to_dict(self) -> dict:
        return {
            "check_name": self.check_name,
            "database": self.database.name,
            "species": self.database.species_label,
            "db_kind": self.database.kind.value,
            "schema_version": self.database.schema_version,
            "severity": self.severity.name,
            "severity_level": int(self.severity),
            "finding_kind": self.kind.value,
            "team": self.team.value,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
        }


class TaskStatus(str, Enum):
    """Outcome of one (database, check) task.

    ERROR means the check could not verify anything (connectivity, bad
    query, timeout); FAILED means it verified and found a violation.
    """

    PASSED = "PASSED"
    FAILED = "FAILED"
    ERROR = "ERROR"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class CheckOutcome:
    """Result of running one check against one database."""

    check_name: str
    database: DatabaseIdentity
    status: TaskStatus
    team: Team
    duration_seconds: float = 0.0
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "check_name": self.check_name,
            "database": self.database.name,
            "status": self.status.value,
            "team": self.team.value,
            "duration_seconds": round(self.duration_seconds, 3),
            "error": self.error,
        }
