"""Report model: severity levels, findings and the run aggregator."""

from ensembl_healthcheck.report.aggregator import ReportAggregator, Reporter
from ensembl_healthcheck.report.entry import CheckOutcome, ReportEntry, TaskStatus
from ensembl_healthcheck.report.severity import FindingKind, Severity

__all__ = [
    "ReportAggregator",
    "Reporter",
    "CheckOutcome",
    "ReportEntry",
    "TaskStatus",
    "FindingKind",
    "Severity",
]
