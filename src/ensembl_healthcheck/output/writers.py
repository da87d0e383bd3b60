"""Dual-format TSV+Parquet report writer with YAML summary sidecar."""

from datetime import datetime, timezone
from pathlib import Path

import polars as pl
import yaml

from ensembl_healthcheck.report.aggregator import ReportAggregator
from ensembl_healthcheck.report.entry import TaskStatus
from ensembl_healthcheck.report.severity import Severity


def write_report(
    aggregator: ReportAggregator,
    output_dir: Path,
    min_severity: Severity = Severity.ALL,
    filename_base: str = "healthcheck_report",
) -> dict:
    """
    Write report entries to TSV and Parquet, outcomes to TSV, and a summary sidecar.

    Args:
        aggregator: Aggregator of a finished run
        output_dir: Directory to write output files (created if doesn't exist)
        min_severity: Lowest severity written to the entry files
        filename_base: Base filename without extension

    Returns:
        Dictionary with output file paths:
        {
            "tsv": entries TSV,
            "parquet": entries Parquet,
            "outcomes": per-task outcomes TSV,
            "summary": YAML sidecar
        }

    Notes:
        - Entries are sorted by database, check, descending severity
        - The summary always counts every entry, not only those written
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    entries = aggregator.to_dataframe(min_severity).sort(
        ["database", "check_name", "severity_level"],
        descending=[False, False, True],
        maintain_order=True,
    )
    outcomes = aggregator.outcomes_dataframe().sort(["database", "check_name"])

    tsv_path = output_dir / f"{filename_base}.tsv"
    parquet_path = output_dir / f"{filename_base}.parquet"
    outcomes_path = output_dir / f"{filename_base}.outcomes.tsv"
    summary_path = output_dir / f"{filename_base}.summary.yaml"

    entries.write_csv(tsv_path, separator="\t", include_header=True)
    entries.write_parquet(parquet_path, compression="snappy", use_pyarrow=True)
    outcomes.write_csv(outcomes_path, separator="\t", include_header=True)

    summary = aggregator.summary()
    sidecar = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "output_files": [tsv_path.name, parquet_path.name, outcomes_path.name],
        "min_severity": min_severity.name,
        "entries_written": entries.height,
        "passed": not aggregator.has_failures(),
        "statistics": summary,
    }

    with open(summary_path, "w") as f:
        yaml.dump(sidecar, f, default_flow_style=False, sort_keys=False)

    return {
        "tsv": tsv_path,
        "parquet": parquet_path,
        "outcomes": outcomes_path,
        "summary": summary_path,
    }


def format_text_report(
    aggregator: ReportAggregator,
    min_severity: Severity = Severity.PROBLEM,
) -> str:
    """
    Render a plain-text report grouped by database, then check.

    Every check that FAILED or ERRORed is listed even if it has no entries
    at or above min_severity, so a failing run is never reported as empty.
    """
    lines: list[str] = []
    by_database = aggregator.by_database(min_severity)
    outcomes = {(o.database.name, o.check_name): o for o in aggregator.outcomes()}

    databases = list(by_database)
    for name, _ in outcomes:
        if name not in databases:
            databases.append(name)

    for db_name in databases:
        entries = by_database.get(db_name, [])
        checks: dict[str, list] = {}
        for entry in entries:
            checks.setdefault(entry.check_name, []).append(entry)
        for (outcome_db, check_name), outcome in outcomes.items():
            if outcome_db == db_name and outcome.status in (TaskStatus.FAILED, TaskStatus.ERROR):
                checks.setdefault(check_name, [])

        if not checks:
            continue

        lines.append(db_name)
        lines.append("=" * len(db_name))
        for check_name, check_entries in checks.items():
            outcome = outcomes.get((db_name, check_name))
            status = outcome.status.value if outcome else "RUNNING"
            lines.append(f"  {check_name} [{status}]")
            if outcome is not None and outcome.error:
                lines.append(f"    ERROR: {outcome.error}")
            for entry in check_entries:
                lines.append(f"    {entry.severity.name}: {entry.message}")
        lines.append("")

    summary = aggregator.summary()
    status_counts = ", ".join(f"{k}={v}" for k, v in summary["status_counts"].items())
    lines.append(f"Tasks: {summary['total_tasks']} ({status_counts})")
    lines.append(f"Entries: {summary['total_entries']}")
    lines.append("Result: " + ("FAILED" if aggregator.has_failures() else "PASSED"))
    return "\n".join(lines)
