"""Report output: TSV/Parquet files, YAML summary and plain-text rendering."""

from ensembl_healthcheck.output.writers import format_text_report, write_report

__all__ = ["write_report", "format_text_report"]
