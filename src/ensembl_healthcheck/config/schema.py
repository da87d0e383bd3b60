"""Pydantic models for healthcheck configuration."""

import hashlib
import json
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from ensembl_healthcheck.report.severity import Severity


class DatabaseSource(BaseModel):
    """A database instance to check, backed by a DuckDB file."""

    name: str = Field(
        ...,
        min_length=1,
        description="Logical database name, e.g. homo_sapiens_core_113_38",
    )
    path: Path = Field(
        ...,
        description="Path to the DuckDB file holding the database",
    )
    species: str | None = Field(
        default=None,
        description="Species override (parsed from name if omitted)",
    )
    kind: str | None = Field(
        default=None,
        description="Database kind override, e.g. core or compara",
    )
    schema_version: int | None = Field(
        default=None,
        ge=0,
        description="Schema version override (parsed from name if omitted)",
    )


class RunSettings(BaseModel):
    """Which checks run and how."""

    groups: list[str] = Field(
        default_factory=lambda: ["release"],
        description="Check groups to run",
    )
    checks: list[str] = Field(
        default_factory=list,
        description="Restrict the run to these check names (empty = all in groups)",
    )
    max_workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Parallel (database, check) tasks",
    )
    check_timeout_seconds: float | None = Field(
        default=600.0,
        gt=0,
        description="Wall-clock budget per check (None = unlimited)",
    )
    output_level: str = Field(
        default="PROBLEM",
        description="Minimum severity shown in reports",
    )

    @field_validator("output_level")
    @classmethod
    def validate_output_level(cls, v: str) -> str:
        """Accept any severity name, case-insensitive."""
        return Severity.parse(v).name


class HealthcheckConfig(BaseModel):
    """Main healthcheck configuration."""

    output_dir: Path = Field(
        ...,
        description="Directory for report files",
    )
    databases: list[DatabaseSource] = Field(
        ...,
        min_length=1,
        description="Databases under test",
    )
    previous_databases: list[DatabaseSource] = Field(
        default_factory=list,
        description="Previous-release databases used as comparison baselines",
    )
    stable_id_prefixes: dict[str, str] = Field(
        default_factory=dict,
        description="Extra or overriding species -> stable ID prefix entries",
    )
    run: RunSettings = Field(
        default_factory=RunSettings,
        description="Run settings",
    )

    @field_validator("output_dir")
    @classmethod
    def create_directory(cls, v: Path) -> Path:
        """Create directory if it doesn't exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    @model_validator(mode="after")
    def unique_database_names(self) -> "HealthcheckConfig":
        names = [s.name for s in self.databases + self.previous_databases]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate database names: {', '.join(duplicates)}")
        return self

    def config_hash(self) -> str:
        """
        Compute SHA-256 hash of the configuration.

        Returns a deterministic hash based on all config values,
        recorded in run provenance.
        """
        config_dict = self.model_dump(mode="python")
        config_json = json.dumps(
            config_dict,
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(config_json.encode()).hexdigest()
