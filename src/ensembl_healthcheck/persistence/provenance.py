"""Provenance tracking for healthcheck runs."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


class RunProvenance:
    """
    Records what a healthcheck run looked at and how.

    Captures tool version, configuration hash, the databases checked and
    the steps of the run, so a report can be traced back to its inputs.
    """

    def __init__(self, tool_version: str, config: "HealthcheckConfig"):
        """
        Initialize run provenance.

        Args:
            tool_version: Healthcheck version string (e.g., "0.1.0")
            config: HealthcheckConfig instance
        """
        self.tool_version = tool_version
        self.config_hash = config.config_hash()
        self.databases = [source.name for source in config.databases]
        self.previous_databases = [source.name for source in config.previous_databases]
        self.run_settings = config.run.model_dump()
        self.steps = []
        self.created_at = datetime.now(timezone.utc)

    def record_step(self, step_name: str, details: Optional[dict] = None) -> None:
        """
        Record a run step.

        Args:
            step_name: Name of the step
            details: Optional dictionary of additional details
        """
        step = {
            "step_name": step_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if details:
            step["details"] = details
        self.steps.append(step)

    def create_metadata(self) -> dict:
        """Full provenance metadata dictionary."""
        return {
            "tool_version": self.tool_version,
            "config_hash": self.config_hash,
            "databases": self.databases,
            "previous_databases": self.previous_databases,
            "run_settings": self.run_settings,
            "created_at": self.created_at.isoformat(),
            "steps": self.steps,
        }

    def save_sidecar(self, output_path: Path) -> Path:
        """
        Save provenance metadata as a JSON sidecar file.

        Args:
            output_path: Path to the main output file.
                         Sidecar will be saved as {path}.provenance.json

        Returns:
            Path of the sidecar file
        """
        sidecar_path = output_path.with_suffix(".provenance.json")
        sidecar_path.parent.mkdir(parents=True, exist_ok=True)

        with open(sidecar_path, "w") as f:
            json.dump(self.create_metadata(), f, indent=2, default=str)
        return sidecar_path

    @staticmethod
    def load_sidecar(sidecar_path: Path) -> dict:
        with open(sidecar_path) as f:
            return json.load(f)

    @classmethod
    def from_config(
        cls,
        config: "HealthcheckConfig",
        version: Optional[str] = None
    ) -> "RunProvenance":
        """
        Create RunProvenance from a HealthcheckConfig.

        Args:
            config: HealthcheckConfig instance
            version: Tool version string. If None, uses ensembl_healthcheck.__version__
        """
        if version is None:
            from ensembl_healthcheck import __version__
            version = __version__

        return cls(version, config)
