from .loader import load_config, load_config_with_overrides
from .schema import DatabaseSource, HealthcheckConfig, RunSettings

__all__ = [
    "load_config",
    "load_config_with_overrides",
    "DatabaseSource",
    "HealthcheckConfig",
    "RunSettings",
]
