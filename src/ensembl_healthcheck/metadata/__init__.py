"""Identity and metadata model: databases, checks and applicability."""

from ensembl_healthcheck.metadata.catalog import (
    IGNORE_PREFIX,
    MetadataCatalog,
    resolve_identity,
)
from ensembl_healthcheck.metadata.check import (
    ALL_KINDS,
    CheckMetadata,
    CheckMetadataBuilder,
    Priority,
    Team,
    applies,
)
from ensembl_healthcheck.metadata.identity import (
    DatabaseIdentity,
    DatabaseKind,
    Species,
)

__all__ = [
    "IGNORE_PREFIX",
    "MetadataCatalog",
    "resolve_identity",
    "ALL_KINDS",
    "CheckMetadata",
    "CheckMetadataBuilder",
    "Priority",
    "Team",
    "applies",
    "DatabaseIdentity",
    "DatabaseKind",
    "Species",
]
