"""Concrete checks shipped with the engine."""

from ensembl_healthcheck.checks.catalog.compara import (
    FOREIGN_KEY_GENOMIC_ALIGN_BLOCK_ID,
    FOREIGN_KEY_MEMBER_ID,
)
from ensembl_healthcheck.checks.catalog.generic import (
    CANONICAL_TRANSCRIPT_CODING,
    COMPARE_PREVIOUS_VERSION_XREFS,
    STABLE_ID,
    ComparePreviousVersionXrefs,
    StableIDCheck,
)

# Static list the default registry is built from
DEFAULT_CHECKS = (
    FOREIGN_KEY_GENOMIC_ALIGN_BLOCK_ID,
    FOREIGN_KEY_MEMBER_ID,
    CANONICAL_TRANSCRIPT_CODING,
    STABLE_ID,
    COMPARE_PREVIOUS_VERSION_XREFS,
)

__all__ = [
    "DEFAULT_CHECKS",
    "FOREIGN_KEY_GENOMIC_ALIGN_BLOCK_ID",
    "FOREIGN_KEY_MEMBER_ID",
    "CANONICAL_TRANSCRIPT_CODING",
    "COMPARE_PREVIOUS_VERSION_XREFS",
    "STABLE_ID",
    "ComparePreviousVersionXrefs",
    "StableIDCheck",
]
