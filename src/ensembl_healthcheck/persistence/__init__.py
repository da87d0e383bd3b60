"""Database sessions and run provenance."""

from ensembl_healthcheck.persistence.provenance import RunProvenance
from ensembl_healthcheck.persistence.session import DatabaseSession, SessionFactory, SessionPool

__all__ = ["DatabaseSession", "SessionFactory", "SessionPool", "RunProvenance"]
