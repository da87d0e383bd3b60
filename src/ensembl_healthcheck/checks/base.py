"""Check capability interface and the context a check runs in."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol

from ensembl_healthcheck.metadata.catalog import MetadataCatalog
from ensembl_healthcheck.metadata.check import CheckMetadata
from ensembl_healthcheck.metadata.identity import DatabaseIdentity
from ensembl_healthcheck.persistence.session import DatabaseSession
from ensembl_healthcheck.report.aggregator import Reporter


@dataclass
class CheckContext:
    """Everything one check invocation against one database needs.

    Attributes:
        metadata: Metadata of the running check
        identity: Database under test
        session: Session on the database under test (owned by this task)
        reporter: Emits findings for this (check, database) pair
        catalog: Metadata catalog (stable ID prefixes, previous versions)
        previous_identity: Previous-release counterpart, if any
        previous_session: Session on the previous-release counterpart
    """

    metadata: CheckMetadata
    identity: DatabaseIdentity
    session: DatabaseSession
    reporter: Reporter
    catalog: MetadataCatalog | None = None
    previous_identity: DatabaseIdentity | None = None
    previous_session: DatabaseSession | None = None


class Check(Protocol):
    """What the runner needs from a check."""

    metadata: CheckMetadata
    needs_previous_version: bool

    def run(self, ctx: CheckContext) -> bool:
        """Run every assertion and return their logical AND."""
        ...


class SingleDatabaseCheck(ABC):
    """Base for checks that look at one database at a time.

    Subclasses evaluate all of their assertions (no short-circuit on the
    first failure) and return True only if every assertion held.
    """

    needs_previous_version = False

    def __init__(self, metadata: CheckMetadata):
        self.metadata = metadata

    @property
    def name(self) -> str:
        return self.metadata.name

    @abstractmethod
    def run(self, ctx: CheckContext) -> bool:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.metadata.name!r})"
