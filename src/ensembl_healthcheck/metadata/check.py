"""Check metadata and the applicability predicate.

CheckMetadata is built once, when a check is defined, through
CheckMetadataBuilder. Narrowing the applicable database kinds is a builder
step; the resulting metadata is frozen and never revisited during a run.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from ensembl_healthcheck.metadata.identity import DatabaseIdentity, DatabaseKind


class Team(str, Enum):
    """Team responsible for triaging a check's findings."""

    CORE = "core"
    GENEBUILD = "genebuild"
    COMPARA = "compara"
    VARIATION = "variation"
    FUNCGEN = "funcgen"
    PRODUCTION = "production"
    RELEASE_COORDINATOR = "release_coordinator"


class Priority(str, Enum):
    """How bad it is to ignore a failing check. Unrelated to report severity."""

    AMBER = "amber"
    RED = "red"


ALL_KINDS: frozenset[DatabaseKind] = frozenset(DatabaseKind)


@dataclass(frozen=True)
class CheckMetadata:
    """
    Immutable description of a check.

    Attributes:
        name: Unique check name
        description: Free-text description
        groups: Named groups the check belongs to (e.g. "release")
        teams: Responsible teams, primary first
        priority: Severity-of-neglect
        applicable_kinds: Database kinds the check runs against
        effect: What goes wrong downstream if the check fails
        fix: Remediation text for release engineers
    """

    name: str
    description: str = ""
    groups: frozenset[str] = field(default_factory=frozenset)
    teams: tuple[Team, ...] = (Team.RELEASE_COORDINATOR,)
    priority: Priority = Priority.AMBER
    applicable_kinds: frozenset[DatabaseKind] = ALL_KINDS
    effect: str = ""
    fix: str = ""

    @property
    def team(self) -> Team:
        """Primary responsible team."""
        return self.teams[0]

    @staticmethod
    def builder(name: str) -> "CheckMetadataBuilder":
        return CheckMetadataBuilder(name)


class CheckMetadataBuilder:
    """Fluent builder for CheckMetadata.

    applies_to() may only be used before without_kind(); once a kind has
    been removed, applicability can shrink further but never grow back.
    """

    def __init__(self, name: str):
        if not name:
            raise ValueError("Check name must not be empty")
        self._name = name
        self._description = ""
        self._groups: set[str] = set()
        self._teams: list[Team] = []
        self._priority = Priority.AMBER
        self._kinds: set[DatabaseKind] = set(ALL_KINDS)
        self._narrowed = False
        self._effect = ""
        self._fix = ""

    def describe(self, description: str) -> "CheckMetadataBuilder":
        self._description = description
        return self

    def in_groups(self, *groups: str) -> "CheckMetadataBuilder":
        self._groups.update(groups)
        return self

    def owned_by(self, *teams: Team) -> "CheckMetadataBuilder":
        for team in teams:
            if team not in self._teams:
                self._teams.append(team)
        return self

    def with_priority(self, priority: Priority) -> "CheckMetadataBuilder":
        self._priority = priority
        return self

    def applies_to(self, *kinds: DatabaseKind) -> "CheckMetadataBuilder":
        """Restrict the check to exactly these kinds."""
        requested = set(kinds)
        if self._narrowed and not requested <= self._kinds:
            raise ValueError(
                f"Cannot widen applicability of {self._name} after narrowing"
            )
        self._kinds = requested
        self._narrowed = True
        return self

    def without_kind(self, *kinds: DatabaseKind) -> "CheckMetadataBuilder":
        """Remove kinds the check must not run against."""
        self._kinds.difference_update(kinds)
        self._narrowed = True
        return self

    def effect(self, effect: str) -> "CheckMetadataBuilder":
        self._effect = effect
        return self

    def fix(self, fix: str) -> "CheckMetadataBuilder":
        self._fix = fix
        return self

    def build(self) -> CheckMetadata:
        return CheckMetadata(
            name=self._name,
            description=self._description,
            groups=frozenset(self._groups),
            teams=tuple(self._teams) or (Team.RELEASE_COORDINATOR,),
            priority=self._priority,
            applicable_kinds=frozenset(self._kinds),
            effect=self._effect,
            fix=self._fix,
        )


def applies(
    metadata: CheckMetadata,
    identity: DatabaseIdentity,
    selected_groups: Iterable[str],
) -> bool:
    """
    Decide whether a check runs against a database.

    True iff the database kind is applicable and at least one of the
    check's groups is selected. An empty selection selects nothing.
    """
    if identity.kind not in metadata.applicable_kinds:
        return False
    return not metadata.groups.isdisjoint(selected_groups)
