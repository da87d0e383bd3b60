"""Metadata catalog: resolves databases to identities and species to ID prefixes."""

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from ensembl_healthcheck.metadata.identity import DatabaseIdentity, DatabaseKind, Species

if TYPE_CHECKING:
    from ensembl_healthcheck.config.schema import DatabaseSource, HealthcheckConfig

logger = logging.getLogger(__name__)

# Prefix value that disables stable ID prefix checks for a species
IGNORE_PREFIX = "IGNORE"

# Stable ID prefixes for core databases. Species without ID mapping are IGNORE.
DEFAULT_STABLE_ID_PREFIXES: dict[Species, str] = {
    Species.HOMO_SAPIENS: "ENS",
    Species.MUS_MUSCULUS: "ENSMUS",
    Species.RATTUS_NORVEGICUS: "ENSRNO",
    Species.DANIO_RERIO: "ENSDAR",
    Species.GALLUS_GALLUS: "ENSGAL",
    Species.SUS_SCROFA: "ENSSSC",
    Species.BOS_TAURUS: "ENSBTA",
    Species.CANIS_LUPUS_FAMILIARIS: "ENSCAF",
    Species.CAENORHABDITIS_ELEGANS: IGNORE_PREFIX,
    Species.DROSOPHILA_MELANOGASTER: IGNORE_PREFIX,
    Species.SACCHAROMYCES_CEREVISIAE: IGNORE_PREFIX,
    Species.ANOPHELES_GAMBIAE: IGNORE_PREFIX,
}


def resolve_identity(source: "DatabaseSource") -> DatabaseIdentity:
    """
    Build the identity of a configured database.

    The name is parsed first; explicit species, kind and schema_version in
    the source take precedence over what the name implies.
    """
    parsed = DatabaseIdentity.from_name(source.name)
    species = Species.resolve(source.species) if source.species else parsed.species
    return DatabaseIdentity(
        name=source.name,
        species=species,
        kind=DatabaseKind.resolve(source.kind) if source.kind else parsed.kind,
        schema_version=(
            source.schema_version
            if source.schema_version is not None
            else parsed.schema_version
        ),
        alias=source.species or parsed.alias,
    )


class MetadataCatalog:
    """
    Read-only lookup of database identities and species metadata.

    Identities are resolved once when a database is registered and are never
    changed afterwards. Databases under test and previous-release databases
    are kept apart: previous databases are only used as comparison baselines.
    """

    def __init__(self, stable_id_prefixes: Mapping[str, str] | None = None):
        self._current: dict[str, DatabaseIdentity] = {}
        self._previous: dict[str, DatabaseIdentity] = {}
        self._sources: dict[str, "DatabaseSource"] = {}
        self._prefixes: dict[str, str] = {
            species.value: prefix
            for species, prefix in DEFAULT_STABLE_ID_PREFIXES.items()
        }
        if stable_id_prefixes:
            self._prefixes.update(
                {species.lower(): prefix for species, prefix in stable_id_prefixes.items()}
            )

    def register(self, source: "DatabaseSource") -> DatabaseIdentity:
        """Register a database under test and return its identity."""
        return self._register(source, self._current)

    def register_previous(self, source: "DatabaseSource") -> DatabaseIdentity:
        """Register a previous-release database used for version comparisons."""
        return self._register(source, self._previous)

    def _register(
        self,
        source: "DatabaseSource",
        target: dict[str, DatabaseIdentity],
    ) -> DatabaseIdentity:
        if source.name in self._sources:
            raise ValueError(f"Database registered twice: {source.name}")
        identity = resolve_identity(source)
        self._sources[source.name] = source
        target[source.name] = identity
        logger.debug(
            f"Registered {identity.name}: species={identity.species_label}, "
            f"kind={identity.kind.value}, schema={identity.schema_version}"
        )
        return identity

    @property
    def identities(self) -> list[DatabaseIdentity]:
        """Databases under test, in registration order."""
        return list(self._current.values())

    @property
    def previous_identities(self) -> list[DatabaseIdentity]:
        return list(self._previous.values())

    def identity(self, name: str) -> DatabaseIdentity:
        """Look up a registered identity by name (current or previous)."""
        if name in self._current:
            return self._current[name]
        if name in self._previous:
            return self._previous[name]
        raise KeyError(f"Unknown database: {name}")

    def source(self, name: str) -> "DatabaseSource":
        return self._sources[name]

    def stable_id_prefix(self, species: Species | str) -> str | None:
        """
        Expected stable ID prefix for a species.

        Returns:
            The prefix, IGNORE_PREFIX when prefix checks do not apply, or
            None when nothing is registered for the species
        """
        key = species.value if isinstance(species, Species) else species.lower()
        return self._prefixes.get(key)

    def previous_version_of(self, identity: DatabaseIdentity) -> DatabaseIdentity | None:
        """
        Find the previous-release counterpart of a database.

        The counterpart has the same species (or species alias) and kind and
        the highest schema version strictly below the current one.
        """
        candidates = [
            prev
            for prev in self._previous.values()
            if prev.kind == identity.kind
            and prev.species_label == identity.species_label
            and prev.schema_version < identity.schema_version
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda prev: prev.schema_version)

    @classmethod
    def from_config(cls, config: "HealthcheckConfig") -> "MetadataCatalog":
        """Build a catalog with every database named in the configuration."""
        catalog = cls(config.stable_id_prefixes)
        for source in config.databases:
            catalog.register(source)
        for source in config.previous_databases:
            catalog.register_previous(source)
        return catalog
