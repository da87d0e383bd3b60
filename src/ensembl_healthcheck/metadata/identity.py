"""Database identity: species, kind and schema version of a release database."""

import re
from dataclasses import dataclass
from enum import Enum


class Species(str, Enum):
    """Species with release databases. UNKNOWN covers everything else."""

    HOMO_SAPIENS = "homo_sapiens"
    MUS_MUSCULUS = "mus_musculus"
    RATTUS_NORVEGICUS = "rattus_norvegicus"
    DANIO_RERIO = "danio_rerio"
    GALLUS_GALLUS = "gallus_gallus"
    SUS_SCROFA = "sus_scrofa"
    BOS_TAURUS = "bos_taurus"
    CANIS_LUPUS_FAMILIARIS = "canis_lupus_familiaris"
    CAENORHABDITIS_ELEGANS = "caenorhabditis_elegans"
    DROSOPHILA_MELANOGASTER = "drosophila_melanogaster"
    SACCHAROMYCES_CEREVISIAE = "saccharomyces_cerevisiae"
    ANOPHELES_GAMBIAE = "anopheles_gambiae"
    UNKNOWN = "unknown"

    @classmethod
    def resolve(cls, value: str | None) -> "Species":
        """Map a species name to a member, UNKNOWN if not recognised."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNKNOWN


class DatabaseKind(str, Enum):
    """Kind of release database; decides which checks apply."""

    CORE = "core"
    CDNA = "cdna"
    OTHERFEATURES = "otherfeatures"
    RNASEQ = "rnaseq"
    VEGA = "vega"
    VARIATION = "variation"
    FUNCGEN = "funcgen"
    COMPARA = "compara"
    ONTOLOGY = "ontology"
    UNKNOWN = "unknown"

    @classmethod
    def resolve(cls, value: str | None) -> "DatabaseKind":
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.lower())
        except ValueError:
            return cls.UNKNOWN


# Species databases: <species>_<kind>_<schema>_<assembly>, e.g. homo_sapiens_core_113_38
SPECIES_DB_PATTERN = re.compile(
    r"^(?P<species>[a-z0-9]+(?:_[a-z0-9]+)+?)_"
    r"(?P<kind>core|cdna|otherfeatures|rnaseq|vega|variation|funcgen)_"
    r"(?P<schema>\d+)(?:_(?P<assembly>[a-z0-9]+))?$"
)

# Multi-species databases: ensembl_compara_113, ensembl_compara_plants_60_113
MULTI_SPECIES_DB_PATTERN = re.compile(
    r"^ensembl_(?P<kind>compara|ontology)(?:_[a-z]+)*?(?:_\d+)??_(?P<schema>\d+)$"
)


@dataclass(frozen=True)
class DatabaseIdentity:
    """Resolved identity of one database instance.

    Attributes:
        name: Logical database name as registered
        species: Species, UNKNOWN for multi-species or unrecognised names
        kind: Database kind
        schema_version: Schema version (release number), 0 if unknown
        alias: Species part of the name as written, kept for display when
               the species is not a known member
    """

    name: str
    species: Species = Species.UNKNOWN
    kind: DatabaseKind = DatabaseKind.UNKNOWN
    schema_version: int = 0
    alias: str = ""

    @property
    def species_label(self) -> str:
        """Species for display: enum value, else the alias from the name."""
        if self.species is not Species.UNKNOWN:
            return self.species.value
        return self.alias or Species.UNKNOWN.value

    @classmethod
    def from_name(cls, name: str) -> "DatabaseIdentity":
        """
        Parse a release database name into an identity.

        Args:
            name: Database name, e.g. "homo_sapiens_core_113_38"

        Returns:
            DatabaseIdentity; unparseable names yield UNKNOWN species/kind
            and schema version 0
        """
        match = SPECIES_DB_PATTERN.match(name)
        if match:
            alias = match.group("species")
            return cls(
                name=name,
                species=Species.resolve(alias),
                kind=DatabaseKind.resolve(match.group("kind")),
                schema_version=int(match.group("schema")),
                alias=alias,
            )

        match = MULTI_SPECIES_DB_PATTERN.match(name)
        if match:
            return cls(
                name=name,
                species=Species.UNKNOWN,
                kind=DatabaseKind.resolve(match.group("kind")),
                schema_version=int(match.group("schema")),
                alias="multi",
            )

        return cls(name=name)

    def __str__(self) -> str:
        return self.name
