"""Tests for database identities, check metadata and the metadata catalog."""

import pytest

from ensembl_healthcheck.config.schema import DatabaseSource
from ensembl_healthcheck.metadata import (
    ALL_KINDS,
    IGNORE_PREFIX,
    CheckMetadata,
    DatabaseIdentity,
    DatabaseKind,
    MetadataCatalog,
    Priority,
    Species,
    Team,
    applies,
    resolve_identity,
)


# ============================================================================
# DatabaseIdentity
# ============================================================================

@pytest.mark.parametrize("name,species,kind,schema", [
    ("homo_sapiens_core_113_38", Species.HOMO_SAPIENS, DatabaseKind.CORE, 113),
    ("mus_musculus_otherfeatures_112_39", Species.MUS_MUSCULUS, DatabaseKind.OTHERFEATURES, 112),
    ("canis_lupus_familiaris_cdna_113_31", Species.CANIS_LUPUS_FAMILIARIS, DatabaseKind.CDNA, 113),
    ("danio_rerio_funcgen_110", Species.DANIO_RERIO, DatabaseKind.FUNCGEN, 110),
    ("ensembl_compara_113", Species.UNKNOWN, DatabaseKind.COMPARA, 113),
    ("ensembl_ontology_113", Species.UNKNOWN, DatabaseKind.ONTOLOGY, 113),
])
def test_identity_from_name(name, species, kind, schema):
    """Test parsing of release database names."""
    identity = DatabaseIdentity.from_name(name)

    assert identity.name == name
    assert identity.species == species
    assert identity.kind == kind
    assert identity.schema_version == schema


def test_identity_unknown_species_keeps_alias():
    """Test that an unlisted species is UNKNOWN but still labelled."""
    identity = DatabaseIdentity.from_name("ornithorhynchus_anatinus_core_113_1")

    assert identity.species == Species.UNKNOWN
    assert identity.kind == DatabaseKind.CORE
    assert identity.species_label == "ornithorhynchus_anatinus"


def test_identity_unparseable_name():
    """Test that unrecognised names fall back to UNKNOWN and schema 0."""
    identity = DatabaseIdentity.from_name("scratch_db")

    assert identity.species == Species.UNKNOWN
    assert identity.kind == DatabaseKind.UNKNOWN
    assert identity.schema_version == 0
    assert str(identity) == "scratch_db"


def test_identity_is_immutable():
    identity = DatabaseIdentity.from_name("homo_sapiens_core_113_38")
    with pytest.raises(AttributeError):
        identity.schema_version = 114


# ============================================================================
# CheckMetadata and applicability
# ============================================================================

def test_builder_defaults():
    """Test defaults: all kinds, AMBER, release coordinator."""
    metadata = CheckMetadata.builder("Minimal").in_groups("release").build()

    assert metadata.applicable_kinds == ALL_KINDS
    assert metadata.priority == Priority.AMBER
    assert metadata.teams == (Team.RELEASE_COORDINATOR,)
    assert metadata.groups == frozenset({"release"})


def test_builder_full():
    """Test that every builder field lands in the metadata."""
    metadata = (
        CheckMetadata.builder("Full")
        .describe("desc")
        .in_groups("a", "b")
        .owned_by(Team.GENEBUILD, Team.CORE, Team.GENEBUILD)
        .with_priority(Priority.RED)
        .applies_to(DatabaseKind.CORE, DatabaseKind.CDNA)
        .without_kind(DatabaseKind.CDNA)
        .effect("bad things")
        .fix("do it again")
        .build()
    )

    assert metadata.description == "desc"
    assert metadata.groups == frozenset({"a", "b"})
    assert metadata.teams == (Team.GENEBUILD, Team.CORE)
    assert metadata.team == Team.GENEBUILD
    assert metadata.priority == Priority.RED
    assert metadata.applicable_kinds == frozenset({DatabaseKind.CORE})
    assert metadata.effect == "bad things"
    assert metadata.fix == "do it again"


def test_builder_cannot_widen_after_narrowing():
    """Test that a removed kind cannot be added back."""
    builder = CheckMetadata.builder("Narrow").without_kind(DatabaseKind.CDNA)

    with pytest.raises(ValueError):
        builder.applies_to(DatabaseKind.CORE, DatabaseKind.CDNA)


def test_builder_rejects_empty_name():
    with pytest.raises(ValueError):
        CheckMetadata.builder("")


def test_metadata_is_immutable():
    metadata = CheckMetadata.builder("Frozen").build()
    with pytest.raises(AttributeError):
        metadata.name = "Other"


def test_applies_requires_kind_and_group():
    """Test that applicability needs both a matching kind and a selected group."""
    metadata = (
        CheckMetadata.builder("CoreOnly")
        .in_groups("release", "post_genebuild")
        .applies_to(DatabaseKind.CORE)
        .build()
    )
    core = DatabaseIdentity.from_name("homo_sapiens_core_113_38")
    compara = DatabaseIdentity.from_name("ensembl_compara_113")

    assert applies(metadata, core, {"release"})
    assert applies(metadata, core, ["post_genebuild", "other"])
    assert not applies(metadata, core, {"compara_genomic"})
    assert not applies(metadata, compara, {"release"})
    assert not applies(metadata, core, set())


# ============================================================================
# MetadataCatalog
# ============================================================================

def source(name, **kwargs):
    return DatabaseSource(name=name, path=f"/data/{name}.duckdb", **kwargs)


def test_resolve_identity_overrides():
    """Test that explicit source fields take precedence over the name."""
    identity = resolve_identity(source(
        "my_custom_db", species="mus_musculus", kind="core", schema_version=113,
    ))

    assert identity.species == Species.MUS_MUSCULUS
    assert identity.kind == DatabaseKind.CORE
    assert identity.schema_version == 113


def test_catalog_registration():
    """Test registration, lookup and separation of previous databases."""
    catalog = MetadataCatalog()
    current = catalog.register(source("homo_sapiens_core_113_38"))
    previous = catalog.register_previous(source("homo_sapiens_core_112_38"))

    assert catalog.identities == [current]
    assert catalog.previous_identities == [previous]
    assert catalog.identity("homo_sapiens_core_112_38") is previous
    assert catalog.source("homo_sapiens_core_113_38").name == "homo_sapiens_core_113_38"
    with pytest.raises(KeyError):
        catalog.identity("unknown")


def test_catalog_rejects_duplicate_registration():
    catalog = MetadataCatalog()
    catalog.register(source("homo_sapiens_core_113_38"))

    with pytest.raises(ValueError):
        catalog.register_previous(source("homo_sapiens_core_113_38"))


def test_stable_id_prefixes():
    """Test built-in prefixes, IGNORE entries and config overrides."""
    catalog = MetadataCatalog({"Danio_Rerio": "ZFIN", "ornithorhynchus_anatinus": "ENSOAN"})

    assert catalog.stable_id_prefix(Species.HOMO_SAPIENS) == "ENS"
    assert catalog.stable_id_prefix(Species.MUS_MUSCULUS) == "ENSMUS"
    assert catalog.stable_id_prefix(Species.DROSOPHILA_MELANOGASTER) == IGNORE_PREFIX
    assert catalog.stable_id_prefix(Species.DANIO_RERIO) == "ZFIN"
    assert catalog.stable_id_prefix("ornithorhynchus_anatinus") == "ENSOAN"
    assert catalog.stable_id_prefix(Species.UNKNOWN) is None


def test_previous_version_of_picks_highest_lower_schema():
    """Test previous-version lookup by species, kind and schema."""
    catalog = MetadataCatalog()
    current = catalog.register(source("homo_sapiens_core_113_38"))
    cdna = catalog.register(source("homo_sapiens_cdna_113_38"))
    mouse = catalog.register(source("mus_musculus_core_113_39"))
    catalog.register_previous(source("homo_sapiens_core_111_38"))
    catalog.register_previous(source("homo_sapiens_core_112_38"))
    catalog.register_previous(source("homo_sapiens_core_114_38"))

    assert catalog.previous_version_of(current).name == "homo_sapiens_core_112_38"
    assert catalog.previous_version_of(cdna) is None
    assert catalog.previous_version_of(mouse) is None


def test_catalog_from_config(tmp_path):
    """Test building a catalog from a validated configuration."""
    from ensembl_healthcheck.config.schema import HealthcheckConfig

    config = HealthcheckConfig(
        output_dir=tmp_path / "reports",
        databases=[source("homo_sapiens_core_113_38")],
        previous_databases=[source("homo_sapiens_core_112_38")],
        stable_id_prefixes={"homo_sapiens": "IGNORE"},
    )

    catalog = MetadataCatalog.from_config(config)

    assert [i.name for i in catalog.identities] == ["homo_sapiens_core_113_38"]
    assert catalog.previous_version_of(catalog.identities[0]) is not None
    assert catalog.stable_id_prefix(Species.HOMO_SAPIENS) == IGNORE_PREFIX
