"""Tests for declarative checks, the shipped check catalog and the registry."""

from datetime import datetime

import duckdb
import polars as pl
import pytest

from conftest import create_table
from ensembl_healthcheck.checks.catalog import (
    CANONICAL_TRANSCRIPT_CODING,
    DEFAULT_CHECKS,
    FOREIGN_KEY_GENOMIC_ALIGN_BLOCK_ID,
    FOREIGN_KEY_MEMBER_ID,
    STABLE_ID,
)
from ensembl_healthcheck.checks.declarative import (
    ForeignKeyCheck,
    Relation,
    RelationGuard,
)
from ensembl_healthcheck.checks.registry import CheckRegistry, default_registry
from ensembl_healthcheck.config.schema import DatabaseSource
from ensembl_healthcheck.metadata.catalog import MetadataCatalog
from ensembl_healthcheck.metadata.check import CheckMetadata, Team, applies
from ensembl_healthcheck.metadata.identity import DatabaseIdentity, DatabaseKind
from ensembl_healthcheck.persistence.session import SessionFactory, SessionPool
from ensembl_healthcheck.report.entry import TaskStatus
from ensembl_healthcheck.report.severity import FindingKind, Severity
from ensembl_healthcheck.runner import CheckRunner

COMPARA = DatabaseIdentity.from_name("ensembl_compara_113")
HUMAN_CORE = DatabaseIdentity.from_name("homo_sapiens_core_113_38")
HUMAN_OTHERFEATURES = DatabaseIdentity.from_name("homo_sapiens_otherfeatures_113_38")
HUMAN_CDNA = DatabaseIdentity.from_name("homo_sapiens_cdna_113_38")
CAT_CORE = DatabaseIdentity.from_name("felis_catus_core_113_1")

CREATED = datetime(2024, 5, 1, 12, 0, 0)


def fk_metadata():
    return CheckMetadata.builder("TestForeignKeys").in_groups("release").build()


@pytest.fixture
def core_db(memory_db):
    """Minimal valid gene/transcript/translation tables."""
    create_table(memory_db, "gene", pl.DataFrame({
        "gene_id": [1, 2],
        "biotype": ["protein_coding", "lncRNA"],
        "canonical_transcript_id": [10, 20],
    }))
    create_table(memory_db, "transcript", pl.DataFrame({
        "transcript_id": [10, 20],
        "gene_id": [1, 2],
        "biotype": ["protein_coding", "lncRNA"],
        "canonical_translation_id": [100, None],
    }))
    create_table(memory_db, "translation", pl.DataFrame({
        "translation_id": [100],
        "transcript_id": [10],
    }))
    return memory_db


def create_stable_id_tables(conn, gene_ids=None):
    """exon/translation/transcript/gene with valid human stable IDs, plus mapping tables."""
    for table, letter in STABLE_ID.TYPES:
        stable_ids = [f"ENS{letter}00000000001", f"ENS{letter}00000000002"]
        if table == "gene" and gene_ids is not None:
            stable_ids = gene_ids
        create_table(conn, table, pl.DataFrame({
            "stable_id": stable_ids,
            "version": [1] * len(stable_ids),
            "created_date": [CREATED] * len(stable_ids),
            "modified_date": [CREATED] * len(stable_ids),
        }))
    create_table(conn, "mapping_session", pl.DataFrame({
        "mapping_session_id": [1, 2],
        "created": [datetime(2023, 1, 1), datetime(2024, 1, 1)],
    }))
    create_table(conn, "stable_id_event", pl.DataFrame({
        "old_stable_id": ["ENSG00000000001", "ENST00000000001"],
        "new_stable_id": ["ENSG00000000001", "ENST00000000001"],
        "type": ["gene", "transcript"],
        "mapping_session_id": [2, 2],
        "new_version": [1, 1],
    }))


# ============================================================================
# Declarative foreign key checks
# ============================================================================

def test_relation_guard_skips_on_empty_table(make_context, memory_db, aggregator):
    """Test that an empty guard table skips its relations with one INFO."""
    create_table(memory_db, "parent", pl.DataFrame(schema={"id": pl.Int64}))
    check = ForeignKeyCheck(fk_metadata(), [
        RelationGuard("parent", (
            # Would raise QueryError if evaluated: the child table does not exist
            Relation("missing_child", "parent_id", "parent", "id"),
        )),
    ])

    assert check.run(make_context()) is True
    entries = aggregator.entries()
    assert len(entries) == 1
    assert entries[0].severity == Severity.INFO


def test_foreign_key_check_evaluates_every_relation(make_context, memory_db, aggregator):
    """Test AND semantics: a failing relation does not stop later ones."""
    create_table(memory_db, "parent", pl.DataFrame({"id": [1, 2]}))
    create_table(memory_db, "bad_child", pl.DataFrame({"parent_id": [1, 9]}))
    create_table(memory_db, "good_child", pl.DataFrame({"parent_id": [1, 2]}))
    check = ForeignKeyCheck(fk_metadata(), [
        RelationGuard("parent", (
            Relation("bad_child", "parent_id", "parent", "id"),
            Relation("good_child", "parent_id", "parent", "id"),
        )),
    ])

    assert check.run(make_context()) is False
    severities = [e.severity for e in aggregator.entries()]
    assert severities == [Severity.PROBLEM, Severity.CORRECT]


def test_genomic_align_block_check(make_context, memory_db, aggregator):
    """Test both directions of genomic_align_block <-> genomic_align."""
    create_table(memory_db, "genomic_align_block", pl.DataFrame({"genomic_align_block_id": [1, 2]}))
    create_table(memory_db, "genomic_align", pl.DataFrame({
        "genomic_align_id": [10, 11, 12, 13],
        "genomic_align_block_id": [1, 1, 2, 3],
    }))
    create_table(memory_db, "conservation_score", pl.DataFrame(
        schema={"genomic_align_block_id": pl.Int64, "diff_score": pl.Float64}
    ))
    ctx = make_context(metadata=FOREIGN_KEY_GENOMIC_ALIGN_BLOCK_ID.metadata, identity=COMPARA)

    assert FOREIGN_KEY_GENOMIC_ALIGN_BLOCK_ID.run(ctx) is False

    problems = aggregator.entries(Severity.PROBLEM)
    assert len(problems) == 1
    assert problems[0].message.startswith(
        "1 rows in genomic_align.genomic_align_block_id have no matching "
        "genomic_align_block.genomic_align_block_id"
    )
    infos = [e for e in aggregator.entries() if e.severity == Severity.INFO]
    assert [e.message for e in infos] == ["No rows in conservation_score, nothing to test"]


def test_member_id_check_allows_null_optional_keys(make_context, memory_db, aggregator):
    """Test that NULL gene_tree_node.seq_member_id is not an orphan."""
    create_table(memory_db, "seq_member", pl.DataFrame({
        "seq_member_id": [1, 2],
        "gene_member_id": [5, None],
    }))
    create_table(memory_db, "gene_member", pl.DataFrame({"gene_member_id": [5]}))
    for table in ("family_member", "gene_align_member", "other_member_sequence"):
        create_table(memory_db, table, pl.DataFrame({"seq_member_id": [1, 2]}))
    create_table(memory_db, "homology_member", pl.DataFrame({
        "seq_member_id": [1], "gene_member_id": [5],
    }))
    create_table(memory_db, "gene_tree_node", pl.DataFrame({"seq_member_id": [1, None]}))
    create_table(memory_db, "member_xref", pl.DataFrame({"gene_member_id": [5]}))
    ctx = make_context(metadata=FOREIGN_KEY_MEMBER_ID.metadata, identity=COMPARA)

    assert FOREIGN_KEY_MEMBER_ID.run(ctx) is True
    assert aggregator.entries(Severity.PROBLEM) == []


# ============================================================================
# CanonicalTranscriptCoding
# ============================================================================

def test_canonical_transcript_coding_valid(make_context, core_db, aggregator):
    """Test that consistent biotypes and translations pass every assertion."""
    ctx = make_context(metadata=CANONICAL_TRANSCRIPT_CODING.metadata)

    assert CANONICAL_TRANSCRIPT_CODING.run(ctx) is True
    assert aggregator.entries(Severity.PROBLEM) == []
    assert len(aggregator.entries()) == 9


def test_canonical_transcript_coding_missing_canonical(make_context, memory_db, aggregator):
    """Test that a gene without a canonical transcript is reported."""
    create_table(memory_db, "gene", pl.DataFrame({
        "gene_id": [1],
        "biotype": ["protein_coding"],
        "canonical_transcript_id": [None],
    }, schema={"gene_id": pl.Int64, "biotype": pl.Utf8, "canonical_transcript_id": pl.Int64}))
    create_table(memory_db, "transcript", pl.DataFrame({
        "transcript_id": [10],
        "gene_id": [1],
        "biotype": ["protein_coding"],
        "canonical_translation_id": [100],
    }))
    create_table(memory_db, "translation", pl.DataFrame({
        "translation_id": [100],
        "transcript_id": [10],
    }))
    ctx = make_context(metadata=CANONICAL_TRANSCRIPT_CODING.metadata)

    assert CANONICAL_TRANSCRIPT_CODING.run(ctx) is False
    messages = [e.message for e in aggregator.entries(Severity.PROBLEM)]
    assert "1 genes do not have a canonical transcript" in messages
    # Every assertion still ran
    assert len(aggregator.entries()) == 9


def test_canonical_transcript_coding_findings_go_to_compara(make_context, core_db, aggregator):
    """Test that CanonicalTranscriptCoding findings are triaged to compara."""
    ctx = make_context(metadata=CANONICAL_TRANSCRIPT_CODING.metadata)

    CANONICAL_TRANSCRIPT_CODING.run(ctx)

    assert CANONICAL_TRANSCRIPT_CODING.metadata.teams == (Team.COMPARA,)
    assert set(aggregator.by_team()) == {Team.COMPARA}


# ============================================================================
# StableID
# ============================================================================

def test_stable_id_valid_core(make_context, memory_db, aggregator):
    """Test that a consistent human core database passes all stable ID checks."""
    create_stable_id_tables(memory_db)
    ctx = make_context(metadata=STABLE_ID.metadata, catalog=MetadataCatalog())

    assert STABLE_ID.run(ctx) is True
    assert aggregator.entries(Severity.PROBLEM) == []


def test_stable_id_wrong_prefix(make_context, memory_db, aggregator):
    """Test that stable IDs without the species prefix are reported."""
    create_stable_id_tables(memory_db, gene_ids=["ENSG00000000001", "XYZG00000000002"])
    ctx = make_context(metadata=STABLE_ID.metadata, catalog=MetadataCatalog())

    assert STABLE_ID.run(ctx) is False
    messages = [e.message for e in aggregator.entries(Severity.PROBLEM)]
    assert "1 rows in gene do not have the correct (ENSG) prefix" in messages


def test_stable_id_lrg_ids_are_exempt_from_prefix(make_context, memory_db, aggregator):
    """Test that LRG identifiers are not prefix violations."""
    create_stable_id_tables(memory_db, gene_ids=["ENSG00000000001", "LRG_1"])
    ctx = make_context(metadata=STABLE_ID.metadata, catalog=MetadataCatalog())

    assert STABLE_ID.check_prefixes(ctx) is True


def test_stable_id_prefix_override_for_unlisted_species(make_context, memory_db, aggregator):
    """Test that a configured prefix is enforced for a species outside the built-in table."""
    create_stable_id_tables(memory_db)
    catalog = MetadataCatalog({"felis_catus": "ENSFCA"})
    ctx = make_context(metadata=STABLE_ID.metadata, identity=CAT_CORE, catalog=catalog)

    assert STABLE_ID.run(ctx) is False
    messages = [e.message for e in aggregator.entries(Severity.PROBLEM)]
    assert messages == [
        f"2 rows in {table} do not have the correct (ENSFCA{letter}) prefix"
        for table, letter in STABLE_ID.TYPES
    ]


def test_stable_id_missing_prefix_is_configuration_problem(tmp_path):
    """Test that a core database of a species with no registered prefix fails the run."""
    conn = duckdb.connect()
    create_stable_id_tables(conn)
    catalog = MetadataCatalog()
    catalog.register(DatabaseSource(name=CAT_CORE.name, path=tmp_path / "cat.duckdb"))
    pool = SessionPool.from_catalog(catalog)
    pool.register(CAT_CORE.name, SessionFactory(conn, CAT_CORE.name))
    runner = CheckRunner(CheckRegistry([STABLE_ID]), catalog, groups=["post_genebuild"])

    with pool:
        result = runner.run(pool)

    assert result.passed is False
    assert result.aggregator.outcomes()[0].status == TaskStatus.FAILED
    problems = result.aggregator.entries(Severity.PROBLEM)
    assert len(problems) == 1
    assert problems[0].kind == FindingKind.CONFIGURATION
    assert "felis_catus" in problems[0].message


def test_stable_id_ignored_prefix(make_context, memory_db, aggregator):
    """Test that an IGNORE prefix skips prefix checks with INFO."""
    create_stable_id_tables(memory_db)
    catalog = MetadataCatalog({"homo_sapiens": "IGNORE"})
    ctx = make_context(metadata=STABLE_ID.metadata, catalog=catalog)

    assert STABLE_ID.check_prefixes(ctx) is True
    assert aggregator.entries()[0].severity == Severity.INFO


def test_stable_id_unmapped_species_skips_mapping_checks(make_context, memory_db, aggregator):
    """Test that IGNORE species get only null and duplicate checks plus one INFO."""
    create_stable_id_tables(memory_db, gene_ids=["WBGene1", "WBGene2"])
    worm = DatabaseIdentity.from_name("caenorhabditis_elegans_core_113_282")
    ctx = make_context(metadata=STABLE_ID.metadata, identity=worm, catalog=MetadataCatalog())

    assert STABLE_ID.run(ctx) is True
    infos = [e for e in aggregator.entries() if e.severity == Severity.INFO]
    assert len(infos) == 1
    assert "caenorhabditis_elegans" in infos[0].message
    assert len(aggregator.entries()) == 9


def test_stable_id_duplicates_on_otherfeatures(make_context, memory_db, aggregator):
    """Test that non-core databases get only null and duplicate checks."""
    create_stable_id_tables(memory_db, gene_ids=["XYZG1", "XYZG1"])
    ctx = make_context(metadata=STABLE_ID.metadata, identity=HUMAN_OTHERFEATURES)

    assert STABLE_ID.run(ctx) is False
    messages = [e.message for e in aggregator.entries(Severity.PROBLEM)]
    # Wrong prefix is not checked outside core databases
    assert messages == ["gene has 1 duplicate stable_id values"]
    assert len(aggregator.entries()) == 8


def test_stable_id_event_table_missing_is_not_applicable(make_context, memory_db, aggregator):
    """Test that a missing stable_id_event table is INFO, not a failure."""
    for table, letter in STABLE_ID.TYPES:
        create_table(memory_db, table, pl.DataFrame({"stable_id": [f"ENS{letter}1"]}))
    ctx = make_context(metadata=STABLE_ID.metadata)

    assert STABLE_ID.check_event_types(ctx) is True
    entries = aggregator.entries()
    assert len(entries) == 1
    assert entries[0].severity == Severity.INFO
    assert "stable_id_event" in entries[0].message


def test_stable_id_without_mapping_tables_passes(make_context, memory_db, aggregator):
    """Test that a core database without mapping tables reports INFO for event checks."""
    create_stable_id_tables(memory_db)
    memory_db.execute("DROP TABLE stable_id_event")
    memory_db.execute("DROP TABLE mapping_session")
    ctx = make_context(metadata=STABLE_ID.metadata, catalog=MetadataCatalog())

    assert STABLE_ID.run(ctx) is True
    assert aggregator.entries(Severity.PROBLEM) == []
    infos = [e.message for e in aggregator.entries() if e.severity == Severity.INFO]
    assert infos == [
        "No stable_id_event table, event types not checked",
        "No mapping_session or stable_id_event table, stable ID event versions not checked",
    ]


def test_stable_id_version_mismatch(make_context, memory_db, aggregator):
    """Test that versions disagreeing with the latest mapping session are reported."""
    create_stable_id_tables(memory_db)
    memory_db.execute("UPDATE gene SET version = 2 WHERE stable_id = 'ENSG00000000001'")
    ctx = make_context(metadata=STABLE_ID.metadata)

    assert STABLE_ID.check_versions(ctx) is False
    messages = [e.message for e in aggregator.entries(Severity.PROBLEM)]
    assert messages == [
        "Version mismatch between 1 gene versions and stable_id_event (mapping session 2)"
    ]


def test_stable_id_unset_timestamps(make_context, memory_db, aggregator):
    """Test that NULL and epoch dates are reported."""
    create_stable_id_tables(memory_db)
    memory_db.execute("UPDATE exon SET created_date = NULL WHERE stable_id = 'ENSE00000000001'")
    memory_db.execute(
        "UPDATE exon SET modified_date = TIMESTAMP '1970-01-01 00:00:00' "
        "WHERE stable_id = 'ENSE00000000002'"
    )
    ctx = make_context(metadata=STABLE_ID.metadata)

    assert STABLE_ID.check_timestamps(ctx) is False
    messages = [e.message for e in aggregator.entries(Severity.PROBLEM)]
    assert messages == ["2 rows in exon have unset created or modified dates"]


def test_stable_id_not_applicable_to_cdna():
    """Test that StableID is narrowed away from cdna databases."""
    assert DatabaseKind.CDNA not in STABLE_ID.metadata.applicable_kinds
    assert not applies(STABLE_ID.metadata, HUMAN_CDNA, {"post_genebuild"})
    assert applies(STABLE_ID.metadata, HUMAN_CORE, {"post_genebuild"})


# ============================================================================
# Registry
# ============================================================================

def test_default_registry_contains_catalog():
    """Test that every shipped check is registered once, in order."""
    registry = default_registry()

    assert len(registry) == len(DEFAULT_CHECKS)
    assert registry.names() == [c.metadata.name for c in DEFAULT_CHECKS]
    assert "StableID" in registry
    assert "compara_genomic" in registry.groups()


def test_registry_rejects_duplicate_names():
    """Test that two checks with the same name cannot be registered."""
    with pytest.raises(ValueError):
        CheckRegistry([STABLE_ID, STABLE_ID])


def test_registry_get_unknown_raises():
    """Test that unknown names raise KeyError."""
    with pytest.raises(KeyError):
        default_registry().get("NoSuchCheck")


def test_registry_select_by_group_and_name():
    """Test selection by group and by name."""
    registry = default_registry()

    compara = registry.select(groups=["compara_genomic"])
    assert [c.metadata.name for c in compara] == ["ForeignKeyGenomicAlignBlockId"]

    named = registry.select(names=["StableID"])
    assert named == [STABLE_ID]

    assert registry.select(groups=[]) == []
    assert registry.select(groups=["release"], names=["StableID"]) == []
