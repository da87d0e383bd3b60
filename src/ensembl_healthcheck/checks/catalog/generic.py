"""Checks shared by core-like databases: biotypes, stable IDs and xref drift."""

import re

from ensembl_healthcheck.checks import primitives
from ensembl_healthcheck.checks.base import CheckContext, SingleDatabaseCheck
from ensembl_healthcheck.checks.declarative import (
    CountEquality,
    RowCountAssertionsCheck,
    ZeroCountAssertion,
)
from ensembl_healthcheck.checks.drift import ComparePreviousVersionCheck, counts_by_sql
from ensembl_healthcheck.metadata.catalog import IGNORE_PREFIX
from ensembl_healthcheck.metadata.check import CheckMetadata, Priority, Team
from ensembl_healthcheck.metadata.identity import DatabaseIdentity, DatabaseKind
from ensembl_healthcheck.persistence.session import DatabaseSession

CORE_LIKE_KINDS = (
    DatabaseKind.CORE,
    DatabaseKind.CDNA,
    DatabaseKind.OTHERFEATURES,
    DatabaseKind.RNASEQ,
    DatabaseKind.VEGA,
)

# Biotypes whose canonical transcript may carry a translation
TRANSLATABLE_BIOTYPES = (
    "'rRNA', 'retrotransposed', 'protein_coding', "
    "'IG_C_gene', 'IG_D_gene', 'IG_J_gene', 'IG_V_gene'"
)


CANONICAL_TRANSCRIPT_CODING = RowCountAssertionsCheck(
    CheckMetadata.builder("CanonicalTranscriptCoding")
    .describe(
        "Check that protein_coding genes have a canonical transcript with a valid "
        "translation, and that the number of canonical translations is correct."
    )
    .in_groups("release", "post_genebuild")
    .owned_by(Team.COMPARA)
    .applies_to(*CORE_LIKE_KINDS)
    .build(),
    [
        ZeroCountAssertion(
            "SELECT COUNT(*) FROM gene g WHERE g.gene_id IN "
            "(SELECT tr.gene_id FROM transcript tr WHERE tr.biotype = 'protein_coding') "
            "AND g.biotype != 'protein_coding'",
            "{count} genes with at least one protein_coding transcript do not have biotype protein_coding",
            "All genes with protein_coding transcripts have protein_coding biotype",
        ),
        ZeroCountAssertion(
            "SELECT COUNT(*) FROM transcript tr "
            "LEFT JOIN translation tl ON tl.transcript_id = tr.transcript_id "
            "WHERE tr.biotype = 'protein_coding' AND tl.transcript_id IS NULL",
            "{count} protein_coding transcripts do not have translations",
            "All protein_coding transcripts have translations",
        ),
        ZeroCountAssertion(
            "SELECT COUNT(*) FROM gene g WHERE g.canonical_transcript_id IS NULL",
            "{count} genes do not have a canonical transcript",
            "All genes have a canonical transcript",
        ),
        ZeroCountAssertion(
            "SELECT COUNT(*) FROM gene g WHERE g.canonical_transcript_id IN "
            "(SELECT tr.transcript_id FROM transcript tr "
            "JOIN translation tl ON tr.transcript_id = tl.transcript_id) "
            f"AND g.biotype NOT IN ({TRANSLATABLE_BIOTYPES})",
            "{count} genes with translating canonical transcripts have the wrong biotype",
            "All genes with translating canonical transcripts have the correct biotype",
        ),
        ZeroCountAssertion(
            "SELECT COUNT(*) FROM gene g WHERE g.canonical_transcript_id IN "
            "(SELECT tr.transcript_id FROM transcript tr "
            "JOIN translation tl ON tr.transcript_id = tl.transcript_id "
            f"WHERE tr.biotype NOT IN ({TRANSLATABLE_BIOTYPES}))",
            "{count} genes have translating canonical transcripts with mismatched biotypes",
            "All genes have canonical transcripts with matching biotypes",
        ),
        ZeroCountAssertion(
            "SELECT COUNT(*) FROM gene g JOIN transcript t USING (gene_id) "
            "WHERE g.gene_id IN (SELECT g2.gene_id FROM gene g2 "
            "JOIN transcript t2 ON g2.canonical_transcript_id = t2.transcript_id "
            "WHERE g2.biotype = 'protein_coding' AND t2.biotype != 'protein_coding') "
            "AND t.biotype = 'protein_coding'",
            "{count} genes with at least one protein_coding transcript do not have "
            "a protein_coding canonical transcript",
            "All genes with at least one protein_coding transcript have a "
            "protein_coding canonical transcript",
        ),
        ZeroCountAssertion(
            "SELECT COUNT(*) FROM gene g WHERE g.biotype = 'protein_coding' "
            "AND g.gene_id NOT IN (SELECT gene_id FROM transcript WHERE biotype = 'protein_coding') "
            "AND g.gene_id NOT IN (SELECT t.gene_id FROM transcript t "
            "JOIN translation tl ON tl.transcript_id = t.transcript_id)",
            "{count} protein_coding genes with no protein_coding transcripts have "
            "no transcripts with translations",
            "All protein_coding genes with no protein_coding transcripts have at "
            "least one transcript which translates",
        ),
        ZeroCountAssertion(
            "SELECT COUNT(*) FROM gene g "
            "LEFT JOIN translation tl ON g.canonical_transcript_id = tl.transcript_id "
            "WHERE g.biotype = 'protein_coding' AND tl.transcript_id IS NULL",
            "{count} protein_coding genes have canonical transcripts that do not have valid translations",
            "All protein_coding genes have canonical transcripts that translate",
        ),
    ],
    [
        CountEquality(
            "SELECT COUNT(*) FROM transcript t1 "
            "JOIN translation p ON t1.canonical_translation_id = p.translation_id "
            "JOIN transcript t2 ON p.transcript_id = t2.transcript_id",
            "SELECT COUNT(*) FROM translation p "
            "JOIN transcript t ON t.transcript_id = p.transcript_id",
            "Number of canonical translations ({left}) is different from the total "
            "number of translations ({right})",
            "Number of canonical translations is correct",
        ),
    ],
)


class StableIDCheck(SingleDatabaseCheck):
    """
    Checks stable ID data is populated, unique, correctly prefixed and versioned.

    Prefix, stable_id_event, version and timestamp checks only run on core
    databases, and are skipped for species whose prefix is IGNORE because
    they do not go through stable ID mapping.
    """

    # Types in the order they are checked, with the stable ID letter of each
    TYPES = (
        ("exon", "E"),
        ("translation", "P"),
        ("transcript", "T"),
        ("gene", "G"),
    )

    def __init__(self):
        super().__init__(
            CheckMetadata.builder("StableID")
            .describe("Checks stable_id data is valid.")
            .in_groups(
                "post_genebuild",
                "pre-compara-handover",
                "post-compara-handover",
                "post-projection",
            )
            .owned_by(Team.CORE, Team.GENEBUILD)
            .with_priority(Priority.RED)
            .effect("Compara will have invalid stable IDs.")
            .fix("Re-run stable ID mapping or fix manually.")
            .applies_to(*CORE_LIKE_KINDS)
            .without_kind(DatabaseKind.CDNA)
            .build()
        )

    def run(self, ctx: CheckContext) -> bool:
        result = True
        for table, _ in self.TYPES:
            result &= self.check_stable_ids(ctx, table)

        if ctx.identity.kind != DatabaseKind.CORE:
            return result

        prefix = self.expected_prefix(ctx)
        if prefix is not None and prefix.upper() == IGNORE_PREFIX:
            ctx.reporter.info(
                f"Stable ID mapping is not done for {ctx.identity.species_label}, "
                "prefix, event, version and timestamp checks skipped"
            )
            return result

        result &= self.check_prefixes(ctx)
        result &= self.check_event_types(ctx)
        result &= self.check_versions(ctx)
        result &= self.check_timestamps(ctx)
        return result

    def expected_prefix(self, ctx: CheckContext) -> str | None:
        """Prefix registered for the database's species, None if there is none."""
        if ctx.catalog is None:
            return None
        return ctx.catalog.stable_id_prefix(ctx.identity.species_label)

    def check_stable_ids(self, ctx: CheckContext, table: str) -> bool:
        """No NULL and no duplicate stable IDs in one table."""
        result = primitives.check_no_nulls(ctx, table, "stable_id")
        result &= primitives.check_duplicate_keys(ctx, table, "stable_id")
        return result

    def check_prefixes(self, ctx: CheckContext) -> bool:
        """All stable IDs start with the species prefix plus the type letter (LRGs excepted)."""
        species = ctx.identity.species_label
        prefix = self.expected_prefix(ctx)
        if not prefix:
            ctx.reporter.configuration_problem(
                f"Can't get stable ID prefix for {species} - add it to stable_id_prefixes"
            )
            return False
        if prefix.upper() == IGNORE_PREFIX:
            ctx.reporter.info(f"Stable ID prefixes are not checked for {species}")
            return True

        result = True
        for table, letter in self.TYPES:
            expected = prefix + letter
            result &= primitives.assert_zero_rows(
                ctx,
                f"SELECT COUNT(*) FROM {table} "
                "WHERE stable_id NOT LIKE ? AND stable_id NOT LIKE 'LRG%'",
                f"{{count}} rows in {table} do not have the correct ({expected}) prefix",
                f"All rows in {table} have the correct prefix ({expected})",
                params=[expected + "%"],
            )
        return result

    def check_event_types(self, ctx: CheckContext) -> bool:
        """stable_id_event rows carry the type matching their identifiers' prefix.

        A database without a stable_id_event table is reported as not
        applicable rather than failing.
        """
        if not primitives.table_exists(ctx, "stable_id_event"):
            ctx.reporter.info("No stable_id_event table, event types not checked")
            return True

        result = True
        for table, _ in self.TYPES:
            prefix = self._prefix_for_type(ctx, table)
            if not prefix:
                ctx.reporter.info(f"Can't derive a stable ID prefix from {table}, event types not checked")
                continue
            result &= primitives.assert_zero_rows(
                ctx,
                "SELECT COUNT(*) FROM stable_id_event "
                "WHERE (old_stable_id LIKE ? OR new_stable_id LIKE ?) AND type != ?",
                f"{{count}} rows of type {table} (prefix {prefix}) in stable_id_event "
                f"have identifiers that do not correspond to {table}s",
                f"All {table} identifiers in stable_id_event have type {table}",
                params=[prefix + "%", prefix + "%", table],
            )
        return result

    def _prefix_for_type(self, ctx: CheckContext, table: str) -> str:
        # The first row of the table is taken as representative
        stable_id = ctx.session.execute_scalar(
            f"SELECT stable_id FROM {table} WHERE stable_id IS NOT NULL LIMIT 1"
        )
        if stable_id is None:
            return ""
        return re.sub(r"[0-9]", "", str(stable_id))

    def check_versions(self, ctx: CheckContext) -> bool:
        """Versions are >= 1 and match stable_id_event for the latest mapping session."""
        result = True
        for table, _ in self.TYPES:
            invalid = primitives.get_row_count(
                ctx, f"SELECT COUNT(*) FROM {table} WHERE version < 1 OR version IS NULL"
            )
            if invalid > 0:
                versions = ctx.session.execute_rows(
                    f"SELECT DISTINCT version FROM {table} ORDER BY version LIMIT 10"
                )
                ctx.reporter.problem(
                    f"{invalid} rows in {table} have invalid versions "
                    f"(versions present: {[row[0] for row in versions]})"
                )
                result = False
            else:
                ctx.reporter.correct(f"All versions in {table} are valid")

        missing = [
            table for table in ("mapping_session", "stable_id_event")
            if not primitives.table_exists(ctx, table)
        ]
        if missing:
            ctx.reporter.info(
                f"No {' or '.join(missing)} table, stable ID event versions not checked"
            )
            return result

        mapping_session_id = ctx.session.execute_scalar(
            "SELECT mapping_session_id FROM mapping_session ORDER BY created DESC LIMIT 1"
        )
        if mapping_session_id is None:
            ctx.reporter.info("No mapping_session found, stable ID event versions not checked")
            return result

        for table, _ in self.TYPES:
            result &= primitives.assert_zero_rows(
                ctx,
                f"SELECT COUNT(*) FROM stable_id_event sie "
                f"JOIN {table} si ON sie.new_stable_id = si.stable_id "
                "WHERE sie.mapping_session_id = ? AND sie.new_version <> si.version",
                f"Version mismatch between {{count}} {table} versions and stable_id_event "
                f"(mapping session {mapping_session_id})",
                f"All {table} versions match stable_id_event",
                params=[mapping_session_id],
            )
        return result

    def check_timestamps(self, ctx: CheckContext) -> bool:
        """created_date and modified_date are set (not NULL and not the epoch)."""
        result = True
        for table, _ in self.TYPES:
            result &= primitives.assert_zero_rows(
                ctx,
                f"SELECT COUNT(*) FROM {table} "
                "WHERE created_date IS NULL OR modified_date IS NULL "
                "OR CAST(created_date AS TIMESTAMP) <= TIMESTAMP '1970-01-01 00:00:00' "
                "OR CAST(modified_date AS TIMESTAMP) <= TIMESTAMP '1970-01-01 00:00:00'",
                f"{{count}} rows in {table} have unset created or modified dates",
                f"All entries in {table} have valid created/modified timestamps",
            )
        return result


class ComparePreviousVersionXrefs(ComparePreviousVersionCheck):
    """Compare xrefs per external database with the previous release.

    Projected xrefs are excluded; how they are recognised depends on the
    schema version of each database.
    """

    threshold = 0.78
    description_noun = "xrefs"

    # Last schema version that marked projections in display_label
    LABEL_PROJECTION_SCHEMA = 37

    def __init__(self):
        super().__init__(
            CheckMetadata.builder("ComparePreviousVersionXrefs")
            .describe(
                "Compare the xrefs in the current database with those from the "
                "equivalent database of the previous release"
            )
            .in_groups("release", "core_xrefs")
            .owned_by(Team.CORE)
            .applies_to(*CORE_LIKE_KINDS)
            .build()
        )

    def exclude_projected_sql(self, identity: DatabaseIdentity) -> str:
        if identity.schema_version <= self.LABEL_PROJECTION_SCHEMA:
            return " AND x.display_label NOT LIKE '%[from%'"
        return " AND COALESCE(x.info_type, 'NONE') != 'PROJECTION'"

    def get_counts(self, session: DatabaseSession, identity: DatabaseIdentity) -> dict[str, int]:
        sql = (
            "SELECT e.db_name, COUNT(*) AS count FROM external_db e "
            "JOIN xref x ON e.external_db_id = x.external_db_id "
            "JOIN object_xref ox ON x.xref_id = ox.xref_id "
            f"WHERE 1 = 1{self.exclude_projected_sql(identity)} "
            "GROUP BY e.db_name"
        )
        return counts_by_sql(session, sql)


STABLE_ID = StableIDCheck()
COMPARE_PREVIOUS_VERSION_XREFS = ComparePreviousVersionXrefs()
