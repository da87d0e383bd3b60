"""Foreign key checks for compara databases."""

from ensembl_healthcheck.checks.declarative import ForeignKeyCheck, Relation, RelationGuard
from ensembl_healthcheck.metadata.check import CheckMetadata, Team
from ensembl_healthcheck.metadata.identity import DatabaseKind

FOREIGN_KEY_GENOMIC_ALIGN_BLOCK_ID = ForeignKeyCheck(
    CheckMetadata.builder("ForeignKeyGenomicAlignBlockId")
    .describe("Check for broken genomic_align_block_id relationships in compara databases.")
    .in_groups("compara_genomic")
    .owned_by(Team.COMPARA)
    .applies_to(DatabaseKind.COMPARA)
    .build(),
    [
        RelationGuard("genomic_align_block", (
            Relation("genomic_align_block", "genomic_align_block_id",
                     "genomic_align", "genomic_align_block_id"),
            Relation("genomic_align", "genomic_align_block_id",
                     "genomic_align_block", "genomic_align_block_id"),
            RelationGuard("conservation_score", (
                Relation("conservation_score", "genomic_align_block_id",
                         "genomic_align_block", "genomic_align_block_id"),
            )),
        )),
    ],
)

FOREIGN_KEY_MEMBER_ID = ForeignKeyCheck(
    CheckMetadata.builder("ForeignKeyMemberId")
    .describe("Check for broken seq_member_id and gene_member_id relationships in compara databases.")
    .in_groups("compara_homology")
    .owned_by(Team.COMPARA)
    .applies_to(DatabaseKind.COMPARA)
    .build(),
    [
        RelationGuard("seq_member", (
            Relation("family_member", "seq_member_id", "seq_member", "seq_member_id"),
            Relation("homology_member", "seq_member_id", "seq_member", "seq_member_id"),
            Relation("gene_align_member", "seq_member_id", "seq_member", "seq_member_id"),
            Relation("gene_tree_node", "seq_member_id", "seq_member", "seq_member_id",
                     optional=True),
            Relation("other_member_sequence", "seq_member_id", "seq_member", "seq_member_id"),
        )),
        RelationGuard("gene_member", (
            Relation("homology_member", "gene_member_id", "gene_member", "gene_member_id"),
            Relation("member_xref", "gene_member_id", "gene_member", "gene_member_id"),
            Relation("seq_member", "gene_member_id", "gene_member", "gene_member_id",
                     optional=True),
        )),
    ],
)
