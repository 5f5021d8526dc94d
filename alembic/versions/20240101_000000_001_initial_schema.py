"""Initial schema for assessments and audit events.

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create initial database schema."""

    # Assessments table (open drafts and completed records)
    op.create_table(
        "assessments",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("subject_id", sa.String(64), nullable=False),
        sa.Column("assessor_id", sa.String(64), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, default="draft"),
        sa.Column("current_step", sa.Integer(), nullable=False, default=0),
        sa.Column("overall_risk", sa.String(20), nullable=False, default="healthy"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("domain_scores", postgresql.JSON(), nullable=False),
        sa.Column("snapshot_hash", sa.String(64), nullable=True),
        sa.Column("total_score", sa.Integer(), nullable=True),
        sa.Column("max_total_score", sa.Integer(), nullable=True),
        sa.Column("catalog_version", sa.String(50), nullable=True),
        sa.Column("catalog_hash", sa.String(64), nullable=True),
        sa.Column("assessed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_assessments"),
    )
    op.create_index("ix_assessments_subject_id", "assessments", ["subject_id"])
    op.create_index("ix_assessments_assessor_id", "assessments", ["assessor_id"])
    op.create_index("ix_assessments_status", "assessments", ["status"])
    op.create_index("ix_assessments_assessed_at", "assessments", ["assessed_at"])
    # At most one open draft per subject
    op.create_index(
        "uq_assessments_open_draft_subject",
        "assessments",
        ["subject_id"],
        unique=True,
        postgresql_where=sa.text("status = 'draft'"),
        sqlite_where=sa.text("status = 'draft'"),
    )

    # Per-domain results
    op.create_table(
        "assessment_domains",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("assessment_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("domain", sa.String(50), nullable=False),
        sa.Column("domain_name", sa.String(100), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, default=0),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("max_score", sa.Integer(), nullable=False),
        sa.Column("risk_level", sa.String(20), nullable=False),
        sa.Column("flagged", sa.Boolean(), nullable=False, default=False),
        sa.Column("trigger_action", sa.Text(), nullable=True),
        sa.Column("answers", postgresql.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["assessment_id"],
            ["assessments.id"],
            name="fk_assessment_domains_assessment_id_assessments",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_assessment_domains"),
        sa.UniqueConstraint(
            "assessment_id", "domain", name="uq_assessment_domains_assessment_domain"
        ),
    )
    op.create_index(
        "ix_assessment_domains_assessment_id", "assessment_domains", ["assessment_id"]
    )

    # Audit events table (append-only)
    op.create_table(
        "audit_events",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("actor_type", sa.String(50), nullable=False),
        sa.Column("actor_id", sa.String(64), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("entity_type", sa.String(100), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=True),
        sa.Column("metadata", postgresql.JSON(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_audit_events"),
    )
    op.create_index("ix_audit_events_entity_id", "audit_events", ["entity_id"])
    op.create_index("ix_audit_events_action", "audit_events", ["action"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("audit_events")
    op.drop_table("assessment_domains")
    op.drop_index("uq_assessments_open_draft_subject", table_name="assessments")
    op.drop_table("assessments")
