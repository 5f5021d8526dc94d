"""Assessment models for draft and completed health-risk assessments."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin
from app.scoring.risk import RISK_SEVERITY, RiskLevel  # noqa: F401


class AssessmentStatus(str, Enum):
    """Assessment lifecycle status."""

    DRAFT = "draft"  # Resumable, partially answered
    COMPLETED = "completed"  # Committed, immutable


class Assessment(Base, TimestampMixin):
    """A subject's assessment, either an open draft or a completed record.

    Drafts are upserted on every successful workflow step. At most one
    draft per subject may be open at a time. Completion promotes the
    draft row in place; completed rows are never modified again.
    """

    __tablename__ = "assessments"

    subject_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )
    assessor_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )
    status: Mapped[AssessmentStatus] = mapped_column(
        String(20),
        default=AssessmentStatus.DRAFT,
        nullable=False,
        index=True,
    )
    # Workflow step the draft should resume at
    current_step: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    overall_risk: Mapped[RiskLevel] = mapped_column(
        String(20),
        default=RiskLevel.HEALTHY,
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    # Raw domain_id -> {"answers": {...}, "notes": ...} snapshot
    domain_scores: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    # SHA256 of the snapshot payload, used to recognise replayed saves
    snapshot_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    total_score: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )
    max_total_score: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
    )
    catalog_version: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    catalog_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    assessed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )
    # Optimistic concurrency counter, bumped by the ORM on every update
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    domains: Mapped[list["AssessmentDomain"]] = relationship(
        back_populates="assessment",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="AssessmentDomain.position",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index(
            "uq_assessments_open_draft_subject",
            "subject_id",
            unique=True,
            postgresql_where=text("status = 'draft'"),
            sqlite_where=text("status = 'draft'"),
        ),
    )

    @property
    def is_draft(self) -> bool:
        return self.status == AssessmentStatus.DRAFT

    def __repr__(self) -> str:
        return f"<Assessment {self.id[:8]}... subject={self.subject_id} {self.status}>"


class AssessmentDomain(Base, TimestampMixin):
    """Scored result for one domain of an assessment."""

    __tablename__ = "assessment_domains"

    assessment_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("assessments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    domain: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    domain_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    # Catalog order, so results come back in step order
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    max_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )
    risk_level: Mapped[RiskLevel] = mapped_column(
        String(20),
        nullable=False,
    )
    flagged: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    trigger_action: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    answers: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    assessment: Mapped[Assessment] = relationship(back_populates="domains")

    __table_args__ = (
        UniqueConstraint("assessment_id", "domain", name="uq_assessment_domains_assessment_domain"),
    )

    def __repr__(self) -> str:
        return f"<AssessmentDomain {self.domain}={self.score} ({self.risk_level})>"
