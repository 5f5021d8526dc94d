"""Assessment, draft and trend schemas."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field

from app.models.assessment import AssessmentStatus, RiskLevel
from app.scoring.recommendations import RecommendationCategory, RecommendationPriority
from app.scoring.trends import Trend

AnswerValue = Annotated[int, Field(ge=0, le=2)]


class DomainEntryIn(BaseModel):
    """Answers and notes for one domain."""

    answers: dict[str, AnswerValue] = Field(default_factory=dict)
    notes: str | None = Field(None, max_length=5000)


class ScorePreviewRequest(BaseModel):
    """Schema for scoring answers without saving anything."""

    domain_data: dict[str, DomainEntryIn] = Field(
        default_factory=dict,
        description="domain_id -> answers and notes",
    )


class DraftAdvanceRequest(BaseModel):
    """Schema for moving a draft forward one step."""

    subject_name: str | None = None
    current_step: int = Field(..., ge=1)
    domain_data: dict[str, DomainEntryIn] = Field(default_factory=dict)
    notes: str | None = Field(None, max_length=10000)
    draft_id: str | None = None
    expected_version: int | None = None
    allow_unsaved: bool = False


class DraftSaveRequest(BaseModel):
    """Schema for saving a draft at its current step."""

    subject_name: str | None = None
    current_step: int = Field(..., ge=1)
    domain_data: dict[str, DomainEntryIn] = Field(default_factory=dict)
    notes: str | None = Field(None, max_length=10000)
    draft_id: str | None = None
    expected_version: int | None = None


class AssessmentCompleteRequest(BaseModel):

    """Schema for committing a fully answered assessment."""

    subject_name: str | None = None
    domain_data: dict[str, DomainEntryIn] = Field(default_factory=dict)
    notes: str | None = Field(None, max_length=10000)
    draft_id: str | None = None
    expected_version: int | None = None


class PHQ2Request(BaseModel):
    """Schema for PHQ-2 item scores."""

    interest_loss: int = Field(..., ge=0, le=3)
    depressed_mood: int = Field(..., ge=0, le=3)


class QuestionOptionRead(BaseModel):
    value: int
    label: str

    model_config = {"from_attributes": True}


class QuestionRead(BaseModel):
    id: str
    prompt: str
    short_label: str
    description: str | None
    options: list[QuestionOptionRead]

    model_config = {"from_attributes": True}


class DomainRead(BaseModel):
    id: str
    name: str
    description: str
    trigger_action: str | None
    max_score: int
    questions: list[QuestionRead]

    model_config = {"from_attributes": True}


class DomainGroupRead(BaseModel):
    id: str
    name: str
    domain_ids: list[str]

    model_config = {"from_attributes": True}


class CatalogRead(BaseModel):
    """Schema for reading the domain catalog."""

    id: str
    name: str
    version: str
    content_hash: str
    domains: list[DomainRead]
    groups: list[DomainGroupRead]

    model_config = {"from_attributes": True}


class DomainResultRead(BaseModel):
    domain_id: str
    domain_name: str
    score: int
    max_score: int
    risk_level: RiskLevel
    flagged: bool
    trigger_action: str | None
    answers: dict[str, int]
    notes: str | None
    is_complete: bool

    model_config = {"from_attributes": True}


class RecommendationRead(BaseModel):
    id: str
    priority: RecommendationPriority
    category: RecommendationCategory
    title: str
    description: str
    domain: str | None
    timeframe: str | None
    due_date: datetime | None = None
    is_actionable: bool


class AssessmentResultRead(BaseModel):
    """Schema for a scored assessment result."""

    overall_risk: RiskLevel
    total_score: int
    max_total_score: int
    domain_results: list[DomainResultRead]
    recommendations: list[RecommendationRead]
    flagged_domain_names: list[str]
    summary_lines: list[str]
    risk_counts: dict[str, int]
    requires_phq2: bool = False


class DraftRead(BaseModel):
    """Schema for reading an open draft."""

    id: str
    subject_id: str
    assessor_id: str
    status: AssessmentStatus
    current_step: int
    overall_risk: RiskLevel
    notes: str | None
    domain_scores: dict
    version: int
    created_at: datetime
    updated_at: datetime | None

    model_config = {"from_attributes": True}


class DraftAdvanceResponse(BaseModel):
    """Schema for the outcome of a forward step."""

    advanced: bool
    step: int
    saved: bool
    is_review: bool
    draft_id: str | None
    version: int | None
    missing_question_ids: list[str] = Field(default_factory=list)
    preview: AssessmentResultRead | None = None


class AssessmentRead(BaseModel):
    """Schema for a completed assessment."""

    id: str
    subject_id: str
    assessor_id: str
    status: AssessmentStatus
    overall_risk: RiskLevel
    total_score: int | None
    max_total_score: int | None
    notes: str | None
    catalog_version: str | None
    assessed_at: datetime | None
    result: AssessmentResultRead


class DomainComparisonRead(BaseModel):
    domain_id: str
    domain_name: str
    previous_score: int
    current_score: int
    delta: int
    trend: Trend
    previous_risk: RiskLevel | None
    current_risk: RiskLevel | None

    model_config = {"from_attributes": True}


class SeriesPointRead(BaseModel):
    assessment_id: str | None
    assessed_at: datetime
    scores: dict[str, int]
    total_score: int
    overall_risk: RiskLevel

    model_config = {"from_attributes": True}


class RadarPointRead(BaseModel):
    domain_id: str
    domain_name: str
    latest: int
    previous: int

    model_config = {"from_attributes": True}


class TrendsResponse(BaseModel):
    """Schema for a subject's score history."""

    subject_id: str
    assessment_count: int
    series: list[SeriesPointRead]
    radar: list[RadarPointRead]
    comparison: list[DomainComparisonRead]
    trend_counts: dict[str, int]


class PHQ2Response(BaseModel):
    total: int
    screen_positive: bool
    interest_loss: int
    depressed_mood: int
    recommendation: str

    model_config = {"from_attributes": True}
