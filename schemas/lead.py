"""Lead, scoring, and duplicate-review schemas."""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EnrichmentStatus = Literal["pending", "enriched", "failed"]

SCORE_FIELDS = (
    "fit_score",
    "engagement_score",
    "contact_quality_score",
    "opportunity_score",
    "total_score",
)
COUNTER_FIELDS = ("contact_attempts", "emails_sent", "emails_opened", "sms_sent")
LIST_FIELDS = ("decision_makers", "tags", "enrichment_sources", "detected_technologies")
IMMUTABLE_FIELDS = ("id", "created_at")


class DecisionMaker(BaseModel):
    name: Optional[str] = None
    title: Optional[str] = None
    email: Optional[str] = None


class ScoreSet(BaseModel):
    """The four sub-scores plus their derived total, always handled as one unit."""

    fit_score: int = Field(ge=0, le=100)
    engagement_score: int = Field(ge=0, le=100)
    contact_quality_score: int = Field(ge=0, le=100)
    opportunity_score: int = Field(ge=0, le=100)
    total_score: int = Field(ge=0, le=100)

    def as_patch(self) -> dict:
        return self.model_dump()


class LeadDraft(BaseModel):
    """Canonical lead fields produced by ingestion, before an ID is assigned.

    business_name may be missing here; it is rejected at insert time.
    """

    business_name: Optional[str] = None
    business_type: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    source_key: Optional[str] = None
    enrichment_status: EnrichmentStatus = "pending"
    enrichment_sources: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class Lead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    business_name: str
    business_type: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    owner_name: Optional[str] = None
    owner_title: Optional[str] = None
    owner_email: Optional[str] = None
    owner_email_verified: bool = False
    owner_phone: Optional[str] = None
    source_key: Optional[str] = None

    enrichment_status: EnrichmentStatus = "pending"
    enrichment_sources: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    decision_makers: List[DecisionMaker] = Field(default_factory=list)
    pain_points: Optional[str] = None

    google_rating: Optional[float] = None
    google_review_count: Optional[int] = None
    employee_count: Optional[int] = None
    estimated_revenue: Optional[int] = None
    has_online_booking: Optional[bool] = None
    has_live_chat: Optional[bool] = None
    detected_technologies: List[str] = Field(default_factory=list)

    fit_score: int = 0
    engagement_score: int = 0
    contact_quality_score: int = 0
    opportunity_score: int = 0
    total_score: int = 0

    contact_attempts: int = Field(default=0, ge=0)
    emails_sent: int = Field(default=0, ge=0)
    emails_opened: int = Field(default=0, ge=0)
    sms_sent: int = Field(default=0, ge=0)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        return str(value)

    @field_validator("business_name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("business_name must not be empty")
        return value

    @property
    def scores(self) -> ScoreSet:
        return ScoreSet(**{name: getattr(self, name) for name in SCORE_FIELDS})


class MatchCandidate(BaseModel):
    """Projection fetched for duplicate scans: similarity and primary-selection fields only."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    business_name: str = ""
    address: Optional[str] = None
    phone: Optional[str] = None
    owner_email: Optional[str] = None
    website: Optional[str] = None
    owner_name: Optional[str] = None
    owner_email_verified: bool = False
    owner_phone: Optional[str] = None
    total_score: int = 0
    enrichment_status: EnrichmentStatus = "pending"

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        return str(value)


class LeadFilter(BaseModel):
    ids: Optional[List[str]] = None
    business_type: Optional[str] = None
    enrichment_status: Optional[EnrichmentStatus] = None
    min_score: Optional[int] = None
    order_by_score: bool = False


class DuplicateCluster(BaseModel):
    cluster_id: str
    similarity: float
    leads: List[MatchCandidate]
    suggested_primary_id: str

    @property
    def lead_ids(self) -> List[str]:
        return [lead.id for lead in self.leads]


class MergeResult(BaseModel):
    primary: Lead
    merged_ids: List[str]
    message: str


class ReviewDecision(BaseModel):
    action: Literal["merge", "ignore"]
    lead_ids: List[str]
    primary_id: Optional[str] = None


class ReviewOutcome(BaseModel):
    action: Literal["merge", "ignore"]
    message: str
    merge: Optional[MergeResult] = None


class ImportResult(BaseModel):
    total: int = 0
    imported: int = 0
    skipped: int = 0
    duplicates: int = 0
    errors: int = 0
    error_details: List[str] = Field(default_factory=list)

    @property
    def message(self) -> str:
        return (
            f"Imported {self.imported} leads, skipped {self.skipped} duplicates, "
            f"{self.errors} errors."
        )
