"""
Pydantic schemas for the Lead Scoring Engine
"""

from enum import Enum
from typing import List, Dict, Optional, Any
from pydantic import BaseModel, Field
from datetime import datetime


# =============================================================================
# ENUMS
# =============================================================================

class LeadSource(str, Enum):
    """Platform a lead was captured from"""
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    GOOGLE = "google"
    MANUAL = "manual"
    OTHER = "other"


class InteractionType(str, Enum):
    """Tracked engagement event types"""
    EMAIL_OPEN = "email_open"
    EMAIL_CLICK = "email_click"
    PAGE_VIEW = "page_view"
    FORM_SUBMIT = "form_submit"
    DOWNLOAD = "download"


class UpdateFrequency(str, Enum):
    """How often a campaign's leads are rescored"""
    REALTIME = "realtime"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


# =============================================================================
# INPUT SCHEMAS
# =============================================================================

class Interaction(BaseModel):
    """A single engagement event"""
    type: InteractionType
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Engagement(BaseModel):
    """Behavioral signals tracked for a lead"""
    page_views: int = Field(0, ge=0)
    time_on_site: float = Field(0, ge=0, description="Seconds")
    bounce_rate: Optional[float] = Field(None, ge=0, le=1)
    interactions: List[Interaction] = Field(default_factory=list)
    last_activity: Optional[datetime] = None


class LeadSnapshot(BaseModel):
    """Lead data as seen by the scoring engine"""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    source: Optional[LeadSource] = None
    engagement: Engagement = Field(default_factory=Engagement)
    form_data: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True


class CampaignMetrics(BaseModel):
    """Advertising performance metrics for a campaign"""
    click_through_rate: Optional[float] = None
    conversion_rate: Optional[float] = None
    cost_per_conversion: Optional[float] = None


class CampaignSnapshot(BaseModel):
    """Campaign data as seen by the scoring engine"""
    campaign_id: Optional[str] = None
    name: Optional[str] = None
    metrics: Optional[CampaignMetrics] = None

    class Config:
        frozen = True


# =============================================================================
# RESULT SCHEMAS
# =============================================================================

class ScoringFactor(BaseModel):
    """A single weighted sub-score"""
    name: str
    value: float = Field(..., ge=0, le=100)
    weight: float = Field(..., ge=0, le=1)
    description: str

    class Config:
        frozen = True


class ScoringResult(BaseModel):
    """Outcome of one scoring call"""
    score: int = Field(..., ge=0, le=100)
    factors: List[ScoringFactor] = Field(default_factory=list)
    confidence: float = Field(..., ge=0, le=1)
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        frozen = True

    def factor(self, name: str) -> Optional[ScoringFactor]:
        """Look up a factor by name"""
        for factor in self.factors:
            if factor.name == name:
                return factor
        return None


class FactorExplanation(BaseModel):
    """Per-factor view in a scoring explanation"""
    name: str
    score: float
    weight: float
    description: str
    impact: int


class ScoringExplanation(BaseModel):
    """Human-readable breakdown of a scoring result"""
    total_score: int
    confidence: float
    factors: List[FactorExplanation] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


# =============================================================================
# API REQUEST SCHEMAS
# =============================================================================

class FactorOverride(BaseModel):
    """Per-call override of a catalog factor"""
    weight: Optional[float] = None
    enabled: bool = True


class ScoreRequest(BaseModel):
    """Request to score an ad-hoc lead"""
    lead: LeadSnapshot
    campaign: Optional[CampaignSnapshot] = None
    factor_config: Optional[Dict[str, FactorOverride]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "lead": {
                    "first_name": "Jane",
                    "last_name": "Doe",
                    "email": "jane@acme.io",
                    "phone": "555-0100",
                    "company": "Acme",
                    "job_title": "CTO",
                    "source": "google",
                    "engagement": {
                        "page_views": 12,
                        "time_on_site": 700,
                        "bounce_rate": 0.1,
                        "interactions": [{"type": "email_open"}],
                    },
                },
                "campaign": {
                    "metrics": {
                        "click_through_rate": 0.06,
                        "conversion_rate": 0.12,
                        "cost_per_conversion": 30,
                    }
                },
            }
        }


class BatchScoreRequest(BaseModel):
    """Request to score several leads from the same campaign"""
    leads: List[LeadSnapshot]
    campaign: Optional[CampaignSnapshot] = None
    factor_config: Optional[Dict[str, FactorOverride]] = None


class LeadCreate(BaseModel):
    """Request to create a lead"""
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    phone: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    source: LeadSource = LeadSource.MANUAL
    campaign_id: Optional[str] = None
    owner: Optional[str] = None
    engagement: Engagement = Field(default_factory=Engagement)
    form_data: Dict[str, Any] = Field(default_factory=dict)


class LeadUpdate(BaseModel):
    """Partial update of a lead"""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    source: Optional[LeadSource] = None
    form_data: Optional[Dict[str, Any]] = None


class InteractionCreate(BaseModel):
    """Request to record an interaction on a lead"""
    type: InteractionType
    metadata: Dict[str, Any] = Field(default_factory=dict)


class CampaignCreate(BaseModel):
    """Request to register a campaign"""
    name: str
    owner: Optional[str] = None
    metrics: Optional[CampaignMetrics] = None


class RecalculateRequest(BaseModel):
    """Request to recalculate stored lead scores"""
    lead_ids: Optional[List[str]] = None
    campaign_id: Optional[str] = None
    all_leads: bool = False


# =============================================================================
# SERVICE RESULT SCHEMAS
# =============================================================================

class LeadRecalculation(BaseModel):
    """Outcome of rescoring one stored lead"""
    lead_id: str
    email: Optional[str] = None
    old_score: Optional[int] = None
    new_score: int
    confidence: float


class RecalculationFailure(BaseModel):
    """A stored lead that could not be rescored"""
    lead_id: str
    email: Optional[str] = None
    error: str


class RecalculateResult(BaseModel):
    """Result from a bulk recalculation"""
    processed: int
    errors: int
    results: List[LeadRecalculation] = Field(default_factory=list)
    failures: List[RecalculationFailure] = Field(default_factory=list)


class ScoreSummary(BaseModel):
    """Aggregate score statistics over a set of leads"""
    total_leads: int = 0
    avg_score: float = 0
    max_score: int = 0
    min_score: int = 0
    high_quality_leads: int = 0
    medium_quality_leads: int = 0
    low_quality_leads: int = 0


class ScoreRangeBucket(BaseModel):
    """Lead count within a score range"""
    range: str
    count: int
    percentage: int


class FactorAverage(BaseModel):
    """Average value of one factor across leads"""
    name: str
    avg_value: float
    count: int


class ScoringAnalytics(BaseModel):
    """Scoring analytics over stored leads"""
    summary: ScoreSummary
    distribution: List[ScoreRangeBucket] = Field(default_factory=list)
    top_factors: List[FactorAverage] = Field(default_factory=list)
