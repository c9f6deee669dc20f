"""
In-memory lead and campaign store
=================================
Plays the persistence side of scoring: keeps the current/previous score pair
on each lead, the factor list, confidence and a score history. Score updates
for a single lead are serialized with a per-lead lock.

Replace with a database-backed store in production.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, Field

from .config.settings import SCORE_HISTORY_LIMIT
from .exceptions import NotFoundError
from .models.schemas import (
    CampaignMetrics,
    CampaignSnapshot,
    Engagement,
    Interaction,
    LeadSnapshot,
    LeadSource,
    ScoringFactor,
    ScoringResult,
)
from .models.scoring_config import CampaignScoringConfig

logger = logging.getLogger(__name__)


# =============================================================================
# Records
# =============================================================================

class ScoreHistoryEntry(BaseModel):
    """A persisted scoring outcome"""
    timestamp: datetime
    score: int
    confidence: float
    factors: List[ScoringFactor] = Field(default_factory=list)


class LeadScore(BaseModel):
    """Score block stored on a lead"""
    current: int = 0
    previous: Optional[int] = None
    factors: List[ScoringFactor] = Field(default_factory=list)
    confidence: float = 0
    last_calculated: Optional[datetime] = None
    history: List[ScoreHistoryEntry] = Field(default_factory=list)


class LeadRecord(BaseModel):
    """A stored lead"""
    lead_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    owner: Optional[str] = None
    campaign_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    source: LeadSource = LeadSource.MANUAL
    engagement: Engagement = Field(default_factory=Engagement)
    form_data: Dict[str, Any] = Field(default_factory=dict)
    score: LeadScore = Field(default_factory=LeadScore)
    version: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def to_snapshot(self) -> LeadSnapshot:
        return LeadSnapshot(
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            company=self.company,
            job_title=self.job_title,
            source=self.source,
            engagement=self.engagement.model_copy(deep=True),
            form_data=dict(self.form_data),
        )


class CampaignRecord(BaseModel):
    """A stored campaign"""
    campaign_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    owner: Optional[str] = None
    metrics: Optional[CampaignMetrics] = None
    scoring_config: CampaignScoringConfig = Field(
        default_factory=lambda: CampaignScoringConfig(enabled=False)
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)

    def to_snapshot(self) -> CampaignSnapshot:
        return CampaignSnapshot(
            campaign_id=self.campaign_id,
            name=self.name,
            metrics=self.metrics.model_copy() if self.metrics else None,
        )


# =============================================================================
# Store
# =============================================================================

class LeadStore:
    """
    Thread-safe in-memory store for leads and campaigns.
    """

    def __init__(self, history_limit: Optional[int] = None):
        self.history_limit = history_limit or SCORE_HISTORY_LIMIT
        self._leads: Dict[str, LeadRecord] = {}
        self._campaigns: Dict[str, CampaignRecord] = {}
        self._lead_locks: Dict[str, threading.RLock] = {}
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Campaigns
    # -------------------------------------------------------------------------

    def add_campaign(self, campaign: CampaignRecord) -> CampaignRecord:
        with self._lock:
            self._campaigns[campaign.campaign_id] = campaign
        return campaign

    def get_campaign(self, campaign_id: str) -> CampaignRecord:
        campaign = self._campaigns.get(campaign_id)
        if campaign is None:
            raise NotFoundError(f"Campaign not found: {campaign_id}")
        return campaign

    def find_campaign(self, campaign_id: Optional[str]) -> Optional[CampaignRecord]:
        if not campaign_id:
            return None
        return self._campaigns.get(campaign_id)

    def save_scoring_config(self, campaign_id: str, config: CampaignScoringConfig) -> CampaignRecord:
        with self._lock:
            campaign = self.get_campaign(campaign_id)
            campaign.scoring_config = config
        return campaign

    # -------------------------------------------------------------------------
    # Leads
    # -------------------------------------------------------------------------

    def add_lead(self, lead: LeadRecord) -> LeadRecord:
        with self._lock:
            self._leads[lead.lead_id] = lead
            self._lead_locks[lead.lead_id] = threading.RLock()
        return lead

    def get_lead(self, lead_id: str) -> LeadRecord:
        lead = self._leads.get(lead_id)
        if lead is None:
            raise NotFoundError(f"Lead not found: {lead_id}")
        return lead

    def list_leads(
        self,
        owner: Optional[str] = None,
        campaign_id: Optional[str] = None,
        lead_ids: Optional[List[str]] = None,
    ) -> List[LeadRecord]:
        with self._lock:
            if lead_ids is not None:
                # requested order, duplicates dropped
                leads = [self._leads[i] for i in dict.fromkeys(lead_ids) if i in self._leads]
            else:
                leads = list(self._leads.values())

        if owner is not None:
            leads = [l for l in leads if l.owner == owner]
        if campaign_id is not None:
            leads = [l for l in leads if l.campaign_id == campaign_id]
        return leads

    @contextmanager
    def lead_lock(self, lead_id: str) -> Iterator[LeadRecord]:
        """Hold the lead's update lock for a read-score-write cycle"""
        lead = self.get_lead(lead_id)
        with self._lead_locks[lead_id]:
            yield lead

    def update_lead(self, lead_id: str, changes: Dict[str, Any]) -> LeadRecord:
        with self.lead_lock(lead_id) as lead:
            for key, value in changes.items():
                if hasattr(lead, key):
                    setattr(lead, key, value)
            lead.updated_at = datetime.utcnow()
            return lead

    def add_interaction(self, lead_id: str, interaction: Interaction) -> LeadRecord:
        with self.lead_lock(lead_id) as lead:
            lead.engagement.interactions.append(interaction)
            lead.engagement.last_activity = interaction.timestamp
            lead.updated_at = datetime.utcnow()
            return lead

    def apply_score(self, lead_id: str, result: ScoringResult) -> LeadRecord:
        """
        Persist a scoring result: the current score moves to previous and the
        result's score, factors, confidence and timestamp become current.
        """
        with self.lead_lock(lead_id) as lead:
            score = lead.score
            score.previous = score.current if score.last_calculated else None
            score.current = result.score
            score.factors = list(result.factors)
            score.confidence = result.confidence
            score.last_calculated = result.timestamp
            score.history.append(
                ScoreHistoryEntry(
                    timestamp=result.timestamp,
                    score=result.score,
                    confidence=result.confidence,
                    factors=list(result.factors),
                )
            )
            if len(score.history) > self.history_limit:
                del score.history[: -self.history_limit]
            lead.version += 1
            lead.updated_at = datetime.utcnow()

            logger.debug(f"Lead {lead_id} score {score.previous} -> {score.current} (v{lead.version})")
            return lead

    def score_history(self, lead_id: str) -> List[ScoreHistoryEntry]:
        """Score history with one entry per timestamp, oldest first"""
        lead = self.get_lead(lead_id)
        with self._lead_locks[lead_id]:
            entries = list(lead.score.history)

        seen = set()
        unique = []
        for entry in entries:
            if entry.timestamp in seen:
                continue
            seen.add(entry.timestamp)
            unique.append(entry)
        return sorted(unique, key=lambda e: e.timestamp)
