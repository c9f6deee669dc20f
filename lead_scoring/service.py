"""
Lead Scoring Service
====================
Connects the stateless engine to the lead store and the notifier:

- new leads are scored on creation
- updates to contact fields or form data trigger a rescore
- every recorded interaction triggers a rescore
- bulk recalculation by lead ids, campaign, or all leads
- scoring analytics over stored scores

Each rescore runs under the lead's update lock, so the previous/current
pair on the record never loses an update.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from .config.settings import (
    API_CONFIG,
    QUALITY_BANDS,
    SCORE_AFFECTING_FIELDS,
    SCORE_RANGES,
    TOP_FACTORS_LIMIT,
)
from .engine import LeadScoringEngine
from .models.schemas import (
    CampaignCreate,
    FactorAverage,
    FactorOverride,
    Interaction,
    InteractionCreate,
    LeadCreate,
    LeadRecalculation,
    LeadUpdate,
    RecalculateRequest,
    RecalculateResult,
    RecalculationFailure,
    ScoreRangeBucket,
    ScoreSummary,
    ScoringAnalytics,
    ScoringExplanation,
    ScoringResult,
)
from .models.scoring_config import CampaignScoringConfig
from .notifications import ScoreNotifier
from .stages.factors import round_half_up
from .store import CampaignRecord, LeadRecord, LeadStore

logger = logging.getLogger(__name__)


class LeadScoringService:
    """
    Lead lifecycle operations that keep stored scores current.
    """

    def __init__(
        self,
        engine: Optional[LeadScoringEngine] = None,
        store: Optional[LeadStore] = None,
        notifier: Optional[ScoreNotifier] = None,
    ):
        self.engine = engine or LeadScoringEngine()
        self.store = store or LeadStore()
        self.notifier = notifier or ScoreNotifier()

    # =========================================================================
    # Campaigns
    # =========================================================================

    def create_campaign(self, request: CampaignCreate) -> CampaignRecord:
        campaign = CampaignRecord(
            name=request.name,
            owner=request.owner,
            metrics=request.metrics,
        )
        self.store.add_campaign(campaign)
        logger.info(f"Campaign created: {campaign.name} ({campaign.campaign_id})")
        return campaign

    def get_scoring_config(self, campaign_id: str) -> CampaignScoringConfig:
        return self.store.get_campaign(campaign_id).scoring_config

    def update_scoring_config(
        self, campaign_id: str, config: CampaignScoringConfig
    ) -> CampaignScoringConfig:
        """
        Validate and store a campaign's factor overrides.

        Raises:
            NotFoundError: unknown campaign
            ConfigurationError: weights do not sum to 1.0 or a factor is invalid
        """
        campaign = self.store.get_campaign(campaign_id)
        config.validate_weights()
        config.updated_at = datetime.utcnow()
        self.store.save_scoring_config(campaign_id, config)
        logger.info(f"Scoring configuration updated for campaign: {campaign.name}")
        return config

    # =========================================================================
    # Leads
    # =========================================================================

    def create_lead(self, request: LeadCreate) -> LeadRecord:
        if request.campaign_id:
            self.store.get_campaign(request.campaign_id)

        lead = LeadRecord(**request.model_dump())
        self.store.add_lead(lead)
        logger.info(f"Lead created: {lead.email} ({lead.lead_id})")

        lead, _ = self.rescore(lead.lead_id)
        return lead

    def update_lead(self, lead_id: str, request: LeadUpdate) -> Tuple[LeadRecord, bool]:
        """
        Apply a partial update. Returns the lead and whether it was rescored.

        An explicit null clears a contact field (form_data resets to empty).
        The source cannot be cleared.
        """
        changes = request.model_dump(exclude_unset=True)
        if "source" in changes and changes["source"] is None:
            del changes["source"]
        if "form_data" in changes and changes["form_data"] is None:
            changes["form_data"] = {}
        lead = self.store.update_lead(lead_id, changes)

        if not any(field in changes for field in SCORE_AFFECTING_FIELDS):
            return lead, False

        lead, _ = self.rescore(lead_id)
        return lead, True

    def record_interaction(self, lead_id: str, request: InteractionCreate) -> LeadRecord:
        interaction = Interaction(type=request.type, metadata=request.metadata)
        self.store.add_interaction(lead_id, interaction)
        lead, _ = self.rescore(lead_id)
        return lead

    def rescore(self, lead_id: str) -> Tuple[LeadRecord, ScoringResult]:
        """Score a stored lead, persist the result and notify the owner"""
        with self.store.lead_lock(lead_id) as lead:
            result = self._score_record(lead)
            lead = self.store.apply_score(lead_id, result)

        self.notifier.score_updated(lead)
        return lead, result

    def explain_lead(self, lead_id: str) -> ScoringExplanation:
        """Fresh explanation for a stored lead (the stored score is not touched)"""
        lead = self.store.get_lead(lead_id)
        result = self._score_record(lead)
        return self.engine.explain(lead.to_snapshot(), result)

    # =========================================================================
    # Bulk & reporting
    # =========================================================================

    def recalculate(
        self, request: RecalculateRequest, owner: Optional[str] = None
    ) -> RecalculateResult:
        """
        Rescore stored leads selected by all_leads, lead_ids or campaign_id.

        Per-lead failures are collected, not raised.

        Raises:
            ValueError: no selection given
            NotFoundError: campaign_id does not exist
        """
        if request.all_leads:
            leads = self.store.list_leads(owner=owner)
        elif request.lead_ids:
            leads = self.store.list_leads(owner=owner, lead_ids=request.lead_ids)
        elif request.campaign_id:
            self.store.get_campaign(request.campaign_id)
            leads = self.store.list_leads(campaign_id=request.campaign_id)
        else:
            raise ValueError("Please specify lead_ids, campaign_id, or set all_leads to true")

        results: Dict[str, LeadRecalculation] = {}
        failures: Dict[str, RecalculationFailure] = {}

        with ThreadPoolExecutor(max_workers=API_CONFIG["recalc_max_workers"]) as executor:
            futures = {executor.submit(self.rescore, lead.lead_id): lead for lead in leads}
            for future in as_completed(futures):
                lead = futures[future]
                try:
                    updated, result = future.result()
                except Exception as e:
                    logger.exception(f"Error recalculating score for lead {lead.lead_id}")
                    failures[lead.lead_id] = RecalculationFailure(
                        lead_id=lead.lead_id, email=lead.email, error=str(e)
                    )
                    continue
                results[lead.lead_id] = LeadRecalculation(
                    lead_id=updated.lead_id,
                    email=updated.email,
                    old_score=updated.score.previous,
                    new_score=updated.score.current,
                    confidence=result.confidence,
                )

        order = [lead.lead_id for lead in leads]
        summary = RecalculateResult(
            processed=len(results),
            errors=len(failures),
            results=[results[i] for i in order if i in results],
            failures=[failures[i] for i in order if i in failures],
        )
        logger.info(
            f"Score recalculation completed. Processed: {summary.processed}, Errors: {summary.errors}"
        )
        return summary

    def scoring_analytics(
        self,
        campaign_id: Optional[str] = None,
        owner: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> ScoringAnalytics:
        """Score summary, range distribution and top factors over stored leads"""
        leads = self.store.list_leads(owner=owner, campaign_id=campaign_id)
        if date_from:
            date_from = _naive_utc(date_from)
            leads = [l for l in leads if l.created_at >= date_from]
        if date_to:
            date_to = _naive_utc(date_to)
            leads = [l for l in leads if l.created_at <= date_to]

        scores = [l.score.current for l in leads]
        total = len(scores)

        summary = ScoreSummary(total_leads=total)
        if total:
            summary = ScoreSummary(
                total_leads=total,
                avg_score=round(sum(scores) / total, 2),
                max_score=max(scores),
                min_score=min(scores),
                high_quality_leads=sum(1 for s in scores if s >= QUALITY_BANDS["high"]),
                medium_quality_leads=sum(
                    1 for s in scores if QUALITY_BANDS["medium"] <= s < QUALITY_BANDS["high"]
                ),
                low_quality_leads=sum(1 for s in scores if s < QUALITY_BANDS["medium"]),
            )

        distribution = []
        for label, low, high in SCORE_RANGES:
            count = sum(1 for s in scores if low <= s <= high)
            distribution.append(
                ScoreRangeBucket(
                    range=label,
                    count=count,
                    percentage=round_half_up(count / total * 100) if total else 0,
                )
            )

        return ScoringAnalytics(
            summary=summary,
            distribution=distribution,
            top_factors=self._top_factors(leads),
        )

    def score_history(self, lead_id: str) -> dict:
        lead = self.store.get_lead(lead_id)
        return {
            "lead_id": lead.lead_id,
            "current_score": lead.score.current,
            "previous_score": lead.score.previous,
            "last_calculated": lead.score.last_calculated,
            "confidence": lead.score.confidence,
            "history": self.store.score_history(lead_id),
        }

    # =========================================================================
    # Helpers
    # =========================================================================

    def _score_record(self, lead: LeadRecord) -> ScoringResult:
        campaign = self.store.find_campaign(lead.campaign_id)
        return self.engine.compute_score(
            lead.to_snapshot(),
            campaign.to_snapshot() if campaign else None,
            self._factor_config_for(campaign),
        )

    def _factor_config_for(
        self, campaign: Optional[CampaignRecord]
    ) -> Optional[Dict[str, FactorOverride]]:
        if campaign is None:
            return None
        config = campaign.scoring_config
        if not config.enabled or not config.factors:
            return None
        return config.to_factor_overrides()

    def _top_factors(self, leads: List[LeadRecord]) -> List[FactorAverage]:
        totals: Dict[str, List[float]] = {}
        for lead in leads:
            for factor in lead.score.factors:
                totals.setdefault(factor.name, []).append(factor.value)

        averages = [
            FactorAverage(name=name, avg_value=round(sum(values) / len(values), 2), count=len(values))
            for name, values in totals.items()
        ]
        averages.sort(key=lambda f: f.avg_value, reverse=True)
        return averages[:TOP_FACTORS_LIMIT]


def _naive_utc(value: datetime) -> datetime:
    # stored timestamps are naive UTC
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
