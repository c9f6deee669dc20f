"""Tests for the lead store, score notifications and the scoring service."""

import itertools
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta, timezone

import pytest

from conftest import FIXED_NOW, fixed_clock
from lead_scoring.config.settings import DEFAULT_FACTORS, SCORE_HISTORY_LIMIT, TOP_FACTORS_LIMIT
from lead_scoring.engine import LeadScoringEngine
from lead_scoring.exceptions import ConfigurationError, NotFoundError
from lead_scoring.models.schemas import (
    CampaignCreate,
    InteractionCreate,
    LeadCreate,
    LeadUpdate,
    RecalculateRequest,
)
from lead_scoring.models.scoring_config import CampaignFactor, CampaignScoringConfig
from lead_scoring.notifications import SCORE_UPDATED, ScoreNotifier
from lead_scoring.service import LeadScoringService
from lead_scoring.store import LeadStore
from lead_scoring.stages.factors import FACTOR_RULES


def ticking_clock(start=FIXED_NOW):
    """Clock that moves forward one minute per call"""
    counter = itertools.count()
    return lambda: start + timedelta(minutes=next(counter))


def lead_request(**overrides):
    data = {
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "jane@acme.io",
        "company": "Acme",
        "source": "google",
        "owner": "rep-1",
    }
    data.update(overrides)
    return LeadCreate(**data)


def two_factor_config():
    factors = [CampaignFactor(name="formCompleteness", weight=0.5), CampaignFactor(name="emailQuality", weight=0.5)]
    factors += [
        CampaignFactor(name=name, weight=0.0, enabled=False)
        for name in DEFAULT_FACTORS
        if name not in ("formCompleteness", "emailQuality")
    ]
    return CampaignScoringConfig(factors=factors)


class TestLeadLifecycle:
    """Leads are scored on creation and rescored on change"""

    def setup_method(self):
        self.service = LeadScoringService(engine=LeadScoringEngine(clock=ticking_clock()))

    def test_create_scores_lead(self):
        lead = self.service.create_lead(lead_request())

        assert lead.score.current > 0
        assert lead.score.previous is None
        assert lead.score.last_calculated == FIXED_NOW
        assert len(lead.score.factors) == len(DEFAULT_FACTORS)
        assert len(lead.score.history) == 1
        assert lead.version == 1

    def test_create_with_unknown_campaign(self):
        with pytest.raises(NotFoundError):
            self.service.create_lead(lead_request(campaign_id="missing"))

    def test_interaction_rescores_and_keeps_previous(self):
        lead = self.service.create_lead(lead_request())
        first = lead.score.current

        lead = self.service.record_interaction(lead.lead_id, InteractionCreate(type="email_open"))

        assert lead.score.previous == first
        assert lead.score.current > first
        assert len(lead.engagement.interactions) == 1
        assert lead.engagement.last_activity is not None
        assert lead.version == 2

    def test_update_of_contact_field_rescores(self):
        lead = self.service.create_lead(lead_request())
        first = lead.score.current

        lead, rescored = self.service.update_lead(lead.lead_id, LeadUpdate(phone="555-0100"))

        assert rescored is True
        assert lead.phone == "555-0100"
        assert lead.score.previous == first
        assert lead.score.current > first

    def test_update_of_other_field_does_not_rescore(self):
        lead = self.service.create_lead(lead_request())

        lead, rescored = self.service.update_lead(lead.lead_id, LeadUpdate(source="facebook"))

        assert rescored is False
        assert lead.source.value == "facebook"
        assert lead.version == 1

    def test_explicit_null_clears_field_and_rescores(self):
        lead = self.service.create_lead(lead_request(phone="555-0100"))
        first = lead.score.current

        lead, rescored = self.service.update_lead(lead.lead_id, LeadUpdate(phone=None))

        assert rescored is True
        assert lead.phone is None
        assert lead.score.previous == first
        assert lead.score.current < first

    def test_explicit_null_form_data_and_source(self):
        lead = self.service.create_lead(lead_request(form_data={"budget": "10k"}))

        lead, rescored = self.service.update_lead(
            lead.lead_id, LeadUpdate(form_data=None, source=None)
        )

        assert rescored is True
        assert lead.form_data == {}
        assert lead.source.value == "google"

    def test_unknown_lead(self):
        with pytest.raises(NotFoundError):
            self.service.rescore("missing")
        with pytest.raises(NotFoundError):
            self.service.update_lead("missing", LeadUpdate(phone="1"))

    def test_explain_does_not_persist(self):
        lead = self.service.create_lead(lead_request())

        explanation = self.service.explain_lead(lead.lead_id)

        assert explanation.total_score == lead.score.current
        assert self.service.store.get_lead(lead.lead_id).version == 1

    def test_history_is_ordered(self):
        lead = self.service.create_lead(lead_request())
        for _ in range(3):
            self.service.record_interaction(lead.lead_id, InteractionCreate(type="email_click"))

        history = self.service.score_history(lead.lead_id)

        timestamps = [entry.timestamp for entry in history["history"]]
        assert len(timestamps) == 4
        assert timestamps == sorted(timestamps)
        assert history["current_score"] == history["history"][-1].score
        assert history["previous_score"] == history["history"][-2].score


class TestHistoryLimit:
    """Stored score history is capped per lead"""

    def setup_method(self):
        self.service = LeadScoringService(
            engine=LeadScoringEngine(clock=ticking_clock()),
            store=LeadStore(history_limit=3),
        )

    def test_oldest_entries_are_dropped(self):
        lead = self.service.create_lead(lead_request())
        for _ in range(4):
            self.service.record_interaction(lead.lead_id, InteractionCreate(type="page_view"))

        stored = self.service.store.get_lead(lead.lead_id)
        timestamps = [entry.timestamp for entry in stored.score.history]

        assert stored.version == 5
        assert timestamps == [FIXED_NOW + timedelta(minutes=m) for m in (2, 3, 4)]
        assert stored.score.history[-1].score == stored.score.current

    def test_default_limit_from_settings(self):
        assert LeadStore().history_limit == SCORE_HISTORY_LIMIT


class TestConcurrentUpdates:
    """Per-lead serialization of score updates"""

    def setup_method(self):
        self.service = LeadScoringService(engine=LeadScoringEngine(clock=fixed_clock))

    def test_concurrent_interactions_are_not_lost(self):
        lead = self.service.create_lead(lead_request())

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(
                executor.map(
                    lambda _: self.service.record_interaction(lead.lead_id, InteractionCreate(type="page_view")),
                    range(20),
                )
            )

        stored = self.service.store.get_lead(lead.lead_id)
        assert stored.version == 21
        assert len(stored.engagement.interactions) == 20
        assert len(stored.score.history) == 21

    def test_history_deduplicates_timestamps(self):
        lead = self.service.create_lead(lead_request())
        self.service.rescore(lead.lead_id)
        self.service.rescore(lead.lead_id)

        history = self.service.score_history(lead.lead_id)["history"]

        assert len(history) == 1
        assert history[0].timestamp == FIXED_NOW


class TestCampaignConfig:
    """Campaign-level weight overrides"""

    def setup_method(self):
        self.service = LeadScoringService(engine=LeadScoringEngine(clock=fixed_clock))
        self.campaign = self.service.create_campaign(
            CampaignCreate(name="Spring Search", metrics={"click_through_rate": 0.06})
        )

    def test_new_campaign_config_is_disabled(self):
        config = self.service.get_scoring_config(self.campaign.campaign_id)
        assert config.enabled is False

        lead = self.service.create_lead(lead_request(campaign_id=self.campaign.campaign_id))
        assert len(lead.score.factors) == len(DEFAULT_FACTORS)

    def test_valid_config_applies_to_rescoring(self):
        self.service.update_scoring_config(self.campaign.campaign_id, two_factor_config())

        lead = self.service.create_lead(
            lead_request(campaign_id=self.campaign.campaign_id, phone="1", job_title="CTO")
        )

        assert [f.name for f in lead.score.factors] == ["formCompleteness", "emailQuality"]
        # (100 + 80) / 2
        assert lead.score.current == 90

    def test_invalid_config_is_rejected(self):
        bad = CampaignScoringConfig(factors=[CampaignFactor(name="formCompleteness", weight=0.7)])

        with pytest.raises(ConfigurationError):
            self.service.update_scoring_config(self.campaign.campaign_id, bad)
        assert self.service.get_scoring_config(self.campaign.campaign_id).factors == []

    def test_unknown_campaign(self):
        with pytest.raises(NotFoundError):
            self.service.update_scoring_config("missing", two_factor_config())


class TestRecalculate:
    """Bulk rescoring"""

    def setup_method(self):
        self.service = LeadScoringService(engine=LeadScoringEngine(clock=fixed_clock))
        self.campaign = self.service.create_campaign(CampaignCreate(name="Spring Search"))
        self.leads = [
            self.service.create_lead(lead_request(email="a@acme.io", campaign_id=self.campaign.campaign_id)),
            self.service.create_lead(lead_request(email="b@gmail.com", owner="rep-2")),
            self.service.create_lead(lead_request(email="c@acme.io")),
        ]

    def test_requires_selection(self):
        with pytest.raises(ValueError):
            self.service.recalculate(RecalculateRequest())

    def test_unknown_campaign(self):
        with pytest.raises(NotFoundError):
            self.service.recalculate(RecalculateRequest(campaign_id="missing"))

    def test_by_lead_ids_keeps_order(self):
        ids = [self.leads[2].lead_id, self.leads[0].lead_id]

        summary = self.service.recalculate(RecalculateRequest(lead_ids=ids))

        assert summary.processed == 2
        assert summary.errors == 0
        assert [r.lead_id for r in summary.results] == ids
        for r in summary.results:
            assert r.old_score == r.new_score

    def test_by_campaign(self):
        summary = self.service.recalculate(RecalculateRequest(campaign_id=self.campaign.campaign_id))
        assert [r.lead_id for r in summary.results] == [self.leads[0].lead_id]

    def test_all_leads_for_owner(self):
        summary = self.service.recalculate(RecalculateRequest(all_leads=True), owner="rep-1")
        assert summary.processed == 2
        assert {r.email for r in summary.results} == {"a@acme.io", "c@acme.io"}

    def test_failures_are_collected(self):
        def boom(lead, campaign):
            raise ValueError("bad engagement data")

        self.service.engine.factor_stage.rules = {**FACTOR_RULES, "timeOnSite": boom}

        summary = self.service.recalculate(RecalculateRequest(all_leads=True))

        assert summary.processed == 0
        assert summary.errors == 3
        assert [f.lead_id for f in summary.failures] == [l.lead_id for l in self.leads]
        assert "timeOnSite" in summary.failures[0].error
        assert self.service.store.get_lead(self.leads[0].lead_id).version == 1


class TestAnalytics:
    """Scoring analytics over stored leads"""

    def setup_method(self):
        self.service = LeadScoringService(engine=LeadScoringEngine(clock=fixed_clock))

    def test_empty_store(self):
        analytics = self.service.scoring_analytics()
        assert analytics.summary.total_leads == 0
        assert [b.count for b in analytics.distribution] == [0] * 5
        assert analytics.top_factors == []

    def test_summary_and_distribution(self):
        self.service.create_lead(lead_request(phone="1", job_title="CTO"))
        self.service.create_lead(lead_request(email="x@10minutemail.com", company=None))
        self.service.create_lead(lead_request(owner="rep-2"))

        analytics = self.service.scoring_analytics()
        summary = analytics.summary

        assert summary.total_leads == 3
        assert summary.min_score <= summary.avg_score <= summary.max_score
        assert summary.high_quality_leads + summary.medium_quality_leads + summary.low_quality_leads == 3
        assert sum(b.count for b in analytics.distribution) == 3
        assert [b.range for b in analytics.distribution] == ["0-20", "21-40", "41-60", "61-80", "81-100"]

        averages = [f.avg_value for f in analytics.top_factors]
        assert len(averages) == TOP_FACTORS_LIMIT
        assert averages == sorted(averages, reverse=True)

    def test_owner_filter(self):
        self.service.create_lead(lead_request())
        self.service.create_lead(lead_request(owner="rep-2"))

        analytics = self.service.scoring_analytics(owner="rep-2")
        assert analytics.summary.total_leads == 1
        assert analytics.distribution[0].percentage in (0, 100)

    def test_timezone_aware_date_bounds(self):
        lead = self.service.create_lead(lead_request())
        created = lead.created_at.replace(tzinfo=timezone.utc)

        before = self.service.scoring_analytics(date_from=created - timedelta(hours=1))
        after = self.service.scoring_analytics(date_from=created + timedelta(hours=1))
        # an hour after creation, expressed at UTC+2
        shifted = (created + timedelta(hours=1)).astimezone(timezone(timedelta(hours=2)))
        upper = self.service.scoring_analytics(date_to=shifted)

        assert before.summary.total_leads == 1
        assert after.summary.total_leads == 0
        assert upper.summary.total_leads == 1


class TestScoreNotifier:
    """Score update events"""

    def setup_method(self):
        self.notifier = ScoreNotifier()
        self.service = LeadScoringService(
            engine=LeadScoringEngine(clock=fixed_clock), notifier=self.notifier
        )
        self.events = []

    def test_owner_receives_score_updates(self):
        self.notifier.subscribe("rep-1", self.events.append)

        lead = self.service.create_lead(lead_request())
        self.service.create_lead(lead_request(owner="rep-2"))

        assert len(self.events) == 1
        event = self.events[0]
        assert event["type"] == SCORE_UPDATED
        assert event["lead_id"] == lead.lead_id
        assert event["score"] == lead.score.current
        assert event["previous_score"] is None

    def test_unsubscribe(self):
        unsubscribe = self.notifier.subscribe("rep-1", self.events.append)
        assert self.notifier.subscriber_count("rep-1") == 1

        unsubscribe()
        self.service.create_lead(lead_request())

        assert self.notifier.subscriber_count("rep-1") == 0
        assert self.events == []

    def test_failing_subscriber_does_not_block_others(self):
        def broken(event):
            raise RuntimeError("socket closed")

        self.notifier.subscribe("rep-1", broken)
        self.notifier.subscribe("rep-1", self.events.append)

        delivered = self.notifier.publish("rep-1", {"type": SCORE_UPDATED})

        assert delivered == 1
        assert self.events == [{"type": SCORE_UPDATED}]

    def test_no_owner(self):
        assert self.notifier.publish(None, {"type": SCORE_UPDATED}) == 0
