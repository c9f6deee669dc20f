"""
Stage 1: Factor Computation
===========================
Evaluates each enabled catalog factor against the lead and campaign.

Each factor is a pure rule ``(lead, campaign) -> value`` registered in
FACTOR_RULES. Adding or removing a factor means editing the catalog in
config.settings and this mapping; the stage itself only iterates.
"""

import logging
import math
import re
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from ..config.settings import (
    DEFAULT_FACTORS,
    FORM_FIELDS,
    PAGE_VIEW_STEPS,
    TIME_ON_SITE_MINUTE_STEPS,
    TIME_ON_SITE_FLOOR,
    EMAIL_ENGAGEMENT_STEPS,
    BOUNCE_RATE_STEPS,
    BOUNCE_RATE_CEILING_SCORE,
    BOUNCE_RATE_UNKNOWN_SCORE,
    WEBMAIL_DOMAINS,
    DISPOSABLE_EMAIL_DOMAINS,
    EMAIL_QUALITY,
    CAMPAIGN_PERFORMANCE,
    SOURCE_QUALITY_SCORES,
    SOURCE_QUALITY_DEFAULT,
)
from ..exceptions import ConfigurationError, InternalScoringError
from ..models.schemas import (
    CampaignSnapshot,
    FactorOverride,
    InteractionType,
    LeadSnapshot,
    ScoringFactor,
)

logger = logging.getLogger(__name__)

EMAIL_FORMAT = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

FactorRule = Callable[[LeadSnapshot, Optional[CampaignSnapshot]], float]
FactorConfig = Mapping[str, Union[FactorOverride, Mapping[str, object]]]


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up"""
    return int(math.floor(value + 0.5))


def _step_score(value: float, steps: List[Tuple[float, int]], default: int = 0) -> int:
    for threshold, score in steps:
        if value >= threshold:
            return score
    return default


def _is_filled(value: Optional[str]) -> bool:
    return bool(value and value.strip())


# =============================================================================
# Factor rules
# =============================================================================

def form_completeness(lead: LeadSnapshot, campaign: Optional[CampaignSnapshot] = None) -> int:
    """Percentage of the tracked contact fields that are filled in"""
    provided = [f for f in FORM_FIELDS if _is_filled(getattr(lead, f))]
    return round_half_up(len(provided) / len(FORM_FIELDS) * 100)


def email_quality(email: Optional[str]) -> int:
    """
    Score an email address.

    Starts at a base of 50, then applies a business-domain bonus, a
    disposable-domain penalty and an invalid-format penalty. The adjustments
    are additive and the result is clamped once at the end.
    """
    if not email:
        return 0

    score = EMAIL_QUALITY["base"]
    parts = email.split("@")
    domain = parts[1].lower() if len(parts) > 1 else ""

    if domain and domain not in WEBMAIL_DOMAINS:
        score += EMAIL_QUALITY["business_bonus"]

    if domain in DISPOSABLE_EMAIL_DOMAINS:
        score -= EMAIL_QUALITY["disposable_penalty"]

    if not EMAIL_FORMAT.match(email):
        score -= EMAIL_QUALITY["invalid_format_penalty"]

    return max(0, min(100, score))


def phone_provided(lead: LeadSnapshot, campaign: Optional[CampaignSnapshot] = None) -> int:
    return 100 if lead.phone else 0


def company_provided(lead: LeadSnapshot, campaign: Optional[CampaignSnapshot] = None) -> int:
    return 100 if lead.company else 0


def page_view_score(page_views: Optional[int]) -> int:
    if not page_views:
        return 0
    return _step_score(page_views, PAGE_VIEW_STEPS)


def time_on_site_score(seconds: Optional[float]) -> int:
    if not seconds:
        return 0
    return _step_score(seconds / 60, TIME_ON_SITE_MINUTE_STEPS, TIME_ON_SITE_FLOOR)


def bounce_rate_score(bounce_rate: Optional[float]) -> int:
    """Lower bounce rate scores higher; unknown is neutral"""
    if bounce_rate is None:
        return BOUNCE_RATE_UNKNOWN_SCORE
    for upper, score in BOUNCE_RATE_STEPS:
        if bounce_rate <= upper:
            return score
    return BOUNCE_RATE_CEILING_SCORE


def email_engagement_score(lead: LeadSnapshot, interaction_type: InteractionType) -> int:
    count = sum(1 for i in lead.engagement.interactions if i.type == interaction_type)
    return _step_score(count, EMAIL_ENGAGEMENT_STEPS)


def campaign_performance_score(campaign: Optional[CampaignSnapshot]) -> int:
    """
    Score the parent campaign's metrics.

    No campaign (or no metrics) is neutral. Bonuses for click-through rate,
    conversion rate and low cost per conversion are added to the base and
    capped at 100.
    """
    if not campaign or not campaign.metrics:
        return CAMPAIGN_PERFORMANCE["no_data_score"]

    metrics = campaign.metrics
    score = CAMPAIGN_PERFORMANCE["base"]

    ctr = metrics.click_through_rate or 0
    for key in ("ctr_high", "ctr_medium"):
        threshold, bonus = CAMPAIGN_PERFORMANCE[key]
        if ctr > threshold:
            score += bonus
            break

    conversion = metrics.conversion_rate or 0
    for key in ("conversion_high", "conversion_medium"):
        threshold, bonus = CAMPAIGN_PERFORMANCE[key]
        if conversion > threshold:
            score += bonus
            break

    cost = metrics.cost_per_conversion
    if cost is not None and cost < CAMPAIGN_PERFORMANCE["low_cost_threshold"]:
        score += CAMPAIGN_PERFORMANCE["low_cost_bonus"]

    return min(100, score)


def source_quality_score(source) -> int:
    if source is None:
        return SOURCE_QUALITY_DEFAULT
    key = getattr(source, "value", source)
    return SOURCE_QUALITY_SCORES.get(key, SOURCE_QUALITY_DEFAULT)


FACTOR_RULES: Dict[str, FactorRule] = {
    "formCompleteness": form_completeness,
    "emailQuality": lambda lead, campaign: email_quality(lead.email),
    "phoneProvided": phone_provided,
    "companyProvided": company_provided,
    "pageViews": lambda lead, campaign: page_view_score(lead.engagement.page_views),
    "timeOnSite": lambda lead, campaign: time_on_site_score(lead.engagement.time_on_site),
    "bounceRate": lambda lead, campaign: bounce_rate_score(lead.engagement.bounce_rate),
    "emailOpens": lambda lead, campaign: email_engagement_score(lead, InteractionType.EMAIL_OPEN),
    "emailClicks": lambda lead, campaign: email_engagement_score(lead, InteractionType.EMAIL_CLICK),
    "campaignPerformance": lambda lead, campaign: campaign_performance_score(campaign),
    "sourceQuality": lambda lead, campaign: source_quality_score(lead.source),
}


# =============================================================================
# Stage
# =============================================================================

class FactorComputationStage:
    """
    Stage 1: Resolve the active factor set and compute each factor value.
    """

    def __init__(
        self,
        catalog: Optional[Mapping[str, Mapping[str, object]]] = None,
        rules: Optional[Mapping[str, FactorRule]] = None,
    ):
        self.catalog = catalog if catalog is not None else DEFAULT_FACTORS
        self.rules = rules if rules is not None else FACTOR_RULES

    def resolve(self, factor_config: Optional[FactorConfig] = None) -> List[Tuple[str, float, str]]:
        """
        Merge per-call overrides onto the catalog.

        Returns:
            (name, weight, description) for every enabled factor with a
            positive weight, in catalog order

        Raises:
            ConfigurationError: unknown factor name or invalid weight
        """
        overrides = self._parse_overrides(factor_config or {})

        active = []
        for name, spec in self.catalog.items():
            weight = float(spec["weight"])
            override = overrides.get(name)
            if override is not None:
                if not override.enabled:
                    continue
                if override.weight is not None:
                    weight = override.weight
            if weight > 0:
                active.append((name, weight, str(spec["description"])))
        return active

    def process(
        self,
        lead: LeadSnapshot,
        campaign: Optional[CampaignSnapshot] = None,
        factor_config: Optional[FactorConfig] = None,
    ) -> List[ScoringFactor]:
        """
        Compute the enabled factors for a lead.

        Raises:
            ConfigurationError: malformed factor_config (before any factor runs)
            InternalScoringError: a factor rule failed on its input
        """
        active = self.resolve(factor_config)

        factors = []
        for name, weight, description in active:
            rule = self.rules.get(name)
            if rule is None:
                raise InternalScoringError("no rule registered", factor=name)
            try:
                value = float(rule(lead, campaign))
            except Exception as e:
                logger.exception(f"Error computing factor {name}")
                raise InternalScoringError(str(e), factor=name) from e

            factors.append(
                ScoringFactor(
                    name=name,
                    value=max(0.0, min(100.0, value)),
                    weight=weight,
                    description=description,
                )
            )
        return factors

    def _parse_overrides(self, factor_config: FactorConfig) -> Dict[str, FactorOverride]:
        overrides = {}
        for name, raw in factor_config.items():
            if name not in self.catalog:
                raise ConfigurationError(f"Unknown scoring factor: {name}")

            if isinstance(raw, FactorOverride):
                override = raw
            else:
                try:
                    override = FactorOverride.model_validate(raw)
                except ValidationError as e:
                    raise ConfigurationError(f"Invalid override for factor {name}: {e}") from e

            weight = override.weight
            if weight is not None:
                if math.isnan(weight) or weight < 0:
                    raise ConfigurationError(f"Factor weight must not be negative: {name}={weight}")
                if weight > 1:
                    raise ConfigurationError(f"Factor weight must not exceed 1: {name}={weight}")
            overrides[name] = override
        return overrides
