"""
Lead Scoring Engine - Main Orchestrator
=======================================
Runs the three scoring stages:
  Stage 1: Factor Computation → Stage 2: Aggregation →
  Stage 3: Explanation (on demand)

The engine keeps no state between calls. The same lead, campaign and factor
config always give the same score and confidence; only the timestamp moves.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from datetime import datetime
from concurrent.futures import ThreadPoolExecutor

from pydantic import ValidationError

from .config.settings import DEFAULT_FACTORS, API_CONFIG
from .exceptions import InternalScoringError
from .models.schemas import (
    CampaignSnapshot,
    LeadSnapshot,
    ScoringExplanation,
    ScoringResult,
)
from .stages.factors import FactorComputationStage, FactorConfig
from .stages.aggregation import AggregationStage
from .stages.explanation import ExplanationStage

logger = logging.getLogger(__name__)

LeadInput = Union[LeadSnapshot, Mapping[str, Any]]
CampaignInput = Union[CampaignSnapshot, Mapping[str, Any], None]


class LeadScoringEngine:
    """
    Main Lead Scoring Engine that orchestrates the scoring stages.
    """

    def __init__(
        self,
        catalog: Optional[Mapping[str, Mapping[str, object]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the scoring engine.

        Args:
            catalog: Factor catalog (uses the default eleven factors if not provided)
            clock: Source of result timestamps (defaults to utcnow)
        """
        self.catalog = catalog if catalog is not None else DEFAULT_FACTORS
        self.clock = clock or datetime.utcnow

        # Initialize stages
        self.factor_stage = FactorComputationStage(self.catalog)
        self.aggregation_stage = AggregationStage()
        self.explanation_stage = ExplanationStage()

    def compute_score(
        self,
        lead: LeadInput,
        campaign: CampaignInput = None,
        factor_config: Optional[FactorConfig] = None,
    ) -> ScoringResult:
        """
        Score a single lead.

        Args:
            lead: Lead snapshot (or a dict in the same shape)
            campaign: Parent campaign snapshot, if any
            factor_config: Per-factor {weight, enabled} overrides

        Returns:
            A fresh, immutable ScoringResult

        Raises:
            ConfigurationError: factor_config is malformed
            InternalScoringError: the inputs have an unexpected shape or a
                factor rule failed
        """
        lead = _as_model(LeadSnapshot, lead, "lead")
        campaign = _as_model(CampaignSnapshot, campaign, "campaign") if campaign is not None else None

        # =====================================================================
        # STAGE 1: Factor Computation
        # =====================================================================
        factors = self.factor_stage.process(lead, campaign, factor_config)

        # =====================================================================
        # STAGE 2: Aggregation
        # =====================================================================
        score, confidence = self.aggregation_stage.process(factors)

        logger.debug(
            f"Scored lead {lead.email or '<no email>'}: {score} "
            f"(confidence {confidence:.2f}, {len(factors)} factors)"
        )

        return ScoringResult(
            score=score,
            factors=factors,
            confidence=confidence,
            timestamp=self.clock(),
        )

    def explain(
        self,
        lead: Optional[LeadInput],
        result: ScoringResult,
    ) -> ScoringExplanation:
        """
        Explain a scoring result (Stage 3).

        Args:
            lead: The lead that was scored
            result: Result from compute_score

        Returns:
            ScoringExplanation with per-factor impact and recommendations
        """
        if lead is not None:
            lead = _as_model(LeadSnapshot, lead, "lead")
        return self.explanation_stage.process(lead, result)

    def score_batch(
        self,
        items: Iterable[Tuple[LeadInput, CampaignInput]],
        factor_config: Optional[FactorConfig] = None,
        max_workers: Optional[int] = None,
    ) -> List[ScoringResult]:
        """
        Score many leads in parallel.

        Results come back in input order. The first failure is raised.
        """
        items = list(items)
        workers = max_workers or API_CONFIG["recalc_max_workers"]

        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(
                executor.map(
                    lambda item: self.compute_score(item[0], item[1], factor_config),
                    items,
                )
            )

    def get_catalog(self) -> Dict[str, Dict[str, object]]:
        """Copy of the factor catalog in use"""
        return {name: dict(spec) for name, spec in self.catalog.items()}


# =============================================================================
# Helpers
# =============================================================================

def _as_model(model_cls, value, label: str):
    if isinstance(value, model_cls):
        return value
    try:
        return model_cls.model_validate(value)
    except ValidationError as e:
        raise InternalScoringError(f"Malformed {label} snapshot: {e}") from e


# =============================================================================
# Convenience Functions
# =============================================================================

_default_engine = LeadScoringEngine()


def compute_score(
    lead: LeadInput,
    campaign: CampaignInput = None,
    factor_config: Optional[FactorConfig] = None,
) -> ScoringResult:
    """
    Score a lead with the default catalog.

    Args:
        lead: Lead snapshot or dictionary with lead information
        campaign: Campaign snapshot or dictionary, if any
        factor_config: Per-factor overrides

    Returns:
        ScoringResult
    """
    return _default_engine.compute_score(lead, campaign, factor_config)


def explain(lead: Optional[LeadInput], result: ScoringResult) -> ScoringExplanation:
    """Explain a result produced by compute_score"""
    return _default_engine.explain(lead, result)
