"""
Stage 3: Explanation
====================
Turns a scoring result into a per-factor breakdown and a list of
improvement suggestions for weak factors.
"""

from typing import List, Mapping, Optional

from ..config.settings import RECOMMENDATIONS, RECOMMENDATION_THRESHOLD
from ..models.schemas import (
    FactorExplanation,
    LeadSnapshot,
    ScoringExplanation,
    ScoringFactor,
    ScoringResult,
)
from .factors import round_half_up


class ExplanationStage:
    """
    Stage 3: Build a human-readable explanation of a score.
    """

    def __init__(self, recommendations: Optional[Mapping[str, str]] = None):
        self.recommendations = recommendations if recommendations is not None else RECOMMENDATIONS

    def process(self, lead: Optional[LeadSnapshot], result: ScoringResult) -> ScoringExplanation:
        """
        Explain a scoring result.

        Args:
            lead: The lead that was scored (kept for callers that tailor the
                explanation; the default explanation only reads the result)
            result: Result returned by the engine

        Returns:
            ScoringExplanation with factor impacts and recommendations
        """
        return ScoringExplanation(
            total_score=result.score,
            confidence=result.confidence,
            factors=[
                FactorExplanation(
                    name=f.name,
                    score=f.value,
                    weight=f.weight,
                    description=f.description,
                    impact=round_half_up(f.value * f.weight),
                )
                for f in result.factors
            ],
            recommendations=self.get_recommendations(result.factors),
        )

    def get_recommendations(self, factors: List[ScoringFactor]) -> List[str]:
        """Suggestions for factors below the threshold, in factor order"""
        recommendations = []
        for factor in factors:
            if factor.value < RECOMMENDATION_THRESHOLD:
                suggestion = self.recommendations.get(factor.name)
                if suggestion:
                    recommendations.append(suggestion)
        return recommendations
