"""
Stage 2: Aggregation
====================
Folds the computed factors into the final score and a confidence value.

Confidence is a data-completeness proxy: the fraction of factors with a
nonzero value, multiplied by the total active weight (out of 1.0). It is
not a probability that the score is correct.
"""

from typing import List, Tuple

from ..models.schemas import ScoringFactor
from .factors import round_half_up


class AggregationStage:
    """
    Stage 2: Weighted average and confidence.
    """

    def process(self, factors: List[ScoringFactor]) -> Tuple[int, float]:
        """
        Returns:
            (score, confidence) for the given factors
        """
        return self.calculate_score(factors), self.calculate_confidence(factors)

    def calculate_score(self, factors: List[ScoringFactor]) -> int:
        total_weight = sum(f.weight for f in factors)
        weighted_sum = sum(f.value * f.weight for f in factors)

        if total_weight <= 0:
            return 0
        return max(0, min(100, round_half_up(weighted_sum / total_weight)))

    def calculate_confidence(self, factors: List[ScoringFactor]) -> float:
        if not factors:
            return 0.0

        total_weight = sum(f.weight for f in factors)
        data_points = sum(1 for f in factors if f.value > 0)
        confidence = (data_points / len(factors)) * (total_weight / 1.0)

        return min(1.0, max(0.0, confidence))
