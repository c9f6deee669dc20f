"""
Scoring Configuration Models
"""

from typing import List, Dict, Optional, Any
from pydantic import BaseModel, Field
from datetime import datetime

from ..config.settings import DEFAULT_FACTORS, CAMPAIGN_WEIGHT_SUM_TOLERANCE
from ..exceptions import ConfigurationError
from .schemas import FactorOverride, UpdateFrequency


class CampaignFactor(BaseModel):
    """A factor entry in a campaign's scoring configuration"""
    name: str
    weight: float
    enabled: bool = True
    description: Optional[str] = None


class CampaignScoringConfig(BaseModel):
    """Per-campaign scoring configuration"""
    enabled: bool = True
    factors: List[CampaignFactor] = Field(default_factory=list)
    auto_update: bool = True
    update_frequency: UpdateFrequency = UpdateFrequency.HOURLY
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def validate_weights(self) -> "CampaignScoringConfig":
        """
        Check factor names and weights before the config is accepted.

        Raises:
            ConfigurationError: unknown factor, weight outside [0, 1], or
                weights not summing to 1.0 within tolerance
        """
        for factor in self.factors:
            if factor.name not in DEFAULT_FACTORS:
                raise ConfigurationError(f"Unknown scoring factor: {factor.name}")
            if not 0 <= factor.weight <= 1:
                raise ConfigurationError(
                    f"Factor weight must be between 0 and 1: {factor.name}={factor.weight}"
                )

        total_weight = sum(f.weight for f in self.factors)
        if abs(total_weight - 1) > CAMPAIGN_WEIGHT_SUM_TOLERANCE:
            raise ConfigurationError(
                f"Factor weights must sum to 1.0 (got {total_weight:.2f})"
            )
        return self

    def to_factor_overrides(self) -> Dict[str, FactorOverride]:
        """Convert to the per-call override mapping the engine accepts"""
        return {
            f.name: FactorOverride(weight=f.weight, enabled=f.enabled)
            for f in self.factors
        }

    def update(self, **kwargs: Any) -> "CampaignScoringConfig":
        """Update configuration and set updated_at"""
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        self.updated_at = datetime.utcnow()
        return self


def create_default_scoring_config() -> CampaignScoringConfig:
    """
    Factory function to create a campaign config mirroring the catalog.

    Catalog weights sum to 1.10, so the factors are rescaled to satisfy the
    campaign-level sum check.
    """
    total = sum(spec["weight"] for spec in DEFAULT_FACTORS.values())
    return CampaignScoringConfig(
        factors=[
            CampaignFactor(
                name=name,
                weight=round(spec["weight"] / total, 4),
                description=spec["description"],
            )
            for name, spec in DEFAULT_FACTORS.items()
        ]
    )
