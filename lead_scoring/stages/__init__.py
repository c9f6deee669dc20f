# Scoring stages module
from .factors import FactorComputationStage
from .aggregation import AggregationStage
from .explanation import ExplanationStage
