"""
Lead Scoring Engine
===================
Deterministic 0-100 lead quality scoring in three stages:
  Stage 1: Factor Computation (eleven weighted catalog factors)
  Stage 2: Aggregation (weighted average + confidence)
  Stage 3: Explanation (factor impact + recommendations)
"""

__version__ = "1.0.0"
__author__ = "Lead Scoring Team"
