"""
Exceptions raised by the Lead Scoring Engine
"""

from typing import Optional


class ScoringError(Exception):
    """Base class for scoring errors"""


class ConfigurationError(ScoringError, ValueError):
    """Factor or campaign scoring configuration is malformed"""


class InternalScoringError(ScoringError, RuntimeError):
    """Scoring failed on an unexpected input shape or a broken factor rule"""

    def __init__(self, message: str, factor: Optional[str] = None):
        self.factor = factor
        if factor:
            message = f"Factor '{factor}' failed: {message}"
        super().__init__(message)


class NotFoundError(ScoringError, LookupError):
    """A lead or campaign does not exist in the store"""
