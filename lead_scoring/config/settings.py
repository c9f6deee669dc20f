"""
Configuration settings for the Lead Scoring Engine
"""

from typing import Dict, List, Tuple
import os

from dotenv import load_dotenv

load_dotenv()

# =============================================================================
# SERVICE CONFIGURATION
# =============================================================================

API_CONFIG = {
    "host": os.getenv("LEAD_SCORING_HOST", "0.0.0.0"),
    "port": int(os.getenv("LEAD_SCORING_PORT", "8000")),
    "cors_origins": os.getenv("LEAD_SCORING_CORS_ORIGINS", "*").split(","),
    "recalc_max_workers": int(os.getenv("RECALC_MAX_WORKERS", "4")),
}

LOGGING_CONFIG = {
    "level": os.getenv("LOG_LEVEL", "INFO").upper(),
    "format": os.getenv("LOG_FORMAT", "text").lower(),  # text, json
}

# =============================================================================
# FACTOR CATALOG
# =============================================================================
# Ordered: explanation and recommendation output follows this order.

DEFAULT_FACTORS: Dict[str, Dict[str, object]] = {
    # Form completion
    "formCompleteness": {"weight": 0.15, "description": "Form completion percentage"},
    "emailQuality": {"weight": 0.10, "description": "Email domain quality and validity"},
    "phoneProvided": {"weight": 0.08, "description": "Phone number provided"},
    "companyProvided": {"weight": 0.07, "description": "Company information provided"},
    # Engagement
    "pageViews": {"weight": 0.12, "description": "Number of page views"},
    "timeOnSite": {"weight": 0.10, "description": "Time spent on website"},
    "bounceRate": {"weight": 0.08, "description": "Bounce rate (lower is better)"},
    "emailOpens": {"weight": 0.10, "description": "Email open rate"},
    "emailClicks": {"weight": 0.08, "description": "Email click rate"},
    # Campaign
    "campaignPerformance": {"weight": 0.12, "description": "Campaign performance metrics"},
    "sourceQuality": {"weight": 0.10, "description": "Lead source quality"},
}

FACTOR_TYPES = {
    "formCompleteness": "percentage",
    "emailQuality": "score",
    "phoneProvided": "boolean",
    "companyProvided": "boolean",
    "pageViews": "count",
    "timeOnSite": "duration",
    "bounceRate": "percentage",
    "emailOpens": "count",
    "emailClicks": "count",
    "campaignPerformance": "score",
    "sourceQuality": "score",
}

# =============================================================================
# FACTOR RULE TABLES
# =============================================================================

FORM_FIELDS = ["first_name", "last_name", "email", "phone", "company", "job_title"]

# (threshold, score) pairs, checked top-down with >=
PAGE_VIEW_STEPS: List[Tuple[float, int]] = [(10, 100), (5, 80), (3, 60), (2, 40), (1, 20)]
TIME_ON_SITE_MINUTE_STEPS: List[Tuple[float, int]] = [(10, 100), (5, 80), (3, 60), (1, 40)]
TIME_ON_SITE_FLOOR = 20
EMAIL_ENGAGEMENT_STEPS: List[Tuple[float, int]] = [(5, 100), (3, 80), (2, 60), (1, 40)]

# (upper bound, score) pairs, checked top-down with <=
BOUNCE_RATE_STEPS: List[Tuple[float, int]] = [(0.2, 100), (0.4, 80), (0.6, 60), (0.8, 40)]
BOUNCE_RATE_CEILING_SCORE = 20
BOUNCE_RATE_UNKNOWN_SCORE = 50

WEBMAIL_DOMAINS = ["gmail.com", "yahoo.com", "hotmail.com", "outlook.com"]
DISPOSABLE_EMAIL_DOMAINS = ["10minutemail.com", "tempmail.org", "guerrillamail.com"]

EMAIL_QUALITY = {
    "base": 50,
    "business_bonus": 30,
    "disposable_penalty": 40,
    "invalid_format_penalty": 20,
}

CAMPAIGN_PERFORMANCE = {
    "base": 50,
    "no_data_score": 50,
    "ctr_high": (0.05, 20),
    "ctr_medium": (0.02, 10),
    "conversion_high": (0.10, 20),
    "conversion_medium": (0.05, 10),
    "low_cost_threshold": 50,
    "low_cost_bonus": 10,
}

SOURCE_QUALITY_SCORES = {
    "facebook": 85,
    "instagram": 80,
    "google": 90,
    "manual": 70,
    "other": 50,
}
SOURCE_QUALITY_DEFAULT = 50

# =============================================================================
# RECOMMENDATIONS
# =============================================================================

RECOMMENDATION_THRESHOLD = 50

RECOMMENDATIONS = {
    "formCompleteness": "Encourage users to complete more form fields",
    "emailQuality": "Verify email address quality and validity",
    "phoneProvided": "Request phone number to improve lead quality",
    "companyProvided": "Ask for company information",
    "pageViews": "Improve content to increase page engagement",
    "timeOnSite": "Create more engaging content to increase time on site",
    "bounceRate": "Improve landing page relevance and user experience",
}

# =============================================================================
# CAMPAIGN CONFIGURATION & LEAD LIFECYCLE
# =============================================================================

CAMPAIGN_WEIGHT_SUM_TOLERANCE = 0.01

# Updating any of these on a lead triggers a rescore
SCORE_AFFECTING_FIELDS = [
    "first_name",
    "last_name",
    "email",
    "phone",
    "company",
    "job_title",
    "form_data",
]

# Entries kept per lead; older scores are dropped first
SCORE_HISTORY_LIMIT = int(os.getenv("SCORE_HISTORY_LIMIT", "100"))

# =============================================================================
# ANALYTICS
# =============================================================================

QUALITY_BANDS = {
    "high": 80,
    "medium": 50,
}

SCORE_RANGES = [
    ("0-20", 0, 20),
    ("21-40", 21, 40),
    ("41-60", 41, 60),
    ("61-80", 61, 80),
    ("81-100", 81, 100),
]

TOP_FACTORS_LIMIT = 10
