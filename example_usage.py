"""
Lead Scoring Engine - Usage Examples
====================================
This file demonstrates how to use the Lead Scoring Engine
both programmatically and via the API.
"""

# =============================================================================
# EXAMPLE 1: Direct Engine Usage (Programmatic)
# =============================================================================

def example_direct_usage():
    """Use the engine directly in Python code"""
    from lead_scoring.engine import LeadScoringEngine
    from lead_scoring.models.schemas import LeadSnapshot, CampaignSnapshot

    engine = LeadScoringEngine()

    lead = LeadSnapshot(
        first_name="Jane",
        last_name="Doe",
        email="jane@acme.io",
        phone="555-0100",
        company="Acme",
        job_title="CTO",
        source="google",
        engagement={
            "page_views": 12,
            "time_on_site": 700,
            "bounce_rate": 0.1,
            "interactions": [{"type": "email_open"}] * 6 + [{"type": "email_click"}] * 4,
        },
    )
    campaign = CampaignSnapshot(
        name="Spring Search",
        metrics={
            "click_through_rate": 0.06,
            "conversion_rate": 0.12,
            "cost_per_conversion": 30,
        },
    )

    print("=" * 60)
    print("SCORING LEAD: jane@acme.io")
    print("=" * 60)

    result = engine.compute_score(lead, campaign)

    print(f"\nScore: {result.score}/100")
    print(f"Confidence: {result.confidence:.2f}")

    print("\n--- Factors ---")
    for factor in result.factors:
        print(f"  {factor.name:<20} {factor.value:>5.0f}  (weight {factor.weight:.2f})")

    explanation = engine.explain(lead, result)
    print("\n--- Recommendations ---")
    for rec in explanation.recommendations or ["None"]:
        print(f"  - {rec}")

    return result


# =============================================================================
# EXAMPLE 2: Sparse Lead & Recommendations
# =============================================================================

def example_sparse_lead():
    """A lead with little data scores low and gets suggestions"""
    from lead_scoring.engine import compute_score, explain

    lead = {"first_name": "Sam", "email": "sam@gmail.com", "source": "facebook"}
    result = compute_score(lead)
    explanation = explain(lead, result)

    print("=" * 60)
    print("SPARSE LEAD: sam@gmail.com")
    print("=" * 60)
    print(f"\nScore: {explanation.total_score}/100 (confidence {explanation.confidence:.2f})")
    for f in explanation.factors:
        print(f"  {f.name:<20} score {f.score:>5.0f}  impact {f.impact}")
    print("\n--- Recommendations ---")
    for rec in explanation.recommendations:
        print(f"  - {rec}")

    return explanation


# =============================================================================
# EXAMPLE 3: Custom Factor Weights
# =============================================================================

def example_custom_config():
    """Override factor weights for a single call and for a campaign"""
    from lead_scoring.engine import LeadScoringEngine
    from lead_scoring.models.schemas import LeadSnapshot
    from lead_scoring.models.scoring_config import CampaignScoringConfig, CampaignFactor

    engine = LeadScoringEngine()
    lead = LeadSnapshot(first_name="Ana", last_name="Ruiz", email="ana@ruiz.dev", source="instagram")

    # Engagement-blind scoring: disable the engagement factors
    factor_config = {
        "pageViews": {"enabled": False},
        "timeOnSite": {"enabled": False},
        "bounceRate": {"enabled": False},
        "emailOpens": {"enabled": False},
        "emailClicks": {"enabled": False},
    }
    result = engine.compute_score(lead, factor_config=factor_config)

    print("=" * 60)
    print("CUSTOM FACTOR CONFIGURATION")
    print("=" * 60)
    print(f"Active factors: {[f.name for f in result.factors]}")
    print(f"Score: {result.score}/100")

    # Campaign-level config must sum to 1.0 before it is accepted
    campaign_config = CampaignScoringConfig(
        factors=[
            CampaignFactor(name="formCompleteness", weight=0.4),
            CampaignFactor(name="emailQuality", weight=0.3),
            CampaignFactor(name="sourceQuality", weight=0.3),
        ]
    ).validate_weights()
    print(f"Campaign overrides: {campaign_config.to_factor_overrides()}")

    return result


# =============================================================================
# EXAMPLE 4: API Usage
# =============================================================================

def example_api_usage():
    """Use the API via HTTP requests"""
    BASE_URL = "http://localhost:8000"

    print("=" * 60)
    print("API USAGE EXAMPLE")
    print("=" * 60)
    print("Make sure the server is running: python main.py")
    print()

    payload = {
        "lead": {
            "first_name": "Jane",
            "last_name": "Doe",
            "email": "jane@acme.io",
            "source": "google",
            "engagement": {"page_views": 4, "time_on_site": 240},
        },
        "campaign": {"metrics": {"click_through_rate": 0.03}},
    }

    print("Request payload:")
    print(f"  POST {BASE_URL}/api/scoring/score")
    print(f"  {payload}")


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("LEAD SCORING ENGINE - USAGE EXAMPLES")
    print("=" * 60 + "\n")

    print("\n[Example 1: Direct Usage]")
    example_direct_usage()

    print("\n" + "-" * 60)
    print("\n[Example 2: Sparse Lead]")
    example_sparse_lead()

    print("\n" + "-" * 60)
    print("\n[Example 3: Custom Configuration]")
    example_custom_config()

    print("\n" + "-" * 60)
    print("\n[Example 4: API Usage]")
    example_api_usage()

    print("\n" + "=" * 60)
    print("EXAMPLES COMPLETE")
    print("=" * 60)
