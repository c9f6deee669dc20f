from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from lead_scoring.api import endpoints
from lead_scoring.engine import LeadScoringEngine
from lead_scoring.models.schemas import CampaignSnapshot, LeadSnapshot
from lead_scoring.service import LeadScoringService

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0)


def fixed_clock():
    return FIXED_NOW


def full_lead(**overrides):
    """The high-engagement lead used across the end-to-end tests"""
    data = {
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "jane@acme.io",
        "phone": "555-0100",
        "company": "Acme",
        "job_title": "CTO",
        "source": "google",
        "engagement": {
            "page_views": 12,
            "time_on_site": 700,
            "bounce_rate": 0.1,
            "interactions": [{"type": "email_open"}] * 6 + [{"type": "email_click"}] * 4,
        },
    }
    data.update(overrides)
    return LeadSnapshot(**data)


def strong_campaign():
    return CampaignSnapshot(
        name="Spring Search",
        metrics={
            "click_through_rate": 0.06,
            "conversion_rate": 0.12,
            "cost_per_conversion": 30,
        },
    )


@pytest.fixture
def engine():
    return LeadScoringEngine(clock=fixed_clock)


@pytest.fixture
def client(monkeypatch):
    """Test client backed by a fresh service and the fixed clock"""
    monkeypatch.setattr(
        endpoints, "service", LeadScoringService(engine=LeadScoringEngine(clock=fixed_clock))
    )
    return TestClient(endpoints.app)
