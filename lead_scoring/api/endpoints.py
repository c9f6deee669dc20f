"""
FastAPI Endpoints for the Lead Scoring Engine
=============================================
RESTful API for lead quality scoring.

Base URL: http://localhost:8000

Endpoints:
- GET  /                                  - API info
- GET  /api/health                        - Health check
- POST /api/scoring/score                 - Score an ad-hoc lead
- POST /api/scoring/score/batch           - Score several ad-hoc leads
- POST /api/scoring/explain               - Score and explain an ad-hoc lead
- GET  /api/scoring/config                - Factor catalog
- GET  /api/scoring/config/{campaign_id}  - Campaign scoring config
- PUT  /api/scoring/config/{campaign_id}  - Update campaign scoring config
- POST /api/scoring/recalculate           - Rescore stored leads
- GET  /api/scoring/analytics             - Score analytics
- GET  /api/scoring/history/{lead_id}     - Lead score history
- POST /api/campaigns                     - Register a campaign
- GET  /api/campaigns/{campaign_id}       - Get a campaign
- POST /api/leads                         - Create (and score) a lead
- GET  /api/leads/{lead_id}               - Get a lead
- PATCH /api/leads/{lead_id}              - Update a lead
- POST /api/leads/{lead_id}/interactions  - Record an interaction
- GET  /api/leads/{lead_id}/scoring       - Explain a lead's score
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config.settings import API_CONFIG, DEFAULT_FACTORS, FACTOR_TYPES
from ..exceptions import ConfigurationError, InternalScoringError, NotFoundError
from ..logging_setup import configure_logging
from ..models.schemas import (
    BatchScoreRequest,
    CampaignCreate,
    InteractionCreate,
    LeadCreate,
    LeadUpdate,
    RecalculateRequest,
    RecalculateResult,
    ScoreRequest,
    ScoringAnalytics,
    ScoringExplanation,
    ScoringResult,
)
from ..models.scoring_config import CampaignScoringConfig
from ..service import LeadScoringService

configure_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# FastAPI App Initialization
# =============================================================================

app = FastAPI(
    title="Lead Scoring Engine API",
    description="""
## Lead Quality Scoring

Scores leads 0-100 from profile completeness, engagement and campaign
performance, with a confidence value and improvement recommendations.

### Quick Start:
1. Use `/api/scoring/score` to score a lead without storing it
2. Use `/api/leads` to store a lead; it is scored on creation and rescored
   on updates and interactions
3. Use `/api/scoring/config/{campaign_id}` to set per-campaign weights
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=API_CONFIG["cors_origins"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Service Initialization
# =============================================================================

# In-memory store behind the service (replace with database in production)
service = LeadScoringService()


# =============================================================================
# Health & Info Endpoints
# =============================================================================

@app.get("/", tags=["Info"])
async def root():
    """API information and available endpoints"""
    return {
        "service": "Lead Scoring Engine",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
        "endpoints": {
            "Score": "POST /api/scoring/score",
            "Explain": "POST /api/scoring/explain",
            "Config": "GET /api/scoring/config",
            "Leads": "POST /api/leads",
            "Health": "GET /api/health",
        },
    }


@app.get("/api/health", tags=["Info"])
async def health_check():
    """Health check endpoint for monitoring"""
    return {
        "status": "healthy",
        "service": "Lead Scoring Engine",
        "version": "1.0.0",
        "timestamp": datetime.utcnow().isoformat(),
        "factors": len(service.engine.catalog),
    }


# =============================================================================
# Scoring Endpoints
# =============================================================================

@app.post("/api/scoring/score", response_model=ScoringResult, tags=["Scoring"])
async def score_lead(request: ScoreRequest):
    """
    Score a lead without storing it.

    Pass `factor_config` to override weights or disable factors for this
    call only.
    """
    return service.engine.compute_score(request.lead, request.campaign, request.factor_config)


@app.post("/api/scoring/score/batch", tags=["Scoring"])
async def score_batch(request: BatchScoreRequest):
    """
    Score several leads from the same campaign at once.

    - Parallel scoring
    - Results keep the request order
    """
    results = service.engine.score_batch(
        [(lead, request.campaign) for lead in request.leads],
        factor_config=request.factor_config,
    )
    return {
        "total_processed": len(results),
        "results": [
            {"score": r.score, "confidence": r.confidence, "timestamp": r.timestamp}
            for r in results
        ],
    }


@app.post("/api/scoring/explain", response_model=ScoringExplanation, tags=["Scoring"])
async def explain_lead(request: ScoreRequest):
    """Score a lead and explain every factor's impact"""
    result = service.engine.compute_score(request.lead, request.campaign, request.factor_config)
    return service.engine.explain(request.lead, result)


@app.post("/api/scoring/recalculate", response_model=RecalculateResult, tags=["Scoring"])
async def recalculate_scores(
    request: RecalculateRequest,
    owner: Optional[str] = Query(None, description="Restrict to one owner's leads"),
):
    """Rescore stored leads by id list, campaign, or all leads"""
    try:
        return service.recalculate(request, owner=owner)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/scoring/analytics", response_model=ScoringAnalytics, tags=["Scoring"])
async def scoring_analytics(
    campaign_id: Optional[str] = Query(None),
    owner: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
):
    """Score summary, distribution by range, and top factors"""
    return service.scoring_analytics(
        campaign_id=campaign_id,
        owner=owner,
        date_from=date_from,
        date_to=date_to,
    )


@app.get("/api/scoring/history/{lead_id}", tags=["Scoring"])
async def score_history(lead_id: str):
    """Current/previous score and the deduplicated score history of a lead"""
    return service.score_history(lead_id)


# =============================================================================
# Configuration Endpoints
# =============================================================================

@app.get("/api/scoring/config", tags=["Configuration"])
async def get_scoring_config():
    """Default factor catalog"""
    return {
        "default_factors": service.engine.get_catalog(),
        "available_factors": [
            {
                "name": name,
                "description": spec["description"],
                "weight": spec["weight"],
                "type": FACTOR_TYPES.get(name, "score"),
            }
            for name, spec in DEFAULT_FACTORS.items()
        ],
    }


@app.get("/api/scoring/config/{campaign_id}", response_model=CampaignScoringConfig, tags=["Configuration"])
async def get_campaign_config(campaign_id: str):
    """Scoring configuration of a campaign"""
    return service.get_scoring_config(campaign_id)


@app.put("/api/scoring/config/{campaign_id}", tags=["Configuration"])
async def update_campaign_config(campaign_id: str, config: CampaignScoringConfig):
    """
    Replace a campaign's factor weights.

    Weights must each be within [0, 1] and sum to 1.0 (±0.01).
    """
    config = service.update_scoring_config(campaign_id, config)
    return {
        "status": "updated",
        "message": "Scoring configuration updated successfully",
        "config": config,
    }


# =============================================================================
# Campaign & Lead Endpoints
# =============================================================================

@app.post("/api/campaigns", status_code=201, tags=["Campaigns"])
async def create_campaign(request: CampaignCreate):
    return service.create_campaign(request)


@app.get("/api/campaigns/{campaign_id}", tags=["Campaigns"])
async def get_campaign(campaign_id: str):
    return service.store.get_campaign(campaign_id)


@app.post("/api/leads", status_code=201, tags=["Leads"])
async def create_lead(request: LeadCreate):
    """Store a lead and compute its initial score"""
    return service.create_lead(request)


@app.get("/api/leads/{lead_id}", tags=["Leads"])
async def get_lead(lead_id: str):
    return service.store.get_lead(lead_id)


@app.patch("/api/leads/{lead_id}", tags=["Leads"])
async def update_lead(lead_id: str, request: LeadUpdate):
    """Update a lead; contact fields and form data trigger a rescore"""
    lead, rescored = service.update_lead(lead_id, request)
    return {"lead": lead, "rescored": rescored}


@app.post("/api/leads/{lead_id}/interactions", tags=["Leads"])
async def add_interaction(lead_id: str, request: InteractionCreate):
    """Record an engagement event and rescore the lead"""
    return service.record_interaction(lead_id, request)


@app.get("/api/leads/{lead_id}/scoring", response_model=ScoringExplanation, tags=["Leads"])
async def lead_scoring_explanation(lead_id: str):
    return service.explain_lead(lead_id)


# =============================================================================
# Error Handlers
# =============================================================================

@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request, exc):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid scoring configuration", "detail": str(exc), "type": type(exc).__name__},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request, exc):
    return JSONResponse(
        status_code=404,
        content={"error": "Not found", "detail": str(exc), "type": type(exc).__name__},
    )


@app.exception_handler(InternalScoringError)
async def internal_scoring_error_handler(request, exc):
    logger.error(f"Scoring failed for {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Scoring failed", "detail": str(exc), "type": type(exc).__name__},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc),
            "type": type(exc).__name__,
        }
    )
