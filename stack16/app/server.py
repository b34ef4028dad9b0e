"""
Stack16 - FastAPI Backend

Questionnaire scoring, asset allocation, ETF model portfolios, the ETF
catalog and the portfolio chat assistant behind one JSON API.

There is no authentication layer: the caller is whoever the X-User-Id
header says (DEFAULT_USER_ID when absent).
"""

import json
import logging
from typing import Any, List, Literal, Optional

from fastapi import Depends, FastAPI, Header, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field, field_validator

from stack16.app.errors import (
    ForbiddenError, NotFoundError, ServiceUnavailableError, ValidationError,
    register_error_handlers,
)
from stack16.config.etf_catalog import (
    RISK_LEVELS, compare_etfs, filter_etfs, get_etf, map_score_to_risk_level,
    search_etfs,
)
from stack16.config.settings import (
    APP_NAME, APP_VERSION, CORS_ORIGINS, DEFAULT_CASH_PREFERENCE,
    DEFAULT_USER_ID, LOG_FORMAT, LOG_LEVEL, MAX_COMPARE_ETFS,
    MIN_COMPARE_ETFS, USER_ID_HEADER,
)
from stack16.llm.advisor import AdvisorUnavailableError, PortfolioAdvisor, build_portfolio_context
from stack16.portfolio.generator import default_portfolio, generate_portfolio
from stack16.portfolio.optimizer import optimize_etf_portfolio
from stack16.portfolio.presentation import allocation_view, humanize_profile
from stack16.scoring.allocation import ProfileInput, calculate_allocation
from stack16.scoring.analytics import analyse_allocation
from stack16.scoring.mapping import (
    adjust_params_for_edge_cases, map_scores_to_params, profile_input_from_scores,
)
from stack16.scoring.questionnaire import (
    QuestionnaireError, compute_investor_profile, validate_questionnaire_answers,
)
from stack16.storage.store import AssetAllocation, InvestorProfile, Store

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

app = FastAPI(title=APP_NAME, version=APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# ─────────────────────────────────────────────────────────────────────
# Global State
# ─────────────────────────────────────────────────────────────────────

STATE = {
    "store": Store(),
    "advisor": PortfolioAdvisor(),
}


@app.on_event("startup")
async def startup_event():
    logger.info("=" * 60)
    logger.info("%s %s starting up...", APP_NAME, APP_VERSION)
    logger.info("AI chat assistant: %s", "configured" if STATE["advisor"].configured else "disabled (no API key)")
    logger.info("=" * 60)


def current_user(x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER)) -> str:
    return (x_user_id or "").strip() or DEFAULT_USER_ID


def _store() -> Store:
    return STATE["store"]


# ─────────────────────────────────────────────────────────────────────
# Request models
# ─────────────────────────────────────────────────────────────────────

class RiskAssessmentRequest(BaseModel):
    life_stage: Optional[str] = None
    risk_tolerance: Optional[str] = None
    time_horizon: Optional[str] = None
    geographic_focus: Optional[List[str]] = None
    esg_exclusions: Optional[List[str]] = Field(default_factory=list)
    income_stability: Optional[str] = None
    emergency_fund: Optional[str] = None
    debt_level: Optional[str] = None
    investment_experience: Optional[str] = None
    investment_knowledge: Optional[str] = None
    dividend_vs_growth: Optional[str] = None
    behavioral_reaction: Optional[str] = None
    income_range: Optional[str] = None
    net_worth_range: Optional[str] = None

    @field_validator("geographic_focus", "esg_exclusions", mode="before")
    @classmethod
    def coerce_to_list(cls, value: Any):
        # Single selections arrive as a bare string, cleared ones as null
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            return [value]
        return []


class InvestorProfileRequest(BaseModel):
    risk_assessment_id: Optional[str] = None
    risk_tolerance: int = Field(ge=0, le=100)
    investment_horizon: int = Field(ge=1, le=100)
    risk_capacity: Literal["low", "medium", "high"]
    experience_level: Literal["beginner", "intermediate", "experienced", "expert"]
    cash_preference: int = Field(DEFAULT_CASH_PREFERENCE, ge=0, le=100)


class AssetAllocationRequest(BaseModel):
    investor_profile_id: str


class ChatMessageRequest(BaseModel):
    content: str = Field(min_length=1, max_length=4000)

    @field_validator("content")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value


# ─────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────

def derive_allocation(user_id: str, profile: InvestorProfile) -> AssetAllocation:
    """Allocation for a profile; computed once, then returned as stored."""
    store = _store()
    existing = store.get_allocation_for_profile(profile.id)
    if existing is not None:
        return existing
    result = calculate_allocation(profile.engine_input())
    return store.create_asset_allocation(user_id, profile.id, result)


def _portfolio_payload(user_id: str) -> dict:
    portfolio = _store().get_portfolio_by_user_id(user_id)
    if portfolio is None:
        return {
            "id": None,
            "total_value": 0,
            "total_return": 0,
            "allocations": [a.to_dict() for a in default_portfolio()],
        }
    return portfolio.to_dict()


def _sse(event_type: str, data: Any) -> str:
    return f"data: {json.dumps({'type': event_type, 'data': data}, default=str)}\n\n"


# ─────────────────────────────────────────────────────────────────────
# Health & reference data
# ─────────────────────────────────────────────────────────────────────

@app.get("/api/health")
def health():
    return {
        "status": "ready",
        "version": APP_VERSION,
        "chat_enabled": STATE["advisor"].configured,
    }


@app.get("/api/risk-levels")
def risk_levels():
    return [level.to_dict() for level in RISK_LEVELS.values()]


# ─────────────────────────────────────────────────────────────────────
# Risk assessment
# ─────────────────────────────────────────────────────────────────────

@app.post("/api/risk-assessment")
def create_risk_assessment(req: RiskAssessmentRequest, user_id: str = Depends(current_user)):
    """
    Score the questionnaire and derive everything that follows from it:
    investor profile, asset allocation and ETF model portfolio.
    """
    answers = req.model_dump()
    try:
        validate_questionnaire_answers(answers)
    except QuestionnaireError as e:
        raise ValidationError(str(e))

    scores = compute_investor_profile(answers)
    store = _store()
    assessment = store.create_risk_assessment(user_id, answers, scores)
    logger.info("Risk assessment %s for %s: %s", assessment.id, user_id, scores)

    profile = store.create_investor_profile(user_id, profile_input_from_scores(scores), assessment.id)
    allocation = derive_allocation(user_id, profile)

    portfolio_id = None
    try:
        portfolio = store.create_portfolio(user_id, generate_portfolio(answers), assessment.id)
        portfolio_id = portfolio.id
    except Exception as e:
        # The assessment still stands; the portfolio can be generated later
        logger.error("Portfolio auto-generation failed for %s: %s", user_id, e, exc_info=True)

    return {
        **assessment.to_dict(),
        "investor_profile_id": profile.id,
        "asset_allocation_id": allocation.id,
        "portfolio_id": portfolio_id,
    }


@app.get("/api/risk-assessment")
def get_risk_assessment(user_id: str = Depends(current_user)):
    assessment = _store().get_risk_assessment_by_user_id(user_id)
    return assessment.to_dict() if assessment else None


@app.get("/api/risk-assessment/profile")
def get_humanized_profile(user_id: str = Depends(current_user)):
    assessment = _store().get_risk_assessment_by_user_id(user_id)
    if assessment is None:
        raise NotFoundError("No risk assessment found")

    scores = assessment.investor_profile
    params = adjust_params_for_edge_cases(map_scores_to_params(scores), scores)
    return {
        "scores": scores.to_dict(),
        "labels": humanize_profile(scores),
        "risk_level": RISK_LEVELS[map_score_to_risk_level(scores.risk_tolerance)].to_dict(),
        "optimization_params": params.to_dict(),
    }


# ─────────────────────────────────────────────────────────────────────
# Investor profiles & asset allocations
# ─────────────────────────────────────────────────────────────────────

@app.post("/api/investor-profiles")
def create_investor_profile(req: InvestorProfileRequest, user_id: str = Depends(current_user)):
    profile_input = ProfileInput(
        risk_tolerance=req.risk_tolerance,
        investment_horizon=req.investment_horizon,
        risk_capacity=req.risk_capacity,
        experience_level=req.experience_level,
        cash_preference=req.cash_preference,
    )
    profile = _store().create_investor_profile(user_id, profile_input, req.risk_assessment_id)
    return profile.to_dict()


@app.get("/api/investor-profiles/user/{user_id}")
def get_investor_profile(user_id: str):
    profile = _store().get_investor_profile_by_user_id(user_id)
    if profile is None:
        raise NotFoundError("No investor profile found")
    return profile.to_dict()


@app.post("/api/asset-allocations")
def create_asset_allocation(req: AssetAllocationRequest, user_id: str = Depends(current_user)):
    profile = _store().get_investor_profile(req.investor_profile_id)
    if profile is None:
        raise NotFoundError(f"Investor profile '{req.investor_profile_id}' not found")
    if profile.user_id != user_id:
        raise ForbiddenError("Unauthorized to create an allocation for this profile")
    return derive_allocation(user_id, profile).to_dict()


@app.get("/api/asset-allocations/user/{user_id}/current")
def get_current_allocation(user_id: str):
    allocation = _store().get_current_allocation(user_id)
    if allocation is None:
        raise NotFoundError("No asset allocation found")
    return allocation.to_dict()


@app.get("/api/asset-allocations/user/{user_id}")
def get_allocation_history(
    user_id: str,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    page, total = _store().get_allocation_history(user_id, limit=limit, offset=offset)
    return {
        "allocations": [a.to_dict() for a in page],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


def _get_allocation_or_404(allocation_id: str) -> AssetAllocation:
    allocation = _store().get_asset_allocation(allocation_id)
    if allocation is None:
        raise NotFoundError(f"Asset allocation '{allocation_id}' not found")
    return allocation


@app.get("/api/asset-allocations/{allocation_id}/view")
def get_allocation_view(allocation_id: str):
    allocation = _get_allocation_or_404(allocation_id)
    return {
        "allocation": allocation.to_dict(),
        "view": allocation_view(allocation.percentages(), allocation.holdings_count, allocation.allocation_metadata),
        "analytics": analyse_allocation(allocation.percentages()),
    }


@app.get("/api/asset-allocations/{allocation_id}/summary")
def get_allocation_summary(allocation_id: str):
    allocation = _get_allocation_or_404(allocation_id)
    analytics = analyse_allocation(allocation.percentages())
    summary = STATE["advisor"].summarize_allocation(allocation.to_dict(), analytics)
    return {"allocation_id": allocation.id, "summary": summary}


# ─────────────────────────────────────────────────────────────────────
# ETF model portfolio
# ─────────────────────────────────────────────────────────────────────

@app.post("/api/portfolio/generate")
def generate_user_portfolio(user_id: str = Depends(current_user)):
    store = _store()
    assessment = store.get_risk_assessment_by_user_id(user_id)
    if assessment is None:
        raise ValidationError("Please complete risk assessment first")

    portfolio = store.create_portfolio(user_id, generate_portfolio(assessment.answers), assessment.id)
    logger.info("Generated portfolio %s for user %s", portfolio.id, user_id)
    return portfolio.to_dict()


@app.get("/api/portfolio")
def get_portfolio(user_id: str = Depends(current_user)):
    return _portfolio_payload(user_id)


@app.get("/api/portfolio/optimized")
def get_optimized_portfolio(user_id: str = Depends(current_user)):
    assessment = _store().get_risk_assessment_by_user_id(user_id)
    if assessment is None:
        raise ValidationError("Please complete risk assessment first")

    scores = assessment.investor_profile
    params = adjust_params_for_edge_cases(map_scores_to_params(scores), scores)
    try:
        result = optimize_etf_portfolio(params)
    except ValueError as e:
        raise ValidationError(str(e))
    return {"optimization_params": params.to_dict(), **result.to_dict()}


# ─────────────────────────────────────────────────────────────────────
# Portfolio chat
# ─────────────────────────────────────────────────────────────────────

@app.get("/api/portfolio/{portfolio_id}/messages")
def get_messages(portfolio_id: str):
    return [m.to_dict() for m in _store().get_portfolio_messages(portfolio_id)]


@app.delete("/api/portfolio/{portfolio_id}/messages")
def delete_messages(portfolio_id: str, user_id: str = Depends(current_user)):
    store = _store()
    portfolio = store.get_portfolio_by_user_id(user_id)
    if portfolio is None or portfolio.id != portfolio_id:
        raise ForbiddenError("Unauthorized to delete messages for this portfolio")

    removed = store.delete_portfolio_messages(portfolio_id)
    return {"message": "All messages deleted successfully", "deleted": removed}


@app.post("/api/portfolio/{portfolio_id}/messages")
def post_message(portfolio_id: str, req: ChatMessageRequest, user_id: str = Depends(current_user)):
    """Store the question and relay the assistant's answer as server-sent events."""
    store = _store()
    advisor: PortfolioAdvisor = STATE["advisor"]

    portfolio = store.get_portfolio_by_user_id(user_id)
    if portfolio is None or portfolio.id != portfolio_id:
        raise ValidationError("Portfolio not found")
    if not advisor.configured:
        raise ServiceUnavailableError("AI chat service is not configured")

    user_message = store.create_portfolio_message(user_id, portfolio_id, "user", req.content)

    allocation = store.get_current_allocation(user_id)
    context = build_portfolio_context(
        portfolio.to_dict(),
        allocation.to_dict() if allocation else None,
        analyse_allocation(allocation.percentages()) if allocation else None,
    )

    def event_stream():
        yield _sse("userMessage", user_message.to_dict())
        chunks = []
        try:
            for chunk in advisor.stream_portfolio_advice(req.content, context):
                chunks.append(chunk)
                yield _sse("chunk", chunk)
        except AdvisorUnavailableError as e:
            logger.error("Chat reply failed for portfolio %s: %s", portfolio_id, e)
            yield _sse("error", {"message": "Failed to generate AI response"})
            return

        ai_message = store.create_portfolio_message(user_id, portfolio_id, "ai", "".join(chunks))
        yield _sse("complete", ai_message.to_dict())

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


# ─────────────────────────────────────────────────────────────────────
# ETF catalog
# ─────────────────────────────────────────────────────────────────────

@app.get("/api/etfs")
def list_etfs(
    category: Optional[str] = None,
    geographic_focus: Optional[str] = None,
    is_esg: Optional[bool] = None,
    is_dividend_focused: Optional[bool] = None,
    is_growth_focused: Optional[bool] = None,
    asset_type: Optional[str] = None,
    q: str = "",
    sort_by: str = "name",
):
    etfs = filter_etfs(
        category=category,
        geographic_focus=geographic_focus,
        is_esg=is_esg,
        is_dividend_focused=is_dividend_focused,
        is_growth_focused=is_growth_focused,
    )
    try:
        etfs = search_etfs(etfs, query=q, asset_type=asset_type, sort_by=sort_by)
    except ValueError as e:
        raise ValidationError(str(e))
    return {"etfs": [e.to_dict() for e in etfs], "total": len(etfs)}


@app.get("/api/etfs/compare")
def compare(tickers: str = Query(..., description="Comma-separated tickers")):
    try:
        etfs = compare_etfs(tickers.split(","), min_count=MIN_COMPARE_ETFS, max_count=MAX_COMPARE_ETFS)
    except ValueError as e:
        raise ValidationError(str(e))

    rows = [e.to_dict() for e in etfs]
    attributes = [k for k in rows[0] if k not in ("ticker", "color")]
    differences = [k for k in attributes if len({str(r[k]) for r in rows}) > 1]
    return {
        "tickers": [e.ticker for e in etfs],
        "etfs": rows,
        "attributes": {k: {r["ticker"]: r[k] for r in rows} for k in attributes},
        "differences": differences,
    }


@app.get("/api/etfs/{ticker}")
def etf_detail(ticker: str):
    etf = get_etf(ticker)
    if etf is None:
        raise NotFoundError(f"ETF '{ticker}' not found")
    return etf.to_dict()


if __name__ == "__main__":
    import uvicorn
    from stack16.config.settings import HOST, PORT
    uvicorn.run(app, host=HOST, port=PORT)
