"""
Stack16 - Profile Mapping

Two translations of the 0-100 questionnaire scores:

    profile_input_from_scores : scores -> allocation-engine input
                                (years, capacity level, experience level)
    map_scores_to_params      : scores -> ETF optimisation parameters
                                (target vol, max ETFs, risk aversion, region mix)
"""

from dataclasses import asdict, dataclass, field
from typing import Dict, List

from stack16.config.settings import (
    DEFAULT_CASH_PREFERENCE, EXCLUSION_THRESHOLD, FEE_PENALTY,
    GLOBAL_REGION_MIX, LIQUIDITY_PENALTY, MAX_ETF_WEIGHT, REGION_PENALTY,
    RISK_SCORE_WEIGHTS,
)
from stack16.scoring.allocation import ProfileInput
from stack16.scoring.questionnaire import InvestorScores, clamp, round_half_up

ALL_REGIONS: List[str] = ["NL", "EU_EX_NL", "US", "DEV_EX_US_EU", "EM"]


@dataclass
class RiskScore:
    overall: float
    components: Dict[str, float]


@dataclass
class OptimizationParams:
    target_volatility: float
    max_etfs: int
    risk_aversion: float
    target_region_mix: Dict[str, float]
    fee_penalty: float = FEE_PENALTY
    region_penalty: float = REGION_PENALTY
    liquidity_penalty: float = LIQUIDITY_PENALTY
    exclusion_threshold: float = EXCLUSION_THRESHOLD
    min_weight: float = 0.0
    max_weight: float = MAX_ETF_WEIGHT
    industry_exclusions: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


# ─────────────────────────────────────────────────────────────────────
# Scores -> allocation-engine input
# ─────────────────────────────────────────────────────────────────────

def capacity_level(score: float) -> str:
    if score < 33:
        return "low"
    if score < 67:
        return "medium"
    return "high"


def experience_level(score: float) -> str:
    if score < 25:
        return "beginner"
    if score < 50:
        return "intermediate"
    if score < 75:
        return "experienced"
    return "expert"


def horizon_years(score: float) -> int:
    """Rough years estimate from the 0-100 horizon score; never below one year."""
    return max(1, round_half_up(score / 10))


def profile_input_from_scores(
    scores: InvestorScores,
    cash_preference: int = DEFAULT_CASH_PREFERENCE,
) -> ProfileInput:
    return ProfileInput(
        risk_tolerance=scores.risk_tolerance,
        investment_horizon=horizon_years(scores.investment_horizon),
        risk_capacity=capacity_level(scores.risk_capacity),
        experience_level=experience_level(scores.investor_experience),
        cash_preference=cash_preference,
    )


# ─────────────────────────────────────────────────────────────────────
# Scores -> optimisation parameters
# ─────────────────────────────────────────────────────────────────────

def compute_risk_score(scores: InvestorScores) -> RiskScore:
    components = {
        "tolerance": scores.risk_tolerance,
        "capacity": scores.risk_capacity,
        "horizon": scores.investment_horizon,
        "experience": scores.investor_experience,
    }
    overall = sum(RISK_SCORE_WEIGHTS[k] * v for k, v in components.items())
    return RiskScore(overall=clamp(overall), components=components)


def compute_target_volatility(risk_score: float) -> float:
    """5% (most conservative) to 20% (most aggressive) annualised."""
    return 0.05 + 0.15 * (risk_score / 100)


def compute_max_etfs(experience_score: float) -> int:
    """3 ETFs for beginners up to 10 for experts."""
    return round_half_up(3 + 7 * (experience_score / 100))


def compute_risk_aversion(risk_score: float) -> float:
    return 2.0 * (1 - risk_score / 100) + 0.5


def compute_target_region_mix(selected_regions: List[str]) -> Dict[str, float]:
    """Equal weight across selected regions, or a global cap-weighted mix if none."""
    if not selected_regions:
        return dict(GLOBAL_REGION_MIX)

    weight = 1.0 / len(selected_regions)
    mix = {r: 0.0 for r in ALL_REGIONS}
    for region in selected_regions:
        mix[region] = weight
    return mix


def map_scores_to_params(scores: InvestorScores) -> OptimizationParams:
    risk = compute_risk_score(scores)
    return OptimizationParams(
        target_volatility=compute_target_volatility(risk.overall),
        max_etfs=compute_max_etfs(scores.investor_experience),
        risk_aversion=compute_risk_aversion(risk.overall),
        target_region_mix=compute_target_region_mix(scores.regions_selected),
        industry_exclusions=[e for e in scores.industry_exclusions if e != "NO_ESG_SCREEN"],
    )


def adjust_params_for_edge_cases(params: OptimizationParams, scores: InvestorScores) -> OptimizationParams:
    """Special cases layered on top of the formula mapping. Returns a new object."""
    adjusted = OptimizationParams(**params.to_dict())
    risk = compute_risk_score(scores)

    # Short horizon + low risk -> cap vol, raise aversion
    if risk.overall < 30 and scores.investment_horizon < 30:
        adjusted.target_volatility = min(adjusted.target_volatility, 0.08)
        adjusted.risk_aversion = max(adjusted.risk_aversion, 2.0)

    if scores.investor_experience > 80:
        adjusted.max_etfs = min(adjusted.max_etfs + 2, 12)
        adjusted.min_weight = 0.02

    n_regions = len(scores.regions_selected)
    if n_regions >= 4:
        adjusted.region_penalty = 5.0
    if n_regions == 1:
        adjusted.region_penalty = 20.0

    return adjusted
