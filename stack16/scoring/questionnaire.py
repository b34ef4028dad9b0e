"""
Stack16 - Questionnaire Scoring

Turns the 14 risk-questionnaire answers into an investor profile:
four 0-100 scores (tolerance, capacity, horizon, experience) plus the
selected regions and industry exclusions.

Front-end answer values are first mapped to letter codes (A/B/C/D); an
unknown or missing answer falls back to that question's default letter.
"""

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvestorScores:
    risk_tolerance: int            # 0-100
    risk_capacity: int             # 0-100
    investment_horizon: int        # 0-100
    investor_experience: int       # 0-100
    regions_selected: List[str] = field(default_factory=list)       # ["NL", "US", ...]
    industry_exclusions: List[str] = field(default_factory=list)    # ["TOBACCO", ...]

    def to_dict(self) -> dict:
        return asdict(self)


class QuestionnaireError(ValueError):
    """Answers that cannot be scored."""


# ─────────────────────────────────────────────────────────────────────
# Answer → code maps: (field, {value: code}, default code)
# ─────────────────────────────────────────────────────────────────────

LIFE_STAGE_MAP = {"early-career": "A", "mid-career": "B", "nearing-retirement": "C", "retired": "D"}
RISK_TOLERANCE_MAP = {"conservative": "A", "moderate": "B", "aggressive": "C"}
TIME_HORIZON_MAP = {"under-3-years": "A", "three-to-seven-years": "B", "over-seven-years": "C"}
INCOME_STABILITY_MAP = {"very-stable": "A", "somewhat-stable": "B", "unstable": "C"}
EMERGENCY_FUND_MAP = {"yes": "A", "partial": "B", "no": "C"}
DEBT_LEVEL_MAP = {"low-none": "A", "manageable": "B", "high": "C"}
INVESTMENT_EXPERIENCE_MAP = {"none": "A", "beginner": "B", "intermediate": "C", "advanced": "D"}
INVESTMENT_KNOWLEDGE_MAP = {"beginner": "A", "intermediate": "B", "advanced": "C"}
DIVIDEND_VS_GROWTH_MAP = {"dividend-focus": "A", "balanced": "B", "growth-focus": "C"}
BEHAVIORAL_REACTION_MAP = {"sell-all": "A", "sell-some": "B", "hold": "C", "buy-more": "D"}
INCOME_RANGE_MAP = {"<50k": "A", "50-100k": "B", "100-250k": "C", "250k+": "D"}
NET_WORTH_MAP = {"<100k": "A", "100-500k": "B", "500k-1M": "C", "1M+": "D"}

QUESTION_MAPS = {
    "q1": ("life_stage", LIFE_STAGE_MAP, "B"),
    "q2": ("risk_tolerance", RISK_TOLERANCE_MAP, "B"),
    "q3": ("time_horizon", TIME_HORIZON_MAP, "B"),
    "q6": ("income_stability", INCOME_STABILITY_MAP, "B"),
    "q7": ("emergency_fund", EMERGENCY_FUND_MAP, "B"),
    "q8": ("debt_level", DEBT_LEVEL_MAP, "B"),
    "q9": ("investment_experience", INVESTMENT_EXPERIENCE_MAP, "B"),
    "q10": ("investment_knowledge", INVESTMENT_KNOWLEDGE_MAP, "A"),
    "q11": ("dividend_vs_growth", DIVIDEND_VS_GROWTH_MAP, "B"),
    "q12": ("behavioral_reaction", BEHAVIORAL_REACTION_MAP, "C"),
    "q13": ("income_range", INCOME_RANGE_MAP, "B"),
    "q14": ("net_worth_range", NET_WORTH_MAP, "B"),
}

REGION_MAP = {
    "netherlands": "NL",
    "europe-ex-nl": "EU_EX_NL",
    "united-states": "US",
    "developed-ex-us-europe": "DEV_EX_US_EU",
    "emerging-markets": "EM",
}

INDUSTRY_MAP = {
    "tobacco": "TOBACCO",
    "fossil-fuels": "FOSSIL_FUELS",
    "defense-industry": "DEFENSE",
    "gambling": "GAMBLING",
    "adult-entertainment": "ADULT",
    "non-esg-funds": "NO_ESG_SCREEN",
}


# ─────────────────────────────────────────────────────────────────────
# Score tables
# ─────────────────────────────────────────────────────────────────────

TOLERANCE_BASE = 50
TOLERANCE_DELTAS = {
    "q2": {"A": -30, "C": 30},
    "q3": {"A": -30, "C": 30},
    "q9": {"A": -10, "C": 10, "D": 20},
    "q11": {"B": 10, "C": 20},
    "q12": {"A": -40, "B": -20, "C": 10, "D": 30},
}

CAPACITY_BASE = {"A": 40, "B": 70, "C": 50, "D": 20}      # from Q1
CAPACITY_DELTAS = {
    "q6": {"A": 40, "B": 20, "C": -10},
    "q7": {"A": 20, "B": 10},
    "q8": {"A": 20, "B": 10, "C": -20},
    "q13": {"A": -20, "C": 10, "D": 20},
    "q14": {"A": -20, "C": 10, "D": 20},
}

HORIZON_LIFE_STAGE = {"A": 70, "B": 80, "C": 0, "D": 20}  # from Q1
HORIZON_TIMEFRAME = {"A": 0, "B": 50, "C": 100}           # from Q3
HORIZON_WEIGHTS = (0.3, 0.7)
HORIZON_STYLE_DELTA = {"A": -10, "C": 10}                 # from Q11

EXPERIENCE_BASE = {"A": 20, "B": 40, "C": 70, "D": 100}   # from Q9
EXPERIENCE_KNOWLEDGE_DELTA = {"B": 10, "C": 20}           # from Q10


def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def answer_codes(answers: Mapping) -> Dict[str, str]:
    """Map raw answers to letter codes keyed q1..q14 (Q4/Q5 excluded)."""
    codes = {}
    for q, (field_name, mapping, default) in QUESTION_MAPS.items():
        codes[q] = mapping.get(answers.get(field_name), default)
    return codes


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def map_regions(values) -> List[str]:
    return [REGION_MAP[v] for v in _as_list(values) if v in REGION_MAP]


def map_industries(values) -> List[str]:
    return [INDUSTRY_MAP[v] for v in _as_list(values) if v in INDUSTRY_MAP]


def _apply_deltas(score: float, codes: Dict[str, str], deltas: Dict[str, Dict[str, int]]) -> float:
    for q, table in deltas.items():
        score += table.get(codes[q], 0)
    return score


# ─────────────────────────────────────────────────────────────────────
# Scores
# ─────────────────────────────────────────────────────────────────────

def score_risk_tolerance(codes: Dict[str, str]) -> float:
    return clamp(_apply_deltas(TOLERANCE_BASE, codes, TOLERANCE_DELTAS))


def score_risk_capacity(codes: Dict[str, str]) -> float:
    capacity = _apply_deltas(CAPACITY_BASE.get(codes["q1"], 0), codes, CAPACITY_DELTAS)
    capacity = clamp(capacity)
    # No emergency fund overrides everything else
    if codes["q7"] == "C":
        capacity = 0
    return capacity


def score_investment_horizon(codes: Dict[str, str]) -> float:
    w_stage, w_timeframe = HORIZON_WEIGHTS
    horizon = (
        w_stage * HORIZON_LIFE_STAGE.get(codes["q1"], 0)
        + w_timeframe * HORIZON_TIMEFRAME.get(codes["q3"], 50)
    )
    horizon += HORIZON_STYLE_DELTA.get(codes["q11"], 0)
    return clamp(horizon)


def score_investor_experience(codes: Dict[str, str]) -> float:
    experience = EXPERIENCE_BASE.get(codes["q9"], 0)
    experience += EXPERIENCE_KNOWLEDGE_DELTA.get(codes["q10"], 0)
    return clamp(experience)


def compute_investor_profile(answers: Mapping) -> InvestorScores:
    """Score a full questionnaire. Answers are keyed by snake_case field name."""
    codes = answer_codes(answers)
    profile = InvestorScores(
        risk_tolerance=round_half_up(score_risk_tolerance(codes)),
        risk_capacity=round_half_up(score_risk_capacity(codes)),
        investment_horizon=round_half_up(score_investment_horizon(codes)),
        investor_experience=round_half_up(score_investor_experience(codes)),
        regions_selected=map_regions(answers.get("geographic_focus")),
        industry_exclusions=map_industries(answers.get("esg_exclusions")),
    )
    logger.debug("Scored questionnaire %s -> %s", codes, profile)
    return profile


def validate_questionnaire_answers(answers: Mapping) -> None:
    """Raise QuestionnaireError if the answers cannot be scored."""
    if not isinstance(answers.get("geographic_focus"), list):
        raise QuestionnaireError("geographic_focus must be an array")
    if not isinstance(answers.get("esg_exclusions"), list):
        raise QuestionnaireError("esg_exclusions must be an array")
    if len(answers["geographic_focus"]) == 0:
        raise QuestionnaireError("Please select at least one geographic region (Q4)")
