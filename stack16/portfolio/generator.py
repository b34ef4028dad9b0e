"""
Stack16 - Model Portfolio Generator

Builds an ETF model portfolio from the questionnaire answers:

    base ETF set for the risk level
      -> dividend / growth ticker swaps
      -> ESG swaps (when non-ESG funds are excluded)
      -> US-only focus drops international funds
      -> largest-remainder rounding to whole percents summing to 100
"""

import logging
import math
from dataclasses import asdict, dataclass, replace
from typing import Dict, List, Mapping

from stack16.config.etf_catalog import ETF_CATALOG

logger = logging.getLogger(__name__)


@dataclass
class ETFAllocation:
    ticker: str
    name: str
    percentage: float
    color: str
    asset_type: str

    def to_dict(self) -> dict:
        return asdict(self)


def _holding(ticker: str, percentage: float) -> ETFAllocation:
    etf = ETF_CATALOG[ticker]
    return ETFAllocation(
        ticker=etf.ticker, name=etf.name, percentage=percentage,
        color=etf.color, asset_type=etf.asset_type,
    )


BASE_ETF_SETS: Dict[str, List[tuple]] = {
    "conservative": [("BND", 60), ("VTI", 25), ("VXUS", 10), ("VNQ", 5)],
    "moderate": [("VTI", 55), ("VXUS", 20), ("BND", 20), ("VNQ", 5)],
    "aggressive": [("VTI", 70), ("VXUS", 20), ("QQQ", 10)],
}

DIVIDEND_SWAPS = {"VTI": "VIG", "VXUS": "VYMI", "QQQ": "VIG"}
GROWTH_SWAPS = {"VXUS": "VWO"}
ESG_SWAPS = {"VTI": "ESGV", "VIG": "ESGD", "VXUS": "ESGD", "BND": "SUSB"}

INTERNATIONAL_TICKERS = {"VXUS", "ESGD", "VYMI", "VWO"}
US_CORE_TICKERS = ("VTI", "ESGV", "VIG")


def default_portfolio() -> List[ETFAllocation]:
    """Served when a user has not generated a portfolio yet."""
    return get_base_allocations("conservative")


def get_base_allocations(risk_tolerance: str) -> List[ETFAllocation]:
    rows = BASE_ETF_SETS.get(risk_tolerance, BASE_ETF_SETS["moderate"])
    return [_holding(t, p) for t, p in rows]


def _swap(allocations: List[ETFAllocation], swaps: Mapping[str, str]) -> List[ETFAllocation]:
    out = []
    for a in allocations:
        if a.ticker in swaps:
            etf = ETF_CATALOG[swaps[a.ticker]]
            # Swapped funds keep the original colour
            a = replace(a, ticker=etf.ticker, name=etf.name, asset_type=etf.asset_type)
        out.append(a)
    return out


def apply_dividend_growth_preferences(allocations: List[ETFAllocation], dividend_vs_growth: str) -> List[ETFAllocation]:
    if dividend_vs_growth == "dividend-focus":
        return _swap(allocations, DIVIDEND_SWAPS)
    if dividend_vs_growth == "growth-focus":
        return _swap(allocations, GROWTH_SWAPS)
    return allocations


def apply_esg_preferences(allocations: List[ETFAllocation], esg_exclusions) -> List[ETFAllocation]:
    exclusions = esg_exclusions if isinstance(esg_exclusions, list) else []
    if "non-esg-funds" in exclusions:
        return _swap(allocations, ESG_SWAPS)
    return allocations


def apply_geographic_preferences(allocations: List[ETFAllocation], geographic_focus: List[str]) -> List[ETFAllocation]:
    """With only the US selected, fold international weight into the US core fund."""
    if not (len(geographic_focus) == 1 and "united-states" in geographic_focus):
        return allocations

    removed = sum(a.percentage for a in allocations if a.ticker in INTERNATIONAL_TICKERS)
    kept = [replace(a) for a in allocations if a.ticker not in INTERNATIONAL_TICKERS]
    if not kept:
        # ESG swaps can leave nothing but international funds
        logger.warning("US-only focus would empty the portfolio; keeping international holdings")
        return allocations

    target = next((a for a in kept if a.ticker in US_CORE_TICKERS), None)
    if target is None:
        target = next((a for a in kept if a.ticker == "QQQ"), None)
    if target is not None:
        target.percentage += removed
    return kept


def merge_duplicates(allocations: List[ETFAllocation]) -> List[ETFAllocation]:
    """Swaps can map two funds onto one ticker (e.g. VTI and QQQ -> VIG); sum them."""
    merged: Dict[str, ETFAllocation] = {}
    for a in allocations:
        if a.ticker in merged:
            merged[a.ticker].percentage += a.percentage
        else:
            merged[a.ticker] = replace(a)
    return list(merged.values())


def normalize_to_100(allocations: List[ETFAllocation]) -> List[ETFAllocation]:
    """Largest-remainder rounding: whole percents, total exactly 100, order kept."""
    total = sum(a.percentage or 0 for a in allocations)
    if total == 0:
        return allocations

    scale = 100.0 / total
    raw = [(a.percentage or 0) * scale for a in allocations]
    floors = [math.floor(r) for r in raw]
    needed = 100 - sum(floors)

    by_remainder = sorted(range(len(raw)), key=lambda i: raw[i] - floors[i], reverse=True)
    for i in by_remainder[:needed]:
        floors[i] += 1

    return [replace(a, percentage=floors[i]) for i, a in enumerate(allocations)]


def generate_portfolio(answers: Mapping) -> List[ETFAllocation]:
    """Generate an ETF model portfolio from questionnaire answers."""
    risk_tolerance = answers.get("risk_tolerance")
    geographic_focus = answers.get("geographic_focus") or []
    if not isinstance(geographic_focus, list):
        geographic_focus = [geographic_focus]

    allocations = get_base_allocations(risk_tolerance)
    allocations = apply_dividend_growth_preferences(allocations, answers.get("dividend_vs_growth"))
    allocations = apply_esg_preferences(allocations, answers.get("esg_exclusions"))
    allocations = apply_geographic_preferences(allocations, geographic_focus)
    allocations = merge_duplicates(allocations)
    allocations = normalize_to_100(allocations)

    logger.info("Generated portfolio for %s risk tolerance with %d allocations",
                risk_tolerance, len(allocations))
    return allocations
