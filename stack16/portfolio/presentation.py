"""
Stack16 - Presentation Layer

View models for the allocation page and the profile card: the server sends
these so the client only lays them out. Progress-bar rows for each asset
class, a "Calculation Details" card per pipeline step, and human-readable
labels for the questionnaire scores.
"""

from typing import Dict, List

from stack16.scoring.allocation import AllocationMetadata
from stack16.scoring.questionnaire import InvestorScores

ASSET_ROWS = [
    # (key, label, chart colour, always shown)
    ("equity", "Stocks/Equity", "chart-1", True),
    ("bonds", "Bonds/Fixed Income", "chart-3", True),
    ("cash", "Cash", "chart-4", False),
    ("other", "Other Assets", "chart-2", False),
]

HORIZON_LABELS = {
    "short": "Short-term horizon",
    "medium": "Medium-term horizon",
    "long": "Long-term horizon",
}

REGION_DISPLAY = {
    "NL": "Netherlands",
    "EU_EX_NL": "Europe (ex-NL)",
    "US": "United States",
    "DEV_EX_US_EU": "Developed Markets (ex-US/EU)",
    "EM": "Emerging Markets",
}

INDUSTRY_DISPLAY = {
    "TOBACCO": "Tobacco",
    "FOSSIL_FUELS": "Fossil Fuels",
    "DEFENSE": "Defense",
    "GAMBLING": "Gambling",
    "ADULT": "Adult Entertainment",
    "NO_ESG_SCREEN": "Non-ESG Funds",
}


# ─────────────────────────────────────────────────────────────────────
# Allocation view
# ─────────────────────────────────────────────────────────────────────

def allocation_rows(percentages: Dict[str, float], cap_applied: bool) -> List[dict]:
    rows = []
    for key, label, color, always in ASSET_ROWS:
        value = float(percentages.get(key, 0.0))
        if not always and value <= 0:
            continue
        rows.append({
            "key": key,
            "label": label,
            "percent": value,
            "display": f"{value:.2f}%",
            "color": color,
            "badge": "Capped" if key == "equity" and cap_applied else None,
        })
    return rows


def calculation_cards(metadata: AllocationMetadata) -> List[dict]:
    cards = []

    base = metadata.base_allocation
    cards.append({
        "title": "1. Base Allocation (Risk Tolerance)",
        "lines": [f"Equity: {base.equity:.1f}%", f"Bonds: {base.bonds:.1f}%"],
    })

    horizon = metadata.horizon_adjustment
    if horizon.equity_increase > 0:
        label = HORIZON_LABELS.get(horizon.horizon_category, "Investment horizon")
        cards.append({
            "title": "2. Investment Horizon Adjustment",
            "lines": [f"{label}: +{horizon.equity_increase:g}% equity"],
        })

    cap = metadata.capacity_constraint
    if cap.cap_applied:
        cards.append({
            "title": "3. Risk Capacity Constraint",
            "lines": [
                f"Your {cap.capacity_level} risk capacity limits equity to {cap.capped_equity:.1f}%",
                f"(Original: {cap.original_equity:.1f}%)",
            ],
        })

    rem = metadata.remainder_split
    if rem.total_remainder > 0:
        cards.append({
            "title": "4. Remainder Distribution",
            "lines": [f"Cash: {rem.cash_percent:.1f}%", f"Other: {rem.other_percent:.1f}%"],
        })

    interp = metadata.boundary_interpolation
    if interp is not None and interp.applied:
        cards.append({
            "title": "Boundary Interpolation",
            "lines": [
                f"Risk tolerance of {interp.risk_tolerance} is at a boundary, so we averaged "
                f"the {interp.band1} and {interp.band2} bands."
            ],
        })

    return cards


def allocation_view(percentages: Dict[str, float], holdings_count: int, metadata: AllocationMetadata) -> dict:
    """Everything the allocation page renders."""
    return {
        "title": "Your Asset Allocation",
        "rows": allocation_rows(percentages, metadata.capacity_constraint.cap_applied),
        "holdings_count": holdings_count,
        "calculation_details": calculation_cards(metadata),
    }


# ─────────────────────────────────────────────────────────────────────
# Profile labels
# ─────────────────────────────────────────────────────────────────────

def humanize_risk_tolerance(score: float) -> str:
    if score <= 33:
        return "Conservative"
    if score <= 66:
        return "Moderate"
    return "Aggressive"


def humanize_risk_capacity(score: float) -> str:
    if score <= 33:
        return "Limited"
    if score <= 66:
        return "Moderate"
    return "Strong"


def humanize_investment_horizon(score: float) -> str:
    if score <= 33:
        return "Short-term (0-5 years)"
    if score <= 66:
        return "Medium-term (5-15 years)"
    return "Long-term (15+ years)"


def humanize_investor_experience(score: float) -> str:
    if score <= 25:
        return "Beginner"
    if score <= 50:
        return "Some Experience"
    if score <= 75:
        return "Intermediate"
    return "Advanced"


def humanize_regions(regions: List[str]) -> str:
    names = [REGION_DISPLAY.get(code, code) for code in regions or [] if code]
    if not names:
        return "No regions selected"
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return " and ".join(names)
    return f"{', '.join(names[:-1])}, and {names[-1]}"


def excluded_industries_list(exclusions: List[str]) -> List[str]:
    return [INDUSTRY_DISPLAY.get(code, code) for code in exclusions or [] if code]


def humanize_industry_exclusions(exclusions: List[str]) -> str:
    if not exclusions:
        return "No exclusions"
    if len(exclusions) == 1:
        return f"Excludes {INDUSTRY_DISPLAY.get(exclusions[0], exclusions[0])}"
    return f"{len(exclusions)} exclusions"


def humanize_profile(scores: InvestorScores) -> dict:
    return {
        "risk_tolerance": humanize_risk_tolerance(scores.risk_tolerance),
        "risk_capacity": humanize_risk_capacity(scores.risk_capacity),
        "investment_horizon": humanize_investment_horizon(scores.investment_horizon),
        "investor_experience": humanize_investor_experience(scores.investor_experience),
        "regions": humanize_regions(scores.regions_selected),
        "industry_exclusions": humanize_industry_exclusions(scores.industry_exclusions),
        "excluded_industries_list": excluded_industries_list(scores.industry_exclusions),
    }
