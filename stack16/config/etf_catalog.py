"""
Stack16 - ETF Catalog & Risk Levels
Every fund the model portfolios can hold, plus the three headline risk levels
shown to users. Static reference data; no market data is fetched here.
"""
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ETFDefinition:
    ticker: str
    name: str
    asset_type: str
    color: str
    category: str                  # equity / bond / reit / commodity / mixed
    geographic_focus: str          # us / international / global / emerging
    is_esg: bool = False
    is_dividend_focused: bool = False
    is_growth_focused: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RiskLevel:
    level: str
    name: str
    description: str
    stock_allocation: float        # percent
    bond_allocation: float         # percent
    expected_annual_return: float  # percent
    expected_volatility: float     # percent

    def to_dict(self) -> dict:
        return asdict(self)


# ─────────────────────────────────────────────────────────────────────
# Catalog
# ─────────────────────────────────────────────────────────────────────

CHART_COLORS: Dict[str, str] = {
    "chart1": "hsl(var(--chart-1))",
    "chart2": "hsl(var(--chart-2))",
    "chart3": "hsl(var(--chart-3))",
    "chart4": "hsl(var(--chart-4))",
    "chart5": "hsl(var(--chart-5))",
}

ETF_CATALOG: Dict[str, ETFDefinition] = {

    # US equity
    "VTI": ETFDefinition(
        ticker="VTI", name="Vanguard Total Stock Market ETF", asset_type="US Equity",
        color=CHART_COLORS["chart1"], category="equity", geographic_focus="us",
    ),
    "QQQ": ETFDefinition(
        ticker="QQQ", name="Invesco QQQ Trust", asset_type="US Growth",
        color=CHART_COLORS["chart5"], category="equity", geographic_focus="us",
        is_growth_focused=True,
    ),
    "VIG": ETFDefinition(
        ticker="VIG", name="Vanguard Dividend Appreciation ETF", asset_type="US Dividend Equity",
        color=CHART_COLORS["chart1"], category="equity", geographic_focus="us",
        is_dividend_focused=True,
    ),
    "ESGV": ETFDefinition(
        ticker="ESGV", name="Vanguard ESG U.S. Stock ETF", asset_type="US Equity",
        color=CHART_COLORS["chart1"], category="equity", geographic_focus="us",
        is_esg=True,
    ),

    # International equity
    "VXUS": ETFDefinition(
        ticker="VXUS", name="Vanguard Total International Stock ETF", asset_type="International Equity",
        color=CHART_COLORS["chart2"], category="equity", geographic_focus="international",
    ),
    "VYMI": ETFDefinition(
        ticker="VYMI", name="Vanguard International High Dividend Yield ETF",
        asset_type="International Dividend Equity",
        color=CHART_COLORS["chart2"], category="equity", geographic_focus="international",
        is_dividend_focused=True,
    ),
    "ESGD": ETFDefinition(
        ticker="ESGD", name="iShares ESG Aware MSCI EAFE ETF", asset_type="International Equity",
        color=CHART_COLORS["chart2"], category="equity", geographic_focus="international",
        is_esg=True,
    ),
    "VWO": ETFDefinition(
        ticker="VWO", name="Vanguard FTSE Emerging Markets ETF", asset_type="Emerging Markets Equity",
        color=CHART_COLORS["chart2"], category="equity", geographic_focus="emerging",
        is_growth_focused=True,
    ),

    # Fixed income
    "BND": ETFDefinition(
        ticker="BND", name="Vanguard Total Bond Market ETF", asset_type="Bonds",
        color=CHART_COLORS["chart3"], category="bond", geographic_focus="us",
    ),
    "SUSB": ETFDefinition(
        ticker="SUSB", name="iShares ESG Aware USD Corporate Bond ETF", asset_type="Bonds",
        color=CHART_COLORS["chart3"], category="bond", geographic_focus="us",
        is_esg=True,
    ),

    # Real estate
    "VNQ": ETFDefinition(
        ticker="VNQ", name="Vanguard Real Estate ETF", asset_type="REIT",
        color=CHART_COLORS["chart4"], category="reit", geographic_focus="us",
        is_dividend_focused=True,
    ),
}


def get_etf(ticker: str) -> Optional[ETFDefinition]:
    """Look up an ETF by ticker, case-insensitively."""
    return ETF_CATALOG.get(ticker.strip().upper())


def filter_etfs(
    category: Optional[str] = None,
    geographic_focus: Optional[str] = None,
    is_esg: Optional[bool] = None,
    is_dividend_focused: Optional[bool] = None,
    is_growth_focused: Optional[bool] = None,
) -> List[ETFDefinition]:
    """All ETFs matching every criterion that is not None."""
    results = []
    for etf in ETF_CATALOG.values():
        if category and etf.category != category:
            continue
        if geographic_focus and etf.geographic_focus != geographic_focus:
            continue
        if is_esg is not None and etf.is_esg != is_esg:
            continue
        if is_dividend_focused is not None and etf.is_dividend_focused != is_dividend_focused:
            continue
        if is_growth_focused is not None and etf.is_growth_focused != is_growth_focused:
            continue
        results.append(etf)
    return results


def search_etfs(
    etfs: List[ETFDefinition],
    query: str = "",
    asset_type: Optional[str] = None,
    sort_by: str = "name",
) -> List[ETFDefinition]:
    """Substring search over ticker, name and asset type, then sort by name or ticker."""
    q = query.strip().lower()
    matches = [
        e for e in etfs
        if (not q or q in e.ticker.lower() or q in e.name.lower() or q in e.asset_type.lower())
        and (asset_type is None or e.asset_type == asset_type)
    ]
    if sort_by == "ticker":
        matches.sort(key=lambda e: e.ticker)
    elif sort_by == "name":
        matches.sort(key=lambda e: e.name.lower())
    else:
        raise ValueError(f"Unknown sort key '{sort_by}'")
    return matches


def compare_etfs(tickers: List[str], min_count: int = 2, max_count: int = 4) -> List[ETFDefinition]:
    """
    Resolve a comparison selection.

    Tickers are de-duplicated (case-insensitive, order kept). Raises ValueError
    for unknown tickers or a selection outside [min_count, max_count].
    """
    seen: List[str] = []
    for t in tickers:
        key = t.strip().upper()
        if key and key not in seen:
            seen.append(key)

    unknown = [t for t in seen if t not in ETF_CATALOG]
    if unknown:
        raise ValueError(f"Unknown ETF ticker(s): {', '.join(unknown)}")
    if len(seen) < min_count:
        raise ValueError(f"Select at least {min_count} ETFs to compare")
    if len(seen) > max_count:
        raise ValueError(f"You can compare up to {max_count} ETFs at a time")

    return [ETF_CATALOG[t] for t in seen]


# ─────────────────────────────────────────────────────────────────────
# Risk levels
# ─────────────────────────────────────────────────────────────────────

RISK_LEVELS: Dict[str, RiskLevel] = {
    "conservative": RiskLevel(
        level="conservative",
        name="Conservative",
        description="Lower risk with focus on capital preservation and stable income",
        stock_allocation=40,
        bond_allocation=60,
        expected_annual_return=4.5,
        expected_volatility=8,
    ),
    "moderate": RiskLevel(
        level="moderate",
        name="Moderate",
        description="Balanced approach seeking growth with moderate risk",
        stock_allocation=70,
        bond_allocation=30,
        expected_annual_return=6.5,
        expected_volatility=12,
    ),
    "aggressive": RiskLevel(
        level="aggressive",
        name="Aggressive",
        description="Higher risk targeting maximum long-term growth",
        stock_allocation=90,
        bond_allocation=10,
        expected_annual_return=8.5,
        expected_volatility=16,
    ),
}


def map_score_to_risk_level(risk_tolerance: float) -> str:
    if risk_tolerance < 35:
        return "conservative"
    if risk_tolerance < 65:
        return "moderate"
    return "aggressive"
