"""
Stack16 - ETF Optimisation Universe
Funds the mean-variance optimiser chooses from, with the attributes its
objective needs: fees, liquidity, regional and industry exposure, and
per-fund capital-market assumptions. Static reference data.
"""
from dataclasses import asdict, dataclass, field
from typing import Dict, List

from stack16.config.etf_catalog import CHART_COLORS


@dataclass(frozen=True)
class UniverseETF:
    ticker: str
    name: str
    asset_class: str               # equity / bond
    asset_type: str
    color: str
    ter: float                     # total expense ratio, percent per year
    avg_daily_volume: float        # shares
    expected_return: float         # annualised, decimal
    volatility: float              # annualised, decimal
    region_exposure: Dict[str, float] = field(default_factory=dict)
    industry_exposure: Dict[str, float] = field(default_factory=dict)
    is_esg: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def _us_only() -> Dict[str, float]:
    return {"NL": 0.0, "EU_EX_NL": 0.0, "US": 1.0, "DEV_EX_US_EU": 0.0, "EM": 0.0}


ETF_UNIVERSE: List[UniverseETF] = [

    # US equity
    UniverseETF(
        ticker="VOO", name="Vanguard S&P 500 ETF", asset_class="equity",
        asset_type="US Large Cap", color=CHART_COLORS["chart1"],
        ter=0.03, avg_daily_volume=5_000_000, expected_return=0.075, volatility=0.155,
        region_exposure=_us_only(),
        industry_exposure={"FOSSIL_FUELS": 0.04, "DEFENSE": 0.01},
    ),
    UniverseETF(
        ticker="VTI", name="Vanguard Total Stock Market ETF", asset_class="equity",
        asset_type="US Equity", color=CHART_COLORS["chart1"],
        ter=0.03, avg_daily_volume=4_000_000, expected_return=0.076, volatility=0.16,
        region_exposure=_us_only(),
        industry_exposure={"FOSSIL_FUELS": 0.03, "DEFENSE": 0.01},
    ),
    UniverseETF(
        ticker="QQQ", name="Invesco QQQ Trust", asset_class="equity",
        asset_type="US Growth", color=CHART_COLORS["chart5"],
        ter=0.20, avg_daily_volume=50_000_000, expected_return=0.09, volatility=0.22,
        region_exposure=_us_only(),
    ),
    UniverseETF(
        ticker="VGT", name="Vanguard Information Technology ETF", asset_class="equity",
        asset_type="US Technology", color=CHART_COLORS["chart5"],
        ter=0.10, avg_daily_volume=1_000_000, expected_return=0.095, volatility=0.24,
        region_exposure={"NL": 0.0, "EU_EX_NL": 0.0, "US": 0.95, "DEV_EX_US_EU": 0.03, "EM": 0.02},
    ),

    # International equity
    UniverseETF(
        ticker="VXUS", name="Vanguard Total International Stock ETF", asset_class="equity",
        asset_type="International Equity", color=CHART_COLORS["chart2"],
        ter=0.07, avg_daily_volume=4_000_000, expected_return=0.065, volatility=0.165,
        region_exposure={"NL": 0.01, "EU_EX_NL": 0.40, "US": 0.0, "DEV_EX_US_EU": 0.35, "EM": 0.24},
        industry_exposure={"FOSSIL_FUELS": 0.05},
    ),
    UniverseETF(
        ticker="VEA", name="Vanguard FTSE Developed Markets ETF", asset_class="equity",
        asset_type="Developed Markets", color=CHART_COLORS["chart2"],
        ter=0.05, avg_daily_volume=10_000_000, expected_return=0.063, volatility=0.16,
        region_exposure={"NL": 0.02, "EU_EX_NL": 0.45, "US": 0.0, "DEV_EX_US_EU": 0.53, "EM": 0.0},
        industry_exposure={"FOSSIL_FUELS": 0.04},
    ),
    UniverseETF(
        ticker="VWO", name="Vanguard FTSE Emerging Markets ETF", asset_class="equity",
        asset_type="Emerging Markets", color=CHART_COLORS["chart4"],
        ter=0.08, avg_daily_volume=15_000_000, expected_return=0.075, volatility=0.21,
        region_exposure={"NL": 0.0, "EU_EX_NL": 0.0, "US": 0.0, "DEV_EX_US_EU": 0.0, "EM": 1.0},
        industry_exposure={"FOSSIL_FUELS": 0.08},
    ),

    # Bonds
    UniverseETF(
        ticker="BND", name="Vanguard Total Bond Market ETF", asset_class="bond",
        asset_type="US Bonds", color=CHART_COLORS["chart3"],
        ter=0.03, avg_daily_volume=6_000_000, expected_return=0.035, volatility=0.055,
        region_exposure=_us_only(),
    ),
    UniverseETF(
        ticker="AGG", name="iShares Core U.S. Aggregate Bond ETF", asset_class="bond",
        asset_type="US Bonds", color=CHART_COLORS["chart3"],
        ter=0.03, avg_daily_volume=7_000_000, expected_return=0.035, volatility=0.055,
        region_exposure=_us_only(),
    ),
    UniverseETF(
        ticker="BNDX", name="Vanguard Total International Bond ETF", asset_class="bond",
        asset_type="International Bonds", color=CHART_COLORS["chart3"],
        ter=0.07, avg_daily_volume=1_000_000, expected_return=0.03, volatility=0.045,
        region_exposure={"NL": 0.02, "EU_EX_NL": 0.60, "US": 0.0, "DEV_EX_US_EU": 0.35, "EM": 0.03},
    ),

    # ESG
    UniverseETF(
        ticker="ESGV", name="Vanguard ESG U.S. Stock ETF", asset_class="equity",
        asset_type="ESG US Equity", color=CHART_COLORS["chart1"],
        ter=0.09, avg_daily_volume=500_000, expected_return=0.074, volatility=0.165,
        region_exposure=_us_only(), is_esg=True,
    ),
    UniverseETF(
        ticker="VSGX", name="Vanguard ESG International Stock ETF", asset_class="equity",
        asset_type="ESG International Equity", color=CHART_COLORS["chart2"],
        ter=0.12, avg_daily_volume=200_000, expected_return=0.064, volatility=0.17,
        region_exposure={"NL": 0.01, "EU_EX_NL": 0.42, "US": 0.0, "DEV_EX_US_EU": 0.54, "EM": 0.03},
        is_esg=True,
    ),
]
