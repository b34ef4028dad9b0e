"""
Stack16 - Central Configuration
Single source of truth for all parameters. Change here, nowhere else.
"""
import os
from typing import Dict, List, Tuple

from dotenv import load_dotenv

load_dotenv()

APP_NAME = "Stack16"
APP_VERSION = "1.0.0"

# ─────────────────────────────────────────────────────────────────────
# Runtime
# ─────────────────────────────────────────────────────────────────────
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")   # development / test / production
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

CORS_ORIGINS: List[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# No authentication layer: callers identify themselves with this header.
USER_ID_HEADER = "X-User-Id"
DEFAULT_USER_ID = os.getenv("DEFAULT_USER_ID", "demo-user")

# ─────────────────────────────────────────────────────────────────────
# LLM chat assistant
# ─────────────────────────────────────────────────────────────────────
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
LLM_MODEL = os.getenv("LLM_MODEL", "claude-sonnet-4-20250514")
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "600"))
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.5"))

# ─────────────────────────────────────────────────────────────────────
# Allocation engine: risk-tolerance bands
# ─────────────────────────────────────────────────────────────────────
# Equity pairs are (equity at the band's lower edge, equity span across the band)
LOW_BAND_UPPER = 33
MODERATE_BAND_UPPER = 67
BAND_WIDTH = 33

LOW_BAND_EQUITY = (20.0, 20.0)        # 20% -> 40% equity
MODERATE_BAND_EQUITY = (40.0, 20.0)   # 40% -> 60% equity
HIGH_BAND_EQUITY = (70.0, 30.0)       # 70% -> 100% equity

# Exact band edges are averaged between the two neighbouring bands.
BOUNDARY_ALLOCATIONS: Dict[int, Tuple[float, float, str, str]] = {
    33: (40.0, 60.0, "low", "moderate"),
    66: (67.5, 32.5, "moderate", "high"),
}

# ─────────────────────────────────────────────────────────────────────
# Allocation engine: horizon, capacity, holdings
# ─────────────────────────────────────────────────────────────────────
# (upper bound in years exclusive, equity increase, category)
HORIZON_STEPS: List[Tuple[float, float, str]] = [
    (5, 0.0, "short"),
    (15, 10.0, "medium"),
    (float("inf"), 20.0, "long"),
]

CAPACITY_EQUITY_CAPS: Dict[str, float] = {
    "low": 60.0,
    "medium": 80.0,
    "high": 100.0,
}

HOLDINGS_PER_CLASS: Dict[str, float] = {
    "beginner": 1.0,
    "intermediate": 1.5,
    "experienced": 2.0,
    "expert": 2.5,
}

ALLOCATION_SUM_TOLERANCE = 0.01
DEFAULT_CASH_PREFERENCE = 50

# ─────────────────────────────────────────────────────────────────────
# Capital-market assumptions per asset class (annualised, decimal)
# ─────────────────────────────────────────────────────────────────────
ASSET_CLASSES: List[str] = ["equity", "bonds", "cash", "other"]

EXPECTED_RETURNS: Dict[str, float] = {
    "equity": 0.075,
    "bonds": 0.035,
    "cash": 0.02,
    "other": 0.05,
}

VOLATILITIES: Dict[str, float] = {
    "equity": 0.16,
    "bonds": 0.06,
    "cash": 0.005,
    "other": 0.12,
}

CORRELATIONS: List[List[float]] = [
    # equity bonds  cash   other
    [1.00,  0.10,  0.00,  0.60],
    [0.10,  1.00,  0.10,  0.20],
    [0.00,  0.10,  1.00,  0.00],
    [0.60,  0.20,  0.00,  1.00],
]

RISK_FREE_RATE = 0.02

# Historical peak-to-trough moves per asset class
STRESS_SCENARIOS: Dict[str, Dict[str, float]] = {
    "2008_GFC": {"equity": -0.51, "bonds": 0.05, "cash": 0.0, "other": -0.35},
    "2020_COVID": {"equity": -0.34, "bonds": 0.03, "cash": 0.0, "other": -0.25},
    "2022_RATE_SHOCK": {"equity": -0.25, "bonds": -0.17, "cash": 0.0, "other": -0.10},
}

# ─────────────────────────────────────────────────────────────────────
# Optimisation parameter mapping
# ─────────────────────────────────────────────────────────────────────
RISK_SCORE_WEIGHTS: Dict[str, float] = {
    "tolerance": 0.40,
    "capacity": 0.30,
    "horizon": 0.20,
    "experience": 0.10,
}

GLOBAL_REGION_MIX: Dict[str, float] = {
    "NL": 0.02,
    "EU_EX_NL": 0.13,
    "US": 0.60,
    "DEV_EX_US_EU": 0.15,
    "EM": 0.10,
}

FEE_PENALTY = 1.0
REGION_PENALTY = 10.0
LIQUIDITY_PENALTY = 2.0
EXCLUSION_THRESHOLD = 0.005
MAX_ETF_WEIGHT = 0.4

# ─────────────────────────────────────────────────────────────────────
# ETF optimiser
# ─────────────────────────────────────────────────────────────────────
# Pairwise fund correlations by asset class (equity / bond)
ETF_CORRELATIONS: Dict[str, float] = {
    "equity_equity": 0.80,
    "bond_bond": 0.60,
    "bond_equity": 0.10,
}

# A fund counts towards a selected region above this share of its holdings
MIN_REGION_EXPOSURE = 0.10
# Positions below this weight are not reported
MIN_REPORTED_WEIGHT = 0.001

# ─────────────────────────────────────────────────────────────────────
# ETF comparison
# ─────────────────────────────────────────────────────────────────────
MIN_COMPARE_ETFS = 2
MAX_COMPARE_ETFS = 4
