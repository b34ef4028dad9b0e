"""
Stack16 - Allocation Analytics

Expected return, volatility and stress losses for a four-way asset
allocation, from the capital-market assumptions in settings. Same maths as
a mean-variance portfolio: return = w.mu, vol = sqrt(w' Sigma w).
"""

import logging
from typing import Dict

import numpy as np
import pandas as pd

from stack16.config.settings import (
    ASSET_CLASSES, CORRELATIONS, EXPECTED_RETURNS, RISK_FREE_RATE,
    STRESS_SCENARIOS, VOLATILITIES,
)

logger = logging.getLogger(__name__)


def build_covariance(
    volatilities: Dict[str, float] = None,
    correlations=None,
) -> pd.DataFrame:
    """C_ij = corr_ij * std_i * std_j, indexed by asset class."""
    volatilities = volatilities or VOLATILITIES
    corr = np.asarray(correlations if correlations is not None else CORRELATIONS, dtype=float)
    std = np.array([volatilities[a] for a in ASSET_CLASSES])
    cov = corr * np.outer(std, std)
    return pd.DataFrame(cov, index=ASSET_CLASSES, columns=ASSET_CLASSES)


def _weights(percentages: Dict[str, float]) -> pd.Series:
    """Percent dict -> decimal weight vector aligned to ASSET_CLASSES."""
    return pd.Series(percentages, dtype=float).reindex(ASSET_CLASSES).fillna(0.0) / 100.0


def compute_allocation_stats(
    percentages: Dict[str, float],
    expected_ret: Dict[str, float] = None,
    cov_matrix: pd.DataFrame = None,
    risk_free_rate: float = RISK_FREE_RATE,
) -> dict:
    """
    Expected return, annual volatility and Sharpe ratio of an asset-class
    allocation.

    `percentages` holds percent weights (0-100) keyed by asset class
    ("equity", "bonds", "cash", "other"), as produced by the allocation
    engine. Missing classes count as 0. Returns decimals.
    """
    w = _weights(percentages).values
    mu = pd.Series(expected_ret or EXPECTED_RETURNS).reindex(ASSET_CLASSES).fillna(0.0).values
    sigma = (cov_matrix if cov_matrix is not None else build_covariance()).values

    port_ret = float(w @ mu)
    port_vol = float(np.sqrt(max(w @ sigma @ w, 1e-12)))
    sharpe = (port_ret - risk_free_rate) / port_vol if port_vol > 0 else 0

    return {
        "expected_return": round(port_ret, 4),
        "annual_vol": round(port_vol, 4),
        "sharpe_ratio": round(sharpe, 3),
    }


def stress_test_allocation(percentages: Dict[str, float], scenario_name: str) -> float:
    """Apply a stress scenario to an allocation. Returns expected loss (decimal)."""
    if scenario_name not in STRESS_SCENARIOS:
        raise KeyError(f"Unknown stress scenario '{scenario_name}'")
    scenario = pd.Series(STRESS_SCENARIOS[scenario_name]).reindex(ASSET_CLASSES).fillna(0.0)
    loss = float((_weights(percentages) * scenario).sum())
    return round(loss, 4)


def analyse_allocation(percentages: Dict[str, float]) -> dict:
    """Stats plus every stress scenario, ready for the API and the chat prompt."""
    result = compute_allocation_stats(percentages)
    result["stress_tests"] = {
        name: stress_test_allocation(percentages, name) for name in STRESS_SCENARIOS
    }
    return result
