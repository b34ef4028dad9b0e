"""
Stack16 - ETF Portfolio Optimiser

Chooses ETF weights from the optimisation parameters mapped from the
questionnaire scores:

    maximise   w.mu - fee_penalty * w.ter - liquidity_penalty * w.illiquidity
               - risk_aversion * w' Sigma w - region_penalty * |R w - t|^2
    subject to sum(w) = 1, 0 <= w <= max_weight, at most max_etfs funds,
               annual volatility at or below target_volatility

Funds with more than `exclusion_threshold` exposure to an excluded industry
are screened out before optimising, so the portfolio-level exposure can
never exceed it. Uses an analytical solve per point of a risk-aversion grid
(no external optimiser dependency); constraints are applied by clipping and
renormalising each candidate.
"""

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd

from stack16.config.etf_universe import ETF_UNIVERSE, UniverseETF
from stack16.config.settings import (
    ETF_CORRELATIONS, MIN_REGION_EXPOSURE, MIN_REPORTED_WEIGHT, RISK_FREE_RATE,
)
from stack16.portfolio.generator import ETFAllocation, normalize_to_100
from stack16.scoring.mapping import ALL_REGIONS, OptimizationParams

logger = logging.getLogger(__name__)


@dataclass
class OptimizedPortfolio:
    allocations: List[ETFAllocation]
    weights: Dict[str, float]
    expected_return: float
    expected_volatility: float
    sharpe_ratio: float
    region_exposure: Dict[str, float]
    total_fees: float              # weighted TER, percent per year
    constraints: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


# ─────────────────────────────────────────────────────────────────────
# Universe and risk model
# ─────────────────────────────────────────────────────────────────────

def filter_universe(
    params: OptimizationParams,
    universe: Sequence[UniverseETF] = None,
) -> List[UniverseETF]:
    """
    Funds the optimiser may hold.

    Drops funds above the exclusion threshold in any excluded industry, then
    keeps funds with meaningful exposure to at least one selected region.
    If no fund covers the selected regions the region screen is skipped and
    the region penalty alone steers the mix.
    """
    universe = ETF_UNIVERSE if universe is None else universe
    excluded = set(params.industry_exclusions)

    screened = [
        etf for etf in universe
        if all(etf.industry_exposure.get(code, 0.0) <= params.exclusion_threshold for code in excluded)
    ]
    if not screened:
        raise ValueError("No ETFs match the investment criteria")

    selected = [r for r, share in params.target_region_mix.items() if share > 0]
    in_region = [
        etf for etf in screened
        if any(etf.region_exposure.get(r, 0.0) > MIN_REGION_EXPOSURE for r in selected)
    ]
    if not in_region:
        logger.warning("No fund covers regions %s; using all %d screened funds", selected, len(screened))
        return screened
    return in_region


def build_etf_covariance(etfs: Sequence[UniverseETF]) -> pd.DataFrame:
    """C_ij = corr(class_i, class_j) * std_i * std_j, indexed by ticker."""
    tickers = [e.ticker for e in etfs]
    std = np.array([e.volatility for e in etfs])

    corr = np.eye(len(etfs))
    for i, a in enumerate(etfs):
        for j, b in enumerate(etfs):
            if i != j:
                corr[i, j] = ETF_CORRELATIONS["_".join(sorted((a.asset_class, b.asset_class)))]

    return pd.DataFrame(corr * np.outer(std, std), index=tickers, columns=tickers)


# ─────────────────────────────────────────────────────────────────────
# Constraints
# ─────────────────────────────────────────────────────────────────────

def _cap_weights(w: np.ndarray, cap: float) -> np.ndarray:
    """Normalise to 1 with no weight above cap; the excess is spread pro rata."""
    w = w / w.sum()
    if np.count_nonzero(w) * cap < 1.0:
        return w

    capped = np.zeros(len(w), dtype=bool)
    for _ in range(len(w)):
        over = (w > cap + 1e-12) & ~capped
        if not over.any():
            break
        capped |= over
        w[capped] = cap
        free = ~capped & (w > 0)
        if not free.any():
            break
        w[free] *= (1.0 - cap * capped.sum()) / w[free].sum()
    return w


def apply_weight_constraints(raw: np.ndarray, params: OptimizationParams) -> np.ndarray:
    """Long-only, at most max_etfs funds, min/max weight, fully invested."""
    n = len(raw)
    w = np.clip(raw, 0.0, None)
    if w.sum() <= 0:
        w = np.ones(n)

    ranked = np.argsort(-raw, kind="stable")
    limit = max(1, min(params.max_etfs, n))
    w[ranked[limit:]] = 0.0

    # Hold enough funds for the cap to be reachable
    needed = min(limit, math.ceil(1.0 / params.max_weight - 1e-9))
    for i in ranked[:needed]:
        if w[i] <= 0:
            w[i] = 1e-6

    held = w > 0
    w[held] = np.maximum(w[held], params.min_weight)
    return _cap_weights(w, params.max_weight)


def _volatility(w: np.ndarray, sigma: np.ndarray) -> float:
    return float(np.sqrt(max(w @ sigma @ w, 1e-12)))


# ─────────────────────────────────────────────────────────────────────
# Optimiser
# ─────────────────────────────────────────────────────────────────────

def optimize_etf_portfolio(
    params: OptimizationParams,
    universe: Sequence[UniverseETF] = None,
) -> OptimizedPortfolio:
    """
    Mean-variance ETF portfolio for the given parameters.

    Candidates come from a grid search on risk aversion. Among candidates
    within the volatility target the one with the best penalised objective
    wins; if none is within target, the one closest to it is used.
    Raises ValueError when no fund survives the screens.
    """
    etfs = filter_universe(params, universe)
    tickers = [e.ticker for e in etfs]
    n = len(etfs)

    sigma = build_etf_covariance(etfs).values
    mu = np.array([e.expected_return for e in etfs])
    fees = np.array([e.ter / 100.0 for e in etfs])
    illiquidity = np.array([1.0 / (e.avg_daily_volume + 1000.0) for e in etfs])
    mu_adj = mu - params.fee_penalty * fees - params.liquidity_penalty * illiquidity

    # Region exposure R (regions x funds) against the target mix t
    exposure = np.array([[e.region_exposure.get(r, 0.0) for e in etfs] for r in ALL_REGIONS])
    target = np.array([params.target_region_mix.get(r, 0.0) for r in ALL_REGIONS])
    beta = params.region_penalty

    def objective(w: np.ndarray) -> float:
        gap = exposure @ w - target
        return float(w @ mu_adj - params.risk_aversion * (w @ sigma @ w) - beta * (gap @ gap))

    candidates = [apply_weight_constraints(np.ones(n), params)]
    region_term = 2 * beta * exposure.T @ exposure
    region_pull = 2 * beta * exposure.T @ target
    for gamma in np.logspace(-2, 3, 200):
        try:
            raw = np.linalg.solve(2 * gamma * sigma + region_term + 1e-8 * np.eye(n), mu_adj + region_pull)
        except np.linalg.LinAlgError:
            continue
        candidates.append(apply_weight_constraints(raw, params))

    best_weights, best_score = None, -np.inf
    closest_weights, best_vol_diff = candidates[0], np.inf
    for w in candidates:
        vol = _volatility(w, sigma)
        if vol <= params.target_volatility:
            score = objective(w)
            if score > best_score:
                best_score, best_weights = score, w
        vol_diff = abs(vol - params.target_volatility)
        if vol_diff < best_vol_diff:
            best_vol_diff, closest_weights = vol_diff, w

    within_target = best_weights is not None
    weights = best_weights if within_target else closest_weights
    if not within_target:
        logger.warning("No candidate within %.1f%% vol; using the closest", params.target_volatility * 100)

    port_ret = float(weights @ mu)
    port_vol = _volatility(weights, sigma)
    sharpe = (port_ret - RISK_FREE_RATE) / port_vol if port_vol > 0 else 0.0

    held = sorted(
        ((etf, float(w)) for etf, w in zip(etfs, weights) if w >= MIN_REPORTED_WEIGHT),
        key=lambda pair: pair[1], reverse=True,
    )
    rows = [
        ETFAllocation(ticker=etf.ticker, name=etf.name, percentage=w * 100, color=etf.color, asset_type=etf.asset_type)
        for etf, w in held
    ]
    allocations = [a for a in normalize_to_100(rows) if a.percentage > 0]

    logger.info(
        "Optimised portfolio: %d funds, ret %.2f%%, vol %.2f%% (target %.2f%%)",
        len(allocations), port_ret * 100, port_vol * 100, params.target_volatility * 100,
    )

    return OptimizedPortfolio(
        allocations=allocations,
        weights={etf.ticker: round(w, 4) for etf, w in held},
        expected_return=round(port_ret, 4),
        expected_volatility=round(port_vol, 4),
        sharpe_ratio=round(sharpe, 3),
        region_exposure={r: round(float(x), 4) for r, x in zip(ALL_REGIONS, exposure @ weights)},
        total_fees=round(float(weights @ fees) * 100, 4),
        constraints={
            "target_volatility": round(params.target_volatility, 4),
            "within_target_volatility": within_target,
            "max_etfs": params.max_etfs,
            "max_weight": params.max_weight,
            "industry_exclusions": list(params.industry_exclusions),
            "eligible_funds": tickers,
        },
    )
