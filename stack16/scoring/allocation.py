"""
Stack16 - Asset Allocation Engine

Deterministic pipeline from an investor profile to a four-way split:

    1) base equity/bonds from the risk-tolerance band (interpolated inside
       the band, averaged at exact band edges)
    2) horizon adjustment: more equity for longer horizons
    3) capacity cap: equity above the capacity limit moves to bonds
    4) remainder split between cash and other by the user's cash preference
    5) holdings count from active classes and experience level
    6) normalisation so the four percentages sum to exactly 100

Every step records what it did in AllocationMetadata for the audit trail.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Optional, Tuple

from stack16.config.settings import (
    ALLOCATION_SUM_TOLERANCE, BAND_WIDTH, BOUNDARY_ALLOCATIONS,
    CAPACITY_EQUITY_CAPS, HIGH_BAND_EQUITY, HOLDINGS_PER_CLASS,
    HORIZON_STEPS, LOW_BAND_EQUITY, LOW_BAND_UPPER, MODERATE_BAND_EQUITY,
    MODERATE_BAND_UPPER,
)
from stack16.scoring.questionnaire import round_half_up

logger = logging.getLogger(__name__)

ASSET_KEYS = ("equity", "bonds", "cash", "other")


@dataclass(frozen=True)
class ProfileInput:
    """What the engine needs to know about an investor."""
    risk_tolerance: int            # 0-100
    investment_horizon: int        # years, >= 1
    risk_capacity: str             # low / medium / high
    experience_level: str          # beginner / intermediate / experienced / expert
    cash_preference: int = 50      # 0-100, share of the remainder held as cash


@dataclass
class BaseAllocation:
    equity: float
    bonds: float


@dataclass
class BoundaryInterpolation:
    applied: bool
    risk_tolerance: int
    band1: str
    band2: str


@dataclass
class HorizonAdjustment:
    equity_increase: float
    horizon_category: str          # short / medium / long


@dataclass
class CapacityConstraint:
    original_equity: float
    capped_equity: float
    cap_applied: bool
    capacity_level: str


@dataclass
class RemainderSplit:
    total_remainder: float
    cash_percent: float
    other_percent: float


@dataclass
class AllocationMetadata:
    base_allocation: BaseAllocation
    horizon_adjustment: HorizonAdjustment
    capacity_constraint: CapacityConstraint
    remainder_split: RemainderSplit
    boundary_interpolation: Optional[BoundaryInterpolation] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        if self.boundary_interpolation is None:
            d.pop("boundary_interpolation")
        return d


@dataclass
class AllocationResult:
    equity_percent: float
    bonds_percent: float
    cash_percent: float
    other_percent: float
    holdings_count: int
    allocation_metadata: AllocationMetadata

    def percentages(self) -> Dict[str, float]:
        return {
            "equity": self.equity_percent,
            "bonds": self.bonds_percent,
            "cash": self.cash_percent,
            "other": self.other_percent,
        }


# ─────────────────────────────────────────────────────────────────────
# Step 1: Base allocation from risk tolerance
# ─────────────────────────────────────────────────────────────────────

def get_base_allocation(risk_tolerance: float) -> Tuple[BaseAllocation, Optional[BoundaryInterpolation]]:
    if not 0 <= risk_tolerance <= 100:
        raise ValueError(f"risk_tolerance must be within [0, 100], got {risk_tolerance}")

    if risk_tolerance in BOUNDARY_ALLOCATIONS:
        equity, bonds, band1, band2 = BOUNDARY_ALLOCATIONS[risk_tolerance]
        return (
            BaseAllocation(equity=equity, bonds=bonds),
            BoundaryInterpolation(applied=True, risk_tolerance=int(risk_tolerance), band1=band1, band2=band2),
        )

    if risk_tolerance < LOW_BAND_UPPER:
        start, span = LOW_BAND_EQUITY
        equity = start + (risk_tolerance / BAND_WIDTH) * span
    elif risk_tolerance < MODERATE_BAND_UPPER:
        start, span = MODERATE_BAND_EQUITY
        equity = start + ((risk_tolerance - LOW_BAND_UPPER) / BAND_WIDTH) * span
    else:
        start, span = HIGH_BAND_EQUITY
        equity = min(start + ((risk_tolerance - MODERATE_BAND_UPPER) / BAND_WIDTH) * span, 100.0)

    return BaseAllocation(equity=equity, bonds=max(100.0 - equity, 0.0)), None


# ─────────────────────────────────────────────────────────────────────
# Step 2: Horizon adjustment
# ─────────────────────────────────────────────────────────────────────

def horizon_category(years: float) -> Tuple[float, str]:
    for upper, increase, category in HORIZON_STEPS:
        if years < upper:
            return increase, category
    return HORIZON_STEPS[-1][1], HORIZON_STEPS[-1][2]


def apply_horizon_adjustment(base: BaseAllocation, years: float) -> Tuple[BaseAllocation, HorizonAdjustment]:
    increase, category = horizon_category(years)
    adjusted = BaseAllocation(
        equity=min(base.equity + increase, 100.0),
        bonds=max(base.bonds - increase, 0.0),
    )
    return adjusted, HorizonAdjustment(equity_increase=increase, horizon_category=category)


# ─────────────────────────────────────────────────────────────────────
# Step 3: Capacity cap
# ─────────────────────────────────────────────────────────────────────

def apply_capacity_constraint(
    allocation: BaseAllocation,
    capacity: str,
) -> Tuple[BaseAllocation, CapacityConstraint]:
    max_equity = CAPACITY_EQUITY_CAPS.get(capacity, 100.0)
    original = allocation.equity

    if allocation.equity > max_equity:
        excess = allocation.equity - max_equity
        capped = BaseAllocation(equity=max_equity, bonds=allocation.bonds + excess)
        return capped, CapacityConstraint(
            original_equity=original, capped_equity=max_equity,
            cap_applied=True, capacity_level=capacity,
        )

    return allocation, CapacityConstraint(
        original_equity=original, capped_equity=original,
        cap_applied=False, capacity_level=capacity,
    )


# ─────────────────────────────────────────────────────────────────────
# Step 4: Remainder split
# ─────────────────────────────────────────────────────────────────────

def apply_remainder(allocation: BaseAllocation, cash_preference: float) -> Tuple[Dict[str, float], RemainderSplit]:
    if not 0 <= cash_preference <= 100:
        raise ValueError(f"cash_preference must be within [0, 100], got {cash_preference}")

    remainder = 100.0 - allocation.equity - allocation.bonds
    cash = remainder * cash_preference / 100.0
    other = remainder - cash

    split = {
        "equity": allocation.equity,
        "bonds": allocation.bonds,
        "cash": round(cash, 2),
        "other": round(other, 2),
    }
    return split, RemainderSplit(total_remainder=remainder, cash_percent=cash, other_percent=other)


# ─────────────────────────────────────────────────────────────────────
# Step 5: Holdings count
# ─────────────────────────────────────────────────────────────────────

def calculate_holdings_count(allocation: Dict[str, float], experience_level: str) -> int:
    active = sum(1 for k in ASSET_KEYS if allocation.get(k, 0) > 0)
    return round_half_up(active * HOLDINGS_PER_CLASS.get(experience_level, 1.0))


# ─────────────────────────────────────────────────────────────────────
# Step 6: Normalisation
# ─────────────────────────────────────────────────────────────────────

def normalize_allocation(allocation: Dict[str, float]) -> Dict[str, float]:
    """
    Scale to 100 (when off by more than the tolerance) and round to 2 decimals.

    Rounding can leave a residual of a cent or two; it goes to the largest
    class so the four values always add to exactly 100.00.
    """
    total = sum(allocation[k] for k in ASSET_KEYS)
    if total <= 0:
        raise ValueError("Cannot normalise an allocation with no weight")

    factor = 1.0 if abs(total - 100.0) < ALLOCATION_SUM_TOLERANCE else 100.0 / total
    normalized = {k: round(allocation[k] * factor, 2) for k in ASSET_KEYS}

    residual = round(100.0 - sum(normalized.values()), 2)
    if residual:
        largest = max(ASSET_KEYS, key=lambda k: normalized[k])
        normalized[largest] = round(normalized[largest] + residual, 2)
    return normalized


# ─────────────────────────────────────────────────────────────────────
# Full pipeline
# ─────────────────────────────────────────────────────────────────────

def calculate_allocation(profile: ProfileInput) -> AllocationResult:
    """Run all six steps for one investor profile."""
    base, interpolation = get_base_allocation(profile.risk_tolerance)
    horizon_adjusted, horizon = apply_horizon_adjustment(base, profile.investment_horizon)
    capped, constraint = apply_capacity_constraint(horizon_adjusted, profile.risk_capacity)
    split, remainder = apply_remainder(capped, profile.cash_preference)
    holdings = calculate_holdings_count(split, profile.experience_level)
    normalized = normalize_allocation(split)

    metadata = AllocationMetadata(
        base_allocation=BaseAllocation(equity=base.equity, bonds=base.bonds),
        horizon_adjustment=horizon,
        capacity_constraint=constraint,
        remainder_split=remainder,
        boundary_interpolation=interpolation,
    )

    logger.info(
        "Allocation for rt=%s horizon=%sy capacity=%s: equity %.2f / bonds %.2f / cash %.2f / other %.2f",
        profile.risk_tolerance, profile.investment_horizon, profile.risk_capacity,
        normalized["equity"], normalized["bonds"], normalized["cash"], normalized["other"],
    )

    return AllocationResult(
        equity_percent=normalized["equity"],
        bonds_percent=normalized["bonds"],
        cash_percent=normalized["cash"],
        other_percent=normalized["other"],
        holdings_count=holdings,
        allocation_metadata=metadata,
    )
