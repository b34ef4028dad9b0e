"""
Stack16 - Record Store

In-process store for assessments, investor profiles, allocations, ETF
portfolios and chat messages. Records are frozen dataclasses: once written
they are never mutated, and a new questionnaire submission produces new
records instead of editing old ones.
"""

import logging
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from stack16.portfolio.generator import ETFAllocation
from stack16.scoring.allocation import AllocationMetadata, AllocationResult, ProfileInput
from stack16.scoring.questionnaire import InvestorScores

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RiskAssessment:
    user_id: str
    answers: dict
    investor_profile: InvestorScores
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class InvestorProfile:
    user_id: str
    risk_assessment_id: Optional[str]
    risk_tolerance: int
    investment_horizon: int
    risk_capacity: str
    experience_level: str
    cash_preference: int
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)

    def engine_input(self) -> ProfileInput:
        return ProfileInput(
            risk_tolerance=self.risk_tolerance,
            investment_horizon=self.investment_horizon,
            risk_capacity=self.risk_capacity,
            experience_level=self.experience_level,
            cash_preference=self.cash_preference,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class AssetAllocation:
    user_id: str
    investor_profile_id: str
    equity_percent: float
    bonds_percent: float
    cash_percent: float
    other_percent: float
    holdings_count: int
    allocation_metadata: AllocationMetadata
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)

    def percentages(self) -> Dict[str, float]:
        return {
            "equity": self.equity_percent,
            "bonds": self.bonds_percent,
            "cash": self.cash_percent,
            "other": self.other_percent,
        }

    def to_dict(self) -> dict:
        d = asdict(self)
        d["allocation_metadata"] = self.allocation_metadata.to_dict()
        return d


@dataclass(frozen=True)
class Portfolio:
    user_id: str
    risk_assessment_id: Optional[str]
    allocations: List[ETFAllocation]
    total_value: int = 0
    total_return: int = 0          # percent * 100, e.g. 8.4% = 840
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class PortfolioMessage:
    user_id: str
    portfolio_id: str
    sender: str                    # user / ai
    content: str
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict:
        return asdict(self)


class Store:
    """Thread-safe in-memory store. Lists are append-only, newest last."""

    def __init__(self):
        self._lock = threading.Lock()
        self._assessments: List[RiskAssessment] = []
        self._profiles: List[InvestorProfile] = []
        self._allocations: List[AssetAllocation] = []
        self._portfolios: List[Portfolio] = []
        self._messages: Dict[str, List[PortfolioMessage]] = {}

    # ── Assessments ─────────────────────────────────────────────────

    def create_risk_assessment(self, user_id: str, answers: dict, investor_profile: InvestorScores) -> RiskAssessment:
        record = RiskAssessment(user_id=user_id, answers=dict(answers), investor_profile=investor_profile)
        with self._lock:
            self._assessments.append(record)
        logger.info("Stored risk assessment %s for user %s", record.id, user_id)
        return record

    def get_risk_assessment_by_user_id(self, user_id: str) -> Optional[RiskAssessment]:
        with self._lock:
            return next((a for a in reversed(self._assessments) if a.user_id == user_id), None)

    # ── Investor profiles ───────────────────────────────────────────

    def create_investor_profile(
        self,
        user_id: str,
        profile: ProfileInput,
        risk_assessment_id: Optional[str] = None,
    ) -> InvestorProfile:
        record = InvestorProfile(
            user_id=user_id,
            risk_assessment_id=risk_assessment_id,
            risk_tolerance=profile.risk_tolerance,
            investment_horizon=profile.investment_horizon,
            risk_capacity=profile.risk_capacity,
            experience_level=profile.experience_level,
            cash_preference=profile.cash_preference,
        )
        with self._lock:
            self._profiles.append(record)
        return record

    def get_investor_profile(self, profile_id: str) -> Optional[InvestorProfile]:
        with self._lock:
            return next((p for p in self._profiles if p.id == profile_id), None)

    def get_investor_profile_by_user_id(self, user_id: str) -> Optional[InvestorProfile]:
        with self._lock:
            return next((p for p in reversed(self._profiles) if p.user_id == user_id), None)

    # ── Asset allocations ───────────────────────────────────────────

    def create_asset_allocation(self, user_id: str, profile_id: str, result: AllocationResult) -> AssetAllocation:
        """Store the allocation for a profile, or return the one already derived."""
        with self._lock:
            existing = next((a for a in self._allocations if a.investor_profile_id == profile_id), None)
            if existing is not None:
                return existing
            record = AssetAllocation(
                user_id=user_id,
                investor_profile_id=profile_id,
                equity_percent=result.equity_percent,
                bonds_percent=result.bonds_percent,
                cash_percent=result.cash_percent,
                other_percent=result.other_percent,
                holdings_count=result.holdings_count,
                allocation_metadata=result.allocation_metadata,
            )
            self._allocations.append(record)
        return record

    def get_allocation_for_profile(self, profile_id: str) -> Optional[AssetAllocation]:
        with self._lock:
            return next((a for a in self._allocations if a.investor_profile_id == profile_id), None)

    def get_asset_allocation(self, allocation_id: str) -> Optional[AssetAllocation]:
        with self._lock:
            return next((a for a in self._allocations if a.id == allocation_id), None)

    def get_current_allocation(self, user_id: str) -> Optional[AssetAllocation]:
        with self._lock:
            return next((a for a in reversed(self._allocations) if a.user_id == user_id), None)

    def get_allocation_history(self, user_id: str, limit: int = 10, offset: int = 0) -> tuple:
        """(page newest-first, total count)"""
        with self._lock:
            history = [a for a in reversed(self._allocations) if a.user_id == user_id]
        return history[offset:offset + limit], len(history)

    # ── Portfolios ──────────────────────────────────────────────────

    def create_portfolio(
        self,
        user_id: str,
        allocations: List[ETFAllocation],
        risk_assessment_id: Optional[str] = None,
    ) -> Portfolio:
        record = Portfolio(user_id=user_id, risk_assessment_id=risk_assessment_id, allocations=list(allocations))
        with self._lock:
            self._portfolios.append(record)
        return record

    def get_portfolio_by_user_id(self, user_id: str) -> Optional[Portfolio]:
        with self._lock:
            return next((p for p in reversed(self._portfolios) if p.user_id == user_id), None)

    # ── Chat messages ───────────────────────────────────────────────

    def create_portfolio_message(self, user_id: str, portfolio_id: str, sender: str, content: str) -> PortfolioMessage:
        if sender not in ("user", "ai"):
            raise ValueError(f"Unknown message sender '{sender}'")
        record = PortfolioMessage(user_id=user_id, portfolio_id=portfolio_id, sender=sender, content=content)
        with self._lock:
            self._messages.setdefault(portfolio_id, []).append(record)
        return record

    def get_portfolio_messages(self, portfolio_id: str) -> List[PortfolioMessage]:
        with self._lock:
            return list(self._messages.get(portfolio_id, []))

    def delete_portfolio_messages(self, portfolio_id: str) -> int:
        with self._lock:
            removed = self._messages.pop(portfolio_id, [])
        logger.info("Deleted %d messages for portfolio %s", len(removed), portfolio_id)
        return len(removed)
