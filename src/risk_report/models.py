from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from risk_report import rates


class RiskTier(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    # Reserved; accepted on input but never assigned to a tier bucket.
    NORMAL = "NORMAL"


class ReviewState(str, Enum):
    REVIEWED = "REVIEWED"
    PENDING = "PENDING"


class ReviewOutcome(str, Enum):
    TRUE_POSITIVE = "TRUE_POSITIVE"
    SUSPECTED = "SUSPECTED"
    POLICY_VIOLATION = "POLICY_VIOLATION"
    FALSE_POSITIVE = "FALSE_POSITIVE"
    PENDING = "PENDING"


BUCKETED_TIERS = (RiskTier.HIGH, RiskTier.MEDIUM, RiskTier.LOW)
REVIEWED_OUTCOMES = (
    ReviewOutcome.TRUE_POSITIVE,
    ReviewOutcome.SUSPECTED,
    ReviewOutcome.POLICY_VIOLATION,
    ReviewOutcome.FALSE_POSITIVE,
)
LOW_TIER_CATEGORY = "normal"
BATCH_SUBJECT_REF = "BATCH_DATA"


@dataclass(frozen=True)
class Record:
    """One detection event, or ``weight`` identical events batched together."""

    id: str
    entity_id: str
    entity_name: str
    subject_ref: str
    occurred_at: datetime
    duration_seconds: int
    risk_tier: RiskTier
    category: str
    signals: tuple[str, ...] = ()
    review_state: ReviewState = ReviewState.PENDING
    review_outcome: ReviewOutcome = ReviewOutcome.PENDING
    reviewer_id: str | None = None
    weight: int = 1


@dataclass(frozen=True)
class CustomRange:
    start: date
    end: date

    @property
    def is_inverted(self) -> bool:
        return self.start > self.end


@dataclass(frozen=True)
class DashboardStats:
    total: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    high_reviewed: int = 0
    medium_reviewed: int = 0
    reviewed_total: int = 0
    true_positive: int = 0
    suspected: int = 0
    policy_violation: int = 0
    false_positive: int = 0

    @property
    def high_rate(self) -> float:
        return rates.tier_rate(self.high, self.total)

    @property
    def medium_rate(self) -> float:
        return rates.tier_rate(self.medium, self.total)

    @property
    def low_rate(self) -> float:
        return rates.tier_rate(self.low, self.total)

    @property
    def review_completion_rate(self) -> float:
        return rates.review_completion_rate(
            high_reviewed=self.high_reviewed,
            medium_reviewed=self.medium_reviewed,
            high=self.high,
            medium=self.medium,
        )

    @property
    def accuracy_rate(self) -> float:
        return rates.accuracy_rate(
            true_positive=self.true_positive,
            suspected=self.suspected,
            policy_violation=self.policy_violation,
            reviewed_total=self.reviewed_total,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.update(
            {
                "high_rate": self.high_rate,
                "medium_rate": self.medium_rate,
                "low_rate": self.low_rate,
                "review_completion_rate": self.review_completion_rate,
                "accuracy_rate": self.accuracy_rate,
            }
        )
        return data
