"""Synthetic detection records for demos and tests.

Each generated day carries roughly 100 HIGH and 200 MEDIUM single records plus
a fixed number of LOW batch records whose weights make up the remainder of the
daily volume. Only single records are ever reviewed, so every batch is
PENDING.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import numpy as np

from risk_report.config import SyntheticConfig
from risk_report.models import (
    BATCH_SUBJECT_REF,
    LOW_TIER_CATEGORY,
    Record,
    ReviewOutcome,
    ReviewState,
    RiskTier,
)

LOGGER = logging.getLogger(__name__)

ENTITIES = [
    ("7501556", "Relay Number Migration"),
    ("7122191", "Local Services Outbound"),
    ("7100725", "Open Platform Voice"),
    ("7882910", "Retail Support Center"),
    ("7991022", "Collections Vendor A"),
    ("8829101", "Insurance Telesales"),
    ("6629122", "Online Education Follow-up"),
    ("9921001", "Bank Card Center"),
    ("9921002", "Consumer Finance Collections B"),
]
CATEGORIES = [
    "impersonation-authority",
    "regulatory-violation",
    "loan-solicitation",
    "fake-investment",
    "romance-investment",
    LOW_TIER_CATEGORY,
]
SIGNALS = [
    "agent-claims-police",
    "discusses-options-trading",
    "pushes-suspicious-app",
    "asks-for-verification-code",
    "requests-transfer",
    "high-call-frequency",
    "abusive-language",
    "solicits-complaints",
]
REVIEWERS = ["renyl", "zhangzeng", "fangsy"]


def _pick(rng: np.random.Generator, items: list) -> object:
    return items[int(rng.integers(len(items)))]


def _call_time(rng: np.random.Generator, day: date, tz: ZoneInfo) -> datetime:
    return datetime(
        day.year,
        day.month,
        day.day,
        9 + int(rng.integers(11)),
        int(rng.integers(60)),
        tzinfo=tz,
    )


def _review_outcome(rng: np.random.Generator, tier: RiskTier) -> ReviewOutcome:
    roll = rng.random()
    if tier is RiskTier.HIGH:
        if roll > 0.4:
            return ReviewOutcome.TRUE_POSITIVE
        if roll > 0.15:
            return ReviewOutcome.SUSPECTED
        if roll > 0.05:
            return ReviewOutcome.POLICY_VIOLATION
        return ReviewOutcome.FALSE_POSITIVE
    if tier is RiskTier.MEDIUM:
        if roll > 0.6:
            return ReviewOutcome.FALSE_POSITIVE
        if roll > 0.3:
            return ReviewOutcome.SUSPECTED
        if roll > 0.1:
            return ReviewOutcome.POLICY_VIOLATION
        return ReviewOutcome.TRUE_POSITIVE
    return ReviewOutcome.FALSE_POSITIVE


def _single_record(
    rng: np.random.Generator,
    record_id: str,
    day: date,
    tier: RiskTier,
    tz: ZoneInfo,
) -> Record:
    review_probability = {RiskTier.HIGH: 0.95, RiskTier.MEDIUM: 0.70}.get(tier, 0.01)
    reviewed = rng.random() < review_probability
    entity_id, entity_name = _pick(rng, ENTITIES)
    is_low = tier is RiskTier.LOW
    return Record(
        id=record_id,
        entity_id=entity_id,
        entity_name=entity_name,
        subject_ref=f"1{int(rng.integers(100, 1000))}****{int(rng.integers(1000, 10000))}",
        occurred_at=_call_time(rng, day, tz),
        duration_seconds=int(rng.integers(30, 630)),
        risk_tier=tier,
        category=LOW_TIER_CATEGORY if is_low else str(_pick(rng, CATEGORIES)),
        signals=() if is_low else (str(_pick(rng, SIGNALS)),),
        review_state=ReviewState.REVIEWED if reviewed else ReviewState.PENDING,
        review_outcome=_review_outcome(rng, tier) if reviewed else ReviewOutcome.PENDING,
        reviewer_id=str(_pick(rng, REVIEWERS)) if reviewed else None,
        weight=1,
    )


def _batch_record(
    rng: np.random.Generator,
    record_id: str,
    day: date,
    weight: int,
    tz: ZoneInfo,
) -> Record:
    entity_id, entity_name = _pick(rng, ENTITIES)
    return Record(
        id=record_id,
        entity_id=entity_id,
        entity_name=entity_name,
        subject_ref=BATCH_SUBJECT_REF,
        occurred_at=_call_time(rng, day, tz),
        duration_seconds=0,
        risk_tier=RiskTier.LOW,
        category=LOW_TIER_CATEGORY,
        weight=weight,
    )


def generate_records(
    config: SyntheticConfig,
    timezone_name: str,
    today: date | None = None,
) -> list[Record]:
    """Generate ``config.days`` days of records ending at ``today``, newest first."""
    tz = ZoneInfo(timezone_name)
    today = today or datetime.now(tz).date()
    rng = np.random.default_rng(config.random_seed)
    high_target = 80 + rng.random() * 40
    medium_target = 180 + rng.random() * 60

    records: list[Record] = []
    for offset in range(config.days):
        day = today - timedelta(days=offset)
        prefix = day.strftime("%Y%m%d")
        sequence = 0

        high_count = int(high_target * (0.8 + rng.random() * 0.4))
        medium_count = int(medium_target * (0.8 + rng.random() * 0.4))
        for tier, count in ((RiskTier.HIGH, high_count), (RiskTier.MEDIUM, medium_count)):
            for _ in range(count):
                sequence += 1
                records.append(_single_record(rng, f"REC-{prefix}-{sequence:06d}", day, tier, tz))

        low_total = int(
            (config.daily_total_target - high_count - medium_count) * (0.9 + rng.random() * 0.2)
        )
        batch_weight = low_total // config.low_batches_per_day
        if batch_weight >= 1:
            for batch in range(config.low_batches_per_day):
                records.append(
                    _batch_record(rng, f"BATCH-{prefix}-{batch + 1:03d}", day, batch_weight, tz)
                )

    records.sort(key=lambda record: record.occurred_at, reverse=True)
    LOGGER.info("Generated %d records covering %d day(s)", len(records), config.days)
    return records
