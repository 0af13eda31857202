from __future__ import annotations

from datetime import date

from risk_report.config import SyntheticConfig
from risk_report.features.aggregates import build_dashboard_stats
from risk_report.io.schema import records_to_frame
from risk_report.models import BATCH_SUBJECT_REF, ReviewState, RiskTier
from risk_report.synthetic import generate_records

TODAY = date(2024, 1, 10)


def _config(**overrides: int) -> SyntheticConfig:
    values = {"days": 3, "daily_total_target": 2_000, "low_batches_per_day": 5, "random_seed": 7}
    values.update(overrides)
    return SyntheticConfig(**values)


def test_generated_records_pass_validation_and_cover_requested_days() -> None:
    records = generate_records(_config(), timezone_name="Asia/Shanghai", today=TODAY)
    frame = records_to_frame(records)

    days = {record.occurred_at.date() for record in records}
    assert days == {date(2024, 1, 8), date(2024, 1, 9), date(2024, 1, 10)}
    assert frame["id"].is_unique
    assert frame["weight"].min() >= 1


def test_generated_records_are_newest_first() -> None:
    records = generate_records(_config(), timezone_name="Asia/Shanghai", today=TODAY)
    stamps = [record.occurred_at for record in records]

    assert stamps == sorted(stamps, reverse=True)


def test_batch_records_are_low_and_never_reviewed() -> None:
    records = generate_records(_config(), timezone_name="Asia/Shanghai", today=TODAY)
    batches = [record for record in records if record.subject_ref == BATCH_SUBJECT_REF]

    assert len(batches) == 3 * 5
    assert all(record.risk_tier is RiskTier.LOW for record in batches)
    assert all(record.review_state is ReviewState.PENDING for record in batches)
    assert all(record.weight > 1 for record in batches)


def test_singles_are_high_or_medium_with_unit_weight() -> None:
    records = generate_records(_config(), timezone_name="Asia/Shanghai", today=TODAY)
    singles = [record for record in records if record.subject_ref != BATCH_SUBJECT_REF]

    assert singles
    assert {record.risk_tier for record in singles} <= {RiskTier.HIGH, RiskTier.MEDIUM}
    assert all(record.weight == 1 for record in singles)
    assert all(
        (record.reviewer_id is not None) == (record.review_state is ReviewState.REVIEWED)
        for record in singles
    )


def test_daily_volume_lands_near_target() -> None:
    config = _config(days=1)
    records = generate_records(config, timezone_name="Asia/Shanghai", today=TODAY)
    stats = build_dashboard_stats(records_to_frame(records))

    assert 0.85 * config.daily_total_target <= stats.total <= 1.15 * config.daily_total_target
    assert stats.high_reviewed <= stats.high
    assert stats.medium_reviewed <= stats.medium


def test_generation_is_deterministic_for_a_seed() -> None:
    first = generate_records(_config(), timezone_name="Asia/Shanghai", today=TODAY)
    second = generate_records(_config(), timezone_name="Asia/Shanghai", today=TODAY)
    other = generate_records(_config(random_seed=8), timezone_name="Asia/Shanghai", today=TODAY)

    assert first == second
    assert first != other
