from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pandas as pd
import pytest

from risk_report.config import TimeConfig
from risk_report.features.aggregates import (
    DAY_ROW_COLUMNS,
    ENTITY_ROW_COLUMNS,
    build_counts_per_day,
    build_counts_per_entity,
    build_dashboard_stats,
    build_day_entity_breakdown,
    build_outcome_distribution,
    build_review_counts_per_day,
    build_tier_distribution,
    combine_stats,
)
from risk_report.io.schema import records_to_frame
from risk_report.models import Record, ReviewOutcome, ReviewState, RiskTier
from risk_report.preprocess.time import add_time_features

SHANGHAI = ZoneInfo("Asia/Shanghai")


def _record(
    record_id: str,
    tier: RiskTier,
    *,
    outcome: ReviewOutcome | None = None,
    weight: int = 1,
    entity: tuple[str, str] = ("E1", "Acme Lending"),
    at: datetime = datetime(2024, 1, 10, 9, 0, tzinfo=SHANGHAI),
) -> Record:
    reviewed = outcome is not None
    return Record(
        id=record_id,
        entity_id=entity[0],
        entity_name=entity[1],
        subject_ref="1380****1234",
        occurred_at=at,
        duration_seconds=60,
        risk_tier=tier,
        category="loan-solicitation",
        review_state=ReviewState.REVIEWED if reviewed else ReviewState.PENDING,
        review_outcome=outcome or ReviewOutcome.PENDING,
        reviewer_id="renyl" if reviewed else None,
        weight=weight,
    )


def _frame(records: list[Record]) -> pd.DataFrame:
    return add_time_features(df=records_to_frame(records), config=TimeConfig())


@pytest.fixture
def scenario_frame() -> pd.DataFrame:
    return _frame(
        [
            _record("R1", RiskTier.HIGH, outcome=ReviewOutcome.TRUE_POSITIVE),
            _record("R2", RiskTier.HIGH),
            _record("R3", RiskTier.MEDIUM, outcome=ReviewOutcome.FALSE_POSITIVE, weight=5),
        ]
    )


@pytest.fixture
def mixed_frame() -> pd.DataFrame:
    day1 = datetime(2024, 1, 10, 9, 0, tzinfo=SHANGHAI)
    day2 = datetime(2024, 1, 11, 9, 0, tzinfo=SHANGHAI)
    day3 = datetime(2024, 1, 12, 9, 0, tzinfo=SHANGHAI)
    beta = ("E2", "Beta Bank")
    beta_renamed = ("E2", "Beta Bank Ltd")
    return _frame(
        [
            _record("A", RiskTier.HIGH, outcome=ReviewOutcome.SUSPECTED, at=day1),
            _record("B", RiskTier.LOW, weight=40, at=day1),
            _record("C", RiskTier.MEDIUM, entity=beta, at=day2),
            _record("D", RiskTier.MEDIUM, outcome=ReviewOutcome.POLICY_VIOLATION, at=day2),
            _record("E", RiskTier.LOW, weight=25, entity=beta_renamed, at=day3),
            _record("F", RiskTier.NORMAL, weight=3, at=day3),
            _record("G", RiskTier.HIGH, weight=2, entity=beta_renamed, at=day2),
        ]
    )


def test_dashboard_stats_for_weighted_scenario(scenario_frame: pd.DataFrame) -> None:
    stats = build_dashboard_stats(scenario_frame)

    assert stats.total == 7
    assert stats.high == 2
    assert stats.medium == 5
    assert stats.low == 0
    assert stats.high_reviewed == 1
    assert stats.medium_reviewed == 5
    assert stats.reviewed_total == 6
    assert stats.true_positive == 1
    assert stats.false_positive == 5
    assert stats.review_completion_rate == pytest.approx(85.714, abs=1e-3)
    assert stats.accuracy_rate == pytest.approx(16.667, abs=1e-3)


def test_dashboard_stats_conserve_weight(mixed_frame: pd.DataFrame) -> None:
    stats = build_dashboard_stats(mixed_frame)

    assert stats.total == int(mixed_frame["weight"].sum()) == 73
    # NORMAL contributes to total without landing in a tier bucket.
    assert stats.high + stats.medium + stats.low == stats.total - 3
    assert (
        stats.true_positive + stats.suspected + stats.policy_violation + stats.false_positive
        == stats.reviewed_total
    )
    assert stats.high_reviewed <= stats.high
    assert stats.medium_reviewed <= stats.medium
    assert stats.reviewed_total <= stats.total


def test_dashboard_stats_empty_frame_is_all_zero(mixed_frame: pd.DataFrame) -> None:
    stats = build_dashboard_stats(mixed_frame.iloc[0:0])

    assert stats.total == 0
    assert stats.accuracy_rate == 0.0
    assert stats.review_completion_rate == 0.0


def test_combine_stats_matches_whole_frame(mixed_frame: pd.DataFrame) -> None:
    whole = build_dashboard_stats(mixed_frame)
    parts = [
        build_dashboard_stats(mixed_frame.iloc[:2]),
        build_dashboard_stats(mixed_frame.iloc[2:5]),
        build_dashboard_stats(mixed_frame.iloc[5:]),
    ]

    assert combine_stats(*parts) == whole


def test_counts_per_day_newest_first_with_mid_high_rate(mixed_frame: pd.DataFrame) -> None:
    rows = build_counts_per_day(mixed_frame)

    assert list(rows.columns) == DAY_ROW_COLUMNS
    assert rows["day"].tolist() == [date(2024, 1, 12), date(2024, 1, 11), date(2024, 1, 10)]
    assert rows["total"].tolist() == [28, 4, 41]
    assert rows["high"].tolist() == [0, 2, 1]
    assert rows["medium"].tolist() == [0, 2, 0]
    assert rows["low"].tolist() == [25, 0, 40]
    assert rows["mid_high_rate"].tolist() == pytest.approx([0.0, 100.0, 100 / 41])
    assert rows["total"].sum() == build_dashboard_stats(mixed_frame).total


def test_counts_per_day_merges_records_on_same_local_day() -> None:
    df = _frame(
        [
            _record("R1", RiskTier.HIGH, at=datetime(2024, 1, 10, 0, 0, tzinfo=SHANGHAI)),
            _record("R2", RiskTier.LOW, at=datetime(2024, 1, 10, 23, 59, 59, tzinfo=SHANGHAI)),
        ]
    )
    rows = build_counts_per_day(df)

    assert len(rows) == 1
    assert rows.loc[0, "total"] == 2


def test_review_counts_per_day_drops_days_without_mid_high_or_reviews(
    mixed_frame: pd.DataFrame,
) -> None:
    rows = build_review_counts_per_day(mixed_frame)

    assert rows["day"].tolist() == [date(2024, 1, 11), date(2024, 1, 10)]
    assert rows["mid_high"].tolist() == [4, 1]
    assert rows["reviewed_total"].tolist() == [1, 1]
    assert rows["review_rate"].tolist() == pytest.approx([25.0, 100.0])
    assert rows["policy_violation"].tolist() == [1, 0]
    assert rows["suspected"].tolist() == [0, 1]


def test_counts_per_entity_keeps_last_seen_name(mixed_frame: pd.DataFrame) -> None:
    rows = build_counts_per_entity(mixed_frame)

    assert list(rows.columns) == ENTITY_ROW_COLUMNS
    assert rows["entity_id"].tolist() == ["E1", "E2"]
    assert rows["entity_name"].tolist() == ["Acme Lending", "Beta Bank Ltd"]
    by_id = rows.set_index("entity_id")
    assert by_id.loc["E1", "total"] == 45
    assert by_id.loc["E2", "total"] == 28
    assert by_id.loc["E2", "high"] == 2
    assert rows["total"].sum() == build_dashboard_stats(mixed_frame).total


def test_tier_distribution_shares_of_total(mixed_frame: pd.DataFrame) -> None:
    distribution = build_tier_distribution(mixed_frame)

    assert distribution["risk_tier"].tolist() == ["HIGH", "MEDIUM", "LOW"]
    assert distribution["count"].tolist() == [3, 2, 65]
    assert distribution["share"].sum() == pytest.approx(70 / 73 * 100)


def test_outcome_distribution_shares_of_reviewed(mixed_frame: pd.DataFrame) -> None:
    distribution = build_outcome_distribution(mixed_frame)

    assert distribution["review_outcome"].tolist() == [
        "TRUE_POSITIVE",
        "SUSPECTED",
        "POLICY_VIOLATION",
        "FALSE_POSITIVE",
    ]
    assert distribution["count"].tolist() == [0, 1, 1, 0]
    assert distribution["share"].tolist() == pytest.approx([0.0, 50.0, 50.0, 0.0])


def test_day_entity_breakdown_ranks_mid_high_volume(mixed_frame: pd.DataFrame) -> None:
    breakdown = build_day_entity_breakdown(mixed_frame, date(2024, 1, 11))

    assert breakdown["rank"].tolist() == [1, 2]
    assert breakdown["entity_id"].tolist() == ["E2", "E1"]
    assert breakdown["count"].tolist() == [3, 1]
    assert breakdown["share"].tolist() == pytest.approx([75.0, 25.0])


def test_day_entity_breakdown_empty_day(mixed_frame: pd.DataFrame) -> None:
    breakdown = build_day_entity_breakdown(mixed_frame, date(2024, 1, 12))
    assert breakdown.empty
