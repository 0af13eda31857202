from __future__ import annotations

from datetime import date

import pandas as pd

from risk_report.models import (
    BUCKETED_TIERS,
    REVIEWED_OUTCOMES,
    DashboardStats,
    ReviewOutcome,
    ReviewState,
    RiskTier,
)
from risk_report.rates import percent_array

TIER_COLUMNS = {
    RiskTier.HIGH: "high",
    RiskTier.MEDIUM: "medium",
    RiskTier.LOW: "low",
}
OUTCOME_COLUMNS = {
    ReviewOutcome.TRUE_POSITIVE: "true_positive",
    ReviewOutcome.SUSPECTED: "suspected",
    ReviewOutcome.POLICY_VIOLATION: "policy_violation",
    ReviewOutcome.FALSE_POSITIVE: "false_positive",
}
COUNTER_COLUMNS = [
    "total",
    "high",
    "medium",
    "low",
    "high_reviewed",
    "medium_reviewed",
    "reviewed_total",
    "true_positive",
    "suspected",
    "policy_violation",
    "false_positive",
]
DAY_ROW_COLUMNS = ["day", "total", "high", "medium", "low", "mid_high", "mid_high_rate"]
REVIEW_DAY_ROW_COLUMNS = [
    "day",
    "mid_high",
    "reviewed_total",
    "review_rate",
    "true_positive",
    "suspected",
    "policy_violation",
    "false_positive",
]
ENTITY_ROW_COLUMNS = [
    "entity_id",
    "entity_name",
    "total",
    "high",
    "medium",
    "low",
    "reviewed_total",
    "true_positive",
    "suspected",
    "policy_violation",
    "false_positive",
]


def record_weights(df: pd.DataFrame) -> pd.Series:
    if "weight" not in df.columns:
        return pd.Series(1, index=df.index, dtype="int64")
    return df["weight"].fillna(1).astype("int64")


def build_weighted_counters(df: pd.DataFrame) -> pd.DataFrame:
    """One row per record holding that record's weight in each counter it feeds.

    A record lands its full weight in exactly one tier column (none for the
    reserved NORMAL tier) and, only when reviewed, in ``reviewed_total`` and
    exactly one outcome column.
    """
    weight = record_weights(df)
    tier = df["risk_tier"]
    outcome = df["review_outcome"]
    reviewed = df["review_state"] == ReviewState.REVIEWED.value

    counters = pd.DataFrame({"total": weight}, index=df.index)
    for member, column in TIER_COLUMNS.items():
        counters[column] = weight.where(tier == member.value, 0)
    counters["high_reviewed"] = weight.where(reviewed & (tier == RiskTier.HIGH.value), 0)
    counters["medium_reviewed"] = weight.where(reviewed & (tier == RiskTier.MEDIUM.value), 0)
    counters["reviewed_total"] = weight.where(reviewed, 0)
    for member, column in OUTCOME_COLUMNS.items():
        counters[column] = weight.where(reviewed & (outcome == member.value), 0)
    return counters[COUNTER_COLUMNS].astype("int64")


def build_dashboard_stats(df: pd.DataFrame) -> DashboardStats:
    totals = build_weighted_counters(df).sum()
    return DashboardStats(**{column: int(totals[column]) for column in COUNTER_COLUMNS})


def combine_stats(*parts: DashboardStats) -> DashboardStats:
    """Sum partial snapshots built over disjoint record shards."""
    return DashboardStats(
        **{column: sum(int(getattr(part, column)) for part in parts) for column in COUNTER_COLUMNS}
    )


def _sum_by(df: pd.DataFrame, key: str) -> pd.DataFrame:
    counters = build_weighted_counters(df)
    grouped = counters.groupby(df[key].rename(key), sort=False).sum()
    return grouped.reset_index()


def build_counts_per_day(df: pd.DataFrame) -> pd.DataFrame:
    """Per-day tier totals, most recent day first."""
    grouped = _sum_by(df, "day")
    grouped["mid_high"] = grouped["high"] + grouped["medium"]
    grouped["mid_high_rate"] = percent_array(grouped["mid_high"], grouped["total"])
    grouped = grouped.sort_values("day", ascending=False, kind="mergesort")
    return grouped[DAY_ROW_COLUMNS].reset_index(drop=True)


def build_review_counts_per_day(df: pd.DataFrame) -> pd.DataFrame:
    """Per-day review outcomes against HIGH+MEDIUM detections, most recent day first.

    Days with neither reviews nor HIGH/MEDIUM detections are dropped.
    """
    grouped = _sum_by(df, "day")
    grouped["mid_high"] = grouped["high"] + grouped["medium"]
    grouped = grouped.loc[(grouped["reviewed_total"] > 0) | (grouped["mid_high"] > 0)].copy()
    grouped["review_rate"] = percent_array(grouped["reviewed_total"], grouped["mid_high"])
    grouped = grouped.sort_values("day", ascending=False, kind="mergesort")
    return grouped[REVIEW_DAY_ROW_COLUMNS].reset_index(drop=True)


def build_counts_per_entity(df: pd.DataFrame) -> pd.DataFrame:
    """Per-entity tier and outcome totals in first-seen order."""
    grouped = _sum_by(df, "entity_id")
    names = df.groupby("entity_id", sort=False)["entity_name"].last()
    grouped["entity_name"] = grouped["entity_id"].map(names)
    return grouped[ENTITY_ROW_COLUMNS].reset_index(drop=True)


def build_tier_distribution(df: pd.DataFrame) -> pd.DataFrame:
    stats = build_dashboard_stats(df)
    counts = [getattr(stats, TIER_COLUMNS[tier]) for tier in BUCKETED_TIERS]
    distribution = pd.DataFrame(
        {"risk_tier": [tier.value for tier in BUCKETED_TIERS], "count": counts}
    )
    distribution["share"] = percent_array(distribution["count"], stats.total)
    return distribution


def build_outcome_distribution(df: pd.DataFrame) -> pd.DataFrame:
    stats = build_dashboard_stats(df)
    counts = [getattr(stats, OUTCOME_COLUMNS[outcome]) for outcome in REVIEWED_OUTCOMES]
    distribution = pd.DataFrame(
        {"review_outcome": [outcome.value for outcome in REVIEWED_OUTCOMES], "count": counts}
    )
    distribution["share"] = percent_array(distribution["count"], stats.reviewed_total)
    return distribution


def build_day_entity_breakdown(df: pd.DataFrame, day: date) -> pd.DataFrame:
    """Rank entities by HIGH+MEDIUM volume on one calendar day.

    ``share`` is each entity's percentage of that day's HIGH+MEDIUM total.
    """
    mid_high_tiers = {RiskTier.HIGH.value, RiskTier.MEDIUM.value}
    target = df.loc[(df["day"] == day) & df["risk_tier"].isin(mid_high_tiers)]
    weight = record_weights(target)
    counts = (
        pd.DataFrame({"entity_id": target["entity_id"], "count": weight})
        .groupby("entity_id", sort=False)["count"]
        .sum()
        .reset_index()
    )
    names = target.groupby("entity_id", sort=False)["entity_name"].last()
    counts["entity_name"] = counts["entity_id"].map(names)
    counts["share"] = percent_array(counts["count"], counts["count"].sum())
    counts = counts.sort_values("count", ascending=False, kind="mergesort").reset_index(drop=True)
    counts["rank"] = range(1, len(counts) + 1)
    return counts[["rank", "entity_id", "entity_name", "count", "share"]]
