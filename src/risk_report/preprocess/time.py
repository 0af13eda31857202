from __future__ import annotations

import pandas as pd

from risk_report.config import TimeConfig
from risk_report.errors import RecordValidationError


def _parse_one(value: object, timezone_name: str) -> pd.Timestamp:
    try:
        stamp = pd.Timestamp(value)
    except (TypeError, ValueError):
        return pd.NaT
    if pd.isna(stamp):
        return pd.NaT
    if stamp.tzinfo is None:
        return stamp.tz_localize(timezone_name, nonexistent="shift_forward", ambiguous="NaT")
    return stamp.tz_convert(timezone_name)


def parse_timestamps(values: pd.Series, timezone_name: str) -> pd.Series:
    """Parse ``values`` into tz-aware timestamps expressed in ``timezone_name``.

    Naive values are taken to already be wall-clock times in the report
    timezone. Values with mixed offsets or mixed tzinfo are parsed one by one
    and normalized through UTC.
    """
    if pd.api.types.is_datetime64_any_dtype(values):
        timestamps = values
    else:
        try:
            timestamps = pd.to_datetime(values, errors="coerce", format="ISO8601")
        except (TypeError, ValueError):
            timestamps = None
        # Vectorized parsing coerces minority offsets to NaT instead of raising.
        if (
            timestamps is None
            or not pd.api.types.is_datetime64_any_dtype(timestamps)
            or (timestamps.isna() & values.notna()).any()
        ):
            parsed = values.map(lambda value: _parse_one(value, timezone_name))
            return pd.to_datetime(parsed, utc=True).dt.tz_convert(timezone_name)

    if timestamps.dt.tz is None:
        return timestamps.dt.tz_localize(
            timezone_name,
            nonexistent="shift_forward",
            ambiguous="NaT",
        )
    return timestamps.dt.tz_convert(timezone_name)


def add_time_features(df: pd.DataFrame, config: TimeConfig) -> pd.DataFrame:
    """Add ``timestamp`` (tz-aware) and ``day`` (local calendar date) columns."""
    working = df.copy()
    timestamps = parse_timestamps(working["occurred_at"], config.timezone)
    invalid = timestamps.isna()
    if invalid.any():
        raise RecordValidationError(
            "unparseable timestamp",
            field="occurred_at",
            row_ids=working.loc[invalid, "id"] if "id" in working.columns else (),
        )

    working["timestamp"] = timestamps
    working["day"] = timestamps.dt.date
    return working
