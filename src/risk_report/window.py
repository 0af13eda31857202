"""Calendar-relative record selection.

All day boundaries derive from ``today0``: the anchor "now" truncated to local
midnight in the report timezone. Offsets are calendar offsets (wall-clock days
and years), not fixed multiples of 24 hours.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

import pandas as pd

from risk_report.models import CustomRange

LOGGER = logging.getLogger(__name__)


class WindowMode(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_7_DAYS = "last7days"
    LAST_30_DAYS = "last30days"
    LAST_YEAR = "lastYear"
    CUSTOM = "custom"
    ALL = "all"


@dataclass(frozen=True)
class WindowBounds:
    start: pd.Timestamp | None
    end: pd.Timestamp | None
    end_inclusive: bool = False
    empty: bool = False

    def mask(self, timestamps: pd.Series) -> pd.Series:
        if self.empty:
            return pd.Series(False, index=timestamps.index)
        selected = pd.Series(True, index=timestamps.index)
        if self.start is not None:
            selected &= timestamps >= self.start
        if self.end is not None:
            selected &= (timestamps <= self.end) if self.end_inclusive else (timestamps < self.end)
        return selected


def coerce_mode(mode: WindowMode | str | None) -> WindowMode | None:
    if mode is None or isinstance(mode, WindowMode):
        return mode
    try:
        return WindowMode(str(mode).strip())
    except ValueError:
        return None


def start_of_day(anchor_now: datetime | pd.Timestamp, timezone_name: str) -> pd.Timestamp:
    anchor = pd.Timestamp(anchor_now)
    if anchor.tzinfo is None:
        anchor = anchor.tz_localize(timezone_name)
    else:
        anchor = anchor.tz_convert(timezone_name)
    return anchor.normalize()


def _local_midnight(day: date, timezone_name: str) -> pd.Timestamp:
    return pd.Timestamp(day).tz_localize(
        timezone_name,
        nonexistent="shift_forward",
        ambiguous=False,
    )


def _year_before(today0: pd.Timestamp, timezone_name: str) -> pd.Timestamp:
    """Local midnight on the same month and day a year earlier; Feb 29 rolls to Mar 1."""
    try:
        day = today0.date().replace(year=today0.year - 1)
    except ValueError:
        day = date(today0.year - 1, 3, 1)
    return _local_midnight(day, timezone_name)


def resolve_bounds(
    mode: WindowMode | str | None,
    anchor_now: datetime | pd.Timestamp,
    timezone_name: str,
    custom_range: CustomRange | None = None,
) -> WindowBounds:
    """Translate a window mode into concrete timestamp bounds.

    Unknown modes select everything. An inverted custom range (start after
    end) selects nothing.
    """
    resolved = coerce_mode(mode)
    if resolved is None:
        LOGGER.warning("Unknown window mode %r; selecting all records", mode)
        return WindowBounds(start=None, end=None)
    if resolved is WindowMode.ALL:
        return WindowBounds(start=None, end=None)

    if resolved is WindowMode.CUSTOM:
        if custom_range is None:
            raise ValueError("custom window mode requires a custom_range")
        if custom_range.is_inverted:
            LOGGER.warning(
                "Custom range start %s is after end %s; selecting no records",
                custom_range.start,
                custom_range.end,
            )
            return WindowBounds(start=None, end=None, empty=True)
        start = _local_midnight(custom_range.start, timezone_name)
        end_of_day = (
            _local_midnight(custom_range.end, timezone_name)
            + pd.DateOffset(days=1)
            - pd.Timedelta(milliseconds=1)
        )
        return WindowBounds(start=start, end=end_of_day, end_inclusive=True)

    today0 = start_of_day(anchor_now, timezone_name)
    if resolved is WindowMode.TODAY:
        return WindowBounds(start=today0, end=None)
    if resolved is WindowMode.YESTERDAY:
        return WindowBounds(start=today0 - pd.DateOffset(days=1), end=today0)
    if resolved is WindowMode.LAST_7_DAYS:
        return WindowBounds(start=today0 - pd.DateOffset(days=7), end=None)
    if resolved is WindowMode.LAST_30_DAYS:
        return WindowBounds(start=today0 - pd.DateOffset(days=30), end=None)
    return WindowBounds(start=_year_before(today0, timezone_name), end=None)


def select(
    df: pd.DataFrame,
    mode: WindowMode | str | None,
    anchor_now: datetime | pd.Timestamp,
    timezone_name: str,
    custom_range: CustomRange | None = None,
) -> pd.DataFrame:
    """Return the rows of ``df`` whose ``timestamp`` falls in the window, in input order."""
    bounds = resolve_bounds(
        mode=mode,
        anchor_now=anchor_now,
        timezone_name=timezone_name,
        custom_range=custom_range,
    )
    selected = df.loc[bounds.mask(df["timestamp"])]
    LOGGER.debug(
        "Window %s kept %d of %d records (start=%s end=%s)",
        mode,
        len(selected),
        len(df),
        bounds.start,
        bounds.end,
    )
    return selected
