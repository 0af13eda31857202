"""Sortable, searchable views over aggregate rows.

Sortable fields form a closed set per table: each table declares one named
accessor per sortable column, and sorting by anything else is rejected. Views
always filter first and sort second, so ranks describe the filtered rows.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum

import numpy as np
import pandas as pd

Accessor = Callable[[pd.DataFrame], pd.Series]


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> SortDirection:
        return SortDirection.ASC if self is SortDirection.DESC else SortDirection.DESC


@dataclass(frozen=True)
class SortState:
    key: str
    direction: SortDirection = SortDirection.DESC

    def request(self, key: str) -> SortState:
        """Same key flips the direction; a new key starts descending."""
        if key == self.key:
            return SortState(key=key, direction=self.direction.flipped())
        return SortState(key=key, direction=SortDirection.DESC)


@dataclass(frozen=True)
class TableSpec:
    name: str
    id_column: str
    name_column: str
    accessors: Mapping[str, Accessor]

    def accessor(self, key: str) -> Accessor:
        try:
            return self.accessors[key]
        except KeyError as exc:
            allowed = ", ".join(sorted(self.accessors))
            raise ValueError(
                f"{self.name} table cannot sort by {key!r}; use one of: {allowed}"
            ) from exc


def _column(name: str) -> Accessor:
    return lambda frame: frame[name]


ENTITY_TABLE = TableSpec(
    name="entity",
    id_column="entity_id",
    name_column="entity_name",
    accessors={
        "total": _column("total"),
        "high": _column("high"),
        "medium": _column("medium"),
        "low": _column("low"),
        "mid_high": lambda frame: frame["high"] + frame["medium"],
        "reviewed_total": _column("reviewed_total"),
        "true_positive": _column("true_positive"),
        "suspected": _column("suspected"),
        "policy_violation": _column("policy_violation"),
        "false_positive": _column("false_positive"),
    },
)
DAY_TABLE = TableSpec(
    name="day",
    id_column="day",
    name_column="day",
    accessors={
        "day": lambda frame: pd.to_datetime(frame["day"]).map(pd.Timestamp.toordinal),
        "total": _column("total"),
        "high": _column("high"),
        "medium": _column("medium"),
        "low": _column("low"),
        "mid_high_rate": _column("mid_high_rate"),
    },
)
REVIEW_DAY_TABLE = TableSpec(
    name="review_day",
    id_column="day",
    name_column="day",
    accessors={
        "day": lambda frame: pd.to_datetime(frame["day"]).map(pd.Timestamp.toordinal),
        "mid_high": _column("mid_high"),
        "reviewed_total": _column("reviewed_total"),
        "review_rate": _column("review_rate"),
        "true_positive": _column("true_positive"),
        "suspected": _column("suspected"),
        "policy_violation": _column("policy_violation"),
        "false_positive": _column("false_positive"),
    },
)


def filter_rows(rows: pd.DataFrame, search_term: str | None, spec: TableSpec) -> pd.DataFrame:
    """Case-insensitive substring match on the display name or id column."""
    term = (search_term or "").strip()
    if not term:
        return rows
    by_name = rows[spec.name_column].astype(str).str.contains(term, case=False, regex=False)
    by_id = rows[spec.id_column].astype(str).str.contains(term, case=False, regex=False)
    return rows.loc[by_name | by_id]


def sort_rows(
    rows: pd.DataFrame,
    key: str,
    direction: SortDirection | str,
    spec: TableSpec,
) -> pd.DataFrame:
    """Stable numeric sort on one of the table's named accessors."""
    accessor = spec.accessor(key)
    if rows.empty:
        return rows
    values = pd.to_numeric(accessor(rows), errors="coerce").to_numpy(dtype=float)
    if SortDirection(direction) is SortDirection.DESC:
        values = -values
    order = np.argsort(values, kind="stable")
    return rows.iloc[order]


def apply_view(
    rows: pd.DataFrame,
    spec: TableSpec,
    state: SortState | None = None,
    search_term: str | None = None,
) -> pd.DataFrame:
    """Filter, then sort, then number the visible rows from 1."""
    visible = filter_rows(rows, search_term, spec)
    if state is not None:
        visible = sort_rows(visible, state.key, state.direction, spec)
    visible = visible.drop(columns="rank", errors="ignore").reset_index(drop=True)
    visible.insert(0, "rank", range(1, len(visible) + 1))
    return visible
