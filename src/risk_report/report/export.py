"""Delimited text export of aggregate rows.

``serialize`` is plain text in, text out. By default it performs no escaping:
fields in these reports are numbers, ISO dates, and entity names that are
expected to be free of the delimiter and of line breaks. Pass
``quote_fields=True`` when that cannot be guaranteed.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

import pandas as pd

from risk_report.features.aggregates import (
    build_counts_per_day,
    build_counts_per_entity,
    build_review_counts_per_day,
)
from risk_report.rates import format_percent
from risk_report.report.table import DAY_TABLE, ENTITY_TABLE, REVIEW_DAY_TABLE, TableSpec

Selector = Callable[[Mapping[str, Any]], object]

LINE_SEPARATOR = "\n"


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    return str(value)


def quote_field(text: str, delimiter: str = ",") -> str:
    if any(token in text for token in (delimiter, '"', "\n", "\r")):
        return '"' + text.replace('"', '""') + '"'
    return text


def serialize(
    rows: Iterable[Mapping[str, Any]],
    header_labels: Sequence[str],
    field_selectors: Sequence[Selector],
    *,
    delimiter: str = ",",
    quote_fields: bool = False,
) -> str:
    """Header line, then one delimited line per row in ``header_labels`` order."""
    if len(header_labels) != len(field_selectors):
        raise ValueError(
            f"{len(header_labels)} header labels but {len(field_selectors)} field selectors"
        )

    def _line(cells: Iterable[object]) -> str:
        texts = [_cell_text(cell) for cell in cells]
        if quote_fields:
            texts = [quote_field(text, delimiter) for text in texts]
        return delimiter.join(texts)

    lines = [_line(header_labels)]
    lines.extend(_line(selector(row) for selector in field_selectors) for row in rows)
    return LINE_SEPARATOR.join(lines)


def encode_export(text: str, bom: bool = True) -> bytes:
    """UTF-8 bytes, BOM-prefixed so spreadsheet tools detect the encoding."""
    return text.encode("utf-8-sig" if bom else "utf-8")


def export_filename(report_name: str, on_date: date) -> str:
    return f"{report_name}_{on_date.isoformat()}.csv"


def frame_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    return df.to_dict(orient="records")


def _field(name: str) -> Selector:
    return lambda row: row[name]


def _percent_field(name: str) -> Selector:
    return lambda row: format_percent(row[name])


@dataclass(frozen=True)
class ReportLayout:
    report_name: str
    table: TableSpec
    build_rows: Callable[[pd.DataFrame], pd.DataFrame]
    header_labels: tuple[str, ...]
    field_selectors: tuple[Selector, ...]

    def render(
        self,
        rows: pd.DataFrame,
        *,
        delimiter: str = ",",
        quote_fields: bool = False,
    ) -> str:
        return serialize(
            frame_rows(rows),
            self.header_labels,
            self.field_selectors,
            delimiter=delimiter,
            quote_fields=quote_fields,
        )


DAILY_RISK_REPORT = ReportLayout(
    report_name="daily_risk_report",
    table=DAY_TABLE,
    build_rows=build_counts_per_day,
    header_labels=(
        "Date",
        "Total Detections",
        "High Risk",
        "Medium Risk",
        "Mid-High Share",
        "Low Risk",
    ),
    field_selectors=(
        _field("day"),
        _field("total"),
        _field("high"),
        _field("medium"),
        _percent_field("mid_high_rate"),
        _field("low"),
    ),
)
DAILY_REVIEW_REPORT = ReportLayout(
    report_name="daily_review_report",
    table=REVIEW_DAY_TABLE,
    build_rows=build_review_counts_per_day,
    header_labels=(
        "Date",
        "Mid-High Detections",
        "Reviewed",
        "Reviewed Share",
        "True Positive",
        "Suspected",
        "Policy Violation",
        "False Positive",
    ),
    field_selectors=(
        _field("day"),
        _field("mid_high"),
        _field("reviewed_total"),
        _percent_field("review_rate"),
        _field("true_positive"),
        _field("suspected"),
        _field("policy_violation"),
        _field("false_positive"),
    ),
)
ENTITY_REPORT = ReportLayout(
    report_name="entity_risk_report",
    table=ENTITY_TABLE,
    build_rows=build_counts_per_entity,
    header_labels=(
        "Entity Name",
        "Entity ID",
        "High Risk",
        "Medium Risk",
        "Low Risk",
        "True Positive",
        "Suspected",
        "Policy Violation",
        "False Positive",
    ),
    field_selectors=(
        _field("entity_name"),
        _field("entity_id"),
        _field("high"),
        _field("medium"),
        _field("low"),
        _field("true_positive"),
        _field("suspected"),
        _field("policy_violation"),
        _field("false_positive"),
    ),
)
REPORT_LAYOUTS = {
    "daily": DAILY_RISK_REPORT,
    "review": DAILY_REVIEW_REPORT,
    "entity": ENTITY_REPORT,
}
