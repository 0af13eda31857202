from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import pandas as pd

from risk_report.config import AppConfig
from risk_report.features.aggregates import (
    build_counts_per_day,
    build_counts_per_entity,
    build_dashboard_stats,
    build_outcome_distribution,
    build_review_counts_per_day,
    build_tier_distribution,
)
from risk_report.io.read import load_records
from risk_report.io.write import write_export, write_summary, write_table
from risk_report.models import CustomRange, DashboardStats
from risk_report.paths import build_output_paths
from risk_report.preprocess.time import add_time_features
from risk_report.report.export import REPORT_LAYOUTS, ReportLayout, encode_export, export_filename
from risk_report.report.table import ENTITY_TABLE, SortDirection, SortState, apply_view
from risk_report.window import WindowMode, resolve_bounds, start_of_day

LOGGER = logging.getLogger(__name__)

LAYOUT_TABLES = {
    "daily": "day_rows",
    "review": "review_day_rows",
    "entity": "entity_rows",
}


@dataclass(frozen=True)
class ReportArtifacts:
    stats: DashboardStats
    tables: dict[str, pd.DataFrame]
    window: dict[str, object]


def prepare_base_dataframe(records_path: Path, config: AppConfig) -> pd.DataFrame:
    df = load_records(records_path)
    return add_time_features(df=df, config=config.time)


def configured_custom_range(config: AppConfig) -> CustomRange | None:
    if config.window.custom_start is None or config.window.custom_end is None:
        return None
    return CustomRange(start=config.window.custom_start, end=config.window.custom_end)


def default_sort_state(config: AppConfig) -> SortState:
    ENTITY_TABLE.accessor(config.table.default_sort_key)
    return SortState(
        key=config.table.default_sort_key,
        direction=SortDirection(config.table.default_direction),
    )


def build_report_artifacts(
    df: pd.DataFrame,
    config: AppConfig,
    anchor_now: datetime,
    *,
    mode: WindowMode | str | None = None,
    custom_range: CustomRange | None = None,
) -> ReportArtifacts:
    """Filter ``df`` to the window and rebuild every aggregate from scratch."""
    effective_mode = mode or config.window.mode
    effective_range = custom_range or configured_custom_range(config)
    timezone_name = config.time.timezone
    bounds = resolve_bounds(
        mode=effective_mode,
        anchor_now=anchor_now,
        timezone_name=timezone_name,
        custom_range=effective_range,
    )
    filtered = df.loc[bounds.mask(df["timestamp"])]

    tables = {
        "day_rows": build_counts_per_day(filtered),
        "review_day_rows": build_review_counts_per_day(filtered),
        "entity_rows": apply_view(
            build_counts_per_entity(filtered),
            ENTITY_TABLE,
            state=default_sort_state(config),
        ),
        "tier_distribution": build_tier_distribution(filtered),
        "outcome_distribution": build_outcome_distribution(filtered),
    }
    window = {
        "mode": str(getattr(effective_mode, "value", effective_mode)),
        "anchor_now": pd.Timestamp(anchor_now).isoformat(),
        "start": bounds.start.isoformat() if bounds.start is not None else None,
        "end": bounds.end.isoformat() if bounds.end is not None else None,
        "empty": bounds.empty,
        "records_in_window": int(len(filtered)),
        "records_total": int(len(df)),
    }
    return ReportArtifacts(stats=build_dashboard_stats(filtered), tables=tables, window=window)


def render_layout(
    layout: ReportLayout,
    rows: pd.DataFrame,
    config: AppConfig,
    *,
    search_term: str | None = None,
    sort_key: str | None = None,
) -> bytes:
    """Run ``rows`` through the table view and encode them as an export payload."""
    state = None
    if sort_key:
        state = SortState(key=sort_key, direction=SortDirection(config.table.default_direction))
    visible = apply_view(rows, layout.table, state=state, search_term=search_term)
    text = layout.render(
        visible,
        delimiter=config.export.delimiter,
        quote_fields=config.export.quote_fields,
    )
    return encode_export(text, bom=config.export.bom)


def run_all(
    records_path: Path,
    out_dir: Path,
    config: AppConfig,
    *,
    anchor_now: datetime | None = None,
    mode: WindowMode | str | None = None,
    custom_range: CustomRange | None = None,
) -> Path:
    paths = build_output_paths(out_dir)
    anchor_now = anchor_now or pd.Timestamp.now(tz=config.time.timezone).to_pydatetime()
    df = prepare_base_dataframe(records_path=records_path, config=config)
    artifacts = build_report_artifacts(
        df,
        config,
        anchor_now,
        mode=mode,
        custom_range=custom_range,
    )

    extension = config.outputs.tables_format
    for name, table in artifacts.tables.items():
        write_table(table, paths.tables / f"{name}.{extension}", fmt=extension)

    report_date = start_of_day(anchor_now, config.time.timezone).date()
    for layout_name, layout in REPORT_LAYOUTS.items():
        rows = artifacts.tables[LAYOUT_TABLES[layout_name]]
        payload = render_layout(layout, rows, config)
        write_export(payload, paths.exports / export_filename(layout.report_name, report_date))

    summary_path = write_summary(
        {"stats": artifacts.stats.to_dict(), "window": artifacts.window},
        paths.summary / "summary.json",
    )
    LOGGER.info(
        "Report complete: %d of %d records in window",
        artifacts.window["records_in_window"],
        artifacts.window["records_total"],
    )
    return summary_path
