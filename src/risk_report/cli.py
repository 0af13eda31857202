from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pandas as pd
import typer

from risk_report.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from risk_report.io.schema import records_to_frame
from risk_report.io.write import write_export, write_records
from risk_report.logging import configure_logging
from risk_report.models import CustomRange
from risk_report.pipeline.run_all import (
    configured_custom_range,
    prepare_base_dataframe,
    render_layout,
    run_all,
)
from risk_report.report.export import REPORT_LAYOUTS
from risk_report.report.table import ENTITY_TABLE
from risk_report.synthetic import generate_records
from risk_report.window import WindowMode, select

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path | None) -> AppConfig:
    if config_path is not None and not config_path.exists():
        if config_path == DEFAULT_CONFIG_PATH.resolve():
            return load_config(None)
        raise typer.BadParameter(f"Config file not found: {config_path}")
    return load_config(config_path)


def _parse_now(now: str | None, cfg: AppConfig) -> datetime:
    if now is None:
        return pd.Timestamp.now(tz=cfg.time.timezone).to_pydatetime()
    try:
        parsed = pd.Timestamp(now)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid --now timestamp: {now}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.tz_localize(cfg.time.timezone)
    return parsed.to_pydatetime()


def _custom_range(
    mode: WindowMode | None,
    start: datetime | None,
    end: datetime | None,
    cfg: AppConfig,
) -> CustomRange | None:
    if start is None and end is None:
        if mode is WindowMode.CUSTOM and configured_custom_range(cfg) is None:
            raise typer.BadParameter(
                "--mode custom needs --start and --end, or window.custom_start and "
                "window.custom_end in the config"
            )
        return None
    if start is None or end is None:
        raise typer.BadParameter("Provide both --start and --end for a custom range")
    if mode not in (None, WindowMode.CUSTOM):
        raise typer.BadParameter("--start/--end only apply to --mode custom")
    return CustomRange(start=start.date(), end=end.date())


@app.command()
def generate(
    out: Path = typer.Option(Path("records.csv"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
    days: int | None = typer.Option(None, min=1, help="Days of history to generate."),
    seed: int | None = typer.Option(None, min=0, help="Random seed override."),
) -> None:
    """Write a synthetic record file."""
    configure_logging()
    cfg = _load_app_config(config)
    synthetic = cfg.synthetic.model_copy(
        update={
            key: value
            for key, value in (("days", days), ("random_seed", seed))
            if value is not None
        }
    )
    records = generate_records(synthetic, timezone_name=cfg.time.timezone)
    write_records(records_to_frame(records), out)
    typer.echo(f"Wrote {len(records)} records to: {out}")


@app.command()
def report(
    records: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    out: Path = typer.Option(Path("out"), resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
    mode: WindowMode | None = typer.Option(None, help="Time window; defaults to config."),
    start: datetime | None = typer.Option(None, formats=["%Y-%m-%d"]),
    end: datetime | None = typer.Option(None, formats=["%Y-%m-%d"]),
    now: str | None = typer.Option(None, help="Anchor time (ISO); defaults to current time."),
) -> None:
    """Filter, aggregate, and write tables, summary, and CSV exports."""
    configure_logging()
    cfg = _load_app_config(config)
    custom_range = _custom_range(mode, start, end, cfg)
    if custom_range is not None:
        mode = WindowMode.CUSTOM
    summary_path = run_all(
        records_path=records,
        out_dir=out,
        config=cfg,
        anchor_now=_parse_now(now, cfg),
        mode=mode,
        custom_range=custom_range,
    )
    typer.echo(f"Report complete. Summary: {summary_path}")


@app.command()
def export(
    records: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    report_name: str = typer.Option("entity", "--report", help="daily, review, or entity."),
    out: Path = typer.Option(..., resolve_path=True),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, resolve_path=True),
    mode: WindowMode | None = typer.Option(None, help="Time window; defaults to config."),
    start: datetime | None = typer.Option(None, formats=["%Y-%m-%d"]),
    end: datetime | None = typer.Option(None, formats=["%Y-%m-%d"]),
    now: str | None = typer.Option(None, help="Anchor time (ISO); defaults to current time."),
    search: str | None = typer.Option(None, help="Case-insensitive name/id filter."),
    sort: str | None = typer.Option(None, help="Sort key for the chosen report's table."),
) -> None:
    """Write one report as a CSV export through the table view."""
    configure_logging()
    layout = REPORT_LAYOUTS.get(report_name)
    if layout is None:
        raise typer.BadParameter(
            f"Unknown report {report_name!r}; choose one of: {', '.join(REPORT_LAYOUTS)}"
        )
    cfg = _load_app_config(config)
    custom_range = _custom_range(mode, start, end, cfg)
    if custom_range is not None:
        mode = WindowMode.CUSTOM
    if sort is not None:
        try:
            layout.table.accessor(sort)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc

    df = prepare_base_dataframe(records_path=records, config=cfg)
    filtered = select(
        df,
        mode=mode or cfg.window.mode,
        anchor_now=_parse_now(now, cfg),
        timezone_name=cfg.time.timezone,
        custom_range=custom_range or configured_custom_range(cfg),
    )
    if sort is None and layout.table is ENTITY_TABLE:
        sort = cfg.table.default_sort_key
    rows = layout.build_rows(filtered)
    payload = render_layout(layout, rows, cfg, search_term=search, sort_key=sort)
    write_export(payload, out)
    typer.echo(f"Export written to: {out}")


if __name__ == "__main__":
    app()
