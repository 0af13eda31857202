from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pandas as pd

from risk_report.io.schema import RECORD_COLUMNS, SIGNAL_SEPARATOR


def write_table(df: pd.DataFrame, path: Path, fmt: str = "csv") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if fmt == "parquet":
        df.to_parquet(path, index=False)
        return path
    if fmt == "csv":
        df.to_csv(path, index=False)
        return path
    raise ValueError(f"Unsupported table format: {fmt}")


def write_records(df: pd.DataFrame, path: Path) -> Path:
    """Write canonical record columns as CSV with ISO timestamps and joined signals."""
    working = df[RECORD_COLUMNS].copy()
    working["occurred_at"] = pd.to_datetime(working["occurred_at"]).map(
        lambda value: value.isoformat()
    )
    working["signals"] = working["signals"].map(lambda signals: SIGNAL_SEPARATOR.join(signals))
    return write_table(working, path, fmt="csv")


def write_summary(data: dict[str, Any], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, sort_keys=True, default=str), encoding="utf-8")
    return path


def write_export(payload: bytes, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    return path
