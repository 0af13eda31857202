from __future__ import annotations

from pathlib import Path

import pandas as pd

from risk_report.io.schema import validate_records


def load_table(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    if path.suffix == ".csv":
        # utf-8-sig strips the BOM that spreadsheet-friendly exports carry.
        return pd.read_csv(
            path,
            encoding="utf-8-sig",
            dtype={"id": str, "entity_id": str, "reviewer_id": str},
            keep_default_na=False,
            na_values=[""],
        )
    raise ValueError(f"Unsupported table file type: {path.suffix}")


def load_records(path: Path) -> pd.DataFrame:
    """Load a record file and validate it against the record schema."""
    return validate_records(load_table(path))
