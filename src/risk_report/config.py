from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_TIMEZONE = "Asia/Shanghai"


class TimeConfig(BaseModel):
    timezone: str = DEFAULT_TIMEZONE

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {value}") from exc
        return value


class WindowConfig(BaseModel):
    mode: Literal["today", "yesterday", "last7days", "last30days", "lastYear", "custom", "all"] = (
        "yesterday"
    )
    custom_start: date | None = None
    custom_end: date | None = None

    @model_validator(mode="after")
    def _custom_requires_range(self) -> WindowConfig:
        if self.mode == "custom" and (self.custom_start is None or self.custom_end is None):
            raise ValueError(
                "window.custom_start and window.custom_end are required for mode 'custom'"
            )
        return self


class TableConfig(BaseModel):
    default_sort_key: str = "high"
    default_direction: Literal["asc", "desc"] = "desc"


class ExportConfig(BaseModel):
    bom: bool = True
    delimiter: str = Field(default=",", min_length=1, max_length=1)
    quote_fields: bool = False


class SyntheticConfig(BaseModel):
    days: int = Field(default=90, ge=1)
    daily_total_target: int = Field(default=60_000, ge=1)
    low_batches_per_day: int = Field(default=50, ge=1)
    random_seed: int = Field(default=42, ge=0)


class OutputsConfig(BaseModel):
    tables_format: Literal["csv", "parquet"] = "csv"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    time: TimeConfig = Field(default_factory=TimeConfig)
    window: WindowConfig = Field(default_factory=WindowConfig)
    table: TableConfig = Field(default_factory=TableConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    synthetic: SyntheticConfig = Field(default_factory=SyntheticConfig)
    outputs: OutputsConfig = Field(default_factory=OutputsConfig)


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def load_config(path: Path | None = None) -> AppConfig:
    data: dict = {}
    if path is not None:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}

    config = AppConfig.model_validate(data)
    env_timezone = os.getenv("RISK_REPORT_TIMEZONE")
    if env_timezone:
        config.time = TimeConfig(timezone=env_timezone)
    return config
