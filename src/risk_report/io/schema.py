from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np
import pandas as pd

from risk_report.errors import RecordValidationError
from risk_report.models import Record, ReviewOutcome, ReviewState, RiskTier

SIGNAL_SEPARATOR = "|"


@dataclass(frozen=True)
class CanonicalColumns:
    id: str = "id"
    entity_id: str = "entity_id"
    entity_name: str = "entity_name"
    subject_ref: str = "subject_ref"
    occurred_at: str = "occurred_at"
    duration_seconds: str = "duration_seconds"
    risk_tier: str = "risk_tier"
    category: str = "category"
    signals: str = "signals"
    review_state: str = "review_state"
    review_outcome: str = "review_outcome"
    reviewer_id: str = "reviewer_id"
    weight: str = "weight"


RECORD_COLUMNS = [
    CanonicalColumns.id,
    CanonicalColumns.entity_id,
    CanonicalColumns.entity_name,
    CanonicalColumns.subject_ref,
    CanonicalColumns.occurred_at,
    CanonicalColumns.duration_seconds,
    CanonicalColumns.risk_tier,
    CanonicalColumns.category,
    CanonicalColumns.signals,
    CanonicalColumns.review_state,
    CanonicalColumns.review_outcome,
    CanonicalColumns.reviewer_id,
    CanonicalColumns.weight,
]
REQUIRED_COLUMNS = [
    CanonicalColumns.id,
    CanonicalColumns.entity_id,
    CanonicalColumns.entity_name,
    CanonicalColumns.occurred_at,
    CanonicalColumns.risk_tier,
    CanonicalColumns.review_state,
    CanonicalColumns.review_outcome,
]


def _enum_value(value: object) -> object:
    return value.value if isinstance(value, (RiskTier, ReviewState, ReviewOutcome)) else value


def records_to_frame(records: Iterable[Record]) -> pd.DataFrame:
    """Convert Record objects to a validated frame with canonical columns."""
    rows = [
        {
            "id": record.id,
            "entity_id": record.entity_id,
            "entity_name": record.entity_name,
            "subject_ref": record.subject_ref,
            "occurred_at": record.occurred_at,
            "duration_seconds": record.duration_seconds,
            "risk_tier": _enum_value(record.risk_tier),
            "category": record.category,
            "signals": tuple(record.signals),
            "review_state": _enum_value(record.review_state),
            "review_outcome": _enum_value(record.review_outcome),
            "reviewer_id": record.reviewer_id,
            "weight": record.weight,
        }
        for record in records
    ]
    return validate_records(pd.DataFrame(rows, columns=RECORD_COLUMNS))


def _normalize_enum(values: pd.Series) -> pd.Series:
    return values.map(_enum_value).astype("string").str.strip().str.upper()


def _check_enum(
    df: pd.DataFrame,
    column: str,
    allowed: type,
) -> None:
    valid = {member.value for member in allowed}
    bad = ~df[column].isin(valid)
    if bad.any():
        unexpected = sorted({str(value) for value in df.loc[bad, column]})
        raise RecordValidationError(
            f"unexpected value(s) {unexpected}; expected one of {sorted(valid)}",
            field=column,
            row_ids=df.loc[bad, CanonicalColumns.id],
        )


def _split_signals(value: object) -> tuple[str, ...]:
    if isinstance(value, (list, tuple, np.ndarray)):
        return tuple(str(item) for item in value)
    if value is None or (isinstance(value, float) and np.isnan(value)) or value is pd.NA:
        return ()
    text = str(value).strip()
    if not text:
        return ()
    return tuple(part.strip() for part in text.split(SIGNAL_SEPARATOR) if part.strip())


def _blank_mask(values: pd.Series) -> pd.Series:
    text = values.fillna("").astype(str).str.strip()
    return values.isna() | (text == "")


def validate_records(df: pd.DataFrame) -> pd.DataFrame:
    """Check record invariants and return a normalized copy.

    Enum columns are upper-cased strings, ``weight`` defaults to 1, ``signals``
    becomes a tuple of strings, and blank reviewer ids become ``None``. Any
    violation raises :class:`RecordValidationError` rather than letting a bad
    row be miscounted downstream.
    """
    missing = [column for column in REQUIRED_COLUMNS if column not in df.columns]
    if missing:
        raise RecordValidationError(
            f"missing required column(s): {', '.join(missing)}",
            field=missing[0],
        )

    working = df.copy()
    for column in RECORD_COLUMNS:
        if column not in working.columns:
            working[column] = None

    blank_ids = _blank_mask(working[CanonicalColumns.id])
    if blank_ids.any():
        raise RecordValidationError(
            f"{int(blank_ids.sum())} record(s) without an id",
            field=CanonicalColumns.id,
        )
    working[CanonicalColumns.id] = working[CanonicalColumns.id].astype(str)
    for column in (CanonicalColumns.entity_id, CanonicalColumns.entity_name):
        blank = _blank_mask(working[column])
        if blank.any():
            raise RecordValidationError(
                "value is required",
                field=column,
                row_ids=working.loc[blank, CanonicalColumns.id],
            )
        working[column] = working[column].astype(str)

    for column, allowed in (
        (CanonicalColumns.risk_tier, RiskTier),
        (CanonicalColumns.review_state, ReviewState),
        (CanonicalColumns.review_outcome, ReviewOutcome),
    ):
        working[column] = _normalize_enum(working[column])
        _check_enum(working, column, allowed)
        working[column] = working[column].astype(object)

    raw_weight = working[CanonicalColumns.weight]
    weight = pd.to_numeric(raw_weight, errors="coerce").where(raw_weight.notna(), 1)
    bad_weight = weight.isna() | (weight < 1) | (weight != np.floor(weight))
    if bad_weight.any():
        raise RecordValidationError(
            "weight must be a positive integer",
            field=CanonicalColumns.weight,
            row_ids=working.loc[bad_weight, CanonicalColumns.id],
        )
    working[CanonicalColumns.weight] = weight.astype("int64")

    raw_duration = working[CanonicalColumns.duration_seconds]
    duration = pd.to_numeric(raw_duration, errors="coerce").where(raw_duration.notna(), 0)
    bad_duration = duration.isna() | (duration < 0) | (duration != np.floor(duration))
    if bad_duration.any():
        raise RecordValidationError(
            "duration_seconds must be a non-negative integer",
            field=CanonicalColumns.duration_seconds,
            row_ids=working.loc[bad_duration, CanonicalColumns.id],
        )
    working[CanonicalColumns.duration_seconds] = duration.astype("int64")

    reviewed = working[CanonicalColumns.review_state] == ReviewState.REVIEWED.value
    outcome_pending = working[CanonicalColumns.review_outcome] == ReviewOutcome.PENDING.value
    mismatched_outcome = reviewed == outcome_pending
    if mismatched_outcome.any():
        raise RecordValidationError(
            "outcome must be PENDING exactly when the review state is PENDING",
            field=CanonicalColumns.review_outcome,
            row_ids=working.loc[mismatched_outcome, CanonicalColumns.id],
        )

    has_reviewer = ~_blank_mask(working[CanonicalColumns.reviewer_id])
    mismatched_reviewer = reviewed != has_reviewer
    if mismatched_reviewer.any():
        raise RecordValidationError(
            "reviewer_id must be set exactly when the record is REVIEWED",
            field=CanonicalColumns.reviewer_id,
            row_ids=working.loc[mismatched_reviewer, CanonicalColumns.id],
        )
    reviewer = working[CanonicalColumns.reviewer_id].astype(object)
    reviewer[~has_reviewer] = None
    working[CanonicalColumns.reviewer_id] = reviewer

    working[CanonicalColumns.subject_ref] = (
        working[CanonicalColumns.subject_ref].fillna("").astype(str)
    )
    working[CanonicalColumns.category] = working[CanonicalColumns.category].fillna("").astype(str)
    working[CanonicalColumns.signals] = working[CanonicalColumns.signals].map(_split_signals)
    return working
