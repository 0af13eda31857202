"""Percentage helpers over already-aggregated counters.

Every rate here is on a 0-100 scale and follows one policy: a zero (or
missing) denominator yields ``0.0``, never NaN and never an error.
"""

from __future__ import annotations

import numpy as np
import pandas as pd


def _to_float_array(values: pd.Series | np.ndarray) -> np.ndarray:
    if isinstance(values, pd.Series):
        return pd.to_numeric(values, errors="coerce").to_numpy(dtype=float)
    return np.asarray(values, dtype=float)


def percent(numerator: float, denominator: float) -> float:
    if not denominator > 0:
        return 0.0
    return float(numerator) / float(denominator) * 100.0


def percent_array(
    numerators: pd.Series | np.ndarray,
    denominators: pd.Series | np.ndarray,
) -> np.ndarray:
    k = _to_float_array(numerators)
    n = _to_float_array(denominators)
    out = np.zeros(np.broadcast(k, n).shape, dtype=float)
    valid = np.isfinite(n) & np.isfinite(k) & (n > 0.0)
    np.divide(k * 100.0, n, out=out, where=valid)
    return out


def tier_rate(tier_count: float, total: float) -> float:
    return percent(tier_count, total)


def review_completion_rate(
    high_reviewed: float,
    medium_reviewed: float,
    high: float,
    medium: float,
) -> float:
    """Reviewed share of the HIGH+MEDIUM population; LOW never enters the base."""
    return percent(high_reviewed + medium_reviewed, high + medium)


def accuracy_rate(
    true_positive: float,
    suspected: float,
    policy_violation: float,
    reviewed_total: float,
) -> float:
    """Confirmed share of reviewed detections; false positives are not confirmations."""
    return percent(true_positive + suspected + policy_violation, reviewed_total)


def format_percent(value: float, decimals: int = 2) -> str:
    return f"{float(value):.{decimals}f}%"
