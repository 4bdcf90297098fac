from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any

import logging

import numpy as np

from barviz_layout.errors import ChartDataError
from barviz_layout.model import DataPoint


LOGGER = logging.getLogger(__name__)

try:
    import pandas as pd
except Exception:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]


def points_from_rows(
    rows: Any,
    *,
    category: str,
    values: str | Sequence[str],
    series: str | None = None,
    score: str | None = None,
    range_columns: tuple[str, str] | None = None,
    row_by: str | None = None,
    column_by: str | None = None,
    identity: str | None = None,
    selected: str | None = None,
    highlight: str | None = None,
) -> list[DataPoint]:
    """Turn tabular rows into stacked data points.

    `rows` is a pandas DataFrame or a sequence of mappings. Each value column
    yields one point per row; with several value columns the column name is the
    series unless a `series` column is given. Positive values stack rightwards
    and negative values leftwards, per (row key, column key, category), in input
    order. Rows with a missing category or a non-finite value are skipped.
    """
    value_columns = [values] if isinstance(values, str) else list(values)
    if not value_columns:
        raise ChartDataError("at least one value column is required")

    wanted = [category, *value_columns]
    for optional in (series, score, row_by, column_by, identity, selected, highlight):
        if optional is not None:
            wanted.append(optional)
    if range_columns is not None:
        if len(range_columns) != 2:
            raise ChartDataError("range_columns must name exactly two columns")
        wanted.extend(range_columns)
    table = _resolve_columns(rows, wanted)

    n = len(table[category])
    numeric = {col: _coerce_1d_numeric(table[col], label=col) for col in value_columns}
    scores = _coerce_1d_numeric(table[score], label=score) if score is not None else None
    ranges = (
        (
            _coerce_1d_numeric(table[range_columns[0]], label=range_columns[0]),
            _coerce_1d_numeric(table[range_columns[1]], label=range_columns[1]),
        )
        if range_columns is not None
        else None
    )

    positive: dict[tuple[Any, Any, Any], float] = {}
    negative: dict[tuple[Any, Any, Any], float] = {}
    points: list[DataPoint] = []
    skipped = 0
    for i in range(n):
        cat = _scalar(table[category][i])
        if cat is None:
            skipped += len(value_columns)
            continue
        row_key = _scalar(table[row_by][i]) if row_by is not None else None
        column_key = _scalar(table[column_by][i]) if column_by is not None else None
        for col in value_columns:
            value = float(numeric[col][i])
            if not np.isfinite(value):
                skipped += 1
                continue
            key = (row_key, column_key, cat)
            stack = positive if value >= 0 else negative
            shift = stack.get(key, 0.0)
            stack[key] = shift + value

            if series is not None:
                series_key = _scalar(table[series][i])
            else:
                series_key = col if len(value_columns) > 1 else None
            points.append(
                DataPoint(
                    category=cat,
                    value=value,
                    shift_value=shift,
                    series=series_key,
                    score=_finite_or_none(scores[i]) if scores is not None else None,
                    range=_range_at(ranges, i),
                    row_key=row_key,
                    column_key=column_key,
                    identity=_scalar(table[identity][i]) if identity is not None else (i, col),
                    selected=bool(_scalar(table[selected][i])) if selected is not None else False,
                    highlight=bool(_scalar(table[highlight][i])) if highlight is not None else False,
                )
            )
    if skipped:
        LOGGER.warning("skipped %d value(s) with a missing category or non-finite value", skipped)
    return points


def _resolve_columns(rows: Any, wanted: Sequence[str]) -> dict[str, list[Any]]:
    if pd is not None and isinstance(rows, pd.DataFrame):
        missing = [c for c in wanted if c not in rows.columns]
        if missing:
            raise ChartDataError(f"column not found: {missing[0]}")
        return {c: rows[c].tolist() for c in dict.fromkeys(wanted)}

    if isinstance(rows, Mapping) or not isinstance(rows, Sequence) or isinstance(rows, (str, bytes, bytearray)):
        raise ChartDataError(f"unsupported rows input type: {type(rows)!r}")
    for idx, row in enumerate(rows):
        if not isinstance(row, Mapping):
            raise ChartDataError(f"row {idx} is not a mapping: {row!r}")
    if rows:
        present = set().union(*(row.keys() for row in rows))
        missing = [c for c in wanted if c not in present]
        if missing:
            raise ChartDataError(f"column not found: {missing[0]}")
    return {c: [row.get(c) for row in rows] for c in dict.fromkeys(wanted)}


def _coerce_1d_numeric(value: Sequence[Any], *, label: str) -> np.ndarray:
    arr = np.asarray(value, dtype=object)
    out = np.empty(arr.shape[0], dtype=np.float64)
    for i, raw in enumerate(arr.tolist()):
        if raw is None:
            out[i] = np.nan
            continue
        if isinstance(raw, Decimal):
            out[i] = float(raw)
            continue
        try:
            out[i] = float(raw)
        except (TypeError, ValueError) as exc:
            raise ChartDataError(f"{label} contains non-numeric value at index {i}: {raw!r}") from exc
    return out


def _scalar(raw: Any) -> Any:
    """Plain Python value for numpy/pandas scalars; NaN and NaT become None."""
    if raw is None:
        return None
    if pd is not None and raw is pd.NaT:
        return None
    if isinstance(raw, np.generic):
        raw = raw.item()
    if isinstance(raw, float) and not np.isfinite(raw):
        return None
    return raw


def _finite_or_none(value: float) -> float | None:
    return float(value) if np.isfinite(value) else None


def _range_at(ranges: tuple[np.ndarray, np.ndarray] | None, i: int) -> tuple[float, float] | None:
    if ranges is None:
        return None
    lo, hi = float(ranges[0][i]), float(ranges[1][i])
    if not (np.isfinite(lo) and np.isfinite(hi)):
        return None
    return (lo, hi)
