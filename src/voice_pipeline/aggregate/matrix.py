"""Aggregation of parsed records into a rectangular row × entity matrix.

One parameterized routine covers every dashboard view: records are filtered
by title/split (and month in platform mode), entity names are resolved to
a canonical set, and the four metric literals are pivoted into
`MetricBundle` cells. Dirty input never raises; it only leaves cells at the
``"-"`` placeholder.

Expectations:
- Input: raw Bitable rows (dicts or `RawRecord`) or `ParsedRecord`s.
- Output: `AggregationResult` with sorted row keys and canonical columns.
"""
from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Any, Iterable, Mapping

import pandas as pd

from voice_pipeline.aggregate.entities import CanonicalEntitySet
from voice_pipeline.aggregate.months import sort_month_keys
from voice_pipeline.models import (
    NO_DATA,
    NONE_LITERAL,
    AggregationResult,
    EntityField,
    MetricBundle,
    MetricName,
    ParsedRecord,
    RawRecord,
    RowAxis,
    parse_records,
)

log = logging.getLogger(__name__)

# Metric literal in the source table → MetricBundle field
METRIC_FIELDS: dict[str, str] = {
    "总声量": "volume",
    "SOV": "voice_share",
    "总互动量": "interaction",
    "SOE": "interaction_share",
}


def display_value(value: str | None) -> str:
    """Return the cell display value; empty and ``无`` become ``"-"``."""
    if value is None:
        return NO_DATA
    if value == "" or value == NONE_LITERAL:
        return NO_DATA
    return value


def aggregate(
    records: Iterable[ParsedRecord | RawRecord | Mapping[str, Any]],
    *,
    title: str,
    split: str,
    entity_set: CanonicalEntitySet,
    entity_field: EntityField,
    row_axis: RowAxis = "date",
    target_month: str | None = None,
) -> AggregationResult:
    """Build the row × entity matrix for one dataset selector.

    Args:
        records: Raw rows or parsed records. May be empty.
        title: Exact title the row must carry (trailing whitespace counts).
        split: Exact split type (``全量数据``, ``HCP``, ``KOL``, ...).
        entity_set: Canonical names and alias table for the columns.
        entity_field: Which column holds the entity (``brand``/``molecule``).
        row_axis: ``date`` for time series, ``platform`` for distribution.
        target_month: Month filter, required in platform mode.

    Returns:
        `AggregationResult` whose matrix has every canonical entity for
        every observed row key.

    Raises:
        ValueError: if `row_axis` is ``platform`` and no `target_month` is
            given, or `row_axis` is unknown.
    """
    if row_axis not in ("date", "platform"):
        raise ValueError(f"Unknown row axis: {row_axis!r}")
    if row_axis == "platform" and not target_month:
        raise ValueError("target_month is required for the platform axis")

    dropped: Counter[str] = Counter()
    matrix: dict[str, dict[str, MetricBundle]] = {}
    observed: set[str] = set()

    for rec in parse_records(records):
        if rec.title != title or rec.split != split:
            dropped["selector"] += 1
            continue
        raw_entity = rec.entity(entity_field)
        if not raw_entity:
            dropped["no_entity"] += 1
            continue
        if row_axis == "platform":
            if rec.date != target_month or not rec.platform:
                dropped["selector"] += 1
                continue
            row_key = rec.platform
        else:
            row_key = rec.date
        if not row_key:
            dropped["no_row_key"] += 1
            continue

        canonical = entity_set.canonical(raw_entity)
        if canonical is None:
            dropped["unknown_entity"] += 1
            continue

        if row_key not in matrix:
            matrix[row_key] = {e: MetricBundle() for e in entity_set.entities}
        observed.add(row_key)

        field_name = METRIC_FIELDS.get(rec.metric)
        if field_name is None:
            dropped["unknown_metric"] += 1
            continue
        setattr(matrix[row_key][canonical], field_name, display_value(rec.value))

    if row_axis == "date":
        row_keys = sort_month_keys(observed)
    else:
        row_keys = sorted(observed)

    if dropped:
        log.debug("aggregate(title=%r, split=%r) dropped %s", title, split, dict(dropped))

    return AggregationResult(
        matrix=matrix,
        row_keys=row_keys,
        entities=list(entity_set.entities),
        row_axis=row_axis,
        target_month=target_month if row_axis == "platform" else None,
    )


# =========================================================
# COLLABORATOR HELPERS
# =========================================================

def coerce_metric(value: Any) -> float:
    """Convert a display value to a float for charting.

    Strips ``%`` and thousands separators; placeholders, blanks and
    anything unparseable become 0.0.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return 0.0 if math.isnan(value) else float(value)
    s = str(value).strip().replace("%", "").replace(",", "")
    if not s or s in (NO_DATA, NONE_LITERAL):
        return 0.0
    try:
        f = float(s)
    except ValueError:
        return 0.0
    return 0.0 if math.isnan(f) else f


def to_frame(result: AggregationResult, metric: MetricName) -> pd.DataFrame:
    """Return one metric as a DataFrame of display strings.

    Index is the sorted row keys, columns are the canonical entities.
    """
    data = [
        [getattr(result.matrix[row][entity], metric) for entity in result.entities]
        for row in result.row_keys
    ]
    frame = pd.DataFrame(data, index=pd.Index(result.row_keys), columns=result.entities, dtype=object)
    frame.index.name = "日期" if result.row_axis == "date" else "平台"
    return frame


def to_numeric_frame(result: AggregationResult, metric: MetricName) -> pd.DataFrame:
    """Same as `to_frame` but with values coerced via `coerce_metric`."""
    return to_frame(result, metric).apply(lambda col: col.map(coerce_metric)).astype(float)


def latest_row(result: AggregationResult) -> str | None:
    return result.row_keys[-1] if result.row_keys else None
