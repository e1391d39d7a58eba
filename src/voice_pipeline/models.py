"""Pydantic models used at the ingestion boundary and for aggregation output.

Raw Bitable rows arrive as loosely-typed `fields` mappings keyed by the
Chinese column headers of the source tables. `ParsedRecord` is the typed
view of one row that the aggregator works on; `MetricBundle` and
`AggregationResult` describe what collaborators receive.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

log = logging.getLogger(__name__)

# Source column headers
FIELD_TITLE = "标题"
FIELD_SPLIT = "拆分方式"
FIELD_DATE = "日期"
FIELD_PLATFORM = "平台"
FIELD_BRAND = "品牌"
FIELD_MOLECULE = "分子式"
FIELD_METRIC = "分析指标"
FIELD_VALUE = "值"

NO_DATA = "-"
NONE_LITERAL = "无"

RowAxis = Literal["date", "platform"]
EntityField = Literal["brand", "molecule"]
MetricName = Literal["volume", "voice_share", "interaction", "interaction_share"]

METRIC_NAMES: tuple[str, ...] = ("volume", "voice_share", "interaction", "interaction_share")


class RawRecord(BaseModel):
    """One row as returned by the Bitable records API."""
    model_config = ConfigDict(extra="allow")
    fields: dict[str, Any] = Field(default_factory=dict)
    id: str | None = None
    record_id: str | None = None

    @field_validator("id", "record_id", mode="before")
    @classmethod
    def _id_as_text(cls, v: Any) -> Any:
        # ids are opaque; numeric ids from exports are kept as their text
        if v is None or isinstance(v, str):
            return v
        return str(v)


class ParsedRecord(BaseModel):
    """Typed view of a raw row. Missing or non-text cells become ``""``.

    Attributes:
        title: Dataset discriminator (exact string, whitespace preserved).
        split: Split type such as ``全量数据``, ``HCP`` or ``KOL``.
        date: Month key such as ``Aug-25``.
        platform: Platform name, only present in distribution tables.
        brand: Raw brand name.
        molecule: Raw molecule name.
        metric: Metric literal (``总声量``, ``SOV``, ``总互动量``, ``SOE``).
        value: Display value, verbatim.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")
    title: str = ""
    split: str = ""
    date: str = ""
    platform: str = ""
    brand: str = ""
    molecule: str = ""
    metric: str = ""
    value: str = ""

    def entity(self, entity_field: EntityField) -> str:
        return self.brand if entity_field == "brand" else self.molecule


class MetricBundle(BaseModel):
    """Four display-string metrics for one (row, entity) cell."""
    volume: str = NO_DATA
    voice_share: str = NO_DATA
    interaction: str = NO_DATA
    interaction_share: str = NO_DATA


class AggregationResult(BaseModel):
    """Rectangular row × entity matrix plus its axes.

    Attributes:
        matrix: row key → canonical entity → `MetricBundle`.
        row_keys: Sorted row keys (chronological dates or sorted platforms).
        entities: Canonical entity order used for columns.
        row_axis: ``"date"`` or ``"platform"``.
        target_month: Month filter applied in platform mode, else ``None``.
    """
    matrix: dict[str, dict[str, MetricBundle]] = Field(default_factory=dict)
    row_keys: list[str] = Field(default_factory=list)
    entities: list[str] = Field(default_factory=list)
    row_axis: RowAxis = "date"
    target_month: str | None = None

    @property
    def empty(self) -> bool:
        return not self.row_keys


def cell_text(value: Any) -> str:
    """Return the display text of one Bitable cell.

    Text cells may arrive as plain strings or as rich-text segment lists
    (``[{"text": ...}, ...]``); numbers are stringified.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value != value:  # NaN
            return ""
        return str(int(value)) if value.is_integer() else str(value)
    if isinstance(value, list):
        parts = [seg.get("text", "") for seg in value if isinstance(seg, dict)]
        return "".join(p for p in parts if isinstance(p, str))
    return ""


def as_raw_record(raw: RawRecord | Mapping[str, Any]) -> RawRecord | None:
    """Validate one Bitable row, or return ``None`` (logged) if malformed."""
    if isinstance(raw, RawRecord):
        return raw
    try:
        return RawRecord.model_validate(raw)
    except ValidationError as e:
        log.debug("Quarantined malformed record: %s", e.errors()[0].get("msg"))
        return None


def parse_record(raw: ParsedRecord | RawRecord | Mapping[str, Any]) -> ParsedRecord | None:
    """Parse one raw row into a `ParsedRecord`.

    Already-parsed records are returned unchanged.

    Returns:
        The parsed record, or ``None`` when the row is malformed (for
        example `fields` is not a mapping).
    """
    if isinstance(raw, ParsedRecord):
        return raw
    rec = as_raw_record(raw)
    if rec is None:
        return None

    f = rec.fields
    return ParsedRecord(
        title=cell_text(f.get(FIELD_TITLE)),
        split=cell_text(f.get(FIELD_SPLIT)),
        date=cell_text(f.get(FIELD_DATE)),
        platform=cell_text(f.get(FIELD_PLATFORM)),
        brand=cell_text(f.get(FIELD_BRAND)),
        molecule=cell_text(f.get(FIELD_MOLECULE)),
        metric=cell_text(f.get(FIELD_METRIC)),
        value=cell_text(f.get(FIELD_VALUE)),
    )


def parse_records(raws: Iterable[ParsedRecord | RawRecord | Mapping[str, Any]]) -> list[ParsedRecord]:
    """Parse many raw rows in input order, dropping malformed ones."""
    out: list[ParsedRecord] = []
    bad = 0
    for raw in raws:
        rec = parse_record(raw)
        if rec is None:
            bad += 1
            continue
        out.append(rec)
    if bad:
        log.debug("Dropped %d malformed records at ingestion", bad)
    return out
