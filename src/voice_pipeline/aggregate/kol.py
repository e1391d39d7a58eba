"""Molecule × influencer-tier matrix for the KOL placement table.

The KOL table carries one row per (month, molecule, tier) with eight metric
columns side by side, unlike the long metric/value layout of the voice
tables. Tier labels in the source are one step off from the labels the
dashboard shows, so they go through `TIER_MAPPING` first.

Expectations:
- Input: raw Bitable rows of the ``DOUYINMoleculeKOL`` endpoint.
- Output: `KolResult` with every tier present for every molecule seen.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Iterable, Mapping

import pandas as pd
from pydantic import BaseModel, Field

from voice_pipeline.aggregate.entities import MOLECULES, CanonicalEntitySet
from voice_pipeline.aggregate.matrix import coerce_metric, display_value
from voice_pipeline.aggregate.months import parse_month
from voice_pipeline.models import FIELD_DATE, FIELD_MOLECULE, FIELD_TITLE, NO_DATA, RawRecord, as_raw_record, cell_text

log = logging.getLogger(__name__)

KOL_ENDPOINT = "DOUYINMoleculeKOL"
TITLE_KOL = "分子式KOL投放矩阵（抖音）"
FIELD_TIER = "达人量级"

# Displayed tier columns, in order
TIERS: tuple[str, ...] = ("超头部", "头部", "腰部", "尾部", "KOC")

# Source tier label → displayed tier
TIER_MAPPING: dict[str, str] = {
    "超头部": "超头部",
    "头部": "头部",
    "肩部": "腰部",
    "腰部": "尾部",
    "尾部": "KOC",
}

# TierBundle field → source column (the per-post MoM header is spelled 单贴 upstream)
KOL_METRIC_FIELDS: dict[str, str] = {
    "volume": "声量",
    "volume_share": "声量占比",
    "volume_mom": "声量月度环比",
    "interaction": "互动量",
    "interaction_share": "互动量占比",
    "interaction_mom": "互动量月度环比",
    "per_post_interaction": "单帖互动量",
    "per_post_interaction_mom": "单贴互动量月度环比",
}

KOL_METRIC_NAMES: tuple[str, ...] = tuple(KOL_METRIC_FIELDS)


class TierBundle(BaseModel):
    """Eight display-string metrics for one (molecule, tier) cell."""
    volume: str = NO_DATA
    volume_share: str = NO_DATA
    volume_mom: str = NO_DATA
    interaction: str = NO_DATA
    interaction_share: str = NO_DATA
    interaction_mom: str = NO_DATA
    per_post_interaction: str = NO_DATA
    per_post_interaction_mom: str = NO_DATA


class KolResult(BaseModel):
    """Molecule → tier → `TierBundle`, plus the axes.

    Attributes:
        matrix: molecule → tier → bundle; every tier is present.
        molecules: Molecules in first-seen order.
        tiers: Displayed tier order.
        target_month: Month filter applied, or ``None`` for all months.
    """
    matrix: dict[str, dict[str, TierBundle]] = Field(default_factory=dict)
    molecules: list[str] = Field(default_factory=list)
    tiers: list[str] = Field(default_factory=lambda: list(TIERS))
    target_month: str | None = None

    @property
    def empty(self) -> bool:
        return not self.molecules


def map_tier(raw: str) -> str | None:
    """Return the displayed tier for a source label, or ``None``."""
    label = raw.strip()
    tier = TIER_MAPPING.get(label, label)
    return tier if tier in TIERS else None


def _same_month(value: str, target: str) -> bool:
    a, b = parse_month(value), parse_month(target)
    if a is not None and b is not None:
        return a == b
    return value.strip() == target.strip()


def aggregate_kol(
    records: Iterable[RawRecord | Mapping[str, Any]],
    *,
    title: str = TITLE_KOL,
    target_month: str | None = None,
    entity_set: CanonicalEntitySet = MOLECULES,
) -> KolResult:
    """Build the molecule × tier matrix.

    Args:
        records: Raw KOL rows. May be empty.
        title: Exact title the row must carry.
        target_month: Keep only rows of this month; ``None`` keeps all.
        entity_set: Used to fold molecule spellings together. Names it
            does not know are kept under their normalized spelling.

    Returns:
        `KolResult`; later rows for the same cell overwrite earlier ones.
    """
    dropped: Counter[str] = Counter()
    matrix: dict[str, dict[str, TierBundle]] = {}

    for raw in records:
        rec = as_raw_record(raw)
        if rec is None:
            dropped["malformed"] += 1
            continue
        f = rec.fields
        if cell_text(f.get(FIELD_TITLE)) != title:
            dropped["selector"] += 1
            continue
        if target_month and not _same_month(cell_text(f.get(FIELD_DATE)), target_month):
            dropped["month"] += 1
            continue

        molecule = entity_set.resolve(cell_text(f.get(FIELD_MOLECULE)))
        if not molecule:
            dropped["no_entity"] += 1
            continue
        if molecule not in matrix:
            matrix[molecule] = {t: TierBundle() for t in TIERS}

        tier = map_tier(cell_text(f.get(FIELD_TIER)))
        if tier is None:
            dropped["unknown_tier"] += 1
            continue
        matrix[molecule][tier] = TierBundle(
            **{name: display_value(cell_text(f.get(col))) for name, col in KOL_METRIC_FIELDS.items()}
        )

    if dropped:
        log.debug("aggregate_kol(title=%r, month=%r) dropped %s", title, target_month, dict(dropped))

    return KolResult(matrix=matrix, molecules=list(matrix), target_month=target_month)


def kol_frame(result: KolResult, molecule: str, *, numeric: bool = False) -> pd.DataFrame:
    """Return one molecule's tiers as rows and the eight metrics as columns.

    Raises:
        KeyError: if `molecule` is not in the result.
    """
    tiers = result.matrix[molecule]
    frame = pd.DataFrame(
        [tiers[t].model_dump() for t in result.tiers],
        index=pd.Index(result.tiers, name=FIELD_TIER),
        columns=list(KOL_METRIC_NAMES),
        dtype=object,
    )
    if numeric:
        frame = frame.apply(lambda col: col.map(coerce_metric)).astype(float)
    return frame
