"""Registry of dashboard dataset views.

Each view is one call site of the aggregator: which upstream endpoint it
reads, which title/split selects its rows, which entity set forms the
columns and which field forms the rows.

The titles are copied exactly as the upstream tables spell them. The
Douyin and Xiaohongshu tables carry a trailing space in their title while
the all-platform table does not; matching is exact, so do not strip them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from voice_pipeline.aggregate.entities import BRANDS, MOLECULES, CanonicalEntitySet
from voice_pipeline.aggregate.matrix import aggregate
from voice_pipeline.models import AggregationResult, EntityField, ParsedRecord, RawRecord, RowAxis

SPLIT_FULL = "全量数据"

TITLE_BRAND_ALL = "重点品牌声量及互动量表现"
TITLE_BRAND_DOUYIN = "重点品牌声量及互动量表现（抖音） "
TITLE_MOLECULE_DOUYIN = "重点分子式声量及互动量表现（抖音） "
TITLE_MOLECULE_XHS = "重点分子式声量及互动量表现（红书） "


@dataclass(frozen=True)
class DatasetView:
    """One parameterization of the aggregator.

    Attributes:
        key: Registry key used by the CLI.
        label: Human-readable label.
        endpoint: Upstream dataset endpoint (see `config.ENDPOINTS`).
        title: Exact title filter.
        split: Exact split-type filter.
        entity_set: Canonical column set.
        entity_field: Record field holding the entity name.
        row_axis: ``date`` or ``platform``.
    """
    key: str
    label: str
    endpoint: str
    title: str
    split: str
    entity_set: CanonicalEntitySet
    entity_field: EntityField
    row_axis: RowAxis = "date"

    def run(
        self,
        records: Iterable[ParsedRecord | RawRecord | Mapping[str, Any]],
        target_month: str | None = None,
    ) -> AggregationResult:
        """Aggregate `records` for this view.

        `target_month` is only used on the platform axis.
        """
        return aggregate(
            records,
            title=self.title,
            split=self.split,
            entity_set=self.entity_set,
            entity_field=self.entity_field,
            row_axis=self.row_axis,
            target_month=target_month if self.row_axis == "platform" else None,
        )


def _xhs_molecule(key: str, label: str, endpoint: str, split: str) -> DatasetView:
    return DatasetView(
        key=key,
        label=label,
        endpoint=endpoint,
        title=TITLE_MOLECULE_XHS,
        split=split,
        entity_set=MOLECULES,
        entity_field="molecule",
    )


_ALL_VIEWS = [
    DatasetView("all-brand", "全平台 品牌", "records", TITLE_BRAND_ALL, SPLIT_FULL, BRANDS, "brand"),
    DatasetView("douyin-brand", "抖音 品牌", "DOUYIN", TITLE_BRAND_DOUYIN, SPLIT_FULL, BRANDS, "brand"),
    DatasetView("douyin-molecule", "抖音 分子式", "DOUYIN", TITLE_MOLECULE_DOUYIN, SPLIT_FULL, MOLECULES, "molecule"),
    _xhs_molecule("xhs-molecule-kpi", "红书 分子式 KPI总览", "XHS", SPLIT_FULL),
    _xhs_molecule("xhs-molecule-hcp", "红书 分子式 HCP", "XHSHCP", "HCP"),
    _xhs_molecule("xhs-molecule-nonhcp", "红书 分子式 NON-HCP", "XHSNONHCP", "NON-HCP"),
    _xhs_molecule("xhs-molecule-kol", "红书 分子式 KOL", "XHSKOL", "KOL"),
    _xhs_molecule("xhs-molecule-ugc", "红书 分子式 UGC", "XHSUGC", "UGC"),
    _xhs_molecule("xhs-molecule-koc", "红书 分子式 KOC", "XHSKOC", "KOC"),
    DatasetView(
        "xhs-molecule-platform",
        "红书 分子式 平台分布",
        "XHSDistribution",
        TITLE_MOLECULE_XHS,
        SPLIT_FULL,
        MOLECULES,
        "molecule",
        row_axis="platform",
    ),
]

VIEWS: dict[str, DatasetView] = {v.key: v for v in _ALL_VIEWS}


def get_view(key: str) -> DatasetView:
    """Return the registered view for `key`.

    Raises:
        KeyError: with the list of known keys when `key` is unknown.
    """
    try:
        return VIEWS[key]
    except KeyError:
        raise KeyError(f"Unknown view {key!r}; known views: {', '.join(VIEWS)}") from None
