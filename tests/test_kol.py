from __future__ import annotations

import pytest

from voice_pipeline.aggregate.kol import TIERS, TITLE_KOL, TierBundle, aggregate_kol, kol_frame, map_tier


def row(molecule: str = "布地奈德", tier: str = "头部", date: str = "Jan-26", title: str = TITLE_KOL,
        **metrics: str) -> dict:
    fields = {"标题": title, "日期": date, "分子式": molecule, "达人量级": tier}
    fields.update(metrics)
    return {"fields": fields, "record_id": "r"}


@pytest.mark.parametrize(
    "raw, expected",
    [("超头部", "超头部"), ("头部", "头部"), ("肩部", "腰部"), ("腰部", "尾部"), ("尾部", "KOC"), ("KOC", "KOC"), ("明星", None)],
)
def test_map_tier(raw: str, expected: str | None) -> None:
    assert map_tier(raw) == expected


def test_every_molecule_gets_every_tier() -> None:
    result = aggregate_kol([row(声量="10", 单贴互动量月度环比="5%")])
    assert result.molecules == ["布地奈德"]
    cells = result.matrix["布地奈德"]
    assert list(cells) == list(TIERS)
    assert cells["头部"].volume == "10"
    assert cells["头部"].per_post_interaction_mom == "5%"
    assert cells["头部"].interaction == "-"
    assert cells["超头部"] == TierBundle()


def test_title_and_month_filters() -> None:
    records = [
        row(molecule="布地奈德", date="Jan-26"),
        row(molecule="糠酸莫米松", date="Dec-25"),
        row(molecule="丙酸氟替卡松", title="other"),
    ]
    assert aggregate_kol(records, target_month="Jan-26").molecules == ["布地奈德"]
    assert aggregate_kol(records).molecules == ["布地奈德", "糠酸莫米松"]


def test_molecule_spellings_fold_and_keep_first_seen_order() -> None:
    records = [
        row(molecule="糠酸莫米松鼻喷雾剂 "),
        row(molecule="氮卓斯汀氟替卡松"),
        row(molecule="糠酸莫米松", tier="尾部", 声量="3"),
    ]
    result = aggregate_kol(records)
    assert result.molecules == ["糠酸莫米松", "氮䓬斯汀氟替卡松"]
    assert result.matrix["糠酸莫米松"]["KOC"].volume == "3"


def test_unknown_tier_and_malformed_rows_are_dropped() -> None:
    result = aggregate_kol([row(tier="明星", 声量="1"), {"fields": "bad"}])
    assert result.molecules == ["布地奈德"]
    assert all(b == TierBundle() for b in result.matrix["布地奈德"].values())


def test_empty_and_none_values_become_placeholder() -> None:
    result = aggregate_kol([row(声量="", 互动量="无", 互动量占比="30%")])
    cell = result.matrix["布地奈德"]["头部"]
    assert (cell.volume, cell.interaction, cell.interaction_share) == ("-", "-", "30%")


def test_kol_frame_numeric() -> None:
    result = aggregate_kol([row(声量="1,200", 声量占比="12.5%")])
    frame = kol_frame(result, "布地奈德", numeric=True)
    assert list(frame.index) == list(TIERS)
    assert frame.loc["头部", "volume"] == 1200.0
    assert frame.loc["头部", "volume_share"] == 12.5
    assert frame.loc["超头部", "volume"] == 0.0
    with pytest.raises(KeyError):
        kol_frame(result, "布地奈德X")
