from __future__ import annotations

import pytest

from voice_pipeline.aggregate.entities import BRANDS, MOLECULES
from voice_pipeline.aggregate.matrix import aggregate
from voice_pipeline.models import METRIC_NAMES, MetricBundle, parse_record


def rec(title: str = "T", split: str = "full", date: str = "Aug-25", brand: str = "迪敏思",
        metric: str = "总声量", value: str | None = "1", **extra: str) -> dict:
    fields = {"标题": title, "拆分方式": split, "日期": date, "品牌": brand, "分析指标": metric}
    if value is not None:
        fields["值"] = value
    fields.update(extra)
    return {"fields": fields, "id": "x", "record_id": "x"}


def run(records: list[dict], **kw):
    params = dict(title="T", split="full", entity_set=BRANDS, entity_field="brand")
    params.update(kw)
    return aggregate(records, **params)


def test_end_to_end_scenario() -> None:
    records = [
        rec(brand="迪敏思 ", metric="总声量", value="1,234"),
        rec(brand="雷诺考特", metric="SOV", value="12%"),
    ]
    result = run(records)

    assert result.row_keys == ["Aug-25"]
    row = result.matrix["Aug-25"]
    assert row["迪敏思"] == MetricBundle(volume="1,234")
    assert row["雷诺考特"] == MetricBundle(voice_share="12%")
    assert result.entities == list(BRANDS.entities)


def test_title_mismatch_gives_empty_result() -> None:
    records = [rec(brand="迪敏思 "), rec(brand="雷诺考特", metric="SOV")]
    result = run(records, title="Other")
    assert result.matrix == {}
    assert result.row_keys == []
    assert result.empty


def test_title_match_is_exact_including_trailing_space() -> None:
    records = [rec(title="T ")]
    assert run(records, title="T").empty
    assert run(records, title="T ").row_keys == ["Aug-25"]


def test_matrix_is_rectangular_with_canonical_columns_only() -> None:
    records = [
        rec(date="Aug-25", brand="迪敏思"),
        rec(date="Sep-25", brand="开瑞坦", metric="SOE", value="3%"),
        rec(date="Sep-25", brand="Unknown Brand"),
    ]
    result = run(records)
    for row in result.row_keys:
        assert set(result.matrix[row]) == set(BRANDS.entities)
        for entity in BRANDS.entities:
            assert isinstance(result.matrix[row][entity], MetricBundle)


def test_unknown_entity_contributes_nothing() -> None:
    result = run([rec(date="Oct-25", brand="完全不相关")])
    assert result.empty
    assert "完全不相关" not in str(result.model_dump())


def test_missing_metric_keeps_placeholder() -> None:
    result = run([rec(metric="总声量", value="10")])
    bundle = result.matrix["Aug-25"]["迪敏思"]
    assert bundle.volume == "10"
    for name in METRIC_NAMES:
        if name != "volume":
            assert getattr(bundle, name) == "-"


@pytest.mark.parametrize("value", ["", "无", None])
def test_empty_and_none_literal_values_become_placeholder(value: str | None) -> None:
    result = run([rec(value=value)])
    assert result.matrix["Aug-25"]["迪敏思"].volume == "-"


def test_value_stored_verbatim() -> None:
    result = run([rec(metric="总互动量", value=" 12,345.6 ")])
    assert result.matrix["Aug-25"]["迪敏思"].interaction == " 12,345.6 "


def test_unknown_metric_still_initialises_row() -> None:
    result = run([rec(metric="单帖互动量", value="5")])
    assert result.row_keys == ["Aug-25"]
    assert result.matrix["Aug-25"]["迪敏思"] == MetricBundle()


def test_all_four_metrics_map_to_bundle_fields() -> None:
    records = [
        rec(metric="总声量", value="1"),
        rec(metric="SOV", value="2%"),
        rec(metric="总互动量", value="3"),
        rec(metric="SOE", value="4%"),
    ]
    bundle = run(records).matrix["Aug-25"]["迪敏思"]
    assert bundle == MetricBundle(volume="1", voice_share="2%", interaction="3", interaction_share="4%")


def test_dates_sorted_chronologically() -> None:
    records = [rec(date="Jan-26"), rec(date="Feb-25"), rec(date="Dec-25")]
    assert run(records).row_keys == ["Feb-25", "Dec-25", "Jan-26"]


def test_split_filter_and_empty_fields_skip_records() -> None:
    records = [
        rec(split="HCP"),
        rec(brand=""),
        rec(date=""),
        {"fields": "not a mapping"},
        {"no_fields": True},
    ]
    assert run(records).empty


def test_molecule_aliases_resolve_to_canonical_columns() -> None:
    records = [
        {"fields": {"标题": "M", "拆分方式": "全量数据", "日期": "Aug-25",
                    "分子式": "糠酸莫米松鼻喷雾剂", "分析指标": "总声量", "值": "88"}},
        {"fields": {"标题": "M", "拆分方式": "全量数据", "日期": "Aug-25",
                    "分子式": "布地奈德　", "分析指标": "SOV", "值": "20%"}},
    ]
    result = aggregate(records, title="M", split="全量数据", entity_set=MOLECULES, entity_field="molecule")
    assert result.matrix["Aug-25"]["糠酸莫米松"].volume == "88"
    assert result.matrix["Aug-25"]["布地奈德"].voice_share == "20%"
    assert list(result.matrix["Aug-25"]) == list(MOLECULES.entities)


def test_platform_axis_filters_by_month_and_sorts_lexically() -> None:
    records = [
        rec(date="Aug-25", **{"平台": "小红书"}),
        rec(date="Aug-25", **{"平台": "B站"}),
        rec(date="Sep-25", **{"平台": "抖音"}),
        rec(date="Aug-25"),
    ]
    result = run(records, row_axis="platform", target_month="Aug-25")
    assert result.row_keys == sorted(["小红书", "B站"])
    assert result.target_month == "Aug-25"
    assert result.row_axis == "platform"


def test_platform_axis_requires_target_month() -> None:
    with pytest.raises(ValueError):
        run([rec()], row_axis="platform")


def test_input_records_are_not_mutated() -> None:
    records = [rec(brand="迪敏思 ", value="")]
    before = [dict(r["fields"]) for r in records]
    run(records)
    assert [r["fields"] for r in records] == before


def test_numeric_record_ids_do_not_drop_rows() -> None:
    r = rec()
    r["id"], r["record_id"] = 1, 1
    assert run([r]).row_keys == ["Aug-25"]


def test_last_write_follows_input_order_for_mixed_inputs() -> None:
    parsed = parse_record(rec(value="first"))
    assert parsed is not None
    result = run([rec(value="second"), parsed])
    assert result.matrix["Aug-25"]["迪敏思"].volume == "first"
