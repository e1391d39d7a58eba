from __future__ import annotations

from voice_pipeline.aggregate.views import get_view
from voice_pipeline.ingest.feishu import FeishuAPIError
from voice_pipeline.session import ViewController

VIEW = get_view("douyin-brand")


def _rows(value: str, date: str = "Aug-25") -> list[dict]:
    return [{"fields": {"标题": VIEW.title, "拆分方式": "全量数据", "日期": date,
                        "品牌": "迪敏思", "分析指标": "总声量", "值": value}}]


def test_refresh_builds_result() -> None:
    calls: list[str] = []

    def fetch(endpoint: str) -> list[dict]:
        calls.append(endpoint)
        return _rows("5")

    c = ViewController(VIEW, fetch)
    state = c.refresh()
    assert calls == ["DOUYIN"]
    assert not state.loading
    assert state.error is None
    assert state.result is not None
    assert state.result.matrix["Aug-25"]["迪敏思"].volume == "5"


def test_stale_result_is_discarded() -> None:
    c = ViewController(VIEW, lambda _: [])
    slow = c.begin()
    fast = c.begin()

    assert c.complete(fast, _rows("new"))
    assert not c.complete(slow, _rows("old"))
    assert c.state.result is not None
    assert c.state.result.matrix["Aug-25"]["迪敏思"].volume == "new"


def test_loading_until_latest_completes() -> None:
    c = ViewController(VIEW, lambda _: [])
    first = c.begin()
    c.begin()
    c.complete(first, _rows("x"))
    assert c.state.loading
    assert c.state.result is None


def test_fetch_failure_keeps_previous_result() -> None:
    rows = _rows("1")
    ok = True

    def fetch(endpoint: str) -> list[dict]:
        if not ok:
            raise FeishuAPIError("boom")
        return rows

    c = ViewController(VIEW, fetch)
    c.refresh()
    previous = c.state.result

    ok = False
    state = c.refresh()
    assert state.error == "boom"
    assert not state.loading
    assert state.result is previous


def test_stale_failure_does_not_touch_state() -> None:
    c = ViewController(VIEW, lambda _: [])
    old = c.begin()
    new = c.begin()
    c.fail(old, RuntimeError("late"))
    assert c.state.error is None
    assert c.state.loading
    c.complete(new, _rows("1"))
    assert not c.state.loading


def test_platform_view_defaults_month() -> None:
    view = get_view("xhs-molecule-platform")
    rows = [{"fields": {"标题": view.title, "拆分方式": "全量数据", "日期": "Jan-26", "平台": "小红书",
                        "分子式": "布地奈德", "分析指标": "SOV", "值": "30%"}}]
    c = ViewController(view, lambda _: rows)
    state = c.refresh()
    assert state.target_month == "Jan-26"
    assert state.result is not None
    assert state.result.row_keys == ["小红书"]
