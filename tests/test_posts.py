from __future__ import annotations

from voice_pipeline.aggregate.posts import TITLE_TOP_POSTS, molecule_options, posts_frame, top_posts


def post(author: str, interaction: object, molecule: str = "布地奈德", url: object = None,
         title: str = TITLE_TOP_POSTS) -> dict:
    fields = {"标题": title, "作者": author, "互动量": interaction, "分子式": molecule}
    if url is not None:
        fields["url"] = url
    return {"fields": fields}


RECORDS = [
    post("a", "1,200", url={"link": "https://x/1", "text": "鼻炎 好物"}),
    post("b", "30", molecule="糠酸莫米松", url="https://x/2"),
    post("c", "garbage"),
    post("d", "999", title="other"),
]


def test_filters_by_title_and_sorts_descending() -> None:
    posts = top_posts(RECORDS)
    assert [p.author for p in posts] == ["a", "b", "c"]
    assert posts[0].interaction == 1200.0
    assert posts[2].interaction == 0.0


def test_ascending_sort() -> None:
    assert [p.author for p in top_posts(RECORDS, descending=False)] == ["c", "b", "a"]


def test_url_cell_shapes() -> None:
    by_author = {p.author: p for p in top_posts(RECORDS)}
    assert (by_author["a"].link, by_author["a"].text) == ("https://x/1", "鼻炎 好物")
    assert (by_author["b"].link, by_author["b"].text) == ("https://x/2", "https://x/2")
    assert (by_author["c"].link, by_author["c"].text) == ("", "")


def test_search_matches_text_or_author() -> None:
    assert [p.author for p in top_posts(RECORDS, search="鼻炎")] == ["a"]
    assert [p.author for p in top_posts(RECORDS, search="b")] == ["b"]


def test_molecule_filter_and_options() -> None:
    posts = top_posts(RECORDS)
    assert molecule_options(posts) == ["全部", "布地奈德", "糠酸莫米松"]
    assert [p.author for p in top_posts(RECORDS, molecule="糠酸莫米松")] == ["b"]
    assert len(top_posts(RECORDS, molecule="全部")) == 3


def test_missing_fields_get_placeholders() -> None:
    (p,) = top_posts([{"fields": {"标题": TITLE_TOP_POSTS}}])
    assert (p.brand, p.author, p.tier) == ("无品牌", "未知作者", "未知量级")


def test_posts_frame_columns() -> None:
    frame = posts_frame(top_posts(RECORDS))
    assert list(frame.columns) == ["molecule", "brand", "text", "link", "author", "tier", "interaction"]
    assert len(frame) == 3
