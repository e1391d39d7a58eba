"""TOP hot-posts list for the Xiaohongshu molecule pages."""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import pandas as pd
from pydantic import BaseModel

from voice_pipeline.aggregate.matrix import coerce_metric
from voice_pipeline.models import FIELD_BRAND, FIELD_MOLECULE, FIELD_TITLE, RawRecord, as_raw_record, cell_text

log = logging.getLogger(__name__)

TOP_POSTS_ENDPOINT = "XHS"
TITLE_TOP_POSTS = "重点分子式TOP热帖（红书）"
ALL_MOLECULES = "全部"


class TopPost(BaseModel):
    molecule: str = ""
    brand: str = "无品牌"
    text: str = ""
    link: str = ""
    author: str = "未知作者"
    tier: str = "未知量级"
    interaction: float = 0.0


def _link_cell(value: Any) -> tuple[str, str]:
    """Split a url cell into ``(link, text)``.

    Link cells come as ``{"link": ..., "text": ...}``; plain strings are
    used for both.
    """
    if isinstance(value, Mapping):
        return cell_text(value.get("link")), cell_text(value.get("text"))
    text = cell_text(value)
    return text, text


def _post(rec: RawRecord) -> TopPost:
    f = rec.fields
    link, text = _link_cell(f.get("url"))
    return TopPost(
        molecule=cell_text(f.get(FIELD_MOLECULE)),
        brand=cell_text(f.get(FIELD_BRAND)) or "无品牌",
        text=text,
        link=link,
        author=cell_text(f.get("作者")) or "未知作者",
        tier=cell_text(f.get("达人量级")) or "未知量级",
        interaction=coerce_metric(f.get("互动量")),
    )


def top_posts(
    records: Iterable[RawRecord | Mapping[str, Any]],
    *,
    title: str = TITLE_TOP_POSTS,
    search: str | None = None,
    molecule: str | None = None,
    descending: bool = True,
) -> list[TopPost]:
    """Return the hot posts carrying `title`, filtered and sorted.

    Args:
        records: Raw rows of the Xiaohongshu table.
        title: Exact title the row must carry.
        search: Keep posts whose text or author contains this substring.
        molecule: Keep posts of this molecule; ``None`` or ``全部`` keeps all.
        descending: Sort by interaction, largest first.
    """
    posts: list[TopPost] = []
    for raw in records:
        rec = as_raw_record(raw)
        if rec is None or cell_text(rec.fields.get(FIELD_TITLE)) != title:
            continue
        posts.append(_post(rec))

    if search:
        posts = [p for p in posts if search in p.text or search in p.author]
    if molecule and molecule != ALL_MOLECULES:
        posts = [p for p in posts if p.molecule == molecule]

    posts.sort(key=lambda p: p.interaction, reverse=descending)
    log.debug("top_posts(title=%r) kept %d posts", title, len(posts))
    return posts


def molecule_options(posts: Iterable[TopPost]) -> list[str]:
    """``全部`` followed by the molecules seen, in first-seen order."""
    seen: dict[str, None] = {}
    for p in posts:
        if p.molecule:
            seen.setdefault(p.molecule, None)
    return [ALL_MOLECULES, *seen]


def posts_frame(posts: list[TopPost]) -> pd.DataFrame:
    return pd.DataFrame([p.model_dump() for p in posts], columns=list(TopPost.model_fields))
