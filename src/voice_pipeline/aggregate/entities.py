"""Canonical brand and molecule sets with alias-based name resolution.

Upstream tables spell the same product several ways (trailing spaces,
full-width spaces, "鼻喷雾剂" suffixes). Each `CanonicalEntitySet` owns a
fixed, ordered list of names plus an alias table; anything that does not
resolve to one of the fixed names is noise and gets dropped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Mapping

_WHITESPACE_RE = re.compile(r"[\s\u3000]+")


def normalize_name(name: str | None) -> str:
    """Strip and remove every whitespace character, full-width included.

    Idempotent: ``normalize_name(normalize_name(x)) == normalize_name(x)``.
    """
    if not name:
        return ""
    return _WHITESPACE_RE.sub("", name.strip())


@dataclass(frozen=True)
class CanonicalEntitySet:
    """Fixed ordered set of canonical names and their known aliases.

    Attributes:
        name: Short label of the set (``brand`` / ``molecule``).
        entities: Canonical names, in column order.
        aliases: canonical name → known raw variants. Every canonical name
            is implicitly an alias of itself.
    """
    name: str
    entities: tuple[str, ...]
    aliases: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = set(self.aliases) - set(self.entities)
        if unknown:
            raise ValueError(f"Aliases given for non-canonical names: {sorted(unknown)}")

    @cached_property
    def lookup(self) -> dict[str, str]:
        """Normalized alias → canonical name."""
        table: dict[str, str] = {}
        for canonical in self.entities:
            for alias in (canonical, *self.aliases.get(canonical, ())):
                table.setdefault(normalize_name(alias), canonical)
        return table

    @cached_property
    def _ranked_aliases(self) -> list[tuple[str, str]]:
        # longest alias first, ties in canonical column order
        order = {c: i for i, c in enumerate(self.entities)}
        return sorted(
            self.lookup.items(),
            key=lambda kv: (-len(kv[0]), order[kv[1]]),
        )

    def resolve(self, raw: str | None) -> str:
        """Map a raw name to its canonical spelling.

        Tries an exact alias hit, then the longest alias that contains or
        is contained in the normalized name. Falls back to the normalized
        name itself, which will not be a member of the set.
        """
        normalized = normalize_name(raw)
        if not normalized:
            return ""
        lookup = self.lookup
        if normalized in lookup:
            return lookup[normalized]
        for alias, canonical in self._ranked_aliases:
            if alias in normalized or normalized in alias:
                return canonical
        return normalized

    def canonical(self, raw: str | None) -> str | None:
        """Return the canonical name for `raw`, or ``None`` if unrecognized."""
        resolved = self.resolve(raw)
        return resolved if resolved in self.entities else None

    def __contains__(self, item: object) -> bool:
        return item in self.entities

    def __iter__(self):
        return iter(self.entities)

    def __len__(self) -> int:
        return len(self.entities)


MOLECULES = CanonicalEntitySet(
    name="molecule",
    entities=("氮䓬斯汀氟替卡松", "糠酸莫米松", "布地奈德", "丙酸氟替卡松"),
    aliases={
        "氮䓬斯汀氟替卡松": ("氮卓斯汀氟替卡松", "氮䓬斯汀氟替卡松鼻喷雾剂", "氮卓斯汀氟替卡松鼻喷雾剂"),
        "糠酸莫米松": ("糠酸莫米松鼻喷雾剂",),
        "布地奈德": ("布地奈德鼻喷雾剂",),
        "丙酸氟替卡松": ("丙酸氟替卡松鼻喷雾剂",),
    },
)

BRANDS = CanonicalEntitySet(
    name="brand",
    entities=("迪敏思", "雷诺考特", "内舒拿", "辅舒良", "舒霏敏", "开瑞坦"),
)

ENTITY_SETS: dict[str, CanonicalEntitySet] = {
    "brand": BRANDS,
    "molecule": MOLECULES,
}
