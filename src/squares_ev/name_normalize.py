"""Participant-name canonicalization for pasted squares boards."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from rapidfuzz.distance import Levenshtein

from squares_ev.util.parsing import collapse_whitespace

_NON_LETTERS_RE = re.compile(r"[^a-z]")


def comparison_key(value: str) -> str:
    """Reduce a name to lowercase ASCII letters only."""
    return _NON_LETTERS_RE.sub("", value.lower())


@dataclass(frozen=True)
class NameRule:
    """Variant-matching rule for one canonical participant name.

    A comparison key matches when it is one of `variants`, when it starts with
    `prefix` or ends with `suffix` while no longer than `max_affix_length`, or
    when its length is within `[min_length, max_length]` and its edit distance
    to the canonical key is within `edit_distance_limit`.

    The edit budget never exceeds `(len(canonical_key) - 2) // 2`, so two- and
    three-letter names only match exactly. Unset length bounds (0) default to
    the canonical key length minus the budget, at least just over half of it,
    and the canonical key length plus the budget.
    """

    canonical: str
    variants: frozenset[str] = field(default_factory=frozenset)
    prefix: str = ""
    suffix: str = ""
    max_affix_length: int = 0
    max_edit_distance: int = 2
    min_length: int = 0
    max_length: int = 0

    @property
    def canonical_key(self) -> str:
        return comparison_key(self.canonical)

    @property
    def edit_distance_limit(self) -> int:
        return max(0, min(self.max_edit_distance, (len(self.canonical_key) - 2) // 2))

    def matches(self, key: str) -> bool:
        if not key:
            return False
        if key in self.variants:
            return True
        if len(key) <= self.max_affix_length and (
            (self.prefix and key.startswith(self.prefix))
            or (self.suffix and key.endswith(self.suffix))
        ):
            return True
        if self.max_edit_distance < 0:
            return False
        canonical_key = self.canonical_key
        limit = self.edit_distance_limit
        min_length = self.min_length or max(
            len(canonical_key) - limit, len(canonical_key) // 2 + 1
        )
        max_length = self.max_length or len(canonical_key) + limit
        if not min_length <= len(key) <= max_length:
            return False
        distance = Levenshtein.distance(key, canonical_key, score_cutoff=limit)
        return distance <= limit

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> NameRule:
        """Build a rule from a config table such as `[[names.rules]]`."""
        canonical = collapse_whitespace(payload.get("canonical", ""))
        if not canonical:
            raise ValueError("name rule requires a non-empty canonical name")
        raw_variants = payload.get("variants", [])
        if isinstance(raw_variants, str):
            raw_variants = raw_variants.split(",")
        if not isinstance(raw_variants, list):
            raise ValueError(f"name rule variants must be a list: {canonical}")
        variants = frozenset(
            key for key in (comparison_key(str(item)) for item in raw_variants) if key
        )
        return cls(
            canonical=canonical,
            variants=variants,
            prefix=comparison_key(str(payload.get("prefix", ""))),
            suffix=comparison_key(str(payload.get("suffix", ""))),
            max_affix_length=int(payload.get("max_affix_length", 0)),
            max_edit_distance=int(payload.get("max_edit_distance", 2)),
            min_length=int(payload.get("min_length", 0)),
            max_length=int(payload.get("max_length", 0)),
        )


def normalize_owner_name(value: Any, rules: Iterable[NameRule] = ()) -> str:
    """Collapse whitespace and map near-duplicate spellings onto a canonical name."""
    cleaned = collapse_whitespace(value)
    if not cleaned:
        return cleaned
    key = comparison_key(cleaned)
    if not key:
        return cleaned
    for rule in rules:
        if rule.matches(key):
            return rule.canonical
    return cleaned
