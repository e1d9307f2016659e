from __future__ import annotations

import pytest

from squares_ev.name_normalize import NameRule, comparison_key, normalize_owner_name

STEVEN = NameRule(
    canonical="Steven",
    variants=frozenset({"steven", "steve", "stevie", "stevo", "seven", "tseven"}),
    prefix="stev",
    suffix="seven",
    max_affix_length=8,
    max_edit_distance=2,
    min_length=5,
    max_length=8,
)


def test_comparison_key_keeps_lowercase_letters_only() -> None:
    assert comparison_key("Steve-O 2!") == "steveo"
    assert comparison_key("123") == ""


@pytest.mark.parametrize(
    "raw",
    ["Steve", "STEVIE", "steve o", "Stevn", "Stephen", "T. Seven", "Stevenn", "Steven 2"],
)
def test_normalize_owner_name_merges_variants(raw: str) -> None:
    assert normalize_owner_name(raw, (STEVEN,)) == "Steven"


@pytest.mark.parametrize("raw", ["Bob", "Stephanie", "Eve", "Stevenson-Smith"])
def test_normalize_owner_name_leaves_distinct_names(raw: str) -> None:
    assert normalize_owner_name(raw, (STEVEN,)) == raw


def test_normalize_owner_name_collapses_whitespace_without_rules() -> None:
    assert normalize_owner_name("  Mary   Ann ") == "Mary Ann"
    assert normalize_owner_name("Stevn") == "Stevn"
    assert normalize_owner_name("") == ""
    assert normalize_owner_name("  42 ", (STEVEN,)) == "42"


def test_first_matching_rule_wins() -> None:
    sam = NameRule(canonical="Sam", variants=frozenset({"sammy", "samuel"}), max_edit_distance=-1)
    rules = (sam, STEVEN)

    assert normalize_owner_name("Sammy", rules) == "Sam"
    assert normalize_owner_name("Stevie", rules) == "Steven"
    assert normalize_owner_name("Pam", rules) == "Pam"


def test_edit_distance_window_defaults_to_canonical_length() -> None:
    rule = NameRule(canonical="Katherine", max_edit_distance=2)

    assert rule.matches("katharine")
    assert rule.matches("kathrine")
    assert not rule.matches("kat")


def test_short_canonical_name_only_matches_exactly() -> None:
    al = NameRule(canonical="Al")

    assert al.edit_distance_limit == 0
    assert [normalize_owner_name(raw, (al,)) for raw in ["Ed", "Bo", "Jo", "Kim", "AL"]] == [
        "Ed",
        "Bo",
        "Jo",
        "Kim",
        "Al",
    ]


@pytest.mark.parametrize(
    ("canonical", "raw"),
    [("Bob", "Rob"), ("Bob", "Bo"), ("Anna", "Dana"), ("Anna", "Ed"), ("Carl", "Carlos")],
)
def test_default_edit_window_keeps_distinct_short_names(canonical: str, raw: str) -> None:
    assert normalize_owner_name(raw, (NameRule(canonical=canonical),)) == raw


def test_edit_distance_limit_scales_with_canonical_length() -> None:
    assert NameRule(canonical="Anna").edit_distance_limit == 1
    assert NameRule(canonical="Steven").edit_distance_limit == 2
    assert NameRule(canonical="Katherine", max_edit_distance=1).edit_distance_limit == 1
    assert normalize_owner_name("Stevn", (NameRule(canonical="Steven"),)) == "Steven"


def test_name_rule_from_mapping() -> None:
    rule = NameRule.from_mapping(
        {
            "canonical": " Steven ",
            "variants": ["Steve", "Stevie!"],
            "prefix": "Stev",
            "max_affix_length": 8,
            "max_edit_distance": 1,
            "min_length": 5,
            "max_length": 8,
        }
    )

    assert rule.canonical == "Steven"
    assert rule.variants == frozenset({"steve", "stevie"})
    assert rule.prefix == "stev"
    assert rule.max_edit_distance == 1


def test_name_rule_from_mapping_requires_canonical() -> None:
    with pytest.raises(ValueError, match="canonical"):
        NameRule.from_mapping({"variants": ["x"]})
