from __future__ import annotations

from pathlib import Path

import pytest

from squares_ev.name_normalize import normalize_owner_name
from squares_ev.runtime_config import (
    DEFAULT_ANY_QUARTER_API_URL,
    DEFAULT_CONFIG_PATH,
    current_runtime_config,
    load_runtime_config,
    runtime_config_from_payload,
    set_current_runtime_config,
)


def test_runtime_config_defaults_from_empty_payload() -> None:
    config = runtime_config_from_payload({})

    assert config.config_path is None
    assert config.price_per_square == 3.0
    assert config.final_result_weight == 0.8
    assert config.any_quarter_weight == 0.2
    assert config.top_n == 10
    assert config.any_quarter_api_url == DEFAULT_ANY_QUARTER_API_URL
    assert config.name_rules == ()


def test_runtime_config_coerces_loose_values() -> None:
    config = runtime_config_from_payload(
        {
            "pool": {"price_per_square": "2.5", "top_n": 4.0, "final_result_weight": True},
            "draftkings": {"user_agent": "   ", "timeout_s": 3},
        }
    )

    assert config.price_per_square == 2.5
    assert config.top_n == 4
    assert config.final_result_weight == 0.8
    assert config.draftkings_timeout_s == 3.0
    assert config.draftkings_user_agent.startswith("Mozilla/5.0")


def test_load_runtime_config_parses_name_rules(tmp_path: Path) -> None:
    config_path = tmp_path / "runtime.toml"
    config_path.write_text(
        "\n".join(
            [
                "[pool]",
                "price_per_square = 2.0",
                "",
                "[draftkings]",
                'final_result_page_url = "https://example.test/final"',
                "",
                "[[names.rules]]",
                'canonical = "Katherine"',
                'variants = ["katherine", "kathryn", "kat"]',
                "max_edit_distance = 1",
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    config = load_runtime_config(config_path)

    assert config.config_path == config_path.resolve()
    assert config.price_per_square == 2.0
    assert config.final_result_page_url == "https://example.test/final"
    assert len(config.name_rules) == 1
    assert config.name_rules[0].canonical == "Katherine"
    assert normalize_owner_name("Kathryn", config.name_rules) == "Katherine"


def test_load_runtime_config_requires_explicit_file(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError, match="not found"):
        load_runtime_config(tmp_path / "missing.toml")


def test_load_runtime_config_rejects_invalid_toml(tmp_path: Path) -> None:
    config_path = tmp_path / "runtime.toml"
    config_path.write_text("[pool\nprice = 1\n", encoding="utf-8")

    with pytest.raises(RuntimeError, match="invalid runtime config TOML"):
        load_runtime_config(config_path)


def test_load_runtime_config_rejects_bad_name_rule(tmp_path: Path) -> None:
    config_path = tmp_path / "runtime.toml"
    config_path.write_text(
        '[[names.rules]]\nvariants = ["kat"]\n',
        encoding="utf-8",
    )

    with pytest.raises(RuntimeError, match=r"invalid \[\[names.rules\]\] entry 0"):
        load_runtime_config(config_path)


def test_shipped_config_folds_steven_variants() -> None:
    if not DEFAULT_CONFIG_PATH.exists():
        pytest.skip("shipped runtime config not present")

    config = load_runtime_config(DEFAULT_CONFIG_PATH)

    assert normalize_owner_name("Stevie", config.name_rules) == "Steven"
    assert normalize_owner_name("Stephanie", config.name_rules) == "Stephanie"


def test_current_runtime_config_caches_until_reset(tmp_path: Path) -> None:
    config_path = tmp_path / "runtime.toml"
    config_path.write_text("[pool]\ntop_n = 2\n", encoding="utf-8")

    set_current_runtime_config(load_runtime_config(config_path))
    try:
        assert current_runtime_config().top_n == 2
    finally:
        set_current_runtime_config(None)
