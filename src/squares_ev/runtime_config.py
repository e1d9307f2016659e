"""Runtime configuration loader (config-first, flag-overrides)."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from squares_ev.name_normalize import NameRule

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "runtime.toml"
DEFAULT_LOCAL_OVERRIDE_PATH = Path(__file__).resolve().parents[2] / "config" / "runtime.local.toml"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
DEFAULT_ANY_QUARTER_PAGE_URL = (
    "https://sportsbook.draftkings.com/leagues/football/nfl"
    "?category=squares&subcategory=squares---any-quarter"
)
DEFAULT_FINAL_RESULT_PAGE_URL = (
    "https://sportsbook.draftkings.com/leagues/football/nfl"
    "?category=squares&subcategory=squares---final-result"
)
_DK_MARKETS_BASE = (
    "https://sportsbook-nash.draftkings.com/sites/US-SB/api/sportscontent/controldata"
    "/league/leagueSubcategory/v1/markets"
)
DEFAULT_ANY_QUARTER_API_URL = (
    f"{_DK_MARKETS_BASE}?isBatchable=false&templateVars=88808%2C16729"
    "&eventsQuery=%24filter%3DleagueId%20eq%20%2788808%27%20AND%20clientMetadata"
    "%2FSubcategories%2Fany%28s%3A%20s%2FId%20eq%20%2716729%27%29"
    "&marketsQuery=%24filter%3DclientMetadata%2FsubCategoryId%20eq%20%2716729%27"
    "%20AND%20tags%2Fall%28t%3A%20t%20ne%20%27SportcastBetBuilder%27%29"
    "&include=Events&entity=events"
)
DEFAULT_FINAL_RESULT_API_URL = (
    f"{_DK_MARKETS_BASE}?isBatchable=false&templateVars=88808%2C16730"
    "&eventsQuery=%24filter%3DleagueId%20eq%20%2788808%27%20AND%20clientMetadata"
    "%2FSubcategories%2Fany%28s%3A%20s%2FId%20eq%20%2716730%27%29"
    "&marketsQuery=%24filter%3DclientMetadata%2FsubCategoryId%20eq%20%2716730%27"
    "%20AND%20tags%2Fall%28t%3A%20t%20ne%20%27SportcastBetBuilder%27%29"
    "&include=Events&entity=events"
)


@dataclass(frozen=True)
class RuntimeConfig:
    """Materialized runtime configuration."""

    config_path: Path | None
    price_per_square: float
    final_result_weight: float
    any_quarter_weight: float
    top_n: int
    draftkings_timeout_s: float
    draftkings_user_agent: str
    any_quarter_api_url: str
    any_quarter_page_url: str
    final_result_api_url: str
    final_result_page_url: str
    name_rules: tuple[NameRule, ...]


_CURRENT_RUNTIME_CONFIG: RuntimeConfig | None = None


def set_current_runtime_config(config: RuntimeConfig | None) -> None:
    global _CURRENT_RUNTIME_CONFIG
    _CURRENT_RUNTIME_CONFIG = config


def current_runtime_config() -> RuntimeConfig:
    config = _CURRENT_RUNTIME_CONFIG
    if config is not None:
        return config
    loaded = load_runtime_config()
    set_current_runtime_config(loaded)
    return loaded


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for key, value in overlay.items():
        existing = out.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            out[key] = _deep_merge(existing, value)
        else:
            out[key] = value
    return out


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        payload = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RuntimeError(f"failed reading runtime config: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise RuntimeError(f"invalid runtime config TOML: {path}") from exc
    if not isinstance(payload, dict):
        raise RuntimeError(f"runtime config root must be a table: {path}")
    return payload


def _as_table(payload: dict[str, Any], key: str) -> dict[str, Any]:
    value = payload.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RuntimeError(f"runtime config section [{key}] must be a table")
    return value


def _as_str(value: Any, *, default: str) -> str:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            return stripped
    return default


def _as_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def _as_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def _as_name_rules(names: dict[str, Any]) -> tuple[NameRule, ...]:
    raw_rules = names.get("rules", [])
    if not isinstance(raw_rules, list):
        raise RuntimeError("runtime config [names].rules must be an array of tables")
    rules: list[NameRule] = []
    for index, raw in enumerate(raw_rules):
        if not isinstance(raw, dict):
            raise RuntimeError(f"runtime config [[names.rules]] entry {index} must be a table")
        try:
            rules.append(NameRule.from_mapping(raw))
        except ValueError as exc:
            raise RuntimeError(f"invalid [[names.rules]] entry {index}: {exc}") from exc
    return tuple(rules)


def runtime_config_from_payload(
    payload: dict[str, Any], *, config_path: Path | None = None
) -> RuntimeConfig:
    pool = _as_table(payload, "pool")
    draftkings = _as_table(payload, "draftkings")
    names = _as_table(payload, "names")
    return RuntimeConfig(
        config_path=config_path,
        price_per_square=_as_float(pool.get("price_per_square"), default=3.0),
        final_result_weight=_as_float(pool.get("final_result_weight"), default=0.8),
        any_quarter_weight=_as_float(pool.get("any_quarter_weight"), default=0.2),
        top_n=_as_int(pool.get("top_n"), default=10),
        draftkings_timeout_s=_as_float(draftkings.get("timeout_s"), default=10.0),
        draftkings_user_agent=_as_str(draftkings.get("user_agent"), default=DEFAULT_USER_AGENT),
        any_quarter_api_url=_as_str(
            draftkings.get("any_quarter_api_url"), default=DEFAULT_ANY_QUARTER_API_URL
        ),
        any_quarter_page_url=_as_str(
            draftkings.get("any_quarter_page_url"), default=DEFAULT_ANY_QUARTER_PAGE_URL
        ),
        final_result_api_url=_as_str(
            draftkings.get("final_result_api_url"), default=DEFAULT_FINAL_RESULT_API_URL
        ),
        final_result_page_url=_as_str(
            draftkings.get("final_result_page_url"), default=DEFAULT_FINAL_RESULT_PAGE_URL
        ),
        name_rules=_as_name_rules(names),
    )


def load_runtime_config(config_path: Path | None = None) -> RuntimeConfig:
    """Load runtime config from `config/runtime.toml` plus optional local override.

    An explicit path must exist. When no path is given and the default file is
    absent, built-in defaults are used.
    """
    if config_path is None and not DEFAULT_CONFIG_PATH.exists():
        return runtime_config_from_payload({})

    source = (config_path or DEFAULT_CONFIG_PATH).expanduser().resolve()
    if not source.exists():
        raise RuntimeError(f"runtime config file not found: {source}")

    payload = _read_toml(source)
    if source == DEFAULT_CONFIG_PATH and DEFAULT_LOCAL_OVERRIDE_PATH.exists():
        payload = _deep_merge(payload, _read_toml(DEFAULT_LOCAL_OVERRIDE_PATH))
    return runtime_config_from_payload(payload, config_path=source)
