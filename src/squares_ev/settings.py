"""Application settings for squares-ev."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from squares_ev.runtime_config import (
    DEFAULT_ANY_QUARTER_API_URL,
    DEFAULT_ANY_QUARTER_PAGE_URL,
    DEFAULT_FINAL_RESULT_API_URL,
    DEFAULT_FINAL_RESULT_PAGE_URL,
    DEFAULT_USER_AGENT,
    current_runtime_config,
)

ENV_PREFIX = "SQUARES_EV_"


class Settings(BaseSettings):
    """Runtime settings for pool pricing and the live odds source."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    price_per_square: float = Field(default=3.0, ge=0)
    final_result_weight: float = Field(default=0.8, ge=0)
    any_quarter_weight: float = Field(default=0.2, ge=0)
    top_n: int = Field(default=10, ge=0)
    draftkings_timeout_s: float = 10.0
    draftkings_user_agent: str = DEFAULT_USER_AGENT
    any_quarter_api_url: str = DEFAULT_ANY_QUARTER_API_URL
    any_quarter_page_url: str = DEFAULT_ANY_QUARTER_PAGE_URL
    final_result_api_url: str = DEFAULT_FINAL_RESULT_API_URL
    final_result_page_url: str = DEFAULT_FINAL_RESULT_PAGE_URL

    @classmethod
    def from_runtime(cls) -> "Settings":
        """Construct settings from runtime config; `SQUARES_EV_*` env vars still win."""
        runtime = current_runtime_config()
        values = {
            "price_per_square": runtime.price_per_square,
            "final_result_weight": runtime.final_result_weight,
            "any_quarter_weight": runtime.any_quarter_weight,
            "top_n": runtime.top_n,
            "draftkings_timeout_s": runtime.draftkings_timeout_s,
            "draftkings_user_agent": runtime.draftkings_user_agent,
            "any_quarter_api_url": runtime.any_quarter_api_url,
            "any_quarter_page_url": runtime.any_quarter_page_url,
            "final_result_api_url": runtime.final_result_api_url,
            "final_result_page_url": runtime.final_result_page_url,
        }
        explicit = {
            key: value
            for key, value in values.items()
            if not os.environ.get(f"{ENV_PREFIX}{key.upper()}", "").strip()
        }
        return cls(**explicit)
