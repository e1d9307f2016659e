"""HTTP client for DraftKings NFL squares markets."""

from __future__ import annotations

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt

from squares_ev.analysis import require_full_coverage
from squares_ev.board import DEFAULT_AWAY_LABEL, DEFAULT_HOME_LABEL, DIGITS
from squares_ev.settings import Settings
from squares_ev.util.parsing import to_price

ANY_QUARTER_MARKET = "Any Quarter"
FINAL_RESULT_MARKET = "Final Result"

_SELECTION_DIGITS_RE = re.compile(r"(\d)\s*-\s*(\d)")


class OddsClientError(RuntimeError):
    """Raised on odds source failures."""


class RetryableStatusError(RuntimeError):
    """Raised for retryable status codes."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        message = f"retryable status {response.status_code}"
        super().__init__(message)

    def retry_after_seconds(self) -> float | None:
        raw_value = self.response.headers.get("Retry-After")
        if not raw_value:
            return None
        try:
            return max(0.0, float(raw_value))
        except ValueError:
            try:
                date_value = parsedate_to_datetime(raw_value)
            except (TypeError, ValueError):
                return None
            now = datetime.now(UTC)
            return max(0.0, (date_value - now).total_seconds())


def _wait_for_retry(retry_state) -> float:
    """Wait strategy for tenacity retries."""
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    if isinstance(exc, RetryableStatusError):
        retry_after = exc.retry_after_seconds()
        if retry_after is not None:
            return min(retry_after, 30.0)
    return min(2 ** (retry_state.attempt_number - 1), 15.0)


@dataclass(frozen=True)
class ParsedMarket:
    """One squares market reduced to a 10x10 odds grid plus event metadata."""

    odds: tuple[tuple[int, ...], ...]
    home_team: str
    away_team: str
    event_id: str
    event_name: str
    start_event_date: str


@dataclass(frozen=True)
class SquaresOdds:
    """Both squares markets for one event, indexed [away_digit][home_digit]."""

    event_id: str
    event_name: str
    start_event_date: str
    home_team: str
    away_team: str
    fetched_at: str
    any_quarter_odds: tuple[tuple[int, ...], ...]
    final_result_odds: tuple[tuple[int, ...], ...]
    any_quarter_url: str
    final_result_url: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_name": self.event_name,
            "start_event_date": self.start_event_date,
            "home_team": self.home_team,
            "away_team": self.away_team,
            "fetched_at": self.fetched_at,
            "any_quarter": [list(row) for row in self.any_quarter_odds],
            "final_result": [list(row) for row in self.final_result_odds],
            "source_urls": {
                "any_quarter": self.any_quarter_url,
                "final_result": self.final_result_url,
            },
        }


def parse_selection_digits(label: str) -> tuple[int, int] | None:
    """Read `(home_digit, away_digit)` from a selection label like `"7 - 0"`."""
    match = _SELECTION_DIGITS_RE.search(label)
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))


def _participant_name(event: dict[str, Any], role: str, default: str) -> str:
    participants = event.get("participants", [])
    if not isinstance(participants, list):
        return default
    for participant in participants:
        if not isinstance(participant, dict):
            continue
        if participant.get("venueRole") == role:
            name = str(participant.get("name", "")).strip()
            if name:
                return name
    return default


def parse_market(payload: Any, market: str) -> ParsedMarket:
    """Turn one markets payload into a full odds grid or raise."""
    if not isinstance(payload, dict):
        raise OddsClientError(f"{market}: payload must be an object")
    events = payload.get("events", [])
    if not isinstance(events, list) or not events or not isinstance(events[0], dict):
        raise OddsClientError(f"{market}: no event returned by DraftKings")
    event = events[0]

    grid: list[list[int | None]] = [[None for _ in DIGITS] for _ in DIGITS]
    selections = payload.get("selections", [])
    if not isinstance(selections, list):
        selections = []
    for selection in selections:
        if not isinstance(selection, dict):
            continue
        digits = parse_selection_digits(str(selection.get("label", "")))
        if digits is None:
            continue
        display_odds = selection.get("displayOdds", {})
        if not isinstance(display_odds, dict):
            continue
        price = to_price(display_odds.get("american"))
        if price is None:
            continue
        home_digit, away_digit = digits
        grid[away_digit][home_digit] = price

    return ParsedMarket(
        odds=require_full_coverage(grid, market=market),
        home_team=_participant_name(event, "Home", DEFAULT_HOME_LABEL),
        away_team=_participant_name(event, "Away", DEFAULT_AWAY_LABEL),
        event_id=str(event.get("id", "") or ""),
        event_name=str(event.get("name", "") or ""),
        start_event_date=str(event.get("startEventDate", "") or ""),
    )


class DraftKingsSquaresClient:
    """Thin HTTP client around the DraftKings squares markets endpoints."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        limits = httpx.Limits(max_connections=4, max_keepalive_connections=2)
        self._http = httpx.Client(timeout=settings.draftkings_timeout_s, limits=limits)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> DraftKingsSquaresClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _headers(self, referer: str) -> dict[str, str]:
        return {
            "Accept": "application/json, text/plain, */*",
            "User-Agent": self.settings.draftkings_user_agent,
            "Referer": referer,
        }

    def fetch_payload(self, *, url: str, referer: str, market: str) -> Any:
        response: httpx.Response | None = None
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(3),
                retry=retry_if_exception_type(RetryableStatusError),
                wait=_wait_for_retry,
                reraise=True,
            ):
                with attempt:
                    response = self._http.get(url, headers=self._headers(referer))
                    if response.status_code == 429 or 500 <= response.status_code <= 599:
                        raise RetryableStatusError(response)
                    response.raise_for_status()
        except RetryableStatusError as exc:
            raise OddsClientError(
                f"{market}: request failed with status {exc.response.status_code} after retries"
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise OddsClientError(
                f"{market}: request failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise OddsClientError(f"{market}: request failed with transport error: {exc}") from exc
        if response is None:
            raise OddsClientError(f"{market}: request failed without a response")
        try:
            return response.json()
        except ValueError as exc:
            raise OddsClientError(f"{market}: response was not valid JSON") from exc

    def fetch_market(self, *, url: str, referer: str, market: str) -> ParsedMarket:
        return parse_market(self.fetch_payload(url=url, referer=referer, market=market), market)

    def fetch_squares_odds(self) -> SquaresOdds:
        """Fetch both squares markets concurrently and join them."""
        settings = self.settings
        with ThreadPoolExecutor(max_workers=2) as executor:
            any_quarter_future = executor.submit(
                self.fetch_market,
                url=settings.any_quarter_api_url,
                referer=settings.any_quarter_page_url,
                market=ANY_QUARTER_MARKET,
            )
            final_result_future = executor.submit(
                self.fetch_market,
                url=settings.final_result_api_url,
                referer=settings.final_result_page_url,
                market=FINAL_RESULT_MARKET,
            )
            any_quarter = any_quarter_future.result()
            final_result = final_result_future.result()

        return SquaresOdds(
            event_id=final_result.event_id or any_quarter.event_id,
            event_name=final_result.event_name or any_quarter.event_name,
            start_event_date=final_result.start_event_date or any_quarter.start_event_date,
            home_team=final_result.home_team or any_quarter.home_team,
            away_team=final_result.away_team or any_quarter.away_team,
            fetched_at=datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
            any_quarter_odds=any_quarter.odds,
            final_result_odds=final_result.odds,
            any_quarter_url=settings.any_quarter_page_url,
            final_result_url=settings.final_result_page_url,
        )
