from __future__ import annotations

import httpx
import pytest

import squares_ev.odds_client as odds_client_module
from squares_ev.errors import IncompleteOddsCoverage
from squares_ev.odds_client import (
    ANY_QUARTER_MARKET,
    FINAL_RESULT_MARKET,
    DraftKingsSquaresClient,
    OddsClientError,
    RetryableStatusError,
    parse_market,
    parse_selection_digits,
)
from squares_ev.settings import Settings


def _payload(price_for=None, *, skip=None, teams=("Chiefs", "Eagles")) -> dict:
    price_for = price_for or (lambda home, away: "+{}".format(400 + home * 10 + away))
    selections = []
    for home in range(10):
        for away in range(10):
            if skip == (home, away):
                continue
            selections.append(
                {
                    "label": f"{home} - {away}",
                    "displayOdds": {"american": price_for(home, away)},
                }
            )
    return {
        "events": [
            {
                "id": "evt-1",
                "name": "Eagles @ Chiefs",
                "startEventDate": "2026-02-08T23:30:00Z",
                "participants": [
                    {"name": teams[0], "venueRole": "Home"},
                    {"name": teams[1], "venueRole": "Away"},
                ],
            }
        ],
        "selections": selections,
    }


def _settings() -> Settings:
    return Settings(_env_file=None)


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("7 - 0", (7, 0)),
        ("3-4", (3, 4)),
        ("Chiefs 1 - Eagles 8", None),
        ("Any Other", None),
    ],
)
def test_parse_selection_digits(label: str, expected) -> None:
    assert parse_selection_digits(label) == expected


def test_parse_market_indexes_by_away_then_home() -> None:
    parsed = parse_market(_payload(), FINAL_RESULT_MARKET)

    assert parsed.odds[3][7] == 400 + 7 * 10 + 3
    assert parsed.home_team == "Chiefs"
    assert parsed.away_team == "Eagles"
    assert parsed.event_id == "evt-1"


def test_parse_market_accepts_unicode_minus_and_plus_prices() -> None:
    payload = _payload(lambda home, away: "−110" if home == away else "+1,500")

    parsed = parse_market(payload, ANY_QUARTER_MARKET)

    assert parsed.odds[4][4] == -110
    assert parsed.odds[4][5] == 1500


def test_parse_market_reports_missing_selection() -> None:
    with pytest.raises(IncompleteOddsCoverage) as excinfo:
        parse_market(_payload(skip=(2, 6)), FINAL_RESULT_MARKET)

    assert excinfo.value.market == FINAL_RESULT_MARKET
    assert excinfo.value.missing == [(6, 2)]
    assert "away=6 home=2" in str(excinfo.value)


def test_parse_market_requires_an_event() -> None:
    payload = _payload()
    payload["events"] = []

    with pytest.raises(OddsClientError, match="no event"):
        parse_market(payload, FINAL_RESULT_MARKET)


def test_parse_market_falls_back_to_default_team_labels() -> None:
    payload = _payload()
    payload["events"][0]["participants"] = []

    parsed = parse_market(payload, FINAL_RESULT_MARKET)

    assert parsed.home_team == "Home Team"
    assert parsed.away_team == "Away Team"


def test_fetch_squares_odds_joins_both_markets(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = _settings()
    seen: list[tuple[str, str]] = []

    def _fake_fetch_payload(*, url: str, referer: str, market: str):
        seen.append((market, referer))
        if market == ANY_QUARTER_MARKET:
            return _payload(lambda home, away: "+200", teams=("AQ Home", "AQ Away"))
        return _payload(lambda home, away: "+900")

    with DraftKingsSquaresClient(settings) as client:
        monkeypatch.setattr(client, "fetch_payload", _fake_fetch_payload)
        odds = client.fetch_squares_odds()

    assert sorted(seen) == sorted(
        [
            (ANY_QUARTER_MARKET, settings.any_quarter_page_url),
            (FINAL_RESULT_MARKET, settings.final_result_page_url),
        ]
    )
    assert odds.home_team == "Chiefs"
    assert odds.away_team == "Eagles"
    assert odds.any_quarter_odds[0][0] == 200
    assert odds.final_result_odds[9][9] == 900
    assert odds.fetched_at.endswith("Z")
    payload = odds.to_dict()
    assert payload["source_urls"]["any_quarter"] == settings.any_quarter_page_url
    assert len(payload["final_result"]) == 10


def test_fetch_payload_retries_server_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(odds_client_module, "_wait_for_retry", lambda retry_state: 0)
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503)
        return httpx.Response(200, json={"events": []})

    with DraftKingsSquaresClient(_settings()) as client:
        client._http = httpx.Client(transport=httpx.MockTransport(handler))
        payload = client.fetch_payload(
            url="https://example.test/markets", referer="https://example.test/page", market="m"
        )

    assert payload == {"events": []}
    assert len(calls) == 2
    assert calls[0].headers["Referer"] == "https://example.test/page"


def test_fetch_payload_gives_up_after_three_attempts(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(odds_client_module, "_wait_for_retry", lambda retry_state: 0)
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(429)

    with DraftKingsSquaresClient(_settings()) as client:
        client._http = httpx.Client(transport=httpx.MockTransport(handler))
        with pytest.raises(OddsClientError, match="status 429 after retries"):
            client.fetch_payload(url="https://example.test/m", referer="r", market="m")

    assert len(calls) == 3


def test_fetch_payload_does_not_retry_client_errors() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404)

    with DraftKingsSquaresClient(_settings()) as client:
        client._http = httpx.Client(transport=httpx.MockTransport(handler))
        with pytest.raises(OddsClientError, match="m: request failed with status 404"):
            client.fetch_payload(url="https://example.test/m", referer="r", market="m")

    assert len(calls) == 1


def test_fetch_payload_rejects_non_json_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>blocked</html>")

    with DraftKingsSquaresClient(_settings()) as client:
        client._http = httpx.Client(transport=httpx.MockTransport(handler))
        with pytest.raises(OddsClientError, match="not valid JSON"):
            client.fetch_payload(url="https://example.test/m", referer="r", market="m")


@pytest.mark.parametrize(
    ("header", "expected"),
    [("12", 12.0), ("-3", 0.0), ("soon", None)],
)
def test_retry_after_seconds(header: str, expected: float | None) -> None:
    response = httpx.Response(429, headers={"Retry-After": header})

    assert RetryableStatusError(response).retry_after_seconds() == expected


def test_retry_after_seconds_without_header() -> None:
    assert RetryableStatusError(httpx.Response(503)).retry_after_seconds() is None
