from pathlib import Path

import httpx
import pytest

from nfl_scenarios.bracket import Round
from nfl_scenarios.espn_nfl import (
    POSTSEASON_TYPE,
    ScoreboardCache,
    current_week,
    fetch_playoff_games,
    fetch_scoreboard,
    fetch_season,
    load_scoreboard,
    parse_games,
    parse_playoff_games,
    save_scoreboard,
)
from nfl_scenarios.models import GameStatus

from conftest import tid


def event(event_id, home, away, home_score, away_score, completed=True, name="STATUS_FINAL"):
    return {
        "id": event_id,
        "status": {"type": {"completed": completed, "name": name}},
        "competitions": [
            {
                "competitors": [
                    {"homeAway": "home", "score": str(home_score), "team": {"abbreviation": home}},
                    {"homeAway": "away", "score": str(away_score), "team": {"abbreviation": away}},
                ]
            }
        ],
    }


def test_parse_games_maps_status_and_scores():
    scoreboard = {
        "events": [
            event("401", "BUF", "MIA", 24, 17),
            event("402", "WAS", "DAL", 10, 7, completed=False, name="STATUS_HALFTIME"),
            event("403", "KC", "LV", 0, 0, completed=False, name="STATUS_SCHEDULED"),
            event("404", "XXX", "DAL", 3, 0),
            {"id": "405", "competitions": []},
        ]
    }

    games = parse_games(scoreboard, week=3)

    assert [game.id for game in games] == ["401", "402", "403"]
    final, live, upcoming = games
    assert final.status is GameStatus.FINAL
    assert (final.home_team_id, final.away_team_id) == (tid("BUF"), tid("MIA"))
    assert (final.home_score, final.away_score) == (24, 17)
    assert final.week == 3
    assert live.status is GameStatus.IN_PROGRESS
    assert live.home_team_id == tid("WSH")
    assert upcoming.status is GameStatus.SCHEDULED
    assert upcoming.home_score is None and upcoming.away_score is None


def test_parse_playoff_games_sets_winner_and_conference():
    wild_card = parse_playoff_games({"events": [event("501", "BAL", "PIT", 28, 14)]}, Round.WILD_CARD)
    super_bowl = parse_playoff_games(
        {"events": [event("599", "KC", "PHI", 20, 27, completed=False, name="STATUS_IN_PROGRESS")]},
        Round.SUPER_BOWL,
    )

    assert wild_card[0].winner_id == tid("BAL")
    assert wild_card[0].conference == "AFC"
    assert wild_card[0].round is Round.WILD_CARD
    assert super_bowl[0].conference is None
    assert super_bowl[0].winner_id is None


def test_fetch_scoreboard_retries_with_backoff():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={"events": []})

    sleeps = []
    client = httpx.Client(transport=httpx.MockTransport(handler))

    payload = fetch_scoreboard(3, season=2024, client=client, sleep=sleeps.append)

    assert payload == {"events": []}
    assert sleeps == [1.0, 2.0]
    params = calls[-1].url.params
    assert (params["week"], params["seasontype"], params["dates"]) == ("3", "2", "2024")


def test_fetch_scoreboard_serves_stale_cache_on_failure():
    now = [0.0]
    cache = ScoreboardCache(ttl_seconds=60, clock=lambda: now[0])
    healthy = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"events": [1]})))
    broken = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(500)))

    fetch_scoreboard(1, cache=cache, client=healthy)
    # Fresh entries never hit the network.
    assert fetch_scoreboard(1, cache=cache, client=broken) == {"events": [1]}

    now[0] = 600.0
    stale = fetch_scoreboard(1, cache=cache, client=broken, retries=2, sleep=lambda _: None)
    assert stale == {"events": [1]}

    with pytest.raises(httpx.HTTPStatusError):
        fetch_scoreboard(2, cache=cache, client=broken, retries=2, sleep=lambda _: None)


def test_fetch_season_skips_unavailable_weeks():
    def fake_fetch(week, season_type, season, cache=None):
        if week == 2:
            raise httpx.ConnectError("offline")
        return {"events": [event(f"{week}00", "BUF", "MIA", 20, 10)]}

    games = fetch_season(2024, weeks=[3, 1, 2], fetch=fake_fetch)

    assert [(game.week, game.id) for game in games] == [(1, "100"), (3, "300")]


def test_fetch_playoff_games_maps_weeks_to_rounds():
    seen = []

    def fake_fetch(week, season_type, season, cache=None):
        seen.append((week, season_type))
        if week == 1:
            return {"events": [event("w1", "BAL", "PIT", 28, 14)]}
        if week == 5:
            return {"events": [event("sb", "KC", "PHI", 20, 27)]}
        return {"events": []}

    games = fetch_playoff_games(2024, fetch=fake_fetch)

    assert [(game.id, game.round) for game in games] == [("w1", Round.WILD_CARD), ("sb", Round.SUPER_BOWL)]
    assert seen == [(1, POSTSEASON_TYPE), (2, POSTSEASON_TYPE), (3, POSTSEASON_TYPE), (5, POSTSEASON_TYPE)]
    assert games[1].winner_id == tid("PHI")


def test_current_week_is_capped():
    assert current_week({"week": {"number": 7}}) == 7
    assert current_week({"week": {"number": 21}}) == 18
    assert current_week({}) == 18


def test_scoreboard_snapshot_round_trip(tmp_path: Path):
    path = save_scoreboard({"events": [], "week": {"number": 4}}, tmp_path / "raw" / "week4.json")

    assert load_scoreboard(path) == {"events": [], "week": {"number": 4}}
    assert load_scoreboard(tmp_path / "missing.json") == {}
