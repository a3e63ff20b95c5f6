from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import httpx

from .bracket import PlayoffGame, Round
from .models import Game, GameStatus, Team
from .teams import TEAMS, get_team_by_abbreviation

LOGGER = logging.getLogger(__name__)

ESPN_BASE_URL = "https://site.api.espn.com/apis/site/v2/sports/football/nfl"
ESPN_NFL_SCOREBOARD_URL = f"{ESPN_BASE_URL}/scoreboard"
REGULAR_SEASON_TYPE = 2
POSTSEASON_TYPE = 3
REGULAR_SEASON_WEEKS = 18

# Postseason week numbers on the scoreboard; week 4 is the Pro Bowl.
PLAYOFF_ROUND_WEEKS: Tuple[Tuple[int, Round], ...] = (
    (1, Round.WILD_CARD),
    (2, Round.DIVISIONAL),
    (3, Round.CHAMPIONSHIP),
    (5, Round.SUPER_BOWL),
)

_IN_PROGRESS_STATUSES = {"STATUS_IN_PROGRESS", "STATUS_HALFTIME", "STATUS_END_PERIOD"}


@dataclass
class ScoreboardCache:
    """Scoreboard payloads keyed by request, with a freshness window."""

    ttl_seconds: float = 60.0
    entries: Dict[str, Tuple[float, dict]] = field(default_factory=dict)
    clock: Callable[[], float] = time.time

    @staticmethod
    def key(url: str, params: Dict[str, Any]) -> str:
        return url + "?" + "&".join(f"{k}={params[k]}" for k in sorted(params))

    def get(self, key: str, allow_stale: bool = False) -> Optional[dict]:
        entry = self.entries.get(key)
        if entry is None:
            return None
        stored_at, payload = entry
        if allow_stale or self.clock() - stored_at < self.ttl_seconds:
            return payload
        return None

    def put(self, key: str, payload: dict) -> None:
        self.entries[key] = (self.clock(), payload)


def fetch_scoreboard(
    week: int,
    season_type: int = REGULAR_SEASON_TYPE,
    season: Optional[int] = None,
    cache: Optional[ScoreboardCache] = None,
    retries: int = 3,
    delay: float = 1.0,
    client: Optional[httpx.Client] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> dict:
    """GET one scoreboard week, retrying with exponential backoff.

    A fresh cache entry short-circuits the request; when every attempt fails a
    stale entry is returned instead of raising.
    """

    params: Dict[str, Any] = {"week": week, "seasontype": season_type}
    if season is not None:
        params["dates"] = season
    key = ScoreboardCache.key(ESPN_NFL_SCOREBOARD_URL, params)
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            return cached

    owns_client = client is None
    client = client or httpx.Client(timeout=httpx.Timeout(15.0))
    try:
        for attempt in range(retries):
            try:
                resp = client.get(ESPN_NFL_SCOREBOARD_URL, params=params)
                resp.raise_for_status()
                payload = resp.json()
            except (httpx.HTTPError, ValueError) as exc:
                if attempt == retries - 1:
                    stale = cache.get(key, allow_stale=True) if cache is not None else None
                    if stale is not None:
                        LOGGER.warning("Scoreboard fetch failed (%s); serving cached week %s", exc, week)
                        return stale
                    raise
                wait = delay * (2 ** attempt)
                LOGGER.info("Scoreboard fetch attempt %d failed (%s); retrying in %.1fs", attempt + 1, exc, wait)
                sleep(wait)
                continue
            if cache is not None:
                cache.put(key, payload)
            return payload
    finally:
        if owns_client:
            client.close()
    raise RuntimeError("Scoreboard fetch made no attempts")


def _coerce_score(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        value = value.get("value", value.get("displayValue"))
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _status_of(event: dict) -> GameStatus:
    status = (event.get("status") or {}).get("type") or {}
    if status.get("completed"):
        return GameStatus.FINAL
    if str(status.get("name") or "").upper() in _IN_PROGRESS_STATUSES:
        return GameStatus.IN_PROGRESS
    return GameStatus.SCHEDULED


def _competitors(event: dict, teams: Iterable[Team]) -> Optional[Tuple[Team, Team, Optional[int], Optional[int]]]:
    competitions = event.get("competitions") or []
    if not competitions:
        return None
    sides: Dict[str, dict] = {}
    for competitor in competitions[0].get("competitors") or []:
        side = competitor.get("homeAway")
        if side in ("home", "away"):
            sides[side] = competitor
    if "home" not in sides or "away" not in sides:
        return None
    teams = list(teams)
    home = get_team_by_abbreviation((sides["home"].get("team") or {}).get("abbreviation", ""), teams)
    away = get_team_by_abbreviation((sides["away"].get("team") or {}).get("abbreviation", ""), teams)
    if home is None or away is None:
        return None
    return home, away, _coerce_score(sides["home"].get("score")), _coerce_score(sides["away"].get("score"))


def parse_games(scoreboard: dict, week: int, teams: Iterable[Team] = TEAMS) -> List[Game]:
    teams = list(teams)
    games: List[Game] = []
    for event in scoreboard.get("events") or []:
        parsed = _competitors(event, teams)
        if parsed is None or not event.get("id"):
            LOGGER.debug("Skipping unparseable scoreboard event %s", event.get("id"))
            continue
        home, away, home_score, away_score = parsed
        status = _status_of(event)
        if status is GameStatus.SCHEDULED:
            home_score = away_score = None
        games.append(
            Game(
                id=str(event["id"]),
                week=week,
                home_team_id=home.id,
                away_team_id=away.id,
                status=status,
                home_score=home_score,
                away_score=away_score,
            )
        )
    return games


def parse_playoff_games(scoreboard: dict, round: Round, teams: Iterable[Team] = TEAMS) -> List[PlayoffGame]:
    teams = list(teams)
    games: List[PlayoffGame] = []
    for event in scoreboard.get("events") or []:
        parsed = _competitors(event, teams)
        if parsed is None or not event.get("id"):
            LOGGER.debug("Skipping unparseable playoff event %s", event.get("id"))
            continue
        home, away, home_score, away_score = parsed
        status = _status_of(event)
        winner_id: Optional[str] = None
        if status is GameStatus.FINAL and home_score is not None and away_score is not None:
            winner_id = home.id if home_score > away_score else away.id
        games.append(
            PlayoffGame(
                id=str(event["id"]),
                round=round,
                conference=None if round is Round.SUPER_BOWL else home.conference,
                home_team_id=home.id,
                away_team_id=away.id,
                status=status,
                home_score=home_score,
                away_score=away_score,
                winner_id=winner_id,
            )
        )
    return games


def current_week(scoreboard: dict) -> int:
    number = (scoreboard.get("week") or {}).get("number")
    try:
        return min(int(number), REGULAR_SEASON_WEEKS)
    except (TypeError, ValueError):
        return REGULAR_SEASON_WEEKS


def fetch_season(
    season: Optional[int] = None,
    weeks: Iterable[int] = range(1, REGULAR_SEASON_WEEKS + 1),
    cache: Optional[ScoreboardCache] = None,
    teams: Iterable[Team] = TEAMS,
    fetch: Callable[..., dict] = fetch_scoreboard,
) -> List[Game]:
    teams = list(teams)
    games: List[Game] = []
    for week in weeks:
        try:
            scoreboard = fetch(week, REGULAR_SEASON_TYPE, season, cache=cache)
        except httpx.HTTPError as exc:
            LOGGER.warning("Week %s unavailable: %s", week, exc)
            continue
        games.extend(parse_games(scoreboard, week, teams))
    games.sort(key=lambda game: (game.week, game.id))
    return games


def fetch_playoff_games(
    season: Optional[int] = None,
    cache: Optional[ScoreboardCache] = None,
    teams: Iterable[Team] = TEAMS,
    fetch: Callable[..., dict] = fetch_scoreboard,
) -> List[PlayoffGame]:
    teams = list(teams)
    games: List[PlayoffGame] = []
    for week, round in PLAYOFF_ROUND_WEEKS:
        try:
            scoreboard = fetch(week, POSTSEASON_TYPE, season, cache=cache)
        except httpx.HTTPError as exc:
            LOGGER.info("Playoff week %s not available yet: %s", week, exc)
            continue
        games.extend(parse_playoff_games(scoreboard, round, teams))
    return games


def save_scoreboard(scoreboard: dict, output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"fetched_at": datetime.now(timezone.utc).isoformat(), "scoreboard": scoreboard}
    output_path.write_text(json.dumps(payload, indent=2))
    return output_path


def load_scoreboard(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        raw = json.loads(path.read_text())
    except json.JSONDecodeError:
        LOGGER.warning("Ignoring unreadable scoreboard file %s", path)
        return {}
    # Support both wrapped ("scoreboard": {...}) and raw payloads
    if isinstance(raw, dict) and isinstance(raw.get("scoreboard"), dict):
        return raw["scoreboard"]
    return raw if isinstance(raw, dict) else {}
