from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from .bracket import PlayoffGame, Round
from .draft import DraftPick
from .models import Game, GameStatus, Standing, Team

LOGGER = logging.getLogger(__name__)

GAME_COLUMNS = ["game_id", "week", "home_team_id", "away_team_id", "status", "home_score", "away_score"]
PLAYOFF_GAME_COLUMNS = [
    "game_id",
    "round",
    "conference",
    "home_team_id",
    "away_team_id",
    "status",
    "home_score",
    "away_score",
    "winner_id",
]


def _coerce_int(value: object) -> Optional[int]:
    try:
        if value is None or (isinstance(value, float) and pd.isna(value)):
            return None
        return int(value)
    except (TypeError, ValueError):
        return None


def _stringify_id(value: object) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, float):
        if pd.isna(value):
            return None
        if value.is_integer():
            return str(int(value))
        return str(value)
    return str(value)


def _status(value: object) -> GameStatus:
    try:
        return GameStatus(str(value).strip().lower())
    except ValueError:
        return GameStatus.SCHEDULED


def games_to_frame(games: Iterable[Game]) -> pd.DataFrame:
    rows = [
        {
            "game_id": game.id,
            "week": game.week,
            "home_team_id": game.home_team_id,
            "away_team_id": game.away_team_id,
            "status": game.status.value,
            "home_score": game.home_score,
            "away_score": game.away_score,
        }
        for game in games
    ]
    return pd.DataFrame(rows, columns=GAME_COLUMNS)


def games_from_frame(df: pd.DataFrame) -> List[Game]:
    games: List[Game] = []
    for row in df.to_dict(orient="records"):
        game_id = _stringify_id(row.get("game_id"))
        home = _stringify_id(row.get("home_team_id"))
        away = _stringify_id(row.get("away_team_id"))
        week = _coerce_int(row.get("week"))
        if not game_id or not home or not away or week is None:
            LOGGER.debug("Skipping incomplete game row %s", row)
            continue
        games.append(
            Game(
                id=game_id,
                week=week,
                home_team_id=home,
                away_team_id=away,
                status=_status(row.get("status")),
                home_score=_coerce_int(row.get("home_score")),
                away_score=_coerce_int(row.get("away_score")),
            )
        )
    return games


def playoff_games_to_frame(games: Iterable[PlayoffGame]) -> pd.DataFrame:
    rows = [
        {
            "game_id": game.id,
            "round": game.round.value,
            "conference": game.conference,
            "home_team_id": game.home_team_id,
            "away_team_id": game.away_team_id,
            "status": game.status.value,
            "home_score": game.home_score,
            "away_score": game.away_score,
            "winner_id": game.winner_id,
        }
        for game in games
    ]
    return pd.DataFrame(rows, columns=PLAYOFF_GAME_COLUMNS)


def playoff_games_from_frame(df: pd.DataFrame) -> List[PlayoffGame]:
    games: List[PlayoffGame] = []
    for row in df.to_dict(orient="records"):
        game_id = _stringify_id(row.get("game_id"))
        round_ = Round.parse(row.get("round"))
        home = _stringify_id(row.get("home_team_id"))
        away = _stringify_id(row.get("away_team_id"))
        if not game_id or round_ is None or not home or not away:
            LOGGER.debug("Skipping incomplete playoff row %s", row)
            continue
        conference = row.get("conference")
        games.append(
            PlayoffGame(
                id=game_id,
                round=round_,
                conference=str(conference) if isinstance(conference, str) and conference else None,
                home_team_id=home,
                away_team_id=away,
                status=_status(row.get("status")),
                home_score=_coerce_int(row.get("home_score")),
                away_score=_coerce_int(row.get("away_score")),
                winner_id=_stringify_id(row.get("winner_id")),
            )
        )
    return games


def standings_to_frame(league: Mapping[str, Sequence[Standing]]) -> pd.DataFrame:
    rows = []
    for conference, standings in league.items():
        for standing in standings:
            record = standing.record
            magic = standing.magic_numbers
            rows.append(
                {
                    "conference": conference,
                    "division": standing.team.division,
                    "seed": standing.seed,
                    "team_id": standing.team.id,
                    "team": standing.team.abbreviation,
                    "wins": record.wins,
                    "losses": record.losses,
                    "ties": record.ties,
                    "win_pct": round(record.win_pct, 3),
                    "division_record": f"{record.division_wins}-{record.division_losses}-{record.division_ties}",
                    "conference_record": f"{record.conference_wins}-{record.conference_losses}-{record.conference_ties}",
                    "points_for": record.points_for,
                    "points_against": record.points_against,
                    "point_diff": record.point_differential,
                    "streak": standing.streak,
                    "clinched": standing.clinched.value if standing.clinched else None,
                    "eliminated": standing.is_eliminated,
                    "magic_playoff": magic.playoff if magic else None,
                    "magic_division": magic.division if magic else None,
                    "magic_bye": magic.bye if magic else None,
                }
            )
    return pd.DataFrame(rows)


def draft_order_to_frame(order: Iterable[DraftPick], teams: Mapping[str, Team]) -> pd.DataFrame:
    rows = []
    for pick in order:
        team = teams.get(pick.team_id)
        rows.append(
            {
                "pick": pick.pick,
                "pick_max": pick.pick_max,
                "team_id": pick.team_id,
                "team": team.abbreviation if team else pick.team_id,
                "record": pick.record,
                "reason": pick.reason,
            }
        )
    return pd.DataFrame(rows, columns=["pick", "pick_max", "team_id", "team", "record", "reason"])


def write_dataframe(df: pd.DataFrame, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path


def read_games_csv(path: Path) -> List[Game]:
    if not path.exists():
        raise FileNotFoundError(f"Expected games snapshot at {path}")
    return games_from_frame(pd.read_csv(path, dtype={"game_id": str, "home_team_id": str, "away_team_id": str}))


def read_playoff_games_csv(path: Path) -> List[PlayoffGame]:
    if not path.exists():
        return []
    df = pd.read_csv(
        path,
        dtype={"game_id": str, "home_team_id": str, "away_team_id": str, "winner_id": str, "conference": str},
    )
    return playoff_games_from_frame(df)


def summarize_by_week(games: Iterable[Game]) -> Dict[int, Dict[str, int]]:
    df = games_to_frame(games)
    if df.empty:
        return {}
    counts = df.groupby(["week", "status"]).size().unstack(fill_value=0)
    return {int(week): {str(k): int(v) for k, v in row.items()} for week, row in counts.iterrows()}
