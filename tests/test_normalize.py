from pathlib import Path

import pandas as pd
import pytest

from nfl_scenarios.bracket import PlayoffGame, Round
from nfl_scenarios.models import GameStatus
from nfl_scenarios.normalize import (
    games_to_frame,
    playoff_games_to_frame,
    read_games_csv,
    read_playoff_games_csv,
    standings_to_frame,
    summarize_by_week,
    write_dataframe,
)
from nfl_scenarios.seeding import calculate_league_standings
from nfl_scenarios.teams import TEAMS

from conftest import tid


def test_games_csv_round_trip(tmp_path: Path, schedule):
    schedule.final("BUF", "MIA", 24, 17, week=1)
    schedule.scheduled("NE", "BUF", week=2)
    path = write_dataframe(games_to_frame(schedule.games), tmp_path / "games" / "games.csv")

    games = read_games_csv(path)

    assert games == schedule.games
    assert games[1].status is GameStatus.SCHEDULED
    assert games[1].home_score is None


def test_incomplete_rows_are_skipped(tmp_path: Path):
    path = tmp_path / "games.csv"
    pd.DataFrame(
        [
            {"game_id": "1", "week": 1, "home_team_id": "1", "away_team_id": "2", "status": "final", "home_score": 3, "away_score": 0},
            {"game_id": "2", "week": None, "home_team_id": "1", "away_team_id": "2", "status": "final", "home_score": 3, "away_score": 0},
            {"game_id": "3", "week": 2, "home_team_id": "1", "away_team_id": "3", "status": "postponed", "home_score": None, "away_score": None},
        ]
    ).to_csv(path, index=False)

    games = read_games_csv(path)

    assert [game.id for game in games] == ["1", "3"]
    assert games[1].status is GameStatus.SCHEDULED


def test_missing_games_file_raises(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        read_games_csv(tmp_path / "nope.csv")
    assert read_playoff_games_csv(tmp_path / "nope.csv") == []


def test_playoff_games_csv_round_trip(tmp_path: Path):
    games = [
        PlayoffGame("w1", Round.WILD_CARD, "AFC", tid("BAL"), tid("PIT"), GameStatus.FINAL, 28, 14, tid("BAL")),
        PlayoffGame("sb", Round.SUPER_BOWL, None, tid("KC"), tid("PHI")),
    ]
    path = write_dataframe(playoff_games_to_frame(games), tmp_path / "playoff_games.csv")

    assert read_playoff_games_csv(path) == games


def test_standings_frame_has_one_row_per_team(seeded_afc):
    df = standings_to_frame(calculate_league_standings(TEAMS, seeded_afc.games))

    assert len(df) == 32
    buf = df[df["team"] == "BUF"].iloc[0]
    assert buf["seed"] == 1
    assert buf["wins"] == 12
    assert buf["clinched"] == "bye"


def test_summarize_by_week(schedule):
    schedule.final("BUF", "MIA", 24, 17, week=1)
    schedule.scheduled("NE", "NYJ", week=1)
    schedule.scheduled("NE", "BUF", week=2)

    summary = summarize_by_week(schedule.games)

    assert summary[1] == {"final": 1, "scheduled": 1}
    assert summary[2] == {"final": 0, "scheduled": 1}
