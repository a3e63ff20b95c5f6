from __future__ import annotations

from nfl_scenarios.models import Game, GameStatus, Outcome, Selection
from nfl_scenarios.records import (
    calculate_last_five,
    calculate_streak,
    calculate_team_records,
    normalize_selections,
    remaining_games,
)
from nfl_scenarios.teams import TEAMS

from conftest import tid


def test_final_games_fill_division_and_conference_splits(schedule):
    schedule.final("BUF", "MIA", 31, 17)
    schedule.final("KC", "BUF", 27, 20, week=2)
    schedule.final("BUF", "DAL", 10, 10, week=3)

    records = calculate_team_records(TEAMS, schedule.games)
    buf = records[tid("BUF")]

    assert (buf.wins, buf.losses, buf.ties) == (1, 1, 1)
    assert (buf.division_wins, buf.division_losses) == (1, 0)
    assert (buf.conference_wins, buf.conference_losses, buf.conference_ties) == (1, 1, 0)
    assert buf.points_for == 61
    assert buf.points_against == 54
    assert buf.win_pct == 0.5
    assert buf.summary() == "1-1-1"
    assert records[tid("MIA")].division_losses == 1


def test_selection_applies_only_to_unplayed_games(schedule):
    played = schedule.final("BUF", "MIA", 10, 24)
    upcoming = schedule.scheduled("MIA", "BUF", week=18)
    selections = {played.id: Selection.HOME, upcoming.id: Selection.AWAY}

    records = calculate_team_records(TEAMS, schedule.games, selections)
    buf = records[tid("BUF")]

    assert (buf.wins, buf.losses) == (1, 1)
    projected = [result for result in buf.results if result.projected]
    assert len(projected) == 1
    assert projected[0].game_id == upcoming.id
    assert projected[0].outcome is Outcome.WIN
    assert projected[0].points_for > projected[0].points_against


def test_tie_selection_counts_as_half_win(schedule):
    game = schedule.scheduled("BUF", "MIA")
    records = calculate_team_records(TEAMS, schedule.games, {game.id: Selection.TIE})

    assert records[tid("BUF")].ties == 1
    assert records[tid("MIA")].division_ties == 1
    assert records[tid("BUF")].win_pct == 0.5


def test_malformed_and_undecided_games_are_skipped(schedule):
    schedule.scheduled("BUF", "MIA")
    games = schedule.games + [
        Game(id="bad-team", week=1, home_team_id="999", away_team_id=tid("BUF"), status=GameStatus.FINAL, home_score=1, away_score=0),
        Game(id="self", week=1, home_team_id=tid("BUF"), away_team_id=tid("BUF"), status=GameStatus.FINAL, home_score=1, away_score=0),
        Game(id="no-score", week=1, home_team_id=tid("BUF"), away_team_id=tid("NE"), status=GameStatus.FINAL),
    ]

    records = calculate_team_records(TEAMS, games)

    assert records[tid("BUF")].games_played == 0
    assert records[tid("NE")].games_played == 0
    assert "999" not in records


def test_records_are_deterministic(schedule):
    schedule.record_vs_nfc("BUF", 5, 3)
    first = calculate_team_records(TEAMS, schedule.games)
    second = calculate_team_records(TEAMS, list(schedule.games))
    assert first == second


def test_normalize_selections_drops_unknown_values():
    normalized = normalize_selections({"1": "HOME", 2: "away", "3": "maybe", "4": None})
    assert normalized == {"1": Selection.HOME, "2": Selection.AWAY}


def test_streak_reads_most_recent_games_first(schedule):
    schedule.win("DAL", "BUF", week=1)
    schedule.win("BUF", "NYG", week=2)
    schedule.win("BUF", "PHI", week=3)

    assert calculate_streak(tid("BUF"), schedule.games) == "W2"
    assert calculate_streak(tid("NE"), schedule.games) == "-"


def test_last_five_marks_projected_games(schedule):
    for week in range(1, 7):
        schedule.win("BUF", "DAL", week=week)
    upcoming = schedule.scheduled("NYG", "BUF", week=7)

    recent = calculate_last_five(tid("BUF"), TEAMS, schedule.games, {upcoming.id: Selection.HOME})

    assert len(recent) == 5
    assert recent[0].week == 7
    assert recent[0].projected
    assert recent[0].outcome is Outcome.LOSS
    assert recent[0].opponent_name == "Giants"
    assert [game.week for game in recent[1:]] == [6, 5, 4, 3]


def test_remaining_games_excludes_selected(schedule):
    first = schedule.scheduled("BUF", "MIA", week=17)
    schedule.scheduled("NE", "BUF", week=18)

    left = remaining_games(tid("BUF"), schedule.games, {first.id: Selection.HOME})
    assert [game.week for game in left] == [18]
