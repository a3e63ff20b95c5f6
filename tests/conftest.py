from __future__ import annotations

import itertools
from typing import Dict, List, Optional

import pytest

from nfl_scenarios.models import Game, GameStatus, Team
from nfl_scenarios.settings import reset_settings_cache
from nfl_scenarios.teams import TEAMS, get_team_by_abbreviation

NFC_FODDER = ["DAL", "NYG", "PHI", "WSH", "CHI", "DET", "GB", "MIN", "ATL", "CAR", "NO", "TB", "ARI", "LAR", "SF", "SEA"]


def tid(abbrev: str) -> str:
    team = get_team_by_abbreviation(abbrev)
    assert team is not None, abbrev
    return team.id


class Schedule:
    """Builds game lists by team abbreviation."""

    def __init__(self) -> None:
        self.games: List[Game] = []
        self._ids = itertools.count(1)
        self._fodder = itertools.cycle(NFC_FODDER)

    def final(self, home: str, away: str, home_score: int, away_score: int, week: int = 1) -> Game:
        game = Game(
            id=f"g{next(self._ids)}",
            week=week,
            home_team_id=tid(home),
            away_team_id=tid(away),
            status=GameStatus.FINAL,
            home_score=home_score,
            away_score=away_score,
        )
        self.games.append(game)
        return game

    def win(self, winner: str, loser: str, week: int = 1) -> Game:
        return self.final(winner, loser, 24, 10, week)

    def scheduled(self, home: str, away: str, week: int = 18) -> Game:
        game = Game(id=f"g{next(self._ids)}", week=week, home_team_id=tid(home), away_team_id=tid(away))
        self.games.append(game)
        return game

    def record_vs_nfc(self, team: str, wins: int, losses: int, start_week: int = 1) -> None:
        """Give an AFC team a record made only of games against NFC opponents."""

        week = start_week
        for _ in range(wins):
            self.win(team, next(self._fodder), week)
            week += 1
        for _ in range(losses):
            self.win(next(self._fodder), team, week)
            week += 1


@pytest.fixture()
def schedule() -> Schedule:
    return Schedule()


@pytest.fixture()
def teams() -> List[Team]:
    return list(TEAMS)


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture()
def seeded_afc(schedule: Schedule) -> Schedule:
    """AFC leaders 12-5 / 11-6 / 10-7 / 9-8, wildcards 8-9 / 7-10 / 6-11, one 5-12 also-ran."""

    schedule.record_vs_nfc("BUF", 12, 5)
    schedule.record_vs_nfc("BAL", 11, 6)
    schedule.record_vs_nfc("HOU", 10, 7)
    schedule.record_vs_nfc("KC", 9, 8)
    schedule.record_vs_nfc("MIA", 8, 9)
    schedule.record_vs_nfc("CIN", 7, 10)
    schedule.record_vs_nfc("IND", 6, 11)
    schedule.record_vs_nfc("NE", 5, 12)
    return schedule


@pytest.fixture()
def late_season(schedule: Schedule) -> Schedule:
    """Week 17 snapshot: BUF runs away with the East, the North is stacked."""

    schedule.record_vs_nfc("BUF", 14, 1)
    schedule.record_vs_nfc("MIA", 10, 5)
    schedule.record_vs_nfc("NE", 5, 10)
    schedule.record_vs_nfc("NYJ", 5, 10)
    schedule.record_vs_nfc("BAL", 12, 3)
    schedule.record_vs_nfc("CIN", 11, 4)
    schedule.record_vs_nfc("PIT", 11, 4)
    schedule.record_vs_nfc("CLE", 2, 13)
    schedule.scheduled("NYJ", "BUF", week=17)
    schedule.scheduled("BUF", "NE", week=18)
    schedule.scheduled("MIA", "DAL", week=17)
    schedule.scheduled("NYG", "MIA", week=18)
    return schedule


@pytest.fixture()
def division_race(schedule: Schedule) -> Schedule:
    """BUF 10-5 (won the only meeting) vs MIA 9-6, two games left each."""

    schedule.win("BUF", "MIA", week=1)
    schedule.record_vs_nfc("BUF", 9, 5, start_week=2)
    schedule.record_vs_nfc("MIA", 9, 5, start_week=2)
    schedule.record_vs_nfc("NE", 3, 12)
    schedule.record_vs_nfc("NYJ", 3, 12)
    schedule.scheduled("BUF", "DAL", week=17)
    schedule.scheduled("NYG", "BUF", week=18)
    schedule.scheduled("MIA", "PHI", week=17)
    schedule.scheduled("WSH", "MIA", week=18)
    return schedule


def game_by_teams(games: List[Game], home: str, away: str) -> Optional[Game]:
    for game in games:
        if game.home_team_id == tid(home) and game.away_team_id == tid(away):
            return game
    return None


def abbrevs(team_ids: List[str]) -> List[str]:
    index: Dict[str, Team] = {team.id: team for team in TEAMS}
    return [index[team_id].abbreviation for team_id in team_ids]


def scheduled_game(games: List[Game], home: str, away: str) -> Optional[Game]:
    for game in games:
        if not game.is_final and game.home_team_id == tid(home) and game.away_team_id == tid(away):
            return game
    return None
