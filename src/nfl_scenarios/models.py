"""Domain types shared by the standings, tiebreak, scenario and bracket engines."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class GameStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    FINAL = "final"


class Selection(str, Enum):
    """User-fixed result for a game that is not final yet."""

    HOME = "home"
    AWAY = "away"
    TIE = "tie"

    @classmethod
    def parse(cls, value: object) -> Optional["Selection"]:
        if isinstance(value, Selection):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class Outcome(str, Enum):
    WIN = "W"
    LOSS = "L"
    TIE = "T"

    def flipped(self) -> "Outcome":
        if self is Outcome.WIN:
            return Outcome.LOSS
        if self is Outcome.LOSS:
            return Outcome.WIN
        return Outcome.TIE


class GoalType(str, Enum):
    PLAYOFF = "playoff"
    DIVISION = "division"
    BYE = "bye"

    def accepts(self, seed: Optional[int]) -> bool:
        if seed is None:
            return False
        if self is GoalType.PLAYOFF:
            return 1 <= seed <= 7
        if self is GoalType.DIVISION:
            return 1 <= seed <= 4
        return seed == 1


class PathType(str, Enum):
    BYE = "bye"
    DIVISION = "division"
    WILDCARD = "wildcard"

    @classmethod
    def from_seed(cls, seed: Optional[int]) -> Optional["PathType"]:
        if seed is None:
            return None
        if seed == 1:
            return cls.BYE
        if seed <= 4:
            return cls.DIVISION
        if seed <= 7:
            return cls.WILDCARD
        return None


class ClinchLevel(str, Enum):
    BYE = "bye"
    DIVISION = "division"
    PLAYOFF = "playoff"

    @classmethod
    def from_seed(cls, seed: Optional[int]) -> Optional["ClinchLevel"]:
        if seed is None:
            return None
        if seed == 1:
            return cls.BYE
        if seed <= 4:
            return cls.DIVISION
        if seed <= 7:
            return cls.PLAYOFF
        return None


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    abbreviation: str
    location: str
    conference: str
    division: str

    @property
    def display_name(self) -> str:
        return f"{self.location} {self.name}"


@dataclass(frozen=True)
class Game:
    id: str
    week: int
    home_team_id: str
    away_team_id: str
    status: GameStatus = GameStatus.SCHEDULED
    home_score: Optional[int] = None
    away_score: Optional[int] = None

    @property
    def is_final(self) -> bool:
        return self.status is GameStatus.FINAL

    def involves(self, team_id: str) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def opponent_of(self, team_id: str) -> Optional[str]:
        if team_id == self.home_team_id:
            return self.away_team_id
        if team_id == self.away_team_id:
            return self.home_team_id
        return None

    def selection_for_winner(self, team_id: str) -> Optional[Selection]:
        if team_id == self.home_team_id:
            return Selection.HOME
        if team_id == self.away_team_id:
            return Selection.AWAY
        return None


@dataclass(frozen=True)
class GameResult:
    """One decided game seen from a single team's side."""

    game_id: str
    week: int
    opponent_id: str
    outcome: Outcome
    points_for: int
    points_against: int
    projected: bool


@dataclass
class Record:
    team_id: str
    wins: int = 0
    losses: int = 0
    ties: int = 0
    division_wins: int = 0
    division_losses: int = 0
    division_ties: int = 0
    conference_wins: int = 0
    conference_losses: int = 0
    conference_ties: int = 0
    points_for: int = 0
    points_against: int = 0
    results: List[GameResult] = field(default_factory=list)

    @property
    def games_played(self) -> int:
        return self.wins + self.losses + self.ties

    @property
    def win_pct(self) -> float:
        return win_pct(self.wins, self.losses, self.ties)

    @property
    def division_pct(self) -> float:
        return win_pct(self.division_wins, self.division_losses, self.division_ties)

    @property
    def conference_pct(self) -> float:
        return win_pct(self.conference_wins, self.conference_losses, self.conference_ties)

    @property
    def point_differential(self) -> int:
        return self.points_for - self.points_against

    @property
    def opponents_beaten(self) -> List[str]:
        return [result.opponent_id for result in self.results if result.outcome is Outcome.WIN]

    def summary(self) -> str:
        return format_record(self.wins, self.losses, self.ties)


@dataclass
class MagicNumbers:
    playoff: Optional[int]
    division: Optional[int]
    bye: Optional[int]


@dataclass
class Standing:
    team: Team
    record: Record
    seed: Optional[int]
    clinched: Optional[ClinchLevel]
    is_eliminated: bool
    magic_numbers: Optional[MagicNumbers] = None
    streak: str = "-"

    @property
    def team_id(self) -> str:
        return self.team.id


def win_pct(wins: int, losses: int, ties: int) -> float:
    total = wins + losses + ties
    if total == 0:
        return 0.0
    return (wins + 0.5 * ties) / total


def format_record(wins: int, losses: int, ties: int) -> str:
    if ties:
        return f"{wins}-{losses}-{ties}"
    return f"{wins}-{losses}"
