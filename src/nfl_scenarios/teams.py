"""Static league reference data: 32 teams, 8 divisions, 2 conferences."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .models import Team

CONFERENCES = ("AFC", "NFC")

DIVISIONS = (
    "AFC East",
    "AFC North",
    "AFC South",
    "AFC West",
    "NFC East",
    "NFC North",
    "NFC South",
    "NFC West",
)

# id, name, abbreviation, location, division
_TEAM_ROWS = (
    ("1", "Bills", "BUF", "Buffalo", "AFC East"),
    ("2", "Dolphins", "MIA", "Miami", "AFC East"),
    ("3", "Patriots", "NE", "New England", "AFC East"),
    ("4", "Jets", "NYJ", "New York", "AFC East"),
    ("5", "Ravens", "BAL", "Baltimore", "AFC North"),
    ("6", "Bengals", "CIN", "Cincinnati", "AFC North"),
    ("7", "Browns", "CLE", "Cleveland", "AFC North"),
    ("8", "Steelers", "PIT", "Pittsburgh", "AFC North"),
    ("9", "Texans", "HOU", "Houston", "AFC South"),
    ("10", "Colts", "IND", "Indianapolis", "AFC South"),
    ("11", "Jaguars", "JAX", "Jacksonville", "AFC South"),
    ("12", "Titans", "TEN", "Tennessee", "AFC South"),
    ("13", "Broncos", "DEN", "Denver", "AFC West"),
    ("14", "Chiefs", "KC", "Kansas City", "AFC West"),
    ("15", "Raiders", "LV", "Las Vegas", "AFC West"),
    ("16", "Chargers", "LAC", "Los Angeles", "AFC West"),
    ("17", "Cowboys", "DAL", "Dallas", "NFC East"),
    ("18", "Giants", "NYG", "New York", "NFC East"),
    ("19", "Eagles", "PHI", "Philadelphia", "NFC East"),
    ("20", "Commanders", "WSH", "Washington", "NFC East"),
    ("21", "Bears", "CHI", "Chicago", "NFC North"),
    ("22", "Lions", "DET", "Detroit", "NFC North"),
    ("23", "Packers", "GB", "Green Bay", "NFC North"),
    ("24", "Vikings", "MIN", "Minnesota", "NFC North"),
    ("25", "Falcons", "ATL", "Atlanta", "NFC South"),
    ("26", "Panthers", "CAR", "Carolina", "NFC South"),
    ("27", "Saints", "NO", "New Orleans", "NFC South"),
    ("28", "Buccaneers", "TB", "Tampa Bay", "NFC South"),
    ("29", "Cardinals", "ARI", "Arizona", "NFC West"),
    ("30", "Rams", "LAR", "Los Angeles", "NFC West"),
    ("31", "49ers", "SF", "San Francisco", "NFC West"),
    ("32", "Seahawks", "SEA", "Seattle", "NFC West"),
)

TEAMS: tuple[Team, ...] = tuple(
    Team(
        id=team_id,
        name=name,
        abbreviation=abbrev,
        location=location,
        conference=division.split(" ", 1)[0],
        division=division,
    )
    for team_id, name, abbrev, location, division in _TEAM_ROWS
)

# ESPN occasionally reports legacy abbreviations
_ABBREVIATION_ALIASES = {"WAS": "WSH", "LA": "LAR", "JAC": "JAX", "OAK": "LV", "SD": "LAC"}


def team_index(teams: Iterable[Team]) -> Dict[str, Team]:
    return {team.id: team for team in teams}


def get_team(team_id: str, teams: Iterable[Team] = TEAMS) -> Optional[Team]:
    for team in teams:
        if team.id == team_id:
            return team
    return None


def get_team_by_abbreviation(abbrev: str, teams: Iterable[Team] = TEAMS) -> Optional[Team]:
    if not abbrev:
        return None
    code = abbrev.strip().upper()
    code = _ABBREVIATION_ALIASES.get(code, code)
    for team in teams:
        if team.abbreviation == code:
            return team
    return None


def resolve_team(token: str, teams: Iterable[Team] = TEAMS) -> Optional[Team]:
    """Look a team up by id or abbreviation."""

    teams = list(teams)
    return get_team(token, teams) or get_team_by_abbreviation(token, teams)


def teams_in_conference(conference: str, teams: Iterable[Team] = TEAMS) -> List[Team]:
    return [team for team in teams if team.conference == conference]


def teams_in_division(division: str, teams: Iterable[Team] = TEAMS) -> List[Team]:
    return [team for team in teams if team.division == division]


def divisions_of(conference: str, teams: Iterable[Team] = TEAMS) -> List[str]:
    ordered: List[str] = []
    for team in teams:
        if team.conference == conference and team.division not in ordered:
            ordered.append(team.division)
    return ordered
