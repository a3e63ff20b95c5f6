"""NFL standings, tiebreakers, clinching scenarios and playoff bracket tracking."""

from .bracket import PlayoffBracket, PlayoffPicks, build_playoff_bracket
from .records import calculate_team_records
from .scenarios import ScenarioCache, ScenarioSolver, Verdict, analyze_team
from .seeding import calculate_league_standings, calculate_playoff_seedings
from .settings import AppSettings, get_settings, reset_settings_cache
from .tiebreakers import TiebreakContext, break_tie

__all__ = [
    "AppSettings",
    "PlayoffBracket",
    "PlayoffPicks",
    "ScenarioCache",
    "ScenarioSolver",
    "TiebreakContext",
    "Verdict",
    "analyze_team",
    "break_tie",
    "build_playoff_bracket",
    "calculate_league_standings",
    "calculate_playoff_seedings",
    "calculate_team_records",
    "get_settings",
    "reset_settings_cache",
]
