"""Fold games and a selection overlay into per-team records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .models import Game, GameResult, Outcome, Record, Selection, Team

LOGGER = logging.getLogger(__name__)

# Placeholder scores for selected games; they only fix the sign of the differential.
SELECTED_WIN_SCORE = (24, 17)
SELECTED_TIE_SCORE = (20, 20)

Selections = Mapping[str, Selection]


@dataclass(frozen=True)
class RecentGame:
    week: int
    opponent_id: str
    opponent_name: str
    outcome: Outcome
    team_score: int
    opponent_score: int
    projected: bool


def normalize_selections(raw: Optional[Mapping[str, object]]) -> Dict[str, Selection]:
    """Coerce a loosely typed ``{game_id: "home"}`` mapping, dropping unknown values."""

    normalized: Dict[str, Selection] = {}
    for game_id, value in (raw or {}).items():
        selection = Selection.parse(value)
        if selection is not None:
            normalized[str(game_id)] = selection
    return normalized


def is_open(game: Game, selections: Selections) -> bool:
    """True when the game is not final and carries no selection."""

    return not game.is_final and selections.get(game.id) is None


def game_outcome(game: Game, selections: Selections) -> Optional[Tuple[Outcome, int, int, bool]]:
    """Return ``(home outcome, home points, away points, projected)`` or ``None`` if undecided.

    A final game always uses its real score; selections are consulted only for
    games that are not final.
    """

    if game.is_final:
        if game.home_score is None or game.away_score is None:
            return None
        if game.home_score > game.away_score:
            outcome = Outcome.WIN
        elif game.home_score < game.away_score:
            outcome = Outcome.LOSS
        else:
            outcome = Outcome.TIE
        return outcome, game.home_score, game.away_score, False

    selection = Selection.parse(selections.get(game.id))
    if selection is None:
        return None
    if selection is Selection.HOME:
        return Outcome.WIN, SELECTED_WIN_SCORE[0], SELECTED_WIN_SCORE[1], True
    if selection is Selection.AWAY:
        return Outcome.LOSS, SELECTED_WIN_SCORE[1], SELECTED_WIN_SCORE[0], True
    return Outcome.TIE, SELECTED_TIE_SCORE[0], SELECTED_TIE_SCORE[1], True


def result_for(game: Game, team_id: str, selections: Selections) -> Optional[Outcome]:
    decided = game_outcome(game, selections)
    if decided is None:
        return None
    outcome = decided[0]
    if team_id == game.home_team_id:
        return outcome
    if team_id == game.away_team_id:
        return outcome.flipped()
    return None


def is_well_formed(game: Game, index: Mapping[str, Team]) -> bool:
    if game.home_team_id not in index or game.away_team_id not in index:
        return False
    if game.home_team_id == game.away_team_id:
        return False
    if game.is_final and (game.home_score is None or game.away_score is None):
        return False
    return True


def _tally(record: Record, outcome: Outcome, same_division: bool, same_conference: bool) -> None:
    if outcome is Outcome.WIN:
        record.wins += 1
        if same_division:
            record.division_wins += 1
        if same_conference:
            record.conference_wins += 1
    elif outcome is Outcome.LOSS:
        record.losses += 1
        if same_division:
            record.division_losses += 1
        if same_conference:
            record.conference_losses += 1
    else:
        record.ties += 1
        if same_division:
            record.division_ties += 1
        if same_conference:
            record.conference_ties += 1


def calculate_team_records(
    teams: Iterable[Team],
    games: Iterable[Game],
    selections: Optional[Selections] = None,
) -> Dict[str, Record]:
    """Build ``team_id -> Record`` from final scores plus the selection overlay."""

    selections = selections or {}
    index = {team.id: team for team in teams}
    records = {team_id: Record(team_id=team_id) for team_id in index}

    for game in games:
        if not is_well_formed(game, index):
            LOGGER.debug("Skipping malformed game %s (%s @ %s)", game.id, game.away_team_id, game.home_team_id)
            continue
        decided = game_outcome(game, selections)
        if decided is None:
            continue
        home_outcome, home_points, away_points, projected = decided

        home = index[game.home_team_id]
        away = index[game.away_team_id]
        same_division = home.division == away.division
        same_conference = home.conference == away.conference

        home_record = records[home.id]
        away_record = records[away.id]
        _tally(home_record, home_outcome, same_division, same_conference)
        _tally(away_record, home_outcome.flipped(), same_division, same_conference)

        home_record.points_for += home_points
        home_record.points_against += away_points
        away_record.points_for += away_points
        away_record.points_against += home_points

        home_record.results.append(
            GameResult(game.id, game.week, away.id, home_outcome, home_points, away_points, projected)
        )
        away_record.results.append(
            GameResult(game.id, game.week, home.id, home_outcome.flipped(), away_points, home_points, projected)
        )

    return records


def remaining_games(team_id: str, games: Iterable[Game], selections: Optional[Selections] = None) -> List[Game]:
    selections = selections or {}
    return [game for game in games if game.involves(team_id) and is_open(game, selections)]


def _decided_team_games(
    team_id: str,
    games: Iterable[Game],
    selections: Selections,
) -> List[Tuple[Game, Tuple[Outcome, int, int, bool]]]:
    decided = []
    for game in games:
        if not game.involves(team_id):
            continue
        outcome = game_outcome(game, selections)
        if outcome is not None:
            decided.append((game, outcome))
    decided.sort(key=lambda item: item[0].week, reverse=True)
    return decided


def calculate_streak(team_id: str, games: Iterable[Game], selections: Optional[Selections] = None) -> str:
    """Current streak such as ``W3``, most recent decided game first."""

    streak_type: Optional[Outcome] = None
    count = 0
    for game, (home_outcome, _, _, _) in _decided_team_games(team_id, games, selections or {}):
        outcome = home_outcome if game.home_team_id == team_id else home_outcome.flipped()
        if streak_type is None:
            streak_type = outcome
            count = 1
        elif outcome is streak_type:
            count += 1
        else:
            break
    if streak_type is None:
        return "-"
    return f"{streak_type.value}{count}"


def calculate_last_five(
    team_id: str,
    teams: Iterable[Team],
    games: Iterable[Game],
    selections: Optional[Selections] = None,
) -> List[RecentGame]:
    index = {team.id: team for team in teams}
    if team_id not in index:
        return []

    recent: List[RecentGame] = []
    for game, (home_outcome, home_points, away_points, projected) in _decided_team_games(
        team_id, games, selections or {}
    )[:5]:
        is_home = game.home_team_id == team_id
        opponent_id = game.away_team_id if is_home else game.home_team_id
        opponent = index.get(opponent_id)
        recent.append(
            RecentGame(
                week=game.week,
                opponent_id=opponent_id,
                opponent_name=opponent.name if opponent else opponent_id,
                outcome=home_outcome if is_home else home_outcome.flipped(),
                team_score=home_points if is_home else away_points,
                opponent_score=away_points if is_home else home_points,
                projected=projected,
            )
        )
    return recent
