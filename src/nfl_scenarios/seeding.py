"""Conference seeding: division winners take seeds 1-4, wildcards 5-7."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .models import ClinchLevel, Game, Record, Standing, Team
from .records import Selections, calculate_streak, calculate_team_records
from .teams import divisions_of
from .tiebreakers import TiebreakContext, break_tie, rank_by_record

PLAYOFF_SEEDS = 7


def resolve_wildcard_tie(tied: Sequence[str], context: TiebreakContext) -> List[str]:
    """Order a wildcard tie the league way.

    Teams sharing a division are first reduced to their division-tiebreak
    winner; the best of the survivors takes the next spot and the procedure
    starts over with everyone who is left.
    """

    remaining = list(tied)
    ordered: List[str] = []
    while remaining:
        if len(remaining) == 1:
            ordered.extend(remaining)
            break
        by_division: Dict[str, List[str]] = {}
        for team_id in remaining:
            team = context.teams.get(team_id)
            by_division.setdefault(team.division if team else team_id, []).append(team_id)
        if len(by_division) == len(remaining):
            ordered.extend(break_tie(remaining, context, is_division_tie=False))
            break
        survivors = [
            members[0] if len(members) == 1 else break_tie(members, context, is_division_tie=True)[0]
            for members in by_division.values()
        ]
        best = survivors[0] if len(survivors) == 1 else break_tie(survivors, context, is_division_tie=False)[0]
        ordered.append(best)
        remaining.remove(best)
    return ordered


def _standing(team: Team, record: Record, seed: Optional[int]) -> Standing:
    return Standing(
        team=team,
        record=record,
        seed=seed,
        clinched=ClinchLevel.from_seed(seed),
        is_eliminated=seed is None,
    )


def rank_divisions(conference: str, teams: Sequence[Team], context: TiebreakContext) -> Dict[str, List[str]]:
    ranked: Dict[str, List[str]] = {}
    for division in divisions_of(conference, teams):
        members = [team.id for team in teams if team.division == division]
        ranked[division] = rank_by_record(members, context, is_division_tie=True)
    return ranked


def calculate_playoff_seedings(
    conference: str,
    teams: Iterable[Team],
    games: Iterable[Game],
    selections: Optional[Selections] = None,
    records: Optional[Mapping[str, Record]] = None,
) -> List[Standing]:
    """Return the conference standings in seed order, non-playoff teams last.

    ``clinched`` and ``is_eliminated`` describe the provisional position only;
    the scenario solver decides what is mathematically guaranteed.
    """

    teams = list(teams)
    if conference not in {team.conference for team in teams}:
        return []
    if records is None:
        records = calculate_team_records(teams, games, selections or {})
    context = TiebreakContext(teams, records)
    index = context.teams

    winners: List[str] = []
    pool: List[str] = []
    for ranked in rank_divisions(conference, teams, context).values():
        if not ranked:
            continue
        winners.append(ranked[0])
        pool.extend(ranked[1:])

    seeded_winners = rank_by_record(winners, context, is_division_tie=False)
    seeded_pool = rank_by_record(
        pool,
        context,
        is_division_tie=False,
        tie_resolver=lambda tied: resolve_wildcard_tie(tied, context),
    )
    wildcard_slots = PLAYOFF_SEEDS - len(seeded_winners)

    standings: List[Standing] = []
    for position, team_id in enumerate(seeded_winners, start=1):
        standings.append(_standing(index[team_id], records[team_id], position))
    for offset, team_id in enumerate(seeded_pool):
        seed = len(seeded_winners) + offset + 1 if offset < wildcard_slots else None
        standings.append(_standing(index[team_id], records[team_id], seed))
    return standings


def seed_of(team_id: str, standings: Iterable[Standing]) -> Optional[int]:
    for standing in standings:
        if standing.team.id == team_id:
            return standing.seed
    return None


def division_standings(
    conference: str,
    teams: Iterable[Team],
    games: Iterable[Game],
    selections: Optional[Selections] = None,
) -> Dict[str, List[Standing]]:
    """Each division ranked top to bottom, tagged with the team's conference seed."""

    teams = list(teams)
    games = list(games)
    records = calculate_team_records(teams, games, selections or {})
    seeded = {s.team.id: s for s in calculate_playoff_seedings(conference, teams, games, selections, records)}
    context = TiebreakContext(teams, records)
    return {
        division: [seeded[team_id] for team_id in ranked]
        for division, ranked in rank_divisions(conference, teams, context).items()
    }


def calculate_league_standings(
    teams: Iterable[Team],
    games: Iterable[Game],
    selections: Optional[Selections] = None,
) -> Dict[str, List[Standing]]:
    """Seeded standings for both conferences, with streaks filled in."""

    teams = list(teams)
    games = list(games)
    selections = selections or {}
    records = calculate_team_records(teams, games, selections)
    league: Dict[str, List[Standing]] = {}
    for conference in dict.fromkeys(team.conference for team in teams):
        standings = calculate_playoff_seedings(conference, teams, games, selections, records)
        for standing in standings:
            standing.streak = calculate_streak(standing.team.id, games, selections)
        league[conference] = standings
    return league
