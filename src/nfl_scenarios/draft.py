"""Projected draft order from the standings and the playoff bracket."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

from .bracket import Matchup, PlayoffBracket, Round
from .models import Game, Standing, Team
from .records import Selections, calculate_team_records
from .tiebreakers import TiebreakContext, strength_of_schedule

# Slots handed to each group of playoff losers, in draft order.
_EXIT_GROUPS = (
    (Round.WILD_CARD, 6, "Lost in wild card round"),
    (Round.DIVISIONAL, 4, "Lost in divisional round"),
    (Round.CHAMPIONSHIP, 2, "Lost in conference championship"),
    (Round.SUPER_BOWL, 1, "Lost Super Bowl"),
)


@dataclass(frozen=True)
class DraftPick:
    pick: int
    team_id: str
    record: str
    reason: str
    pick_max: Optional[int] = None

    @property
    def is_settled(self) -> bool:
        return self.pick_max is None or self.pick_max == self.pick


def _round_matchups(bracket: PlayoffBracket, stage: Round) -> List[Matchup]:
    if stage is Round.SUPER_BOWL:
        return [bracket.super_bowl]
    matchups: List[Matchup] = []
    for conference in bracket.conferences():
        matchups.extend(conference.round(stage))
    return matchups


def calculate_draft_order(
    league: Mapping[str, Sequence[Standing]],
    bracket: Optional[PlayoffBracket],
    teams: Iterable[Team],
    games: Iterable[Game],
    selections: Optional[Selections] = None,
) -> List[DraftPick]:
    """Worst non-playoff team first; playoff teams by the round they went out in.

    A playoff team whose exit round is not known yet gets a ``pick`` ..
    ``pick_max`` range covering every slot it could still land in.
    """

    teams = list(teams)
    records = calculate_team_records(teams, games, selections or {})
    context = TiebreakContext(teams, records)
    standings: Dict[str, Standing] = {s.team.id: s for group in league.values() for s in group}

    def order_key(team_id: str):
        record = records[team_id]
        return (round(record.win_pct, 4), round(strength_of_schedule(team_id, context), 4), team_id)

    def pick_for(pick: int, team_id: str, reason: str, pick_max: Optional[int] = None) -> DraftPick:
        return DraftPick(pick=pick, team_id=team_id, record=records[team_id].summary(), reason=reason, pick_max=pick_max)

    playoff_ids = [team_id for team_id, s in standings.items() if s.seed is not None]
    playoff_set = set(playoff_ids)
    non_playoff = sorted((tid for tid in standings if tid not in playoff_set), key=order_key)

    order: List[DraftPick] = []
    for team_id in non_playoff:
        order.append(pick_for(len(order) + 1, team_id, "Missed playoffs"))

    if bracket is None:
        for team_id in sorted(playoff_ids, key=order_key):
            order.append(pick_for(len(order) + 1, team_id, "Playoff team", pick_max=len(standings)))
        return order

    placed: Set[str] = set()
    next_pick = len(order) + 1
    last_pick = next_pick + sum(size for _, size, _ in _EXIT_GROUPS)
    alive: List[str] = []
    for stage, size, reason in _EXIT_GROUPS:
        matchups = _round_matchups(bracket, stage)
        losers = sorted(
            (m.loser.team_id for m in matchups if m.loser is not None and m.loser.team_id in records),
            key=order_key,
        )
        for team_id in losers:
            order.append(pick_for(next_pick, team_id, reason))
            placed.add(team_id)
            next_pick += 1
        open_slots = size - len(losers)
        # Teams still playing in this round: anywhere from the first open slot to the last pick.
        for m in matchups:
            if m.decided:
                continue
            for side in m.sides:
                if side.team_id in records and side.team_id not in placed and side.team_id not in alive:
                    alive.append(side.team_id)
        next_pick += open_slots
        if open_slots:
            start = next_pick - open_slots
            for team_id in sorted(alive, key=order_key):
                if team_id in placed:
                    continue
                order.append(pick_for(start, team_id, f"Alive in {stage.value} round", pick_max=last_pick))
                placed.add(team_id)

    champion = bracket.champion
    if champion is not None and champion.team_id in records:
        order.append(pick_for(last_pick, champion.team_id, "Won Super Bowl"))
        placed.add(champion.team_id)

    # Playoff teams the bracket never reached (missing seeds or feed data).
    for team_id in sorted((tid for tid in playoff_ids if tid not in placed), key=order_key):
        order.append(pick_for(next_pick, team_id, "Playoff team", pick_max=last_pick))
    return order
