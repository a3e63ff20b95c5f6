"""Twelve-step tiebreak procedure for teams with identical win percentage.

Every criterion is applied to the whole tied group at once. When a criterion
splits the group, each subgroup that is still tied starts over from step 1
with only its own members, so a step that was inapplicable to the larger
group (head-to-head, most often) can decide the smaller one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from .models import Outcome, Record, Team, win_pct

LOGGER = logging.getLogger(__name__)

MIN_COMMON_OPPONENTS = 4
VALUE_PRECISION = 4


class TiebreakStep(int, Enum):
    HEAD_TO_HEAD = 1
    DIVISION_RECORD = 2
    COMMON_GAMES = 3
    CONFERENCE_RECORD = 4
    STRENGTH_OF_VICTORY = 5
    STRENGTH_OF_SCHEDULE = 6
    CONFERENCE_POINTS_RANK = 7
    LEAGUE_POINTS_RANK = 8
    COMMON_NET_POINTS = 9
    NET_POINTS = 10
    NET_TOUCHDOWNS = 11
    LAST_RESORT = 12

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").lower()


@dataclass(frozen=True)
class TiebreakDecision:
    """A step that split a tied group, with the resulting ordered subgroups."""

    step: TiebreakStep
    teams: tuple[str, ...]
    groups: tuple[tuple[str, ...], ...]


class TiebreakContext:
    """Records plus the team index the criteria need; built once per standings pass."""

    def __init__(self, teams: Iterable[Team], records: Mapping[str, Record]) -> None:
        self.teams: Dict[str, Team] = {team.id: team for team in teams}
        self.records = records
        self._points_rank_cache: Dict[Optional[str], Dict[str, int]] = {}

    def record(self, team_id: str) -> Record:
        return self.records[team_id]

    def opponents_met(self, team_id: str) -> Set[str]:
        return {result.opponent_id for result in self.records[team_id].results}

    def points_rank(self, team_id: str, conference: Optional[str]) -> int:
        """Combined points-for rank plus points-against rank; lower is better."""

        ranks = self._points_rank_cache.get(conference)
        if ranks is None:
            ranks = self._build_points_rank(conference)
            self._points_rank_cache[conference] = ranks
        return ranks.get(team_id, len(ranks) * 2)

    def _build_points_rank(self, conference: Optional[str]) -> Dict[str, int]:
        pool = [
            team_id
            for team_id, team in self.teams.items()
            if team_id in self.records and (conference is None or team.conference == conference)
        ]
        points_for = sorted((self.records[t].points_for for t in pool), reverse=True)
        points_against = sorted(self.records[t].points_against for t in pool)
        ranks: Dict[str, int] = {}
        for team_id in pool:
            record = self.records[team_id]
            # Competition ranking: equal totals share the better rank.
            pf_rank = points_for.index(record.points_for) + 1
            pa_rank = points_against.index(record.points_against) + 1
            ranks[team_id] = pf_rank + pa_rank
        return ranks


Evaluator = Callable[[Sequence[str], TiebreakContext, bool], Optional[Dict[str, float]]]


def _head_to_head(group: Sequence[str], ctx: TiebreakContext, is_division_tie: bool) -> Optional[Dict[str, float]]:
    members = set(group)
    values: Dict[str, float] = {}
    for team_id in group:
        wins = losses = ties = 0
        met: Set[str] = set()
        for result in ctx.record(team_id).results:
            if result.opponent_id not in members:
                continue
            met.add(result.opponent_id)
            if result.outcome is Outcome.WIN:
                wins += 1
            elif result.outcome is Outcome.LOSS:
                losses += 1
            else:
                ties += 1
        if met != members - {team_id}:
            return None
        values[team_id] = win_pct(wins, losses, ties)
    return values


def _division_record(group: Sequence[str], ctx: TiebreakContext, is_division_tie: bool) -> Optional[Dict[str, float]]:
    if not is_division_tie:
        return None
    return {team_id: ctx.record(team_id).division_pct for team_id in group}


def common_opponents(group: Sequence[str], ctx: TiebreakContext) -> Set[str]:
    common: Optional[Set[str]] = None
    for team_id in group:
        met = ctx.opponents_met(team_id)
        common = met if common is None else common & met
    return (common or set()) - set(group)


def _common_games(group: Sequence[str], ctx: TiebreakContext, is_division_tie: bool) -> Optional[Dict[str, float]]:
    common = common_opponents(group, ctx)
    if len(common) < MIN_COMMON_OPPONENTS:
        return None
    values: Dict[str, float] = {}
    for team_id in group:
        wins = losses = ties = 0
        for result in ctx.record(team_id).results:
            if result.opponent_id not in common:
                continue
            if result.outcome is Outcome.WIN:
                wins += 1
            elif result.outcome is Outcome.LOSS:
                losses += 1
            else:
                ties += 1
        values[team_id] = win_pct(wins, losses, ties)
    return values


def _conference_record(group: Sequence[str], ctx: TiebreakContext, is_division_tie: bool) -> Optional[Dict[str, float]]:
    return {team_id: ctx.record(team_id).conference_pct for team_id in group}


def _combined_pct(ctx: TiebreakContext, opponent_ids: Iterable[str]) -> float:
    wins = losses = ties = 0
    for opponent_id in opponent_ids:
        record = ctx.records.get(opponent_id)
        if record is None:
            continue
        wins += record.wins
        losses += record.losses
        ties += record.ties
    return win_pct(wins, losses, ties)


def strength_of_victory(team_id: str, ctx: TiebreakContext) -> float:
    return _combined_pct(ctx, ctx.record(team_id).opponents_beaten)


def strength_of_schedule(team_id: str, ctx: TiebreakContext) -> float:
    return _combined_pct(ctx, (result.opponent_id for result in ctx.record(team_id).results))


def _strength_of_victory(group: Sequence[str], ctx: TiebreakContext, is_division_tie: bool) -> Optional[Dict[str, float]]:
    return {team_id: strength_of_victory(team_id, ctx) for team_id in group}


def _strength_of_schedule(group: Sequence[str], ctx: TiebreakContext, is_division_tie: bool) -> Optional[Dict[str, float]]:
    return {team_id: strength_of_schedule(team_id, ctx) for team_id in group}


def _conference_points_rank(group: Sequence[str], ctx: TiebreakContext, is_division_tie: bool) -> Optional[Dict[str, float]]:
    team = ctx.teams.get(group[0])
    conference = team.conference if team else None
    return {team_id: -float(ctx.points_rank(team_id, conference)) for team_id in group}


def _league_points_rank(group: Sequence[str], ctx: TiebreakContext, is_division_tie: bool) -> Optional[Dict[str, float]]:
    return {team_id: -float(ctx.points_rank(team_id, None)) for team_id in group}


def _common_net_points(group: Sequence[str], ctx: TiebreakContext, is_division_tie: bool) -> Optional[Dict[str, float]]:
    common = common_opponents(group, ctx)
    if not common:
        return None
    return {
        team_id: float(
            sum(
                result.points_for - result.points_against
                for result in ctx.record(team_id).results
                if result.opponent_id in common
            )
        )
        for team_id in group
    }


def _net_points(group: Sequence[str], ctx: TiebreakContext, is_division_tie: bool) -> Optional[Dict[str, float]]:
    return {team_id: float(ctx.record(team_id).point_differential) for team_id in group}


def _net_touchdowns(group: Sequence[str], ctx: TiebreakContext, is_division_tie: bool) -> Optional[Dict[str, float]]:
    # Touchdown counts are not part of the game feed; net points stand in for them.
    return _net_points(group, ctx, is_division_tie)


def _last_resort(group: Sequence[str], ctx: TiebreakContext, is_division_tie: bool) -> Optional[Dict[str, float]]:
    return None


CRITERIA: tuple[tuple[TiebreakStep, Evaluator], ...] = (
    (TiebreakStep.HEAD_TO_HEAD, _head_to_head),
    (TiebreakStep.DIVISION_RECORD, _division_record),
    (TiebreakStep.COMMON_GAMES, _common_games),
    (TiebreakStep.CONFERENCE_RECORD, _conference_record),
    (TiebreakStep.STRENGTH_OF_VICTORY, _strength_of_victory),
    (TiebreakStep.STRENGTH_OF_SCHEDULE, _strength_of_schedule),
    (TiebreakStep.CONFERENCE_POINTS_RANK, _conference_points_rank),
    (TiebreakStep.LEAGUE_POINTS_RANK, _league_points_rank),
    (TiebreakStep.COMMON_NET_POINTS, _common_net_points),
    (TiebreakStep.NET_POINTS, _net_points),
    (TiebreakStep.NET_TOUCHDOWNS, _net_touchdowns),
    (TiebreakStep.LAST_RESORT, _last_resort),
)


def _partition(group: Sequence[str], values: Mapping[str, float]) -> List[List[str]]:
    """Split into equal-valued subgroups, best value first, input order kept inside each."""

    buckets: Dict[float, List[str]] = {}
    for team_id in group:
        key = round(values[team_id], VALUE_PRECISION)
        buckets.setdefault(key, []).append(team_id)
    return [buckets[key] for key in sorted(buckets, reverse=True)]


def break_tie(
    team_ids: Sequence[str],
    context: TiebreakContext,
    is_division_tie: bool,
    trace: Optional[List[TiebreakDecision]] = None,
) -> List[str]:
    """Order a tied group best-first.

    Ids without a record are kept after the known teams in their incoming
    order; nothing is ever dropped. If all twelve steps fail to separate a
    group, its incoming order is returned unchanged.
    """

    seen: Set[str] = set()
    group: List[str] = []
    unknown: List[str] = []
    for team_id in team_ids:
        if team_id in seen:
            continue
        seen.add(team_id)
        (group if team_id in context.records else unknown).append(team_id)

    if len(group) <= 1:
        return group + unknown

    for step, evaluate in CRITERIA:
        values = evaluate(group, context, is_division_tie)
        if values is None:
            continue
        subgroups = _partition(group, values)
        if len(subgroups) == 1:
            continue
        if trace is not None:
            trace.append(TiebreakDecision(step, tuple(group), tuple(tuple(sub) for sub in subgroups)))
        ordered: List[str] = []
        for subgroup in subgroups:
            if len(subgroup) == 1:
                ordered.extend(subgroup)
            else:
                ordered.extend(break_tie(subgroup, context, is_division_tie, trace))
        return ordered + unknown

    LOGGER.debug("Tiebreak exhausted for %s; keeping incoming order", group)
    return group + unknown


def rank_by_record(
    team_ids: Sequence[str],
    context: TiebreakContext,
    is_division_tie: bool,
    tie_resolver: Optional[Callable[[List[str]], List[str]]] = None,
) -> List[str]:
    """Sort by win percentage, then resolve each equal-percentage group."""

    resolver = tie_resolver or (lambda tied: break_tie(tied, context, is_division_tie))
    known = [team_id for team_id in team_ids if team_id in context.records]
    buckets: Dict[float, List[str]] = {}
    for team_id in known:
        buckets.setdefault(round(context.record(team_id).win_pct, VALUE_PRECISION), []).append(team_id)

    ordered: List[str] = []
    for key in sorted(buckets, reverse=True):
        tied = buckets[key]
        ordered.extend(tied if len(tied) == 1 else resolver(tied))
    return ordered
