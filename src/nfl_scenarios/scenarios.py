"""Clinch, elimination, magic numbers and clinching paths.

Every question is answered by searching over the results of open games.
The search branches on games between two *threats*, teams that can still
finish at or above the team being analysed. While no team can finish exactly
level with the analysed team, win percentage alone settles the question: a
threat playing a non-threat gets the result that is worst (or best) for the
team, and games between two non-threats cannot matter. Once an exact tie is
possible the tiebreak can depend on any open game in the league, so every
remaining game is branched. Arithmetic certificates close a branch early
whenever the outcome no longer depends on the unassigned games.

Searches are bounded by a :class:`SearchBudget`, charged at every node.
Running out of budget is reported as :attr:`Verdict.UNKNOWN`, never as a
clinch or an elimination.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from fractions import Fraction
from itertools import combinations, islice
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from .models import Game, GoalType, MagicNumbers, PathType, Selection, Standing, Team
from .records import Selections, calculate_team_records, is_open, is_well_formed, normalize_selections
from .seeding import calculate_playoff_seedings

LOGGER = logging.getLogger(__name__)

# Search nodes and wall-clock seconds for one team's analysis.
DEFAULT_MAX_EVALUATIONS = 20000
DEFAULT_TIME_LIMIT = 0.5
MAX_OPPONENT_LOSSES = 4
MAX_COMBINATIONS = 30
MAX_PATHS = 10
MAX_PATH_CHECKS = 150
SEEDING_MEMO_SIZE = 4096

GOAL_ORDER = (GoalType.PLAYOFF, GoalType.DIVISION, GoalType.BYE)


class Verdict(str, Enum):
    YES = "yes"
    NO = "no"
    UNKNOWN = "unknown"


class RequirementKind(str, Enum):
    WIN = "win"
    OPPONENT_LOSS = "opponent_loss"


class _Mode(Enum):
    # CLINCH looks for a completion where the goal fails; ALIVE for one where it holds.
    CLINCH = "clinch"
    ALIVE = "alive"


class _Result(Enum):
    FOUND = "found"
    CLOSED = "closed"
    EXHAUSTED = "exhausted"


class SearchBudget:
    """Caps the number of search nodes and the wall time of a search."""

    def __init__(
        self,
        max_evaluations: int = DEFAULT_MAX_EVALUATIONS,
        time_limit: float = DEFAULT_TIME_LIMIT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_evaluations = max_evaluations
        self.evaluations = 0
        self.exhausted = False
        self._clock = clock
        self._deadline = clock() + time_limit

    def _exhaust(self) -> None:
        self.exhausted = True
        LOGGER.info("Scenario search budget exhausted after %d evaluations", self.evaluations)

    def charge(self) -> bool:
        if self.exhausted:
            return False
        if self.evaluations >= self.max_evaluations or self._clock() > self._deadline:
            self._exhaust()
            return False
        self.evaluations += 1
        return True

    def expired(self) -> bool:
        if not self.exhausted and self._clock() > self._deadline:
            self._exhaust()
        return self.exhausted


@dataclass
class ScenarioCache:
    """Memo of settled verdicts, owned by the caller and passed in explicitly."""

    entries: Dict[tuple, Verdict] = field(default_factory=dict)
    max_entries: int = 4096

    def get(self, key: tuple) -> Optional[Verdict]:
        return self.entries.get(key)

    def put(self, key: tuple, verdict: Verdict) -> None:
        if verdict is Verdict.UNKNOWN:
            return
        if len(self.entries) >= self.max_entries:
            self.entries.clear()
        self.entries[key] = verdict

    def clear(self) -> None:
        self.entries.clear()


@dataclass(frozen=True)
class Requirement:
    game_id: str
    week: int
    winner_id: str
    loser_id: str
    selection: Selection
    kind: RequirementKind


@dataclass(frozen=True)
class ScenarioPath:
    type: Optional[PathType]
    requirements: Tuple[Requirement, ...]
    seed: Optional[int]
    description: str

    @property
    def complexity(self) -> int:
        return len(self.requirements)


@dataclass
class GoalAnalysis:
    """Verdicts, magic number and clinching paths for one goal.

    The magic number counts the team's own wins plus losses by contenders,
    and a win over a contender counts twice: it is both. When
    ``bound_exceeded`` is set the magic number is only an upper bound.
    """

    goal: GoalType
    clinched: Verdict
    eliminated: Verdict
    magic_number: Optional[int]
    paths: List[ScenarioPath] = field(default_factory=list)
    bound_exceeded: bool = False

    @property
    def is_clinched(self) -> bool:
        return self.clinched is Verdict.YES

    @property
    def is_eliminated(self) -> bool:
        return self.eliminated is Verdict.YES


@dataclass
class TeamScenario:
    team_id: str
    current_seed: Optional[int]
    best_seed: Optional[int]
    worst_seed: Optional[int]
    goals: Dict[GoalType, GoalAnalysis] = field(default_factory=dict)

    def goal(self, goal: GoalType) -> Optional[GoalAnalysis]:
        return self.goals.get(goal)

    def magic_numbers(self) -> MagicNumbers:
        def pick(goal: GoalType) -> Optional[int]:
            analysis = self.goals.get(goal)
            return analysis.magic_number if analysis else None

        return MagicNumbers(
            playoff=pick(GoalType.PLAYOFF),
            division=pick(GoalType.DIVISION),
            bye=pick(GoalType.BYE),
        )


def _pct(wins: int, losses: int, ties: int) -> Fraction:
    games = wins + losses + ties
    if games == 0:
        return Fraction(0)
    return Fraction(2 * wins + ties, 2 * games)


def _surplus(team_ids: Iterable[str], division_of: Mapping[str, str]) -> int:
    """Teams in the set that cannot be their division's winner."""

    counts: Dict[str, int] = {}
    for team_id in team_ids:
        division = division_of[team_id]
        counts[division] = counts.get(division, 0) + 1
    return sum(count - 1 for count in counts.values())


def _capped(items: Iterable, limit: int) -> Tuple[list, bool]:
    """First ``limit`` items and whether anything was left over."""

    head = list(islice(items, limit + 1))
    return head[:limit], len(head) > limit


_UNRANKED = Fraction(-1)


class _Search:
    """One depth-first search for a single team, goal and set of fixed results."""

    def __init__(
        self,
        solver: "ScenarioSolver",
        team: Team,
        goal: GoalType,
        fixed: Mapping[str, Selection],
        mode: _Mode,
        budget: SearchBudget,
        use_certificates: bool = True,
        first_leaf_only: bool = False,
    ) -> None:
        self.solver = solver
        self.team = team
        self.goal = goal
        self.fixed = dict(fixed)
        self.mode = mode
        self.budget = budget
        self.use_certificates = use_certificates
        self.first_leaf_only = first_leaf_only
        self.seeds: List[Optional[int]] = []

        if goal is GoalType.DIVISION:
            members = [t for t in solver.teams if t.division == team.division]
        else:
            members = [t for t in solver.teams if t.conference == team.conference]
        self.scope: Set[str] = {t.id for t in members}
        self.division_of = {t.id: t.division for t in members}
        self.others = [t.id for t in members if t.id != team.id]
        self.rivals = {tid for tid in self.others if self.division_of[tid] == team.division}

        self.tally: Dict[str, List[int]] = {}
        for team_id in self.scope:
            record = solver.records[team_id]
            self.tally[team_id] = [record.wins, record.losses, record.ties, 0]

        relevant: List[Game] = []
        outside: List[Game] = []
        for game in solver.open_games:
            if game.home_team_id in self.scope or game.away_team_id in self.scope:
                relevant.append(game)
            else:
                outside.append(game)
        for game in relevant:
            for team_id in (game.home_team_id, game.away_team_id):
                if team_id in self.tally:
                    self.tally[team_id][3] += 1
        # Branching order once exact ties are possible: games touching the scope first.
        self.universe = relevant + outside

        self.assignment: Dict[str, Selection] = {}
        for game in self.universe:
            selection = self.fixed.get(game.id)
            if selection is not None:
                self._assign(game, selection)
        for game in relevant:
            if game.id in self.assignment or not game.involves(team.id):
                continue
            winner = team.id if mode is _Mode.ALIVE else game.opponent_of(team.id)
            self._assign(game, game.selection_for_winner(winner))

        self.pending = [game for game in relevant if game.id not in self.assignment]
        wins, losses, ties, _ = self.tally[team.id]
        self.target_pct = _pct(wins, losses, ties)
        self._target_num = 2 * wins + ties
        self._target_den = 2 * (wins + losses + ties)

    def _assign(self, game: Game, selection: Selection, sign: int = 1) -> None:
        if sign > 0:
            self.assignment[game.id] = selection
        else:
            self.assignment.pop(game.id, None)
        for team_id, won in ((game.home_team_id, Selection.HOME), (game.away_team_id, Selection.AWAY)):
            counts = self.tally.get(team_id)
            if counts is None:
                continue
            if selection is Selection.TIE:
                counts[2] += sign
            elif selection is won:
                counts[0] += sign
            else:
                counts[1] += sign
            counts[3] -= sign

    def _ceiling(self, team_id: str) -> Fraction:
        wins, losses, ties, remaining = self.tally[team_id]
        return _pct(wins + remaining, losses, ties)

    def _floor(self, team_id: str) -> Fraction:
        wins, losses, ties, remaining = self.tally[team_id]
        return _pct(wins, losses + remaining, ties)

    def is_threat(self, team_id: str) -> bool:
        return team_id in self.tally and team_id != self.team.id and self._ceiling(team_id) >= self.target_pct

    def threats(self) -> List[str]:
        return [team_id for team_id in self.others if self.is_threat(team_id)]

    def _can_finish_level(self, team_id: str) -> bool:
        """True if some completion leaves the team on exactly the target percentage."""

        wins, losses, ties, remaining = self.tally[team_id]
        total = wins + losses + ties + remaining
        if total == 0 or self._target_den == 0:
            return any(_pct(wins + k, losses + remaining - k, ties) == self.target_pct for k in range(remaining + 1))
        scaled = self._target_num * 2 * total
        if scaled % self._target_den:
            return False
        extra = scaled // self._target_den - ties - 2 * wins
        return extra % 2 == 0 and 0 <= extra // 2 <= remaining

    def _level_teams(self) -> Set[str]:
        return {team_id for team_id in self.others if self._can_finish_level(team_id)}

    def _guaranteed(self) -> bool:
        contenders = self.threats()
        if self.goal is GoalType.BYE:
            return not contenders
        if not any(team_id in self.rivals for team_id in contenders):
            return True
        if self.goal is GoalType.DIVISION:
            return False
        return _surplus(contenders, self.division_of) <= 2

    def _impossible(self) -> bool:
        above = [team_id for team_id in self.others if self._floor(team_id) > self.target_pct]
        if self.goal is GoalType.BYE:
            return bool(above)
        if not any(team_id in self.rivals for team_id in above):
            return False
        if self.goal is GoalType.DIVISION:
            return True
        return _surplus(above, self.division_of) >= 3

    def run(self) -> _Result:
        return self._visit(0)

    def _visit(self, index: int) -> _Result:
        if self.use_certificates:
            if self._guaranteed():
                return _Result.CLOSED if self.mode is _Mode.CLINCH else _Result.FOUND
            if self._impossible():
                return _Result.FOUND if self.mode is _Mode.CLINCH else _Result.CLOSED
        if not self.budget.charge():
            return _Result.EXHAUSTED

        game: Optional[Game] = None
        while index < len(self.pending):
            candidate = self.pending[index]
            index += 1
            if candidate.id in self.assignment:
                continue
            if self.is_threat(candidate.home_team_id) and self.is_threat(candidate.away_team_id):
                game = candidate
                break
        if game is None:
            level = self._level_teams()
            if level:
                game = self._next_open_game(level)
            if game is None:
                return self._leaf(exact=bool(level))

        for selection in self._branch_order(game):
            self._assign(game, selection)
            result = self._visit(index)
            self._assign(game, selection, sign=-1)
            if result is not _Result.CLOSED:
                return result
        return _Result.CLOSED

    def _next_open_game(self, level: Set[str]) -> Optional[Game]:
        fallback: Optional[Game] = None
        for game in self.universe:
            if game.id in self.assignment:
                continue
            if game.home_team_id in level or game.away_team_id in level:
                return game
            if fallback is None:
                fallback = game
        return fallback

    def _strength(self, team_id: str) -> Tuple[bool, Fraction, Fraction]:
        if team_id not in self.tally:
            return (False, _UNRANKED, _UNRANKED)
        return (self.is_threat(team_id), self._floor(team_id), self._ceiling(team_id))

    def _danger(self, team_id: str) -> Tuple[bool, bool, Fraction]:
        if team_id not in self.tally:
            return (False, False, _UNRANKED)
        return (team_id in self.rivals, self.is_threat(team_id), self._ceiling(team_id))

    def _branch_order(self, game: Game) -> Tuple[Selection, Selection]:
        home, away = game.home_team_id, game.away_team_id
        if self.mode is _Mode.CLINCH:
            # Stronger side first: piling wins on one contender is the quickest way past the team.
            home_first = self._strength(home) >= self._strength(away)
        else:
            home_first = self._danger(home) <= self._danger(away)
        if home_first:
            return Selection.HOME, Selection.AWAY
        return Selection.AWAY, Selection.HOME

    def _leaf(self, exact: bool) -> _Result:
        if not exact and self.use_certificates and not self.first_leaf_only:
            # No exact tie is possible and neither certificate held, so the
            # extreme completion already answers the question.
            return _Result.FOUND

        merged: Dict[str, Selection] = dict(self.solver.selections)
        merged.update(self.fixed)
        merged.update(self.assignment)
        for game in self.universe:
            if game.id not in merged:
                merged[game.id] = self._branch_order(game)[0]

        seed = self.solver.seed_for(self.team, merged)
        self.seeds.append(seed)
        if self.first_leaf_only:
            return _Result.FOUND
        accepted = self.goal.accepts(seed)
        if self.mode is _Mode.CLINCH:
            return _Result.CLOSED if accepted else _Result.FOUND
        return _Result.FOUND if accepted else _Result.CLOSED


class ScenarioSolver:
    """Answers scenario questions for one snapshot of games and selections."""

    def __init__(
        self,
        teams: Iterable[Team],
        games: Iterable[Game],
        selections: Optional[Mapping[str, object]] = None,
        cache: Optional[ScenarioCache] = None,
        max_evaluations: int = DEFAULT_MAX_EVALUATIONS,
        time_limit: float = DEFAULT_TIME_LIMIT,
    ) -> None:
        self.teams: List[Team] = list(teams)
        self.index: Dict[str, Team] = {team.id: team for team in self.teams}
        self.games: List[Game] = list(games)
        self.selections: Dict[str, Selection] = normalize_selections(selections)
        self.cache = cache if cache is not None else ScenarioCache()
        self.max_evaluations = max_evaluations
        self.time_limit = time_limit
        self.records = calculate_team_records(self.teams, self.games, self.selections)
        self.open_games: List[Game] = sorted(
            (
                game
                for game in self.games
                if is_well_formed(game, self.index) and is_open(game, self.selections)
            ),
            key=lambda game: (game.week, game.id),
        )
        self._open_by_id = {game.id: game for game in self.open_games}
        self._fingerprint = hash(
            (
                tuple((g.id, g.status, g.home_score, g.away_score) for g in self.games),
                frozenset(self.selections.items()),
            )
        )
        self._seedings: Dict[tuple, Dict[str, Optional[int]]] = {}

    def new_budget(self, time_limit: Optional[float] = None) -> SearchBudget:
        return SearchBudget(self.max_evaluations, self.time_limit if time_limit is None else time_limit)

    def seed_for(self, team: Team, selections: Selections) -> Optional[int]:
        key = (
            team.conference,
            frozenset((game_id, sel) for game_id, sel in selections.items() if game_id in self._open_by_id),
        )
        seeds = self._seedings.get(key)
        if seeds is None:
            standings = calculate_playoff_seedings(team.conference, self.teams, self.games, selections)
            seeds = {standing.team.id: standing.seed for standing in standings}
            if len(self._seedings) >= SEEDING_MEMO_SIZE:
                self._seedings.clear()
            self._seedings[key] = seeds
        return seeds.get(team.id)

    def verdict(
        self,
        team: Team,
        goal: GoalType,
        mode: _Mode,
        budget: SearchBudget,
        fixed: Optional[Mapping[str, Selection]] = None,
    ) -> Verdict:
        fixed = {game_id: sel for game_id, sel in (fixed or {}).items() if game_id in self._open_by_id}
        key = (self._fingerprint, team.id, goal, mode, frozenset(fixed.items()))
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        result = _Search(self, team, goal, fixed, mode, budget).run()
        # CLINCH: a counterexample means not clinched. ALIVE: a witness means not eliminated.
        if result is _Result.EXHAUSTED:
            verdict = Verdict.UNKNOWN
        else:
            verdict = Verdict.NO if result is _Result.FOUND else Verdict.YES
        self.cache.put(key, verdict)
        return verdict

    def extreme_seed(
        self,
        team: Team,
        mode: _Mode,
        fixed: Optional[Mapping[str, Selection]] = None,
    ) -> Optional[int]:
        """Seed under the single most hostile (CLINCH) or friendly (ALIVE) completion."""

        search = _Search(
            self,
            team,
            GoalType.PLAYOFF,
            fixed or {},
            mode,
            SearchBudget(max_evaluations=len(self.open_games) + 1, time_limit=float("inf")),
            use_certificates=False,
            first_leaf_only=True,
        )
        search.run()
        return search.seeds[0] if search.seeds else None

    def analyze(self, team_id: str, goals: Sequence[GoalType] = GOAL_ORDER) -> TeamScenario:
        team = self.index.get(team_id)
        if team is None:
            LOGGER.warning("Unknown team id %s; returning an empty scenario", team_id)
            return TeamScenario(team_id=team_id, current_seed=None, best_seed=None, worst_seed=None)

        current_seed = self.seed_for(team, self.selections)
        wanted = [goal for goal in GOAL_ORDER if goal in goals]
        share = self.time_limit / max(len(wanted), 1)
        results: Dict[GoalType, GoalAnalysis] = {}
        for goal in wanted:
            inherited = any(
                results[prior].is_eliminated
                for prior in GOAL_ORDER[: GOAL_ORDER.index(goal)]
                if prior in results
            )
            results[goal] = self.analyze_goal(
                team,
                goal,
                inherited_elimination=inherited,
                budget=self.new_budget(share),
            )
        _enforce_chains(results)

        best_seed = self.extreme_seed(team, _Mode.ALIVE)
        worst_seed = self.extreme_seed(team, _Mode.CLINCH)
        playoff = results.get(GoalType.PLAYOFF)
        division = results.get(GoalType.DIVISION)
        bye = results.get(GoalType.BYE)
        if bye is not None and bye.eliminated is Verdict.NO:
            best_seed = 1
        if playoff is not None and playoff.is_eliminated:
            best_seed = worst_seed = None
        elif division is not None and division.is_clinched and (worst_seed is None or worst_seed > 4):
            worst_seed = 4
        return TeamScenario(
            team_id=team.id,
            current_seed=current_seed,
            best_seed=best_seed,
            worst_seed=worst_seed,
            goals=results,
        )

    def analyze_goal(
        self,
        team: Team,
        goal: GoalType,
        inherited_elimination: bool = False,
        budget: Optional[SearchBudget] = None,
    ) -> GoalAnalysis:
        if inherited_elimination:
            return GoalAnalysis(goal, clinched=Verdict.NO, eliminated=Verdict.YES, magic_number=None)

        budget = budget or self.new_budget()
        eliminated = self.verdict(team, goal, _Mode.ALIVE, budget)
        if eliminated is Verdict.YES:
            return GoalAnalysis(goal, clinched=Verdict.NO, eliminated=Verdict.YES, magic_number=None)

        clinched = self.verdict(team, goal, _Mode.CLINCH, budget)
        if clinched is Verdict.YES:
            seed = self.extreme_seed(team, _Mode.CLINCH)
            path = ScenarioPath(
                type=_path_type(goal, seed),
                requirements=(),
                seed=seed,
                description=f"{team.abbreviation} has already clinched",
            )
            return GoalAnalysis(goal, clinched=Verdict.YES, eliminated=Verdict.NO, magic_number=0, paths=[path])

        magic, paths, bound_hit = self.clinching_paths(team, goal, budget)
        if paths and eliminated is Verdict.UNKNOWN:
            eliminated = Verdict.NO
        if eliminated is Verdict.NO and magic is None:
            # Alive, but only through more results than the enumeration covers.
            bound_hit = True
        return GoalAnalysis(
            goal,
            clinched=clinched,
            eliminated=eliminated,
            magic_number=magic,
            paths=paths,
            bound_exceeded=bound_hit or Verdict.UNKNOWN in (clinched, eliminated),
        )

    def clinching_paths(
        self,
        team: Team,
        goal: GoalType,
        budget: SearchBudget,
    ) -> Tuple[Optional[int], List[ScenarioPath], bool]:
        """Smallest verified result sets that guarantee the goal.

        Returns ``(magic number, paths, bound hit)``. A win over a contender
        counts as both a win and an opponent loss toward the magic number.
        The bound is hit when the budget runs out, when too many candidate
        sets have been checked, or when a combination list was cut short.
        """

        root = _Search(self, team, goal, {}, _Mode.CLINCH, budget)
        contenders = sorted(root.threats(), key=lambda tid: root._ceiling(tid), reverse=True)
        contender_set = set(contenders)

        own_games = [game for game in self.open_games if game.involves(team.id)]
        own_games.sort(key=lambda game: (game.opponent_of(team.id) not in contender_set, game.week))
        loss_options: List[Requirement] = []
        seen: Set[Tuple[str, Selection]] = set()
        for contender in contenders:
            for game in self.open_games:
                if not game.involves(contender) or game.involves(team.id):
                    continue
                winner = game.opponent_of(contender)
                selection = game.selection_for_winner(winner)
                if (game.id, selection) in seen:
                    continue
                seen.add((game.id, selection))
                loss_options.append(
                    Requirement(game.id, game.week, winner, contender, selection, RequirementKind.OPPONENT_LOSS)
                )

        max_losses = min(MAX_OPPONENT_LOSSES, len(loss_options))
        found: List[Tuple[int, ScenarioPath]] = []
        found_keys: List[frozenset] = []
        magic: Optional[int] = None
        first_level: Optional[int] = None
        truncated = False
        checks = 0

        for level in range(1, len(own_games) + max_losses + 1):
            if magic is not None and level >= magic and level > first_level:
                break
            for wins in range(min(level, len(own_games)), -1, -1):
                losses = level - wins
                if losses > max_losses:
                    break
                win_sets, cut = _capped(combinations(own_games, wins), MAX_COMBINATIONS)
                loss_sets, loss_cut = _capped(combinations(loss_options, losses), MAX_COMBINATIONS)
                if cut or loss_cut:
                    LOGGER.debug("Clinching paths for %s cut at level %d", team.abbreviation, level)
                    truncated = True
                for win_games in win_sets:
                    win_reqs = [self._win_requirement(team, game) for game in win_games]
                    for loss_reqs in loss_sets:
                        requirements = tuple(win_reqs) + tuple(loss_reqs)
                        game_ids = [req.game_id for req in requirements]
                        if len(set(game_ids)) != len(game_ids):
                            continue
                        key = frozenset((req.game_id, req.selection) for req in requirements)
                        if any(prior <= key for prior in found_keys):
                            continue
                        if checks >= MAX_PATH_CHECKS or budget.expired():
                            return magic, _sorted_paths(found), True
                        checks += 1
                        fixed = {req.game_id: req.selection for req in requirements}
                        verdict = self.verdict(team, goal, _Mode.CLINCH, budget, fixed)
                        if verdict is Verdict.UNKNOWN:
                            return magic, _sorted_paths(found), True
                        if verdict is not Verdict.YES:
                            continue
                        weight = len(requirements) + sum(
                            1
                            for req in requirements
                            if req.kind is RequirementKind.WIN and req.loser_id in contender_set
                        )
                        seed = self.extreme_seed(team, _Mode.CLINCH, fixed)
                        found.append((weight, self._path(team, goal, requirements, seed)))
                        found_keys.append(key)
                        magic = weight if magic is None else min(magic, weight)
                        if first_level is None:
                            first_level = level
                        if len(found) >= MAX_PATHS:
                            return magic, _sorted_paths(found), truncated
        return magic, _sorted_paths(found), truncated

    def _win_requirement(self, team: Team, game: Game) -> Requirement:
        return Requirement(
            game_id=game.id,
            week=game.week,
            winner_id=team.id,
            loser_id=game.opponent_of(team.id),
            selection=game.selection_for_winner(team.id),
            kind=RequirementKind.WIN,
        )

    def _path(
        self,
        team: Team,
        goal: GoalType,
        requirements: Sequence[Requirement],
        seed: Optional[int],
    ) -> ScenarioPath:
        parts = []
        for req in requirements:
            winner = self.index[req.winner_id].abbreviation
            loser = self.index[req.loser_id].abbreviation
            if req.kind is RequirementKind.WIN:
                parts.append(f"{winner} beats {loser} (week {req.week})")
            else:
                parts.append(f"{loser} loses to {winner} (week {req.week})")
        return ScenarioPath(
            type=_path_type(goal, seed),
            requirements=tuple(requirements),
            seed=seed,
            description=" + ".join(parts),
        )


def _path_type(goal: GoalType, seed: Optional[int]) -> Optional[PathType]:
    path_type = PathType.from_seed(seed)
    if goal is GoalType.BYE:
        return PathType.BYE
    if goal is GoalType.DIVISION and path_type not in (PathType.BYE, PathType.DIVISION):
        return PathType.DIVISION
    if path_type is None:
        return PathType.WILDCARD
    return path_type


def _sorted_paths(found: Sequence[Tuple[int, ScenarioPath]]) -> List[ScenarioPath]:
    ordered = sorted(
        found,
        key=lambda item: (item[1].complexity, item[0], item[1].seed if item[1].seed is not None else 99),
    )
    return [path for _, path in ordered[:MAX_PATHS]]


def _enforce_chains(results: Dict[GoalType, GoalAnalysis]) -> None:
    """Keep the three goals consistent with each other (bye implies division implies playoff)."""

    chain = [results[goal] for goal in GOAL_ORDER if goal in results]
    # Eliminated from a weaker goal means eliminated from every stronger one.
    for weaker, stronger in zip(chain, chain[1:]):
        if weaker.eliminated is Verdict.YES:
            stronger.eliminated = Verdict.YES
        if weaker.clinched is Verdict.NO and stronger.clinched is Verdict.UNKNOWN:
            stronger.clinched = Verdict.NO
    for weaker, stronger in reversed(list(zip(chain, chain[1:]))):
        if stronger.eliminated is Verdict.NO:
            weaker.eliminated = Verdict.NO
        if stronger.clinched is Verdict.YES:
            weaker.clinched = Verdict.YES

    for analysis in chain:
        if analysis.clinched is Verdict.YES:
            analysis.eliminated = Verdict.NO
            analysis.magic_number = 0
            if not analysis.paths or analysis.paths[0].requirements:
                analysis.paths = [
                    ScenarioPath(
                        type=_path_type(analysis.goal, None),
                        requirements=(),
                        seed=None,
                        description="Already clinched",
                    )
                ]
        elif analysis.eliminated is Verdict.YES:
            analysis.clinched = Verdict.NO
            analysis.magic_number = None
            analysis.paths = []
        if analysis.is_clinched or analysis.is_eliminated:
            analysis.bound_exceeded = False


def analyze_team(
    team_id: str,
    teams: Iterable[Team],
    games: Iterable[Game],
    selections: Optional[Mapping[str, object]] = None,
    goals: Sequence[GoalType] = GOAL_ORDER,
    cache: Optional[ScenarioCache] = None,
    max_evaluations: int = DEFAULT_MAX_EVALUATIONS,
    time_limit: float = DEFAULT_TIME_LIMIT,
) -> TeamScenario:
    """Clinch/elimination verdicts, magic numbers and paths for one team.

    ``time_limit`` is the wall-clock allowance for the whole analysis; it is
    split evenly between the requested goals.
    """

    solver = ScenarioSolver(teams, games, selections, cache, max_evaluations, time_limit)
    return solver.analyze(team_id, goals)


def annotate_standings(
    league: Mapping[str, List[Standing]],
    teams: Iterable[Team],
    games: Iterable[Game],
    selections: Optional[Mapping[str, object]] = None,
    cache: Optional[ScenarioCache] = None,
    max_evaluations: int = DEFAULT_MAX_EVALUATIONS,
    time_limit: float = DEFAULT_TIME_LIMIT,
) -> Dict[str, TeamScenario]:
    """Fill magic numbers and mathematical elimination into existing standings."""

    solver = ScenarioSolver(teams, games, selections, cache, max_evaluations, time_limit)
    scenarios: Dict[str, TeamScenario] = {}
    for standings in league.values():
        for standing in standings:
            scenario = solver.analyze(standing.team.id)
            scenarios[standing.team.id] = scenario
            standing.magic_numbers = scenario.magic_numbers()
            playoff = scenario.goal(GoalType.PLAYOFF)
            if playoff is not None and playoff.eliminated is not Verdict.UNKNOWN:
                standing.is_eliminated = playoff.is_eliminated
    return scenarios
