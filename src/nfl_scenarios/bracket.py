"""Playoff bracket: computed seeds reconciled with an external, possibly stale feed.

Each conference moves wild card -> divisional -> championship and the two
champions meet in the Super Bowl. Once a round is fully decided the next
round's matchups are always recomputed from its winners; the external feed's
teams are only used while the previous round is still open.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import GameStatus, Standing

LOGGER = logging.getLogger(__name__)

WILD_CARD_PAIRINGS = ((2, 7), (3, 6), (4, 5))
PLACEHOLDER_SEED = 0


class Round(str, Enum):
    WILD_CARD = "wildCard"
    DIVISIONAL = "divisional"
    CHAMPIONSHIP = "championship"
    SUPER_BOWL = "superBowl"

    @classmethod
    def parse(cls, value: object) -> Optional["Round"]:
        if isinstance(value, Round):
            return value
        if not isinstance(value, str):
            return None
        token = value.strip().replace("_", "").replace("-", "").lower()
        for member in cls:
            if member.value.lower() == token:
                return member
        return None


@dataclass(frozen=True)
class SeededTeam:
    team_id: str
    seed: int


@dataclass(frozen=True)
class PlayoffGame:
    """A postseason game as reported by the external feed."""

    id: str
    round: Round
    conference: Optional[str]
    home_team_id: str
    away_team_id: str
    status: GameStatus = GameStatus.SCHEDULED
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    winner_id: Optional[str] = None


@dataclass(frozen=True)
class Matchup:
    higher: Optional[SeededTeam] = None
    lower: Optional[SeededTeam] = None
    winner: Optional[SeededTeam] = None

    @property
    def sides(self) -> List[SeededTeam]:
        return [team for team in (self.higher, self.lower) if team is not None]

    @property
    def decided(self) -> bool:
        return self.winner is not None

    @property
    def loser(self) -> Optional[SeededTeam]:
        if self.winner is None:
            return None
        for side in self.sides:
            if side.team_id != self.winner.team_id:
                return side
        return None


def _pad(values: Sequence[Optional[str]], size: int) -> Tuple[Optional[str], ...]:
    padded = [str(value) if value else None for value in list(values)[:size]]
    padded.extend([None] * (size - len(padded)))
    return tuple(padded)


@dataclass(frozen=True)
class ConferencePicks:
    wild_card: Tuple[Optional[str], ...] = (None, None, None)
    divisional: Tuple[Optional[str], ...] = (None, None)
    championship: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "ConferencePicks":
        payload = payload or {}
        return cls(
            wild_card=_pad(payload.get("wildCard") or payload.get("wild_card") or [], 3),
            divisional=_pad(payload.get("divisional") or [], 2),
            championship=str(payload["championship"]) if payload.get("championship") else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wildCard": list(self.wild_card),
            "divisional": list(self.divisional),
            "championship": self.championship,
        }


@dataclass(frozen=True)
class PlayoffPicks:
    """User-selected winners; immutable so every change yields a new value."""

    afc: ConferencePicks = field(default_factory=ConferencePicks)
    nfc: ConferencePicks = field(default_factory=ConferencePicks)
    super_bowl: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Optional[Mapping[str, Any]]) -> "PlayoffPicks":
        payload = payload or {}
        super_bowl = payload.get("superBowl") or payload.get("super_bowl")
        return cls(
            afc=ConferencePicks.from_dict(payload.get("afc") or payload.get("AFC")),
            nfc=ConferencePicks.from_dict(payload.get("nfc") or payload.get("NFC")),
            super_bowl=str(super_bowl) if super_bowl else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"afc": self.afc.to_dict(), "nfc": self.nfc.to_dict(), "superBowl": self.super_bowl}

    def for_conference(self, conference: str) -> ConferencePicks:
        return self.afc if conference.upper() == "AFC" else self.nfc

    def with_winner(
        self,
        conference: Optional[str],
        round: Round,
        index: int,
        winner_id: Optional[str],
    ) -> "PlayoffPicks":
        """Set one pick; changing it clears every pick downstream of it."""

        if round is Round.SUPER_BOWL:
            return replace(self, super_bowl=winner_id)
        if conference is None:
            raise ValueError("conference is required below the Super Bowl")

        picks = self.for_conference(conference)
        if round is Round.WILD_CARD:
            if picks.wild_card[index] == winner_id:
                return self
            wild_card = list(picks.wild_card)
            wild_card[index] = winner_id
            updated = ConferencePicks(wild_card=tuple(wild_card))
        elif round is Round.DIVISIONAL:
            if picks.divisional[index] == winner_id:
                return self
            divisional = list(picks.divisional)
            divisional[index] = winner_id
            updated = ConferencePicks(wild_card=picks.wild_card, divisional=tuple(divisional))
        else:
            if picks.championship == winner_id:
                return self
            updated = replace(picks, championship=winner_id)

        if conference.upper() == "AFC":
            return PlayoffPicks(afc=updated, nfc=self.nfc, super_bowl=None)
        return PlayoffPicks(afc=self.afc, nfc=updated, super_bowl=None)


@dataclass
class ConferenceBracket:
    conference: str
    seeds: List[SeededTeam]
    wild_card: List[Matchup]
    divisional: List[Matchup]
    championship: Matchup

    @property
    def champion(self) -> Optional[SeededTeam]:
        return self.championship.winner

    def round(self, round: Round) -> List[Matchup]:
        if round is Round.WILD_CARD:
            return self.wild_card
        if round is Round.DIVISIONAL:
            return self.divisional
        if round is Round.CHAMPIONSHIP:
            return [self.championship]
        return []


@dataclass
class PlayoffBracket:
    afc: ConferenceBracket
    nfc: ConferenceBracket
    super_bowl: Matchup

    @property
    def champion(self) -> Optional[SeededTeam]:
        return self.super_bowl.winner

    def conferences(self) -> List[ConferenceBracket]:
        return [self.afc, self.nfc]


def seeds_from_standings(standings: Iterable[Standing]) -> List[SeededTeam]:
    return [SeededTeam(s.team.id, s.seed) for s in standings if s.seed is not None]


def _seed_lookup(seeds: Sequence[SeededTeam]):
    by_id = {team.team_id: team for team in seeds}

    def lookup(team_id: Optional[str]) -> Optional[SeededTeam]:
        if not team_id:
            return None
        return by_id.get(team_id) or SeededTeam(team_id, PLACEHOLDER_SEED)

    return lookup


def _decide(
    higher: Optional[SeededTeam],
    lower: Optional[SeededTeam],
    pick: Optional[str],
    external: Sequence[PlayoffGame],
) -> Matchup:
    sides = [team for team in (higher, lower) if team is not None]
    if pick:
        for side in sides:
            if side.team_id == pick:
                return Matchup(higher, lower, side)
    # Match on identity only: a stale feed may list different home/away teams.
    for game in external:
        if not game.winner_id:
            continue
        for side in sides:
            if side.team_id == game.winner_id:
                return Matchup(higher, lower, side)
    return Matchup(higher, lower, None)


def _from_external(games: Sequence[PlayoffGame], lookup) -> List[Tuple[Optional[SeededTeam], Optional[SeededTeam]]]:
    return [(lookup(game.home_team_id), lookup(game.away_team_id)) for game in games]


def build_conference_bracket(
    conference: str,
    seeds: Sequence[SeededTeam],
    picks: ConferencePicks,
    games: Sequence[PlayoffGame] = (),
) -> ConferenceBracket:
    seeds = sorted(seeds, key=lambda team: team.seed)
    lookup = _seed_lookup(seeds)
    by_seed = {team.seed: team for team in seeds}
    by_round: Dict[Round, List[PlayoffGame]] = {round: [] for round in Round}
    for game in games:
        by_round[game.round].append(game)

    # Wild card
    if all(seed in by_seed for pair in WILD_CARD_PAIRINGS for seed in pair) or not by_round[Round.WILD_CARD]:
        pairs = [(by_seed.get(high), by_seed.get(low)) for high, low in WILD_CARD_PAIRINGS]
    else:
        LOGGER.debug("%s seeds incomplete; using the feed's wild card teams", conference)
        pairs = _from_external(by_round[Round.WILD_CARD], lookup)
    wild_card = [
        _decide(high, low, picks.wild_card[i] if i < len(picks.wild_card) else None, by_round[Round.WILD_CARD])
        for i, (high, low) in enumerate(pairs)
    ]

    # Divisional: the top seed rejoins against the lowest surviving seed
    top_seed = by_seed.get(1)
    if wild_card and all(m.decided for m in wild_card) and top_seed is not None:
        remaining = sorted([top_seed] + [m.winner for m in wild_card], key=lambda team: team.seed)
        pairs = [(remaining[0], remaining[-1]), (remaining[1], remaining[2])]
    elif by_round[Round.DIVISIONAL]:
        pairs = _from_external(by_round[Round.DIVISIONAL], lookup)
    else:
        pairs = [(top_seed, None), (None, None)]
    divisional = [
        _decide(high, low, picks.divisional[i] if i < len(picks.divisional) else None, by_round[Round.DIVISIONAL])
        for i, (high, low) in enumerate(pairs)
    ]

    # Championship
    if divisional and all(m.decided for m in divisional):
        finalists = sorted((m.winner for m in divisional), key=lambda team: team.seed)
        high, low = finalists[0], finalists[1] if len(finalists) > 1 else None
    elif by_round[Round.CHAMPIONSHIP]:
        high, low = _from_external(by_round[Round.CHAMPIONSHIP][:1], lookup)[0]
    else:
        high, low = None, None
    championship = _decide(high, low, picks.championship, by_round[Round.CHAMPIONSHIP])

    return ConferenceBracket(
        conference=conference,
        seeds=list(seeds),
        wild_card=wild_card,
        divisional=divisional,
        championship=championship,
    )


def build_playoff_bracket(
    playoff_games: Iterable[PlayoffGame],
    picks: Optional[PlayoffPicks] = None,
    afc_seeds: Sequence[SeededTeam] = (),
    nfc_seeds: Sequence[SeededTeam] = (),
) -> PlayoffBracket:
    picks = picks or PlayoffPicks()
    games = list(playoff_games)

    def conference_games(conference: str) -> List[PlayoffGame]:
        return [
            game
            for game in games
            if game.round is not Round.SUPER_BOWL and (game.conference or "").upper() == conference
        ]

    afc = build_conference_bracket("AFC", afc_seeds, picks.afc, conference_games("AFC"))
    nfc = build_conference_bracket("NFC", nfc_seeds, picks.nfc, conference_games("NFC"))

    super_bowl_games = [game for game in games if game.round is Round.SUPER_BOWL]
    if afc.champion is not None and nfc.champion is not None:
        high, low = afc.champion, nfc.champion
    elif super_bowl_games:
        lookup = _seed_lookup(list(afc_seeds) + list(nfc_seeds))
        high, low = lookup(super_bowl_games[0].home_team_id), lookup(super_bowl_games[0].away_team_id)
    else:
        high, low = afc.champion, nfc.champion
    super_bowl = _decide(high, low, picks.super_bowl, super_bowl_games)
    return PlayoffBracket(afc=afc, nfc=nfc, super_bowl=super_bowl)
