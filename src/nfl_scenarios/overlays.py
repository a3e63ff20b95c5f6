"""Scenario overlay storage and loading utilities."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from .bracket import PlayoffPicks
from .models import Game, Selection
from .records import normalize_selections

LOGGER = logging.getLogger(__name__)

BASELINE_SCENARIO_ID = "baseline"
OVERLAY_SUFFIXES = (".yaml", ".yml", ".json")


def _coerce_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_str(raw: Mapping[str, Any], key: str) -> Optional[str]:
    value = raw.get(key)
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class ScenarioMetadata:
    scenario_id: str
    season: Optional[int]
    label: Optional[str] = None
    description: Optional[str] = None
    path: Optional[Path] = None
    updated_at: Optional[str] = None
    is_default: bool = False

    def label_or_id(self) -> str:
        return self.label or self.scenario_id


@dataclass(frozen=True)
class SelectionConflict:
    """An existing selection that has the team losing a game it should win."""

    game_id: str
    game: Game
    team_ids: Tuple[str, str]


@dataclass
class ScenarioOverlay:
    """User-fixed game results and playoff picks layered over the live data."""

    metadata: ScenarioMetadata
    selections: Dict[str, Selection] = field(default_factory=dict)
    playoff_picks: PlayoffPicks = field(default_factory=PlayoffPicks)

    @property
    def scenario_id(self) -> str:
        return self.metadata.scenario_id

    @classmethod
    def from_dict(
        cls,
        raw: Mapping[str, Any],
        scenario_id: Optional[str] = None,
        season: Optional[int] = None,
        path: Optional[Path] = None,
    ) -> "ScenarioOverlay":
        metadata = ScenarioMetadata(
            scenario_id=str(raw.get("scenario_id") or scenario_id or BASELINE_SCENARIO_ID),
            season=_coerce_int(raw.get("season")) or season,
            label=_optional_str(raw, "label"),
            description=_optional_str(raw, "description"),
            path=path,
            updated_at=_optional_str(raw, "updated_at"),
            is_default=bool(raw.get("is_default", False)),
        )
        raw_selections = raw.get("selections") or {}
        if not isinstance(raw_selections, dict):
            LOGGER.warning("Ignoring non-mapping selections in overlay %s", metadata.scenario_id)
            raw_selections = {}
        raw_picks = raw.get("playoff_picks") or raw.get("playoffPicks") or {}
        return cls(
            metadata=metadata,
            selections=normalize_selections(raw_selections),
            playoff_picks=PlayoffPicks.from_dict(raw_picks if isinstance(raw_picks, dict) else {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario_id": self.metadata.scenario_id,
            "season": self.metadata.season,
            "label": self.metadata.label,
            "description": self.metadata.description,
            "selections": {game_id: sel.value for game_id, sel in sorted(self.selections.items())},
            "playoff_picks": self.playoff_picks.to_dict(),
        }

    def merged(self, selections: Mapping[str, Selection]) -> "ScenarioOverlay":
        combined = dict(self.selections)
        combined.update(selections)
        return ScenarioOverlay(metadata=self.metadata, selections=combined, playoff_picks=self.playoff_picks)

    def conflicts_for(self, team_id: str, games: Iterable[Game]) -> List[SelectionConflict]:
        conflicts: List[SelectionConflict] = []
        for game in games:
            if game.is_final or not game.involves(team_id):
                continue
            existing = self.selections.get(game.id)
            if existing is None or existing in (game.selection_for_winner(team_id), Selection.TIE):
                continue
            conflicts.append(SelectionConflict(game.id, game, (team_id, game.opponent_of(team_id))))
        return conflicts

    def with_team_winning_out(
        self,
        team_id: str,
        games: Iterable[Game],
        force: bool = False,
    ) -> Tuple["ScenarioOverlay", List[SelectionConflict]]:
        """Select a win for the team in every game it has left.

        Existing selections that have the team losing are reported as
        conflicts; unless ``force`` is set the overlay is then returned
        unchanged. Ties already selected are overwritten without complaint.
        """

        games = list(games)
        conflicts = self.conflicts_for(team_id, games)
        if conflicts and not force:
            LOGGER.info("Not applying wins for %s: %d conflicting selections", team_id, len(conflicts))
            return self, conflicts
        wins = {
            game.id: game.selection_for_winner(team_id)
            for game in games
            if not game.is_final and game.involves(team_id)
        }
        return self.merged(wins), conflicts

    def override_summary(self) -> Dict[str, Any]:
        return {
            "scenario_id": self.metadata.scenario_id,
            "season": self.metadata.season,
            "selections": len(self.selections),
            "playoff_picks": sum(
                1
                for picks in (self.playoff_picks.afc, self.playoff_picks.nfc)
                for value in (*picks.wild_card, *picks.divisional, picks.championship)
                if value
            )
            + (1 if self.playoff_picks.super_bowl else 0),
        }

    @classmethod
    def empty(cls, season: Optional[int], scenario_id: str = BASELINE_SCENARIO_ID) -> "ScenarioOverlay":
        meta = ScenarioMetadata(
            scenario_id=scenario_id,
            season=season,
            label="Baseline",
            description="Live ESPN results (no overlays)",
            is_default=True,
        )
        return cls(metadata=meta)


def _read_document(path: Path) -> Dict[str, Any]:
    text = path.read_text()
    if path.suffix.lower() == ".json":
        raw = json.loads(text)
    else:
        raw = yaml.safe_load(text)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Overlay {path} must be a mapping, got {type(raw).__name__}")
    return raw


def load_overlay(path: Path, season: Optional[int] = None) -> ScenarioOverlay:
    """Read a YAML or JSON overlay document."""

    if not path.exists():
        raise FileNotFoundError(f"Overlay file not found: {path}")
    raw = _read_document(path)
    return ScenarioOverlay.from_dict(raw, scenario_id=path.stem, season=season, path=path)


def save_overlay(overlay: ScenarioOverlay, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = overlay.to_dict()
    if path.suffix.lower() == ".json":
        path.write_text(json.dumps(payload, indent=2))
    else:
        path.write_text(yaml.safe_dump(payload, sort_keys=False))
    return path


class OverlayStore:
    """File-backed overlay storage for scenarios."""

    def __init__(self, data_root: Path) -> None:
        self.data_root = data_root
        self.base_path = self.data_root / "overlays"

    def _season_dir(self, season: int) -> Path:
        return self.base_path / str(season)

    def _files(self, season: int) -> Iterable[Path]:
        season_dir = self._season_dir(season)
        if not season_dir.exists():
            return []
        return sorted(path for path in season_dir.iterdir() if path.suffix.lower() in OVERLAY_SUFFIXES)

    def list_scenarios(self, season: Optional[int] = None, *, include_baseline: bool = True) -> List[ScenarioMetadata]:
        seasons: Iterable[int]
        if season is not None:
            seasons = [season]
        elif self.base_path.exists():
            seasons = sorted(
                (int(entry.name) for entry in self.base_path.iterdir() if entry.is_dir() and entry.name.isdigit()),
                reverse=True,
            )
        else:
            seasons = []

        items: List[ScenarioMetadata] = []
        for season_value in seasons:
            for file in self._files(season_value):
                try:
                    raw = _read_document(file)
                except (json.JSONDecodeError, yaml.YAMLError, ValueError) as exc:
                    LOGGER.warning("Skipping unreadable overlay %s: %s", file, exc)
                    continue
                items.append(ScenarioOverlay.from_dict(raw, file.stem, season_value, file).metadata)
            if include_baseline:
                items.append(ScenarioOverlay.empty(season_value).metadata)

        # Newest season first, baseline last for each season
        items.sort(
            key=lambda meta: (
                -(meta.season or 0),
                meta.scenario_id == BASELINE_SCENARIO_ID,
                meta.label_or_id().lower(),
            )
        )
        return items

    def load_overlay(self, season: int, scenario_id: Optional[str]) -> ScenarioOverlay:
        if not scenario_id or scenario_id == BASELINE_SCENARIO_ID:
            return ScenarioOverlay.empty(season, scenario_id or BASELINE_SCENARIO_ID)

        for suffix in OVERLAY_SUFFIXES:
            path = self._season_dir(season) / f"{scenario_id}{suffix}"
            if path.exists():
                return load_overlay(path, season)
        raise FileNotFoundError(f"No overlay named {scenario_id!r} for season {season}")

    def save_overlay(self, overlay: ScenarioOverlay, season: int) -> Path:
        path = self._season_dir(season) / f"{overlay.scenario_id}.yaml"
        return save_overlay(overlay, path)
