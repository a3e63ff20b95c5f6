import json
from pathlib import Path

import pytest

from nfl_scenarios.bracket import Round
from nfl_scenarios.models import Selection
from nfl_scenarios.overlays import (
    BASELINE_SCENARIO_ID,
    OverlayStore,
    ScenarioOverlay,
    load_overlay,
)

from conftest import game_by_teams, tid


def test_yaml_overlay_loads_selections_and_picks(tmp_path: Path):
    path = tmp_path / "chaos.yaml"
    path.write_text(
        """
label: Chaos week
selections:
  "401": home
  "402": AWAY
  "403": maybe
playoff_picks:
  afc:
    wildCard: ["5", null, null]
  superBowl: "14"
""",
        encoding="utf-8",
    )

    overlay = load_overlay(path, season=2024)

    assert overlay.scenario_id == "chaos"
    assert overlay.metadata.label == "Chaos week"
    assert overlay.metadata.season == 2024
    assert overlay.selections == {"401": Selection.HOME, "402": Selection.AWAY}
    assert overlay.playoff_picks.afc.wild_card == ("5", None, None)
    assert overlay.playoff_picks.super_bowl == "14"
    assert overlay.override_summary() == {"scenario_id": "chaos", "season": 2024, "selections": 2, "playoff_picks": 2}


def test_json_overlay_and_non_mapping_document(tmp_path: Path):
    good = tmp_path / "tie.json"
    good.write_text(json.dumps({"scenario_id": "tie-game", "season": 2023, "selections": {"9": "tie"}}))
    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n")

    overlay = load_overlay(good)

    assert overlay.scenario_id == "tie-game"
    assert overlay.metadata.season == 2023
    assert overlay.selections == {"9": Selection.TIE}
    with pytest.raises(ValueError):
        load_overlay(bad)
    with pytest.raises(FileNotFoundError):
        load_overlay(tmp_path / "missing.yaml")


def test_merged_selections_override_overlay():
    overlay = ScenarioOverlay.from_dict({"selections": {"1": "home", "2": "home"}}, scenario_id="base")

    merged = overlay.merged({"2": Selection.AWAY})

    assert merged.selections == {"1": Selection.HOME, "2": Selection.AWAY}
    assert overlay.selections["2"] is Selection.HOME


def test_store_saves_lists_and_loads(tmp_path: Path):
    store = OverlayStore(tmp_path)
    picks = ScenarioOverlay.empty(2024).playoff_picks.with_winner("AFC", Round.WILD_CARD, 0, tid("IND"))
    overlay = ScenarioOverlay.from_dict({"scenario_id": "upset", "season": 2024, "label": "Upset"})
    overlay = ScenarioOverlay(overlay.metadata, {"401": Selection.AWAY}, picks)

    path = store.save_overlay(overlay, 2024)

    assert path == tmp_path / "overlays" / "2024" / "upset.yaml"
    items = store.list_scenarios(2024)
    assert [meta.scenario_id for meta in items] == ["upset", BASELINE_SCENARIO_ID]
    loaded = store.load_overlay(2024, "upset")
    assert loaded.selections == {"401": Selection.AWAY}
    assert loaded.playoff_picks == picks
    assert store.load_overlay(2024, None).scenario_id == BASELINE_SCENARIO_ID
    with pytest.raises(FileNotFoundError):
        store.load_overlay(2024, "nope")


def test_unreadable_overlay_is_skipped_in_listing(tmp_path: Path):
    season_dir = tmp_path / "overlays" / "2024"
    season_dir.mkdir(parents=True)
    (season_dir / "broken.json").write_text("{not json")

    items = OverlayStore(tmp_path).list_scenarios(2024, include_baseline=False)

    assert items == []


def test_team_winning_out_reports_conflicts(late_season):
    bills_home = game_by_teams(late_season.games, "BUF", "NE")
    bills_away = game_by_teams(late_season.games, "NYJ", "BUF")
    overlay = ScenarioOverlay.empty(2024).merged({bills_home.id: Selection.AWAY, bills_away.id: Selection.TIE})

    unchanged, conflicts = overlay.with_team_winning_out(tid("BUF"), late_season.games)

    assert unchanged is overlay
    assert [conflict.game_id for conflict in conflicts] == [bills_home.id]
    assert conflicts[0].team_ids == (tid("BUF"), tid("NE"))
    assert overlay.conflicts_for(tid("NE"), late_season.games) == []


def test_team_winning_out_selects_every_open_game(late_season):
    bills_home = game_by_teams(late_season.games, "BUF", "NE")
    bills_away = game_by_teams(late_season.games, "NYJ", "BUF")
    overlay = ScenarioOverlay.empty(2024).merged({bills_away.id: Selection.TIE})

    updated, conflicts = overlay.with_team_winning_out(tid("BUF"), late_season.games)

    assert conflicts == []
    assert updated.selections == {bills_home.id: Selection.HOME, bills_away.id: Selection.AWAY}
    assert overlay.selections == {bills_away.id: Selection.TIE}


def test_forced_wins_replace_conflicting_selections(late_season):
    bills_home = game_by_teams(late_season.games, "BUF", "NE")
    overlay = ScenarioOverlay.empty(2024).merged({bills_home.id: Selection.AWAY})

    updated, conflicts = overlay.with_team_winning_out(tid("BUF"), late_season.games, force=True)

    assert len(conflicts) == 1
    assert updated.selections[bills_home.id] is Selection.HOME
