from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import click
import httpx

from .bracket import Matchup, PlayoffBracket, PlayoffPicks, Round, build_playoff_bracket, seeds_from_standings
from .draft import calculate_draft_order
from .espn_nfl import ScoreboardCache, fetch_playoff_games, fetch_season
from .models import Game, GoalType, Selection, Standing, Team
from .normalize import (
    draft_order_to_frame,
    games_to_frame,
    playoff_games_to_frame,
    read_games_csv,
    read_playoff_games_csv,
    standings_to_frame,
    write_dataframe,
)
from .overlays import BASELINE_SCENARIO_ID, OverlayStore, ScenarioOverlay, load_overlay
from .records import calculate_last_five, calculate_team_records, remaining_games
from .scenarios import ScenarioCache, ScenarioSolver, Verdict, annotate_standings
from .seeding import calculate_league_standings
from .settings import AppSettings, get_settings
from .teams import TEAMS, resolve_team, team_index
from .tiebreakers import TiebreakContext, TiebreakDecision, break_tie


def _env_rows(settings: AppSettings) -> list[tuple[str, str]]:
    return [
        ("NFL_SEASON", str(settings.season or "")),
        ("DATA_ROOT", str(settings.data_root)),
        ("LOG_LEVEL", settings.log_level),
        ("SCENARIO_MAX_EVALUATIONS", str(settings.scenario_max_evaluations)),
        ("SCENARIO_TIME_LIMIT", str(settings.scenario_time_limit)),
        ("ESPN_CACHE_TTL", str(settings.espn_cache_ttl)),
    ]


def _configure_logging(settings: AppSettings) -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(level)


def _load_settings(env_file: Path) -> AppSettings:
    try:
        settings = get_settings(env_file)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    _configure_logging(settings)
    return settings


def _parse_selections(values: Tuple[str, ...]) -> Dict[str, Selection]:
    parsed: Dict[str, Selection] = {}
    for value in values:
        game_id, sep, raw = value.partition("=")
        selection = Selection.parse(raw)
        if not sep or not game_id.strip() or selection is None:
            raise click.BadParameter(f"Expected GAME=home|away|tie, got {value!r}", param_hint="--select")
        parsed[game_id.strip()] = selection
    return parsed


def _resolve_team_arg(token: str) -> Team:
    team = resolve_team(token)
    if team is None:
        raise click.BadParameter(f"Unknown team {token!r}; use an id or abbreviation such as BUF.")
    return team


def _load_games(settings: AppSettings, games_file: Optional[Path]) -> List[Game]:
    path = games_file or settings.games_path
    try:
        return read_games_csv(path)
    except FileNotFoundError as exc:
        raise click.ClickException(f"{exc}. Run `nfl-scenarios fetch` first or pass --games-file.") from exc


def _load_overlay(
    settings: AppSettings,
    scenario_file: Optional[Path],
    scenario_id: Optional[str],
    select: Tuple[str, ...],
) -> ScenarioOverlay:
    try:
        if scenario_file is not None:
            overlay = load_overlay(scenario_file, settings.season)
        elif scenario_id and scenario_id != BASELINE_SCENARIO_ID:
            if settings.season is None:
                raise click.BadParameter("NFL_SEASON must be set to load a stored scenario", param_hint="--scenario-id")
            overlay = OverlayStore(settings.data_root).load_overlay(settings.season, scenario_id)
        else:
            overlay = ScenarioOverlay.empty(settings.season)
    except (FileNotFoundError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    return overlay.merged(_parse_selections(select))


def _magic(value: Optional[int], eliminated: bool) -> str:
    if eliminated:
        return "x"
    if value is None:
        return "-"
    return str(value)


def _print_standings(league: Dict[str, List[Standing]]) -> None:
    for conference, standings in league.items():
        click.echo(f"\n{conference}")
        click.echo(f"{'Seed':>4}  {'Team':<5} {'Record':<8} {'Div':<6} {'Conf':<6} {'Diff':>5}  {'Strk':<4} Magic(P/D/B)")
        for standing in standings:
            record = standing.record
            magic = standing.magic_numbers
            magic_text = (
                "/".join(
                    _magic(value, standing.is_eliminated)
                    for value in (magic.playoff, magic.division, magic.bye)
                )
                if magic
                else ""
            )
            click.echo(
                f"{standing.seed or '':>4}  {standing.team.abbreviation:<5} {record.summary():<8} "
                f"{record.division_wins}-{record.division_losses:<4} "
                f"{record.conference_wins}-{record.conference_losses:<4} "
                f"{record.point_differential:>5}  {standing.streak:<4} {magic_text}"
            )


@click.group()
def cli() -> None:
    """NFL playoff standings, tiebreakers and clinching scenarios."""


@cli.command()
@click.option(
    "--env-file",
    type=click.Path(path_type=Path, dir_okay=False, exists=False, readable=True),
    default=".env",
    show_default=True,
    help="Path to the .env file to load.",
)
def env(env_file: Path) -> None:
    """Show the current environment configuration."""

    settings = _load_settings(env_file)
    rows = _env_rows(settings)
    width = max(len(key) for key, _ in rows)
    for key, value in rows:
        click.echo(f"{key.ljust(width)} : {value}")


@cli.command()
@click.option("--season", type=int, default=None, help="Season to fetch (defaults to NFL_SEASON in .env).")
@click.option("--week", "weeks", type=int, multiple=True, help="Regular-season week to fetch (repeatable; default all).")
@click.option("--playoffs/--no-playoffs", default=True, show_default=True, help="Also fetch postseason games.")
@click.option(
    "--env-file",
    type=click.Path(path_type=Path, dir_okay=False, exists=False, readable=True),
    default=".env",
    show_default=True,
    help="Path to the .env file to load.",
)
def fetch(season: Optional[int], weeks: Tuple[int, ...], playoffs: bool, env_file: Path) -> None:
    """Download scoreboard weeks from ESPN and save CSV snapshots."""

    settings = _load_settings(env_file)
    target_season = season or settings.season
    cache = ScoreboardCache(ttl_seconds=settings.espn_cache_ttl)
    try:
        kwargs = {"weeks": weeks} if weeks else {}
        games = fetch_season(target_season, cache=cache, **kwargs)
        playoff_games = fetch_playoff_games(target_season, cache=cache) if playoffs else []
    except httpx.HTTPError as exc:
        raise click.ClickException(f"ESPN request failed: {exc}") from exc

    games_path = settings.games_dir.parent / str(target_season or "current") / "games.csv"
    write_dataframe(games_to_frame(games), games_path)
    click.echo(f"Saved {len(games)} games → {games_path}")
    if playoffs:
        playoff_path = games_path.parent / "playoff_games.csv"
        write_dataframe(playoff_games_to_frame(playoff_games), playoff_path)
        click.echo(f"Saved {len(playoff_games)} playoff games → {playoff_path}")


@cli.command()
@click.option("--games-file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Games CSV snapshot.")
@click.option("--scenario", "scenario_file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Overlay YAML/JSON file.")
@click.option("--scenario-id", type=str, default=None, help="Stored overlay id under DATA_ROOT/overlays/<season>.")
@click.option("--select", multiple=True, help="Fix a game result: GAME=home|away|tie (repeatable).")
@click.option("--analyze", is_flag=True, help="Run the scenario solver for magic numbers and elimination.")
@click.option("--output", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Optional CSV output path.")
@click.option(
    "--env-file",
    type=click.Path(path_type=Path, dir_okay=False, exists=False, readable=True),
    default=".env",
    show_default=True,
    help="Path to the .env file to load.",
)
def standings(
    games_file: Optional[Path],
    scenario_file: Optional[Path],
    scenario_id: Optional[str],
    select: Tuple[str, ...],
    analyze: bool,
    output: Optional[Path],
    env_file: Path,
) -> None:
    """Print seeded conference standings."""

    settings = _load_settings(env_file)
    games = _load_games(settings, games_file)
    overlay = _load_overlay(settings, scenario_file, scenario_id, select)
    league = calculate_league_standings(TEAMS, games, overlay.selections)
    if analyze:
        annotate_standings(
            league,
            TEAMS,
            games,
            overlay.selections,
            cache=ScenarioCache(),
            max_evaluations=settings.scenario_max_evaluations,
            time_limit=settings.scenario_time_limit,
        )
    _print_standings(league)
    if output is not None:
        write_dataframe(standings_to_frame(league), output)
        click.echo(f"\nSaved standings → {output}")


def _describe_decision(decision: TiebreakDecision, index: Dict[str, Team]) -> str:
    groups = " > ".join(
        "/".join(index[team_id].abbreviation for team_id in group) for group in decision.groups
    )
    return f"step {int(decision.step)} ({decision.step.label}): {groups}"


@cli.command()
@click.argument("teams", nargs=-1, required=True)
@click.option("--division-tie/--no-division-tie", default=None, help="Force the division-tie flag (default: inferred).")
@click.option("--games-file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Games CSV snapshot.")
@click.option("--scenario", "scenario_file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Overlay YAML/JSON file.")
@click.option("--select", multiple=True, help="Fix a game result: GAME=home|away|tie (repeatable).")
@click.option(
    "--env-file",
    type=click.Path(path_type=Path, dir_okay=False, exists=False, readable=True),
    default=".env",
    show_default=True,
    help="Path to the .env file to load.",
)
def tiebreak(
    teams: Tuple[str, ...],
    division_tie: Optional[bool],
    games_file: Optional[Path],
    scenario_file: Optional[Path],
    select: Tuple[str, ...],
    env_file: Path,
) -> None:
    """Break a tie between TEAMS and explain every deciding step."""

    settings = _load_settings(env_file)
    members = [_resolve_team_arg(token) for token in teams]
    if len(members) < 2:
        raise click.BadParameter("Provide at least two teams.")
    games = _load_games(settings, games_file)
    overlay = _load_overlay(settings, scenario_file, None, select)

    records = calculate_team_records(TEAMS, games, overlay.selections)
    context = TiebreakContext(TEAMS, records)
    if division_tie is None:
        division_tie = len({team.division for team in members}) == 1
    trace: List[TiebreakDecision] = []
    ordered = break_tie([team.id for team in members], context, division_tie, trace)

    index = team_index(TEAMS)
    for position, team_id in enumerate(ordered, start=1):
        click.echo(f"{position}. {index[team_id].abbreviation:<4} {records[team_id].summary()}")
    if trace:
        click.echo("")
        for decision in trace:
            click.echo(_describe_decision(decision, index))
    else:
        click.echo("\nNo criterion separated the group; input order kept.")


@cli.command()
@click.argument("team_token")
@click.option("--games-file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Games CSV snapshot.")
@click.option("--scenario", "scenario_file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Overlay YAML/JSON file.")
@click.option("--select", multiple=True, help="Fix a game result: GAME=home|away|tie (repeatable).")
@click.option("--paths", "max_paths", type=int, default=3, show_default=True, help="Clinching paths to show per goal.")
@click.option(
    "--env-file",
    type=click.Path(path_type=Path, dir_okay=False, exists=False, readable=True),
    default=".env",
    show_default=True,
    help="Path to the .env file to load.",
)
def team(
    team_token: str,
    games_file: Optional[Path],
    scenario_file: Optional[Path],
    select: Tuple[str, ...],
    max_paths: int,
    env_file: Path,
) -> None:
    """Clinch/elimination status, magic numbers and paths for one team."""

    settings = _load_settings(env_file)
    target = _resolve_team_arg(team_token)
    games = _load_games(settings, games_file)
    overlay = _load_overlay(settings, scenario_file, None, select)

    solver = ScenarioSolver(
        TEAMS,
        games,
        overlay.selections,
        cache=ScenarioCache(),
        max_evaluations=settings.scenario_max_evaluations,
        time_limit=settings.scenario_time_limit,
    )
    scenario = solver.analyze(target.id)
    record = solver.records[target.id]

    click.echo(f"{target.display_name} ({target.abbreviation}) {record.summary()}  {target.division}")
    click.echo(
        f"Seed now: {scenario.current_seed or '-'}  best: {scenario.best_seed or '-'}  worst: {scenario.worst_seed or '-'}"
    )
    recent = calculate_last_five(target.id, TEAMS, games, overlay.selections)
    if recent:
        click.echo(
            "Last five: "
            + " ".join(f"{game.outcome.value}{'*' if game.projected else ''}" for game in recent)
        )
    open_games = remaining_games(target.id, games, overlay.selections)
    click.echo(f"Remaining: {len(open_games)} game(s)")

    for goal in GoalType:
        analysis = scenario.goal(goal)
        if analysis is None:
            continue
        if analysis.is_clinched:
            status = "clinched"
        elif analysis.is_eliminated:
            status = "eliminated"
        elif Verdict.UNKNOWN in (analysis.clinched, analysis.eliminated):
            status = "undetermined (search bound reached)"
        else:
            status = "alive"
        magic = "-" if analysis.magic_number is None else analysis.magic_number
        click.echo(f"\n{goal.value.title()}: {status}; magic number {magic}")
        for path in analysis.paths[:max_paths]:
            if path.requirements:
                click.echo(f"  - {path.description}")
        if analysis.bound_exceeded:
            click.echo("  (search bound reached; results may be incomplete)")


def _parse_pick(value: str) -> Tuple[Optional[str], Round, int, str]:
    location, sep, team_token = value.partition("=")
    parts = location.split(":")
    if not sep or not team_token:
        raise click.BadParameter(f"Expected CONF:ROUND[:INDEX]=TEAM, got {value!r}", param_hint="--pick")
    if len(parts) == 1 and Round.parse(parts[0]) is Round.SUPER_BOWL:
        conference, round_, index = None, Round.SUPER_BOWL, 0
    elif len(parts) in (2, 3):
        conference = parts[0].upper()
        round_ = Round.parse(parts[1])
        try:
            index = int(parts[2]) if len(parts) == 3 else 0
        except ValueError:
            raise click.BadParameter(f"Pick index must be an integer: {value!r}", param_hint="--pick") from None
        if conference not in ("AFC", "NFC") or round_ is None or round_ is Round.SUPER_BOWL:
            raise click.BadParameter(f"Unrecognised pick location {location!r}", param_hint="--pick")
    else:
        raise click.BadParameter(f"Unrecognised pick location {location!r}", param_hint="--pick")
    return conference, round_, index, _resolve_team_arg(team_token).id


def _matchup_line(matchup: Matchup, index: Dict[str, Team]) -> str:
    def label(side) -> str:
        if side is None:
            return "TBD"
        team = index.get(side.team_id)
        name = team.abbreviation if team else side.team_id
        return f"({side.seed}) {name}" if side.seed else name

    winner = ""
    if matchup.winner is not None:
        winner = f"  → {label(matchup.winner)}"
    return f"{label(matchup.higher)} vs {label(matchup.lower)}{winner}"


def _print_bracket(bracket: PlayoffBracket, index: Dict[str, Team]) -> None:
    for conference in bracket.conferences():
        click.echo(f"\n{conference.conference}")
        for round_ in (Round.WILD_CARD, Round.DIVISIONAL, Round.CHAMPIONSHIP):
            for matchup in conference.round(round_):
                click.echo(f"  {round_.value:<13} {_matchup_line(matchup, index)}")
    click.echo(f"\nSuper Bowl     {_matchup_line(bracket.super_bowl, index)}")
    if bracket.champion is not None:
        click.echo(f"Champion: {index[bracket.champion.team_id].display_name}")


def _build_bracket(
    settings: AppSettings,
    games: List[Game],
    overlay: ScenarioOverlay,
    playoff_file: Optional[Path],
    picks: PlayoffPicks,
) -> Tuple[Dict[str, List[Standing]], PlayoffBracket]:
    league = calculate_league_standings(TEAMS, games, overlay.selections)
    playoff_games = read_playoff_games_csv(playoff_file or settings.playoff_games_path)
    bracket = build_playoff_bracket(
        playoff_games,
        picks,
        seeds_from_standings(league.get("AFC", [])),
        seeds_from_standings(league.get("NFC", [])),
    )
    return league, bracket


@cli.command()
@click.option("--games-file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Games CSV snapshot.")
@click.option("--playoff-file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Playoff games CSV.")
@click.option("--scenario", "scenario_file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Overlay YAML/JSON file.")
@click.option("--select", multiple=True, help="Fix a game result: GAME=home|away|tie (repeatable).")
@click.option("--pick", "pick_values", multiple=True, help="Pick a winner: CONF:ROUND[:INDEX]=TEAM or superBowl=TEAM.")
@click.option(
    "--env-file",
    type=click.Path(path_type=Path, dir_okay=False, exists=False, readable=True),
    default=".env",
    show_default=True,
    help="Path to the .env file to load.",
)
def bracket(
    games_file: Optional[Path],
    playoff_file: Optional[Path],
    scenario_file: Optional[Path],
    select: Tuple[str, ...],
    pick_values: Tuple[str, ...],
    env_file: Path,
) -> None:
    """Show the playoff bracket from seeds, the playoff feed and picks."""

    settings = _load_settings(env_file)
    games = _load_games(settings, games_file)
    overlay = _load_overlay(settings, scenario_file, None, select)
    picks = overlay.playoff_picks
    for value in pick_values:
        conference, round_, index, winner = _parse_pick(value)
        try:
            picks = picks.with_winner(conference, round_, index, winner)
        except (IndexError, ValueError) as exc:
            raise click.BadParameter(f"Invalid pick {value!r}: {exc}", param_hint="--pick") from exc
    _, playoff_bracket = _build_bracket(settings, games, overlay, playoff_file, picks)
    _print_bracket(playoff_bracket, team_index(TEAMS))


@cli.command()
@click.option("--games-file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Games CSV snapshot.")
@click.option("--playoff-file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Playoff games CSV.")
@click.option("--scenario", "scenario_file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Overlay YAML/JSON file.")
@click.option("--select", multiple=True, help="Fix a game result: GAME=home|away|tie (repeatable).")
@click.option("--output", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Optional CSV output path.")
@click.option(
    "--env-file",
    type=click.Path(path_type=Path, dir_okay=False, exists=False, readable=True),
    default=".env",
    show_default=True,
    help="Path to the .env file to load.",
)
def draft(
    games_file: Optional[Path],
    playoff_file: Optional[Path],
    scenario_file: Optional[Path],
    select: Tuple[str, ...],
    output: Optional[Path],
    env_file: Path,
) -> None:
    """Projected draft order."""

    settings = _load_settings(env_file)
    games = _load_games(settings, games_file)
    overlay = _load_overlay(settings, scenario_file, None, select)
    league, playoff_bracket = _build_bracket(settings, games, overlay, playoff_file, overlay.playoff_picks)
    order = calculate_draft_order(league, playoff_bracket, TEAMS, games, overlay.selections)

    index = team_index(TEAMS)
    for pick in order:
        slot = f"{pick.pick}" if pick.is_settled else f"{pick.pick}-{pick.pick_max}"
        click.echo(f"{slot:>6}  {index[pick.team_id].abbreviation:<4} {pick.record:<8} {pick.reason}")
    if output is not None:
        write_dataframe(draft_order_to_frame(order, index), output)
        click.echo(f"\nSaved draft order → {output}")


@cli.group()
def scenario() -> None:
    """Scenario overlay management."""


@scenario.command("list")
@click.option("--season", type=int, default=None, help="Season to list (defaults to all seasons).")
@click.option(
    "--env-file",
    type=click.Path(path_type=Path, dir_okay=False, exists=False, readable=True),
    default=".env",
    show_default=True,
    help="Path to the .env file to load.",
)
def scenario_list(season: Optional[int], env_file: Path) -> None:
    """List stored overlays."""

    settings = _load_settings(env_file)
    store = OverlayStore(settings.data_root)
    items = store.list_scenarios(season or settings.season)
    if not items:
        click.echo("No scenarios found.")
        return
    for meta in items:
        location = f"  {meta.path}" if meta.path else ""
        click.echo(f"{meta.season or '-'}  {meta.scenario_id:<20} {meta.label_or_id()}{location}")


@scenario.command("save")
@click.option("--id", "scenario_id", required=True, help="Unique scenario identifier (file name).")
@click.option("--season", type=int, default=None, help="Season for the scenario (defaults to NFL_SEASON in .env).")
@click.option("--label", type=str, default=None, help="Human-friendly label for the scenario.")
@click.option("--select", multiple=True, help="Fix a game result: GAME=home|away|tie (repeatable).")
@click.option("--wins-out", "wins_out", type=str, default=None, help="Select a win for this team in every game it has left.")
@click.option("--force", is_flag=True, help="With --wins-out, replace selections that have the team losing.")
@click.option("--games-file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Games CSV snapshot.")
@click.option("--overwrite", is_flag=True, help="Overwrite the overlay file if it already exists.")
@click.option(
    "--env-file",
    type=click.Path(path_type=Path, dir_okay=False, exists=False, readable=True),
    default=".env",
    show_default=True,
    help="Path to the .env file to load.",
)
def scenario_save(
    scenario_id: str,
    season: Optional[int],
    label: Optional[str],
    select: Tuple[str, ...],
    wins_out: Optional[str],
    force: bool,
    games_file: Optional[Path],
    overwrite: bool,
    env_file: Path,
) -> None:
    """Store a set of selections as a named overlay."""

    settings = _load_settings(env_file)
    target_season = season or settings.season
    if target_season is None:
        raise click.BadParameter("Season must be provided via --season or NFL_SEASON in .env")
    if scenario_id == BASELINE_SCENARIO_ID:
        raise click.BadParameter("Scenario id 'baseline' is reserved; choose a different id.")

    store = OverlayStore(settings.data_root)
    path = store.base_path / str(target_season) / f"{scenario_id}.yaml"
    if path.exists() and not overwrite:
        raise click.ClickException(f"Scenario already exists at {path}; use --overwrite to replace it.")
    overlay = ScenarioOverlay.from_dict(
        {"scenario_id": scenario_id, "season": target_season, "label": label},
    ).merged(_parse_selections(select))
    if wins_out:
        team = _resolve_team_arg(wins_out)
        overlay, conflicts = overlay.with_team_winning_out(team.id, _load_games(settings, games_file), force=force)
        for conflict in conflicts:
            click.echo(f"Conflict: game {conflict.game_id} already has {team.abbreviation} losing", err=True)
        if conflicts and not force:
            raise click.ClickException(
                f"{len(conflicts)} selections conflict with {team.abbreviation} winning out; use --force to replace them."
            )
    saved = store.save_overlay(overlay, target_season)
    click.echo(f"Saved scenario {scenario_id} ({len(overlay.selections)} selections) → {saved}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
