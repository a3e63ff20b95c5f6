from nfl_scenarios.records import calculate_team_records
from nfl_scenarios.teams import TEAMS
from nfl_scenarios.tiebreakers import TiebreakContext, TiebreakStep, break_tie

from conftest import abbrevs, tid


def context_for(games):
    return TiebreakContext(TEAMS, calculate_team_records(TEAMS, games))


def test_head_to_head_decides_two_team_tie(schedule):
    schedule.win("BUF", "MIA", week=1)
    schedule.win("MIA", "NE", week=2)
    schedule.win("NYJ", "BUF", week=3)
    trace = []

    ordered = break_tie([tid("MIA"), tid("BUF")], context_for(schedule.games), True, trace)

    assert abbrevs(ordered) == ["BUF", "MIA"]
    assert trace[0].step is TiebreakStep.HEAD_TO_HEAD


def test_division_record_only_applies_to_division_ties(schedule):
    # BUF is 1-0 in its division, BAL 0-1; BAL's win came against a better team.
    schedule.win("BUF", "MIA", week=1)
    schedule.win("KC", "BUF", week=2)
    schedule.win("CIN", "BAL", week=1)
    schedule.win("BAL", "KC", week=2)
    ctx = context_for(schedule.games)

    trace = []
    assert abbrevs(break_tie([tid("BUF"), tid("BAL")], ctx, False, trace)) == ["BAL", "BUF"]
    assert [decision.step for decision in trace] == [TiebreakStep.STRENGTH_OF_VICTORY]

    trace = []
    assert abbrevs(break_tie([tid("BAL"), tid("BUF")], ctx, True, trace)) == ["BUF", "BAL"]
    assert trace[0].step is TiebreakStep.DIVISION_RECORD


def _split_series_with_common_opponents(schedule, common, buf_nfc_losses, mia_nfc_wins):
    schedule.win("BUF", "MIA", week=1)
    schedule.win("MIA", "BUF", week=2)
    for week, opponent in enumerate(common, start=3):
        schedule.win("BUF", opponent, week=week)
        schedule.win(opponent, "MIA", week=week)
    for week, opponent in enumerate(buf_nfc_losses, start=10):
        schedule.win(opponent, "BUF", week=week)
    for week, opponent in enumerate(mia_nfc_wins, start=10):
        schedule.win("MIA", opponent, week=week)


def test_common_games_break_split_head_to_head(schedule):
    _split_series_with_common_opponents(
        schedule,
        common=["KC", "BAL", "HOU", "DEN"],
        buf_nfc_losses=["CHI", "DET", "GB", "MIN"],
        mia_nfc_wins=["DAL", "NYG", "PHI", "WSH"],
    )
    ctx = context_for(schedule.games)
    assert ctx.record(tid("BUF")).summary() == ctx.record(tid("MIA")).summary() == "5-5"

    trace = []
    ordered = break_tie([tid("MIA"), tid("BUF")], ctx, True, trace)

    assert abbrevs(ordered) == ["BUF", "MIA"]
    assert trace[0].step is TiebreakStep.COMMON_GAMES


def test_common_games_need_four_opponents(schedule):
    _split_series_with_common_opponents(
        schedule,
        common=["KC", "BAL", "HOU"],
        buf_nfc_losses=["CHI", "DET", "GB"],
        mia_nfc_wins=["DAL", "NYG", "PHI"],
    )
    trace = []

    ordered = break_tie([tid("MIA"), tid("BUF")], context_for(schedule.games), True, trace)

    assert abbrevs(ordered) == ["BUF", "MIA"]
    assert [decision.step for decision in trace] == [TiebreakStep.CONFERENCE_RECORD]


def test_subgroup_restarts_from_head_to_head(schedule):
    # HOU wins on conference record; BUF and BAL are then split by their meeting.
    schedule.win("BAL", "BUF", week=1)
    schedule.win("BUF", "DEN", week=2)
    schedule.win("KC", "BAL", week=2)
    schedule.win("HOU", "JAX", week=1)
    schedule.win("PHI", "HOU", week=2)
    trace = []

    ordered = break_tie([tid("BUF"), tid("BAL"), tid("HOU")], context_for(schedule.games), False, trace)

    assert abbrevs(ordered) == ["HOU", "BAL", "BUF"]
    assert [decision.step for decision in trace] == [TiebreakStep.CONFERENCE_RECORD, TiebreakStep.HEAD_TO_HEAD]


def test_exhausted_tiebreak_keeps_input_order():
    ctx = context_for([])
    assert break_tie([tid("NE"), tid("BUF")], ctx, True) == [tid("NE"), tid("BUF")]
    assert break_tie([tid("BUF"), tid("NE")], ctx, True) == [tid("BUF"), tid("NE")]


def test_unknown_ids_are_kept_last_and_duplicates_dropped(schedule):
    schedule.win("BUF", "MIA")
    ctx = context_for(schedule.games)

    ordered = break_tie([tid("MIA"), "999", tid("BUF"), tid("MIA")], ctx, True)

    assert ordered == [tid("BUF"), tid("MIA"), "999"]


def test_tiebreak_is_deterministic(schedule):
    _split_series_with_common_opponents(
        schedule,
        common=["KC", "BAL", "HOU", "DEN"],
        buf_nfc_losses=["CHI", "DET", "GB", "MIN"],
        mia_nfc_wins=["DAL", "NYG", "PHI", "WSH"],
    )
    group = [tid("MIA"), tid("BUF"), tid("NE")]
    first = break_tie(group, context_for(schedule.games), True)
    second = break_tie(group, context_for(list(schedule.games)), True)
    assert first == second
