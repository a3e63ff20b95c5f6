from nfl_scenarios.bracket import PlayoffPicks, Round, build_playoff_bracket, seeds_from_standings
from nfl_scenarios.draft import calculate_draft_order
from nfl_scenarios.records import calculate_team_records
from nfl_scenarios.seeding import calculate_league_standings
from nfl_scenarios.teams import TEAMS


def favourites_bracket(league):
    """Every game won by the higher seed."""

    afc = seeds_from_standings(league["AFC"])
    nfc = seeds_from_standings(league["NFC"])
    picks = PlayoffPicks()
    for stage in (Round.WILD_CARD, Round.DIVISIONAL, Round.CHAMPIONSHIP):
        bracket = build_playoff_bracket([], picks, afc, nfc)
        for conference in bracket.conferences():
            for index, matchup in enumerate(conference.round(stage)):
                picks = picks.with_winner(conference.conference, stage, index, matchup.higher.team_id)
    bracket = build_playoff_bracket([], picks, afc, nfc)
    picks = picks.with_winner(None, Round.SUPER_BOWL, 0, bracket.super_bowl.higher.team_id)
    return build_playoff_bracket([], picks, afc, nfc)


def test_completed_bracket_settles_every_pick(seeded_afc):
    league = calculate_league_standings(TEAMS, seeded_afc.games)
    bracket = favourites_bracket(league)

    order = calculate_draft_order(league, bracket, TEAMS, seeded_afc.games)

    assert [pick.pick for pick in order] == list(range(1, 33))
    assert all(pick.is_settled for pick in order)
    assert len({pick.team_id for pick in order}) == 32

    records = calculate_team_records(TEAMS, seeded_afc.games)
    missed = [pick for pick in order if pick.reason == "Missed playoffs"]
    assert len(missed) == 18
    pcts = [records[pick.team_id].win_pct for pick in missed]
    assert pcts == sorted(pcts)

    reasons = [pick.reason for pick in order[18:]]
    assert reasons.count("Lost in wild card round") == 6
    assert reasons.count("Lost in divisional round") == 4
    assert reasons.count("Lost in conference championship") == 2
    assert order[-2].reason == "Lost Super Bowl"
    assert order[-1].reason == "Won Super Bowl"
    assert order[-1].team_id == bracket.champion.team_id


def test_open_bracket_gives_pick_ranges(seeded_afc):
    league = calculate_league_standings(TEAMS, seeded_afc.games)
    afc = seeds_from_standings(league["AFC"])
    nfc = seeds_from_standings(league["NFC"])
    bracket = build_playoff_bracket([], None, afc, nfc)

    order = calculate_draft_order(league, bracket, TEAMS, seeded_afc.games)
    by_team = {pick.team_id: pick for pick in order}

    assert len(order) == 32
    for seeded in afc + nfc:
        pick = by_team[seeded.team_id]
        assert not pick.is_settled
        assert pick.pick_max == 32
        assert pick.pick == (25 if seeded.seed == 1 else 19)
    assert by_team[afc[1].team_id].reason == "Alive in wildCard round"


def test_no_bracket_lists_playoff_teams_after_the_rest(seeded_afc):
    league = calculate_league_standings(TEAMS, seeded_afc.games)

    order = calculate_draft_order(league, None, TEAMS, seeded_afc.games)

    assert [pick.reason for pick in order[18:]] == ["Playoff team"] * 14
    assert all(pick.pick_max == 32 for pick in order[18:])
