"""Tests for the competition standings table."""

from datetime import datetime

from football_league.models import CompetitionType, MatchStatus

from .conftest import add_squad, finished_match


def _rows(repository, competition_id):
    return [standing.as_row() for standing in repository.compute_standings(competition_id)]


def test_home_win(repository, league):
    finished_match(repository, league.competition.id, league.alpha, league.bravo, 3, 1,
                   kick_off=datetime(2024, 5, 11, 15, 0))

    rows = _rows(repository, league.competition.id)

    assert rows == [
        {"team_id": league.alpha.id, "team": "Alpha", "P": 1, "W": 1, "D": 0, "L": 0,
         "GF": 3, "GA": 1, "GD": 2, "PTS": 3},
        {"team_id": league.bravo.id, "team": "Bravo", "P": 1, "W": 0, "D": 0, "L": 1,
         "GF": 1, "GA": 3, "GD": -2, "PTS": 0},
    ]


def test_away_win_ranks_away_team_first(repository, league):
    finished_match(repository, league.competition.id, league.alpha, league.bravo, 0, 2,
                   kick_off=datetime(2024, 5, 11, 15, 0))

    rows = _rows(repository, league.competition.id)

    assert [row["team"] for row in rows] == ["Bravo", "Alpha"]
    assert rows[0]["W"] == 1 and rows[1]["L"] == 1


def test_draw_is_broken_by_team_name(repository):
    competition = repository.create_competition("Cup", type=CompetitionType.TOURNAMENT, min_squad=1)
    zulu = repository.create_team("Zulu")
    echo = repository.create_team("Echo")
    for team in (zulu, echo):
        add_squad(repository, team.id, 1)
        repository.register_team(competition.id, team.id)

    finished_match(repository, competition.id, zulu, echo, 2, 2)

    rows = _rows(repository, competition.id)
    assert [row["team"] for row in rows] == ["Echo", "Zulu"]
    for row in rows:
        assert (row["P"], row["W"], row["D"], row["L"], row["PTS"]) == (1, 0, 1, 0, 1)
        assert (row["GF"], row["GA"], row["GD"]) == (2, 2, 0)


def test_team_without_matches_gets_zero_row(repository, league):
    idle = repository.create_team("Idle")
    add_squad(repository, idle.id, 2)
    repository.register_team(league.competition.id, idle.id)
    finished_match(repository, league.competition.id, league.alpha, league.bravo, 1, 0,
                   kick_off=datetime(2024, 5, 11, 15, 0))

    rows = {row["team"]: row for row in _rows(repository, league.competition.id)}

    assert rows["Idle"] == {"team_id": idle.id, "team": "Idle", "P": 0, "W": 0, "D": 0,
                            "L": 0, "GF": 0, "GA": 0, "GD": 0, "PTS": 0}


def test_match_against_unregistered_team_is_skipped(repository, league):
    guest = repository.create_team("Guest")
    finished_match(repository, league.competition.id, league.alpha, guest, 4, 0)

    rows = _rows(repository, league.competition.id)

    assert [row["team"] for row in rows] == ["Alpha", "Bravo"]
    assert all(row["P"] == 0 for row in rows)


def test_only_finished_matches_count(repository, league):
    repository.apply_event(league.match.id, 10, "GOAL", team_id=league.alpha.id)
    repository.set_match_status(league.match.id, MatchStatus.IN_PLAY)

    rows = _rows(repository, league.competition.id)

    assert all(row["P"] == 0 for row in rows)


def test_matches_from_other_competitions_are_ignored(repository, league):
    other = repository.create_competition("Friendly Cup", type=CompetitionType.TOURNAMENT, min_squad=0)
    finished_match(repository, other.id, league.alpha, league.bravo, 5, 0,
                   kick_off=datetime(2024, 6, 1, 18, 0))

    rows = _rows(repository, league.competition.id)

    assert all(row["P"] == 0 for row in rows)


def test_empty_and_unknown_competitions_yield_empty_table(repository):
    empty = repository.create_competition("Empty", type=CompetitionType.LEAGUE)

    assert repository.compute_standings(empty.id) == []
    assert repository.compute_standings(4242) == []


def test_standings_are_idempotent(repository, league):
    finished_match(repository, league.competition.id, league.alpha, league.bravo, 2, 1,
                   kick_off=datetime(2024, 5, 11, 15, 0))

    assert _rows(repository, league.competition.id) == _rows(repository, league.competition.id)


def test_ordering_is_consistent_with_ranking_keys(repository):
    competition = repository.create_competition("Round Robin", type=CompetitionType.LEAGUE, min_squad=1)
    teams = []
    for name in ("Delta", "Alpha", "Charlie", "Bravo", "Echo"):
        team = repository.create_team(name)
        add_squad(repository, team.id, 1)
        repository.register_team(competition.id, team.id)
        teams.append(team)

    results = [(0, 1, 2, 0), (2, 3, 1, 1), (4, 0, 0, 3), (1, 2, 0, 0), (3, 4, 2, 2), (0, 2, 1, 1)]
    for day, (home, away, home_goals, away_goals) in enumerate(results, start=1):
        finished_match(repository, competition.id, teams[home], teams[away], home_goals, away_goals,
                       kick_off=datetime(2024, 8, day, 15, 0))

    rows = _rows(repository, competition.id)
    keys = [(row["PTS"], row["GD"], row["GF"]) for row in rows]

    assert len(rows) == 5
    for upper, lower, upper_row, lower_row in zip(keys, keys[1:], rows, rows[1:]):
        assert upper >= lower
        if upper == lower:
            assert upper_row["team"] < lower_row["team"]
    assert sum(row["W"] for row in rows) == sum(row["L"] for row in rows)
    assert sum(row["GF"] for row in rows) == sum(row["GA"] for row in rows)
