"""Tests for competition registrations and squad eligibility."""

import pytest

from football_league.errors import ConstraintViolation, NotFoundError
from football_league.models import CompetitionType, Position

from .conftest import add_squad


@pytest.fixture
def youth_cup(repository):
    return repository.create_competition(
        "Youth Cup", type=CompetitionType.TOURNAMENT, min_squad=3, max_squad=4, age_limit=21
    )


def test_eligible_team_is_registered(repository, youth_cup):
    team = repository.create_team("Academy")
    add_squad(repository, team.id, 3, age=19)

    registration = repository.register_team(youth_cup.id, team.id)

    assert registration.team_id == team.id
    assert [r.team_id for r in repository.list_registrations(youth_cup.id)] == [team.id]
    assert repository.list_registered_teams(youth_cup.id)[0].name == "Academy"


def test_squad_too_small(repository, youth_cup):
    team = repository.create_team("Thin Squad")
    add_squad(repository, team.id, 2, age=19)

    with pytest.raises(ConstraintViolation, match="Minimum squad size 3"):
        repository.register_team(youth_cup.id, team.id)
    assert repository.list_registrations(youth_cup.id) == []


def test_squad_too_large(repository, youth_cup):
    team = repository.create_team("Big Squad")
    add_squad(repository, team.id, 5, age=19)

    with pytest.raises(ConstraintViolation, match="Maximum squad size 4"):
        repository.register_team(youth_cup.id, team.id)


def test_player_over_age_limit(repository, youth_cup):
    team = repository.create_team("Veterans")
    add_squad(repository, team.id, 2, age=19)
    repository.create_player(team.id, "Old Hand", position=Position.GOALKEEPER, age=34)

    with pytest.raises(ConstraintViolation, match="Age limit 21"):
        repository.register_team(youth_cup.id, team.id)


def test_duplicate_registration_is_rejected(repository, youth_cup):
    team = repository.create_team("Academy")
    add_squad(repository, team.id, 3, age=18)
    repository.register_team(youth_cup.id, team.id)

    with pytest.raises(ConstraintViolation, match="already registered"):
        repository.register_team(youth_cup.id, team.id)


def test_unknown_competition_or_team(repository, youth_cup):
    team = repository.create_team("Academy")

    with pytest.raises(NotFoundError):
        repository.register_team(777, team.id)
    with pytest.raises(NotFoundError):
        repository.register_team(youth_cup.id, 777)


def test_deleting_team_removes_players_and_registrations(repository, league):
    assert repository.delete_team(league.bravo.id)

    assert repository.get_player(league.bravo_players[0].id) is None
    assert [team.name for team in repository.list_registered_teams(league.competition.id)] == ["Alpha"]
    assert repository.get_match(league.match.id) is None
    assert not repository.delete_team(league.bravo.id)


def test_deleting_competition_keeps_matches_unaffiliated(repository, league):
    assert repository.delete_competition(league.competition.id)

    assert repository.get_match(league.match.id).competition_id is None
    assert repository.list_registrations(league.competition.id) == []
