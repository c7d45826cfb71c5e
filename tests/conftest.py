"""Pytest configuration and fixtures for football_league tests."""

from datetime import datetime
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from football_league.api import create_app
from football_league.config import Settings
from football_league.models import CompetitionType, MatchStatus, Position
from football_league.repository import FootballRepository


KICK_OFF = datetime(2024, 5, 4, 15, 0)


def add_squad(repository, team_id, size, *, age=25):
    """Create ``size`` players for ``team_id``."""
    return [
        repository.create_player(
            team_id,
            f"Player {team_id}-{number}",
            position=Position.MIDFIELDER,
            age=age,
        )
        for number in range(1, size + 1)
    ]


def finished_match(repository, competition_id, home, away, home_goals, away_goals, kick_off=KICK_OFF):
    """Play a match through the event log and mark it finished."""
    match = repository.create_match(
        home.id, away.id, date_time=kick_off, competition_id=competition_id
    )
    minute = 1
    for _ in range(home_goals):
        repository.apply_event(match.id, minute, "GOAL", team_id=home.id)
        minute += 1
    for _ in range(away_goals):
        repository.apply_event(match.id, minute, "GOAL", team_id=away.id)
        minute += 1
    return repository.set_match_status(match.id, MatchStatus.FINISHED)


@pytest.fixture
def repository(tmp_path) -> FootballRepository:
    """A repository backed by a fresh database file."""
    repo = FootballRepository(str(tmp_path / "football.db"))
    repo.initialize_schema()
    return repo


@pytest.fixture
def league(repository):
    """
    Two registered teams with small squads and a scheduled match between them.

    Creates:
    - Competition "Test League" (squad size 2-5)
    - Teams "Alpha" (home) and "Bravo" (away), two players each
    - One SCHEDULED match Alpha v Bravo
    """
    competition = repository.create_competition(
        "Test League", type=CompetitionType.LEAGUE, min_squad=2, max_squad=5
    )
    alpha = repository.create_team("Alpha", stadium="Alpha Park")
    bravo = repository.create_team("Bravo")
    alpha_players = add_squad(repository, alpha.id, 2)
    bravo_players = add_squad(repository, bravo.id, 2)
    repository.register_team(competition.id, alpha.id)
    repository.register_team(competition.id, bravo.id)
    match = repository.create_match(
        alpha.id, bravo.id, date_time=KICK_OFF, competition_id=competition.id, venue="Alpha Park"
    )
    return SimpleNamespace(
        competition=competition,
        alpha=alpha,
        bravo=bravo,
        alpha_players=alpha_players,
        bravo_players=bravo_players,
        match=match,
    )


@pytest.fixture
def client(tmp_path):
    """An HTTP client for an app running against a fresh database."""
    settings = Settings(_env_file=None, database_path=str(tmp_path / "api.db"))
    with TestClient(create_app(settings)) as test_client:
        yield test_client
