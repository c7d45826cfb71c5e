"""football_league package exposing domain models and repository."""

from .errors import ConstraintViolation, FootballLeagueError, NotFoundError, ValidationError
from .models import (
    Competition,
    CompetitionType,
    EventType,
    Match,
    MatchEvent,
    MatchStatus,
    Player,
    Position,
    Registration,
    Team,
    TeamStanding,
    build_standings,
    goal_increments,
)
from .repository import FootballRepository

__all__ = [
    "Competition",
    "CompetitionType",
    "ConstraintViolation",
    "EventType",
    "FootballLeagueError",
    "FootballRepository",
    "Match",
    "MatchEvent",
    "MatchStatus",
    "NotFoundError",
    "Player",
    "Position",
    "Registration",
    "Team",
    "TeamStanding",
    "ValidationError",
    "build_standings",
    "goal_increments",
]
