"""Exceptions raised by the football_league repository."""


class FootballLeagueError(Exception):
    """Base class for domain errors."""


class ValidationError(FootballLeagueError):
    """A value is out of range, unrecognised or missing."""


class NotFoundError(FootballLeagueError):
    """A referenced match, team, player or competition does not exist."""


class ConstraintViolation(FootballLeagueError):
    """A uniqueness, referential or squad-eligibility rule was broken."""


__all__ = [
    "ConstraintViolation",
    "FootballLeagueError",
    "NotFoundError",
    "ValidationError",
]
