"""Domain models for the football_league project.

These dataclasses mirror the tables managed by the repository. They stay
storage-agnostic so the API layer can serialise them to JSON directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class Position(Enum):
    """Playing positions accepted for a player."""

    GOALKEEPER = "GK"
    DEFENDER = "DF"
    MIDFIELDER = "MF"
    FORWARD = "FW"


class CompetitionType(Enum):
    LEAGUE = "LEAGUE"
    TOURNAMENT = "TOURNAMENT"


class MatchStatus(Enum):
    """Match lifecycle. Members are declared in their only legal order."""

    SCHEDULED = "SCHEDULED"
    IN_PLAY = "IN_PLAY"
    FINISHED = "FINISHED"

    @property
    def rank(self) -> int:
        return list(MatchStatus).index(self)

    def can_advance_to(self, target: "MatchStatus") -> bool:
        return target.rank > self.rank


class EventType(Enum):
    """Kinds of match events a referee can record."""

    GOAL = "GOAL"
    OWN_GOAL = "OWN_GOAL"
    ASSIST = "ASSIST"
    YELLOW = "YELLOW"
    RED = "RED"
    SUB = "SUB"

    @property
    def is_goal(self) -> bool:
        return self in (EventType.GOAL, EventType.OWN_GOAL)


MIN_EVENT_MINUTE = 0
MAX_EVENT_MINUTE = 130

# Player counter bumped by each event type when a player is attached.
# An own goal is never credited to the player.
PLAYER_COUNTER_BY_EVENT: Dict[EventType, str] = {
    EventType.GOAL: "goals",
    EventType.YELLOW: "yellow_cards",
    EventType.RED: "red_cards",
}


@dataclass(frozen=True)
class Team:
    id: int
    name: str
    coach_name: Optional[str] = None
    founded_year: Optional[int] = None
    stadium: Optional[str] = None


@dataclass(frozen=True)
class Player:
    """A squad member together with the cumulative counters for their career."""

    id: int
    team_id: int
    full_name: str
    position: Position
    age: int
    nationality: Optional[str] = None
    appearances: int = 0
    goals: int = 0
    assists: int = 0
    yellow_cards: int = 0
    red_cards: int = 0
    team_name: Optional[str] = None


@dataclass(frozen=True)
class Competition:
    id: int
    name: str
    type: CompetitionType
    min_squad: int = 11
    max_squad: int = 35
    age_limit: Optional[int] = None


@dataclass(frozen=True)
class Registration:
    """Enrollment of a team in a competition."""

    team_id: int
    competition_id: int
    registered_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class Match:
    """A fixture between two distinct teams, optionally part of a competition."""

    id: int
    home_team_id: int
    away_team_id: int
    date_time: datetime
    competition_id: Optional[int] = None
    venue: Optional[str] = None
    referee: Optional[str] = None
    status: MatchStatus = MatchStatus.SCHEDULED
    home_score: int = 0
    away_score: int = 0
    home_team: Optional[str] = None
    away_team: Optional[str] = None


@dataclass(frozen=True)
class MatchEvent:
    id: int
    match_id: int
    minute: int
    type: EventType
    player_id: Optional[int] = None
    team_id: Optional[int] = None
    notes: Optional[str] = None


def goal_increments(
    event_type: EventType,
    team_id: Optional[int],
    home_team_id: int,
    away_team_id: int,
) -> Tuple[int, int]:
    """Return the ``(home, away)`` score increments for a goal-type event.

    ``team_id`` is the side the event is attributed to. A goal counts for that
    side, an own goal counts for its opponent. A team that plays on neither
    side leaves the score untouched.
    """

    if not event_type.is_goal:
        return 0, 0
    own_goal = event_type is EventType.OWN_GOAL
    if team_id == home_team_id:
        return (0, 1) if own_goal else (1, 0)
    if team_id == away_team_id:
        return (1, 0) if own_goal else (0, 1)
    return 0, 0


@dataclass
class TeamStanding:
    """Aggregate results for a team within a competition."""

    team_id: int
    team: str
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_diff: int = 0
    points: int = 0

    def record_result(self, scored: int, conceded: int) -> None:
        """Update the row with one finished match seen from this team's side."""

        self.played += 1
        self.goals_for += scored
        self.goals_against += conceded
        self.goal_diff = self.goals_for - self.goals_against

        if scored > conceded:
            self.won += 1
            self.points += 3
        elif scored < conceded:
            self.lost += 1
        else:
            self.drawn += 1
            self.points += 1

    def sort_key(self) -> Tuple[int, int, int, str, str]:
        return (-self.points, -self.goal_diff, -self.goals_for, self.team.casefold(), self.team)

    def as_row(self) -> Dict[str, object]:
        return {
            "team_id": self.team_id,
            "team": self.team,
            "P": self.played,
            "W": self.won,
            "D": self.drawn,
            "L": self.lost,
            "GF": self.goals_for,
            "GA": self.goals_against,
            "GD": self.goal_diff,
            "PTS": self.points,
        }


def build_standings(teams: Iterable[Team], matches: Iterable[Match]) -> List[TeamStanding]:
    """Rank ``teams`` using the finished ``matches`` they played against each other.

    Matches that involve a team outside ``teams`` are ignored. Rows are ordered
    by points, goal difference and goals scored (all descending), then by team
    name; any remaining tie keeps the order of ``teams``.
    """

    table: Dict[int, TeamStanding] = {
        team.id: TeamStanding(team_id=team.id, team=team.name) for team in teams
    }

    for match in matches:
        if match.status is not MatchStatus.FINISHED:
            continue
        home = table.get(match.home_team_id)
        away = table.get(match.away_team_id)
        if home is None or away is None:
            continue
        home.record_result(match.home_score, match.away_score)
        away.record_result(match.away_score, match.home_score)

    return sorted(table.values(), key=TeamStanding.sort_key)


__all__ = [
    "Competition",
    "CompetitionType",
    "EventType",
    "MAX_EVENT_MINUTE",
    "MIN_EVENT_MINUTE",
    "Match",
    "MatchEvent",
    "MatchStatus",
    "PLAYER_COUNTER_BY_EVENT",
    "Player",
    "Position",
    "Registration",
    "Team",
    "TeamStanding",
    "build_standings",
    "goal_increments",
]
