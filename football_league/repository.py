"""SQLite repository for the football_league domain models."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Mapping, Optional, Union

from .errors import ConstraintViolation, NotFoundError, ValidationError
from .models import (
    MAX_EVENT_MINUTE,
    MIN_EVENT_MINUTE,
    PLAYER_COUNTER_BY_EVENT,
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


logger = logging.getLogger(__name__)

TEAM_FIELDS = ("name", "coach_name", "founded_year", "stadium")
PLAYER_PROFILE_FIELDS = ("team_id", "full_name", "position", "age", "nationality")

SCHEMA = """
CREATE TABLE IF NOT EXISTS teams (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    coach_name TEXT,
    founded_year INTEGER,
    stadium TEXT
);

CREATE TABLE IF NOT EXISTS players (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    team_id INTEGER NOT NULL,
    full_name TEXT NOT NULL,
    position TEXT CHECK (position IN ('GK', 'DF', 'MF', 'FW')) NOT NULL,
    age INTEGER CHECK (age >= 10 AND age <= 55) NOT NULL,
    nationality TEXT,
    appearances INTEGER NOT NULL DEFAULT 0,
    goals INTEGER NOT NULL DEFAULT 0,
    assists INTEGER NOT NULL DEFAULT 0,
    yellow_cards INTEGER NOT NULL DEFAULT 0,
    red_cards INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (team_id) REFERENCES teams (id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS competitions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    type TEXT CHECK (type IN ('LEAGUE', 'TOURNAMENT')) NOT NULL,
    min_squad INTEGER NOT NULL DEFAULT 11,
    max_squad INTEGER NOT NULL DEFAULT 35,
    age_limit INTEGER
);

CREATE TABLE IF NOT EXISTS registrations (
    team_id INTEGER NOT NULL,
    competition_id INTEGER NOT NULL,
    registered_at TEXT NOT NULL,
    PRIMARY KEY (team_id, competition_id),
    FOREIGN KEY (team_id) REFERENCES teams (id) ON DELETE CASCADE,
    FOREIGN KEY (competition_id) REFERENCES competitions (id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS matches (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    competition_id INTEGER,
    home_team_id INTEGER NOT NULL,
    away_team_id INTEGER NOT NULL,
    date_time TEXT NOT NULL,
    venue TEXT,
    referee TEXT,
    status TEXT CHECK (status IN ('SCHEDULED', 'IN_PLAY', 'FINISHED')) NOT NULL DEFAULT 'SCHEDULED',
    home_score INTEGER NOT NULL DEFAULT 0,
    away_score INTEGER NOT NULL DEFAULT 0,
    CHECK (home_team_id <> away_team_id),
    UNIQUE (home_team_id, away_team_id, date_time),
    FOREIGN KEY (competition_id) REFERENCES competitions (id) ON DELETE SET NULL,
    FOREIGN KEY (home_team_id) REFERENCES teams (id) ON DELETE CASCADE,
    FOREIGN KEY (away_team_id) REFERENCES teams (id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS match_events (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    match_id INTEGER NOT NULL,
    minute INTEGER CHECK (minute >= 0 AND minute <= 130) NOT NULL,
    type TEXT CHECK (type IN ('GOAL', 'ASSIST', 'YELLOW', 'RED', 'SUB', 'OWN_GOAL')) NOT NULL,
    player_id INTEGER,
    team_id INTEGER,
    notes TEXT,
    FOREIGN KEY (match_id) REFERENCES matches (id) ON DELETE CASCADE,
    FOREIGN KEY (player_id) REFERENCES players (id) ON DELETE SET NULL,
    FOREIGN KEY (team_id) REFERENCES teams (id) ON DELETE SET NULL
);
"""

DEMO_DATA = """
INSERT OR IGNORE INTO teams (name, coach_name, founded_year, stadium) VALUES
    ('Falcon FC', 'A. Kovacs', 1998, 'Falcon Arena'),
    ('River United', 'M. Horvath', 2003, 'River Park');

INSERT OR IGNORE INTO players (id, team_id, full_name, position, age, nationality) VALUES
    (1, 1, 'Janos Toth', 'GK', 28, 'HU'),
    (2, 1, 'Bence Nagy', 'DF', 24, 'HU'),
    (3, 1, 'Milan Popov', 'FW', 26, 'RS'),
    (4, 2, 'Adam Szabo', 'GK', 29, 'HU'),
    (5, 2, 'David Kiss', 'MF', 22, 'HU'),
    (6, 2, 'Luka Petrovic', 'FW', 25, 'RS');

INSERT OR IGNORE INTO competitions (name, type, min_squad, max_squad, age_limit) VALUES
    ('National League', 'LEAGUE', 16, 35, NULL),
    ('U23 Cup', 'TOURNAMENT', 11, 25, 23);

INSERT OR IGNORE INTO registrations (team_id, competition_id, registered_at) VALUES
    (1, 1, datetime('now')),
    (2, 1, datetime('now'));

INSERT INTO matches (competition_id, home_team_id, away_team_id, date_time, venue, referee)
SELECT 1, 1, 2, strftime('%Y-%m-%dT%H:%M:00', 'now', '+1 day'), 'Falcon Arena', 'Ref A'
WHERE NOT EXISTS (SELECT 1 FROM matches WHERE home_team_id = 1 AND away_team_id = 2);
"""

MATCH_SELECT = """
    SELECT m.*, ht.name AS home_team, at.name AS away_team
    FROM matches m
    JOIN teams ht ON ht.id = m.home_team_id
    JOIN teams at ON at.id = m.away_team_id
"""


def _iso_datetime(value: datetime) -> str:
    return value.replace(microsecond=0).isoformat(timespec="seconds")


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _optional(row: sqlite3.Row, key: str) -> Optional[object]:
    return row[key] if key in row.keys() else None


def _team_from_row(row: sqlite3.Row) -> Team:
    return Team(
        id=row["id"],
        name=row["name"],
        coach_name=row["coach_name"],
        founded_year=row["founded_year"],
        stadium=row["stadium"],
    )


def _player_from_row(row: sqlite3.Row) -> Player:
    return Player(
        id=row["id"],
        team_id=row["team_id"],
        full_name=row["full_name"],
        position=Position(row["position"]),
        age=row["age"],
        nationality=row["nationality"],
        appearances=row["appearances"],
        goals=row["goals"],
        assists=row["assists"],
        yellow_cards=row["yellow_cards"],
        red_cards=row["red_cards"],
        team_name=_optional(row, "team_name"),
    )


def _competition_from_row(row: sqlite3.Row) -> Competition:
    return Competition(
        id=row["id"],
        name=row["name"],
        type=CompetitionType(row["type"]),
        min_squad=row["min_squad"],
        max_squad=row["max_squad"],
        age_limit=row["age_limit"],
    )


def _match_from_row(row: sqlite3.Row) -> Match:
    return Match(
        id=row["id"],
        competition_id=row["competition_id"],
        home_team_id=row["home_team_id"],
        away_team_id=row["away_team_id"],
        date_time=_parse_datetime(row["date_time"]),
        venue=row["venue"],
        referee=row["referee"],
        status=MatchStatus(row["status"]),
        home_score=row["home_score"],
        away_score=row["away_score"],
        home_team=_optional(row, "home_team"),
        away_team=_optional(row, "away_team"),
    )


def _event_from_row(row: sqlite3.Row) -> MatchEvent:
    return MatchEvent(
        id=row["id"],
        match_id=row["match_id"],
        minute=row["minute"],
        type=EventType(row["type"]),
        player_id=row["player_id"],
        team_id=row["team_id"],
        notes=row["notes"],
    )


def _coerce_event_type(value: Union[EventType, str]) -> EventType:
    if isinstance(value, EventType):
        return value
    try:
        return EventType(value)
    except ValueError:
        raise ValidationError(f"Bad event type: {value!r}") from None


@contextmanager
def _constraints() -> Iterator[None]:
    """Surface storage integrity failures as ``ConstraintViolation``."""

    try:
        yield
    except sqlite3.IntegrityError as exc:
        raise ConstraintViolation(str(exc)) from exc


class FootballRepository:
    """Persistence layer backed by SQLite.

    An instance is the store handle for one database file. Every operation
    opens its own connection and commits only when it completes, so a failing
    operation leaves the database untouched.
    """

    def __init__(self, path: str) -> None:
        self._path = path

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize_schema(self) -> None:
        """Create tables if they do not already exist."""

        with self._connection() as conn:
            conn.executescript(SCHEMA)

    def seed_demo_data(self) -> None:
        """Insert the demo teams, squads, competitions and fixture.

        Safe to call repeatedly; rows that already exist are left alone.
        """

        with self._connection() as conn:
            conn.executescript(DEMO_DATA)

    # Team operations ---------------------------------------------------
    def create_team(
        self,
        name: str,
        *,
        coach_name: Optional[str] = None,
        founded_year: Optional[int] = None,
        stadium: Optional[str] = None,
    ) -> Team:
        with _constraints(), self._connection() as conn:
            cursor = conn.execute(
                "INSERT INTO teams (name, coach_name, founded_year, stadium) VALUES (?, ?, ?, ?)",
                (name, coach_name, founded_year, stadium),
            )
        return Team(
            id=cursor.lastrowid,
            name=name,
            coach_name=coach_name,
            founded_year=founded_year,
            stadium=stadium,
        )

    def get_team(self, team_id: int) -> Optional[Team]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()
        if row is None:
            return None
        return _team_from_row(row)

    def list_teams(self) -> List[Team]:
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM teams ORDER BY name").fetchall()
        return [_team_from_row(row) for row in rows]

    def update_team(self, team_id: int, changes: Mapping[str, object]) -> Optional[Team]:
        """Apply a partial update; returns ``None`` when the team does not exist."""

        unknown = set(changes) - set(TEAM_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown team fields: {', '.join(sorted(unknown))}")
        if changes:
            assignments = ", ".join(f"{column} = ?" for column in changes)
            with _constraints(), self._connection() as conn:
                conn.execute(
                    f"UPDATE teams SET {assignments} WHERE id = ?",
                    (*changes.values(), team_id),
                )
        return self.get_team(team_id)

    def delete_team(self, team_id: int) -> bool:
        """Delete a team together with its players, registrations and matches."""

        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM teams WHERE id = ?", (team_id,))
        return cursor.rowcount > 0

    # Player operations -------------------------------------------------
    def create_player(
        self,
        team_id: int,
        full_name: str,
        *,
        position: Position,
        age: int,
        nationality: Optional[str] = None,
    ) -> Player:
        with _constraints(), self._connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO players (team_id, full_name, position, age, nationality)
                VALUES (?, ?, ?, ?, ?)
                """,
                (team_id, full_name, position.value, age, nationality),
            )
        return Player(
            id=cursor.lastrowid,
            team_id=team_id,
            full_name=full_name,
            position=position,
            age=age,
            nationality=nationality,
        )

    def get_player(self, player_id: int) -> Optional[Player]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM players WHERE id = ?", (player_id,)).fetchone()
        if row is None:
            return None
        return _player_from_row(row)

    def list_players(self, *, team_id: Optional[int] = None) -> List[Player]:
        query = """
            SELECT p.*, t.name AS team_name
            FROM players p
            JOIN teams t ON t.id = p.team_id
        """
        params: tuple = ()
        if team_id is not None:
            query += " WHERE p.team_id = ?"
            params = (team_id,)
        query += " ORDER BY p.full_name"
        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_player_from_row(row) for row in rows]

    def update_player(self, player_id: int, changes: Mapping[str, object]) -> Optional[Player]:
        """Update profile fields. Statistic counters are owned by ``apply_event``."""

        unknown = set(changes) - set(PLAYER_PROFILE_FIELDS)
        if unknown:
            raise ValidationError(f"Player fields cannot be updated: {', '.join(sorted(unknown))}")
        if changes:
            values = [
                value.value if isinstance(value, Position) else value for value in changes.values()
            ]
            assignments = ", ".join(f"{column} = ?" for column in changes)
            with _constraints(), self._connection() as conn:
                conn.execute(
                    f"UPDATE players SET {assignments} WHERE id = ?",
                    (*values, player_id),
                )
        return self.get_player(player_id)

    def delete_player(self, player_id: int) -> bool:
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM players WHERE id = ?", (player_id,))
        return cursor.rowcount > 0

    # Competition operations --------------------------------------------
    def create_competition(
        self,
        name: str,
        *,
        type: CompetitionType,
        min_squad: int = 11,
        max_squad: int = 35,
        age_limit: Optional[int] = None,
    ) -> Competition:
        if min_squad > max_squad:
            raise ValidationError("min_squad must not exceed max_squad")
        with _constraints(), self._connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO competitions (name, type, min_squad, max_squad, age_limit)
                VALUES (?, ?, ?, ?, ?)
                """,
                (name, type.value, min_squad, max_squad, age_limit),
            )
        return Competition(
            id=cursor.lastrowid,
            name=name,
            type=type,
            min_squad=min_squad,
            max_squad=max_squad,
            age_limit=age_limit,
        )

    def get_competition(self, competition_id: int) -> Optional[Competition]:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM competitions WHERE id = ?", (competition_id,)
            ).fetchone()
        if row is None:
            return None
        return _competition_from_row(row)

    def list_competitions(self) -> List[Competition]:
        with self._connection() as conn:
            rows = conn.execute("SELECT * FROM competitions ORDER BY name").fetchall()
        return [_competition_from_row(row) for row in rows]

    def delete_competition(self, competition_id: int) -> bool:
        """Delete a competition; its matches are kept but become unaffiliated."""

        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM competitions WHERE id = ?", (competition_id,))
        return cursor.rowcount > 0

    def register_team(self, competition_id: int, team_id: int) -> Registration:
        """Enroll ``team_id`` after checking its squad against the competition rules."""

        competition = self.get_competition(competition_id)
        if competition is None:
            raise NotFoundError("Competition not found")
        if self.get_team(team_id) is None:
            raise NotFoundError("Team not found")

        registration = Registration(team_id=team_id, competition_id=competition_id)
        with self._connection() as conn:
            squad = conn.execute(
                "SELECT COUNT(*) AS size, MAX(age) AS max_age FROM players WHERE team_id = ?",
                (team_id,),
            ).fetchone()
            if squad["size"] < competition.min_squad:
                raise ConstraintViolation(f"Minimum squad size {competition.min_squad} not met")
            if squad["size"] > competition.max_squad:
                raise ConstraintViolation(f"Maximum squad size {competition.max_squad} exceeded")
            if (
                competition.age_limit is not None
                and squad["max_age"] is not None
                and squad["max_age"] > competition.age_limit
            ):
                raise ConstraintViolation(
                    f"Age limit {competition.age_limit} exceeded by some players"
                )
            try:
                conn.execute(
                    """
                    INSERT INTO registrations (team_id, competition_id, registered_at)
                    VALUES (?, ?, ?)
                    """,
                    (team_id, competition_id, _iso_datetime(registration.registered_at)),
                )
            except sqlite3.IntegrityError as exc:
                raise ConstraintViolation("Team is already registered for this competition") from exc

        logger.info("Registered team %s for competition %s", team_id, competition_id)
        return registration

    def list_registrations(self, competition_id: int) -> List[Registration]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM registrations WHERE competition_id = ? ORDER BY team_id",
                (competition_id,),
            ).fetchall()
        return [
            Registration(
                team_id=row["team_id"],
                competition_id=row["competition_id"],
                registered_at=_parse_datetime(row["registered_at"]),
            )
            for row in rows
        ]

    def list_registered_teams(self, competition_id: int) -> List[Team]:
        with self._connection() as conn:
            rows = conn.execute(
                """
                SELECT t.*
                FROM teams t
                JOIN registrations r ON r.team_id = t.id
                WHERE r.competition_id = ?
                ORDER BY t.id
                """,
                (competition_id,),
            ).fetchall()
        return [_team_from_row(row) for row in rows]

    # Match operations --------------------------------------------------
    def create_match(
        self,
        home_team_id: int,
        away_team_id: int,
        *,
        date_time: datetime,
        competition_id: Optional[int] = None,
        venue: Optional[str] = None,
        referee: Optional[str] = None,
    ) -> Match:
        if home_team_id == away_team_id:
            raise ValidationError("Home and away teams must differ")
        with _constraints(), self._connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO matches (
                    competition_id,
                    home_team_id,
                    away_team_id,
                    date_time,
                    venue,
                    referee
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    competition_id,
                    home_team_id,
                    away_team_id,
                    _iso_datetime(date_time),
                    venue,
                    referee,
                ),
            )
        return Match(
            id=cursor.lastrowid,
            competition_id=competition_id,
            home_team_id=home_team_id,
            away_team_id=away_team_id,
            date_time=date_time.replace(microsecond=0),
            venue=venue,
            referee=referee,
        )

    def get_match(self, match_id: int) -> Optional[Match]:
        with self._connection() as conn:
            row = conn.execute(MATCH_SELECT + " WHERE m.id = ?", (match_id,)).fetchone()
        if row is None:
            return None
        return _match_from_row(row)

    def list_matches(
        self,
        *,
        competition_id: Optional[int] = None,
        status: Optional[MatchStatus] = None,
    ) -> List[Match]:
        conditions = []
        params: list = []
        if competition_id is not None:
            conditions.append("m.competition_id = ?")
            params.append(competition_id)
        if status is not None:
            conditions.append("m.status = ?")
            params.append(status.value)

        query = MATCH_SELECT
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY datetime(m.date_time), m.id"
        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [_match_from_row(row) for row in rows]

    def list_fixtures(self, *, now: Optional[datetime] = None) -> List[Match]:
        """Matches kicking off at or after ``now`` (UTC), soonest first."""

        reference = _iso_datetime(now or datetime.utcnow())
        with self._connection() as conn:
            rows = conn.execute(
                MATCH_SELECT
                + " WHERE datetime(m.date_time) >= datetime(?) ORDER BY datetime(m.date_time), m.id",
                (reference,),
            ).fetchall()
        return [_match_from_row(row) for row in rows]

    def list_live(self) -> List[Match]:
        return self.list_matches(status=MatchStatus.IN_PLAY)

    def set_match_status(self, match_id: int, status: Union[MatchStatus, str]) -> Match:
        """Move a match forward through SCHEDULED, IN_PLAY and FINISHED."""

        try:
            target = MatchStatus(status)
        except ValueError:
            raise ValidationError(f"Bad status: {status!r}") from None

        with self._connection() as conn:
            row = conn.execute("SELECT status FROM matches WHERE id = ?", (match_id,)).fetchone()
            if row is None:
                raise NotFoundError("Match not found")
            current = MatchStatus(row["status"])
            if not current.can_advance_to(target):
                raise ValidationError(
                    f"Cannot move match from {current.value} to {target.value}"
                )
            conn.execute("UPDATE matches SET status = ? WHERE id = ?", (target.value, match_id))
            updated = conn.execute(MATCH_SELECT + " WHERE m.id = ?", (match_id,)).fetchone()

        logger.info("Match %s moved from %s to %s", match_id, current.value, target.value)
        return _match_from_row(updated)

    # Event operations --------------------------------------------------
    def apply_event(
        self,
        match_id: int,
        minute: int,
        event_type: Union[EventType, str],
        *,
        player_id: Optional[int] = None,
        team_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Record a match event and apply its effect on the score and player counters.

        The event row, the score change and the player counter change are
        written in one transaction. Storage integrity errors (for example an
        unknown player id) propagate as ``sqlite3.IntegrityError`` and nothing
        is written. Submitting the same event twice counts it twice.

        Returns the id of the new event.
        """

        kind = _coerce_event_type(event_type)
        if not isinstance(minute, int) or isinstance(minute, bool):
            raise ValidationError(f"minute must be an integer, got {minute!r}")
        if not MIN_EVENT_MINUTE <= minute <= MAX_EVENT_MINUTE:
            raise ValidationError(
                f"minute must be between {MIN_EVENT_MINUTE} and {MAX_EVENT_MINUTE}"
            )

        with self._connection() as conn:
            match = conn.execute(
                "SELECT home_team_id, away_team_id FROM matches WHERE id = ?", (match_id,)
            ).fetchone()
            if match is None:
                raise NotFoundError("Match not found")

            cursor = conn.execute(
                """
                INSERT INTO match_events (match_id, minute, type, player_id, team_id, notes)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (match_id, minute, kind.value, player_id, team_id, notes),
            )
            event_id = cursor.lastrowid

            if kind.is_goal:
                home_inc, away_inc = goal_increments(
                    kind, team_id, match["home_team_id"], match["away_team_id"]
                )
                conn.execute(
                    """
                    UPDATE matches
                    SET home_score = home_score + ?, away_score = away_score + ?
                    WHERE id = ?
                    """,
                    (home_inc, away_inc, match_id),
                )

            counter = PLAYER_COUNTER_BY_EVENT.get(kind)
            if counter is not None and player_id is not None:
                conn.execute(
                    f"UPDATE players SET {counter} = {counter} + 1 WHERE id = ?",
                    (player_id,),
                )

        logger.info(
            "Applied %s event %s to match %s at minute %s", kind.value, event_id, match_id, minute
        )
        return event_id

    def list_match_events(self, match_id: int) -> List[MatchEvent]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM match_events WHERE match_id = ? ORDER BY minute ASC, id ASC",
                (match_id,),
            ).fetchall()
        return [_event_from_row(row) for row in rows]

    # Reporting helpers -------------------------------------------------
    def compute_standings(self, competition_id: int) -> List[TeamStanding]:
        """Rank the teams registered for a competition by their finished matches.

        Unknown competitions and competitions without registrations yield an
        empty table.
        """

        teams = self.list_registered_teams(competition_id)
        matches = self.list_matches(competition_id=competition_id, status=MatchStatus.FINISHED)
        standings = build_standings(teams, matches)
        logger.debug(
            "Computed standings for competition %s from %d teams and %d finished matches",
            competition_id,
            len(teams),
            len(matches),
        )
        return standings


__all__ = ["FootballRepository"]
