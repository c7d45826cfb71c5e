"""FastAPI application exposing the football league JSON API."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator

from .config import Settings, configure_logging, get_settings
from .errors import ConstraintViolation, NotFoundError, ValidationError
from .models import (
    MAX_EVENT_MINUTE,
    MIN_EVENT_MINUTE,
    CompetitionType,
    EventType,
    Match,
    MatchStatus,
    Position,
)
from .repository import FootballRepository


logger = logging.getLogger(__name__)


def get_repository(request: Request) -> FootballRepository:
    """Provide the repository instance for FastAPI dependencies."""

    return request.app.state.repository


# Schemas -------------------------------------------------------------
def _check_founded_year(value: Optional[int]) -> Optional[int]:
    if value is not None and not 1850 <= value <= date.today().year:
        raise ValueError(f"founded_year must be between 1850 and {date.today().year}")
    return value


FoundedYear = Annotated[Optional[int], AfterValidator(_check_founded_year)]


def _reject_nulls(model: BaseModel, *fields: str) -> None:
    """Fields that map to NOT NULL columns may be omitted but not cleared."""
    cleared = sorted(f for f in fields if f in model.model_fields_set and getattr(model, f) is None)
    if cleared:
        raise ValueError(f"{', '.join(cleared)} cannot be null")


class TeamCreate(BaseModel):
    name: str = Field(..., min_length=2)
    coach_name: Optional[str] = None
    founded_year: FoundedYear = None
    stadium: Optional[str] = None


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2)
    coach_name: Optional[str] = None
    founded_year: FoundedYear = None
    stadium: Optional[str] = None

    @model_validator(mode="after")
    def _required_columns(self) -> "TeamUpdate":
        _reject_nulls(self, "name")
        return self


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    coach_name: Optional[str]
    founded_year: Optional[int]
    stadium: Optional[str]


class PlayerCreate(BaseModel):
    team_id: int = Field(..., gt=0)
    full_name: str = Field(..., min_length=2)
    position: Position
    age: int = Field(..., ge=10, le=55)
    nationality: Optional[str] = None


class PlayerUpdate(BaseModel):
    team_id: Optional[int] = Field(None, gt=0)
    full_name: Optional[str] = Field(None, min_length=2)
    position: Optional[Position] = None
    age: Optional[int] = Field(None, ge=10, le=55)
    nationality: Optional[str] = None

    @model_validator(mode="after")
    def _required_columns(self) -> "PlayerUpdate":
        _reject_nulls(self, "team_id", "full_name", "position", "age")
        return self


class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    team_id: int
    team_name: Optional[str]
    full_name: str
    position: Position
    age: int
    nationality: Optional[str]
    appearances: int
    goals: int
    assists: int
    yellow_cards: int
    red_cards: int


class CompetitionCreate(BaseModel):
    name: str = Field(..., min_length=2)
    type: CompetitionType
    min_squad: int = Field(11, ge=0)
    max_squad: int = Field(35, ge=0)
    age_limit: Optional[int] = Field(None, gt=0)

    @model_validator(mode="after")
    def _squad_bounds(self) -> "CompetitionCreate":
        if self.min_squad > self.max_squad:
            raise ValueError("min_squad must not exceed max_squad")
        return self


class CompetitionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: CompetitionType
    min_squad: int
    max_squad: int
    age_limit: Optional[int]


class RegistrationRequest(BaseModel):
    team_id: int = Field(..., gt=0)


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    team_id: int
    competition_id: int
    registered_at: datetime


class MatchCreate(BaseModel):
    competition_id: Optional[int] = Field(None, gt=0)
    home_team_id: int = Field(..., gt=0)
    away_team_id: int = Field(..., gt=0)
    date_time: datetime
    venue: Optional[str] = None
    referee: Optional[str] = None

    @model_validator(mode="after")
    def _distinct_teams(self) -> "MatchCreate":
        if self.home_team_id == self.away_team_id:
            raise ValueError("Home and away teams must differ")
        return self


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    competition_id: Optional[int]
    home_team_id: int
    away_team_id: int
    home_team: Optional[str]
    away_team: Optional[str]
    date_time: datetime
    venue: Optional[str]
    referee: Optional[str]
    status: MatchStatus
    home_score: int
    away_score: int


class StatusUpdate(BaseModel):
    status: MatchStatus


class EventCreate(BaseModel):
    minute: int = Field(..., ge=MIN_EVENT_MINUTE, le=MAX_EVENT_MINUTE)
    type: EventType
    player_id: Optional[int] = Field(None, gt=0)
    team_id: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = None


class EventCreated(BaseModel):
    id: int


class MatchEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    match_id: int
    minute: int
    type: EventType
    player_id: Optional[int]
    team_id: Optional[int]
    notes: Optional[str]


class StandingResponse(BaseModel):
    team_id: int
    team: str
    P: int
    W: int
    D: int
    L: int
    GF: int
    GA: int
    GD: int
    PTS: int


def _matches_to_response(matches: List[Match]) -> List[MatchResponse]:
    return [MatchResponse.model_validate(match) for match in matches]


# Routes --------------------------------------------------------------
router = APIRouter(prefix="/api")


@router.get("/health")
def health() -> dict:
    return {"ok": True}


# Teams ---------------------------------------------------------------
@router.get("/teams", response_model=List[TeamResponse])
def list_teams(
    repository: FootballRepository = Depends(get_repository),
) -> List[TeamResponse]:
    return [TeamResponse.model_validate(team) for team in repository.list_teams()]


@router.post("/teams", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
def create_team(
    payload: TeamCreate,
    repository: FootballRepository = Depends(get_repository),
) -> TeamResponse:
    team = repository.create_team(
        payload.name,
        coach_name=payload.coach_name,
        founded_year=payload.founded_year,
        stadium=payload.stadium,
    )
    return TeamResponse.model_validate(team)


@router.get("/teams/{team_id}", response_model=TeamResponse)
def get_team(
    team_id: int,
    repository: FootballRepository = Depends(get_repository),
) -> TeamResponse:
    team = repository.get_team(team_id)
    if team is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")
    return TeamResponse.model_validate(team)


@router.put("/teams/{team_id}", response_model=TeamResponse)
def update_team(
    team_id: int,
    payload: TeamUpdate,
    repository: FootballRepository = Depends(get_repository),
) -> TeamResponse:
    team = repository.update_team(team_id, payload.model_dump(exclude_unset=True))
    if team is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")
    return TeamResponse.model_validate(team)


@router.delete("/teams/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team(
    team_id: int,
    repository: FootballRepository = Depends(get_repository),
) -> None:
    if not repository.delete_team(team_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")


# Players -------------------------------------------------------------
@router.get("/players", response_model=List[PlayerResponse])
def list_players(
    team_id: Optional[int] = None,
    repository: FootballRepository = Depends(get_repository),
) -> List[PlayerResponse]:
    players = repository.list_players(team_id=team_id)
    return [PlayerResponse.model_validate(player) for player in players]


@router.post("/players", response_model=PlayerResponse, status_code=status.HTTP_201_CREATED)
def create_player(
    payload: PlayerCreate,
    repository: FootballRepository = Depends(get_repository),
) -> PlayerResponse:
    player = repository.create_player(
        payload.team_id,
        payload.full_name,
        position=payload.position,
        age=payload.age,
        nationality=payload.nationality,
    )
    return PlayerResponse.model_validate(player)


@router.put("/players/{player_id}", response_model=PlayerResponse)
def update_player(
    player_id: int,
    payload: PlayerUpdate,
    repository: FootballRepository = Depends(get_repository),
) -> PlayerResponse:
    player = repository.update_player(player_id, payload.model_dump(exclude_unset=True))
    if player is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Player not found")
    return PlayerResponse.model_validate(player)


@router.delete("/players/{player_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_player(
    player_id: int,
    repository: FootballRepository = Depends(get_repository),
) -> None:
    if not repository.delete_player(player_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Player not found")


# Competitions --------------------------------------------------------
@router.get("/competitions", response_model=List[CompetitionResponse])
def list_competitions(
    repository: FootballRepository = Depends(get_repository),
) -> List[CompetitionResponse]:
    return [
        CompetitionResponse.model_validate(competition)
        for competition in repository.list_competitions()
    ]


@router.post("/competitions", response_model=CompetitionResponse, status_code=status.HTTP_201_CREATED)
def create_competition(
    payload: CompetitionCreate,
    repository: FootballRepository = Depends(get_repository),
) -> CompetitionResponse:
    competition = repository.create_competition(
        payload.name,
        type=payload.type,
        min_squad=payload.min_squad,
        max_squad=payload.max_squad,
        age_limit=payload.age_limit,
    )
    return CompetitionResponse.model_validate(competition)


@router.post(
    "/competitions/{competition_id}/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
def register_team(
    competition_id: int,
    payload: RegistrationRequest,
    repository: FootballRepository = Depends(get_repository),
) -> RegistrationResponse:
    registration = repository.register_team(competition_id, payload.team_id)
    return RegistrationResponse.model_validate(registration)


# Matches -------------------------------------------------------------
@router.get("/matches", response_model=List[MatchResponse])
def list_matches(
    competition_id: Optional[int] = None,
    repository: FootballRepository = Depends(get_repository),
) -> List[MatchResponse]:
    return _matches_to_response(repository.list_matches(competition_id=competition_id))


@router.post("/matches", response_model=MatchResponse, status_code=status.HTTP_201_CREATED)
def create_match(
    payload: MatchCreate,
    repository: FootballRepository = Depends(get_repository),
) -> MatchResponse:
    match = repository.create_match(
        payload.home_team_id,
        payload.away_team_id,
        date_time=payload.date_time,
        competition_id=payload.competition_id,
        venue=payload.venue,
        referee=payload.referee,
    )
    return MatchResponse.model_validate(repository.get_match(match.id))


@router.post("/matches/{match_id}/status", response_model=MatchResponse)
def set_match_status(
    match_id: int,
    payload: StatusUpdate,
    repository: FootballRepository = Depends(get_repository),
) -> MatchResponse:
    return MatchResponse.model_validate(repository.set_match_status(match_id, payload.status))


@router.post(
    "/matches/{match_id}/event",
    response_model=EventCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_match_event(
    match_id: int,
    payload: EventCreate,
    repository: FootballRepository = Depends(get_repository),
) -> EventCreated:
    event_id = repository.apply_event(
        match_id,
        payload.minute,
        payload.type,
        player_id=payload.player_id,
        team_id=payload.team_id,
        notes=payload.notes,
    )
    return EventCreated(id=event_id)


@router.get("/matches/{match_id}/events", response_model=List[MatchEventResponse])
def list_match_events(
    match_id: int,
    repository: FootballRepository = Depends(get_repository),
) -> List[MatchEventResponse]:
    return [
        MatchEventResponse.model_validate(event)
        for event in repository.list_match_events(match_id)
    ]


# Fixtures, live matches and standings --------------------------------
@router.get("/fixtures", response_model=List[MatchResponse])
def list_fixtures(
    repository: FootballRepository = Depends(get_repository),
) -> List[MatchResponse]:
    return _matches_to_response(repository.list_fixtures())


@router.get("/live", response_model=List[MatchResponse])
def list_live(
    repository: FootballRepository = Depends(get_repository),
) -> List[MatchResponse]:
    return _matches_to_response(repository.list_live())


@router.get("/standings/{competition_id}", response_model=List[StandingResponse])
def get_standings(
    competition_id: int,
    repository: FootballRepository = Depends(get_repository),
) -> List[StandingResponse]:
    return [
        StandingResponse(**standing.as_row())
        for standing in repository.compute_standings(competition_id)
    ]


# Application ---------------------------------------------------------
def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handler


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API around a repository opened for ``settings.database_path``."""

    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings)
        repository = FootballRepository(settings.database_path)
        repository.initialize_schema()
        if settings.seed_demo_data:
            repository.seed_demo_data()
        app.state.repository = repository
        logger.info("Football league API using database %s", settings.database_path)
        yield
        app.state.repository = None
        logger.info("Football league API shutting down")

    app = FastAPI(title="Football League API", lifespan=lifespan)
    app.add_exception_handler(ValidationError, _error_handler(422))
    app.add_exception_handler(NotFoundError, _error_handler(status.HTTP_404_NOT_FOUND))
    app.add_exception_handler(ConstraintViolation, _error_handler(status.HTTP_409_CONFLICT))
    app.add_exception_handler(sqlite3.IntegrityError, _error_handler(status.HTTP_409_CONFLICT))
    app.include_router(router)
    return app


app = create_app()
