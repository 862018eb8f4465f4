from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..database import get_session
from ..dependencies import require_admin
from ..models.team import Player, Team
from ..models.tournament import Tournament, TournamentTeam
from ..models.user import User
from ..models.venue import Venue
from ..services.auth import ROLES, create_user, get_user_by_username

router = APIRouter(prefix="/admin", tags=["admin"])


class TournamentCreate(BaseModel):
    name: str
    season: Optional[str] = None
    points_win: int = 3
    points_draw: int = 1
    points_loss: int = 0


class TeamCreate(BaseModel):
    name: str
    short_name: Optional[str] = None


class TeamRegistration(BaseModel):
    team_id: int


class PlayerCreate(BaseModel):
    team_id: int
    name: str
    jersey_number: Optional[int] = None
    position: Optional[str] = None


class VenueCreate(BaseModel):
    name: str
    city: Optional[str] = None
    capacity: Optional[int] = None


class UserCreate(BaseModel):
    username: str
    password: str
    role: str = "viewer"
    display_name: Optional[str] = None
    team_id: Optional[int] = None


@router.post("/tournaments", response_model=Tournament, status_code=status.HTTP_201_CREATED)
async def create_tournament(
    payload: TournamentCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    tournament = Tournament(**payload.model_dump())
    db.add(tournament)
    db.commit()
    db.refresh(tournament)
    return tournament


@router.post("/tournaments/{tournament_id}/teams", status_code=status.HTTP_201_CREATED)
async def register_team(
    tournament_id: int,
    payload: TeamRegistration,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    if not db.get(Tournament, tournament_id):
        raise HTTPException(status_code=404, detail="Tournament not found")
    if not db.get(Team, payload.team_id):
        raise HTTPException(status_code=404, detail="Team not found")

    existing = db.exec(
        select(TournamentTeam).where(
            TournamentTeam.tournament_id == tournament_id,
            TournamentTeam.team_id == payload.team_id
        )
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="Team already registered")

    registration = TournamentTeam(tournament_id=tournament_id, team_id=payload.team_id)
    db.add(registration)
    db.commit()
    return {"tournament_id": tournament_id, "team_id": payload.team_id}


@router.post("/teams", response_model=Team, status_code=status.HTTP_201_CREATED)
async def create_team(
    payload: TeamCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    team = Team(name=payload.name, short_name=payload.short_name or None)
    db.add(team)
    db.commit()
    db.refresh(team)
    return team


@router.post("/players", response_model=Player, status_code=status.HTTP_201_CREATED)
async def create_player(
    payload: PlayerCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    if not db.get(Team, payload.team_id):
        raise HTTPException(status_code=404, detail="Team not found")

    player = Player(**payload.model_dump())
    db.add(player)
    db.commit()
    db.refresh(player)
    return player


@router.post("/venues", response_model=Venue, status_code=status.HTTP_201_CREATED)
async def create_venue(
    payload: VenueCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    venue = Venue(**payload.model_dump())
    db.add(venue)
    db.commit()
    db.refresh(venue)
    return venue


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_operator(
    payload: UserCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    if payload.role not in ROLES:
        raise HTTPException(status_code=400, detail=f"Role must be one of {', '.join(ROLES)}")
    if get_user_by_username(db, payload.username):
        raise HTTPException(status_code=400, detail="Username already exists")
    if payload.team_id is not None and not db.get(Team, payload.team_id):
        raise HTTPException(status_code=404, detail="Team not found")

    try:
        user = create_user(
            db,
            payload.username,
            payload.password,
            role=payload.role,
            display_name=payload.display_name,
            team_id=payload.team_id
        )
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Username already exists")

    return {"id": user.id, "username": user.username, "role": user.role, "team_id": user.team_id}
