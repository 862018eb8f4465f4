from typing import List, Optional
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlmodel import Session

from ..database import get_session
from ..dependencies import ensure_team_access, require_user
from ..models.lineup import Formation
from ..models.user import User
from ..services import lineups as lineup_service
from ..services.lineups import LineupPlayerIn

router = APIRouter(tags=["lineups"])


class LineupSave(BaseModel):
    """Schema for replacing a team's lineup."""
    formation_id: int
    players: List[LineupPlayerIn]
    expected_version: Optional[int] = None


class FormationCreate(BaseModel):
    name: str
    formation_structure: str
    is_default: bool = False


@router.get("/matches/{match_id}/lineups/{team_id}")
async def get_lineup(match_id: int, team_id: int, db: Session = Depends(get_session)):
    """Saved lineup, or null when the team has not submitted one yet."""
    return {"lineup": lineup_service.get_lineup(db, match_id, team_id)}


@router.put("/matches/{match_id}/lineups/{team_id}")
async def save_lineup(
    match_id: int,
    team_id: int,
    payload: LineupSave,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    ensure_team_access(current_user, team_id)
    lineup_service.save_lineup(
        db,
        match_id,
        team_id,
        payload.formation_id,
        payload.players,
        expected_version=payload.expected_version,
        user_id=current_user.id,
    )
    return {"lineup": lineup_service.get_lineup(db, match_id, team_id)}


@router.get("/teams/{team_id}/formations", response_model=List[Formation])
async def list_formations(team_id: int, db: Session = Depends(get_session)):
    return lineup_service.list_formations(db, team_id)


@router.post("/teams/{team_id}/formations", response_model=Formation, status_code=status.HTTP_201_CREATED)
async def create_formation(
    team_id: int,
    payload: FormationCreate,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_session)
):
    ensure_team_access(current_user, team_id)
    return lineup_service.create_formation(
        db, team_id, payload.name, payload.formation_structure, payload.is_default
    )
