from datetime import date, time
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlmodel import Session, select

from ..database import get_session
from ..dependencies import require_admin, require_operator
from ..models.commentary import CommentaryEntry
from ..models.match import Match
from ..models.match_event import MatchEvent
from ..models.user import User
from ..services import commentary as commentary_service
from ..services import events as event_service
from ..services import matches as match_service

router = APIRouter(prefix="/matches", tags=["matches"])


class MatchCreate(BaseModel):
    """Schema for scheduling a match."""
    tournament_id: int
    home_team_id: int
    away_team_id: int
    venue_id: Optional[int] = None
    match_date: date
    match_time: Optional[time] = None


class StatusUpdate(BaseModel):
    status: str


class MinuteUpdate(BaseModel):
    minute: int


class ShootoutResult(BaseModel):
    home_penalty_score: int
    away_penalty_score: int


class EventCreate(BaseModel):
    """Schema for appending a match event."""
    event_type: str
    minute: int
    team_id: Optional[int] = None
    player_id: Optional[int] = None
    related_player_id: Optional[int] = None
    description: Optional[str] = None
    client_event_id: Optional[str] = None


class EventVoid(BaseModel):
    reason: Optional[str] = None


class CommentaryCreate(BaseModel):
    minute: int
    text: str


@router.get("", response_model=List[Match])
async def list_matches(
    tournament_id: Optional[int] = None,
    db: Session = Depends(get_session)
):
    statement = select(Match).order_by(Match.scheduled_datetime, Match.id)
    if tournament_id is not None:
        statement = statement.where(Match.tournament_id == tournament_id)
    return db.exec(statement).all()


@router.post("", response_model=Match, status_code=status.HTTP_201_CREATED)
async def schedule_match(
    payload: MatchCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_session)
):
    return match_service.schedule_match(
        db,
        payload.tournament_id,
        payload.home_team_id,
        payload.away_team_id,
        payload.venue_id,
        payload.match_date,
        payload.match_time,
    )


@router.get("/{match_id}", response_model=Match)
async def get_match(match_id: int, db: Session = Depends(get_session)):
    return match_service.get_match(db, match_id)


@router.post("/{match_id}/status", response_model=Match)
async def advance_status(
    match_id: int,
    payload: StatusUpdate,
    current_user: User = Depends(require_operator),
    db: Session = Depends(get_session)
):
    return match_service.advance_match_status(db, match_id, payload.status)


@router.post("/{match_id}/minute", response_model=Match)
async def set_minute(
    match_id: int,
    payload: MinuteUpdate,
    current_user: User = Depends(require_operator),
    db: Session = Depends(get_session)
):
    return match_service.set_match_minute(db, match_id, payload.minute)


@router.post("/{match_id}/minute/increment", response_model=Match)
async def increment_minute(
    match_id: int,
    current_user: User = Depends(require_operator),
    db: Session = Depends(get_session)
):
    return match_service.increment_match_minute(db, match_id)


@router.post("/{match_id}/shootout", response_model=Match)
async def record_shootout(
    match_id: int,
    payload: ShootoutResult,
    current_user: User = Depends(require_operator),
    db: Session = Depends(get_session)
):
    return match_service.record_shootout(
        db, match_id, payload.home_penalty_score, payload.away_penalty_score
    )


# Event ledger
@router.get("/{match_id}/events", response_model=List[MatchEvent])
async def list_events(
    match_id: int,
    order: str = Query("minute", pattern="^(minute|insertion)$"),
    db: Session = Depends(get_session)
):
    """All ledger rows of a match, void records included."""
    return event_service.list_events(db, match_id, order)


@router.post("/{match_id}/events", response_model=MatchEvent, status_code=status.HTTP_201_CREATED)
async def append_event(
    match_id: int,
    payload: EventCreate,
    current_user: User = Depends(require_operator),
    db: Session = Depends(get_session)
):
    return event_service.append_event(
        db,
        match_id,
        payload.event_type,
        payload.minute,
        team_id=payload.team_id,
        player_id=payload.player_id,
        related_player_id=payload.related_player_id,
        description=payload.description,
        client_event_id=payload.client_event_id,
        user_id=current_user.id,
    )


@router.post("/{match_id}/events/{event_id}/void", response_model=MatchEvent, status_code=status.HTTP_201_CREATED)
async def void_event(
    match_id: int,
    event_id: int,
    payload: EventVoid,
    current_user: User = Depends(require_operator),
    db: Session = Depends(get_session)
):
    """Operators void events during play; once play is over only admins can."""
    match = match_service.get_match(db, match_id)
    if match.is_completed and not match.is_live and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can correct a match after play has ended"
        )
    return event_service.void_event(db, match_id, event_id, payload.reason, user_id=current_user.id)


@router.get("/{match_id}/summary")
async def match_summary(match_id: int, db: Session = Depends(get_session)):
    return event_service.match_summary(db, match_id)


# Commentary
@router.get("/{match_id}/commentary", response_model=List[CommentaryEntry])
async def list_commentary(match_id: int, db: Session = Depends(get_session)):
    return commentary_service.list_commentary(db, match_id)


@router.post("/{match_id}/commentary", response_model=CommentaryEntry, status_code=status.HTTP_201_CREATED)
async def add_commentary(
    match_id: int,
    payload: CommentaryCreate,
    current_user: User = Depends(require_operator),
    db: Session = Depends(get_session)
):
    return commentary_service.add_commentary(
        db, match_id, payload.minute, payload.text, user_id=current_user.id
    )
