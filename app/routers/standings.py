from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ..database import get_session
from ..dependencies import require_operator
from ..models.user import User
from ..services.player_stats import get_top_assists, get_top_scorers
from ..services.standings import get_standings, recompute_standings

router = APIRouter(prefix="/standings", tags=["standings"])


@router.get("/{tournament_id}")
async def standings(tournament_id: int, db: Session = Depends(get_session)):
    """League table sorted by points, goal difference, goals scored."""
    return get_standings(db, tournament_id)


@router.post("/{tournament_id}/refresh")
async def refresh_standings(
    tournament_id: int,
    current_user: User = Depends(require_operator),
    db: Session = Depends(get_session)
):
    """Drop and rebuild the cached table from match history."""
    rows = recompute_standings(db, tournament_id)
    return {
        "message": "Standings refreshed successfully",
        "teams_updated": len(rows),
        "standings": get_standings(db, tournament_id),
    }


@router.get("/{tournament_id}/top-scorers")
async def top_scorers(
    tournament_id: int,
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_session)
):
    scorers = get_top_scorers(db, tournament_id, limit)
    return {"top_scorers": scorers, "count": len(scorers)}


@router.get("/{tournament_id}/top-assists")
async def top_assists(
    tournament_id: int,
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_session)
):
    assists = get_top_assists(db, tournament_id, limit)
    return {"top_assists": assists, "count": len(assists)}
