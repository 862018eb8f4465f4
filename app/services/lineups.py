"""
Lineups and formations.

A lineup is replaced wholesale: the lineup row is updated and its player rows
deleted and reinserted in the same commit, so readers never see a mix of the
old and new selection.
"""

import logging
import re
from datetime import datetime, UTC
from typing import List, Optional, Sequence

from pydantic import BaseModel
from sqlalchemy import delete, update
from sqlmodel import Session, select

from ..config import LINEUP_SIZE_POLICY
from ..exceptions import ConflictError, NotFound, ValidationError
from ..models.lineup import Formation, Lineup, LineupPlayer
from ..models.team import Player, Team
from .matches import get_match

logger = logging.getLogger(__name__)

FORMATION_PATTERN = re.compile(r"^\d(-\d){1,4}$")
OUTFIELD_PLAYERS = 10
LINEUP_POLICIES = ("exact", "subset")


class LineupPlayerIn(BaseModel):
    """A player entry of a submitted lineup."""
    player_id: int
    position: str
    jersey_number: int
    is_starter: bool = True


def formation_slot_count(structure: str) -> int:
    """
    Number of starters a formation needs, goalkeeper included.

    "4-4-2" -> 11, "3-4-2-1" -> 11
    """
    if not structure or not FORMATION_PATTERN.match(structure):
        raise ValidationError(f"Invalid formation structure '{structure}'")
    outfield = sum(int(part) for part in structure.split("-"))
    if outfield != OUTFIELD_PLAYERS:
        raise ValidationError(
            f"Formation '{structure}' has {outfield} outfield players, expected {OUTFIELD_PLAYERS}"
        )
    return outfield + 1


def get_team(db: Session, team_id: int) -> Team:
    team = db.get(Team, team_id)
    if not team:
        raise NotFound(f"Team {team_id} not found")
    return team


# Formations

def create_formation(
    db: Session,
    team_id: int,
    name: str,
    formation_structure: str,
    is_default: bool = False,
) -> Formation:
    """Create a formation; a new default replaces the team's previous default."""
    get_team(db, team_id)
    formation_slot_count(formation_structure)

    formation = Formation(
        team_id=team_id,
        name=name,
        formation_structure=formation_structure,
        is_default=is_default,
    )
    try:
        if is_default:
            db.exec(
                update(Formation)
                .where(Formation.team_id == team_id, Formation.is_default == True)  # noqa: E712
                .values(is_default=False)
            )
        db.add(formation)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(formation)
    logger.info("Created formation %s (%s) for team %s", formation.id, formation_structure, team_id)
    return formation


def list_formations(db: Session, team_id: int) -> List[Formation]:
    get_team(db, team_id)
    statement = (
        select(Formation)
        .where(Formation.team_id == team_id)
        .order_by(Formation.is_default.desc(), Formation.id)
    )
    return list(db.exec(statement).all())


# Lineups

def validate_lineup_players(
    db: Session,
    team_id: int,
    players: Sequence[LineupPlayerIn],
    slot_count: int,
    policy: str,
) -> None:
    """Check a submitted player list against the formation and the squad."""
    if policy not in LINEUP_POLICIES:
        raise ValidationError(f"Unknown lineup size policy '{policy}'")

    seen = set()
    for entry in players:
        if entry.player_id in seen:
            raise ValidationError(f"Player {entry.player_id} appears more than once")
        seen.add(entry.player_id)
        if entry.jersey_number < 1 or entry.jersey_number > 99:
            raise ValidationError(
                f"Jersey number {entry.jersey_number} of player {entry.player_id} is outside 1-99"
            )
        if not entry.position:
            raise ValidationError(f"Player {entry.player_id} has no position")

    starters = [p for p in players if p.is_starter]
    if policy == "exact" and len(starters) != slot_count:
        raise ValidationError(
            f"Formation needs {slot_count} starters, got {len(starters)}"
        )
    if policy == "subset" and not 1 <= len(starters) <= slot_count:
        raise ValidationError(
            f"Formation allows 1 to {slot_count} starters, got {len(starters)}"
        )

    squad = {
        p.id: p for p in db.exec(
            select(Player).where(Player.id.in_([entry.player_id for entry in players]))
        ).all()
    }
    for entry in players:
        player = squad.get(entry.player_id)
        if not player or player.team_id != team_id or not player.is_active:
            raise ValidationError(f"Player {entry.player_id} is not in the squad of team {team_id}")


def save_lineup(
    db: Session,
    match_id: int,
    team_id: int,
    formation_id: int,
    players: Sequence[LineupPlayerIn],
    expected_version: Optional[int] = None,
    user_id: Optional[int] = None,
    policy: str = LINEUP_SIZE_POLICY,
) -> Lineup:
    """
    Replace a team's lineup for a match.

    All-or-nothing: a rejected or failed save leaves the previous lineup as it
    was. With ``expected_version`` a stale replacement raises ConflictError;
    without it the last committed save wins.
    """
    match = get_match(db, match_id)
    get_team(db, team_id)
    if match.side_of(team_id) is None:
        raise ValidationError(f"Team {team_id} is not playing in match {match_id}")

    formation = db.get(Formation, formation_id)
    if not formation:
        raise NotFound(f"Formation {formation_id} not found")
    if formation.team_id != team_id:
        raise ValidationError(f"Formation {formation_id} does not belong to team {team_id}")

    slot_count = formation_slot_count(formation.formation_structure)
    validate_lineup_players(db, team_id, players, slot_count, policy)

    lineup = db.exec(
        select(Lineup).where(Lineup.match_id == match_id, Lineup.team_id == team_id)
    ).first()

    try:
        if lineup is None:
            if expected_version not in (None, 0):
                raise ConflictError(f"No lineup saved yet, expected version {expected_version}")
            lineup = Lineup(
                match_id=match_id,
                team_id=team_id,
                formation_id=formation.id,
                formation_structure=formation.formation_structure,
                created_by=user_id,
            )
            db.add(lineup)
            db.flush()
        else:
            current_version = lineup.version
            if expected_version is not None and expected_version != current_version:
                raise ConflictError(
                    f"Lineup changed meanwhile (version {current_version}, expected {expected_version})"
                )
            # Compare-and-swap on the version serialises concurrent replacements
            result = db.exec(
                update(Lineup)
                .where(Lineup.id == lineup.id, Lineup.version == current_version)
                .values(
                    formation_id=formation.id,
                    formation_structure=formation.formation_structure,
                    version=current_version + 1,
                    created_by=user_id,
                    updated_at=datetime.now(UTC),
                )
            )
            if result.rowcount != 1:
                raise ConflictError("Lineup was replaced by a concurrent save")
            db.exec(delete(LineupPlayer).where(LineupPlayer.lineup_id == lineup.id))

        for i, entry in enumerate(players):
            db.add(LineupPlayer(
                lineup_id=lineup.id,
                player_id=entry.player_id,
                position=entry.position,
                jersey_number=entry.jersey_number,
                is_starter=entry.is_starter,
                sort_order=i,
            ))
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(lineup)
    logger.info(
        "Saved lineup for match %s team %s: %s, %d players (version %s)",
        match_id, team_id, lineup.formation_structure, len(players), lineup.version
    )
    return lineup


def lineup_players(db: Session, lineup_id: int) -> List[LineupPlayer]:
    statement = (
        select(LineupPlayer)
        .where(LineupPlayer.lineup_id == lineup_id)
        .order_by(LineupPlayer.sort_order, LineupPlayer.id)
    )
    return list(db.exec(statement).all())


def get_lineup(db: Session, match_id: int, team_id: int) -> Optional[dict]:
    """
    Get the saved lineup of a team for a match.

    Returns None when no lineup has been submitted yet.
    """
    get_match(db, match_id)
    lineup = db.exec(
        select(Lineup).where(Lineup.match_id == match_id, Lineup.team_id == team_id)
    ).first()
    if not lineup:
        return None

    players = lineup_players(db, lineup.id)
    return {
        "id": lineup.id,
        "match_id": lineup.match_id,
        "team_id": lineup.team_id,
        "formation_id": lineup.formation_id,
        "formation_structure": lineup.formation_structure,
        "version": lineup.version,
        "updated_at": lineup.updated_at,
        "players": [
            {
                "player_id": p.player_id,
                "position": p.position,
                "jersey_number": p.jersey_number,
                "is_starter": p.is_starter,
            }
            for p in players
        ],
    }
