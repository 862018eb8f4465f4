"""
Match scheduling and the match status state machine.
"""

import logging
from datetime import date, datetime, time, UTC
from typing import Dict, FrozenSet, Optional

from sqlmodel import Session, select

from ..config import MAX_EVENT_MINUTE
from ..exceptions import InvalidState, InvalidTransition, NotFound, ValidationError
from ..models.match import Match, MatchStatus, COMPLETED_STATUSES
from ..models.team import Team
from ..models.tournament import Tournament, TournamentTeam
from ..models.venue import Venue
from .standings import rebuild_standings

logger = logging.getLogger(__name__)

S = MatchStatus

# Direct successors of every status
TRANSITIONS: Dict[str, FrozenSet[str]] = {
    S.SCHEDULED.value: frozenset({S.FIRST_HALF.value, S.CANCELLED.value}),
    S.FIRST_HALF.value: frozenset({S.HALF_TIME.value, S.CANCELLED.value}),
    S.HALF_TIME.value: frozenset({S.SECOND_HALF.value, S.CANCELLED.value}),
    S.SECOND_HALF.value: frozenset({S.FULL_TIME.value, S.EXTRA_TIME.value, S.CANCELLED.value}),
    S.EXTRA_TIME.value: frozenset({S.PENALTIES.value}),
    S.PENALTIES.value: frozenset({S.FULL_TIME.value}),
    S.FULL_TIME.value: frozenset(),
    S.CANCELLED.value: frozenset(),
}

# Clock position when a period starts
PERIOD_START_MINUTE = {
    S.FIRST_HALF.value: 0,
    S.SECOND_HALF.value: 45,
    S.EXTRA_TIME.value: 90,
}


def can_transition(current: str, target: str) -> bool:
    """Check whether target is a direct successor of current."""
    return target in TRANSITIONS.get(current, frozenset())


def get_match(db: Session, match_id: int) -> Match:
    match = db.get(Match, match_id)
    if not match:
        raise NotFound(f"Match {match_id} not found")
    return match


def schedule_match(
    db: Session,
    tournament_id: int,
    home_team_id: int,
    away_team_id: int,
    venue_id: Optional[int],
    match_date: date,
    match_time: Optional[time] = None,
) -> Match:
    """Create a match in ``scheduled`` status."""
    if not db.get(Tournament, tournament_id):
        raise NotFound(f"Tournament {tournament_id} not found")
    for team_id in (home_team_id, away_team_id):
        if not db.get(Team, team_id):
            raise NotFound(f"Team {team_id} not found")
    if venue_id is not None and not db.get(Venue, venue_id):
        raise NotFound(f"Venue {venue_id} not found")

    if home_team_id == away_team_id:
        raise ValidationError("Home and away team must differ")

    registered = db.exec(
        select(TournamentTeam.team_id).where(
            TournamentTeam.tournament_id == tournament_id,
            TournamentTeam.team_id.in_([home_team_id, away_team_id])
        )
    ).all()
    missing = {home_team_id, away_team_id} - set(registered)
    if missing:
        raise ValidationError(
            f"Team(s) {sorted(missing)} not registered in tournament {tournament_id}"
        )

    match = Match(
        tournament_id=tournament_id,
        home_team_id=home_team_id,
        away_team_id=away_team_id,
        venue_id=venue_id,
        scheduled_datetime=datetime.combine(match_date, match_time or time(0, 0), tzinfo=UTC),
    )
    db.add(match)
    db.commit()
    db.refresh(match)

    logger.info("Scheduled match %s: %s vs %s", match.id, home_team_id, away_team_id)
    return match


def advance_match_status(db: Session, match_id: int, target_status: str) -> Match:
    """
    Move a match to the next status of the status graph.

    Entering a completed status rebuilds the tournament standings in the same
    commit as the status change; if the rebuild fails the match keeps its
    previous status. A retried transition fails with InvalidTransition and
    changes nothing.
    """
    match = get_match(db, match_id)
    current = match.status

    if not can_transition(current, target_status):
        logger.warning("Rejected transition for match %s: %s -> %s", match_id, current, target_status)
        raise InvalidTransition(f"Cannot move match from '{current}' to '{target_status}'")

    try:
        match.status = target_status
        if target_status in PERIOD_START_MINUTE:
            match.minute = PERIOD_START_MINUTE[target_status]
        if target_status == S.EXTRA_TIME.value:
            match.extra_time_played = True
        match.updated_at = datetime.now(UTC)
        db.add(match)

        if current in COMPLETED_STATUSES or target_status in COMPLETED_STATUSES:
            db.flush()
            rebuild_standings(db, match.tournament_id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(match)
    logger.info("Match %s moved %s -> %s", match_id, current, target_status)
    return match


def _require_live(match: Match, action: str) -> None:
    if not match.is_live:
        raise InvalidState(f"Cannot {action} while match is '{match.status}'")


def set_match_minute(db: Session, match_id: int, minute: int) -> Match:
    """Set the operator-driven match clock. Values need not be increasing."""
    match = get_match(db, match_id)
    _require_live(match, "set the minute")
    if minute < 0 or minute > MAX_EVENT_MINUTE:
        raise ValidationError(f"Minute must be between 0 and {MAX_EVENT_MINUTE}")

    match.minute = minute
    match.updated_at = datetime.now(UTC)
    db.add(match)
    db.commit()
    db.refresh(match)
    return match


def increment_match_minute(db: Session, match_id: int) -> Match:
    """Advance the match clock by one minute (offline mode)."""
    match = get_match(db, match_id)
    return set_match_minute(db, match_id, (match.minute or 0) + 1)


def record_shootout(db: Session, match_id: int, home_penalty_score: int, away_penalty_score: int) -> Match:
    """Store the penalty shootout tally of a match in ``penalties`` status."""
    match = get_match(db, match_id)
    if match.status != S.PENALTIES.value:
        raise InvalidState(f"Cannot record a shootout while match is '{match.status}'")
    if home_penalty_score < 0 or away_penalty_score < 0:
        raise ValidationError("Shootout scores cannot be negative")
    if home_penalty_score == away_penalty_score:
        raise ValidationError("A shootout cannot end level")

    try:
        match.home_penalty_score = home_penalty_score
        match.away_penalty_score = away_penalty_score
        match.updated_at = datetime.now(UTC)
        db.add(match)
        db.flush()
        rebuild_standings(db, match.tournament_id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(match)
    logger.info(
        "Recorded shootout for match %s: %s-%s", match_id, home_penalty_score, away_penalty_score
    )
    return match
