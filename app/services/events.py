"""
Event ledger: validated, append-only match events.

Every append is one transaction covering the event insert and, for scoring
events, an atomic ``UPDATE`` of the match score. Corrections are appended as
``event_voided`` records and never edit earlier rows.
"""

import logging
from collections import Counter
from datetime import datetime, UTC
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..config import MAX_EVENT_MINUTE
from ..exceptions import InvalidState, NotFound, ValidationError
from ..models.match import Match, MatchStatus, COMPLETED_STATUSES, LIVE_STATUSES
from ..models.match_event import EventType, MatchEvent
from ..models.team import Player
from .matches import get_match
from .standings import rebuild_standings

logger = logging.getLogger(__name__)

E = EventType


class EventRule:
    """Structural requirements of an event type."""

    def __init__(self, requires_player: bool, related_player: str, score_effect: Optional[str]):
        self.requires_player = requires_player
        # "required", "optional" or "forbidden"
        self.related_player = related_player
        # "own" credits the event's team, "opponent" credits the other team
        self.score_effect = score_effect


EVENT_RULES: Dict[str, EventRule] = {
    E.GOAL.value: EventRule(True, "optional", "own"),
    E.PENALTY_GOAL.value: EventRule(True, "forbidden", "own"),
    E.PENALTY_MISS.value: EventRule(True, "forbidden", None),
    E.OWN_GOAL.value: EventRule(True, "forbidden", "opponent"),
    E.YELLOW_CARD.value: EventRule(True, "forbidden", None),
    E.RED_CARD.value: EventRule(True, "forbidden", None),
    E.SECOND_YELLOW.value: EventRule(True, "forbidden", None),
    E.SUBSTITUTION_IN.value: EventRule(True, "required", None),
    E.CORNER.value: EventRule(False, "forbidden", None),
    E.FREE_KICK.value: EventRule(False, "forbidden", None),
    E.OFFSIDE.value: EventRule(False, "forbidden", None),
    E.INJURY.value: EventRule(False, "forbidden", None),
    E.VAR_DECISION.value: EventRule(False, "forbidden", None),
}

# Voiding is allowed while the match is live, and after it finished as an
# admin-only correction (the HTTP layer enforces the admin role)
VOIDABLE_STATUSES = LIVE_STATUSES | COMPLETED_STATUSES


def scoring_side(match: Match, event: MatchEvent) -> Optional[str]:
    """Return the side ("home"/"away") whose score the event increments, if any."""
    rule = EVENT_RULES.get(event.event_type)
    if rule is None or rule.score_effect is None:
        return None

    side = match.side_of(event.team_id)
    if side is None:
        return None
    if rule.score_effect == "opponent":
        return "away" if side == "home" else "home"
    return side


def voided_event_ids(events: Iterable[MatchEvent]) -> Set[int]:
    return {e.voids_event_id for e in events if e.event_type == E.EVENT_VOIDED.value and e.voids_event_id}


def effective_events(events: Iterable[MatchEvent]) -> List[MatchEvent]:
    """Drop void records and the events they void."""
    events = list(events)
    voided = voided_event_ids(events)
    return [e for e in events if e.event_type != E.EVENT_VOIDED.value and e.id not in voided]


def recount_score(match: Match, events: Iterable[MatchEvent]) -> Dict[str, int]:
    """Recount the score of a match from its ledger."""
    score = {"home": 0, "away": 0}
    for event in effective_events(events):
        side = scoring_side(match, event)
        if side:
            score[side] += 1
    return score


def _increment_score(db: Session, match: Match, side: str, delta: int) -> None:
    # Single UPDATE statement, no read-modify-write of the score
    column = "home_score" if side == "home" else "away_score"
    db.exec(
        update(Match)
        .where(Match.id == match.id)
        .values(**{column: getattr(Match, column) + delta, "updated_at": datetime.now(UTC)})
    )


def _rebuild_if_completed(db: Session, match: Match) -> None:
    # Standings of a finished match follow its ledger in the same commit
    if match.status not in COMPLETED_STATUSES:
        return
    tournament_id = match.tournament_id
    db.flush()
    db.expire(match)
    rebuild_standings(db, tournament_id)


def _squad_player(db: Session, player_id: int, team_id: int, label: str) -> Player:
    player = db.get(Player, player_id)
    if not player:
        raise ValidationError(f"{label} {player_id} does not exist")
    if player.team_id != team_id or not player.is_active:
        raise ValidationError(f"{label} {player_id} is not in the squad of team {team_id}")
    return player


def validate_event(
    db: Session,
    match: Match,
    event_type: str,
    minute: int,
    team_id: Optional[int],
    player_id: Optional[int],
    related_player_id: Optional[int],
) -> None:
    """Check an event payload against its type's structural rules."""
    rule = EVENT_RULES.get(event_type)
    if rule is None:
        raise ValidationError(f"Unknown event type '{event_type}'")

    if minute is None or minute < 0 or minute > MAX_EVENT_MINUTE:
        raise ValidationError(f"Minute must be between 0 and {MAX_EVENT_MINUTE}")

    if team_id is not None and match.side_of(team_id) is None:
        raise ValidationError(f"Team {team_id} is not playing in match {match.id}")

    if rule.requires_player and player_id is None:
        raise ValidationError(f"Event '{event_type}' requires a player")
    if rule.related_player == "required" and related_player_id is None:
        raise ValidationError(f"Event '{event_type}' requires a related player")
    if rule.related_player == "forbidden" and related_player_id is not None:
        raise ValidationError(f"Event '{event_type}' does not take a related player")

    if (player_id is not None or related_player_id is not None) and team_id is None:
        raise ValidationError("A team is required when a player is referenced")
    if rule.score_effect and team_id is None:
        raise ValidationError(f"Event '{event_type}' requires a team")

    if player_id is not None and player_id == related_player_id:
        raise ValidationError("Player and related player must differ")

    if player_id is not None:
        _squad_player(db, player_id, team_id, "Player")
    if related_player_id is not None:
        _squad_player(db, related_player_id, team_id, "Related player")


def _find_by_client_id(db: Session, match_id: int, client_event_id: str) -> Optional[MatchEvent]:
    return db.exec(
        select(MatchEvent).where(
            MatchEvent.match_id == match_id,
            MatchEvent.client_event_id == client_event_id
        )
    ).first()


def append_event(
    db: Session,
    match_id: int,
    event_type: str,
    minute: int,
    team_id: Optional[int] = None,
    player_id: Optional[int] = None,
    related_player_id: Optional[int] = None,
    description: Optional[str] = None,
    client_event_id: Optional[str] = None,
    user_id: Optional[int] = None,
) -> MatchEvent:
    """
    Append an event to a live match.

    Raises:
        NotFound: the match does not exist
        InvalidState: the match is not in first_half, second_half or extra_time
        ValidationError: the payload breaks the event type's rules

    A repeated ``client_event_id`` returns the already recorded event.
    """
    match = get_match(db, match_id)

    if match.status not in LIVE_STATUSES:
        logger.warning("Rejected %s for match %s in status %s", event_type, match_id, match.status)
        raise InvalidState(f"Cannot record events while match is '{match.status}'")

    if client_event_id:
        existing = _find_by_client_id(db, match_id, client_event_id)
        if existing:
            logger.info("Duplicate submission %s for match %s ignored", client_event_id, match_id)
            return existing

    validate_event(db, match, event_type, minute, team_id, player_id, related_player_id)

    event = MatchEvent(
        match_id=match_id,
        event_type=event_type,
        minute=minute,
        team_id=team_id,
        player_id=player_id,
        related_player_id=related_player_id,
        description=description,
        client_event_id=client_event_id,
        created_by=user_id,
    )
    side = scoring_side(match, event)

    try:
        db.add(event)
        if side:
            _increment_score(db, match, side, 1)
        _rebuild_if_completed(db, match)
        db.commit()
    except IntegrityError:
        db.rollback()
        # A concurrent submission with the same key won the race
        if client_event_id:
            existing = _find_by_client_id(db, match_id, client_event_id)
            if existing:
                return existing
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(event)
    db.refresh(match)
    logger.info(
        "Match %s: %s at %s' (team=%s player=%s) score %s-%s",
        match_id, event_type, minute, team_id, player_id, match.home_score, match.away_score
    )
    return event


def void_event(
    db: Session,
    match_id: int,
    event_id: int,
    reason: Optional[str] = None,
    user_id: Optional[int] = None,
) -> MatchEvent:
    """
    Void an earlier event by appending a compensating record.

    A voided scoring event takes its goal back off the credited side.
    """
    match = get_match(db, match_id)
    if match.status not in VOIDABLE_STATUSES:
        raise InvalidState(f"Cannot void events while match is '{match.status}'")

    target = db.get(MatchEvent, event_id)
    if not target or target.match_id != match_id:
        raise NotFound(f"Event {event_id} not found in match {match_id}")
    if target.event_type == E.EVENT_VOIDED.value:
        raise ValidationError("A void record cannot be voided")

    already = db.exec(
        select(MatchEvent).where(
            MatchEvent.match_id == match_id,
            MatchEvent.event_type == E.EVENT_VOIDED.value,
            MatchEvent.voids_event_id == event_id
        )
    ).first()
    if already:
        raise ValidationError(f"Event {event_id} is already voided")

    void = MatchEvent(
        match_id=match_id,
        event_type=E.EVENT_VOIDED.value,
        minute=target.minute,
        team_id=target.team_id,
        voids_event_id=event_id,
        description=reason,
        created_by=user_id,
    )
    side = scoring_side(match, target)

    try:
        db.add(void)
        if side:
            _increment_score(db, match, side, -1)
        _rebuild_if_completed(db, match)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(void)
    db.refresh(match)
    logger.info("Match %s: voided event %s (%s)", match_id, event_id, target.event_type)
    return void


def list_events(db: Session, match_id: int, order: str = "minute") -> List[MatchEvent]:
    """
    List every ledger row of a match, void records included.

    ``order="minute"`` sorts by minute with insertion order breaking ties;
    ``order="insertion"`` returns rows as they were appended.
    """
    get_match(db, match_id)
    statement = select(MatchEvent).where(MatchEvent.match_id == match_id)
    if order == "insertion":
        statement = statement.order_by(MatchEvent.id)
    elif order == "minute":
        statement = statement.order_by(MatchEvent.minute, MatchEvent.id)
    else:
        raise ValidationError(f"Unknown order '{order}'")
    return list(db.exec(statement).all())


def match_summary(db: Session, match_id: int) -> dict:
    """Per-team counts of each event type, ignoring voided events."""
    match = get_match(db, match_id)
    events = effective_events(list_events(db, match_id, order="insertion"))

    counts = {"home": Counter(), "away": Counter()}
    for event in events:
        side = match.side_of(event.team_id)
        if side:
            counts[side][event.event_type] += 1

    def team_block(side: str, team_id: int) -> dict:
        block = {"team_id": team_id}
        for event_type in EVENT_RULES:
            block[event_type] = counts[side][event_type]
        return block

    return {
        "match_id": match.id,
        "status": match.status,
        "minute": match.minute,
        "home_score": match.home_score,
        "away_score": match.away_score,
        "home": team_block("home", match.home_team_id),
        "away": team_block("away", match.away_team_id),
    }
