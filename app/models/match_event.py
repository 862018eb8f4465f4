from datetime import datetime, UTC
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


class EventType(str, Enum):
    GOAL = "goal"
    PENALTY_GOAL = "penalty_goal"
    PENALTY_MISS = "penalty_miss"
    OWN_GOAL = "own_goal"
    YELLOW_CARD = "yellow_card"
    RED_CARD = "red_card"
    SECOND_YELLOW = "second_yellow"
    SUBSTITUTION_IN = "substitution_in"
    CORNER = "corner"
    FREE_KICK = "free_kick"
    OFFSIDE = "offside"
    INJURY = "injury"
    VAR_DECISION = "var_decision"
    # Compensating record, appended by the void operation only
    EVENT_VOIDED = "event_voided"


class MatchEvent(SQLModel, table=True):
    """A single fact recorded during a match. Rows are never updated."""
    __tablename__ = "match_events"
    __table_args__ = (UniqueConstraint("match_id", "client_event_id", name="unique_match_client_event"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="matches.id", index=True)
    event_type: str = Field(index=True)
    minute: int

    team_id: Optional[int] = Field(default=None, foreign_key="teams.id")
    player_id: Optional[int] = Field(default=None, foreign_key="players.id", index=True)
    related_player_id: Optional[int] = Field(default=None, foreign_key="players.id")  # assist or player off
    description: Optional[str] = Field(default=None)

    # Client-supplied key that makes retried submissions safe
    client_event_id: Optional[str] = Field(default=None, max_length=64)
    voids_event_id: Optional[int] = Field(default=None, foreign_key="match_events.id")

    created_by: Optional[int] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
