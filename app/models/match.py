from datetime import datetime, UTC
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field


class MatchStatus(str, Enum):
    SCHEDULED = "scheduled"
    FIRST_HALF = "first_half"
    HALF_TIME = "half_time"
    SECOND_HALF = "second_half"
    EXTRA_TIME = "extra_time"
    PENALTIES = "penalties"
    FULL_TIME = "full_time"
    CANCELLED = "cancelled"


# Statuses that count as a finished game for standings
COMPLETED_STATUSES = frozenset({
    MatchStatus.FULL_TIME.value,
    MatchStatus.EXTRA_TIME.value,
    MatchStatus.PENALTIES.value,
})

# Statuses in which the ball is in play and events can be appended
LIVE_STATUSES = frozenset({
    MatchStatus.FIRST_HALF.value,
    MatchStatus.SECOND_HALF.value,
    MatchStatus.EXTRA_TIME.value,
})


class Match(SQLModel, table=True):
    __tablename__ = "matches"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", index=True)

    # Teams
    home_team_id: int = Field(foreign_key="teams.id", index=True)
    away_team_id: int = Field(foreign_key="teams.id", index=True)

    # Venue
    venue_id: Optional[int] = Field(default=None, foreign_key="venues.id")
    scheduled_datetime: datetime = Field(default_factory=lambda: datetime.now(UTC))

    # Status and manual clock
    status: str = Field(default=MatchStatus.SCHEDULED.value, index=True)
    minute: int = Field(default=0)
    extra_time_played: bool = Field(default=False)

    # Running tally, only changed by ledger appends/voids
    home_score: int = Field(default=0)
    away_score: int = Field(default=0)

    # Shootout tally (never part of home_score/away_score)
    home_penalty_score: Optional[int] = Field(default=None)
    away_penalty_score: Optional[int] = Field(default=None)

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_completed(self) -> bool:
        return self.status in COMPLETED_STATUSES

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES

    def side_of(self, team_id: Optional[int]) -> Optional[str]:
        """Return "home" or "away" for a team playing in this match."""
        if team_id is None:
            return None
        if team_id == self.home_team_id:
            return "home"
        if team_id == self.away_team_id:
            return "away"
        return None
