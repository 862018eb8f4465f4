from datetime import datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


class Standing(SQLModel, table=True):
    """Derived cache of a team's record in a tournament.

    Rows are replaced wholesale by the standings service and can be dropped and
    rebuilt from matches and events at any time.
    """
    __tablename__ = "standings"
    __table_args__ = (UniqueConstraint("tournament_id", "team_id", name="unique_tournament_standing"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", index=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    position: int = Field(default=0)

    matches_played: int = Field(default=0)
    wins: int = Field(default=0)
    draws: int = Field(default=0)
    losses: int = Field(default=0)
    goals_for: int = Field(default=0)
    goals_against: int = Field(default=0)
    goal_difference: int = Field(default=0)
    points: int = Field(default=0)
    form: str = Field(default="")  # most recent first, e.g. "WDLWW"

    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
