from datetime import datetime, UTC
from typing import Optional
from pydantic import BaseModel
from sqlmodel import SQLModel, Field, UniqueConstraint


class PointsSystem(BaseModel):
    """Points awarded per result."""
    win: int = 3
    draw: int = 1
    loss: int = 0


class Tournament(SQLModel, table=True):
    __tablename__ = "tournaments"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    season: Optional[str] = Field(default=None)

    # Points system
    points_win: int = Field(default=3)
    points_draw: int = Field(default=1)
    points_loss: int = Field(default=0)

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def points_system(self) -> PointsSystem:
        return PointsSystem(win=self.points_win, draw=self.points_draw, loss=self.points_loss)


class TournamentTeam(SQLModel, table=True):
    """Registration of a team in a tournament."""
    __tablename__ = "tournament_teams"
    __table_args__ = (UniqueConstraint("tournament_id", "team_id", name="unique_tournament_team"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", index=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    registered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
