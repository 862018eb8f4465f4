from datetime import datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint


class Formation(SQLModel, table=True):
    """Reusable positional template owned by a team."""
    __tablename__ = "formations"

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    name: str
    formation_structure: str  # e.g. "4-4-2"
    is_default: bool = Field(default=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Lineup(SQLModel, table=True):
    __tablename__ = "lineups"
    __table_args__ = (UniqueConstraint("match_id", "team_id", name="unique_match_team_lineup"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="matches.id", index=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    formation_id: Optional[int] = Field(default=None, foreign_key="formations.id")
    formation_structure: str
    version: int = Field(default=1)  # bumped on every replacement
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class LineupPlayer(SQLModel, table=True):
    __tablename__ = "lineup_players"
    __table_args__ = (UniqueConstraint("lineup_id", "player_id", name="unique_lineup_player"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    lineup_id: int = Field(foreign_key="lineups.id", index=True)
    player_id: int = Field(foreign_key="players.id")
    position: str  # slot label, e.g. "GK", "LB", "ST1"
    jersey_number: int
    is_starter: bool = Field(default=True)
    sort_order: int = Field(default=0)
