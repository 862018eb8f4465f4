from datetime import datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field


class Team(SQLModel, table=True):
    __tablename__ = "teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    short_name: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Player(SQLModel, table=True):
    __tablename__ = "players"

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    name: str
    jersey_number: Optional[int] = Field(default=None)
    position: Optional[str] = Field(default=None)  # GK, DF, MF, FW
    is_active: bool = Field(default=True)  # current squad member
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
