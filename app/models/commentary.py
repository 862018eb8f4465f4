from datetime import datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field


class CommentaryEntry(SQLModel, table=True):
    __tablename__ = "commentary"

    id: Optional[int] = Field(default=None, primary_key=True)
    match_id: int = Field(foreign_key="matches.id", index=True)
    minute: int
    text: str
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
