from datetime import datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field


class UserSession(SQLModel, table=True):
    """Login session behind the session cookie of an operator or viewer."""
    __tablename__ = "user_sessions"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    session_token: str = Field(unique=True, index=True)
    expires_at: datetime = Field(index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
