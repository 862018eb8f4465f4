from datetime import datetime, UTC
from typing import Optional
from sqlmodel import SQLModel, Field

# Roles: admin, manager, commentator, viewer
OPERATOR_ROLES = ("admin", "manager", "commentator")


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True)
    password_hash: str
    display_name: Optional[str] = Field(default=None)
    role: str = Field(default="viewer")
    team_id: Optional[int] = Field(default=None, foreign_key="teams.id")  # managers only
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
