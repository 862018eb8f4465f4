from typing import Optional
from sqlmodel import SQLModel, Field


class Venue(SQLModel, table=True):
    __tablename__ = "venues"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    city: Optional[str] = Field(default=None)
    capacity: Optional[int] = Field(default=None)
