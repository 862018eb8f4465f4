"""
Commentary feed. Display-only text, independent of the event ledger.
"""

import logging
from typing import List, Optional

from sqlmodel import Session, select

from ..models.commentary import CommentaryEntry
from .matches import get_match

logger = logging.getLogger(__name__)


def add_commentary(db: Session, match_id: int, minute: int, text: str, user_id: Optional[int] = None) -> CommentaryEntry:
    """Add a commentary line to an existing match."""
    get_match(db, match_id)

    entry = CommentaryEntry(match_id=match_id, minute=minute, text=text, created_by=user_id)
    db.add(entry)
    db.commit()
    db.refresh(entry)

    logger.info("Commentary added to match %s at %s'", match_id, minute)
    return entry


def list_commentary(db: Session, match_id: int) -> List[CommentaryEntry]:
    """Commentary of a match by minute, insertion order breaking ties."""
    get_match(db, match_id)
    statement = (
        select(CommentaryEntry)
        .where(CommentaryEntry.match_id == match_id)
        .order_by(CommentaryEntry.minute, CommentaryEntry.id)
    )
    return list(db.exec(statement).all())
