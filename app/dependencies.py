from typing import Optional
from fastapi import Request, Depends, HTTPException, status
from sqlmodel import Session

from .database import get_session
from .models.user import User, OPERATOR_ROLES
from .config import SESSION_COOKIE_NAME
from .services.auth import get_user_by_session_token


async def get_current_user(
    request: Request,
    db: Session = Depends(get_session)
) -> Optional[User]:
    """Get the current logged-in user from session cookie."""
    session_token = request.cookies.get(SESSION_COOKIE_NAME)
    if not session_token:
        return None

    return get_user_by_session_token(db, session_token)


async def require_user(
    current_user: Optional[User] = Depends(get_current_user)
) -> User:
    """Require a logged-in user."""
    if not current_user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return current_user


async def require_admin(
    current_user: User = Depends(require_user)
) -> User:
    """Require an admin user."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


async def require_operator(
    current_user: User = Depends(require_user)
) -> User:
    """Require a user allowed to drive matches (admin, manager, commentator)."""
    if current_user.role not in OPERATOR_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Operator access required"
        )
    return current_user


def ensure_team_access(user: User, team_id: int) -> None:
    """Admins manage every team, managers only their own."""
    if user.is_admin:
        return
    if user.role == "manager" and user.team_id == team_id:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not allowed to manage this team"
    )
