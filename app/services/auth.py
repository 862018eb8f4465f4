import logging
import secrets
from datetime import datetime, timedelta, UTC
from typing import Optional
import bcrypt
from sqlmodel import Session, select

from ..models.user import User
from ..models.session import UserSession
from ..config import SESSION_EXPIRE_DAYS

logger = logging.getLogger(__name__)

ROLES = ("admin", "manager", "commentator", "viewer")


def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(_password_bytes(password), salt).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against its hash."""
    return bcrypt.checkpw(_password_bytes(password), hashed.encode())


def create_session(db: Session, user_id: int) -> str:
    """Create a new session for a user and return the session token."""
    session_token = secrets.token_urlsafe(32)
    expires_at = datetime.now(UTC) + timedelta(days=SESSION_EXPIRE_DAYS)

    user_session = UserSession(
        user_id=user_id,
        session_token=session_token,
        expires_at=expires_at
    )
    db.add(user_session)
    db.commit()

    return session_token


def delete_session(db: Session, session_token: str) -> None:
    """Delete a session (logout)."""
    statement = select(UserSession).where(UserSession.session_token == session_token)
    user_session = db.exec(statement).first()
    if user_session:
        db.delete(user_session)
        db.commit()


def get_user_by_session_token(db: Session, session_token: str) -> Optional[User]:
    """Get the user of a session token if the session is still valid."""
    statement = select(UserSession).where(
        UserSession.session_token == session_token,
        UserSession.expires_at > datetime.now(UTC)
    )
    user_session = db.exec(statement).first()
    if not user_session:
        return None
    return db.get(User, user_session.user_id)


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    statement = select(User).where(User.username == username)
    return db.exec(statement).first()


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
    """Authenticate a user by username and password."""
    user = get_user_by_username(db, username)
    if not user or not verify_password(password, user.password_hash):
        logger.warning("Failed login for %s", username)
        return None
    return user


def create_user(
    db: Session,
    username: str,
    password: str,
    role: str = "viewer",
    display_name: Optional[str] = None,
    team_id: Optional[int] = None
) -> User:
    """Create a new user."""
    if role not in ROLES:
        raise ValueError(f"Unknown role '{role}'")

    user = User(
        username=username,
        password_hash=hash_password(password),
        display_name=display_name or username,
        role=role,
        team_id=team_id
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def ensure_admin(db: Session, username: str, password: str) -> User:
    """Create the bootstrap admin account if it does not exist yet."""
    admin_user = get_user_by_username(db, username)
    if not admin_user:
        admin_user = create_user(db, username, password, role="admin")
        logger.info("Created bootstrap admin '%s'", username)
    return admin_user
