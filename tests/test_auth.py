import pytest
from sqlmodel import Session

from app.models import User
from app.services.auth import (
    authenticate_user,
    create_session,
    create_user,
    delete_session,
    ensure_admin,
    get_user_by_session_token,
    hash_password,
    verify_password,
)


def test_password_hashing():
    password = "secure_password_123"
    hashed = hash_password(password)

    assert hashed != password
    assert isinstance(hashed, str)
    assert verify_password(password, hashed) is True
    assert verify_password("wrong_password", hashed) is False


def test_password_long_truncation():
    # bcrypt only looks at the first 72 bytes
    long_password = "a" * 100
    hashed = hash_password(long_password)

    assert verify_password(long_password, hashed) is True
    assert verify_password("a" * 72, hashed) is True
    assert verify_password("b" * 72, hashed) is False


def test_authenticate_user(session: Session):
    create_user(session, "ref", "whistle", role="commentator")

    assert authenticate_user(session, "ref", "whistle").username == "ref"
    assert authenticate_user(session, "ref", "flag") is None
    assert authenticate_user(session, "nobody", "whistle") is None


def test_unknown_role_rejected(session: Session):
    with pytest.raises(ValueError):
        create_user(session, "ghost", "boo", role="owner")


def test_session_lifecycle(session: Session):
    user = create_user(session, "manager1", "tactics", role="manager")
    token = create_session(session, user.id)

    assert get_user_by_session_token(session, token).id == user.id

    delete_session(session, token)
    assert get_user_by_session_token(session, token) is None
    assert get_user_by_session_token(session, "made-up-token") is None


def test_ensure_admin_is_idempotent(session: Session):
    first = ensure_admin(session, "admin", "admin123")
    second = ensure_admin(session, "admin", "admin123")

    assert first.id == second.id
    assert isinstance(first, User)
    assert first.is_admin
