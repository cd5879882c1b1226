from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from site_tracker.errors import ApiError, ConflictError, NotFoundError
from site_tracker.models import User
from site_tracker.repositories.base import apply_changes, commit_or_conflict
from site_tracker.schemas import UserCreate, UserUpdate
from site_tracker.security import ensure_status_allows_access, hash_password, pwd_context, verify_password

logger = logging.getLogger("site_tracker.auth")

_USERNAME_TAKEN = "Username already exists"


def list_users(db: Session) -> list[User]:
    return list(db.scalars(select(User).order_by(User.name.asc(), User.id.asc())).all())


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.scalar(select(User).where(User.username == username))


def create_user(db: Session, payload: UserCreate) -> User:
    if get_user_by_username(db, payload.username) is not None:
        raise ConflictError(_USERNAME_TAKEN, code="USERNAME_TAKEN")

    data = payload.model_dump(exclude={"password"})
    user = User(**data, password_hash=hash_password(payload.password))
    db.add(user)
    commit_or_conflict(db, _USERNAME_TAKEN, code="USERNAME_TAKEN")
    db.refresh(user)
    return user


def update_user(db: Session, user_id: int, payload: UserUpdate) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User")

    changes = payload.changes()
    password = changes.pop("password", None)
    if password:
        changes["password_hash"] = hash_password(password)
    if not changes:
        return user

    new_username = changes.get("username")
    if new_username and new_username != user.username:
        existing = get_user_by_username(db, new_username)
        if existing is not None and existing.id != user.id:
            raise ConflictError(_USERNAME_TAKEN, code="USERNAME_TAKEN")

    apply_changes(user, changes)
    commit_or_conflict(db, _USERNAME_TAKEN, code="USERNAME_TAKEN")
    db.refresh(user)
    return user


def delete_user(db: Session, user_id: int) -> bool:
    user = db.get(User, user_id)
    if user is None:
        return False
    db.delete(user)
    db.commit()
    return True


def record_login(db: Session, user: User) -> User:
    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user


def authenticate_user(db: Session, username: str, password: str) -> User:
    """Return the user for valid credentials or raise.

    Unknown usernames and wrong passwords fail identically. Account status is
    only revealed once the password has been verified.
    """
    user = get_user_by_username(db, username.strip())
    if user is None:
        pwd_context().dummy_verify()
        logger.info("login_failed", extra={"username": username, "reason": "unknown_user"})
        raise ApiError(status_code=401, code="INVALID_CREDENTIALS", message="Invalid username or password.")

    if not verify_password(password, user.password_hash):
        logger.info("login_failed", extra={"username": username, "reason": "bad_password"})
        raise ApiError(status_code=401, code="INVALID_CREDENTIALS", message="Invalid username or password.")

    ensure_status_allows_access(user)
    return record_login(db, user)
