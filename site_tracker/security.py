from __future__ import annotations

import threading
from collections import defaultdict, deque
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any
from uuid import uuid4

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from passlib.exc import UnknownHashError
from sqlalchemy.orm import Session

from site_tracker.db import get_db
from site_tracker.errors import ApiError
from site_tracker.models import User, UserRole, UserStatus
from site_tracker.settings import get_settings

bearer_scheme = HTTPBearer(auto_error=False)

_LOCK = threading.Lock()
_FAILED_ATTEMPTS: dict[str, deque[datetime]] = defaultdict(deque)
_MAX_ATTEMPTS = 10
_ATTEMPT_WINDOW = timedelta(minutes=10)

EDITOR_ROLES: tuple[UserRole, ...] = (
    UserRole.ADMIN,
    UserRole.PROJECT_MANAGER,
    UserRole.DATA_ANALYST,
    UserRole.FIELD_ASSESSOR,
)
MANAGER_ROLES: tuple[UserRole, ...] = (UserRole.ADMIN, UserRole.PROJECT_MANAGER)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@lru_cache
def _password_context(rounds: int) -> CryptContext:
    return CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)


def pwd_context() -> CryptContext:
    return _password_context(get_settings().password_hash_rounds)


def _cleanup_attempts(ip: str, now: datetime) -> None:
    queue = _FAILED_ATTEMPTS[ip]
    threshold = now - _ATTEMPT_WINDOW
    while queue and queue[0] < threshold:
        queue.popleft()
    if not queue:
        _FAILED_ATTEMPTS.pop(ip, None)


def ensure_login_attempt_allowed(ip: str) -> None:
    now = _utcnow()
    with _LOCK:
        _cleanup_attempts(ip, now)
        queue = _FAILED_ATTEMPTS.get(ip, deque())
        if len(queue) >= _MAX_ATTEMPTS:
            raise ApiError(
                status_code=429,
                code="TOO_MANY_ATTEMPTS",
                message="Too many failed login attempts. Please try again later.",
            )


def register_login_failure(ip: str) -> None:
    now = _utcnow()
    with _LOCK:
        _cleanup_attempts(ip, now)
        _FAILED_ATTEMPTS[ip].append(now)


def register_login_success(ip: str) -> None:
    with _LOCK:
        _FAILED_ATTEMPTS.pop(ip, None)


def reset_login_attempts() -> None:
    with _LOCK:
        _FAILED_ATTEMPTS.clear()


def hash_password(password: str) -> str:
    return pwd_context().hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context().verify(password, password_hash)
    except (ValueError, TypeError, UnknownHashError):
        # Malformed or foreign hashes count as a mismatch.
        return False


def ensure_status_allows_access(user: User) -> None:
    if user.status == UserStatus.SUSPENDED:
        raise ApiError(
            status_code=403,
            code="ACCOUNT_SUSPENDED",
            message="Account is suspended. Please contact administrator.",
        )
    if user.status == UserStatus.INACTIVE:
        raise ApiError(
            status_code=403,
            code="ACCOUNT_INACTIVE",
            message="Account is inactive. Please contact administrator.",
        )


def create_access_token(user: User) -> tuple[str, int, dict[str, Any]]:
    settings = get_settings()
    now = _utcnow()
    expires_in = settings.access_token_hours * 3600
    claims: dict[str, Any] = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role.value,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
        "jti": str(uuid4()),
    }
    token = jwt.encode(claims, settings.jwt_secret, algorithm="HS256")
    return token, expires_in, claims


def decode_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"require_sub": True, "require_iat": True, "require_exp": True},
        )
    except ExpiredSignatureError as exc:
        raise ApiError(status_code=401, code="TOKEN_EXPIRED", message="Token has expired.") from exc
    except JWTError as exc:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token is invalid.") from exc

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject.isdigit():
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token subject is invalid.")

    return payload


def require_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Authentication required.")

    payload = decode_token(credentials.credentials)

    # Role and status come from the live row so changes apply before expiry.
    user = db.get(User, int(payload["sub"]))
    if user is None:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="User no longer exists.")
    ensure_status_allows_access(user)

    request.state.actor = "user"
    request.state.actor_id = str(user.id)
    return user


def require_roles(*roles: UserRole) -> Callable[..., User]:
    allowed = frozenset(roles)
    if not allowed:
        raise ValueError("At least one role is required")

    def _dependency(user: User = Depends(require_user)) -> User:
        if user.role not in allowed:
            raise ApiError(status_code=403, code="FORBIDDEN", message="Insufficient permissions.")
        return user

    return _dependency


def is_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN


require_admin = require_roles(UserRole.ADMIN)
require_manager = require_roles(*MANAGER_ROLES)
require_editor = require_roles(*EDITOR_ROLES)
