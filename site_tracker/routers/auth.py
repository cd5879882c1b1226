from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from site_tracker.audit import record_activity
from site_tracker.db import get_db
from site_tracker.errors import ApiError
from site_tracker.models import RelatedEntityType, User
from site_tracker.repositories.users import authenticate_user
from site_tracker.routers.common import client_ip, request_id, user_agent
from site_tracker.schemas import LoginRequest, LoginResponse, UserRead
from site_tracker.security import (
    create_access_token,
    ensure_login_attempt_allowed,
    register_login_failure,
    register_login_success,
    require_user,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger("site_tracker.auth")


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> LoginResponse:
    ip = client_ip(request)
    request.state.actor = "anonymous"
    request.state.actor_id = payload.username

    if ip:
        ensure_login_attempt_allowed(ip)

    try:
        user = authenticate_user(db, payload.username, payload.password)
    except ApiError as exc:
        if ip and exc.code == "INVALID_CREDENTIALS":
            register_login_failure(ip)
        raise

    if ip:
        register_login_success(ip)

    token, expires_in, claims = create_access_token(user)
    request.state.actor = "user"
    request.state.actor_id = str(user.id)

    logger.info(
        "login_succeeded",
        extra={"request_id": request_id(request), "user_id": user.id, "jti": claims["jti"]},
    )
    record_activity(
        db,
        activity_type="user_login",
        description=f"User {user.username} logged in",
        entity_type=RelatedEntityType.USER,
        entity_id=user.id,
        performed_by=user.id,
        metadata={"ip": ip, "user_agent": user_agent(request)},
        request_id=request_id(request),
    )

    return LoginResponse(token=token, expires_in=expires_in, user=UserRead.model_validate(user))


@router.get("/me", response_model=UserRead)
def me(user: User = Depends(require_user)) -> User:
    return user
