from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from site_tracker.audit import record_activity
from site_tracker.db import get_db
from site_tracker.errors import ApiError, ConflictError, NotFoundError
from site_tracker.models import RelatedEntityType, User
from site_tracker.repositories import activities as activity_repo
from site_tracker.repositories import users as repo
from site_tracker.routers.common import request_id
from site_tracker.schemas import (
    ActivityCreate,
    ActivityRead,
    UserActivityCreate,
    UserCreate,
    UserRead,
    UserUpdate,
)
from site_tracker.security import is_admin, require_admin, require_user

router = APIRouter(prefix="/api/users", tags=["users"])

_SELF_PROTECTED_FIELDS = frozenset({"role", "status"})


def _assert_admin_or_self(actor: User, user_id: int) -> None:
    if actor.id != user_id and not is_admin(actor):
        raise ApiError(status_code=403, code="FORBIDDEN", message="Insufficient permissions.")


def _require_user_row(db: Session, user_id: int) -> User:
    user = repo.get_user(db, user_id)
    if user is None:
        raise NotFoundError("User")
    return user


@router.get("", response_model=list[UserRead], dependencies=[Depends(require_admin)])
def list_users(db: Session = Depends(get_db)) -> list[User]:
    return repo.list_users(db)


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    actor: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> User:
    _assert_admin_or_self(actor, user_id)
    return _require_user_row(db, user_id)


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    request: Request,
    actor: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> User:
    user = repo.create_user(db, payload)
    record_activity(
        db,
        activity_type="user_creation",
        description=f"User {user.username} created",
        entity_type=RelatedEntityType.USER,
        entity_id=user.id,
        performed_by=actor.id,
        metadata={"role": user.role.value},
        request_id=request_id(request),
    )
    return user


@router.patch("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    actor: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> User:
    _assert_admin_or_self(actor, user_id)
    # Applies to admins too, so the last admin cannot lock themselves out.
    if actor.id == user_id and payload.model_fields_set & _SELF_PROTECTED_FIELDS:
        raise ApiError(
            status_code=403,
            code="FORBIDDEN",
            message="You cannot change your own role or status.",
        )

    user = repo.update_user(db, user_id, payload)
    changed = sorted(payload.model_fields_set)
    if changed:
        record_activity(
            db,
            activity_type="user_update",
            description=f"User {user.username} updated",
            entity_type=RelatedEntityType.USER,
            entity_id=user.id,
            performed_by=actor.id,
            metadata={"fields": changed},
            request_id=request_id(request),
        )
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    request: Request,
    actor: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> None:
    if actor.id == user_id:
        raise ConflictError("You cannot delete your own account", code="SELF_DELETE")
    if not repo.delete_user(db, user_id):
        raise NotFoundError("User")
    record_activity(
        db,
        activity_type="user_deletion",
        description=f"User {user_id} deleted",
        entity_type=RelatedEntityType.USER,
        entity_id=user_id,
        performed_by=actor.id,
        request_id=request_id(request),
    )


@router.get("/{user_id}/activities", response_model=list[ActivityRead])
def list_user_activities(
    user_id: int,
    actor: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> list[ActivityRead]:
    _assert_admin_or_self(actor, user_id)
    _require_user_row(db, user_id)
    return [ActivityRead.from_activity(item) for item in activity_repo.list_activities_for_user(db, user_id)]


@router.post("/{user_id}/activities", response_model=ActivityRead, status_code=status.HTTP_201_CREATED)
def create_user_activity(
    user_id: int,
    payload: UserActivityCreate,
    actor: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> ActivityRead:
    _assert_admin_or_self(actor, user_id)
    _require_user_row(db, user_id)
    activity = activity_repo.create_activity(
        db,
        ActivityCreate(
            type=payload.type,
            description=payload.description,
            related_entity_type=RelatedEntityType.USER,
            related_entity_id=user_id,
            performed_by=user_id,
            metadata=payload.metadata,
        ),
    )
    return ActivityRead.from_activity(activity)
