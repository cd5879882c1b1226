from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from site_tracker.db import get_db
from site_tracker.errors import NotFoundError
from site_tracker.models import User
from site_tracker.repositories import activities as repo
from site_tracker.schemas import ActivityCreate, ActivityMetadataUpdate, ActivityRead
from site_tracker.security import require_admin, require_editor, require_user

router = APIRouter(prefix="/api/activities", tags=["activities"])


@router.get("", response_model=list[ActivityRead], dependencies=[Depends(require_user)])
def list_activities(
    limit: int = Query(default=repo.DEFAULT_LIMIT, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[ActivityRead]:
    return [ActivityRead.from_activity(item) for item in repo.list_activities(db, limit=limit)]


@router.get("/{activity_id}", response_model=ActivityRead, dependencies=[Depends(require_user)])
def get_activity(activity_id: int, db: Session = Depends(get_db)) -> ActivityRead:
    activity = repo.get_activity(db, activity_id)
    if activity is None:
        raise NotFoundError("Activity")
    return ActivityRead.from_activity(activity)


@router.post("", response_model=ActivityRead, status_code=status.HTTP_201_CREATED)
def create_activity(
    payload: ActivityCreate,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> ActivityRead:
    if payload.performed_by is None:
        payload = payload.model_copy(update={"performed_by": actor.id})
    return ActivityRead.from_activity(repo.create_activity(db, payload))


@router.patch("/{activity_id}", response_model=ActivityRead, dependencies=[Depends(require_editor)])
def update_activity_metadata(
    activity_id: int,
    payload: ActivityMetadataUpdate,
    db: Session = Depends(get_db),
) -> ActivityRead:
    return ActivityRead.from_activity(repo.merge_activity_metadata(db, activity_id, payload.metadata))


@router.delete("/{activity_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
def delete_activity(activity_id: int, db: Session = Depends(get_db)) -> None:
    if not repo.delete_activity(db, activity_id):
        raise NotFoundError("Activity")
