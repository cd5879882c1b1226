from __future__ import annotations

from typing import Any

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from site_tracker.errors import NotFoundError, ReferenceNotFoundError
from site_tracker.models import Activity, RelatedEntityType, User
from site_tracker.repositories.base import commit_or_conflict
from site_tracker.schemas import ActivityCreate

DEFAULT_LIMIT = 200


def _newest_first():
    return select(Activity).order_by(Activity.timestamp.desc(), Activity.id.desc())


def list_activities(db: Session, *, limit: int | None = None) -> list[Activity]:
    stmt = _newest_first()
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt).all())


def list_activities_for_entity(
    db: Session,
    entity_type: RelatedEntityType,
    entity_id: int,
) -> list[Activity]:
    stmt = _newest_first().where(
        Activity.related_entity_type == entity_type,
        Activity.related_entity_id == entity_id,
    )
    return list(db.scalars(stmt).all())


def list_activities_for_user(db: Session, user_id: int) -> list[Activity]:
    """Activities the user performed, plus those recorded about the user."""
    stmt = _newest_first().where(
        or_(
            Activity.performed_by == user_id,
            and_(
                Activity.related_entity_type == RelatedEntityType.USER,
                Activity.related_entity_id == user_id,
            ),
        )
    )
    return list(db.scalars(stmt).all())


def get_activity(db: Session, activity_id: int) -> Activity | None:
    return db.get(Activity, activity_id)


def create_activity(db: Session, payload: ActivityCreate) -> Activity:
    if payload.performed_by is not None and db.get(User, payload.performed_by) is None:
        raise ReferenceNotFoundError(f"User {payload.performed_by} not found")

    activity = Activity(
        type=payload.type,
        description=payload.description,
        related_entity_type=payload.related_entity_type,
        related_entity_id=payload.related_entity_id,
        performed_by=payload.performed_by,
        activity_metadata=dict(payload.metadata),
    )
    db.add(activity)
    commit_or_conflict(db, "Activity could not be recorded")
    db.refresh(activity)
    return activity


def merge_activity_metadata(db: Session, activity_id: int, metadata: dict[str, Any]) -> Activity:
    activity = db.get(Activity, activity_id)
    if activity is None:
        raise NotFoundError("Activity")
    if not metadata:
        return activity

    # Top-level keys only; nested objects are replaced, not merged.
    activity.activity_metadata = {**(activity.activity_metadata or {}), **metadata}
    db.commit()
    db.refresh(activity)
    return activity


def delete_activity(db: Session, activity_id: int) -> bool:
    activity = db.get(Activity, activity_id)
    if activity is None:
        return False
    db.delete(activity)
    db.commit()
    return True
