from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from site_tracker.audit import record_activity
from site_tracker.db import get_db
from site_tracker.errors import NotFoundError
from site_tracker.models import RelatedEntityType, Staff, User
from site_tracker.repositories import staff as repo
from site_tracker.routers.common import request_id
from site_tracker.schemas import StaffCreate, StaffRead, StaffUpdate
from site_tracker.security import require_editor, require_user

router = APIRouter(prefix="/api/staff", tags=["staff"])


@router.get("", response_model=list[StaffRead], dependencies=[Depends(require_user)])
def list_staff(db: Session = Depends(get_db)) -> list[Staff]:
    return repo.list_staff(db)


@router.get("/{staff_pk}", response_model=StaffRead, dependencies=[Depends(require_user)])
def get_staff(staff_pk: int, db: Session = Depends(get_db)) -> Staff:
    member = repo.get_staff(db, staff_pk)
    if member is None:
        raise NotFoundError("Staff member")
    return member


@router.post("", response_model=StaffRead, status_code=status.HTTP_201_CREATED)
def create_staff(
    payload: StaffCreate,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> Staff:
    member = repo.create_staff(db, payload)
    record_activity(
        db,
        activity_type="staff_creation",
        description=f"Staff member {member.first_name} {member.last_name} added",
        entity_type=RelatedEntityType.STAFF,
        entity_id=member.id,
        performed_by=actor.id,
        metadata={"site_id": member.site_id},
        request_id=request_id(request),
    )
    return member


@router.patch("/{staff_pk}", response_model=StaffRead)
def update_staff(
    staff_pk: int,
    payload: StaffUpdate,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> Staff:
    member = repo.update_staff(db, staff_pk, payload)
    changed = sorted(payload.model_fields_set)
    if changed:
        record_activity(
            db,
            activity_type="staff_update",
            description=f"Staff member {member.first_name} {member.last_name} updated",
            entity_type=RelatedEntityType.STAFF,
            entity_id=member.id,
            performed_by=actor.id,
            metadata={"fields": changed},
            request_id=request_id(request),
        )
    return member


@router.delete("/{staff_pk}", status_code=status.HTTP_204_NO_CONTENT)
def delete_staff(
    staff_pk: int,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> None:
    if not repo.delete_staff(db, staff_pk):
        raise NotFoundError("Staff member")
    record_activity(
        db,
        activity_type="staff_deletion",
        description=f"Staff member {staff_pk} removed",
        entity_type=RelatedEntityType.STAFF,
        entity_id=staff_pk,
        performed_by=actor.id,
        request_id=request_id(request),
    )
