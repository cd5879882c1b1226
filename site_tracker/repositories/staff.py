from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from site_tracker.errors import NotFoundError
from site_tracker.models import Staff
from site_tracker.repositories.base import apply_changes, commit_or_conflict, ensure_site_exists
from site_tracker.schemas import StaffCreate, StaffUpdate

_STAFF_ID_TAKEN = "Staff ID already exists"


def _ordered():
    return select(Staff).order_by(Staff.last_name.asc(), Staff.first_name.asc(), Staff.id.asc())


def list_staff(db: Session) -> list[Staff]:
    return list(db.scalars(_ordered()).all())


def list_staff_for_site(db: Session, site_id: int) -> list[Staff]:
    return list(db.scalars(_ordered().where(Staff.site_id == site_id)).all())


def get_staff(db: Session, staff_pk: int) -> Staff | None:
    return db.get(Staff, staff_pk)


def create_staff(db: Session, payload: StaffCreate) -> Staff:
    ensure_site_exists(db, payload.site_id)

    member = Staff(**payload.model_dump())
    db.add(member)
    commit_or_conflict(db, _STAFF_ID_TAKEN, code="STAFF_ID_TAKEN")
    db.refresh(member)
    return member


def update_staff(db: Session, staff_pk: int, payload: StaffUpdate) -> Staff:
    member = db.get(Staff, staff_pk)
    if member is None:
        raise NotFoundError("Staff member")

    changes = payload.changes()
    if not changes:
        return member

    if "site_id" in changes:
        ensure_site_exists(db, changes["site_id"])

    apply_changes(member, changes)
    commit_or_conflict(db, _STAFF_ID_TAKEN, code="STAFF_ID_TAKEN")
    db.refresh(member)
    return member


def delete_staff(db: Session, staff_pk: int) -> bool:
    member = db.get(Staff, staff_pk)
    if member is None:
        return False
    db.delete(member)
    db.commit()
    return True
