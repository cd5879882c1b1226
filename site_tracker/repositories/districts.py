from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from site_tracker.errors import ConflictError, NotFoundError
from site_tracker.models import District, Site
from site_tracker.repositories.base import apply_changes, commit_or_conflict
from site_tracker.schemas import DistrictCreate, DistrictUpdate


def list_districts(db: Session) -> list[District]:
    return list(db.scalars(select(District).order_by(District.name.asc(), District.id.asc())).all())


def get_district(db: Session, district_id: int) -> District | None:
    return db.get(District, district_id)


def create_district(db: Session, payload: DistrictCreate) -> District:
    district = District(**payload.model_dump())
    db.add(district)
    commit_or_conflict(db, "District already exists")
    db.refresh(district)
    return district


def update_district(db: Session, district_id: int, payload: DistrictUpdate) -> District:
    district = db.get(District, district_id)
    if district is None:
        raise NotFoundError("District")

    changes = payload.changes()
    if not changes:
        return district

    old_name = district.name
    apply_changes(district, changes)
    if district.name != old_name:
        # Sites reference districts by name; keep them attached.
        db.execute(update(Site).where(Site.district == old_name).values(district=district.name))
    commit_or_conflict(db, "District already exists")
    db.refresh(district)
    return district


def count_sites_in_district(db: Session, name: str) -> int:
    return int(db.scalar(select(func.count()).select_from(Site).where(Site.district == name)) or 0)


def delete_district(db: Session, district_id: int) -> bool:
    district = db.get(District, district_id)
    if district is None:
        return False

    site_count = count_sites_in_district(db, district.name)
    if site_count:
        raise ConflictError(
            f"Cannot delete district '{district.name}': {site_count} site(s) still reference it",
            code="DISTRICT_HAS_SITES",
        )

    db.delete(district)
    db.commit()
    return True
