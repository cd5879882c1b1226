from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from site_tracker.errors import InvalidRequestError, NotFoundError, ReferenceNotFoundError
from site_tracker.models import Site, User
from site_tracker.repositories.base import apply_changes, commit_or_conflict, ensure_district_exists
from site_tracker.schemas import SiteCreate, SiteUpdate

_SITE_ID_TAKEN = "Site ID already exists"


def _ensure_user_exists(db: Session, user_id: int | None) -> None:
    if user_id is not None and db.get(User, user_id) is None:
        raise ReferenceNotFoundError(f"User {user_id} not found")


def _require_site(db: Session, site_id: int) -> Site:
    site = db.get(Site, site_id)
    if site is None:
        raise NotFoundError("Site")
    return site


def list_sites(db: Session) -> list[Site]:
    return list(db.scalars(select(Site).order_by(Site.name.asc(), Site.id.asc())).all())


def get_site(db: Session, site_id: int) -> Site | None:
    return db.get(Site, site_id)


def get_site_by_code(db: Session, code: str) -> Site | None:
    return db.scalar(select(Site).where(Site.site_id == code))


def create_site(db: Session, payload: SiteCreate) -> Site:
    ensure_district_exists(db, payload.district)
    _ensure_user_exists(db, payload.created_by)

    site = Site(**payload.model_dump())
    db.add(site)
    commit_or_conflict(db, _SITE_ID_TAKEN, code="SITE_ID_TAKEN")
    db.refresh(site)
    return site


def update_site(
    db: Session,
    site_id: int,
    payload: SiteUpdate,
    *,
    visited_by: int | None = None,
) -> Site:
    site = _require_site(db, site_id)

    changes = payload.changes()
    if not changes:
        return site

    if "district" in changes:
        ensure_district_exists(db, changes["district"])

    apply_changes(site, changes)
    if visited_by is not None:
        site.last_visited_by = visited_by
        site.last_visit_date = datetime.now(timezone.utc)

    commit_or_conflict(db, _SITE_ID_TAKEN, code="SITE_ID_TAKEN")
    db.refresh(site)
    return site


def delete_site(db: Session, site_id: int) -> bool:
    site = db.get(Site, site_id)
    if site is None:
        return False
    # Staff, assets and programs are detached, not deleted.
    db.delete(site)
    db.commit()
    return True


def append_site_images(db: Session, site_id: int, urls: list[str]) -> Site:
    site = _require_site(db, site_id)
    site.images = [*(site.images or []), *urls]
    db.commit()
    db.refresh(site)
    return site


def remove_site_image(db: Session, site_id: int, index: int) -> tuple[Site, str]:
    site = _require_site(db, site_id)
    images = list(site.images or [])
    if index < 0 or index >= len(images):
        raise InvalidRequestError(f"Image index {index} is out of range", code="INVALID_IMAGE_INDEX")

    removed = images.pop(index)
    site.images = images
    db.commit()
    db.refresh(site)
    return site, removed
