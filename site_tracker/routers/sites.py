from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from site_tracker.audit import record_activity
from site_tracker.db import get_db
from site_tracker.errors import NotFoundError
from site_tracker.models import Asset, Program, RelatedEntityType, Site, Staff, User
from site_tracker.repositories import activities as activity_repo
from site_tracker.repositories import assets as asset_repo
from site_tracker.repositories import programs as program_repo
from site_tracker.repositories import sites as repo
from site_tracker.repositories import staff as staff_repo
from site_tracker.routers.common import request_id
from site_tracker.schemas import (
    ActivityRead,
    AssetRead,
    ProgramRead,
    SiteCreate,
    SiteImagesAppendRequest,
    SiteRead,
    SiteUpdate,
    StaffRead,
)
from site_tracker.security import require_editor, require_user

router = APIRouter(prefix="/api/sites", tags=["sites"])


def _require_site(db: Session, site_id: int) -> Site:
    site = repo.get_site(db, site_id)
    if site is None:
        raise NotFoundError("Site")
    return site


@router.get("", response_model=list[SiteRead], dependencies=[Depends(require_user)])
def list_sites(db: Session = Depends(get_db)) -> list[Site]:
    return repo.list_sites(db)


@router.get("/{site_id}", response_model=SiteRead, dependencies=[Depends(require_user)])
def get_site(site_id: int, db: Session = Depends(get_db)) -> Site:
    return _require_site(db, site_id)


@router.post("", response_model=SiteRead, status_code=status.HTTP_201_CREATED)
def create_site(
    payload: SiteCreate,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> Site:
    if payload.created_by is None:
        payload = payload.model_copy(update={"created_by": actor.id})
    site = repo.create_site(db, payload)
    record_activity(
        db,
        activity_type="site_creation",
        description=f"Site {site.name} ({site.site_id}) created",
        entity_type=RelatedEntityType.SITE,
        entity_id=site.id,
        performed_by=actor.id,
        metadata={"district": site.district},
        request_id=request_id(request),
    )
    return site


@router.patch("/{site_id}", response_model=SiteRead)
def update_site(
    site_id: int,
    payload: SiteUpdate,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> Site:
    site = repo.update_site(db, site_id, payload, visited_by=actor.id)
    changed = sorted(payload.model_fields_set)
    if changed:
        record_activity(
            db,
            activity_type="site_update",
            description=f"Site {site.name} ({site.site_id}) updated",
            entity_type=RelatedEntityType.SITE,
            entity_id=site.id,
            performed_by=actor.id,
            metadata={"fields": changed},
            request_id=request_id(request),
        )
    return site


@router.delete("/{site_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_site(
    site_id: int,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> None:
    if not repo.delete_site(db, site_id):
        raise NotFoundError("Site")
    record_activity(
        db,
        activity_type="site_deletion",
        description=f"Site {site_id} deleted",
        entity_type=RelatedEntityType.SITE,
        entity_id=site_id,
        performed_by=actor.id,
        request_id=request_id(request),
    )


@router.get("/{site_id}/staff", response_model=list[StaffRead], dependencies=[Depends(require_user)])
def list_site_staff(site_id: int, db: Session = Depends(get_db)) -> list[Staff]:
    _require_site(db, site_id)
    return staff_repo.list_staff_for_site(db, site_id)


@router.get("/{site_id}/assets", response_model=list[AssetRead], dependencies=[Depends(require_user)])
def list_site_assets(site_id: int, db: Session = Depends(get_db)) -> list[Asset]:
    _require_site(db, site_id)
    return asset_repo.list_assets_for_site(db, site_id)


@router.get("/{site_id}/programs", response_model=list[ProgramRead], dependencies=[Depends(require_user)])
def list_site_programs(site_id: int, db: Session = Depends(get_db)) -> list[Program]:
    _require_site(db, site_id)
    return program_repo.list_programs_for_site(db, site_id)


@router.get("/{site_id}/activities", response_model=list[ActivityRead], dependencies=[Depends(require_user)])
def list_site_activities(site_id: int, db: Session = Depends(get_db)) -> list[ActivityRead]:
    _require_site(db, site_id)
    activities = activity_repo.list_activities_for_entity(db, RelatedEntityType.SITE, site_id)
    return [ActivityRead.from_activity(item) for item in activities]


@router.post("/{site_id}/images", response_model=SiteRead, status_code=status.HTTP_201_CREATED)
def add_site_images(
    site_id: int,
    payload: SiteImagesAppendRequest,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> Site:
    site = repo.append_site_images(db, site_id, payload.urls)
    record_activity(
        db,
        activity_type="photo_upload",
        description=f"{len(payload.urls)} photo(s) added to site {site.name}",
        entity_type=RelatedEntityType.SITE,
        entity_id=site.id,
        performed_by=actor.id,
        metadata={"urls": payload.urls},
        request_id=request_id(request),
    )
    return site


@router.delete("/{site_id}/images/{index}", response_model=SiteRead)
def delete_site_image(
    site_id: int,
    index: int,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> Site:
    site, removed = repo.remove_site_image(db, site_id, index)
    record_activity(
        db,
        activity_type="photo_delete",
        description=f"Photo removed from site {site.name}",
        entity_type=RelatedEntityType.SITE,
        entity_id=site.id,
        performed_by=actor.id,
        metadata={"url": removed, "index": index},
        request_id=request_id(request),
    )
    return site
