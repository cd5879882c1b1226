from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from site_tracker.audit import record_activity
from site_tracker.db import get_db
from site_tracker.errors import NotFoundError
from site_tracker.models import District, RelatedEntityType, User
from site_tracker.repositories import districts as repo
from site_tracker.routers.common import request_id
from site_tracker.schemas import DistrictCreate, DistrictRead, DistrictUpdate
from site_tracker.security import require_manager, require_user

router = APIRouter(prefix="/api/districts", tags=["districts"])


@router.get("", response_model=list[DistrictRead], dependencies=[Depends(require_user)])
def list_districts(db: Session = Depends(get_db)) -> list[District]:
    return repo.list_districts(db)


@router.get("/{district_id}", response_model=DistrictRead, dependencies=[Depends(require_user)])
def get_district(district_id: int, db: Session = Depends(get_db)) -> District:
    district = repo.get_district(db, district_id)
    if district is None:
        raise NotFoundError("District")
    return district


@router.post("", response_model=DistrictRead, status_code=status.HTTP_201_CREATED)
def create_district(
    payload: DistrictCreate,
    request: Request,
    actor: User = Depends(require_manager),
    db: Session = Depends(get_db),
) -> District:
    district = repo.create_district(db, payload)
    record_activity(
        db,
        activity_type="district_creation",
        description=f"District {district.name} created",
        entity_type=RelatedEntityType.DISTRICT,
        entity_id=district.id,
        performed_by=actor.id,
        request_id=request_id(request),
    )
    return district


@router.patch("/{district_id}", response_model=DistrictRead)
def update_district(
    district_id: int,
    payload: DistrictUpdate,
    request: Request,
    actor: User = Depends(require_manager),
    db: Session = Depends(get_db),
) -> District:
    district = repo.update_district(db, district_id, payload)
    changed = sorted(payload.model_fields_set)
    if changed:
        record_activity(
            db,
            activity_type="district_update",
            description=f"District {district.name} updated",
            entity_type=RelatedEntityType.DISTRICT,
            entity_id=district.id,
            performed_by=actor.id,
            metadata={"fields": changed},
            request_id=request_id(request),
        )
    return district


@router.delete("/{district_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_district(
    district_id: int,
    request: Request,
    actor: User = Depends(require_manager),
    db: Session = Depends(get_db),
) -> None:
    if not repo.delete_district(db, district_id):
        raise NotFoundError("District")
    record_activity(
        db,
        activity_type="district_deletion",
        description=f"District {district_id} deleted",
        entity_type=RelatedEntityType.DISTRICT,
        entity_id=district_id,
        performed_by=actor.id,
        request_id=request_id(request),
    )
