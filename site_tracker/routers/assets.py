from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from site_tracker.audit import record_activity
from site_tracker.db import get_db
from site_tracker.errors import NotFoundError
from site_tracker.models import Asset, RelatedEntityType, User
from site_tracker.repositories import assets as repo
from site_tracker.routers.common import request_id
from site_tracker.schemas import AssetCreate, AssetRead, AssetUpdate
from site_tracker.security import require_editor, require_user

router = APIRouter(prefix="/api/assets", tags=["assets"])


@router.get("", response_model=list[AssetRead], dependencies=[Depends(require_user)])
def list_assets(db: Session = Depends(get_db)) -> list[Asset]:
    return repo.list_assets(db)


@router.get("/{asset_pk}", response_model=AssetRead, dependencies=[Depends(require_user)])
def get_asset(asset_pk: int, db: Session = Depends(get_db)) -> Asset:
    asset = repo.get_asset(db, asset_pk)
    if asset is None:
        raise NotFoundError("Asset")
    return asset


@router.post("", response_model=AssetRead, status_code=status.HTTP_201_CREATED)
def create_asset(
    payload: AssetCreate,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> Asset:
    asset = repo.create_asset(db, payload)
    record_activity(
        db,
        activity_type="asset_creation",
        description=f"Asset {asset.name} ({asset.asset_id}) created",
        entity_type=RelatedEntityType.ASSET,
        entity_id=asset.id,
        performed_by=actor.id,
        metadata={"site_id": asset.site_id, "condition": asset.condition.value},
        request_id=request_id(request),
    )
    return asset


@router.patch("/{asset_pk}", response_model=AssetRead)
def update_asset(
    asset_pk: int,
    payload: AssetUpdate,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> Asset:
    asset = repo.update_asset(db, asset_pk, payload)
    changed = sorted(payload.model_fields_set)
    if changed:
        record_activity(
            db,
            activity_type="asset_update",
            description=f"Asset {asset.name} ({asset.asset_id}) updated",
            entity_type=RelatedEntityType.ASSET,
            entity_id=asset.id,
            performed_by=actor.id,
            metadata={"fields": changed},
            request_id=request_id(request),
        )
    return asset


@router.delete("/{asset_pk}", status_code=status.HTTP_204_NO_CONTENT)
def delete_asset(
    asset_pk: int,
    request: Request,
    actor: User = Depends(require_editor),
    db: Session = Depends(get_db),
) -> None:
    if not repo.delete_asset(db, asset_pk):
        raise NotFoundError("Asset")
    record_activity(
        db,
        activity_type="asset_deletion",
        description=f"Asset {asset_pk} deleted",
        entity_type=RelatedEntityType.ASSET,
        entity_id=asset_pk,
        performed_by=actor.id,
        request_id=request_id(request),
    )
