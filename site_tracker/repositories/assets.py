from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from site_tracker.errors import NotFoundError
from site_tracker.models import Asset
from site_tracker.repositories.base import apply_changes, commit_or_conflict, ensure_site_exists
from site_tracker.schemas import AssetCreate, AssetUpdate

_ASSET_ID_TAKEN = "Asset ID already exists"


def list_assets(db: Session) -> list[Asset]:
    return list(db.scalars(select(Asset).order_by(Asset.name.asc(), Asset.id.asc())).all())


def list_assets_for_site(db: Session, site_id: int) -> list[Asset]:
    stmt = select(Asset).where(Asset.site_id == site_id).order_by(Asset.name.asc(), Asset.id.asc())
    return list(db.scalars(stmt).all())


def get_asset(db: Session, asset_pk: int) -> Asset | None:
    return db.get(Asset, asset_pk)


def create_asset(db: Session, payload: AssetCreate) -> Asset:
    ensure_site_exists(db, payload.site_id)

    data = payload.model_dump()
    data["serial_numbers"] = data.get("serial_numbers") or []
    asset = Asset(**data)
    db.add(asset)
    commit_or_conflict(db, _ASSET_ID_TAKEN, code="ASSET_ID_TAKEN")
    db.refresh(asset)
    return asset


def update_asset(db: Session, asset_pk: int, payload: AssetUpdate) -> Asset:
    asset = db.get(Asset, asset_pk)
    if asset is None:
        raise NotFoundError("Asset")

    changes = payload.changes()
    if not changes:
        return asset

    if "site_id" in changes:
        ensure_site_exists(db, changes["site_id"])
    if "serial_numbers" in changes and changes["serial_numbers"] is None:
        changes["serial_numbers"] = []

    apply_changes(asset, changes)
    commit_or_conflict(db, _ASSET_ID_TAKEN, code="ASSET_ID_TAKEN")
    db.refresh(asset)
    return asset


def delete_asset(db: Session, asset_pk: int) -> bool:
    asset = db.get(Asset, asset_pk)
    if asset is None:
        return False
    db.delete(asset)
    db.commit()
    return True
