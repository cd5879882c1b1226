from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from site_tracker.errors import ConflictError, ReferenceNotFoundError
from site_tracker.models import District, Site

logger = logging.getLogger("site_tracker.repositories")


def commit_or_conflict(db: Session, message: str, *, code: str = "CONFLICT") -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("integrity_conflict", extra={"conflict_code": code, "detail": str(exc.orig)})
        raise ConflictError(message, code=code) from exc


def apply_changes(instance: Any, changes: dict[str, Any]) -> None:
    for field, value in changes.items():
        setattr(instance, field, value)


def ensure_district_exists(db: Session, name: str) -> None:
    exists = db.scalar(select(District.id).where(District.name == name).limit(1))
    if exists is None:
        raise ReferenceNotFoundError(f"District '{name}' not found")


def ensure_site_exists(db: Session, site_id: int | None) -> None:
    if site_id is None:
        return
    if db.get(Site, site_id) is None:
        raise ReferenceNotFoundError(f"Site {site_id} not found")
