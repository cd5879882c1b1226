from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from site_tracker.db import get_db
from site_tracker.models import User
from site_tracker.routers.common import request_id
from site_tracker.security import require_user
from site_tracker.services.exports import build_site_inventory_xlsx_bytes

router = APIRouter(prefix="/api/exports", tags=["exports"])
logger = logging.getLogger("site_tracker.exports")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/sites.xlsx")
def export_sites_xlsx(
    request: Request,
    district: str | None = Query(default=None),
    actor: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> Response:
    payload = build_site_inventory_xlsx_bytes(db, district=district)
    logger.info(
        "site_inventory_exported",
        extra={"request_id": request_id(request), "user_id": actor.id, "district": district},
    )

    stamp = datetime.now(timezone.utc).strftime("%Y%m%d")
    return Response(
        content=payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="site-inventory-{stamp}.xlsx"'},
    )
