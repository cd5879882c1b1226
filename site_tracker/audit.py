from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from site_tracker.models import Activity, RelatedEntityType

logger = logging.getLogger("site_tracker.audit")


def record_activity(
    db: Session,
    *,
    activity_type: str,
    description: str,
    entity_type: RelatedEntityType | None = None,
    entity_id: int | None = None,
    performed_by: int | None = None,
    metadata: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> Activity | None:
    """Append an activity row for a mutation that has already been committed.

    A failed write is rolled back and logged; it never undoes the mutation.
    """
    activity = Activity(
        type=activity_type,
        description=description,
        related_entity_type=entity_type,
        related_entity_id=entity_id,
        performed_by=performed_by,
        activity_metadata=metadata or {},
    )
    db.add(activity)
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(
            "activity_write_failed",
            extra={
                "request_id": request_id,
                "activity_type": activity_type,
                "entity_type": entity_type.value if entity_type else None,
                "entity_id": entity_id,
                "performed_by": performed_by,
            },
        )
        return None

    logger.info(
        "activity_recorded",
        extra={
            "request_id": request_id,
            "activity_type": activity_type,
            "entity_type": entity_type.value if entity_type else None,
            "entity_id": entity_id,
            "performed_by": performed_by,
        },
    )
    return activity
