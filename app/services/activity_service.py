import logging
from typing import Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.models.activity import Activity

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, int, float, bool, type(None))


def _validate_metadata(metadata: Optional[Mapping]) -> dict:
    if not metadata:
        return {}
    cleaned = {}
    for key, value in metadata.items():
        if not isinstance(key, str):
            raise ValidationError(f"Activity metadata key {key!r} must be a string")
        if not isinstance(value, _SCALAR_TYPES):
            raise ValidationError(
                f"Activity metadata value for {key!r} must be a scalar, got {type(value).__name__}"
            )
        cleaned[key] = value
    return cleaned


def log_activity(
    db: Session,
    *,
    store_id: int,
    category: str,
    action: str,
    user_id: Optional[int] = None,
    metadata: Optional[Mapping] = None,
) -> Activity:
    """Append an audit row to the caller's unit of work.

    Nothing is committed here; the row lands or disappears together with the
    change it describes.
    """
    activity = Activity(
        store_id=store_id,
        user_id=user_id,
        category=category,
        action=action,
        details=_validate_metadata(metadata),
    )
    db.add(activity)
    logger.debug("Activity %s/%s queued for store %s.", category, action, store_id)
    return activity


def recent_activities(db: Session, store_id: int, limit: int = 10) -> list[Activity]:
    rows = (
        db.execute(
            select(Activity)
            .where(Activity.store_id == store_id)
            .order_by(Activity.created_at.desc(), Activity.id.desc())
            .limit(limit)
        )
        .scalars()
        .all()
    )
    return list(rows)
