"""
Activity log service

Audit entries are written after the response has been sent, on their own
session. A failed write is reported on this module's logger and never
reaches the request that triggered it.
"""

import logging
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from ... import database
from .repository import ActivityRepository
from .schemas import ActivityEntryResponse

logger = logging.getLogger(__name__)

CONSULTATION = "consultation"
PAYMENT = "payment"


def record_activity(
    user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: str,
    old_values: Optional[dict[str, Any]] = None,
    new_values: Optional[dict[str, Any]] = None,
) -> bool:
    """
    Persist one audit entry. Meant to run as a FastAPI background task.

    Returns:
        True if the entry was written, False if the write failed
    """
    db = None
    try:
        db = database.SessionLocal()
        ActivityRepository.create(
            db,
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values=jsonable_encoder(old_values) if old_values is not None else None,
            new_values=jsonable_encoder(new_values) if new_values is not None else None,
        )
        logger.debug(f"📝 Activity recorded for {resource_type} {resource_id}: {action}")
        return True
    except Exception:
        logger.exception(f"❌ Failed to record activity for {resource_type} {resource_id}: {action}")
        if db is not None:
            db.rollback()
        return False
    finally:
        if db is not None:
            db.close()


def describe_changes(before: dict[str, Any], after: dict[str, Any]) -> Optional[tuple[str, dict, dict]]:
    """
    Diff two snapshots of the same audited fields.

    Returns (action, old_values, new_values), or None when nothing changed.
    """
    changed = [key for key in after if before.get(key) != after.get(key)]
    if not changed:
        return None

    old_values = {key: before.get(key) for key in changed}
    new_values = {key: after.get(key) for key in changed}

    parts = []
    if "status" in changed:
        parts.append(f"Estado cambiado de '{before.get('status')}' a '{after.get('status')}'")
    if "lawyer_notes" in changed:
        parts.append("Notas del abogado actualizadas")
    for key in changed:
        if key not in ("status", "lawyer_notes"):
            parts.append(f"Campo '{key}' actualizado")
    return "; ".join(parts), old_values, new_values


class ActivityService:
    """Read side of the audit trail"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ActivityRepository()

    def list_for_resource(self, resource_type: str, resource_id: str) -> list[ActivityEntryResponse]:
        return [
            ActivityEntryResponse.from_model(log)
            for log in self.repo.list_for_resource(self.db, resource_type, resource_id)
        ]
