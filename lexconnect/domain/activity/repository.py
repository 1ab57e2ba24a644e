"""Activity log repository - Database operations for the audit trail"""

from sqlalchemy.orm import Session, joinedload

from ...models import ActivityLog


class ActivityRepository:
    """Repository for activity log database operations"""

    @staticmethod
    def create(db: Session, **entry) -> ActivityLog:
        log = ActivityLog(**entry)
        db.add(log)
        db.commit()
        db.refresh(log)
        return log

    @staticmethod
    def list_for_resource(db: Session, resource_type: str, resource_id: str) -> list[ActivityLog]:
        """Entries for one resource, newest first"""
        return (
            db.query(ActivityLog)
            .options(joinedload(ActivityLog.user))
            .filter(
                ActivityLog.resource_type == resource_type,
                ActivityLog.resource_id == resource_id,
            )
            .order_by(ActivityLog.created_at.desc())
            .all()
        )
