"""Activity domain - Audit trail for consultations and payments"""

from .service import ActivityService, record_activity

__all__ = ["ActivityService", "record_activity"]
