"""Activity log schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from ...models import ActivityLog


class ActivityEntryResponse(BaseModel):
    id: str
    action: str
    resource_type: str
    resource_id: str
    old_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    created_at: datetime
    user_id: Optional[str] = None
    user_name: Optional[str] = None

    @classmethod
    def from_model(cls, log: ActivityLog) -> "ActivityEntryResponse":
        return cls(
            id=log.id,
            action=log.action,
            resource_type=log.resource_type,
            resource_id=log.resource_id,
            old_values=log.old_values,
            new_values=log.new_values,
            created_at=log.created_at,
            user_id=log.user_id,
            user_name=log.user.full_name if log.user else None,
        )
