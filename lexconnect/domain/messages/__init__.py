"""Messages domain - Client/lawyer conversation on a consultation"""

from .router import inbox_router, router
from .service import MessageService

__all__ = ["router", "inbox_router", "MessageService"]
