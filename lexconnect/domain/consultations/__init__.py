"""Consultations domain - Lifecycle of a client/lawyer consultation"""

from .router import router
from .service import ConsultationService

__all__ = ["router", "ConsultationService"]
