"""Payments domain - Fee split and payment ledger"""

from .router import router
from .service import PaymentService

__all__ = ["router", "PaymentService"]
