"""
Typed failures for store and ledger operations.

Every mutating operation either returns the affected record or raises exactly
one of these. They subclass HTTPException so FastAPI maps each variant to its
status code at the boundary.
"""

from typing import Optional

from fastapi import HTTPException


class LexConnectError(HTTPException):
    """Base class for domain errors"""

    status_code = 500
    default_detail = "Error interno del servidor"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class NotFoundError(LexConnectError):
    status_code = 404
    default_detail = "Recurso no encontrado"


class ForbiddenError(LexConnectError):
    status_code = 403
    default_detail = "No tienes permisos para realizar esta acción"


class InvalidTransitionError(LexConnectError):
    status_code = 409
    default_detail = "Transición de estado no permitida"


class ValidationError(LexConnectError):
    status_code = 400
    default_detail = "Datos inválidos"


class ConsultationNotFound(NotFoundError):
    default_detail = "Consulta no encontrada"


class ConsultationForbidden(ForbiddenError):
    default_detail = "No tienes permisos sobre esta consulta"


class InvalidConsultationTransition(InvalidTransitionError):
    def __init__(self, current: str, requested: str, detail: Optional[str] = None):
        self.current = current
        self.requested = requested
        super().__init__(detail or f"No se puede cambiar el estado de '{current}' a '{requested}'")


class LawyerProfileNotFound(NotFoundError):
    default_detail = "Perfil de abogado no encontrado"


class PaymentNotFound(NotFoundError):
    default_detail = "Pago no encontrado"


class InvalidPaymentState(InvalidTransitionError):
    default_detail = "El pago no está en un estado válido para esta operación"
