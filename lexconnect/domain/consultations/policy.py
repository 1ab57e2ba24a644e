"""
Consultation lifecycle policy

Pure decisions, no I/O: which status transitions exist, and which party of a
consultation may trigger each one.

    pendiente  -> aceptada, cancelada
    aceptada   -> en_proceso, cancelada
    en_proceso -> completada, cancelada
    completada, cancelada: terminal
"""

import enum
from typing import Union

from ...errors import ConsultationForbidden, InvalidConsultationTransition
from ...models import ConsultationStatus

PENDING = ConsultationStatus.PENDING
ACCEPTED = ConsultationStatus.ACCEPTED
IN_PROGRESS = ConsultationStatus.IN_PROGRESS
COMPLETED = ConsultationStatus.COMPLETED
CANCELLED = ConsultationStatus.CANCELLED


class ActorRelation(str, enum.Enum):
    """How the caller relates to a given consultation"""

    CLIENT = "client"
    LAWYER = "lawyer"
    ADMIN = "admin"


TRANSITIONS: dict[ConsultationStatus, frozenset] = {
    PENDING: frozenset({ACCEPTED, CANCELLED}),
    ACCEPTED: frozenset({IN_PROGRESS, CANCELLED}),
    IN_PROGRESS: frozenset({COMPLETED, CANCELLED}),
    COMPLETED: frozenset(),
    CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset(status for status, targets in TRANSITIONS.items() if not targets)

_EVERYONE = frozenset({ActorRelation.CLIENT, ActorRelation.LAWYER, ActorRelation.ADMIN})

ACTOR_PERMISSIONS: dict[tuple, frozenset] = {
    (PENDING, ACCEPTED): frozenset({ActorRelation.LAWYER}),
    (PENDING, CANCELLED): _EVERYONE,  # lawyer cancelling a pending request is a rejection
    (ACCEPTED, IN_PROGRESS): frozenset({ActorRelation.LAWYER, ActorRelation.ADMIN}),
    (ACCEPTED, CANCELLED): _EVERYONE,
    (IN_PROGRESS, COMPLETED): _EVERYONE,
    (IN_PROGRESS, CANCELLED): _EVERYONE,
}

StatusLike = Union[ConsultationStatus, str]


def _as_status(value: StatusLike) -> ConsultationStatus:
    return value if isinstance(value, ConsultationStatus) else ConsultationStatus(value)


def is_terminal(status: StatusLike) -> bool:
    return _as_status(status) in TERMINAL_STATUSES


def is_valid_transition(current: StatusLike, new: StatusLike) -> bool:
    """True when `new` is reachable from `current` in one step"""
    try:
        return _as_status(new) in TRANSITIONS[_as_status(current)]
    except ValueError:
        return False


def allowed_actors(current: StatusLike, new: StatusLike) -> frozenset:
    try:
        return ACTOR_PERMISSIONS.get((_as_status(current), _as_status(new)), frozenset())
    except ValueError:
        return frozenset()


def can_transition(current: StatusLike, new: StatusLike, relation: ActorRelation) -> bool:
    return is_valid_transition(current, new) and relation in allowed_actors(current, new)


def check_transition(current: StatusLike, new: StatusLike, relation: ActorRelation) -> None:
    """
    Gate every status change.

    Raises:
        InvalidConsultationTransition: the edge does not exist
        ConsultationForbidden: the edge exists but this party may not take it
    """
    current_value = getattr(current, "value", current)
    new_value = getattr(new, "value", new)

    if not is_valid_transition(current, new):
        raise InvalidConsultationTransition(current_value, new_value)

    if relation not in allowed_actors(current, new):
        raise ConsultationForbidden(
            f"Tu rol no puede cambiar la consulta de '{current_value}' a '{new_value}'"
        )
