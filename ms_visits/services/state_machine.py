"""
Máquina de estados de visitas

Tabla de transiciones pura: dado el estado actual, la acción y el rol del actor,
devuelve el siguiente estado o rechaza con InvalidTransitionError.
No hace I/O ni conoce identidades, solo el rol abstracto resuelto por quien llama.

El reagendamiento se hace en dos pasos: el propietario propone una nueva hora
(rescheduled_by_owner) y el visitante la acepta o la rechaza.
"""
import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Tuple

from ..models.visit import VisitStatus, ACTIVE_STATUSES, TERMINAL_STATUSES
from .errors import InvalidTransitionError


class ActorRole(str, enum.Enum):
    """Rol del actor respecto a una visita concreta"""
    VISITOR = "visitor"
    OWNER = "owner"
    ADMIN = "admin"


class VisitAction(str, enum.Enum):
    """Acciones que hacen avanzar el ciclo de vida de una visita"""
    CONFIRM_ORIGINAL = "confirm_original"
    PROPOSE_NEW_TIME = "propose_new_time"
    REJECT = "reject"
    CANCEL = "cancel"
    MARK_COMPLETED = "mark_completed"
    MARK_VISITOR_NO_SHOW = "mark_visitor_no_show"
    ACCEPT = "accept"
    CANCEL_OWN = "cancel_own"
    MARK_OWNER_NO_SHOW = "mark_owner_no_show"
    FORCE_CANCEL = "force_cancel"
    FORCE_COMPLETE = "force_complete"


class TimeEffect(str, enum.Enum):
    """Efecto de la transición sobre confirmed_datetime"""
    KEEP = "keep"
    CONFIRM_PROPOSED = "confirm_proposed"    # confirmed := proposed
    SET_NEW_TIME = "set_new_time"            # confirmed := nueva hora del payload
    FILL_PROPOSED = "fill_proposed"          # confirmed := proposed solo si no existe


class SlotClaim(str, enum.Enum):
    """Contra qué visitas se valida la hora que reclama la transición"""
    NONE = "none"
    ACTIVE = "active"          # cualquier otra visita no terminal
    HOLDING = "holding"        # otras visitas confirmed / rescheduled_by_owner


@dataclass(frozen=True)
class Transition:
    """Una fila de la tabla de transiciones"""
    role: ActorRole
    action: VisitAction
    from_statuses: FrozenSet[VisitStatus]
    to_status: VisitStatus
    time_effect: TimeEffect = TimeEffect.KEEP
    slot_claim: SlotClaim = SlotClaim.NONE
    accepts_reason: bool = False
    requires_new_time: bool = False


_PENDING = frozenset({VisitStatus.PENDING_CONFIRMATION})
_CONFIRMED = frozenset({VisitStatus.CONFIRMED})
_RESCHEDULED = frozenset({VisitStatus.RESCHEDULED_BY_OWNER})

TRANSITIONS: Tuple[Transition, ...] = (
    # Propietario
    Transition(ActorRole.OWNER, VisitAction.CONFIRM_ORIGINAL, _PENDING, VisitStatus.CONFIRMED,
               time_effect=TimeEffect.CONFIRM_PROPOSED, slot_claim=SlotClaim.HOLDING),
    Transition(ActorRole.OWNER, VisitAction.PROPOSE_NEW_TIME, _PENDING, VisitStatus.RESCHEDULED_BY_OWNER,
               time_effect=TimeEffect.SET_NEW_TIME, slot_claim=SlotClaim.ACTIVE, requires_new_time=True),
    Transition(ActorRole.OWNER, VisitAction.REJECT, _PENDING, VisitStatus.CANCELLED_BY_OWNER,
               accepts_reason=True),
    Transition(ActorRole.OWNER, VisitAction.CANCEL, _CONFIRMED, VisitStatus.CANCELLED_BY_OWNER,
               accepts_reason=True),
    Transition(ActorRole.OWNER, VisitAction.MARK_COMPLETED, _CONFIRMED, VisitStatus.COMPLETED),
    Transition(ActorRole.OWNER, VisitAction.MARK_VISITOR_NO_SHOW, _CONFIRMED, VisitStatus.VISITOR_NO_SHOW),
    # Visitante
    Transition(ActorRole.VISITOR, VisitAction.ACCEPT, _RESCHEDULED, VisitStatus.CONFIRMED,
               slot_claim=SlotClaim.HOLDING),
    Transition(ActorRole.VISITOR, VisitAction.REJECT, _RESCHEDULED, VisitStatus.CANCELLED_BY_VISITOR,
               accepts_reason=True),
    Transition(ActorRole.VISITOR, VisitAction.CANCEL_OWN, _PENDING | _CONFIRMED, VisitStatus.CANCELLED_BY_VISITOR,
               accepts_reason=True),
    Transition(ActorRole.VISITOR, VisitAction.MARK_OWNER_NO_SHOW, _CONFIRMED, VisitStatus.OWNER_NO_SHOW),
    # Administrador
    Transition(ActorRole.ADMIN, VisitAction.FORCE_CANCEL, ACTIVE_STATUSES, VisitStatus.CANCELLED_BY_OWNER,
               accepts_reason=True),
    Transition(ActorRole.ADMIN, VisitAction.FORCE_COMPLETE, ACTIVE_STATUSES, VisitStatus.COMPLETED,
               time_effect=TimeEffect.FILL_PROPOSED),
)

_TABLE: Dict[Tuple[ActorRole, VisitAction], Transition] = {
    (t.role, t.action): t for t in TRANSITIONS
}


def get_transition(current: VisitStatus, action: VisitAction, role: ActorRole) -> Transition:
    """
    Busca la transición permitida para (estado, acción, rol)

    Raises:
        InvalidTransitionError: Si la combinación no está en la tabla
    """
    current = VisitStatus(current)
    transition = _TABLE.get((ActorRole(role), VisitAction(action)))

    if transition is None or current not in transition.from_statuses:
        raise InvalidTransitionError(
            f"La acción '{VisitAction(action).value}' no está permitida para el rol "
            f"'{ActorRole(role).value}' desde el estado '{current.value}'"
        )
    return transition


def next_status(current: VisitStatus, action: VisitAction, role: ActorRole) -> VisitStatus:
    """Siguiente estado para (estado, acción, rol)"""
    return get_transition(current, action, role).to_status


def allowed_actions(current: VisitStatus, role: ActorRole) -> List[VisitAction]:
    """Acciones que el rol puede ejecutar desde el estado actual"""
    current = VisitStatus(current)
    if current in TERMINAL_STATUSES:
        return []
    return [
        t.action for t in TRANSITIONS
        if t.role == ActorRole(role) and current in t.from_statuses
    ]


def is_terminal(current: VisitStatus) -> bool:
    return VisitStatus(current) in TERMINAL_STATUSES


def role_has_action(role: ActorRole, action: VisitAction) -> bool:
    """Si el rol tiene alguna fila para la acción, sin importar el estado"""
    return (ActorRole(role), VisitAction(action)) in _TABLE
