"""
Validaciones y autorización compartidas por los servicios de visitas
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..config import settings
from ..models.visit import PropertyVisit
from .errors import ForbiddenError, ValidationError
from .state_machine import ActorRole, Transition, VisitAction, role_has_action
from .visit_store import utcnow

logger = logging.getLogger(__name__)

FUTURE_MARGIN = timedelta(minutes=1)


@dataclass(frozen=True)
class ActionPayload:
    """Datos opcionales que acompañan a una acción"""
    new_datetime: Optional[datetime] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None


def normalize_datetime(value: Optional[datetime], field_name: str = "fecha") -> datetime:
    """
    Convierte una fecha/hora al formato de almacenamiento (UTC sin zona horaria)

    Raises:
        ValidationError: Si la fecha no viene
    """
    if value is None:
        raise ValidationError(f"La {field_name} de la visita es obligatoria")
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def ensure_future(value: datetime) -> datetime:
    """
    Verifica que la fecha (ya normalizada a UTC) no esté en el pasado

    Se tolera un minuto de margen por la latencia entre el formulario y el servidor.

    Raises:
        ValidationError: Si la fecha ya pasó
    """
    if value < utcnow() - FUTURE_MARGIN:
        raise ValidationError("La fecha y hora de la visita debe ser futura")
    return value


def ensure_distinct_participants(visitor_id: str, owner_id: str) -> None:
    if not visitor_id or not owner_id:
        raise ValidationError("El visitante y el propietario son obligatorios")
    if visitor_id == owner_id:
        raise ValidationError("No puedes solicitar una visita a tu propia propiedad")


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


async def resolve_role(
    visit: PropertyVisit,
    actor_id: str,
    user_client,
    action: Optional[VisitAction] = None
) -> ActorRole:
    """
    Resuelve una sola vez el rol del actor frente a la visita

    Orden: visitante, propietario y por último administrador (consulta externa).
    Un participante que además es administrador actúa como administrador solo
    para las acciones que su rol de participante no tiene (force_cancel, force_complete).

    Raises:
        ForbiddenError: Si el actor no participa en la visita ni es administrador
    """
    if not actor_id:
        raise ForbiddenError("Actor no identificado")

    role = None
    if actor_id == visit.visitor_user_id:
        role = ActorRole.VISITOR
    elif actor_id == visit.property_owner_user_id:
        role = ActorRole.OWNER

    if role is not None:
        if (
            action is not None
            and not role_has_action(role, action)
            and role_has_action(ActorRole.ADMIN, action)
            and await user_client.is_admin(actor_id)
        ):
            return ActorRole.ADMIN
        return role

    if await user_client.is_admin(actor_id):
        return ActorRole.ADMIN

    logger.warning(f"Usuario {actor_id} sin permisos sobre la visita {visit.id}")
    raise ForbiddenError("No tienes permiso para actualizar esta visita")


def validate_payload(transition: Transition, payload: ActionPayload) -> ActionPayload:
    """
    Verifica que el payload tenga exactamente los campos que admite la acción

    Returns:
        Payload normalizado (textos recortados, fecha en UTC)

    Raises:
        ValidationError: Campo faltante o no permitido para la acción
    """
    action = transition.action
    new_datetime = payload.new_datetime
    reason = _clean_text(payload.cancellation_reason)

    if transition.requires_new_time:
        new_datetime = ensure_future(normalize_datetime(new_datetime, "nueva fecha"))
    elif new_datetime is not None:
        raise ValidationError(f"La acción '{action.value}' no admite una nueva fecha")

    if reason is not None and not transition.accepts_reason:
        raise ValidationError(f"La acción '{action.value}' no admite motivo de cancelación")

    if (
        settings.REQUIRE_REJECTION_REASON
        and transition.role == ActorRole.OWNER
        and action == VisitAction.REJECT
        and reason is None
    ):
        raise ValidationError("Debes indicar el motivo del rechazo")

    return ActionPayload(
        new_datetime=new_datetime,
        notes=_clean_text(payload.notes),
        cancellation_reason=reason
    )
