"""
Servicio de acciones sobre visitas

Punto de entrada único para que el visitante, el propietario o un administrador
hagan avanzar el ciclo de vida de una visita:

1. Cargar la visita (NotFound)
2. Resolver el rol del actor (Forbidden)
3. Consultar la máquina de estados (InvalidTransition)
4. Validar el payload permitido para la acción (ValidationError)
5. Si la acción reclama una hora, bloquear la propiedad y revisar la franja (SlotConflict)
6. Actualización condicional sobre status + version
7. Publicar el evento de transición (fire-and-forget)

Si la actualización condicional pierde la carrera se relee la visita y se
recalcula una sola vez; la acción se decidió sobre el estado observado al
inicio, así que un cambio de estado nunca se aplica en silencio.
"""
import logging
from typing import Optional

from ..models.visit import PropertyVisit, VisitStatus, ACTIVE_STATUSES, SLOT_HOLDING_STATUSES
from . import slot_checker
from .errors import (
    ConcurrencyConflictError, InvalidTransitionError, NotFoundError, SlotConflictError
)
from .state_machine import ActorRole, SlotClaim, TimeEffect, Transition, VisitAction, get_transition
from .validation import ActionPayload, resolve_role, validate_payload
from .visit_store import VisitStore, utcnow

logger = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 2


class VisitActionService:
    """Orquestador de transiciones de visitas"""

    def __init__(self, store: VisitStore, user_client, notification_client):
        self.store = store
        self.user_client = user_client
        self.notification_client = notification_client

    async def apply_action(
        self,
        visit_id: str,
        actor_id: str,
        action: VisitAction,
        payload: Optional[ActionPayload] = None
    ) -> PropertyVisit:
        """
        Aplicar una acción de un actor sobre una visita

        Args:
            visit_id: Visita a modificar
            actor_id: Usuario que ejecuta la acción (identidad explícita, nunca ambiental)
            action: Acción solicitada
            payload: Nueva fecha, notas y/o motivo de cancelación

        Returns:
            La visita actualizada

        Raises:
            NotFoundError, ForbiddenError, InvalidTransitionError, ValidationError,
            SlotConflictError, ConcurrencyConflictError, InternalError
        """
        action = VisitAction(action)
        payload = payload or ActionPayload()

        visit = self._load(visit_id)
        role = await resolve_role(visit, actor_id, self.user_client, action)
        observed_status = VisitStatus(visit.status)

        transition = self._transition_for(visit, action, role, actor_id)
        clean_payload = validate_payload(transition, payload)

        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            if self._write(visit, transition, role, clean_payload, actor_id):
                break

            logger.info(
                f"Actualización condicional de la visita {visit_id} perdió la carrera "
                f"(intento {attempt}, actor {actor_id}, acción {action.value})"
            )
            if attempt == MAX_WRITE_ATTEMPTS:
                raise ConcurrencyConflictError(
                    "La visita fue modificada por otra operación, vuelve a intentarlo"
                )

            visit = self._load(visit_id, refresh=True)
            if VisitStatus(visit.status) != observed_status:
                # Se recalcula sobre el estado nuevo: si ya no es válida es InvalidTransition,
                # si sigue siéndolo el actor decidió sobre un estado viejo
                self._transition_for(visit, action, role, actor_id)
                raise ConcurrencyConflictError(
                    f"La visita cambió a '{visit.status}' mientras se procesaba la acción"
                )

        updated = self._load(visit_id, refresh=True)
        logger.info(
            f"Visita {visit_id}: {observed_status.value} -> {updated.status} "
            f"(acción {action.value}, rol {role.value}, actor {actor_id})"
        )
        await self._notify(updated, observed_status, actor_id, action)
        return updated

    def _load(self, visit_id: str, refresh: bool = False) -> PropertyVisit:
        visit = self.store.get(visit_id, refresh=refresh)
        if not visit:
            raise NotFoundError("Visita no encontrada")
        return visit

    def _transition_for(
        self, visit: PropertyVisit, action: VisitAction, role: ActorRole, actor_id: str
    ) -> Transition:
        try:
            return get_transition(VisitStatus(visit.status), action, role)
        except InvalidTransitionError:
            logger.warning(
                f"Transición rechazada en la visita {visit.id}: {visit.status} "
                f"+ {action.value} ({role.value}, actor {actor_id})"
            )
            raise

    def _changes_for(
        self, visit: PropertyVisit, transition: Transition, role: ActorRole, payload: ActionPayload
    ) -> dict:
        """Columnas a escribir según la transición y el payload"""
        changes = {"status": transition.to_status.value}

        if transition.time_effect == TimeEffect.CONFIRM_PROPOSED:
            changes["confirmed_datetime"] = visit.proposed_datetime
        elif transition.time_effect == TimeEffect.SET_NEW_TIME:
            changes["confirmed_datetime"] = payload.new_datetime
        elif transition.time_effect == TimeEffect.FILL_PROPOSED and visit.confirmed_datetime is None:
            changes["confirmed_datetime"] = visit.proposed_datetime

        if payload.notes is not None:
            notes_column = "visitor_notes" if role == ActorRole.VISITOR else "owner_notes"
            changes[notes_column] = payload.notes

        if payload.cancellation_reason is not None:
            changes["cancellation_reason"] = payload.cancellation_reason

        return changes

    def _claimed_time(self, visit: PropertyVisit, transition: Transition, payload: ActionPayload):
        if transition.time_effect == TimeEffect.SET_NEW_TIME:
            return payload.new_datetime
        if transition.time_effect == TimeEffect.CONFIRM_PROPOSED:
            return visit.proposed_datetime
        return visit.confirmed_datetime or visit.proposed_datetime

    def _write(
        self,
        visit: PropertyVisit,
        transition: Transition,
        role: ActorRole,
        payload: ActionPayload,
        actor_id: str
    ) -> bool:
        """
        Escribe la transición en una transacción

        Returns:
            False si la actualización condicional no encontró la fila esperada
        """
        store = self.store
        expected_status = VisitStatus(visit.status)
        expected_version = visit.version
        changes = self._changes_for(visit, transition, role, payload)

        if transition.slot_claim != SlotClaim.NONE:
            self._check_slot(visit, transition, payload, actor_id)

        if not store.compare_and_set(visit.id, expected_status, expected_version, changes):
            store.rollback()
            return False

        store.commit()
        return True

    def _check_slot(
        self, visit: PropertyVisit, transition: Transition, payload: ActionPayload, actor_id: str
    ) -> None:
        """Bloquea la propiedad y revisa que la hora reclamada siga libre"""
        store = self.store
        start = self._claimed_time(visit, transition, payload)
        statuses = ACTIVE_STATUSES if transition.slot_claim == SlotClaim.ACTIVE else SLOT_HOLDING_STATUSES

        store.lock_property(visit.property_id)
        with store.guard("find_conflicts", visit_id=visit.id, actor_id=actor_id):
            conflicts = slot_checker.find_conflicts(
                store.db, visit.property_id, start, statuses=statuses, exclude_visit_id=visit.id
            )

        if conflicts:
            store.rollback()
            logger.warning(
                f"Conflicto de franja para la visita {visit.id} ({start.isoformat()}): "
                f"ocupada por {[c.id for c in conflicts]}"
            )
            raise SlotConflictError("La hora seleccionada ya está ocupada para esta propiedad")

    async def _notify(
        self, visit: PropertyVisit, old_status: VisitStatus, actor_id: str, action: VisitAction
    ) -> None:
        event = {
            "visit_id": visit.id,
            "old_status": old_status.value,
            "new_status": visit.status,
            "actor_id": actor_id,
            "action": action.value,
            "occurred_at": utcnow().isoformat(),
        }
        try:
            await self.notification_client.publish(event)
        except Exception as e:
            logger.error(f"No se pudo publicar el evento de la visita {visit.id}: {str(e)}")
