"""
Servicio de solicitudes de visita

Crea visitas nuevas por dos caminos:
- propose_visit: el visitante propone una hora (pending_confirmation)
- admin_schedule_visit: un administrador agenda directamente (confirmed)

La consulta de franjas ocupadas y la inserción van en la misma transacción,
bajo el bloqueo de la propiedad, para cerrar la carrera entre dos solicitudes
simultáneas sobre la misma franja.
"""
import logging
from datetime import datetime
from typing import FrozenSet, Optional

from ..config import settings
from ..models.visit import (
    PropertyVisit, VisitStatus, ACTIVE_STATUSES, SLOT_HOLDING_STATUSES, generate_visit_id
)
from . import slot_checker
from .errors import SlotConflictError, ValidationError
from .validation import ensure_distinct_participants, ensure_future, normalize_datetime
from .visit_store import VisitStore

logger = logging.getLogger(__name__)


class VisitRequestService:
    """Alta de visitas"""

    def __init__(self, store: VisitStore, property_client):
        self.store = store
        self.property_client = property_client

    async def propose_visit(
        self,
        property_id: str,
        visitor_id: str,
        proposed_datetime: Optional[datetime],
        visitor_notes: Optional[str] = None,
        owner_id: Optional[str] = None
    ) -> PropertyVisit:
        """
        Registrar la solicitud de visita de un visitante

        Args:
            property_id: Propiedad a visitar
            visitor_id: Usuario que solicita la visita
            proposed_datetime: Fecha y hora propuesta
            visitor_notes: Notas del visitante
            owner_id: Propietario; si no se indica se resuelve en el directorio de propiedades

        Raises:
            ValidationError: Visitante igual al propietario, fecha faltante o pasada
            NotFoundError: La propiedad no existe
            SlotConflictError: Solo con STRICT_SLOT_BOOKING y la franja ocupada
        """
        if not property_id:
            raise ValidationError("El ID de la propiedad es obligatorio")

        proposed = ensure_future(normalize_datetime(proposed_datetime))

        if owner_id is None:
            owner_id = await self.property_client.get_owner_id(property_id)

        ensure_distinct_participants(visitor_id, owner_id)

        visit = PropertyVisit(
            id=generate_visit_id(),
            property_id=property_id,
            visitor_user_id=visitor_id,
            property_owner_user_id=owner_id,
            proposed_datetime=proposed,
            confirmed_datetime=None,
            status=VisitStatus.PENDING_CONFIRMATION.value,
            visitor_notes=(visitor_notes or "").strip() or None,
            created_by_admin=False
        )

        blocking = ACTIVE_STATUSES if settings.STRICT_SLOT_BOOKING else frozenset()
        self._insert_checked(visit, proposed, blocking)

        logger.info(
            f"Visita {visit.id} solicitada por {visitor_id} para la propiedad {property_id} "
            f"({proposed.isoformat()})"
        )
        return visit

    async def admin_schedule_visit(
        self,
        property_id: str,
        visitor_id: str,
        visit_datetime: Optional[datetime]
    ) -> PropertyVisit:
        """
        Agendar una visita ya confirmada en nombre de un visitante

        El propietario se resuelve en el directorio de propiedades.

        Raises:
            NotFoundError: La propiedad no existe
            ValidationError: El propietario es el mismo visitante, fecha faltante o pasada
            SlotConflictError: La hora choca con otra visita confirmada o reagendada
        """
        if not property_id:
            raise ValidationError("El ID de la propiedad es obligatorio")

        scheduled = ensure_future(normalize_datetime(visit_datetime))
        owner_id = await self.property_client.get_owner_id(property_id)
        ensure_distinct_participants(visitor_id, owner_id)

        visit = PropertyVisit(
            id=generate_visit_id(),
            property_id=property_id,
            visitor_user_id=visitor_id,
            property_owner_user_id=owner_id,
            proposed_datetime=scheduled,
            confirmed_datetime=scheduled,
            status=VisitStatus.CONFIRMED.value,
            created_by_admin=True
        )

        blocking = ACTIVE_STATUSES if settings.STRICT_SLOT_BOOKING else SLOT_HOLDING_STATUSES
        self._insert_checked(visit, scheduled, blocking)

        logger.info(
            f"Visita {visit.id} agendada por administración para {visitor_id} "
            f"en la propiedad {property_id} ({scheduled.isoformat()})"
        )
        return visit

    def _insert_checked(self, visit: PropertyVisit, start: datetime, blocking: FrozenSet[VisitStatus]) -> None:
        """Bloquea la propiedad, revisa la franja e inserta, todo en una transacción"""
        store = self.store

        store.lock_property(visit.property_id)
        with store.guard("find_conflicts", visit_id=visit.id):
            conflicts = slot_checker.find_conflicts(store.db, visit.property_id, start)

        blocking_values = {VisitStatus(s).value for s in blocking}
        blocked_by = [c for c in conflicts if c.status in blocking_values]

        if blocked_by:
            store.rollback()
            logger.warning(
                f"Franja {start.isoformat()} de la propiedad {visit.property_id} ocupada "
                f"por {[c.id for c in blocked_by]}"
            )
            raise SlotConflictError("La hora solicitada ya está ocupada para esta propiedad")

        if conflicts:
            # Política permisiva: varias propuestas pendientes pueden compartir franja
            logger.info(
                f"La franja {start.isoformat()} de la propiedad {visit.property_id} "
                f"ya tiene {len(conflicts)} solicitud(es) activa(s)"
            )

        store.add(visit)
        store.commit()
