"""
Verificador de disponibilidad de franjas horarias

Una visita ocupa la franja [hora efectiva, hora efectiva + SLOT_DURATION_MINUTES),
donde la hora efectiva es confirmed_datetime si existe y si no proposed_datetime.
Es orientativo para la UI al proponer y autoritativo al escribir
(el servicio que escribe lo vuelve a consultar dentro de la misma transacción).
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..models.visit import PropertyVisit, VisitStatus, ACTIVE_STATUSES

logger = logging.getLogger(__name__)


def slot_duration() -> timedelta:
    return timedelta(minutes=settings.SLOT_DURATION_MINUTES)


def windows_overlap(a: datetime, b: datetime, duration: Optional[timedelta] = None) -> bool:
    """Dos franjas de igual duración se solapan si sus inicios distan menos que la duración"""
    duration = duration or slot_duration()
    return abs(a - b) < duration


def _effective_datetime_column():
    return func.coalesce(PropertyVisit.confirmed_datetime, PropertyVisit.proposed_datetime)


def booked_slots(db: Session, property_id: str, day: date) -> List[time]:
    """
    Franjas ocupadas de una propiedad en una fecha

    Considera las visitas no terminales (pending_confirmation, confirmed,
    rescheduled_by_owner) cuya fecha efectiva coincide con la consultada.

    Returns:
        Lista ordenada y sin duplicados de horas del día, truncadas al minuto
    """
    day_start = datetime.combine(day, time.min)
    day_end = day_start + timedelta(days=1)
    effective = _effective_datetime_column()

    visits = db.query(PropertyVisit).filter(
        PropertyVisit.property_id == property_id,
        PropertyVisit.status.in_([s.value for s in ACTIVE_STATUSES]),
        effective >= day_start,
        effective < day_end
    ).all()

    return sorted({
        visit.effective_datetime.time().replace(second=0, microsecond=0) for visit in visits
    })


def find_conflicts(
    db: Session,
    property_id: str,
    start: datetime,
    statuses: Iterable[VisitStatus] = ACTIVE_STATUSES,
    exclude_visit_id: Optional[str] = None
) -> List[PropertyVisit]:
    """
    Visitas de la propiedad cuya franja se solapa con la que empieza en `start`

    Args:
        db: Sesión de base de datos
        property_id: Propiedad consultada
        start: Inicio de la franja solicitada
        statuses: Estados que se consideran ocupando franja
        exclude_visit_id: Visita a ignorar (la propia visita al reagendar o aceptar)
    """
    duration = slot_duration()
    effective = _effective_datetime_column()

    query = db.query(PropertyVisit).filter(
        PropertyVisit.property_id == property_id,
        PropertyVisit.status.in_([VisitStatus(s).value for s in statuses]),
        effective >= start - duration,
        effective <= start + duration
    )
    if exclude_visit_id:
        query = query.filter(PropertyVisit.id != exclude_visit_id)

    conflicts = [
        visit for visit in query.order_by(effective.asc()).all()
        if windows_overlap(visit.effective_datetime, start, duration)
    ]

    if conflicts:
        logger.debug(
            f"Franja {start.isoformat()} de la propiedad {property_id} ocupada por "
            f"{[visit.id for visit in conflicts]}"
        )
    return conflicts
