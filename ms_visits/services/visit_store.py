"""
Almacén de visitas

Único punto de acceso a la tabla property_visits. Toda mutación de estado es una
actualización condicional (compare-and-set sobre status y version) para detectar
escrituras concurrentes. Las fallas de SQLAlchemy se convierten en InternalError.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.visit import PropertyVisit, PropertyScheduleLock, VisitStatus
from .errors import InternalError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Hora actual en UTC sin zona horaria (formato de almacenamiento)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Ordenamientos disponibles para el listado de administración
ADMIN_ORDERINGS = {
    "proposed_datetime_desc": (PropertyVisit.proposed_datetime.desc(),),
    "proposed_datetime_asc": (PropertyVisit.proposed_datetime.asc(),),
    "created_at_desc": (PropertyVisit.created_at.desc(),),
    "created_at_asc": (PropertyVisit.created_at.asc(),),
    "status_asc": (PropertyVisit.status.asc(), PropertyVisit.created_at.desc()),
    "status_desc": (PropertyVisit.status.desc(), PropertyVisit.created_at.desc()),
}
DEFAULT_ADMIN_ORDERING = "created_at_desc"


class VisitStore:
    """Lecturas y escrituras de visitas sobre una sesión de SQLAlchemy"""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def guard(self, operation: str, visit_id: Optional[str] = None, actor_id: Optional[str] = None):
        """Hace rollback y traduce los errores de base de datos a InternalError"""
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Error de almacenamiento en {operation} "
                f"(visit_id={visit_id}, actor_id={actor_id}): {str(e)}"
            )
            raise InternalError("Error al acceder al almacenamiento de visitas") from e

    # ------------------------------------------------------------------
    # Lecturas
    # ------------------------------------------------------------------

    def get(self, visit_id: str, refresh: bool = False) -> Optional[PropertyVisit]:
        """Obtener una visita por ID; `refresh` fuerza releer la fila de la base de datos"""
        with self.guard("get", visit_id=visit_id):
            query = self.db.query(PropertyVisit).filter(PropertyVisit.id == visit_id)
            if refresh:
                query = query.populate_existing()
            return query.first()

    def list_for_user(self, user_id: str, as_role: Optional[str] = None) -> List[PropertyVisit]:
        """
        Visitas de un usuario como visitante, como propietario o ambas

        Args:
            user_id: Usuario participante
            as_role: 'visitor', 'owner' o None para ambas
        """
        with self.guard("list_for_user", actor_id=user_id):
            query = self.db.query(PropertyVisit)

            if as_role == "visitor":
                query = query.filter(PropertyVisit.visitor_user_id == user_id)
                query = query.order_by(PropertyVisit.proposed_datetime.desc())
            elif as_role == "owner":
                query = query.filter(PropertyVisit.property_owner_user_id == user_id)
                query = query.order_by(PropertyVisit.proposed_datetime.desc())
            else:
                query = query.filter(or_(
                    PropertyVisit.visitor_user_id == user_id,
                    PropertyVisit.property_owner_user_id == user_id
                ))
                query = query.order_by(PropertyVisit.created_at.desc())

            return query.all()

    def list_for_admin(self, filter_status: Optional[VisitStatus] = None, order_by: Optional[str] = None) -> List[PropertyVisit]:
        with self.guard("list_for_admin"):
            query = self.db.query(PropertyVisit)
            if filter_status:
                query = query.filter(PropertyVisit.status == VisitStatus(filter_status).value)

            ordering = ADMIN_ORDERINGS.get(order_by or DEFAULT_ADMIN_ORDERING, ADMIN_ORDERINGS[DEFAULT_ADMIN_ORDERING])
            return query.order_by(*ordering).all()

    def count_by_status(self) -> Dict[str, int]:
        """Cantidad de visitas por estado, con los ocho estados siempre presentes"""
        counts = {s.value: 0 for s in VisitStatus}
        with self.guard("count_by_status"):
            rows = self.db.query(
                PropertyVisit.status, func.count(PropertyVisit.id)
            ).group_by(PropertyVisit.status).all()

        for status_value, count in rows:
            if status_value in counts:
                counts[status_value] = int(count)
        return counts

    # ------------------------------------------------------------------
    # Escrituras
    # ------------------------------------------------------------------

    def lock_property(self, property_id: str) -> None:
        """
        Toma el bloqueo de escritura de la propiedad hasta el commit/rollback

        Debe ser la primera escritura de la transacción: en PostgreSQL es un
        bloqueo de fila, en SQLite toma el bloqueo de escritura de la base.
        """
        now = utcnow()
        with self.guard("lock_property"):
            updated = self.db.query(PropertyScheduleLock).filter(
                PropertyScheduleLock.property_id == property_id
            ).update({PropertyScheduleLock.locked_at: now}, synchronize_session=False)

            if updated:
                return

            self.db.add(PropertyScheduleLock(property_id=property_id, locked_at=now))
            try:
                self.db.flush()
            except IntegrityError:
                # Otro proceso creó la fila primero, se bloquea la existente
                self.db.rollback()
                self.db.query(PropertyScheduleLock).filter(
                    PropertyScheduleLock.property_id == property_id
                ).update({PropertyScheduleLock.locked_at: now}, synchronize_session=False)

    def add(self, visit: PropertyVisit) -> PropertyVisit:
        """Agrega una visita nueva a la transacción en curso (sin commit)"""
        now = utcnow()
        visit.created_at = visit.created_at or now
        visit.updated_at = visit.updated_at or now
        visit.version = visit.version or 1
        with self.guard("add", visit_id=visit.id):
            self.db.add(visit)
            self.db.flush()
        return visit

    def compare_and_set(
        self,
        visit_id: str,
        expected_status: VisitStatus,
        expected_version: int,
        values: Dict[str, Any]
    ) -> bool:
        """
        Actualización condicional de una visita

        Solo escribe si la fila sigue en `expected_status` con `expected_version`.
        Refresca updated_at e incrementa version.

        Returns:
            True si la fila se actualizó, False si otra escritura ganó la carrera
        """
        changes = {getattr(PropertyVisit, column): value for column, value in values.items()}
        changes[PropertyVisit.updated_at] = utcnow()
        changes[PropertyVisit.version] = PropertyVisit.version + 1

        with self.guard("compare_and_set", visit_id=visit_id):
            updated = self.db.query(PropertyVisit).filter(
                PropertyVisit.id == visit_id,
                PropertyVisit.status == VisitStatus(expected_status).value,
                PropertyVisit.version == expected_version
            ).update(changes, synchronize_session=False)

        return updated == 1

    def commit(self) -> None:
        with self.guard("commit"):
            self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
