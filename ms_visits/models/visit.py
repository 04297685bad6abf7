"""
Modelo de Visita a Propiedad (PropertyVisit)
Visita presencial de un interesado a una propiedad publicada
"""
import enum
import uuid

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, CheckConstraint, Index

from .database import Base


class VisitStatus(str, enum.Enum):
    """Estados del ciclo de vida de una visita"""
    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMED = "confirmed"
    RESCHEDULED_BY_OWNER = "rescheduled_by_owner"
    CANCELLED_BY_VISITOR = "cancelled_by_visitor"
    CANCELLED_BY_OWNER = "cancelled_by_owner"
    COMPLETED = "completed"
    VISITOR_NO_SHOW = "visitor_no_show"
    OWNER_NO_SHOW = "owner_no_show"


# Estados desde los que ya no hay transición posible
TERMINAL_STATUSES = frozenset({
    VisitStatus.CANCELLED_BY_VISITOR,
    VisitStatus.CANCELLED_BY_OWNER,
    VisitStatus.COMPLETED,
    VisitStatus.VISITOR_NO_SHOW,
    VisitStatus.OWNER_NO_SHOW,
})

# Estados que ocupan una franja horaria de la propiedad
ACTIVE_STATUSES = frozenset(set(VisitStatus) - TERMINAL_STATUSES)

# Estados con una hora acordada (o propuesta por el propietario) que no se puede solapar
SLOT_HOLDING_STATUSES = frozenset({
    VisitStatus.CONFIRMED,
    VisitStatus.RESCHEDULED_BY_OWNER,
})


def generate_visit_id() -> str:
    """Identificador opaco de la visita"""
    return str(uuid.uuid4())


class PropertyVisit(Base):
    """
    Modelo de Visita - Representa la solicitud o agenda de una visita a una propiedad
    Propiedades y usuarios viven en otros microservicios, se guardan sus IDs sin FK
    """

    __tablename__ = "property_visits"

    id = Column(String(36), primary_key=True, default=generate_visit_id)
    property_id = Column(String(36), nullable=False)
    visitor_user_id = Column(String(36), nullable=False)
    property_owner_user_id = Column(String(36), nullable=False)

    # Fecha/hora solicitada por el visitante (inmutable) y la acordada
    proposed_datetime = Column(DateTime, nullable=False)
    confirmed_datetime = Column(DateTime, nullable=True)

    status = Column(String(32), default=VisitStatus.PENDING_CONFIRMATION.value, nullable=False)

    # Notas de cada actor y motivo de cancelación
    visitor_notes = Column(Text, nullable=True)
    owner_notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    created_by_admin = Column(Boolean, default=False, nullable=False)

    # Sello de versión para actualizaciones condicionales
    version = Column(Integer, default=1, nullable=False)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ({})".format(", ".join(f"'{s.value}'" for s in VisitStatus)),
            name="check_property_visit_status"
        ),
        CheckConstraint(
            "visitor_user_id <> property_owner_user_id",
            name="check_visitor_is_not_owner"
        ),
        Index("idx_visits_property_id_status", "property_id", "status"),
        Index("idx_visits_visitor_id_status", "visitor_user_id", "status"),
        Index("idx_visits_owner_id_status", "property_owner_user_id", "status"),
        Index("idx_visits_proposed_datetime", "proposed_datetime"),
        Index("idx_visits_confirmed_datetime", "confirmed_datetime"),
    )

    @property
    def effective_datetime(self):
        """Hora que ocupa la visita: la confirmada si existe, si no la propuesta"""
        return self.confirmed_datetime or self.proposed_datetime

    def __repr__(self):
        return f"<PropertyVisit(id={self.id}, property={self.property_id}, status={self.status}, version={self.version})>"


class PropertyScheduleLock(Base):
    """
    Fila de bloqueo por propiedad
    Serializa las escrituras que reclaman una franja horaria de la misma propiedad
    """

    __tablename__ = "property_schedule_locks"

    property_id = Column(String(36), primary_key=True)
    locked_at = Column(DateTime, nullable=False)

    def __repr__(self):
        return f"<PropertyScheduleLock(property={self.property_id}, locked_at={self.locked_at})>"
