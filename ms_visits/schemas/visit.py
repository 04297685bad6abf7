"""
Schemas de Visita a Propiedad (PropertyVisit)
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Literal
from datetime import datetime, date

from ..models.visit import VisitStatus
from ..services.state_machine import VisitAction

AdminVisitsOrderBy = Literal[
    "proposed_datetime_desc", "proposed_datetime_asc",
    "created_at_desc", "created_at_asc",
    "status_asc", "status_desc"
]


class VisitProposeRequest(BaseModel):
    """Schema para que un visitante solicite una visita"""
    property_id: str = Field(..., min_length=1, max_length=36, description="ID de la propiedad a visitar")
    proposed_datetime: datetime = Field(..., description="Fecha y hora propuesta por el visitante")
    visitor_notes: Optional[str] = Field(None, max_length=2000, description="Notas del visitante")

    class Config:
        json_schema_extra = {
            "example": {
                "property_id": "6f1c2a9e-3b7d-4c1e-9a55-0d2f8e4b7c10",
                "proposed_datetime": "2027-03-10T10:00:00",
                "visitor_notes": "Me interesa ver el patio y el estacionamiento"
            }
        }


class AdminScheduleVisitRequest(BaseModel):
    """Schema para que un administrador agende una visita confirmada"""
    property_id: str = Field(..., min_length=1, max_length=36, description="ID de la propiedad")
    visitor_id: str = Field(..., min_length=1, max_length=36, description="ID del usuario visitante")
    visit_datetime: datetime = Field(..., description="Fecha y hora de la visita")

    class Config:
        json_schema_extra = {
            "example": {
                "property_id": "6f1c2a9e-3b7d-4c1e-9a55-0d2f8e4b7c10",
                "visitor_id": "b0e3a4d2-51a8-4f0c-8a3e-2c9f7d6e1b44",
                "visit_datetime": "2027-03-12T16:00:00"
            }
        }


class VisitActionRequest(BaseModel):
    """Schema para aplicar una acción sobre una visita"""
    action: VisitAction = Field(..., description="Acción a ejecutar")
    new_datetime: Optional[datetime] = Field(None, description="Nueva fecha (solo propose_new_time)")
    notes: Optional[str] = Field(None, max_length=2000, description="Notas del actor")
    cancellation_reason: Optional[str] = Field(None, max_length=2000, description="Motivo de cancelación o rechazo")

    class Config:
        json_schema_extra = {
            "example": {
                "action": "propose_new_time",
                "new_datetime": "2027-03-10T11:00:00",
                "notes": "A esa hora no estoy, ¿puede ser a las 11?"
            }
        }


class VisitResponse(BaseModel):
    """Schema para respuesta de visita"""
    id: str = Field(..., description="ID de la visita")
    property_id: str = Field(..., description="ID de la propiedad")
    visitor_user_id: str = Field(..., description="ID del visitante")
    property_owner_user_id: str = Field(..., description="ID del propietario")
    proposed_datetime: datetime = Field(..., description="Fecha y hora propuesta por el visitante")
    confirmed_datetime: Optional[datetime] = Field(None, description="Fecha y hora acordada o propuesta por el propietario")
    status: VisitStatus = Field(..., description="Estado de la visita")
    visitor_notes: Optional[str] = Field(None, description="Notas del visitante")
    owner_notes: Optional[str] = Field(None, description="Notas del propietario")
    cancellation_reason: Optional[str] = Field(None, description="Motivo de cancelación")
    created_by_admin: bool = Field(False, description="Agendada directamente por un administrador")
    version: int = Field(..., description="Versión del registro")
    created_at: datetime = Field(..., description="Fecha de creación")
    updated_at: datetime = Field(..., description="Última actualización")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": "0c7e1f5a-8d2b-4a6e-9f3c-1b2d3e4f5a6b",
                "property_id": "6f1c2a9e-3b7d-4c1e-9a55-0d2f8e4b7c10",
                "visitor_user_id": "b0e3a4d2-51a8-4f0c-8a3e-2c9f7d6e1b44",
                "property_owner_user_id": "9a8b7c6d-5e4f-4a3b-2c1d-0e9f8a7b6c5d",
                "proposed_datetime": "2027-03-10T10:00:00",
                "confirmed_datetime": "2027-03-10T10:00:00",
                "status": "confirmed",
                "visitor_notes": None,
                "owner_notes": "Toque el timbre del departamento 4B",
                "cancellation_reason": None,
                "created_by_admin": False,
                "version": 2,
                "created_at": "2027-03-01T08:00:00",
                "updated_at": "2027-03-02T09:30:00"
            }
        }


class VisitDetailResponse(VisitResponse):
    """Schema para respuesta detallada con el rol del actor y sus acciones posibles"""
    actor_role: str = Field(..., description="Rol del usuario frente a la visita (visitor, owner, admin)")
    allowed_actions: List[VisitAction] = Field(default_factory=list, description="Acciones disponibles para el usuario")


class VisitListResponse(BaseModel):
    """Schema para lista de visitas"""
    visits: List[VisitResponse] = Field(..., description="Lista de visitas")
    total: int = Field(..., description="Total de visitas")


class VisitCreatedResponse(BaseModel):
    """Schema para respuesta de alta de visita"""
    visit_id: str = Field(..., description="ID de la visita creada")
    visit: VisitResponse = Field(..., description="Visita creada")


class BookedSlotsResponse(BaseModel):
    """Schema para franjas ocupadas de una propiedad en una fecha"""
    property_id: str = Field(..., description="ID de la propiedad")
    day: date = Field(..., description="Fecha consultada")
    slot_duration_minutes: int = Field(..., description="Duración de cada franja")
    slots: List[str] = Field(..., description="Horas ocupadas (HH:MM)")

    class Config:
        json_schema_extra = {
            "example": {
                "property_id": "6f1c2a9e-3b7d-4c1e-9a55-0d2f8e4b7c10",
                "day": "2027-03-10",
                "slot_duration_minutes": 60,
                "slots": ["10:00", "15:30"]
            }
        }


class VisitStatusCountsResponse(BaseModel):
    """Schema para conteo de visitas por estado"""
    counts: Dict[str, int] = Field(..., description="Cantidad de visitas por estado")
    total: int = Field(..., description="Total de visitas")


class HealthResponse(BaseModel):
    """Schema para health check"""
    status: str = Field(..., description="Estado del servicio")
    service: str = Field(..., description="Nombre del servicio")
    version: str = Field(..., description="Versión del servicio")
    database: str = Field(..., description="Estado de la base de datos")
