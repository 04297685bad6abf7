"""
Router de Visitas a Propiedades
Solicitar, agendar y hacer avanzar visitas presenciales
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from ..models import get_db, VisitStatus
from ..schemas.visit import (
    AdminVisitsOrderBy, VisitProposeRequest, AdminScheduleVisitRequest, VisitActionRequest,
    VisitResponse, VisitDetailResponse, VisitListResponse, VisitCreatedResponse,
    BookedSlotsResponse, VisitStatusCountsResponse
)
from ..services import (
    ActionPayload, ForbiddenError, NotFoundError, VisitStore,
    VisitRequestService, VisitActionService, allowed_actions
)
from ..services import slot_checker
from ..services.validation import resolve_role
from ..clients import property_client, user_client, notification_client
from ..utils import get_current_user

router = APIRouter()


# ============================================================================
# DEPENDENCIAS
# ============================================================================

def get_property_client():
    return property_client


def get_user_client():
    return user_client


def get_notification_client():
    return notification_client


def get_store(db: Session = Depends(get_db)) -> VisitStore:
    return VisitStore(db)


async def require_admin(
    current_user: dict = Depends(get_current_user),
    users=Depends(get_user_client)
) -> dict:
    """
    Verifica en el directorio de usuarios que el actor sea administrador

    Raises:
        ForbiddenError: Si el usuario no es administrador
    """
    if not await users.is_admin(current_user["user_id"]):
        raise ForbiddenError("No tienes permisos de administrador")
    return current_user


def _to_list_response(visits) -> VisitListResponse:
    return VisitListResponse(
        visits=[VisitResponse.model_validate(v) for v in visits],
        total=len(visits)
    )


# ============================================================================
# ALTA DE VISITAS
# ============================================================================

@router.post("/visits", response_model=VisitCreatedResponse, status_code=status.HTTP_201_CREATED)
async def propose_visit(
    visit_data: VisitProposeRequest,
    store: VisitStore = Depends(get_store),
    properties=Depends(get_property_client),
    current_user: dict = Depends(get_current_user)
):
    """
    Solicitar una visita a una propiedad
    El usuario autenticado es el visitante; el propietario se resuelve en MS-PROPERTY
    """
    service = VisitRequestService(store, properties)
    visit = await service.propose_visit(
        property_id=visit_data.property_id,
        visitor_id=current_user["user_id"],
        proposed_datetime=visit_data.proposed_datetime,
        visitor_notes=visit_data.visitor_notes
    )
    return VisitCreatedResponse(visit_id=visit.id, visit=VisitResponse.model_validate(visit))


@router.post("/visits/admin-schedule", response_model=VisitCreatedResponse, status_code=status.HTTP_201_CREATED)
async def admin_schedule_visit(
    visit_data: AdminScheduleVisitRequest,
    store: VisitStore = Depends(get_store),
    properties=Depends(get_property_client),
    current_user: dict = Depends(require_admin)
):
    """
    Agendar una visita confirmada en nombre de un visitante (solo administradores)
    """
    service = VisitRequestService(store, properties)
    visit = await service.admin_schedule_visit(
        property_id=visit_data.property_id,
        visitor_id=visit_data.visitor_id,
        visit_datetime=visit_data.visit_datetime
    )
    return VisitCreatedResponse(visit_id=visit.id, visit=VisitResponse.model_validate(visit))


# ============================================================================
# CONSULTAS
# ============================================================================

@router.get("/properties/{property_id}/booked-slots", response_model=BookedSlotsResponse)
async def get_booked_slots(
    property_id: str,
    day: date = Query(..., alias="date", description="Fecha a consultar (YYYY-MM-DD)"),
    store: VisitStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    """
    Horas ocupadas de una propiedad en una fecha
    Orientativo para elegir hora; la disponibilidad se vuelve a verificar al escribir
    """
    with store.guard("booked_slots", actor_id=current_user["user_id"]):
        slots = slot_checker.booked_slots(store.db, property_id, day)

    return BookedSlotsResponse(
        property_id=property_id,
        day=day,
        slot_duration_minutes=int(slot_checker.slot_duration().total_seconds() // 60),
        slots=[slot.strftime("%H:%M") for slot in slots]
    )


@router.get("/visits/mine", response_model=VisitListResponse)
async def list_my_visits(
    as_role: Optional[str] = Query(None, pattern="^(visitor|owner)$", description="Filtrar como visitante o propietario"),
    store: VisitStore = Depends(get_store),
    current_user: dict = Depends(get_current_user)
):
    """
    Listar las visitas del usuario autenticado
    Sin `as_role` devuelve las visitas donde participa como visitante o propietario
    """
    visits = store.list_for_user(current_user["user_id"], as_role)
    return _to_list_response(visits)


@router.get("/visits/admin", response_model=VisitListResponse)
async def list_visits_for_admin(
    status_filter: Optional[VisitStatus] = Query(None, alias="status", description="Filtrar por estado"),
    order_by: AdminVisitsOrderBy = Query("created_at_desc", description="Ordenamiento"),
    store: VisitStore = Depends(get_store),
    current_user: dict = Depends(require_admin)
):
    """
    Listar todas las visitas (solo administradores)
    """
    visits = store.list_for_admin(status_filter, order_by)
    return _to_list_response(visits)


@router.get("/visits/admin/stats", response_model=VisitStatusCountsResponse)
async def visit_counts_by_status(
    store: VisitStore = Depends(get_store),
    current_user: dict = Depends(require_admin)
):
    """
    Cantidad de visitas por estado (solo administradores)
    """
    counts = store.count_by_status()
    return VisitStatusCountsResponse(counts=counts, total=sum(counts.values()))


@router.get("/visits/{visit_id}", response_model=VisitDetailResponse)
async def get_visit(
    visit_id: str,
    store: VisitStore = Depends(get_store),
    users=Depends(get_user_client),
    current_user: dict = Depends(get_current_user)
):
    """
    Obtener una visita con las acciones disponibles para el usuario
    Solo participantes o administradores
    """
    visit = store.get(visit_id)
    if not visit:
        raise NotFoundError("Visita no encontrada")

    role = await resolve_role(visit, current_user["user_id"], users)

    return VisitDetailResponse(
        **VisitResponse.model_validate(visit).model_dump(),
        actor_role=role.value,
        allowed_actions=allowed_actions(VisitStatus(visit.status), role)
    )


# ============================================================================
# ACCIONES
# ============================================================================

@router.post("/visits/{visit_id}/actions", response_model=VisitResponse)
async def apply_visit_action(
    visit_id: str,
    action_data: VisitActionRequest,
    store: VisitStore = Depends(get_store),
    users=Depends(get_user_client),
    notifications=Depends(get_notification_client),
    current_user: dict = Depends(get_current_user)
):
    """
    Aplicar una acción sobre una visita

    - Propietario: confirm_original, propose_new_time, reject, cancel, mark_completed, mark_visitor_no_show
    - Visitante: accept, reject, cancel_own, mark_owner_no_show
    - Administrador: force_cancel, force_complete
    """
    service = VisitActionService(store, users, notifications)
    visit = await service.apply_action(
        visit_id=visit_id,
        actor_id=current_user["user_id"],
        action=action_data.action,
        payload=ActionPayload(
            new_datetime=action_data.new_datetime,
            notes=action_data.notes,
            cancellation_reason=action_data.cancellation_reason
        )
    )
    return VisitResponse.model_validate(visit)
