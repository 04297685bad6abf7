"""
Schemas Pydantic para validación
"""
from .visit import (
    AdminVisitsOrderBy,
    VisitProposeRequest,
    AdminScheduleVisitRequest,
    VisitActionRequest,
    VisitResponse,
    VisitDetailResponse,
    VisitListResponse,
    VisitCreatedResponse,
    BookedSlotsResponse,
    VisitStatusCountsResponse,
    HealthResponse
)

__all__ = [
    "AdminVisitsOrderBy",
    "VisitProposeRequest",
    "AdminScheduleVisitRequest",
    "VisitActionRequest",
    "VisitResponse",
    "VisitDetailResponse",
    "VisitListResponse",
    "VisitCreatedResponse",
    "BookedSlotsResponse",
    "VisitStatusCountsResponse",
    "HealthResponse"
]
