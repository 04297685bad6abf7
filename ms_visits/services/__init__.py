"""
Núcleo de agendamiento de visitas
"""
from .errors import (
    VisitError,
    NotFoundError,
    ValidationError,
    ForbiddenError,
    InvalidTransitionError,
    SlotConflictError,
    ConcurrencyConflictError,
    InternalError,
)
from .state_machine import ActorRole, VisitAction, next_status, allowed_actions
from .validation import ActionPayload
from .visit_store import VisitStore
from .request_service import VisitRequestService
from .action_service import VisitActionService

__all__ = [
    "VisitError",
    "NotFoundError",
    "ValidationError",
    "ForbiddenError",
    "InvalidTransitionError",
    "SlotConflictError",
    "ConcurrencyConflictError",
    "InternalError",
    "ActorRole",
    "VisitAction",
    "next_status",
    "allowed_actions",
    "ActionPayload",
    "VisitStore",
    "VisitRequestService",
    "VisitActionService",
]
