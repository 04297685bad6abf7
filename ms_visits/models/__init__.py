"""
Modelos de la base de datos
"""
from .database import Base, get_db, engine, SessionLocal, init_db
from .visit import (
    PropertyVisit,
    PropertyScheduleLock,
    VisitStatus,
    TERMINAL_STATUSES,
    ACTIVE_STATUSES,
    SLOT_HOLDING_STATUSES,
)

__all__ = [
    "Base",
    "get_db",
    "engine",
    "SessionLocal",
    "init_db",
    "PropertyVisit",
    "PropertyScheduleLock",
    "VisitStatus",
    "TERMINAL_STATUSES",
    "ACTIVE_STATUSES",
    "SLOT_HOLDING_STATUSES",
]
