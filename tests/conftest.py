"""
Fixtures compartidas para MS-VISITS-PY
"""
import os

# La base de pruebas debe configurarse antes de importar la aplicación
os.environ["DATABASE_URL"] = "sqlite:///./test_visits.db"

import asyncio
from datetime import datetime, time, timedelta

import pytest

from ms_visits.config import settings
from ms_visits.models import Base, engine, SessionLocal
from ms_visits.services.visit_store import utcnow
from ms_visits.services import (
    ActionPayload, NotFoundError, VisitStore, VisitRequestService, VisitActionService
)

PROPERTY_ID = "P1"
OTHER_PROPERTY_ID = "P2"
VISITOR_ID = "V1"
OTHER_VISITOR_ID = "V2"
OWNER_ID = "O1"
ADMIN_ID = "A1"
STRANGER_ID = "X1"


class FakePropertyClient:
    """Directorio de propiedades en memoria"""

    def __init__(self, owners=None):
        self.owners = dict(owners or {})

    async def get_owner_id(self, property_id):
        if property_id not in self.owners:
            raise NotFoundError("Propiedad no encontrada")
        return self.owners[property_id]


class FakeUserClient:
    """Directorio de usuarios en memoria"""

    def __init__(self, admins=None):
        self.admins = set(admins or ())

    async def is_admin(self, user_id):
        return user_id in self.admins


class RecordingNotificationClient:
    """Canal de notificaciones que guarda los eventos publicados"""

    def __init__(self):
        self.events = []

    async def publish(self, event):
        self.events.append(event)
        return True


class FailingNotificationClient:
    async def publish(self, event):
        raise RuntimeError("canal caído")


def run(coro):
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def setup_database():
    """Crear y limpiar base de datos antes de cada test"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def store(db_session):
    return VisitStore(db_session)


@pytest.fixture
def property_client():
    return FakePropertyClient({PROPERTY_ID: OWNER_ID, OTHER_PROPERTY_ID: OWNER_ID})


@pytest.fixture
def user_client():
    return FakeUserClient({ADMIN_ID})


@pytest.fixture
def notifier():
    return RecordingNotificationClient()


@pytest.fixture
def request_service(store, property_client):
    return VisitRequestService(store, property_client)


@pytest.fixture
def action_service(store, user_client, notifier):
    return VisitActionService(store, user_client, notifier)


@pytest.fixture
def propose(request_service):
    """Crea una visita pendiente de P1 (V1 -> O1)"""
    def _propose(when, property_id=PROPERTY_ID, visitor_id=VISITOR_ID, notes=None):
        return run(request_service.propose_visit(
            property_id=property_id,
            visitor_id=visitor_id,
            proposed_datetime=when,
            visitor_notes=notes,
            owner_id=OWNER_ID
        ))
    return _propose


@pytest.fixture
def act(action_service):
    """Aplica una acción y devuelve la visita actualizada"""
    def _act(visit_id, actor_id, action, **payload):
        return run(action_service.apply_action(visit_id, actor_id, action, ActionPayload(**payload)))
    return _act


@pytest.fixture(autouse=True)
def default_rules(monkeypatch):
    """Restablece las reglas de agenda a sus valores por defecto"""
    monkeypatch.setattr(settings, "SLOT_DURATION_MINUTES", 60)
    monkeypatch.setattr(settings, "STRICT_SLOT_BOOKING", False)
    monkeypatch.setattr(settings, "REQUIRE_REJECTION_REASON", False)
    return settings


# Las visitas deben ser futuras: el día 10 de los tests es dentro de 30 días
BASE_DAY = (utcnow() + timedelta(days=30)).date()


def on(day=10):
    return BASE_DAY + timedelta(days=day - 10)


def at(hour, minute=0, day=10, second=0):
    return datetime.combine(on(day), time(hour, minute, second))


def iso(hour, minute=0, day=10):
    """Fecha en el formato con que la API la recibe y la devuelve"""
    return at(hour, minute, day).isoformat()
