"""
Tests del alta de visitas (solicitud del visitante y agenda de administración)
"""
from datetime import timedelta, timezone

import pytest

from ms_visits.config import settings
from ms_visits.models import VisitStatus
from ms_visits.services import NotFoundError, SlotConflictError, ValidationError
from ms_visits.services.visit_store import utcnow

from conftest import at, run, OWNER_ID, PROPERTY_ID, VISITOR_ID, OTHER_VISITOR_ID


def test_propose_visit_creates_pending(propose):
    visit = propose(at(10), notes="  Quiero ver el patio  ")

    assert visit.id
    assert visit.status == VisitStatus.PENDING_CONFIRMATION.value
    assert visit.proposed_datetime == at(10)
    assert visit.confirmed_datetime is None
    assert visit.visitor_notes == "Quiero ver el patio"
    assert visit.created_by_admin is False
    assert visit.version == 1


def test_propose_visit_resolves_owner_from_directory(request_service):
    visit = run(request_service.propose_visit(PROPERTY_ID, VISITOR_ID, at(10)))
    assert visit.property_owner_user_id == OWNER_ID


def test_propose_visit_unknown_property(request_service):
    with pytest.raises(NotFoundError):
        run(request_service.propose_visit("NOPE", VISITOR_ID, at(10)))


def test_owner_cannot_visit_own_property(request_service, store):
    with pytest.raises(ValidationError):
        run(request_service.propose_visit(PROPERTY_ID, OWNER_ID, at(10)))
    assert store.list_for_admin() == []


def test_propose_visit_requires_datetime(request_service):
    with pytest.raises(ValidationError):
        run(request_service.propose_visit(PROPERTY_ID, VISITOR_ID, None))


def test_propose_visit_stores_utc(propose):
    aware = at(12).replace(tzinfo=timezone(timedelta(hours=2)))
    visit = propose(aware)
    assert visit.proposed_datetime == at(10)


def test_propose_visit_rejects_past_datetime(request_service, store):
    with pytest.raises(ValidationError):
        run(request_service.propose_visit(PROPERTY_ID, VISITOR_ID, utcnow() - timedelta(days=1)))
    assert store.list_for_admin() == []


def test_propose_visit_tolerates_one_minute_margin(propose):
    almost_now = utcnow() - timedelta(seconds=20)
    visit = propose(almost_now)
    assert visit.proposed_datetime == almost_now


def test_pending_proposals_may_share_a_slot(propose):
    first = propose(at(10))
    second = propose(at(10, 30), visitor_id=OTHER_VISITOR_ID)

    assert first.status == second.status == VisitStatus.PENDING_CONFIRMATION.value


def test_strict_booking_rejects_occupied_slot(propose, monkeypatch, store):
    monkeypatch.setattr(settings, "STRICT_SLOT_BOOKING", True)
    propose(at(10))

    with pytest.raises(SlotConflictError):
        propose(at(10, 30), visitor_id=OTHER_VISITOR_ID)

    assert len(store.list_for_admin()) == 1
    propose(at(11), visitor_id=OTHER_VISITOR_ID)


# ============================================================================
# AGENDA DE ADMINISTRACIÓN
# ============================================================================

def test_admin_schedule_creates_confirmed(request_service):
    visit = run(request_service.admin_schedule_visit(PROPERTY_ID, VISITOR_ID, at(16)))

    assert visit.status == VisitStatus.CONFIRMED.value
    assert visit.proposed_datetime == at(16)
    assert visit.confirmed_datetime == at(16)
    assert visit.created_by_admin is True
    assert visit.property_owner_user_id == OWNER_ID


def test_admin_schedule_conflicts_with_confirmed(request_service):
    run(request_service.admin_schedule_visit(PROPERTY_ID, VISITOR_ID, at(16)))

    with pytest.raises(SlotConflictError):
        run(request_service.admin_schedule_visit(PROPERTY_ID, OTHER_VISITOR_ID, at(16, 45)))


def test_admin_schedule_ignores_pending_by_default(request_service, propose):
    propose(at(16))
    visit = run(request_service.admin_schedule_visit(PROPERTY_ID, OTHER_VISITOR_ID, at(16)))
    assert visit.status == VisitStatus.CONFIRMED.value


def test_admin_schedule_strict_blocks_pending(request_service, propose, monkeypatch):
    propose(at(16))
    monkeypatch.setattr(settings, "STRICT_SLOT_BOOKING", True)

    with pytest.raises(SlotConflictError):
        run(request_service.admin_schedule_visit(PROPERTY_ID, OTHER_VISITOR_ID, at(16)))


def test_admin_schedule_rejects_owner_as_visitor(request_service):
    with pytest.raises(ValidationError):
        run(request_service.admin_schedule_visit(PROPERTY_ID, OWNER_ID, at(16)))


def test_admin_schedule_rejects_past_datetime(request_service, store):
    with pytest.raises(ValidationError):
        run(request_service.admin_schedule_visit(PROPERTY_ID, VISITOR_ID, utcnow() - timedelta(days=1)))
    assert store.list_for_admin() == []
