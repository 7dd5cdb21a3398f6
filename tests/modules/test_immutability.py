"""
Activity log immutability at the ORM level.

Activity logs are append-only: the listeners registered by the ``session``
fixture block UPDATE and DELETE on ``ActivityLogModel`` rows.  Attendance
and snapshots stay mutable.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from piecework_kernel.db.immutability import unregister_immutability_listeners
from piecework_kernel.exceptions import ImmutabilityViolationError
from piecework_modules.reports.orm import ActivityLogModel, AttendanceModel


@pytest.fixture
def logged(store, make_log, session):
    store.record_activity(make_log(1, 1, 10, "2025-06-02"))
    return session.scalars(select(ActivityLogModel)).one()


class TestActivityLogImmutability:
    def test_update_blocked(self, logged, session):
        logged.quantity = Decimal("99")

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()

        session.rollback()
        assert exc_info.value.entity_type == "ActivityLog"
        assert exc_info.value.code == "IMMUTABILITY_VIOLATION"

    def test_delete_blocked(self, logged, session):
        session.delete(logged)

        with pytest.raises(ImmutabilityViolationError, match="cannot be deleted"):
            session.flush()

        session.rollback()
        assert session.scalars(select(ActivityLogModel)).one().quantity == Decimal("10")

    def test_violation_logged(self, logged, session, captured_logs):
        logged.owner = "agent-b"

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        blocked = [
            r for r in captured_logs() if r["message"] == "immutability_violation_blocked"
        ]
        assert blocked[0]["operation"] == "UPDATE"

    def test_unregistered_listeners_allow_update(self, logged, session):
        unregister_immutability_listeners()
        logged.quantity = Decimal("11")

        session.flush()

        assert session.scalars(select(ActivityLogModel)).one().quantity == Decimal("11")


class TestMutableRecords:
    def test_attendance_update_allowed(self, store, make_attendance, session):
        store.upsert_attendance(make_attendance(1, 10))
        model = session.scalars(select(AttendanceModel)).one()

        model.days = 12
        session.flush()

        assert store.list_attendance()[0].days == 12
