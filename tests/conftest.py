"""
Pytest fixtures for the piecework payroll test suite.

Provides:
- Structured logging configuration and captured JSON logs
- Deterministic clock
- SQLite (or DATABASE_URL) database sessions with every report table
- A seeded SqlReportStore and a store whose snapshot writes can be made to fail
- The sample roster, price table and log / attendance factories

Environment Variables:
- TEST_DATABASE_URL: connection URL for the test database.
  If not set, an in-memory SQLite database is used.
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID

import pytest
from sqlalchemy.orm import Session

from piecework_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from piecework_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from piecework_kernel.domain.clock import DeterministicClock
from piecework_kernel.domain.records import (
    ActivityLogEntry,
    AttendanceEntry,
    HalfMonth,
    Roster,
    TaskDefinition,
    TaskPriceTable,
    WorkerGroup,
    WorkerRecord,
)
from piecework_kernel.domain.snapshots import ReportKind
from piecework_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from piecework_modules.reports.service import SqlReportStore

# Test actor ID for all store writes
TEST_ACTOR_ID = UUID("00000000-0000-4000-a000-000000000001")

OWNER_A = "agent-a"
OWNER_B = "agent-b"
DISTINGUISHED_GROUP = "GROUPE HYAT NEGOCE SERVICES"

DEFAULT_TEST_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    """Get the test database URL from the environment, or in-memory SQLite."""
    return os.environ.get("TEST_DATABASE_URL", DEFAULT_TEST_DATABASE_URL)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture piecework_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            orchestrator.derive_period(request)
            logs = captured_logs()
            assert any(r["message"] == "cascade_execution_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("piecework_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


@pytest.fixture
def actor_id() -> UUID:
    return TEST_ACTOR_ID


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock()


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_engine():
    """Fresh engine and tables per test; in-memory SQLite by default."""
    engine = init_engine_from_url(get_database_url())
    drop_tables()
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """Database session with the activity log immutability listeners on."""
    register_immutability_listeners()
    sess = get_session()
    yield sess
    sess.close()
    unregister_immutability_listeners()


# =============================================================================
# Sample reference data
# =============================================================================


@pytest.fixture
def groups() -> tuple[WorkerGroup, ...]:
    """
    Four groups:

    - the distinguished cooperative group (owner A): workers 1 and 2
    - an ordinary group (owner B): worker 3
    - a group without owner: worker 4
    - a departed group (owner A): worker 5
    """
    return (
        WorkerGroup(
            id="G-HYAT",
            name=DISTINGUISHED_GROUP,
            owner=OWNER_A,
            workers=(
                WorkerRecord(
                    id=1,
                    name="ALAMI Ahmed",
                    seniority_percentage=Decimal("10"),
                    number_of_children=2,
                    bank_account="011780000012345678901234",
                    cin="Z123456",
                    cnss_number="123456789",
                ),
                WorkerRecord(
                    id=2,
                    name="BENNANI Fatima",
                    seniority_percentage=Decimal("5"),
                ),
            ),
        ),
        WorkerGroup(
            id="G-ATLAS",
            name="GROUPE ATLAS",
            owner=OWNER_B,
            workers=(WorkerRecord(id=3, name="CHAOUI Said"),),
        ),
        WorkerGroup(
            id="G-NOOWNER",
            name="GROUPE SANS CHEF",
            owner=None,
            workers=(WorkerRecord(id=4, name="DRISSI Omar"),),
        ),
        WorkerGroup(
            id="G-ANCIENS",
            name="ANCIENS OUVRIERS",
            owner=OWNER_A,
            workers=(WorkerRecord(id=5, name="ZOUHAIR Karim"),),
            is_departed_group=True,
        ),
    )


@pytest.fixture
def roster(groups) -> Roster:
    return Roster(groups)


@pytest.fixture
def tasks() -> tuple[TaskDefinition, ...]:
    return (
        TaskDefinition(id=1, price=Decimal("5.00"), category="RECOLTE", description="Cueillette olives"),
        TaskDefinition(id=2, price=Decimal("1.20"), category="RECOLTE", description="Cueillette cerises"),
        TaskDefinition(id=3, price=Decimal("80"), category="ENTRETIEN", description="Taille"),
        TaskDefinition(id=37, price=Decimal("8"), category="INDEMNITE", description="Indemnité de lait"),
        TaskDefinition(id=47, price=Decimal("12"), category="INDEMNITE", description="Prime de panier"),
    )


@pytest.fixture
def price_table(tasks) -> TaskPriceTable:
    return TaskPriceTable(tasks)


@pytest.fixture
def make_log():
    """Factory for activity log entries; owner defaults to owner A."""

    def _make(
        worker_id: int,
        task_id: int,
        quantity,
        date: str,
        owner: str | None = OWNER_A,
    ) -> ActivityLogEntry:
        return ActivityLogEntry(
            worker_id=worker_id,
            task_id=task_id,
            quantity=Decimal(str(quantity)),
            date=date,
            owner=owner,
        )

    return _make


@pytest.fixture
def make_attendance():
    """Factory for attendance entries; owner defaults to owner A."""

    def _make(
        worker_id: int,
        days: int,
        year: int = 2025,
        month: int = 6,
        period: HalfMonth = HalfMonth.FIRST,
        owner: str | None = OWNER_A,
    ) -> AttendanceEntry:
        return AttendanceEntry(
            worker_id=worker_id,
            year=year,
            month=month,
            period=period,
            days=days,
            owner=owner,
        )

    return _make


# =============================================================================
# Stores
# =============================================================================


class FailingReportStore(SqlReportStore):
    """
    SqlReportStore whose snapshot writes fail for selected report kinds.

    ``fail_kinds`` is consulted on every ``save_snapshot`` call; remove a
    kind from it to let the next attempt succeed.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_kinds: set[ReportKind] = set()
        self.save_attempts: list[ReportKind] = []

    def save_snapshot(self, snapshot):
        self.save_attempts.append(snapshot.kind)
        if snapshot.kind in self.fail_kinds:
            raise RuntimeError(f"simulated write failure for {snapshot.kind.value}")
        return super().save_snapshot(snapshot)


def _seed(store: SqlReportStore, groups, tasks) -> None:
    for position, group in enumerate(groups):
        store.add_group(group, position=position)
    for task in tasks:
        store.add_task(task)


@pytest.fixture
def store(session, clock, groups, tasks) -> SqlReportStore:
    """SqlReportStore seeded with the sample groups and task catalog."""
    report_store = SqlReportStore(session, clock, actor_id=TEST_ACTOR_ID, owner=OWNER_A)
    _seed(report_store, groups, tasks)
    return report_store


@pytest.fixture
def failing_store(session, clock, groups, tasks) -> FailingReportStore:
    """Seeded store with failure injection on snapshot writes."""
    report_store = FailingReportStore(
        session, clock, actor_id=TEST_ACTOR_ID, owner=OWNER_A,
    )
    _seed(report_store, groups, tasks)
    return report_store
