"""
Reports Persistence Service (``piecework_modules.reports.service``).

Responsibility
--------------
SQL-backed persistence layer for report derivation.  ``SqlReportStore``
reads workers, tasks, activity logs, attendance and snapshots, upserts
attendance by (worker, year, month, period), and creates / updates /
deletes derived report snapshots, assigning ids and timestamps.

Architecture position
---------------------
**Modules layer** -- thin persistence glue over the ORM models in
``piecework_modules.reports.orm``.  Implements the ``ReportStore`` protocol
consumed by ``piecework_services``.

Invariants enforced
-------------------
* Each write method owns its transaction boundary (commit on success,
  rollback and re-raise on failure), so cascade stages persist
  independently.
* Timestamps come from the injected ``Clock``, never from the database.
* Deleting a snapshot never touches any other snapshot.

Failure modes
-------------
* ``ReportNotFoundError`` -- unknown snapshot id on get / delete.
* ``ImmutabilityViolationError`` -- activity log update or delete, when the
  immutability listeners are registered.
* SQLAlchemy errors propagate after rollback.

Usage::

    store = SqlReportStore(session, clock, actor_id=actor_id, owner="agent-1")
    roster = store.load_roster()
    saved = store.save_snapshot(snapshot)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, TypeVar
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from piecework_kernel.db.base import as_utc
from piecework_kernel.domain.clock import Clock
from piecework_kernel.domain.records import (
    ActivityLogEntry,
    AttendanceEntry,
    Roster,
    TaskDefinition,
    TaskPriceTable,
    WorkerGroup,
)
from piecework_kernel.domain.snapshots import DerivedReportSnapshot, ReportKind
from piecework_kernel.exceptions import ReportNotFoundError
from piecework_kernel.logging_config import LogContext, get_logger
from piecework_modules.reports.orm import (
    ActivityLogModel,
    AttendanceModel,
    ReportSnapshotModel,
    TaskModel,
    WorkerGroupModel,
)

logger = get_logger("modules.reports.service")

T = TypeVar("T")


class ReportStore(Protocol):
    """Persistence contract consumed by the report services."""

    def load_roster(self) -> Roster: ...

    def load_price_table(self) -> TaskPriceTable: ...

    def list_activity(
        self, *, start_date: str | None = None, end_date: str | None = None,
    ) -> list[ActivityLogEntry]: ...

    def list_attendance(self) -> list[AttendanceEntry]: ...

    def upsert_attendance(self, entry: AttendanceEntry) -> AttendanceEntry: ...

    def save_snapshot(self, snapshot: DerivedReportSnapshot) -> DerivedReportSnapshot: ...

    def get_snapshot(self, report_id: UUID) -> DerivedReportSnapshot: ...

    def list_snapshots(self, kind: ReportKind | None = None) -> list[DerivedReportSnapshot]: ...

    def delete_snapshot(self, report_id: UUID) -> None: ...


class SqlReportStore:
    """
    ``ReportStore`` over a SQLAlchemy session.

    Contract:
        ``owner`` tags snapshots saved without an owner of their own.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock,
        actor_id: UUID,
        owner: str | None = None,
    ):
        self._session = session
        self._clock = clock
        self._actor_id = actor_id
        self._owner = owner

    # ------------------------------------------------------------------
    # Transaction boundary
    # ------------------------------------------------------------------

    def _write(self, operation: str, fn: Callable[[], T]) -> T:
        with LogContext.bind(actor_id=str(self._actor_id)):
            try:
                result = fn()
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning(
                    "report_store_write_rolled_back",
                    extra={"operation": operation},
                    exc_info=True,
                )
                raise
        return result

    def _log_write(self, event: str, **fields) -> None:
        with LogContext.bind(actor_id=str(self._actor_id)):
            logger.info(event, extra=fields)

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------

    def add_group(self, group: WorkerGroup, position: int = 0) -> WorkerGroup:
        """Persist a worker group and its workers."""
        now = self._clock.now()

        def _add() -> WorkerGroup:
            model = WorkerGroupModel.from_dto(group, self._actor_id, position)
            model.created_at = model.updated_at = now
            for worker in model.workers:
                worker.created_at = worker.updated_at = now
            self._session.add(model)
            self._session.flush()
            return model.to_dto()

        saved = self._write("add_group", _add)
        self._log_write(
            "worker_group_added", group=group.id, worker_count=len(group.workers),
        )
        return saved

    def add_task(self, task: TaskDefinition) -> TaskDefinition:
        now = self._clock.now()

        def _add() -> TaskDefinition:
            model = TaskModel.from_dto(task, self._actor_id)
            model.created_at = model.updated_at = now
            self._session.add(model)
            self._session.flush()
            return model.to_dto()

        return self._write("add_task", _add)

    def load_roster(self) -> Roster:
        groups = self._session.scalars(
            select(WorkerGroupModel).order_by(
                WorkerGroupModel.position, WorkerGroupModel.code
            )
        ).all()
        return Roster(g.to_dto() for g in groups)

    def load_price_table(self) -> TaskPriceTable:
        tasks = self._session.scalars(select(TaskModel).order_by(TaskModel.number)).all()
        return TaskPriceTable(t.to_dto() for t in tasks)

    # ------------------------------------------------------------------
    # Activity and attendance
    # ------------------------------------------------------------------

    def record_activity(self, entry: ActivityLogEntry) -> ActivityLogEntry:
        """Append an activity log entry."""
        now = self._clock.now()

        def _add() -> ActivityLogEntry:
            model = ActivityLogModel.from_dto(entry, self._actor_id)
            model.created_at = model.updated_at = now
            self._session.add(model)
            self._session.flush()
            return model.to_dto()

        return self._write("record_activity", _add)

    def list_activity(
        self, *, start_date: str | None = None, end_date: str | None = None,
    ) -> list[ActivityLogEntry]:
        stmt = select(ActivityLogModel)
        if start_date is not None:
            stmt = stmt.where(ActivityLogModel.log_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(ActivityLogModel.log_date <= end_date)
        stmt = stmt.order_by(ActivityLogModel.log_date, ActivityLogModel.id)
        return [m.to_dto() for m in self._session.scalars(stmt).all()]

    def list_attendance(self) -> list[AttendanceEntry]:
        stmt = select(AttendanceModel).order_by(
            AttendanceModel.year,
            AttendanceModel.month,
            AttendanceModel.period,
            AttendanceModel.worker_number,
        )
        return [m.to_dto() for m in self._session.scalars(stmt).all()]

    def upsert_attendance(self, entry: AttendanceEntry) -> AttendanceEntry:
        """Insert, or update in place, the entry for the entry's key."""
        now = self._clock.now()

        def _upsert() -> AttendanceEntry:
            model = self._session.scalars(
                select(AttendanceModel).where(
                    AttendanceModel.worker_number == entry.worker_id,
                    AttendanceModel.year == entry.year,
                    AttendanceModel.month == entry.month,
                    AttendanceModel.period == entry.period.value,
                )
            ).one_or_none()
            if model is None:
                model = AttendanceModel.from_dto(entry, self._actor_id)
                model.created_at = now
                self._session.add(model)
            else:
                model.days = entry.days
                model.owner = entry.owner
                model.updated_by_id = self._actor_id
            model.updated_at = now
            self._session.flush()
            return model.to_dto()

        saved = self._write("upsert_attendance", _upsert)
        self._log_write(
            "attendance_upserted",
            worker_id=entry.worker_id,
            year=entry.year,
            month=entry.month,
            period=entry.period.value,
            days=entry.days,
        )
        return saved

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def _get_model(self, report_id: UUID) -> ReportSnapshotModel:
        model = self._session.get(ReportSnapshotModel, report_id)
        if model is None:
            raise ReportNotFoundError(str(report_id))
        return model

    def save_snapshot(self, snapshot: DerivedReportSnapshot) -> DerivedReportSnapshot:
        """Create the snapshot, or update it when its id already exists."""
        now = self._clock.now()

        def _save() -> DerivedReportSnapshot:
            model = None
            if snapshot.id is not None:
                model = self._session.get(ReportSnapshotModel, snapshot.id)
            if model is None:
                to_insert = snapshot
                if snapshot.id is None:
                    to_insert = snapshot.persisted(
                        id=uuid4(),
                        owner=snapshot.owner or self._owner,
                        created_at=now,
                        updated_at=now,
                    )
                model = ReportSnapshotModel.from_dto(to_insert, self._actor_id)
                model.owner = to_insert.owner or self._owner
                model.created_at = now
                model.updated_at = now
                self._session.add(model)
                created_at = now
            else:
                model.apply_dto(snapshot, self._actor_id)
                model.updated_at = now
                created_at = as_utc(model.created_at)
            self._session.flush()
            return snapshot.persisted(
                id=model.id,
                owner=model.owner,
                created_at=created_at,
                updated_at=now,
            )

        saved = self._write("save_snapshot", _save)
        self._log_write(
            "report_snapshot_saved",
            report_id=str(saved.id),
            report_kind=saved.kind.value,
            line_count=len(saved.lines),
        )
        return saved

    def get_snapshot(self, report_id: UUID) -> DerivedReportSnapshot:
        return self._get_model(report_id).to_dto()

    def list_snapshots(self, kind: ReportKind | None = None) -> list[DerivedReportSnapshot]:
        stmt = select(ReportSnapshotModel)
        if kind is not None:
            stmt = stmt.where(ReportSnapshotModel.kind == kind.value)
        stmt = stmt.order_by(ReportSnapshotModel.created_at, ReportSnapshotModel.id)
        return [m.to_dto() for m in self._session.scalars(stmt).all()]

    def delete_snapshot(self, report_id: UUID) -> None:
        def _delete() -> None:
            self._session.delete(self._get_model(report_id))
            self._session.flush()

        self._write("delete_snapshot", _delete)
        self._log_write("report_snapshot_deleted", report_id=str(report_id))
