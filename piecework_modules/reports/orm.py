"""
Reports ORM Persistence Models (``piecework_modules.reports.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen domain records of
    ``piecework_kernel.domain`` -- worker groups, workers, tasks, activity
    logs, attendance entries and derived report snapshots.  Each ORM class
    mirrors a DTO and provides ``to_dto()`` / ``from_dto()`` conversion.

Architecture position:
    **Modules layer** -- persistence companions to the pure domain records.
    Inherits from ``TrackedBase`` (kernel DB base) which provides:
    id (UUID PK), created_at, updated_at, created_by_id, updated_by_id.

Invariants enforced:
    - Quantities, prices and percentages use Decimal (Numeric(38,9)).
    - Workers and tasks keep their business numbers (``number``) as unique
      integer columns; the UUID primary key is internal.
    - At most one attendance row per (worker, year, month, period)
      (uq_attendance_worker_half_month).
    - Activity log rows are append-only (see
      ``piecework_kernel.db.immutability``).
    - Snapshot params and lines are stored as the JSON payload produced by
      ``DerivedReportSnapshot.to_payload()``; Decimals are strings.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from piecework_kernel.db.base import TrackedBase, as_utc

# ---------------------------------------------------------------------------
# WorkerGroupModel
# ---------------------------------------------------------------------------


class WorkerGroupModel(TrackedBase):
    """
    ORM model for ``WorkerGroup`` -- a group of workers under one owner.

    Contract:
        ``code`` is the group's business identifier.  ``position`` orders
        groups when the roster is rebuilt.
    """

    __tablename__ = "worker_groups"

    code: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    owner: Mapped[str | None] = mapped_column(String(100), nullable=True)
    position: Mapped[int] = mapped_column(default=0, nullable=False)
    is_departed_group: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    workers: Mapped[list["WorkerModel"]] = relationship(
        back_populates="group",
        order_by="WorkerModel.number",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("code", name="uq_worker_group_code"),
        Index("idx_worker_group_owner", "owner"),
    )

    def to_dto(self):
        from piecework_kernel.domain.records import WorkerGroup
        return WorkerGroup(
            id=self.code,
            name=self.name,
            owner=self.owner,
            workers=tuple(w.to_dto() for w in self.workers),
            is_departed_group=self.is_departed_group,
            is_archived=self.is_archived,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID, position: int = 0) -> "WorkerGroupModel":
        return cls(
            code=dto.id,
            name=dto.name,
            owner=dto.owner,
            position=position,
            is_departed_group=dto.is_departed_group,
            is_archived=dto.is_archived,
            workers=[WorkerModel.from_dto(w, created_by_id) for w in dto.workers],
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<WorkerGroupModel {self.code}: {self.name} ({self.owner})>"


# ---------------------------------------------------------------------------
# WorkerModel
# ---------------------------------------------------------------------------


class WorkerModel(TrackedBase):
    """ORM model for ``WorkerRecord``."""

    __tablename__ = "workers"

    number: Mapped[int] = mapped_column(nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    seniority_percentage: Mapped[Decimal] = mapped_column(nullable=False)
    number_of_children: Mapped[int] = mapped_column(default=0, nullable=False)
    bank_account: Mapped[str | None] = mapped_column(String(50), nullable=True)
    cin: Mapped[str | None] = mapped_column(String(20), nullable=True)
    cnss_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    group_id: Mapped[UUID] = mapped_column(ForeignKey("worker_groups.id"), nullable=False)

    group: Mapped[WorkerGroupModel] = relationship(back_populates="workers")

    __table_args__ = (
        UniqueConstraint("number", name="uq_worker_number"),
        Index("idx_worker_group", "group_id"),
    )

    def to_dto(self):
        from piecework_kernel.domain.records import WorkerRecord
        return WorkerRecord(
            id=self.number,
            name=self.name,
            seniority_percentage=self.seniority_percentage,
            number_of_children=self.number_of_children,
            bank_account=self.bank_account,
            cin=self.cin,
            cnss_number=self.cnss_number,
            is_archived=self.is_archived,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "WorkerModel":
        return cls(
            number=dto.id,
            name=dto.name,
            seniority_percentage=dto.seniority_percentage,
            number_of_children=dto.number_of_children,
            bank_account=dto.bank_account,
            cin=dto.cin,
            cnss_number=dto.cnss_number,
            is_archived=dto.is_archived,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<WorkerModel {self.number}: {self.name}>"


# ---------------------------------------------------------------------------
# TaskModel
# ---------------------------------------------------------------------------


class TaskModel(TrackedBase):
    """ORM model for ``TaskDefinition`` -- the task price table source."""

    __tablename__ = "tasks"

    number: Mapped[int] = mapped_column(nullable=False)
    price: Mapped[Decimal] = mapped_column(nullable=False)
    category: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)

    __table_args__ = (
        UniqueConstraint("number", name="uq_task_number"),
    )

    def to_dto(self):
        from piecework_kernel.domain.records import TaskDefinition
        return TaskDefinition(
            id=self.number,
            price=self.price,
            category=self.category,
            description=self.description,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "TaskModel":
        return cls(
            number=dto.id,
            price=dto.price,
            category=dto.category,
            description=dto.description,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<TaskModel {self.number}: {self.price}>"


# ---------------------------------------------------------------------------
# ActivityLogModel
# ---------------------------------------------------------------------------


class ActivityLogModel(TrackedBase):
    """
    ORM model for ``ActivityLogEntry``.

    Contract:
        Append-only.  ``owner`` is the ownership tag at write time and is
        never rewritten when the worker changes group.
    """

    __tablename__ = "activity_logs"

    worker_number: Mapped[int] = mapped_column(nullable=False)
    task_number: Mapped[int] = mapped_column(nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    log_date: Mapped[str] = mapped_column(String(10), nullable=False)
    owner: Mapped[str | None] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index("idx_activity_log_date", "log_date"),
        Index("idx_activity_log_worker", "worker_number"),
    )

    def to_dto(self):
        from piecework_kernel.domain.records import ActivityLogEntry
        return ActivityLogEntry(
            id=self.id,
            worker_id=self.worker_number,
            task_id=self.task_number,
            quantity=self.quantity,
            date=self.log_date,
            owner=self.owner,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "ActivityLogModel":
        model = cls(
            worker_number=dto.worker_id,
            task_number=dto.task_id,
            quantity=dto.quantity,
            log_date=dto.date,
            owner=dto.owner,
            created_by_id=created_by_id,
        )
        if dto.id is not None:
            model.id = dto.id
        return model

    def __repr__(self) -> str:
        return (
            f"<ActivityLogModel {self.log_date} worker={self.worker_number} "
            f"task={self.task_number} qty={self.quantity}>"
        )


# ---------------------------------------------------------------------------
# AttendanceModel
# ---------------------------------------------------------------------------


class AttendanceModel(TrackedBase):
    """
    ORM model for ``AttendanceEntry`` -- days worked in one half-month.

    Contract:
        Upserted by (worker_number, year, month, period).  ``updated_at``
        is the entry's ``recorded_at``.
    """

    __tablename__ = "attendance_entries"

    worker_number: Mapped[int] = mapped_column(nullable=False)
    year: Mapped[int] = mapped_column(nullable=False)
    month: Mapped[int] = mapped_column(nullable=False)
    period: Mapped[str] = mapped_column(String(10), nullable=False)
    days: Mapped[int] = mapped_column(nullable=False)
    owner: Mapped[str | None] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "worker_number", "year", "month", "period",
            name="uq_attendance_worker_half_month",
        ),
        Index("idx_attendance_year_month", "year", "month"),
    )

    def to_dto(self):
        from piecework_kernel.domain.records import AttendanceEntry, HalfMonth
        return AttendanceEntry(
            worker_id=self.worker_number,
            year=self.year,
            month=self.month,
            period=HalfMonth(self.period),
            days=self.days,
            owner=self.owner,
            recorded_at=as_utc(self.updated_at),
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "AttendanceModel":
        return cls(
            worker_number=dto.worker_id,
            year=dto.year,
            month=dto.month,
            period=dto.period.value,
            days=dto.days,
            owner=dto.owner,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<AttendanceModel worker={self.worker_number} "
            f"{self.year}-{self.month:02d}/{self.period}: {self.days}>"
        )


# ---------------------------------------------------------------------------
# ReportSnapshotModel
# ---------------------------------------------------------------------------


class ReportSnapshotModel(TrackedBase):
    """
    ORM model for ``DerivedReportSnapshot`` (every report kind).

    Contract:
        ``kind`` is the ReportKind value.  ``params`` and ``lines`` hold the
        JSON payload of the snapshot and are replaced wholesale on update.
    """

    __tablename__ = "report_snapshots"

    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    owner: Mapped[str | None] = mapped_column(String(100), nullable=True)
    params: Mapped[dict] = mapped_column(JSON, nullable=False)
    lines: Mapped[list] = mapped_column(JSON, nullable=False)

    __table_args__ = (
        Index("idx_report_snapshot_kind", "kind"),
        Index("idx_report_snapshot_owner", "owner"),
    )

    def to_dto(self):
        from piecework_kernel.domain.snapshots import DerivedReportSnapshot
        created_at = as_utc(self.created_at)
        updated_at = as_utc(self.updated_at)
        return DerivedReportSnapshot.from_payload(
            {
                "id": str(self.id),
                "kind": self.kind,
                "owner": self.owner,
                "created_at": created_at.isoformat() if created_at else None,
                "updated_at": updated_at.isoformat() if updated_at else None,
                "params": self.params,
                "lines": self.lines,
            }
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "ReportSnapshotModel":
        payload = dto.to_payload()
        model = cls(
            kind=payload["kind"],
            owner=dto.owner,
            params=payload["params"],
            lines=payload["lines"],
            created_by_id=created_by_id,
        )
        if dto.id is not None:
            model.id = dto.id
        return model

    def apply_dto(self, dto, updated_by_id: UUID) -> None:
        """Replace params and lines from an updated snapshot."""
        payload = dto.to_payload()
        self.params = payload["params"]
        self.lines = payload["lines"]
        self.updated_by_id = updated_by_id

    def __repr__(self) -> str:
        return f"<ReportSnapshotModel {self.id}: {self.kind}>"
