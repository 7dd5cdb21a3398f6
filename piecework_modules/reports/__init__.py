"""
Reports Module (``piecework_modules.reports``).

Responsibility
--------------
Persistence and settings for piece-rate report derivation: worker groups,
workers, the task price table, activity logs, attendance entries and
derived report snapshots (ORM models plus ``SqlReportStore``), and the
``ReportsConfig`` schema.

Architecture position
---------------------
**Modules layer** -- consumed by ``piecework_services``.  Contains no
formula logic; every figure it stores was computed by ``piecework_engines``.

Failure modes
-------------
* ``ReportNotFoundError`` on unknown snapshot ids.
* ``ImmutabilityViolationError`` on activity log updates or deletes.
"""

from piecework_modules.reports.config import ReportsConfig
from piecework_modules.reports.orm import (
    ActivityLogModel,
    AttendanceModel,
    ReportSnapshotModel,
    TaskModel,
    WorkerGroupModel,
    WorkerModel,
)
from piecework_modules.reports.service import ReportStore, SqlReportStore

__all__ = [
    "ReportsConfig",
    "ActivityLogModel",
    "AttendanceModel",
    "ReportSnapshotModel",
    "TaskModel",
    "WorkerGroupModel",
    "WorkerModel",
    "ReportStore",
    "SqlReportStore",
]
