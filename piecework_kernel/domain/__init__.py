"""
Pure domain layer.

Immutable records, engine DTOs and report snapshots with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time (see ``clock``)
- I/O
"""

from piecework_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from piecework_kernel.domain.engine_types import (
    NO_ADJUSTMENTS,
    Adjustments,
    DerivedAmounts,
    ReportTotals,
    TaskLine,
    Withholding,
    WithholdingPolicy,
    WorkerAggregate,
    adjustments_by_worker,
    sum_task_totals,
)
from piecework_kernel.domain.records import (
    INDEMNITY_TASK_IDS,
    LAIT_TASK_ID,
    PANIER_TASK_ID,
    UNKNOWN_TASK_CATEGORY,
    ActivityLogEntry,
    AttendanceEntry,
    HalfMonth,
    Roster,
    TaskDefinition,
    TaskPriceTable,
    WorkerGroup,
    WorkerRecord,
)
from piecework_kernel.domain.snapshots import (
    ADJUSTABLE_FIELDS,
    AnnualSummaryParams,
    BiMonthlyLine,
    BiMonthlyParams,
    DerivedReportSnapshot,
    DetailedPayrollParams,
    PayLine,
    PayrollParams,
    ReportKind,
    RollupLine,
    SeasonSummaryParams,
    TransferOrderParams,
)
from piecework_kernel.domain.values import CENT, ZERO, parse_amount, present, to_decimal

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "NO_ADJUSTMENTS",
    "Adjustments",
    "DerivedAmounts",
    "ReportTotals",
    "TaskLine",
    "Withholding",
    "WithholdingPolicy",
    "WorkerAggregate",
    "adjustments_by_worker",
    "sum_task_totals",
    "INDEMNITY_TASK_IDS",
    "LAIT_TASK_ID",
    "PANIER_TASK_ID",
    "UNKNOWN_TASK_CATEGORY",
    "ActivityLogEntry",
    "AttendanceEntry",
    "HalfMonth",
    "Roster",
    "TaskDefinition",
    "TaskPriceTable",
    "WorkerGroup",
    "WorkerRecord",
    "ADJUSTABLE_FIELDS",
    "AnnualSummaryParams",
    "BiMonthlyLine",
    "BiMonthlyParams",
    "DerivedReportSnapshot",
    "DetailedPayrollParams",
    "PayLine",
    "PayrollParams",
    "ReportKind",
    "RollupLine",
    "SeasonSummaryParams",
    "TransferOrderParams",
    "CENT",
    "ZERO",
    "parse_amount",
    "present",
    "to_decimal",
]
