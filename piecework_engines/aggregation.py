"""
Aggregation Engine -- raw logs and attendance to per-worker totals.

Responsibility:
    Scans activity log entries and attendance entries for a date range and
    worker scope and produces, per worker, the summed quantity of every task
    and the total days worked.  Also produces the column totals and the
    sorted header task ids used by the tabular BiMonthly and season views.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Consumed by the cascade
    planner and the rollup service.

Invariants enforced:
    - Ownership: an entry counts only when its own ``owner`` tag equals the
      worker's current owner of record.  A worker whose group has no owner
      has no countable entries.
    - Ordering independence: quantities are summed as ``Decimal`` without
      intermediate rounding, so any permutation of the inputs yields the
      same totals.
    - Attendance entries count when their half-month lies inside the range.
    - Indemnity task quantities are aggregated like any other task; the
      derivation engine is responsible for excluding them from pay.

Failure modes:
    None raised.  Entries that reference a worker absent from the roster
    are skipped and reported as ``MissingReferenceWarning`` (one per
    record type and worker id, with a count).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from piecework_engines.period import DateRange
from piecework_engines.tracer import traced_engine
from piecework_kernel.domain.engine_types import WorkerAggregate, sum_task_totals
from piecework_kernel.domain.records import ActivityLogEntry, AttendanceEntry, Roster
from piecework_kernel.domain.values import ZERO
from piecework_kernel.exceptions import MissingReferenceWarning
from piecework_kernel.logging_config import get_logger

logger = get_logger("engines.aggregation")


@dataclass(frozen=True)
class AggregationResult:
    """Per-worker aggregates for one range and scope."""
    date_range: DateRange
    aggregates: tuple[WorkerAggregate, ...]
    column_totals: dict[int, Decimal] = field(default_factory=dict)
    header_task_ids: tuple[int, ...] = ()
    total_days: int = 0
    warnings: tuple[MissingReferenceWarning, ...] = ()
    ownership_mismatches: int = 0

    @property
    def worker_ids(self) -> tuple[int, ...]:
        return tuple(a.worker_id for a in self.aggregates)

    def aggregate_for(self, worker_id: int) -> WorkerAggregate | None:
        for aggregate in self.aggregates:
            if aggregate.worker_id == worker_id:
                return aggregate
        return None


def _missing_warnings(
    record_type: str, counts: dict[int, int],
) -> list[MissingReferenceWarning]:
    return [
        MissingReferenceWarning(record_type, worker_id, count)
        for worker_id, count in sorted(counts.items())
    ]


@traced_engine(
    "aggregation", "1.0",
    fingerprint_fields=("date_range", "worker_ids", "full_roster"),
)
def aggregate_activity(
    *,
    date_range: DateRange,
    worker_ids: Iterable[int],
    roster: Roster,
    logs: Iterable[ActivityLogEntry],
    attendance: Iterable[AttendanceEntry],
    full_roster: bool = False,
) -> AggregationResult:
    """
    Aggregate logs and attendance for ``worker_ids`` over ``date_range``.

    Args:
        full_roster: Keep every worker in scope even without activity or
            days.  When False, such workers are dropped.

    Returns:
        AggregationResult with aggregates in scope order.
    """
    scope = tuple(dict.fromkeys(worker_ids))
    in_scope = set(scope)
    owners = {w: roster.owner_of_record(w) for w in scope}

    task_totals: dict[int, dict[int, Decimal]] = {w: {} for w in scope}
    days: dict[int, int] = {w: 0 for w in scope}
    missing_logs: dict[int, int] = {}
    missing_days: dict[int, int] = {}
    mismatches = 0

    for entry in logs:
        if not date_range.contains(entry.date):
            continue
        if entry.worker_id not in roster:
            missing_logs[entry.worker_id] = missing_logs.get(entry.worker_id, 0) + 1
            continue
        if entry.worker_id not in in_scope:
            continue
        owner = owners[entry.worker_id]
        if owner is None or entry.owner != owner:
            mismatches += 1
            continue
        totals = task_totals[entry.worker_id]
        totals[entry.task_id] = totals.get(entry.task_id, ZERO) + entry.quantity

    for record in attendance:
        if not date_range.covers_half_month(record.year, record.month, record.period):
            continue
        if record.worker_id not in roster:
            missing_days[record.worker_id] = missing_days.get(record.worker_id, 0) + 1
            continue
        if record.worker_id not in in_scope:
            continue
        owner = owners[record.worker_id]
        if owner is None or record.owner != owner:
            mismatches += 1
            continue
        days[record.worker_id] += record.days

    aggregates = tuple(
        aggregate
        for aggregate in (
            WorkerAggregate(worker_id=w, task_totals=task_totals[w], days_worked=days[w])
            for w in scope
        )
        if full_roster or not aggregate.is_empty
    )

    warnings = tuple(
        _missing_warnings("activity_log", missing_logs)
        + _missing_warnings("attendance", missing_days)
    )
    for warning in warnings:
        logger.warning(
            "missing_worker_reference",
            extra={
                "warning_code": warning.code,
                "record_type": warning.record_type,
                "worker_id": warning.worker_id,
                "count": warning.count,
            },
        )

    column_totals = sum_task_totals(aggregates)
    return AggregationResult(
        date_range=date_range,
        aggregates=aggregates,
        column_totals=column_totals,
        header_task_ids=tuple(column_totals),
        total_days=sum(a.days_worked for a in aggregates),
        warnings=warnings,
        ownership_mismatches=mismatches,
    )


def merge_aggregates(
    aggregates: Iterable[WorkerAggregate],
    worker_id: int | None = None,
) -> WorkerAggregate:
    """
    Sum several aggregates of the same worker (e.g. one per half-month).

    Raises:
        ValueError: if the aggregates belong to different workers, or if
            none are given and ``worker_id`` is not supplied.
    """
    items = list(aggregates)
    ids = {a.worker_id for a in items}
    if worker_id is not None:
        ids.add(worker_id)
    if len(ids) != 1:
        raise ValueError(
            f"merge_aggregates needs exactly one worker id, got {sorted(ids)}"
        )
    totals: dict[int, Decimal] = {}
    for aggregate in items:
        for task_id, quantity in aggregate.task_totals.items():
            totals[task_id] = totals.get(task_id, ZERO) + quantity
    return WorkerAggregate(
        worker_id=ids.pop(),
        task_totals=totals,
        days_worked=sum(a.days_worked for a in items),
    )
