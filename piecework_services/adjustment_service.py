"""
piecework_services.adjustment_service -- edits on persisted reports.

Responsibility:
    Loads a persisted snapshot, re-derives it with edited adjustment fields
    (``piecework_engines.recompute``) and persists the result as an update
    of the same report.  Also edits the non-monetary params of transfer
    orders (city and order date).

Architecture position:
    Services -- stateful orchestration over engines + modules.

Invariants enforced:
    - Recomputation reads the snapshot's stored aggregates, never the live
      logs, even when attendance was corrected after the snapshot was made.
      That case is reported as ``StaleAggregationWarning``.
    - Transfer order edits never touch lines.

Failure modes:
    - ReportNotFoundError for unknown report ids.
    - AdjustmentNotAllowedError for fields the report kind does not expose.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import date
from uuid import UUID

from piecework_engines.period import DateRange, resolve_half_month
from piecework_engines.recompute import recompute_snapshot
from piecework_kernel.domain.clock import Clock
from piecework_kernel.domain.engine_types import Adjustments
from piecework_kernel.domain.records import AttendanceEntry
from piecework_kernel.domain.snapshots import (
    DerivedReportSnapshot,
    DetailedPayrollParams,
    ReportKind,
)
from piecework_kernel.exceptions import AdjustmentNotAllowedError, StaleAggregationWarning
from piecework_kernel.logging_config import LogContext, get_logger
from piecework_modules.reports.service import ReportStore
from piecework_services._cascade_types import AdjustmentOutcome

logger = get_logger("services.adjustment")


def _snapshot_range(snapshot: DerivedReportSnapshot) -> DateRange:
    params = snapshot.params
    if isinstance(params, DetailedPayrollParams):
        return resolve_half_month(params.year, params.month, params.period)
    return DateRange(start_date=params.start_date, end_date=params.end_date)


def find_stale_workers(
    snapshot: DerivedReportSnapshot,
    attendance: list[AttendanceEntry],
) -> tuple[int, ...]:
    """Workers whose in-range attendance was recorded after the snapshot."""
    if snapshot.created_at is None:
        return ()
    date_range = _snapshot_range(snapshot)
    workers = set(snapshot.worker_ids)
    stale = {
        entry.worker_id
        for entry in attendance
        if entry.worker_id in workers
        and entry.recorded_at is not None
        and entry.recorded_at > snapshot.created_at
        and date_range.covers_half_month(entry.year, entry.month, entry.period)
    }
    return tuple(sorted(stale))


class AdjustmentService:
    """
    Applies user edits to persisted Payroll, DetailedPayroll and
    TransferOrder reports.
    """

    def __init__(self, store: ReportStore, clock: Clock) -> None:
        self._store = store
        self._clock = clock

    def apply_adjustments(
        self,
        report_id: UUID,
        adjustments: Mapping[int, Adjustments],
    ) -> AdjustmentOutcome:
        """Recompute a report with edited adjustments and persist it."""
        with LogContext.bind(report_id=str(report_id)):
            snapshot = self._store.get_snapshot(report_id)
            logger.info(
                "adjustment_recompute_started",
                extra={
                    "report_kind": snapshot.kind.value,
                    "worker_ids": sorted(adjustments),
                },
            )

            recomputed = recompute_snapshot(
                snapshot, adjustments, updated_at=self._clock.now(),
            )

            warnings: tuple[StaleAggregationWarning, ...] = ()
            stale = find_stale_workers(snapshot, self._store.list_attendance())
            if stale:
                warning = StaleAggregationWarning(str(report_id), stale)
                warnings = (warning,)
                logger.warning(
                    "stale_aggregation",
                    extra={"warning_code": warning.code, "worker_ids": list(stale)},
                )

            saved = self._store.save_snapshot(recomputed)
            logger.info(
                "adjustment_recompute_completed",
                extra={"report_kind": saved.kind.value, "line_count": len(saved.lines)},
            )
            return AdjustmentOutcome(snapshot=saved, warnings=warnings)

    def update_transfer_order(
        self,
        report_id: UUID,
        *,
        city: str | None = None,
        order_date: date | str | None = None,
    ) -> DerivedReportSnapshot:
        """Edit a transfer order's city and/or order date."""
        snapshot = self._store.get_snapshot(report_id)
        if snapshot.kind is not ReportKind.TRANSFER_ORDER:
            raise AdjustmentNotAllowedError(snapshot.kind.value, ("city", "order_date"))

        changes: dict[str, str] = {}
        if city is not None:
            changes["city"] = city
        if order_date is not None:
            changes["order_date"] = (
                order_date.isoformat() if isinstance(order_date, date) else order_date
            )
        if not changes:
            return snapshot

        updated = snapshot.with_params(
            replace(snapshot.params, **changes), updated_at=self._clock.now(),
        )
        saved = self._store.save_snapshot(updated)
        logger.info(
            "transfer_order_updated",
            extra={"report_id": str(report_id), "fields": sorted(changes)},
        )
        return saved
