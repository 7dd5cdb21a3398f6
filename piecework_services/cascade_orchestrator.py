"""
piecework_services.cascade_orchestrator -- the "derive period" saga.

Responsibility:
    Records attendance, reads the period's sources from the store, plans
    the cascade once (one aggregation pass, four sibling snapshots) and
    persists the siblings in stage order:

        BiMonthly -> Payroll -> DetailedPayroll -> TransferOrder

    Each persisted stage is recorded on the run.  A failed write stops the
    saga and raises ``IncompleteCascadeError`` carrying the run, so the
    caller can ``resume`` only the missing stages.

Architecture position:
    Services -- stateful orchestration over engines + modules.
    All figures come from ``piecework_engines.cascade.plan_cascade``; the
    orchestrator adds sequencing, defaults and evidence collection.

Invariants enforced:
    - Attendance upserts are awaited one by one and complete before the
      sources are read.
    - Siblings are derived from one aggregation pass; resuming never
      re-derives.
    - No rollback of already-written siblings.

Failure modes:
    - ScopeResolutionError before any write when the period or worker
      selection is malformed.
    - IncompleteCascadeError when a stage write fails.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from uuid import uuid4

from piecework_engines.cascade import CascadeRequest, plan_cascade
from piecework_engines.period import HalfMonthPeriod, resolve_scope
from piecework_kernel.domain.clock import Clock
from piecework_kernel.domain.records import AttendanceEntry
from piecework_kernel.exceptions import IncompleteCascadeError
from piecework_kernel.logging_config import LogContext, get_logger
from piecework_modules.reports.config import ReportsConfig
from piecework_modules.reports.service import ReportStore
from piecework_services._cascade_types import (
    CascadeRun,
    CascadeRunStatus,
    CascadeStageResult,
)

logger = get_logger("services.cascade")


class CascadeOrchestrator:
    """
    Derives and persists the sibling reports of one half-month.

    Contract:
        Receives the store, Clock and ReportsConfig via constructor
        injection.
    Guarantees:
        - ``derive_period`` returns a COMPLETED run or raises.
        - ``resume`` persists only the run's pending stages.
    """

    def __init__(
        self,
        store: ReportStore,
        clock: Clock,
        config: ReportsConfig | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._config = config or ReportsConfig.with_defaults()

    def _with_defaults(self, request: CascadeRequest) -> CascadeRequest:
        return replace(
            request,
            regional_center=request.regional_center or self._config.default_regional_center,
            order_date=request.order_date or self._clock.today(),
        )

    def derive_period(
        self,
        request: CascadeRequest,
        *,
        days_entries: Iterable[AttendanceEntry] = (),
    ) -> CascadeRun:
        """Record attendance, then derive and persist the period's siblings."""
        run_id = uuid4()
        correlation_id = str(uuid4())

        with LogContext.bind(run_id=str(run_id), correlation_id=correlation_id):
            roster = self._store.load_roster()
            scope = resolve_scope(
                HalfMonthPeriod(
                    year=request.year,
                    month=request.month,
                    period=request.period,
                    worker_ids=tuple(request.worker_ids),
                ),
                roster,
            )

            logger.info(
                "cascade_execution_started",
                extra={
                    "year": request.year,
                    "month": request.month,
                    "period": request.period.value,
                    "worker_count": len(request.worker_ids),
                },
            )

            for entry in days_entries:
                self._store.upsert_attendance(entry)

            request = self._with_defaults(request)
            plan = plan_cascade(
                request=request,
                roster=roster,
                prices=self._store.load_price_table(),
                logs=self._store.list_activity(
                    start_date=scope.date_range.start_date,
                    end_date=scope.date_range.end_date,
                ),
                attendance=self._store.list_attendance(),
                default_city=self._config.default_city,
            )

            run = CascadeRun(
                id=run_id,
                correlation_id=correlation_id,
                request=request,
                plan=plan,
                status=CascadeRunStatus.IN_PROGRESS,
                started_at=self._clock.now(),
                warnings=plan.aggregation.warnings,
            )
            return self._persist_pending(run)

    def resume(self, run: CascadeRun) -> CascadeRun:
        """Persist the stages an incomplete run did not write."""
        if run.status is CascadeRunStatus.COMPLETED:
            return run
        with LogContext.bind(run_id=str(run.id), correlation_id=run.correlation_id):
            logger.info(
                "cascade_resume_started",
                extra={"succeeded": list(run.succeeded), "pending": list(run.pending)},
            )
            return self._persist_pending(run)

    def _persist_pending(self, run: CascadeRun) -> CascadeRun:
        results = [r for r in run.stage_results if r.success]
        for stage in run.pending_stages:
            snapshot = run.plan.snapshot_for(stage)
            try:
                saved = self._store.save_snapshot(snapshot)
            except Exception as exc:
                results.append(
                    CascadeStageResult(stage=stage, success=False, message=str(exc))
                )
                run = replace(
                    run,
                    status=CascadeRunStatus.INCOMPLETE,
                    stage_results=tuple(results),
                )
                logger.error(
                    "cascade_stage_failed",
                    extra={
                        "stage": stage.value,
                        "succeeded": list(run.succeeded),
                        "pending": list(run.pending),
                    },
                    exc_info=True,
                )
                raise IncompleteCascadeError(
                    run=run,
                    succeeded=run.succeeded,
                    pending=run.pending,
                    failed_stage=stage.value,
                    cause=str(exc),
                ) from exc

            results.append(CascadeStageResult(stage=stage, success=True, snapshot=saved))
            logger.info(
                "cascade_stage_persisted",
                extra={"stage": stage.value, "report_id": str(saved.id)},
            )

        run = replace(
            run,
            status=CascadeRunStatus.COMPLETED,
            stage_results=tuple(results),
            completed_at=self._clock.now(),
        )
        logger.info(
            "cascade_execution_completed",
            extra={
                "report_ids": {k.value: str(s.id) for k, s in run.persisted.items()},
                "warning_count": len(run.warnings),
            },
        )
        return run
