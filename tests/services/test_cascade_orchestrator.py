"""
Tests for CascadeOrchestrator (the "derive period" saga).

Covers:
- Happy path: four siblings persisted in stage order
- Attendance recorded before sources are read
- Defaults (regional center, order date) from config and clock
- Scope errors before any snapshot write
- Partial failure: IncompleteCascadeError, then resume of pending stages only
- Resume never re-derives from live logs
"""

from decimal import Decimal

import pytest

from piecework_engines.cascade import CascadeRequest
from piecework_kernel.domain.records import HalfMonth
from piecework_kernel.domain.snapshots import ReportKind
from piecework_kernel.domain.values import present
from piecework_kernel.exceptions import IncompleteCascadeError, ScopeResolutionError
from piecework_modules.reports.config import ReportsConfig
from piecework_services import CascadeOrchestrator, CascadeRunStatus

ALL_STAGES = ("bi_monthly", "payroll", "detailed_payroll", "transfer_order")


@pytest.fixture
def request_first_half():
    return CascadeRequest(year=2025, month=6, period=HalfMonth.FIRST, worker_ids=(1, 2))


@pytest.fixture
def orchestrator(store, clock):
    return CascadeOrchestrator(store, clock)


@pytest.fixture
def logged_store(store, make_log):
    store.record_activity(make_log(1, 1, 100, "2025-06-02"))
    store.record_activity(make_log(1, 1, 999, "2025-06-20"))
    return store


class TestDerivePeriod:
    def test_all_siblings_persisted(
        self, logged_store, orchestrator, request_first_half, make_attendance,
    ):
        run = orchestrator.derive_period(
            request_first_half, days_entries=[make_attendance(1, 10)],
        )

        assert run.status is CascadeRunStatus.COMPLETED
        assert run.succeeded == ALL_STAGES
        assert run.pending == ()
        assert run.completed_at is not None
        kinds = [s.kind for s in logged_store.list_snapshots()]
        assert sorted(k.value for k in kinds) == sorted(ALL_STAGES)

    def test_reference_figures(
        self, logged_store, orchestrator, request_first_half, make_attendance,
    ):
        run = orchestrator.derive_period(
            request_first_half, days_entries=[make_attendance(1, 10)],
        )

        payroll = logged_store.get_snapshot(run.report_id(ReportKind.PAYROLL))
        line = payroll.line_for(1)
        assert line.aggregate.task_totals == {1: Decimal("100")}
        assert line.aggregate.days_worked == 10
        assert present(line.amounts.net_pay) == Decimal("712.93")

    def test_attendance_recorded_before_aggregation(
        self, logged_store, orchestrator, request_first_half, make_attendance,
    ):
        orchestrator.derive_period(
            request_first_half,
            days_entries=[make_attendance(1, 10), make_attendance(2, 4)],
        )

        assert [(e.worker_id, e.days) for e in logged_store.list_attendance()] == [
            (1, 10),
            (2, 4),
        ]

    def test_defaults_applied(self, logged_store, orchestrator, request_first_half):
        run = orchestrator.derive_period(request_first_half)

        bi_monthly = run.persisted[ReportKind.BI_MONTHLY]
        transfer = run.persisted[ReportKind.TRANSFER_ORDER]
        assert bi_monthly.params.regional_center == "TAZA"
        assert transfer.params.city == "TAZA"
        assert transfer.params.order_date == "2025-06-01"

    def test_config_overrides_defaults(self, logged_store, clock, request_first_half):
        orchestrator = CascadeOrchestrator(
            logged_store, clock, ReportsConfig(default_regional_center="FES"),
        )

        run = orchestrator.derive_period(request_first_half)

        assert run.persisted[ReportKind.PAYROLL].params.regional_center == "FES"

    def test_snapshots_owned_by_store_owner(
        self, logged_store, orchestrator, request_first_half,
    ):
        run = orchestrator.derive_period(request_first_half)

        assert {s.owner for s in run.persisted.values()} == {"agent-a"}

    def test_unknown_worker_rejected_before_writes(self, store, orchestrator, make_attendance):
        with pytest.raises(ScopeResolutionError, match="unknown workers"):
            orchestrator.derive_period(
                CascadeRequest(year=2025, month=6, period=HalfMonth.FIRST, worker_ids=(1, 99)),
                days_entries=[make_attendance(1, 10)],
            )

        assert store.list_snapshots() == []
        assert store.list_attendance() == []

    def test_empty_selection_rejected_before_writes(self, store, orchestrator, make_attendance):
        with pytest.raises(ScopeResolutionError, match="no workers selected"):
            orchestrator.derive_period(
                CascadeRequest(year=2025, month=6, period=HalfMonth.FIRST, worker_ids=()),
                days_entries=[make_attendance(1, 10)],
            )

        assert store.list_attendance() == []

    def test_invalid_month_rejected_before_writes(self, store, orchestrator, make_attendance):
        with pytest.raises(ScopeResolutionError):
            orchestrator.derive_period(
                CascadeRequest(year=2025, month=13, period=HalfMonth.FIRST, worker_ids=(1,)),
                days_entries=[make_attendance(1, 10)],
            )

        assert store.list_snapshots() == []
        assert store.list_attendance() == []

    def test_lifecycle_logged(
        self, logged_store, orchestrator, request_first_half, captured_logs,
    ):
        run = orchestrator.derive_period(request_first_half)

        records = captured_logs()
        messages = [r["message"] for r in records]
        assert messages.count("cascade_stage_persisted") == 4
        completed = [r for r in records if r["message"] == "cascade_execution_completed"]
        assert completed[0]["run_id"] == str(run.id)


class TestPartialFailure:
    """A failed stage leaves earlier siblings in place and can be resumed."""

    @pytest.fixture
    def orchestrator(self, failing_store, clock, make_log):
        failing_store.record_activity(make_log(1, 1, 100, "2025-06-02"))
        return CascadeOrchestrator(failing_store, clock)

    def test_incomplete_cascade_reported(
        self, failing_store, orchestrator, request_first_half,
    ):
        failing_store.fail_kinds = {ReportKind.PAYROLL}

        with pytest.raises(IncompleteCascadeError) as exc_info:
            orchestrator.derive_period(request_first_half)

        error = exc_info.value
        assert error.code == "INCOMPLETE_CASCADE"
        assert error.succeeded == ("bi_monthly",)
        assert error.pending == ("payroll", "detailed_payroll", "transfer_order")
        assert error.failed_stage == "payroll"
        assert error.run.status is CascadeRunStatus.INCOMPLETE
        assert [s.kind for s in failing_store.list_snapshots()] == [ReportKind.BI_MONTHLY]

    def test_resume_persists_only_pending(
        self, failing_store, orchestrator, request_first_half,
    ):
        failing_store.fail_kinds = {ReportKind.PAYROLL}
        with pytest.raises(IncompleteCascadeError) as exc_info:
            orchestrator.derive_period(request_first_half)
        incomplete = exc_info.value.run

        failing_store.fail_kinds.clear()
        resumed = orchestrator.resume(incomplete)

        assert resumed.status is CascadeRunStatus.COMPLETED
        assert resumed.succeeded == ALL_STAGES
        assert resumed.report_id(ReportKind.BI_MONTHLY) == incomplete.report_id(
            ReportKind.BI_MONTHLY
        )
        assert failing_store.save_attempts == [
            ReportKind.BI_MONTHLY,
            ReportKind.PAYROLL,
            ReportKind.PAYROLL,
            ReportKind.DETAILED_PAYROLL,
            ReportKind.TRANSFER_ORDER,
        ]
        assert len(failing_store.list_snapshots()) == 4

    def test_resume_uses_stored_plan(
        self, failing_store, orchestrator, request_first_half, make_log,
    ):
        failing_store.fail_kinds = {ReportKind.DETAILED_PAYROLL}
        with pytest.raises(IncompleteCascadeError) as exc_info:
            orchestrator.derive_period(request_first_half)

        failing_store.record_activity(make_log(1, 1, 50, "2025-06-03"))
        failing_store.fail_kinds.clear()
        resumed = orchestrator.resume(exc_info.value.run)

        detailed = resumed.persisted[ReportKind.DETAILED_PAYROLL]
        payroll = resumed.persisted[ReportKind.PAYROLL]
        assert detailed.line_for(1).aggregate == payroll.line_for(1).aggregate
        assert detailed.line_for(1).aggregate.task_totals == {1: Decimal("100")}

    def test_resume_failing_again(self, failing_store, orchestrator, request_first_half):
        failing_store.fail_kinds = {ReportKind.TRANSFER_ORDER}
        with pytest.raises(IncompleteCascadeError) as first:
            orchestrator.derive_period(request_first_half)

        with pytest.raises(IncompleteCascadeError) as second:
            orchestrator.resume(first.value.run)

        assert second.value.succeeded == ("bi_monthly", "payroll", "detailed_payroll")
        assert second.value.pending == ("transfer_order",)

    def test_resume_completed_run_is_noop(
        self, failing_store, orchestrator, request_first_half,
    ):
        run = orchestrator.derive_period(request_first_half)
        attempts = list(failing_store.save_attempts)

        assert orchestrator.resume(run) is run
        assert failing_store.save_attempts == attempts

    def test_failure_logged(
        self, failing_store, orchestrator, request_first_half, captured_logs,
    ):
        failing_store.fail_kinds = {ReportKind.PAYROLL}

        with pytest.raises(IncompleteCascadeError):
            orchestrator.derive_period(request_first_half)

        failed = [r for r in captured_logs() if r["message"] == "cascade_stage_failed"]
        assert failed[0]["stage"] == "payroll"
        assert failed[0]["pending"] == ["payroll", "detailed_payroll", "transfer_order"]
