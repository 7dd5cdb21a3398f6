"""
Cascade planning -- one aggregation, four sibling snapshots.

Responsibility:
    Given a half-month derivation request, runs a single aggregation pass
    and builds, from that one result, the BiMonthly, Payroll,
    DetailedPayroll and TransferOrder snapshots of the period.  Persisting
    the plan is the orchestrator's job (piecework_services).

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - No sibling re-aggregates: every snapshot reads the same
      ``AggregationResult`` and the same frozen price mapping, so
      total_operation, anciennete and total_brut agree across siblings for
      equal adjustments.
    - The BiMonthly, Payroll and DetailedPayroll snapshots carry every
      requested worker, in request order.
    - The TransferOrder only carries workers with a strictly positive net
      pay.

Failure modes:
    - ScopeResolutionError from the period resolver (bad month, empty or
      unknown worker selection).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from piecework_engines.aggregation import AggregationResult, aggregate_activity
from piecework_engines.derivation import (
    DETAILED_PAYROLL_PROFILE,
    PAYROLL_PROFILE,
    TRANSFER_ORDER_PROFILE,
    DerivationProfile,
    derive_line,
)
from piecework_engines.period import HalfMonthPeriod, ResolvedScope, resolve_scope
from piecework_engines.tracer import traced_engine
from piecework_kernel.domain.engine_types import NO_ADJUSTMENTS, Adjustments
from piecework_kernel.domain.records import (
    ActivityLogEntry,
    AttendanceEntry,
    HalfMonth,
    Roster,
    TaskPriceTable,
)
from piecework_kernel.domain.snapshots import (
    BiMonthlyLine,
    BiMonthlyParams,
    DerivedReportSnapshot,
    DetailedPayrollParams,
    PayLine,
    PayrollParams,
    ReportKind,
    TransferOrderParams,
)
from piecework_kernel.domain.values import ZERO

DEFAULT_CITY = "Taza"

CASCADE_STAGES: tuple[ReportKind, ...] = (
    ReportKind.BI_MONTHLY,
    ReportKind.PAYROLL,
    ReportKind.DETAILED_PAYROLL,
    ReportKind.TRANSFER_ORDER,
)


@dataclass(frozen=True)
class CascadeRequest:
    """
    A "derive period" request for one half-month and worker selection.

    ``payroll_adjustments`` / ``detailed_adjustments`` seed the editable
    fields of the two payroll variants; both are usually empty at creation.
    ``order_date`` left as ``None`` is filled in by the orchestrator with
    the clock's current date.
    """
    year: int
    month: int
    period: HalfMonth
    worker_ids: tuple[int, ...]
    regional_center: str = ""
    city: str | None = None
    order_date: date | None = None
    payroll_adjustments: dict[int, Adjustments] = field(default_factory=dict)
    detailed_adjustments: dict[int, Adjustments] = field(default_factory=dict)


@dataclass(frozen=True)
class CascadePlan:
    """The snapshots of one period, ready to persist in stage order."""
    scope: ResolvedScope
    aggregation: AggregationResult
    prices: dict[int, Decimal]
    snapshots: tuple[DerivedReportSnapshot, ...]

    def snapshot_for(self, kind: ReportKind) -> DerivedReportSnapshot:
        for snapshot in self.snapshots:
            if snapshot.kind is kind:
                return snapshot
        raise KeyError(kind)


def build_pay_lines(
    *,
    aggregation: AggregationResult,
    roster: Roster,
    prices: Mapping[int, Decimal],
    adjustments: Mapping[int, Adjustments],
    profile: DerivationProfile,
) -> tuple[PayLine, ...]:
    """Derive one pay line per aggregate, in aggregation order."""
    lines: list[PayLine] = []
    for aggregate in aggregation.aggregates:
        worker = roster.worker(aggregate.worker_id)
        seniority = worker.seniority_percentage if worker else ZERO
        amounts = derive_line(
            aggregate=aggregate,
            seniority_percentage=seniority,
            prices=prices,
            adjustments=adjustments.get(aggregate.worker_id, NO_ADJUSTMENTS),
            profile=profile,
        )
        lines.append(
            PayLine(
                worker_id=aggregate.worker_id,
                worker_name=worker.name if worker else "",
                seniority_percentage=seniority,
                number_of_children=worker.number_of_children if worker else 0,
                aggregate=aggregate,
                amounts=amounts,
            )
        )
    return tuple(lines)


@traced_engine(
    "cascade", "1.0",
    fingerprint_fields=("request",),
)
def plan_cascade(
    *,
    request: CascadeRequest,
    roster: Roster,
    prices: TaskPriceTable,
    logs: Iterable[ActivityLogEntry],
    attendance: Iterable[AttendanceEntry],
    default_city: str = DEFAULT_CITY,
) -> CascadePlan:
    """Aggregate once and build the four sibling snapshots of a half-month."""
    scope = resolve_scope(
        HalfMonthPeriod(
            year=request.year,
            month=request.month,
            period=request.period,
            worker_ids=tuple(request.worker_ids),
        ),
        roster,
    )
    aggregation = aggregate_activity(
        date_range=scope.date_range,
        worker_ids=scope.worker_ids,
        roster=roster,
        logs=logs,
        attendance=attendance,
        full_roster=True,
    )
    frozen_prices = prices.prices_for(aggregation.header_task_ids)
    start, end = scope.date_range.start_date, scope.date_range.end_date
    worker_ids = scope.worker_ids

    bi_monthly = DerivedReportSnapshot(
        kind=ReportKind.BI_MONTHLY,
        params=BiMonthlyParams(
            year=request.year,
            month=request.month,
            period=request.period,
            regional_center=request.regional_center,
            worker_ids=worker_ids,
            start_date=start,
            end_date=end,
        ),
        lines=tuple(
            BiMonthlyLine(
                worker_id=a.worker_id,
                worker_name=roster.worker(a.worker_id).name,
                aggregate=a,
            )
            for a in aggregation.aggregates
        ),
    )

    payroll = DerivedReportSnapshot(
        kind=ReportKind.PAYROLL,
        params=PayrollParams(
            start_date=start,
            end_date=end,
            worker_ids=worker_ids,
            school_year=f"{request.year}/{request.year + 1}",
            settlement_year=f"{request.year + 1}/{request.year + 2}",
            regional_center=request.regional_center,
            prices=frozen_prices,
            adjustments=dict(request.payroll_adjustments),
        ),
        lines=build_pay_lines(
            aggregation=aggregation,
            roster=roster,
            prices=frozen_prices,
            adjustments=request.payroll_adjustments,
            profile=PAYROLL_PROFILE,
        ),
    )

    detailed = DerivedReportSnapshot(
        kind=ReportKind.DETAILED_PAYROLL,
        params=DetailedPayrollParams(
            year=request.year,
            month=request.month,
            period=request.period,
            regional_center=request.regional_center,
            worker_ids=worker_ids,
            prices=frozen_prices,
            adjustments=dict(request.detailed_adjustments),
        ),
        lines=build_pay_lines(
            aggregation=aggregation,
            roster=roster,
            prices=frozen_prices,
            adjustments=request.detailed_adjustments,
            profile=DETAILED_PAYROLL_PROFILE,
        ),
    )

    transfer_lines = tuple(
        line
        for line in build_pay_lines(
            aggregation=aggregation,
            roster=roster,
            prices=frozen_prices,
            adjustments={},
            profile=TRANSFER_ORDER_PROFILE,
        )
        if line.amounts.net_pay > ZERO
    )
    order_date = request.order_date.isoformat() if request.order_date else end
    transfer = DerivedReportSnapshot(
        kind=ReportKind.TRANSFER_ORDER,
        params=TransferOrderParams(
            start_date=start,
            end_date=end,
            worker_ids=worker_ids,
            city=request.city or request.regional_center or default_city,
            order_date=order_date,
            prices=frozen_prices,
        ),
        lines=transfer_lines,
    )

    return CascadePlan(
        scope=scope,
        aggregation=aggregation,
        prices=frozen_prices,
        snapshots=(bi_monthly, payroll, detailed, transfer),
    )
