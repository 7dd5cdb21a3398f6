"""
Rollup Aggregator -- season and annual summaries from BiMonthly snapshots.

Responsibility:
    Merges the stored aggregates of several BiMonthly snapshots per worker
    and derives each worker's summary line once over the combined base.
    Classifies workers into the distinguished cooperative group or
    everyone else for sub-totaling.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Consumes persisted
    snapshots, never raw logs.

Invariants enforced:
    - anciennete, total_brut, retenu, indemnities and net_pay are derived
      from the summed quantities and days, never by summing per-period
      net figures.
    - Workers whose combined net pay is <= 0 are dropped.
    - Lines are sorted by worker name (then id), so output is
      deterministic regardless of source order.

Failure modes:
    None raised.  Workers absent from the roster are skipped and reported
    as ``MissingReferenceWarning``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from piecework_engines.aggregation import merge_aggregates
from piecework_engines.derivation import SUMMARY_PROFILE, derive_line
from piecework_engines.tracer import traced_engine
from piecework_kernel.domain.engine_types import ReportTotals, WorkerAggregate
from piecework_kernel.domain.records import Roster, TaskPriceTable
from piecework_kernel.domain.snapshots import DerivedReportSnapshot, RollupLine
from piecework_kernel.domain.values import ZERO
from piecework_kernel.exceptions import MissingReferenceWarning
from piecework_kernel.logging_config import get_logger

logger = get_logger("engines.rollup")

UNKNOWN_GROUP_NAME = "N/A"


@dataclass(frozen=True)
class RollupResult:
    """Summary lines with distinguished / other / grand totals."""
    lines: tuple[RollupLine, ...]
    prices: dict[int, Decimal]
    distinguished_totals: ReportTotals = field(default_factory=ReportTotals)
    other_totals: ReportTotals = field(default_factory=ReportTotals)
    grand_totals: ReportTotals = field(default_factory=ReportTotals)
    warnings: tuple[MissingReferenceWarning, ...] = ()

    @property
    def distinguished_lines(self) -> tuple[RollupLine, ...]:
        return tuple(line for line in self.lines if line.is_distinguished)

    @property
    def other_lines(self) -> tuple[RollupLine, ...]:
        return tuple(line for line in self.lines if not line.is_distinguished)


@traced_engine(
    "rollup", "1.0",
    fingerprint_fields=("distinguished_group_name",),
)
def rollup_reports(
    *,
    sources: Iterable[DerivedReportSnapshot],
    roster: Roster,
    prices: TaskPriceTable,
    distinguished_group_name: str,
) -> RollupResult:
    """Merge BiMonthly sources per worker and derive one summary line each."""
    per_worker: dict[int, list[WorkerAggregate]] = {}
    for source in sources:
        for line in source.lines:
            per_worker.setdefault(line.worker_id, []).append(line.aggregate)

    missing = sorted(w for w in per_worker if w not in roster)
    warnings = tuple(
        MissingReferenceWarning("report_line", w, len(per_worker[w])) for w in missing
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

    merged = {
        w: merge_aggregates(aggregates, worker_id=w)
        for w, aggregates in per_worker.items()
        if w in roster
    }
    task_ids = {t for a in merged.values() for t in a.task_totals}
    frozen_prices = prices.prices_for(task_ids)

    distinguished = roster.find_group(distinguished_group_name)
    distinguished_ids = (
        {w.id for w in distinguished.workers} if distinguished is not None else set()
    )

    lines: list[RollupLine] = []
    for worker_id, aggregate in merged.items():
        worker = roster.worker(worker_id)
        amounts = derive_line(
            aggregate=aggregate,
            seniority_percentage=worker.seniority_percentage,
            prices=frozen_prices,
            profile=SUMMARY_PROFILE,
        )
        if amounts.net_pay <= ZERO:
            continue
        group = roster.group_of(worker_id)
        lines.append(
            RollupLine(
                worker_id=worker_id,
                worker_name=worker.name,
                group_name=group.name if group is not None else UNKNOWN_GROUP_NAME,
                is_distinguished=worker_id in distinguished_ids,
                aggregate=aggregate,
                amounts=amounts,
            )
        )
    lines.sort(key=lambda line: (line.worker_name, line.worker_id))

    return RollupResult(
        lines=tuple(lines),
        prices=frozen_prices,
        distinguished_totals=ReportTotals.of(
            line.amounts for line in lines if line.is_distinguished
        ),
        other_totals=ReportTotals.of(
            line.amounts for line in lines if not line.is_distinguished
        ),
        grand_totals=ReportTotals.of(line.amounts for line in lines),
        warnings=warnings,
    )
