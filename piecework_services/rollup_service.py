"""
piecework_services.rollup_service -- annual and season summaries.

Responsibility:
    Builds and persists AnnualSummary snapshots (from an explicit selection
    of BiMonthly reports) and SeasonSummary snapshots (from every BiMonthly
    report lying inside a season), and produces the season quantity/day
    table straight from raw logs and attendance.

Architecture position:
    Services -- stateful orchestration over engines + modules.

Invariants enforced:
    - Summaries consume persisted BiMonthly snapshots, never raw logs.
    - The season table covers every worker of every group, departed
      groups included, and drops workers without activity or days.
    - The season is resolved from a caller-supplied reference date.

Failure modes:
    - ScopeResolutionError for an empty or unknown source selection, or a
      season without BiMonthly reports.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from uuid import UUID

from piecework_engines.aggregation import AggregationResult, aggregate_activity
from piecework_engines.period import (
    DateRange,
    SeasonPeriod,
    SourceReportsPeriod,
    resolve_scope,
    resolve_season,
)
from piecework_engines.rollup import RollupResult, rollup_reports
from piecework_kernel.domain.records import Roster
from piecework_kernel.domain.snapshots import (
    AnnualSummaryParams,
    DerivedReportSnapshot,
    ReportKind,
    SeasonSummaryParams,
)
from piecework_kernel.exceptions import ScopeResolutionError
from piecework_kernel.logging_config import get_logger
from piecework_modules.reports.config import ReportsConfig
from piecework_modules.reports.service import ReportStore
from piecework_services._cascade_types import SummaryReport

logger = get_logger("services.rollup")


class RollupService:
    """Season and annual summaries over persisted BiMonthly reports."""

    def __init__(self, store: ReportStore, config: ReportsConfig | None = None) -> None:
        self._store = store
        self._config = config or ReportsConfig.with_defaults()

    def _rollup(
        self, sources: tuple[DerivedReportSnapshot, ...], roster: Roster,
    ) -> RollupResult:
        return rollup_reports(
            sources=sources,
            roster=roster,
            prices=self._store.load_price_table(),
            distinguished_group_name=self._config.distinguished_group_name,
        )

    def annual_summary(
        self, year: int, source_report_ids: list[UUID] | tuple[UUID, ...],
    ) -> SummaryReport:
        """Build and persist an annual summary from selected BiMonthly reports."""
        logger.info(
            "annual_summary_started",
            extra={"year": year, "source_count": len(source_report_ids)},
        )
        roster = self._store.load_roster()
        scope = resolve_scope(
            SourceReportsPeriod(report_ids=tuple(source_report_ids)),
            roster,
            snapshots=self._store.list_snapshots(ReportKind.BI_MONTHLY),
        )
        rollup = self._rollup(scope.source_reports, roster)
        snapshot = DerivedReportSnapshot(
            kind=ReportKind.ANNUAL_SUMMARY,
            params=AnnualSummaryParams(
                year=year,
                source_report_ids=tuple(s.id for s in scope.source_reports),
                prices=rollup.prices,
            ),
            lines=rollup.lines,
        )
        saved = self._store.save_snapshot(snapshot)
        logger.info(
            "annual_summary_completed",
            extra={
                "report_id": str(saved.id),
                "line_count": len(saved.lines),
                "net_pay_total": rollup.grand_totals.net_pay,
            },
        )
        return SummaryReport(snapshot=saved, rollup=rollup, warnings=rollup.warnings)

    def season_summary(
        self, reference_date: date, start_year: int | None = None,
    ) -> SummaryReport:
        """Build and persist the summary of every BiMonthly report in a season."""
        season = resolve_season(
            reference_date, start_year, self._config.season_start_month,
        )
        sources = tuple(
            s
            for s in self._store.list_snapshots(ReportKind.BI_MONTHLY)
            if season.covers(DateRange(s.params.start_date, s.params.end_date))
        )
        logger.info(
            "season_summary_started",
            extra={
                "start_date": season.start_date,
                "end_date": season.end_date,
                "source_count": len(sources),
            },
        )
        if not sources:
            raise ScopeResolutionError(
                f"season {season.start_year}/{season.end_year}",
                "no bi-monthly reports in season",
            )

        rollup = self._rollup(sources, self._store.load_roster())
        snapshot = DerivedReportSnapshot(
            kind=ReportKind.SEASON_SUMMARY,
            params=SeasonSummaryParams(
                start_year=season.start_year,
                end_year=season.end_year,
                start_date=season.start_date,
                end_date=season.end_date,
                source_report_ids=tuple(s.id for s in sources),
                prices=rollup.prices,
            ),
            lines=rollup.lines,
        )
        saved = self._store.save_snapshot(snapshot)
        logger.info(
            "season_summary_completed",
            extra={"report_id": str(saved.id), "line_count": len(saved.lines)},
        )
        return SummaryReport(snapshot=saved, rollup=rollup, warnings=rollup.warnings)

    def season_activity(
        self, reference_date: date, start_year: int | None = None,
    ) -> AggregationResult:
        """Season quantity/day table from raw logs, sorted by worker name."""
        roster = self._store.load_roster()
        scope = resolve_scope(
            SeasonPeriod(start_year=start_year),
            roster,
            reference_date=reference_date,
            season_start_month=self._config.season_start_month,
        )
        result = aggregate_activity(
            date_range=scope.date_range,
            worker_ids=scope.worker_ids,
            roster=roster,
            logs=self._store.list_activity(
                start_date=scope.date_range.start_date,
                end_date=scope.date_range.end_date,
            ),
            attendance=self._store.list_attendance(),
            full_roster=False,
        )
        ordered = tuple(
            sorted(
                result.aggregates,
                key=lambda a: (roster.worker(a.worker_id).name, a.worker_id),
            )
        )
        logger.info(
            "season_activity_aggregated",
            extra={
                "start_date": scope.date_range.start_date,
                "end_date": scope.date_range.end_date,
                "worker_count": len(ordered),
                "total_days": result.total_days,
            },
        )
        return replace(result, aggregates=ordered)
