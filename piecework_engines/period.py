"""
Period Resolver -- descriptors to concrete date ranges and worker scopes.

Responsibility:
    Turns a report's period descriptor into an inclusive ISO date range and
    the worker-id set to aggregate over.  Three descriptor variants exist:

    - ``HalfMonthPeriod``: days 1-15 or 16-end of a month, with an explicit
      worker selection.
    - ``SeasonPeriod``: May 1 to April 30 of the following year, over every
      worker of every group.  The season year is derived from a
      caller-supplied reference date, never from the wall clock.
    - ``SourceReportsPeriod``: the union of a set of persisted BiMonthly
      snapshots, over the workers those snapshots carry.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Ranges are inclusive on both ends and expressed as ISO ``YYYY-MM-DD``
      strings, which order lexicographically.
    - The second half-month ends on the real last day of the month (28-31).
    - Resolution fails before any aggregation runs.

Failure modes:
    - ScopeResolutionError: month outside 1-12, empty or unknown worker
      selection, empty or unknown source-report selection, or a source
      report that is not a BiMonthly snapshot.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date, timedelta
from typing import Union
from uuid import UUID

from piecework_engines.tracer import traced_engine
from piecework_kernel.domain.records import HalfMonth, Roster
from piecework_kernel.domain.snapshots import (
    BiMonthlyParams,
    DerivedReportSnapshot,
    ReportKind,
)
from piecework_kernel.exceptions import ScopeResolutionError

DEFAULT_SEASON_START_MONTH = 5


@dataclass(frozen=True)
class DateRange:
    """Inclusive ISO date range."""
    start_date: str
    end_date: str

    def contains(self, iso_date: str) -> bool:
        return self.start_date <= iso_date <= self.end_date

    def covers(self, other: DateRange) -> bool:
        """True when ``other`` lies entirely within this range."""
        return self.start_date <= other.start_date and other.end_date <= self.end_date

    def covers_half_month(self, year: int, month: int, period: HalfMonth) -> bool:
        return self.covers(_half_month_bounds(year, month, period))


@dataclass(frozen=True)
class SeasonRange(DateRange):
    """A season's date range together with its start and end years."""
    start_year: int = 0
    end_year: int = 0


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HalfMonthPeriod:
    year: int
    month: int
    period: HalfMonth
    worker_ids: tuple[int, ...]


@dataclass(frozen=True)
class SeasonPeriod:
    start_year: int | None = None


@dataclass(frozen=True)
class SourceReportsPeriod:
    report_ids: tuple[UUID, ...]


PeriodDescriptor = Union[HalfMonthPeriod, SeasonPeriod, SourceReportsPeriod]


@dataclass(frozen=True)
class ResolvedScope:
    """Outcome of resolving a descriptor against the roster."""
    date_range: DateRange
    worker_ids: tuple[int, ...]
    source_reports: tuple[DerivedReportSnapshot, ...] = ()


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def _half_month_bounds(year: int, month: int, period: HalfMonth) -> DateRange:
    if period is HalfMonth.FIRST:
        first, last = 1, 15
    else:
        first, last = 16, calendar.monthrange(year, month)[1]
    return DateRange(
        start_date=date(year, month, first).isoformat(),
        end_date=date(year, month, last).isoformat(),
    )


def resolve_half_month(year: int, month: int, period: HalfMonth) -> DateRange:
    """Days 1-15 or 16 to end of month, inclusive."""
    if not MINYEAR <= year <= MAXYEAR:
        raise ScopeResolutionError(
            f"{year}-{month}/{getattr(period, 'value', period)}",
            f"year must be between {MINYEAR} and {MAXYEAR}, got {year}",
        )
    if not 1 <= month <= 12:
        raise ScopeResolutionError(
            f"{year}-{month}/{getattr(period, 'value', period)}",
            f"month must be between 1 and 12, got {month}",
        )
    if not isinstance(period, HalfMonth):
        raise ScopeResolutionError(
            f"{year}-{month}/{period}", "period must be a HalfMonth"
        )
    return _half_month_bounds(year, month, period)


def current_season_start_year(
    reference_date: date,
    season_start_month: int = DEFAULT_SEASON_START_MONTH,
) -> int:
    """The season starts this year from the start month onwards, else last year."""
    if reference_date.month >= season_start_month:
        return reference_date.year
    return reference_date.year - 1


def resolve_season(
    reference_date: date | None,
    start_year: int | None = None,
    season_start_month: int = DEFAULT_SEASON_START_MONTH,
) -> SeasonRange:
    """The season containing ``reference_date``, or the one starting in ``start_year``."""
    if start_year is None:
        if reference_date is None:
            raise ValueError("resolve_season needs a reference date or a start year")
        start_year = current_season_start_year(reference_date, season_start_month)
    if not MINYEAR <= start_year < MAXYEAR:
        raise ScopeResolutionError(
            f"season {start_year}",
            f"start year must be between {MINYEAR} and {MAXYEAR - 1}, got {start_year}",
        )
    start = date(start_year, season_start_month, 1)
    end = date(start_year + 1, season_start_month, 1) - timedelta(days=1)
    return SeasonRange(
        start_date=start.isoformat(),
        end_date=end.isoformat(),
        start_year=start_year,
        end_year=end.year,
    )


def _select_source_reports(
    snapshots: Iterable[DerivedReportSnapshot],
    report_ids: tuple[UUID, ...],
) -> tuple[DerivedReportSnapshot, ...]:
    descriptor = f"source_reports{[str(r) for r in report_ids]}"
    if not report_ids:
        raise ScopeResolutionError(descriptor, "no source reports selected")
    by_id = {s.id: s for s in snapshots if s.id is not None}
    missing = [str(r) for r in report_ids if r not in by_id]
    if missing:
        raise ScopeResolutionError(descriptor, f"unknown source reports {missing}")
    selected: list[DerivedReportSnapshot] = []
    seen: set[UUID] = set()
    for report_id in report_ids:
        if report_id in seen:
            continue
        seen.add(report_id)
        snapshot = by_id[report_id]
        if snapshot.kind is not ReportKind.BI_MONTHLY:
            raise ScopeResolutionError(
                descriptor,
                f"source report {report_id} is {snapshot.kind.value}, not bi_monthly",
            )
        selected.append(snapshot)
    return tuple(selected)


def _union_range(sources: tuple[DerivedReportSnapshot, ...]) -> DateRange:
    params: list[BiMonthlyParams] = [s.params for s in sources]  # type: ignore[misc]
    return DateRange(
        start_date=min(p.start_date for p in params),
        end_date=max(p.end_date for p in params),
    )


def resolve_source_reports(
    snapshots: Iterable[DerivedReportSnapshot],
    report_ids: tuple[UUID, ...],
) -> DateRange:
    """Range spanning the union of the selected BiMonthly snapshots."""
    return _union_range(_select_source_reports(snapshots, tuple(report_ids)))


def _dedupe(ids: Iterable[int]) -> tuple[int, ...]:
    return tuple(dict.fromkeys(ids))


@traced_engine("period", "1.0", fingerprint_fields=("reference_date",))
def resolve_scope(
    descriptor: PeriodDescriptor,
    roster: Roster,
    *,
    reference_date: date | None = None,
    snapshots: Iterable[DerivedReportSnapshot] = (),
    season_start_month: int = DEFAULT_SEASON_START_MONTH,
) -> ResolvedScope:
    """
    Resolve a period descriptor into a date range and worker scope.

    Raises:
        ScopeResolutionError: see module docstring.
    """
    if isinstance(descriptor, HalfMonthPeriod):
        date_range = resolve_half_month(
            descriptor.year, descriptor.month, descriptor.period
        )
        worker_ids = _dedupe(descriptor.worker_ids)
        label = f"{descriptor.year}-{descriptor.month:02d}/{descriptor.period.value}"
        if not worker_ids:
            raise ScopeResolutionError(label, "no workers selected")
        unknown = [w for w in worker_ids if w not in roster]
        if unknown:
            raise ScopeResolutionError(label, f"unknown workers {unknown}")
        return ResolvedScope(date_range=date_range, worker_ids=worker_ids)

    if isinstance(descriptor, SeasonPeriod):
        if reference_date is None and descriptor.start_year is None:
            raise ScopeResolutionError(
                "season", "a reference date or an explicit start year is required"
            )
        season = resolve_season(
            reference_date, descriptor.start_year, season_start_month
        )
        worker_ids = tuple(w.id for w in roster.all_workers())
        return ResolvedScope(date_range=season, worker_ids=worker_ids)

    if isinstance(descriptor, SourceReportsPeriod):
        sources = _select_source_reports(snapshots, tuple(descriptor.report_ids))
        worker_ids = _dedupe(
            line.worker_id for source in sources for line in source.lines
        )
        return ResolvedScope(
            date_range=_union_range(sources),
            worker_ids=worker_ids,
            source_reports=sources,
        )

    raise ScopeResolutionError(repr(descriptor), "unsupported period descriptor")
