"""
Module: piecework_engines
Responsibility:
    Package entrypoint re-exporting the public symbols of the pure
    calculation engines.  This is the import surface for piecework_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import piecework_kernel (domain types, exceptions, logging).
    MUST NOT import piecework_services or piecework_modules.

Invariants enforced:
    - Purity: engines never read the wall clock.  Reference dates and
      timestamps are explicit parameters supplied by services.
    - Decimal-only arithmetic.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine entry point is traced via ``@traced_engine`` (see
    ``piecework_engines.tracer``), emitting PIECEWORK_ENGINE_TRACE records.

Usage:
    from piecework_engines.period import resolve_scope, SeasonPeriod
    from piecework_engines.aggregation import aggregate_activity
    from piecework_engines.derivation import derive_line, PAYROLL_PROFILE
    from piecework_engines.cascade import plan_cascade, CascadeRequest
    from piecework_engines.recompute import recompute_snapshot
    from piecework_engines.rollup import rollup_reports
"""

from piecework_engines.aggregation import (
    AggregationResult,
    aggregate_activity,
    merge_aggregates,
)
from piecework_engines.cascade import (
    CASCADE_STAGES,
    CascadePlan,
    CascadeRequest,
    plan_cascade,
)
from piecework_engines.derivation import (
    AMO_RATE,
    CNSS_RATE,
    COMBINED_RATE,
    DETAILED_PAYROLL_PROFILE,
    PAYROLL_PROFILE,
    PROFILE_BY_KIND,
    SUMMARY_PROFILE,
    TRANSFER_ORDER_PROFILE,
    DerivationProfile,
    derive_line,
    total_lines,
)
from piecework_engines.period import (
    DateRange,
    HalfMonthPeriod,
    ResolvedScope,
    SeasonPeriod,
    SeasonRange,
    SourceReportsPeriod,
    current_season_start_year,
    resolve_half_month,
    resolve_scope,
    resolve_season,
    resolve_source_reports,
)
from piecework_engines.recompute import recompute_snapshot, validate_adjustments
from piecework_engines.rollup import RollupResult, rollup_reports
from piecework_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "AggregationResult",
    "aggregate_activity",
    "merge_aggregates",
    "CASCADE_STAGES",
    "CascadePlan",
    "CascadeRequest",
    "plan_cascade",
    "AMO_RATE",
    "CNSS_RATE",
    "COMBINED_RATE",
    "DETAILED_PAYROLL_PROFILE",
    "PAYROLL_PROFILE",
    "PROFILE_BY_KIND",
    "SUMMARY_PROFILE",
    "TRANSFER_ORDER_PROFILE",
    "DerivationProfile",
    "derive_line",
    "total_lines",
    "DateRange",
    "HalfMonthPeriod",
    "ResolvedScope",
    "SeasonPeriod",
    "SeasonRange",
    "SourceReportsPeriod",
    "current_season_start_year",
    "resolve_half_month",
    "resolve_scope",
    "resolve_season",
    "resolve_source_reports",
    "recompute_snapshot",
    "validate_adjustments",
    "RollupResult",
    "rollup_reports",
    "compute_input_fingerprint",
    "traced_engine",
]
