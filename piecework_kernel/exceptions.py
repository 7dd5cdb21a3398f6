"""
Typed Exception Hierarchy for the Piecework Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Report derivation feeds payslips and bank transfer orders. Callers must be
able to tell a malformed period request from a half-persisted cascade without
parsing message strings, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        orchestrator.derive_period(request)
    except IncompleteCascadeError as e:
        log.warning("retrying %s", e.pending)
        orchestrator.resume(e.run)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PieceworkError (base)
    |
    +-- ScopeError
    |   +-- ScopeResolutionError
    |
    +-- CascadeError
    |   +-- IncompleteCascadeError
    |
    +-- ReportError
    |   +-- ReportNotFoundError
    |   +-- AdjustmentNotAllowedError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

Non-fatal conditions are WARNINGS, not errors. They are collected on engine
results and logged; they are never raised:

    PieceworkWarning (UserWarning)
    |
    +-- MissingReferenceWarning
    +-- StaleAggregationWarning

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                      | When Raised
-------------|---------------------------|--------------------------------------
Scope        | SCOPE_RESOLUTION_FAILED   | Malformed period descriptor, empty
             |                           | worker or source-report selection
-------------|---------------------------|--------------------------------------
Cascade      | INCOMPLETE_CASCADE        | A sibling report failed to persist
-------------|---------------------------|--------------------------------------
Report       | REPORT_NOT_FOUND          | Snapshot id does not exist
             | ADJUSTMENT_NOT_ALLOWED    | Field not editable for the report kind
-------------|---------------------------|--------------------------------------
Immutability | IMMUTABILITY_VIOLATION    | Activity log row updated or deleted
-------------|---------------------------|--------------------------------------
Warning      | MISSING_REFERENCE         | Log/attendance entry for unknown worker
             | STALE_AGGREGATION         | Attendance corrected after snapshot

Formula stages never raise: out-of-range numbers (negative quantities,
prices, percentages, adjustments) propagate arithmetically.
"""

from __future__ import annotations

from typing import Any


class PieceworkError(Exception):
    """
    Base exception for all piecework kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PIECEWORK_ERROR"


# Scope-related exceptions


class ScopeError(PieceworkError):
    """Base exception for period/scope resolution errors."""

    code: str = "SCOPE_ERROR"


class ScopeResolutionError(ScopeError):
    """Period descriptor cannot be resolved into a date range and worker set.

    Raised before any aggregation runs.
    """

    code: str = "SCOPE_RESOLUTION_FAILED"

    def __init__(self, descriptor: str, reason: str):
        self.descriptor = descriptor
        self.reason = reason
        super().__init__(f"Cannot resolve scope {descriptor}: {reason}")


# Cascade-related exceptions


class CascadeError(PieceworkError):
    """Base exception for cascade orchestration errors."""

    code: str = "CASCADE_ERROR"


class IncompleteCascadeError(CascadeError):
    """
    One or more sibling reports of a period failed to persist.

    Already-written siblings are NOT rolled back. ``run`` holds the stored
    plan so the caller can resume only the ``pending`` stages.
    """

    code: str = "INCOMPLETE_CASCADE"

    def __init__(
        self,
        run: Any,
        succeeded: tuple[str, ...],
        pending: tuple[str, ...],
        failed_stage: str,
        cause: str,
    ):
        self.run = run
        self.succeeded = succeeded
        self.pending = pending
        self.failed_stage = failed_stage
        self.cause = cause
        super().__init__(
            f"Cascade incomplete: stage {failed_stage} failed ({cause}); "
            f"succeeded={list(succeeded)}, pending={list(pending)}"
        )


# Report-related exceptions


class ReportError(PieceworkError):
    """Base exception for persisted report errors."""

    code: str = "REPORT_ERROR"


class ReportNotFoundError(ReportError):
    """Snapshot with given ID was not found."""

    code: str = "REPORT_NOT_FOUND"

    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__(f"Report not found: {report_id}")


class AdjustmentNotAllowedError(ReportError):
    """An adjustment field is not user-editable for this report kind."""

    code: str = "ADJUSTMENT_NOT_ALLOWED"

    def __init__(self, report_kind: str, fields: tuple[str, ...]):
        self.report_kind = report_kind
        self.fields = fields
        super().__init__(
            f"Fields {list(fields)} are not editable on {report_kind} reports"
        )


# Immutability-related exceptions


class ImmutabilityError(PieceworkError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Warnings (collected, never raised)


class PieceworkWarning(UserWarning):
    """Base class for non-fatal conditions reported alongside results."""

    code: str = "PIECEWORK_WARNING"


class MissingReferenceWarning(PieceworkWarning):
    """Log or attendance entries reference a worker absent from the roster.

    The entries are skipped and counted.
    """

    code: str = "MISSING_REFERENCE"

    def __init__(self, record_type: str, worker_id: int, count: int):
        self.record_type = record_type
        self.worker_id = worker_id
        self.count = count
        super().__init__(
            f"{count} {record_type} entr{'y' if count == 1 else 'ies'} "
            f"reference unknown worker {worker_id}"
        )


class StaleAggregationWarning(PieceworkWarning):
    """Attendance was corrected after the snapshot stored its aggregation.

    Recomputation still uses the stored aggregation.
    """

    code: str = "STALE_AGGREGATION"

    def __init__(self, report_id: str, worker_ids: tuple[int, ...]):
        self.report_id = report_id
        self.worker_ids = worker_ids
        super().__init__(
            f"Report {report_id} predates attendance corrections for "
            f"workers {list(worker_ids)}"
        )
