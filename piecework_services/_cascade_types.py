"""
piecework_services._cascade_types -- DTOs for the cascade and report services.

Responsibility:
    Frozen dataclasses for the "derive period" saga: run status, per-stage
    results and the cascade run itself, plus the outcomes returned by the
    adjustment and rollup services.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    These types live in piecework_services/ because the services that
    produce and consume them live here.

Invariants enforced:
    - All DTOs are frozen; a run is advanced by building a new run.
    - A run's ``plan`` is never re-derived: resuming persists the stored
      snapshots of the pending stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID

from piecework_engines.cascade import CASCADE_STAGES, CascadePlan, CascadeRequest
from piecework_engines.rollup import RollupResult
from piecework_kernel.domain.snapshots import DerivedReportSnapshot, ReportKind
from piecework_kernel.exceptions import PieceworkWarning


class CascadeRunStatus(Enum):
    """Cascade run lifecycle."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"


@dataclass(frozen=True)
class CascadeStageResult:
    """Outcome of persisting one sibling snapshot."""
    stage: ReportKind
    success: bool
    snapshot: DerivedReportSnapshot | None = None
    message: str | None = None

    @property
    def report_id(self) -> UUID | None:
        return self.snapshot.id if self.snapshot is not None else None


@dataclass(frozen=True)
class CascadeRun:
    """Auditable record of one "derive period" attempt."""
    id: UUID
    correlation_id: str
    request: CascadeRequest
    plan: CascadePlan
    status: CascadeRunStatus
    started_at: datetime
    stage_results: tuple[CascadeStageResult, ...] = ()
    completed_at: datetime | None = None
    warnings: tuple[PieceworkWarning, ...] = ()

    @property
    def persisted(self) -> dict[ReportKind, DerivedReportSnapshot]:
        return {
            r.stage: r.snapshot
            for r in self.stage_results
            if r.success and r.snapshot is not None
        }

    @property
    def succeeded(self) -> tuple[str, ...]:
        done = self.persisted
        return tuple(kind.value for kind in CASCADE_STAGES if kind in done)

    @property
    def pending_stages(self) -> tuple[ReportKind, ...]:
        done = self.persisted
        return tuple(kind for kind in CASCADE_STAGES if kind not in done)

    @property
    def pending(self) -> tuple[str, ...]:
        return tuple(kind.value for kind in self.pending_stages)

    def report_id(self, kind: ReportKind) -> UUID | None:
        snapshot = self.persisted.get(kind)
        return snapshot.id if snapshot is not None else None


@dataclass(frozen=True)
class AdjustmentOutcome:
    """Recomputed snapshot plus any staleness warning."""
    snapshot: DerivedReportSnapshot
    warnings: tuple[PieceworkWarning, ...] = ()


@dataclass(frozen=True)
class SummaryReport:
    """A persisted annual or season summary and its sub-totals."""
    snapshot: DerivedReportSnapshot
    rollup: RollupResult
    warnings: tuple[PieceworkWarning, ...] = field(default_factory=tuple)
