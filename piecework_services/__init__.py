"""
piecework_services -- Package init and public API.

Responsibility:
    Stateful orchestration services that compose the pure calculation
    engines (piecework_engines/) with the report store and the Clock.
    This is the **only** layer that may hold a store or read the clock.

Architecture position:
    Services -- stateful orchestration over engines + kernel + modules.

    Dependency direction:
        piecework_services/ -> piecework_engines/  (allowed)
        piecework_services/ -> piecework_modules/  (allowed)
        piecework_services/ -> piecework_kernel/   (allowed)
        piecework_engines/  -> piecework_services/ (FORBIDDEN)
        piecework_kernel/   -> piecework_services/ (FORBIDDEN)

Invariants enforced:
    - DI transparency: stores, clocks and configs are passed in; no
      service constructs its own dependencies.

Failure modes:
    - ImportError at startup if a service's dependency graph is broken.
"""

from piecework_kernel.logging_config import get_logger

logger = get_logger("services")

from piecework_services._cascade_types import (
    AdjustmentOutcome,
    CascadeRun,
    CascadeRunStatus,
    CascadeStageResult,
    SummaryReport,
)
from piecework_services.adjustment_service import AdjustmentService, find_stale_workers
from piecework_services.cascade_orchestrator import CascadeOrchestrator
from piecework_services.rollup_service import RollupService

__all__ = [
    "AdjustmentOutcome",
    "CascadeRun",
    "CascadeRunStatus",
    "CascadeStageResult",
    "SummaryReport",
    "AdjustmentService",
    "find_stale_workers",
    "CascadeOrchestrator",
    "RollupService",
]
