"""
Adjustment Recomputation -- re-derive a stored snapshot with new adjustments.

Responsibility:
    Re-runs the derivation pipeline over a persisted snapshot's stored
    aggregates, stored seniority percentages and stored price mapping,
    merged with newly edited adjustment fields.  Live logs are never read.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - total_operation, anciennete and days_worked never change; only the
      fields downstream of the adjustments do.
    - Idempotent: recomputing twice with the same adjustments yields an
      identical snapshot.
    - Only ``ADJUSTABLE_FIELDS[kind]`` may be edited.

Failure modes:
    - AdjustmentNotAllowedError: the kind has no editable fields, or an
      adjustment sets a field the kind does not expose.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime

from piecework_engines.derivation import PROFILE_BY_KIND, derive_line
from piecework_engines.tracer import traced_engine
from piecework_kernel.domain.engine_types import NO_ADJUSTMENTS, Adjustments
from piecework_kernel.domain.snapshots import (
    ADJUSTABLE_FIELDS,
    DerivedReportSnapshot,
    PayLine,
)
from piecework_kernel.exceptions import AdjustmentNotAllowedError
from piecework_kernel.logging_config import get_logger

logger = get_logger("engines.recompute")


def validate_adjustments(
    snapshot: DerivedReportSnapshot,
    adjustments: Mapping[int, Adjustments],
) -> None:
    """Raise AdjustmentNotAllowedError for fields the kind does not expose."""
    allowed = ADJUSTABLE_FIELDS[snapshot.kind]
    if not allowed:
        requested = sorted({f for adj in adjustments.values() for f in adj.fields_set()})
        raise AdjustmentNotAllowedError(snapshot.kind.value, tuple(requested))
    rejected = sorted(
        {f for adj in adjustments.values() for f in adj.fields_set()} - allowed
    )
    if rejected:
        raise AdjustmentNotAllowedError(snapshot.kind.value, tuple(rejected))


@traced_engine("recompute", "1.0", fingerprint_fields=("updated_at",))
def recompute_snapshot(
    snapshot: DerivedReportSnapshot,
    adjustments: Mapping[int, Adjustments],
    *,
    updated_at: datetime,
) -> DerivedReportSnapshot:
    """
    Return a new snapshot re-derived with ``adjustments`` merged in.

    Per worker, a new ``Adjustments`` replaces the stored one.  Entries for
    workers absent from the snapshot are ignored.
    """
    validate_adjustments(snapshot, adjustments)

    known = set(snapshot.worker_ids)
    ignored = sorted(w for w in adjustments if w not in known)
    if ignored:
        logger.warning(
            "adjustments_for_unknown_workers_ignored",
            extra={"report_kind": snapshot.kind.value, "worker_ids": ignored},
        )

    params = snapshot.params
    merged = dict(params.adjustments)
    merged.update({w: adj for w, adj in adjustments.items() if w in known})
    merged = dict(sorted(merged.items()))

    profile = PROFILE_BY_KIND[snapshot.kind]
    lines: list[PayLine] = []
    for line in snapshot.lines:
        amounts = derive_line(
            aggregate=line.aggregate,
            seniority_percentage=line.seniority_percentage,
            prices=params.prices,
            adjustments=merged.get(line.worker_id, NO_ADJUSTMENTS),
            profile=profile,
        )
        lines.append(replace(line, amounts=amounts))

    return snapshot.with_lines(
        tuple(lines),
        params=replace(params, adjustments=merged),
        updated_at=updated_at,
    )
