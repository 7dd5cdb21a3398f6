"""
EngineTypes -- Pure frozen DTOs exchanged with the calculation engines.

Responsibility:
    Defines the immutable inputs and outputs of the aggregation and
    derivation engines: ``WorkerAggregate`` (per-worker task quantities and
    days worked), ``Adjustments`` (user-entered advance, holiday pay and
    income tax), ``Withholding``, ``TaskLine``, ``DerivedAmounts`` (one
    report line's monetary fields) and ``ReportTotals``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Produced by ``piecework_engines`` and stored inside snapshots.

Invariants enforced:
    - ``WorkerAggregate.task_totals`` is ordered by task id so that the
      serialized form of equal aggregates is byte-identical.
    - ``DerivedAmounts.total_brut == total_operation + anciennete + jour_ferier``
      (established by the derivation engine, never recomputed here).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from piecework_kernel.domain.values import ZERO, parse_amount


@dataclass(frozen=True)
class WorkerAggregate:
    """Aggregated activity of one worker over a date range."""
    worker_id: int
    task_totals: dict[int, Decimal] = field(default_factory=dict)
    days_worked: int = 0

    def __post_init__(self) -> None:
        ordered = dict(sorted(self.task_totals.items()))
        object.__setattr__(self, "task_totals", ordered)

    @property
    def is_empty(self) -> bool:
        return not self.task_totals and self.days_worked == 0

    def quantity_of(self, task_id: int) -> Decimal:
        return self.task_totals.get(task_id, ZERO)

    @classmethod
    def empty(cls, worker_id: int) -> WorkerAggregate:
        return cls(worker_id=worker_id)


class WithholdingPolicy(Enum):
    """Statutory withholding presentation."""
    COMBINED = "combined"  # single CNSS+AMO "retenu"
    SPLIT = "split"  # CNSS and AMO shown separately


@dataclass(frozen=True)
class Withholding:
    """Statutory withholding computed from gross pay."""
    policy: WithholdingPolicy
    total: Decimal
    cnss: Decimal | None = None
    amo: Decimal | None = None


@dataclass(frozen=True)
class Adjustments:
    """
    User-entered adjustments for one worker on one report.

    ``holiday_pay`` is ``None`` when no override was entered; the pipeline
    then uses zero.
    """
    advance: Decimal = ZERO
    holiday_pay: Decimal | None = None
    income_tax: Decimal = ZERO

    @classmethod
    def from_inputs(
        cls,
        *,
        advance: Any = None,
        holiday_pay: Any = None,
        income_tax: Any = None,
    ) -> Adjustments:
        """Build from raw form values; blank or invalid values count as zero."""
        holiday: Decimal | None = None
        if holiday_pay is not None and str(holiday_pay).strip() != "":
            holiday = parse_amount(holiday_pay)
        return cls(
            advance=parse_amount(advance),
            holiday_pay=holiday,
            income_tax=parse_amount(income_tax),
        )

    def fields_set(self) -> tuple[str, ...]:
        """Names of fields that differ from the defaults."""
        names: list[str] = []
        if self.advance != ZERO:
            names.append("advance")
        if self.holiday_pay is not None:
            names.append("holiday_pay")
        if self.income_tax != ZERO:
            names.append("income_tax")
        return tuple(names)


NO_ADJUSTMENTS = Adjustments()


@dataclass(frozen=True)
class TaskLine:
    """One priced task on a pay line."""
    task_id: int
    quantity: Decimal
    price: Decimal
    amount: Decimal


@dataclass(frozen=True)
class DerivedAmounts:
    """Monetary fields of one report line, in pipeline order."""
    task_lines: tuple[TaskLine, ...]
    total_operation: Decimal
    anciennete: Decimal
    jour_ferier: Decimal
    total_brut: Decimal
    withholding: Withholding
    days_worked: int
    indemnite_lait: Decimal
    prime_panier: Decimal
    advance: Decimal
    income_tax: Decimal
    net_pay: Decimal

    @property
    def retenu(self) -> Decimal:
        return self.withholding.total

    @property
    def ret_cnss(self) -> Decimal | None:
        return self.withholding.cnss

    @property
    def ret_amo(self) -> Decimal | None:
        return self.withholding.amo

    @property
    def indemnites(self) -> Decimal:
        return self.indemnite_lait + self.prime_panier


@dataclass(frozen=True)
class ReportTotals:
    """Column totals of a report (sub-total / grand total rows)."""
    line_count: int = 0
    days_worked: int = 0
    total_operation: Decimal = ZERO
    anciennete: Decimal = ZERO
    jour_ferier: Decimal = ZERO
    total_brut: Decimal = ZERO
    retenu: Decimal = ZERO
    ret_cnss: Decimal = ZERO
    ret_amo: Decimal = ZERO
    indemnite_lait: Decimal = ZERO
    prime_panier: Decimal = ZERO
    advance: Decimal = ZERO
    income_tax: Decimal = ZERO
    net_pay: Decimal = ZERO

    @classmethod
    def of(cls, amounts: Iterable[DerivedAmounts]) -> ReportTotals:
        totals: dict[str, Any] = {
            "line_count": 0,
            "days_worked": 0,
            "total_operation": ZERO,
            "anciennete": ZERO,
            "jour_ferier": ZERO,
            "total_brut": ZERO,
            "retenu": ZERO,
            "ret_cnss": ZERO,
            "ret_amo": ZERO,
            "indemnite_lait": ZERO,
            "prime_panier": ZERO,
            "advance": ZERO,
            "income_tax": ZERO,
            "net_pay": ZERO,
        }
        for a in amounts:
            totals["line_count"] += 1
            totals["days_worked"] += a.days_worked
            totals["total_operation"] += a.total_operation
            totals["anciennete"] += a.anciennete
            totals["jour_ferier"] += a.jour_ferier
            totals["total_brut"] += a.total_brut
            totals["retenu"] += a.retenu
            totals["ret_cnss"] += a.ret_cnss or ZERO
            totals["ret_amo"] += a.ret_amo or ZERO
            totals["indemnite_lait"] += a.indemnite_lait
            totals["prime_panier"] += a.prime_panier
            totals["advance"] += a.advance
            totals["income_tax"] += a.income_tax
            totals["net_pay"] += a.net_pay
        return cls(**totals)


def sum_task_totals(
    aggregates: Iterable[WorkerAggregate],
) -> dict[int, Decimal]:
    """Column totals per task id across aggregates."""
    totals: dict[int, Decimal] = {}
    for aggregate in aggregates:
        for task_id, quantity in aggregate.task_totals.items():
            totals[task_id] = totals.get(task_id, ZERO) + quantity
    return dict(sorted(totals.items()))


def adjustments_by_worker(
    raw: Mapping[int, Mapping[str, Any]],
) -> dict[int, Adjustments]:
    """Parse a ``{worker_id: {field: raw value}}`` form payload."""
    return {
        int(worker_id): Adjustments.from_inputs(
            advance=values.get("advance"),
            holiday_pay=values.get("holiday_pay"),
            income_tax=values.get("income_tax"),
        )
        for worker_id, values in raw.items()
    }
