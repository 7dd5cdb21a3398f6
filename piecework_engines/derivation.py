"""
Financial Derivation Engine -- the fixed-order pay formula pipeline.

Responsibility:
    Turns one worker's aggregate, seniority percentage, a task price mapping
    and the report's adjustments into the monetary fields of a report line.
    A single generic function serves every report kind; a
    ``DerivationProfile`` selects the withholding policy and which
    adjustment fields the kind honours.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Pipeline (each stage reads only earlier stages):
    1. total_operation = sum(quantity * price) over non-indemnity tasks
    2. anciennete      = total_operation * seniority_percentage / 100
    3. jour_ferier     = holiday pay override, else 0
    4. total_brut      = total_operation + anciennete + jour_ferier
    5. withholding     = total_brut * 0.0674 (combined)
                         or CNSS 0.0448 + AMO 0.0226 (split)
    6. indemnities     = days_worked * price(lait), days_worked * price(panier)
    7. deductions      = advance, and income tax where honoured
    8. net_pay         = total_brut - withholding + indemnities - deductions

Invariants enforced:
    - Decimal arithmetic throughout; nothing is rounded here.
    - 0.0448 + 0.0226 == 0.0674 exactly, so split and combined withholding
      agree on the total for the same total_brut.
    - Indemnity task quantities never enter total_operation.

Failure modes:
    None.  Unknown task prices are zero; negative inputs propagate.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from piecework_engines.tracer import traced_engine
from piecework_kernel.domain.engine_types import (
    NO_ADJUSTMENTS,
    Adjustments,
    DerivedAmounts,
    ReportTotals,
    TaskLine,
    Withholding,
    WithholdingPolicy,
    WorkerAggregate,
)
from piecework_kernel.domain.records import (
    INDEMNITY_TASK_IDS,
    LAIT_TASK_ID,
    PANIER_TASK_ID,
)
from piecework_kernel.domain.snapshots import ADJUSTABLE_FIELDS, ReportKind
from piecework_kernel.domain.values import ZERO

COMBINED_RATE = Decimal("0.0674")
CNSS_RATE = Decimal("0.0448")
AMO_RATE = Decimal("0.0226")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class DerivationProfile:
    """Withholding policy and honoured adjustment fields of a report kind."""
    name: str
    withholding: WithholdingPolicy
    adjustable_fields: frozenset[str]


PAYROLL_PROFILE = DerivationProfile(
    name="payroll",
    withholding=WithholdingPolicy.COMBINED,
    adjustable_fields=ADJUSTABLE_FIELDS[ReportKind.PAYROLL],
)
DETAILED_PAYROLL_PROFILE = DerivationProfile(
    name="detailed_payroll",
    withholding=WithholdingPolicy.SPLIT,
    adjustable_fields=ADJUSTABLE_FIELDS[ReportKind.DETAILED_PAYROLL],
)
TRANSFER_ORDER_PROFILE = DerivationProfile(
    name="transfer_order",
    withholding=WithholdingPolicy.COMBINED,
    adjustable_fields=frozenset(),
)
SUMMARY_PROFILE = DerivationProfile(
    name="summary",
    withholding=WithholdingPolicy.COMBINED,
    adjustable_fields=frozenset(),
)

PROFILE_BY_KIND: dict[ReportKind, DerivationProfile] = {
    ReportKind.PAYROLL: PAYROLL_PROFILE,
    ReportKind.DETAILED_PAYROLL: DETAILED_PAYROLL_PROFILE,
    ReportKind.TRANSFER_ORDER: TRANSFER_ORDER_PROFILE,
    ReportKind.ANNUAL_SUMMARY: SUMMARY_PROFILE,
    ReportKind.SEASON_SUMMARY: SUMMARY_PROFILE,
}


def _withholding(total_brut: Decimal, policy: WithholdingPolicy) -> Withholding:
    if policy is WithholdingPolicy.SPLIT:
        cnss = total_brut * CNSS_RATE
        amo = total_brut * AMO_RATE
        return Withholding(policy=policy, total=cnss + amo, cnss=cnss, amo=amo)
    return Withholding(policy=policy, total=total_brut * COMBINED_RATE)


@traced_engine(
    "derivation", "1.0",
    fingerprint_fields=("aggregate", "seniority_percentage", "adjustments", "profile"),
)
def derive_line(
    *,
    aggregate: WorkerAggregate,
    seniority_percentage: Decimal,
    prices: Mapping[int, Decimal],
    adjustments: Adjustments = NO_ADJUSTMENTS,
    profile: DerivationProfile,
) -> DerivedAmounts:
    """Run the eight-stage pipeline for one worker."""
    fields = profile.adjustable_fields

    task_lines = tuple(
        TaskLine(
            task_id=task_id,
            quantity=quantity,
            price=prices.get(task_id, ZERO),
            amount=quantity * prices.get(task_id, ZERO),
        )
        for task_id, quantity in aggregate.task_totals.items()
        if task_id not in INDEMNITY_TASK_IDS
    )
    total_operation = sum((line.amount for line in task_lines), ZERO)

    anciennete = total_operation * seniority_percentage / HUNDRED

    jour_ferier = ZERO
    if "holiday_pay" in fields and adjustments.holiday_pay is not None:
        jour_ferier = adjustments.holiday_pay

    total_brut = total_operation + anciennete + jour_ferier

    withholding = _withholding(total_brut, profile.withholding)

    days = aggregate.days_worked
    indemnite_lait = days * prices.get(LAIT_TASK_ID, ZERO)
    prime_panier = days * prices.get(PANIER_TASK_ID, ZERO)

    advance = adjustments.advance if "advance" in fields else ZERO
    income_tax = adjustments.income_tax if "income_tax" in fields else ZERO

    net_pay = (
        total_brut
        - withholding.total
        + indemnite_lait
        + prime_panier
        - advance
        - income_tax
    )

    return DerivedAmounts(
        task_lines=task_lines,
        total_operation=total_operation,
        anciennete=anciennete,
        jour_ferier=jour_ferier,
        total_brut=total_brut,
        withholding=withholding,
        days_worked=days,
        indemnite_lait=indemnite_lait,
        prime_panier=prime_panier,
        advance=advance,
        income_tax=income_tax,
        net_pay=net_pay,
    )


def total_lines(amounts: Iterable[DerivedAmounts]) -> ReportTotals:
    """Sub-total / grand-total row over any set of derived lines."""
    return ReportTotals.of(amounts)
