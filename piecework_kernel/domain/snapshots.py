"""
Snapshots -- Persisted derived reports as a tagged union.

Responsibility:
    Defines ``ReportKind`` (the discriminator), one params dataclass per
    kind, the line types, and ``DerivedReportSnapshot`` together with its
    JSON-safe payload form used by the persistence and presentation layers.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - A snapshot's params type always matches its kind.
    - Only ``ADJUSTABLE_FIELDS[kind]`` may change after creation, and only
      through recomputation.
    - Payload encoding is deterministic: equal snapshots encode to equal
      dicts (Decimals as strings, mappings in key order).

Failure modes:
    - ValueError when params do not match the kind.
    - KeyError / ValueError from ``from_payload`` on malformed payloads.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Union
from uuid import UUID

from piecework_kernel.domain.engine_types import (
    Adjustments,
    DerivedAmounts,
    TaskLine,
    Withholding,
    WithholdingPolicy,
    WorkerAggregate,
)
from piecework_kernel.domain.records import HalfMonth


class ReportKind(Enum):
    """Report variants derived by the engine."""
    BI_MONTHLY = "bi_monthly"
    PAYROLL = "payroll"
    DETAILED_PAYROLL = "detailed_payroll"
    TRANSFER_ORDER = "transfer_order"
    ANNUAL_SUMMARY = "annual_summary"
    SEASON_SUMMARY = "season_summary"


ADJUSTABLE_FIELDS: dict[ReportKind, frozenset[str]] = {
    ReportKind.BI_MONTHLY: frozenset(),
    ReportKind.PAYROLL: frozenset({"advance", "holiday_pay"}),
    ReportKind.DETAILED_PAYROLL: frozenset({"advance", "income_tax"}),
    ReportKind.TRANSFER_ORDER: frozenset(),
    ReportKind.ANNUAL_SUMMARY: frozenset(),
    ReportKind.SEASON_SUMMARY: frozenset(),
}


# ---------------------------------------------------------------------------
# Params
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BiMonthlyParams:
    year: int
    month: int
    period: HalfMonth
    regional_center: str
    worker_ids: tuple[int, ...]
    start_date: str
    end_date: str


@dataclass(frozen=True)
class PayrollParams:
    start_date: str
    end_date: str
    worker_ids: tuple[int, ...]
    school_year: str
    settlement_year: str
    regional_center: str
    prices: dict[int, Decimal] = field(default_factory=dict)
    adjustments: dict[int, Adjustments] = field(default_factory=dict)


@dataclass(frozen=True)
class DetailedPayrollParams:
    year: int
    month: int
    period: HalfMonth
    regional_center: str
    worker_ids: tuple[int, ...]
    prices: dict[int, Decimal] = field(default_factory=dict)
    adjustments: dict[int, Adjustments] = field(default_factory=dict)


@dataclass(frozen=True)
class TransferOrderParams:
    start_date: str
    end_date: str
    worker_ids: tuple[int, ...]
    city: str
    order_date: str
    prices: dict[int, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class AnnualSummaryParams:
    year: int
    source_report_ids: tuple[UUID, ...]
    prices: dict[int, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class SeasonSummaryParams:
    start_year: int
    end_year: int
    start_date: str
    end_date: str
    source_report_ids: tuple[UUID, ...] = ()
    prices: dict[int, Decimal] = field(default_factory=dict)


ReportParams = Union[
    BiMonthlyParams,
    PayrollParams,
    DetailedPayrollParams,
    TransferOrderParams,
    AnnualSummaryParams,
    SeasonSummaryParams,
]

_PARAMS_TYPE: dict[ReportKind, type] = {
    ReportKind.BI_MONTHLY: BiMonthlyParams,
    ReportKind.PAYROLL: PayrollParams,
    ReportKind.DETAILED_PAYROLL: DetailedPayrollParams,
    ReportKind.TRANSFER_ORDER: TransferOrderParams,
    ReportKind.ANNUAL_SUMMARY: AnnualSummaryParams,
    ReportKind.SEASON_SUMMARY: SeasonSummaryParams,
}


# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BiMonthlyLine:
    """Stored aggregation of one worker for a half-month."""
    worker_id: int
    worker_name: str
    aggregate: WorkerAggregate


@dataclass(frozen=True)
class PayLine:
    """A payroll, detailed payroll or transfer order line."""
    worker_id: int
    worker_name: str
    seniority_percentage: Decimal
    number_of_children: int
    aggregate: WorkerAggregate
    amounts: DerivedAmounts


@dataclass(frozen=True)
class RollupLine:
    """An annual or season summary line."""
    worker_id: int
    worker_name: str
    group_name: str
    is_distinguished: bool
    aggregate: WorkerAggregate
    amounts: DerivedAmounts


ReportLine = Union[BiMonthlyLine, PayLine, RollupLine]

_LINE_TYPE: dict[ReportKind, type] = {
    ReportKind.BI_MONTHLY: BiMonthlyLine,
    ReportKind.PAYROLL: PayLine,
    ReportKind.DETAILED_PAYROLL: PayLine,
    ReportKind.TRANSFER_ORDER: PayLine,
    ReportKind.ANNUAL_SUMMARY: RollupLine,
    ReportKind.SEASON_SUMMARY: RollupLine,
}


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DerivedReportSnapshot:
    """
    A derived report: immutable params plus computed per-worker lines.

    ``id``, ``owner`` and the timestamps are assigned by the store.
    """
    kind: ReportKind
    params: ReportParams
    lines: tuple[ReportLine, ...]
    id: UUID | None = None
    owner: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        expected = _PARAMS_TYPE[self.kind]
        if not isinstance(self.params, expected):
            raise ValueError(
                f"{self.kind.value} snapshot requires {expected.__name__}, "
                f"got {type(self.params).__name__}"
            )
        line_type = _LINE_TYPE[self.kind]
        for line in self.lines:
            if not isinstance(line, line_type):
                raise ValueError(
                    f"{self.kind.value} snapshot lines must be {line_type.__name__}"
                )

    @property
    def worker_ids(self) -> tuple[int, ...]:
        return tuple(line.worker_id for line in self.lines)

    def line_for(self, worker_id: int) -> ReportLine | None:
        for line in self.lines:
            if line.worker_id == worker_id:
                return line
        return None

    def with_lines(
        self,
        lines: tuple[ReportLine, ...],
        params: ReportParams | None = None,
        updated_at: datetime | None = None,
    ) -> DerivedReportSnapshot:
        return replace(
            self,
            lines=lines,
            params=params if params is not None else self.params,
            updated_at=updated_at if updated_at is not None else self.updated_at,
        )

    def with_params(
        self,
        params: ReportParams,
        updated_at: datetime | None = None,
    ) -> DerivedReportSnapshot:
        return self.with_lines(self.lines, params=params, updated_at=updated_at)

    def persisted(
        self,
        *,
        id: UUID,
        owner: str | None,
        created_at: datetime,
        updated_at: datetime,
    ) -> DerivedReportSnapshot:
        """Copy carrying the identity and timestamps assigned by the store."""
        return replace(
            self,
            id=id,
            owner=owner,
            created_at=created_at,
            updated_at=updated_at,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": str(self.id) if self.id is not None else None,
            "kind": self.kind.value,
            "owner": self.owner,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "params": encode_params(self.params),
            "lines": [encode_line(line) for line in self.lines],
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> DerivedReportSnapshot:
        kind = ReportKind(payload["kind"])
        return cls(
            kind=kind,
            params=decode_params(kind, payload["params"]),
            lines=tuple(decode_line(kind, raw) for raw in payload["lines"]),
            id=UUID(payload["id"]) if payload.get("id") else None,
            owner=payload.get("owner"),
            created_at=_parse_datetime(payload.get("created_at")),
            updated_at=_parse_datetime(payload.get("updated_at")),
        )


# ---------------------------------------------------------------------------
# Payload encoding
# ---------------------------------------------------------------------------


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _dec(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def _undec(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def _encode_prices(prices: dict[int, Decimal]) -> dict[str, str]:
    return {str(task_id): str(price) for task_id, price in sorted(prices.items())}


def _decode_prices(raw: dict[str, str]) -> dict[int, Decimal]:
    return {int(task_id): Decimal(price) for task_id, price in raw.items()}


def _encode_adjustments(adjustments: dict[int, Adjustments]) -> dict[str, Any]:
    return {
        str(worker_id): {
            "advance": str(adj.advance),
            "holiday_pay": _dec(adj.holiday_pay),
            "income_tax": str(adj.income_tax),
        }
        for worker_id, adj in sorted(adjustments.items())
    }


def _decode_adjustments(raw: dict[str, Any]) -> dict[int, Adjustments]:
    return {
        int(worker_id): Adjustments(
            advance=Decimal(values["advance"]),
            holiday_pay=_undec(values.get("holiday_pay")),
            income_tax=Decimal(values["income_tax"]),
        )
        for worker_id, values in raw.items()
    }


def encode_params(params: ReportParams) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for name in params.__dataclass_fields__:
        value = getattr(params, name)
        if name == "prices":
            data[name] = _encode_prices(value)
        elif name == "adjustments":
            data[name] = _encode_adjustments(value)
        elif name == "period":
            data[name] = value.value
        elif name in ("worker_ids",):
            data[name] = list(value)
        elif name == "source_report_ids":
            data[name] = [str(report_id) for report_id in value]
        else:
            data[name] = value
    return data


def decode_params(kind: ReportKind, raw: dict[str, Any]) -> ReportParams:
    params_type = _PARAMS_TYPE[kind]
    values: dict[str, Any] = {}
    for name in params_type.__dataclass_fields__:
        if name not in raw:
            continue
        value = raw[name]
        if name == "prices":
            value = _decode_prices(value)
        elif name == "adjustments":
            value = _decode_adjustments(value)
        elif name == "period":
            value = HalfMonth(value)
        elif name == "worker_ids":
            value = tuple(int(w) for w in value)
        elif name == "source_report_ids":
            value = tuple(UUID(r) for r in value)
        values[name] = value
    return params_type(**values)


def _encode_aggregate(aggregate: WorkerAggregate) -> dict[str, Any]:
    return {
        "worker_id": aggregate.worker_id,
        "task_totals": {
            str(task_id): str(qty) for task_id, qty in aggregate.task_totals.items()
        },
        "days_worked": aggregate.days_worked,
    }


def _decode_aggregate(raw: dict[str, Any]) -> WorkerAggregate:
    return WorkerAggregate(
        worker_id=int(raw["worker_id"]),
        task_totals={int(t): Decimal(q) for t, q in raw["task_totals"].items()},
        days_worked=int(raw["days_worked"]),
    )


def _encode_amounts(amounts: DerivedAmounts) -> dict[str, Any]:
    return {
        "task_lines": [
            {
                "task_id": t.task_id,
                "quantity": str(t.quantity),
                "price": str(t.price),
                "amount": str(t.amount),
            }
            for t in amounts.task_lines
        ],
        "total_operation": str(amounts.total_operation),
        "anciennete": str(amounts.anciennete),
        "jour_ferier": str(amounts.jour_ferier),
        "total_brut": str(amounts.total_brut),
        "withholding": {
            "policy": amounts.withholding.policy.value,
            "total": str(amounts.withholding.total),
            "cnss": _dec(amounts.withholding.cnss),
            "amo": _dec(amounts.withholding.amo),
        },
        "days_worked": amounts.days_worked,
        "indemnite_lait": str(amounts.indemnite_lait),
        "prime_panier": str(amounts.prime_panier),
        "advance": str(amounts.advance),
        "income_tax": str(amounts.income_tax),
        "net_pay": str(amounts.net_pay),
    }


def _decode_amounts(raw: dict[str, Any]) -> DerivedAmounts:
    w = raw["withholding"]
    return DerivedAmounts(
        task_lines=tuple(
            TaskLine(
                task_id=int(t["task_id"]),
                quantity=Decimal(t["quantity"]),
                price=Decimal(t["price"]),
                amount=Decimal(t["amount"]),
            )
            for t in raw["task_lines"]
        ),
        total_operation=Decimal(raw["total_operation"]),
        anciennete=Decimal(raw["anciennete"]),
        jour_ferier=Decimal(raw["jour_ferier"]),
        total_brut=Decimal(raw["total_brut"]),
        withholding=Withholding(
            policy=WithholdingPolicy(w["policy"]),
            total=Decimal(w["total"]),
            cnss=_undec(w.get("cnss")),
            amo=_undec(w.get("amo")),
        ),
        days_worked=int(raw["days_worked"]),
        indemnite_lait=Decimal(raw["indemnite_lait"]),
        prime_panier=Decimal(raw["prime_panier"]),
        advance=Decimal(raw["advance"]),
        income_tax=Decimal(raw["income_tax"]),
        net_pay=Decimal(raw["net_pay"]),
    )


def encode_line(line: ReportLine) -> dict[str, Any]:
    if isinstance(line, BiMonthlyLine):
        return {
            "worker_id": line.worker_id,
            "worker_name": line.worker_name,
            "aggregate": _encode_aggregate(line.aggregate),
        }
    if isinstance(line, PayLine):
        return {
            "worker_id": line.worker_id,
            "worker_name": line.worker_name,
            "seniority_percentage": str(line.seniority_percentage),
            "number_of_children": line.number_of_children,
            "aggregate": _encode_aggregate(line.aggregate),
            "amounts": _encode_amounts(line.amounts),
        }
    return {
        "worker_id": line.worker_id,
        "worker_name": line.worker_name,
        "group_name": line.group_name,
        "is_distinguished": line.is_distinguished,
        "aggregate": _encode_aggregate(line.aggregate),
        "amounts": _encode_amounts(line.amounts),
    }


def decode_line(kind: ReportKind, raw: dict[str, Any]) -> ReportLine:
    line_type = _LINE_TYPE[kind]
    if line_type is BiMonthlyLine:
        return BiMonthlyLine(
            worker_id=int(raw["worker_id"]),
            worker_name=raw["worker_name"],
            aggregate=_decode_aggregate(raw["aggregate"]),
        )
    if line_type is PayLine:
        return PayLine(
            worker_id=int(raw["worker_id"]),
            worker_name=raw["worker_name"],
            seniority_percentage=Decimal(raw["seniority_percentage"]),
            number_of_children=int(raw["number_of_children"]),
            aggregate=_decode_aggregate(raw["aggregate"]),
            amounts=_decode_amounts(raw["amounts"]),
        )
    return RollupLine(
        worker_id=int(raw["worker_id"]),
        worker_name=raw["worker_name"],
        group_name=raw["group_name"],
        is_distinguished=bool(raw["is_distinguished"]),
        aggregate=_decode_aggregate(raw["aggregate"]),
        amounts=_decode_amounts(raw["amounts"]),
    )
