"""
Tests for the Rollup Aggregator.

Covers:
- Season scenario: derivation over the summed base, not summed nets
- Distinguished group classification and sub-totals
- Dropping workers whose combined net pay is <= 0
- Name ordering regardless of source order
- Unknown workers in source reports
"""

from decimal import Decimal
from uuid import uuid4

from piecework_engines.derivation import COMBINED_RATE, SUMMARY_PROFILE, derive_line
from piecework_engines.period import resolve_half_month
from piecework_engines.rollup import UNKNOWN_GROUP_NAME, rollup_reports
from piecework_kernel.domain.engine_types import WorkerAggregate
from piecework_kernel.domain.records import HalfMonth
from piecework_kernel.domain.snapshots import (
    BiMonthlyLine,
    BiMonthlyParams,
    DerivedReportSnapshot,
    ReportKind,
)
from piecework_kernel.domain.values import present

DISTINGUISHED = "GROUPE HYAT NEGOCE SERVICES"


def _source(month: int, period: HalfMonth, aggregates: list[WorkerAggregate]):
    bounds = resolve_half_month(2025, month, period)
    return DerivedReportSnapshot(
        kind=ReportKind.BI_MONTHLY,
        params=BiMonthlyParams(
            year=2025,
            month=month,
            period=period,
            regional_center="TAZA",
            worker_ids=tuple(a.worker_id for a in aggregates),
            start_date=bounds.start_date,
            end_date=bounds.end_date,
        ),
        lines=tuple(
            BiMonthlyLine(worker_id=a.worker_id, worker_name=f"W{a.worker_id}", aggregate=a)
            for a in aggregates
        ),
        id=uuid4(),
    )


def _rollup(sources, roster, price_table):
    return rollup_reports(
        sources=sources,
        roster=roster,
        prices=price_table,
        distinguished_group_name=DISTINGUISHED,
    )


class TestSummedBase:
    """Figures are derived once over the combined base."""

    def test_season_base_800(self, roster, price_table):
        sources = [
            _source(6, HalfMonth.FIRST, [WorkerAggregate(1, {1: Decimal("100")}, 10)]),
            _source(6, HalfMonth.SECOND, [WorkerAggregate(1, {1: Decimal("60")}, 8)]),
        ]

        result = _rollup(sources, roster, price_table)

        line = result.lines[0]
        assert line.aggregate == WorkerAggregate(1, {1: Decimal("160")}, 18)
        assert line.amounts.total_operation == Decimal("800.00")
        assert line.amounts.anciennete == Decimal("80")
        assert line.amounts.total_brut == Decimal("880")
        assert line.amounts.retenu == Decimal("880") * COMBINED_RATE
        assert line.amounts.indemnites == 18 * Decimal("20")
        assert present(line.amounts.net_pay) == Decimal("1180.69")

    def test_equals_single_derivation_over_merged_aggregate(self, roster, price_table):
        sources = [
            _source(6, HalfMonth.FIRST, [WorkerAggregate(2, {2: Decimal("33.3")}, 3)]),
            _source(7, HalfMonth.FIRST, [WorkerAggregate(2, {2: Decimal("66.7")}, 4)]),
        ]

        result = _rollup(sources, roster, price_table)

        expected = derive_line(
            aggregate=WorkerAggregate(2, {2: Decimal("100.0")}, 7),
            seniority_percentage=Decimal("5"),
            prices=price_table.prices_for([2]),
            profile=SUMMARY_PROFILE,
        )
        assert result.lines[0].amounts == expected

    def test_prices_frozen_on_result(self, roster, price_table):
        result = _rollup(
            [_source(6, HalfMonth.FIRST, [WorkerAggregate(1, {1: Decimal("1")}, 1)])],
            roster,
            price_table,
        )

        assert result.prices == {1: Decimal("5.00"), 37: Decimal("8"), 47: Decimal("12")}


class TestClassification:
    """Distinguished group vs everyone else."""

    def test_sub_totals(self, roster, price_table):
        sources = [
            _source(
                6,
                HalfMonth.FIRST,
                [
                    WorkerAggregate(1, {1: Decimal("100")}, 10),
                    WorkerAggregate(2, {1: Decimal("20")}, 2),
                    WorkerAggregate(3, {1: Decimal("50")}, 5),
                ],
            )
        ]

        result = _rollup(sources, roster, price_table)

        assert [line.worker_id for line in result.distinguished_lines] == [1, 2]
        assert [line.worker_id for line in result.other_lines] == [3]
        assert result.distinguished_totals.line_count == 2
        assert result.other_totals.line_count == 1
        assert result.grand_totals.net_pay == (
            result.distinguished_totals.net_pay + result.other_totals.net_pay
        )
        assert result.lines[2].group_name == "GROUPE ATLAS"

    def test_missing_distinguished_group(self, roster, price_table):
        result = rollup_reports(
            sources=[_source(6, HalfMonth.FIRST, [WorkerAggregate(1, {1: Decimal("1")}, 1)])],
            roster=roster,
            prices=price_table,
            distinguished_group_name="NO SUCH GROUP",
        )

        assert result.distinguished_lines == ()
        assert result.other_totals.line_count == 1


class TestFilteringAndOrder:
    """Non-positive nets dropped, names sorted."""

    def test_non_positive_net_dropped(self, roster, price_table):
        sources = [
            _source(
                6,
                HalfMonth.FIRST,
                [WorkerAggregate(3), WorkerAggregate(1, {1: Decimal("1")}, 0)],
            )
        ]

        result = _rollup(sources, roster, price_table)

        assert [line.worker_id for line in result.lines] == [1]

    def test_sorted_by_name_regardless_of_source_order(self, roster, price_table):
        aggregates = [
            WorkerAggregate(5, {1: Decimal("1")}, 1),
            WorkerAggregate(3, {1: Decimal("1")}, 1),
            WorkerAggregate(1, {1: Decimal("1")}, 1),
        ]
        forward = _rollup([_source(6, HalfMonth.FIRST, aggregates)], roster, price_table)
        backward = _rollup(
            [_source(6, HalfMonth.FIRST, list(reversed(aggregates)))], roster, price_table
        )

        names = [line.worker_name for line in forward.lines]
        assert names == ["ALAMI Ahmed", "CHAOUI Said", "ZOUHAIR Karim"]
        assert forward.lines == backward.lines

    def test_unknown_worker_reported(self, roster, price_table):
        sources = [
            _source(6, HalfMonth.FIRST, [WorkerAggregate(77, {1: Decimal("10")}, 1)]),
            _source(6, HalfMonth.SECOND, [WorkerAggregate(77, {1: Decimal("10")}, 1)]),
        ]

        result = _rollup(sources, roster, price_table)

        assert result.lines == ()
        assert [(w.record_type, w.worker_id, w.count) for w in result.warnings] == [
            ("report_line", 77, 2)
        ]

    def test_unknown_group_name_constant(self):
        assert UNKNOWN_GROUP_NAME == "N/A"
