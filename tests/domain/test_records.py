"""
Tests for domain records (``piecework_kernel.domain.records``).

Covers:
- Roster lookups: first group for membership, last owned group for owner
- Owner of record, including ownerless groups
- Task price table fallback for unknown ids
- Frozen guarantee
"""

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from piecework_kernel.domain.records import (
    INDEMNITY_TASK_IDS,
    LAIT_TASK_ID,
    PANIER_TASK_ID,
    UNKNOWN_TASK_CATEGORY,
    HalfMonth,
    Roster,
    TaskDefinition,
    TaskPriceTable,
    WorkerGroup,
    WorkerRecord,
)


class TestRoster:
    """Tests for Roster lookups."""

    def test_worker_lookup(self, roster):
        assert roster.worker(1).name == "ALAMI Ahmed"
        assert roster.worker(999) is None
        assert 1 in roster
        assert 999 not in roster
        assert len(roster) == 5

    def test_owner_of_record(self, roster):
        assert roster.owner_of_record(1) == "agent-a"
        assert roster.owner_of_record(3) == "agent-b"

    def test_ownerless_group(self, roster):
        assert roster.group_of(4).name == "GROUPE SANS CHEF"
        assert roster.owner_of_record(4) is None

    def test_unknown_worker_has_no_owner(self, roster):
        assert roster.owner_of_record(999) is None
        assert roster.group_of(999) is None

    def test_first_group_wins_last_owner_wins(self):
        shared = WorkerRecord(id=9, name="SHARED")
        roster = Roster(
            [
                WorkerGroup(id="A", name="First", owner="o1", workers=(shared,)),
                WorkerGroup(id="B", name="Second", owner="o2", workers=(shared,)),
            ]
        )

        assert roster.group_of(9).id == "A"
        assert roster.owner_of_record(9) == "o2"
        assert len(roster) == 1

    def test_moved_worker_keeps_owner_of_new_group(self):
        moved = WorkerRecord(id=7, name="MOVED")
        roster = Roster(
            [
                WorkerGroup(
                    id="OLD", name="Old", owner=None, workers=(moved,),
                    is_departed_group=True,
                ),
                WorkerGroup(id="NEW", name="New", owner="agent-b", workers=(moved,)),
                WorkerGroup(id="BLANK", name="Blank", owner="", workers=(moved,)),
            ]
        )

        assert roster.group_of(7).id == "OLD"
        assert roster.owner_of_record(7) == "agent-b"

    def test_find_group(self, roster):
        assert roster.find_group("GROUPE ATLAS").id == "G-ATLAS"
        assert roster.find_group("missing") is None

    def test_all_workers_includes_departed_groups(self, roster):
        assert {w.id for w in roster.all_workers()} == {1, 2, 3, 4, 5}


class TestTaskPriceTable:
    """Tests for price lookups and the unknown-task fallback."""

    def test_known_price(self, price_table):
        assert price_table.price_of(1) == Decimal("5.00")
        assert price_table.definition_of(37).description == "Indemnité de lait"

    def test_unknown_task_fallback(self, price_table):
        definition = price_table.definition_of(404)

        assert definition.price == Decimal("0")
        assert definition.category == UNKNOWN_TASK_CATEGORY == "À METTRE À JOUR"
        assert definition.description == "Tâche inconnue #404"
        assert price_table.price_of(404) == Decimal("0")

    def test_prices_for_includes_indemnities(self, price_table):
        prices = price_table.prices_for([2, 404])

        assert prices == {
            2: Decimal("1.20"),
            37: Decimal("8"),
            47: Decimal("12"),
            404: Decimal("0"),
        }
        assert list(prices) == [2, 37, 47, 404]

    def test_from_prices(self):
        table = TaskPriceTable.from_prices({5: Decimal("2.5")})

        assert table.price_of(5) == Decimal("2.5")
        assert 5 in table
        assert len(table) == 1

    def test_iteration(self, price_table):
        assert sorted(t.id for t in price_table) == [1, 2, 3, 37, 47]


class TestConstants:
    def test_indemnity_ids(self):
        assert LAIT_TASK_ID == 37
        assert PANIER_TASK_ID == 47
        assert INDEMNITY_TASK_IDS == {37, 47}

    def test_half_month_values(self):
        assert HalfMonth("first") is HalfMonth.FIRST
        assert HalfMonth("second") is HalfMonth.SECOND


class TestImmutability:
    def test_worker_is_frozen(self):
        worker = WorkerRecord(id=1, name="X")

        with pytest.raises(FrozenInstanceError):
            worker.name = "Y"

    def test_task_is_frozen(self):
        task = TaskDefinition(id=1, price=Decimal("1"), category="c", description="d")

        with pytest.raises(FrozenInstanceError):
            task.price = Decimal("2")
