"""
Records -- The nouns of piece-rate work.

Responsibility:
    Frozen value objects for workers, worker groups, task definitions,
    activity log entries and attendance entries, plus the ``Roster`` and
    ``TaskPriceTable`` lookups the engines resolve against.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Consumed by engines,
    the persistence layer and services.

Invariants enforced:
    - Quantities, prices and percentages are ``Decimal``.
    - Activity log entries carry the ownership tag recorded when they were
      written; aggregation compares it with the worker's current owner.
    - Unknown task ids resolve to a zero-priced placeholder definition,
      never to an error.

Failure modes:
    None.  Lookups for unknown ids return ``None`` or the placeholder task.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

# Indemnity tasks: paid per day worked, never part of the operational total.
LAIT_TASK_ID = 37
PANIER_TASK_ID = 47
INDEMNITY_TASK_IDS: frozenset[int] = frozenset({LAIT_TASK_ID, PANIER_TASK_ID})

UNKNOWN_TASK_CATEGORY = "À METTRE À JOUR"


class HalfMonth(Enum):
    """Half-month attendance and reporting period."""
    FIRST = "first"
    SECOND = "second"


@dataclass(frozen=True)
class WorkerRecord:
    """A piece-rate worker."""
    id: int
    name: str
    seniority_percentage: Decimal = Decimal("0")
    number_of_children: int = 0
    bank_account: str | None = None
    cin: str | None = None
    cnss_number: str | None = None
    is_archived: bool = False


@dataclass(frozen=True)
class WorkerGroup:
    """A group of workers under one owner."""
    id: str
    name: str
    owner: str | None
    workers: tuple[WorkerRecord, ...] = field(default_factory=tuple)
    is_departed_group: bool = False
    is_archived: bool = False


class Roster:
    """
    Worker lookup over the current group memberships.

    Contract:
        A worker listed in several groups resolves to the first group that
        contains it, in the order the groups were supplied.  Ownership is
        resolved separately: groups without an owner are skipped and a
        later owned group overrides an earlier one.

    Guarantees:
        - ``owner_of_record`` is the owner of the last owned group listing
          the worker, ``None`` when the worker is unknown or no group
          listing it has an owner.
    """

    def __init__(self, groups: Iterable[WorkerGroup]):
        self._groups: tuple[WorkerGroup, ...] = tuple(groups)
        self._workers: dict[int, WorkerRecord] = {}
        self._group_by_worker: dict[int, WorkerGroup] = {}
        self._owner_by_worker: dict[int, str] = {}
        for group in self._groups:
            for worker in group.workers:
                if worker.id not in self._workers:
                    self._workers[worker.id] = worker
                    self._group_by_worker[worker.id] = group
                if group.owner:
                    self._owner_by_worker[worker.id] = group.owner

    @property
    def groups(self) -> tuple[WorkerGroup, ...]:
        return self._groups

    def __contains__(self, worker_id: object) -> bool:
        return worker_id in self._workers

    def __len__(self) -> int:
        return len(self._workers)

    def worker(self, worker_id: int) -> WorkerRecord | None:
        return self._workers.get(worker_id)

    def group_of(self, worker_id: int) -> WorkerGroup | None:
        return self._group_by_worker.get(worker_id)

    def owner_of_record(self, worker_id: int) -> str | None:
        return self._owner_by_worker.get(worker_id)

    def all_workers(self) -> tuple[WorkerRecord, ...]:
        return tuple(self._workers.values())

    def find_group(self, name: str) -> WorkerGroup | None:
        for group in self._groups:
            if group.name == name:
                return group
        return None


@dataclass(frozen=True)
class TaskDefinition:
    """A priced piece-rate task."""
    id: int
    price: Decimal
    category: str
    description: str

    @classmethod
    def placeholder(cls, task_id: int) -> TaskDefinition:
        """Fallback definition for a task id missing from the catalog."""
        return cls(
            id=task_id,
            price=Decimal("0"),
            category=UNKNOWN_TASK_CATEGORY,
            description=f"Tâche inconnue #{task_id}",
        )


class TaskPriceTable:
    """
    Task id to definition mapping with a zero-price fallback.

    Guarantees:
        - ``price_of`` never raises; unknown ids price at ``Decimal("0")``.
    """

    def __init__(self, definitions: Iterable[TaskDefinition] = ()):
        self._definitions: dict[int, TaskDefinition] = {
            d.id: d for d in definitions
        }

    @classmethod
    def from_prices(cls, prices: Mapping[int, Decimal]) -> TaskPriceTable:
        """Build a table from bare prices (as stored on snapshots)."""
        return cls(
            TaskDefinition(
                id=task_id,
                price=price,
                category=UNKNOWN_TASK_CATEGORY,
                description="",
            )
            for task_id, price in prices.items()
        )

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[TaskDefinition]:
        return iter(self._definitions.values())

    def definition_of(self, task_id: int) -> TaskDefinition:
        definition = self._definitions.get(task_id)
        if definition is None:
            return TaskDefinition.placeholder(task_id)
        return definition

    def price_of(self, task_id: int) -> Decimal:
        definition = self._definitions.get(task_id)
        return definition.price if definition is not None else Decimal("0")

    def prices_for(self, task_ids: Iterable[int]) -> dict[int, Decimal]:
        """Frozen price mapping for the given ids, indemnity tasks included."""
        ids = set(task_ids) | INDEMNITY_TASK_IDS
        return {task_id: self.price_of(task_id) for task_id in sorted(ids)}


@dataclass(frozen=True)
class ActivityLogEntry:
    """One day's logged quantity of a task for a worker.

    ``date`` is an ISO ``YYYY-MM-DD`` string; ISO strings order
    lexicographically.  ``owner`` is the ownership tag at write time.
    """
    worker_id: int
    task_id: int
    quantity: Decimal
    date: str
    owner: str | None
    id: UUID | None = None


@dataclass(frozen=True)
class AttendanceEntry:
    """Days worked by a worker in one half-month."""
    worker_id: int
    year: int
    month: int
    period: HalfMonth
    days: int
    owner: str | None
    recorded_at: datetime | None = None

    @property
    def key(self) -> tuple[int, int, int, HalfMonth]:
        return (self.worker_id, self.year, self.month, self.period)
