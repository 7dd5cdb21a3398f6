"""
Configuration Loader (``piecework_config.loader``).

Responsibility
--------------
Loads the YAML files that configure report derivation: the reports
settings (parsed into ``ReportsConfig``) and the task catalog (parsed into
a ``TaskPriceTable``).  The catalog is the source the task price table is
seeded from; at derivation time prices are read from the store.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on the kernel domain
records and the reports config schema; nothing in the kernel or the
engines imports it.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Prices are parsed to ``Decimal`` through ``str`` (YAML floats never
  reach arithmetic as binary floats).
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Duplicate task ids or non-numeric prices  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from piecework_kernel.domain.records import TaskDefinition, TaskPriceTable
from piecework_kernel.domain.values import to_decimal
from piecework_kernel.logging_config import get_logger
from piecework_modules.reports.config import ReportsConfig

logger = get_logger("config.loader")

DEFAULT_CONFIG_DIR = Path(__file__).parent / "defaults"
DEFAULT_REPORTS_FILE = DEFAULT_CONFIG_DIR / "reports.yaml"
DEFAULT_TASKS_FILE = DEFAULT_CONFIG_DIR / "tasks.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def parse_task(data: dict[str, Any]) -> TaskDefinition:
    """
    Parse a ``TaskDefinition`` from a dict.

    Preconditions:
        - ``data`` must contain ``id`` and ``price``.
    Raises:
        KeyError: if required keys are missing.
        ValueError: if ``price`` is not numeric.
    """
    return TaskDefinition(
        id=int(data["id"]),
        price=to_decimal(data["price"]),
        category=str(data.get("category", "")),
        description=str(data.get("description", "")),
    )


def load_task_catalog(path: Path = DEFAULT_TASKS_FILE) -> TaskPriceTable:
    """Load the ``tasks:`` list of a catalog file into a price table."""
    data = load_yaml_file(Path(path))
    tasks = [parse_task(item) for item in data.get("tasks", [])]

    seen: set[int] = set()
    duplicates: list[int] = []
    for task in tasks:
        if task.id in seen:
            duplicates.append(task.id)
        seen.add(task.id)
    if duplicates:
        raise ValueError(f"{path}: duplicate task ids {duplicates}")

    logger.info(
        "task_catalog_loaded",
        extra={
            "path": str(path),
            "task_count": len(tasks),
            "checksum": compute_checksum(data),
        },
    )
    return TaskPriceTable(tasks)


def load_reports_config(path: Path = DEFAULT_REPORTS_FILE) -> ReportsConfig:
    """Load a ``reports:`` section into ``ReportsConfig``."""
    data = load_yaml_file(Path(path))
    section = data.get("reports", {}) or {}
    config = ReportsConfig.from_dict(section)
    logger.info(
        "reports_config_loaded",
        extra={"path": str(path), "checksum": compute_checksum(section)},
    )
    return config


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
