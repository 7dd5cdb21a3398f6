"""
piecework_config -- YAML configuration for report derivation.

Responsibility:
    Loads the reports settings and the task catalog from YAML files.  The
    packaged defaults under ``defaults/`` describe the cooperative's
    standard setup.

Architecture position:
    Configuration -- sits above ``piecework_kernel`` and beside
    ``piecework_modules``.  The kernel and the engines MUST NEVER import
    from ``piecework_config``.
"""

from piecework_config.loader import (
    DEFAULT_CONFIG_DIR,
    compute_checksum,
    load_reports_config,
    load_task_catalog,
    load_yaml_file,
    parse_task,
)

__all__ = [
    "DEFAULT_CONFIG_DIR",
    "compute_checksum",
    "load_reports_config",
    "load_task_catalog",
    "load_yaml_file",
    "parse_task",
]
