"""
Reports Configuration Schema.

Defines the structure and defaults for report derivation settings.
Actual values are loaded from YAML (``piecework_config.loader``) at runtime.
Rates and indemnity task ids are fixed business constants and are NOT
configurable here.
"""

from dataclasses import dataclass
from typing import Self

from piecework_kernel.logging_config import get_logger

logger = get_logger("modules.reports.config")


@dataclass
class ReportsConfig:
    """
    Configuration schema for the reports module.

        config = ReportsConfig.from_dict(
            load_yaml_file("reports.yaml")["reports"]
        )
    """

    # Printed on bi-monthly and payroll headers when the request has none
    default_regional_center: str = "TAZA"

    # Transfer order city when neither the request nor the center gives one
    default_city: str = "Taza"

    # Cooperative group sub-totaled separately in annual and season summaries
    distinguished_group_name: str = "GROUPE HYAT NEGOCE SERVICES"

    # Seasons run from the first day of this month to the day before it a year later
    season_start_month: int = 5

    def __post_init__(self):
        if not self.default_city.strip():
            raise ValueError("default_city must not be blank")
        if not self.distinguished_group_name.strip():
            raise ValueError("distinguished_group_name must not be blank")
        if not 1 <= self.season_start_month <= 12:
            raise ValueError(
                f"season_start_month must be between 1 and 12, "
                f"got {self.season_start_month}"
            )

        logger.info(
            "reports_config_initialized",
            extra={
                "default_regional_center": self.default_regional_center,
                "default_city": self.default_city,
                "distinguished_group_name": self.distinguished_group_name,
                "season_start_month": self.season_start_month,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the cooperative's standard settings."""
        logger.info("reports_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from a dictionary (e.g. loaded from YAML)."""
        logger.info(
            "reports_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        unknown = set(data) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown reports config keys: {sorted(unknown)}")
        return cls(**data)
