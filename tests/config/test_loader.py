"""
Tests for the YAML configuration loader (``piecework_config.loader``).

Covers:
- Packaged defaults load and validate
- Task catalog parsing, Decimal prices, duplicate ids
- Reports section parsing and unknown keys
- Checksum determinism
"""

from decimal import Decimal

import pytest
import yaml

from piecework_config import (
    DEFAULT_CONFIG_DIR,
    compute_checksum,
    load_reports_config,
    load_task_catalog,
    load_yaml_file,
    parse_task,
)
from piecework_kernel.domain.records import INDEMNITY_TASK_IDS


def _write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


class TestPackagedDefaults:
    def test_defaults_directory_shipped(self):
        assert (DEFAULT_CONFIG_DIR / "reports.yaml").exists()
        assert (DEFAULT_CONFIG_DIR / "tasks.yaml").exists()

    def test_default_reports_config(self):
        config = load_reports_config()

        assert config.default_regional_center == "TAZA"
        assert config.default_city == "Taza"
        assert config.season_start_month == 5

    def test_default_catalog_has_indemnities(self):
        table = load_task_catalog()

        assert INDEMNITY_TASK_IDS <= {t.id for t in table}
        assert table.price_of(37) == Decimal("8")
        assert table.price_of(47) == Decimal("12")
        assert table.price_of(1) == Decimal("5.00")


class TestTaskCatalog:
    def test_float_prices_parsed_through_str(self, tmp_path):
        path = _write(tmp_path, "tasks.yaml", "tasks:\n  - id: 9\n    price: 0.1\n")

        assert load_task_catalog(path).price_of(9) == Decimal("0.1")

    def test_duplicate_ids_rejected(self, tmp_path):
        path = _write(
            tmp_path,
            "tasks.yaml",
            "tasks:\n  - {id: 1, price: 1}\n  - {id: 2, price: 2}\n  - {id: 1, price: 3}\n",
        )

        with pytest.raises(ValueError, match=r"duplicate task ids \[1\]"):
            load_task_catalog(path)

    def test_missing_price(self):
        with pytest.raises(KeyError):
            parse_task({"id": 3})

    def test_non_numeric_price(self):
        with pytest.raises(ValueError):
            parse_task({"id": 3, "price": "cheap"})

    def test_optional_fields_default_blank(self):
        task = parse_task({"id": "4", "price": "2.5"})

        assert task.id == 4
        assert task.category == ""
        assert task.description == ""

    def test_empty_file_is_empty_catalog(self, tmp_path):
        path = _write(tmp_path, "tasks.yaml", "")

        assert len(load_task_catalog(path)) == 0

    def test_load_logged_with_checksum(self, tmp_path, captured_logs):
        path = _write(tmp_path, "tasks.yaml", "tasks:\n  - {id: 1, price: 1}\n")

        load_task_catalog(path)

        loaded = [r for r in captured_logs() if r["message"] == "task_catalog_loaded"]
        assert loaded[0]["task_count"] == 1
        assert loaded[0]["checksum"] == compute_checksum(load_yaml_file(path))


class TestReportsConfig:
    def test_partial_section(self, tmp_path):
        path = _write(tmp_path, "reports.yaml", "reports:\n  default_city: Fès\n")

        config = load_reports_config(path)

        assert config.default_city == "Fès"
        assert config.default_regional_center == "TAZA"

    def test_missing_section_uses_defaults(self, tmp_path):
        path = _write(tmp_path, "reports.yaml", "other: 1\n")

        assert load_reports_config(path).season_start_month == 5

    def test_unknown_key_rejected(self, tmp_path):
        path = _write(tmp_path, "reports.yaml", "reports:\n  currency: MAD\n")

        with pytest.raises(ValueError, match="Unknown reports config keys"):
            load_reports_config(path)

    def test_invalid_value_rejected(self, tmp_path):
        path = _write(tmp_path, "reports.yaml", "reports:\n  season_start_month: 14\n")

        with pytest.raises(ValueError, match="season_start_month"):
            load_reports_config(path)


class TestLoadYamlFile:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "absent.yaml")

    def test_non_mapping_rejected(self, tmp_path):
        path = _write(tmp_path, "list.yaml", "- a\n- b\n")

        with pytest.raises(ValueError, match="expected a mapping"):
            load_yaml_file(path)

    def test_malformed_yaml(self, tmp_path):
        path = _write(tmp_path, "bad.yaml", "reports: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            load_yaml_file(path)


class TestChecksum:
    def test_key_order_irrelevant(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})

    def test_content_sensitive(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})

    def test_hex_sha256(self):
        assert len(compute_checksum({})) == 64
