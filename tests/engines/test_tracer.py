"""Tests for the engine tracer (piecework_engines/tracer.py)."""

from datetime import date
from decimal import Decimal

from piecework_engines.tracer import compute_input_fingerprint, traced_engine
from piecework_kernel.domain.engine_types import Adjustments, WorkerAggregate
from piecework_kernel.domain.records import HalfMonth


class TestFingerprint:
    """Fingerprints are deterministic and order-insensitive for mappings."""

    def test_same_inputs_same_fingerprint(self):
        kwargs = {"aggregate": WorkerAggregate(1, {1: Decimal("2")}, 3)}

        assert compute_input_fingerprint(("aggregate",), kwargs) == compute_input_fingerprint(
            ("aggregate",), dict(kwargs)
        )

    def test_mapping_order_ignored(self):
        a = compute_input_fingerprint(("prices",), {"prices": {1: Decimal("1"), 2: Decimal("2")}})
        b = compute_input_fingerprint(("prices",), {"prices": {2: Decimal("2"), 1: Decimal("1")}})

        assert a == b

    def test_different_inputs_differ(self):
        a = compute_input_fingerprint(("x",), {"x": Adjustments(advance=Decimal("1"))})
        b = compute_input_fingerprint(("x",), {"x": Adjustments(advance=Decimal("2"))})

        assert a != b

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(
            ("x",), {"x": None}
        )

    def test_length(self):
        fp = compute_input_fingerprint(
            ("d", "p"), {"d": date(2025, 6, 1), "p": HalfMonth.FIRST}
        )

        assert len(fp) == 16


class TestTracedEngine:
    """The decorator emits one PIECEWORK_ENGINE_TRACE per call."""

    def test_emits_trace(self, captured_logs):
        @traced_engine("demo", "2.1", fingerprint_fields=("value",))
        def double(*, value):
            return value * 2

        assert double(value=Decimal("4")) == Decimal("8")

        traces = [r for r in captured_logs() if r["message"] == "PIECEWORK_ENGINE_TRACE"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["engine_name"] == "demo"
        assert trace["engine_version"] == "2.1"
        assert trace["input_fingerprint"] == compute_input_fingerprint(
            ("value",), {"value": Decimal("4")}
        )
        assert trace["duration_ms"] >= 0

    def test_no_trace_on_exception(self, captured_logs):
        @traced_engine("failing", "1.0")
        def boom():
            raise ValueError("nope")

        try:
            boom()
        except ValueError:
            pass

        assert not any(
            r.get("engine_name") == "failing" for r in captured_logs()
        )

    def test_preserves_metadata(self):
        @traced_engine("meta", "1.0")
        def documented():
            """Docstring."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Docstring."
