"""
Tests for ENGINE_TRACE emission by the pure engines.
"""

from decimal import Decimal

from pluridesk_engines.pricing import compute_total
from pluridesk_engines.tracer import compute_input_fingerprint, traced_engine


class TestEngineTrace:

    def test_pricing_emits_trace(self, captured_logs):
        compute_total("per_word", Decimal("100"), Decimal("0.10"), None, "USD")

        traces = [r for r in captured_logs() if r["message"] == "ENGINE_TRACE"]
        assert traces
        assert traces[-1]["engine_name"] == "pricing"
        assert traces[-1]["function"] == "compute_total"
        assert traces[-1]["duration_ms"] >= 0

    def test_fingerprint_fields(self, captured_logs):
        @traced_engine("sample", "0.1", fingerprint_fields=("amount",))
        def double(*, amount):
            return amount * 2

        assert double(amount=Decimal("2")) == Decimal("4")

        trace = [r for r in captured_logs() if r["message"] == "ENGINE_TRACE"][-1]
        assert trace["engine_name"] == "sample"
        assert trace["input_fingerprint"] == compute_input_fingerprint(("amount",), {"amount": Decimal("2")})

    def test_fingerprint_is_stable(self):
        first = compute_input_fingerprint(("a", "b"), {"b": 2, "a": 1})
        second = compute_input_fingerprint(("a", "b"), {"a": 1, "b": 2})
        assert first == second
        assert first != compute_input_fingerprint(("a", "b"), {"a": 1, "b": 3})

    def test_positional_and_keyword_calls_match(self, captured_logs):
        compute_total("per_hour", Decimal("3"), Decimal("40"), None, "EUR")
        compute_total(
            pricing_type="per_hour",
            quantity=Decimal("3.0"),
            rate=Decimal("40"),
            flat_amount=None,
            currency="EUR",
        )

        traces = [r for r in captured_logs() if r["message"] == "ENGINE_TRACE"]
        assert traces[-1]["input_fingerprint"] == traces[-2]["input_fingerprint"]
        assert traces[-1]["input_fingerprint"] != ""
