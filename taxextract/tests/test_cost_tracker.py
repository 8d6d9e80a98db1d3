"""Tests for taxextract.core.cost_tracker module."""

import pytest
from unittest.mock import MagicMock, patch

from taxextract.core.cost_tracker import CallUsage, CostTracker, _bare_model_name, _table_cost

PRIMARY = "gemini/gemini-3-flash-preview"
FALLBACK = "gemini/gemini-2.5-flash"


def usage(prompt: int, completion: int) -> MagicMock:
    return MagicMock(prompt_tokens=prompt, completion_tokens=completion)


class TestCostTracker:
    """Tests for per-call accounting."""

    def test_record_and_totals(self):
        tracker = CostTracker()
        tracker.record(PRIMARY, usage(1000, 100), stage="classifier")
        tracker.record(PRIMARY, usage(2000, 500), stage="extractor")

        assert tracker.call_count == 2
        assert tracker.total_prompt_tokens == 3000
        assert tracker.total_completion_tokens == 600
        assert tracker.total_tokens == 3600

    def test_call_without_usage_still_counted(self):
        tracker = CostTracker()
        call = tracker.record(PRIMARY, None, stage="year", document_bytes=2048)

        assert tracker.call_count == 1
        assert call.usage_reported is False
        assert call.total_tokens == 0
        assert call.cost == 0.0

    def test_failures_counted(self):
        tracker = CostTracker()
        tracker.record_failure(PRIMARY, stage="classifier", document_bytes=10)
        tracker.record(PRIMARY, usage(10, 1), stage="extractor")

        assert tracker.call_count == 2
        assert tracker.failed_count == 1
        # Failed calls never count as fallback
        assert tracker.fallback_count == 0

    def test_fallback_detected_from_served_model(self):
        tracker = CostTracker()
        tracker.record(PRIMARY, usage(10, 1), stage="extractor", served_model=FALLBACK)
        tracker.record(PRIMARY, usage(10, 1), stage="extractor", served_model="gemini-3-flash-preview")

        assert tracker.fallback_count == 1

    def test_by_stage(self):
        tracker = CostTracker()
        tracker.record(PRIMARY, usage(10, 1), stage="extractor", document_bytes=1000)
        tracker.record(PRIMARY, usage(20, 2), stage="extractor", document_bytes=500)
        tracker.record(PRIMARY, usage(5, 1))

        breakdown = tracker.by_stage()

        assert breakdown["extractor"]["calls"] == 2
        assert breakdown["extractor"]["pdf_bytes"] == 1500
        assert breakdown["extractor"]["tokens"] == 33
        assert breakdown["unknown"]["calls"] == 1

    def test_summary_and_dict(self):
        tracker = CostTracker()
        tracker.record(PRIMARY, usage(10, 1), stage="year")
        tracker.record_failure(PRIMARY, stage="year")

        assert "By stage:" in tracker.summary()
        assert "year: 2 calls" in tracker.summary()
        assert "1 failed" in tracker.summary()
        result = tracker.to_dict()
        assert result["total_calls"] == 2
        assert result["failed_calls"] == 1
        assert result["by_stage"]["year"]["calls"] == 2


class TestPricing:
    """Tests for cost calculation."""

    def test_bare_model_name(self):
        assert _bare_model_name("gemini/gemini-2.5-flash") == "gemini-2.5-flash"
        assert _bare_model_name("gemini-2.5-flash") == "gemini-2.5-flash"

    def test_table_pricing(self):
        assert _table_cost(FALLBACK, 1_000_000, 1_000_000) == pytest.approx(2.80)

    def test_unknown_model_costs_zero(self):
        assert _table_cost("someone/unknown-model", 1000, 1000) == 0.0

    def test_priced_by_served_model(self):
        call = CallUsage(requested_model=PRIMARY, served_model=FALLBACK, prompt_tokens=1_000_000)
        with patch("litellm.completion_cost", side_effect=Exception("model not mapped")):
            assert call.cost == pytest.approx(0.30)

    def test_table_used_when_litellm_fails(self):
        call = CallUsage(requested_model=PRIMARY, served_model=PRIMARY, prompt_tokens=1_000_000)
        with patch("litellm.completion_cost", side_effect=Exception("model not mapped")):
            assert call.cost == pytest.approx(0.50)
