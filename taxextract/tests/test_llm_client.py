"""Tests for taxextract.core.llm_client and llm_router modules.

Tests LiteLLMCapability with a mocked Router:
- Message building (PDF file part + prompt)
- Schema-constrained calls via response_format
- Cost tracking integration
- Router construction (retries, fallback model)
"""

import base64

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from taxextract.core.config import FALLBACK_MODEL, PRIMARY_MODEL, RetryConfig
from taxextract.core.cost_tracker import CostTracker
from taxextract.core.llm_client import (
    ExtractionCapability,
    LiteLLMCapability,
    build_messages,
    build_response_format,
)
from taxextract.core.llm_router import build_router


# =============================================================================
# Message building
# =============================================================================


class TestBuildMessages:
    """Tests for the single-turn PDF message."""

    def test_pdf_then_prompt(self):
        messages = build_messages(b"%PDF-1.7 fake", "Classify each page")

        assert len(messages) == 1
        assert messages[0]["role"] == "user"
        file_part, text_part = messages[0]["content"]
        assert file_part["type"] == "file"
        assert text_part == {"type": "text", "text": "Classify each page"}

    def test_pdf_is_base64_data_url(self):
        messages = build_messages(b"%PDF-1.7 fake", "prompt")

        data_url = messages[0]["content"][0]["file"]["file_data"]
        prefix = "data:application/pdf;base64,"
        assert data_url.startswith(prefix)
        assert base64.b64decode(data_url[len(prefix):]) == b"%PDF-1.7 fake"

    def test_response_format_wraps_schema(self):
        schema = {"type": "object", "properties": {}}
        assert build_response_format(schema) == {
            "type": "json_schema",
            "json_schema": {"name": "tax_return", "schema": schema},
        }


# =============================================================================
# LiteLLMCapability tests
# =============================================================================


class TestLiteLLMCapability:
    """Tests for LiteLLMCapability with a mocked router."""

    @pytest.fixture
    def mock_router(self):
        router = MagicMock()
        router.acompletion = AsyncMock()
        router.acompletion.return_value = MagicMock(
            choices=[MagicMock(message=MagicMock(content='[{"page": 1, "type": "1040_main"}]'))],
            usage=MagicMock(prompt_tokens=1200, completion_tokens=30),
        )
        return router

    def test_satisfies_protocol(self, mock_router):
        assert isinstance(LiteLLMCapability(api_key="key", router=mock_router), ExtractionCapability)

    def test_api_key_required(self, mock_router):
        with pytest.raises(ValueError):
            LiteLLMCapability(api_key="", router=mock_router)

    @pytest.mark.asyncio
    async def test_returns_text(self, mock_router):
        capability = LiteLLMCapability(api_key="key", router=mock_router)
        text = await capability.complete(b"%PDF", "Classify")
        assert text == '[{"page": 1, "type": "1040_main"}]'

    @pytest.mark.asyncio
    async def test_free_text_call_has_no_response_format(self, mock_router):
        capability = LiteLLMCapability(api_key="key", model="gemini/test-model", router=mock_router)
        await capability.complete(b"%PDF", "Classify")

        call_kwargs = mock_router.acompletion.call_args.kwargs
        assert call_kwargs["model"] == "gemini/test-model"
        assert call_kwargs["temperature"] == 0.0
        assert "response_format" not in call_kwargs
        # Router owns the key
        assert "api_key" not in call_kwargs

    @pytest.mark.asyncio
    async def test_schema_call_sets_response_format(self, mock_router):
        capability = LiteLLMCapability(api_key="key", router=mock_router)
        schema = {"type": "object"}

        await capability.complete(b"%PDF", "Extract", output_schema=schema)

        response_format = mock_router.acompletion.call_args.kwargs["response_format"]
        assert response_format["json_schema"]["schema"] == schema

    @pytest.mark.asyncio
    async def test_tracks_costs_by_stage(self, mock_router):
        tracker = CostTracker()
        capability = LiteLLMCapability(api_key="key", cost_tracker=tracker, router=mock_router)

        await capability.complete(b"%PDF", "Extract", agent="extractor")

        assert tracker.call_count == 1
        assert tracker.total_prompt_tokens == 1200
        assert tracker.calls[0].stage == "extractor"
        assert tracker.calls[0].document_bytes == 4

    @pytest.mark.asyncio
    async def test_tracks_served_model(self, mock_router):
        mock_router.acompletion.return_value.model = FALLBACK_MODEL
        tracker = CostTracker()
        capability = LiteLLMCapability(api_key="key", cost_tracker=tracker, router=mock_router)

        await capability.complete(b"%PDF", "Extract", agent="extractor")

        assert tracker.calls[0].served_model == FALLBACK_MODEL
        assert tracker.fallback_count == 1

    @pytest.mark.asyncio
    async def test_failed_call_is_tracked(self, mock_router):
        mock_router.acompletion.side_effect = RuntimeError("503 Service Unavailable")
        tracker = CostTracker()
        capability = LiteLLMCapability(api_key="key", cost_tracker=tracker, router=mock_router)

        with pytest.raises(RuntimeError):
            await capability.complete(b"%PDF", "Classify", agent="classifier")

        assert tracker.call_count == 1
        assert tracker.failed_count == 1
        assert tracker.by_stage()["classifier"]["failed"] == 1

    @pytest.mark.asyncio
    async def test_none_content_becomes_empty_string(self, mock_router):
        mock_router.acompletion.return_value.choices[0].message.content = None
        capability = LiteLLMCapability(api_key="key", router=mock_router)

        assert await capability.complete(b"%PDF", "Extract") == ""

    @pytest.mark.asyncio
    async def test_router_errors_propagate(self, mock_router):
        mock_router.acompletion.side_effect = RuntimeError("503 Service Unavailable")
        capability = LiteLLMCapability(api_key="key", router=mock_router)

        with pytest.raises(RuntimeError):
            await capability.complete(b"%PDF", "Extract")


# =============================================================================
# Router construction
# =============================================================================


class TestBuildRouter:
    """Tests for build_router() configuration."""

    def test_primary_and_fallback(self):
        with patch("taxextract.core.llm_router.Router") as router_cls:
            build_router(api_key="secret")

        kwargs = router_cls.call_args.kwargs
        names = [entry["model_name"] for entry in kwargs["model_list"]]
        assert names == [PRIMARY_MODEL, FALLBACK_MODEL]
        assert all(entry["litellm_params"]["api_key"] == "secret" for entry in kwargs["model_list"])
        assert kwargs["fallbacks"] == [{PRIMARY_MODEL: [FALLBACK_MODEL]}]
        assert kwargs["num_retries"] == RetryConfig.MAX_RETRIES

    def test_no_fallback(self):
        with patch("taxextract.core.llm_router.Router") as router_cls:
            build_router(api_key="secret", fallback_model=None)

        kwargs = router_cls.call_args.kwargs
        assert len(kwargs["model_list"]) == 1
        assert kwargs["fallbacks"] == []

    def test_fallback_same_as_primary_ignored(self):
        with patch("taxextract.core.llm_router.Router") as router_cls:
            build_router(api_key="secret", primary_model="gemini/a", fallback_model="gemini/a")

        assert router_cls.call_args.kwargs["fallbacks"] == []

    def test_timeout_passed_through(self):
        with patch("taxextract.core.llm_router.Router") as router_cls:
            build_router(api_key="secret", timeout=30)

        assert router_cls.call_args.kwargs["timeout"] == 30

    def test_capability_builds_router_from_key(self):
        with patch("taxextract.core.llm_client.build_router") as builder:
            LiteLLMCapability(api_key="secret", model="gemini/a", fallback_model=None)

        builder.assert_called_once_with(
            api_key="secret",
            primary_model="gemini/a",
            fallback_model=None,
            timeout=None,
        )
