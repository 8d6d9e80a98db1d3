"""Extraction capability: the one seam between the pipeline and a model.

The pipeline only ever needs "send these PDF bytes and this prompt, get text
back". ``ExtractionCapability`` is that contract; ``LiteLLMCapability`` is the
production implementation, and tests pass anything with a matching
``complete`` coroutine.

What LiteLLMCapability absorbs:
- Message building (PDF as a base64 file part, prompt as text)
- Schema-constrained output via response_format
- Cost tracking integration
- Retry and fallback via the litellm Router

The pattern this replaces:
    messages = [{"role": "user", "content": [pdf_part, text_part]}]
    response = await router.acompletion(...)
    if cost_tracker: cost_tracker.record(...)
    return response.choices[0].message.content
"""

import base64
import logging
from typing import Protocol, runtime_checkable

from litellm import Router

from taxextract.core.config import FALLBACK_MODEL, LLMConfig, PRIMARY_MODEL
from taxextract.core.cost_tracker import CostTracker
from taxextract.core.llm_router import build_router

logger = logging.getLogger(__name__)

# Suppress LiteLLM debug noise (done once at module load)
logging.getLogger("litellm").setLevel(logging.ERROR)
logging.getLogger("LiteLLM").setLevel(logging.ERROR)
logging.getLogger("httpx").setLevel(logging.ERROR)


@runtime_checkable
class ExtractionCapability(Protocol):
    """Anything that reads a document and a prompt and answers in text.

    Implementations may raise any exception on failure; the pipeline wraps it
    in the typed error for the phase that made the call.
    """

    async def complete(
        self,
        document: bytes,
        prompt: str,
        output_schema: dict | None = None,
        agent: str = "",
    ) -> str:
        """Run one call.

        Args:
            document: PDF bytes.
            prompt: Instruction text.
            output_schema: JSON schema the answer must conform to, or None for
                free text.
            agent: Caller label for cost tracking ("classifier", "extractor").

        Returns:
            Response text (may be empty).
        """
        ...


def build_messages(document: bytes, prompt: str) -> list[dict]:
    """Single user turn carrying the PDF followed by the instruction."""
    encoded = base64.b64encode(document).decode("ascii")
    return [
        {
            "role": "user",
            "content": [
                {
                    "type": "file",
                    "file": {"file_data": f"data:{LLMConfig.PDF_MIME_TYPE};base64,{encoded}"},
                },
                {"type": "text", "text": prompt},
            ],
        }
    ]


def build_response_format(output_schema: dict) -> dict:
    """Wrap a JSON schema in the OpenAI-style response_format litellm expects."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": LLMConfig.SCHEMA_NAME,
            "schema": output_schema,
        },
    }


class LiteLLMCapability:
    """Extraction capability backed by a litellm Router.

    Usage:
        capability = LiteLLMCapability(api_key=key, cost_tracker=tracker)
        text = await capability.complete(pdf_bytes, "Classify each page...")
    """

    def __init__(
        self,
        api_key: str,
        model: str = PRIMARY_MODEL,
        fallback_model: str | None = FALLBACK_MODEL,
        cost_tracker: CostTracker | None = None,
        temperature: float = LLMConfig.TEMPERATURE,
        timeout: float | None = None,
        router: Router | None = None,
    ) -> None:
        """Initialize the capability.

        Args:
            api_key: Provider API key. Required; never read from the environment.
            model: Primary model identifier.
            fallback_model: Model used after the primary exhausts its retries.
            cost_tracker: Optional tracker for recording API token usage.
            temperature: Sampling temperature.
            timeout: Per-request timeout in seconds enforced by the router.
            router: Prebuilt router (tests); built from the other args if None.
        """
        if not api_key:
            raise ValueError("api_key is required")
        self.model = model
        self.cost_tracker = cost_tracker
        self.temperature = temperature
        self.router = router or build_router(
            api_key=api_key,
            primary_model=model,
            fallback_model=fallback_model,
            timeout=timeout,
        )

    async def complete(
        self,
        document: bytes,
        prompt: str,
        output_schema: dict | None = None,
        agent: str = "",
    ) -> str:
        kwargs = {}
        if output_schema is not None:
            kwargs["response_format"] = build_response_format(output_schema)

        try:
            response = await self.router.acompletion(
                model=self.model,
                messages=build_messages(document, prompt),
                temperature=self.temperature,
                **kwargs,
            )
        except Exception:
            if self.cost_tracker:
                self.cost_tracker.record_failure(self.model, stage=agent, document_bytes=len(document))
            raise

        if self.cost_tracker:
            served = getattr(response, "model", None)
            self.cost_tracker.record(
                self.model,
                getattr(response, "usage", None),
                stage=agent,
                served_model=served if isinstance(served, str) else None,
                document_bytes=len(document),
            )

        content = response.choices[0].message.content
        logger.debug(f"{agent or 'llm'} call returned {len(content or '')} chars")
        return content or ""
