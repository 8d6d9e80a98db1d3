"""Token usage and cost per capability call.

One entry per call the capability actually made, including calls that failed
or came back without usage. Entries carry the stage that made the call
("classifier", "extractor", "year"), the size of the PDF sent, and the model
that served it, which differs from the requested model when the router fell
back.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

# USD per 1M tokens (input, output). Preview models are usually missing from
# litellm's price map.
_GEMINI_PRICING: dict[str, tuple[float, float]] = {
    "gemini-3-flash-preview": (0.50, 3.00),
    "gemini-2.5-flash": (0.30, 2.50),
    "gemini-2.5-pro": (1.25, 10.00),
}

_unpriced_models: set[str] = set()


def _bare_model_name(model: str) -> str:
    """'gemini/gemini-2.5-flash' -> 'gemini-2.5-flash'."""
    return model.split("/", 1)[1] if "/" in model else model


def _table_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    rates = _GEMINI_PRICING.get(_bare_model_name(model))
    if rates is None:
        return 0.0
    input_rate, output_rate = rates
    return (prompt_tokens * input_rate + completion_tokens * output_rate) / 1_000_000


@dataclass
class CallUsage:
    """One capability call."""

    requested_model: str
    served_model: str
    stage: str = ""
    document_bytes: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    usage_reported: bool = True
    failed: bool = False

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    @property
    def used_fallback(self) -> bool:
        return _bare_model_name(self.served_model) != _bare_model_name(self.requested_model)

    @property
    def cost(self) -> float:
        """Cost in USD for the model that served the call.

        litellm's price map first, then the Gemini table.
        """
        if not self.total_tokens:
            return 0.0
        try:
            from litellm import completion_cost
            return completion_cost(
                model=self.served_model,
                prompt_tokens=self.prompt_tokens,
                completion_tokens=self.completion_tokens,
            )
        except Exception:
            # litellm raises a bare Exception for unmapped models
            cost = _table_cost(self.served_model, self.prompt_tokens, self.completion_tokens)
            if cost == 0.0 and self.served_model not in _unpriced_models:
                _unpriced_models.add(self.served_model)
                logger.warning(f"No pricing for model '{self.served_model}', cost will show as $0")
            return cost


@dataclass
class CostTracker:
    """Accumulates calls for one CLI run or one batch of documents."""

    calls: list[CallUsage] = field(default_factory=list)

    def record(
        self,
        model: str,
        usage: Any,
        stage: str = "",
        served_model: str | None = None,
        document_bytes: int = 0,
    ) -> CallUsage:
        """Record a completed call.

        Args:
            model: Model the call was addressed to.
            usage: ``response.usage`` from litellm, possibly None.
            stage: Pipeline stage that made the call.
            served_model: ``response.model``, when the provider reports it.
            document_bytes: Size of the PDF sent.
        """
        call = CallUsage(
            requested_model=model,
            served_model=served_model or model,
            stage=stage,
            document_bytes=document_bytes,
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            usage_reported=usage is not None,
        )
        if not call.usage_reported:
            logger.debug(f"{stage or 'llm'} call reported no usage")
        self.calls.append(call)
        return call

    def record_failure(self, model: str, stage: str = "", document_bytes: int = 0) -> CallUsage:
        """Record a call that raised before returning a response."""
        call = CallUsage(
            requested_model=model,
            served_model=model,
            stage=stage,
            document_bytes=document_bytes,
            usage_reported=False,
            failed=True,
        )
        self.calls.append(call)
        return call

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def failed_count(self) -> int:
        return sum(1 for c in self.calls if c.failed)

    @property
    def fallback_count(self) -> int:
        return sum(1 for c in self.calls if not c.failed and c.used_fallback)

    @property
    def total_prompt_tokens(self) -> int:
        return sum(c.prompt_tokens for c in self.calls)

    @property
    def total_completion_tokens(self) -> int:
        return sum(c.completion_tokens for c in self.calls)

    @property
    def total_tokens(self) -> int:
        return self.total_prompt_tokens + self.total_completion_tokens

    @property
    def total_cost(self) -> float:
        return sum(c.cost for c in self.calls)

    def by_stage(self) -> dict[str, dict[str, Any]]:
        breakdown: dict[str, dict[str, Any]] = {}
        for call in self.calls:
            stats = breakdown.setdefault(
                call.stage or "unknown",
                {"calls": 0, "failed": 0, "pdf_bytes": 0, "tokens": 0, "cost": 0.0},
            )
            stats["calls"] += 1
            stats["failed"] += int(call.failed)
            stats["pdf_bytes"] += call.document_bytes
            stats["tokens"] += call.total_tokens
            stats["cost"] += call.cost
        return breakdown

    def summary(self) -> str:
        """Formatted block printed by the CLI after a run."""
        lines = [
            "=" * 50,
            "COST SUMMARY",
            "=" * 50,
            f"Calls: {self.call_count} ({self.failed_count} failed, {self.fallback_count} on fallback model)",
            f"Tokens: {self.total_tokens:,} "
            f"(prompt {self.total_prompt_tokens:,}, completion {self.total_completion_tokens:,})",
            f"Total cost: ${self.total_cost:.4f}",
            "",
            "By stage:",
        ]
        for stage, stats in sorted(self.by_stage().items()):
            lines.append(
                f"  {stage}: {stats['calls']} calls, {stats['pdf_bytes'] / 1024:.0f} KB sent, "
                f"{stats['tokens']:,} tokens, ${stats['cost']:.4f}"
            )
        lines.append("=" * 50)
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "total_calls": self.call_count,
            "failed_calls": self.failed_count,
            "fallback_calls": self.fallback_count,
            "prompt_tokens": self.total_prompt_tokens,
            "completion_tokens": self.total_completion_tokens,
            "total_cost_usd": round(self.total_cost, 6),
            "by_stage": self.by_stage(),
        }
