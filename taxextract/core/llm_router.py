"""LiteLLM Router configuration for retry, fallback, and cooldown.

Retries and the primary -> fallback model switch live here rather than in the
pipeline. The pipeline sees a call that either succeeds or fails for good.

Unlike a module-level router, one is built per capability from explicit
credentials, so tests and concurrent uploads never share hidden state.
"""

from litellm import Router

from taxextract.core.config import FALLBACK_MODEL, PRIMARY_MODEL, RetryConfig


def _build_model_list(api_key: str, models: list[str]) -> list[dict]:
    """One deployment per model, all using the same key."""
    return [
        {
            "model_name": model,
            "litellm_params": {
                "model": model,
                "api_key": api_key,
            },
        }
        for model in models
    ]


def build_router(
    api_key: str,
    primary_model: str = PRIMARY_MODEL,
    fallback_model: str | None = FALLBACK_MODEL,
    timeout: float | None = None,
) -> Router:
    """Build the LLM Router with retry and fallback configuration.

    The router handles:
    - Automatic retries with backoff on rate limits and capacity errors
    - Fallback from the primary to the secondary model on exhausted retries
    - Cooldown tracking for failing deployments

    Args:
        api_key: Provider API key.
        primary_model: Model tried first.
        fallback_model: Model used once the primary gives up. None disables.
        timeout: Per-request timeout in seconds. None leaves litellm's default.
    """
    models = [primary_model]
    fallbacks: list[dict] = []
    if fallback_model and fallback_model != primary_model:
        models.append(fallback_model)
        fallbacks = [{primary_model: [fallback_model]}]

    kwargs = {}
    if timeout is not None:
        kwargs["timeout"] = timeout

    return Router(
        model_list=_build_model_list(api_key, models),
        num_retries=RetryConfig.MAX_RETRIES,
        retry_after=RetryConfig.RETRY_AFTER_SECONDS,
        cooldown_time=RetryConfig.COOLDOWN_SECONDS,
        allowed_fails=RetryConfig.ALLOWED_FAILS,
        fallbacks=fallbacks,
        **kwargs,
    )
