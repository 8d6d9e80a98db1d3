"""Centralized configuration for the tax return extraction pipeline.

All magic numbers, thresholds, and configuration constants are documented here.
Each constant includes:
- What it controls
- Why this value was chosen
- What changing it affects

Nothing in this module reads the environment. Credentials and model overrides
are passed into ``LiteLLMCapability`` explicitly; only the CLI loads ``.env``.
"""

from dataclasses import dataclass
from typing import Final


# =============================================================================
# Model Configuration
# =============================================================================
#
# Models are addressed with litellm's "provider/model" syntax. The CLI reads
# the API key from GEMINI_API_KEY (or .env) and hands it to the capability.
#
# =============================================================================

API_KEY_ENV_VAR: Final[str] = "GEMINI_API_KEY"
"""Environment variable the CLI reads the API key from."""

PRIMARY_MODEL: Final[str] = "gemini/gemini-3-flash-preview"
"""Model used for classification, extraction and year detection.

Needs native PDF input: pages are sent as a PDF blob, never as extracted text,
so scanned returns and form layouts survive intact.
"""

FALLBACK_MODEL: Final[str] = "gemini/gemini-2.5-flash"
"""Model the router falls back to once retries on the primary are exhausted.

The primary preview model regularly reports "high demand"; the fallback keeps
uploads moving at slightly lower extraction quality.
"""


# Classification

class ClassificationConfig:
    """Configuration for per-page form classification.

    Classification costs one full-document model call. It only pays for itself
    when it lets us drop enough pages to avoid extra extraction calls.

    Used by: page_classifier.py, chunked_extractor.py
    """

    PAGE_THRESHOLD: Final[int] = 20
    """Documents with <= this many pages are never classified.

    Every page is labelled "other" and the whole document is extracted.
    Raising it saves classification calls on mid-size returns but sends more
    boilerplate pages (cover letters, 8879s) to the extractor.
    """

    CATCH_ALL_TYPE: Final[str] = "other"
    """Label synthesized for every page of a short document."""


# Chunking Configuration

class ChunkingConfig:
    """Configuration for splitting page lists into extraction calls.

    Trade-offs:
    - Larger chunks: fewer calls and better cross-page context, but the model
      starts dropping line items near its context limit
    - Smaller chunks: more calls, more partial records to merge

    40 pages fits a full 1040 with schedules and one state return.
    """

    MAX_PAGES_PER_CALL: Final[int] = 40
    """Maximum pages sent in a single extraction call.

    Used by: chunked_extractor.py, cli.py
    """


# Page Selection

class SelectionConfig:
    """Default ruleset for the rule-based page selector.

    Used by: page_selector.py
    """

    SKIPPED_FORM_TYPES: Final[frozenset[str]] = frozenset({
        "cover_letter",       # Preparer transmittal / engagement letters
        "supporting_doc",     # W-2 / 1099 copies, already summarized on the return
        "efiling_auth",       # Form 8879 and state equivalents
        "direct_deposit",     # Routing/account number reports
        "carryover_summary",  # Next-year carryovers, not this year's figures
        "crypto_detail",      # Lot-by-lot disposals, totals live on Schedule D
        "k1_detail",          # K-1 continuation pages and instructions
    })
    """Form types that never carry figures we extract.

    Anything not listed here is kept, including labels the classifier invents.
    Dropping an unknown page could lose income; keeping it only costs tokens.
    """


# Year Detection

class YearConfig:
    """Configuration for the lightweight tax-year detection path.

    Used by: year_detector.py
    """

    YEAR_PATTERN: Final[str] = r"\b(?:19|20)\d{2}\b"
    """Four-digit year in the 1900s or 2000s."""

    MIN_PLAUSIBLE_YEAR: Final[int] = 1990
    """Years found in the text layer below this are ignored.

    Page 1 text often contains form revision codes and OMB numbers; bounding
    the range keeps those from being mistaken for the tax year. Model answers
    are not bounded since the prompt already asks for the tax year.
    """

    USE_TEXT_LAYER: Final[bool] = True
    """Try page 1's embedded text before calling the model."""


# LLM Call Configuration

class LLMConfig:
    """Default parameters for LLM API calls."""

    TEMPERATURE: Final[float] = 0.0
    """Sampling temperature for all calls.

    0.0 keeps extraction reproducible between uploads of the same document.
    """

    PDF_MIME_TYPE: Final[str] = "application/pdf"

    SCHEMA_NAME: Final[str] = "tax_return"
    """Name attached to the JSON schema in schema-constrained calls."""


# Retry Configuration

class RetryConfig:
    """Configuration for the litellm Router's retry behavior.

    Retries absorb rate limits and capacity errors. They live in the router,
    not in the pipeline: a call that still fails after retries and fallback
    fails the document.
    """

    MAX_RETRIES: Final[int] = 4
    """Retries per deployment before falling back."""

    RETRY_AFTER_SECONDS: Final[int] = 1
    """Minimum wait before a retry."""

    COOLDOWN_SECONDS: Final[int] = 60
    """How long a deployment is benched after repeated failures."""

    ALLOWED_FAILS: Final[int] = 2
    """Failures per minute before a deployment is cooled down."""


# Progress Reporting

class ProgressConfig:
    """Percent milestones reported through ProgressEvent.

    Only the ordering matters to consumers; the emitter never lets percent go
    backwards.
    """

    START: Final[int] = 2
    PDF_LOADED: Final[int] = 5
    CLASSIFYING: Final[int] = 10
    CLASSIFICATION_DONE: Final[int] = 40
    FALLBACK: Final[int] = 45
    CHUNKS_START: Final[int] = 40
    CHUNKS_END: Final[int] = 96
    MERGING: Final[int] = 98


@dataclass(frozen=True)
class PipelineSettings:
    """Settings for one pipeline instance - set at init, never modified."""

    classification_threshold: int = ClassificationConfig.PAGE_THRESHOLD
    max_pages_per_call: int = ChunkingConfig.MAX_PAGES_PER_CALL
    use_text_layer_for_year: bool = YearConfig.USE_TEXT_LAYER

    def __post_init__(self):
        if self.max_pages_per_call < 1:
            raise ValueError(f"max_pages_per_call must be >= 1, got {self.max_pages_per_call}")
        if self.classification_threshold < 0:
            raise ValueError(
                f"classification_threshold must be >= 0, got {self.classification_threshold}"
            )
