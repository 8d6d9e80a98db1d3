"""Core utilities for the extraction pipeline."""

from taxextract.core.config import (
    API_KEY_ENV_VAR,
    PRIMARY_MODEL,
    FALLBACK_MODEL,
    ClassificationConfig,
    ChunkingConfig,
    SelectionConfig,
    YearConfig,
    LLMConfig,
    RetryConfig,
    ProgressConfig,
    PipelineSettings,
)
from taxextract.core.errors import (
    ErrorSeverity,
    ErrorCategory,
    ApiFailureKind,
    TaxExtractionError,
    MalformedDocument,
    PageIndexOutOfRange,
    CapabilityCallError,
    ClassificationCallFailed,
    ClassificationParseError,
    PageSelectionError,
    ExtractionCallFailed,
    ExtractionSchemaViolation,
    NoPartialsToMerge,
    PipelineErrors,
    categorize_api_error,
)
from taxextract.core.pdf_splitter import (
    PdfSplitter,
    page_count,
    extract_pages,
    split_into_chunks,
    window_pages,
)
from taxextract.core.llm_client import (
    ExtractionCapability,
    LiteLLMCapability,
)
from taxextract.core.cost_tracker import (
    CostTracker,
    CallUsage,
)
from taxextract.core.pipeline_logger import PipelineLogger, get_logger, reset_logger
from taxextract.core.progress import ProgressEvent, ProgressEmitter
from taxextract.core.response_parsing import Ok, Err
from taxextract.core.page_classifier import classify_pages
from taxextract.core.page_selector import PageSelector, RuleBasedPageSelector
from taxextract.core.chunked_extractor import ChunkedExtractor, ChunkPlan, ChunkStrategy
from taxextract.core.result_merger import merge_labeled_amounts, merge_partials
from taxextract.core.year_detector import detect_year

__all__ = [
    # Configuration
    "API_KEY_ENV_VAR",
    "PRIMARY_MODEL",
    "FALLBACK_MODEL",
    "ClassificationConfig",
    "ChunkingConfig",
    "SelectionConfig",
    "YearConfig",
    "LLMConfig",
    "RetryConfig",
    "ProgressConfig",
    "PipelineSettings",
    # Errors
    "ErrorSeverity",
    "ErrorCategory",
    "ApiFailureKind",
    "TaxExtractionError",
    "MalformedDocument",
    "PageIndexOutOfRange",
    "CapabilityCallError",
    "ClassificationCallFailed",
    "ClassificationParseError",
    "PageSelectionError",
    "ExtractionCallFailed",
    "ExtractionSchemaViolation",
    "NoPartialsToMerge",
    "PipelineErrors",
    "categorize_api_error",
    # PDF splitting
    "PdfSplitter",
    "page_count",
    "extract_pages",
    "split_into_chunks",
    "window_pages",
    # LLM capability
    "ExtractionCapability",
    "LiteLLMCapability",
    # Cost tracking
    "CostTracker",
    "CallUsage",
    # Logging and progress
    "PipelineLogger",
    "get_logger",
    "reset_logger",
    "ProgressEvent",
    "ProgressEmitter",
    # Response validation
    "Ok",
    "Err",
    # Pipeline stages
    "classify_pages",
    "PageSelector",
    "RuleBasedPageSelector",
    "ChunkedExtractor",
    "ChunkPlan",
    "ChunkStrategy",
    "merge_labeled_amounts",
    "merge_partials",
    "detect_year",
]
