"""Structured error types for the extraction pipeline.

Provides typed errors for:
- Unreadable documents and bad page requests
- Classification failures (recovered by the fallback path)
- Extraction failures (fatal for the document)
- Merge invariant violations

Every error carries a category and severity so callers can log or serialize
it without inspecting the exception type.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorSeverity(Enum):
    """Severity levels for pipeline errors."""
    WARNING = "warning"   # Recovered locally, extraction continued
    CRITICAL = "critical" # Document failed


class ErrorCategory(Enum):
    """Categories of pipeline errors."""
    LLM_API = "llm_api"           # Capability call failed
    LLM_PARSE = "llm_parse"       # Response was not what we asked for
    PDF_READ = "pdf_read"         # PDF could not be opened
    VALIDATION = "validation"     # Bad page numbers, bad selection
    INTERNAL = "internal"         # Invariant violation


class ApiFailureKind(Enum):
    """Coarse label for why a capability call failed. Reporting only."""
    RATE_LIMIT = "rate_limit"
    CAPACITY = "capacity"
    TIMEOUT = "timeout"
    AUTH = "auth"
    INVALID_REQUEST = "invalid_request"
    SERVER = "server"
    UNKNOWN = "unknown"


_RETRYABLE_KINDS = frozenset({
    ApiFailureKind.RATE_LIMIT,
    ApiFailureKind.CAPACITY,
    ApiFailureKind.TIMEOUT,
    ApiFailureKind.SERVER,
})


class TaxExtractionError(Exception):
    """Base class for all pipeline errors."""

    category: ErrorCategory = ErrorCategory.INTERNAL
    severity: ErrorSeverity = ErrorSeverity.CRITICAL

    def __init__(self, message: str, *, phase: str = "", context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.phase = phase
        self.context = context or {}

    def __str__(self) -> str:
        parts = [f"[{self.severity.value.upper()}] {self.category.value}: {self.message}"]
        if self.phase:
            parts.append(f"phase={self.phase}")
        return " | ".join(parts)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": type(self).__name__,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "phase": self.phase,
            "context": self.context,
        }


class MalformedDocument(TaxExtractionError):
    """The bytes do not parse as a usable PDF."""

    category = ErrorCategory.PDF_READ


class PageIndexOutOfRange(TaxExtractionError):
    """A requested page number is outside 1..page_count."""

    category = ErrorCategory.VALIDATION

    def __init__(self, page_number: int, page_count: int, *, phase: str = ""):
        super().__init__(
            f"Page {page_number} out of range (1-{page_count})",
            phase=phase,
            context={"page_number": page_number, "page_count": page_count},
        )
        self.page_number = page_number
        self.page_count = page_count


class CapabilityCallError(TaxExtractionError):
    """A call to the extraction capability itself failed."""

    category = ErrorCategory.LLM_API

    def __init__(self, message: str, *, phase: str = "", original: Exception | None = None):
        kind = categorize_api_error(original) if original is not None else ApiFailureKind.UNKNOWN
        super().__init__(
            message,
            phase=phase,
            context={"failure_kind": kind.value, "retryable": kind in _RETRYABLE_KINDS},
        )
        self.original_error = original
        self.failure_kind = kind


class ClassificationCallFailed(CapabilityCallError):
    """Classification call errored or returned no text. Recovered by fallback."""

    severity = ErrorSeverity.WARNING


class ClassificationParseError(TaxExtractionError):
    """Classification response held no usable JSON array. Recovered by fallback."""

    category = ErrorCategory.LLM_PARSE
    severity = ErrorSeverity.WARNING


class PageSelectionError(TaxExtractionError):
    """A page selector could not produce a selection. Recovered by fallback."""

    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.WARNING


class ExtractionCallFailed(CapabilityCallError):
    """Extraction call errored or returned no text. Fails the document."""


class ExtractionSchemaViolation(TaxExtractionError):
    """Extraction response did not conform to the record schema. Fails the document."""

    category = ErrorCategory.LLM_PARSE


class NoPartialsToMerge(TaxExtractionError):
    """merge_partials() was handed an empty sequence."""

    category = ErrorCategory.INTERNAL


@dataclass
class PipelineErrors:
    """Recovered errors collected during one pipeline run."""

    warnings: list[TaxExtractionError] = field(default_factory=list)

    def add(self, error: TaxExtractionError):
        """Record a recovered error."""
        self.warnings.append(error)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def summary(self) -> dict:
        """Get summary statistics."""
        by_category: dict[str, int] = {}
        for warning in self.warnings:
            cat = warning.category.value
            by_category[cat] = by_category.get(cat, 0) + 1

        return {
            "total_warnings": self.warning_count,
            "warnings_by_category": by_category,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "warnings": [w.to_dict() for w in self.warnings],
            "summary": self.summary(),
        }


def _error_status(error: Exception) -> int | None:
    """Pull an HTTP-ish status code off a provider exception, if it has one."""
    for attr in ("status_code", "status", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def categorize_api_error(error: Exception) -> ApiFailureKind:
    """Label a capability failure from its status code and message.

    The pipeline treats every failure the same way; the label only makes logs
    and serialized errors readable.
    """
    message = str(error).lower()
    status = _error_status(error)

    if status == 429 or "resource_exhausted" in message or "rate limit" in message:
        return ApiFailureKind.RATE_LIMIT
    if status == 503 or "unavailable" in message or "high demand" in message:
        return ApiFailureKind.CAPACITY
    if status == 504 or "deadline_exceeded" in message or "timed out" in message:
        return ApiFailureKind.TIMEOUT
    if status in (401, 403) or "api key" in message:
        return ApiFailureKind.AUTH
    if status == 400 or "invalid_argument" in message:
        return ApiFailureKind.INVALID_REQUEST
    if status is not None and 500 <= status <= 599:
        return ApiFailureKind.SERVER
    return ApiFailureKind.UNKNOWN
