"""Chunked extraction orchestration.

Decides which pages of a document go to the model and in how many calls, then
issues those calls one after another.

Policy, evaluated in order:
1. Short document (<= classification threshold): no classification, the
   whole document is split into windows of max_pages_per_call.
2. Otherwise classify and select:
   - classification or selection failed, or nothing selected: extract the
     first min(page_count, max_pages_per_call) pages of the original
     document as one chunk
   - selection fits in one call: extract exactly those pages
   - selection too large: re-chunk the selected page list into windows

Calls are sequential. The merge that follows is order-sensitive, and the
capability is rate-limited anyway. The first failed call aborts the document:
a silently dropped chunk would understate the return's totals.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from taxextract.core.config import PipelineSettings, ProgressConfig
from taxextract.core.errors import (
    ClassificationCallFailed,
    ClassificationParseError,
    ExtractionCallFailed,
    ExtractionSchemaViolation,
    PageSelectionError,
)
from taxextract.core.llm_client import ExtractionCapability
from taxextract.core.page_classifier import classify_pages
from taxextract.core.page_selector import PageSelector, RuleBasedPageSelector, contiguous_blocks
from taxextract.core.pdf_splitter import PdfSplitter, window_pages
from taxextract.core.progress import timed
from taxextract.core.response_parsing import Err, parse_tax_return_response
from taxextract.core.run_context import RunContext
from taxextract.prompts import EXTRACTION_PROMPT
from taxextract.pydantic_models.classification import PageClassification, PageSelection
from taxextract.pydantic_models.tax_return import TaxReturnRecord, tax_return_json_schema

logger = logging.getLogger(__name__)


class ChunkStrategy(Enum):
    """How the pages for extraction were chosen."""
    WHOLE_DOCUMENT = "whole_document"
    FALLBACK_FIRST_PAGES = "fallback_first_pages"
    SELECTED_PAGES = "selected_pages"
    SELECTED_WINDOWS = "selected_windows"


@dataclass
class ChunkPlan:
    """Which original pages go into each extraction call.

    Attributes:
        strategy: Branch of the policy that produced the plan.
        total_pages: Page count of the original document.
        page_windows: One list of original page numbers per call, in call order.
        classifications: Classifier output, empty when classification was skipped or failed.
        fallback_reason: Why the fallback branch was taken, if it was.
    """

    strategy: ChunkStrategy
    total_pages: int
    page_windows: list[list[int]] = field(default_factory=list)
    classifications: list[PageClassification] = field(default_factory=list)
    fallback_reason: str | None = None

    @property
    def chunk_count(self) -> int:
        return len(self.page_windows)

    @property
    def extracted_pages(self) -> list[int]:
        """All pages sent for extraction, in call order."""
        return [page for window in self.page_windows for page in window]

    def summary(self) -> str:
        """Human-readable summary of the plan."""
        return (
            f"ChunkPlan(strategy={self.strategy.value}, "
            f"pages={len(self.extracted_pages)}/{self.total_pages}, "
            f"chunks={self.chunk_count})"
        )

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy.value,
            "total_pages": self.total_pages,
            "page_windows": self.page_windows,
            "fallback_reason": self.fallback_reason,
        }


class ChunkedExtractor:
    """Plans chunks for a document and extracts one partial record per chunk."""

    def __init__(
        self,
        capability: ExtractionCapability,
        selector: PageSelector | None = None,
        settings: PipelineSettings | None = None,
    ):
        """Initialize the extractor.

        Args:
            capability: Model used for classification and extraction calls.
            selector: Page selection ruleset. Defaults to RuleBasedPageSelector.
            settings: Thresholds and chunk size. Defaults to PipelineSettings().
        """
        self.capability = capability
        self.selector = selector or RuleBasedPageSelector()
        self.settings = settings or PipelineSettings()
        self._schema = tax_return_json_schema()

    @property
    def max_pages(self) -> int:
        return self.settings.max_pages_per_call

    # -- Planning --

    async def plan(self, pdf_bytes: bytes, run: RunContext | None = None) -> ChunkPlan:
        """Choose the pages for each extraction call.

        Classification failures are recovered here and recorded on ``run``.

        Raises:
            MalformedDocument: If the PDF cannot be read.
        """
        run = run or RunContext()

        with timed(run.timings, "pdf_load_ms"):
            with PdfSplitter(pdf_bytes) as pdf:
                total_pages = pdf.page_count
        logger.info(f"PDF loaded, {total_pages} pages")
        run.progress.emit("pdf_loaded", ProgressConfig.PDF_LOADED, total_pages=total_pages)

        if total_pages <= self.settings.classification_threshold:
            all_pages = list(range(1, total_pages + 1))
            return ChunkPlan(
                strategy=ChunkStrategy.WHOLE_DOCUMENT,
                total_pages=total_pages,
                page_windows=window_pages(all_pages, self.max_pages),
            )

        run.progress.emit(
            "classifying", ProgressConfig.CLASSIFYING, "Classifying pages", total_pages=total_pages
        )
        try:
            with timed(run.timings, "classify_ms"):
                classifications = await classify_pages(
                    pdf_bytes,
                    self.capability,
                    threshold=self.settings.classification_threshold,
                    total_pages=total_pages,
                )
            selection = self._select(classifications)
        except (ClassificationCallFailed, ClassificationParseError, PageSelectionError) as e:
            logger.warning(f"{type(e).__name__}, using fallback: {e}")
            run.errors.add(e)
            return self._fallback_plan(total_pages, reason=e.message, run=run)

        if selection.is_empty:
            logger.warning("Selection returned no pages, using fallback")
            return self._fallback_plan(
                total_pages, reason="Selection returned no pages", run=run, classifications=classifications
            )

        selected = selection.selected_pages
        run.progress.emit(
            "classification_done",
            ProgressConfig.CLASSIFICATION_DONE,
            "Classification complete",
            selected_pages=len(selected),
            total_pages=total_pages,
        )

        if len(selected) <= self.max_pages:
            strategy = ChunkStrategy.SELECTED_PAGES
        else:
            strategy = ChunkStrategy.SELECTED_WINDOWS

        return ChunkPlan(
            strategy=strategy,
            total_pages=total_pages,
            page_windows=window_pages(selected, self.max_pages),
            classifications=classifications,
        )

    def _select(self, classifications: list[PageClassification]) -> PageSelection:
        """Run the selector; any failure becomes a PageSelectionError."""
        try:
            return self.selector.select(classifications)
        except PageSelectionError:
            raise
        except Exception as e:
            raise PageSelectionError(
                f"{type(self.selector).__name__} failed: {type(e).__name__}: {e}",
                phase="select",
                context={"selector": type(self.selector).__name__},
            ) from e

    def _fallback_plan(
        self,
        total_pages: int,
        reason: str,
        run: RunContext,
        classifications: list[PageClassification] | None = None,
    ) -> ChunkPlan:
        first_pages = list(range(1, min(total_pages, self.max_pages) + 1))
        run.progress.emit(
            "classification_fallback",
            ProgressConfig.FALLBACK,
            "Classification failed, falling back to first pages",
            fallback_pages=len(first_pages),
        )
        return ChunkPlan(
            strategy=ChunkStrategy.FALLBACK_FIRST_PAGES,
            total_pages=total_pages,
            page_windows=[first_pages],
            classifications=classifications or [],
            fallback_reason=reason,
        )

    # -- Extraction --

    async def extract(self, pdf_bytes: bytes, run: RunContext | None = None) -> list[TaxReturnRecord]:
        """Plan chunks for a document and extract each one, in order.

        The chosen plan is stored on ``run.plan``.

        Returns:
            One partial record per chunk, in chunk order.

        Raises:
            MalformedDocument: If the PDF cannot be read.
            ExtractionCallFailed: If any extraction call fails.
            ExtractionSchemaViolation: If any response does not fit the schema.
        """
        run = run or RunContext()
        plan = await self.plan(pdf_bytes, run)
        run.plan = plan
        logger.info(f"Extraction plan: {plan.summary()}")
        return await self._extract_plan(pdf_bytes, plan, run)

    async def extract_pages(
        self,
        pdf_bytes: bytes,
        selected_pages: list[int],
        run: RunContext | None = None,
    ) -> list[TaxReturnRecord]:
        """Extract an explicit page list, re-chunked to max_pages_per_call.

        Raises:
            PageIndexOutOfRange: If a page is outside the document.
            ValueError: If ``selected_pages`` is empty.
        """
        if not selected_pages:
            raise ValueError("No pages to extract")

        run = run or RunContext()
        with PdfSplitter(pdf_bytes) as pdf:
            total_pages = pdf.page_count

        windows = window_pages(list(selected_pages), self.max_pages)
        plan = ChunkPlan(
            strategy=ChunkStrategy.SELECTED_PAGES if len(windows) == 1 else ChunkStrategy.SELECTED_WINDOWS,
            total_pages=total_pages,
            page_windows=windows,
        )
        run.plan = plan
        return await self._extract_plan(pdf_bytes, plan, run)

    async def _extract_plan(self, pdf_bytes: bytes, plan: ChunkPlan, run: RunContext) -> list[TaxReturnRecord]:
        partials: list[TaxReturnRecord] = []
        total = plan.chunk_count
        span = ProgressConfig.CHUNKS_END - ProgressConfig.CHUNKS_START

        with PdfSplitter(pdf_bytes) as pdf:
            whole_chunks = None
            if plan.strategy is ChunkStrategy.WHOLE_DOCUMENT:
                with timed(run.timings, "extract_ms"):
                    whole_chunks = pdf.split_into_chunks(self.max_pages)

            for index, window in enumerate(plan.page_windows, start=1):
                if whole_chunks is not None:
                    chunk = whole_chunks[index - 1]
                else:
                    with timed(run.timings, "extract_ms"):
                        chunk = pdf.extract_pages(window)

                logger.debug(f"Chunk {index}/{total}: pages {contiguous_blocks(sorted(window))}")
                with timed(run.timings, "chunk_parse_ms"):
                    partials.append(await self.extract_chunk(chunk, label=f"chunk {index}/{total}"))

                run.progress.emit(
                    "chunk_progress",
                    ProgressConfig.CHUNKS_START + span * index / total,
                    f"Parsed chunk {index} of {total}",
                    chunk_index=index,
                    chunk_total=total,
                    pages=len(window),
                )

        return partials

    async def extract_chunk(self, chunk_bytes: bytes, label: str = "chunk") -> TaxReturnRecord:
        """Run one schema-constrained extraction call.

        Raises:
            ExtractionCallFailed: If the call errors or returns no text.
            ExtractionSchemaViolation: If the text is not a valid record.
        """
        try:
            text = await self.capability.complete(
                chunk_bytes,
                EXTRACTION_PROMPT,
                output_schema=self._schema,
                agent="extractor",
            )
        except Exception as e:
            raise ExtractionCallFailed(
                f"Extraction call failed for {label}: {type(e).__name__}: {e}",
                phase="extract",
                original=e,
            ) from e

        if not text or not text.strip():
            raise ExtractionCallFailed(f"No text response for {label}", phase="extract")

        parsed = parse_tax_return_response(text)
        if isinstance(parsed, Err):
            raise ExtractionSchemaViolation(
                f"{label}: {parsed.reason}",
                phase="extract",
                context={"raw_response": parsed.raw_excerpt},
            )
        return parsed.value
