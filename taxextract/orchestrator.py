"""Pipeline orchestrator: turns one tax-return PDF into one record.

High-level flow:
  Load → Classify (long documents only) → Select → Extract chunks → Merge

Classification failures fall back to the first pages of the document and are
reported as warnings; every other failure fails the document. The pipeline
holds no per-document state, so one instance can process many documents,
including concurrently through ``extract_many``.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from taxextract.core.chunked_extractor import ChunkedExtractor, ChunkPlan
from taxextract.core.config import PipelineSettings, ProgressConfig
from taxextract.core.errors import TaxExtractionError
from taxextract.core.llm_client import ExtractionCapability
from taxextract.core.page_selector import PageSelector
from taxextract.core.pipeline_logger import get_logger
from taxextract.core.progress import ProgressEmitter, ProgressHandler, timed
from taxextract.core.result_merger import merge_partials
from taxextract.core.run_context import RunContext
from taxextract.core.year_detector import detect_year
from taxextract.pydantic_models.tax_return import TaxReturnRecord

logger = logging.getLogger(__name__)


@dataclass
class ParseResult:
    """Outcome of one pipeline run.

    Attributes:
        record: The merged tax-return record.
        timings: Milliseconds per stage (pdf_load_ms, classify_ms, extract_ms,
            chunk_parse_ms, merge_ms, total_ms). Stages that did not run are absent.
        warnings: Recovered errors, serialized.
        plan: Which pages went into which extraction call.
    """

    record: TaxReturnRecord
    timings: dict[str, float] = field(default_factory=dict)
    warnings: list[dict] = field(default_factory=list)
    plan: ChunkPlan | None = None

    def to_dict(self) -> dict:
        return {
            "record": self.record.to_json_dict(),
            "timings": {k: round(v, 1) for k, v in self.timings.items()},
            "warnings": self.warnings,
            "plan": self.plan.to_dict() if self.plan else None,
        }


class TaxReturnPipeline:
    """Runs the extraction pipeline against an ExtractionCapability."""

    def __init__(
        self,
        capability: ExtractionCapability,
        selector: PageSelector | None = None,
        settings: PipelineSettings | None = None,
        on_progress: ProgressHandler | None = None,
        verbose: bool = False,
        log_dir: str | Path | None = None,
    ):
        """Initialize the pipeline.

        Args:
            capability: Model used for every call.
            selector: Page selection ruleset. Defaults to RuleBasedPageSelector.
            settings: Thresholds and chunk size.
            on_progress: Called with a ProgressEvent at each milestone.
            verbose: If True, print DEBUG logs.
            log_dir: Directory for per-document log files.
        """
        self.capability = capability
        self.settings = settings or PipelineSettings()
        self.extractor = ChunkedExtractor(capability, selector=selector, settings=self.settings)
        self.on_progress = on_progress
        self.logger = get_logger(verbose=verbose, log_dir=log_dir)

    async def run(self, pdf_bytes: bytes, source_name: str = "document.pdf") -> ParseResult:
        """Extract one record from a PDF.

        Args:
            pdf_bytes: The full document.
            source_name: Used in logs and log file names.

        Raises:
            MalformedDocument: If the PDF cannot be read.
            ExtractionCallFailed: If an extraction call fails.
            ExtractionSchemaViolation: If an extraction response is invalid.
        """
        run = RunContext(progress=ProgressEmitter(self.on_progress))
        started = time.perf_counter()
        run_log = self.logger.start_pipeline(source_name)
        stats = None

        try:
            run.progress.emit("start", ProgressConfig.START, "Starting")
            self.logger.start_phase("Extract", model=getattr(self.capability, "model", ""))
            partials = await self.extractor.extract(pdf_bytes, run)
            plan = run.plan
            self.logger.phase_result(
                "Extract",
                f"{len(partials)} partial record(s)",
                strategy=plan.strategy.value,
                pages=f"{len(plan.extracted_pages)}/{plan.total_pages}",
            )
            if plan.fallback_reason:
                self.logger.warning(f"Fell back to first pages: {plan.fallback_reason}")

            run.progress.emit("merging", ProgressConfig.MERGING, "Merging results")
            with timed(run.timings, "merge_ms"):
                record = merge_partials(partials)

            run.timings["total_ms"] = (time.perf_counter() - started) * 1000
            run.progress.emit("parsed", 100, "Done", year=record.year)

            result = ParseResult(
                record=record,
                timings=run.timings,
                warnings=[w.to_dict() for w in run.errors.warnings],
                plan=plan,
            )
            stats = self._stats(result, run)
            return result

        except Exception as e:
            self.logger.error("Pipeline failed", exc=e)
            raise

        finally:
            # Runs on cancellation too
            self.logger.end_pipeline(
                run_log,
                success=stats is not None,
                stats=stats or {"errors": run.errors.summary()},
            )

    async def run_file(self, path: str | Path) -> ParseResult:
        """Read a PDF from disk and run the pipeline on it."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"PDF not found: {path}")
        return await self.run(path.read_bytes(), source_name=path.name)

    async def detect_year(self, pdf_bytes: bytes) -> int | None:
        """Tax year from page 1, or None. Never raises."""
        return await detect_year(
            pdf_bytes,
            self.capability,
            use_text_layer=self.settings.use_text_layer_for_year,
        )

    async def extract_many(
        self,
        documents: dict[str, bytes],
        max_concurrent: int = 3,
    ) -> dict[str, ParseResult | TaxExtractionError]:
        """Run independent documents concurrently.

        Calls within each document stay sequential; only whole documents
        overlap. A failed document does not affect the others.

        Args:
            documents: PDF bytes keyed by source name.
            max_concurrent: Maximum documents in flight.

        Returns:
            Per source name, either the ParseResult or the error that failed it.
        """
        semaphore = asyncio.Semaphore(max_concurrent)

        async def run_one(name: str, pdf_bytes: bytes) -> ParseResult | TaxExtractionError:
            async with semaphore:
                try:
                    return await self.run(pdf_bytes, source_name=name)
                except TaxExtractionError as e:
                    return e

        names = list(documents)
        results = await asyncio.gather(*(run_one(name, documents[name]) for name in names))
        failed = sum(1 for r in results if isinstance(r, TaxExtractionError))
        logger.info(f"Processed {len(names)} documents, {failed} failed")
        return dict(zip(names, results))

    def _stats(self, result: ParseResult, run: RunContext) -> dict:
        plan = result.plan
        return {
            "year": result.record.year,
            "strategy": plan.strategy.value if plan else "",
            "chunks": plan.chunk_count if plan else 0,
            "states": len(result.record.states),
            "timings_ms": {k: round(v) for k, v in result.timings.items()},
            "errors": run.errors.summary(),
        }
