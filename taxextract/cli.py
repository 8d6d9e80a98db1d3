"""CLI entrypoint for the tax return extraction pipeline."""

import argparse
import asyncio
import json
import logging
import os
import sys
import warnings
from pathlib import Path

# Suppress LiteLLM's direct prints (must be before import)
os.environ["LITELLM_LOG"] = "ERROR"

from taxextract.core.config import (  # noqa: E402
    API_KEY_ENV_VAR,
    FALLBACK_MODEL,
    PRIMARY_MODEL,
    ChunkingConfig,
    ClassificationConfig,
    PipelineSettings,
)

# Suppress noisy warnings
warnings.filterwarnings("ignore", message="Pydantic serializer warnings")
warnings.filterwarnings("ignore", message="Unclosed client session")
warnings.filterwarnings("ignore", category=ResourceWarning)

# Suppress noisy loggers (HTTP clients, LiteLLM internals)
for logger_name in ["httpx", "httpcore", "litellm", "LiteLLM",
                    "LiteLLM Proxy", "LiteLLM Router", "aiohttp", "asyncio"]:
    logging.getLogger(logger_name).setLevel(logging.ERROR)

from dotenv import load_dotenv  # noqa: E402 - must be after logging config

from taxextract.core.cost_tracker import CostTracker  # noqa: E402
from taxextract.core.llm_client import LiteLLMCapability  # noqa: E402
from taxextract.orchestrator import TaxReturnPipeline  # noqa: E402

# Load environment variables
load_dotenv()


async def extract(
    pdf_path: str,
    output_dir: str = "outputs",
    max_pages: int = ChunkingConfig.MAX_PAGES_PER_CALL,
    threshold: int = ClassificationConfig.PAGE_THRESHOLD,
    model: str = PRIMARY_MODEL,
    fallback_model: str | None = FALLBACK_MODEL,
    year_only: bool = False,
    verbose: bool = False,
) -> dict | None:
    """Run the extraction pipeline on one PDF.

    Args:
        pdf_path: Path to the PDF file.
        output_dir: Directory for output files.
        max_pages: Maximum pages per extraction call.
        threshold: Documents with more pages than this are classified first.
        model: Primary model.
        fallback_model: Model used once the primary's retries are exhausted.
        year_only: Only detect the tax year.
        verbose: Verbose output.

    Returns:
        Output dict, or None on failure.
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        print(f"Error: File not found: {pdf_path}")
        return None

    api_key = os.environ.get(API_KEY_ENV_VAR)
    if not api_key:
        print(f"Error: {API_KEY_ENV_VAR} not set")
        print(f"Set it in .env or export {API_KEY_ENV_VAR}=...")
        return None

    try:
        settings = PipelineSettings(classification_threshold=threshold, max_pages_per_call=max_pages)
    except ValueError as e:
        print(f"Error: {e}")
        return None

    output_dir = Path(output_dir)
    json_dir = output_dir / "json"
    logs_dir = output_dir / "logs"

    print(f"\n{'='*50}")
    print(f"Extracting: {pdf_path.name}")
    print(f"{'='*50}")
    print(f"  Model: {model.split('/')[-1]}")
    if fallback_model:
        print(f"  Fallback: {fallback_model.split('/')[-1]}")
    print(f"  Classification threshold: {threshold} pages")
    print(f"  Max pages per call: {max_pages}")
    print()

    cost_tracker = CostTracker()
    capability = LiteLLMCapability(
        api_key=api_key,
        model=model,
        fallback_model=fallback_model,
        cost_tracker=cost_tracker,
    )
    pipeline = TaxReturnPipeline(
        capability,
        settings=settings,
        verbose=verbose,
        log_dir=None if year_only else logs_dir,
    )

    try:
        if year_only:
            year = await pipeline.detect_year(pdf_path.read_bytes())
            print(f"Tax year: {year if year is not None else 'UNKNOWN'}")
            return {"year": year}

        result = await pipeline.run_file(pdf_path)
        output = result.to_dict()
        output["cost"] = cost_tracker.to_dict()

        json_dir.mkdir(parents=True, exist_ok=True)
        output_file = json_dir / f"{pdf_path.stem}.json"
        with open(output_file, "w") as f:
            json.dump(output, f, indent=2, ensure_ascii=False)
        print(f"\n[OUTPUT] {output_file}")

        return output

    except Exception as e:
        print(f"\n[ERROR] Pipeline failed: {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        return None

    finally:
        if cost_tracker.call_count > 0:
            print(f"\n{cost_tracker.summary()}")


def main():
    parser = argparse.ArgumentParser(
        description="Tax Return Extraction Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  taxextract returns/2023_smith.pdf
  taxextract --year-only returns/2023_smith.pdf
  taxextract --max-pages 20 -v returns/2023_smith.pdf  # smaller chunks
        """,
    )
    parser.add_argument("pdf", help="Path to PDF file")
    parser.add_argument(
        "-o", "--output",
        default="outputs",
        help="Output directory (default: outputs)",
    )
    parser.add_argument(
        "--year-only",
        action="store_true",
        help="Only detect the tax year (one page-1 call at most)",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=ChunkingConfig.MAX_PAGES_PER_CALL,
        help=f"Maximum pages per extraction call (default: {ChunkingConfig.MAX_PAGES_PER_CALL})",
    )
    parser.add_argument(
        "--threshold",
        type=int,
        default=ClassificationConfig.PAGE_THRESHOLD,
        help=f"Classify pages for documents longer than this (default: {ClassificationConfig.PAGE_THRESHOLD})",
    )
    parser.add_argument(
        "--model",
        default=PRIMARY_MODEL,
        help=f"Primary model (default: {PRIMARY_MODEL})",
    )
    parser.add_argument(
        "--fallback-model",
        default=FALLBACK_MODEL,
        help=f"Fallback model, or 'none' to disable (default: {FALLBACK_MODEL})",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output with DEBUG level logging",
    )

    args = parser.parse_args()
    fallback = None if args.fallback_model.lower() == "none" else args.fallback_model

    result = asyncio.run(extract(
        pdf_path=args.pdf,
        output_dir=args.output,
        max_pages=args.max_pages,
        threshold=args.threshold,
        model=args.model,
        fallback_model=fallback,
        year_only=args.year_only,
        verbose=args.verbose,
    ))

    sys.exit(0 if result else 1)


if __name__ == "__main__":
    main()
