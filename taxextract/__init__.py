"""Tax Return Extraction Pipeline.

Turns a tax-return PDF (1040 plus schedules, state returns and whatever
paperwork the preparer bundled) into one structured record.

Architecture:
    core/             - PDF splitting, classification, selection, chunked
                        extraction, merging, year detection, logging, errors
    prompts/          - Prompt templates for capability calls
    pydantic_models/  - Record and classification models

Usage:
    from taxextract import TaxReturnPipeline
    from taxextract.core import LiteLLMCapability

    pipeline = TaxReturnPipeline(LiteLLMCapability(api_key=key))
    result = await pipeline.run_file("path/to/return.pdf")

CLI:
    taxextract returns/2023_smith.pdf
"""

from taxextract.orchestrator import ParseResult, TaxReturnPipeline
from taxextract.pydantic_models import (
    FormType,
    LabeledAmount,
    PageClassification,
    StateReturn,
    TaxReturnRecord,
)

__all__ = [
    # Main entry point
    "TaxReturnPipeline",
    "ParseResult",
    # Models
    "FormType",
    "LabeledAmount",
    "PageClassification",
    "StateReturn",
    "TaxReturnRecord",
]
