"""Prompt templates for capability calls.

One module per call type: classification, structured extraction, and the
tax-year question.
"""

from taxextract.prompts.classification_prompt import CLASSIFICATION_PROMPT
from taxextract.prompts.extraction_prompt import EXTRACTION_PROMPT
from taxextract.prompts.year_prompt import YEAR_PROMPT

__all__ = [
    "CLASSIFICATION_PROMPT",
    "EXTRACTION_PROMPT",
    "YEAR_PROMPT",
]
