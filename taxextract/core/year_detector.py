"""Lightweight tax-year detection.

Used before a full extraction, e.g. to file an upload under the right year or
reject a duplicate. Only page 1 is looked at. Nothing here raises: any failure
is logged and reported as "unknown" (None).
"""

import logging
import re
from datetime import date

from taxextract.core.config import YearConfig
from taxextract.core.errors import TaxExtractionError
from taxextract.core.llm_client import ExtractionCapability
from taxextract.core.pdf_splitter import PdfSplitter
from taxextract.prompts import YEAR_PROMPT

logger = logging.getLogger(__name__)

_YEAR_RE = re.compile(YearConfig.YEAR_PATTERN)


def find_year(text: str) -> int | None:
    """First four-digit 19xx/20xx year in the text, or None."""
    match = _YEAR_RE.search(text or "")
    return int(match.group(0)) if match else None


def find_plausible_year(text: str, max_year: int | None = None) -> int | None:
    """First year in the text, if it lies within MIN_PLAUSIBLE_YEAR..max_year.

    Only the first match is considered: an implausible first year means the
    text layer is not trusted and the caller asks the model instead.
    ``max_year`` defaults to next calendar year (returns for the current year
    can be prepared early).
    """
    if max_year is None:
        max_year = date.today().year + 1
    year = find_year(text)
    if year is not None and YearConfig.MIN_PLAUSIBLE_YEAR <= year <= max_year:
        return year
    return None


async def detect_year(
    pdf_bytes: bytes,
    capability: ExtractionCapability,
    use_text_layer: bool = YearConfig.USE_TEXT_LAYER,
) -> int | None:
    """Detect the tax year from page 1.

    Args:
        pdf_bytes: The full document.
        capability: Used when the text layer has no plausible year.
        use_text_layer: Try page 1's embedded text before calling the model.

    Returns:
        The year, or None if it cannot be determined.
    """
    try:
        with PdfSplitter(pdf_bytes) as pdf:
            if use_text_layer:
                year = find_plausible_year(pdf.page_text(1))
                if year is not None:
                    logger.info(f"Year {year} found in text layer")
                    return year
            first_page = pdf.extract_pages([1])
    except TaxExtractionError as e:
        logger.warning(f"Year detection skipped: {e}")
        return None

    try:
        text = await capability.complete(first_page, YEAR_PROMPT, agent="year")
    except Exception as e:
        logger.warning(f"Year detection call failed: {type(e).__name__}: {e}")
        return None

    year = find_year(text)
    if year is None:
        logger.info(f"No year in model response: {(text or '').strip()[:50]!r}")
    else:
        logger.info(f"Year {year} detected by model")
    return year
