"""Per-page form classification.

Long returns bundle the 1040 with cover letters, W-2 copies, e-file
authorizations and lot-by-lot crypto reports. One classification call labels
every page so the selector can drop the noise before extraction.

Short documents are not worth a call: every page is labelled "other" and
extracted as-is.
"""

import logging

from taxextract.core.config import ClassificationConfig
from taxextract.core.errors import ClassificationCallFailed, ClassificationParseError
from taxextract.core.llm_client import ExtractionCapability
from taxextract.core.pdf_splitter import page_count
from taxextract.core.response_parsing import Err, parse_classification_response
from taxextract.prompts import CLASSIFICATION_PROMPT
from taxextract.pydantic_models.classification import PageClassification

logger = logging.getLogger(__name__)


def uniform_classifications(total_pages: int) -> list[PageClassification]:
    """Label every page with the catch-all type, pages 1..total_pages."""
    return [
        PageClassification(page_number=i, form_type=ClassificationConfig.CATCH_ALL_TYPE)
        for i in range(1, total_pages + 1)
    ]


async def classify_pages(
    pdf_bytes: bytes,
    capability: ExtractionCapability,
    threshold: int = ClassificationConfig.PAGE_THRESHOLD,
    total_pages: int | None = None,
) -> list[PageClassification]:
    """Classify every page of a document.

    Args:
        pdf_bytes: The full document.
        capability: Extraction capability used for the classification call.
        threshold: Documents with <= this many pages skip the call.
        total_pages: Page count if the caller already knows it.

    Returns:
        Classifications in the order the model listed them. Unknown labels
        are passed through; out-of-range page numbers are dropped.

    Raises:
        MalformedDocument: If the PDF cannot be read.
        ClassificationCallFailed: If the call errors or returns no text.
        ClassificationParseError: If no valid JSON array is in the response.
    """
    if total_pages is None:
        total_pages = page_count(pdf_bytes)

    if total_pages <= threshold:
        return uniform_classifications(total_pages)

    try:
        text = await capability.complete(pdf_bytes, CLASSIFICATION_PROMPT, agent="classifier")
    except Exception as e:
        # Any capability failure is recoverable here; the caller falls back
        raise ClassificationCallFailed(
            f"Classification call failed: {type(e).__name__}: {e}",
            phase="classify",
            original=e,
        ) from e

    if not text or not text.strip():
        raise ClassificationCallFailed("No classification response", phase="classify")

    parsed = parse_classification_response(text)
    if isinstance(parsed, Err):
        raise ClassificationParseError(
            parsed.reason,
            phase="classify",
            context={"raw_response": parsed.raw_excerpt},
        )

    classifications: list[PageClassification] = []
    dropped: list[int] = []
    for label in parsed.value:
        if 1 <= label.page <= total_pages:
            classifications.append(PageClassification(page_number=label.page, form_type=label.type))
        else:
            dropped.append(label.page)

    if dropped:
        logger.warning(f"Dropped {len(dropped)} classifications for pages outside 1-{total_pages}: {dropped[:10]}")

    unknown = {c.form_type for c in classifications if not c.is_known_type}
    if unknown:
        logger.debug(f"Classifier used unknown form types: {sorted(unknown)}")

    logger.info(f"Classified {len(classifications)}/{total_pages} pages")
    return classifications
