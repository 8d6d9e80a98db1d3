"""Page selection for extraction.

Turns page classifications into the ordered list of pages worth extracting.
The ruleset is swappable: anything implementing ``PageSelector`` can be passed
to the extractor. The default drops preparer paperwork and source-document
copies and keeps everything else.

Contract for every selector:
- Pages come back in ascending order with no duplicates
- Classifications are never mutated
- An empty selection is allowed; the extractor treats it as "fall back to
  the first pages", not as an error
- Failure is signalled by raising PageSelectionError
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from taxextract.core.config import SelectionConfig
from taxextract.pydantic_models.classification import PageClassification, PageSelection

logger = logging.getLogger(__name__)


@runtime_checkable
class PageSelector(Protocol):
    """Chooses which classified pages get extracted."""

    def select(self, classifications: list[PageClassification]) -> PageSelection:
        ...


class RuleBasedPageSelector:
    """Default selector: keep every page whose form type is not skipped.

    Unknown form types are kept. Dropping an unrecognised page could lose an
    income line; keeping it only costs tokens.
    """

    def __init__(self, skipped_types: frozenset[str] | set[str] = SelectionConfig.SKIPPED_FORM_TYPES):
        self.skipped_types = frozenset(skipped_types)

    def select(self, classifications: list[PageClassification]) -> PageSelection:
        """Select substantive pages.

        Args:
            classifications: One entry per page, in any order.

        Returns:
            PageSelection with ascending, unique page numbers.
        """
        kept = {
            c.page_number
            for c in classifications
            if c.form_type not in self.skipped_types
        }
        selected = sorted(kept)

        skipped = len({c.page_number for c in classifications}) - len(selected)
        logger.info(
            f"Selected {len(selected)} pages ({contiguous_blocks(selected)}), "
            f"skipped {skipped}"
        )
        return PageSelection(selected_pages=selected)


def contiguous_blocks(pages: list[int]) -> str:
    """Format pages as contiguous blocks for logging.

    Example: [1, 2, 3, 50, 51, 52] -> "1-3, 50-52"

    Args:
        pages: Sorted list of page numbers.

    Returns:
        Human-readable string of page ranges.
    """
    if not pages:
        return "none"

    blocks: list[str] = []
    start = pages[0]
    end = pages[0]

    for page in pages[1:]:
        if page == end + 1:
            end = page
        else:
            blocks.append(f"{start}-{end}" if start != end else str(start))
            start = page
            end = page

    blocks.append(f"{start}-{end}" if start != end else str(start))
    return ", ".join(blocks)
