"""PDF splitting and reassembly for the extraction pipeline.

Pure Python + PyMuPDF. Works on in-memory byte blobs: the pipeline never
touches disk between upload and extraction.
"""

import fitz  # PyMuPDF
from pathlib import Path

from taxextract.core.errors import MalformedDocument, PageIndexOutOfRange


class PdfSplitter:
    """PDF document opened from bytes with page-level extraction.

    The source bytes are kept so ``split_into_chunks`` can hand back the
    original blob untouched when no split is needed.
    """

    def __init__(self, pdf_bytes: bytes):
        """Load a PDF document.

        Args:
            pdf_bytes: Raw PDF bytes.

        Raises:
            MalformedDocument: If the bytes are not a readable PDF.
        """
        self.pdf_bytes = pdf_bytes
        self._doc = _open_document(pdf_bytes)

    @classmethod
    def from_path(cls, path: str | Path) -> "PdfSplitter":
        """Load a PDF document from disk."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"PDF not found: {path}")
        return cls(path.read_bytes())

    @property
    def page_count(self) -> int:
        """Total number of pages in the document."""
        return len(self._doc)

    def extract_pages(self, page_numbers: list[int]) -> bytes:
        """Build a new PDF from the given pages (1-indexed).

        Pages appear in exactly the order given; repeats are allowed.

        Args:
            page_numbers: Page numbers (1-indexed).

        Returns:
            Bytes of the rebuilt PDF.

        Raises:
            PageIndexOutOfRange: If any page is outside 1..page_count.
            ValueError: If no pages were requested.
        """
        if not page_numbers:
            raise ValueError("No pages requested")

        for page_num in page_numbers:
            if page_num < 1 or page_num > self.page_count:
                raise PageIndexOutOfRange(page_num, self.page_count, phase="split")

        with fitz.open() as new_doc:
            for page_num in page_numbers:
                # insert_pdf is 0-indexed and inclusive
                new_doc.insert_pdf(self._doc, from_page=page_num - 1, to_page=page_num - 1)
            return new_doc.tobytes(garbage=3, deflate=True)

    def split_into_chunks(self, max_pages_per_chunk: int) -> list[bytes]:
        """Split the document into contiguous windows of at most N pages.

        Args:
            max_pages_per_chunk: Maximum pages per chunk.

        Returns:
            ``[original bytes]`` if the document already fits, otherwise one
            rebuilt PDF per window, in page order.
        """
        if max_pages_per_chunk < 1:
            raise ValueError(f"max_pages_per_chunk must be >= 1, got {max_pages_per_chunk}")

        if self.page_count <= max_pages_per_chunk:
            return [self.pdf_bytes]

        all_pages = list(range(1, self.page_count + 1))
        return [self.extract_pages(window) for window in window_pages(all_pages, max_pages_per_chunk)]

    def page_text(self, page_num: int) -> str:
        """Read the embedded text layer of a single page (1-indexed).

        Scanned pages have no text layer and return an empty string.
        """
        if page_num < 1 or page_num > self.page_count:
            raise PageIndexOutOfRange(page_num, self.page_count, phase="split")
        return self._doc[page_num - 1].get_text()

    def close(self):
        """Close the document."""
        if self._doc:
            self._doc.close()
            self._doc = None

    def __enter__(self):
        return self

    def __exit__(self, _exc_type, _exc_val, _exc_tb):
        self.close()
        return False


def _open_document(pdf_bytes: bytes) -> fitz.Document:
    """Open PDF bytes, mapping every failure mode to MalformedDocument."""
    if not pdf_bytes:
        raise MalformedDocument("Empty document", phase="split")

    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        # fitz.FileDataError / EmptyFileError both derive from RuntimeError
        raise MalformedDocument(f"Not a readable PDF: {e}", phase="split") from e

    if doc.needs_pass:
        doc.close()
        raise MalformedDocument("PDF is password-protected", phase="split")
    if len(doc) == 0:
        doc.close()
        raise MalformedDocument("PDF has no pages", phase="split")
    return doc


def window_pages(pages: list[int], size: int) -> list[list[int]]:
    """Partition an ordered page list into consecutive windows.

    Example: window_pages([1, 2, 5, 9, 10], 2) -> [[1, 2], [5, 9], [10]]

    Args:
        pages: Page numbers in the order they should be processed.
        size: Maximum pages per window.

    Returns:
        List of windows; the last one may be shorter.
    """
    if size < 1:
        raise ValueError(f"Window size must be >= 1, got {size}")
    return [pages[start:start + size] for start in range(0, len(pages), size)]


# Module-level helpers for one-shot use

def page_count(pdf_bytes: bytes) -> int:
    """Count pages. Raises MalformedDocument for unreadable bytes."""
    with PdfSplitter(pdf_bytes) as pdf:
        return pdf.page_count


def extract_pages(pdf_bytes: bytes, page_numbers: list[int]) -> bytes:
    """Build a new PDF from the given 1-indexed pages, in the given order."""
    with PdfSplitter(pdf_bytes) as pdf:
        return pdf.extract_pages(page_numbers)


def split_into_chunks(pdf_bytes: bytes, max_pages_per_chunk: int) -> list[bytes]:
    """Split into contiguous windows; returns [pdf_bytes] if it already fits."""
    with PdfSplitter(pdf_bytes) as pdf:
        return pdf.split_into_chunks(max_pages_per_chunk)
