"""Tests for taxextract.core.pdf_splitter module.

Uses real PDFs generated with PyMuPDF:
- page_count / extract_pages / split_into_chunks
- Page order and out-of-range handling
- Malformed input
"""

import fitz  # PyMuPDF
import pytest

from taxextract.core.errors import MalformedDocument, PageIndexOutOfRange
from taxextract.core.pdf_splitter import (
    PdfSplitter,
    extract_pages,
    page_count,
    split_into_chunks,
    window_pages,
)


# =============================================================================
# page_count tests
# =============================================================================


class TestPageCount:
    """Tests for page counting and document loading."""

    def test_counts_pages(self, make_pdf):
        assert page_count(make_pdf(7)) == 7

    def test_empty_bytes_are_malformed(self):
        with pytest.raises(MalformedDocument):
            page_count(b"")

    def test_garbage_bytes_are_malformed(self):
        with pytest.raises(MalformedDocument):
            page_count(b"this is not a pdf at all")

    def test_password_protected_pdf_is_malformed(self):
        doc = fitz.open()
        doc.new_page()
        data = doc.tobytes(
            encryption=fitz.PDF_ENCRYPT_AES_256,
            owner_pw="owner",
            user_pw="secret",
        )
        doc.close()

        with pytest.raises(MalformedDocument, match="password"):
            page_count(data)

    def test_from_path(self, make_pdf, tmp_path):
        path = tmp_path / "return.pdf"
        path.write_bytes(make_pdf(3))
        with PdfSplitter.from_path(path) as pdf:
            assert pdf.page_count == 3

    def test_from_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PdfSplitter.from_path(tmp_path / "missing.pdf")


# =============================================================================
# extract_pages tests
# =============================================================================


class TestExtractPages:
    """Tests for building a new PDF from selected pages."""

    def test_pages_in_given_order(self, make_pdf, chunk_pages):
        result = extract_pages(make_pdf(10), [3, 1, 7])
        assert chunk_pages(result) == [3, 1, 7]

    def test_repeated_pages_are_kept(self, make_pdf, chunk_pages):
        result = extract_pages(make_pdf(5), [2, 2])
        assert chunk_pages(result) == [2, 2]

    def test_single_page(self, make_pdf):
        result = extract_pages(make_pdf(5), [5])
        assert page_count(result) == 1

    def test_page_zero_out_of_range(self, make_pdf):
        with pytest.raises(PageIndexOutOfRange) as exc_info:
            extract_pages(make_pdf(5), [0])
        assert exc_info.value.page_number == 0
        assert exc_info.value.page_count == 5

    def test_page_past_end_out_of_range(self, make_pdf):
        with pytest.raises(PageIndexOutOfRange):
            extract_pages(make_pdf(5), [1, 6])

    def test_empty_page_list_rejected(self, make_pdf):
        with pytest.raises(ValueError):
            extract_pages(make_pdf(5), [])

    def test_source_is_untouched(self, make_pdf):
        source = make_pdf(4)
        before = bytes(source)
        extract_pages(source, [4, 3])
        assert source == before


# =============================================================================
# split_into_chunks tests
# =============================================================================


class TestSplitIntoChunks:
    """Tests for contiguous windowing of a whole document."""

    def test_fitting_document_returned_unchanged(self, make_pdf):
        source = make_pdf(5)
        chunks = split_into_chunks(source, 40)
        assert len(chunks) == 1
        assert chunks[0] is source

    def test_exact_fit_is_not_split(self, make_pdf):
        source = make_pdf(40)
        assert split_into_chunks(source, 40) == [source]

    def test_split_into_windows(self, make_pdf, chunk_pages):
        chunks = split_into_chunks(make_pdf(90), 40)
        assert [page_count(c) for c in chunks] == [40, 40, 10]
        assert chunk_pages(chunks[1])[0] == 41
        assert chunk_pages(chunks[2]) == list(range(81, 91))

    def test_concatenation_preserves_order(self, make_pdf, chunk_pages):
        chunks = split_into_chunks(make_pdf(7), 3)
        pages = [p for chunk in chunks for p in chunk_pages(chunk)]
        assert pages == list(range(1, 8))

    def test_zero_max_rejected(self, make_pdf):
        with pytest.raises(ValueError):
            split_into_chunks(make_pdf(3), 0)


# =============================================================================
# window_pages / page_text tests
# =============================================================================


class TestWindowPages:
    """Tests for partitioning an ordered page list."""

    def test_example(self):
        assert window_pages([1, 2, 5, 9, 10], 2) == [[1, 2], [5, 9], [10]]

    def test_empty(self):
        assert window_pages([], 40) == []

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            window_pages([1, 2], 0)


class TestPageText:
    """Tests for reading a page's text layer."""

    def test_reads_text(self, make_pdf):
        with PdfSplitter(make_pdf(3)) as pdf:
            assert pdf.page_text(2).strip() == "Page 2"

    def test_out_of_range(self, make_pdf):
        with PdfSplitter(make_pdf(3)) as pdf:
            with pytest.raises(PageIndexOutOfRange):
                pdf.page_text(4)
