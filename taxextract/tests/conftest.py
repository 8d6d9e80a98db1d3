"""Pytest configuration and shared fixtures.

Provides reusable test fixtures for:
- Real PDFs generated with PyMuPDF ("Page N" on every page)
- A scripted fake ExtractionCapability that records every call
- Sample tax return records
"""

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Callable

import fitz  # PyMuPDF
import pytest

from taxextract.core.pipeline_logger import reset_logger
from taxextract.pydantic_models.tax_return import TaxReturnRecord


# =============================================================================
# PDF builders
# =============================================================================


def build_pdf(page_count: int, text_for: Callable[[int], str] | None = None) -> bytes:
    """Build a PDF whose page N reads "Page N" (or text_for(N))."""
    doc = fitz.open()
    for page_num in range(1, page_count + 1):
        page = doc.new_page()
        page.insert_text((72, 72), text_for(page_num) if text_for else f"Page {page_num}")
    data = doc.tobytes()
    doc.close()
    return data


def page_texts(pdf_bytes: bytes) -> list[str]:
    """Stripped text of every page, in order."""
    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        return [page.get_text().strip() for page in doc]


def page_numbers(pdf_bytes: bytes) -> list[int]:
    """Original page numbers of a chunk built from a build_pdf() document.

    Pages whose text does not end in a number come back as 0.
    """
    numbers = []
    for text in page_texts(pdf_bytes):
        last = text.split()[-1] if text.split() else ""
        numbers.append(int(last) if last.isdigit() else 0)
    return numbers


@pytest.fixture
def make_pdf():
    """Factory: make_pdf(90) -> bytes of a 90-page PDF."""
    return build_pdf


@pytest.fixture
def chunk_pages():
    """chunk_pages(pdf_bytes) -> original page numbers of each page."""
    return page_numbers


# =============================================================================
# Sample records
# =============================================================================


SAMPLE_RECORD: dict[str, Any] = {
    "year": 2023,
    "name": "Jane Doe",
    "filingStatus": "single",
    "dependents": [],
    "income": {
        "items": [{"label": "Wages", "amount": 85000.0}],
        "total": 85000.0,
    },
    "federal": {
        "agi": 85000.0,
        "deductions": [{"label": "Standard deduction", "amount": 13850.0}],
        "taxableIncome": 71150.0,
        "tax": 11000.0,
        "additionalTaxes": [],
        "credits": [],
        "payments": [{"label": "Federal withholding", "amount": 12000.0}],
        "refundOrOwed": 1000.0,
    },
    "states": [
        {
            "name": "California",
            "agi": 85000.0,
            "deductions": [],
            "taxableIncome": 80000.0,
            "tax": 4000.0,
            "adjustments": [],
            "payments": [{"label": "CA withholding", "amount": 4200.0}],
            "refundOrOwed": 200.0,
        }
    ],
    "summary": {
        "federalAmount": 1000.0,
        "stateAmounts": [{"state": "California", "amount": 200.0}],
        "netPosition": 1200.0,
    },
    "rates": None,
}


def record_dict(**overrides) -> dict[str, Any]:
    """Deep copy of SAMPLE_RECORD with top-level keys replaced."""
    data = copy.deepcopy(SAMPLE_RECORD)
    data.update(overrides)
    return data


def make_record(**overrides) -> TaxReturnRecord:
    return TaxReturnRecord.model_validate(record_dict(**overrides))


@pytest.fixture
def sample_record() -> TaxReturnRecord:
    return make_record()


@pytest.fixture
def record_factory():
    """Factory: record_factory(year=2022) -> TaxReturnRecord."""
    return make_record


# =============================================================================
# Fake capability
# =============================================================================


@dataclass
class RecordedCall:
    """One call made against FakeCapability."""

    agent: str
    prompt: str
    output_schema: dict | None
    pages: list[int]


def default_extraction(call: RecordedCall, index: int) -> str:
    """Valid record whose single income item names the chunk it came from."""
    label = f"Pages {call.pages[0]}-{call.pages[-1]}"
    return json.dumps(record_dict(income={"items": [{"label": label, "amount": 100.0 * index}], "total": 100.0 * index}))


@dataclass
class FakeCapability:
    """Scripted ExtractionCapability.

    Responses are looked up by agent ("classifier", "extractor", "year"). A
    response may be a string, an exception instance (raised), or a callable
    taking (RecordedCall, call_index) and returning a string.
    """

    responses: dict[str, Any] = field(default_factory=dict)
    calls: list[RecordedCall] = field(default_factory=list)
    model: str = "fake/model"

    async def complete(self, document: bytes, prompt: str, output_schema: dict | None = None, agent: str = "") -> str:
        call = RecordedCall(agent=agent, prompt=prompt, output_schema=output_schema, pages=page_numbers(document))
        self.calls.append(call)
        index = sum(1 for c in self.calls if c.agent == agent)

        response = self.responses.get(agent)
        if response is None and agent == "extractor":
            response = default_extraction
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(call, index)
        return response or ""

    def calls_for(self, agent: str) -> list[RecordedCall]:
        return [c for c in self.calls if c.agent == agent]


@pytest.fixture
def fake_capability():
    """Factory: fake_capability(classifier="[...]") -> FakeCapability."""
    def _create(**responses) -> FakeCapability:
        return FakeCapability(responses=responses)
    return _create


def classification_json(labels: dict[int, str]) -> str:
    """Classifier answer for {page: type}, wrapped in prose like a real model."""
    body = json.dumps([{"page": page, "type": form_type} for page, form_type in labels.items()])
    return f"Here is the classification:\n```json\n{body}\n```"


@pytest.fixture
def classification_response():
    return classification_json


# =============================================================================
# Logger isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_pipeline_logger():
    yield
    reset_logger()
