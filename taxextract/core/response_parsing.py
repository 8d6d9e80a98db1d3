"""Validation of free-text model responses.

Model output is never trusted or cast: every response goes through a parser
that returns either ``Ok(value)`` or ``Err(reason)``. Callers turn ``Err`` into
the typed pipeline error for their phase.
"""

import json
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from taxextract.pydantic_models.classification import RawPageLabel
from taxextract.pydantic_models.tax_return import TaxReturnRecord

T = TypeVar("T")

_RAW_LABELS = TypeAdapter(list[RawPageLabel])

# How much of a bad response to keep on the error for debugging
_EXCERPT_CHARS = 500


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successfully parsed response."""

    value: T


@dataclass(frozen=True)
class Err:
    """Response that could not be parsed, with the reason and a raw excerpt."""

    reason: str
    raw_excerpt: str = ""


ParseOutcome = Ok[T] | Err


def _excerpt(text: str) -> str:
    return text[:_EXCERPT_CHARS]


def find_json_array(text: str) -> Ok[list[Any]] | Err:
    """Locate and decode the first well-formed JSON array in free text.

    Models wrap JSON in prose and code fences. Each ``[`` is tried as the start
    of an array in turn; the first one that decodes to a list wins.

    Example:
        >>> find_json_array('Here you go: [{"page": 1}] done')
        Ok(value=[{'page': 1}])
    """
    decoder = json.JSONDecoder()
    start = text.find("[")
    if start == -1:
        return Err("No JSON array found in response", _excerpt(text))

    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, list):
            return Ok(value)
        start = text.find("[", start + 1)

    return Err("Response contains '[' but no valid JSON array", _excerpt(text))


def parse_classification_response(text: str) -> Ok[list[RawPageLabel]] | Err:
    """Parse the classifier's answer into raw {page, type} labels.

    Labels are not checked against FormType here.
    """
    found = find_json_array(text)
    if isinstance(found, Err):
        return found

    try:
        labels = _RAW_LABELS.validate_python(found.value)
    except ValidationError as e:
        return Err(f"Classification array has malformed entries: {e.error_count()} errors", _excerpt(text))

    return Ok(labels)


def parse_tax_return_response(text: str) -> Ok[TaxReturnRecord] | Err:
    """Parse a schema-constrained extraction response into a TaxReturnRecord."""
    if not text or not text.strip():
        return Err("Empty extraction response")

    try:
        record = TaxReturnRecord.model_validate_json(text)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        return Err(
            f"Response does not match the tax return schema ({e.error_count()} errors, "
            f"first at '{location}': {first.get('msg', 'invalid')})",
            _excerpt(text),
        )

    return Ok(record)
