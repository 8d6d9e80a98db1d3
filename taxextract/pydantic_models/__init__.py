"""Pydantic models for the extraction pipeline.

Modules:
- tax_return: The extracted record (TaxReturnRecord and its sections)
- classification: Page labels (FormType, PageClassification) and PageSelection
"""

from taxextract.pydantic_models.classification import (
    FormType,
    PageClassification,
    PageSelection,
    RawPageLabel,
)
from taxextract.pydantic_models.tax_return import (
    Dependent,
    FederalSection,
    FilingStatus,
    IncomeSection,
    LabeledAmount,
    RateBlock,
    ReturnSummary,
    StateAmount,
    StateReturn,
    TaxRates,
    TaxReturnRecord,
    tax_return_json_schema,
)

__all__ = [
    # Classification
    "FormType",
    "PageClassification",
    "PageSelection",
    "RawPageLabel",
    # Record
    "Dependent",
    "FederalSection",
    "FilingStatus",
    "IncomeSection",
    "LabeledAmount",
    "RateBlock",
    "ReturnSummary",
    "StateAmount",
    "StateReturn",
    "TaxRates",
    "TaxReturnRecord",
    "tax_return_json_schema",
]
