"""Pydantic models for the extracted tax return record.

These models are both the output of the pipeline and the schema the model is
constrained to during extraction:
- LabeledAmount: One line item (income source, deduction, credit, payment)
- StateReturn: One state's return, keyed by state name
- TaxReturnRecord: Complete record for one filer and year

Attributes are snake_case; JSON uses camelCase aliases so the schema sent to
the model reads naturally ("taxableIncome", "refundOrOwed").
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


FilingStatus = Literal[
    "single",
    "married_filing_jointly",
    "married_filing_separately",
    "head_of_household",
    "qualifying_surviving_spouse",
]


class RecordModel(BaseModel):
    """Base for record models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LabeledAmount(RecordModel):
    """One labeled dollar amount. Labels are unique within a list."""

    label: str = Field(description="Line description, e.g. 'Wages' or 'Schedule C profit'")
    amount: float = Field(description="Dollar amount; negative for losses")


class Dependent(RecordModel):
    name: str
    relationship: str


class StateReturn(RecordModel):
    """A single state return. Identity key is ``name``."""

    name: str = Field(description="State name, e.g. 'California'")
    agi: float
    deductions: list[LabeledAmount] = Field(default_factory=list)
    taxable_income: float
    tax: float
    adjustments: list[LabeledAmount] = Field(default_factory=list)
    payments: list[LabeledAmount] = Field(default_factory=list)
    refund_or_owed: float = Field(description="Positive = refund, negative = owed")


class IncomeSection(RecordModel):
    items: list[LabeledAmount] = Field(default_factory=list)
    total: float


class FederalSection(RecordModel):
    agi: float
    deductions: list[LabeledAmount] = Field(default_factory=list)
    taxable_income: float
    tax: float
    additional_taxes: list[LabeledAmount] = Field(
        default_factory=list,
        description="Schedule 2 taxes: self-employment, NIIT, additional Medicare",
    )
    credits: list[LabeledAmount] = Field(default_factory=list)
    payments: list[LabeledAmount] = Field(default_factory=list)
    refund_or_owed: float = Field(description="Positive = refund, negative = owed")


class StateAmount(RecordModel):
    state: str
    amount: float


class ReturnSummary(RecordModel):
    federal_amount: float
    state_amounts: list[StateAmount] = Field(default_factory=list)
    net_position: float = Field(description="Federal plus all states; positive = net refund")


class RateBlock(RecordModel):
    marginal: float
    effective: float


class TaxRates(RecordModel):
    federal: RateBlock
    state: RateBlock | None = None
    combined: RateBlock | None = None


class TaxReturnRecord(RecordModel):
    """Complete extracted tax return.

    Also the shape of each per-chunk partial extraction before merging.
    """

    year: int
    name: str = Field(description="Primary filer name as printed on the return")
    filing_status: FilingStatus
    dependents: list[Dependent] = Field(default_factory=list)
    income: IncomeSection
    federal: FederalSection
    states: list[StateReturn] = Field(default_factory=list)
    summary: ReturnSummary
    rates: TaxRates | None = None

    def to_json_dict(self) -> dict:
        """Dump with camelCase keys, as written to disk.

        Absent optional rate blocks are left out rather than written as null.
        """
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


def tax_return_json_schema() -> dict:
    """JSON schema sent with schema-constrained extraction calls."""
    return TaxReturnRecord.model_json_schema(by_alias=True)
