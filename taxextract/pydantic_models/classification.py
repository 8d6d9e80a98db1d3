"""Pydantic models for page classification and selection."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class FormType(str, Enum):
    """Known per-page form labels.

    Classifier output is not validated against this enum: a label the model
    invents is carried through as a plain string and the selector decides what
    to do with it.
    """

    FORM_1040_MAIN = "1040_main"
    SCHEDULE_1 = "schedule_1"
    SCHEDULE_2 = "schedule_2"
    SCHEDULE_3 = "schedule_3"
    SCHEDULE_A = "schedule_a"
    SCHEDULE_B = "schedule_b"
    SCHEDULE_C = "schedule_c"
    SCHEDULE_D = "schedule_d"
    SCHEDULE_E = "schedule_e"
    K1_SUMMARY = "k1_summary"
    K1_DETAIL = "k1_detail"
    STATE_MAIN = "state_main"
    STATE_SCHEDULE = "state_schedule"
    WORKSHEET = "worksheet"
    SUPPORTING_DOC = "supporting_doc"
    COVER_LETTER = "cover_letter"
    DIRECT_DEPOSIT = "direct_deposit"
    CARRYOVER_SUMMARY = "carryover_summary"
    EFILING_AUTH = "efiling_auth"
    CRYPTO_DETAIL = "crypto_detail"
    OTHER = "other"


class PageClassification(BaseModel):
    """Label for one physical page. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    page_number: int = Field(ge=1)
    form_type: str

    @property
    def is_known_type(self) -> bool:
        return self.form_type in FormType._value2member_map_


class RawPageLabel(BaseModel):
    """One element of the classifier's JSON array: {"page": 3, "type": "1040_main"}."""

    page: int
    type: str


class PageSelection(BaseModel):
    """Pages chosen for extraction, ascending and duplicate-free."""

    selected_pages: list[int] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.selected_pages
