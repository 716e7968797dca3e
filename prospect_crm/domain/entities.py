"""
Canonical CRM entities produced by the import pipeline and held by the store.

Attribute names are snake_case; the wire/cache shape uses the camelCase
canonical field names (``priorityScore``, ``outreachId`` ...) through pydantic
aliases, so ``model_dump(by_alias=True)`` is what goes to the remote sheet.
"""
import math
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RecordKind(str, Enum):
    PROSPECT = "prospect"
    PRICE = "price"
    OUTREACH = "outreach"


class ContactStatus(str, Enum):
    HOT = "Hot"
    WARM = "Warm"
    COLD = "Cold"
    NEVER = "Never Contacted"
    WON = "Won"
    LOST = "Lost"


class UrgencyBand(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Outcome(str, Enum):
    INTERESTED = "Interested"
    HAS_VENDOR = "Has Vendor"
    NOT_INTERESTED = "Not Interested"
    WON = "Won"
    NO_SCRAP = "No Scrap"
    SEND_INFO = "Send Info"
    LEFT_MESSAGE = "Left Message"
    BAD_TIMING = "Bad Timing"
    FOLLOW_UP = "Follow Up"


def _finite_or_zero(value: float) -> float:
    return value if math.isfinite(value) else 0.0


# Parse failures and non-finite inputs never survive as NaN/inf
FiniteFloat = Annotated[float, AfterValidator(_finite_or_zero)]


class CRMRecord(BaseModel):
    """Base class for the three flat record kinds."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with canonical camelCase field names."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def wire_name(cls, key: str) -> str:
        """Translate a python attribute name to its canonical field name."""
        field = cls.model_fields.get(key)
        if field is not None and field.alias:
            return field.alias
        return key


class Prospect(CRMRecord):
    cid: str = Field(min_length=1)
    company: str = Field(min_length=1)
    address: str = ""
    industry: str = "General"
    lat: FiniteFloat = 0.0
    lng: FiniteFloat = 0.0
    priority_score: int = 0
    tags: List[str] = Field(default_factory=list)
    last_outcome: str = ""
    last_outreach_date: str = ""
    days_since_contact: int = 0
    next_step_due: str = ""
    contact_status: str = ContactStatus.NEVER.value
    urgency_band: str = UrgencyBand.MEDIUM.value
    close_probability: int = 50
    competitor_mentioned: Optional[str] = None
    email: str = ""
    zip: str = ""

    @property
    def is_placed(self) -> bool:
        """A zero coordinate means the prospect was never geocoded."""
        return self.lat != 0 and self.lng != 0

    def merged(self, updates: Dict[str, Any]) -> "Prospect":
        """
        Return a copy with ``updates`` applied.

        Keys may be either attribute names or canonical field names. The
        identity field cannot be changed through a merge.
        """
        data = self.to_wire()
        for key, value in updates.items():
            data[self.wire_name(key)] = value
        data["cid"] = self.cid
        return Prospect.model_validate(data)


class Price(CRMRecord):
    category: str = "General"
    item: str = Field(min_length=1)
    min: FiniteFloat = 0.0
    max: FiniteFloat = 0.0

    @property
    def key(self) -> tuple:
        return (self.category, self.item)


class Outreach(CRMRecord):
    outreach_id: str = Field(min_length=1)
    cid: str = ""
    company: str = ""
    visit_date: str = ""
    notes: str = ""
    outcome: str = ""
    stage: str = "Prospect"
    status: str = "Cold"
    next_visit_date: Optional[str] = None
    follow_up_action: str = ""
    owner: str = "Unknown"
    contact_type: str = "In Person"
    email_sent: bool = False
