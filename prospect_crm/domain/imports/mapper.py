"""
Field normalization for imported rows.

Spreadsheets exported over the years spell the same column several ways
(``priorityScore``, ``Priority Score``). Each record kind declares, per
canonical field, the ordered list of spellings it accepts; lookup is a
first-match scan over that list, taking the first non-empty value.

Normalizers never raise on bad input. A row without its kind's identity
field yields ``None``; unparseable numbers fall back to the field default.
"""
import logging
import math
import re
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError

from prospect_crm.domain.entities import (
    ContactStatus,
    Outreach,
    Price,
    Prospect,
    UrgencyBand,
)
from prospect_crm.utils.ids import new_import_cid, new_outreach_id

logger = logging.getLogger(__name__)

FieldSpellings = Dict[str, Tuple[str, ...]]

# Current-format name first, then legacy capitalised/spaced variants.
PROSPECT_FIELDS: FieldSpellings = {
    "cid": ("cid", "CID"),
    "company": ("company", "Company"),
    "address": ("address", "Address"),
    "industry": ("industry", "Industry"),
    "lat": ("lat", "Lat"),
    "lng": ("lng", "Lng"),
    "priorityScore": ("priorityScore", "Priority Score"),
    "lastOutcome": ("lastOutcome", "Last Outcome"),
    "lastOutreachDate": ("lastOutreachDate", "Last Outreach Date"),
    "nextStepDue": ("nextStepDue", "Next Step Due"),
    "contactStatus": ("contactStatus", "Contact Status"),
    "urgencyBand": ("urgencyBand", "Urgency Band"),
    "closeProbability": ("closeProbability", "Close Probability"),
    "competitorMentioned": ("competitorMentioned", "Competitor Mentioned"),
    "email": ("email", "Email"),
    "zip": ("zip", "Zip"),
}

PRICE_FIELDS: FieldSpellings = {
    "category": ("category", "Category"),
    "item": ("item", "Item"),
    "min": ("min", "Min"),
    "max": ("max", "Max"),
}

OUTREACH_FIELDS: FieldSpellings = {
    "outreachId": ("outreachId", "Outreach ID"),
    "cid": ("cid", "CID", "companyId", "Company ID"),
    "company": ("company", "Company"),
    "visitDate": ("visitDate", "Visit Date", "date", "Date"),
    "notes": ("notes", "Notes"),
    "outcome": ("outcome", "Outcome"),
    "stage": ("stage", "Stage"),
    "status": ("status", "Status"),
    "nextVisitDate": ("nextVisitDate", "Next Visit Date", "nextDate", "Next Date"),
    "followUpAction": ("followUpAction", "Follow Up Action"),
    "owner": ("owner", "Owner"),
    "contactType": ("contactType", "Contact Type"),
    "emailSent": ("emailSent", "Email Sent"),
}

# Outreach rows are identified by their own id or by the prospect they reference
OUTREACH_IDENTITY_SPELLINGS = OUTREACH_FIELDS["outreachId"] + OUTREACH_FIELDS["cid"]

TRUE_TOKEN = "TRUE"

_FLOAT_PREFIX = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")
_INT_PREFIX = re.compile(r"^\s*([-+]?\d+)")

_CONTACT_STATUS_ALIASES = {status.value.lower(): status.value for status in ContactStatus}
_CONTACT_STATUS_ALIASES.update({"never": ContactStatus.NEVER.value, "nevercontacted": ContactStatus.NEVER.value})
_URGENCY_ALIASES = {band.value.lower(): band.value for band in UrgencyBand}


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def lookup(row: Mapping[str, Any], spellings: Tuple[str, ...]) -> Any:
    """Return the first present value among ``spellings``, or ``None``."""
    for key in spellings:
        value = row.get(key)
        if _is_present(value):
            return value
    return None


def has_any(row: Mapping[str, Any], spellings: Tuple[str, ...]) -> bool:
    return lookup(row, spellings) is not None


def as_text(value: Any, default: str = "") -> str:
    if not _is_present(value):
        return default
    if isinstance(value, float) and value.is_integer():
        # JSON numbers such as 75702.0 read back as the spreadsheet showed them
        return str(int(value))
    return str(value).strip()


def parse_float(value: Any, default: float = 0.0) -> float:
    """
    Parse a float the lenient spreadsheet way.

    A leading numeric prefix is enough (``"4.38/lb"`` -> 4.38). Anything that
    does not parse, or parses to a non-finite value, returns ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        match = _FLOAT_PREFIX.match(str(value))
        if not match:
            return default
        number = float(match.group(1))
    return number if math.isfinite(number) else default


def parse_int(value: Any, default: int = 0) -> int:
    """Parse an integer prefix (``"85.7"`` -> 85, ``"n/a"`` -> ``default``)."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    match = _INT_PREFIX.match(str(value))
    if not match:
        return default
    return int(match.group(1))


def parse_flag(value: Any) -> bool:
    """Only the literal spreadsheet token ``TRUE`` (or a JSON true) counts as set."""
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip() == TRUE_TOKEN


def canonical_contact_status(value: Any) -> str:
    """Map known spellings onto the enum; unknown free text passes through."""
    text = as_text(value)
    if not text:
        return ContactStatus.NEVER.value
    key = text.lower()
    return _CONTACT_STATUS_ALIASES.get(key) or _CONTACT_STATUS_ALIASES.get(key.replace(" ", ""), text)


def canonical_urgency_band(value: Any) -> str:
    text = as_text(value)
    if not text:
        return UrgencyBand.MEDIUM.value
    return _URGENCY_ALIASES.get(text.lower(), text)


def _field(row: Mapping[str, Any], spellings: FieldSpellings, name: str) -> Any:
    return lookup(row, spellings[name])


def normalize_prospect(row: Mapping[str, Any], *, cid_factory=new_import_cid) -> Optional[Prospect]:
    """
    Build a Prospect from a loosely-shaped row, or ``None`` without a company.

    Args:
        row: Untyped field map from a parser or the remote sheet
        cid_factory: Generates an id when the row has none
    """
    company = _field(row, PROSPECT_FIELDS, "company")
    if company is None:
        return None

    def text(name: str, default: str = "") -> str:
        return as_text(_field(row, PROSPECT_FIELDS, name), default)

    competitor = _field(row, PROSPECT_FIELDS, "competitorMentioned")

    data = {
        "cid": text("cid") or cid_factory(),
        "company": as_text(company),
        "address": text("address"),
        "industry": text("industry", "General"),
        "lat": parse_float(_field(row, PROSPECT_FIELDS, "lat")),
        "lng": parse_float(_field(row, PROSPECT_FIELDS, "lng")),
        "priorityScore": parse_int(_field(row, PROSPECT_FIELDS, "priorityScore")),
        "tags": [],
        "lastOutcome": text("lastOutcome"),
        "lastOutreachDate": text("lastOutreachDate"),
        "daysSinceContact": 0,
        "nextStepDue": text("nextStepDue"),
        "contactStatus": canonical_contact_status(_field(row, PROSPECT_FIELDS, "contactStatus")),
        "urgencyBand": canonical_urgency_band(_field(row, PROSPECT_FIELDS, "urgencyBand")),
        "closeProbability": parse_int(_field(row, PROSPECT_FIELDS, "closeProbability"), default=50),
        "competitorMentioned": as_text(competitor) if competitor is not None else None,
        "email": text("email"),
        "zip": text("zip"),
    }
    return _validated(Prospect, data)


def normalize_price(row: Mapping[str, Any]) -> Optional[Price]:
    """Build a Price from a row, or ``None`` when no item name is present."""
    item = _field(row, PRICE_FIELDS, "item")
    if item is None:
        return None

    data = {
        "category": as_text(_field(row, PRICE_FIELDS, "category"), "General"),
        "item": as_text(item),
        "min": parse_float(_field(row, PRICE_FIELDS, "min")),
        "max": parse_float(_field(row, PRICE_FIELDS, "max")),
    }
    return _validated(Price, data)


def normalize_outreach(row: Mapping[str, Any]) -> Optional[Outreach]:
    """Build an Outreach record, or ``None`` when neither an outreach id nor a cid is present."""
    if not has_any(row, OUTREACH_IDENTITY_SPELLINGS):
        return None

    def text(name: str, default: str = "") -> str:
        return as_text(_field(row, OUTREACH_FIELDS, name), default)

    next_visit = _field(row, OUTREACH_FIELDS, "nextVisitDate")

    data = {
        "outreachId": text("outreachId") or new_outreach_id(),
        "cid": text("cid"),
        "company": text("company"),
        "visitDate": text("visitDate"),
        "notes": text("notes"),
        "outcome": text("outcome"),
        "stage": text("stage", "Prospect"),
        "status": text("status", "Cold"),
        "nextVisitDate": as_text(next_visit) if next_visit is not None else None,
        "followUpAction": text("followUpAction"),
        "owner": text("owner", "Unknown"),
        "contactType": text("contactType", "In Person"),
        "emailSent": parse_flag(_field(row, OUTREACH_FIELDS, "emailSent")),
    }
    return _validated(Outreach, data)


def _validated(model, data: Dict[str, Any]):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.debug("Skipping %s row that failed validation: %s", model.__name__, e)
        return None
