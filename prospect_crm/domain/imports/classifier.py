"""
Row classification for flat imports.

A flat CSV or JSON array mixes prospects, prices and outreach records with
no type column. Kind is inferred from which identifying fields a row
carries, checked in a fixed order: outreach before prospect (outreach rows
usually repeat the company name), prospect before price.
"""
from typing import Any, Mapping, Optional, Tuple

from prospect_crm.domain.entities import RecordKind
from .mapper import OUTREACH_FIELDS, PRICE_FIELDS, PROSPECT_FIELDS, has_any

OUTREACH_MARKERS: Tuple[str, ...] = OUTREACH_FIELDS["outreachId"] + ("companyId", "Company ID")
PROSPECT_MARKERS: Tuple[str, ...] = PROSPECT_FIELDS["company"]
PRICE_MARKERS: Tuple[str, ...] = PRICE_FIELDS["item"]

CLASSIFICATION_ORDER: Tuple[Tuple[RecordKind, Tuple[str, ...]], ...] = (
    (RecordKind.OUTREACH, OUTREACH_MARKERS),
    (RecordKind.PROSPECT, PROSPECT_MARKERS),
    (RecordKind.PRICE, PRICE_MARKERS),
)


def classify_record(row: Mapping[str, Any]) -> Optional[RecordKind]:
    """Return the record kind for ``row``, or ``None`` if it matches none."""
    for kind, markers in CLASSIFICATION_ORDER:
        if has_any(row, markers):
            return kind
    return None
