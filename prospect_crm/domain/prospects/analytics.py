"""
Dashboard read models over the prospect collection.

Pure functions: the store hands in its current list and gets plain dicts
back, ready for a JSON response.
"""
import math
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd

from prospect_crm.domain.defaults import HOME_BASE
from prospect_crm.domain.entities import ContactStatus, Outcome, Prospect, UrgencyBand

HIGH_PRIORITY_THRESHOLD = 70
HIGH_PRIORITY_LIMIT = 3

SEARCH_FIELDS = ("company", "industry", "address")


def search_prospects(prospects: List[Prospect], query: Optional[str]) -> List[Prospect]:
    """Case-insensitive substring match on company, industry or address."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(prospects)
    return [
        p for p in prospects
        if any(needle in (getattr(p, name) or "").lower() for name in SEARCH_FIELDS)
    ]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _parse_due(value: Any) -> pd.Timestamp:
    stamp = pd.to_datetime(value or None, errors="coerce")
    if stamp is pd.NaT or stamp is None:
        return pd.NaT
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert(None)
    return stamp


def _map_center(frame: pd.DataFrame) -> Dict[str, float]:
    # Zero means "not geocoded"; each axis is averaged over its own non-zero values
    lats = frame.loc[frame["lat"] != 0, "lat"]
    lngs = frame.loc[frame["lng"] != 0, "lng"]
    if lats.empty or lngs.empty:
        return {"lat": HOME_BASE["lat"], "lng": HOME_BASE["lng"]}
    return {"lat": float(lats.mean()), "lng": float(lngs.mean())}


def summarize_prospects(prospects: List[Prospect], today: Optional[date] = None) -> Dict[str, Any]:
    """
    Headline numbers for the dashboard cards, sidebar and map.

    Args:
        prospects: Current collection
        today: Reference date for overdue next steps (defaults to today)

    Returns:
        Dict with totals, per-industry counts, high-priority shortlist and the
        map center/placed count
    """
    if not prospects:
        return {
            "total": 0,
            "hot": 0,
            "won": 0,
            "critical": 0,
            "overdue": 0,
            "avg_priority": 0,
            "industries": [],
            "high_priority": [],
            "placed": 0,
            "map_center": {"lat": HOME_BASE["lat"], "lng": HOME_BASE["lng"]},
        }

    frame = pd.DataFrame([p.to_wire() for p in prospects])
    reference = pd.Timestamp(today or date.today())
    due = pd.to_datetime(frame["nextStepDue"].map(_parse_due))

    industries = (
        frame.loc[frame["industry"].fillna("") != "", "industry"]
        .value_counts(sort=False)
    )
    high_priority = frame.loc[frame["priorityScore"] > HIGH_PRIORITY_THRESHOLD].head(HIGH_PRIORITY_LIMIT)
    placed = (frame["lat"] != 0) & (frame["lng"] != 0)

    return {
        "total": len(frame),
        "hot": int((frame["contactStatus"] == ContactStatus.HOT.value).sum()),
        "won": int((frame["lastOutcome"] == Outcome.WON.value).sum()),
        "critical": int((frame["urgencyBand"] == UrgencyBand.CRITICAL.value).sum()),
        "overdue": int((due < reference).sum()),
        "avg_priority": _round_half_up(float(frame["priorityScore"].mean())),
        "industries": [{"name": name, "value": int(count)} for name, count in industries.items()],
        "high_priority": [
            {"id": row["cid"], "name": row["company"]} for _, row in high_priority.iterrows()
        ],
        "placed": int(placed.sum()),
        "map_center": _map_center(frame),
    }
