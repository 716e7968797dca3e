"""
Bundled last-known snapshot.

Used whenever the remote sheet is not configured or does not answer, so the
dashboard always has something coherent to show.
"""
from typing import List

from prospect_crm.domain.entities import ContactStatus, Outcome, Price, Prospect

HOME_BASE = {
    "name": "K-L Recycling Headquarters",
    "address": "4134 Chandler Hwy, Tyler, TX 75702",
    "lat": 32.3513,
    "lng": -95.3011,
}

_INITIAL_PROSPECTS = [
    {
        "cid": "CID-001",
        "company": "Tyler Metal Fab",
        "address": "1200 N NW Loop 323, Tyler, TX 75702",
        "industry": "Metal",
        "lat": 32.3845,
        "lng": -95.3321,
        "priorityScore": 85,
        "tags": ["High Value", "Quick Win"],
        "lastOutcome": Outcome.INTERESTED.value,
        "lastOutreachDate": "2023-10-20",
        "daysSinceContact": 5,
        "nextStepDue": "2023-11-04",
        "contactStatus": ContactStatus.HOT.value,
        "urgencyBand": "High",
        "closeProbability": 75,
        "competitorMentioned": "None",
        "email": "contact@tylermetal.com",
        "zip": "75702",
    },
]

_SCRAP_PRICES = [
    {"category": "Copper", "item": "Bare Bright", "min": 4.38, "max": 4.48},
    {"category": "Aluminum", "item": "Cans", "min": 0.75, "max": 0.77},
]


def default_prospects() -> List[Prospect]:
    """Fresh copies of the bundled prospects (callers may mutate them)."""
    return [Prospect.model_validate(row) for row in _INITIAL_PROSPECTS]


def default_prices() -> List[Price]:
    return [Price.model_validate(row) for row in _SCRAP_PRICES]
