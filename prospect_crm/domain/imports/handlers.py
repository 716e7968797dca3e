"""
Default import-commit handler and the downloadable import template.
"""
import csv
import io
import logging
from typing import List, Optional

from prospect_crm.domain.entities import Outreach, Price, Prospect

logger = logging.getLogger(__name__)

TEMPLATE_PROSPECT_HEADER = [
    "company", "address", "industry", "lat", "lng", "priorityScore",
    "lastOutcome", "lastOutreachDate", "nextStepDue", "contactStatus",
    "urgencyBand", "closeProbability", "competitorMentioned", "email", "zip",
]
TEMPLATE_PRICE_HEADER = ["category", "item", "min", "max"]

TEMPLATE_PROSPECT_ROWS = [
    {
        "company": "Tyler Metal Fab",
        "address": "1200 N NW Loop 323",
        "industry": "Metal",
        "lat": "32.3845",
        "lng": "-95.3321",
        "priorityScore": "85",
        "lastOutcome": "Interested",
        "lastOutreachDate": "2023-10-20",
        "nextStepDue": "2023-11-04",
        "contactStatus": "Hot",
        "urgencyBand": "High",
        "closeProbability": "75",
        "competitorMentioned": "None",
        "email": "contact@tylermetal.com",
        "zip": "75702",
    },
]
TEMPLATE_PRICE_ROWS = [
    {"category": "Copper", "item": "Bare Bright", "min": "4.38", "max": "4.48"},
    {"category": "Aluminum", "item": "Cans", "min": "0.75", "max": "0.77"},
]


def build_import_template() -> str:
    """
    CSV template users can fill in and upload.

    Prospect and price rows share one header; each row leaves the other
    kind's columns blank, so the classifier sorts them on import.
    """
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer,
        fieldnames=TEMPLATE_PROSPECT_HEADER + TEMPLATE_PRICE_HEADER,
        restval="",
        lineterminator="\n",
    )
    writer.writeheader()
    writer.writerows(TEMPLATE_PROSPECT_ROWS)
    writer.writerows(TEMPLATE_PRICE_ROWS)
    return buffer.getvalue()


class ImportCommitHandler:
    """
    Applies a committed import to the running system.

    - Prospects replace the store's collection (remote sync runs in the background).
      An import with no prospect rows still replaces it, leaving the collection
      empty and syncing an empty list to the remote sheet.
    - Prices are appended to the price list that was cached before the commit.
    - Outreach records are sent to the remote visit log one by one; a failed
      send is logged and the rest continue.

    Args:
        store: ``ProspectStore`` owning the prospect collection
        cache: ``LocalCache`` holding the price list
        client: Remote client exposing ``log_visit``
        existing_prices: Prices cached before the first commit attempt
            (``ImportPipeline.prior_prices``), so a retried commit does not
            append the new prices to themselves
    """

    def __init__(self, store, cache, client, existing_prices: Optional[List[Price]] = None):
        self.store = store
        self.cache = cache
        self.client = client
        self.existing_prices = list(existing_prices or [])
        self.visits_logged = 0
        self.visits_failed = 0

    async def __call__(
        self,
        prospects: List[Prospect],
        prices: List[Price],
        outreach: List[Outreach],
    ) -> None:
        await self.store.replace_all(prospects)

        self.cache.save_prices(self.existing_prices + list(prices))

        for record in outreach:
            try:
                result = await self.client.log_visit(record.to_wire())
            except Exception as e:
                logger.warning("Failed to log outreach %s: %s", record.outreach_id, e)
                self.visits_failed += 1
                continue
            if isinstance(result, dict) and result.get("success"):
                self.visits_logged += 1
            else:
                message = result.get("message") if isinstance(result, dict) else result
                logger.warning("Remote rejected outreach %s: %s", record.outreach_id, message)
                self.visits_failed += 1

        logger.info(
            "Applied import: %d prospects, %d prices appended to %d existing, %d/%d visits logged",
            len(prospects),
            len(prices),
            len(self.existing_prices),
            self.visits_logged,
            len(outreach),
        )
