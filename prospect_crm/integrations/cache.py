"""
Durable key-value cache for the dashboard's working data.

The cache is a single JSON document on disk holding the last committed
prospects, prices and outreach records plus a last-sync timestamp. It only
speeds up startup and survives restarts; the remote sheet stays the system
of record. Failures are logged and swallowed so a broken cache file can
never take an import or a request down with it.
"""
import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import ValidationError

from prospect_crm.domain.entities import CRMRecord, Outreach, Price, Prospect

logger = logging.getLogger(__name__)

PROSPECTS_KEY = "crm_prospects"
PRICES_KEY = "crm_prices"
OUTREACH_KEY = "crm_outreach"
LAST_SYNC_KEY = "crm_last_sync"

ALL_KEYS = (PROSPECTS_KEY, PRICES_KEY, OUTREACH_KEY, LAST_SYNC_KEY)

RecordT = TypeVar("RecordT", bound=CRMRecord)


class LocalCache:
    """JSON-file backed cache; one instance per process, shared by reference."""

    def __init__(self, path: str):
        self.path = Path(path)

    # -- raw document access -------------------------------------------------

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Failed to read cache file %s: %s", self.path, e)
            return {}
        if not isinstance(document, dict):
            logger.error("Cache file %s does not hold an object; ignoring it", self.path)
            return {}
        return document

    def _write(self, updates: Dict[str, Any], remove: Iterable[str] = ()) -> None:
        document = self._read()
        document.update(updates)
        for key in remove:
            document.pop(key, None)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=str(self.path.parent), prefix=".cache-", suffix=".json")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle)
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.error("Failed to write cache file %s: %s", self.path, e)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def _load_records(self, key: str, model: Type[RecordT]) -> Optional[List[RecordT]]:
        raw = self._read().get(key)
        if raw is None:
            return None
        if not isinstance(raw, list):
            logger.error("Cache entry '%s' is not a list; ignoring it", key)
            return None
        records: List[RecordT] = []
        for entry in raw:
            try:
                records.append(model.model_validate(entry))
            except ValidationError as e:
                logger.warning("Dropping unreadable cached %s: %s", model.__name__, e.errors()[:1])
        return records

    # -- collaborator interface ----------------------------------------------

    def save_prospects(self, prospects: List[Prospect]) -> None:
        self._write({
            PROSPECTS_KEY: [p.to_wire() for p in prospects],
            LAST_SYNC_KEY: datetime.now(timezone.utc).isoformat(),
        })

    def load_prospects(self) -> Optional[List[Prospect]]:
        return self._load_records(PROSPECTS_KEY, Prospect)

    def save_prices(self, prices: List[Price]) -> None:
        self._write({PRICES_KEY: [p.to_wire() for p in prices]})

    def load_prices(self) -> Optional[List[Price]]:
        return self._load_records(PRICES_KEY, Price)

    def save_outreach(self, outreach: List[Outreach]) -> None:
        self._write({OUTREACH_KEY: [o.to_wire() for o in outreach]})

    def load_outreach(self) -> Optional[List[Outreach]]:
        return self._load_records(OUTREACH_KEY, Outreach)

    def get_last_sync(self) -> Optional[str]:
        return self._read().get(LAST_SYNC_KEY)

    def clear_all(self) -> None:
        self._write({}, remove=ALL_KEYS)

    def has_data(self) -> bool:
        document = self._read()
        return PROSPECTS_KEY in document or PRICES_KEY in document
