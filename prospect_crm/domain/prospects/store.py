"""
Reconciliation store for the prospect collection.

The store owns the local, authoritative list of prospects and mirrors
mutations to the remote sheet on a best-effort basis:

- ``add`` / ``replace_all`` apply locally and fire the remote call in the
  background; a remote failure is logged, never rolled back.
- ``update`` awaits the remote call (bounded by a timeout) and then merges
  locally whatever the remote said.
- ``delete`` is local only; the remote sheet has no delete action, so a
  deleted prospect reappears on the next ``fetch``.

There is no locking. Concurrent mutations interleave at their await points
and the last local merge wins.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from pydantic import ValidationError

from prospect_crm.domain.defaults import default_prospects
from prospect_crm.domain.entities import ContactStatus, Prospect, UrgencyBand
from prospect_crm.utils.ids import new_manual_cid

logger = logging.getLogger(__name__)

MANUAL_ENTRY_DEFAULTS: Dict[str, Any] = {
    "contactStatus": ContactStatus.COLD.value,
    "urgencyBand": UrgencyBand.MEDIUM.value,
    "priorityScore": 50,
    "closeProbability": 50,
}


class ProspectValidationError(ValueError):
    """Raised when a hand-entered prospect is missing required fields."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ProspectStore:
    """
    Local prospect collection with optimistic writes to the remote sheet.

    Built once at startup and passed to whatever needs it.

    Args:
        client: Remote collaborator (``SheetsClient`` or a stand-in)
        cache: Durable cache; the collection is saved after each local change
        remote_timeout: Upper bound in seconds for any single remote call
    """

    def __init__(self, client, cache=None, *, remote_timeout: float = 15.0):
        self.client = client
        self.cache = cache
        self.remote_timeout = remote_timeout
        self.prospects: List[Prospect] = []
        self.loading = False
        self.error: Optional[str] = None
        self._pending: Set[asyncio.Task] = set()

    # -- queries ---------------------------------------------------------------

    def get(self, cid: str) -> Optional[Prospect]:
        for prospect in self.prospects:
            if prospect.cid == cid:
                return prospect
        return None

    @property
    def pending_remote_calls(self) -> int:
        return len(self._pending)

    # -- lifecycle -------------------------------------------------------------

    def load_cached(self) -> int:
        """Hydrate from the durable cache; returns how many prospects were loaded."""
        if self.cache is None:
            return 0
        cached = self.cache.load_prospects()
        if cached is None:
            return 0
        self.prospects = cached
        logger.info("Loaded %d cached prospects", len(cached))
        return len(cached)

    async def drain(self) -> None:
        """Wait for background remote calls to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # -- remote plumbing -------------------------------------------------------

    async def _remote(self, action: str, call: Callable[[], Awaitable[Dict[str, Any]]]) -> Dict[str, Any]:
        """Run one remote call; any failure becomes a ``{"success": False}`` result."""
        try:
            result = await asyncio.wait_for(call(), timeout=self.remote_timeout)
        except asyncio.TimeoutError:
            result = {"success": False, "message": f"{action} timed out after {self.remote_timeout}s"}
        except Exception as e:
            result = {"success": False, "message": f"{action} raised {type(e).__name__}: {e}"}
        if not isinstance(result, dict):
            result = {"success": False, "message": f"{action} returned {type(result).__name__}"}

        if not result.get("success"):
            self.error = result.get("message") or f"{action} failed"
            logger.warning("Remote %s failed; local state kept as is: %s", action, self.error)
        return result

    def _spawn(self, action: str, call: Callable[[], Awaitable[Dict[str, Any]]]) -> None:
        task = asyncio.get_running_loop().create_task(self._remote(action, call))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _persist(self) -> None:
        if self.cache is not None:
            self.cache.save_prospects(self.prospects)

    # -- operations ------------------------------------------------------------

    async def fetch(self) -> List[Prospect]:
        """
        Replace the collection with the remote snapshot.

        Falls back to the bundled snapshot if the remote call fails outright.
        ``loading`` is set for the duration of the call.
        """
        self.loading = True
        self.error = None
        try:
            try:
                prospects = await asyncio.wait_for(self.client.get_prospects(), timeout=self.remote_timeout)
            except asyncio.TimeoutError:
                self.error = f"getProspects timed out after {self.remote_timeout}s"
                logger.warning("%s; using bundled prospects", self.error)
                prospects = default_prospects()
            except Exception as e:
                self.error = str(e) or type(e).__name__
                logger.warning("Prospect fetch failed (%s); using bundled prospects", self.error)
                prospects = default_prospects()
            self.prospects = list(prospects)
            self._persist()
        finally:
            self.loading = False
        return self.prospects

    async def add(self, prospect: Prospect) -> Prospect:
        """Append locally right away; the remote create runs in the background."""
        self.prospects.append(prospect)
        self._persist()
        self._spawn("addProspect", lambda: self.client.add_prospect(prospect))
        return prospect

    async def create(self, fields: Dict[str, Any]) -> Prospect:
        """
        Create a prospect from hand-entered fields and ``add`` it.

        ``company`` and ``industry`` are required; a ``GEN-<timestamp>`` id is
        generated unless the caller supplies one.

        Raises:
            ProspectValidationError: Missing required fields, bad values, or id in use
        """
        data = {**MANUAL_ENTRY_DEFAULTS}
        data.update({Prospect.wire_name(key): value for key, value in fields.items() if value is not None})

        if not str(data.get("company") or "").strip() or not str(data.get("industry") or "").strip():
            raise ProspectValidationError("Please fill in Company Name and Industry")

        taken = {p.cid for p in self.prospects}
        if data.get("cid"):
            if data["cid"] in taken:
                raise ProspectValidationError(f"Prospect '{data['cid']}' already exists")
        else:
            data["cid"] = new_manual_cid(taken)

        try:
            prospect = Prospect.model_validate(data)
        except ValidationError as e:
            raise ProspectValidationError(str(e)) from e
        return await self.add(prospect)

    async def update(self, cid: str, updates: Dict[str, Any]) -> Optional[Prospect]:
        """
        Push ``updates`` to the remote sheet, then merge them locally regardless
        of the remote outcome.

        Returns the updated local record, or ``None`` when ``cid`` is unknown.

        Raises:
            ProspectValidationError: ``updates`` would make the record invalid
        """
        updated, _ = await self.update_with_result(cid, updates)
        return updated

    async def update_with_result(
        self, cid: str, updates: Dict[str, Any]
    ) -> Tuple[Optional[Prospect], Dict[str, Any]]:
        """Same as ``update``, also returning this call's own remote result."""
        current = self.get(cid)
        if current is not None:
            try:
                current.merged(updates)
            except ValidationError as e:
                raise ProspectValidationError(str(e)) from e

        remote = await self._remote("updateProspect", lambda: self.client.update_prospect(cid, updates))

        # Re-read after the await: another mutation may have landed meanwhile
        for index, prospect in enumerate(self.prospects):
            if prospect.cid == cid:
                updated = prospect.merged(updates)
                self.prospects[index] = updated
                self._persist()
                return updated, remote
        return None, remote

    def delete(self, cid: str) -> bool:
        """Remove locally. There is no remote delete, so the sheet keeps the row."""
        before = len(self.prospects)
        self.prospects = [p for p in self.prospects if p.cid != cid]
        removed = len(self.prospects) != before
        if removed:
            self._persist()
            logger.info("Deleted prospect %s locally; remote sheet still holds it", cid)
        return removed

    async def replace_all(self, prospects: List[Prospect]) -> None:
        """Bulk replace (import commit); the remote sync runs in the background."""
        snapshot = list(prospects)
        self.prospects = snapshot
        self._persist()
        self._spawn("syncProspects", lambda: self.client.sync_prospects(snapshot))
