from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ImportCounts(BaseModel):
    prospects: int = 0
    prices: int = 0
    outreach: int = 0


class ImportStatsResponse(BaseModel):
    input_rows: int
    accepted_rows: int
    unclassified_rows: int
    rejected_rows: int


class ImportResultResponse(BaseModel):
    """Staged or committed import, as shown in the import preview."""
    success: bool
    message: str
    file_name: Optional[str] = None
    counts: Optional[ImportCounts] = None
    stats: Optional[ImportStatsResponse] = None
    prospects: List[Dict[str, Any]] = []
    prices: List[Dict[str, Any]] = []
    outreach: List[Dict[str, Any]] = []


class ImportCommitResponse(BaseModel):
    success: bool
    message: str
    file_name: Optional[str] = None
    visits_logged: int = 0
    visits_failed: int = 0


class DiscardResponse(BaseModel):
    success: bool
    message: str
