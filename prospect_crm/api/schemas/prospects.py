from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProspectCreate(_CamelModel):
    """Hand-entered prospect. Only company and industry are required."""
    company: str = ""
    industry: str = ""
    cid: Optional[str] = None
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    priority_score: Optional[int] = None
    contact_status: Optional[str] = None
    urgency_band: Optional[str] = None
    close_probability: Optional[int] = None
    next_step_due: Optional[str] = None
    competitor_mentioned: Optional[str] = None
    email: Optional[str] = None
    zip: Optional[str] = None
    tags: Optional[List[str]] = None


class ProspectListResponse(BaseModel):
    success: bool
    total: int
    loading: bool = False
    error: Optional[str] = None
    prospects: List[Dict[str, Any]]


class ProspectResponse(BaseModel):
    success: bool
    prospect: Dict[str, Any]
    remote_error: Optional[str] = None


class DeleteProspectResponse(BaseModel):
    success: bool
    message: str


class IndustryCount(BaseModel):
    name: str
    value: int


class ShortlistEntry(BaseModel):
    id: str
    name: str


class ProspectStatsResponse(BaseModel):
    total: int
    hot: int
    won: int
    critical: int
    overdue: int
    avg_priority: int
    industries: List[IndustryCount]
    high_priority: List[ShortlistEntry]
    placed: int
    map_center: Dict[str, float]


class VisitLogRequest(_CamelModel):
    """A single visit logged from the field; cid, company and outcome are required."""
    cid: str = Field(min_length=1)
    company: str = Field(min_length=1)
    outcome: str = Field(min_length=1)
    visit_date: Optional[str] = None
    notes: str = ""
    stage: Optional[str] = None
    status: Optional[str] = None
    next_visit_date: Optional[str] = None
    follow_up_action: Optional[str] = None
    owner: Optional[str] = None
    contact_type: Optional[str] = None
    email_sent: bool = False


class RemoteWriteResponse(BaseModel):
    success: bool
    message: Optional[str] = None


class PriceListResponse(BaseModel):
    success: bool
    source: str
    prices: List[Dict[str, Any]]


class InsightsResponse(BaseModel):
    success: bool
    insights: Optional[Any] = None
