# deploy_tracker/models.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional, Union

class Event(BaseModel):
    date_received: str = Field(..., description="Server-assigned UTC timestamp, ISO8601 with milliseconds.")
    date_sent: Optional[str] = Field(None, description="Client-reported timestamp, passed through as sent.")
    code_version: Optional[str] = None
    repository_url: Optional[str] = None
    repository_url_hash: Optional[str] = Field(None, description="MD5 hex digest of repository_url")
    application_name: Optional[str] = None
    space_id: Optional[str] = None
    application_version: Optional[str] = None
    application_uris: Optional[Union[str, List[str]]] = None

class RepoSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: Optional[str] = None
    url_hash: Optional[str] = None
    count: int = 0
    deploys: Dict[int, Dict[int, int]] = Field(default_factory=dict)
    is_url: bool = False
    reputation_stats: Optional[Any] = Field(None, alias="reputationStats")
    badge_image_url: Optional[str] = Field(None, alias="badgeImageUrl")
    badge_markdown: Optional[str] = Field(None, alias="badgeMarkdown")
    button_image_url: Optional[str] = Field(None, alias="buttonImageUrl")
    button_link_url: Optional[str] = Field(None, alias="buttonLinkUrl")
    button_markdown: Optional[str] = Field(None, alias="buttonMarkdown")

class RepoBreakdown(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    protocol_and_host: str = Field(..., alias="protocolAndHost")
    apps: List[RepoSummary]

class RepoMetrics(BaseModel):
    url_hash: str
    count: int

class BadgeGeometry(BaseModel):
    left: str
    right: str
    left_width: float
    right_width: float
    total_width: float
    left_x: float
    right_x: float

class Identity(BaseModel):
    user: str
    emails: List[str] = Field(default_factory=list)
