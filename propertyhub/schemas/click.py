from datetime import datetime
from typing import Literal

from pydantic import Field

from propertyhub.schemas.base import RequestModel, ResponseModel

ItemType = Literal[
    "phone", "email", "instagram", "twitter", "facebook", "linkedin", "whatsapp", "website", "location", "other",
]
Timeframe = Literal["24h", "7d", "30d", "90d", "1y", "all"]


class ClickTrack(RequestModel):
    item_type: ItemType
    item_value: str = Field(min_length=1, max_length=500)
    display_name: str = Field(min_length=1, max_length=200)
    page_url: str = Field(min_length=1, max_length=1000)
    session_id: str = Field(min_length=1, max_length=120)
    property_id: str | None = None


class ClickOut(ResponseModel):
    id: str
    user_id: str | None
    user_name: str | None
    session_id: str
    item_type: str
    item_value: str
    display_name: str
    page_url: str
    property_id: str | None
    ip_address: str | None
    user_agent: str | None
    country: str
    city: str
    device_type: str
    occurred_at: datetime
