from datetime import datetime
from typing import Literal

from pydantic import Field

from propertyhub.schemas.base import RequestModel, ResponseModel
from propertyhub.schemas.listing import ImageRef

BatchType = Literal["location_based", "project_group", "featured_listings", "similar_properties", "comparison_group"]


class BatchCreate(RequestModel):
    batch_name: str = Field(min_length=1, max_length=100)
    location_name: str = Field(min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    batch_type: BatchType = "location_based"
    image: ImageRef
    location_coordinates: dict = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    property_unit_ids: list[str] = Field(default_factory=list)
    is_active: bool = True
    display_order: int = Field(default=0, ge=0)


class BatchUpdate(RequestModel):
    batch_name: str | None = Field(default=None, min_length=1, max_length=100)
    location_name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    batch_type: BatchType | None = None
    image: ImageRef | None = None
    location_coordinates: dict | None = None
    tags: list[str] | None = None
    property_unit_ids: list[str] | None = None
    is_active: bool | None = None
    display_order: int | None = Field(default=None, ge=0)


class BatchMember(RequestModel):
    property_unit_id: str = Field(min_length=1)


class BatchOut(ResponseModel):
    id: str
    batch_code: str
    batch_name: str
    location_name: str
    description: str
    batch_type: str
    image: dict
    location_coordinates: dict
    tags: list
    property_unit_ids: list[str]
    stats: dict
    is_active: bool
    display_order: int
    owner_id: str
    revision: int
    created_at: datetime
    updated_at: datetime
