from datetime import datetime
from typing import Literal

from pydantic import Field

from propertyhub.schemas.base import RequestModel, ResponseModel

ApprovalStatus = Literal["pending", "approved", "rejected"]
PropertyType = Literal[
    "Apartment", "Villa", "Independent House", "Studio", "Penthouse", "Duplex", "Pg house", "Plot", "Commercial Space",
]
ListingType = Literal["sale", "rent", "lease", "pg"]
Availability = Literal["available", "sold", "rented", "under-agreement", "hold"]
Category = Literal["Flat", "Villa", "House", "Lease", "Outrade", "Commercial", "Plots", "Farmland", "JD/JV"]


class ImageRef(RequestModel):
    url: str
    public_id: str = ""
    caption: str = ""


class PrivilegedListingFields(RequestModel):
    # Only honored for admins; see services.access
    approval_status: ApprovalStatus | None = None
    is_featured: bool | None = None
    is_verified: bool | None = None
    rejection_reason: str | None = None


class PropertyUnitCreate(PrivilegedListingFields):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    unit_number: str = ""
    city: str = Field(min_length=1)
    address: str = Field(min_length=1)
    coordinates: dict = Field(default_factory=dict)
    map_url: str = ""
    price_amount: float = Field(ge=0)
    price_currency: str = "INR"
    price_per_unit: Literal["total", "sqft", "sqm", "month"] = "total"
    property_type: PropertyType
    listing_type: ListingType = "sale"
    availability: Availability = "available"
    specifications: dict = Field(default_factory=dict)
    unit_features: list[str] = Field(default_factory=list)
    owner_details: dict = Field(default_factory=dict)
    parent_property_id: str | None = None
    display_order: int = Field(default=0, ge=0)
    images: list[ImageRef] = Field(default_factory=list)


class PropertyUnitUpdate(PrivilegedListingFields):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    unit_number: str | None = None
    city: str | None = None
    address: str | None = None
    coordinates: dict | None = None
    map_url: str | None = None
    price_amount: float | None = Field(default=None, ge=0)
    price_currency: str | None = None
    price_per_unit: Literal["total", "sqft", "sqm", "month"] | None = None
    property_type: PropertyType | None = None
    listing_type: ListingType | None = None
    availability: Availability | None = None
    specifications: dict | None = None
    unit_features: list[str] | None = None
    owner_details: dict | None = None
    display_order: int | None = Field(default=None, ge=0)


class PropertyUnitOut(ResponseModel):
    id: str
    title: str
    description: str
    unit_number: str
    city: str
    address: str
    coordinates: dict
    map_url: str
    images: list[dict]
    price_amount: float
    price_currency: str
    price_per_unit: str
    property_type: str
    listing_type: str
    availability: str
    specifications: dict
    unit_features: list
    owner_details: dict
    parent_property_id: str | None
    approval_status: str
    rejection_reason: str
    is_featured: bool
    is_verified: bool
    reviewed_by: str | None
    reviewed_at: datetime | None
    owner_id: str
    slug: str
    display_order: int
    view_count: int
    created_at: datetime
    updated_at: datetime


class PropertyCreate(PrivilegedListingFields):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    city: str = Field(min_length=1)
    property_location: str = Field(min_length=1)
    coordinates: dict = Field(default_factory=dict)
    map_url: str = ""
    category: Category
    price: float | None = Field(default=None, ge=0)
    for_sale: bool = True
    attributes: dict = Field(default_factory=dict)
    features: list[str] = Field(default_factory=list)
    nearby: dict = Field(default_factory=dict)
    images: list[ImageRef] = Field(default_factory=list)


class PropertyUpdate(PrivilegedListingFields):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    city: str | None = None
    property_location: str | None = None
    coordinates: dict | None = None
    map_url: str | None = None
    category: Category | None = None
    price: float | None = Field(default=None, ge=0)
    for_sale: bool | None = None
    attributes: dict | None = None
    features: list[str] | None = None
    nearby: dict | None = None


class PropertyOut(ResponseModel):
    id: str
    title: str
    description: str
    city: str
    property_location: str
    coordinates: dict
    map_url: str
    images: list[dict]
    category: str
    price: float | None
    for_sale: bool
    attributes: dict
    features: list
    nearby: dict
    approval_status: str
    rejection_reason: str
    is_featured: bool
    is_verified: bool
    reviewed_by: str | None
    reviewed_at: datetime | None
    owner_id: str
    created_at: datetime
    updated_at: datetime


class ApprovalUpdate(RequestModel):
    approval_status: ApprovalStatus
    rejection_reason: str | None = None


class BulkListingUpdate(RequestModel):
    ids: list[str] = Field(min_length=1)
    updates: dict


class DisplayOrderItem(RequestModel):
    id: str
    display_order: int = Field(ge=0)


class DisplayOrderUpdate(RequestModel):
    orders: list[DisplayOrderItem] = Field(min_length=1)
