from sqlalchemy import Float, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from propertyhub.core.ids import gen_id
from propertyhub.models.base import Base
from propertyhub.models.listing import ListingMixin


PROPERTY_TYPES = (
    "Apartment",
    "Villa",
    "Independent House",
    "Studio",
    "Penthouse",
    "Duplex",
    "Pg house",
    "Plot",
    "Commercial Space",
)
LISTING_TYPES = ("sale", "rent", "lease", "pg")
AVAILABILITY = ("available", "sold", "rented", "under-agreement", "hold")


class PropertyUnit(ListingMixin, Base):
    __tablename__ = "property_units"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("pu"))

    parent_property_id: Mapped[str | None] = mapped_column(String, ForeignKey("properties.id"), nullable=True)

    unit_number: Mapped[str] = mapped_column(String(60), nullable=False, default="")
    address: Mapped[str] = mapped_column(String(300), nullable=False)

    price_amount: Mapped[float] = mapped_column(Float, nullable=False)
    price_currency: Mapped[str] = mapped_column(String(8), nullable=False, default="INR")
    # "total" | "sqft" | "sqm" | "month"
    price_per_unit: Mapped[str] = mapped_column(String(10), nullable=False, default="total")

    property_type: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    listing_type: Mapped[str] = mapped_column(String(10), nullable=False, default="sale", index=True)
    availability: Mapped[str] = mapped_column(String(20), nullable=False, default="available", index=True)

    # bedrooms, bathrooms, carpet_area, furnishing, parking...
    specifications: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    unit_features: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    owner_details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    slug: Mapped[str] = mapped_column(String(260), nullable=False, unique=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
