from sqlalchemy import Boolean, Float, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from propertyhub.core.ids import gen_id
from propertyhub.models.base import Base
from propertyhub.models.listing import ListingMixin


CATEGORIES = ("Flat", "Villa", "House", "Lease", "Outrade", "Commercial", "Plots", "Farmland", "JD/JV")


class Property(ListingMixin, Base):
    __tablename__ = "properties"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("prp"))

    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    property_location: Mapped[str] = mapped_column(String(300), nullable=False)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    for_sale: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # bedrooms, bathrooms, square, property_label...
    attributes: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    features: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    nearby: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
