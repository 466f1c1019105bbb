from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from propertyhub.core.ids import gen_id
from propertyhub.models.base import Base, AuditMixin


BATCH_TYPES = (
    "location_based",
    "project_group",
    "featured_listings",
    "similar_properties",
    "comparison_group",
)


class PropertyBatch(AuditMixin, Base):
    __tablename__ = "property_batches"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("bat"))

    # Generated once at creation, never rewritten
    batch_code: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)

    batch_name: Mapped[str] = mapped_column(String(100), nullable=False)
    location_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    batch_type: Mapped[str] = mapped_column(String(30), nullable=False, default="location_based")

    # {"url": ..., "public_id": ..., "caption": ...}
    image: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    location_coordinates: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # Ordered, de-duplicated PropertyUnit ids
    property_unit_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # {"total_properties", "avg_price", "min_price", "max_price", "property_types"}
    stats: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    owner_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)

    # Bumped on every membership write; writers match on the revision they read
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
