from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.types import DateTime, JSON

from propertyhub.models.base import AuditMixin


APPROVAL_STATUSES = ("pending", "approved", "rejected")


class ListingMixin(AuditMixin):
    """
    Columns shared by every listing table (properties, property units).

    Invariants kept by the approval service:
      - rejection_reason is non-empty only while approval_status == "rejected"
      - is_featured implies approval_status == "approved"
    """

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    city: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    coordinates: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    map_url: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    # [{"url": ..., "public_id": ..., "caption": ...}]
    images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    # "pending" | "approved" | "rejected"
    approval_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    rejection_reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    reviewed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @declared_attr
    def owner_id(cls) -> Mapped[str]:
        return mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)
