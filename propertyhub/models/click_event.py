from datetime import datetime

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from propertyhub.core.ids import gen_id
from propertyhub.models.base import Base, utcnow


ITEM_TYPES = (
    "phone",
    "email",
    "instagram",
    "twitter",
    "facebook",
    "linkedin",
    "whatsapp",
    "website",
    "location",
    "other",
)
DEVICE_TYPES = ("desktop", "mobile", "tablet")


class ClickEvent(Base):
    """Append-only; rows are written once and only ever aggregated."""

    __tablename__ = "click_events"
    __table_args__ = (
        Index("ix_click_events_type_occurred", "item_type", "occurred_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("clk"))

    user_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    user_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    session_id: Mapped[str] = mapped_column(String(120), nullable=False, index=True)

    item_type: Mapped[str] = mapped_column(String(20), nullable=False)
    item_value: Mapped[str] = mapped_column(String(500), nullable=False)
    display_name: Mapped[str] = mapped_column(String(200), nullable=False)
    page_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    property_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)

    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    country: Mapped[str] = mapped_column(String(80), nullable=False, default="Unknown")
    city: Mapped[str] = mapped_column(String(120), nullable=False, default="Unknown")
    device_type: Mapped[str] = mapped_column(String(10), nullable=False, default="desktop")

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
