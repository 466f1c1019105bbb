from datetime import datetime

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from propertyhub.core.ids import gen_id
from propertyhub.models.base import Base, utcnow


class Like(Base):
    """One row per user and liked property unit."""

    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("user_id", "property_unit_id", name="uq_likes_user_unit"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("lk"))

    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, index=True)
    property_unit_id: Mapped[str] = mapped_column(String, ForeignKey("property_units.id"), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
