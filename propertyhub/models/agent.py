from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import DateTime, JSON

from propertyhub.core.ids import gen_id
from propertyhub.models.base import Base, AuditMixin


class Agent(AuditMixin, Base):
    __tablename__ = "agents"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("agt"))

    # Public identifier, e.g. cleartitle100001; allocated from the "agent_id" counter
    agent_id: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    user_id: Mapped[str] = mapped_column(String, ForeignKey("users.id"), nullable=False, unique=True)

    # Copied from the user at approval time for quick access
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    phone_number: Mapped[str] = mapped_column(String(30), nullable=False)
    company: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    office_address: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    license_number: Mapped[str] = mapped_column(String(80), nullable=False, default="")
    experience_years: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    specialization_areas: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    bio: Mapped[str] = mapped_column(Text, nullable=False, default="")
    profile_photo: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    approved_by: Mapped[str | None] = mapped_column(String, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user = relationship("User", lazy="selectin")
