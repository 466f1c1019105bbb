from datetime import datetime

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime, JSON

from propertyhub.core.ids import gen_id
from propertyhub.models.base import Base, AuditMixin


USER_TYPES = ("buyer", "seller", "builder", "developer", "agent", "investor", "other")

# agent_approval_status lifecycle: NULL (never applied) | pending | approved | rejected | suspended
AGENT_APPROVAL_STATUSES = ("pending", "approved", "rejected", "suspended")


class User(AuditMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("usr"))

    username: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    phone_number: Mapped[str] = mapped_column(String(30), nullable=False)
    user_type: Mapped[str] = mapped_column(String(20), nullable=False, default="buyer")

    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    company: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    office_address: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    about: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Agent application; every change is reviewer-attributed
    agent_approval_status: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    agent_applied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    agent_reviewed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    agent_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    agent_status_reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    agent_review_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.last_name or ''}".strip()
