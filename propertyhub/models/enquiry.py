from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from propertyhub.core.ids import gen_id
from propertyhub.models.base import Base, AuditMixin


ENQUIRY_STATUSES = ("new", "in-progress", "resolved", "closed")


class Enquiry(AuditMixin, Base):
    __tablename__ = "enquiries"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("enq"))

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(30), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str | None] = mapped_column(String, ForeignKey("users.id"), nullable=True, index=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="new", index=True)
    admin_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
