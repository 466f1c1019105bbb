from datetime import datetime
from typing import Literal

from pydantic import Field

from propertyhub.schemas.base import RequestModel, ResponseModel

EnquiryStatus = Literal["new", "in-progress", "resolved", "closed"]


class EnquiryCreate(RequestModel):
    name: str = Field(min_length=1, max_length=120)
    phone_number: str = Field(pattern=r"^[0-9+\-\s()]{10,}$")
    message: str = Field(min_length=1, max_length=2000)
    user_id: str | None = None


class EnquiryStatusUpdate(RequestModel):
    status: EnquiryStatus


class EnquiryNotes(RequestModel):
    notes: str = Field(max_length=2000)


class EnquiryBulkStatus(RequestModel):
    enquiry_ids: list[str] = Field(min_length=1)
    status: EnquiryStatus


class EnquiryOut(ResponseModel):
    id: str
    name: str
    phone_number: str
    message: str
    user_id: str | None
    status: str
    admin_notes: str
    created_at: datetime
    updated_at: datetime
