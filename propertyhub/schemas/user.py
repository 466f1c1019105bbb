from datetime import datetime
from typing import Literal

from pydantic import EmailStr, Field

from propertyhub.schemas.base import RequestModel, ResponseModel

UserType = Literal["buyer", "seller", "builder", "developer", "agent", "investor", "other"]


class UserRegister(RequestModel):
    username: str = Field(min_length=3, max_length=40)
    name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(default="", max_length=50)
    email: EmailStr
    phone_number: str = Field(pattern=r"^\+?[\d\s\-\(\)]{10,}$")
    user_type: UserType = "buyer"
    company: str = ""


class UserUpdate(RequestModel):
    name: str | None = Field(default=None, max_length=50)
    last_name: str | None = Field(default=None, max_length=50)
    phone_number: str | None = Field(default=None, pattern=r"^\+?[\d\s\-\(\)]{10,}$")
    company: str | None = None
    office_address: dict | None = None
    about: str | None = Field(default=None, max_length=1000)

    # privileged; ignored unless the caller is an admin
    is_admin: bool | None = None
    is_verified: bool | None = None


class AgentApplication(RequestModel):
    company: str | None = None
    office_address: dict | None = None
    about: str | None = Field(default=None, max_length=1000)


class UserOut(ResponseModel):
    id: str
    username: str
    name: str
    last_name: str
    email: str
    phone_number: str
    user_type: str
    is_admin: bool
    is_verified: bool
    company: str
    office_address: dict
    about: str
    agent_approval_status: str | None
    agent_applied_at: datetime | None
    agent_reviewed_by: str | None
    agent_reviewed_at: datetime | None
    agent_status_reason: str
    agent_review_notes: str
    created_at: datetime


class AdminUserOut(UserOut):
    like_count: int = 0


class UserRegistered(ResponseModel):
    user: UserOut
    token: str  # returned only once
