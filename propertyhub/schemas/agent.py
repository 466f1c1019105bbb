from datetime import datetime

from pydantic import EmailStr, Field

from propertyhub.schemas.base import RequestModel, ResponseModel


class AgentProfile(RequestModel):
    license_number: str = ""
    experience_years: int = Field(default=0, ge=0, le=80)
    specialization_areas: list[str] = Field(default_factory=list)
    bio: str = Field(default="", max_length=2000)


class AgentApprove(RequestModel):
    notes: str = ""
    profile: AgentProfile | None = None


class AgentReview(RequestModel):
    reason: str | None = None
    notes: str = ""


class AgentNotes(RequestModel):
    notes: str = ""


class AgentUpdate(RequestModel):
    name: str | None = Field(default=None, max_length=120)
    email: EmailStr | None = None
    phone_number: str | None = None
    company: str | None = None
    office_address: dict | None = None
    license_number: str | None = None
    experience_years: int | None = Field(default=None, ge=0, le=80)
    specialization_areas: list[str] | None = None
    bio: str | None = Field(default=None, max_length=2000)
    profile_photo: str | None = None


class AgentOut(ResponseModel):
    id: str
    agent_id: str
    user_id: str
    name: str
    email: str
    phone_number: str
    company: str
    office_address: dict
    license_number: str
    experience_years: int
    specialization_areas: list
    bio: str
    profile_photo: str
    is_active: bool
    approved_by: str | None
    approved_at: datetime | None
    created_at: datetime


class AgentApplicationOut(ResponseModel):
    user_id: str
    username: str
    name: str
    email: str
    phone_number: str
    company: str
    status: str | None
    applied_at: datetime | None
    reviewed_by: str | None
    reviewed_at: datetime | None
    reason: str
    notes: str

    @classmethod
    def from_user(cls, user) -> "AgentApplicationOut":
        return cls(
            user_id=user.id,
            username=user.username,
            name=user.full_name,
            email=user.email,
            phone_number=user.phone_number,
            company=user.company,
            status=user.agent_approval_status,
            applied_at=user.agent_applied_at,
            reviewed_by=user.agent_reviewed_by,
            reviewed_at=user.agent_reviewed_at,
            reason=user.agent_status_reason,
            notes=user.agent_review_notes,
        )
