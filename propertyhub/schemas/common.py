from typing import Any

from pydantic import BaseModel, Field


class IdResponse(BaseModel):
    id: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ErrorResponse(BaseModel):
    success: bool = False
    kind: str
    message: str
    details: dict = Field(default_factory=dict)


class IdList(BaseModel):
    ids: list[str] = Field(min_length=1)


def ok(data: Any = None, *, message: str | None = None, pagination: Pagination | None = None, **extra: Any) -> dict:
    """Response envelope: {success, message?, data, pagination?}."""
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    body["data"] = data
    if pagination is not None:
        body["pagination"] = pagination.model_dump()
    body.update(extra)
    return body
