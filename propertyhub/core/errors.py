from __future__ import annotations

from typing import Any


class HubError(Exception):
    """
    Base for every error the API renders itself.

    `kind` is stable and machine-checkable; `message` is for humans.
    """

    kind = "error"
    status_code = 500

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(HubError):
    kind = "validation_error"
    status_code = 400


class NotFound(HubError):
    kind = "not_found"
    status_code = 404


class Forbidden(HubError):
    kind = "forbidden"
    status_code = 403


class InvalidToken(HubError):
    kind = "invalid_token"
    status_code = 401


class InvalidStateTransition(HubError):
    kind = "invalid_state_transition"
    status_code = 400


class PreconditionFailed(HubError):
    kind = "precondition_failed"
    status_code = 400


class Conflict(HubError):
    kind = "conflict"
    status_code = 400


class UploadError(HubError):
    kind = "upload_error"
    status_code = 500


class StoreError(HubError):
    kind = "store_error"
    status_code = 500


class StoreTimeout(StoreError):
    kind = "store_timeout"
