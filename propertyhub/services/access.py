"""
Role-gated mutation policy shared by every router.

Privileged fields are an explicit allow-list per entity type. Non-admins
never get an error for sending them: on create they are forced to safe
defaults, on update they are dropped, and the attempt is recorded.
"""
from __future__ import annotations

import logging
from typing import Any, Literal

from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.errors import Forbidden
from propertyhub.services.audit import audit
from propertyhub.services.auth import Actor

security_log = logging.getLogger("propertyhub.security")

Role = Literal["anonymous", "owner", "admin"]
Mode = Literal["create", "update"]

_LISTING_DEFAULTS = {
    "approval_status": "pending",
    "is_featured": False,
    "is_verified": False,
    "rejection_reason": "",
}

SENSITIVE_FIELDS: dict[str, dict[str, Any]] = {
    "property_unit": _LISTING_DEFAULTS,
    "property": _LISTING_DEFAULTS,
    "user": {"is_admin": False, "is_verified": False},
}


def role_of(actor: Actor | None, owner_id: str | None = None) -> Role:
    if actor is None:
        return "anonymous"
    if actor.is_admin:
        return "admin"
    # authenticated but not the owner: no rights on this entity
    if owner_id is None or actor.user_id == owner_id:
        return "owner"
    return "anonymous"


def authorize_mutation(actor: Actor | None, owner_id: str) -> Role:
    role = role_of(actor, owner_id)
    if role == "anonymous":
        raise Forbidden("Only the owner or an admin may change this record")
    return role


async def sanitize_fields(
    db: AsyncSession,
    actor: Actor | None,
    requested: dict[str, Any],
    entity_type: str,
    *,
    mode: Mode,
    target_id: str | None = None,
) -> dict[str, Any]:
    """Return a copy of `requested` that the actor is allowed to write."""
    sensitive = SENSITIVE_FIELDS.get(entity_type, {})
    out = dict(requested)

    if actor is not None and actor.is_admin:
        if mode == "create":
            for field, default in sensitive.items():
                out.setdefault(field, default)
        return out

    attempted = sorted(f for f in sensitive if f in requested)
    for field in sensitive:
        out.pop(field, None)
    if mode == "create":
        out.update(sensitive)

    if attempted:
        actor_id = actor.user_id if actor else None
        security_log.warning(
            "ignored privileged fields actor=%s entity=%s target=%s fields=%s",
            actor_id, entity_type, target_id, ",".join(attempted),
        )
        await audit(
            db,
            actor_id=actor_id,
            action="privileged_fields.ignored",
            target_type=entity_type,
            target_id=target_id,
            detail={"fields": attempted, "mode": mode},
        )

    return out
