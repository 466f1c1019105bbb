"""
Approval workflows for listings and agent applications.

Every transition is a single conditional UPDATE that matches the allowed
source states, so concurrent reviewers cannot interleave a read and a write.
When nothing matches, the current state is read back only to pick the error.
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import and_, inspect, not_, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.config import settings
from propertyhub.core.errors import InvalidStateTransition, NotFound, PreconditionFailed, ValidationError
from propertyhub.models.agent import Agent
from propertyhub.models.base import utcnow
from propertyhub.models.property import Property
from propertyhub.models.property_unit import PropertyUnit
from propertyhub.models.user import User
from propertyhub.services.audit import audit
from propertyhub.services.store import atomic_increment, conditional_update

log = logging.getLogger(__name__)

ListingModel = type[Property] | type[PropertyUnit]

ENTITY_TYPES: dict[type, str] = {Property: "property", PropertyUnit: "property_unit"}

AGENT_COUNTER = "agent_id"


def _require_reason(reason: str | None) -> str:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A reason is required")
    return reason


def _reviewed(reviewer_id: str) -> dict[str, Any]:
    now = utcnow()
    return {"reviewed_by": reviewer_id, "reviewed_at": now, "updated_by": reviewer_id, "updated_at": now}


# ---------------------------------------------------------------------------
# listings
# ---------------------------------------------------------------------------

async def _listing_status(db: AsyncSession, model: ListingModel, listing_id: str) -> tuple[str, str]:
    row = (await db.execute(
        select(model.approval_status, model.rejection_reason).where(model.id == listing_id)
    )).one_or_none()
    if row is None:
        raise NotFound(f"{ENTITY_TYPES[model]} {listing_id} not found")
    return row[0], row[1]


async def _move_listing(
    db: AsyncSession,
    model: ListingModel,
    listing_id: str,
    *,
    source: Any,
    target: str,
    values: dict[str, Any],
    reviewer_id: str,
):
    row = await conditional_update(db, model, model.id == listing_id, source, values=values)
    if row is None:
        current, _ = await _listing_status(db, model, listing_id)
        raise InvalidStateTransition(
            f"Cannot move {ENTITY_TYPES[model]} from {current} to {target}",
            details={"from": current, "to": target},
        )

    await audit(
        db,
        actor_id=reviewer_id,
        action=f"{ENTITY_TYPES[model]}.{target}",
        target_type=ENTITY_TYPES[model],
        target_id=listing_id,
        detail={"rejection_reason": row.rejection_reason} if target == "rejected" else None,
    )
    return row


async def approve_listing(db: AsyncSession, model: ListingModel, listing_id: str, *, reviewer_id: str):
    return await _move_listing(
        db, model, listing_id,
        source=model.approval_status.in_(("pending", "rejected")),
        target="approved",
        values={"approval_status": "approved", "rejection_reason": "", **_reviewed(reviewer_id)},
        reviewer_id=reviewer_id,
    )


async def reject_listing(db: AsyncSession, model: ListingModel, listing_id: str, *, reviewer_id: str, reason: str | None):
    reason = _require_reason(reason)
    # rejected -> rejected only re-records a different reason
    source = or_(
        model.approval_status.in_(("pending", "approved")),
        and_(model.approval_status == "rejected", model.rejection_reason != reason),
    )
    return await _move_listing(
        db, model, listing_id,
        source=source,
        target="rejected",
        values={"approval_status": "rejected", "rejection_reason": reason, "is_featured": False, **_reviewed(reviewer_id)},
        reviewer_id=reviewer_id,
    )


async def reset_listing(db: AsyncSession, model: ListingModel, listing_id: str, *, reviewer_id: str):
    return await _move_listing(
        db, model, listing_id,
        source=model.approval_status != "pending",
        target="pending",
        values={"approval_status": "pending", "rejection_reason": "", "is_featured": False, **_reviewed(reviewer_id)},
        reviewer_id=reviewer_id,
    )


async def set_listing_status(
    db: AsyncSession,
    model: ListingModel,
    listing_id: str,
    status: str,
    *,
    reviewer_id: str,
    reason: str | None = None,
):
    if status == "approved":
        return await approve_listing(db, model, listing_id, reviewer_id=reviewer_id)
    if status == "rejected":
        return await reject_listing(db, model, listing_id, reviewer_id=reviewer_id, reason=reason)
    if status == "pending":
        return await reset_listing(db, model, listing_id, reviewer_id=reviewer_id)
    raise ValidationError(f"Unknown approval status: {status}")


async def toggle_featured(db: AsyncSession, model: ListingModel, listing_id: str, *, actor_id: str):
    row = await conditional_update(
        db, model,
        model.id == listing_id,
        model.approval_status == "approved",
        values={"is_featured": not_(model.is_featured), "updated_by": actor_id, "updated_at": utcnow()},
    )
    if row is None:
        current, _ = await _listing_status(db, model, listing_id)
        raise PreconditionFailed(
            "Only approved listings can be featured",
            details={"approval_status": current},
        )

    await audit(
        db, actor_id=actor_id, action=f"{ENTITY_TYPES[model]}.featured",
        target_type=ENTITY_TYPES[model], target_id=listing_id, detail={"is_featured": row.is_featured},
    )
    return row


async def toggle_verified(db: AsyncSession, model: ListingModel, listing_id: str, *, actor_id: str):
    row = await conditional_update(
        db, model,
        model.id == listing_id,
        values={"is_verified": not_(model.is_verified), "updated_by": actor_id, "updated_at": utcnow()},
    )
    if row is None:
        raise NotFound(f"{ENTITY_TYPES[model]} {listing_id} not found")

    await audit(
        db, actor_id=actor_id, action=f"{ENTITY_TYPES[model]}.verified",
        target_type=ENTITY_TYPES[model], target_id=listing_id, detail={"is_verified": row.is_verified},
    )
    return row


# ---------------------------------------------------------------------------
# agents
# ---------------------------------------------------------------------------

async def allocate_agent_id(db: AsyncSession) -> str:
    seq = await atomic_increment(db, AGENT_COUNTER, start=settings.agent_id_start)
    return f"{settings.agent_id_prefix}{seq}"


async def _agent_status(db: AsyncSession, user_id: str) -> str | None:
    row = (await db.execute(select(User.agent_approval_status).where(User.id == user_id))).one_or_none()
    if row is None:
        raise NotFound(f"user {user_id} not found")
    return row[0]


async def _move_agent(
    db: AsyncSession,
    user_id: str,
    *,
    source: Any,
    target: str,
    values: dict[str, Any],
    reviewer_id: str,
    action: str,
) -> User:
    now = utcnow()
    user = await conditional_update(
        db, User,
        User.id == user_id,
        source,
        values={
            "agent_approval_status": target,
            "agent_reviewed_by": reviewer_id,
            "agent_reviewed_at": now,
            "updated_by": reviewer_id,
            "updated_at": now,
            **values,
        },
    )
    if user is None:
        current = await _agent_status(db, user_id)
        raise InvalidStateTransition(
            f"Cannot move agent application from {current or 'none'} to {target}",
            details={"from": current, "to": target},
        )

    await audit(
        db, actor_id=reviewer_id, action=f"agent.{action}",
        target_type="user", target_id=user_id,
        detail={"reason": user.agent_status_reason} if user.agent_status_reason else None,
    )
    return user


async def _cascade_agent_active(db: AsyncSession, user_id: str, *, active: bool, actor_id: str) -> None:
    """
    Second step after the user transition has committed. A failure here is
    recorded and logged; the committed user transition stays as is.
    """
    try:
        await db.execute(
            update(Agent)
            .where(Agent.user_id == user_id)
            .values(is_active=active, updated_by=actor_id, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("agent cascade failed user_id=%s is_active=%s", user_id, active)
        try:
            await audit(
                db, actor_id=actor_id, action="agent.cascade_failed",
                target_type="user", target_id=user_id, detail={"is_active": active},
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            log.exception("could not record cascade failure user_id=%s", user_id)


async def _commit_and_cascade(db: AsyncSession, user: User, *, active: bool, actor_id: str) -> User:
    await db.commit()
    await _cascade_agent_active(db, user.id, active=active, actor_id=actor_id)
    # a failed cascade rolls back, which expires the committed user
    if inspect(user).expired_attributes:
        await db.refresh(user)
    return user


async def approve_agent(
    db: AsyncSession,
    user_id: str,
    *,
    reviewer_id: str,
    notes: str = "",
    profile: dict[str, Any] | None = None,
) -> tuple[User, Agent]:
    # write first so concurrent approvals serialize on the user row
    user = await _move_agent(
        db, user_id,
        source=User.agent_approval_status == "pending",
        target="approved",
        values={"agent_status_reason": "", "agent_review_notes": notes or ""},
        reviewer_id=reviewer_id,
        action="approved",
    )

    now = utcnow()
    agent = (await db.execute(select(Agent).where(Agent.user_id == user_id))).scalar_one_or_none()
    if agent is not None:
        # re-approval after a reset keeps the public id
        agent.is_active = True
        agent.approved_by = reviewer_id
        agent.approved_at = now
        agent.updated_by = reviewer_id
    else:
        agent = Agent(
            agent_id=await allocate_agent_id(db),
            user_id=user.id,
            name=user.full_name,
            email=user.email,
            phone_number=user.phone_number,
            company=user.company,
            office_address=user.office_address or {},
            is_active=True,
            approved_by=reviewer_id,
            approved_at=now,
            created_by=reviewer_id,
            updated_by=reviewer_id,
            **(profile or {}),
        )
        db.add(agent)

    await db.commit()
    log.info("agent approved user_id=%s agent_id=%s by=%s", user_id, agent.agent_id, reviewer_id)
    return user, agent


async def reject_agent(db: AsyncSession, user_id: str, *, reviewer_id: str, reason: str | None, notes: str = "") -> User:
    reason = _require_reason(reason)
    source = or_(
        User.agent_approval_status.in_(("pending", "approved")),
        and_(User.agent_approval_status == "rejected", User.agent_status_reason != reason),
    )
    user = await _move_agent(
        db, user_id, source=source, target="rejected",
        values={"agent_status_reason": reason, "agent_review_notes": notes or ""},
        reviewer_id=reviewer_id, action="rejected",
    )
    return await _commit_and_cascade(db, user, active=False, actor_id=reviewer_id)


async def suspend_agent(db: AsyncSession, user_id: str, *, reviewer_id: str, reason: str | None, notes: str = "") -> User:
    reason = _require_reason(reason)
    user = await _move_agent(
        db, user_id, source=User.agent_approval_status == "approved", target="suspended",
        values={"agent_status_reason": reason, "agent_review_notes": notes or ""},
        reviewer_id=reviewer_id, action="suspended",
    )
    return await _commit_and_cascade(db, user, active=False, actor_id=reviewer_id)


async def reactivate_agent(db: AsyncSession, user_id: str, *, reviewer_id: str, notes: str = "") -> User:
    user = await _move_agent(
        db, user_id, source=User.agent_approval_status == "suspended", target="approved",
        values={"agent_status_reason": "", "agent_review_notes": notes or ""},
        reviewer_id=reviewer_id, action="reactivated",
    )
    return await _commit_and_cascade(db, user, active=True, actor_id=reviewer_id)


async def reset_agent(db: AsyncSession, user_id: str, *, reviewer_id: str, notes: str = "") -> User:
    user = await _move_agent(
        db, user_id,
        source=User.agent_approval_status.in_(("approved", "rejected", "suspended")),
        target="pending",
        values={"agent_status_reason": "", "agent_review_notes": notes or ""},
        reviewer_id=reviewer_id, action="reset",
    )
    return await _commit_and_cascade(db, user, active=False, actor_id=reviewer_id)
