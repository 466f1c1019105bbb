from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.errors import Conflict, InvalidStateTransition, NotFound
from propertyhub.core.security import generate_token
from propertyhub.models.api_key import ApiKey
from propertyhub.models.base import utcnow
from propertyhub.models.user import User
from propertyhub.schemas.common import Pagination
from propertyhub.services.access import sanitize_fields
from propertyhub.services.audit import audit
from propertyhub.services.auth import Actor
from propertyhub.services.store import conditional_update, paginate

log = logging.getLogger(__name__)


async def _check_unique(db: AsyncSession, email: str, username: str) -> None:
    taken = (await db.execute(
        select(User.email, User.username).where(or_(User.email == email, User.username == username))
    )).all()
    if taken:
        field = "email" if any(row.email == email for row in taken) else "username"
        raise Conflict(f"A user with this {field} already exists", details={"field": field})


async def issue_token(db: AsyncSession, user_id: str) -> str:
    """Mint a bearer token for the user; only the hash is stored."""
    token = generate_token()
    db.add(ApiKey(user_id=user_id, key_prefix=token.prefix, key_hash=token.hashed, is_active=True))
    return token.plain


async def register_user(db: AsyncSession, data: dict[str, Any]) -> tuple[User, str]:
    email = data["email"].strip().lower()
    username = data["username"].strip()

    await _check_unique(db, email, username)

    user = User(**{**data, "email": email, "username": username}, is_admin=False, is_verified=False)
    try:
        async with db.begin_nested():
            db.add(user)
    except IntegrityError:
        # a concurrent registration took the email or username after the check
        log.info("registration lost uniqueness race username=%s", username)
        await _check_unique(db, email, username)
        raise Conflict("A user with this email or username already exists")

    plain = await issue_token(db, user.id)
    await audit(db, actor_id=user.id, action="user.registered", target_type="user", target_id=user.id)
    return user, plain


async def get_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound(f"user {user_id} not found")
    return user


async def update_profile(db: AsyncSession, actor: Actor, user_id: str, data: dict[str, Any]) -> User:
    user = await get_user(db, user_id)
    values = await sanitize_fields(db, actor, data, "user", mode="update", target_id=user_id)
    for field, value in values.items():
        setattr(user, field, value)
    user.updated_by = actor.user_id
    await db.flush()
    return user


async def apply_for_agent(db: AsyncSession, actor: Actor, data: dict[str, Any]) -> User:
    now = utcnow()
    values = {k: v for k, v in data.items() if v is not None}
    user = await conditional_update(
        db, User,
        User.id == actor.user_id,
        or_(User.agent_approval_status.is_(None), User.agent_approval_status == "rejected"),
        values={
            **values,
            "user_type": "agent",
            "agent_approval_status": "pending",
            "agent_applied_at": now,
            "agent_status_reason": "",
            "updated_by": actor.user_id,
            "updated_at": now,
        },
    )
    if user is None:
        current = (await get_user(db, actor.user_id)).agent_approval_status
        raise InvalidStateTransition(
            f"Cannot apply while the application is {current}",
            details={"from": current, "to": "pending"},
        )

    await audit(db, actor_id=actor.user_id, action="agent.applied", target_type="user", target_id=actor.user_id)
    return user


async def list_users(
    db: AsyncSession,
    *,
    search: str | None = None,
    user_type: str | None = None,
    agent_status: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[User], Pagination]:
    stmt = select(User)
    if user_type:
        stmt = stmt.where(User.user_type == user_type)
    if agent_status:
        stmt = stmt.where(User.agent_approval_status == agent_status)
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            User.name.ilike(like), User.last_name.ilike(like), User.email.ilike(like),
            User.username.ilike(like), User.phone_number.ilike(like),
        ))
    rows, pagination = await paginate(db, stmt.order_by(User.created_at.desc()), page=page, limit=limit)
    return list(rows), pagination
