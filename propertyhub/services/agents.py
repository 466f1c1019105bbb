from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.errors import NotFound
from propertyhub.models.agent import Agent
from propertyhub.models.user import User
from propertyhub.schemas.common import Pagination
from propertyhub.services.audit import audit
from propertyhub.services.store import paginate

PROFILE_FIELDS = (
    "name",
    "email",
    "phone_number",
    "company",
    "office_address",
    "license_number",
    "experience_years",
    "specialization_areas",
    "bio",
    "profile_photo",
)


async def get_by_agent_id(db: AsyncSession, agent_id: str, *, active_only: bool = False) -> Agent:
    # public ids are matched case-insensitively
    stmt = select(Agent).where(func.lower(Agent.agent_id) == agent_id.strip().lower())
    if active_only:
        stmt = stmt.where(Agent.is_active.is_(True))
    agent = (await db.execute(stmt)).scalar_one_or_none()
    if agent is None:
        raise NotFound(f"agent {agent_id} not found")
    return agent


async def list_agents(
    db: AsyncSession,
    *,
    search: str | None = None,
    active_only: bool = True,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Agent], Pagination]:
    stmt = select(Agent)
    if active_only:
        stmt = stmt.where(Agent.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            Agent.agent_id.ilike(like),
            Agent.name.ilike(like),
            Agent.email.ilike(like),
            Agent.phone_number.ilike(like),
            Agent.company.ilike(like),
        ))
    rows, pagination = await paginate(db, stmt.order_by(Agent.created_at.desc()), page=page, limit=limit)
    return list(rows), pagination


async def list_applications(
    db: AsyncSession, *, status: str | None = "pending", page: int = 1, limit: int = 20,
) -> tuple[list[User], Pagination]:
    stmt = select(User).where(User.agent_approval_status.is_not(None))
    if status:
        stmt = stmt.where(User.agent_approval_status == status)
    stmt = stmt.order_by(User.agent_applied_at.desc())
    rows, pagination = await paginate(db, stmt, page=page, limit=limit)
    return list(rows), pagination


async def update_agent(db: AsyncSession, agent_id: str, data: dict[str, Any], *, actor_id: str) -> Agent:
    agent = await get_by_agent_id(db, agent_id)
    changed = sorted(k for k in data if k in PROFILE_FIELDS)
    for field in changed:
        setattr(agent, field, data[field])
    agent.updated_by = actor_id
    await db.flush()

    await audit(db, actor_id=actor_id, action="agent.profile_updated", target_type="agent", target_id=agent.id,
                detail={"fields": changed})
    return agent
