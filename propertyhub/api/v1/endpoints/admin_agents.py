from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.config import settings
from propertyhub.core.db import get_db
from propertyhub.schemas.agent import AgentApplicationOut, AgentApprove, AgentNotes, AgentOut, AgentReview, AgentUpdate
from propertyhub.schemas.common import ok
from propertyhub.services import approval
from propertyhub.services.agents import get_by_agent_id, list_agents, list_applications, update_agent
from propertyhub.services.analytics import agent_stats
from propertyhub.services.auth import Actor, require_admin

router = APIRouter(prefix="/admin/agents")

ApplicationStatus = Literal["pending", "approved", "rejected", "suspended"]


@router.get("/applications")
async def applications(
    status: ApplicationStatus | None = "pending",
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1),
    _: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    users, pagination = await list_applications(db, status=status, page=page, limit=limit)
    return ok([AgentApplicationOut.from_user(u) for u in users], pagination=pagination)


@router.get("/search")
async def search_agents(
    q: str = Query(..., min_length=1),
    include_inactive: bool = True,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1),
    _: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    agents, pagination = await list_agents(db, search=q, active_only=not include_inactive, page=page, limit=limit)
    return ok([AgentOut.model_validate(a) for a in agents], pagination=pagination)


@router.get("/stats")
async def stats(_: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return ok(await agent_stats(db))


@router.get("/{agent_id}")
async def get_agent(agent_id: str, _: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    return ok(AgentOut.model_validate(await get_by_agent_id(db, agent_id)))


@router.patch("/{agent_id}")
async def patch_agent(
    agent_id: str,
    payload: AgentUpdate,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    agent = await update_agent(db, agent_id, payload.model_dump(exclude_unset=True, exclude_none=True), actor_id=actor.user_id)
    await db.commit()
    return ok(AgentOut.model_validate(agent), message="Agent updated")


@router.put("/{user_id}/approve")
async def approve(user_id: str, payload: AgentApprove, actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    profile = payload.profile.model_dump() if payload.profile else None
    user, agent = await approval.approve_agent(db, user_id, reviewer_id=actor.user_id, notes=payload.notes, profile=profile)
    return ok(
        {"application": AgentApplicationOut.from_user(user), "agent": AgentOut.model_validate(agent)},
        message=f"Agent approved as {agent.agent_id}",
    )


@router.put("/{user_id}/reject")
async def reject(user_id: str, payload: AgentReview, actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    user = await approval.reject_agent(db, user_id, reviewer_id=actor.user_id, reason=payload.reason, notes=payload.notes)
    return ok(AgentApplicationOut.from_user(user), message="Agent application rejected")


@router.put("/{user_id}/suspend")
async def suspend(user_id: str, payload: AgentReview, actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    user = await approval.suspend_agent(db, user_id, reviewer_id=actor.user_id, reason=payload.reason, notes=payload.notes)
    return ok(AgentApplicationOut.from_user(user), message="Agent suspended")


@router.put("/{user_id}/reactivate")
async def reactivate(user_id: str, payload: AgentNotes, actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    user = await approval.reactivate_agent(db, user_id, reviewer_id=actor.user_id, notes=payload.notes)
    return ok(AgentApplicationOut.from_user(user), message="Agent reactivated")


@router.put("/{user_id}/pending")
async def reset(user_id: str, payload: AgentNotes, actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    user = await approval.reset_agent(db, user_id, reviewer_id=actor.user_id, notes=payload.notes)
    return ok(AgentApplicationOut.from_user(user), message="Agent application reset to pending")
