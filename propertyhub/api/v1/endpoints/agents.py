from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.config import settings
from propertyhub.core.db import get_db
from propertyhub.schemas.agent import AgentOut
from propertyhub.schemas.common import ok
from propertyhub.services.agents import get_by_agent_id, list_agents

router = APIRouter()


@router.get("/agents")
async def public_agents(
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1),
    db: AsyncSession = Depends(get_db),
):
    agents, pagination = await list_agents(db, search=search, active_only=True, page=page, limit=limit)
    return ok([AgentOut.model_validate(a) for a in agents], pagination=pagination)


@router.get("/agents/{agent_id}")
async def public_agent(agent_id: str, db: AsyncSession = Depends(get_db)):
    return ok(AgentOut.model_validate(await get_by_agent_id(db, agent_id, active_only=True)))
