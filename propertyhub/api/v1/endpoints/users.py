from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.config import settings
from propertyhub.core.db import get_db
from propertyhub.schemas.common import ok
from propertyhub.schemas.user import AdminUserOut, AgentApplication, UserOut, UserRegister, UserUpdate
from propertyhub.services.likes import like_counts_by_user
from propertyhub.services.auth import Actor, get_actor, require_admin
from propertyhub.services.users import apply_for_agent, get_user, list_users, register_user, update_profile

router = APIRouter()


@router.post("/users", status_code=201)
async def register(payload: UserRegister, db: AsyncSession = Depends(get_db)):
    user, token = await register_user(db, payload.model_dump())
    await db.commit()
    # the plain token is only ever returned here
    return ok({"user": UserOut.model_validate(user), "token": token}, message="User registered")


@router.get("/users/me")
async def me(actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return ok(UserOut.model_validate(await get_user(db, actor.user_id)))


@router.patch("/users/me")
async def update_me(payload: UserUpdate, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    user = await update_profile(db, actor, actor.user_id, payload.model_dump(exclude_unset=True, exclude_none=True))
    await db.commit()
    return ok(UserOut.model_validate(user), message="Profile updated")


@router.post("/users/me/agent-application")
async def apply_agent(payload: AgentApplication, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    user = await apply_for_agent(db, actor, payload.model_dump(exclude_unset=True, exclude_none=True))
    await db.commit()
    return ok(UserOut.model_validate(user), message="Agent application submitted")


@router.get("/admin/users")
async def admin_list_users(
    search: str | None = None,
    user_type: str | None = None,
    agent_status: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1),
    _: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    users, pagination = await list_users(
        db, search=search, user_type=user_type, agent_status=agent_status, page=page, limit=limit,
    )
    counts = await like_counts_by_user(db, [u.id for u in users])
    return ok(
        [AdminUserOut.model_validate(u).model_copy(update={"like_count": counts[u.id]}) for u in users],
        pagination=pagination,
    )
