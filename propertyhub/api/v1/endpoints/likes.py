from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.config import settings
from propertyhub.core.db import get_db
from propertyhub.schemas.common import ok
from propertyhub.schemas.listing import PropertyUnitOut
from propertyhub.services import likes
from propertyhub.services.auth import Actor, get_actor

router = APIRouter()


@router.get("/users/me/likes")
async def my_likes(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    units, pagination = await likes.liked_units(db, actor.user_id, page=page, limit=limit)
    return ok([PropertyUnitOut.model_validate(u) for u in units], pagination=pagination)


@router.get("/property-units/{unit_id}/like")
async def like_status(unit_id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    return ok(await likes.like_status(db, actor, unit_id))


@router.post("/property-units/{unit_id}/like")
async def like(unit_id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    result = await likes.like_unit(db, actor, unit_id)
    await db.commit()
    return ok(result, message="Property added to favorites" if result["changed"] else "Property already in favorites")


@router.delete("/property-units/{unit_id}/like")
async def unlike(unit_id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    result = await likes.unlike_unit(db, actor, unit_id)
    await db.commit()
    return ok(result, message="Property removed from favorites" if result["changed"] else "Property not in favorites")


@router.post("/property-units/{unit_id}/like/toggle")
async def toggle(unit_id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    result = await likes.toggle_like(db, actor, unit_id)
    await db.commit()
    return ok(result)
