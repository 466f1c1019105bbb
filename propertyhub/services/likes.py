"""
Favorites: a user likes a property unit at most once.

Liking twice and unliking something never liked are both no-ops reported
through the `changed` flag; the unique (user, unit) key settles races.
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.models.like import Like
from propertyhub.models.property_unit import PropertyUnit
from propertyhub.schemas.common import Pagination
from propertyhub.services.auth import Actor
from propertyhub.services.listings import get_listing
from propertyhub.services.store import paginate

log = logging.getLogger(__name__)


async def like_count(db: AsyncSession, unit_id: str) -> int:
    return (await db.execute(
        select(func.count()).select_from(Like).where(Like.property_unit_id == unit_id)
    )).scalar_one()


async def has_liked(db: AsyncSession, user_id: str, unit_id: str) -> bool:
    found = await db.execute(
        select(Like.id).where(Like.user_id == user_id, Like.property_unit_id == unit_id)
    )
    return found.first() is not None


async def like_status(db: AsyncSession, actor: Actor, unit_id: str) -> dict[str, Any]:
    await get_listing(db, PropertyUnit, actor, unit_id)
    return {
        "property_unit_id": unit_id,
        "liked": await has_liked(db, actor.user_id, unit_id),
        "like_count": await like_count(db, unit_id),
    }


async def like_unit(db: AsyncSession, actor: Actor, unit_id: str) -> dict[str, Any]:
    await get_listing(db, PropertyUnit, actor, unit_id)

    changed = False
    if not await has_liked(db, actor.user_id, unit_id):
        try:
            async with db.begin_nested():
                db.add(Like(user_id=actor.user_id, property_unit_id=unit_id))
            changed = True
            log.info("unit liked unit_id=%s user_id=%s", unit_id, actor.user_id)
        except IntegrityError:
            log.info("like already recorded unit_id=%s user_id=%s", unit_id, actor.user_id)

    return {**await like_status(db, actor, unit_id), "changed": changed}


async def unlike_unit(db: AsyncSession, actor: Actor, unit_id: str) -> dict[str, Any]:
    result = await db.execute(
        delete(Like)
        .where(Like.user_id == actor.user_id, Like.property_unit_id == unit_id)
        .execution_options(synchronize_session=False)
    )
    return {
        "property_unit_id": unit_id,
        "liked": False,
        "like_count": await like_count(db, unit_id),
        "changed": bool(result.rowcount),
    }


async def toggle_like(db: AsyncSession, actor: Actor, unit_id: str) -> dict[str, Any]:
    if await has_liked(db, actor.user_id, unit_id):
        return await unlike_unit(db, actor, unit_id)
    return await like_unit(db, actor, unit_id)


async def liked_units(db: AsyncSession, user_id: str, *, page: int = 1, limit: int = 20) -> tuple[list[PropertyUnit], Pagination]:
    """Units the user liked, newest like first; units since unapproved stay visible only to their owner."""
    stmt = (
        select(PropertyUnit)
        .join(Like, Like.property_unit_id == PropertyUnit.id)
        .where(Like.user_id == user_id)
        .where(or_(PropertyUnit.approval_status == "approved", PropertyUnit.owner_id == user_id))
        .order_by(Like.created_at.desc(), Like.id)
    )
    rows, pagination = await paginate(db, stmt, page=page, limit=limit)
    return list(rows), pagination


async def like_counts_by_user(db: AsyncSession, user_ids: list[str]) -> dict[str, int]:
    if not user_ids:
        return {}
    rows = await db.execute(
        select(Like.user_id, func.count()).where(Like.user_id.in_(user_ids)).group_by(Like.user_id)
    )
    counts = dict(rows.all())
    return {uid: counts.get(uid, 0) for uid in user_ids}

