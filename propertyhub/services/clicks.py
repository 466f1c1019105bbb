from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.models.click_event import ClickEvent
from propertyhub.services.auth import Actor
from propertyhub.services.geo import GeoResolver

log = logging.getLogger(__name__)


async def track_click(
    db: AsyncSession,
    data: dict[str, Any],
    *,
    actor: Actor | None,
    ip: str | None,
    user_agent: str | None,
    geo: GeoResolver,
) -> ClickEvent | None:
    """
    Append one click event. Returns None when the store rejected the write;
    tracking never fails the page that fired it.
    """
    ctx = await geo.resolve(ip, user_agent)
    event = ClickEvent(
        **data,
        user_id=actor.user_id if actor else None,
        user_name=actor.username if actor else None,
        ip_address=ip,
        user_agent=user_agent,
        country=ctx.country,
        city=ctx.city,
        device_type=ctx.device_type,
    )
    try:
        db.add(event)
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.exception("click tracking write failed item_type=%s", data.get("item_type"))
        return None
    return event
