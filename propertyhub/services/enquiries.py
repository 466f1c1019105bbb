from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.errors import NotFound, ValidationError
from propertyhub.models.base import utcnow
from propertyhub.models.enquiry import ENQUIRY_STATUSES, Enquiry
from propertyhub.models.user import User
from propertyhub.schemas.common import Pagination
from propertyhub.services.analytics import timeframe_range
from propertyhub.services.audit import audit
from propertyhub.services.store import paginate


async def create_enquiry(db: AsyncSession, data: dict[str, Any], *, user_id: str | None = None) -> Enquiry:
    user_id = user_id or data.pop("user_id", None)
    if user_id and await db.get(User, user_id) is None:
        raise ValidationError("Invalid user ID")

    enquiry = Enquiry(
        name=data["name"].strip(),
        phone_number=data["phone_number"].strip(),
        message=data["message"].strip(),
        user_id=user_id,
        status="new",
        created_by=user_id,
        updated_by=user_id,
    )
    db.add(enquiry)
    await db.flush()
    return enquiry


async def list_enquiries(
    db: AsyncSession,
    *,
    user_id: str | None = None,
    status: str | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Enquiry], Pagination]:
    stmt = select(Enquiry)
    if user_id:
        stmt = stmt.where(Enquiry.user_id == user_id)
    if status:
        stmt = stmt.where(Enquiry.status == status)
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(Enquiry.name.ilike(like), Enquiry.phone_number.ilike(like), Enquiry.message.ilike(like)))
    rows, pagination = await paginate(db, stmt.order_by(Enquiry.created_at.desc()), page=page, limit=limit)
    return list(rows), pagination


async def _get(db: AsyncSession, enquiry_id: str) -> Enquiry:
    enquiry = await db.get(Enquiry, enquiry_id)
    if enquiry is None:
        raise NotFound(f"enquiry {enquiry_id} not found")
    return enquiry


async def update_enquiry_status(db: AsyncSession, enquiry_id: str, status: str, *, actor_id: str) -> Enquiry:
    enquiry = await _get(db, enquiry_id)
    previous = enquiry.status
    enquiry.status = status
    enquiry.updated_by = actor_id
    await db.flush()
    await audit(db, actor_id=actor_id, action="enquiry.status", target_type="enquiry", target_id=enquiry_id,
                detail={"from": previous, "to": status})
    return enquiry


async def delete_enquiry(db: AsyncSession, enquiry_id: str, *, actor_id: str) -> None:
    enquiry = await _get(db, enquiry_id)
    await db.delete(enquiry)
    await audit(db, actor_id=actor_id, action="enquiry.deleted", target_type="enquiry", target_id=enquiry_id)


async def add_notes(db: AsyncSession, enquiry_id: str, notes: str, *, actor_id: str) -> Enquiry:
    enquiry = await _get(db, enquiry_id)
    enquiry.admin_notes = notes.strip()
    enquiry.updated_by = actor_id
    await db.flush()
    await audit(db, actor_id=actor_id, action="enquiry.notes", target_type="enquiry", target_id=enquiry_id)
    return enquiry


async def bulk_update_status(db: AsyncSession, ids: list[str], status: str, *, actor_id: str) -> dict[str, int]:
    unique_ids = list(dict.fromkeys(ids))
    result = await db.execute(
        update(Enquiry)
        .where(Enquiry.id.in_(unique_ids), Enquiry.status != status)
        .values(status=status, updated_by=actor_id, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    matched = (await db.execute(
        select(func.count()).select_from(Enquiry).where(Enquiry.id.in_(unique_ids))
    )).scalar_one()
    await audit(db, actor_id=actor_id, action="enquiry.bulk_status", target_type="enquiry", target_id=None,
                detail={"ids": unique_ids, "to": status})
    return {"matched": matched, "modified": result.rowcount or 0}


async def enquiry_stats(db: AsyncSession, *, timeframe: str = "30d", now: datetime | None = None) -> dict[str, int]:
    """Enquiry counts per status created inside the timeframe; every status is present."""
    start, end = timeframe_range(timeframe, now)
    rows = await db.execute(
        select(Enquiry.status, func.count())
        .where(Enquiry.created_at >= start, Enquiry.created_at <= end)
        .group_by(Enquiry.status)
    )
    stats = {status: 0 for status in ENQUIRY_STATUSES}
    for status, count in rows.all():
        stats[status] = count
    return {"total": sum(stats.values()), **stats}
