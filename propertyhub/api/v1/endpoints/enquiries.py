from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.config import settings
from propertyhub.core.db import get_db
from propertyhub.schemas.click import Timeframe
from propertyhub.schemas.common import ok
from propertyhub.schemas.enquiry import (
    EnquiryBulkStatus,
    EnquiryCreate,
    EnquiryNotes,
    EnquiryOut,
    EnquiryStatus,
    EnquiryStatusUpdate,
)
from propertyhub.services import enquiries
from propertyhub.services.auth import Actor, get_actor, get_optional_actor, require_admin

router = APIRouter()


@router.post("/enquiries", status_code=201)
async def create_enquiry(
    payload: EnquiryCreate,
    actor: Actor | None = Depends(get_optional_actor),
    db: AsyncSession = Depends(get_db),
):
    enquiry = await enquiries.create_enquiry(db, payload.model_dump(), user_id=actor.user_id if actor else None)
    await db.commit()
    return ok(EnquiryOut.model_validate(enquiry), message="Enquiry submitted successfully")


@router.get("/users/me/enquiries")
async def my_enquiries(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    rows, pagination = await enquiries.list_enquiries(db, user_id=actor.user_id, page=page, limit=limit)
    return ok([EnquiryOut.model_validate(e) for e in rows], pagination=pagination)


@router.get("/admin/enquiries")
async def admin_enquiries(
    status: EnquiryStatus | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1),
    _: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    rows, pagination = await enquiries.list_enquiries(db, status=status, search=search, page=page, limit=limit)
    return ok([EnquiryOut.model_validate(e) for e in rows], pagination=pagination)


@router.get("/admin/enquiries/stats")
async def admin_enquiry_stats(
    timeframe: Timeframe = "30d",
    _: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return ok(await enquiries.enquiry_stats(db, timeframe=timeframe))


@router.put("/admin/enquiries/bulk-update")
async def bulk_update_enquiries(
    payload: EnquiryBulkStatus,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await enquiries.bulk_update_status(db, payload.enquiry_ids, payload.status, actor_id=actor.user_id)
    await db.commit()
    return ok(result, message=f"{result['modified']} enquiries updated")


@router.post("/admin/enquiries/{enquiry_id}/notes")
async def add_enquiry_notes(
    enquiry_id: str,
    payload: EnquiryNotes,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    enquiry = await enquiries.add_notes(db, enquiry_id, payload.notes, actor_id=actor.user_id)
    await db.commit()
    return ok(EnquiryOut.model_validate(enquiry), message="Notes saved")


@router.patch("/admin/enquiries/{enquiry_id}")
async def update_enquiry(
    enquiry_id: str,
    payload: EnquiryStatusUpdate,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    enquiry = await enquiries.update_enquiry_status(db, enquiry_id, payload.status, actor_id=actor.user_id)
    await db.commit()
    return ok(EnquiryOut.model_validate(enquiry), message="Enquiry updated")


@router.delete("/admin/enquiries/{enquiry_id}")
async def delete_enquiry(enquiry_id: str, actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
    await enquiries.delete_enquiry(db, enquiry_id, actor_id=actor.user_id)
    await db.commit()
    return ok({"id": enquiry_id}, message="Enquiry deleted")
