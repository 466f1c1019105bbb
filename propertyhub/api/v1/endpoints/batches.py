from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.config import settings
from propertyhub.core.db import get_db
from propertyhub.schemas.batch import BatchCreate, BatchMember, BatchOut, BatchUpdate
from propertyhub.schemas.common import ok
from propertyhub.schemas.listing import PropertyUnitOut
from propertyhub.services import batches
from propertyhub.services.auth import Actor, get_actor, get_optional_actor
from propertyhub.services.storage import LocalObjectStore, get_object_store

router = APIRouter(prefix="/property-batches")


@router.get("")
async def list_batches(
    location: str | None = None,
    batch_type: str | None = None,
    tags: str | None = Query(None, description="comma separated"),
    search: str | None = None,
    is_active: bool | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1),
    actor: Actor | None = Depends(get_optional_actor),
    db: AsyncSession = Depends(get_db),
):
    tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else None
    rows, pagination = await batches.list_batches(
        db, actor,
        location=location, batch_type=batch_type, tags=tag_list, search=search,
        is_active=is_active, page=page, limit=limit,
    )
    return ok([BatchOut.model_validate(b) for b in rows], pagination=pagination)


@router.get("/location/{location}")
async def by_location(location: str, limit: int = Query(10, ge=1, le=100), db: AsyncSession = Depends(get_db)):
    rows = await batches.batches_by_location(db, location, limit=limit)
    return ok([BatchOut.model_validate(b) for b in rows])


@router.get("/{batch_id}")
async def get_batch(batch_id: str, actor: Actor | None = Depends(get_optional_actor), db: AsyncSession = Depends(get_db)):
    batch, units = await batches.get_batch(db, actor, batch_id)
    out = BatchOut.model_validate(batch).model_dump()
    out["property_units"] = [PropertyUnitOut.model_validate(u) for u in units]
    return ok(out)


@router.post("", status_code=201)
async def create_batch(payload: BatchCreate, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    batch = await batches.create_batch(db, actor, payload.model_dump())
    await db.commit()
    return ok(BatchOut.model_validate(batch), message="Property batch created")


@router.patch("/{batch_id}")
async def update_batch(batch_id: str, payload: BatchUpdate, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    batch = await batches.update_batch(db, actor, batch_id, payload.model_dump(exclude_unset=True, exclude_none=True))
    await db.commit()
    return ok(BatchOut.model_validate(batch), message="Property batch updated")


@router.delete("/{batch_id}")
async def delete_batch(
    batch_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    store: LocalObjectStore = Depends(get_object_store),
):
    await batches.delete_batch(db, actor, batch_id, store=store)
    await db.commit()
    return ok({"id": batch_id}, message="Property batch deleted")


@router.post("/{batch_id}/add-unit")
async def add_unit(batch_id: str, payload: BatchMember, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    batch, changed = await batches.add_member(db, actor, batch_id, payload.property_unit_id)
    await db.commit()
    message = "Property unit added to batch" if changed else "Property unit already in batch"
    return ok(BatchOut.model_validate(batch), message=message, changed=changed)


@router.post("/{batch_id}/remove-unit")
async def remove_unit(batch_id: str, payload: BatchMember, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    batch, changed = await batches.remove_member(db, actor, batch_id, payload.property_unit_id)
    await db.commit()
    message = "Property unit removed from batch" if changed else "Property unit not in batch"
    return ok(BatchOut.model_validate(batch), message=message, changed=changed)


@router.patch("/{batch_id}/toggle-active")
async def toggle_active(batch_id: str, actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    batch = await batches.toggle_active(db, actor, batch_id)
    await db.commit()
    state = "activated" if batch.is_active else "deactivated"
    return ok(BatchOut.model_validate(batch), message=f"Property batch {state}")
