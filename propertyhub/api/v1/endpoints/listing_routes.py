"""
Route builders shared by /property-units and /properties.

Both tables have the same lifecycle, so each operation is defined once here
and mounted per model.
"""
import json
from typing import Literal

import pydantic
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.config import settings
from propertyhub.core.db import get_db
from propertyhub.core.errors import ValidationError
from propertyhub.models.property_unit import PropertyUnit
from propertyhub.schemas.common import IdList, ok
from propertyhub.schemas.listing import ApprovalUpdate, BulkListingUpdate, DisplayOrderUpdate
from propertyhub.services import approval, listings
from propertyhub.services.analytics import listing_stats
from propertyhub.services.auth import Actor, get_actor, get_optional_actor, require_admin
from propertyhub.services.listings import MEDIA_FOLDER, TYPE_COLUMN
from propertyhub.services.storage import LocalObjectStore, get_object_store

Sort = Literal["default", "newest", "price_asc", "price_desc"]


def _parse_payload(schema: type[pydantic.BaseModel], raw: str) -> pydantic.BaseModel:
    try:
        return schema.model_validate(json.loads(raw))
    except json.JSONDecodeError as e:
        raise ValidationError("payload must be a JSON object") from e
    except pydantic.ValidationError as e:
        raise ValidationError(
            "Request validation failed",
            details={"errors": [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]},
        ) from e


def build_listing_router(*, model, path: str, create_schema, update_schema, out_schema) -> APIRouter:
    router = APIRouter()

    @router.get(path)
    async def list_listings(
        search: str | None = None,
        city: str | None = None,
        type_: str | None = Query(None, alias="type"),
        listing_type: str | None = None,
        approval_status: str | None = None,
        availability: str | None = None,
        parent_property_id: str | None = None,
        for_sale: bool | None = None,
        is_featured: bool | None = None,
        is_verified: bool | None = None,
        min_price: float | None = Query(None, ge=0),
        max_price: float | None = Query(None, ge=0),
        sort: Sort = "default",
        page: int = Query(1, ge=1),
        limit: int = Query(settings.default_page_size, ge=1),
        actor: Actor | None = Depends(get_optional_actor),
        db: AsyncSession = Depends(get_db),
    ):
        filters = {
            "city": city,
            "type": type_,
            "listing_type": listing_type,
            "approval_status": approval_status,
            "availability": availability,
            "parent_property_id": parent_property_id,
            "for_sale": for_sale,
            "is_featured": is_featured,
            "is_verified": is_verified,
            "min_price": min_price,
            "max_price": max_price,
        }
        rows, pagination = await listings.list_listings(
            db, model, actor, filters=filters, search=search, sort=sort, page=page, limit=limit,
        )
        return ok([out_schema.model_validate(r) for r in rows], pagination=pagination)

    @router.get(f"/users/me{path}")
    async def my_listings(
        page: int = Query(1, ge=1),
        limit: int = Query(settings.default_page_size, ge=1),
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        rows, pagination = await listings.list_listings(
            db, model, actor, filters={"owner_id": actor.user_id}, sort="newest", page=page, limit=limit,
        )
        return ok([out_schema.model_validate(r) for r in rows], pagination=pagination)

    @router.get(f"{path}/{{listing_id}}")
    async def get_listing(
        listing_id: str,
        actor: Actor | None = Depends(get_optional_actor),
        db: AsyncSession = Depends(get_db),
    ):
        row = await listings.get_listing(db, model, actor, listing_id)
        out = out_schema.model_validate(row)
        if model is PropertyUnit:
            await listings.record_view(db, listing_id)
        return ok(out)

    @router.post(path, status_code=201)
    async def create_listing(
        payload: str = Form(...),
        images: list[UploadFile] | None = File(None),
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
        store: LocalObjectStore = Depends(get_object_store),
    ):
        data = _parse_payload(create_schema, payload).model_dump(exclude_unset=True, exclude_none=True)

        files = [(await f.read(), f.filename or "", f.content_type) for f in (images or [])]
        uploaded = await listings.upload_images(store, files, folder=MEDIA_FOLDER[model])
        try:
            row = await listings.create_listing(db, model, actor, data, uploaded=uploaded)
            await db.commit()
        except Exception:
            await store.delete_many([u["public_id"] for u in uploaded])
            raise
        return ok(out_schema.model_validate(row), message="Listing created")

    @router.patch(f"{path}/{{listing_id}}")
    async def update_listing(
        listing_id: str,
        payload: update_schema,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        data = payload.model_dump(exclude_unset=True, exclude_none=True)
        row = await listings.update_listing(db, model, actor, listing_id, data)
        await db.commit()
        return ok(out_schema.model_validate(row), message="Listing updated")

    @router.delete(f"{path}/{{listing_id}}")
    async def delete_listing(
        listing_id: str,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
        store: LocalObjectStore = Depends(get_object_store),
    ):
        media_deleted = await listings.delete_listing(db, model, actor, listing_id, store=store)
        await db.commit()
        return ok({"id": listing_id, "media_deleted": media_deleted}, message="Listing deleted")

    return router


def build_admin_router(*, model, path: str, out_schema) -> APIRouter:
    router = APIRouter(prefix=f"/admin{path}")

    @router.get("/stats")
    async def stats(_: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
        return ok(await listing_stats(db, model=model, type_column=TYPE_COLUMN[model]))

    @router.put("/{listing_id}/approval")
    async def set_approval(
        listing_id: str,
        payload: ApprovalUpdate,
        actor: Actor = Depends(require_admin),
        db: AsyncSession = Depends(get_db),
    ):
        row = await approval.set_listing_status(
            db, model, listing_id, payload.approval_status,
            reviewer_id=actor.user_id, reason=payload.rejection_reason,
        )
        await db.commit()
        return ok(out_schema.model_validate(row), message=f"Listing {payload.approval_status}")

    @router.patch("/{listing_id}/toggle-featured")
    async def toggle_featured(listing_id: str, actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
        row = await approval.toggle_featured(db, model, listing_id, actor_id=actor.user_id)
        await db.commit()
        return ok(out_schema.model_validate(row))

    @router.patch("/{listing_id}/toggle-verified")
    async def toggle_verified(listing_id: str, actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
        row = await approval.toggle_verified(db, model, listing_id, actor_id=actor.user_id)
        await db.commit()
        return ok(out_schema.model_validate(row))

    @router.post("/bulk-update")
    async def bulk_update(payload: BulkListingUpdate, actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
        result = await listings.bulk_update(db, model, actor, payload.ids, payload.updates)
        await db.commit()
        return ok(result, message=f"{result['modified']} listings updated")

    @router.post("/bulk-delete")
    async def bulk_delete(
        payload: IdList,
        actor: Actor = Depends(require_admin),
        db: AsyncSession = Depends(get_db),
        store: LocalObjectStore = Depends(get_object_store),
    ):
        result = await listings.bulk_delete(db, model, actor, payload.ids, store=store)
        await db.commit()
        return ok(result, message=f"{result['deleted']} listings deleted")

    if model is PropertyUnit:
        @router.put("/display-order")
        async def display_order(payload: DisplayOrderUpdate, actor: Actor = Depends(require_admin), db: AsyncSession = Depends(get_db)):
            changed = await listings.set_display_order(db, actor, [(o.id, o.display_order) for o in payload.orders])
            await db.commit()
            return ok({"updated": changed})

    return router
