"""
CRUD for the two listing tables (properties and property units).

Writes go through the mutation guard first; privileged fields an admin
sends are applied through the approval state machine rather than written
directly, so there is one code path per transition.
"""
from __future__ import annotations

import logging
import re
from typing import Any
from uuid import uuid4

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.errors import InvalidStateTransition, NotFound, PreconditionFailed, UploadError, ValidationError
from propertyhub.models.base import utcnow
from propertyhub.models.like import Like
from propertyhub.models.property import Property
from propertyhub.models.property_unit import PropertyUnit
from propertyhub.schemas.common import Pagination
from propertyhub.services import approval
from propertyhub.services.access import SENSITIVE_FIELDS, authorize_mutation, role_of, sanitize_fields
from propertyhub.services.approval import ENTITY_TYPES, ListingModel
from propertyhub.services.audit import audit
from propertyhub.services.auth import Actor
from propertyhub.services.batches import detach_unit
from propertyhub.services.storage import ObjectStore
from propertyhub.services.store import paginate

log = logging.getLogger(__name__)

PRICE_COLUMN = {PropertyUnit: "price_amount", Property: "price"}
TYPE_COLUMN = {PropertyUnit: "property_type", Property: "category"}
SEARCH_COLUMNS = {
    PropertyUnit: ("title", "description", "city", "address", "unit_number"),
    Property: ("title", "description", "city", "property_location"),
}
MEDIA_FOLDER = {PropertyUnit: "property-units", Property: "properties"}

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")

# keys accepted by the admin bulk update
BULK_FIELDS = {
    "approval_status": "approval_status",
    "approvalStatus": "approval_status",
    "is_featured": "is_featured",
    "isFeatured": "is_featured",
    "is_verified": "is_verified",
    "isVerified": "is_verified",
    "availability": "availability",
}


def slugify(text: str) -> str:
    slug = re.sub(r"[^a-z0-9\s-]", "", text.lower())
    slug = re.sub(r"\s+", "-", slug.strip())
    return re.sub(r"-+", "-", slug).strip("-") or "listing"


def make_slug(title: str) -> str:
    return f"{slugify(title)[:200]}-{uuid4().hex[:8]}"


def _check_listing_invariants(values: dict[str, Any]) -> None:
    status = values.get("approval_status", "pending")
    if values.get("is_featured") and status != "approved":
        raise ValidationError("Only approved listings can be featured")
    if status == "rejected" and not (values.get("rejection_reason") or "").strip():
        raise ValidationError("A reason is required")
    if status != "rejected":
        values["rejection_reason"] = ""


async def upload_images(store: ObjectStore, files: list[tuple[bytes, str, str | None]], *, folder: str) -> list[dict[str, str]]:
    """
    Upload (data, filename, content_type) tuples. On any failure the objects
    already stored by this call are removed before UploadError propagates.
    """
    uploaded: list[dict[str, str]] = []
    try:
        for data, filename, content_type in files:
            if content_type and content_type not in ALLOWED_IMAGE_TYPES:
                raise UploadError(f"Unsupported image type: {content_type}", details={"filename": filename})
            ref = await store.upload(data, folder=folder, filename=filename)
            uploaded.append({**ref, "caption": ""})
    except UploadError:
        await store.delete_many([u["public_id"] for u in uploaded])
        raise
    return uploaded


async def get_or_404(db: AsyncSession, model: ListingModel, listing_id: str):
    row = await db.get(model, listing_id)
    if row is None:
        raise NotFound(f"{ENTITY_TYPES[model]} {listing_id} not found")
    return row


async def create_listing(
    db: AsyncSession,
    model: ListingModel,
    actor: Actor,
    data: dict[str, Any],
    *,
    uploaded: list[dict[str, str]] | None = None,
):
    entity = ENTITY_TYPES[model]
    values = await sanitize_fields(db, actor, data, entity, mode="create")
    _check_listing_invariants(values)

    if model is PropertyUnit:
        parent_id = values.get("parent_property_id")
        if parent_id and await db.get(Property, parent_id) is None:
            raise ValidationError(f"Parent property {parent_id} not found")
        values["slug"] = make_slug(values["title"])

    values["images"] = [*(values.get("images") or []), *(uploaded or [])]
    if values["approval_status"] != "pending":
        values.update(reviewed_by=actor.user_id, reviewed_at=utcnow())

    row = model(**values, owner_id=actor.user_id, created_by=actor.user_id, updated_by=actor.user_id)
    db.add(row)
    await db.flush()

    await audit(db, actor_id=actor.user_id, action=f"{entity}.created", target_type=entity, target_id=row.id)
    log.info("%s created id=%s owner=%s", entity, row.id, actor.user_id)
    return row


async def update_listing(db: AsyncSession, model: ListingModel, actor: Actor, listing_id: str, data: dict[str, Any]):
    entity = ENTITY_TYPES[model]
    row = await get_or_404(db, model, listing_id)
    authorize_mutation(actor, row.owner_id)

    values = await sanitize_fields(db, actor, data, entity, mode="update", target_id=listing_id)
    privileged = {k: values.pop(k) for k in list(values) if k in SENSITIVE_FIELDS[entity]}

    if model is PropertyUnit and "title" in values and values["title"] != row.title:
        values["slug"] = make_slug(values["title"])

    if values:
        for field, value in values.items():
            setattr(row, field, value)
        row.updated_by = actor.user_id
        await db.flush()
        await audit(db, actor_id=actor.user_id, action=f"{entity}.updated", target_type=entity, target_id=listing_id,
                    detail={"fields": sorted(values)})

    # only admins get here with privileged fields left
    return await _apply_privileged(db, model, actor, row, privileged)


async def _apply_privileged(db: AsyncSession, model: ListingModel, actor: Actor, row, privileged: dict[str, Any]):
    status = privileged.get("approval_status")
    if status and status != row.approval_status:
        row = await approval.set_listing_status(
            db, model, row.id, status, reviewer_id=actor.user_id, reason=privileged.get("rejection_reason"),
        )
    elif status == "rejected" and privileged.get("rejection_reason"):
        row = await approval.reject_listing(
            db, model, row.id, reviewer_id=actor.user_id, reason=privileged["rejection_reason"],
        )

    if "is_featured" in privileged and privileged["is_featured"] != row.is_featured:
        row = await approval.toggle_featured(db, model, row.id, actor_id=actor.user_id)
    if "is_verified" in privileged and privileged["is_verified"] != row.is_verified:
        row = await approval.toggle_verified(db, model, row.id, actor_id=actor.user_id)
    return row


async def _remove(db: AsyncSession, model: ListingModel, row, *, actor_id: str) -> list[str]:
    media = [img.get("public_id") for img in (row.images or []) if img.get("public_id")]
    if model is PropertyUnit:
        await detach_unit(db, row.id, actor_id=actor_id)
        await db.execute(
            delete(Like).where(Like.property_unit_id == row.id).execution_options(synchronize_session=False)
        )
    else:
        await db.execute(
            update(PropertyUnit)
            .where(PropertyUnit.parent_property_id == row.id)
            .values(parent_property_id=None)
            .execution_options(synchronize_session=False)
        )
    await db.delete(row)
    return media


async def delete_listing(db: AsyncSession, model: ListingModel, actor: Actor, listing_id: str, *, store: ObjectStore) -> int:
    entity = ENTITY_TYPES[model]
    row = await get_or_404(db, model, listing_id)
    authorize_mutation(actor, row.owner_id)

    media = await _remove(db, model, row, actor_id=actor.user_id)
    await audit(db, actor_id=actor.user_id, action=f"{entity}.deleted", target_type=entity, target_id=listing_id)
    await db.flush()
    return await store.delete_many(media)


async def bulk_update(db: AsyncSession, model: ListingModel, actor: Actor, ids: list[str], updates: dict[str, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in updates.items():
        if key not in BULK_FIELDS:
            raise ValidationError(f"Field not allowed in bulk update: {key}", details={"allowed": sorted(set(BULK_FIELDS.values()))})
        fields[BULK_FIELDS[key]] = value
    if "availability" in fields and model is not PropertyUnit:
        raise ValidationError("availability applies to property units only")
    if not fields:
        raise ValidationError("No updates given")

    unique_ids = list(dict.fromkeys(ids))
    modified, failed = 0, []
    for listing_id in unique_ids:
        try:
            # one SAVEPOINT per item: a failed item keeps none of its writes
            async with db.begin_nested():
                row = await get_or_404(db, model, listing_id)
                before = (row.approval_status, row.is_featured, row.is_verified, getattr(row, "availability", None))
                if "availability" in fields:
                    row.availability = fields["availability"]
                    row.updated_by = actor.user_id
                    await db.flush()
                row = await _apply_privileged(db, model, actor, row, fields)
                after = (row.approval_status, row.is_featured, row.is_verified, getattr(row, "availability", None))
            if before != after:
                modified += 1
        except (NotFound, ValidationError, InvalidStateTransition, PreconditionFailed) as e:
            failed.append({"id": listing_id, "kind": e.kind, "message": e.message})

    return {"matched": len(unique_ids) - sum(1 for f in failed if f["kind"] == "not_found"), "modified": modified, "failed": failed}


async def bulk_delete(db: AsyncSession, model: ListingModel, actor: Actor, ids: list[str], *, store: ObjectStore) -> dict[str, int]:
    entity = ENTITY_TYPES[model]
    rows = (await db.execute(select(model).where(model.id.in_(ids)))).scalars().all()

    media: list[str] = []
    for row in rows:
        media.extend(await _remove(db, model, row, actor_id=actor.user_id))
        await audit(db, actor_id=actor.user_id, action=f"{entity}.deleted", target_type=entity, target_id=row.id,
                    detail={"bulk": True})
    await db.flush()

    return {"deleted": len(rows), "media_deleted": await store.delete_many(media)}


async def set_display_order(db: AsyncSession, actor: Actor, orders: list[tuple[str, int]]) -> int:
    changed = 0
    for unit_id, position in orders:
        result = await db.execute(
            update(PropertyUnit)
            .where(PropertyUnit.id == unit_id)
            .values(display_order=position, updated_by=actor.user_id, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        changed += result.rowcount or 0
    return changed


async def get_listing(db: AsyncSession, model: ListingModel, actor: Actor | None, listing_id: str):
    row = await get_or_404(db, model, listing_id)
    if row.approval_status != "approved" and role_of(actor, row.owner_id) == "anonymous":
        raise NotFound(f"{ENTITY_TYPES[model]} {listing_id} not found")
    return row


async def record_view(db: AsyncSession, unit_id: str) -> None:
    """View counter bump; never fails the read it belongs to."""
    try:
        await db.execute(
            update(PropertyUnit)
            .where(PropertyUnit.id == unit_id)
            .values(view_count=PropertyUnit.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        log.warning("view count update failed unit_id=%s", unit_id, exc_info=True)


async def list_listings(
    db: AsyncSession,
    model: ListingModel,
    actor: Actor | None,
    *,
    filters: dict[str, Any],
    search: str | None = None,
    sort: str = "default",
    page: int = 1,
    limit: int = 20,
) -> tuple[list, Pagination]:
    stmt = select(model)
    is_admin = actor is not None and actor.is_admin
    # owners listing their own rows see every approval state
    unrestricted = is_admin or (actor is not None and filters.get("owner_id") == actor.user_id)

    if not unrestricted:
        stmt = stmt.where(model.approval_status == "approved")
        if model is PropertyUnit:
            stmt = stmt.where(PropertyUnit.availability == "available")
    if unrestricted and filters.get("approval_status"):
        stmt = stmt.where(model.approval_status == filters["approval_status"])

    price = getattr(model, PRICE_COLUMN[model])
    type_col = getattr(model, TYPE_COLUMN[model])

    if filters.get("city"):
        stmt = stmt.where(model.city.ilike(f"%{filters['city']}%"))
    if filters.get("type"):
        stmt = stmt.where(type_col == filters["type"])
    if filters.get("min_price") is not None:
        stmt = stmt.where(price >= filters["min_price"])
    if filters.get("max_price") is not None:
        stmt = stmt.where(price <= filters["max_price"])
    if filters.get("is_featured") is not None:
        stmt = stmt.where(model.is_featured.is_(filters["is_featured"]))
    if filters.get("is_verified") is not None:
        stmt = stmt.where(model.is_verified.is_(filters["is_verified"]))
    if filters.get("owner_id"):
        stmt = stmt.where(model.owner_id == filters["owner_id"])
    if model is PropertyUnit:
        if filters.get("listing_type"):
            stmt = stmt.where(PropertyUnit.listing_type == filters["listing_type"])
        if unrestricted and filters.get("availability"):
            stmt = stmt.where(PropertyUnit.availability == filters["availability"])
        if filters.get("parent_property_id"):
            stmt = stmt.where(PropertyUnit.parent_property_id == filters["parent_property_id"])
    elif filters.get("for_sale") is not None:
        stmt = stmt.where(Property.for_sale.is_(filters["for_sale"]))

    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(*(getattr(model, c).ilike(like) for c in SEARCH_COLUMNS[model])))

    if sort == "price_asc":
        stmt = stmt.order_by(price.asc(), model.created_at.desc())
    elif sort == "price_desc":
        stmt = stmt.order_by(price.desc(), model.created_at.desc())
    elif sort == "newest" or model is Property:
        stmt = stmt.order_by(model.is_featured.desc(), model.created_at.desc())
    else:
        stmt = stmt.order_by(PropertyUnit.display_order.asc(), PropertyUnit.created_at.desc())

    rows, pagination = await paginate(db, stmt, page=page, limit=limit)
    return list(rows), pagination
