"""
Property batches: named, ordered, de-duplicated groups of property units.

Membership changes are written with a compare-and-set on `revision`; a writer
that lost the race re-reads and retries a few times before giving up with
Conflict. Stats are recomputed from the member units on every such write.
"""
from __future__ import annotations

import logging
import re
import secrets
import string
from typing import Any, Awaitable, Callable

from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.errors import Conflict, Forbidden, NotFound, ValidationError
from propertyhub.models.base import utcnow
from propertyhub.models.property_batch import PropertyBatch
from propertyhub.models.property_unit import PropertyUnit
from propertyhub.schemas.common import Pagination
from propertyhub.services.access import authorize_mutation, role_of
from propertyhub.services.audit import audit
from propertyhub.services.auth import Actor
from propertyhub.services.storage import ObjectStore
from propertyhub.services.store import conditional_update, paginate

log = logging.getLogger(__name__)

MAX_WRITE_ATTEMPTS = 5

_B36 = string.digits + string.ascii_uppercase

# fields a caller may set directly; batch_code, owner and stats are derived
EDITABLE_FIELDS = (
    "batch_name",
    "location_name",
    "description",
    "batch_type",
    "image",
    "location_coordinates",
    "tags",
    "is_active",
    "display_order",
)


def _base36(n: int) -> str:
    out = ""
    while True:
        n, r = divmod(n, 36)
        out = _B36[r] + out
        if not n:
            return out.lower()


def make_batch_code(location_name: str) -> str:
    prefix = re.sub(r"\s", "", location_name[:3].upper()) or "GEN"
    rand = "".join(secrets.choice(_B36) for _ in range(4))
    stamp = _base36(int(utcnow().timestamp() * 1000))
    return f"BATCH-{prefix}-{rand}-{stamp}"


def dedupe(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(i for i in ids if i))


def empty_stats() -> dict[str, Any]:
    return {"total_properties": 0, "avg_price": 0, "min_price": 0, "max_price": 0, "property_types": []}


async def compute_batch_stats(db: AsyncSession, unit_ids: list[str]) -> dict[str, Any]:
    stats = empty_stats()
    stats["total_properties"] = len(unit_ids)
    if not unit_ids:
        return stats

    avg_p, min_p, max_p = (await db.execute(
        select(
            func.avg(PropertyUnit.price_amount),
            func.min(PropertyUnit.price_amount),
            func.max(PropertyUnit.price_amount),
        ).where(PropertyUnit.id.in_(unit_ids))
    )).one()
    types = (await db.execute(
        select(PropertyUnit.property_type)
        .where(PropertyUnit.id.in_(unit_ids))
        .distinct()
        .order_by(PropertyUnit.property_type)
    )).scalars().all()

    stats.update({
        "avg_price": round(float(avg_p or 0), 2),
        "min_price": float(min_p or 0),
        "max_price": float(max_p or 0),
        "property_types": list(types),
    })
    return stats


async def _check_units(db: AsyncSession, actor: Actor, unit_ids: list[str]) -> None:
    """Every id must exist; non-admins may only group units they own."""
    if not unit_ids:
        return
    stmt = select(PropertyUnit.id).where(PropertyUnit.id.in_(unit_ids))
    if not actor.is_admin:
        stmt = stmt.where(PropertyUnit.owner_id == actor.user_id)
    valid = set((await db.execute(stmt)).scalars().all())

    invalid = [i for i in unit_ids if i not in valid]
    if invalid:
        raise ValidationError(
            f"Invalid property units: {', '.join(invalid)}",
            details={"invalid": invalid},
        )


async def _load(db: AsyncSession, batch_id: str) -> PropertyBatch:
    batch = (await db.execute(
        select(PropertyBatch)
        .where(PropertyBatch.id == batch_id)
        .execution_options(populate_existing=True)
    )).scalar_one_or_none()
    if batch is None:
        raise NotFound(f"property batch {batch_id} not found")
    return batch


async def _write(
    db: AsyncSession,
    actor: Actor,
    batch_id: str,
    mutate: Callable[[PropertyBatch], Awaitable[dict[str, Any] | None]],
) -> tuple[PropertyBatch, bool]:
    """
    Read, compute new values, and write only if the revision is unchanged.
    `mutate` returns None for a no-op.
    """
    for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
        batch = await _load(db, batch_id)
        authorize_mutation(actor, batch.owner_id)

        values = await mutate(batch)
        if values is None:
            return batch, False

        values.update({"revision": batch.revision + 1, "updated_by": actor.user_id, "updated_at": utcnow()})
        row = await conditional_update(
            db, PropertyBatch,
            PropertyBatch.id == batch_id,
            PropertyBatch.revision == batch.revision,
            values=values,
        )
        if row is not None:
            return row, True
        log.info("batch write lost revision race batch_id=%s attempt=%s", batch_id, attempt)

    raise Conflict("Property batch was modified concurrently, please retry", details={"batch_id": batch_id})


async def create_batch(db: AsyncSession, actor: Actor, data: dict[str, Any]) -> PropertyBatch:
    unit_ids = dedupe(data.pop("property_unit_ids", None) or [])
    await _check_units(db, actor, unit_ids)

    fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    stats = await compute_batch_stats(db, unit_ids)
    for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
        batch = PropertyBatch(
            **fields,
            batch_code=make_batch_code(fields["location_name"]),
            property_unit_ids=unit_ids,
            stats=stats,
            owner_id=actor.user_id,
            revision=0,
            created_by=actor.user_id,
            updated_by=actor.user_id,
        )
        try:
            async with db.begin_nested():
                db.add(batch)
            break
        except IntegrityError:
            log.info("batch code collision code=%s attempt=%s", batch.batch_code, attempt)
    else:
        raise Conflict("Could not allocate a unique batch code, please retry")

    await audit(db, actor_id=actor.user_id, action="batch.created", target_type="property_batch", target_id=batch.id,
                detail={"batch_code": batch.batch_code, "members": len(unit_ids)})
    return batch


async def update_batch(db: AsyncSession, actor: Actor, batch_id: str, data: dict[str, Any]) -> PropertyBatch:
    requested_ids = data.get("property_unit_ids")
    if requested_ids is not None:
        requested_ids = dedupe(requested_ids)
        await _check_units(db, actor, requested_ids)

    async def mutate(batch: PropertyBatch) -> dict[str, Any] | None:
        values = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
        if requested_ids is not None:
            values["property_unit_ids"] = requested_ids
            values["stats"] = await compute_batch_stats(db, requested_ids)
        return values or None

    batch, _ = await _write(db, actor, batch_id, mutate)
    await audit(db, actor_id=actor.user_id, action="batch.updated", target_type="property_batch", target_id=batch_id,
                detail={"fields": sorted(data)})
    return batch


async def add_member(db: AsyncSession, actor: Actor, batch_id: str, unit_id: str) -> tuple[PropertyBatch, bool]:
    async def mutate(batch: PropertyBatch) -> dict[str, Any] | None:
        if unit_id in batch.property_unit_ids:
            return None
        await _check_units(db, actor, [unit_id])
        members = dedupe([*batch.property_unit_ids, unit_id])
        return {"property_unit_ids": members, "stats": await compute_batch_stats(db, members)}

    batch, changed = await _write(db, actor, batch_id, mutate)
    if changed:
        await audit(db, actor_id=actor.user_id, action="batch.member_added", target_type="property_batch",
                    target_id=batch_id, detail={"property_unit_id": unit_id})
    return batch, changed


async def remove_member(db: AsyncSession, actor: Actor, batch_id: str, unit_id: str) -> tuple[PropertyBatch, bool]:
    async def mutate(batch: PropertyBatch) -> dict[str, Any] | None:
        if unit_id not in batch.property_unit_ids:
            return None
        members = [i for i in batch.property_unit_ids if i != unit_id]
        return {"property_unit_ids": members, "stats": await compute_batch_stats(db, members)}

    batch, changed = await _write(db, actor, batch_id, mutate)
    if changed:
        await audit(db, actor_id=actor.user_id, action="batch.member_removed", target_type="property_batch",
                    target_id=batch_id, detail={"property_unit_id": unit_id})
    return batch, changed


async def toggle_active(db: AsyncSession, actor: Actor, batch_id: str) -> PropertyBatch:
    async def mutate(batch: PropertyBatch) -> dict[str, Any]:
        return {"is_active": not batch.is_active}

    batch, _ = await _write(db, actor, batch_id, mutate)
    return batch


async def delete_batch(db: AsyncSession, actor: Actor, batch_id: str, *, store: ObjectStore) -> None:
    batch = await _load(db, batch_id)
    authorize_mutation(actor, batch.owner_id)

    image_id = (batch.image or {}).get("public_id")
    await db.delete(batch)
    await audit(db, actor_id=actor.user_id, action="batch.deleted", target_type="property_batch", target_id=batch_id,
                detail={"batch_code": batch.batch_code})
    if image_id:
        await store.delete(image_id)


async def get_batch(db: AsyncSession, actor: Actor | None, batch_id: str) -> tuple[PropertyBatch, list[PropertyUnit]]:
    batch = await _load(db, batch_id)
    privileged = role_of(actor, batch.owner_id) in ("owner", "admin")
    if not batch.is_active and not privileged:
        raise Forbidden("Access denied to inactive batch")

    units: list[PropertyUnit] = []
    if batch.property_unit_ids:
        stmt = select(PropertyUnit).where(PropertyUnit.id.in_(batch.property_unit_ids))
        if not privileged:
            stmt = stmt.where(PropertyUnit.approval_status == "approved")
        by_id = {u.id: u for u in (await db.execute(stmt)).scalars().all()}
        units = [by_id[i] for i in batch.property_unit_ids if i in by_id]
    return batch, units


async def list_batches(
    db: AsyncSession,
    actor: Actor | None,
    *,
    location: str | None = None,
    batch_type: str | None = None,
    tags: list[str] | None = None,
    search: str | None = None,
    is_active: bool | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[PropertyBatch], Pagination]:
    stmt = select(PropertyBatch)

    if actor is None:
        stmt = stmt.where(PropertyBatch.is_active.is_(True))
    elif not actor.is_admin:
        stmt = stmt.where(or_(PropertyBatch.is_active.is_(True), PropertyBatch.owner_id == actor.user_id))
    if is_active is not None:
        stmt = stmt.where(PropertyBatch.is_active.is_(is_active))

    if location:
        stmt = stmt.where(PropertyBatch.location_name.ilike(f"%{location}%"))
    if batch_type:
        stmt = stmt.where(PropertyBatch.batch_type == batch_type)
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            PropertyBatch.batch_name.ilike(like),
            PropertyBatch.location_name.ilike(like),
            PropertyBatch.description.ilike(like),
            PropertyBatch.batch_code.ilike(like),
        ))

    if tags:
        # tags is a JSON array of strings; match the quoted element in its text form
        tag_text = cast(PropertyBatch.tags, String)
        stmt = stmt.where(or_(*(tag_text.like(f'%"{t}"%') for t in tags)))

    stmt = stmt.order_by(PropertyBatch.display_order.asc(), PropertyBatch.created_at.desc())
    rows, pagination = await paginate(db, stmt, page=page, limit=limit)
    return list(rows), pagination


async def batches_by_location(db: AsyncSession, location: str, *, limit: int = 10) -> list[PropertyBatch]:
    stmt = (
        select(PropertyBatch)
        .where(PropertyBatch.location_name.ilike(f"%{location}%"), PropertyBatch.is_active.is_(True))
        .order_by(PropertyBatch.display_order.asc(), PropertyBatch.created_at.desc())
        .limit(max(1, limit))
    )
    return list((await db.execute(stmt)).scalars().all())


async def detach_unit(db: AsyncSession, unit_id: str, *, actor_id: str) -> int:
    """Remove a deleted unit from every batch that lists it. Returns batches touched."""
    candidates = (await db.execute(
        select(PropertyBatch.id).where(cast(PropertyBatch.property_unit_ids, String).like(f'%"{unit_id}"%'))
    )).scalars().all()

    touched = 0
    for batch_id in candidates:
        for _ in range(MAX_WRITE_ATTEMPTS):
            batch = await _load(db, batch_id)
            if unit_id not in batch.property_unit_ids:
                break
            members = [i for i in batch.property_unit_ids if i != unit_id]
            row = await conditional_update(
                db, PropertyBatch,
                PropertyBatch.id == batch_id,
                PropertyBatch.revision == batch.revision,
                values={
                    "property_unit_ids": members,
                    "stats": await compute_batch_stats(db, members),
                    "revision": batch.revision + 1,
                    "updated_by": actor_id,
                    "updated_at": utcnow(),
                },
            )
            if row is not None:
                touched += 1
                break
        else:
            raise Conflict("Property batch was modified concurrently, please retry", details={"batch_id": batch_id})
    return touched
