import re

import pytest

from propertyhub.core.errors import Conflict, Forbidden, ValidationError
from propertyhub.services import batches
from propertyhub.services.auth import Actor
from tests.fixtures_seed import make_unit

IMAGE = {"url": "/media/batches/cover.jpg", "public_id": "batches/cover.jpg"}


def _as_actor(seeded: dict, *, is_admin: bool = False) -> Actor:
    return Actor(user_id=seeded["user_id"], api_key_id="key", is_admin=is_admin, username=seeded["username"])


async def _batch(db, actor: Actor, unit_ids=(), **fields):
    data = {
        "batch_name": fields.pop("batch_name", "Kochi waterfront"),
        "location_name": fields.pop("location_name", "Kochi"),
        "image": IMAGE,
        "property_unit_ids": list(unit_ids),
        **fields,
    }
    batch = await batches.create_batch(db, actor, data)
    await db.commit()
    return batch


def test_batch_code_format():
    code = batches.make_batch_code("Kochi")
    assert re.fullmatch(r"BATCH-KOC-[0-9A-Z]{4}-[0-9a-z]+", code)
    assert batches.make_batch_code("a b").startswith("BATCH-AB-")
    assert batches.make_batch_code("Kochi") != code


def test_dedupe_keeps_first_occurrence_order():
    assert batches.dedupe(["b", "a", "b", "", "c", "a"]) == ["b", "a", "c"]


@pytest.mark.asyncio
async def test_create_dedupes_members_and_computes_stats(db_session, owner_a):
    actor = _as_actor(owner_a)
    u1 = await make_unit(db_session, owner_a["user_id"], price_amount=4_000_000, property_type="Apartment")
    u2 = await make_unit(db_session, owner_a["user_id"], price_amount=6_000_000, property_type="Villa")

    batch = await _batch(db_session, actor, [u1.id, u2.id, u1.id])

    assert batch.property_unit_ids == [u1.id, u2.id]
    assert batch.stats == {
        "total_properties": 2,
        "avg_price": 5_000_000.0,
        "min_price": 4_000_000.0,
        "max_price": 6_000_000.0,
        "property_types": ["Apartment", "Villa"],
    }
    assert batch.owner_id == owner_a["user_id"]


@pytest.mark.asyncio
async def test_create_rejects_unknown_or_foreign_units(db_session, owner_a, owner_b):
    foreign = await make_unit(db_session, owner_b["user_id"])

    with pytest.raises(ValidationError) as exc:
        await _batch(db_session, _as_actor(owner_a), [foreign.id, "pu_missing"])
    assert exc.value.details["invalid"] == [foreign.id, "pu_missing"]


@pytest.mark.asyncio
async def test_add_twice_is_a_noop(db_session, owner_a):
    actor = _as_actor(owner_a)
    unit = await make_unit(db_session, owner_a["user_id"])
    batch = await _batch(db_session, actor)

    batch, changed = await batches.add_member(db_session, actor, batch.id, unit.id)
    assert changed is True
    assert batch.property_unit_ids == [unit.id]
    assert batch.revision == 1

    batch, changed = await batches.add_member(db_session, actor, batch.id, unit.id)
    assert changed is False
    assert batch.property_unit_ids == [unit.id]
    assert batch.stats["total_properties"] == 1
    assert batch.revision == 1


@pytest.mark.asyncio
async def test_remove_non_member_reports_unchanged(db_session, owner_a):
    actor = _as_actor(owner_a)
    unit = await make_unit(db_session, owner_a["user_id"])
    batch = await _batch(db_session, actor, [unit.id])

    _, changed = await batches.remove_member(db_session, actor, batch.id, "pu_other")
    assert changed is False

    batch, changed = await batches.remove_member(db_session, actor, batch.id, unit.id)
    assert changed is True
    assert batch.property_unit_ids == []
    assert batch.stats == batches.empty_stats()


@pytest.mark.asyncio
async def test_non_owner_cannot_mutate(db_session, owner_a, owner_b, admin):
    batch = await _batch(db_session, _as_actor(owner_a))

    with pytest.raises(Forbidden):
        await batches.toggle_active(db_session, _as_actor(owner_b), batch.id)

    batch = await batches.toggle_active(db_session, _as_actor(admin, is_admin=True), batch.id)
    assert batch.is_active is False


@pytest.mark.asyncio
async def test_lost_revision_race_gives_conflict(db_session, owner_a, monkeypatch):
    actor = _as_actor(owner_a)
    unit = await make_unit(db_session, owner_a["user_id"])
    batch = await _batch(db_session, actor)
    calls = []

    async def always_stale(*args, **kwargs):
        calls.append(1)
        return None

    monkeypatch.setattr(batches, "conditional_update", always_stale)

    with pytest.raises(Conflict):
        await batches.add_member(db_session, actor, batch.id, unit.id)
    assert len(calls) == batches.MAX_WRITE_ATTEMPTS


@pytest.mark.asyncio
async def test_batch_code_collision_draws_a_new_code(db_session, owner_a, monkeypatch):
    actor = _as_actor(owner_a)
    codes = iter(["BATCH-KOC-AAAA-1", "BATCH-KOC-AAAA-1", "BATCH-KOC-BBBB-1"])
    monkeypatch.setattr(batches, "make_batch_code", lambda location_name: next(codes))

    first = await _batch(db_session, actor)
    second = await _batch(db_session, actor, batch_name="Kochi hills")
    assert (first.batch_code, second.batch_code) == ("BATCH-KOC-AAAA-1", "BATCH-KOC-BBBB-1")


@pytest.mark.asyncio
async def test_batch_code_never_unique_gives_conflict(db_session, owner_a, monkeypatch):
    actor = _as_actor(owner_a)
    monkeypatch.setattr(batches, "make_batch_code", lambda location_name: "BATCH-KOC-AAAA-1")
    await _batch(db_session, actor)

    with pytest.raises(Conflict):
        await _batch(db_session, actor, batch_name="Kochi hills")


@pytest.mark.asyncio
async def test_inactive_batch_hidden_from_strangers(db_session, owner_a, owner_b):
    owner = _as_actor(owner_a)
    approved = await make_unit(db_session, owner_a["user_id"], approval_status="approved")
    pending = await make_unit(db_session, owner_a["user_id"])
    batch = await _batch(db_session, owner, [approved.id, pending.id])

    _, units = await batches.get_batch(db_session, None, batch.id)
    assert [u.id for u in units] == [approved.id]

    _, units = await batches.get_batch(db_session, owner, batch.id)
    assert [u.id for u in units] == [approved.id, pending.id]

    await batches.toggle_active(db_session, owner, batch.id)
    await db_session.commit()

    with pytest.raises(Forbidden):
        await batches.get_batch(db_session, _as_actor(owner_b), batch.id)
    listed, _ = await batches.list_batches(db_session, None)
    assert listed == []
    listed, _ = await batches.list_batches(db_session, owner)
    assert [b.id for b in listed] == [batch.id]


@pytest.mark.asyncio
async def test_list_filters_by_tag(db_session, owner_a):
    actor = _as_actor(owner_a)
    beach = await _batch(db_session, actor, tags=["beach", "luxury"])
    await _batch(db_session, actor, batch_name="Hills", tags=["hills"])

    listed, pagination = await batches.list_batches(db_session, None, tags=["beach"])
    assert [b.id for b in listed] == [beach.id]
    assert pagination.total == 1


@pytest.mark.asyncio
async def test_detach_unit_updates_every_batch(db_session, owner_a):
    actor = _as_actor(owner_a)
    keep = await make_unit(db_session, owner_a["user_id"], price_amount=1_000_000)
    gone = await make_unit(db_session, owner_a["user_id"], price_amount=9_000_000)
    first = await _batch(db_session, actor, [keep.id, gone.id])
    second = await _batch(db_session, actor, [gone.id])

    touched = await batches.detach_unit(db_session, gone.id, actor_id=owner_a["user_id"])
    await db_session.commit()

    assert touched == 2
    first, _ = await batches.get_batch(db_session, actor, first.id)
    second, _ = await batches.get_batch(db_session, actor, second.id)
    assert first.property_unit_ids == [keep.id]
    assert first.stats["max_price"] == 1_000_000.0
    assert second.property_unit_ids == []
