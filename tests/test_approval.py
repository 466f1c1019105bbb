import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from propertyhub.core.errors import InvalidStateTransition, NotFound, PreconditionFailed, ValidationError
from propertyhub.models.agent import Agent
from propertyhub.models.audit_log import AuditLog
from propertyhub.models.property_unit import PropertyUnit
from propertyhub.models.user import User
from propertyhub.services import approval
from tests.fixtures_seed import make_unit, make_user


async def _fetch(session_factory, model, pk):
    async with session_factory() as s:
        return await s.get(model, pk)


async def _actions(session_factory, action: str) -> list[AuditLog]:
    async with session_factory() as s:
        return list((await s.execute(select(AuditLog).where(AuditLog.action == action))).scalars().all())


# ---------------------------------------------------------------------------
# listings
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_approve_pending_listing_records_reviewer(db_session, session_factory, admin, owner_a):
    unit = await make_unit(db_session, owner_a["user_id"])

    row = await approval.approve_listing(db_session, PropertyUnit, unit.id, reviewer_id=admin["user_id"])
    await db_session.commit()

    assert row.approval_status == "approved"
    assert row.reviewed_by == admin["user_id"]
    assert row.reviewed_at is not None
    assert len(await _actions(session_factory, "property_unit.approved")) == 1


@pytest.mark.asyncio
async def test_reject_without_reason_fails_and_leaves_state(db_session, session_factory, admin, owner_a):
    unit = await make_unit(db_session, owner_a["user_id"])

    for reason in (None, "", "   "):
        with pytest.raises(ValidationError):
            await approval.reject_listing(db_session, PropertyUnit, unit.id, reviewer_id=admin["user_id"], reason=reason)

    stored = await _fetch(session_factory, PropertyUnit, unit.id)
    assert stored.approval_status == "pending"
    assert stored.rejection_reason == ""


@pytest.mark.asyncio
async def test_rejected_can_be_approved_and_reason_is_cleared(db_session, admin, owner_a):
    unit = await make_unit(db_session, owner_a["user_id"])
    rid = admin["user_id"]

    row = await approval.reject_listing(db_session, PropertyUnit, unit.id, reviewer_id=rid, reason="blurry photos")
    assert row.rejection_reason == "blurry photos"

    row = await approval.approve_listing(db_session, PropertyUnit, unit.id, reviewer_id=rid)
    assert row.approval_status == "approved"
    assert row.rejection_reason == ""


@pytest.mark.asyncio
async def test_re_reject_needs_a_different_reason(db_session, admin, owner_a):
    unit = await make_unit(db_session, owner_a["user_id"])
    rid = admin["user_id"]

    await approval.reject_listing(db_session, PropertyUnit, unit.id, reviewer_id=rid, reason="missing price")
    with pytest.raises(InvalidStateTransition):
        await approval.reject_listing(db_session, PropertyUnit, unit.id, reviewer_id=rid, reason="missing price")

    row = await approval.reject_listing(db_session, PropertyUnit, unit.id, reviewer_id=rid, reason="duplicate")
    assert row.rejection_reason == "duplicate"


@pytest.mark.asyncio
async def test_reset_from_pending_is_illegal(db_session, admin, owner_a):
    unit = await make_unit(db_session, owner_a["user_id"])
    with pytest.raises(InvalidStateTransition) as exc:
        await approval.reset_listing(db_session, PropertyUnit, unit.id, reviewer_id=admin["user_id"])
    assert exc.value.details == {"from": "pending", "to": "pending"}


@pytest.mark.asyncio
async def test_reset_clears_featured_and_reason(db_session, admin, owner_a):
    unit = await make_unit(db_session, owner_a["user_id"])
    rid = admin["user_id"]

    await approval.approve_listing(db_session, PropertyUnit, unit.id, reviewer_id=rid)
    row = await approval.toggle_featured(db_session, PropertyUnit, unit.id, actor_id=rid)
    assert row.is_featured is True

    row = await approval.reset_listing(db_session, PropertyUnit, unit.id, reviewer_id=rid)
    assert row.approval_status == "pending"
    assert row.is_featured is False


@pytest.mark.asyncio
async def test_feature_requires_approval(db_session, session_factory, admin, owner_a):
    unit = await make_unit(db_session, owner_a["user_id"])

    with pytest.raises(PreconditionFailed):
        await approval.toggle_featured(db_session, PropertyUnit, unit.id, actor_id=admin["user_id"])
    assert (await _fetch(session_factory, PropertyUnit, unit.id)).is_featured is False


@pytest.mark.asyncio
async def test_reject_clears_featured(db_session, admin, owner_a):
    unit = await make_unit(db_session, owner_a["user_id"])
    rid = admin["user_id"]

    await approval.approve_listing(db_session, PropertyUnit, unit.id, reviewer_id=rid)
    await approval.toggle_featured(db_session, PropertyUnit, unit.id, actor_id=rid)
    row = await approval.reject_listing(db_session, PropertyUnit, unit.id, reviewer_id=rid, reason="sold elsewhere")

    assert row.approval_status == "rejected"
    assert row.is_featured is False


@pytest.mark.asyncio
async def test_toggle_verified_has_no_precondition(db_session, admin, owner_a):
    unit = await make_unit(db_session, owner_a["user_id"])
    row = await approval.toggle_verified(db_session, PropertyUnit, unit.id, actor_id=admin["user_id"])
    assert row.is_verified is True
    row = await approval.toggle_verified(db_session, PropertyUnit, unit.id, actor_id=admin["user_id"])
    assert row.is_verified is False


@pytest.mark.asyncio
async def test_unknown_listing_and_status(db_session, admin, owner_a):
    with pytest.raises(NotFound):
        await approval.approve_listing(db_session, PropertyUnit, "pu_missing", reviewer_id=admin["user_id"])

    unit = await make_unit(db_session, owner_a["user_id"])
    with pytest.raises(ValidationError):
        await approval.set_listing_status(db_session, PropertyUnit, unit.id, "archived", reviewer_id=admin["user_id"])


@pytest.mark.asyncio
async def test_featured_implies_approved_under_race(db_session, session_factory, admin, owner_a):
    unit = await make_unit(db_session, owner_a["user_id"])
    rid = admin["user_id"]
    await approval.approve_listing(db_session, PropertyUnit, unit.id, reviewer_id=rid)
    await db_session.commit()

    async def feature():
        async with session_factory() as s:
            await approval.toggle_featured(s, PropertyUnit, unit.id, actor_id=rid)
            await s.commit()

    async def reject():
        async with session_factory() as s:
            await approval.reject_listing(s, PropertyUnit, unit.id, reviewer_id=rid, reason="policy")
            await s.commit()

    results = await asyncio.gather(feature(), reject(), return_exceptions=True)
    assert all(r is None or isinstance(r, PreconditionFailed) for r in results)

    stored = await _fetch(session_factory, PropertyUnit, unit.id)
    assert stored.approval_status == "rejected"
    assert stored.is_featured is False


# ---------------------------------------------------------------------------
# agents
# ---------------------------------------------------------------------------

async def _applicant(session, username: str) -> str:
    return (await make_user(session, username, user_type="agent", agent_approval_status="pending"))["user_id"]


@pytest.mark.asyncio
async def test_agent_ids_are_sequential_from_the_counter_floor(db_session, admin):
    first = await _applicant(db_session, "agent_one")
    second = await _applicant(db_session, "agent_two")

    _, a1 = await approval.approve_agent(db_session, first, reviewer_id=admin["user_id"])
    _, a2 = await approval.approve_agent(db_session, second, reviewer_id=admin["user_id"])

    assert a1.agent_id == "cleartitle100001"
    assert a2.agent_id == "cleartitle100002"
    assert a1.is_active and a1.approved_by == admin["user_id"]


@pytest.mark.asyncio
async def test_concurrent_agent_approvals_get_distinct_consecutive_ids(db_session, session_factory, admin):
    user_ids = [await _applicant(db_session, f"agent_{i:02d}") for i in range(50)]

    async def approve(uid: str) -> str:
        async with session_factory() as s:
            _, agent = await approval.approve_agent(s, uid, reviewer_id=admin["user_id"])
            return agent.agent_id

    agent_ids = await asyncio.gather(*(approve(uid) for uid in user_ids))

    numbers = sorted(int(a.removeprefix("cleartitle")) for a in agent_ids)
    assert numbers == list(range(100001, 100051))


@pytest.mark.asyncio
async def test_approving_twice_is_illegal(db_session, admin):
    uid = await _applicant(db_session, "agent_twice")
    await approval.approve_agent(db_session, uid, reviewer_id=admin["user_id"])
    with pytest.raises(InvalidStateTransition):
        await approval.approve_agent(db_session, uid, reviewer_id=admin["user_id"])


@pytest.mark.asyncio
async def test_user_without_application_cannot_be_approved(db_session, admin, owner_a):
    with pytest.raises(InvalidStateTransition):
        await approval.approve_agent(db_session, owner_a["user_id"], reviewer_id=admin["user_id"])
    with pytest.raises(NotFound):
        await approval.approve_agent(db_session, "usr_missing", reviewer_id=admin["user_id"])


@pytest.mark.asyncio
async def test_suspend_and_reactivate_cascade_to_agent(db_session, session_factory, admin):
    uid = await _applicant(db_session, "agent_cascade")
    rid = admin["user_id"]
    _, agent = await approval.approve_agent(db_session, uid, reviewer_id=rid)

    with pytest.raises(ValidationError):
        await approval.suspend_agent(db_session, uid, reviewer_id=rid, reason="")

    user = await approval.suspend_agent(db_session, uid, reviewer_id=rid, reason="complaints")
    assert user.agent_approval_status == "suspended"
    assert (await _fetch(session_factory, Agent, agent.id)).is_active is False

    user = await approval.reactivate_agent(db_session, uid, reviewer_id=rid)
    assert user.agent_approval_status == "approved"
    assert user.agent_status_reason == ""
    assert (await _fetch(session_factory, Agent, agent.id)).is_active is True


@pytest.mark.asyncio
async def test_reapproval_after_reset_keeps_agent_id(db_session, session_factory, admin):
    uid = await _applicant(db_session, "agent_reset")
    rid = admin["user_id"]
    _, agent = await approval.approve_agent(db_session, uid, reviewer_id=rid)

    user = await approval.reset_agent(db_session, uid, reviewer_id=rid)
    assert user.agent_approval_status == "pending"
    assert (await _fetch(session_factory, Agent, agent.id)).is_active is False

    _, again = await approval.approve_agent(db_session, uid, reviewer_id=rid)
    assert again.agent_id == agent.agent_id
    assert again.is_active is True


@pytest.mark.asyncio
async def test_reject_agent_requires_reason(db_session, session_factory, admin):
    uid = await _applicant(db_session, "agent_reject")
    with pytest.raises(ValidationError):
        await approval.reject_agent(db_session, uid, reviewer_id=admin["user_id"], reason=None)

    user = await approval.reject_agent(db_session, uid, reviewer_id=admin["user_id"], reason="license expired")
    assert user.agent_approval_status == "rejected"
    assert user.agent_status_reason == "license expired"
    assert user.agent_reviewed_by == admin["user_id"]

    async with session_factory() as s:
        assert (await s.execute(select(Agent).where(Agent.user_id == uid))).scalar_one_or_none() is None


@pytest.mark.asyncio
async def test_cascade_failure_keeps_primary_transition(db_session, session_factory, admin, monkeypatch):
    uid = await _applicant(db_session, "agent_saga")
    rid = admin["user_id"]
    _, agent = await approval.approve_agent(db_session, uid, reviewer_id=rid)

    def broken_update(*args, **kwargs):
        raise SQLAlchemyError("agents table unavailable")

    monkeypatch.setattr(approval, "update", broken_update)

    user = await approval.suspend_agent(db_session, uid, reviewer_id=rid, reason="fraud check")
    assert user.agent_approval_status == "suspended"

    assert (await _fetch(session_factory, User, uid)).agent_approval_status == "suspended"
    assert (await _fetch(session_factory, Agent, agent.id)).is_active is True
    failures = await _actions(session_factory, "agent.cascade_failed")
    assert [f.target_id for f in failures] == [uid]
