import logging

import pytest
from sqlalchemy import select

from propertyhub.core.errors import Forbidden
from propertyhub.models.audit_log import AuditLog
from propertyhub.services.access import authorize_mutation, role_of, sanitize_fields
from propertyhub.services.auth import Actor


def _actor(user_id: str = "usr_owner", *, is_admin: bool = False) -> Actor:
    return Actor(user_id=user_id, api_key_id="key_1", is_admin=is_admin, username=user_id)


def test_roles_relative_to_owner():
    assert role_of(None, "usr_owner") == "anonymous"
    assert role_of(_actor(), "usr_owner") == "owner"
    assert role_of(_actor("usr_other"), "usr_owner") == "anonymous"
    assert role_of(_actor("usr_other", is_admin=True), "usr_owner") == "admin"


def test_authorize_mutation_rejects_non_owner():
    with pytest.raises(Forbidden):
        authorize_mutation(_actor("usr_other"), "usr_owner")
    with pytest.raises(Forbidden):
        authorize_mutation(None, "usr_owner")
    assert authorize_mutation(_actor(), "usr_owner") == "owner"


@pytest.mark.asyncio
async def test_create_forces_defaults_and_records_attempt(db_session, caplog):
    requested = {"title": "Villa", "approval_status": "approved", "is_featured": True}

    with caplog.at_level(logging.WARNING, logger="propertyhub.security"):
        out = await sanitize_fields(db_session, _actor(), requested, "property_unit", mode="create")
    await db_session.commit()

    assert out == {
        "title": "Villa",
        "approval_status": "pending",
        "is_featured": False,
        "is_verified": False,
        "rejection_reason": "",
    }
    assert requested["approval_status"] == "approved"
    assert "approval_status,is_featured" in caplog.text

    rows = (await db_session.execute(
        select(AuditLog).where(AuditLog.action == "privileged_fields.ignored")
    )).scalars().all()
    assert len(rows) == 1
    assert rows[0].actor_id == "usr_owner"
    assert rows[0].detail == {"fields": ["approval_status", "is_featured"], "mode": "create"}


@pytest.mark.asyncio
async def test_update_drops_privileged_fields(db_session):
    out = await sanitize_fields(
        db_session, _actor(), {"price_amount": 10, "is_verified": True}, "property_unit",
        mode="update", target_id="pu_1",
    )
    assert out == {"price_amount": 10}


@pytest.mark.asyncio
async def test_user_entity_protects_admin_flag(db_session):
    out = await sanitize_fields(db_session, _actor(), {"name": "Asha", "is_admin": True}, "user", mode="update")
    assert out == {"name": "Asha"}


@pytest.mark.asyncio
async def test_clean_request_writes_no_audit(db_session):
    out = await sanitize_fields(db_session, _actor(), {"title": "Plot"}, "property", mode="update")
    await db_session.commit()

    assert out == {"title": "Plot"}
    rows = (await db_session.execute(select(AuditLog))).scalars().all()
    assert rows == []


@pytest.mark.asyncio
async def test_admin_passes_through(db_session):
    admin = _actor("usr_admin", is_admin=True)

    out = await sanitize_fields(db_session, admin, {"title": "Villa", "is_featured": True}, "property_unit", mode="create")
    assert out["is_featured"] is True
    assert out["approval_status"] == "pending"

    out = await sanitize_fields(db_session, admin, {"approval_status": "approved"}, "property_unit", mode="update")
    assert out == {"approval_status": "approved"}
