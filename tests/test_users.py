import asyncio

import pytest

from propertyhub.core.errors import Conflict
from propertyhub.services import users
from tests.fixtures_seed import make_user

REGISTRATION = {
    "username": "asha",
    "name": "Asha",
    "lastName": "Menon",
    "email": "Asha@Example.com",
    "phoneNumber": "+91 98470 12345",
    "userType": "seller",
}


@pytest.mark.asyncio
async def test_register_returns_token_once(client):
    r = await client.post("/v1/users", json=REGISTRATION)
    assert r.status_code == 201, r.text
    body = r.json()["data"]
    assert body["user"]["email"] == "asha@example.com"
    assert body["user"]["is_admin"] is False

    r = await client.get("/v1/users/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert r.status_code == 200
    assert r.json()["data"]["username"] == "asha"
    assert "token" not in r.json()["data"]


@pytest.mark.asyncio
async def test_register_rejects_duplicates(client):
    assert (await client.post("/v1/users", json=REGISTRATION)).status_code == 201

    r = await client.post("/v1/users", json={**REGISTRATION, "username": "asha2"})
    assert r.status_code == 400
    assert r.json()["kind"] == "conflict"
    assert r.json()["details"] == {"field": "email"}


@pytest.mark.asyncio
async def test_concurrent_duplicate_registration_is_a_conflict(client):
    responses = await asyncio.gather(
        client.post("/v1/users", json=REGISTRATION),
        client.post("/v1/users", json={**REGISTRATION, "username": "asha2"}),
    )
    assert sorted(r.status_code for r in responses) == [201, 400]
    loser = next(r for r in responses if r.status_code == 400)
    assert loser.json()["kind"] == "conflict"


@pytest.mark.asyncio
async def test_insert_race_after_check_maps_to_conflict(db_session, monkeypatch):
    await make_user(db_session, "asha", email="asha@example.com")
    real_check = users._check_unique
    calls = []

    async def check_passes_once(db, email, username):
        calls.append(email)
        if len(calls) > 1:
            await real_check(db, email, username)

    monkeypatch.setattr(users, "_check_unique", check_passes_once)

    with pytest.raises(Conflict) as exc:
        await users.register_user(db_session, {
            "username": "asha2", "name": "Asha", "email": "asha@example.com", "phone_number": "+91 98470 12345",
        })
    assert exc.value.details == {"field": "email"}
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_register_validates_input(client):
    r = await client.post("/v1/users", json={**REGISTRATION, "email": "not-an-email"})
    assert r.status_code == 400
    assert r.json()["kind"] == "validation_error"
    assert r.json()["details"]["errors"]


@pytest.mark.asyncio
async def test_profile_update_cannot_grant_admin(client, owner_a):
    r = await client.patch(
        "/v1/users/me",
        json={"company": "Coastline Realty", "isAdmin": True, "isVerified": True},
        headers=owner_a["headers"],
    )
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["company"] == "Coastline Realty"
    assert data["is_admin"] is False
    assert data["is_verified"] is False


@pytest.mark.asyncio
async def test_agent_application_lifecycle(client, owner_a):
    r = await client.post("/v1/users/me/agent-application", json={"company": "Coastline"}, headers=owner_a["headers"])
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["agent_approval_status"] == "pending"
    assert data["user_type"] == "agent"
    assert data["agent_applied_at"] is not None

    r = await client.post("/v1/users/me/agent-application", json={}, headers=owner_a["headers"])
    assert r.status_code == 400
    assert r.json()["kind"] == "invalid_state_transition"


@pytest.mark.asyncio
async def test_rejected_applicant_may_reapply(client, db_session):
    user = await make_user(db_session, "retry", agent_approval_status="rejected", agent_status_reason="no license")

    r = await client.post("/v1/users/me/agent-application", json={}, headers=user["headers"])
    assert r.status_code == 200
    assert r.json()["data"]["agent_approval_status"] == "pending"
    assert r.json()["data"]["agent_status_reason"] == ""


@pytest.mark.asyncio
async def test_admin_user_listing(client, admin, owner_a, owner_b):
    assert (await client.get("/v1/admin/users", headers=owner_a["headers"])).status_code == 403

    r = await client.get("/v1/admin/users", params={"search": "owner"}, headers=admin["headers"])
    assert r.status_code == 200
    assert {u["username"] for u in r.json()["data"]} == {"owner_a", "owner_b"}
