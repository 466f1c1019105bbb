import json

import pytest
from sqlalchemy import func, select

from propertyhub.models.audit_log import AuditLog
from tests.fixtures_seed import make_unit


@pytest.mark.asyncio
async def test_e2e_listing_review_batch_and_clicks(client, session_factory, admin, owner_a, owner_b):
    # 1) owner A lists a unit, trying to self-approve
    payload = {
        "title": "Sea facing 2BHK",
        "city": "Kochi",
        "address": "Fort Kochi",
        "priceAmount": 6200000,
        "propertyType": "Apartment",
        "approvalStatus": "approved",
    }
    r = await client.post("/v1/property-units", data={"payload": json.dumps(payload)}, headers=owner_a["headers"])
    assert r.status_code == 201, r.text
    unit = r.json()["data"]
    assert unit["approval_status"] == "pending"

    # 2) nobody else sees it yet, owner B cannot touch it
    assert (await client.get("/v1/property-units")).json()["data"] == []
    r = await client.put(
        f"/v1/admin/property-units/{unit['id']}/approval",
        headers=owner_b["headers"],
        json={"approvalStatus": "approved"},
    )
    assert r.status_code == 403

    # 3) admin approves and features it
    r = await client.put(
        f"/v1/admin/property-units/{unit['id']}/approval",
        headers=admin["headers"],
        json={"approvalStatus": "approved"},
    )
    assert r.status_code == 200, r.text
    r = await client.patch(f"/v1/admin/property-units/{unit['id']}/toggle-featured", headers=admin["headers"])
    assert r.json()["data"]["is_featured"] is True

    r = await client.get("/v1/property-units")
    assert [u["id"] for u in r.json()["data"]] == [unit["id"]]

    # 4) owner A groups it into a batch; adding it again is a no-op
    r = await client.post(
        "/v1/property-batches",
        headers=owner_a["headers"],
        json={
            "batchName": "Fort Kochi picks",
            "locationName": "Kochi",
            "image": {"url": "/media/batches/fort.jpg", "publicId": "batches/fort.jpg"},
            "tags": ["heritage"],
        },
    )
    assert r.status_code == 201, r.text
    batch = r.json()["data"]
    assert batch["batch_code"].startswith("BATCH-KOC-")

    r = await client.post(f"/v1/property-batches/{batch['id']}/add-unit", headers=owner_a["headers"],
                          json={"propertyUnitId": unit["id"]})
    assert r.json()["changed"] is True
    assert r.json()["data"]["stats"]["total_properties"] == 1
    r = await client.post(f"/v1/property-batches/{batch['id']}/add-unit", headers=owner_a["headers"],
                          json={"propertyUnitId": unit["id"]})
    assert r.json()["changed"] is False

    r = await client.post(f"/v1/property-batches/{batch['id']}/add-unit", headers=owner_b["headers"],
                          json={"propertyUnitId": unit["id"]})
    assert r.status_code == 403

    r = await client.get(f"/v1/property-batches/{batch['id']}")
    assert [u["id"] for u in r.json()["data"]["property_units"]] == [unit["id"]]
    r = await client.get("/v1/property-batches", params={"tags": "heritage,sunset"})
    assert [b["id"] for b in r.json()["data"]] == [batch["id"]]

    # 5) a visitor clicks the contact button; admin sees it
    r = await client.post("/v1/clicks", json={
        "itemType": "phone",
        "itemValue": "+919847012345",
        "displayName": "Call owner",
        "pageUrl": f"/property-units/{unit['slug']}",
        "sessionId": "visitor-1",
        "propertyId": unit["id"],
    })
    assert r.json()["success"] is True
    r = await client.get("/v1/admin/clicks/popular", params={"timeframe": "24h"}, headers=admin["headers"])
    assert r.json()["data"][0]["clicks"] == 1

    # 6) rejecting un-features; the public list is empty again
    r = await client.put(
        f"/v1/admin/property-units/{unit['id']}/approval",
        headers=admin["headers"],
        json={"approvalStatus": "rejected", "rejectionReason": "Photos do not match address"},
    )
    assert r.json()["data"]["is_featured"] is False
    assert (await client.get("/v1/property-units")).json()["data"] == []

    async with session_factory() as s:
        actions = (await s.execute(
            select(AuditLog.action, func.count()).group_by(AuditLog.action)
        )).all()
    counts = dict(actions)
    assert counts["privileged_fields.ignored"] == 1
    assert counts["property_unit.approved"] == 1
    assert counts["property_unit.rejected"] == 1


@pytest.mark.asyncio
async def test_e2e_agent_application_review(client, admin):
    r = await client.post("/v1/users", json={
        "username": "meera",
        "name": "Meera",
        "email": "meera@example.com",
        "phoneNumber": "+91 98470 00001",
    })
    assert r.status_code == 201, r.text
    user_id = r.json()["data"]["user"]["id"]
    headers = {"Authorization": f"Bearer {r.json()['data']['token']}"}

    r = await client.post("/v1/users/me/agent-application", json={"company": "Meera Homes"}, headers=headers)
    assert r.json()["data"]["agent_approval_status"] == "pending"

    r = await client.get("/v1/admin/agents/applications", headers=admin["headers"])
    assert [a["user_id"] for a in r.json()["data"]] == [user_id]

    # approving is admin-only
    assert (await client.put(f"/v1/admin/agents/{user_id}/approve", json={}, headers=headers)).status_code == 403

    r = await client.put(
        f"/v1/admin/agents/{user_id}/approve",
        json={"notes": "docs ok", "profile": {"licenseNumber": "KL-4411", "experienceYears": 6}},
        headers=admin["headers"],
    )
    assert r.status_code == 200, r.text
    agent = r.json()["data"]["agent"]
    assert agent["agent_id"] == "cleartitle100001"
    assert agent["license_number"] == "KL-4411"
    assert agent["company"] == "Meera Homes"

    r = await client.get("/v1/agents/CLEARTITLE100001")
    assert r.json()["data"]["user_id"] == user_id

    # suspension needs a reason and hides the agent
    r = await client.put(f"/v1/admin/agents/{user_id}/suspend", json={}, headers=admin["headers"])
    assert r.status_code == 400
    r = await client.put(f"/v1/admin/agents/{user_id}/suspend", json={"reason": "complaint"}, headers=admin["headers"])
    assert r.json()["data"]["status"] == "suspended"
    assert (await client.get("/v1/agents/cleartitle100001")).status_code == 404

    r = await client.put(f"/v1/admin/agents/{user_id}/reactivate", json={}, headers=admin["headers"])
    assert r.json()["data"]["status"] == "approved"
    assert (await client.get("/v1/agents/cleartitle100001")).status_code == 200

    # illegal transition
    r = await client.put(f"/v1/admin/agents/{user_id}/reactivate", json={}, headers=admin["headers"])
    assert r.status_code == 400
    assert r.json()["kind"] == "invalid_state_transition"

    r = await client.get("/v1/admin/agents/stats", headers=admin["headers"])
    stats = r.json()["data"]
    assert stats["approved"] == 1
    assert stats["active_agents"] == 1


@pytest.mark.asyncio
async def test_e2e_reject_then_approve_clears_reason(client, db_session, admin, owner_a, owner_b):
    unit = await make_unit(db_session, owner_a["user_id"])
    url = f"/v1/admin/property-units/{unit.id}/approval"

    r = await client.put(url, json={"approvalStatus": "rejected", "rejectionReason": "x"}, headers=owner_b["headers"])
    assert r.status_code == 403
    assert r.json()["kind"] == "forbidden"

    r = await client.put(url, json={"approvalStatus": "rejected"}, headers=admin["headers"])
    assert r.status_code == 400
    assert r.json()["kind"] == "validation_error"

    r = await client.put(url, json={"approvalStatus": "rejected", "rejectionReason": "incomplete docs"}, headers=admin["headers"])
    assert r.json()["data"]["approval_status"] == "rejected"
    assert r.json()["data"]["rejection_reason"] == "incomplete docs"

    r = await client.put(url, json={"approvalStatus": "approved"}, headers=admin["headers"])
    assert r.json()["data"]["approval_status"] == "approved"
    assert r.json()["data"]["rejection_reason"] == ""
