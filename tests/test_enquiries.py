from datetime import timedelta

import pytest

from propertyhub.models.base import utcnow
from propertyhub.models.enquiry import Enquiry

ENQUIRY = {"name": "Ravi", "phoneNumber": "+91 99470 55555", "message": "Is the villa still available?"}


@pytest.mark.asyncio
async def test_anonymous_enquiry(client):
    r = await client.post("/v1/enquiries", json=ENQUIRY)
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["status"] == "new"
    assert data["user_id"] is None


@pytest.mark.asyncio
async def test_enquiry_validation(client):
    r = await client.post("/v1/enquiries", json={**ENQUIRY, "phoneNumber": "12ab"})
    assert r.status_code == 400

    r = await client.post("/v1/enquiries", json={**ENQUIRY, "userId": "usr_missing"})
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid user ID"


@pytest.mark.asyncio
async def test_signed_in_enquiry_is_attributed(client, owner_a):
    r = await client.post("/v1/enquiries", json=ENQUIRY, headers=owner_a["headers"])
    assert r.json()["data"]["user_id"] == owner_a["user_id"]

    r = await client.get("/v1/users/me/enquiries", headers=owner_a["headers"])
    assert r.json()["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_admin_manages_enquiries(client, admin, owner_a):
    enquiry_id = (await client.post("/v1/enquiries", json=ENQUIRY)).json()["data"]["id"]
    url = f"/v1/admin/enquiries/{enquiry_id}"

    assert (await client.patch(url, json={"status": "resolved"}, headers=owner_a["headers"])).status_code == 403

    r = await client.patch(url, json={"status": "resolved"}, headers=admin["headers"])
    assert r.json()["data"]["status"] == "resolved"

    r = await client.patch(url, json={"status": "archived"}, headers=admin["headers"])
    assert r.status_code == 400

    r = await client.get("/v1/admin/enquiries", params={"status": "resolved"}, headers=admin["headers"])
    assert [e["id"] for e in r.json()["data"]] == [enquiry_id]

    assert (await client.delete(url, headers=admin["headers"])).status_code == 200
    assert (await client.delete(url, headers=admin["headers"])).status_code == 404


@pytest.mark.asyncio
async def test_admin_notes_and_bulk_status(client, admin):
    ids = [(await client.post("/v1/enquiries", json=ENQUIRY)).json()["data"]["id"] for _ in range(3)]

    r = await client.post(f"/v1/admin/enquiries/{ids[0]}/notes", json={"notes": " called back, visit on Monday "},
                          headers=admin["headers"])
    assert r.status_code == 200, r.text
    assert r.json()["data"]["admin_notes"] == "called back, visit on Monday"

    r = await client.post("/v1/admin/enquiries/enq_missing/notes", json={"notes": "x"}, headers=admin["headers"])
    assert r.status_code == 404

    await client.patch(f"/v1/admin/enquiries/{ids[2]}", json={"status": "closed"}, headers=admin["headers"])
    r = await client.put(
        "/v1/admin/enquiries/bulk-update",
        json={"enquiryIds": [ids[0], ids[1], ids[1], ids[2], "enq_missing"], "status": "closed"},
        headers=admin["headers"],
    )
    assert r.json()["data"] == {"matched": 3, "modified": 2}

    r = await client.get("/v1/admin/enquiries", params={"status": "closed"}, headers=admin["headers"])
    assert r.json()["pagination"]["total"] == 3


@pytest.mark.asyncio
async def test_enquiry_stats_cover_every_status(client, db_session, admin, owner_a):
    await client.post("/v1/enquiries", json=ENQUIRY)
    enquiry_id = (await client.post("/v1/enquiries", json=ENQUIRY)).json()["data"]["id"]
    await client.patch(f"/v1/admin/enquiries/{enquiry_id}", json={"status": "in-progress"}, headers=admin["headers"])

    old = utcnow() - timedelta(days=40)
    db_session.add(Enquiry(name="Old", phone_number="+91 99470 00000", message="old", created_at=old, updated_at=old))
    await db_session.commit()

    r = await client.get("/v1/admin/enquiries/stats", headers=admin["headers"])
    assert r.json()["data"] == {"total": 2, "new": 1, "in-progress": 1, "resolved": 0, "closed": 0}

    r = await client.get("/v1/admin/enquiries/stats", params={"timeframe": "90d"}, headers=admin["headers"])
    assert r.json()["data"]["total"] == 3

    assert (await client.get("/v1/admin/enquiries/stats", headers=owner_a["headers"])).status_code == 403
