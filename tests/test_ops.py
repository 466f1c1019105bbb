import pytest

from ops.grant_admin import grant_admin
from propertyhub.models.user import User


@pytest.mark.asyncio
async def test_grant_admin_with_token(client, db_session, owner_a):
    out = await grant_admin(db_session, "owner_a", new_token=True)
    assert out["is_admin"] is True

    stored = await db_session.get(User, owner_a["user_id"])
    assert stored.is_admin is True

    r = await client.get("/v1/admin/users", headers={"Authorization": f"Bearer {out['token']}"})
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_grant_admin_unknown_user(db_session):
    assert await grant_admin(db_session, "ghost") == {"error": "no user named ghost"}
