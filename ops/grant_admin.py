from __future__ import annotations

import argparse
import asyncio
import json
import sys

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.db import SessionLocal
from propertyhub.models.base import utcnow
from propertyhub.models.user import User
from propertyhub.services.audit import audit
from propertyhub.services.users import issue_token


async def grant_admin(db: AsyncSession, username: str, *, new_token: bool = False) -> dict:
    """Flag an existing user as admin; optionally mint a fresh bearer token."""
    user = (await db.execute(select(User).where(User.username == username))).scalar_one_or_none()
    if user is None:
        return {"error": f"no user named {username}"}

    user.is_admin = True
    user.updated_by = "internal"
    user.updated_at = utcnow()
    token = await issue_token(db, user.id) if new_token else None
    await audit(db, actor_id="internal", action="user.admin_granted", target_type="user", target_id=user.id)
    await db.commit()

    out = {"user_id": user.id, "username": user.username, "is_admin": True}
    if token:
        out["token"] = token
    return out


async def _run(username: str, new_token: bool) -> dict:
    async with SessionLocal() as db:
        return await grant_admin(db, username, new_token=new_token)


def main() -> int:
    p = argparse.ArgumentParser(description="Grant admin rights to a registered user.")
    p.add_argument("--username", required=True)
    p.add_argument("--new-token", action="store_true", help="also issue a bearer token and print it once")
    p.add_argument("--yes", action="store_true", help="required (safety)")
    args = p.parse_args()

    if not args.yes:
        print("Refusing to grant admin without --yes (safety).", file=sys.stderr)
        return 2

    resp = asyncio.run(_run(args.username.strip(), args.new_token))
    print(json.dumps(resp, indent=2, ensure_ascii=False))
    return 0 if "error" not in resp else 1


if __name__ == "__main__":
    raise SystemExit(main())
