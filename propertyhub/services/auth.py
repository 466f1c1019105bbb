from dataclasses import dataclass

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.core.db import get_db
from propertyhub.core.errors import Forbidden, InvalidToken
from propertyhub.core.security import hash_token
from propertyhub.models.api_key import ApiKey
from propertyhub.models.user import User

bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    user_id: str
    api_key_id: str
    is_admin: bool
    username: str


async def verify_token(db: AsyncSession, token: str) -> Actor:
    hashed = hash_token(token)
    stmt = (
        select(ApiKey, User)
        .join(User, User.id == ApiKey.user_id)
        .where(ApiKey.key_hash == hashed, ApiKey.is_active.is_(True))
    )
    row = (await db.execute(stmt)).one_or_none()
    if not row:
        raise InvalidToken("Invalid or revoked token")

    key, user = row
    return Actor(user_id=user.id, api_key_id=key.id, is_admin=user.is_admin, username=user.username)


async def get_optional_actor(
    creds: HTTPAuthorizationCredentials | None = Security(bearer),
    db: AsyncSession = Depends(get_db),
) -> Actor | None:
    # A bad token on a public route is still an error; only a missing one is anonymous.
    if creds is None:
        return None
    return await verify_token(db, creds.credentials)


async def get_actor(actor: Actor | None = Depends(get_optional_actor)) -> Actor:
    if actor is None:
        raise InvalidToken("Missing bearer token")
    return actor


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_admin:
        raise Forbidden("Admin role required")
    return actor
