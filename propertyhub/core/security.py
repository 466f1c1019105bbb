import base64
import hashlib
import secrets
from dataclasses import dataclass

from propertyhub.core.config import settings


@dataclass(frozen=True)
class TokenParts:
    prefix: str
    plain: str
    hashed: str


def generate_token(prefix_len: int = 8) -> TokenParts:
    # Example: ph_<prefix>_<random>
    raw = secrets.token_urlsafe(32)
    prefix = raw[:prefix_len]
    plain = f"ph_{prefix}_{raw}"
    hashed = hash_token(plain)
    return TokenParts(prefix=prefix, plain=plain, hashed=hashed)


def hash_token(plain: str) -> str:
    salted = (plain + settings.token_pepper.get_secret_value()).encode("utf-8")
    digest = hashlib.sha256(salted).digest()
    return base64.b64encode(digest).decode("utf-8")
