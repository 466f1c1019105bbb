from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Protocol
from uuid import uuid4

from propertyhub.core.config import settings
from propertyhub.core.errors import UploadError

log = logging.getLogger(__name__)


class ObjectStore(Protocol):
    async def upload(self, data: bytes, *, folder: str, filename: str = "") -> dict[str, str]: ...

    async def delete(self, public_id: str) -> bool: ...

    async def delete_many(self, public_ids: list[str]) -> int: ...


class LocalObjectStore:
    """
    Media kept on local disk and served under `base_url`.

    `public_id` is the key relative to the base directory, e.g.
    "property-units/3f2c...e1.jpg".
    """

    def __init__(self, base_dir: str, base_url: str):
        self.base = Path(base_dir)
        self.base_url = base_url.rstrip("/")

    def resolve_path(self, public_id: str) -> Path:
        key = PurePosixPath(public_id)
        if key.is_absolute() or ".." in key.parts:
            raise ValueError(f"Invalid object key: {public_id}")
        return self.base / key

    async def upload(self, data: bytes, *, folder: str, filename: str = "") -> dict[str, str]:
        suffix = PurePosixPath(filename).suffix.lower()
        public_id = f"{folder.strip('/')}/{uuid4().hex}{suffix}"
        try:
            path = self.resolve_path(public_id)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except (OSError, ValueError) as e:
            raise UploadError(f"Could not store {filename or 'upload'}") from e
        return {"url": f"{self.base_url}/{public_id}", "public_id": public_id}

    async def delete(self, public_id: str) -> bool:
        try:
            self.resolve_path(public_id).unlink()
            return True
        except (OSError, ValueError):
            log.warning("media delete failed public_id=%s", public_id, exc_info=True)
            return False

    async def delete_many(self, public_ids: list[str]) -> int:
        deleted = 0
        for public_id in public_ids:
            if public_id and await self.delete(public_id):
                deleted += 1
        return deleted


def get_object_store() -> LocalObjectStore:
    return LocalObjectStore(settings.media_dir, settings.media_base_url)
