"""
Local storage for uploaded images.

Images are written under the configured upload directory with a random
prefix so that two uploads with the same client filename never collide.
The returned path (``images/<name>``) is what the post stores in
``image_url`` and is served by the ``/images`` static mount.
"""

import asyncio
import logging
import re
import uuid
from pathlib import Path
from typing import Optional

from starlette.datastructures import UploadFile

from ..core.errors import StorageFailure


logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/png", "image/jpg", "image/jpeg", "image/gif", "image/webp"}

_SAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


class FileStorage:
    url_prefix = "images"

    def __init__(self, root: str) -> None:
        self.root = Path(root).resolve()

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    async def save(self, upload: UploadFile) -> str:
        """Persist ``upload`` and return its public path."""
        original = Path(upload.filename or "upload").name
        name = f"{uuid.uuid4().hex}-{_SAFE_NAME.sub('_', original)}"
        data = await upload.read()
        target = self.root / name
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as exc:
            raise StorageFailure() from exc
        logger.debug("Stored upload %s (%d bytes)", name, len(data))
        return f"{self.url_prefix}/{name}"

    async def remove(self, image_url: Optional[str]) -> None:
        """Delete a previously stored image.  Missing files are ignored."""
        if not image_url:
            return
        target = (self.root / Path(image_url).name).resolve()
        if target.parent != self.root:
            logger.warning("Refusing to remove %s outside upload dir", image_url)
            return
        try:
            await asyncio.to_thread(target.unlink, True)
        except OSError:
            logger.warning("Could not remove image %s", image_url, exc_info=True)

    def _write(self, target: Path, data: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
