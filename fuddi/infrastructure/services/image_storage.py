"""
Local image storage
Resizes uploads with Pillow and keeps them under the uploads directory
"""
import asyncio
import io
import logging
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from ...config import settings
from ...domain.entities import ValidationIssue
from ...domain.exceptions import ValidationFailed
from ...domain.repositories import IImageStorage

logger = logging.getLogger(__name__)

JPEG_QUALITY = 85


def resize_to_jpeg(data: bytes, max_size: int) -> bytes:
    """Shrink so the longest side is at most max_size and re-encode as JPEG"""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationFailed([ValidationIssue(field="photo", message=f"Imagen inválida: {e}")])

    if image.mode != "RGB":
        image = image.convert("RGB")
    image.thumbnail((max_size, max_size))

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=JPEG_QUALITY, optimize=True)
    return buffer.getvalue()


class LocalImageStorage(IImageStorage):
    """Filesystem stand-in for object storage"""

    def __init__(
        self,
        root: Optional[str] = None,
        base_url: Optional[str] = None,
        max_size: Optional[int] = None,
    ):
        self.root = Path(root or settings.uploads_dir)
        self.base_url = (base_url or settings.uploads_base_url).rstrip("/")
        self.max_size = max_size or settings.image_max_size

    def _target(self, path: str) -> Path:
        relative = Path(path.lstrip("/"))
        if ".." in relative.parts:
            raise ValidationFailed([ValidationIssue(field="path", message=f"Ruta inválida: {path}")])
        return self.root / relative

    def _write(self, data: bytes, path: str) -> str:
        target = self._target(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(resize_to_jpeg(data, self.max_size))
        return f"{self.base_url}/{target.relative_to(self.root).as_posix()}"

    async def upload(self, data: bytes, path: str) -> str:
        """Store image bytes under path and return its public URL"""
        loop = asyncio.get_running_loop()
        url = await loop.run_in_executor(None, self._write, data, path)
        logger.info(f"🖼️ Image stored: {url}")
        return url

    async def delete(self, url: str) -> bool:
        if not url.startswith(self.base_url + "/"):
            return False
        target = self._target(url[len(self.base_url) + 1:])
        if not target.exists():
            return False
        target.unlink()
        logger.info(f"🗑️ Image deleted: {url}")
        return True
