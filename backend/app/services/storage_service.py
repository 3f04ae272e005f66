"""
Image storage - keeps uploaded product covers, galleries and avatars on local disk.
The directory is served by the app under Config.MEDIA_URL.
"""
import logging
import re
import uuid
from pathlib import Path

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from app.config import Config
from app.errors import ErrorType
from app.exceptions import AppException

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_filename(filename: str | None) -> str:
    name = Path(filename or "").name
    name = _UNSAFE_CHARS.sub("-", name).strip("-.")
    return name or "image"


def _write_file(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


class ImageStorage:
    """Stores uploaded images and returns their public URLs."""

    async def upload_image(self, file: UploadFile, folder: str) -> str:
        if file.content_type and not file.content_type.startswith("image/"):
            raise AppException(
                ErrorType.UNPROCESSABLE,
                f"File '{file.filename}' is not an image ({file.content_type})"
            )

        content = await file.read()
        if not content:
            raise AppException(ErrorType.UNPROCESSABLE, f"File '{file.filename}' is empty")

        name = f"{uuid.uuid4().hex}-{_safe_filename(file.filename)}"
        await run_in_threadpool(_write_file, Path(Config.MEDIA_ROOT) / folder / name, content)

        url = f"{Config.MEDIA_URL.rstrip('/')}/{folder}/{name}"
        logger.info(f"Stored image {url} ({len(content)} bytes)")
        return url

    async def upload_images(self, files: list[UploadFile], folder: str) -> list[str]:
        """Upload files one after another, keeping their order.

        Either every file is stored or none is.
        """
        urls = []
        try:
            for file in files:
                urls.append(await self.upload_image(file, folder))
        except Exception:
            await self.delete_images(urls)
            raise
        return urls

    async def delete_images(self, urls: list[str]) -> None:
        """Remove stored images by URL. URLs outside the media directory are skipped."""
        prefix = f"{Config.MEDIA_URL.rstrip('/')}/"
        for url in urls:
            if not url.startswith(prefix):
                continue
            path = Path(Config.MEDIA_ROOT) / url[len(prefix):]
            await run_in_threadpool(path.unlink, missing_ok=True)
            logger.info(f"Removed image {url}")


image_storage = ImageStorage()
