"""Media storage for listing images, videos and category icons.

Objects live in Django's default storage under ``<bucket>/<path>``.
Images are validated with Pillow before anything is written; a file that
fails validation is never stored.
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from io import BytesIO
from typing import Iterable, List, Optional, Tuple

from asgiref.sync import sync_to_async
from django.conf import settings  # type: ignore
from django.core.files.base import ContentFile  # type: ignore
from django.core.files.storage import default_storage  # type: ignore
from PIL import Image, UnidentifiedImageError

from shared.domain.errors import MediaProcessingError
from shared.infrastructure.gateway import ObjectStorage

logger = logging.getLogger(__name__)

IMAGE_BUCKETS = frozenset({"property-images", "category-icons"})
IMAGE_FORMATS = ("JPEG", "PNG", "WEBP", "GIF")


def generate_name(folder: str, original_name: str = "", extension: Optional[str] = None) -> str:
    """``<folder>/<millis>-<random>.<ext>``, unique per upload."""
    ext = extension or os.path.splitext(original_name)[1].lstrip(".").lower() or "bin"
    return f"{folder.strip('/')}/{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}.{ext}"


def _read(content) -> bytes:
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)
    if hasattr(content, "seek"):
        content.seek(0)
    data = content.read()
    return data if isinstance(data, bytes) else bytes(data)


class MediaStorage(ObjectStorage):
    def __init__(self, storage=None, *, max_size: Optional[int] = None, buckets: Optional[Iterable[str]] = None):
        self.storage = storage or default_storage
        self.max_size = max_size or getattr(settings, "MEDIA_MAX_SIZE", 5 * 1024 * 1024)
        self.buckets = frozenset(buckets or getattr(settings, "MEDIA_BUCKETS", ()))

    def _key(self, bucket: str, path: str) -> str:
        if self.buckets and bucket not in self.buckets:
            raise MediaProcessingError(f"Unknown bucket: {bucket}")
        return f"{bucket}/{path.lstrip('/')}"

    def validate_image(self, data: bytes) -> str:
        """Return the Pillow format name or raise ``MediaProcessingError``."""
        try:
            with Image.open(BytesIO(data)) as img:
                image_format = img.format
                img.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise MediaProcessingError(f"Invalid image: {e}") from e
        if image_format not in IMAGE_FORMATS:
            raise MediaProcessingError(f"Unsupported image format: {image_format}")
        return image_format

    def _save(self, bucket: str, path: str, content) -> Tuple[str, str]:
        """Validate and store ``content``; returns the storage name used and its URL."""
        key = self._key(bucket, path)
        data = _read(content)
        if not data:
            raise MediaProcessingError("Empty file")
        if len(data) > self.max_size:
            raise MediaProcessingError(
                f"File too large: {len(data)} bytes, maximum {self.max_size}"
            )
        if bucket in IMAGE_BUCKETS:
            self.validate_image(data)

        # Never overwrite: storage picks a free name if the key is taken
        stored = self.storage.save(key, ContentFile(data))
        logger.info(f"Uploaded {stored} ({len(data)} bytes)")
        return stored, self.storage.url(stored)

    async def upload(self, bucket, path, content):
        _, url = await sync_to_async(self._save)(bucket, path, content)
        return url

    async def upload_many(self, bucket: str, folder: str, files, *, limit: Optional[int] = None) -> List[str]:
        """
        Upload ``files`` (``(name, content)`` pairs) and return their URLs.

        ``limit`` is the number of free slots left on the listing; exceeding
        it rejects the whole batch before any upload. A failure part-way
        removes what was already stored.
        """
        files = list(files)
        if limit is not None and len(files) > limit:
            raise MediaProcessingError(f"Only {limit} more files allowed")

        stored_names, urls = [], []
        try:
            for name, content in files:
                stored, url = await sync_to_async(self._save)(bucket, generate_name(folder, name), content)
                stored_names.append(stored)
                urls.append(url)
        except Exception:
            if stored_names:
                await sync_to_async(self._discard)(stored_names)
            raise
        return urls

    def _discard(self, names: List[str]) -> None:
        """Delete objects of an abandoned batch by the names storage gave them."""
        for name in names:
            try:
                self.storage.delete(name)
            except OSError as e:
                logger.warning(f"Could not remove {name} of an abandoned upload: {e}")

    def get_public_url(self, bucket, path):
        return self.storage.url(self._key(bucket, path))

    def _remove(self, bucket, paths) -> int:
        removed = 0
        for path in paths:
            key = self._key(bucket, path)
            if self.storage.exists(key):
                self.storage.delete(key)
                removed += 1
            else:
                logger.warning(f"Could not delete {key}: not found")
        return removed

    async def remove(self, bucket, paths):
        return await sync_to_async(self._remove)(bucket, list(paths))
