"""Photo storage buckets.

Seller photos, drink photos and user avatars are kept in named
buckets under ``STORAGE_DIR`` and served back at
``STORAGE_PUBLIC_URL``. Object paths may contain one level of folders
(``<seller_id>/profile-<ts>.jpg``); each segment is passed through
``secure_filename`` so a path can never escape its bucket.
"""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import BinaryIO, Iterable
from urllib.parse import urlsplit

from werkzeug.utils import secure_filename

from .errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

SELLER_PHOTOS = "seller-photos"
DRINK_PHOTOS = "drink-photos"
AVATARS = "avatars"
BUCKETS = (SELLER_PHOTOS, DRINK_PHOTOS, AVATARS)

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "webp", "gif"}


def file_extension(filename: str) -> str:
    """Return the lowercase extension of an uploaded image, validating it."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in IMAGE_EXTENSIONS:
        raise ValidationError(
            f"Unsupported image type. Allowed types are: {', '.join(sorted(IMAGE_EXTENSIONS))}",
            fields={"file": "unsupported type"},
        )
    return ext


class BucketStorage:
    """Filesystem-backed bucket storage with public URLs."""

    def __init__(self, root: Path | str, public_url: str = "/storage") -> None:
        self.root = Path(root)
        self.public_base = public_url.rstrip("/")

    def bucket_dir(self, bucket: str) -> Path:
        if bucket not in BUCKETS:
            raise NotFoundError(f"Unknown storage bucket '{bucket}'.")
        return self.root / bucket

    def _safe_path(self, path: str) -> str:
        parts = [secure_filename(part) for part in path.split("/") if part]
        if not parts or not all(parts):
            raise ValidationError("Invalid storage path.", fields={"path": path})
        return "/".join(parts)

    def upload(self, bucket: str, path: str, stream: BinaryIO, upsert: bool = False) -> str:
        """Store ``stream`` at ``path`` inside ``bucket`` and return the stored path."""
        safe = self._safe_path(path)
        dest = self.bucket_dir(bucket) / safe
        if dest.exists() and not upsert:
            raise ConflictError("This item already exists")
        dest.parent.mkdir(parents=True, exist_ok=True)
        with dest.open("wb") as fh:
            shutil.copyfileobj(stream, fh)
        logger.info("Stored %s/%s (%d bytes)", bucket, safe, dest.stat().st_size)
        return safe

    def public_url(self, bucket: str, path: str) -> str:
        self.bucket_dir(bucket)
        return f"{self.public_base}/{bucket}/{self._safe_path(path)}"

    def path_from_url(self, bucket: str, url: str) -> str | None:
        """Recover the object path from a public URL (query string ignored)."""
        if not url:
            return None
        prefix = f"{self.public_base}/{bucket}/"
        path = urlsplit(url).path
        base_path = urlsplit(prefix).path
        if not path.startswith(base_path):
            return None
        return path[len(base_path):] or None

    def remove(self, bucket: str, paths: Iterable[str]) -> int:
        """Delete objects; missing ones are ignored. Returns how many were removed."""
        removed = 0
        bucket_root = self.bucket_dir(bucket)
        for path in paths:
            target = bucket_root / self._safe_path(path)
            if target.is_file():
                target.unlink()
                removed += 1
        return removed

    def exists(self, bucket: str, path: str) -> bool:
        return (self.bucket_dir(bucket) / self._safe_path(path)).is_file()
