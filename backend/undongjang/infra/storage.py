"""File-backed object storage for event photos and banners.

Objects are written under ``settings.upload_root`` and served from
``settings.upload_base_url``; in dev the app mounts the root as static files.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import ulid

from undongjang.settings import settings

ALLOWED_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}

_MIME_EXTENSIONS = {
	"image/jpeg": ".jpg",
	"image/png": ".png",
	"image/webp": ".webp",
	"image/gif": ".gif",
}


class StorageValidationError(ValueError):
	"""Raised when an upload is rejected before it reaches storage."""


def upload_root() -> Path:
	return Path(settings.upload_root).resolve()


def validate_upload(content_type: str, size: int) -> None:
	if size <= 0:
		raise StorageValidationError("size_invalid")
	if size > settings.upload_max_bytes:
		raise StorageValidationError("size_exceeded")
	if content_type.lower() not in ALLOWED_MIME_TYPES:
		raise StorageValidationError("mime_invalid")


def build_key(prefix: str, owner_id: str, content_type: str) -> str:
	ext = _MIME_EXTENSIONS.get(content_type.lower(), ".bin")
	return f"{prefix}/{owner_id}/{ulid.new()}{ext}"


def get_public_url(key: str) -> str:
	return f"{settings.upload_base_url.rstrip('/')}/{key.lstrip('/')}"


def _resolve_target(key: str) -> Path:
	root = upload_root()
	target = (root / key).resolve()
	if root not in target.parents:
		raise StorageValidationError("invalid_path")
	return target


def _write(target: Path, data: bytes) -> None:
	target.parent.mkdir(parents=True, exist_ok=True)
	with open(target, "wb") as fh:
		fh.write(data)


async def upload(key: str, data: bytes, content_type: str) -> str:
	"""Persist ``data`` under ``key`` and return its public URL."""
	validate_upload(content_type, len(data))
	target = _resolve_target(key)
	await asyncio.to_thread(_write, target, data)
	return get_public_url(key)
