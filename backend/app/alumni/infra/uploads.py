"""Local image storage for school logos/banners and event banners."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import ulid
from fastapi import UploadFile

from app.alumni.domain.exceptions import ValidationError
from app.settings import settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({".jpeg", ".jpg", ".png", ".gif"})
ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif"})


@dataclass(slots=True)
class StoredImage:
	path: Path
	url: str


class ImageStore:
	"""Writes uploads under ``<root>/<folder>/<prefix>-<ulid><ext>``.

	Root, size limit and public base url fall back to settings at call time.
	"""

	def __init__(
		self,
		root: str | Path | None = None,
		*,
		max_bytes: int | None = None,
		base_url: str | None = None,
	) -> None:
		self._root = Path(root) if root is not None else None
		self._max_bytes = max_bytes
		self._base_url = base_url

	@property
	def root(self) -> Path:
		return self._root or Path(settings.upload_root)

	@property
	def max_bytes(self) -> int:
		return self._max_bytes or settings.upload_max_bytes

	@property
	def base_url(self) -> str:
		return (self._base_url or settings.upload_base_url).rstrip("/")

	async def save(self, folder: str, prefix: str, upload: Optional[UploadFile]) -> StoredImage:
		if upload is None or not upload.filename:
			raise ValidationError("Please upload a file")
		ext = Path(upload.filename).suffix.lower()
		content_type = (upload.content_type or "").lower()
		if ext not in ALLOWED_EXTENSIONS or (content_type and content_type not in ALLOWED_MIME_TYPES):
			raise ValidationError("Invalid file type. Only image files are allowed.")
		content = await upload.read(self.max_bytes + 1)
		if len(content) > self.max_bytes:
			raise ValidationError(f"File too large. Maximum size: {self.max_bytes // 1024 // 1024}MB")

		filename = f"{prefix}-{ulid.new().str}{ext}"
		directory = self.root / folder
		directory.mkdir(parents=True, exist_ok=True)
		path = directory / filename
		path.write_bytes(content)
		return StoredImage(path=path, url=f"{self.base_url}/{folder}/{filename}")

	def discard(self, stored: Optional[StoredImage]) -> None:
		if stored is None:
			return
		self._unlink(stored.path)

	def discard_url(self, url: Optional[str]) -> None:
		"""Remove the file behind a previously issued url; foreign urls are ignored."""
		if not url or not url.startswith(self.base_url + "/"):
			return
		relative = url[len(self.base_url) + 1 :]
		root = self.root.resolve()
		path = (root / relative).resolve()
		if root not in path.parents:
			return
		self._unlink(path)

	@staticmethod
	def _unlink(path: Path) -> None:
		try:
			path.unlink(missing_ok=True)
		except OSError:
			logger.warning("upload_cleanup_failed", extra={"path": str(path)})
