"""
Marketplace Backend: File Storage Service
=========================================

What:  Validates, stores, serves and removes avatar images.
How:   Images live under the storage root at a deterministic key,
       `avatars/<userId>/avatar.<ext>`, so a new upload replaces the old one.
       An upload is first written under a temporary `.upload-` name and only
       moved onto the key once the user row pointing at it has been saved.
Who:   UserService (upload/remove) and the /api/files route (serving).

Validation order (cheapest first):
    1. Extension check on the client filename
    2. Size check (Content-Length header, then actual byte count)
    3. Content check: Pillow must identify the bytes as JPEG, PNG or WebP.
       The stored extension comes from the detected format, never from the
       client filename.

Object keys never contain client input other than the authenticated user id,
and `resolve_path()` refuses any key that escapes the storage root.
"""

import io
import logging
import os
import uuid
from pathlib import Path
from typing import NamedTuple, Optional, Tuple

import aiofiles
from PIL import Image, UnidentifiedImageError

from marketplace.config import settings
from marketplace.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

AVATAR_PREFIX = "avatars"
AVATAR_BASENAME = "avatar"
# Uploads are written under this prefix until the user row is saved
STAGING_PREFIX = ".upload-"

# ── Allowed Image Types ───────────────────────────────────────────────────
# Pillow format name → (stored extension, MIME type)
ALLOWED_FORMATS = {
    "JPEG": (".jpg", "image/jpeg"),
    "PNG": (".png", "image/png"),
    "WEBP": (".webp", "image/webp"),
}

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}

UNSUPPORTED_TYPE_MESSAGE = "Please upload a JPEG, PNG, or WebP image."


class StagedAvatar(NamedTuple):
    staged_path: Path
    final_path: Path
    relative_path: str


class FileService:
    """
    Owns everything below the storage root.

    Layout:
        storage/
        └── avatars/
            └── 0b5e...-uuid/
                └── avatar.png
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the configured root (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """
        Returns the lowercased extension (with dot).

        Raises:
            ValidationError: extension missing or not an accepted image type
        """
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=UNSUPPORTED_TYPE_MESSAGE,
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Checks the declared size first (before trusting the body) and then the
        number of bytes actually received.
        """
        limit = settings.max_avatar_size
        max_mb = limit / (1024 * 1024)

        if content_length and content_length > limit:
            raise ValidationError(
                message=f"File size must be less than {max_mb:.0f}MB.",
                field="file",
                context={"max_size_bytes": limit, "reported_size": content_length},
            )

        if actual_size == 0:
            raise ValidationError(message="The uploaded file is empty.", field="file")

        if actual_size > limit:
            raise ValidationError(
                message=f"File size must be less than {max_mb:.0f}MB.",
                field="file",
                context={"max_size_bytes": limit, "actual_size": actual_size},
            )

    def detect_image_format(self, content: bytes) -> Tuple[str, str]:
        """
        Identifies the image from its bytes.

        Returns:
            (extension, mime_type), e.g. (".png", "image/png")

        Raises:
            ValidationError: not an image, corrupt, or an unsupported format
        """
        try:
            with Image.open(io.BytesIO(content)) as image:
                image_format = image.format
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError, EOFError) as e:
            logger.info("Rejected upload that is not a readable image: %s", e)
            raise ValidationError(
                message=UNSUPPORTED_TYPE_MESSAGE,
                field="file",
                context={"reason": "unreadable image"},
            ) from e

        if image_format not in ALLOWED_FORMATS:
            raise ValidationError(
                message=UNSUPPORTED_TYPE_MESSAGE,
                field="file",
                context={"detected_format": image_format},
            )
        return ALLOWED_FORMATS[image_format]

    # ── Paths ─────────────────────────────────────────────────────────────

    def avatar_dir(self, user_id: uuid.UUID) -> Path:
        return self.storage_root / AVATAR_PREFIX / str(user_id)

    def resolve_path(self, relative_path: str) -> Path:
        """
        Maps an object key to an absolute path inside the storage root.

        Raises:
            ValidationError: the key escapes the storage root or contains a NUL byte
            NotFoundError: nothing is stored under the key
        """
        if "\x00" in relative_path:
            logger.warning("Rejected file path containing a NUL byte: %r", relative_path)
            raise ValidationError(message="Invalid file path", field="path")

        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            logger.warning("Path traversal attempt blocked: %s", relative_path)
            raise ValidationError(message="Invalid file path", field="path")
        if not full_path.is_file() or full_path.name.startswith(STAGING_PREFIX):
            raise NotFoundError(resource="file", resource_id=relative_path)
        return full_path

    def is_writable(self) -> bool:
        return self.storage_root.is_dir() and os.access(self.storage_root, os.W_OK)

    # ── Storage ───────────────────────────────────────────────────────────

    async def stage_avatar(
        self,
        user_id: uuid.UUID,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> StagedAvatar:
        """
        Validates an avatar and writes it beside the current one under a
        temporary name. Nothing a user can see changes until
        `publish_avatar()`; `discard_avatar()` throws the upload away.

        Raises:
            ValidationError: see the validate_* methods
            FileStorageError: the write failed
        """
        self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        extension, _ = self.detect_image_format(content)

        directory = self.avatar_dir(user_id)
        target_name = f"{AVATAR_BASENAME}{extension}"
        staged_path = directory / f"{STAGING_PREFIX}{uuid.uuid4().hex}{extension}"

        try:
            directory.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(staged_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to stage avatar at %s: %s", staged_path, str(e))
            await self.cleanup_file(str(staged_path))
            raise FileStorageError(
                message="Failed to save the uploaded image. Please try again.",
                context={"path": str(staged_path), "os_error": str(e)},
            ) from e

        return StagedAvatar(
            staged_path=staged_path,
            final_path=directory / target_name,
            relative_path=f"{AVATAR_PREFIX}/{user_id}/{target_name}",
        )

    async def publish_avatar(self, staged: StagedAvatar) -> None:
        """
        Moves a staged upload onto the avatar key and removes avatars stored
        under other extensions. Uploads still staged by other requests are
        left alone.

        Raises:
            FileStorageError: the rename failed (the staged file is removed)
        """
        try:
            os.replace(staged.staged_path, staged.final_path)
        except OSError as e:
            logger.error("Failed to publish avatar %s: %s", staged.relative_path, str(e))
            await self.discard_avatar(staged)
            raise FileStorageError(
                message="Failed to save the uploaded image. Please try again.",
                context={"path": staged.relative_path, "os_error": str(e)},
            ) from e

        for stale in staged.final_path.parent.iterdir():
            if stale.name != staged.final_path.name and not stale.name.startswith(STAGING_PREFIX):
                await self.cleanup_file(str(stale))

        logger.info("Avatar stored: %s", staged.relative_path)

    async def discard_avatar(self, staged: StagedAvatar) -> None:
        await self.cleanup_file(str(staged.staged_path))

    async def delete_avatars(self, user_id: uuid.UUID) -> int:
        """Removes every file under the user's avatar prefix; returns the count."""
        directory = self.avatar_dir(user_id)
        if not directory.is_dir():
            return 0

        removed = 0
        try:
            for path in directory.iterdir():
                if path.is_file():
                    path.unlink()
                    removed += 1
            directory.rmdir()
        except OSError as e:
            logger.error("Failed to delete avatars for %s: %s", user_id, str(e))
            raise FileStorageError(
                message="Failed to remove the profile photo. Please try again.",
                context={"user_id": str(user_id), "os_error": str(e)},
            ) from e
        return removed

    async def cleanup_file(self, file_path: str) -> None:
        """Best-effort removal; failures are logged, not raised."""
        path = Path(file_path)
        try:
            if path.exists():
                path.unlink()
                logger.info("Cleaned up file: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))


file_service = FileService()
