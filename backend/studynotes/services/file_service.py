"""
StudyNotes Backend — File Storage Service
============================================

What:  Upload validation, binary storage in the uploads directory, safe path
       resolution for downloads, and best-effort removal.
How:   Declared MIME type and size are checked before anything touches disk.
       Stored names are `<epoch-ms>-<sanitized original name>`; the same name
       is the last segment of the public fileUrl.
Who:   IngestionPipeline (materials), ProfileService (avatars),
       StudyMaterialService (delete cascade) and the download routes.

Directory Structure:
    uploads/
    ├── 1718000000000-lecture-notes.pdf
    ├── 1718000000123-whiteboard.png
    └── avatars/
        └── 1718000000456-me.jpg

Security:
    - Sanitized names contain only [A-Za-z0-9._-]; no user-controlled separators
    - resolve_path() refuses anything that escapes the uploads directory
"""

import logging
import os
import re
import time
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

import aiofiles

from studynotes.exceptions import FileStorageError, NotFoundError, UnsupportedTypeError, ValidationError

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def normalize_mime_type(mime_type: Optional[str]) -> str:
    """Lowercase type without parameters: 'Image/PNG; x=y' → 'image/png'."""
    return (mime_type or "").split(";")[0].strip().lower()


def file_kind(mime_type: Optional[str]) -> str:
    """
    Map a declared MIME type to the stored fileType.

    Returns:
        "pdf" or "image"

    Raises:
        UnsupportedTypeError: Anything other than application/pdf or image/*
    """
    normalized = normalize_mime_type(mime_type)
    if normalized == PDF_MIME_TYPE:
        return "pdf"
    if normalized.startswith("image/") and len(normalized) > len("image/"):
        return "image"
    raise UnsupportedTypeError(mime_type)


def sanitize_filename(filename: str) -> str:
    """Keep the basename and replace anything outside [A-Za-z0-9._-] with '-'."""
    name = Path((filename or "").replace("\\", "/")).name
    name = _UNSAFE_CHARS.sub("-", name).strip(".-")
    return name or "upload"


def relative_path_from_url(file_url: str) -> Optional[str]:
    """
    Path under the uploads directory that a fileUrl/avatarUrl points at.

    "http://host/uploads/avatars/1-me.jpg" → "avatars/1-me.jpg"; falls back to
    the last path segment for URLs without an /uploads/ prefix.
    """
    path = unquote(urlparse(file_url or "").path)
    if "/uploads/" in path:
        relative = path.split("/uploads/", 1)[1]
    else:
        relative = path.rstrip("/").rsplit("/", 1)[-1]
    return relative.strip("/") or None


class FileService:
    """
    Manages the uploads directory.

    Lifecycle of a stored binary:
        1. validate_upload(): type and size checks, nothing written
        2. store_file(): written under uploads_dir (or a subdirectory)
        3. public_url(): URL recorded on the StudyMaterial/Profile
        4. remove_file(): on record deletion or failed persistence
    """

    def __init__(self, uploads_dir: str, max_file_size: int, public_base_url: str):
        self.uploads_dir = Path(uploads_dir).resolve()
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        self.max_file_size = max_file_size
        self.public_base_url = public_base_url.rstrip("/")
        logger.info("FileService initialized with uploads_dir=%s", self.uploads_dir)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_size(self, size: int) -> None:
        """
        Raises:
            ValidationError: Empty upload or larger than max_file_size
        """
        max_mb = self.max_file_size / (1024 * 1024)
        if size == 0:
            raise ValidationError(message="The uploaded file is empty.", field="file")
        if size > self.max_file_size:
            raise ValidationError(
                message=f"File size ({size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": size},
            )

    def validate_upload(self, content: bytes, mime_type: Optional[str]) -> str:
        """
        Validate a multipart upload before any extraction or storage.

        Type is checked first so an unsupported file is rejected as such even
        when it is also too large.

        Returns:
            "pdf" or "image"
        """
        kind = file_kind(mime_type)
        self.validate_size(len(content))
        return kind

    # ── Storage ───────────────────────────────────────────────────────────

    def _directory(self, subdir: Optional[str]) -> Path:
        directory = self.uploads_dir / sanitize_filename(subdir) if subdir else self.uploads_dir
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    async def store_file(
        self,
        content: bytes,
        original_filename: str,
        subdir: Optional[str] = None,
    ) -> Tuple[str, str]:
        """
        Write content under the uploads directory.

        Returns:
            (stored_name, relative_path), e.g.
            ("1718000000000-notes.pdf", "1718000000000-notes.pdf") or
            ("1718000000456-me.jpg", "avatars/1718000000456-me.jpg")

        Raises:
            FileStorageError: Directory creation or write failed
        """
        safe_name = sanitize_filename(original_filename)
        stamp = int(time.time() * 1000)
        stored_name = f"{stamp}-{safe_name}"
        try:
            directory = self._directory(subdir)
            while True:
                path = directory / stored_name
                try:
                    # Exclusive create: same name in the same millisecond moves to the next stamp
                    async with aiofiles.open(path, "xb") as f:
                        await f.write(content)
                    break
                except FileExistsError:
                    stamp += 1
                    stored_name = f"{stamp}-{safe_name}"
        except OSError as e:
            logger.error("Failed to store %s: %s", stored_name, str(e))
            raise FileStorageError(
                message="Failed to save the uploaded file. Please try again.",
                context={"filename": stored_name, "os_error": str(e)},
            )

        relative_path = path.relative_to(self.uploads_dir).as_posix()
        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return stored_name, relative_path

    def public_url(self, relative_path: str) -> str:
        return f"{self.public_base_url}/uploads/{relative_path}"

    def resolve_path(self, relative_path: str) -> Path:
        """
        Absolute path of a stored file, for serving it.

        Raises:
            ValidationError: Path escapes the uploads directory
            NotFoundError:   No such file
        """
        candidate = (self.uploads_dir / relative_path).resolve()
        if candidate != self.uploads_dir and self.uploads_dir not in candidate.parents:
            raise ValidationError(message="Invalid file name.", field="filename")
        if not candidate.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return candidate

    async def remove_file(self, relative_path: str) -> bool:
        """
        Best-effort removal; never raises.

        Returns:
            True if a file was removed, False if it was missing or removal failed.
        """
        try:
            candidate = (self.uploads_dir / relative_path).resolve()
            if self.uploads_dir not in candidate.parents:
                logger.warning("Refusing to remove path outside uploads: %s", relative_path)
                return False
            if not candidate.exists():
                logger.debug("Cleanup: file already gone: %s", relative_path)
                return False
            os.remove(candidate)
            logger.info("Removed file: %s", relative_path)
            return True
        except OSError as e:
            logger.warning("Failed to remove file %s: %s", relative_path, str(e))
            return False
