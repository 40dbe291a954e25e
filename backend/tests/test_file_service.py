"""
StudyNotes Backend — File Service Unit Tests
===============================================

What:  Tests for upload validation, stored-file naming, path resolution and
       best-effort removal.
Why:   The uploads directory is served back over HTTP; validation and path
       resolution are the security boundary.
How:   Real FileService rooted at tmp_path.

What we test:
    ✅ Declared MIME type mapping (pdf, image/*, everything else)
    ✅ Size limits (empty, boundary, over limit)
    ✅ Type is checked before size
    ✅ Stored names are timestamped and sanitized
    ✅ resolve_path refuses traversal; remove_file never raises
"""

import re

import pytest

from studynotes.exceptions import NotFoundError, UnsupportedTypeError, ValidationError
from studynotes.services.file_service import (
    file_kind,
    normalize_mime_type,
    relative_path_from_url,
    sanitize_filename,
)


class TestMimeTypes:
    """Tests for file_kind / normalize_mime_type."""

    def test_pdf_maps_to_pdf(self):
        assert file_kind("application/pdf") == "pdf"

    def test_any_image_subtype_maps_to_image(self):
        for mime in ("image/png", "image/jpeg", "image/webp", "image/tiff"):
            assert file_kind(mime) == "image"

    def test_parameters_and_case_are_ignored(self):
        assert normalize_mime_type("Image/PNG; charset=binary") == "image/png"
        assert file_kind("APPLICATION/PDF") == "pdf"

    def test_text_plain_rejected(self):
        with pytest.raises(UnsupportedTypeError) as exc_info:
            file_kind("text/plain")
        assert exc_info.value.mime_type == "text/plain"
        assert "not supported" in exc_info.value.message

    def test_missing_type_rejected(self):
        with pytest.raises(UnsupportedTypeError):
            file_kind(None)

    def test_bare_image_prefix_rejected(self):
        with pytest.raises(UnsupportedTypeError):
            file_kind("image/")


class TestUploadValidation:
    """Tests for FileService.validate_size / validate_upload."""

    def test_within_limit_passes(self, files):
        assert files.validate_upload(b"x" * 1000, "application/pdf") == "pdf"

    def test_exactly_at_limit_passes(self, files):
        files.validate_size(files.max_file_size)

    def test_over_limit_rejected(self, files):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            files.validate_size(files.max_file_size + 1)

    def test_empty_rejected(self, files):
        with pytest.raises(ValidationError, match="empty"):
            files.validate_upload(b"", "image/png")

    def test_unsupported_type_wins_over_size(self, files):
        """An oversized text file is reported as the wrong type, not as too large."""
        with pytest.raises(UnsupportedTypeError):
            files.validate_upload(b"x" * (files.max_file_size + 1), "text/plain")


class TestStorage:
    """Tests for store_file / public_url / resolve_path / remove_file."""

    @pytest.mark.asyncio
    async def test_store_file_writes_timestamped_name(self, files):
        stored_name, relative_path = await files.store_file(b"%PDF-1.4 data", "Lecture Notes.pdf")

        assert re.match(r"^\d{13}-Lecture-Notes\.pdf$", stored_name)
        assert relative_path == stored_name
        assert (files.uploads_dir / relative_path).read_bytes() == b"%PDF-1.4 data"

    @pytest.mark.asyncio
    async def test_store_file_in_subdirectory(self, files):
        _, relative_path = await files.store_file(b"img", "me.jpg", subdir="avatars")

        assert relative_path.startswith("avatars/")
        assert (files.uploads_dir / relative_path).is_file()

    @pytest.mark.asyncio
    async def test_public_url_round_trips_to_relative_path(self, files):
        _, relative_path = await files.store_file(b"img", "me.jpg", subdir="avatars")
        url = files.public_url(relative_path)

        assert url == f"http://test/uploads/{relative_path}"
        assert relative_path_from_url(url) == relative_path

    @pytest.mark.asyncio
    async def test_resolve_path_finds_stored_file(self, files):
        _, relative_path = await files.store_file(b"data", "a.pdf")
        assert files.resolve_path(relative_path).read_bytes() == b"data"

    def test_resolve_path_rejects_traversal(self, files):
        with pytest.raises(ValidationError):
            files.resolve_path("../../etc/passwd")

    def test_resolve_path_missing_file(self, files):
        with pytest.raises(NotFoundError):
            files.resolve_path("1700000000000-missing.pdf")

    @pytest.mark.asyncio
    async def test_remove_file_removes(self, files):
        _, relative_path = await files.store_file(b"data", "a.pdf")

        assert await files.remove_file(relative_path) is True
        assert not (files.uploads_dir / relative_path).exists()

    @pytest.mark.asyncio
    async def test_remove_file_missing_does_not_raise(self, files):
        assert await files.remove_file("nonexistent.pdf") is False

    @pytest.mark.asyncio
    async def test_remove_file_outside_uploads_refused(self, files, tmp_path):
        outside = tmp_path / "outside.txt"
        outside.write_text("keep me")

        assert await files.remove_file("../outside.txt") is False
        assert outside.exists()


class TestFilenameHelpers:

    def test_sanitize_strips_directories_and_unsafe_chars(self):
        assert sanitize_filename("../../evil path/é notes?.pdf") == "notes-.pdf"

    def test_sanitize_falls_back_for_empty_names(self):
        assert sanitize_filename("") == "upload"
        assert sanitize_filename("...") == "upload"

    def test_relative_path_without_uploads_prefix(self):
        assert relative_path_from_url("http://host/files/1-a.pdf") == "1-a.pdf"
