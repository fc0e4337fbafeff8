"""
Circles Backend — File Service Unit Tests
===========================================

What:  Tests for FileService validation, storage and lookup.
How:   Each test gets a FileService rooted in pytest's tmp_path; libmagic is
       replaced through sys.modules so results do not depend on the host.

Test Strategy:
    ✅ Allowed extensions (.jpg, .jpeg, .png), case-insensitive
    ✅ Rejected extensions (.gif, .pdf, none)
    ✅ Size limits (empty, boundary at max_file_size, reported length)
    ✅ Sniffed content type
    ✅ Storage, cleanup and path resolution
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from app.config import settings
from app.exceptions import FileStorageError, NotFoundError, ValidationError
from app.services.file_service import FileService

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def fake_magic(mime_type="image/png", error=None):
    module = MagicMock()
    if error:
        module.from_buffer.side_effect = error
    else:
        module.from_buffer.return_value = mime_type
    return patch.dict(sys.modules, {"magic": module})


@pytest.fixture
def service(tmp_path):
    return FileService(storage_root=str(tmp_path))


class TestExtension:

    @pytest.mark.parametrize("filename", ["me.jpg", "me.jpeg", "me.png", "ME.JPG", "me.Png"])
    def test_allowed(self, service, filename):
        assert service.validate_extension(filename) in {".jpg", ".jpeg", ".png"}

    @pytest.mark.parametrize("filename", ["anim.gif", "cv.pdf", "noextension"])
    def test_rejected(self, service, filename):
        with pytest.raises(ValidationError, match="not supported"):
            service.validate_extension(filename)


class TestSize:

    def test_empty_file(self, service):
        with pytest.raises(ValidationError, match="empty"):
            service.validate_size(None, 0)

    def test_at_limit_passes(self, service):
        service.validate_size(settings.max_file_size, settings.max_file_size)

    def test_over_limit(self, service):
        with pytest.raises(ValidationError, match="too large"):
            service.validate_size(None, settings.max_file_size + 1)

    def test_reported_length_over_limit(self, service):
        with pytest.raises(ValidationError, match="too large"):
            service.validate_size(settings.max_file_size * 2, 100)


class TestMimeType:

    def test_png_accepted(self, service):
        with fake_magic("image/png"):
            assert service.validate_mime_type(PNG_BYTES) == "image/png"

    def test_renamed_file_rejected(self, service):
        with fake_magic("application/pdf"):
            with pytest.raises(ValidationError, match="application/pdf"):
                service.validate_mime_type(b"%PDF-1.7")

    def test_libmagic_failure(self, service):
        with fake_magic(error=RuntimeError("magic db missing")):
            with pytest.raises(FileStorageError):
                service.validate_mime_type(PNG_BYTES)


class TestStorage:

    @pytest.mark.asyncio
    async def test_validate_and_store_writes_file(self, service, tmp_path):
        with fake_magic("image/png"):
            absolute, relative = await service.validate_and_store("me.PNG", PNG_BYTES)

        stored = Path(absolute)
        assert stored.read_bytes() == PNG_BYTES
        assert stored.suffix == ".png"
        assert stored.is_relative_to(tmp_path.resolve())
        # YYYY/MM/DD/<uuid>.png
        assert len(Path(relative).parts) == 4
        assert service.public_url(relative) == f"/api/files/{relative}"

    @pytest.mark.asyncio
    async def test_invalid_upload_writes_nothing(self, service, tmp_path):
        with fake_magic("text/plain"):
            with pytest.raises(ValidationError):
                await service.validate_and_store("me.png", b"hello")

        assert list(tmp_path.rglob("*.png")) == []

    @pytest.mark.asyncio
    async def test_cleanup_removes_file(self, service):
        absolute, _ = await service.store_file(PNG_BYTES, ".png")

        await service.cleanup_file(absolute)

        assert not Path(absolute).exists()

    @pytest.mark.asyncio
    async def test_cleanup_of_missing_file_is_quiet(self, service, tmp_path):
        await service.cleanup_file(str(tmp_path / "gone.png"))


class TestResolve:

    @pytest.mark.asyncio
    async def test_existing_file(self, service):
        absolute, relative = await service.store_file(PNG_BYTES, ".jpg")

        assert service.resolve(relative) == Path(absolute)

    def test_missing_file(self, service):
        with pytest.raises(NotFoundError):
            service.resolve("2026/01/01/missing.png")

    def test_path_traversal(self, service):
        with pytest.raises(ValidationError, match="Invalid file path"):
            service.resolve("../../etc/passwd")
