"""
Tests for the category image store
"""
from unittest.mock import patch

import pytest

pytest.importorskip("magic")

from catalog.exceptions import InvalidCategoryData
from catalog.services.image_service import ImageService


@pytest.fixture
def images(tmp_path):
    return ImageService(upload_path=tmp_path, base_url="https://cdn.example/categories/",
                        max_size=1024)


@pytest.mark.unit
@pytest.mark.asyncio
class TestImageService:

    async def test_upload_returns_url(self, images, tmp_path):
        with patch("catalog.services.image_service.magic.from_buffer", return_value="image/png"):
            result = await images.upload(b"\x89PNG fake", "brakes.png")

        assert result['url'].startswith("https://cdn.example/categories/")
        assert result['url'].endswith(".png")
        assert (tmp_path / result['filename']).read_bytes() == b"\x89PNG fake"

    async def test_rejects_non_image(self, images):
        with patch("catalog.services.image_service.magic.from_buffer", return_value="application/pdf"):
            with pytest.raises(InvalidCategoryData):
                await images.upload(b"%PDF-1.4", "brakes.pdf")

    async def test_rejects_oversized(self, images):
        with pytest.raises(InvalidCategoryData):
            await images.upload(b"x" * 2048, "big.png")

    async def test_delete_own_image(self, images, tmp_path):
        (tmp_path / "old.png").write_bytes(b"x")

        assert await images.delete("https://cdn.example/categories/old.png") is True
        assert not (tmp_path / "old.png").exists()
        assert await images.delete("https://cdn.example/categories/old.png") is False

    async def test_delete_ignores_foreign_url(self, images, tmp_path):
        (tmp_path / "old.png").write_bytes(b"x")

        assert await images.delete("https://elsewhere.example/old.png") is False
        assert (tmp_path / "old.png").exists()
