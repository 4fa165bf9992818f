"""
Unit tests for image_utils module.
"""

import base64
import io

import pytest
from PIL import Image

from listing_gateway.utils.image_utils import (
    encode_image_file,
    resize_image,
    safe_upload_name,
    save_upload,
)


def make_image_bytes(width, height, mode="RGB", fmt="PNG"):
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color=(200, 100, 50) if mode == "RGB" else None).save(
        buffer, format=fmt
    )
    return buffer.getvalue()


class TestResizeImage:
    """Test downscaling uploaded images."""

    def test_long_edge_limited(self):
        """Test the long edge is reduced to 1024 keeping the aspect ratio."""
        result = Image.open(io.BytesIO(resize_image(make_image_bytes(2048, 1024))))

        assert result.format == "JPEG"
        assert result.size == (1024, 512)

    def test_portrait(self):
        result = Image.open(io.BytesIO(resize_image(make_image_bytes(600, 3000))))
        assert max(result.size) == 1024
        assert result.size[1] == 1024

    def test_small_image_not_enlarged(self):
        result = Image.open(io.BytesIO(resize_image(make_image_bytes(300, 200))))
        assert result.size == (300, 200)

    def test_alpha_converted(self):
        """Test RGBA input is flattened for JPEG."""
        result = Image.open(io.BytesIO(resize_image(make_image_bytes(64, 64, mode="RGBA"))))
        assert result.mode == "RGB"

    def test_invalid_bytes(self):
        with pytest.raises(ValueError):
            resize_image(b"definitely not an image")


class TestUploads:
    """Test storing uploads and reading them back."""

    def test_save_upload(self, tmp_path):
        path = save_upload(make_image_bytes(1500, 1500), "my photo.png", tmp_path / "uploads")

        assert path.parent == tmp_path / "uploads"
        assert path.name.endswith("-my_photo.jpg")
        assert Image.open(path).size == (1024, 1024)

    def test_safe_upload_name_strips_directories(self):
        name = safe_upload_name("../../etc/passwd")
        assert "/" not in name
        assert name.endswith("-passwd.jpg")

    def test_safe_upload_name_default(self):
        assert safe_upload_name(None).endswith("-image.jpg")

    def test_encode_image_file(self, tmp_path):
        path = tmp_path / "a.jpg"
        path.write_bytes(b"\xff\xd8jpeg")
        assert base64.b64decode(encode_image_file(path)) == b"\xff\xd8jpeg"

    def test_encode_missing_file(self, tmp_path):
        assert encode_image_file(tmp_path / "missing.jpg") is None
        assert encode_image_file(None) is None
