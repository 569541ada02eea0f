"""
Tests for source screenshot validation and the stored source payload.
"""

import base64

import pytest
from fastapi import HTTPException

from conftest import make_png_bytes
from services.image_validation import (
    SourceImage,
    decode_source,
    encode_source,
    extension_for_image_mime_type,
    normalize_image_mime_type,
    sniff_image_mime_type,
    validate_uploaded_image_payload,
)


class TestMimeNormalization:
    @pytest.mark.parametrize(
        "claimed,expected",
        [
            ("image/PNG", "image/png"),
            ("image/jpg", "image/jpeg"),
            ('"image/webp"', "image/webp"),
            ("image/jpeg; charset=binary", "image/jpeg"),
            ("", ""),
        ],
    )
    def test_normalize(self, claimed, expected):
        assert normalize_image_mime_type(claimed) == expected

    def test_extensions(self):
        assert extension_for_image_mime_type("image/png") == ".png"
        assert extension_for_image_mime_type("image/jpg") == ".jpg"
        assert extension_for_image_mime_type("image/webp") == ".webp"
        assert extension_for_image_mime_type("image/gif") == ""

    def test_sniff(self, sample_image_bytes, sample_jpeg_bytes):
        assert sniff_image_mime_type(sample_image_bytes) == "image/png"
        assert sniff_image_mime_type(sample_jpeg_bytes) == "image/jpeg"
        assert sniff_image_mime_type(b"GIF89a") is None


class TestValidateUploadedImagePayload:
    def test_png_accepted(self, sample_image_bytes):
        info = validate_uploaded_image_payload(sample_image_bytes, "image/png")
        assert info.mime_type == "image/png"
        assert (info.width, info.height) == (100, 100)

    def test_sniffed_type_wins_over_claim(self, sample_jpeg_bytes):
        info = validate_uploaded_image_payload(sample_jpeg_bytes, "image/png")
        assert info.mime_type == "image/jpeg"

    def test_too_large_rejected(self, sample_image_bytes):
        with pytest.raises(HTTPException) as exc_info:
            validate_uploaded_image_payload(sample_image_bytes, max_size_bytes=100)
        assert exc_info.value.status_code == 413

    def test_not_an_image_rejected(self):
        with pytest.raises(HTTPException) as exc_info:
            validate_uploaded_image_payload(b"%PDF-1.7 not an image at all", "image/png")
        assert exc_info.value.status_code == 400

    def test_tiny_image_rejected(self):
        with pytest.raises(HTTPException) as exc_info:
            validate_uploaded_image_payload(make_png_bytes((8, 8)))
        assert "too small" in exc_info.value.detail

    def test_long_scrolling_screenshot_accepted(self):
        info = validate_uploaded_image_payload(make_png_bytes((100, 1100)))
        assert info.height == 1100


class TestSourcePayload:
    def test_encode_then_decode_is_byte_identical(self, sample_image_bytes):
        source = SourceImage(data=sample_image_bytes, mime_type="image/png")
        restored = decode_source(encode_source(source), "image/png", filename="x.png")
        assert restored.data == sample_image_bytes
        assert restored.filename == "x.png"

    def test_data_url_accepted(self, sample_image_bytes):
        payload = "data:image/png;base64," + base64.b64encode(sample_image_bytes).decode("ascii")
        restored = decode_source(payload, "")
        assert restored.mime_type == "image/png"
        assert restored.data == sample_image_bytes

    def test_mime_sniffed_when_missing(self, sample_jpeg_bytes):
        payload = base64.b64encode(sample_jpeg_bytes).decode("ascii")
        assert decode_source(payload, "").mime_type == "image/jpeg"

    def test_invalid_base64(self):
        with pytest.raises(ValueError):
            decode_source("not*base64", "image/png")

    def test_empty_payload(self):
        with pytest.raises(ValueError):
            decode_source("", "image/png")
