"""
Unit tests for result extraction.
"""

import base64

import pytest

from genpool.errors import NoImageInOutput
from genpool.extractor import ResultExtractor, decode_b64, find_image_b64, sniff_mime_type, strip_data_uri


@pytest.fixture
def extractor():
    return ResultExtractor()


class TestResultExtractor:
    """Test cases for ResultExtractor."""

    @pytest.mark.parametrize("shape", ["images_list", "images_dicts", "image_key", "bare_string", "bare_list"])
    def test_recognized_shapes(self, extractor, handle, png_b64, png_bytes, shape):
        raw_output = {
            "images_list": {"images": [png_b64, "ignored"]},
            "images_dicts": {"images": [{"image": png_b64}]},
            "image_key": {"image": png_b64},
            "bare_string": png_b64,
            "bare_list": [png_b64],
        }[shape]

        image = extractor.extract(raw_output, handle)

        assert image.data == png_bytes
        assert image.b64 == png_b64
        assert image.mime_type == "image/png"
        assert image.handle is handle
        assert image.variant is handle.variant

    def test_data_uri_prefix_is_stripped(self, extractor, handle, png_b64, png_bytes):
        image = extractor.extract({"images": [f"data:image/png;base64,{png_b64}"]}, handle)
        assert image.b64 == png_b64
        assert image.data == png_bytes

    def test_missing_padding(self, extractor, handle):
        data = b"\xff\xd8\xff\xe0jpeg"
        unpadded = base64.b64encode(data).decode("ascii").rstrip("=")
        image = extractor.extract({"image": unpadded}, handle)
        assert image.data == data
        assert image.mime_type == "image/jpeg"

    @pytest.mark.parametrize("raw_output", [
        None,
        {},
        {"images": []},
        {"message": "done"},
        [],
        "",
        {"images": [{"url": "https://example.invalid/x.png"}]},
        42,
        "Job completed successfully",
        {"images": ["Job completed successfully"]},
    ])
    def test_no_image(self, extractor, handle, raw_output):
        with pytest.raises(NoImageInOutput) as exc_info:
            extractor.extract(raw_output, handle)
        assert exc_info.value.job_id == "job-1"
        assert exc_info.value.variant == "a1111_api_name"

    def test_undecodable_image(self, extractor, handle):
        with pytest.raises(NoImageInOutput, match="not valid base64"):
            extractor.extract({"images": ["not*base64!"]}, handle)

    def test_decodable_text_is_not_an_image(self, extractor, handle):
        text_b64 = base64.b64encode(b"plain text, not pixels").decode("ascii")
        with pytest.raises(NoImageInOutput, match="PNG, JPEG, WEBP or GIF"):
            extractor.extract({"image": text_b64}, handle)

    def test_idempotent(self, extractor, handle, png_b64):
        raw_output = {"images": [png_b64]}
        assert extractor.extract(raw_output, handle) == extractor.extract(raw_output, handle)


class TestHelpers:
    """Test cases for the extraction helpers."""

    def test_find_image_b64_prefers_first(self):
        assert find_image_b64({"images": [{"url": "x"}, "second"]}) == "second"
        assert find_image_b64({"images": "single"}) == "single"
        assert find_image_b64(3.5) is None

    def test_strip_data_uri(self):
        assert strip_data_uri("data:image/webp;base64,QUJD") == "QUJD"
        assert strip_data_uri("  QUJD\n") == "QUJD"

    def test_decode_ignores_whitespace(self):
        assert decode_b64("QU\nJD") == b"ABC"

    @pytest.mark.parametrize("content,expected", [
        (b"\x89PNG\r\n\x1a\nrest", "image/png"),
        (b"\xff\xd8\xff\xdb", "image/jpeg"),
        (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
        (b"GIF89a....", "image/gif"),
        (b"unknown", None),
    ])
    def test_sniff_mime_type(self, content, expected):
        assert sniff_mime_type(content) == expected
