"""
Result extractor.

Normalizes the output shapes seen from different worker images into one
GeneratedImage:

    {"images": ["<b64>", ...]}
    {"images": [{"image": "<b64>"}, ...]}
    {"image": "<b64>"}
    "<b64>"
"""

import base64
import binascii
import re
from typing import Any, Optional

from .errors import NoImageInOutput
from .models import GeneratedImage, JobHandle

DATA_URI_PREFIX = re.compile(r"^data:[\w/+.-]+;base64,", re.IGNORECASE)


def strip_data_uri(value: str) -> str:
    return DATA_URI_PREFIX.sub("", value.strip(), count=1)


def decode_b64(value: str) -> bytes:
    raw = "".join(value.split())
    pad = (-len(raw)) % 4
    if pad:
        raw = raw + ("=" * pad)
    return base64.b64decode(raw, validate=True)


def sniff_mime_type(content: bytes) -> Optional[str]:
    """Return the image MIME type from magic bytes, or None when unrecognized."""
    if content.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if content.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return "image/webp"
    if content.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    return None


def _from_item(item: Any) -> Optional[str]:
    if isinstance(item, str):
        return item
    if isinstance(item, dict) and isinstance(item.get("image"), str):
        return item["image"]
    return None


def find_image_b64(raw_output: Any) -> Optional[str]:
    """Return the first base64 image string in `raw_output`, or None."""
    if isinstance(raw_output, str):
        return raw_output
    if isinstance(raw_output, list):
        for item in raw_output:
            found = _from_item(item)
            if found:
                return found
        return None
    if isinstance(raw_output, dict):
        images = raw_output.get("images")
        if isinstance(images, list):
            return find_image_b64(images)
        if isinstance(images, str):
            return images
        return _from_item(raw_output)
    return None


class ResultExtractor:
    """Turns a COMPLETED job's output into a GeneratedImage."""

    def extract(self, raw_output: Any, handle: JobHandle) -> GeneratedImage:
        """Decode the first image in `raw_output`; raise NoImageInOutput if there is none."""
        found = find_image_b64(raw_output)
        b64 = strip_data_uri(found) if found else ""
        if not b64:
            raise NoImageInOutput(
                "Job completed without an image in its output",
                endpoint_id=handle.endpoint_id,
                job_id=handle.job_id,
                variant=handle.variant_name,
                details={"output_type": type(raw_output).__name__},
            )

        try:
            data = decode_b64(b64)
        except (binascii.Error, ValueError) as e:
            raise NoImageInOutput(
                f"Job output image is not valid base64: {e}",
                endpoint_id=handle.endpoint_id,
                job_id=handle.job_id,
                variant=handle.variant_name,
            ) from e

        if not data:
            raise NoImageInOutput(
                "Job output image is empty",
                endpoint_id=handle.endpoint_id,
                job_id=handle.job_id,
                variant=handle.variant_name,
            )

        mime_type = sniff_mime_type(data)
        if mime_type is None:
            raise NoImageInOutput(
                "Job output does not decode to a PNG, JPEG, WEBP or GIF image",
                endpoint_id=handle.endpoint_id,
                job_id=handle.job_id,
                variant=handle.variant_name,
                details={"prefix": data[:16].hex()},
            )

        return GeneratedImage(
            data=data,
            b64=b64,
            mime_type=mime_type,
            handle=handle,
            variant=handle.variant,
        )
