from __future__ import annotations

import base64
import binascii
import io
import re
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from ..core.constants import MAX_IMAGE_BYTES
from ..core.exceptions import BiometricFailure

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[^;,]+)(?:;[^,]*)?;base64,(?P<data>.*)$", re.DOTALL)

PROFILE_MAX_SIZE = (400, 400)


@dataclass(frozen=True)
class CapturedImage:
    """Raw image bytes plus their MIME type."""

    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_data_url(cls, data_url: str) -> "CapturedImage":
        match = _DATA_URL_RE.match(data_url or "")
        if not match:
            raise BiometricFailure("Failed to process image data. Please try capturing again.")
        try:
            data = base64.b64decode(match.group("data"), validate=True)
        except (binascii.Error, ValueError):
            raise BiometricFailure("Failed to process image data. Please try capturing again.")
        return cls(data=data, content_type=match.group("mime").strip().lower())


def validate_image(image: CapturedImage, *, max_bytes: int = MAX_IMAGE_BYTES) -> CapturedImage:
    if image is None or image.size == 0:
        raise BiometricFailure("Invalid image: Image data is empty")
    if image.size > max_bytes:
        raise BiometricFailure(f"Invalid image: Image size exceeds {max_bytes // (1024 * 1024)}MB limit")
    if not image.content_type.startswith("image/"):
        raise BiometricFailure("Invalid image: File must be an image")
    return image


def resize_for_profile(image: CapturedImage) -> CapturedImage:
    """Downscale to fit 400x400 and re-encode as JPEG."""
    try:
        img = Image.open(io.BytesIO(image.data))
        img.load()
    except (UnidentifiedImageError, OSError):
        raise BiometricFailure("Invalid image: Could not decode image")

    img = img.convert("RGB")
    img.thumbnail(PROFILE_MAX_SIZE)
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=90)
    return CapturedImage(data=buf.getvalue(), content_type="image/jpeg")
