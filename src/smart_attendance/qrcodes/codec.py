from __future__ import annotations

import base64
import io

import qrcode
from PIL import Image

from ..core.exceptions import InvalidToken


def render_png(payload: str, *, box_size: int = 10, border: int = 2) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(payload)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def render_data_url(payload: str) -> str:
    encoded = base64.b64encode(render_png(payload)).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def decode_image(stream) -> str:
    """Decode the first QR code found in an uploaded camera frame."""
    # pyzbar loads the native zbar library on import.
    from pyzbar.pyzbar import decode as pyzbar_decode

    try:
        img = Image.open(stream).convert("RGB")
    except OSError:
        raise InvalidToken("Uploaded file is not an image")

    decoded = pyzbar_decode(img)
    if not decoded:
        raise InvalidToken("No QR code detected in the image")
    return decoded[0].data.decode("utf-8").strip()
