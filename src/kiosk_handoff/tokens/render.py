"""QR image rendering for transfer tokens."""
from __future__ import annotations

import base64
import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from qrcode.image.pure import PyPNGImage

DATA_URL_PREFIX = "data:image/png;base64,"


def render_qr_data_url(data: str, *, box_size: int = 10, border: int = 1) -> str:
    """Encode ``data`` as a QR code and return it as a PNG data URL.

    Parameters
    ----------
    data:
        Text to encode, normally the compact JSON token payload.
    box_size:
        Pixels per QR module.
    border:
        Quiet-zone width in modules.

    Returns
    -------
    str
        ``data:image/png;base64,...`` suitable for an ``<img src>``.
    """
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
        image_factory=PyPNGImage,
    )
    qr.add_data(data)
    qr.make(fit=True)
    buffer = io.BytesIO()
    qr.make_image().save(buffer)
    return DATA_URL_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")


__all__ = ["DATA_URL_PREFIX", "render_qr_data_url"]
