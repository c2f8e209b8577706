"""Verification artifacts attached to certificates at issuance."""

from __future__ import annotations

import base64
import io
from typing import Protocol, runtime_checkable

import qrcode


@runtime_checkable
class ArtifactGenerator(Protocol):
    def for_verification_url(self, url: str) -> str: ...


class QRCodeArtifactGenerator:
    """Renders a PNG QR code and returns it as a data URL."""

    def __init__(self, *, box_size: int = 10, border: int = 4) -> None:
        self._box_size = box_size
        self._border = border

    def for_verification_url(self, url: str) -> str:
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=self._box_size,
            border=self._border,
        )
        qr.add_data(url)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        img_str = base64.b64encode(buffer.getvalue()).decode()

        return f"data:image/png;base64,{img_str}"


def verification_url(frontend_url: str, certificate_id) -> str:
    return f"{frontend_url.rstrip('/')}/verify/{certificate_id}"
