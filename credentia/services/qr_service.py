"""
QR code generation for public credential verification.
The code encodes the verification URL of a single credential.
"""

import base64
from io import BytesIO

import qrcode

from ..utils.logger import get_logger

logger = get_logger("qr_service")


class QRCodeService:
    """Service for generating verification QR codes."""

    def __init__(self, box_size: int = 10, border: int = 4):
        self.box_size = box_size
        self.border = border

    def generate_png(self, content: str, size: int = 300) -> bytes:
        """
        Encode content as a QR code PNG.

        Args:
            content: Text to encode, usually a URL
            size: Output image side in pixels
        """
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(content)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")
        img = img.get_image().resize((size, size))

        buffer = BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()

    def generate_base64(self, content: str, size: int = 300) -> str:
        img_str = base64.b64encode(self.generate_png(content, size)).decode()
        logger.info(f"Generated QR code for {content}")
        return img_str
