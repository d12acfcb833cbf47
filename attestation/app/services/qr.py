"""
QR image encoding.

Wraps the ``qrcode`` library: the payload text goes in, PNG bytes come
out. No fallback encoding exists. A payload that does not fit the
largest symbol version at the requested error-correction level fails
the request.
"""

from __future__ import annotations

import io
import logging
from functools import partial

import anyio
import qrcode
from qrcode.constants import (
    ERROR_CORRECT_H,
    ERROR_CORRECT_L,
    ERROR_CORRECT_M,
    ERROR_CORRECT_Q,
)
from qrcode.exceptions import DataOverflowError

from attestation.app.core.errors import QREncodingError

logger = logging.getLogger("attestation.qr")


ERROR_CORRECTION_LEVELS = {
    "L": ERROR_CORRECT_L,
    "M": ERROR_CORRECT_M,
    "Q": ERROR_CORRECT_Q,
    "H": ERROR_CORRECT_H,
}


def encode_qr(
    payload: str,
    *,
    error_correction: str = "M",
    border: int = 1,
    box_size: int = 10,
) -> bytes:
    """
    Encode ``payload`` as a PNG QR image.

    Raises:
        QREncodingError:
            If the error-correction level is unknown or the payload
            exceeds the symbol capacity.
    """
    level = ERROR_CORRECTION_LEVELS.get(error_correction.upper())
    if level is None:
        raise QREncodingError(
            f"Unsupported QR error-correction level '{error_correction}'"
        )

    qr = qrcode.QRCode(
        version=None,
        error_correction=level,
        box_size=box_size,
        border=border,
    )
    qr.add_data(payload)

    # qrcode 8.x reports overflow from best_fit as ValueError("Invalid version")
    try:
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as exc:
        raise QREncodingError(
            f"Payload of {len(payload)} characters exceeds QR capacity "
            f"at error-correction level {error_correction.upper()}"
        ) from exc

    image = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")

    logger.debug(
        "qr_encoded",
        extra={
            "qr_version": qr.version,
            "error_correction": error_correction.upper(),
            "png_bytes": buffer.tell(),
        },
    )
    return buffer.getvalue()


async def encode_qr_async(
    payload: str,
    *,
    error_correction: str = "M",
    border: int = 1,
    box_size: int = 10,
) -> bytes:
    """Run :func:`encode_qr` in a worker thread."""
    return await anyio.to_thread.run_sync(
        partial(
            encode_qr,
            payload,
            error_correction=error_correction,
            border=border,
            box_size=box_size,
        )
    )
