"""
Attestation composition pipeline.

Payload Builder → (QR Encoder ∥ Template read) → Layout Engine → Serializer

The QR encoding and the template read are independent and run
concurrently. Both results must be available before layout starts. Any
failure aborts the request; no partial document is ever returned.
"""

from __future__ import annotations

import asyncio
import io
import logging
from datetime import datetime
from typing import Optional

import pikepdf

from attestation.app.core.config import Settings
from attestation.app.schemas.applicant import ApplicantRecord
from attestation.app.schemas.certificate import RenderedCertificate
from attestation.app.services.layout import compose_certificate
from attestation.app.services.payload import (
    build_qr_payload,
    format_date_alternate,
    format_time,
)
from attestation.app.services.qr import encode_qr_async
from attestation.app.services.template import open_template, read_template_bytes

logger = logging.getLogger("attestation.pipeline")


# ------------------------------------------------------------------
# Serializer
# ------------------------------------------------------------------

def certificate_filename(departure: Optional[datetime]) -> str:
    """``attestation-<YYYY-DD-MM>-<HH-MM>.pdf`` for the departure time."""
    return (
        f"attestation-{format_date_alternate(departure, '-')}"
        f"-{format_time(departure, '-')}.pdf"
    )


def serialize(pdf: pikepdf.Pdf) -> bytes:
    buffer = io.BytesIO()
    pdf.save(buffer)
    return buffer.getvalue()


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------

async def generate_certificate(
    record: ApplicantRecord,
    *,
    settings: Settings,
    now: Optional[datetime] = None,
) -> RenderedCertificate:
    """
    Render the attestation document for ``record``.

    Args:
        record:
            Applicant data, already validated by the caller.
        settings:
            Template location and QR encoding parameters.
        now:
            Generation timestamp written into the QR payload. Defaults to
            the current local time.

    Raises:
        QREncodingError:
            If the payload does not fit in a QR symbol.
        TemplateLoadError:
            If the template cannot be read or parsed.
    """
    generated_at = now or datetime.now()
    payload = build_qr_payload(record, generated_at=generated_at)

    # Join point: layout needs both the template and the QR image.
    template_bytes, qr_png = await asyncio.gather(
        read_template_bytes(settings.template_path),
        encode_qr_async(
            payload,
            error_correction=settings.qr_error_correction,
            border=settings.qr_border,
            box_size=settings.qr_box_size,
        ),
    )

    with open_template(
        template_bytes,
        expected_page_count=settings.template_page_count,
    ) as pdf:
        compose_certificate(pdf, record, qr_png)
        content = serialize(pdf)

    filename = certificate_filename(record.departure)

    logger.info(
        "certificate_generated",
        extra={"certificate_filename": filename, "pdf_bytes": len(content)},
    )
    return RenderedCertificate(content=content, filename=filename)
