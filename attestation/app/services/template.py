"""
Template document loading.

The attestation template is a fixed, versioned PDF read from the local
file system. Loading is split in two steps so the file read can run
concurrently with QR encoding, while parsing happens once both results
are available.

Trust boundary:
- The template's coordinate system and artwork are a fixed contract.
- Nothing in this module mutates the document.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path

import anyio
import pikepdf

from attestation.app.core.errors import TemplateLoadError

logger = logging.getLogger("attestation.template")


async def read_template_bytes(path: Path) -> bytes:
    """
    Read the raw template bytes.

    Raises:
        TemplateLoadError:
            If the file is missing, unreadable or empty.
    """
    try:
        data = await anyio.Path(path).read_bytes()
    except OSError as exc:
        raise TemplateLoadError(
            f"Failed to read template document {path}: {exc}"
        ) from exc

    if not data:
        raise TemplateLoadError(f"Template document {path} is empty")

    logger.debug(
        "template_read",
        extra={"template_path": str(path), "template_bytes": len(data)},
    )
    return data


def open_template(data: bytes, *, expected_page_count: int = 1) -> pikepdf.Pdf:
    """
    Parse template bytes into a mutable document.

    The caller owns the returned document and must close it.

    Raises:
        TemplateLoadError:
            If the bytes are not a PDF or the page count differs from
            ``expected_page_count``.
    """
    try:
        pdf = pikepdf.open(io.BytesIO(data))
    except pikepdf.PdfError as exc:
        raise TemplateLoadError(
            f"Template document is not a valid PDF: {exc}"
        ) from exc

    page_count = len(pdf.pages)
    if page_count != expected_page_count:
        pdf.close()
        raise TemplateLoadError(
            f"Template document has {page_count} page(s), "
            f"expected {expected_page_count}"
        )

    return pdf
