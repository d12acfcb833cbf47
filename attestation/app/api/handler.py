"""
Serverless entrypoint.

Accepts a gateway event carrying ``queryStringParameters`` and returns a
``status`` / ``headers`` / ``body`` envelope with the PDF base64-encoded.
Failures propagate to the runtime; no envelope is produced for them.
"""

from __future__ import annotations

import base64
from datetime import datetime
from functools import partial
from typing import Any, Dict, Mapping, Optional

import anyio

from attestation.app.core.config import Settings, get_settings
from attestation.app.schemas.applicant import ApplicantRecord
from attestation.app.services.certificate import generate_certificate


async def handle_event(
    event: Mapping[str, Any],
    *,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    record = ApplicantRecord.from_query(event.get("queryStringParameters"))

    certificate = await generate_certificate(
        record,
        settings=settings or get_settings(),
        now=now,
    )

    return {
        "status": 200,
        "isBase64Encoded": True,
        "headers": {
            "Content-Type": "application/pdf",
            "Content-Disposition": certificate.content_disposition,
        },
        "body": base64.b64encode(certificate.content).decode("ascii"),
    }


def handler(event: Mapping[str, Any], context: Any = None) -> Dict[str, Any]:
    """Synchronous wrapper for runtimes that do not await handlers."""
    return anyio.run(partial(handle_event, event))
