"""
QR payload construction and date/time formatting.

Everything here is pure: no I/O, no clock access. The generation
timestamp is always supplied by the caller so the payload is a
deterministic function of its inputs.

Invalid dates (``None``) are not rejected. Each date or time component
renders as ``NaN`` so the malformed value stays visible in the output.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from attestation.app.schemas.applicant import ApplicantRecord


PAYLOAD_SEPARATOR = ";\n "

_INVALID_COMPONENT = "NaN"


# ------------------------------------------------------------------
# Formatting helpers
# ------------------------------------------------------------------

def _pad(value: int) -> str:
    return f"{value:02d}"


def format_date(value: Optional[datetime], separator: str = "/") -> str:
    """Render ``DD<sep>MM<sep>YYYY``."""
    if value is None:
        return separator.join([_INVALID_COMPONENT] * 3)
    return separator.join([_pad(value.day), _pad(value.month), str(value.year)])


def format_date_alternate(value: Optional[datetime], separator: str = "/") -> str:
    """Render ``YYYY<sep>DD<sep>MM`` (year, day, month)."""
    if value is None:
        return separator.join([_INVALID_COMPONENT] * 3)
    return separator.join([str(value.year), _pad(value.day), _pad(value.month)])


def format_time(value: Optional[datetime], separator: str = ":") -> str:
    """Render ``HH<sep>MM``."""
    if value is None:
        return separator.join([_INVALID_COMPONENT] * 2)
    return separator.join([_pad(value.hour), _pad(value.minute)])


# ------------------------------------------------------------------
# Payload
# ------------------------------------------------------------------

def payload_lines(
    record: ApplicantRecord,
    *,
    generated_at: datetime,
) -> List[str]:
    return [
        f"Created: {format_date(generated_at)} at {format_time(generated_at)}",
        f"Last name: {record.last_name}",
        f"First name: {record.first_name}",
        f"Birth: {format_date(record.birth_date)} at {record.birth_town}",
        f"Address: {record.full_address}",
        f"Departure: {format_date(record.departure)} at {format_time(record.departure)}",
        f"Reasons: {record.reasons}",
    ]


def build_qr_payload(
    record: ApplicantRecord,
    *,
    generated_at: datetime,
) -> str:
    """
    Build the text block encoded into the attestation QR code.

    Lines are emitted in a fixed order and joined with ``";\\n "``.
    """
    return PAYLOAD_SEPARATOR.join(
        payload_lines(record, generated_at=generated_at)
    )
