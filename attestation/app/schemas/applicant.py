from __future__ import annotations

import logging
from datetime import datetime
from typing import Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger("attestation.schemas")


QUERY_FIELDS = (
    "firstname",
    "lastname",
    "birthday",
    "birthtown",
    "address",
    "city",
    "zipcode",
    "date",
    "reasons",
)


def parse_query_date(value: str) -> Optional[datetime]:
    """
    Parse an ISO-8601 date or datetime query value.

    Unparsable input yields ``None`` rather than an error. The invalid
    value keeps flowing through formatting and renders as ``NaN``
    components; rejecting it is the caller's responsibility.
    """
    text = (value or "").strip()
    if not text:
        return None

    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug("unparsable_query_date", extra={"raw_value": value})
        return None


def split_reasons(reasons: str) -> Tuple[str, ...]:
    """Split a comma-separated reason string into trimmed, non-empty codes."""
    return tuple(
        token.strip() for token in reasons.split(",") if token.strip()
    )


class ApplicantRecord(BaseModel):
    """
    Applicant data for a single attestation request.

    Immutable once constructed. Dates are ``None`` when the caller sent a
    missing or unparsable value.
    """

    model_config = ConfigDict(frozen=True)

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    first_name: str = ""
    last_name: str = ""
    birth_date: Optional[datetime] = None
    birth_town: str = ""

    # ------------------------------------------------------------------
    # Address
    # ------------------------------------------------------------------
    address: str = ""
    zip_code: str = ""
    city: str = ""

    # ------------------------------------------------------------------
    # Trip
    # ------------------------------------------------------------------
    departure: Optional[datetime] = None
    reasons: str = Field(
        "",
        description="Raw comma-separated reason codes as sent by the caller.",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def full_address(self) -> str:
        return f"{self.address} {self.zip_code} {self.city}"

    @property
    def reason_codes(self) -> Tuple[str, ...]:
        return split_reasons(self.reasons)

    @classmethod
    def from_query(cls, params: Optional[Mapping[str, object]]) -> "ApplicantRecord":
        """
        Build a record from flat, untyped query parameters.

        Every parameter defaults to the empty string when absent.
        """
        params = params or {}
        raw = {
            key: "" if params.get(key) is None else str(params.get(key))
            for key in QUERY_FIELDS
        }

        return cls(
            first_name=raw["firstname"],
            last_name=raw["lastname"],
            birth_date=parse_query_date(raw["birthday"]),
            birth_town=raw["birthtown"],
            address=raw["address"],
            zip_code=raw["zipcode"],
            city=raw["city"],
            departure=parse_query_date(raw["date"]),
            reasons=raw["reasons"],
        )
