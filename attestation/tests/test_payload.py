"""
Tests for QR payload construction and date/time formatting.

Coverage:
  - Zero-padded DD/MM/YYYY, YYYY-DD-MM and HH:MM rendering
  - Invalid dates render as NaN components instead of failing
  - Fixed line order, labels and separator
  - Determinism under a fixed generation clock
"""

from datetime import datetime

from attestation.app.schemas.applicant import ApplicantRecord
from attestation.app.services.payload import (
    PAYLOAD_SEPARATOR,
    build_qr_payload,
    format_date,
    format_date_alternate,
    format_time,
)


GENERATED_AT = datetime(2021, 4, 16, 13, 58)


def _record(**overrides) -> ApplicantRecord:
    values = dict(
        first_name="Camille",
        last_name="Martin",
        birth_date=datetime(1985, 3, 7),
        birth_town="Lyon",
        address="12 rue des Lilas",
        zip_code="75011",
        city="Paris",
        departure=datetime(2021, 4, 16, 14, 5),
        reasons="travail, sante",
    )
    values.update(overrides)
    return ApplicantRecord(**values)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def test_format_date_is_day_month_year_zero_padded():
    assert format_date(datetime(2021, 4, 6)) == "06/04/2021"
    assert format_date(datetime(2021, 12, 25), "-") == "25-12-2021"


def test_format_date_alternate_is_year_day_month():
    assert format_date_alternate(datetime(2021, 4, 16), "-") == "2021-16-04"
    assert format_date_alternate(datetime(2021, 4, 6)) == "2021/06/04"


def test_format_time_is_hours_minutes_zero_padded():
    assert format_time(datetime(2021, 4, 16, 9, 5)) == "09:05"
    assert format_time(datetime(2021, 4, 16, 14, 5), "-") == "14-05"


def test_invalid_dates_render_as_nan_components():
    assert format_date(None) == "NaN/NaN/NaN"
    assert format_date_alternate(None, "-") == "NaN-NaN-NaN"
    assert format_time(None) == "NaN:NaN"


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------

def test_payload_lines_are_ordered_and_labelled():
    payload = build_qr_payload(_record(), generated_at=GENERATED_AT)

    assert payload.split(PAYLOAD_SEPARATOR) == [
        "Created: 16/04/2021 at 13:58",
        "Last name: Martin",
        "First name: Camille",
        "Birth: 07/03/1985 at Lyon",
        "Address: 12 rue des Lilas 75011 Paris",
        "Departure: 16/04/2021 at 14:05",
        "Reasons: travail, sante",
    ]


def test_payload_uses_semicolon_newline_separator():
    payload = build_qr_payload(_record(), generated_at=GENERATED_AT)

    assert PAYLOAD_SEPARATOR == ";\n "
    assert payload.count(";\n ") == 6


def test_payload_is_deterministic_for_fixed_clock():
    first = build_qr_payload(_record(), generated_at=GENERATED_AT)
    second = build_qr_payload(_record(), generated_at=GENERATED_AT)

    assert first.encode("utf-8") == second.encode("utf-8")


def test_payload_reflects_generation_clock():
    earlier = build_qr_payload(_record(), generated_at=GENERATED_AT)
    later = build_qr_payload(
        _record(), generated_at=datetime(2021, 4, 16, 14, 0)
    )

    assert earlier != later
    assert later.startswith("Created: 16/04/2021 at 14:00")


def test_payload_keeps_raw_reason_string():
    payload = build_qr_payload(
        _record(reasons=" achats ,unknown,  enfants"),
        generated_at=GENERATED_AT,
    )

    assert payload.endswith("Reasons:  achats ,unknown,  enfants")


def test_payload_with_invalid_dates_does_not_fail():
    payload = build_qr_payload(
        _record(birth_date=None, departure=None),
        generated_at=GENERATED_AT,
    )

    assert "Birth: NaN/NaN/NaN at Lyon" in payload
    assert "Departure: NaN/NaN/NaN at NaN:NaN" in payload
