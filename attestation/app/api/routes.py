import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from attestation.app.core.config import Settings, get_settings
from attestation.app.schemas.applicant import ApplicantRecord
from attestation.app.services.certificate import generate_certificate

logger = logging.getLogger("attestation.api")

router = APIRouter(tags=["Attestation"])


# =============================================================================
# GET /certificate
# =============================================================================

@router.get(
    "/certificate",
    summary="Generate a filled attestation PDF",
    response_class=Response,
    responses={
        200: {
            "content": {"application/pdf": {}},
            "description": "Attestation document",
        },
        500: {"description": "Generation failure"},
    },
)
async def get_certificate(
    settings: Annotated[Settings, Depends(get_settings)],
    firstname: Annotated[str, Query()] = "",
    lastname: Annotated[str, Query()] = "",
    birthday: Annotated[str, Query(description="ISO-8601 birth date")] = "",
    birthtown: Annotated[str, Query()] = "",
    address: Annotated[str, Query()] = "",
    city: Annotated[str, Query()] = "",
    zipcode: Annotated[str, Query()] = "",
    date: Annotated[str, Query(description="ISO-8601 departure date and time")] = "",
    reasons: Annotated[str, Query(description="Comma-separated reason codes")] = "",
) -> Response:
    """
    Fill the attestation template and return it as a download.

    Query values are used as given. Unparsable dates are rendered as
    ``NaN`` rather than rejected.
    """
    record = ApplicantRecord.from_query(
        {
            "firstname": firstname,
            "lastname": lastname,
            "birthday": birthday,
            "birthtown": birthtown,
            "address": address,
            "city": city,
            "zipcode": zipcode,
            "date": date,
            "reasons": reasons,
        }
    )

    try:
        certificate = await generate_certificate(record, settings=settings)
    except Exception as exc:
        logger.exception("certificate_generation_failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Certificate generation failed. See service logs for details.",
        ) from exc

    return Response(
        content=certificate.content,
        media_type="application/pdf",
        headers={"Content-Disposition": certificate.content_disposition},
    )
