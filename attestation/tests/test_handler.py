import base64
import io
from datetime import datetime

import pikepdf
import pytest

from attestation.app.api.handler import handle_event, handler
from attestation.app.core.config import Settings
from attestation.app.core.errors import TemplateLoadError
from attestation.tests.fixtures.pdf_factory import template_pdf

pytestmark = pytest.mark.anyio


@pytest.fixture
def settings(tmp_path) -> Settings:
    path = tmp_path / "certificate.pdf"
    path.write_bytes(template_pdf())
    return Settings(template_path=path)


async def test_envelope(settings):
    event = {
        "queryStringParameters": {
            "firstname": "Camille",
            "lastname": "Martin",
            "date": "2021-04-16T14:05",
            "reasons": "achats",
        }
    }

    response = await handle_event(
        event, settings=settings, now=datetime(2021, 4, 16, 13, 58)
    )

    assert response["status"] == 200
    assert response["isBase64Encoded"] is True
    assert response["headers"] == {
        "Content-Type": "application/pdf",
        "Content-Disposition": (
            'attachment; filename="attestation-2021-16-04-14-05.pdf"'
        ),
    }

    content = base64.b64decode(response["body"])
    with pikepdf.open(io.BytesIO(content)) as pdf:
        assert len(pdf.pages) == 2


async def test_missing_query_parameters(settings):
    response = await handle_event(
        {"queryStringParameters": None}, settings=settings
    )

    assert response["status"] == 200
    assert base64.b64decode(response["body"]).startswith(b"%PDF-")


async def test_failures_propagate(tmp_path):
    settings = Settings(template_path=tmp_path / "missing.pdf")

    with pytest.raises(TemplateLoadError):
        await handle_event({"queryStringParameters": {}}, settings=settings)


def test_sync_handler_uses_packaged_template():
    response = handler({"queryStringParameters": {"reasons": "sport_animaux"}})

    assert response["status"] == 200
    assert base64.b64decode(response["body"]).startswith(b"%PDF-")
