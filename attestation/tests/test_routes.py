import io

import pikepdf
import pytest
from fastapi.testclient import TestClient

from attestation.app.core.config import Settings, get_settings
from attestation.app.main import create_app
from attestation.tests.fixtures.pdf_factory import not_a_pdf, template_pdf


QUERY = {
    "firstname": "Camille",
    "lastname": "Martin",
    "birthday": "1985-03-07",
    "birthtown": "Lyon",
    "address": "12 rue des Lilas",
    "zipcode": "75011",
    "city": "Paris",
    "date": "2021-04-16T14:05",
    "reasons": "travail, sante",
}


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app, tmp_path):
    path = tmp_path / "certificate.pdf"
    path.write_bytes(template_pdf())
    app.dependency_overrides[get_settings] = lambda: Settings(template_path=path)

    with TestClient(app) as test_client:
        yield test_client


def test_healthz(client):
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["service"] == "attestation"


def test_certificate_download(client):
    response = client.get("/certificate", params=QUERY)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == (
        'attachment; filename="attestation-2021-16-04-14-05.pdf"'
    )

    with pikepdf.open(io.BytesIO(response.content)) as pdf:
        assert len(pdf.pages) == 2


def test_all_parameters_default_to_empty(client):
    response = client.get("/certificate")

    assert response.status_code == 200
    assert response.headers["content-disposition"] == (
        'attachment; filename="attestation-NaN-NaN-NaN-NaN-NaN.pdf"'
    )


def test_generation_failure_maps_to_500(app, tmp_path):
    path = tmp_path / "corrupt.pdf"
    path.write_bytes(not_a_pdf())
    app.dependency_overrides[get_settings] = lambda: Settings(template_path=path)

    with TestClient(app) as client:
        response = client.get("/certificate", params=QUERY)

    assert response.status_code == 500
    assert "generation failed" in response.json()["detail"]
