import sys
import logging

from contextlib import asynccontextmanager
from importlib.metadata import version, PackageNotFoundError

from fastapi import FastAPI

from attestation.app.api.routes import router as certificate_router
from attestation.app.core.config import get_settings

logger = logging.getLogger("attestation.main")


def get_app_version() -> str:
    """
    Resolve application version deterministically.

    Falls back to the source-tree version when the package is not installed.
    """
    try:
        return version("attestation")
    except PackageNotFoundError:
        return "0.1.0"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Guarantees:
    - Fail-fast startup if configuration is invalid
    - Fail-fast startup if the template document is missing
    """
    try:
        settings = get_settings()
    except Exception:
        logger.exception("invalid_attestation_configuration")
        raise

    configure_logging(settings.log_level)

    if not settings.template_path.is_file():
        logger.error(
            "template_missing",
            extra={"template_path": str(settings.template_path)},
        )
        raise RuntimeError(
            f"Template document not found: {settings.template_path}"
        )

    logger.info(
        "attestation_startup",
        extra={
            "service": "attestation",
            "version": get_app_version(),
            "template_path": str(settings.template_path),
        },
    )

    try:
        yield
    finally:
        logger.info("attestation_shutdown")


def create_app() -> FastAPI:
    """
    Application factory for the attestation service.
    """
    app = FastAPI(
        title="Attestation Service",
        description="Fills the travel attestation template with applicant data",
        version=get_app_version(),
        docs_url="/docs",
        redoc_url=None,
        lifespan=lifespan,
    )

    app.include_router(certificate_router)

    @app.get(
        "/healthz",
        tags=["Monitoring"],
        summary="Liveness and readiness probe",
    )
    async def health_check():
        """
        Verifies that the runtime is alive and correctly initialized.

        NOTE:
        - Does NOT render a document
        """
        return {
            "status": "ok",
            "service": "attestation",
            "version": app.version,
            "runtime": f"python {sys.version.split()[0]}",
        }

    return app


app = create_app()
