"""
Centralized configuration management for the attestation service.

Pydantic v2 settings management to enforce strict validation and
fast-failure on invalid configuration. Every value can be overridden
through an ``ATTESTATION_``-prefixed environment variable or a ``.env``
file.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_TEMPLATE_PATH = (
    Path(__file__).resolve().parent.parent / "assets" / "certificate.pdf"
)


# -------------------------------------------------------------------------
# Settings Model
# -------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Application settings parsed from the environment.

    Configuration is read once per process and is immutable afterwards.
    """

    # ---------------------------------------------------------------------
    # Template document
    # ---------------------------------------------------------------------

    template_path: Annotated[
        Path,
        Field(
            default=DEFAULT_TEMPLATE_PATH,
            description="Path to the fixed attestation template PDF",
        ),
    ]

    template_page_count: Annotated[
        int,
        Field(
            default=1,
            ge=1,
            description=(
                "Number of pages the template must contain. The QR page "
                "is appended after these."
            ),
        ),
    ]

    # ---------------------------------------------------------------------
    # QR encoding
    # ---------------------------------------------------------------------

    qr_error_correction: Annotated[
        Literal["L", "M", "Q", "H"],
        Field(
            default="M",
            description="QR error-correction level",
        ),
    ]

    qr_border: Annotated[
        int,
        Field(
            default=1,
            ge=0,
            description="Quiet-zone width around the symbol, in modules",
        ),
    ]

    qr_box_size: Annotated[
        int,
        Field(
            default=10,
            ge=1,
            le=40,
            description="Raster size of one QR module, in pixels",
        ),
    ]

    # ---------------------------------------------------------------------
    # Observability
    # ---------------------------------------------------------------------

    log_level: Annotated[
        str,
        Field(
            default="INFO",
            description="Root log level applied at application startup",
        ),
    ]

    model_config = SettingsConfigDict(
        env_prefix="ATTESTATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )


# -------------------------------------------------------------------------
# Settings Dependency Provider
# -------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Dependency injection provider for application settings.

    Uses an explicit singleton pattern within the FastAPI lifecycle.
    """
    return Settings()
