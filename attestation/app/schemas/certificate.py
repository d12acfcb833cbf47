from pydantic import BaseModel, ConfigDict


class RenderedCertificate(BaseModel):
    """Finalized attestation document and its download filename."""

    model_config = ConfigDict(frozen=True)

    content: bytes
    filename: str

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'
