"""
Exception hierarchy for certificate generation.

Every fatal failure of the composition pipeline derives from
``CertificateGenerationError`` so the HTTP boundary can map them to a
single failure response. No partial document is ever returned once one
of these has been raised.
"""


class CertificateGenerationError(RuntimeError):
    """Base class for fatal certificate generation failures."""


class QREncodingError(CertificateGenerationError):
    """Raised when the payload cannot be encoded as a QR symbol."""


class TemplateLoadError(CertificateGenerationError):
    """Raised when the template document is missing, corrupt or unexpected."""


class LayoutError(CertificateGenerationError):
    """Raised when a drawing operation violates the layout ordering rules."""
