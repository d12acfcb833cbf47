"""
Layout engine for the attestation template.

This module stamps all variable content onto the fixed template without
disturbing its static artwork:

- applicant identity, birth and address lines on page 1
- one checkmark per recognised reason code
- the city name, shrunk to fit its box
- departure date and time
- the QR image, small on page 1 and large on an appended page 2
- document metadata

Coordinates are PDF user space (origin at the bottom-left corner of the
page), matching the template's own coordinate system.

Ordering rules enforced here:
- page 2 must be appended before anything is drawn on it
- the font must be embedded before any text is drawn
- images must be embedded before they are placed

Template content is wrapped in ``q ... Q`` before the overlay is appended
so graphics state left open by the template cannot leak into stamped
content.
"""

from __future__ import annotations

import io
import logging
import zlib
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple

import pikepdf
from pikepdf import ContentStreamInstruction, Dictionary, Name, Operator, String
from PIL import Image
from reportlab.pdfbase.pdfmetrics import stringWidth

from attestation.app.core.errors import LayoutError
from attestation.app.schemas.applicant import ApplicantRecord, split_reasons
from attestation.app.services.payload import format_date, format_time

logger = logging.getLogger("attestation.layout")


TextMeasure = Callable[[str, float], float]


# ------------------------------------------------------------------
# Fixed layout contract
# ------------------------------------------------------------------

FONT_NAME = "Helvetica"
TEXT_ENCODING = "cp1252"
DEFAULT_FONT_SIZE = 11

REASON_CATALOG: Mapping[str, int] = MappingProxyType(
    {
        "travail": 578,
        "achats": 533,
        "sante": 477,
        "famille": 435,
        "handicap": 396,
        "sport_animaux": 358,
        "convocation": 295,
        "missions": 255,
        "enfants": 211,
    }
)

CHECKMARK_GLYPH = "x"
CHECKMARK_X = 84
CHECKMARK_SIZE = 18

FULL_NAME_POSITION = (119, 696)
BIRTH_DATE_POSITION = (119, 674)
BIRTH_TOWN_POSITION = (297, 674)
ADDRESS_POSITION = (133, 652)

CITY_POSITION = (105, 177)
CITY_MAX_WIDTH = 83
CITY_MIN_FONT_SIZE = 7

DEPARTURE_DATE_POSITION = (91, 153)
DEPARTURE_TIME_POSITION = (264, 153)

QR_SMALL_SIZE = 92
QR_SMALL_RIGHT_OFFSET = 156
QR_SMALL_BOTTOM = 100

QR_LARGE_SIZE = 300
QR_LARGE_LEFT = 50
QR_LARGE_TOP_OFFSET = 350

DOCUMENT_METADATA: Mapping[str, object] = MappingProxyType(
    {
        "title": "COVID-19 - Déclaration de déplacement",
        "subject": "Attestation de déplacement dérogatoire",
        "keywords": (
            "covid19",
            "covid-19",
            "attestation",
            "déclaration",
            "déplacement",
            "officielle",
            "gouvernement",
        ),
        "producer": "DNUM/SDIT",
        "creator": "",
        "author": "Ministère de l'intérieur",
    }
)


# ------------------------------------------------------------------
# Pure layout decisions
# ------------------------------------------------------------------

def measure_helvetica(text: str, size: float) -> float:
    """Width of ``text`` set in Helvetica at ``size`` points."""
    return stringWidth(text, FONT_NAME, size)


def ideal_font_size(
    text: str,
    *,
    max_width: float,
    min_size: int,
    default_size: int,
    measure: TextMeasure,
) -> Optional[int]:
    """
    Largest whole-point size between ``min_size`` and ``default_size``
    at which ``text`` fits in ``max_width``.

    Returns ``None`` when even ``min_size`` overflows.
    """
    size = default_size
    width = measure(text, size)

    while width > max_width and size > min_size:
        size -= 1
        width = measure(text, size)

    return None if width > max_width else size


def select_checkmarks(
    reasons: str,
    catalog: Mapping[str, int] = REASON_CATALOG,
) -> List[Tuple[str, int]]:
    """
    Resolve a raw reason string to ``(code, y)`` checkmark positions.

    Each trimmed token is matched against the catalog on its own. Unknown
    codes are skipped and repeated codes are marked once.
    """
    selected: List[Tuple[str, int]] = []
    seen = set()

    for code in split_reasons(reasons):
        if code in seen:
            continue
        seen.add(code)

        y = catalog.get(code)
        if y is None:
            logger.debug("unmatched_reason_code", extra={"reason_code": code})
            continue
        selected.append((code, y))

    return selected


# ------------------------------------------------------------------
# Page drawing
# ------------------------------------------------------------------

@dataclass
class _PageOverlay:
    """Pending drawing instructions and resource names for one page."""

    page: pikepdf.Page
    wrap_existing: bool
    instructions: List[ContentStreamInstruction] = field(default_factory=list)
    font_name: Optional[Name] = None
    image_names: Dict[int, Name] = field(default_factory=dict)


class LayoutEngine:
    """
    Mutates a template document in place.

    The engine owns drawing order and resource bookkeeping. Drawing calls
    only record content stream instructions; :meth:`finish` appends them
    to the pages.
    """

    def __init__(
        self,
        pdf: pikepdf.Pdf,
        *,
        measure: TextMeasure = measure_helvetica,
    ) -> None:
        self.pdf = pdf
        self.measure = measure
        self._font: Optional[Dictionary] = None
        self._overlays: List[_PageOverlay] = [
            _PageOverlay(page=page, wrap_existing=True) for page in pdf.pages
        ]
        self._finished = False

    # ------------------------------------------------------------------
    # Page access
    # ------------------------------------------------------------------

    @property
    def page_count(self) -> int:
        return len(self._overlays)

    def page_size(self, page_index: int) -> Tuple[float, float]:
        box = self._overlay(page_index).page.mediabox
        return (
            float(box[2]) - float(box[0]),
            float(box[3]) - float(box[1]),
        )

    def append_page(self) -> int:
        """Append a blank page sized like page 1 and return its index."""
        self._check_open()
        width, height = self.page_size(0)
        page = self.pdf.add_blank_page(page_size=(width, height))
        self._overlays.append(_PageOverlay(page=page, wrap_existing=False))
        return len(self._overlays) - 1

    # ------------------------------------------------------------------
    # Resource embedding
    # ------------------------------------------------------------------

    def embed_font(self) -> None:
        self._check_open()
        if self._font is not None:
            return

        self._font = self.pdf.make_indirect(
            Dictionary(
                Type=Name.Font,
                Subtype=Name.Type1,
                BaseFont=Name("/" + FONT_NAME),
                Encoding=Name.WinAnsiEncoding,
            )
        )

    def embed_image(self, png_bytes: bytes) -> pikepdf.Stream:
        """Convert a PNG buffer into an 8-bit greyscale image XObject."""
        self._check_open()

        with Image.open(io.BytesIO(png_bytes)) as source:
            image = source.convert("L")

        xobject = pikepdf.Stream(self.pdf, b"")
        xobject.write(zlib.compress(image.tobytes()), filter=Name.FlateDecode)
        xobject.Type = Name.XObject
        xobject.Subtype = Name.Image
        xobject.Width = image.width
        xobject.Height = image.height
        xobject.ColorSpace = Name.DeviceGray
        xobject.BitsPerComponent = 8
        return self.pdf.make_indirect(xobject)

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def draw_text(
        self,
        page_index: int,
        text: str,
        x: float,
        y: float,
        size: float = DEFAULT_FONT_SIZE,
    ) -> None:
        self._check_open()
        if self._font is None:
            raise LayoutError("Text drawn before the font was embedded")

        overlay = self._overlay(page_index)
        if overlay.font_name is None:
            overlay.font_name = overlay.page.add_resource(
                self._font, Name.Font, prefix="FAtt"
            )

        try:
            encoded = String(text.encode(TEXT_ENCODING))
        except UnicodeEncodeError as exc:
            raise LayoutError(
                f"Text {text!r} contains characters Helvetica cannot show"
            ) from exc

        overlay.instructions.extend(
            [
                ContentStreamInstruction([], Operator("BT")),
                ContentStreamInstruction([overlay.font_name, size], Operator("Tf")),
                ContentStreamInstruction([x, y], Operator("Td")),
                ContentStreamInstruction([encoded], Operator("Tj")),
                ContentStreamInstruction([], Operator("ET")),
            ]
        )

    def draw_image(
        self,
        page_index: int,
        image: pikepdf.Stream,
        x: float,
        y: float,
        width: float,
        height: float,
    ) -> None:
        self._check_open()
        overlay = self._overlay(page_index)

        key = image.objgen
        name = overlay.image_names.get(key)
        if name is None:
            name = overlay.page.add_resource(image, Name.XObject, prefix="ImAtt")
            overlay.image_names[key] = name

        overlay.instructions.extend(
            [
                ContentStreamInstruction([], Operator("q")),
                ContentStreamInstruction(
                    [width, 0, 0, height, x, y], Operator("cm")
                ),
                ContentStreamInstruction([name], Operator("Do")),
                ContentStreamInstruction([], Operator("Q")),
            ]
        )

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def set_metadata(self, metadata: Mapping[str, object] = DOCUMENT_METADATA) -> None:
        """Write document information and mirror it into XMP."""
        self._check_open()

        docinfo = self.pdf.docinfo
        docinfo[Name.Title] = metadata["title"]
        docinfo[Name.Subject] = metadata["subject"]
        docinfo[Name.Keywords] = " ".join(metadata["keywords"])
        docinfo[Name.Producer] = metadata["producer"]
        docinfo[Name.Creator] = metadata["creator"]
        docinfo[Name.Author] = metadata["author"]

        with self.pdf.open_metadata(set_pikepdf_as_editor=False) as xmp:
            xmp.load_from_docinfo(docinfo)

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def finish(self) -> None:
        """Append recorded instructions to their pages. Idempotent."""
        if self._finished:
            return

        for overlay in self._overlays:
            if not overlay.instructions:
                continue

            if overlay.wrap_existing and Name.Contents in overlay.page.obj:
                overlay.page.contents_add(b"q\n", prepend=True)
                overlay.page.contents_add(b"\nQ\n")

            content = pikepdf.unparse_content_stream(overlay.instructions)
            overlay.page.contents_add(
                self.pdf.make_stream(content), prepend=False
            )

        self._finished = True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _overlay(self, page_index: int) -> _PageOverlay:
        if not 0 <= page_index < len(self._overlays):
            raise LayoutError(
                f"Page {page_index + 1} does not exist "
                f"(document has {len(self._overlays)} page(s))"
            )
        return self._overlays[page_index]

    def _check_open(self) -> None:
        if self._finished:
            raise LayoutError("Layout already finalized")


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------

def compose_certificate(
    pdf: pikepdf.Pdf,
    record: ApplicantRecord,
    qr_png: bytes,
    *,
    measure: TextMeasure = measure_helvetica,
) -> None:
    """
    Stamp ``record`` and the QR image onto the template document.

    The document is mutated in place and ends up with one extra page
    carrying the large QR code.
    """
    engine = LayoutEngine(pdf, measure=measure)

    engine.set_metadata()
    qr_page = engine.append_page()
    engine.embed_font()

    # ------------------------------------------------------------------
    # Identity block
    # ------------------------------------------------------------------
    engine.draw_text(0, record.full_name, *FULL_NAME_POSITION)
    engine.draw_text(0, format_date(record.birth_date), *BIRTH_DATE_POSITION)
    engine.draw_text(0, record.birth_town, *BIRTH_TOWN_POSITION)
    engine.draw_text(0, record.full_address, *ADDRESS_POSITION)

    # ------------------------------------------------------------------
    # Reasons
    # ------------------------------------------------------------------
    checkmarks = select_checkmarks(record.reasons)
    for _, y in checkmarks:
        engine.draw_text(0, CHECKMARK_GLYPH, CHECKMARK_X, y, CHECKMARK_SIZE)

    # ------------------------------------------------------------------
    # Signature block
    # ------------------------------------------------------------------
    city_size = ideal_font_size(
        record.city,
        max_width=CITY_MAX_WIDTH,
        min_size=CITY_MIN_FONT_SIZE,
        default_size=DEFAULT_FONT_SIZE,
        measure=measure,
    )
    if city_size is None:
        logger.debug("city_overflows_at_min_size", extra={"city_chars": len(record.city)})
        city_size = CITY_MIN_FONT_SIZE

    engine.draw_text(0, record.city, *CITY_POSITION, city_size)
    engine.draw_text(0, format_date(record.departure), *DEPARTURE_DATE_POSITION)
    engine.draw_text(0, format_time(record.departure), *DEPARTURE_TIME_POSITION)

    # ------------------------------------------------------------------
    # QR codes
    # ------------------------------------------------------------------
    qr_image = engine.embed_image(qr_png)

    page_width, _ = engine.page_size(0)
    engine.draw_image(
        0,
        qr_image,
        round(page_width - QR_SMALL_RIGHT_OFFSET, 2),
        QR_SMALL_BOTTOM,
        QR_SMALL_SIZE,
        QR_SMALL_SIZE,
    )

    _, qr_page_height = engine.page_size(qr_page)
    engine.draw_image(
        qr_page,
        qr_image,
        QR_LARGE_LEFT,
        round(qr_page_height - QR_LARGE_TOP_OFFSET, 2),
        QR_LARGE_SIZE,
        QR_LARGE_SIZE,
    )

    engine.finish()

    logger.info(
        "certificate_composed",
        extra={
            "page_count": engine.page_count,
            "checkmarks": [code for code, _ in checkmarks],
            "city_font_size": city_size,
        },
    )
