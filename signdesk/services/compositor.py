from __future__ import annotations

import io

from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from signdesk.core.errors import CorruptSource, PageOutOfRange
from signdesk.services.artifacts import Artifact, ImageArtifact, TextArtifact
from signdesk.services.coordinates import PdfRect, Size

_PARSE_ERRORS = (PyPdfError, ValueError, KeyError, TypeError, IndexError)


def load_pdf(data: bytes) -> PdfWriter:
    """Load PDF bytes into an editable in-memory document."""
    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            raise CorruptSource("Encrypted PDFs cannot be signed.")
        writer = PdfWriter(clone_from=reader)
        page_count = len(writer.pages)
    except _PARSE_ERRORS as exc:
        raise CorruptSource(f"Stored PDF could not be loaded: {exc}") from exc
    if page_count == 0:
        raise CorruptSource("Stored PDF has no pages.")
    return writer


def get_page(document: PdfWriter, page_number: int) -> PageObject:
    page_count = len(document.pages)
    if page_number < 1 or page_number > page_count:
        raise PageOutOfRange(
            f"Page number {page_number} is out of bounds. Document has {page_count} pages."
        )
    return document.pages[page_number - 1]


def page_size(page: PageObject) -> Size:
    return Size(float(page.mediabox.width), float(page.mediabox.height))


def _draw_image(overlay: canvas.Canvas, artifact: ImageArtifact, rect: PdfRect) -> None:
    reader = ImageReader(io.BytesIO(artifact.data))
    overlay.drawImage(
        reader,
        rect.x,
        rect.y,
        width=rect.width,
        height=rect.height,
        mask="auto",
    )


def _draw_text(overlay: canvas.Canvas, artifact: TextArtifact, rect: PdfRect) -> None:
    overlay.setFont(artifact.font_name, artifact.font_size)
    overlay.setFillColor(colors.black)
    # descent is negative, so the baseline sits above the box bottom
    overlay.drawString(rect.x, rect.y - artifact.descent, artifact.text)


def compose_signature(document: PdfWriter, page_number: int, artifact: Artifact, rect: PdfRect) -> None:
    """
    Draw ``artifact`` at ``rect`` on the given 1-based page.

    Only the in-memory document is modified.
    """
    page = get_page(document, page_number)
    size = page_size(page)

    overlay_stream = io.BytesIO()
    overlay = canvas.Canvas(overlay_stream, pagesize=(size.width, size.height))
    if isinstance(artifact, TextArtifact):
        _draw_text(overlay, artifact, rect)
    else:
        _draw_image(overlay, artifact, rect)
    overlay.save()

    overlay_stream.seek(0)
    overlay_page = PdfReader(overlay_stream).pages[0]
    page.merge_translated_page(
        overlay_page,
        tx=float(page.mediabox.left),
        ty=float(page.mediabox.bottom),
    )


def serialize(document: PdfWriter) -> bytes:
    output = io.BytesIO()
    document.write(output)
    return output.getvalue()
