"""
Paginated-document renderer using PyMuPDF (fitz).
"""
import asyncio
import logging

import fitz  # PyMuPDF
from PIL import Image

from esign.exceptions import CorruptedDocumentError, PasswordProtectedError
from esign.models import DocumentKind, PageDimensions
from esign.renderers.base import RendererAdapter
from esign.surface import RasterSurface

logger = logging.getLogger(__name__)


def open_pdf(data: bytes) -> fitz.Document:
    """
    Open PDF bytes, mapping backend failures onto the document error taxonomy.

    Raises:
        CorruptedDocumentError: If the bytes are not a readable PDF or have no pages
        PasswordProtectedError: If the PDF requires a password
    """
    if not data:
        raise CorruptedDocumentError("The PDF file is empty.")
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        # fitz.FileDataError / EmptyFileError derive from RuntimeError
        raise CorruptedDocumentError(f"Invalid PDF file: {e}")

    if doc.needs_pass:
        doc.close()
        raise PasswordProtectedError()

    if doc.page_count == 0:
        doc.close()
        raise CorruptedDocumentError("PDF has no pages")

    return doc


class PdfRenderer(RendererAdapter):
    """Renders PDF pages; exports by stamping into the original PDF."""

    kind = DocumentKind.PAGINATED
    supports_native_export = True
    native_media_type = "application/pdf"
    native_extension = "pdf"

    def __init__(self, doc: fitz.Document):
        self._doc = doc

    @classmethod
    async def open(cls, data: bytes) -> "PdfRenderer":
        # Parsing is the backend's initialisation step; yield before it.
        await asyncio.sleep(0)
        doc = open_pdf(data)
        logger.info(f"Loaded PDF with {doc.page_count} pages")
        return cls(doc)

    def page_count(self) -> int:
        return self._doc.page_count

    def _native_dimensions(self, page_index: int) -> PageDimensions:
        rect = self._doc[page_index].rect
        return PageDimensions(width=rect.width, height=rect.height)

    def _paint(self, page_index: int, scale: float, surface: RasterSurface) -> None:
        try:
            page = self._doc[page_index]
            pix = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
        except (RuntimeError, ValueError) as e:
            # ValueError: the document was closed underneath the render
            raise CorruptedDocumentError(f"Failed to render PDF page {page_index + 1}: {e}")
        surface.image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)

    @property
    def is_closed(self) -> bool:
        return self._doc.is_closed

    def close(self) -> None:
        if not self._doc.is_closed:
            self._doc.close()
