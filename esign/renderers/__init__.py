# Renderer adapters and backend selection
import logging
import os
from typing import Optional

from esign.config import Settings, get_settings
from esign.models import DocumentKind
from esign.renderers.base import RendererAdapter, fit_scale
from esign.renderers.image import ImageRenderer
from esign.renderers.pdf import PdfRenderer
from esign.renderers.placeholder import PlaceholderRenderer

logger = logging.getLogger(__name__)

PDF_TYPES = {"application/pdf", "application/x-pdf"}

IMAGE_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/tiff",
    "image/bmp",
}

PDF_EXTENSIONS = {".pdf"}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".tif", ".tiff", ".bmp"}


def classify(content_type: Optional[str], filename: Optional[str] = None) -> DocumentKind:
    """
    Decide the document kind once, at upload time.

    The declared content type wins; the filename extension is used only when the
    type is missing or generic.
    """
    ct = (content_type or "").lower().split(";")[0].strip()
    if ct in PDF_TYPES:
        return DocumentKind.PAGINATED
    if ct in IMAGE_TYPES:
        return DocumentKind.RASTER_IMAGE

    if ct in ("", "application/octet-stream") and filename:
        ext = os.path.splitext(filename)[1].lower()
        if ext in PDF_EXTENSIONS:
            return DocumentKind.PAGINATED
        if ext in IMAGE_EXTENSIONS:
            return DocumentKind.RASTER_IMAGE

    return DocumentKind.PLACEHOLDER


def placeholder_renderer(settings: Optional[Settings] = None) -> PlaceholderRenderer:
    settings = settings or get_settings()
    return PlaceholderRenderer(settings.placeholder_page_width, settings.placeholder_page_height)


async def open_renderer(
    kind: DocumentKind,
    data: bytes,
    settings: Optional[Settings] = None,
) -> RendererAdapter:
    """
    Instantiate the renderer for a document kind.

    Raises:
        UnsupportedFormatError, CorruptedDocumentError, PasswordProtectedError
    """
    if kind == DocumentKind.PAGINATED:
        return await PdfRenderer.open(data)
    if kind == DocumentKind.RASTER_IMAGE:
        return await ImageRenderer.open(data)
    return placeholder_renderer(settings)


__all__ = [
    "RendererAdapter",
    "PdfRenderer",
    "ImageRenderer",
    "PlaceholderRenderer",
    "classify",
    "open_renderer",
    "placeholder_renderer",
    "fit_scale",
    "PDF_TYPES",
    "IMAGE_TYPES",
]
