"""
Signed-document export.

- PDF: signatures stamped into a fresh copy of the original PDF with PyMuPDF
  (text and vector content preserved)
- Raster image: signatures composited into the full-resolution image, re-encoded in
  the source format
- Anything else: rasterized reconstruction, every page rendered to an image and
  reassembled into a new PDF with reportlab

A field that cannot be composited is skipped and reported in ExportResult.skipped;
it never aborts the export of the rest of the document.
"""
import io
import logging
import os
from typing import List, Optional, TYPE_CHECKING

import fitz  # PyMuPDF
from PIL import Image
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from esign.config import Settings, get_settings
from esign.coordinates import (
    document_to_top_left,
    page_for_field_surface,
    rescale_rect,
    to_document,
)
from esign.exceptions import CompositingError
from esign.imaging import SignatureDecodeError, decode_signature, paste_signature
from esign.models import DocumentKind, ExportFidelity, ExportResult, Field, Size
from esign.renderers.image import ImageRenderer
from esign.renderers.pdf import open_pdf
from esign.surface import RasterSurface

if TYPE_CHECKING:
    from esign.session import DocumentSession

logger = logging.getLogger(__name__)

PRODUCER = "esign"


def signed_filename(original: Optional[str], extension: str) -> str:
    """signed-<original-stem>.<ext>"""
    stem = os.path.splitext(os.path.basename(original or ""))[0] or "document"
    return f"signed-{stem}.{extension}"


class Exporter:
    """Builds the signed artifact for a document session."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    async def export(self, session: "DocumentSession") -> ExportResult:
        """
        Produce a new signed artifact; the uploaded document is never modified.

        Args:
            session: Document session holding the source, renderer and fields

        Returns:
            ExportResult with the artifact bytes and per-field outcome
        """
        renderer = session.renderer
        if renderer.supports_native_export and renderer.kind == DocumentKind.PAGINATED:
            result = self._export_pdf(session)
        elif renderer.supports_native_export and isinstance(renderer, ImageRenderer):
            result = self._export_image(session, renderer)
        else:
            result = await self._export_rasterized(session)

        logger.info(
            f"Exported {result.page_count} page(s) as {result.fidelity.value}: "
            f"{len(result.applied_field_ids)} signature(s) applied, {len(result.skipped)} skipped"
        )
        return result

    # PDF

    def _export_pdf(self, session: "DocumentSession") -> ExportResult:
        applied: List[str] = []
        skipped: List[CompositingError] = []

        # Fresh copy from the uploaded bytes; the renderer's document stays untouched.
        doc = open_pdf(session.source)
        try:
            for page_index in range(doc.page_count):
                page = doc[page_index]
                for field in session.fields.fields_for_page(page_index):
                    if not field.is_signed:
                        continue
                    try:
                        self._stamp_pdf_field(page, field)
                    except CompositingError as err:
                        logger.warning(err.message)
                        skipped.append(err)
                        continue
                    applied.append(field.id)

            metadata = doc.metadata or {}
            metadata["keywords"] = (
                f"{metadata.get('keywords') or ''} "
                f"Signed fields: {len(applied)} | Export: {ExportFidelity.NATIVE.value}"
            ).strip()
            metadata["producer"] = PRODUCER
            doc.set_metadata(metadata)

            data = doc.tobytes(garbage=4, deflate=True)
            page_count = doc.page_count
        finally:
            doc.close()

        return ExportResult(
            data=data,
            filename=signed_filename(session.filename, "pdf"),
            media_type="application/pdf",
            fidelity=ExportFidelity.NATIVE,
            page_count=page_count,
            applied_field_ids=applied,
            skipped=skipped,
        )

    def _stamp_pdf_field(self, page: fitz.Page, field: Field) -> None:
        try:
            decode_signature(field.signature)
        except SignatureDecodeError as e:
            raise CompositingError(field.id, field.page_index, str(e))

        page_width = page.rect.width
        page_height = page.rect.height
        geometry = page_for_field_surface(field.page_index, field.surface_size, page_width, page_height)

        # Surface (top-left) -> PDF user space (bottom-left) -> PyMuPDF (top-left)
        doc_rect = to_document(field.rect, geometry)
        top_left = document_to_top_left(doc_rect, page_height)
        sig_rect = fitz.Rect(top_left.x, top_left.y, top_left.right, top_left.bottom)

        try:
            page.insert_image(sig_rect, stream=field.signature.data, keep_proportion=True)
        except Exception as e:
            raise CompositingError(field.id, field.page_index, f"PDF image insert failed: {e}")

        logger.debug(
            f"Stamped field {field.id[:8]} on page {field.page_index + 1} at "
            f"({doc_rect.x:.2f}, {doc_rect.y:.2f}) size ({doc_rect.width:.2f}x{doc_rect.height:.2f})"
        )

    # Raster image

    def _export_image(self, session: "DocumentSession", renderer: ImageRenderer) -> ExportResult:
        source = renderer.image
        if source.mode in ("RGB", "RGBA"):
            target = source.copy()
        elif "transparency" in source.info or source.mode in ("LA", "PA"):
            target = source.convert("RGBA")
        else:
            target = source.convert("RGB")
        native = Size(target.width, target.height)

        applied, skipped = self._composite_page(target, 0, native, session.fields.fields_for_page(0))

        fmt = renderer.source_format
        if fmt == "JPEG" and target.mode != "RGB":
            target = target.convert("RGB")
        save_kwargs = {"quality": self.settings.raster_jpeg_quality} if fmt == "JPEG" else {}
        buf = io.BytesIO()
        target.save(buf, format=fmt, **save_kwargs)

        return ExportResult(
            data=buf.getvalue(),
            filename=signed_filename(session.filename, renderer.native_extension),
            media_type=renderer.native_media_type,
            fidelity=ExportFidelity.NATIVE,
            page_count=1,
            applied_field_ids=applied,
            skipped=skipped,
        )

    def _composite_page(self, target: Image.Image, page_index: int, target_size: Size, fields):
        """Composite signed fields onto a top-left-origin raster of `target_size` pixels."""
        applied: List[str] = []
        skipped: List[CompositingError] = []
        for field in fields:
            if not field.is_signed:
                continue
            try:
                signature = decode_signature(field.signature)
                rect = rescale_rect(field.rect, field.surface_size, target_size)
                paste_signature(target, signature, rect)
            except (SignatureDecodeError, ValueError) as e:
                err = CompositingError(field.id, page_index, str(e))
                logger.warning(err.message)
                skipped.append(err)
                continue
            applied.append(field.id)
        return applied, skipped

    # Rasterized reconstruction

    async def _export_rasterized(self, session: "DocumentSession") -> ExportResult:
        renderer = session.renderer
        scale = self.settings.export_render_scale
        applied: List[str] = []
        skipped: List[CompositingError] = []

        buf = io.BytesIO()
        c = canvas.Canvas(buf)
        c.setCreator(PRODUCER)
        c.setSubject("Rasterized reconstruction")
        c.setKeywords(f"Export: {ExportFidelity.RASTERIZED.value}")

        page_count = renderer.page_count()
        for page_index in range(page_count):
            surface = RasterSurface(display_width=1)
            rendered = await renderer.render_page(page_index, scale, surface)

            page_applied, page_skipped = self._composite_page(
                surface.image,
                page_index,
                rendered.surface_size,
                session.fields.fields_for_page(page_index),
            )
            applied.extend(page_applied)
            skipped.extend(page_skipped)

            # Native units are used as points (1px = 1pt for images and placeholders)
            width, height = rendered.native_width, rendered.native_height
            c.setPageSize((width, height))
            c.drawImage(ImageReader(surface.image), 0, 0, width=width, height=height)
            c.showPage()

        c.save()
        logger.warning(
            f"Document exported as rasterized reconstruction ({page_count} page(s)); "
            "original text and vector content are not preserved"
        )

        return ExportResult(
            data=buf.getvalue(),
            filename=signed_filename(session.filename, "pdf"),
            media_type="application/pdf",
            fidelity=ExportFidelity.RASTERIZED,
            page_count=page_count,
            applied_field_ids=applied,
            skipped=skipped,
        )
