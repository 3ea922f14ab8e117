"""
Tests for signed-document export.
"""
import io

import fitz  # PyMuPDF
import pytest
from PIL import Image

from esign.exporter import Exporter, signed_filename
from esign.models import ExportFidelity, Point, Size
from esign.session import DocumentSession

SURFACE = Size(900, 1164)


async def open_pdf_session(data, filename="contract.pdf"):
    return await DocumentSession.open(data, filename, "application/pdf", fallback=False)


class TestSignedFilename:
    def test_prefix(self):
        assert signed_filename("contract.pdf", "pdf") == "signed-contract.pdf"

    def test_path_and_extension_stripped(self):
        assert signed_filename("/uploads/scan.final.png", "png") == "signed-scan.final.png"

    def test_missing_name(self):
        assert signed_filename(None, "pdf") == "signed-document.pdf"


class TestPdfExport:
    """Native PDF export."""

    @pytest.mark.asyncio
    async def test_partial_failure_does_not_abort(self, sample_pdf_bytes, signature, malformed_signature):
        """One unreadable signature is skipped; every other page and field survives."""
        session = await open_pdf_session(sample_pdf_bytes)
        a = session.fields.add_field(0, Point(150, 150), SURFACE)
        b = session.fields.add_field(0, Point(450, 600), SURFACE)
        bad = session.fields.add_field(2, Point(300, 300), SURFACE)
        session.fields.attach_signature(a.id, signature)
        session.fields.attach_signature(b.id, signature)
        session.fields.attach_signature(bad.id, malformed_signature)

        result = await session.export()

        assert result is not None
        assert result.page_count == 3
        assert result.applied_field_ids == [a.id, b.id]
        assert [s.field_id for s in result.skipped] == [bad.id]
        assert result.skipped[0].page_index == 2
        assert result.fidelity == ExportFidelity.NATIVE
        assert not result.is_rasterized

        doc = fitz.open(stream=result.data, filetype="pdf")
        try:
            assert doc.page_count == 3
            assert len(doc[0].get_image_info()) == 2
            assert doc[1].get_images() == []
            assert doc[2].get_images() == []
            # Original text content is preserved
            assert "Test Document page 3" in doc[2].get_text()
        finally:
            doc.close()

    @pytest.mark.asyncio
    async def test_source_unchanged(self, sample_pdf_bytes, signature):
        original = bytes(sample_pdf_bytes)
        session = await open_pdf_session(sample_pdf_bytes)
        field = session.fields.add_field(0, Point(150, 150), SURFACE)
        session.fields.attach_signature(field.id, signature)

        result = await session.export()

        assert session.source == original
        assert result.data != original
        assert result.filename == "signed-contract.pdf"
        assert result.media_type == "application/pdf"

    @pytest.mark.asyncio
    async def test_stamp_position(self, sample_pdf_bytes, signature):
        """The stamped image lands where the field was placed on the page."""
        session = await open_pdf_session(sample_pdf_bytes)
        # Centre (150, 150) -> surface rect (75, 125, 150, 50) on a 900x1164 surface
        field = session.fields.add_field(0, Point(150, 150), SURFACE)
        session.fields.attach_signature(field.id, signature)

        result = await session.export()

        doc = fitz.open(stream=result.data, filetype="pdf")
        try:
            (info,) = doc[0].get_image_info()
            x0, y0, x1, y1 = info["bbox"]
        finally:
            doc.close()

        ratio_x = 612 / 900
        ratio_y = 792 / 1164
        assert x0 == pytest.approx(75 * ratio_x, abs=1.0)
        assert y0 == pytest.approx(125 * ratio_y, abs=1.0)
        assert x1 == pytest.approx(225 * ratio_x, abs=1.0)
        assert y1 == pytest.approx(175 * ratio_y, abs=1.0)

    @pytest.mark.asyncio
    async def test_oversized_signature_skipped(self, sample_pdf_bytes, signature, monkeypatch):
        """A signature Pillow refuses as too large is skipped like any unreadable one."""
        session = await open_pdf_session(sample_pdf_bytes)
        field = session.fields.add_field(0, Point(150, 150), SURFACE)
        session.fields.attach_signature(field.id, signature)
        # 120x40 signature exceeds twice this limit
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

        result = await session.export()

        assert result.page_count == 3
        assert result.applied_field_ids == []
        assert [s.field_id for s in result.skipped] == [field.id]
        assert "too large" in result.skipped[0].reason

    @pytest.mark.asyncio
    async def test_unsigned_fields_ignored(self, sample_pdf_bytes):
        session = await open_pdf_session(sample_pdf_bytes)
        session.fields.add_field(0, Point(150, 150), SURFACE)

        result = await session.export()

        assert result.applied_field_ids == []
        assert result.skipped == []

    @pytest.mark.asyncio
    async def test_metadata(self, sample_pdf_bytes, signature):
        session = await open_pdf_session(sample_pdf_bytes)
        field = session.fields.add_field(0, Point(150, 150), SURFACE)
        session.fields.attach_signature(field.id, signature)

        result = await session.export()

        doc = fitz.open(stream=result.data, filetype="pdf")
        try:
            assert doc.metadata["producer"] == "esign"
            assert "Signed fields: 1" in doc.metadata["keywords"]
        finally:
            doc.close()


class TestImageExport:
    """Native raster image export."""

    @pytest.mark.asyncio
    async def test_jpeg_round_trip(self, sample_jpeg_bytes, signature):
        session = await DocumentSession.open(sample_jpeg_bytes, "scan.jpeg", "image/jpeg", fallback=False)
        # Placed on a half-size preview surface
        field = session.fields.add_field(0, Point(200, 150), Size(400, 300))
        session.fields.attach_signature(field.id, signature)

        result = await session.export()

        assert result.fidelity == ExportFidelity.NATIVE
        assert result.media_type == "image/jpeg"
        assert result.filename == "signed-scan.jpg"
        assert result.applied_field_ids == [field.id]

        img = Image.open(io.BytesIO(result.data))
        assert img.format == "JPEG"
        assert img.size == (800, 600)
        # Ink lands near the centre of the full-resolution image
        ink = img.convert("L").crop((250, 250, 550, 350)).getextrema()
        assert ink[0] < 128

    @pytest.mark.asyncio
    async def test_png_keeps_transparency(self, signature):
        buf = io.BytesIO()
        Image.new("RGBA", (300, 200), (0, 0, 0, 0)).save(buf, format="PNG")
        session = await DocumentSession.open(buf.getvalue(), "stamp.png", "image/png", fallback=False)
        field = session.fields.add_field(0, Point(150, 100), Size(300, 200))
        session.fields.attach_signature(field.id, signature)

        result = await session.export()

        img = Image.open(io.BytesIO(result.data))
        assert img.format == "PNG"
        assert img.mode == "RGBA"
        assert img.getpixel((2, 2))[3] == 0

    @pytest.mark.asyncio
    async def test_bad_signature_skipped(self, sample_jpeg_bytes, signature, malformed_signature):
        session = await DocumentSession.open(sample_jpeg_bytes, "scan.jpg", "image/jpeg", fallback=False)
        good = session.fields.add_field(0, Point(200, 100), Size(800, 600))
        bad = session.fields.add_field(0, Point(400, 400), Size(800, 600))
        session.fields.attach_signature(good.id, signature)
        session.fields.attach_signature(bad.id, malformed_signature)

        result = await session.export()

        assert result.applied_field_ids == [good.id]
        assert [s.field_id for s in result.skipped] == [bad.id]


class TestRasterizedExport:
    """Placeholder documents export as a rasterized reconstruction."""

    @pytest.mark.asyncio
    async def test_placeholder_export(self, signature):
        session = await DocumentSession.open(b"word processor bytes", "memo.docx", "application/msword")
        field = session.fields.add_field(0, Point(300, 400), Size(600, 800))
        session.fields.attach_signature(field.id, signature)

        result = await session.export()

        assert result.is_rasterized
        assert result.fidelity == ExportFidelity.RASTERIZED
        assert result.filename == "signed-memo.pdf"
        assert result.applied_field_ids == [field.id]
        assert result.to_dict()["fidelity"] == "rasterized"

        doc = fitz.open(stream=result.data, filetype="pdf")
        try:
            assert doc.page_count == 1
            assert doc[0].rect.width == pytest.approx(600)
            assert doc[0].rect.height == pytest.approx(800)
            assert len(doc[0].get_images()) == 1
        finally:
            doc.close()

    @pytest.mark.asyncio
    async def test_degraded_pdf_exports_rasterized(self, signature):
        """A PDF whose backend failed still exports, flagged as rasterized."""
        session = await DocumentSession.open(b"%PDF-1.4 broken", "broken.pdf", "application/pdf")
        assert session.is_degraded
        field = session.fields.add_field(0, Point(300, 400), Size(600, 800))
        session.fields.attach_signature(field.id, signature)

        result = await Exporter().export(session)

        assert result.is_rasterized
        assert result.applied_field_ids == [field.id]
