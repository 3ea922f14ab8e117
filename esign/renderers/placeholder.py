"""
Placeholder renderer for documents without a usable backend.

Paints a generic preview page so fields can still be placed. It cannot export the
original content, so exports from it are rasterized reconstructions.
"""
import logging

from PIL import ImageDraw, ImageFont

from esign.models import DocumentKind, PageDimensions
from esign.renderers.base import RendererAdapter
from esign.surface import RasterSurface

logger = logging.getLogger(__name__)

BORDER_COLOR = (229, 231, 235)
TEXT_COLOR = (55, 65, 81)

PREVIEW_LINES = [
    (50, 50, "DOCUMENT PREVIEW"),
    (50, 80, "This is a preview of your uploaded document."),
    (50, 100, 'Click "Add Signature Field" to place your signature.'),
    (50, 120, "Then click on the field to add your signature."),
]


class PlaceholderRenderer(RendererAdapter):
    kind = DocumentKind.PLACEHOLDER

    def __init__(self, page_width: int = 600, page_height: int = 800, pages: int = 1):
        self.page_width = page_width
        self.page_height = page_height
        self.pages = max(1, pages)
        self._font = ImageFont.load_default()

    def page_count(self) -> int:
        return self.pages

    def _native_dimensions(self, page_index: int) -> PageDimensions:
        return PageDimensions(width=self.page_width, height=self.page_height)

    def _paint(self, page_index: int, scale: float, surface: RasterSurface) -> None:
        img = surface.reset(round(self.page_width * scale), round(self.page_height * scale))
        draw = ImageDraw.Draw(img)
        draw.rectangle(
            [0, 0, img.width - 1, img.height - 1],
            outline=BORDER_COLOR,
            width=max(1, round(scale)),
        )
        for x, y, text in PREVIEW_LINES:
            draw.text((x * scale, y * scale), text, fill=TEXT_COLOR, font=self._font)
        if self.pages > 1:
            draw.text(
                (50 * scale, (self.page_height - 50) * scale),
                f"Page {page_index + 1} of {self.pages}",
                fill=TEXT_COLOR,
                font=self._font,
            )
