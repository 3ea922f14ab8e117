"""
Static raster-image renderer using Pillow.

An image is a one-page document whose native units are its pixels.
"""
import asyncio
import io
import logging

from PIL import Image, UnidentifiedImageError

from esign.exceptions import CorruptedDocumentError, UnsupportedFormatError
from esign.imaging import flatten_to_rgb
from esign.models import DocumentKind, PageDimensions
from esign.renderers.base import RendererAdapter
from esign.surface import RasterSurface

logger = logging.getLogger(__name__)

# Pillow format -> (media type, extension) for formats written back unchanged
WRITABLE_FORMATS = {
    "PNG": ("image/png", "png"),
    "JPEG": ("image/jpeg", "jpg"),
    "GIF": ("image/gif", "gif"),
    "WEBP": ("image/webp", "webp"),
    "TIFF": ("image/tiff", "tiff"),
    "BMP": ("image/bmp", "bmp"),
}


class ImageRenderer(RendererAdapter):
    """Renders a single raster image page."""

    kind = DocumentKind.RASTER_IMAGE

    def __init__(self, image: Image.Image, source_format: str):
        self.image = image
        self.source_format = source_format
        self.is_closed = False
        media = WRITABLE_FORMATS.get(source_format)
        self.supports_native_export = media is not None
        if media:
            self.native_media_type, self.native_extension = media

    @classmethod
    async def open(cls, data: bytes) -> "ImageRenderer":
        await asyncio.sleep(0)
        if not data:
            raise CorruptedDocumentError("The image file is empty.")
        try:
            img = Image.open(io.BytesIO(data))
            source_format = img.format
            img.load()
        except UnidentifiedImageError as e:
            raise UnsupportedFormatError(f"Unsupported image format: {e}")
        except Image.DecompressionBombError as e:
            raise UnsupportedFormatError(f"Image is too large to process: {e}")
        except (OSError, ValueError, SyntaxError) as e:
            raise CorruptedDocumentError(f"The image file appears to be corrupted: {e}")

        logger.info(f"Loaded {source_format} image {img.width}x{img.height}px")
        return cls(img, source_format)

    def page_count(self) -> int:
        return 1

    def _native_dimensions(self, page_index: int) -> PageDimensions:
        return PageDimensions(width=self.image.width, height=self.image.height)

    def _paint(self, page_index: int, scale: float, surface: RasterSurface) -> None:
        width = max(1, round(self.image.width * scale))
        height = max(1, round(self.image.height * scale))
        try:
            rgb = flatten_to_rgb(self.image)
            if (width, height) != rgb.size:
                rgb = rgb.resize((width, height), Image.LANCZOS)
        except (OSError, ValueError) as e:
            raise CorruptedDocumentError(f"Failed to render image: {e}")
        surface.image = rgb

    def close(self) -> None:
        self.image.close()
        self.is_closed = True
