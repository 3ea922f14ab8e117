"""
Renderer adapter interface.

A renderer turns a document page into pixels on a caller-supplied RasterSurface and
reports page geometry in the document's native units. Rendering is the only
suspending operation; everything else is synchronous.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from esign.exceptions import PageOutOfRangeError
from esign.models import DocumentKind, PageDimensions, RenderedPage
from esign.surface import RasterSurface

logger = logging.getLogger(__name__)


def fit_scale(
    display_width: float,
    native_width: float,
    device_pixel_ratio: float = 1.0,
    max_scale: float = 1.5,
) -> float:
    """
    Scale that fills the container width in backing pixels, capped at max_scale.

    The cap keeps large containers from rendering pages at wasteful resolutions;
    when it applies, the surface is displayed stretched to the container width.
    """
    if native_width <= 0:
        raise ValueError(f"native_width must be positive, got {native_width}")
    return min(display_width * device_pixel_ratio / native_width, max_scale)


class RendererAdapter(ABC):
    """Capability interface for one document backend."""

    kind: DocumentKind
    supports_native_export: bool = False
    native_media_type: Optional[str] = None
    native_extension: Optional[str] = None

    @abstractmethod
    def page_count(self) -> int:
        ...

    @abstractmethod
    def _native_dimensions(self, page_index: int) -> PageDimensions:
        ...

    @abstractmethod
    def _paint(self, page_index: int, scale: float, surface: RasterSurface) -> None:
        """Draw the page at `scale` x native size onto the surface."""
        ...

    def close(self) -> None:
        """Release backend resources."""
        pass

    def check_page(self, page_index: int) -> None:
        count = self.page_count()
        if isinstance(page_index, bool) or not isinstance(page_index, int) or not 0 <= page_index < count:
            raise PageOutOfRangeError(page_index, count)

    def page_dimensions(self, page_index: int) -> PageDimensions:
        self.check_page(page_index)
        return self._native_dimensions(page_index)

    async def render_page(
        self,
        page_index: int,
        scale: float,
        surface: RasterSurface,
    ) -> RenderedPage:
        """
        Render a page into `surface` at `scale` x its native size.

        Args:
            page_index: 0-indexed page
            scale: Backing pixels per native unit
            surface: Target surface; its backing raster is replaced

        Returns:
            RenderedPage describing the surface that was drawn

        Raises:
            PageOutOfRangeError: If the page does not exist
            DocumentError: If the backend fails to draw the page
        """
        self.check_page(page_index)
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        dims = self._native_dimensions(page_index)

        # Let other pending work (e.g. a newer navigation) run before the heavy draw.
        await asyncio.sleep(0)
        self._paint(page_index, scale, surface)

        display = surface.display_size
        logger.debug(
            f"Rendered {self.kind.value} page {page_index + 1} at scale {scale:.3f} "
            f"-> {surface.width}x{surface.height}px"
        )
        return RenderedPage(
            page_index=page_index,
            surface_width=surface.width,
            surface_height=surface.height,
            native_width=dims.width,
            native_height=dims.height,
            render_scale=scale,
            display_width=display.width,
            display_height=display.height,
        )
