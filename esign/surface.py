"""
Raster drawing surface supplied by the caller to a renderer.

A surface has a backing Pillow image (surface space) and the CSS size it is
displayed at (display space). Like a browser canvas styled with a fixed width,
the display width is fixed by the container and the display height follows the
backing aspect ratio unless pinned explicitly.
"""
import io
from typing import Optional, Tuple

from PIL import Image

from esign.models import Size

WHITE = (255, 255, 255)


class RasterSurface:
    """Backing raster plus display geometry."""

    def __init__(
        self,
        display_width: float,
        display_height: Optional[float] = None,
        device_pixel_ratio: float = 1.0,
    ):
        if display_width <= 0:
            raise ValueError(f"display_width must be positive, got {display_width}")
        if device_pixel_ratio <= 0:
            raise ValueError(f"device_pixel_ratio must be positive, got {device_pixel_ratio}")
        self.display_width = float(display_width)
        self._fixed_display_height = display_height
        self.device_pixel_ratio = float(device_pixel_ratio)
        self.image: Image.Image = Image.new("RGB", (1, 1), WHITE)

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def display_height(self) -> float:
        if self._fixed_display_height is not None:
            return float(self._fixed_display_height)
        return self.height * self.display_width / self.width

    @property
    def display_size(self) -> Size:
        return Size(self.display_width, self.display_height)

    def reset(self, width: int, height: int, color: Tuple[int, int, int] = WHITE) -> Image.Image:
        """Reallocate the backing raster; previous pixels are discarded."""
        self.image = Image.new("RGB", (max(1, int(width)), max(1, int(height))), color)
        return self.image

    def spawn(self) -> "RasterSurface":
        """New empty surface with the same display geometry."""
        return RasterSurface(
            self.display_width,
            self._fixed_display_height,
            self.device_pixel_ratio,
        )

    def adopt(self, other: "RasterSurface") -> None:
        """Take over another surface's pixels (used to commit a finished render)."""
        self.image = other.image

    def to_png(self) -> bytes:
        buf = io.BytesIO()
        self.image.save(buf, format="PNG")
        return buf.getvalue()
