"""
Freehand signature capture.

Strokes arrive in the capture surface's own CSS coordinates. The backing raster is
allocated at css size * device pixel ratio and every coordinate and the stroke
width are scaled by the same ratio, so one visual pixel always maps to the same
number of device pixels and the confirmed image is sharp at its displayed size.
"""
import io
import logging
from typing import Optional, Tuple

from PIL import Image, ImageChops, ImageDraw

from esign.config import get_settings
from esign.exceptions import EmptyCaptureError
from esign.models import Point, SignatureImage
from esign.utils.logging import fingerprint

logger = logging.getLogger(__name__)

# Transparent white: reads as white on screen, composites cleanly onto pages.
BACKGROUND = (255, 255, 255, 0)
TRIM_PADDING = 10


class InkCapture:
    """DPR-aware signature drawing surface."""

    def __init__(
        self,
        width: float,
        height: float,
        device_pixel_ratio: float = 1.0,
        stroke_color: Optional[Tuple[int, int, int]] = None,
        stroke_width: Optional[float] = None,
    ):
        settings = get_settings()
        self.stroke_color = stroke_color or settings.stroke_rgb
        self.stroke_width = stroke_width or settings.stroke_width
        self._stroke_active = False
        self._last_point: Optional[Point] = None
        self._confirmed: Optional[SignatureImage] = None
        self.resize(width, height, device_pixel_ratio)

    # Geometry

    def resize(self, width: float, height: float, device_pixel_ratio: float = 1.0) -> None:
        """
        (Re)initialise the backing raster.

        Reallocating the raster drops existing ink, exactly like resizing a canvas.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Capture surface size must be positive, got {width}x{height}")
        if device_pixel_ratio <= 0:
            raise ValueError(f"device_pixel_ratio must be positive, got {device_pixel_ratio}")

        self.css_width = float(width)
        self.css_height = float(height)
        self.device_pixel_ratio = float(device_pixel_ratio)
        backing = (
            max(1, round(width * device_pixel_ratio)),
            max(1, round(height * device_pixel_ratio)),
        )
        self._image = Image.new("RGBA", backing, BACKGROUND)
        self._draw = ImageDraw.Draw(self._image)
        self._stroke_active = False
        self._last_point = None
        self._invalidate()
        logger.debug(
            f"Capture surface {width}x{height} css at dpr {device_pixel_ratio} "
            f"-> {backing[0]}x{backing[1]} px"
        )

    @property
    def backing_size(self) -> Tuple[int, int]:
        return self._image.size

    def _to_device(self, point: Point) -> Tuple[float, float]:
        return point.x * self.device_pixel_ratio, point.y * self.device_pixel_ratio

    @property
    def _line_width(self) -> float:
        return self.stroke_width * self.device_pixel_ratio

    # Strokes

    def begin_stroke(self, point: Point) -> None:
        self._invalidate()
        self._stroke_active = True
        self._last_point = point
        self._dot(self._to_device(point))

    def extend_stroke(self, point: Point) -> None:
        # Pointer moves without a pressed button are hover, not ink.
        if not self._stroke_active:
            return
        self._invalidate()
        start = self._to_device(self._last_point)
        end = self._to_device(point)
        self._draw.line(
            [start, end],
            fill=self.stroke_color + (255,),
            width=max(1, round(self._line_width)),
            joint="curve",
        )
        self._dot(end)
        self._last_point = point

    def end_stroke(self) -> None:
        self._stroke_active = False
        self._last_point = None

    @property
    def is_drawing(self) -> bool:
        return self._stroke_active

    def _dot(self, center: Tuple[float, float]) -> None:
        """Round cap / single-tap mark."""
        r = max(self._line_width / 2, 0.5)
        x, y = center
        self._draw.ellipse([x - r, y - r, x + r, y + r], fill=self.stroke_color + (255,))

    # State

    def has_ink(self) -> bool:
        """True iff any pixel differs from the background."""
        background = Image.new("RGBA", self._image.size, BACKGROUND)
        diff = ImageChops.difference(self._image, background)
        return any(band.getbbox() is not None for band in diff.split())

    def clear(self) -> None:
        self._image.paste(BACKGROUND, (0, 0, self._image.width, self._image.height))
        self._stroke_active = False
        self._last_point = None
        self._invalidate()

    def _invalidate(self) -> None:
        if self._confirmed is not None:
            logger.debug("Signature confirmation invalidated")
        self._confirmed = None

    @property
    def confirmed(self) -> Optional[SignatureImage]:
        """Last confirmed signature, or None if the ink changed since."""
        return self._confirmed

    def confirm(self, trim: bool = False) -> SignatureImage:
        """
        Encode the current ink as a PNG signature.

        Args:
            trim: Crop to the inked area plus a small padding

        Returns:
            SignatureImage (also kept as `confirmed` until the ink changes)

        Raises:
            EmptyCaptureError: If nothing has been drawn
        """
        if not self.has_ink():
            raise EmptyCaptureError()

        image = self._image
        if trim:
            bbox = image.getchannel("A").getbbox()
            if bbox:
                image = image.crop((
                    max(0, bbox[0] - TRIM_PADDING),
                    max(0, bbox[1] - TRIM_PADDING),
                    min(image.width, bbox[2] + TRIM_PADDING),
                    min(image.height, bbox[3] + TRIM_PADDING),
                ))

        buf = io.BytesIO()
        image.save(buf, format="PNG")
        data = buf.getvalue()

        self._confirmed = SignatureImage(data=data, width=image.width, height=image.height)
        logger.info(
            f"Signature confirmed ({image.width}x{image.height}px, {fingerprint(data, 'sig_')})"
        )
        return self._confirmed
