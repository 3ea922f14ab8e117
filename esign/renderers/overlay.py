"""
Live preview overlay: draws signature fields on top of a rendered page.

Fields are stored at the surface resolution they were placed on; they are rescaled
to the surface currently being shown before drawing.
"""
import logging
from typing import Iterable, List, Tuple

from PIL import ImageDraw, ImageFont

from esign.coordinates import rescale_rect
from esign.exceptions import CompositingError
from esign.imaging import SignatureDecodeError, decode_signature, paste_signature
from esign.models import Field, Rect, RenderedPage
from esign.surface import RasterSurface

logger = logging.getLogger(__name__)

SIGNED_COLOR = (16, 185, 129)
PENDING_COLOR = (59, 130, 246)
HINT_COLOR = (107, 114, 128)
DASH = (5, 5)
BORDER_WIDTH = 2


def _dashed_segment(
    draw: ImageDraw.ImageDraw,
    start: Tuple[float, float],
    end: Tuple[float, float],
    color: Tuple[int, int, int],
) -> None:
    (x0, y0), (x1, y1) = start, end
    length = ((x1 - x0) ** 2 + (y1 - y0) ** 2) ** 0.5
    if length == 0:
        return
    ux, uy = (x1 - x0) / length, (y1 - y0) / length
    on, off = DASH
    pos = 0.0
    while pos < length:
        seg_end = min(pos + on, length)
        draw.line(
            [(x0 + ux * pos, y0 + uy * pos), (x0 + ux * seg_end, y0 + uy * seg_end)],
            fill=color,
            width=BORDER_WIDTH,
        )
        pos = seg_end + off


def _dashed_rect(draw: ImageDraw.ImageDraw, rect: Rect, color: Tuple[int, int, int]) -> None:
    corners = [
        (rect.x, rect.y),
        (rect.right, rect.y),
        (rect.right, rect.bottom),
        (rect.x, rect.bottom),
    ]
    for i in range(4):
        _dashed_segment(draw, corners[i], corners[(i + 1) % 4], color)


def draw_fields(
    surface: RasterSurface,
    page: RenderedPage,
    fields: Iterable[Field],
    inset: float = 5.0,
) -> List[CompositingError]:
    """
    Draw field borders and signatures for one page onto `surface`.

    Signed fields get a solid border with the signature inside; pending ones a
    dashed border and a hint. Fields are drawn in insertion order.

    Returns:
        Fields whose signature could not be drawn (their borders are still drawn)
    """
    draw = ImageDraw.Draw(surface.image)
    font = ImageFont.load_default()
    failures: List[CompositingError] = []

    for field in fields:
        if field.page_index != page.page_index:
            continue
        rect = rescale_rect(field.rect, field.surface_size, page.surface_size)

        if not field.is_signed:
            _dashed_rect(draw, rect, PENDING_COLOR)
            draw.text((rect.x + inset, rect.y + inset), "Click to sign", fill=HINT_COLOR, font=font)
            continue

        draw.rectangle([rect.x, rect.y, rect.right, rect.bottom], outline=SIGNED_COLOR, width=BORDER_WIDTH)
        inner = Rect(
            rect.x + inset,
            rect.y + inset,
            max(1.0, rect.width - 2 * inset),
            max(1.0, rect.height - 2 * inset),
        )
        try:
            paste_signature(surface.image, decode_signature(field.signature), inner)
        except SignatureDecodeError as e:
            logger.warning(f"Preview skipped signature for field {field.id[:8]}: {e}")
            failures.append(CompositingError(field.id, field.page_index, str(e)))

    return failures
