"""
Pillow helpers shared by renderers, the live overlay and the exporter.
"""
import io
import logging
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from esign.models import Rect, SignatureImage

logger = logging.getLogger(__name__)


class SignatureDecodeError(Exception):
    """Signature bytes could not be decoded into an image."""


def flatten_to_rgb(img: Image.Image, background: Tuple[int, int, int] = (255, 255, 255)) -> Image.Image:
    """Convert any mode to RGB, compositing transparency onto a solid background."""
    if img.mode in ("RGBA", "P", "LA"):
        if img.mode != "RGBA":
            img = img.convert("RGBA")
        flat = Image.new("RGB", img.size, background)
        flat.paste(img, mask=img.getchannel("A"))
        return flat
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def decode_signature(signature: SignatureImage) -> Image.Image:
    """
    Fully decode signature bytes into an RGBA image.

    Decoding completes before the caller composites anything, so a page is never
    left half-stamped by a signature that turns out to be unreadable.

    Raises:
        SignatureDecodeError: If the bytes are empty or not a readable image
    """
    if signature is None or signature.is_empty:
        raise SignatureDecodeError("signature has no image data")
    try:
        img = Image.open(io.BytesIO(signature.data))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise SignatureDecodeError(f"unreadable signature image: {e}")
    except Image.DecompressionBombError as e:
        raise SignatureDecodeError(f"signature image too large: {e}")
    return img.convert("RGBA")


def fit_within(src_w: int, src_h: int, rect: Rect) -> Rect:
    """Largest rect with the source aspect ratio, centred inside `rect`."""
    if src_w <= 0 or src_h <= 0:
        return rect
    scale = min(rect.width / src_w, rect.height / src_h)
    w = src_w * scale
    h = src_h * scale
    return Rect(
        x=rect.x + (rect.width - w) / 2,
        y=rect.y + (rect.height - h) / 2,
        width=w,
        height=h,
    )


def paste_signature(
    target: Image.Image,
    signature: Image.Image,
    rect: Rect,
    keep_proportion: bool = True,
) -> None:
    """Alpha-composite a decoded signature into `target` at a top-left-origin pixel rect."""
    box = fit_within(signature.width, signature.height, rect) if keep_proportion else rect
    width = max(1, round(box.width))
    height = max(1, round(box.height))
    stamp = signature.resize((width, height), Image.LANCZOS)
    target.paste(stamp, (round(box.x), round(box.y)), mask=stamp.getchannel("A"))
