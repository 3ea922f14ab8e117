"""
Shared data model: geometry, signature images, fields, rendered pages, export results.

Coordinate conventions:
- display space: CSS pixels, origin top-left
- surface space: backing raster pixels, origin top-left
- document space: native page units (PDF points), origin bottom-left
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from esign.exceptions import CompositingError


class DocumentKind(str, Enum):
    PAGINATED = "paginated"
    RASTER_IMAGE = "raster_image"
    PLACEHOLDER = "placeholder"


class ExportFidelity(str, Enum):
    NATIVE = "native"          # Original content preserved, signatures stamped in
    RASTERIZED = "rasterized"  # Pages re-rendered to images and reassembled


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    @classmethod
    def centered(cls, center: Point, size: Size) -> "Rect":
        return cls(
            x=center.x - size.width / 2,
            y=center.y - size.height / 2,
            width=size.width,
            height=size.height,
        )


@dataclass(frozen=True)
class PageDimensions:
    """Page size in the document's native units (points for PDF, pixels for images)."""
    width: float
    height: float


@dataclass(frozen=True)
class SignatureImage:
    """
    Immutable encoded signature raster.

    Shared by reference between every field it is attached to.
    """
    data: bytes = field(repr=False)
    width: int
    height: int
    media_type: str = "image/png"

    @property
    def is_empty(self) -> bool:
        return not self.data


@dataclass
class Field:
    """
    A signature field placement.

    rect is in surface pixels of the page as it was rendered when the field was
    placed; surface_size records that surface so the rect can be mapped later
    regardless of how the page is displayed at that time.
    """
    id: str
    page_index: int
    rect: Rect
    surface_size: Size
    signature: Optional[SignatureImage] = None

    @property
    def is_signed(self) -> bool:
        return self.signature is not None and not self.signature.is_empty


@dataclass(frozen=True)
class RenderedPage:
    page_index: int
    surface_width: int
    surface_height: int
    native_width: float
    native_height: float
    render_scale: float
    display_width: Optional[float] = None
    display_height: Optional[float] = None

    @property
    def display_size(self) -> Size:
        return Size(
            self.display_width if self.display_width is not None else self.surface_width,
            self.display_height if self.display_height is not None else self.surface_height,
        )

    @property
    def surface_size(self) -> Size:
        return Size(self.surface_width, self.surface_height)


@dataclass
class ExportResult:
    data: bytes = field(repr=False)
    filename: str
    media_type: str
    fidelity: ExportFidelity
    page_count: int
    applied_field_ids: List[str] = field(default_factory=list)
    skipped: List["CompositingError"] = field(default_factory=list)

    @property
    def is_rasterized(self) -> bool:
        return self.fidelity == ExportFidelity.RASTERIZED

    def to_dict(self) -> dict:
        """Summary without the artifact bytes."""
        return {
            "filename": self.filename,
            "media_type": self.media_type,
            "fidelity": self.fidelity.value,
            "page_count": self.page_count,
            "size_bytes": len(self.data),
            "applied_field_ids": list(self.applied_field_ids),
            "skipped": [err.to_dict() for err in self.skipped],
        }
