"""
Signature field model.

Pure data-structure operations; nothing here renders. Fields keep insertion order,
which is also their z-order when they overlap.
"""
import logging
import uuid
from typing import Iterable, Iterator, List, Optional

from esign.config import get_settings
from esign.exceptions import (
    NoSignatureAvailableError,
    PlacementValidationError,
    UnknownFieldError,
)
from esign.models import Field, Point, Rect, SignatureImage, Size

logger = logging.getLogger(__name__)


def validate_placement(page_index: int, size: Size, page_count: int) -> None:
    """
    Validate a new field against document constraints.

    Args:
        page_index: 0-indexed target page
        size: Field size in surface pixels
        page_count: Total number of pages in document

    Raises:
        PlacementValidationError: If placement is invalid
    """
    if not isinstance(page_index, int) or isinstance(page_index, bool) or page_index < 0:
        raise PlacementValidationError(
            f"Invalid page index: {page_index}. Must be an integer >= 0.",
            code="INVALID_PAGE_NUMBER",
        )

    if page_index >= page_count:
        raise PlacementValidationError(
            f"Page {page_index + 1} does not exist. Document has {page_count} pages.",
            code="PAGE_OUT_OF_RANGE",
        )

    if size.width <= 0:
        raise PlacementValidationError(
            f"Field width must be positive, got: {size.width}",
            code="INVALID_WIDTH",
        )

    if size.height <= 0:
        raise PlacementValidationError(
            f"Field height must be positive, got: {size.height}",
            code="INVALID_HEIGHT",
        )


class FieldSet:
    """Ordered collection of signature fields for one document."""

    def __init__(self, page_count: int, default_size: Optional[Size] = None):
        if page_count < 1:
            raise ValueError(f"page_count must be >= 1, got {page_count}")
        settings = get_settings()
        self.page_count = page_count
        self.default_size = default_size or Size(
            settings.default_field_width,
            settings.default_field_height,
        )
        self._fields: List[Field] = []
        self._placing = False

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[Field]:
        return iter(list(self._fields))

    # Placement mode

    @property
    def is_placing(self) -> bool:
        return self._placing

    def begin_placement(self) -> None:
        """Arm placement mode for exactly one placement."""
        self._placing = True

    def cancel_placement(self) -> None:
        self._placing = False

    def place(self, page_index: int, center: Point, surface_size: Size) -> Optional[Field]:
        """
        Handle a click on the page surface.

        Returns the new field when placement mode was armed, otherwise None. The
        mode disarms after one accepted placement.
        """
        if not self._placing:
            return None
        field = self.add_field(page_index, center, surface_size)
        self._placing = False
        return field

    # Mutations

    def add_field(
        self,
        page_index: int,
        center: Point,
        surface_size: Size,
        size: Optional[Size] = None,
    ) -> Field:
        size = size or self.default_size
        validate_placement(page_index, size, self.page_count)
        if surface_size.width <= 0 or surface_size.height <= 0:
            raise PlacementValidationError(
                f"Surface size must be positive, got {surface_size.width}x{surface_size.height}",
                code="INVALID_SURFACE",
            )

        field = Field(
            id=uuid.uuid4().hex,
            page_index=page_index,
            rect=Rect.centered(center, size),
            surface_size=surface_size,
        )
        self._fields.append(field)
        logger.info(
            f"Created signature field {field.id[:8]} on page {page_index + 1} at "
            f"({field.rect.x:.1f}, {field.rect.y:.1f}) size ({size.width}x{size.height})"
        )
        return field

    def get(self, field_id: str) -> Field:
        for field in self._fields:
            if field.id == field_id:
                return field
        raise UnknownFieldError(field_id)

    def attach_signature(self, field_id: str, signature: Optional[SignatureImage]) -> Field:
        field = self.get(field_id)
        if signature is None or signature.is_empty:
            raise NoSignatureAvailableError()
        field.signature = signature
        logger.info(f"Applied signature to field {field_id[:8]} on page {field.page_index + 1}")
        return field

    def detach_signature(self, field_id: str) -> Field:
        field = self.get(field_id)
        field.signature = None
        return field

    def remove_field(self, field_id: str) -> None:
        self.get(field_id)
        self._fields = [f for f in self._fields if f.id != field_id]
        logger.info(f"Removed signature field {field_id[:8]}")

    def restore(self, fields: Iterable[Field]) -> List[Field]:
        """
        Re-insert existing fields (ids and signatures kept), e.g. after the document
        backend was reloaded.

        Returns:
            Fields that were not restored because their page no longer exists
        """
        dropped = []
        for field in fields:
            if field.page_index >= self.page_count:
                dropped.append(field)
                continue
            self._fields.append(field)
        return dropped

    def clear(self) -> None:
        self._fields.clear()
        self._placing = False

    # Queries

    def fields_for_page(self, page_index: int) -> List[Field]:
        return [f for f in self._fields if f.page_index == page_index]

    def signed_fields(self) -> List[Field]:
        return [f for f in self._fields if f.is_signed]
