"""
Coordinate transforms between display, surface and document space.

All functions are pure. Surface coordinates are always backing-raster pixels,
never CSS pixels, so device pixel ratio is accounted for exactly once: in the
display/surface ratio of the page being mapped.

Document space has its origin at the bottom-left of the page with Y increasing
upward; surface and display space have their origin at the top-left.
"""
from esign.models import Point, Rect, RenderedPage, Size


def _ratio(numerator: float, denominator: float, what: str) -> float:
    if denominator <= 0:
        raise ValueError(f"{what} must be positive, got {denominator}")
    return numerator / denominator


def surface_scale(page: RenderedPage) -> tuple:
    """(sx, sy): surface pixels per display pixel, independently per axis."""
    display = page.display_size
    return (
        _ratio(page.surface_width, display.width, "display width"),
        _ratio(page.surface_height, display.height, "display height"),
    )


def document_scale(page: RenderedPage) -> tuple:
    """(dx, dy): native units per surface pixel, independently per axis."""
    return (
        _ratio(page.native_width, page.surface_width, "surface width"),
        _ratio(page.native_height, page.surface_height, "surface height"),
    )


def to_surface(display_point: Point, page: RenderedPage) -> Point:
    """Map a pointer position relative to the visible surface into backing pixels."""
    sx, sy = surface_scale(page)
    return Point(display_point.x * sx, display_point.y * sy)


def to_display(surface_point: Point, page: RenderedPage) -> Point:
    """Inverse of to_surface."""
    sx, sy = surface_scale(page)
    return Point(surface_point.x / sx, surface_point.y / sy)


def point_to_document(surface_point: Point, page: RenderedPage) -> Point:
    """Map a bare surface point into document space (Y flipped)."""
    dx, dy = document_scale(page)
    return Point(surface_point.x * dx, page.native_height - surface_point.y * dy)


def point_from_document(document_point: Point, page: RenderedPage) -> Point:
    """Inverse of point_to_document."""
    dx, dy = document_scale(page)
    return Point(document_point.x / dx, (page.native_height - document_point.y) / dy)


def to_document(surface_rect: Rect, page: RenderedPage) -> Rect:
    """
    Map a top-left-origin surface rectangle into document space.

    The result's (x, y) is the rectangle's bottom-left corner measured from the
    page's bottom-left corner:

        docX = sx * nw / sw
        docY = nh - (sy + sh) * nh / sh_page
    """
    dx, dy = document_scale(page)
    return Rect(
        x=surface_rect.x * dx,
        y=page.native_height - (surface_rect.y + surface_rect.height) * dy,
        width=surface_rect.width * dx,
        height=surface_rect.height * dy,
    )


def from_document(document_rect: Rect, page: RenderedPage) -> Rect:
    """Inverse of to_document."""
    dx, dy = document_scale(page)
    height = document_rect.height / dy
    return Rect(
        x=document_rect.x / dx,
        y=(page.native_height - document_rect.y) / dy - height,
        width=document_rect.width / dx,
        height=height,
    )


def document_to_top_left(document_rect: Rect, page_height: float) -> Rect:
    """
    Convert a bottom-left-origin rectangle to a top-left-origin one in the same units.

    PyMuPDF addresses page content with a top-left origin.
    """
    return Rect(
        x=document_rect.x,
        y=page_height - document_rect.y - document_rect.height,
        width=document_rect.width,
        height=document_rect.height,
    )


def rescale_rect(rect: Rect, from_size: Size, to_size: Size) -> Rect:
    """Move a surface rectangle from one surface resolution to another."""
    kx = _ratio(to_size.width, from_size.width, "source surface width")
    ky = _ratio(to_size.height, from_size.height, "source surface height")
    return Rect(rect.x * kx, rect.y * ky, rect.width * kx, rect.height * ky)


def page_for_field_surface(
    page_index: int,
    surface_size: Size,
    native_width: float,
    native_height: float,
) -> RenderedPage:
    """
    Rebuild the geometry of the surface a field was placed on.

    Used by export, where the page is not necessarily rendered at the scale the
    field was created at.
    """
    return RenderedPage(
        page_index=page_index,
        surface_width=surface_size.width,
        surface_height=surface_size.height,
        native_width=native_width,
        native_height=native_height,
        render_scale=_ratio(surface_size.width, native_width, "native width"),
    )
