"""
Tests for display / surface / document coordinate transforms.
"""
import pytest

from esign.coordinates import (
    document_to_top_left,
    from_document,
    page_for_field_surface,
    point_from_document,
    point_to_document,
    rescale_rect,
    to_display,
    to_document,
    to_surface,
)
from esign.models import Point, Rect, RenderedPage, Size

TOL = 1e-6


@pytest.fixture
def letter_page():
    """Letter page rendered at 900px wide, displayed 600 CSS px wide (ratio 1.5)."""
    return RenderedPage(
        page_index=0,
        surface_width=900,
        surface_height=1164,
        native_width=612.0,
        native_height=792.0,
        render_scale=900 / 612,
        display_width=600.0,
        display_height=776.0,
    )


PAGES = [
    RenderedPage(0, 900, 1164, 612.0, 792.0, 900 / 612, 600.0, 776.0),
    RenderedPage(1, 595, 842, 595.0, 842.0, 1.0),
    RenderedPage(2, 1785, 2526, 595.0, 842.0, 3.0, 892.5, 1263.0),
    RenderedPage(0, 640, 480, 1280.0, 960.0, 0.5, 320.0, 240.0),
    RenderedPage(0, 1000, 700, 842.0, 595.0, 1000 / 842, 731.0, 333.3),
]

DISPLAY_POINTS = [(0.0, 0.0), (1.0, 1.0), (100.0, 100.0), (123.456, 77.7), (299.9, 239.9)]


class TestDisplaySurface:
    """Display <-> surface mapping."""

    def test_concrete_ratio(self, letter_page):
        """A display point is scaled by surface/display per axis."""
        p = to_surface(Point(100, 100), letter_page)
        assert p.x == pytest.approx(150.0, rel=TOL)
        assert p.y == pytest.approx(150.0, rel=TOL)

    def test_independent_axes(self):
        """X and Y ratios are not assumed equal."""
        page = RenderedPage(0, 1000, 500, 1000.0, 500.0, 1.0, 500.0, 500.0)
        p = to_surface(Point(10, 10), page)
        assert p.x == pytest.approx(20.0)
        assert p.y == pytest.approx(10.0)

    def test_defaults_to_surface_size(self):
        """Without display size, display and surface coincide."""
        page = RenderedPage(0, 595, 842, 595.0, 842.0, 1.0)
        assert to_surface(Point(12.5, 40), page) == Point(12.5, 40)

    @pytest.mark.parametrize("page", PAGES)
    @pytest.mark.parametrize("xy", DISPLAY_POINTS)
    def test_round_trip(self, page, xy):
        """to_display(to_surface(p)) reproduces p."""
        p = Point(*xy)
        back = to_display(to_surface(p, page), page)
        assert back.x == pytest.approx(p.x, rel=TOL, abs=1e-9)
        assert back.y == pytest.approx(p.y, rel=TOL, abs=1e-9)


class TestSurfaceDocument:
    """Surface <-> document mapping with the Y flip."""

    def test_concrete_scenario(self, letter_page):
        """150x50 field at display (100,100) lands at the expected PDF rectangle."""
        surface_origin = to_surface(Point(100, 100), letter_page)
        rect = Rect(surface_origin.x, surface_origin.y, 150, 50)

        doc = to_document(rect, letter_page)

        expected_x = (100 * 1.5) * (612 / 900)
        expected_y = 792 - (100 * 1.5 + 50) * (792 / 1164)
        assert expected_x == pytest.approx(102.0)
        assert doc.x == pytest.approx(expected_x, rel=TOL)
        assert doc.y == pytest.approx(expected_y, rel=TOL)
        assert doc.y == pytest.approx(655.9175258, rel=TOL)
        assert doc.width == pytest.approx(150 * 612 / 900, rel=TOL)
        assert doc.height == pytest.approx(50 * 792 / 1164, rel=TOL)

    def test_top_left_field_maps_to_top_of_page(self):
        """A field at the surface top edge ends at the page's top in document space."""
        page = RenderedPage(0, 612, 792, 612.0, 792.0, 1.0)
        doc = to_document(Rect(0, 0, 100, 40), page)
        assert doc.y + doc.height == pytest.approx(792.0)
        assert doc.y == pytest.approx(752.0)

    def test_bottom_field_maps_to_zero(self):
        """A field touching the surface bottom has docY == 0."""
        page = RenderedPage(0, 1224, 1584, 612.0, 792.0, 2.0)
        doc = to_document(Rect(10, 1584 - 100, 200, 100), page)
        assert doc.y == pytest.approx(0.0, abs=1e-9)
        assert doc.height == pytest.approx(50.0)

    @pytest.mark.parametrize("page", PAGES)
    @pytest.mark.parametrize("xy", DISPLAY_POINTS)
    def test_full_round_trip(self, page, xy):
        """display -> surface -> document -> surface -> display reproduces the point."""
        p = Point(*xy)
        surface_rect = Rect(*_as_xy(to_surface(p, page)), 150, 50)
        doc_rect = to_document(surface_rect, page)
        back_rect = from_document(doc_rect, page)
        back = to_display(Point(back_rect.x, back_rect.y), page)

        assert back.x == pytest.approx(p.x, rel=TOL, abs=1e-9)
        assert back.y == pytest.approx(p.y, rel=TOL, abs=1e-9)
        assert back_rect.width == pytest.approx(150, rel=TOL)
        assert back_rect.height == pytest.approx(50, rel=TOL)

    @pytest.mark.parametrize("page", PAGES)
    def test_point_round_trip(self, page):
        """Bare points round-trip through document space."""
        p = Point(37.25, 211.5)
        doc = point_to_document(p, page)
        back = point_from_document(doc, page)
        assert back.x == pytest.approx(p.x, rel=TOL)
        assert back.y == pytest.approx(p.y, rel=TOL)

    def test_point_flip(self):
        """Surface origin is the page's top-left corner in document space."""
        page = RenderedPage(0, 612, 792, 612.0, 792.0, 1.0)
        assert point_to_document(Point(0, 0), page) == Point(0.0, 792.0)

    def test_zero_surface_rejected(self):
        page = RenderedPage(0, 0, 792, 612.0, 792.0, 1.0)
        with pytest.raises(ValueError):
            to_document(Rect(0, 0, 1, 1), page)


class TestHelpers:
    def test_document_to_top_left(self):
        """Bottom-left rect converts back to the top-left frame of PyMuPDF."""
        tl = document_to_top_left(Rect(100, 600, 150, 50), 792)
        assert tl == Rect(100, 142, 150, 50)

    def test_rescale_rect(self):
        """Field rect follows the page when displayed at a different resolution."""
        r = rescale_rect(Rect(75, 125, 150, 50), Size(900, 1164), Size(450, 582))
        assert r == Rect(37.5, 62.5, 75, 25)

    def test_page_for_field_surface(self):
        page = page_for_field_surface(2, Size(900, 1164), 612.0, 792.0)
        assert page.page_index == 2
        assert page.render_scale == pytest.approx(900 / 612)
        assert page.display_size == Size(900, 1164)


def _as_xy(point: Point):
    return point.x, point.y
