"""
Document session: one uploaded document and everything placed on it.

The session is an explicit value passed around by the UI shell. It owns the
uploaded bytes, the renderer chosen at upload time, the field set and the pending
signature, and it sequences page renders so that only the latest request is ever
applied.
"""
import logging
import os
import shutil
import tempfile
import uuid
from contextlib import contextmanager
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Set

from esign.config import Settings, get_settings
from esign.coordinates import to_surface
from esign.exceptions import (
    DocumentError,
    NoSignatureAvailableError,
    PlacementValidationError,
    SessionClosedError,
)
from esign.exporter import Exporter
from esign.fields import FieldSet
from esign.models import DocumentKind, ExportResult, Field, Point, RenderedPage, SignatureImage
from esign.renderers import RendererAdapter, classify, fit_scale, open_renderer, placeholder_renderer
from esign.renderers.overlay import draw_fields
from esign.surface import RasterSurface
from esign.utils.logging import clear_context, fingerprint, set_context

if TYPE_CHECKING:
    from esign.ink import InkCapture

logger = logging.getLogger(__name__)


class DocumentSession:
    """Per-upload signing state."""

    def __init__(
        self,
        source: bytes,
        filename: str,
        content_type: Optional[str],
        kind: DocumentKind,
        renderer: RendererAdapter,
        settings: Optional[Settings] = None,
        degraded_reason: Optional[DocumentError] = None,
    ):
        self.settings = settings or get_settings()
        self.id = uuid.uuid4().hex
        self.source = bytes(source)
        self.filename = filename
        self.content_type = content_type
        self.kind = kind
        self.renderer = renderer
        self.degraded_reason = degraded_reason
        self.fields = self._new_field_set(renderer.page_count())
        self.signature: Optional[SignatureImage] = None
        self._signature_capture: Optional["InkCapture"] = None
        self.current_page: Optional[RenderedPage] = None
        self.preview_errors = []

        self._generation = 0
        self._render_token = 0
        self._temp_dir: Optional[str] = None
        self._closed = False
        self._renderer_users: Dict[RendererAdapter, int] = {}
        self._retired: Set[RendererAdapter] = set()

    def _new_field_set(self, page_count: int) -> FieldSet:
        return FieldSet(page_count)

    # Lifecycle

    @classmethod
    async def open(
        cls,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None,
        settings: Optional[Settings] = None,
        fallback: bool = True,
    ) -> "DocumentSession":
        """
        Create a session for an uploaded document.

        Args:
            data: Uploaded document bytes
            filename: Original filename (used for the output name)
            content_type: Declared MIME type
            settings: Optional settings override
            fallback: On backend failure, continue with the placeholder renderer and
                record the error on `degraded_reason` instead of raising

        Raises:
            DocumentError: If the backend fails and fallback is disabled
        """
        settings = settings or get_settings()
        kind = classify(content_type, filename)
        degraded_reason = None
        try:
            renderer = await open_renderer(kind, data, settings)
        except DocumentError as e:
            if not fallback:
                raise
            logger.warning(f"{e.code}: {e.message} - continuing without live preview")
            renderer = placeholder_renderer(settings)
            degraded_reason = e

        session = cls(data, filename, content_type, kind, renderer, settings, degraded_reason)
        set_context(session_id=session.id, document_fp=fingerprint(session.source, "doc_"))
        logger.info(
            f"Opened {kind.value} document ({len(session.source)} bytes, "
            f"{renderer.page_count()} page(s), renderer={renderer.kind.value})"
        )
        return session

    @property
    def is_degraded(self) -> bool:
        return self.degraded_reason is not None

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError()

    @contextmanager
    def _using_renderer(self) -> Iterator[RendererAdapter]:
        """Pin the current renderer so it is not closed while a render or export is suspended."""
        renderer = self.renderer
        self._renderer_users[renderer] = self._renderer_users.get(renderer, 0) + 1
        try:
            yield renderer
        finally:
            self._renderer_users[renderer] -= 1
            if not self._renderer_users[renderer]:
                del self._renderer_users[renderer]
                if renderer in self._retired:
                    self._retired.discard(renderer)
                    renderer.close()
                    logger.debug(f"Closed retired {renderer.kind.value} renderer")

    def _retire_renderer(self, renderer: RendererAdapter) -> None:
        """Close a renderer now, or once its last in-flight user finishes."""
        if self._renderer_users.get(renderer):
            self._retired.add(renderer)
        else:
            renderer.close()

    async def reload(self) -> List[Field]:
        """
        Retry the real backend for a degraded session.

        Fields on pages that do not exist in the reloaded document are dropped.

        Returns:
            The dropped fields

        Raises:
            DocumentError: If the backend still fails (the session stays degraded)
        """
        self._ensure_open()
        if not self.is_degraded:
            return []

        generation = self._generation
        renderer = await open_renderer(self.kind, self.source, self.settings)
        if generation != self._generation or self._closed:
            renderer.close()
            raise SessionClosedError("The document session changed while reloading.")

        old_fields = list(self.fields)
        self._retire_renderer(self.renderer)
        self.renderer = renderer
        self.degraded_reason = None
        self.current_page = None
        self._render_token += 1

        self.fields = self._new_field_set(renderer.page_count())
        dropped = self.fields.restore(old_fields)
        if dropped:
            logger.warning(f"Dropped {len(dropped)} field(s) on pages missing from the reloaded document")
        logger.info(f"Reloaded document with {renderer.kind.value} renderer")
        return dropped

    def reset(self) -> None:
        """Drop fields, signature and any in-flight render or export; keep the document."""
        self._ensure_open()
        self._generation += 1
        self.fields.clear()
        self.signature = None
        self._signature_capture = None
        self.current_page = None
        self.preview_errors = []
        logger.info("Session reset")

    def close(self) -> None:
        """Release the renderer and temporary files. Late results are discarded."""
        if self._closed:
            return
        self._generation += 1
        self._closed = True
        self._retire_renderer(self.renderer)
        self.release_temp()
        self.fields.clear()
        self.signature = None
        self._signature_capture = None
        self.current_page = None
        logger.info("Session closed")
        clear_context()

    async def replace(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None,
        fallback: bool = True,
    ) -> "DocumentSession":
        """Close this session and open a new one for another file."""
        self.close()
        return await DocumentSession.open(data, filename, content_type, self.settings, fallback)

    # Temporary resources

    def materialize(self) -> str:
        """
        Write the uploaded document to a session-owned temporary file.

        For collaborators that need a path (external viewers, download links). The
        file lives until the session is closed or replaced.
        """
        self._ensure_open()
        if self._temp_dir is None:
            os.makedirs(self.settings.temp_dir, exist_ok=True)
            self._temp_dir = tempfile.mkdtemp(prefix=f"session_{self.id[:8]}_", dir=self.settings.temp_dir)
        ext = os.path.splitext(self.filename or "")[1]
        path = os.path.join(self._temp_dir, f"source{ext}")
        if not os.path.exists(path):
            with open(path, "wb") as f:
                f.write(self.source)
        return path

    def release_temp(self) -> None:
        if self._temp_dir is not None:
            shutil.rmtree(self._temp_dir, ignore_errors=True)
            self._temp_dir = None

    # Signature

    def set_signature(
        self,
        signature: Optional[SignatureImage],
        capture: Optional["InkCapture"] = None,
    ) -> None:
        """
        Make a confirmed signature the pending one (None or empty clears it).

        When the capture surface that produced it is given, the signature stays
        pending only while it is still that surface's confirmed signature; drawing
        or clearing after confirming requires a new confirm.
        """
        self._ensure_open()
        if signature is None or signature.is_empty:
            self.signature = None
            self._signature_capture = None
        else:
            self.signature = signature
            self._signature_capture = capture

    def confirm_signature(self, capture: "InkCapture", trim: bool = False) -> SignatureImage:
        """
        Confirm the ink on `capture` and make it the pending signature.

        Raises:
            EmptyCaptureError: If nothing has been drawn
        """
        self._ensure_open()
        signature = capture.confirm(trim=trim)
        self.set_signature(signature, capture)
        return signature

    def pending_signature(self) -> Optional[SignatureImage]:
        """The pending signature, dropped if its capture surface changed since confirming."""
        capture = self._signature_capture
        if capture is not None and capture.confirmed is not self.signature:
            logger.info("Pending signature invalidated by new ink; confirm again to apply it")
            self.signature = None
            self._signature_capture = None
        return self.signature

    def activate_field(self, field_id: str) -> Field:
        """Apply the pending signature to a field."""
        self._ensure_open()
        signature = self.pending_signature()
        if signature is None:
            # Check the id first so an unknown field is reported as such.
            self.fields.get(field_id)
            raise NoSignatureAvailableError()
        return self.fields.attach_signature(field_id, signature)

    # Placement

    def begin_placement(self) -> None:
        self._ensure_open()
        self.fields.begin_placement()

    def place_at(self, display_point: Point) -> Optional[Field]:
        """
        Handle a click on the page surface.

        Returns the placed field, or None when placement mode is not armed.
        """
        self._ensure_open()
        if not self.fields.is_placing:
            return None
        page = self.current_page
        if page is None:
            raise PlacementValidationError(
                "No page is displayed; render a page before placing fields.",
                code="NO_PAGE_RENDERED",
            )
        surface_point = to_surface(display_point, page)
        return self.fields.place(page.page_index, surface_point, page.surface_size)

    # Rendering

    async def show_page(self, page_index: int, surface: RasterSurface) -> Optional[RenderedPage]:
        """
        Render a page with its fields into `surface`.

        Each call supersedes earlier ones. A render that completes after being
        superseded (or after reset/close) is discarded and returns None; the
        surface and `current_page` then only ever reflect the latest request.
        """
        self._ensure_open()
        self._render_token += 1
        token = self._render_token
        generation = self._generation

        def is_stale() -> bool:
            return token != self._render_token or generation != self._generation

        with self._using_renderer() as renderer:
            dims = renderer.page_dimensions(page_index)
            scale = fit_scale(
                surface.display_width,
                dims.width,
                surface.device_pixel_ratio,
                self.settings.max_render_scale,
            )
            scratch = surface.spawn()
            try:
                rendered = await renderer.render_page(page_index, scale, scratch)
            except DocumentError as e:
                if is_stale():
                    logger.debug(f"Discarded failed stale render of page {page_index + 1}: {e.message}")
                    return None
                raise

        if is_stale():
            logger.debug(f"Discarded stale render of page {page_index + 1}")
            return None

        self.preview_errors = draw_fields(
            scratch,
            rendered,
            self.fields.fields_for_page(page_index),
            inset=self.settings.field_inset,
        )
        surface.adopt(scratch)
        self.current_page = rendered
        return rendered

    # Export

    async def export(self, exporter: Optional[Exporter] = None) -> Optional[ExportResult]:
        """
        Build the signed artifact.

        Returns None if the session was reset or closed before the export finished.
        """
        self._ensure_open()
        generation = self._generation
        with self._using_renderer():
            result = await (exporter or Exporter(self.settings)).export(self)
        if generation != self._generation:
            logger.info("Discarded export result for a session that changed during export")
            return None
        return result
