"""
Error taxonomy for the signing core.

- Capture and field errors are contract violations by the caller (desynchronised UI
  state) and are raised immediately.
- Document errors come from the rendering backend. They are user-actionable: the
  caller can retry or fall back to placing fields without a live preview.
- CompositingError is per-field and is collected by the exporter, never raised out
  of an export.
"""
import logging
from typing import Optional

from esign.utils.logging import get_session_id

logger = logging.getLogger(__name__)


class ESignError(Exception):
    """Base signing-core exception."""

    default_code = "ESIGN_ERROR"
    user_actionable = False

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_dict(self) -> dict:
        return build_error_response(self.code, self.message, self.details)


# Ink capture

class EmptyCaptureError(ESignError):
    """Confirm was requested on a capture surface without ink."""

    default_code = "EMPTY_CAPTURE"

    def __init__(self, message: str = "Please draw a signature before confirming."):
        super().__init__(message)


# Field model

class UnknownFieldError(ESignError):
    """No field with the given id exists."""

    default_code = "UNKNOWN_FIELD"

    def __init__(self, field_id: str):
        super().__init__(f"Signature field not found: {field_id}", details={"field_id": field_id})
        self.field_id = field_id


class NoSignatureAvailableError(ESignError):
    """A field was activated without a confirmed signature."""

    default_code = "NO_SIGNATURE"

    def __init__(self, message: str = "No confirmed signature is available to apply."):
        super().__init__(message)


class PlacementValidationError(ESignError):
    """Invalid signature placement error."""

    default_code = "INVALID_PLACEMENT"

    def __init__(self, message: str, code: str = "INVALID_PLACEMENT"):
        super().__init__(message, code=code)


class SessionClosedError(ESignError):
    """Operation on a document session that has been closed or replaced."""

    default_code = "SESSION_CLOSED"

    def __init__(self, message: str = "The document session has been closed."):
        super().__init__(message)


# Document backend

class DocumentError(ESignError):
    """Rendering backend could not handle the uploaded document."""

    default_code = "DOCUMENT_ERROR"
    user_actionable = True


class PageOutOfRangeError(ESignError, IndexError):
    """A renderer was asked for a page the document does not have."""

    default_code = "PAGE_OUT_OF_RANGE"

    def __init__(self, page_index, page_count: int):
        super().__init__(
            f"Page {page_index + 1 if isinstance(page_index, int) else page_index} "
            f"does not exist. Document has {page_count} pages.",
            details={"page_index": page_index, "page_count": page_count},
        )
        self.page_index = page_index
        self.page_count = page_count


class UnsupportedFormatError(DocumentError):
    default_code = "UNSUPPORTED_FORMAT"


class CorruptedDocumentError(DocumentError):
    default_code = "CORRUPTED_DOCUMENT"


class PasswordProtectedError(DocumentError):
    default_code = "PASSWORD_PROTECTED"

    def __init__(self, message: str = "This PDF is password protected. Please unlock it first."):
        super().__init__(message)


# Export

class CompositingError(ESignError):
    """A single field could not be composited into its page."""

    default_code = "COMPOSITING_FAILED"

    def __init__(self, field_id: str, page_index: int, reason: str):
        super().__init__(
            f"Could not apply signature field {field_id} on page {page_index + 1}: {reason}",
            details={"field_id": field_id, "page_index": page_index},
        )
        self.field_id = field_id
        self.page_index = page_index
        self.reason = reason


def build_error_response(
    code: str,
    message: str,
    details: Optional[dict] = None,
) -> dict:
    """Build standardized error payload for the UI shell."""
    response = {
        "error": True,
        "code": code,
        "message": message,
        "session_id": get_session_id(),
    }
    if details:
        response["details"] = details
    return response
