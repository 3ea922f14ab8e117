# Signature capture, placement and export core
from esign.exceptions import (
    CompositingError,
    CorruptedDocumentError,
    DocumentError,
    EmptyCaptureError,
    ESignError,
    NoSignatureAvailableError,
    PageOutOfRangeError,
    PasswordProtectedError,
    PlacementValidationError,
    SessionClosedError,
    UnknownFieldError,
    UnsupportedFormatError,
)
from esign.exporter import Exporter, signed_filename
from esign.fields import FieldSet
from esign.ink import InkCapture
from esign.models import (
    DocumentKind,
    ExportFidelity,
    ExportResult,
    Field,
    PageDimensions,
    Point,
    Rect,
    RenderedPage,
    SignatureImage,
    Size,
)
from esign.session import DocumentSession
from esign.surface import RasterSurface

__all__ = [
    "CompositingError",
    "CorruptedDocumentError",
    "DocumentError",
    "EmptyCaptureError",
    "ESignError",
    "NoSignatureAvailableError",
    "PageOutOfRangeError",
    "PasswordProtectedError",
    "PlacementValidationError",
    "SessionClosedError",
    "UnknownFieldError",
    "UnsupportedFormatError",
    "Exporter",
    "signed_filename",
    "FieldSet",
    "InkCapture",
    "DocumentKind",
    "ExportFidelity",
    "ExportResult",
    "Field",
    "PageDimensions",
    "Point",
    "Rect",
    "RenderedPage",
    "SignatureImage",
    "Size",
    "DocumentSession",
    "RasterSurface",
]
