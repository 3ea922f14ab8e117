"""
Logging configuration with session correlation.
Structured JSON logging for production, readable lines for development.

PII Protection:
- Never log raw signature image bytes, uploaded document bytes or filenames
- Use fingerprints (sha256[:8]) for correlation
"""
import hashlib
import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional, Union


def fingerprint(value: Optional[Union[str, bytes]], prefix: str = "") -> str:
    """
    Create a safe fingerprint for logging sensitive values.

    Args:
        value: The sensitive value to fingerprint (signature bytes, filename, ...)
        prefix: Optional prefix for the fingerprint (e.g., "sig_", "doc_")

    Returns:
        8-char hex fingerprint with optional prefix, or "none" if value is None/empty

    Example:
        fingerprint(b"\\x89PNG...", "sig_") -> "sig_a1b2c3d4"
    """
    if not value:
        return f"{prefix}none" if prefix else "none"
    if isinstance(value, str):
        value = value.encode()
    fp = hashlib.sha256(value).hexdigest()[:8]
    return f"{prefix}{fp}" if prefix else fp


# Context variables for session correlation
session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)
document_fp_var: ContextVar[Optional[str]] = ContextVar("document_fp", default=None)


def get_session_id() -> Optional[str]:
    return session_id_var.get()


def set_context(
    session_id: Optional[str] = None,
    document_fp: Optional[str] = None,
) -> None:
    """
    Set logging context variables.

    Args:
        session_id: Document session id (safe to log)
        document_fp: Fingerprint of the uploaded document (already hashed)
    """
    if session_id:
        session_id_var.set(session_id)
    if document_fp:
        document_fp_var.set(document_fp)


def clear_context() -> None:
    """Clear all context variables."""
    session_id_var.set(None)
    document_fp_var.set(None)


class StructuredFormatter(logging.Formatter):
    """Outputs one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "severity": record.levelname,
            "message": record.getMessage(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "logger": record.name,
            "sourceLocation": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        session_id = session_id_var.get()
        if session_id:
            log_entry["session_id"] = session_id

        document_fp = document_fp_var.get()
        if document_fp:
            log_entry["document_fp"] = document_fp

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            log_entry["data"] = record.extra_data

        return json.dumps(log_entry)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable formatter for local development."""

    def format(self, record: logging.LogRecord) -> str:
        session_id = session_id_var.get()
        document_fp = document_fp_var.get()

        prefix = f"[{record.levelname}] [{session_id[:8] if session_id else '-'}]"
        if document_fp:
            prefix += f" [doc:{document_fp}]"

        line = f"{prefix} {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(environment: str = "development", level: int = logging.INFO) -> None:
    """
    Configure logging based on environment.
    - production: JSON structured logs
    - development: Human-readable format
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if environment == "production":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(DevelopmentFormatter())

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("reportlab").setLevel(logging.WARNING)