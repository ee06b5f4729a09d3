"""
Error taxonomy for the optimizer core.

Every error exposed to callers carries a machine-checkable ``category`` and a
human-readable ``detail``. The FastAPI app renders them as
``{"error": category, "detail": detail}`` with ``status_code``.
"""

from typing import Optional


class OptimizerError(Exception):
    """Base class for all errors surfaced by the optimizer."""

    category = "internal"
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class AuthError(OptimizerError):
    """Missing or invalid platform credential. Never retried."""

    category = "auth"
    status_code = 401


class ValidationError(OptimizerError):
    """Bad caller input (non-positive bid, missing account ID, ...)."""

    category = "validation"
    status_code = 400


class UpstreamError(OptimizerError):
    """Failure reported by (or while talking to) the ads platform."""

    status_code = 502

    def __init__(self, detail: str, status: Optional[int] = None):
        super().__init__(detail)
        self.status = status


class UpstreamTransient(UpstreamError):
    """Timeout, transport failure, 5xx or malformed response."""

    category = "upstream_transient"


class UpstreamRejected(UpstreamError):
    """Platform 4xx other than 401/403: the request itself was refused."""

    category = "upstream_rejected"


class StorageError(OptimizerError):
    """Settings or cooldown backend failure."""

    category = "storage"
    status_code = 500
