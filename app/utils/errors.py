"""Exceptions raised by the services and translated into HTTP errors by the routers."""

from typing import Optional

DETAIL_PREVIEW_CHARS = 200


def truncate_detail(text: Optional[str], limit: int = DETAIL_PREVIEW_CHARS) -> str:
    """Shorten an upstream body for logs and error responses."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."


class ConfigurationError(RuntimeError):
    """A required secret is not configured."""


class UpstreamError(RuntimeError):
    """An upstream API answered with a non-success status or could not be reached.

    ``status_code`` is the upstream status, or ``None`` when the request never
    got a response (connection error, timeout).
    """

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = truncate_detail(detail)


class GenerationError(UpstreamError):
    """Gemini request failed."""


class StoreError(UpstreamError):
    """Airtable request failed."""


class ResolutionError(RuntimeError):
    """Looking up or creating a linked record failed.

    ``stage`` is ``"lookup"`` or ``"create"``.
    """

    def __init__(self, stage: str, name: str, cause: Optional[Exception] = None):
        reason = str(cause) if cause else "no record id returned"
        super().__init__(f"Failed to {stage} linked record '{name}': {reason}")
        self.stage = stage
        self.name = name
        self.cause = cause
