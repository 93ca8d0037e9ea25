"""Helpers that turn httpx failures into short diagnostics."""

import httpx
from pydantic import ValidationError

from calorie_vision.api.backend_models import ErrorPayload


def status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"


def json_detail(exc: httpx.HTTPStatusError) -> str | None:
    """Return the ``detail`` field of a JSON error body, if any."""
    try:
        payload = ErrorPayload.model_validate(exc.response.json())
    except (ValueError, ValidationError):
        return None
    return payload.message()


def text_detail(exc: httpx.HTTPStatusError) -> str | None:
    """Return the raw error body text, if any."""
    text = exc.response.text
    return text if text.strip() else None


def transport_detail(exc: Exception) -> str:
    """Return a one-line description of a transport failure."""
    if isinstance(exc, httpx.TimeoutException):
        return "Request timed out"
    message = str(exc).strip()
    if message:
        return message.splitlines()[0]
    return type(exc).__name__


def annotate_insecure(detail: str, insecure: bool) -> str:
    """Mark a transport failure that happened against a plaintext endpoint."""
    if insecure:
        return f"{detail} (insecure endpoint)"
    return detail
