"""Errors surfaced by the client services."""


class CalorieVisionError(Exception):
    """Base error carrying a short, user-facing detail."""

    default_detail = "Something went wrong"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthenticated(CalorieVisionError):
    """Raised when an operation needs a session and none exists."""

    default_detail = "Please log in first"


class AuthFailed(CalorieVisionError):
    """Raised when the backend rejects signup or login."""

    default_detail = "Login failed"


class AnalysisFailed(CalorieVisionError):
    """Raised when the backend rejects an analysis or returns garbage."""

    default_detail = "Failed to analyze image"


class Unreachable(CalorieVisionError):
    """Raised on network or transport failures."""

    default_detail = "Backend unreachable"


class InvalidEndpoint(CalorieVisionError):
    """Raised when a backend URL override is empty."""

    default_detail = "Backend URL must not be empty"


class CorruptPersistedState(CalorieVisionError):
    """Raised while decoding malformed persisted data; always recovered."""

    default_detail = "Persisted data is malformed"
