"""Domain models for backend endpoint resolution."""

from dataclasses import dataclass
from enum import StrEnum


class EndpointSource(StrEnum):
    """Where the resolved backend URL came from."""

    OVERRIDE = "override"
    ENVIRONMENT = "environment"
    DEFAULT = "default"


@dataclass(frozen=True)
class EndpointConfig:
    """Resolved backend base URL."""

    resolved_url: str
    source: EndpointSource

    @property
    def insecure(self) -> bool:
        """Return True when the URL does not use a secure transport."""
        return not self.resolved_url.lower().startswith("https://")
