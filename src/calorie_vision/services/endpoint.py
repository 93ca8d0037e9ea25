"""Backend endpoint resolution."""

import logging
from dataclasses import dataclass

import httpx

from calorie_vision.config import DEFAULT_BACKEND_URL
from calorie_vision.domain.endpoint import EndpointConfig, EndpointSource
from calorie_vision.errors import InvalidEndpoint
from calorie_vision.services.storage import KeyValueStore, StoreNamespace

_OVERRIDE_KEY = "backend_url"
_ALLOWED_SCHEMES = ("http", "https")

_logger = logging.getLogger(__name__)


@dataclass
class EndpointResolver:
    """Resolve the backend URL from override, environment and fallback.

    The first non-empty candidate wins. Changing the override sets
    ``restart_required`` when the resolved URL moves; clients built from the
    previous resolution must then be rebuilt by the owner.
    """

    store: KeyValueStore
    environment_url: str | None = None
    fallback_url: str = DEFAULT_BACKEND_URL
    restart_required: bool = False

    def resolve(self) -> EndpointConfig:
        """Return the endpoint for the current inputs."""
        override = self.store.get(StoreNamespace.SETTINGS, _OVERRIDE_KEY)
        candidates = (
            (override, EndpointSource.OVERRIDE),
            (self.environment_url, EndpointSource.ENVIRONMENT),
            (self.fallback_url, EndpointSource.DEFAULT),
        )
        for value, source in candidates:
            cleaned = _clean(value)
            if cleaned:
                return EndpointConfig(resolved_url=cleaned, source=source)
        raise InvalidEndpoint("No backend URL configured")

    def save(self, url: str) -> EndpointConfig:
        """Persist a user override and return the new resolution."""
        cleaned = _clean(url)
        if not cleaned:
            raise InvalidEndpoint()
        _validate(cleaned)
        previous = self.resolve()
        self.store.set(StoreNamespace.SETTINGS, _OVERRIDE_KEY, cleaned)
        config = self._track_change(previous)
        _logger.info(
            "Backend URL override saved: url=%s insecure=%s",
            config.resolved_url,
            config.insecure,
        )
        return config

    def clear_override(self) -> EndpointConfig:
        """Drop the user override and return the new resolution."""
        previous = self.resolve()
        self.store.delete(StoreNamespace.SETTINGS, _OVERRIDE_KEY)
        return self._track_change(previous)

    def acknowledge_restart(self) -> None:
        """Mark dependent clients as rebuilt."""
        self.restart_required = False

    def _track_change(self, previous: EndpointConfig) -> EndpointConfig:
        config = self.resolve()
        if config.resolved_url != previous.resolved_url:
            self.restart_required = True
        return config


def _clean(value: str | None) -> str:
    if value is None:
        return ""
    return value.strip().rstrip("/")


def _validate(url: str) -> None:
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise InvalidEndpoint(f"Invalid backend URL: {exc}") from exc
    if parsed.scheme not in _ALLOWED_SCHEMES or not parsed.host:
        raise InvalidEndpoint("Backend URL must be an http(s) URL with a host")
