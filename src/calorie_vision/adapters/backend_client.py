"""Calorie Vision backend API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class BackendClient(Protocol):
    """Interface for Calorie Vision backend interactions.

    Implementations raise ``httpx.HTTPStatusError`` on non-success responses,
    ``httpx.RequestError`` on network failures and ``ValueError`` when a
    success body is not JSON.
    """

    base_url: str

    async def signup(self, name: str, email: str, password: str) -> None:
        """Register a new account."""

    async def login(self, email: str, password: str) -> dict[str, object]:
        """Authenticate and return the raw identity payload."""

    async def analyze(
        self, user_id: str, image: bytes, filename: str, content_type: str
    ) -> dict[str, object]:
        """Upload a meal photo and return the raw analysis payload."""

    async def list_meals(self, user_id: str, limit: int) -> list[object]:
        """Return the raw meal history, most recent first."""

    async def health(self) -> object:
        """Call the health endpoint and return its JSON body."""


@dataclass
class HttpxBackendClient(BackendClient):
    """HTTPX-backed backend client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15.0

    @classmethod
    def create(
        cls, base_url: str, timeout_seconds: float = 15.0
    ) -> "HttpxBackendClient":
        """Create a backend client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def signup(self, name: str, email: str, password: str) -> None:
        """Register a new account via ``POST /auth/signup``."""
        response = await self.http_client.post(
            f"{self.base_url}/auth/signup",
            json={"name": name, "email": email, "password": password},
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()

    async def login(self, email: str, password: str) -> dict[str, object]:
        """Authenticate via ``POST /auth/login``."""
        response = await self.http_client.post(
            f"{self.base_url}/auth/login",
            json={"email": email, "password": password},
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    async def analyze(
        self, user_id: str, image: bytes, filename: str, content_type: str
    ) -> dict[str, object]:
        """Upload a photo as multipart form data via ``POST /analyze``."""
        response = await self.http_client.post(
            f"{self.base_url}/analyze",
            files={"file": (filename, image, content_type)},
            data={"user_id": user_id},
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    async def list_meals(self, user_id: str, limit: int) -> list[object]:
        """Fetch recent meals via ``GET /meals``."""
        response = await self.http_client.get(
            f"{self.base_url}/meals",
            params={"user_id": user_id, "limit": limit},
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()
        return response.json()

    async def health(self) -> object:
        """Probe ``GET /test``."""
        response = await self.http_client.get(
            f"{self.base_url}/test", timeout=self.timeout_seconds
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
