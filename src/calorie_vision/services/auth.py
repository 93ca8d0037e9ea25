"""Signup and login flow."""

import logging
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from calorie_vision.adapters.backend_client import BackendClient
from calorie_vision.api.backend_models import LoginPayload
from calorie_vision.domain.meals import RefreshOutcome
from calorie_vision.domain.models import User
from calorie_vision.errors import AuthFailed, Unreachable
from calorie_vision.services.history import MealHistoryCache
from calorie_vision.services.http_errors import (
    annotate_insecure,
    json_detail,
    transport_detail,
)
from calorie_vision.services.sessions import SessionStore

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    """Signed-in user plus the outcome of the initial history refresh."""

    user: User
    refresh: RefreshOutcome


@dataclass
class AuthFlow:
    """Create sessions from credentials.

    Signup never establishes a session by itself; it is always followed by a
    login with the same credentials.
    """

    client: BackendClient
    sessions: SessionStore
    history: MealHistoryCache
    insecure_endpoint: bool = False

    async def signup(self, name: str, email: str, password: str) -> AuthResult:
        """Register an account, then log in with the same credentials."""
        try:
            await self.client.signup(name=name, email=email, password=password)
        except httpx.HTTPStatusError as exc:
            raise AuthFailed(json_detail(exc) or "Failed to sign up") from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise Unreachable(self._transport_detail(exc)) from exc
        _logger.info("Signup accepted: email=%s", email)
        return await self.login(email=email, password=password)

    async def login(self, email: str, password: str) -> AuthResult:
        """Log in, persist the session and prime the meal history."""
        try:
            raw = await self.client.login(email=email, password=password)
        except httpx.HTTPStatusError as exc:
            raise AuthFailed(json_detail(exc) or "Login failed") from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise Unreachable(self._transport_detail(exc)) from exc
        except ValueError as exc:
            raise AuthFailed("Malformed login response") from exc

        try:
            user = LoginPayload.model_validate(raw).to_user()
        except ValidationError as exc:
            raise AuthFailed("Malformed login response") from exc

        self.sessions.save(user)
        _logger.info("Logged in: user_id=%s", user.user_id)
        self.history.load_cached(user.user_id)
        outcome = await self.history.refresh(user.user_id)
        return AuthResult(user=user, refresh=outcome)

    def logout(self, user: User | None) -> None:
        """Forget the session and the user's cached history."""
        self.sessions.clear()
        if user is not None:
            self.history.clear(user.user_id)
            _logger.info("Logged out: user_id=%s", user.user_id)

    def _transport_detail(self, exc: Exception) -> str:
        return annotate_insecure(transport_detail(exc), self.insecure_endpoint)
