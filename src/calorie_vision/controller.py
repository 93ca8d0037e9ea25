"""Application state and the transitions that change it."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from calorie_vision.containers import (
    AppContainer,
    BackendClientFactory,
    build_container,
)
from calorie_vision.domain.connectivity import ConnectivityState
from calorie_vision.domain.endpoint import EndpointConfig
from calorie_vision.domain.meals import MealRecord, RefreshOutcome
from calorie_vision.domain.models import User
from calorie_vision.errors import CalorieVisionError

_logger = logging.getLogger(__name__)


class Mode(StrEnum):
    """Which surface the client is showing."""

    LOGIN = "login"
    SIGNUP = "signup"
    APP = "app"


@dataclass
class AppState:
    """Everything the presentation layer renders."""

    mode: Mode = Mode.LOGIN
    user: User | None = None
    meals: list[MealRecord] = field(default_factory=list)
    uploading: bool = False
    message: str = ""
    endpoint: EndpointConfig | None = None
    connectivity: ConnectivityState = field(default_factory=ConnectivityState.unknown)
    last_refresh: RefreshOutcome | None = None
    last_analysis: MealRecord | None = None

    @property
    def can_submit_photo(self) -> bool:
        """Return True when the photo trigger should be enabled."""
        return self.user is not None and not self.uploading


@dataclass
class AppController:
    """Owns the application state and applies one transition per operation."""

    container: AppContainer
    client_factory: BackendClientFactory | None = None
    state: AppState = field(default_factory=AppState)

    async def start(self) -> AppState:
        """Restore a persisted session and refresh its history."""
        if self.restore_session():
            await self.refresh_history()
        return self.state

    def restore_session(self) -> bool:
        """Show the persisted session and cached meals without network I/O."""
        self.state.endpoint = self.container.endpoint
        user = self.container.session_store.load()
        if user is None:
            return False
        self.state.user = user
        self.state.mode = Mode.APP
        self.state.meals = self.container.meal_history.load_cached(user.user_id)
        snapshot = self.container.analysis_orchestrator.last_analysis(user.user_id)
        self.state.last_analysis = snapshot.record if snapshot else None
        return True

    async def refresh_history(self) -> RefreshOutcome | None:
        """Reconcile the meal list with the server; failures keep the cache."""
        user = self.state.user
        if user is None:
            return None
        outcome = await self.container.meal_history.refresh(user.user_id)
        self.state.last_refresh = outcome
        if self.state.user == user:
            self.state.meals = self.container.meal_history.current(user.user_id)
        return outcome

    def set_mode(self, mode: Mode) -> None:
        """Switch between the login and signup forms."""
        if self.state.user is None and mode != Mode.APP:
            self.state.mode = mode
            self.state.message = ""

    async def submit_auth(
        self, email: str, password: str, name: str | None = None
    ) -> bool:
        """Run signup-then-login or login depending on the current mode."""
        self.state.message = ""
        auth_flow = self.container.auth_flow
        try:
            if self.state.mode == Mode.SIGNUP:
                result = await auth_flow.signup(
                    name=name or "", email=email, password=password
                )
            else:
                result = await auth_flow.login(email=email, password=password)
        except CalorieVisionError as exc:
            self.state.message = exc.detail
            return False
        self.state.user = result.user
        self.state.mode = Mode.APP
        self.state.last_refresh = result.refresh
        self.state.meals = self.container.meal_history.current(result.user.user_id)
        return True

    async def analyze(
        self, image: bytes, filename: str = "meal.jpg"
    ) -> MealRecord | None:
        """Submit a meal photo unless one is already being analysed."""
        if self.state.uploading:
            self.state.message = "Analysis already in progress"
            return None
        self.state.uploading = True
        self.state.message = ""
        user = self.state.user
        try:
            record = await self.container.analysis_orchestrator.analyze(
                user, image, filename=filename
            )
        except CalorieVisionError as exc:
            self.state.message = exc.detail
            return None
        finally:
            self.state.uploading = False
        if user is not None and self.state.user == user:
            self.state.meals = self.container.meal_history.current(user.user_id)
            self.state.last_analysis = record
            self.state.message = "Analysis complete"
        return record

    def logout(self) -> None:
        """Drop the session and return to the login form."""
        self.container.auth_flow.logout(self.state.user)
        self.state.user = None
        self.state.mode = Mode.LOGIN
        self.state.meals = []
        self.state.last_refresh = None
        self.state.last_analysis = None
        self.state.message = ""

    async def change_endpoint(self, url: str) -> bool:
        """Save a backend URL override and rebuild dependent clients."""
        try:
            self.container.endpoint_resolver.save(url)
        except CalorieVisionError as exc:
            self.state.message = exc.detail
            return False
        await self._rebuild_if_required()
        return True

    async def reset_endpoint(self) -> None:
        """Remove the backend URL override and rebuild dependent clients."""
        self.container.endpoint_resolver.clear_override()
        await self._rebuild_if_required()

    async def probe(self) -> ConnectivityState:
        """Probe backend health and keep the latest trusted state."""
        monitor = self.container.connectivity_monitor
        result = await monitor.probe()
        if monitor is self.container.connectivity_monitor:
            self.state.connectivity = monitor.state
        return result

    async def shutdown(self) -> None:
        """Release network and storage resources."""
        await self.container.close_resources()
        self.container.close_store()

    async def _rebuild_if_required(self) -> None:
        if not self.container.endpoint_resolver.restart_required:
            self.state.message = (
                f"Backend unchanged: {self.container.endpoint.resolved_url}"
            )
            return
        await self._rebuild()

    async def _rebuild(self) -> None:
        previous = self.container
        previous.connectivity_monitor.reset()
        rebuilt = build_container(
            previous.settings,
            store=previous.store,
            client_factory=self.client_factory,
        )
        rebuilt.close_store = previous.close_store
        self.container = rebuilt
        previous.endpoint_resolver.acknowledge_restart()
        await previous.close_resources()
        _logger.info(
            "Backend endpoint changed: url=%s source=%s",
            rebuilt.endpoint.resolved_url,
            rebuilt.endpoint.source,
        )

        self.state.endpoint = rebuilt.endpoint
        self.state.connectivity = ConnectivityState.unknown()
        suffix = " (insecure)" if rebuilt.endpoint.insecure else ""
        self.state.message = f"Backend set to {rebuilt.endpoint.resolved_url}{suffix}"
        if self.state.user is not None:
            self.state.meals = rebuilt.meal_history.load_cached(
                self.state.user.user_id
            )
