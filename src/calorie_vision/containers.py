"""Dependency container wiring for the client."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from calorie_vision.adapters.backend_client import HttpxBackendClient
from calorie_vision.adapters.sqlite_store import SqliteKeyValueStore
from calorie_vision.config import Settings
from calorie_vision.domain.endpoint import EndpointConfig
from calorie_vision.services.analysis import AnalysisOrchestrator
from calorie_vision.services.auth import AuthFlow
from calorie_vision.services.connectivity import ConnectivityMonitor
from calorie_vision.services.endpoint import EndpointResolver
from calorie_vision.services.history import MealHistoryCache
from calorie_vision.services.sessions import SessionStore
from calorie_vision.services.storage import KeyValueStore

BackendClientFactory = Callable[[str, float], HttpxBackendClient]


@dataclass
class AppContainer:
    """Holds client-wide dependencies for one endpoint resolution."""

    settings: Settings
    store: KeyValueStore
    endpoint_resolver: EndpointResolver
    endpoint: EndpointConfig
    backend_client: HttpxBackendClient
    session_store: SessionStore
    meal_history: MealHistoryCache
    connectivity_monitor: ConnectivityMonitor
    analysis_orchestrator: AnalysisOrchestrator
    auth_flow: AuthFlow
    close_resources: Callable[[], Awaitable[None]]
    close_store: Callable[[], None]


def build_container(
    settings: Settings | None = None,
    store: KeyValueStore | None = None,
    client_factory: BackendClientFactory | None = None,
) -> AppContainer:
    """Create the default dependency container.

    ``store`` is shared across rebuilds; pass the previous container's store
    when re-resolving the endpoint so persisted state survives. Only a store
    created here is closed by ``close_store``.
    """
    resolved_settings = settings or Settings()
    owned_store: SqliteKeyValueStore | None = None
    if store is None:
        owned_store = SqliteKeyValueStore.create(resolved_settings.data_path)
        store = owned_store
    endpoint_resolver = EndpointResolver(
        store=store, environment_url=resolved_settings.backend_url
    )
    endpoint = endpoint_resolver.resolve()
    factory = client_factory or HttpxBackendClient.create
    backend_client = factory(
        endpoint.resolved_url, resolved_settings.request_timeout_seconds
    )
    session_store = SessionStore(store)
    meal_history = MealHistoryCache(client=backend_client, store=store)
    connectivity_monitor = ConnectivityMonitor(backend_client)
    analysis_orchestrator = AnalysisOrchestrator(
        client=backend_client,
        history=meal_history,
        store=store,
        insecure_endpoint=endpoint.insecure,
    )
    auth_flow = AuthFlow(
        client=backend_client,
        sessions=session_store,
        history=meal_history,
        insecure_endpoint=endpoint.insecure,
    )

    async def close_resources() -> None:
        await backend_client.close()

    def close_store() -> None:
        if owned_store is not None:
            owned_store.close()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        endpoint_resolver=endpoint_resolver,
        endpoint=endpoint,
        backend_client=backend_client,
        session_store=session_store,
        meal_history=meal_history,
        connectivity_monitor=connectivity_monitor,
        analysis_orchestrator=analysis_orchestrator,
        auth_flow=auth_flow,
        close_resources=close_resources,
        close_store=close_store,
    )
