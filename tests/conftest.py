"""Shared test fixtures."""

from dataclasses import dataclass, field
from itertools import count

import httpx
import pytest
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from calorie_vision.adapters.backend_client import BackendClient, HttpxBackendClient
from calorie_vision.config import Settings
from calorie_vision.containers import AppContainer, build_container
from calorie_vision.services.history import MealHistoryCache
from calorie_vision.services.sessions import SessionStore
from calorie_vision.services.storage import InMemoryKeyValueStore

SALAD_ANALYSIS: dict[str, object] = {
    "meal_id": "m1",
    "dish_name": "Salad",
    "calories": 250,
    "macros": {"carbs_g": 20, "protein_g": 5, "fat_g": 10},
    "ingredients": ["lettuce", "tomato"],
}


def http_error(
    status_code: int, *, json: object = None, text: str | None = None
) -> httpx.HTTPStatusError:
    """Build the error httpx raises for a non-success response."""
    request = httpx.Request("GET", "http://backend.test")
    if json is not None:
        response = httpx.Response(status_code, json=json, request=request)
    else:
        response = httpx.Response(status_code, text=text or "", request=request)
    return httpx.HTTPStatusError(
        f"HTTP {status_code}", request=request, response=response
    )


@dataclass
class FakeBackendClient(BackendClient):
    """Fake backend that records calls and serves in-memory data."""

    base_url: str = "http://backend.test"
    accounts: dict[str, dict[str, str]] = field(default_factory=dict)
    meals: dict[str, list[dict[str, object]]] = field(default_factory=dict)
    analysis_payload: dict[str, object] = field(
        default_factory=lambda: dict(SALAD_ANALYSIS)
    )
    failures: dict[str, Exception] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    uploads: list[tuple[str, str, str]] = field(default_factory=list)

    def _record(self, name: str) -> None:
        self.calls.append(name)
        failure = self.failures.get(name)
        if failure is not None:
            raise failure

    async def signup(self, name: str, email: str, password: str) -> None:
        self._record("signup")
        if email in self.accounts:
            raise http_error(400, json={"detail": "Email already registered"})
        self.accounts[email] = {
            "user_id": f"u-{len(self.accounts) + 1}",
            "name": name,
            "password": password,
        }

    async def login(self, email: str, password: str) -> dict[str, object]:
        self._record("login")
        account = self.accounts.get(email)
        if account is None or account["password"] != password:
            raise http_error(401, json={"detail": "Invalid credentials"})
        return {"user_id": account["user_id"], "name": account["name"], "email": email}

    async def analyze(
        self, user_id: str, image: bytes, filename: str, content_type: str
    ) -> dict[str, object]:
        self._record("analyze")
        self.uploads.append((user_id, filename, content_type))
        return self.analysis_payload

    async def list_meals(self, user_id: str, limit: int) -> list[object]:
        self._record("list_meals")
        return list(self.meals.get(user_id, []))[:limit]

    async def health(self) -> object:
        self._record("health")
        return {"status": "ok"}


class _SignupBody(BaseModel):
    name: str
    email: str
    password: str


class _LoginBody(BaseModel):
    email: str
    password: str


def create_stub_backend() -> FastAPI:
    """FastAPI app that behaves like the Calorie Vision backend."""
    app = FastAPI()
    accounts: dict[str, dict[str, str]] = {}
    meals: dict[str, list[dict[str, object]]] = {}
    meal_ids = count(1)
    app.state.accounts = accounts
    app.state.meals = meals

    @app.post("/auth/signup")
    async def signup(body: _SignupBody) -> dict[str, str]:
        if body.email in accounts:
            raise HTTPException(status_code=400, detail="Email already registered")
        accounts[body.email] = {
            "user_id": f"user-{len(accounts) + 1}",
            "name": body.name,
            "password": body.password,
        }
        return {"status": "ok"}

    @app.post("/auth/login")
    async def login(body: _LoginBody) -> dict[str, str]:
        account = accounts.get(body.email)
        if account is None or account["password"] != body.password:
            raise HTTPException(status_code=401, detail="Invalid credentials")
        return {
            "user_id": account["user_id"],
            "name": account["name"],
            "email": body.email,
            "created_at": "2024-01-01T00:00:00Z",
        }

    @app.post("/analyze", response_model=None)
    async def analyze(
        file: UploadFile = File(...), user_id: str = Form(...)
    ) -> dict | PlainTextResponse:
        content = await file.read()
        if content.startswith(b"not-food"):
            return PlainTextResponse("No food detected", status_code=422)
        meal_id = f"m{next(meal_ids)}"
        row = {**SALAD_ANALYSIS, "_id": meal_id}
        row.pop("meal_id")
        meals.setdefault(user_id, []).insert(0, row)
        return {**SALAD_ANALYSIS, "meal_id": meal_id}

    @app.get("/meals")
    async def list_meals(user_id: str, limit: int = 20) -> list[dict]:
        return meals.get(user_id, [])[:limit]

    @app.get("/test")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


def asgi_client_factory(app: FastAPI):  # type: ignore[no-untyped-def]
    """Return a client factory that routes requests into ``app``."""

    def factory(base_url: str, timeout_seconds: float) -> HttpxBackendClient:
        return HttpxBackendClient(
            base_url=base_url,
            http_client=httpx.AsyncClient(transport=httpx.ASGITransport(app=app)),
            timeout_seconds=timeout_seconds,
        )

    return factory


@pytest.fixture
def settings(tmp_path) -> Settings:  # type: ignore[no-untyped-def]
    return Settings(
        backend_url="http://backend.test",
        data_path=tmp_path / "state.db",
        request_timeout_seconds=5.0,
    )


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def backend() -> FakeBackendClient:
    return FakeBackendClient()


@pytest.fixture
def history(
    backend: FakeBackendClient, store: InMemoryKeyValueStore
) -> MealHistoryCache:
    return MealHistoryCache(client=backend, store=store)


@pytest.fixture
def session_store(store: InMemoryKeyValueStore) -> SessionStore:
    return SessionStore(store)


@pytest.fixture
def stub_backend() -> FastAPI:
    return create_stub_backend()


@pytest.fixture
def container(
    settings: Settings, store: InMemoryKeyValueStore, stub_backend: FastAPI
) -> AppContainer:
    return build_container(
        settings, store=store, client_factory=asgi_client_factory(stub_backend)
    )
