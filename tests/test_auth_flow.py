"""Tests for the signup and login flow."""

import asyncio

import httpx
import pytest

from calorie_vision.domain.meals import MealRecord
from calorie_vision.domain.models import User
from calorie_vision.errors import AuthFailed, Unreachable
from calorie_vision.services.auth import AuthFlow
from calorie_vision.services.history import MealHistoryCache
from calorie_vision.services.sessions import SessionStore
from tests.conftest import FakeBackendClient, http_error


@pytest.fixture
def auth_flow(
    backend: FakeBackendClient,
    session_store: SessionStore,
    history: MealHistoryCache,
) -> AuthFlow:
    return AuthFlow(client=backend, sessions=session_store, history=history)


def test_signup_chains_login_and_primes_empty_history(
    auth_flow: AuthFlow,
    backend: FakeBackendClient,
    session_store: SessionStore,
) -> None:
    result = asyncio.run(auth_flow.signup("Ann", "a@x.com", "p"))

    assert result.user.user_id
    assert result.user.name == "Ann"
    assert session_store.load() == result.user
    assert result.refresh.ok is True
    assert result.refresh.meals == []
    assert backend.calls == ["signup", "login", "list_meals"]


def test_login_primes_history_from_server(
    auth_flow: AuthFlow,
    backend: FakeBackendClient,
    history: MealHistoryCache,
) -> None:
    asyncio.run(backend.signup("Ann", "a@x.com", "p"))
    backend.meals["u-1"] = [{"_id": "r1", "dish_name": "Rice", "calories": 300}]

    result = asyncio.run(auth_flow.login("a@x.com", "p"))

    assert [meal.id for meal in result.refresh.meals] == ["r1"]
    assert [meal.id for meal in history.current("u-1")] == ["r1"]


def test_login_rejection_surfaces_server_detail(
    auth_flow: AuthFlow, session_store: SessionStore
) -> None:
    with pytest.raises(AuthFailed) as excinfo:
        asyncio.run(auth_flow.login("nobody@x.com", "p"))

    assert excinfo.value.detail == "Invalid credentials"
    assert session_store.load() is None


def test_signup_rejection_without_detail_uses_default(
    auth_flow: AuthFlow, backend: FakeBackendClient
) -> None:
    backend.failures["signup"] = http_error(500, text="Internal Server Error")

    with pytest.raises(AuthFailed) as excinfo:
        asyncio.run(auth_flow.signup("Ann", "a@x.com", "p"))

    assert excinfo.value.detail == "Failed to sign up"
    assert backend.calls == ["signup"]


def test_duplicate_signup_reports_detail(
    auth_flow: AuthFlow, backend: FakeBackendClient
) -> None:
    asyncio.run(backend.signup("Ann", "a@x.com", "p"))

    with pytest.raises(AuthFailed) as excinfo:
        asyncio.run(auth_flow.signup("Ann", "a@x.com", "p"))

    assert excinfo.value.detail == "Email already registered"


def test_login_survives_history_refresh_failure(
    auth_flow: AuthFlow, backend: FakeBackendClient
) -> None:
    asyncio.run(backend.signup("Ann", "a@x.com", "p"))
    backend.failures["list_meals"] = httpx.ConnectError("Connection refused")

    result = asyncio.run(auth_flow.login("a@x.com", "p"))

    assert result.user.user_id == "u-1"
    assert result.refresh.ok is False


def test_login_transport_failure_is_unreachable(
    auth_flow: AuthFlow, backend: FakeBackendClient
) -> None:
    backend.failures["login"] = httpx.ConnectError("Connection refused")

    with pytest.raises(Unreachable):
        asyncio.run(auth_flow.login("a@x.com", "p"))


def test_malformed_login_response_fails(
    auth_flow: AuthFlow, backend: FakeBackendClient
) -> None:
    async def login(email: str, password: str) -> dict[str, object]:
        return {"name": "Ann"}

    backend.login = login  # type: ignore[method-assign]

    with pytest.raises(AuthFailed):
        asyncio.run(auth_flow.login("a@x.com", "p"))


def test_logout_clears_session_and_history(
    auth_flow: AuthFlow,
    session_store: SessionStore,
    history: MealHistoryCache,
) -> None:
    result = asyncio.run(auth_flow.signup("Ann", "a@x.com", "p"))
    history.insert_optimistic(
        result.user.user_id, MealRecord(id="m1", dish_name="Salad", calories=250)
    )

    auth_flow.logout(result.user)

    assert session_store.load() is None
    assert history.load_cached(result.user.user_id) == []


def test_login_transport_failure_notes_insecure_endpoint(
    backend: FakeBackendClient,
    session_store: SessionStore,
    history: MealHistoryCache,
) -> None:
    backend.failures["login"] = httpx.ConnectError("Connection refused")
    auth_flow = AuthFlow(
        client=backend,
        sessions=session_store,
        history=history,
        insecure_endpoint=True,
    )

    with pytest.raises(Unreachable) as excinfo:
        asyncio.run(auth_flow.login("a@x.com", "p"))

    assert excinfo.value.detail == "Connection refused (insecure endpoint)"


def test_signup_against_malformed_base_url_is_unreachable(
    auth_flow: AuthFlow, backend: FakeBackendClient
) -> None:
    backend.failures["signup"] = httpx.InvalidURL("Invalid port: 'port'")

    with pytest.raises(Unreachable) as excinfo:
        asyncio.run(auth_flow.signup("Ann", "a@x.com", "p"))

    assert excinfo.value.detail == "Invalid port: 'port'"
    assert backend.calls == ["signup"]


def test_login_accepts_non_string_name(
    auth_flow: AuthFlow,
    backend: FakeBackendClient,
    session_store: SessionStore,
) -> None:
    async def login(email: str, password: str) -> dict[str, object]:
        return {"user_id": "u1", "name": 7, "email": "a@x.com"}

    backend.login = login  # type: ignore[method-assign]

    result = asyncio.run(auth_flow.login("a@x.com", "p"))

    assert result.user == User(user_id="u1", name="7", email="a@x.com")
    assert session_store.load() == result.user

