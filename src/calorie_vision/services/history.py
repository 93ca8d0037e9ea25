"""Per-user meal history cache with cache-first reads."""

import logging
from dataclasses import dataclass, field

import httpx
from pydantic import TypeAdapter, ValidationError

from calorie_vision.adapters.backend_client import BackendClient
from calorie_vision.api.backend_models import MealPayload, meal_to_payload
from calorie_vision.domain.meals import MealRecord, RefreshOutcome
from calorie_vision.errors import CorruptPersistedState
from calorie_vision.services.http_errors import (
    status_code_from_exception,
    transport_detail,
)
from calorie_vision.services.storage import (
    KeyValueStore,
    StoreNamespace,
    read_json,
    write_json,
)

HISTORY_LIMIT = 20

_MEAL_LIST = TypeAdapter(list[MealPayload])

_logger = logging.getLogger(__name__)


@dataclass
class MealHistoryCache:
    """In-memory meal lists backed by persisted per-user snapshots.

    The server is authoritative: a successful refresh replaces the list
    wholesale. The only local mutation is an optimistic prepend after a
    successful analysis. Every mutation happens without suspending, so a
    list is never observed half-updated by another task.
    """

    client: BackendClient
    store: KeyValueStore
    limit: int = HISTORY_LIMIT
    _meals: dict[str, list[MealRecord]] = field(default_factory=dict)
    _epochs: dict[str, int] = field(default_factory=dict)

    def load_cached(self, user_id: str) -> list[MealRecord]:
        """Return the persisted snapshot, or an empty list."""
        try:
            meals = _decode_snapshot(
                read_json(self.store, StoreNamespace.MEAL_HISTORY, user_id)
            )
        except CorruptPersistedState as exc:
            _logger.warning("Ignoring cached meal history: %s", exc.detail)
            meals = []
        self._meals[user_id] = meals
        return list(meals)

    def current(self, user_id: str) -> list[MealRecord]:
        """Return the in-memory list for a user."""
        return list(self._meals.get(user_id, []))

    async def refresh(self, user_id: str) -> RefreshOutcome:
        """Replace the list with server truth; failures leave it untouched."""
        epoch = self._epochs.get(user_id, 0)
        try:
            raw = await self.client.list_meals(user_id, limit=self.limit)
            meals = _parse_meals(raw)
        except httpx.HTTPStatusError as exc:
            return self._failed(user_id, f"HTTP {status_code_from_exception(exc)}")
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            return self._failed(user_id, transport_detail(exc))
        except (ValueError, ValidationError):
            return self._failed(user_id, "Invalid meal history response")

        if self._epochs.get(user_id, 0) != epoch:
            return self._failed(user_id, "History cleared during refresh")
        self._replace(user_id, meals)
        return RefreshOutcome(ok=True, meals=list(meals))

    def insert_optimistic(self, user_id: str, record: MealRecord) -> None:
        """Prepend a freshly analysed meal and persist immediately."""
        if user_id not in self._meals:
            self.load_cached(user_id)
        self._replace(user_id, [record, *self._meals[user_id]])

    def clear(self, user_id: str) -> None:
        """Drop the list and its snapshot for a user."""
        self._meals.pop(user_id, None)
        self._epochs[user_id] = self._epochs.get(user_id, 0) + 1
        self.store.delete(StoreNamespace.MEAL_HISTORY, user_id)

    def _replace(self, user_id: str, meals: list[MealRecord]) -> None:
        self._meals[user_id] = meals
        write_json(
            self.store,
            StoreNamespace.MEAL_HISTORY,
            user_id,
            [meal_to_payload(meal) for meal in meals],
        )

    def _failed(self, user_id: str, error: str) -> RefreshOutcome:
        _logger.warning(
            "Meal history refresh failed: user_id=%s error=%s", user_id, error
        )
        return RefreshOutcome(ok=False, meals=self.current(user_id), error=error)


def _decode_snapshot(raw: object) -> list[MealRecord]:
    if raw is None:
        return []
    try:
        return _parse_meals(raw)
    except ValidationError as exc:
        raise CorruptPersistedState(
            f"invalid meal history: {exc.error_count()} errors"
        ) from exc


def _parse_meals(raw: object) -> list[MealRecord]:
    return [payload.to_record() for payload in _MEAL_LIST.validate_python(raw)]
