"""Persisted session identity."""

import logging
from dataclasses import asdict, dataclass

from pydantic import ValidationError

from calorie_vision.api.backend_models import LoginPayload
from calorie_vision.domain.models import User
from calorie_vision.errors import CorruptPersistedState
from calorie_vision.services.storage import (
    KeyValueStore,
    StoreNamespace,
    read_json,
    write_json,
)

_CURRENT_KEY = "current"

_logger = logging.getLogger(__name__)


@dataclass
class SessionStore:
    """Durable store of the signed-in user."""

    store: KeyValueStore

    def load(self) -> User | None:
        """Return the persisted user, treating malformed data as absent."""
        try:
            raw = read_json(self.store, StoreNamespace.SESSION, _CURRENT_KEY)
            return _decode_user(raw)
        except CorruptPersistedState as exc:
            _logger.warning("Ignoring persisted session: %s", exc.detail)
            return None

    def save(self, user: User) -> None:
        """Persist the signed-in user."""
        write_json(self.store, StoreNamespace.SESSION, _CURRENT_KEY, asdict(user))

    def clear(self) -> None:
        """Forget the signed-in user."""
        self.store.delete(StoreNamespace.SESSION, _CURRENT_KEY)


def _decode_user(raw: object) -> User | None:
    if raw is None:
        return None
    try:
        return LoginPayload.model_validate(raw).to_user()
    except ValidationError as exc:
        raise CorruptPersistedState(
            f"invalid session: {exc.error_count()} errors"
        ) from exc
