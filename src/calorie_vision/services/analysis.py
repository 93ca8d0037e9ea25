"""Meal photo analysis orchestration."""

import logging
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

import httpx
from pydantic import ValidationError

from calorie_vision.adapters.backend_client import BackendClient
from calorie_vision.api.backend_models import MealPayload, meal_to_payload
from calorie_vision.domain.meals import AnalysisSnapshot, MealRecord
from calorie_vision.domain.models import User
from calorie_vision.errors import (
    AnalysisFailed,
    CorruptPersistedState,
    Unauthenticated,
    Unreachable,
)
from calorie_vision.services.history import MealHistoryCache
from calorie_vision.services.http_errors import (
    annotate_insecure,
    text_detail,
    transport_detail,
)
from calorie_vision.services.storage import (
    KeyValueStore,
    StoreNamespace,
    read_json,
    write_json,
)

_logger = logging.getLogger(__name__)


@dataclass
class AnalysisOrchestrator:
    """Submit a meal photo and fold the result into the history cache.

    Concurrent calls are not serialized here. Callers keep the submit
    trigger disabled while an analysis is outstanding.
    """

    client: BackendClient
    history: MealHistoryCache
    store: KeyValueStore
    insecure_endpoint: bool = False

    async def analyze(
        self, user: User | None, image: bytes, filename: str = "meal.jpg"
    ) -> MealRecord:
        """Upload ``image`` for ``user`` and return the analysed meal."""
        if user is None or not user.user_id:
            raise Unauthenticated()

        try:
            raw = await self.client.analyze(
                user_id=user.user_id,
                image=image,
                filename=filename,
                content_type=detect_mime_type(image),
            )
        except httpx.HTTPStatusError as exc:
            raise AnalysisFailed(text_detail(exc)) from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            raise Unreachable(
                annotate_insecure(transport_detail(exc), self.insecure_endpoint)
            ) from exc
        except ValueError as exc:
            raise AnalysisFailed("Malformed analysis response") from exc

        try:
            record = MealPayload.model_validate(raw).to_record()
        except ValidationError as exc:
            raise AnalysisFailed("Malformed analysis response") from exc

        self.history.insert_optimistic(user.user_id, record)
        self._save_snapshot(user.user_id, record)
        _logger.info(
            "Meal analysed: user_id=%s meal_id=%s calories=%s",
            user.user_id,
            record.id,
            record.calories,
        )
        return record

    def last_analysis(self, user_id: str) -> AnalysisSnapshot | None:
        """Return the last persisted analysis for a user, if readable."""
        try:
            raw = read_json(self.store, StoreNamespace.LAST_ANALYSIS, user_id)
            return _decode_snapshot(user_id, raw)
        except CorruptPersistedState as exc:
            _logger.warning("Ignoring last analysis snapshot: %s", exc.detail)
            return None

    def _save_snapshot(self, user_id: str, record: MealRecord) -> None:
        snapshot = AnalysisSnapshot(
            user_id=user_id,
            record=record,
            analyzed_at=datetime.now(tz=UTC).isoformat(),
        )
        payload = asdict(snapshot)
        payload["record"] = meal_to_payload(record)
        write_json(self.store, StoreNamespace.LAST_ANALYSIS, user_id, payload)


def _decode_snapshot(user_id: str, raw: object) -> AnalysisSnapshot | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise CorruptPersistedState("last analysis is not an object")
    try:
        record = MealPayload.model_validate(raw.get("record")).to_record()
    except ValidationError as exc:
        raise CorruptPersistedState("invalid last analysis record") from exc
    return AnalysisSnapshot(
        user_id=user_id,
        record=record,
        analyzed_at=str(raw.get("analyzed_at") or ""),
    )


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
