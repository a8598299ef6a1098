"""Async HTTP client for the flashcard API."""
from __future__ import annotations

from typing import Any, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from app.schemas import (
    CardProgressRead,
    DailyActivityRead,
    FlashcardRead,
    ProgressResetRead,
    RecentCardRead,
    SetProgressRead,
    StudyEventRead,
    TopicProgressRead,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ApiError(Exception):
    """The server could not be reached or sent a reply the client cannot use."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: Any = None,
        retryable: bool | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.payload = payload
        self._retryable = retryable
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        if self._retryable is not None:
            return self._retryable
        return self.status_code is None or self.status_code >= 500


def _unpack(payload: dict[str, Any], key: str, schema: type[ModelT], *, many: bool = False) -> Any:
    """Validate ``payload[key]`` as one model, or as a list of models when ``many``."""

    try:
        value = payload[key]
        if not many:
            return schema.model_validate(value)
        if not isinstance(value, list):
            raise TypeError(f"expected a list, got {type(value).__name__}")
        return [schema.model_validate(item) for item in value]
    except (KeyError, TypeError, PydanticValidationError) as exc:
        logger.warning("Malformed API envelope", key=key, error=str(exc))
        raise ApiError(f"Malformed {key!r} envelope", payload=payload, retryable=False) from exc


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ApiError) and exc.retryable


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Retrying API request",
        attempt=retry_state.attempt_number,
        error=str(error),
    )


class FlashcardApiClient:
    """Thin wrapper over the REST endpoints, returning typed schema objects.

    Unreachable servers and 5xx answers are retried with exponential backoff
    up to ``retry_attempts`` times; the last ``ApiError`` is then raised.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        api_prefix: str = "/api/v1",
        token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        retry_attempts: int = 3,
        retry_backoff: float = 0.5,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff = retry_backoff
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FlashcardApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_backoff, max=8),
            retry=retry_if_exception(_is_retryable),
            before_sleep=_log_retry,
            reraise=True,
        ):
            with attempt:
                return await self._send(method, path, json=json, params=params)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            response = await self.client.request(
                method, f"{self.api_prefix}{path}", json=json, params=params, headers=headers
            )
        except httpx.HTTPError as exc:
            logger.warning("API request failed", method=method, path=path, error=str(exc))
            raise ApiError(f"{method} {path} failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if response.is_error:
            message = "API error"
            if isinstance(payload, dict):
                message = payload.get("message") or str(payload.get("detail") or message)
            raise ApiError(message, status_code=response.status_code, payload=payload)
        if not isinstance(payload, dict):
            logger.warning(
                "Malformed API response",
                method=method,
                path=path,
                content_type=response.headers.get("content-type"),
            )
            raise ApiError(
                f"{method} {path} returned an unexpected body",
                status_code=response.status_code,
                payload=response.text[:200],
                retryable=False,
            )
        return payload

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------
    async def register(self, *, username: str, email: str, password: str) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/auth/register",
            json={"username": username, "email": email, "password": password},
        )

    async def login(self, *, email: str, password: str) -> str:
        """Authenticate and keep the access token for later calls."""

        payload = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        token = payload.get("access_token")
        if not isinstance(token, str):
            raise ApiError("Login response carried no access token", payload=payload, retryable=False)
        self.token = token
        return self.token

    # ------------------------------------------------------------------
    # Study
    # ------------------------------------------------------------------
    async def start_study_session(
        self, set_id: int, *, mode: str = "random", limit: int | None = None
    ) -> list[FlashcardRead]:
        params: dict[str, Any] = {"mode": mode}
        if limit is not None:
            params["limit"] = limit
        payload = await self._request("GET", f"/flashcards/sets/{set_id}/study", params=params)
        return _unpack(payload, "cards", FlashcardRead, many=True)

    async def record_progress(self, set_id: int, card_id: int, status: str) -> StudyEventRead:
        payload = await self._request(
            "POST",
            "/analytics/progress",
            json={"setId": set_id, "cardId": card_id, "status": status},
        )
        return _unpack(payload, "progress", StudyEventRead)

    async def reset_set_progress(self, set_id: int) -> ProgressResetRead:
        payload = await self._request("POST", f"/analytics/reset/{set_id}")
        return _unpack(payload, "reset", ProgressResetRead)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------
    async def get_set_progress(self) -> list[SetProgressRead]:
        payload = await self._request("GET", "/analytics/progress")
        return _unpack(payload, "progress", SetProgressRead, many=True)

    async def get_card_progress(self) -> list[CardProgressRead]:
        payload = await self._request("GET", "/analytics/cards")
        return _unpack(payload, "cards", CardProgressRead, many=True)

    async def get_topic_progress(self) -> list[TopicProgressRead]:
        payload = await self._request("GET", "/analytics/topics")
        return _unpack(payload, "topics", TopicProgressRead, many=True)

    async def get_daily_activity(self) -> list[DailyActivityRead]:
        payload = await self._request("GET", "/analytics/daily")
        return _unpack(payload, "activity", DailyActivityRead, many=True)

    async def get_recent_cards(self, limit: int | None = None) -> list[RecentCardRead]:
        params = {"limit": limit} if limit is not None else None
        payload = await self._request("GET", "/analytics/recent", params=params)
        return _unpack(payload, "cards", RecentCardRead, many=True)
