"""HTTP client for the Direct Line v3 REST surface."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from botline.config import Settings
from botline.directline.models import Activity, ActivitySet, Conversation
from botline.errors import RelayServiceError

API_PREFIX = "/v3/directline"


def _describe(response: httpx.Response) -> str:
    # Direct Line errors look like {"error": {"code": "...", "message": "..."}}
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return f"{response.status_code} {error['message']}"
    return f"{response.status_code} {response.reason_phrase}"


class DirectLineClient:
    """Token, conversation and activity operations of the relay service.

    One instance owns one ``httpx.Client``; credentials are passed per call
    so the same connection pool serves both the secret-authenticated bootstrap
    and the token-authenticated conversation.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._http = httpx.Client(
            base_url=endpoint.rstrip("/") + API_PREFIX,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> DirectLineClient:
        if not settings.endpoint:
            raise ValueError("settings.endpoint is required")
        return cls(settings.endpoint, timeout=settings.timeout_seconds)

    def __enter__(self) -> DirectLineClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def generate_token(self, secret: str) -> Conversation:
        """Mint a token scoped to a brand-new conversation."""
        return self._conversation("POST", "/tokens/generate", secret)

    def start_conversation(self, token: str) -> Conversation:
        """Start the conversation the token was issued for."""
        return self._conversation("POST", "/conversations", token)

    def reconnect(self, credential: str, conversation_id: str, watermark: str | None = None) -> Conversation:
        """Reconnect to an existing conversation, refreshing its token and stream URL."""
        params = {"watermark": watermark} if watermark else None
        return self._conversation("GET", f"/conversations/{conversation_id}", credential, params=params)

    def get_activities(self, token: str, conversation_id: str, watermark: str | None = None) -> ActivitySet:
        params = {"watermark": watermark} if watermark else None
        data = self._request("GET", f"/conversations/{conversation_id}/activities", token, params=params)
        try:
            return ActivitySet.model_validate(data)
        except ValidationError as exc:
            raise RelayServiceError(f"unexpected activity set: {exc.error_count()} error(s)") from exc

    def post_activity(self, token: str, conversation_id: str, activity: Activity) -> str:
        """Send one activity and return the id the service assigned to it."""
        data = self._request("POST", f"/conversations/{conversation_id}/activities", token, json=activity.to_wire())
        return str(data.get("id", "")) if isinstance(data, dict) else ""

    def _conversation(self, method: str, path: str, credential: str, **kwargs: Any) -> Conversation:
        data = self._request(method, path, credential, **kwargs)
        try:
            return Conversation.model_validate(data)
        except ValidationError as exc:
            raise RelayServiceError(f"unexpected conversation payload: {exc.error_count()} error(s)") from exc

    def _request(self, method: str, path: str, credential: str, **kwargs: Any) -> Any:
        headers = {"Authorization": f"Bearer {credential}"}
        try:
            response = self._http.request(method, path, headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("directline.request.failed method={} path={} status={}", method, path, exc.response.status_code)
            raise RelayServiceError(_describe(exc.response), status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            logger.warning("directline.request.error method={} path={} error={}", method, path, type(exc).__name__)
            raise RelayServiceError(f"relay service unreachable: {exc}") from exc

        logger.debug("directline.request.ok method={} path={} status={}", method, path, response.status_code)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise RelayServiceError("relay service returned a non-JSON body") from exc
