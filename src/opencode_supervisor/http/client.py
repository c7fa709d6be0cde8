"""Typed HTTP client for the OpenCode session API."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from opencode_supervisor.config import ApiSettings
from opencode_supervisor.supervisor.models import (
    FileDiff,
    Session,
    diffs_from_payload,
    session_from_payload,
)

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

DEFAULT_TIMEOUT_SECONDS = 180.0


class SessionClientError(RuntimeError):
    """Base error for failed OpenCode API calls."""


class SessionApiError(SessionClientError):
    """Non-2xx response from the OpenCode server."""

    def __init__(self, status_code: int, reason: str, *, url: str) -> None:
        super().__init__(f"HTTP {status_code}: {reason}")
        self.status_code = status_code
        self.reason = reason
        self.url = url


class SessionTransportError(SessionClientError):
    """Connection failure or timeout before a response was received."""

    def __init__(self, message: str, *, timed_out: bool) -> None:
        super().__init__(message)
        self.timed_out = timed_out


class SessionProtocolError(SessionClientError):
    """Response body is not the JSON shape the endpoint promises."""


class SessionClient:
    """Single-request accessors for session lifecycle endpoints.

    No retries are performed here; retry policy belongs to the caller.
    """

    def __init__(
        self,
        *,
        api_url: str,
        username: str,
        password: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.api_url,
            auth=httpx.BasicAuth(username, password),
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: ApiSettings) -> SessionClient:
        return cls(
            api_url=settings.api_url,
            username=settings.username,
            password=settings.password,
            timeout_seconds=settings.timeout_seconds,
        )

    def create_session(self) -> Session:
        return _parse(session_from_payload, self._request("POST", "/session", body={}))

    def get_session(self, session_id: str) -> Session:
        return _parse(session_from_payload, self._request("GET", f"/session/{session_id}"))

    def get_session_diff(self, session_id: str) -> list[FileDiff]:
        return _parse(diffs_from_payload, self._request("GET", f"/session/{session_id}/diff"))

    def send_message(self, session_id: str, text: str) -> dict[str, Any]:
        """Submit a prompt and block until the agent's turn ends."""

        payload = self._request(
            "POST",
            f"/session/{session_id}/message",
            body={"parts": [{"type": "text", "text": text}]},
        )
        if not isinstance(payload, dict):
            raise SessionProtocolError("Expected message response JSON object")
        return payload

    def abort_session(self, session_id: str) -> bool:
        """Best-effort abort; failures are logged and reported as ``False``."""

        try:
            payload = self._request("POST", f"/session/{session_id}/abort", body={})
        except SessionClientError as exc:
            logger.warning("Abort failed for session %s: %s", session_id, exc)
            return False
        if isinstance(payload, dict) and payload.get("success") is False:
            logger.warning("Server refused to abort session %s", session_id)
            return False
        return True

    def _request(self, method: str, path: str, *, body: dict[str, Any] | None = None) -> Any:
        try:
            response = self._client.request(method, path, json=body)
        except httpx.TimeoutException as exc:
            raise SessionTransportError(
                f"Timeout calling {method} {path}: {exc}",
                timed_out=True,
            ) from exc
        except httpx.HTTPError as exc:
            raise SessionTransportError(
                f"Request {method} {path} failed: {exc}",
                timed_out=False,
            ) from exc

        if not response.is_success:
            raise SessionApiError(
                response.status_code,
                response.reason_phrase,
                url=str(response.request.url),
            )
        try:
            return response.json()
        except ValueError as exc:
            raise SessionProtocolError(f"Invalid JSON from {method} {path}: {exc}") from exc

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> SessionClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


def _parse(parser: Callable[[object], _T], payload: object) -> _T:
    try:
        return parser(payload)
    except (TypeError, ValueError) as exc:
        raise SessionProtocolError(str(exc)) from exc
