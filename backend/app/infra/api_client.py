"""HTTP client for the Lumina API, usable as an entry source and insight provider."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

import httpx

from ..config import Locale
from ..domain.entrystore import DEFAULT_ENTRY_TYPE, Entry
from ..domain.errors import EntryValidationError, StorageError
from .llm_gateway import Credentials, Insight, InsightError, InsightProvider
from .logging import get_logger

logger = get_logger(__name__)

API_KEY_HEADER = "X-Lumina-Api-Key"
DEFAULT_TIMEOUT_SECONDS = 30.0

T = TypeVar("T")


class LuminaApiClient(InsightProvider):
    """Talks to ``backend.app.main:app``; errors map back onto domain exceptions.

    A personal key travels in the ``X-Lumina-Api-Key`` header; when the
    credentials are shared the header is omitted and the server applies its
    own key.
    """

    def __init__(
        self,
        base_url: str,
        *,
        user_id: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._user_id = user_id
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "LuminaApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def list_all(self) -> List[Entry]:
        params = {"userId": self._user_id} if self._user_id else None
        response = self._send("GET", "/api/entries", params=params)
        return _decode(response, lambda body: [Entry.from_record(record) for record in body])

    def submit(
        self,
        content: str,
        entry_type: str = DEFAULT_ENTRY_TYPE,
        *,
        credentials: Credentials,
        locale: Locale,
    ) -> Entry:
        body = self._with_user(
            {"content": content, "type": entry_type, "locale": locale}
        )
        response = self._send(
            "POST",
            "/api/entries/submit",
            json=body,
            headers=_credential_headers(credentials),
        )
        return _decode(response, Entry.from_record)

    def remove(self, entry_id: int) -> None:
        self._send("DELETE", f"/api/entries/{entry_id}")

    def classify(
        self, text: str, *, credentials: Credentials, locale: Locale
    ) -> Insight:
        response = self._send(
            "POST",
            "/api/insights/classify",
            json={"text": text, "locale": locale},
            headers=_credential_headers(credentials),
        )
        return Insight.model_validate(response.json())

    def summarize_focus(
        self,
        recent_contents: Sequence[str],
        *,
        credentials: Credentials,
        locale: Locale,
    ) -> str:
        response = self._send(
            "POST",
            "/api/insights/focus",
            json={"recentContents": list(recent_contents), "locale": locale},
            headers=_credential_headers(credentials),
        )
        return str(response.json()["focus"])

    def validate_credentials(self, candidate: str) -> bool:
        try:
            response = self._send(
                "POST", "/api/credentials/validate", json={"apiKey": candidate}
            )
        except (InsightError, StorageError, EntryValidationError):
            return False
        return bool(response.json().get("valid"))

    def _with_user(self, body: Dict[str, Any]) -> Dict[str, Any]:
        if self._user_id:
            body["userId"] = self._user_id
        return body

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(
                "api_client_transport_failed",
                extra={"method": method, "path": path, "error": str(exc)},
            )
            if path.startswith("/api/insights"):
                raise InsightError(
                    str(exc), code="insight_network_error", retryable=True
                ) from exc
            raise StorageError(
                f"Lumina API unreachable: {exc}", code="api_unreachable"
            ) from exc
        if response.is_success:
            return response
        raise _error_from_response(response)


def _decode(response: httpx.Response, build: Callable[[Any], T]) -> T:
    try:
        return build(response.json())
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning(
            "api_client_response_invalid",
            extra={"path": response.request.url.path, "error": str(exc)},
        )
        raise StorageError(
            f"unexpected entry payload from {response.request.url.path}: {exc}",
            code="api_response_invalid",
        ) from exc


def _credential_headers(credentials: Credentials) -> Dict[str, str]:
    if credentials.source == "personal" and credentials.api_key:
        return {API_KEY_HEADER: credentials.api_key}
    return {}


def _error_from_response(response: httpx.Response) -> Exception:
    error_code, message, details = _parse_envelope(response)
    logger.warning(
        "api_client_request_failed",
        extra={
            "status_code": response.status_code,
            "error_code": error_code,
            "path": response.request.url.path,
        },
    )
    if response.status_code == 502:
        error = InsightError(
            message,
            code=error_code or "insight_failed",
            retryable=bool(details.get("retryable", False)),
        )
        error.details = details
        return error
    if 400 <= response.status_code < 500:
        return EntryValidationError(message, code=error_code or "request_invalid")
    return StorageError(
        message, code=error_code or "server_error", details=details
    )


def _parse_envelope(response: httpx.Response) -> tuple[Optional[str], str, Dict[str, Any]]:
    try:
        payload = response.json()
    except ValueError:
        return None, response.text or response.reason_phrase, {}
    detail = payload.get("detail") if isinstance(payload, dict) else None
    if isinstance(detail, dict):
        details = detail.get("details")
        return (
            detail.get("error_code"),
            str(detail.get("message") or response.reason_phrase),
            details if isinstance(details, dict) else {},
        )
    return None, str(detail or response.reason_phrase), {}
