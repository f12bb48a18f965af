"""google-genai backed text generation client for the insight gateway."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

logger = logging.getLogger(__name__)

_CLIENT_LOCK = threading.Lock()
_CLIENT_CACHE: Dict[str, genai.Client] = {}

AUTH_REJECTED = "auth_rejected"
QUOTA_EXCEEDED = "quota_exceeded"
NETWORK_ERROR = "network_error"
INVALID_REQUEST = "request_invalid"
INVALID_RESPONSE = "response_invalid"
SERVER_ERROR = "server_error"


@dataclass
class GeminiReply:
    """Text and bookkeeping returned by ``generate_text``."""

    text: str
    model_id: str
    usage: Optional[Dict[str, Any]] = None


class GeminiClientError(RuntimeError):
    """Raised when the Gemini API call fails; ``kind`` classifies the failure."""

    def __init__(
        self, message: str, *, kind: str, status_code: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


def generate_text(
    *,
    api_key: str,
    model: str,
    contents: str,
    system_instruction: Optional[str] = None,
    response_schema: Optional[types.Schema] = None,
    max_output_tokens: Optional[int] = None,
) -> GeminiReply:
    """Run one ``generate_content`` call and return the reply text."""

    config = _build_config(
        system_instruction=system_instruction,
        response_schema=response_schema,
        max_output_tokens=max_output_tokens,
    )
    try:
        client = _get_client(api_key)
        response = client.models.generate_content(
            model=model,
            contents=contents,
            config=config,
        )
    except genai_errors.APIError as exc:
        raise _translate_api_error(exc) from exc
    except genai_errors.UnknownApiResponseError as exc:
        raise GeminiClientError(str(exc), kind=INVALID_RESPONSE) from exc
    except httpx.HTTPError as exc:
        raise GeminiClientError(str(exc), kind=NETWORK_ERROR) from exc
    except Exception as exc:
        # e.g. UnicodeEncodeError when the key cannot be sent as a header
        logger.warning(
            "Gemini request could not be sent",
            extra={"model": model, "error_type": type(exc).__name__},
        )
        raise GeminiClientError(str(exc), kind=INVALID_REQUEST) from exc

    if not response.candidates:
        raise GeminiClientError(
            "Gemini returned no candidates", kind=INVALID_RESPONSE
        )

    text = response.text or ""
    usage = _usage_dict(response)
    logger.debug(
        "Gemini generation finished",
        extra={"model": model, "chars": len(text), "usage": usage},
    )
    return GeminiReply(text=text, model_id=model, usage=usage)


def reset_client_cache() -> None:
    """Drop cached SDK clients, e.g. after a credential rotation."""

    with _CLIENT_LOCK:
        _CLIENT_CACHE.clear()


def _get_client(api_key: str) -> genai.Client:
    with _CLIENT_LOCK:
        client = _CLIENT_CACHE.get(api_key)
        if client is None:
            client = genai.Client(api_key=api_key)
            _CLIENT_CACHE[api_key] = client
        return client


def _build_config(
    *,
    system_instruction: Optional[str],
    response_schema: Optional[types.Schema],
    max_output_tokens: Optional[int],
) -> types.GenerateContentConfig:
    options: Dict[str, Any] = {
        "system_instruction": system_instruction,
        "max_output_tokens": max_output_tokens,
    }
    if response_schema is not None:
        options["response_mime_type"] = "application/json"
        options["response_schema"] = response_schema
    return types.GenerateContentConfig(
        **{key: value for key, value in options.items() if value is not None}
    )


def _translate_api_error(exc: genai_errors.APIError) -> GeminiClientError:
    status_code = getattr(exc, "code", None)
    message = str(exc)
    lowered = message.lower()
    if status_code in (401, 403) or "api key" in lowered:
        kind = AUTH_REJECTED
    elif status_code == 429 or "quota" in lowered:
        kind = QUOTA_EXCEEDED
    elif isinstance(exc, genai_errors.ServerError):
        kind = SERVER_ERROR
    else:
        kind = INVALID_REQUEST
    return GeminiClientError(message, kind=kind, status_code=status_code)


def _usage_dict(response: types.GenerateContentResponse) -> Optional[Dict[str, Any]]:
    usage = getattr(response, "usage_metadata", None)
    if usage is None:
        return None
    return {
        "prompt_tokens": usage.prompt_token_count,
        "output_tokens": usage.candidates_token_count,
        "total_tokens": usage.total_token_count,
    }
