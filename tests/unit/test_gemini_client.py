"""Tests for the google-genai wrapper; the SDK client is always faked."""

from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors as genai_errors

from backend.app.infra.llm_gateway import gemini_client, prompts

pytestmark = [pytest.mark.insights]


class _FakeModels:
    def __init__(self, response=None, error=None) -> None:
        self.response = response
        self.error = error
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _install(monkeypatch, models: _FakeModels) -> None:
    fake_client = SimpleNamespace(models=models)
    monkeypatch.setattr(gemini_client, "_get_client", lambda api_key: fake_client)


def _response(text="ok", candidates=("c",)):
    return SimpleNamespace(
        text=text,
        candidates=list(candidates),
        usage_metadata=SimpleNamespace(
            prompt_token_count=3, candidates_token_count=1, total_token_count=4
        ),
    )


def _api_error(cls, code: int, message: str, status: str):
    return cls(code, {"error": {"code": code, "message": message, "status": status}})


def test_generate_text_returns_reply_with_usage(monkeypatch):
    models = _FakeModels(response=_response(text='{"a": 1}'))
    _install(monkeypatch, models)

    reply = gemini_client.generate_text(
        api_key="k",
        model="gemini-test",
        contents="hello",
        system_instruction="be brief",
        response_schema=prompts.INSIGHT_RESPONSE_SCHEMA,
    )

    assert reply.text == '{"a": 1}'
    assert reply.model_id == "gemini-test"
    assert reply.usage == {"prompt_tokens": 3, "output_tokens": 1, "total_tokens": 4}
    config = models.calls[0]["config"]
    assert config.system_instruction == "be brief"
    assert config.response_mime_type == "application/json"
    assert models.calls[0]["contents"] == "hello"


def test_generate_text_omits_unset_options(monkeypatch):
    models = _FakeModels(response=_response())
    _install(monkeypatch, models)

    gemini_client.generate_text(
        api_key="k", model="m", contents="hi", max_output_tokens=1
    )

    config = models.calls[0]["config"]
    assert config.max_output_tokens == 1
    assert config.response_mime_type is None
    assert config.system_instruction is None


def test_generate_text_without_candidates_is_invalid_response(monkeypatch):
    _install(monkeypatch, _FakeModels(response=_response(candidates=())))

    with pytest.raises(gemini_client.GeminiClientError) as excinfo:
        gemini_client.generate_text(api_key="k", model="m", contents="x")

    assert excinfo.value.kind == gemini_client.INVALID_RESPONSE


@pytest.mark.parametrize(
    "error, kind",
    [
        (
            _api_error(genai_errors.ClientError, 400, "API key not valid.", "INVALID_ARGUMENT"),
            gemini_client.AUTH_REJECTED,
        ),
        (
            _api_error(genai_errors.ClientError, 403, "Permission denied", "PERMISSION_DENIED"),
            gemini_client.AUTH_REJECTED,
        ),
        (
            _api_error(genai_errors.ClientError, 429, "Resource exhausted", "RESOURCE_EXHAUSTED"),
            gemini_client.QUOTA_EXCEEDED,
        ),
        (
            _api_error(genai_errors.ServerError, 503, "Unavailable", "UNAVAILABLE"),
            gemini_client.SERVER_ERROR,
        ),
        (
            _api_error(genai_errors.ClientError, 400, "Bad schema", "INVALID_ARGUMENT"),
            gemini_client.INVALID_REQUEST,
        ),
    ],
)
def test_api_errors_are_classified(monkeypatch, error, kind):
    _install(monkeypatch, _FakeModels(error=error))

    with pytest.raises(gemini_client.GeminiClientError) as excinfo:
        gemini_client.generate_text(api_key="k", model="m", contents="x")

    assert excinfo.value.kind == kind
    assert excinfo.value.status_code == error.code


def test_transport_errors_are_network_errors(monkeypatch):
    _install(monkeypatch, _FakeModels(error=httpx.ConnectError("connection refused")))

    with pytest.raises(gemini_client.GeminiClientError) as excinfo:
        gemini_client.generate_text(api_key="k", model="m", contents="x")

    assert excinfo.value.kind == gemini_client.NETWORK_ERROR


def test_non_json_reply_body_is_invalid_response(monkeypatch):
    error = genai_errors.UnknownApiResponseError("non-JSON body")
    _install(monkeypatch, _FakeModels(error=error))

    with pytest.raises(gemini_client.GeminiClientError) as excinfo:
        gemini_client.generate_text(api_key="k", model="m", contents="x")

    assert excinfo.value.kind == gemini_client.INVALID_RESPONSE
    assert excinfo.value.__cause__ is error


def test_unsendable_key_is_invalid_request(monkeypatch):
    def _client_for(api_key):
        api_key.encode("ascii")

    monkeypatch.setattr(gemini_client, "_get_client", _client_for)

    with pytest.raises(gemini_client.GeminiClientError) as excinfo:
        gemini_client.generate_text(api_key="AIza\u200bkey", model="m", contents="x")

    assert excinfo.value.kind == gemini_client.INVALID_REQUEST
    assert isinstance(excinfo.value.__cause__, UnicodeEncodeError)


def test_client_cache_is_keyed_by_api_key(monkeypatch):
    created = []

    class _FakeGenaiClient:
        def __init__(self, *, api_key):
            created.append(api_key)

    monkeypatch.setattr(gemini_client.genai, "Client", _FakeGenaiClient)
    gemini_client.reset_client_cache()

    first = gemini_client._get_client("a")
    again = gemini_client._get_client("a")
    other = gemini_client._get_client("b")
    gemini_client.reset_client_cache()

    assert first is again
    assert other is not first
    assert created == ["a", "b"]
