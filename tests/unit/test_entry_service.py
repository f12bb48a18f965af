"""Tests for the entry service submit/list/remove/focus flows."""

from __future__ import annotations

import pytest

from backend.app.domain.entries import EntryService, service as service_module
from backend.app.domain.entrystore import InMemoryEntryStoreGateway
from backend.app.domain.errors import EntryValidationError
from backend.app.infra.llm_gateway import Credentials, InsightError
from backend.app.infra.metrics import InMemoryMetricsClient
from tests.helpers.insights import FakeInsightProvider, quota_error
from tests.helpers.logging import RecordingLogger, assert_extra_contains, find_log

pytestmark = [pytest.mark.entries]

SHARED = Credentials(api_key="shared-key", source="shared")


def _service(provider: FakeInsightProvider | None = None, **kwargs):
    gateway = InMemoryEntryStoreGateway()
    provider = provider or FakeInsightProvider()
    metrics = InMemoryMetricsClient()
    service = EntryService(
        gateway=gateway, provider=provider, metrics=metrics, **kwargs
    )
    return service, gateway, provider, metrics


def test_submit_stores_provider_insight_verbatim():
    service, _, provider, metrics = _service()

    entry = service.submit("Finish report", credentials=SHARED, locale="en")

    assert service.list_all()[0].metadata == {
        "category": "work",
        "priority": "high",
        "summary": "Finish report",
        "nextSteps": ["Draft outline", "Send to team"],
    }
    assert service.list_all()[0].id == entry.id
    assert provider.classify_calls == [
        {"text": "Finish report", "credentials": SHARED, "locale": "en"}
    ]
    assert metrics.counters["entry_submit_success_total"] == 1
    assert metrics.gauges["entry_list_size"] == 1


def test_submit_adds_exactly_one_entry_with_fresh_id():
    service, _, _, _ = _service()
    existing = service.submit("first", credentials=SHARED, locale="fr")

    created = service.submit("  second  ", credentials=SHARED, locale="fr")
    listed = service.list_all()

    assert len(listed) == 2
    assert created.content == "second"
    assert created.type == "thought"
    assert created.id != existing.id
    assert [entry.content for entry in listed if entry.id == created.id] == ["second"]


def test_two_submits_get_sequential_ids_listed_newest_first():
    service, _, _, _ = _service()

    first = service.submit("one", credentials=SHARED, locale="en")
    second = service.submit("two", "idea", credentials=SHARED, locale="en")

    assert second.id == first.id + 1
    assert second.type == "idea"
    assert [entry.id for entry in service.list_all()] == [second.id, first.id]


@pytest.mark.parametrize("content", ["", "   ", "\n\t"])
def test_blank_content_is_rejected_before_any_side_effect(content):
    service, _, provider, _ = _service()

    with pytest.raises(EntryValidationError) as excinfo:
        service.submit(content, credentials=SHARED, locale="en")

    assert excinfo.value.code == "entry_content_empty"
    assert provider.classify_calls == []
    assert service.list_all() == []


def test_provider_failure_leaves_store_unchanged(monkeypatch):
    provider = FakeInsightProvider()
    provider.error = quota_error()
    service, _, _, metrics = _service(provider)
    recorder = RecordingLogger()
    monkeypatch.setattr(service_module, "logger", recorder)

    with pytest.raises(InsightError) as excinfo:
        service.submit("Finish report", credentials=SHARED, locale="en")

    assert excinfo.value.code == "insight_quota_exceeded"
    assert service.list_all() == []
    assert metrics.counters["entry_submit_insight_failed_total"] == 1
    record = find_log(recorder, level="warning", event="entry_submit_insight_failed")
    assert_extra_contains(record, code="insight_quota_exceeded", credential_source="shared")


def test_remove_deletes_and_is_idempotent():
    service, _, _, _ = _service()
    entry = service.submit("temporary", credentials=SHARED, locale="en")

    service.remove(entry.id)
    service.remove(entry.id)

    assert all(item.id != entry.id for item in service.list_all())


def test_create_stores_caller_metadata_without_classifying():
    service, _, provider, _ = _service()

    entry = service.create(
        content="Already classified",
        metadata={"category": "health"},
        user_id="ada",
    )

    assert provider.classify_calls == []
    assert service.list_all(user_id="ada")[0].id == entry.id
    assert entry.metadata == {"category": "health"}


def test_daily_focus_uses_most_recent_entries_in_order():
    service, _, provider, _ = _service(focus_recent_limit=2)
    for text in ("oldest", "middle", "newest"):
        service.submit(text, credentials=SHARED, locale="en")

    focus = service.daily_focus(credentials=SHARED, locale="en")

    assert focus == "Ship the report."
    assert provider.focus_calls[-1]["recent_contents"] == ["newest", "middle"]


def test_daily_focus_limit_argument_overrides_default():
    service, _, provider, _ = _service()
    for text in ("a", "b", "c"):
        service.submit(text, credentials=SHARED, locale="en")

    service.daily_focus(credentials=SHARED, locale="en", limit=1)

    assert provider.focus_calls[-1]["recent_contents"] == ["c"]


@pytest.mark.parametrize(
    "locale, expected",
    [("fr", "Définition de votre intention..."), ("en", "Defining your intention...")],
)
def test_daily_focus_without_entries_returns_placeholder(locale, expected):
    service, _, provider, _ = _service()

    assert service.daily_focus(credentials=SHARED, locale=locale) == expected
    assert provider.focus_calls == []
