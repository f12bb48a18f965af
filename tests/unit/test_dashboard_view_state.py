"""Tests for the dashboard view state and its submit state machine."""

from __future__ import annotations

import json

import pytest

from backend.app.domain.dashboard import (
    DashboardViewState,
    InvalidTransitionError,
    SettingsStore,
    SubmitEvent,
    SubmitStatus,
    next_status,
)
from backend.app.domain.dashboard import view_state as view_state_module
from backend.app.domain.entries import EntryService
from backend.app.domain.entrystore import InMemoryEntryStoreGateway
from backend.app.domain.errors import EntryValidationError, StorageError
from backend.app.infra.llm_gateway import InsightError
from backend.app.infra.metrics import InMemoryMetricsClient
from tests.helpers.insights import FakeInsightProvider, quota_error
from tests.helpers.logging import RecordingLogger, find_log

pytestmark = [pytest.mark.dashboard]


class _BrokenDeleteService(EntryService):
    def remove(self, entry_id: int) -> None:
        raise StorageError("read-only", code="storage_delete_failed")


class _BrokenInsertService(EntryService):
    def submit(self, *args, **kwargs):
        raise StorageError("disk full")


class _FlakySubmitService(EntryService):
    """Fails the first submit with an error the view state does not expect."""

    crashed = False

    def submit(self, *args, **kwargs):
        if not self.crashed:
            self.crashed = True
            raise UnicodeEncodeError("ascii", "caf\u00e9", 3, 4, "ordinal not in range(128)")
        return super().submit(*args, **kwargs)


class _UnlistableService(EntryService):
    list_error: Exception = StorageError("db down", code="storage_read_failed")

    def list_all(self, *, user_id=None):
        raise self.list_error


def _view(tmp_path, *, provider=None, service_cls=EntryService, shared_api_key="shared-key"):
    provider = provider or FakeInsightProvider()
    service = service_cls(
        gateway=InMemoryEntryStoreGateway(),
        provider=provider,
        metrics=InMemoryMetricsClient(),
    )
    view = DashboardViewState(
        source=service,
        provider=provider,
        settings_store=SettingsStore(tmp_path / "settings.json"),
        shared_api_key=shared_api_key,
    )
    return view, service, provider


def test_transition_table_covers_submit_lifecycle():
    status = SubmitStatus.IDLE
    for event, expected in (
        (SubmitEvent.STARTED, SubmitStatus.SUBMITTING),
        (SubmitEvent.FAILED, SubmitStatus.FAILURE),
        (SubmitEvent.STARTED, SubmitStatus.SUBMITTING),
        (SubmitEvent.SUCCEEDED, SubmitStatus.SUCCESS),
        (SubmitEvent.RESET, SubmitStatus.IDLE),
    ):
        status = next_status(status, event)
        assert status is expected


@pytest.mark.parametrize(
    "status, event",
    [
        (SubmitStatus.SUBMITTING, SubmitEvent.STARTED),
        (SubmitStatus.SUBMITTING, SubmitEvent.RESET),
        (SubmitStatus.IDLE, SubmitEvent.SUCCEEDED),
        (SubmitStatus.SUCCESS, SubmitEvent.FAILED),
    ],
)
def test_invalid_transitions_are_rejected(status, event):
    with pytest.raises(InvalidTransitionError):
        next_status(status, event)


def test_initial_state_uses_defaults(tmp_path):
    view, _, _ = _view(tmp_path)

    assert view.status is SubmitStatus.IDLE
    assert view.entries == []
    assert view.locale == "fr"
    assert view.credential_mode == "shared"
    assert view.credential_label == "Quota partagé"
    assert view.daily_focus == "Définition de votre intention..."


def test_submit_success_refetches_and_recomputes_focus(tmp_path):
    view, service, provider = _view(tmp_path)

    entry = view.submit("Finish report")

    assert view.status is SubmitStatus.SUCCESS
    assert view.alert is None
    assert [item.id for item in view.entries] == [entry.id]
    assert view.entries == service.list_all()
    assert view.daily_focus == "Ship the report."
    assert provider.focus_calls[-1]["recent_contents"] == ["Finish report"]
    view.acknowledge()
    assert view.status is SubmitStatus.IDLE


def test_blank_submit_is_a_noop(tmp_path):
    view, _, provider = _view(tmp_path)

    assert view.submit("   ") is None
    assert view.status is SubmitStatus.IDLE
    assert provider.classify_calls == []


def test_submit_failure_shows_process_error_and_keeps_entries(tmp_path):
    view, service, provider = _view(tmp_path)
    view.submit("kept")
    view.acknowledge()
    provider.error = quota_error()

    assert view.submit("lost") is None

    assert view.status is SubmitStatus.FAILURE
    assert view.alert == "Échec du traitement de la pensée. Veuillez réessayer."
    assert [item.content for item in service.list_all()] == ["kept"]
    assert [item.content for item in view.entries] == ["kept"]


def test_submit_storage_failure_shows_storage_error(tmp_path):
    view, _, _ = _view(tmp_path, service_cls=_BrokenInsertService)

    assert view.submit("nowhere to go") is None

    assert view.status is SubmitStatus.FAILURE
    assert view.alert == "Impossible d'enregistrer la pensée."
    assert view.entries == []


def test_unexpected_submit_error_does_not_leave_state_submitting(tmp_path, monkeypatch):
    view, _, _ = _view(tmp_path, service_cls=_FlakySubmitService)
    recorder = RecordingLogger()
    monkeypatch.setattr(view_state_module, "logger", recorder)

    assert view.submit("café") is None
    assert view.status is SubmitStatus.FAILURE
    assert view.alert == "Échec du traitement de la pensée. Veuillez réessayer."
    assert find_log(recorder, level="exception", event="dashboard_submit_crashed").exc_info

    view.acknowledge()
    entry = view.submit("retry")

    assert view.status is SubmitStatus.SUCCESS
    assert [item.id for item in view.entries] == [entry.id]


def test_refresh_storage_failure_sets_alert_and_keeps_cache(tmp_path):
    view, _, provider = _view(tmp_path, service_cls=_UnlistableService)

    assert view.refresh() == []

    assert view.alert == "Impossible d'enregistrer la pensée."
    assert provider.focus_calls == []


def test_refresh_rejected_request_sets_alert(tmp_path):
    view, service, _ = _view(tmp_path, service_cls=_UnlistableService)
    service.list_error = EntryValidationError("userId is required", code="user_id_required")

    view.set_locale("en")

    assert view.refresh() == []
    assert view.alert == "Could not save the thought."


def test_submit_while_submitting_is_rejected(tmp_path):
    view, _, provider = _view(tmp_path)
    attempts = []

    def reentrant_classify(text, *, credentials, locale):
        attempts.append(text)
        with pytest.raises(InvalidTransitionError):
            view.submit("second click")
        return provider.insight

    provider.classify = reentrant_classify

    view.submit("first click")

    assert attempts == ["first click"]
    assert view.status is SubmitStatus.SUCCESS
    assert [item.content for item in view.entries] == ["first click"]


def test_focus_uses_five_most_recent_entries(tmp_path):
    view, _, provider = _view(tmp_path)
    for index in range(7):
        view.submit(f"thought {index}")

    assert provider.focus_calls[-1]["recent_contents"] == [
        "thought 6",
        "thought 5",
        "thought 4",
        "thought 3",
        "thought 2",
    ]


def test_focus_failure_shows_quota_message(tmp_path):
    view, _, provider = _view(tmp_path)
    view.submit("something")
    provider.focus_error = InsightError("quota", code="insight_quota_exceeded", retryable=True)

    view.set_locale("en")

    assert view.daily_focus == "AI quota reached. Use your own API key."


def test_delete_refetches_entries(tmp_path):
    view, _, _ = _view(tmp_path)
    first = view.submit("first")
    second = view.submit("second")

    assert view.delete(second.id) is True

    assert [item.id for item in view.entries] == [first.id]


def test_delete_failure_sets_alert(tmp_path):
    view, _, _ = _view(tmp_path, service_cls=_BrokenDeleteService)
    entry = view.submit("stuck")

    assert view.delete(entry.id) is False
    assert view.alert == "Impossible d'enregistrer la pensée."
    assert [item.id for item in view.entries] == [entry.id]


def test_set_locale_persists_and_relocalizes(tmp_path):
    view, _, _ = _view(tmp_path)

    view.set_locale("en")

    assert view.locale == "en"
    assert view.daily_focus == "Defining your intention..."
    stored = json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))
    assert stored == {"lumina_lang": "en"}
    assert view.toggle_locale() == "fr"
    with pytest.raises(ValueError):
        view.set_locale("de")


def test_set_api_key_only_saves_validated_keys(tmp_path):
    view, _, provider = _view(tmp_path)

    assert view.set_api_key("bad-key") is False
    assert view.credential_mode == "shared"
    assert view.alert == "Clé API invalide."

    assert view.set_api_key("  good-key ") is True
    assert provider.validated == ["bad-key", "good-key"]
    assert view.credential_mode == "personal"
    assert view.personal_api_key == "good-key"
    assert view.credential_label == "Clé personnelle"

    reloaded, _, _ = _view(tmp_path)
    assert reloaded.credential_mode == "personal"
    assert reloaded.credentials().api_key == "good-key"


def test_personal_key_is_used_for_submits(tmp_path):
    view, _, provider = _view(tmp_path)
    view.set_api_key("good-key")

    view.submit("with my key")

    assert provider.classify_calls[-1]["credentials"].api_key == "good-key"
    assert provider.classify_calls[-1]["credentials"].source == "personal"


def test_clear_api_key_reverts_to_shared(tmp_path):
    view, _, provider = _view(tmp_path)
    view.set_api_key("good-key")

    view.clear_api_key()

    assert view.credential_mode == "shared"
    assert view.credentials().api_key == "shared-key"
    view.submit("back to shared")
    assert provider.classify_calls[-1]["credentials"].source == "shared"


def test_blank_api_key_is_not_sent_for_validation(tmp_path):
    view, _, provider = _view(tmp_path)

    assert view.set_api_key("   ") is False
    assert provider.validated == []
