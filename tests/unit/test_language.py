"""Test the persisted language store."""
import json
from unittest.mock import Mock

import pytest

from clinic_booking.language import LanguageChanged, LanguageStore


class TestLanguageStore:

    def test_default_when_nothing_persisted(self, tmp_path):
        assert LanguageStore(tmp_path / "lang.json").current == "ru"

    def test_set_persists(self, tmp_path):
        path = tmp_path / "nested" / "lang.json"
        store = LanguageStore(path)

        assert store.set("ky") is True

        assert json.loads(path.read_text(encoding="utf-8")) == {"lang": "ky"}
        assert LanguageStore(path).current == "ky"

    def test_unreadable_file_falls_back_to_default(self, tmp_path):
        path = tmp_path / "lang.json"
        path.write_text("{not json", encoding="utf-8")

        assert LanguageStore(path).current == "ru"

    def test_unsupported_persisted_value_ignored(self, tmp_path):
        path = tmp_path / "lang.json"
        path.write_text('{"lang": "de"}', encoding="utf-8")

        assert LanguageStore(path).current == "ru"

    def test_unsupported_language_rejected(self, language_store):
        with pytest.raises(ValueError):
            language_store.set("de")

        assert language_store.current == "ru"

    def test_unsupported_default_rejected(self):
        with pytest.raises(ValueError):
            LanguageStore(default="en")

    def test_in_memory_store(self):
        store = LanguageStore()

        store.set("ky")

        assert store.current == "ky"
        assert store.path is None


class TestLanguageSubscriptions:
    """Listeners hear about real changes only."""

    def test_listener_notified_on_change(self, language_store):
        listener = Mock()
        language_store.subscribe(listener)

        language_store.set("ky")

        listener.assert_called_once_with(LanguageChanged(previous="ru", current="ky"))

    def test_same_language_does_not_notify(self, language_store):
        listener = Mock()
        language_store.subscribe(listener)

        assert language_store.set("ru") is False

        listener.assert_not_called()

    def test_closed_subscription_stops_notifications(self, language_store):
        listener = Mock()
        subscription = language_store.subscribe(listener)

        subscription.close()
        subscription.close()  # idempotent
        language_store.set("ky")

        listener.assert_not_called()
        assert language_store.listener_count == 0

    def test_subscription_as_context_manager(self, language_store):
        listener = Mock()

        with language_store.subscribe(listener):
            language_store.set("ky")
        language_store.set("ru")

        assert listener.call_count == 1

    def test_listener_may_unsubscribe_while_notified(self, language_store):
        calls = []
        subscription = None

        def listener(event):
            calls.append(event.current)
            subscription.close()

        subscription = language_store.subscribe(listener)
        other = Mock()
        language_store.subscribe(other)

        language_store.set("ky")
        language_store.set("ru")

        assert calls == ["ky"]
        assert other.call_count == 2
