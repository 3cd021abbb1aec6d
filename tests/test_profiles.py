"""Tests for the profile service."""

from datetime import datetime, timedelta

import pytest

from conversate.config import Settings
from conversate.models.profile import PreferencesUpdate, ProficiencyLevel
from conversate.services.profiles import ProfileService, _next_streak
from conversate.storage.memory import InMemoryProfileStore


class TestGetOrCreate:
    def test_creates_with_defaults(self, profiles):
        profile = profiles.get_or_create("u1", "u1@example.com", "Ana")
        assert profile.user_id == "u1"
        assert profile.preferences.target_language == "Spanish"
        assert profile.preferences.native_language == "English"
        assert profile.preferences.proficiency_level == ProficiencyLevel.BEGINNER
        assert profile.preferences.default_persona == "maya"
        assert profile.preferences.learning_goals == ["General conversation practice"]
        assert profiles.get("u1") is not None

    def test_idempotent(self, profiles):
        first = profiles.get_or_create("u1", "u1@example.com", "Ana")
        second = profiles.get_or_create("u1", "u1@example.com", "Ana")
        assert second.user_id == first.user_id
        assert second.preferences == first.preferences
        assert second.created_at == first.created_at

    def test_refreshes_display_fields_only(self, profiles):
        profiles.get_or_create("u1", "old@example.com", "Ana")
        profiles.update_preferences("u1", PreferencesUpdate(target_language="French"))
        profile = profiles.get_or_create("u1", "new@example.com", "")
        assert profile.email == "new@example.com"
        assert profile.name == "Ana"
        assert profile.preferences.target_language == "French"

    def test_default_proficiency_is_configurable(self, tmp_path):
        settings = Settings(
            storage_backend="memory",
            data_dir=tmp_path,
            default_proficiency_level="intermediate",
        )
        service = ProfileService(InMemoryProfileStore(), settings)
        profile = service.get_or_create("u1")
        assert profile.preferences.proficiency_level == ProficiencyLevel.INTERMEDIATE


class TestUpdatePreferences:
    def test_shallow_merge(self, profiles):
        profiles.get_or_create("u1")
        profile = profiles.update_preferences(
            "u1",
            PreferencesUpdate(
                proficiency_level=ProficiencyLevel.ADVANCED,
                learning_goals=["Travel"],
            ),
        )
        assert profile.preferences.proficiency_level == ProficiencyLevel.ADVANCED
        assert profile.preferences.learning_goals == ["Travel"]
        assert profile.preferences.target_language == "Spanish"
        assert profiles.get("u1").preferences.learning_goals == ["Travel"]

    def test_unknown_user_returns_none(self, profiles):
        assert profiles.update_preferences("ghost", PreferencesUpdate(target_language="German")) is None
        assert profiles.get("ghost") is None


class TestRecordUserUtterance:
    def test_word_count_accumulates(self, profiles):
        profiles.get_or_create("u1")
        messages = ["Hello, how are you?", "I am fine", "Muy bien gracias amigo mio"]
        for text in messages:
            profiles.record_user_utterance("u1", text)
        expected = sum(len(m.split()) for m in messages)
        assert profiles.get("u1").progress.total_words == expected

    def test_updates_last_active(self, profiles):
        created = profiles.get_or_create("u1")
        profile = profiles.record_user_utterance("u1", "hola")
        assert profile.progress.last_active_at >= created.progress.last_active_at
        assert profile.progress.streak_days == 1

    def test_unknown_user_is_noop(self, profiles):
        assert profiles.record_user_utterance("ghost", "hola") is None
        assert profiles.get("ghost") is None


class TestIncrementConversations:
    def test_increments(self, profiles):
        profiles.get_or_create("u1")
        profiles.increment_conversations("u1")
        assert profiles.get("u1").progress.total_conversations == 1

    def test_unknown_user_returns_none(self, profiles):
        assert profiles.increment_conversations("ghost") is None


@pytest.mark.parametrize(
    ("streak", "days_ago", "expected"),
    [
        (0, 0, 1),
        (3, 0, 3),
        (3, 1, 4),
        (3, 2, 1),
        (5, 30, 1),
    ],
)
def test_next_streak(streak, days_ago, expected):
    now = datetime(2026, 3, 10, 9, 0)
    assert _next_streak(streak, now - timedelta(days=days_ago), now) == expected
