"""Tests for chat turn orchestration."""

import asyncio

import pytest

from conversate.conversation.providers import CompletionProvider, CompletionRequest
from conversate.conversation.responder import PersonaResponder
from conversate.errors import CompletionError, UnknownPersonaError
from conversate.models.profile import PreferencesUpdate, ProficiencyLevel
from conversate.models.session import MessageRole, SessionStatus
from conversate.services.chat import ChatService


class SlowProvider(CompletionProvider):
    """Yields to the event loop so concurrent turns would interleave without a lock."""

    async def complete(self, request: CompletionRequest) -> str:
        await asyncio.sleep(0.01)
        return f"echo: {request.utterance}"


class FailingProvider(CompletionProvider):
    async def complete(self, request: CompletionRequest) -> str:
        raise CompletionError("upstream 502")


@pytest.fixture
def slow_chat(profiles, registry, catalog):
    return ChatService(profiles, registry, PersonaResponder(catalog, provider=SlowProvider()))


class TestSendMessage:
    async def test_first_message_scenario(self, chat, profiles, registry):
        turn = await chat.send_message("u1", "Hello, how are you?", "maya")

        assert "I'm Maya, your patient teacher" in turn.reply.text
        assert registry.get_active("u1").session_id == turn.session.session_id
        assert len(turn.session.messages) == 2
        assert turn.session.messages[0].role == MessageRole.USER
        assert turn.session.messages[1].role == MessageRole.ASSISTANT
        assert turn.session.messages[1].metadata is not None

        profile = profiles.get("u1")
        assert profile.progress.total_conversations == 0
        assert profile.progress.total_words == 4

    async def test_resumes_active_session(self, chat):
        first = await chat.send_message("u1", "uno", "maya")
        second = await chat.send_message("u1", "dos", "maya")
        assert first.session.session_id == second.session.session_id
        assert len(second.session.messages) == 4

    async def test_new_persona_supersedes(self, chat, registry):
        first = await chat.send_message("u1", "hola", "maya")
        second = await chat.send_message("u1", "hey", "alex")
        assert first.session.session_id != second.session.session_id
        assert registry.get(first.session.session_id).status == SessionStatus.ENDED
        assert registry.get_active("u1").persona_id == "alex"

    async def test_session_uses_request_and_profile_language(self, chat, profiles):
        profiles.get_or_create("u1")
        profiles.update_preferences("u1", PreferencesUpdate(native_language="Japanese"))
        turn = await chat.send_message(
            "u1",
            "bonjour",
            "marie",
            target_language="French",
            proficiency_level=ProficiencyLevel.ADVANCED,
        )
        context = turn.session.context
        assert context.target_language == "French"
        assert context.native_language == "Japanese"
        assert context.proficiency_level == ProficiencyLevel.ADVANCED

    async def test_word_count_over_many_messages(self, chat, profiles):
        messages = ["Hello there", "I went to the market", "It was fun"]
        for text in messages:
            await chat.send_message("u1", text, "luna")
        assert profiles.get("u1").progress.total_words == sum(len(m.split()) for m in messages)

    async def test_unknown_persona_leaves_active_session(self, chat, registry):
        turn = await chat.send_message("u1", "hola", "maya")
        with pytest.raises(UnknownPersonaError):
            await chat.send_message("u1", "hola", "zorro")
        active = registry.get_active("u1")
        assert active.session_id == turn.session.session_id
        assert len(active.messages) == 2

    async def test_generation_failure_appends_nothing(self, profiles, registry, catalog):
        chat = ChatService(profiles, registry, PersonaResponder(catalog, provider=FailingProvider()))
        with pytest.raises(CompletionError):
            await chat.send_message("u1", "hola amigo", "maya")
        active = registry.get_active("u1")
        assert active.messages == []
        assert profiles.get("u1").progress.total_words == 0

    async def test_payload_shape(self, chat):
        turn = await chat.send_message("u1", "Hello, how are you?", "maya")
        payload = turn.to_payload()
        assert payload["message"] == turn.reply.text
        assert set(payload["metadata"]) == {
            "corrections", "vocabulary", "culturalNotes", "suggestedTopics"
        }
        assert payload["conversation"] == {"id": turn.session.session_id, "messageCount": 2}
        assert payload["userProgress"]["totalWords"] == 4
        assert payload["userProgress"]["totalConversations"] == 0


class TestConcurrency:
    async def test_same_user_turns_are_serialized(self, slow_chat, profiles, session_store):
        texts = [f"message number {i}" for i in range(10)]
        turns = await asyncio.gather(
            *(slow_chat.send_message("u1", text, "maya") for text in texts)
        )

        active = [s for s in session_store.list_for_user("u1") if s.is_active]
        assert len(active) == 1
        assert {t.session.session_id for t in turns} == {active[0].session_id}
        assert len(active[0].messages) == 20
        assert profiles.get("u1").progress.total_words == 30

    async def test_racing_personas_leave_one_active(self, slow_chat, session_store):
        await asyncio.gather(
            *(slow_chat.send_message("u1", "hola", p) for p in ["maya", "alex", "luna", "raj"])
        )
        active = [s for s in session_store.list_for_user("u1") if s.is_active]
        assert len(active) == 1

    async def test_users_do_not_block_each_other(self, slow_chat, session_store):
        await asyncio.gather(
            *(slow_chat.send_message(f"user-{i}", "hola", "maya") for i in range(5))
        )
        for i in range(5):
            assert len(session_store.list_for_user(f"user-{i}")) == 1


class TestSessionActions:
    async def test_end_session_counts_once(self, chat, profiles):
        turn = await chat.send_message("u1", "hola", "maya")
        await chat.end_session("u1", turn.session.session_id)
        await chat.end_session("u1", turn.session.session_id)
        assert profiles.get("u1").progress.total_conversations == 1

    async def test_end_session_of_other_user(self, chat, profiles):
        turn = await chat.send_message("u1", "hola", "maya")
        assert await chat.end_session("u2", turn.session.session_id) is None
        assert profiles.get("u1").progress.total_conversations == 0

    async def test_get_session_requires_owner(self, chat):
        turn = await chat.send_message("u1", "hola", "maya")
        assert await chat.get_session("u1", turn.session.session_id) is not None
        assert await chat.get_session("u2", turn.session.session_id) is None

    async def test_archive_and_history(self, chat):
        turn = await chat.send_message("u1", "hola", "maya")
        archived = await chat.archive_session("u1", turn.session.session_id)
        assert archived.archived
        assert await chat.history("u1", include_archived=False) == []

    async def test_update_preferences_rejects_unknown_persona(self, chat):
        await chat.get_profile("u1")
        with pytest.raises(UnknownPersonaError):
            await chat.update_preferences("u1", PreferencesUpdate(default_persona="zorro"))

    async def test_analytics(self, chat):
        await chat.send_message("u1", "one two three", "maya")
        data = await chat.analytics("u1")
        assert data["weeklyStats"]["messagesThisWeek"] == 2
        assert data["weeklyStats"]["wordsThisWeek"] == 3
        assert data["favoritePersona"] == "maya"


class TestLearningSummary:
    async def test_payload_carries_session_learning_progress(self, chat, catalog):
        await chat.send_message("u1", "hola", "maya")
        turn = await chat.send_message("u1", "adiós", "maya")

        maya = catalog.get("maya")
        progress = turn.to_payload()["learningProgress"]
        assert progress["vocabularyLearned"] == list(dict.fromkeys(maya.vocabulary))
        assert progress["mistakesCorrected"] == 2 * len(maya.corrections)

    async def test_ended_session_keeps_summary(self, chat, catalog):
        turn = await chat.send_message("u1", "hola amigo", "maya")
        ended = await chat.end_session("u1", turn.session.session_id)
        summary = ended.conversation_summary()
        assert summary["totalMessages"] == 2
        assert summary["wordsSpoken"] == 2
        assert summary["vocabularyGained"] == list(dict.fromkeys(catalog.get("maya").vocabulary))


class TestReadsWaitForTurns:
    async def test_history_waits_for_in_flight_turn(self, slow_chat):
        turn_task = asyncio.create_task(slow_chat.send_message("u1", "hola", "maya"))
        await asyncio.sleep(0)

        sessions = await slow_chat.history("u1")
        await turn_task

        assert len(sessions) == 1
        assert len(sessions[0].messages) == 2

    async def test_analytics_waits_for_in_flight_turn(self, slow_chat):
        turn_task = asyncio.create_task(slow_chat.send_message("u1", "uno dos", "maya"))
        await asyncio.sleep(0)

        data = await slow_chat.analytics("u1")
        await turn_task

        assert data["weeklyStats"]["wordsThisWeek"] == 2
