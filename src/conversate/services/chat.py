"""Chat turn orchestration.

Every operation for one user runs under that user's asyncio.Lock, so
"supersede then start" and "append then count" never interleave with
another request for the same user, and reads never see a half-finished
turn. Different users do not contend.
"""

import asyncio
import weakref
from dataclasses import dataclass

import structlog

from conversate.conversation.responder import (
    ConversationContext,
    PersonaReply,
    PersonaResponder,
)
from conversate.models.profile import (
    PreferencesUpdate,
    ProficiencyLevel,
    UserProfile,
    UserProgress,
)
from conversate.models.session import ConversationSession, LanguageContext, MessageRole
from conversate.services.analytics import user_analytics
from conversate.services.profiles import ProfileService
from conversate.services.sessions import SessionRegistry

logger = structlog.get_logger()


def progress_payload(progress: UserProgress) -> dict:
    return {
        "totalConversations": progress.total_conversations,
        "totalWords": progress.total_words,
        "streakDays": progress.streak_days,
        "lastActiveAt": progress.last_active_at.isoformat(),
    }


@dataclass
class ChatTurn:
    """Result of one user message and the persona's reply."""

    session: ConversationSession
    reply: PersonaReply
    profile: UserProfile

    def to_payload(self) -> dict:
        metadata = self.reply.metadata
        return {
            "message": self.reply.text,
            "metadata": {
                "corrections": metadata.corrections,
                "vocabulary": metadata.vocabulary,
                "culturalNotes": metadata.cultural_notes,
                "suggestedTopics": metadata.suggested_topics,
            },
            "conversation": {
                "id": self.session.session_id,
                "messageCount": len(self.session.messages),
            },
            "learningProgress": self.session.learning_progress.to_payload(),
            "userProgress": progress_payload(self.profile.progress),
        }


class ChatService:
    """Entry point used by the HTTP layer.

    Args:
        profiles: Profile service.
        registry: Session registry.
        responder: Persona responder.
    """

    def __init__(
        self,
        profiles: ProfileService,
        registry: SessionRegistry,
        responder: PersonaResponder,
    ):
        self.profiles = profiles
        self.registry = registry
        self.responder = responder
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def send_message(
        self,
        user_id: str,
        message: str,
        persona_id: str,
        email: str = "",
        name: str = "",
        target_language: str | None = None,
        proficiency_level: ProficiencyLevel | None = None,
    ) -> ChatTurn:
        """Run one chat turn.

        The active session is resumed when it uses the same persona,
        otherwise a new one supersedes it. The reply is generated before
        anything is appended, so a failed generation leaves the log and
        counters as they were.

        Raises:
            UnknownPersonaError: persona_id has no definition.
            CompletionError: the completion provider failed.
        """
        # Validate before touching the user's active session.
        self.responder.catalog.get(persona_id)

        lock = self._lock_for(user_id)
        async with lock:
            profile = self.profiles.get_or_create(user_id, email=email, name=name)
            session = self.registry.get_active(user_id)
            if session is None or session.persona_id != persona_id:
                prefs = profile.preferences
                session = self.registry.start(
                    user_id,
                    persona_id,
                    LanguageContext(
                        target_language=target_language or prefs.target_language,
                        native_language=prefs.native_language,
                        proficiency_level=proficiency_level or prefs.proficiency_level,
                        learning_goals=list(prefs.learning_goals),
                    ),
                )

            reply = await self.responder.respond(
                persona_id,
                message,
                ConversationContext(language=session.context, history=session.messages),
            )

            self.registry.append_message(session.session_id, MessageRole.USER, message)
            session = self.registry.append_message(
                session.session_id, MessageRole.ASSISTANT, reply.text, reply.metadata
            )
            profile = self.profiles.record_user_utterance(user_id, message) or profile

        logger.info(
            "chat_turn_completed",
            user_id=user_id,
            session_id=session.session_id,
            persona_id=persona_id,
        )
        return ChatTurn(session=session, reply=reply, profile=profile)

    async def get_session(self, user_id: str, session_id: str) -> ConversationSession | None:
        async with self._lock_for(user_id):
            session = self.registry.get(session_id)
        if session is None or session.user_id != user_id:
            return None
        return session

    async def history(
        self,
        user_id: str,
        limit: int = 10,
        offset: int = 0,
        persona_id: str | None = None,
        include_archived: bool = True,
    ) -> list[ConversationSession]:
        async with self._lock_for(user_id):
            return self.registry.history(
                user_id,
                limit=limit,
                offset=offset,
                persona_id=persona_id,
                include_archived=include_archived,
            )

    async def end_session(self, user_id: str, session_id: str) -> ConversationSession | None:
        async with self._lock_for(user_id):
            session = self.registry.get(session_id)
            if session is None or session.user_id != user_id:
                return None
            return self.registry.end(session_id)

    async def archive_session(self, user_id: str, session_id: str) -> ConversationSession | None:
        async with self._lock_for(user_id):
            return self.registry.archive(session_id, user_id)

    async def get_profile(self, user_id: str, email: str = "", name: str = "") -> UserProfile:
        async with self._lock_for(user_id):
            return self.profiles.get_or_create(user_id, email=email, name=name)

    async def update_preferences(
        self, user_id: str, update: PreferencesUpdate
    ) -> UserProfile | None:
        if update.default_persona is not None:
            self.responder.catalog.get(update.default_persona)
        async with self._lock_for(user_id):
            return self.profiles.update_preferences(user_id, update)

    async def analytics(self, user_id: str) -> dict:
        async with self._lock_for(user_id):
            profile = self.profiles.get(user_id)
            sessions = self.registry.store.list_for_user(user_id)
        return user_analytics(profile, sessions)
