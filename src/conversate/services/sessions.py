"""Conversation session registry.

Keeps at most one active session per user. The per-user active index is
updated on every start/end transition, so lookups never scan all sessions.
Callers that can race on the same user must serialize through
``ChatService`` (or their own per-user lock).
"""

from datetime import datetime

import structlog

from conversate.models.session import (
    ConversationSession,
    LanguageContext,
    Message,
    MessageMetadata,
    MessageRole,
    SessionStatus,
)
from conversate.services.profiles import ProfileService
from conversate.storage.base import SessionStore

logger = structlog.get_logger()


class SessionRegistry:
    """Active and past conversation sessions.

    Args:
        store: Session repository.
        profiles: Profile service, used to count finished conversations.
    """

    def __init__(self, store: SessionStore, profiles: ProfileService):
        self.store = store
        self.profiles = profiles

    def get(self, session_id: str) -> ConversationSession | None:
        return self.store.get(session_id)

    def get_active(self, user_id: str) -> ConversationSession | None:
        session_id = self.store.get_active_id(user_id)
        if session_id is None:
            return None
        session = self.store.get(session_id)
        if session is None or not session.is_active:
            logger.warning("active_index_stale", user_id=user_id, session_id=session_id)
            self.store.set_active_id(user_id, None)
            return None
        return session

    def start(
        self,
        user_id: str,
        persona_id: str,
        context: LanguageContext | None = None,
    ) -> ConversationSession:
        """Start a new session, superseding any active one for the user.

        The superseded session is ended without counting it as a finished
        conversation.
        """
        previous = self.get_active(user_id)
        if previous is not None:
            previous.status = SessionStatus.ENDED
            previous.ended_at = datetime.now()
            self.store.save(previous)
            logger.info(
                "session_superseded", user_id=user_id, session_id=previous.session_id
            )

        session = ConversationSession(
            user_id=user_id,
            persona_id=persona_id,
            context=context or LanguageContext(),
        )
        self.store.save(session)
        self.store.set_active_id(user_id, session.session_id)
        logger.info(
            "session_started",
            user_id=user_id,
            session_id=session.session_id,
            persona_id=persona_id,
        )
        return session

    def append_message(
        self,
        session_id: str,
        role: MessageRole,
        content: str,
        metadata: MessageMetadata | None = None,
    ) -> ConversationSession | None:
        """Append to an active session. Returns None for unknown or ended sessions."""
        session = self.store.get(session_id)
        if session is None or not session.is_active:
            logger.warning("append_rejected", session_id=session_id)
            return None

        message = Message(role=role, content=content, metadata=metadata)
        session.messages.append(message)
        if role == MessageRole.ASSISTANT and metadata is not None:
            session.learning_progress.absorb(metadata)
        session.last_message_at = message.timestamp
        self.store.save(session)
        return session

    def history(
        self,
        user_id: str,
        limit: int = 10,
        offset: int = 0,
        persona_id: str | None = None,
        include_archived: bool = True,
    ) -> list[ConversationSession]:
        """User's sessions, most recently active first."""
        sessions = [
            s
            for s in self.store.list_for_user(user_id)
            if (persona_id is None or s.persona_id == persona_id)
            and (include_archived or not s.archived)
        ]
        sessions.sort(key=lambda s: s.last_message_at, reverse=True)
        return sessions[offset:offset + limit]

    def end(self, session_id: str) -> ConversationSession | None:
        """End a session and count it on the owner's profile exactly once."""
        session = self.store.get(session_id)
        if session is None:
            return None
        if not session.is_active:
            return session

        session.status = SessionStatus.ENDED
        session.ended_at = datetime.now()
        self.store.save(session)
        if self.store.get_active_id(session.user_id) == session_id:
            self.store.set_active_id(session.user_id, None)
        self.profiles.increment_conversations(session.user_id)
        logger.info(
            "session_ended",
            user_id=session.user_id,
            session_id=session_id,
            messages=len(session.messages),
        )
        return session

    def archive(self, session_id: str, user_id: str) -> ConversationSession | None:
        """End (if needed) and flag a session as archived for its owner."""
        session = self.store.get(session_id)
        if session is None or session.user_id != user_id:
            return None
        if session.is_active:
            session = self.end(session_id)
        session.archived = True
        self.store.save(session)
        logger.info("session_archived", user_id=user_id, session_id=session_id)
        return session
