"""Conversation session data models."""

import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from conversate.models.profile import ProficiencyLevel


class SessionStatus(StrEnum):
    """Session lifecycle states. ENDED is terminal."""

    ACTIVE = "active"
    ENDED = "ended"


class MessageRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


def count_words(text: str) -> int:
    """Naive whitespace token count used for progress tracking."""
    return len(text.split())


class MessageMetadata(BaseModel):
    """Learning notes attached to an assistant reply."""

    corrections: list[str] = Field(default_factory=list)
    vocabulary: list[str] = Field(default_factory=list)
    cultural_notes: list[str] = Field(default_factory=list)
    suggested_topics: list[str] = Field(default_factory=list)


class Message(BaseModel):
    """A single message in the conversation log."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)
    metadata: MessageMetadata | None = None


class SessionLearningProgress(BaseModel):
    """What a session has taught so far, folded from assistant metadata."""

    vocabulary_learned: list[str] = Field(default_factory=list)
    cultural_insights_gained: list[str] = Field(default_factory=list)
    mistakes_corrected: int = 0

    def absorb(self, metadata: MessageMetadata) -> None:
        # Keep first-seen order, no repeats.
        for term in metadata.vocabulary:
            if term not in self.vocabulary_learned:
                self.vocabulary_learned.append(term)
        for note in metadata.cultural_notes:
            if note not in self.cultural_insights_gained:
                self.cultural_insights_gained.append(note)
        self.mistakes_corrected += len(metadata.corrections)

    def to_payload(self) -> dict:
        return {
            "vocabularyLearned": list(self.vocabulary_learned),
            "culturalInsightsGained": list(self.cultural_insights_gained),
            "mistakesCorrected": self.mistakes_corrected,
        }


class LanguageContext(BaseModel):
    """Language settings a session is started with."""

    target_language: str = "Spanish"
    native_language: str = "English"
    proficiency_level: ProficiencyLevel = ProficiencyLevel.BEGINNER
    learning_goals: list[str] = Field(default_factory=list)
    current_topic: str | None = None


class ConversationSession(BaseModel):
    """One conversation thread between a user and a persona."""

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    persona_id: str
    status: SessionStatus = SessionStatus.ACTIVE
    archived: bool = False
    context: LanguageContext = Field(default_factory=LanguageContext)
    messages: list[Message] = Field(default_factory=list)
    learning_progress: SessionLearningProgress = Field(default_factory=SessionLearningProgress)
    started_at: datetime = Field(default_factory=datetime.now)
    last_message_at: datetime = Field(default_factory=datetime.now)
    ended_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def user_messages(self) -> list[Message]:
        """Get only user messages."""
        return [m for m in self.messages if m.role == MessageRole.USER]

    @property
    def user_word_count(self) -> int:
        return sum(count_words(m.content) for m in self.user_messages)

    @property
    def title(self) -> str:
        """First six words of the opening user message."""
        if not self.user_messages:
            return "New Conversation"
        words = self.user_messages[0].content.split()
        title = " ".join(words[:6])
        return title + "..." if len(words) > 6 else title

    def summary(self) -> dict:
        """Compact listing representation used by history endpoints."""
        return {
            "id": self.session_id,
            "personaId": self.persona_id,
            "title": self.title,
            "status": self.status.value,
            "archived": self.archived,
            "messageCount": len(self.messages),
            "startedAt": self.started_at.isoformat(),
            "lastMessageAt": self.last_message_at.isoformat(),
        }

    def conversation_summary(self) -> dict:
        """Learning recap: what was gained, how much was said and for how long."""
        finished_at = self.ended_at or self.last_message_at
        minutes = max(0.0, (finished_at - self.started_at).total_seconds() / 60)
        return {
            "id": self.session_id,
            "personaId": self.persona_id,
            "totalMessages": len(self.messages),
            "userMessages": len(self.user_messages),
            "wordsSpoken": self.user_word_count,
            "durationMinutes": round(minutes),
            "vocabularyGained": list(self.learning_progress.vocabulary_learned),
            "culturalLearning": list(self.learning_progress.cultural_insights_gained),
            "mistakesCorrected": self.learning_progress.mistakes_corrected,
        }
