"""Repository interfaces for profiles and conversation sessions.

Implementations must raise ``StorageUnavailableError`` when the backing store
cannot be used. They never fall back to another store on their own.
"""

from abc import ABC, abstractmethod

from conversate.models.profile import UserProfile
from conversate.models.session import ConversationSession


class ProfileStore(ABC):
    """Persistence boundary for user profiles, keyed by user id."""

    @abstractmethod
    def get(self, user_id: str) -> UserProfile | None:
        ...

    @abstractmethod
    def save(self, profile: UserProfile) -> None:
        ...

    def health(self) -> dict:
        return {"backend": self.__class__.__name__, "writable": True}


class SessionStore(ABC):
    """Persistence boundary for sessions plus the per-user active index."""

    @abstractmethod
    def get(self, session_id: str) -> ConversationSession | None:
        ...

    @abstractmethod
    def save(self, session: ConversationSession) -> None:
        """Insert or replace a session and register it under its owner."""

    @abstractmethod
    def list_for_user(self, user_id: str) -> list[ConversationSession]:
        ...

    @abstractmethod
    def get_active_id(self, user_id: str) -> str | None:
        ...

    @abstractmethod
    def set_active_id(self, user_id: str, session_id: str | None) -> None:
        ...

    def health(self) -> dict:
        return {"backend": self.__class__.__name__, "writable": True}
