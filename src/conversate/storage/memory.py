"""Process-memory stores. Data is lost on restart; used by tests and the
``memory`` storage backend."""

from conversate.models.profile import UserProfile
from conversate.models.session import ConversationSession
from conversate.storage.base import ProfileStore, SessionStore


class InMemoryProfileStore(ProfileStore):
    def __init__(self) -> None:
        self._profiles: dict[str, UserProfile] = {}

    def get(self, user_id: str) -> UserProfile | None:
        profile = self._profiles.get(user_id)
        return profile.model_copy(deep=True) if profile else None

    def save(self, profile: UserProfile) -> None:
        self._profiles[profile.user_id] = profile.model_copy(deep=True)

    def health(self) -> dict:
        return {"backend": "memory", "writable": True, "durable": False}


class InMemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._sessions: dict[str, ConversationSession] = {}
        self._by_user: dict[str, list[str]] = {}
        self._active: dict[str, str] = {}

    def get(self, session_id: str) -> ConversationSession | None:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    def save(self, session: ConversationSession) -> None:
        self._sessions[session.session_id] = session.model_copy(deep=True)
        ids = self._by_user.setdefault(session.user_id, [])
        if session.session_id not in ids:
            ids.append(session.session_id)

    def list_for_user(self, user_id: str) -> list[ConversationSession]:
        return [
            self._sessions[sid].model_copy(deep=True)
            for sid in self._by_user.get(user_id, [])
        ]

    def get_active_id(self, user_id: str) -> str | None:
        return self._active.get(user_id)

    def set_active_id(self, user_id: str, session_id: str | None) -> None:
        if session_id is None:
            self._active.pop(user_id, None)
        else:
            self._active[user_id] = session_id

    def health(self) -> dict:
        return {"backend": "memory", "writable": True, "durable": False}
