"""Durable JSON-file stores (JSON + fcntl.flock + atomic write).

Layout under the data directory::

    profiles/<user>.json
    sessions/<session>.json
    session_index/<user>.json   {"active_session_id": ..., "session_ids": [...]}
"""

import contextlib
import fcntl
import hashlib
import json
import os
import tempfile
from pathlib import Path
from urllib.parse import quote

import structlog
from pydantic import BaseModel, ValidationError

from conversate.errors import StorageUnavailableError
from conversate.models.profile import UserProfile
from conversate.models.session import ConversationSession
from conversate.storage.base import ProfileStore, SessionStore

logger = structlog.get_logger()


MAX_ENCODED_KEY = 200


def _filename(key: str) -> str:
    # Ids are opaque; percent-encode so they cannot escape the directory.
    encoded = quote(key, safe="")
    if len(encoded) > MAX_ENCODED_KEY:
        # Stay under NAME_MAX (255 bytes on common filesystems).
        encoded = "sha256-" + hashlib.sha256(key.encode("utf-8")).hexdigest()
    return encoded + ".json"


def _read_json(path: Path) -> dict | None:
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            try:
                return json.load(f)
            finally:
                fcntl.flock(f, fcntl.LOCK_UN)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("storage_read_failed", path=str(path), error=str(e))
        raise StorageUnavailableError(f"Cannot read {path.name}") from e


def _write_json(path: Path, data: dict | BaseModel) -> None:
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", dir=path.parent, delete=False, suffix=".tmp", encoding="utf-8"
        ) as tmp:
            tmp_name = tmp.name
            if isinstance(data, BaseModel):
                tmp.write(data.model_dump_json())
            else:
                json.dump(data, tmp)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
        logger.error("storage_write_failed", path=str(path), error=str(e))
        raise StorageUnavailableError(f"Cannot write {path.name}") from e


def _probe(directory: Path) -> bool:
    try:
        directory.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=directory):
            pass
    except OSError:
        return False
    return True


class JsonProfileStore(ProfileStore):
    def __init__(self, data_dir: Path):
        self.profiles_dir = data_dir / "profiles"

    def _path(self, user_id: str) -> Path:
        return self.profiles_dir / _filename(user_id)

    def get(self, user_id: str) -> UserProfile | None:
        data = _read_json(self._path(user_id))
        if data is None:
            return None
        try:
            return UserProfile(**data)
        except ValidationError as e:
            raise StorageUnavailableError(f"Corrupt profile record for {user_id}") from e

    def save(self, profile: UserProfile) -> None:
        _write_json(self._path(profile.user_id), profile)

    def health(self) -> dict:
        return {"backend": "json", "writable": _probe(self.profiles_dir), "durable": True}


class JsonSessionStore(SessionStore):
    def __init__(self, data_dir: Path):
        self.sessions_dir = data_dir / "sessions"
        self.index_dir = data_dir / "session_index"

    def _session_path(self, session_id: str) -> Path:
        return self.sessions_dir / _filename(session_id)

    def _index_path(self, user_id: str) -> Path:
        return self.index_dir / _filename(user_id)

    def _load_index(self, user_id: str) -> dict:
        index = _read_json(self._index_path(user_id))
        return index or {"active_session_id": None, "session_ids": []}

    def get(self, session_id: str) -> ConversationSession | None:
        data = _read_json(self._session_path(session_id))
        if data is None:
            return None
        try:
            return ConversationSession(**data)
        except ValidationError as e:
            raise StorageUnavailableError(f"Corrupt session record {session_id}") from e

    def save(self, session: ConversationSession) -> None:
        _write_json(self._session_path(session.session_id), session)
        index = self._load_index(session.user_id)
        if session.session_id not in index["session_ids"]:
            index["session_ids"].append(session.session_id)
            _write_json(self._index_path(session.user_id), index)

    def list_for_user(self, user_id: str) -> list[ConversationSession]:
        sessions = []
        for session_id in self._load_index(user_id)["session_ids"]:
            session = self.get(session_id)
            if session is None:
                logger.warning("session_index_dangling", user_id=user_id, session_id=session_id)
                continue
            sessions.append(session)
        return sessions

    def get_active_id(self, user_id: str) -> str | None:
        return self._load_index(user_id)["active_session_id"]

    def set_active_id(self, user_id: str, session_id: str | None) -> None:
        index = self._load_index(user_id)
        index["active_session_id"] = session_id
        _write_json(self._index_path(user_id), index)

    def health(self) -> dict:
        writable = _probe(self.sessions_dir) and _probe(self.index_dir)
        return {"backend": "json", "writable": writable, "durable": True}
