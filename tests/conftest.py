"""Shared fixtures: in-memory stores, services and the real persona catalog."""

import pytest

from conversate.config import Settings
from conversate.conversation.personas import PersonaCatalog
from conversate.conversation.responder import PersonaResponder
from conversate.services.chat import ChatService
from conversate.services.profiles import ProfileService
from conversate.services.sessions import SessionRegistry
from conversate.storage.memory import InMemoryProfileStore, InMemorySessionStore


@pytest.fixture
def settings(tmp_path):
    return Settings(
        storage_backend="memory",
        data_dir=tmp_path,
        completion_provider="template",
        default_proficiency_level="beginner",
    )


@pytest.fixture(scope="session")
def catalog():
    return PersonaCatalog.from_yaml()


@pytest.fixture
def profile_store():
    return InMemoryProfileStore()


@pytest.fixture
def session_store():
    return InMemorySessionStore()


@pytest.fixture
def profiles(profile_store, settings):
    return ProfileService(profile_store, settings)


@pytest.fixture
def registry(session_store, profiles):
    return SessionRegistry(session_store, profiles)


@pytest.fixture
def responder(catalog):
    return PersonaResponder(catalog)


@pytest.fixture
def chat(profiles, registry, responder):
    return ChatService(profiles, registry, responder)
