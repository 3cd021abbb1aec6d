"""Tests for service wiring from settings."""

from conversate.api.dependencies import build_chat_service
from conversate.conversation.providers import (
    OpenAICompletionProvider,
    TemplateCompletionProvider,
)
from conversate.storage.json_store import JsonSessionStore
from conversate.storage.memory import InMemorySessionStore


def test_template_provider_without_key(settings):
    chat = build_chat_service(settings)
    assert isinstance(chat.responder.provider, TemplateCompletionProvider)
    assert isinstance(chat.registry.store, InMemorySessionStore)


def test_openai_provider_when_key_present(settings):
    settings = settings.model_copy(
        update={"completion_provider": "auto", "openai_api_key": "sk-test"}
    )
    chat = build_chat_service(settings)
    assert isinstance(chat.responder.provider, OpenAICompletionProvider)


def test_json_backend(settings, tmp_path):
    settings = settings.model_copy(update={"storage_backend": "json", "data_dir": tmp_path})
    chat = build_chat_service(settings)
    assert isinstance(chat.registry.store, JsonSessionStore)
    assert chat.profiles.store.health()["durable"] is True
