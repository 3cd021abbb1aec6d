"""Service wiring for the API layer."""

import functools

import structlog

from conversate.config import Settings, get_settings
from conversate.conversation.personas import PersonaCatalog
from conversate.conversation.providers import (
    CompletionProvider,
    OpenAICompletionProvider,
    TemplateCompletionProvider,
)
from conversate.conversation.responder import PersonaResponder
from conversate.services.chat import ChatService
from conversate.services.profiles import ProfileService
from conversate.services.sessions import SessionRegistry
from conversate.storage.json_store import JsonProfileStore, JsonSessionStore
from conversate.storage.memory import InMemoryProfileStore, InMemorySessionStore

logger = structlog.get_logger()


def build_chat_service(settings: Settings) -> ChatService:
    """Assemble stores, services and the responder from settings."""
    if settings.storage_backend == "memory":
        logger.warning("storage_not_durable", backend="memory")
        profile_store = InMemoryProfileStore()
        session_store = InMemorySessionStore()
    else:
        profile_store = JsonProfileStore(settings.storage_dir)
        session_store = JsonSessionStore(settings.storage_dir)

    provider: CompletionProvider
    if settings.use_openai:
        provider = OpenAICompletionProvider(
            api_key=settings.openai_api_key,
            model=settings.completion_model,
            timeout=settings.completion_timeout_seconds,
        )
    else:
        provider = TemplateCompletionProvider()
    logger.info(
        "chat_service_configured",
        storage=settings.storage_backend,
        completion=provider.name,
    )

    profiles = ProfileService(profile_store, settings)
    registry = SessionRegistry(session_store, profiles)
    responder = PersonaResponder(
        PersonaCatalog.from_yaml(settings.personas_path),
        provider=provider,
        max_history_messages=settings.max_history_messages,
    )
    return ChatService(profiles, registry, responder)


@functools.lru_cache
def get_chat_service() -> ChatService:
    """Get the process-wide chat service."""
    return build_chat_service(get_settings())
