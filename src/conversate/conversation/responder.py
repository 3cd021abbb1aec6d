"""Persona reply generation.

Every reply goes through a CompletionProvider. The default provider renders
persona templates, so the same (persona, utterance) pair always yields the
same reply.
"""

from dataclasses import dataclass, field

import structlog

from conversate.conversation.personas import PersonaCatalog
from conversate.conversation.prompts import build_system_prompt
from conversate.conversation.providers import (
    CompletionProvider,
    CompletionRequest,
    TemplateCompletionProvider,
)
from conversate.models.session import LanguageContext, Message, MessageMetadata

logger = structlog.get_logger()


@dataclass
class ConversationContext:
    """Everything the responder may use besides the utterance itself."""

    language: LanguageContext = field(default_factory=LanguageContext)
    history: list[Message] = field(default_factory=list)


@dataclass
class PersonaReply:
    text: str
    metadata: MessageMetadata


class PersonaResponder:
    """Produces persona replies plus learning metadata.

    Args:
        catalog: Persona definitions.
        provider: Completion provider; defaults to persona templates.
        max_history_messages: How many recent messages go into the prompt.
    """

    def __init__(
        self,
        catalog: PersonaCatalog,
        provider: CompletionProvider | None = None,
        max_history_messages: int = 20,
    ):
        self.catalog = catalog
        self.provider = provider or TemplateCompletionProvider()
        self.max_history_messages = max_history_messages

    async def respond(
        self,
        persona_id: str,
        utterance: str,
        context: ConversationContext,
    ) -> PersonaReply:
        """Generate a reply. Raises UnknownPersonaError or CompletionError."""
        persona = self.catalog.get(persona_id)
        history = context.history[-self.max_history_messages:] if self.max_history_messages else []
        request = CompletionRequest(
            system_prompt=build_system_prompt(persona, context.language),
            utterance=utterance,
            history=[{"role": m.role.value, "content": m.content} for m in history],
            temperature=persona.temperature,
            persona=persona,
        )
        logger.debug(
            "completion_requested",
            provider=self.provider.name,
            persona_id=persona_id,
            preferred_model=persona.preferred_model.value,
            history=len(request.history),
        )
        text = await self.provider.complete(request)
        return PersonaReply(text=text, metadata=self.provider.learning_metadata(request, text))
