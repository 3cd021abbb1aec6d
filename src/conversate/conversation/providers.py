"""Completion provider boundary: rendered prompt in, completion text out.

Two back ends ship: persona templates (deterministic, offline) and the
OpenAI chat completions API.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import openai
import structlog
from openai import AsyncOpenAI

from conversate.errors import CompletionError
from conversate.models.persona import PersonaDefinition
from conversate.models.session import MessageMetadata

logger = structlog.get_logger()

QUOTED_TERM = re.compile(r'"([^"]+)"')
CORRECTION_HINTS = ("correct", "better")
DEFAULT_SUGGESTED_TOPICS = [
    "Continue conversation",
    "Ask follow-up questions",
    "Practice new vocabulary",
]


def extract_learning_metadata(reply: str) -> MessageMetadata:
    """Pull quoted vocabulary and correction hints out of a model reply."""
    metadata = MessageMetadata(suggested_topics=list(DEFAULT_SUGGESTED_TOPICS))
    metadata.vocabulary = QUOTED_TERM.findall(reply)
    lowered = reply.lower()
    if any(hint in lowered for hint in CORRECTION_HINTS):
        metadata.corrections = ["Check the reply above for corrections and suggestions"]
    return metadata


@dataclass
class CompletionRequest:
    """A fully rendered chat prompt."""

    system_prompt: str
    utterance: str
    history: list[dict[str, str]] = field(default_factory=list)
    temperature: float = 0.7
    persona: PersonaDefinition | None = None

    def to_messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            *self.history,
            {"role": "user", "content": self.utterance},
        ]


class CompletionProvider(ABC):
    """Fallible, latent text completion service."""

    name = "base"

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> str:
        """Return completion text or raise CompletionError."""

    def learning_metadata(self, request: CompletionRequest, text: str) -> MessageMetadata:
        """Learning notes for a reply produced by this provider."""
        return extract_learning_metadata(text)

    async def health_check(self) -> dict:
        return {"provider": self.name, "status": "unknown"}


class TemplateCompletionProvider(CompletionProvider):
    """Offline replies from each persona's template and static learning notes.

    The same (persona, utterance) pair always yields the same reply.
    """

    name = "template"

    @staticmethod
    def _persona(request: CompletionRequest) -> PersonaDefinition:
        if request.persona is None:
            raise CompletionError("Template replies need a persona")
        return request.persona

    async def complete(self, request: CompletionRequest) -> str:
        persona = self._persona(request)
        # str.replace, not format: the utterance may itself contain braces.
        return persona.reply_template.strip().replace("{utterance}", request.utterance)

    def learning_metadata(self, request: CompletionRequest, text: str) -> MessageMetadata:
        persona = self._persona(request)
        return MessageMetadata(
            corrections=list(persona.corrections),
            vocabulary=list(persona.vocabulary),
            cultural_notes=list(persona.cultural_notes),
            suggested_topics=list(persona.suggested_topics),
        )

    async def health_check(self) -> dict:
        return {"provider": self.name, "status": "ok"}


class OpenAICompletionProvider(CompletionProvider):
    """Chat completions via the OpenAI API.

    Retries are disabled: a failed or timed-out call surfaces immediately
    as CompletionError.

    Args:
        api_key: OpenAI API key.
        model: Chat model identifier.
        timeout: Per-request timeout in seconds.
    """

    name = "openai"

    def __init__(self, api_key: str | None, model: str = "gpt-4o-mini", timeout: float = 30.0):
        self.client = AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = model

    async def complete(self, request: CompletionRequest) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=request.to_messages(),
                temperature=request.temperature,
            )
        except openai.OpenAIError as e:
            logger.error("completion_failed", model=self.model, error=str(e))
            raise CompletionError("Completion provider request failed") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            logger.error("completion_empty", model=self.model)
            raise CompletionError("Completion provider returned no text")
        return content.strip()

    async def health_check(self) -> dict:
        return {"provider": self.name, "model": self.model, "status": "configured"}
