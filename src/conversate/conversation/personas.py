"""Persona catalog loaded from config/personas.yaml."""

from pathlib import Path

import structlog

from conversate.config import load_personas
from conversate.errors import UnknownPersonaError
from conversate.models.persona import PersonaDefinition

logger = structlog.get_logger()

DEFAULT_STARTERS = [
    "What would you like to talk about today?",
    "Is there something specific you'd like to learn?",
    "Let's start a conversation!",
]


class PersonaCatalog:
    """Read-only lookup of persona definitions by id."""

    def __init__(self, personas: dict[str, PersonaDefinition]):
        self._personas = dict(personas)

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "PersonaCatalog":
        raw = load_personas(path)
        personas = {
            persona_id: PersonaDefinition(persona_id=persona_id, **data)
            for persona_id, data in raw.items()
        }
        logger.info("personas_loaded", count=len(personas))
        return cls(personas)

    def __contains__(self, persona_id: str) -> bool:
        return persona_id in self._personas

    def get(self, persona_id: str) -> PersonaDefinition:
        try:
            return self._personas[persona_id]
        except KeyError:
            raise UnknownPersonaError(persona_id) from None

    def all(self) -> list[PersonaDefinition]:
        return list(self._personas.values())

    def conversation_starters(self, persona_id: str) -> list[str]:
        persona = self.get(persona_id)
        return list(persona.conversation_starters) or list(DEFAULT_STARTERS)
