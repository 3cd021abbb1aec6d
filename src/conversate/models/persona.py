"""Static persona definitions."""

from enum import StrEnum

from pydantic import BaseModel, Field


class ModelFamily(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class PersonaDefinition(BaseModel):
    """A named conversational identity. Loaded once, never mutated."""

    model_config = {"frozen": True}

    persona_id: str
    name: str
    tone: str
    system_prompt: str
    preferred_model: ModelFamily = ModelFamily.OPENAI
    temperature: float = 0.7

    # Offline reply template; must contain the "{utterance}" placeholder.
    reply_template: str
    corrections: list[str] = Field(default_factory=list)
    vocabulary: list[str] = Field(default_factory=list)
    cultural_notes: list[str] = Field(default_factory=list)
    suggested_topics: list[str] = Field(default_factory=list)
    conversation_starters: list[str] = Field(default_factory=list)

    def public_view(self) -> dict:
        return {
            "id": self.persona_id,
            "name": self.name,
            "tone": self.tone,
            "preferredModel": self.preferred_model.value,
            "temperature": self.temperature,
        }
