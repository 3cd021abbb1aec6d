"""Request bodies for the REST API (camelCase on the wire)."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from conversate.models.profile import ProficiencyLevel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(_CamelModel):
    message: str = Field(min_length=1, max_length=4000)
    persona_id: str = Field(min_length=1)
    target_language: str | None = None
    proficiency_level: ProficiencyLevel | None = None


class ConversationActionRequest(_CamelModel):
    action: str
    conversation_id: str = Field(min_length=1)


class PreferencesRequest(_CamelModel):
    target_language: str | None = None
    native_language: str | None = None
    proficiency_level: ProficiencyLevel | None = None
    learning_goals: list[str] | None = None
    default_persona: str | None = None
