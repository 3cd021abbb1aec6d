"""User profile model for tracking preferences and learning progress."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class ProficiencyLevel(StrEnum):
    """Self-declared learner proficiency."""

    BEGINNER = "beginner"
    ELEMENTARY = "elementary"
    INTERMEDIATE = "intermediate"
    UPPER_INTERMEDIATE = "upper-intermediate"
    ADVANCED = "advanced"
    PROFICIENT = "proficient"


class UserPreferences(BaseModel):
    target_language: str = "Spanish"
    native_language: str = "English"
    proficiency_level: ProficiencyLevel = ProficiencyLevel.BEGINNER
    learning_goals: list[str] = Field(default_factory=list)
    default_persona: str = "maya"


class PreferencesUpdate(BaseModel):
    """Partial preference update; unset fields are left untouched."""

    target_language: str | None = None
    native_language: str | None = None
    proficiency_level: ProficiencyLevel | None = None
    learning_goals: list[str] | None = None
    default_persona: str | None = None


class UserProgress(BaseModel):
    total_conversations: int = 0
    total_words: int = 0
    streak_days: int = 0
    last_active_at: datetime = Field(default_factory=datetime.now)


class UserProfile(BaseModel):
    user_id: str
    email: str = ""
    name: str = ""
    image: str | None = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    progress: UserProgress = Field(default_factory=UserProgress)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
