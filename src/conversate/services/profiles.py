"""User profile service: lazy creation, preference updates and progress counters."""

from datetime import datetime

import structlog

from conversate.config import Settings
from conversate.models.profile import (
    PreferencesUpdate,
    UserPreferences,
    UserProfile,
)
from conversate.models.session import count_words
from conversate.storage.base import ProfileStore

logger = structlog.get_logger()


def _next_streak(streak_days: int, last_active: datetime, now: datetime) -> int:
    gap = (now.date() - last_active.date()).days
    if gap == 0:
        return max(streak_days, 1)
    if gap == 1:
        return streak_days + 1
    return 1


class ProfileService:
    """Per-user preferences and cumulative progress.

    Args:
        store: Profile repository.
        settings: Source of the default preferences for new profiles.
    """

    def __init__(self, store: ProfileStore, settings: Settings):
        self.store = store
        self.settings = settings

    def default_preferences(self) -> UserPreferences:
        return UserPreferences(
            target_language=self.settings.default_target_language,
            native_language=self.settings.default_native_language,
            proficiency_level=self.settings.default_proficiency_level,
            learning_goals=list(self.settings.default_learning_goals),
            default_persona=self.settings.default_persona,
        )

    def get(self, user_id: str) -> UserProfile | None:
        return self.store.get(user_id)

    def get_or_create(
        self,
        user_id: str,
        email: str = "",
        name: str = "",
        image: str | None = None,
    ) -> UserProfile:
        """Return the stored profile, creating one with defaults on first use.

        Display attributes are refreshed when non-empty values are given;
        preferences and progress are left alone.
        """
        profile = self.store.get(user_id)
        if profile is None:
            profile = UserProfile(
                user_id=user_id,
                email=email,
                name=name,
                image=image,
                preferences=self.default_preferences(),
            )
            self.store.save(profile)
            logger.info("profile_created", user_id=user_id)
            return profile

        changed = False
        for field, value in (("email", email), ("name", name), ("image", image)):
            if value and getattr(profile, field) != value:
                setattr(profile, field, value)
                changed = True
        if changed:
            profile.updated_at = datetime.now()
            self.store.save(profile)
        return profile

    def update_preferences(
        self, user_id: str, update: PreferencesUpdate
    ) -> UserProfile | None:
        profile = self.store.get(user_id)
        if profile is None:
            return None
        changes = update.model_dump(exclude_none=True)
        profile.preferences = profile.preferences.model_copy(update=changes)
        profile.updated_at = datetime.now()
        self.store.save(profile)
        logger.info("preferences_updated", user_id=user_id, fields=sorted(changes))
        return profile

    def record_user_utterance(self, user_id: str, text: str) -> UserProfile | None:
        """Add the utterance's word count and refresh activity/streak."""
        profile = self.store.get(user_id)
        if profile is None:
            return None
        now = datetime.now()
        progress = profile.progress
        progress.streak_days = _next_streak(progress.streak_days, progress.last_active_at, now)
        progress.total_words += count_words(text)
        progress.last_active_at = now
        profile.updated_at = now
        self.store.save(profile)
        return profile

    def increment_conversations(self, user_id: str) -> UserProfile | None:
        profile = self.store.get(user_id)
        if profile is None:
            return None
        profile.progress.total_conversations += 1
        profile.updated_at = datetime.now()
        self.store.save(profile)
        return profile
