"""Weekly learning statistics derived from a user's sessions."""

from collections import Counter
from datetime import datetime, timedelta

from conversate.models.profile import UserProfile
from conversate.models.session import ConversationSession

RECENT_SESSION_LIMIT = 5


def user_analytics(
    profile: UserProfile | None,
    sessions: list[ConversationSession],
    now: datetime | None = None,
) -> dict:
    """Summarise the last 7 days of activity.

    Args:
        profile: The user's profile, or None for unknown users.
        sessions: All of the user's sessions.
        now: Reference time, defaults to the current time.

    Returns:
        Dict with the profile, recent session summaries, weekly stats and
        the most used persona.
    """
    now = now or datetime.now()
    week_ago = now - timedelta(days=7)

    recent = sorted(
        (s for s in sessions if s.last_message_at >= week_ago),
        key=lambda s: s.last_message_at,
        reverse=True,
    )[:RECENT_SESSION_LIMIT]

    persona_counts = Counter(s.persona_id for s in sessions)
    favorite = persona_counts.most_common(1)[0][0] if persona_counts else None
    total_messages = sum(len(s.messages) for s in sessions)

    return {
        "profile": profile.model_dump(mode="json") if profile else None,
        "recentSessions": [s.summary() for s in recent],
        "weeklyStats": {
            "conversationsThisWeek": sum(1 for s in recent if not s.is_active),
            "messagesThisWeek": sum(len(s.messages) for s in recent),
            "wordsThisWeek": sum(s.user_word_count for s in recent),
        },
        "totals": {
            "sessions": len(sessions),
            "messages": total_messages,
            "averageMessagesPerConversation": total_messages / max(len(sessions), 1),
        },
        "favoritePersona": favorite,
    }
