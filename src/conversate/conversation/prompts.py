"""Persona system prompt construction."""

from conversate.models.persona import PersonaDefinition
from conversate.models.session import LanguageContext

CONTEXT_TEMPLATE = """\
CONVERSATION CONTEXT:
- Target Language: {target_language}
- User's Native Language: {native_language}
- User's Proficiency Level: {proficiency_level}
- Current Topic: {topic}
- Learning Goals: {goals}"""

INSTRUCTIONS_TEMPLATE = """\
INSTRUCTIONS:
1. Respond naturally in {target_language} at an appropriate level for {proficiency_level} learners
2. If the user makes mistakes, gently correct them and provide brief explanations
3. Encourage the user and provide positive, constructive feedback
4. Keep responses conversational and engaging
5. Occasionally introduce new vocabulary appropriate to their level
6. Stay true to your character as {name} while being helpful
7. Put new vocabulary in double quotes, e.g. "palabra"

Remember: You are helping someone learn {target_language}. Be patient, encouraging, \
and educational while maintaining natural conversation flow."""


def build_system_prompt(persona: PersonaDefinition, context: LanguageContext) -> str:
    """Build the complete system prompt for a persona and language context.

    Args:
        persona: Persona whose system prompt leads the message.
        context: Learner language settings for the session.

    Returns:
        Complete system prompt string.
    """
    fields = {
        "name": persona.name,
        "target_language": context.target_language,
        "native_language": context.native_language or "English",
        "proficiency_level": context.proficiency_level.value,
        "topic": context.current_topic or "General conversation",
        "goals": ", ".join(context.learning_goals) or "General language improvement",
    }
    parts = [
        persona.system_prompt.strip(),
        CONTEXT_TEMPLATE.format(**fields),
        INSTRUCTIONS_TEMPLATE.format(**fields),
    ]
    return "\n\n".join(parts)
