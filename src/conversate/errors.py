"""Exception hierarchy for the conversation core.

Missing users and sessions are reported as ``None`` results by the services;
the exceptions here cover the failures that cannot be answered locally.
"""


class ConversateError(Exception):
    """Base class for all conversation-core errors."""


class UnknownPersonaError(ConversateError):
    """Raised when a persona id has no definition."""

    def __init__(self, persona_id: str):
        super().__init__(f"Unknown persona: {persona_id}")
        self.persona_id = persona_id


class CompletionError(ConversateError):
    """Raised when the completion provider fails or times out."""


class StorageUnavailableError(ConversateError):
    """Raised when the durable store cannot be read or written."""
