"""Message types for disambiguation requests.

A disambiguation request is a single prompt, optionally preceded by
system instructions, so only plain-text messages are modelled.
"""

from dataclasses import dataclass
from enum import Enum


class MessageRole(str, Enum):
    """Role of a message in the request."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A plain-text message sent to a provider.

    Attributes:
        role: Who sent the message.
        content: Message text.
    """

    role: MessageRole
    content: str = ""

    @classmethod
    def system(cls, content: str) -> "Message":
        """Create a system message."""
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        """Create a user message."""
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        """Create an assistant message."""
        return cls(role=MessageRole.ASSISTANT, content=content)
