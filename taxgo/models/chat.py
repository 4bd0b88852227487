"""
Assistant Conversation Models

A ChatTranscript is the session-local conversation shown on the
Assistant page. It is never persisted.
"""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


GREETING = (
    "Xin chào! Tôi là trợ lý TaxGo. Tôi có thể giúp gì cho bạn "
    "về quy định thuế hộ kinh doanh mới?"
)


class ChatRole(str, Enum):
    """Who authored a chat turn."""
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """One turn of the conversation."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    role: ChatRole
    text: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ChatTranscript(BaseModel):
    """Ordered conversation, oldest first, opened by the assistant greeting."""

    messages: list[ChatMessage] = Field(
        default_factory=lambda: [ChatMessage(role=ChatRole.ASSISTANT, text=GREETING)]
    )

    def append(self, role: ChatRole, text: str) -> ChatMessage:
        message = ChatMessage(role=role, text=text)
        self.messages.append(message)
        return message

    def history(self) -> list[ChatMessage]:
        """Copy of the turns so far, safe to hand to the gateway."""
        return list(self.messages)

    def __len__(self) -> int:
        return len(self.messages)
