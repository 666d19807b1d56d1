"""Assembly of request messages from stored chat history."""

from collections.abc import Sequence
from typing import Literal

from pydantic import BaseModel, Field

from chatstream.message import ImagePart, Message, MessageRole, TextPart


class HistoryMessage(BaseModel):
    """A chat entry as the presentation layer stores it.

    ``images`` holds data URLs; they are forwarded untouched.
    """

    sender: Literal["user", "ai"]
    content: str
    images: list[str] = Field(default_factory=list)


def _multimodal(text: str, images: Sequence[str]) -> list[TextPart | ImagePart]:
    return [TextPart(text=text), *(ImagePart.from_url(url) for url in images)]


def build_messages(
    current_message: str,
    history: Sequence[HistoryMessage] = (),
    system_prompt: str | None = None,
    images: Sequence[str] | None = None,
    page_text: str | None = None,
) -> list[Message]:
    """Build the message list for a new turn.

    The system prompt is only added to a fresh conversation; later turns
    rely on the model having seen it in the first exchange.

    Args:
        current_message: What the user just typed.
        history: Earlier entries, oldest first.
        system_prompt: Instructions for the first turn.
        images: Data URLs attached to the current message.
        page_text: Page text to append to the current message.
    """
    messages: list[Message] = []
    if not history and system_prompt:
        messages.append(Message(role=MessageRole.SYSTEM, content=system_prompt))

    for entry in history:
        if entry.sender == "user":
            content = _multimodal(entry.content, entry.images) if entry.images else entry.content
            messages.append(Message(role=MessageRole.USER, content=content))
        else:
            messages.append(Message(role=MessageRole.ASSISTANT, content=entry.content))

    if page_text:
        current_message = f"{current_message}\n\nPage content: {page_text}"
    content = _multimodal(current_message, images) if images else current_message
    messages.append(Message(role=MessageRole.USER, content=content))
    return messages
