from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field, field_serializer, model_validator

from chatstream.streaming import ToolCall


class MessageRole(Enum):
    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"
    TOOL = "tool"


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageURL(BaseModel):
    url: str


class ImagePart(BaseModel):
    """An image reference. The url (usually a data URI) is passed through as-is."""

    type: Literal["image_url"] = "image_url"
    image_url: ImageURL

    @classmethod
    def from_url(cls, url: str) -> "ImagePart":
        return cls(image_url=ImageURL(url=url))


ContentPart = Annotated[TextPart | ImagePart, Field(discriminator="type")]


class Message(BaseModel):
    role: MessageRole
    content: str | list[ContentPart]

    @field_serializer('role')
    def serialize_role(self, role: MessageRole, _info) -> str:
        return role.value

    @model_validator(mode="after")
    def check_tool_role(self):
        if self.role is MessageRole.TOOL and not isinstance(self, ToolCallResultMessage):
            raise ValueError("tool messages must be ToolCallResultMessage")
        return self

    def to_wire(self) -> dict:
        """Serialize to the chat-completions request shape."""
        return self.model_dump()


class ToolCallRequestMessage(Message):
    """Assistant message asking for tool calls; its content is always null."""

    role: MessageRole = MessageRole.ASSISTANT
    content: None = None
    tool_calls: list[ToolCall]

    @model_validator(mode="after")
    def check_role(self):
        if self.role is not MessageRole.ASSISTANT:
            raise ValueError("tool_calls are only valid on assistant messages")
        if not self.tool_calls:
            raise ValueError("tool_calls must not be empty")
        return self

    @field_serializer("tool_calls")
    def serialize_tool_calls(self, tool_calls: list[ToolCall]) -> list[dict]:
        return [t.to_wire() for t in tool_calls]


class ToolCallResultMessage(Message):
    role: MessageRole = MessageRole.TOOL
    content: str
    tool_call_id: str

    @model_validator(mode="after")
    def check_role(self):
        if self.role is not MessageRole.TOOL:
            raise ValueError("tool results must use the tool role")
        if not self.tool_call_id:
            raise ValueError("tool results must reference a tool call id")
        return self
