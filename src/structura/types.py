"""Conversation and response domain models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, TypeAlias

from structura.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable

Role = Literal["user", "assistant", "system", "tool"]

_ROLES: frozenset[str] = frozenset({"user", "assistant", "system", "tool"})


@dataclass(frozen=True)
class TextSegment:
    """A text content segment."""

    text: str

    def to_wire(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ImageSegment:
    """An image reference segment (URL or data URI)."""

    url: str
    detail: str | None = None

    def to_wire(self) -> dict[str, Any]:
        image_url: dict[str, str] = {"url": self.url}
        if self.detail is not None:
            image_url["detail"] = self.detail
        return {"type": "image_url", "image_url": image_url}


Segment: TypeAlias = TextSegment | ImageSegment


@dataclass(frozen=True)
class Message:
    """A single conversation turn."""

    role: Role
    content: str | tuple[Segment, ...]
    name: str | None = None
    #: Required for tool-role messages, ignored otherwise.
    tool_call_id: str | None = None

    def __post_init__(self) -> None:
        """Validate role and tool-message invariants."""
        if self.role not in _ROLES:
            raise ConfigurationError(
                f"Unknown message role: {self.role!r}",
                hint="Use one of 'user', 'assistant', 'system', 'tool'.",
            )
        if isinstance(self.content, list):
            object.__setattr__(self, "content", tuple(self.content))
        if self.role == "tool":
            if not self.tool_call_id:
                raise ConfigurationError(
                    "tool messages require tool_call_id",
                    hint="Pass the id of the tool call this message answers.",
                )
            if not isinstance(self.content, str):
                raise ConfigurationError("tool message content must be a string")

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str | tuple[Segment, ...]) -> Message:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role="assistant", content=content)

    def to_wire(self) -> dict[str, Any]:
        """Return the chat-completions JSON form of this message."""
        content: Any = self.content
        if not isinstance(content, str):
            content = [segment.to_wire() for segment in content]
        payload: dict[str, Any] = {"role": self.role, "content": content}
        if self.role == "tool":
            payload["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            payload["name"] = self.name
        return payload


@dataclass(frozen=True)
class ToolCall:
    """A tool call requested by the model."""

    id: str
    name: str
    arguments: str


@dataclass(frozen=True)
class ResponseMessage:
    """One candidate message returned by the provider."""

    role: str
    content: str | None = None
    tool_calls: tuple[ToolCall, ...] | None = None
    finish_reason: str | None = None


Conversation: TypeAlias = tuple[Message, ...]


def _segment_from_dict(item: Any) -> Segment:
    if isinstance(item, (TextSegment, ImageSegment)):
        return item
    if isinstance(item, dict):
        kind = item.get("type")
        if kind == "text" and isinstance(item.get("text"), str):
            return TextSegment(item["text"])
        image = item.get("image_url")
        if kind == "image_url" and isinstance(image, dict):
            url = image.get("url")
            if isinstance(url, str):
                return ImageSegment(url, detail=image.get("detail"))
    raise ConfigurationError(
        f"Unsupported content segment: {item!r}",
        hint=(
            "Segments are {'type': 'text', 'text': ...} or "
            "{'type': 'image_url', 'image_url': {'url': ...}}."
        ),
    )


def _message_from_dict(item: dict[str, Any]) -> Message:
    role = item.get("role")
    if not isinstance(role, str):
        raise ConfigurationError(
            "conversation items must have a string 'role' field",
            hint="Pass {'role': 'user', 'content': '...'}.",
        )
    content = item.get("content", "")
    if not isinstance(content, str):
        if not isinstance(content, (list, tuple)):
            raise ConfigurationError(
                f"message content must be a string or a list of segments, "
                f"got {type(content).__name__}"
            )
        content = tuple(_segment_from_dict(seg) for seg in content)
    return Message(
        role=role,  # type: ignore[arg-type]
        content=content,
        name=item.get("name"),
        tool_call_id=item.get("tool_call_id"),
    )


def normalize_conversation(
    conversation: Iterable[Message | dict[str, Any]],
) -> Conversation:
    """Validate a conversation and return it as an immutable tuple.

    Accepts :class:`Message` instances or their wire-shaped dicts. Order is
    preserved exactly.

    Raises:
        ConfigurationError: If the conversation is empty or an item is malformed.
    """
    messages: list[Message] = []
    for item in conversation:
        if isinstance(item, Message):
            messages.append(item)
        elif isinstance(item, dict):
            messages.append(_message_from_dict(item))
        else:
            raise ConfigurationError(
                f"Expected Message or dict, got {type(item).__name__}",
                hint="Use Message.user('...') or {'role': 'user', 'content': '...'}.",
            )
    if not messages:
        raise ConfigurationError(
            "conversation must contain at least one message",
            hint="Pass at least one user or system message.",
        )
    return tuple(messages)
