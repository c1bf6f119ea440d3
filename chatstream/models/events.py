"""Typed stream events decoded from the SSE wire format.

Every ``data:`` line becomes one event. The most recent ``event:`` name
selects the model; unrecognised names fall back to a plain
:class:`StreamEvent` that keeps the raw payload in ``data``.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from chatstream.errors import FrameDecodeError

DEFAULT_EVENT_NAME = "message"


class StreamEvent(BaseModel):
    """Base for all stream events.

    Attributes:
        event: Event name taken from the preceding ``event:`` line.
        data: Raw payload, only populated for unrecognised event names.
    """

    model_config = ConfigDict(extra="ignore")

    event: str = DEFAULT_EVENT_NAME
    data: Any = None


class ContentBlock(BaseModel):
    """One block of a structured content payload."""

    type: str
    text: str = ""
    extras: dict[str, Any] | None = None


class StartEvent(StreamEvent):
    event: Literal["start"] = "start"
    message: str | None = None


class EndEvent(StreamEvent):
    event: Literal["end"] = "end"
    message: str | None = None


class ContentEvent(StreamEvent):
    """A text delta for the assistant message with the given id."""

    event: Literal["content"] = "content"
    id: str
    step: Any = None
    content: str | list[ContentBlock] | None = None
    role: str = "assistant"

    @property
    def text(self) -> str:
        """Text carried by this delta.

        Plain strings are returned as-is; for block lists only
        ``text``-typed blocks contribute, joined without separator.
        """
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        return "".join(block.text for block in self.content if block.type == "text")


class ToolCallEvent(StreamEvent):
    event: Literal["tool_call"] = "tool_call"
    id: str
    step: Any = None
    tool_name: str = ""
    args: dict[str, Any] = Field(default_factory=dict)
    status: str | None = None


class ToolResultEvent(StreamEvent):
    event: Literal["tool_result"] = "tool_result"
    id: str
    step: Any = None
    tool_name: str = ""
    result: Any = None
    status: str | None = None


class ApprovalRequestEvent(StreamEvent):
    """The server paused the turn until a human decides on a tool call."""

    event: Literal["approval_request"] = "approval_request"
    id: str
    step: Any = None
    tool_name: str = ""
    args: dict[str, Any] = Field(default_factory=dict)
    description: str = ""
    allowed_decisions: list[str] = Field(default_factory=list)


class ErrorEvent(StreamEvent):
    event: Literal["error"] = "error"
    message: str = "Unknown stream error"


EVENT_TYPES: dict[str, type[StreamEvent]] = {
    "start": StartEvent,
    "content": ContentEvent,
    "tool_call": ToolCallEvent,
    "tool_result": ToolResultEvent,
    "approval_request": ApprovalRequestEvent,
    "error": ErrorEvent,
    "end": EndEvent,
}


def build_event(name: str, payload: Any) -> StreamEvent:
    """Build a typed event from an event name and its decoded JSON payload.

    Args:
        name: Event name from the ``event:`` line.
        payload: Decoded JSON from the ``data:`` line.

    Returns:
        The matching event model, or a generic StreamEvent for unknown names.

    Raises:
        FrameDecodeError: If the payload does not fit the event's model.
    """
    event_type = EVENT_TYPES.get(name)
    if event_type is None:
        return StreamEvent(event=name, data=payload)

    if not isinstance(payload, dict):
        raise FrameDecodeError(f"Expected an object payload for '{name}' event")

    try:
        return event_type.model_validate({**payload, "event": name})
    except ValidationError as e:
        raise FrameDecodeError(f"Invalid '{name}' payload: {e}") from e
