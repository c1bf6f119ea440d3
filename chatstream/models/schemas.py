from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ToolState(str, Enum):
    """Lifecycle of a tool call within the live message."""

    INPUT_STREAMING = "input-streaming"
    INPUT_AVAILABLE = "input-available"
    OUTPUT_AVAILABLE = "output-available"
    OUTPUT_ERROR = "output-error"


class MessageType(str, Enum):
    TEXT = "text"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    APPROVAL_REQUEST = "approval_request"


class DecisionType(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    EDIT = "edit"


class ToolCall(BaseModel):
    """A tool invocation shown in the live message.

    Attributes:
        id: Tool call id from the stream, unique within a message.
        name: Tool name.
        args: Arguments the tool was (or will be) called with.
        state: Current lifecycle state.
        content_ref: Key into the tool content side-store. Set together with
            ``state`` becoming ``output-available``; never the payload itself.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    args: dict[str, Any] = Field(default_factory=dict)
    state: ToolState = ToolState.INPUT_AVAILABLE
    content_ref: str | None = None


class StreamingMessage(BaseModel):
    """The single assistant turn currently being streamed.

    Attributes:
        id: Local identifier of the live message.
        content: Accumulated assistant text.
        tools: Tool calls in first-seen order.
        is_thinking: True until the first content or tool call arrives.
    """

    model_config = ConfigDict(frozen=True)

    id: str = "streaming"
    content: str = ""
    tools: tuple[ToolCall, ...] = ()
    is_thinking: bool = False


class ConversationState(BaseModel):
    """Everything the conversation state store holds."""

    model_config = ConfigDict(frozen=True)

    streaming_message: StreamingMessage | None = None
    is_streaming: bool = False
    is_thinking: bool = False
    error_message: str | None = None


class PendingApproval(BaseModel):
    """A tool call the server paused on until a human decides."""

    model_config = ConfigDict(frozen=True)

    id: str
    tool_name: str
    args: dict[str, Any] = Field(default_factory=dict)
    description: str = ""
    allowed_decisions: tuple[DecisionType, ...] = ()

    def allows(self, decision: DecisionType) -> bool:
        """Check a decision against ``allowed_decisions``.

        An empty list from the server places no restriction.
        """
        return not self.allowed_decisions or decision in self.allowed_decisions


class ApproveDecision(BaseModel):
    type: Literal["approve"] = "approve"


class RejectDecision(BaseModel):
    type: Literal["reject"] = "reject"


class EditedAction(BaseModel):
    name: str
    args: dict[str, Any] = Field(default_factory=dict)


class EditDecision(BaseModel):
    type: Literal["edit"] = "edit"
    edited_action: EditedAction


Decision = Annotated[
    ApproveDecision | RejectDecision | EditDecision,
    Field(discriminator="type"),
]


class ResumeData(BaseModel):
    """Decisions sent back to the server to continue a paused turn."""

    decisions: list[Decision] = Field(..., min_length=1, max_length=1)


class TranscriptEntry(BaseModel):
    """One message of the conversation as it will be persisted.

    Attributes:
        role: ``user``, ``assistant`` or ``tool``.
        content: Message text (tool results are serialized to text).
        message_type: Kind of message.
        metadata: Tool name, args, status and similar details.
        parent_message_id: Parent message on the server, if any.
        temp_id: Local id used to merge repeated events; never persisted.
    """

    role: str
    content: str = ""
    message_type: MessageType = MessageType.TEXT
    metadata: dict[str, Any] | None = None
    parent_message_id: str | None = None
    temp_id: str | None = Field(default=None, exclude=True)
