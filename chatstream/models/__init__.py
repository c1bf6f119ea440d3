"""Pydantic models for the stream protocol and the live conversation.

Provides type safety and validation for everything crossing the wire.

Models:
    - StreamEvent and variants: decoded server events
    - StreamingMessage, ToolCall: the live assistant turn
    - PendingApproval, Decision, ResumeData: the approval gate
    - TranscriptEntry: messages submitted for persistence
    - StreamRequest, ResumeRequest, SaveConversationRequest: request bodies
"""

from pydantic import BaseModel, Field

from chatstream.models.events import (
    ApprovalRequestEvent,
    ContentBlock,
    ContentEvent,
    EndEvent,
    ErrorEvent,
    StartEvent,
    StreamEvent,
    ToolCallEvent,
    ToolResultEvent,
    build_event,
)
from chatstream.models.schemas import (
    ApproveDecision,
    ConversationState,
    Decision,
    DecisionType,
    EditDecision,
    EditedAction,
    MessageType,
    PendingApproval,
    RejectDecision,
    ResumeData,
    StreamingMessage,
    ToolCall,
    ToolState,
    TranscriptEntry,
)


class StreamRequest(BaseModel):
    """Request body for opening a new turn.

    Attributes:
        role: Always ``user`` for a new turn.
        content: The user's message.
    """

    role: str = Field("user", description="Role of the sender")
    content: str = Field(..., description="The user's message")


class ResumeRequest(BaseModel):
    """Request body for continuing a turn paused on an approval."""

    resume_data: ResumeData = Field(..., description="The human decision")


class SaveConversationRequest(BaseModel):
    """Request body for persisting a finished turn."""

    messages: list[TranscriptEntry] = Field(..., description="Ordered messages of the turn")


__all__ = [
    "ApprovalRequestEvent",
    "ApproveDecision",
    "ContentBlock",
    "ContentEvent",
    "ConversationState",
    "Decision",
    "DecisionType",
    "EditDecision",
    "EditedAction",
    "EndEvent",
    "ErrorEvent",
    "MessageType",
    "PendingApproval",
    "RejectDecision",
    "ResumeData",
    "ResumeRequest",
    "SaveConversationRequest",
    "StartEvent",
    "StreamEvent",
    "StreamRequest",
    "StreamingMessage",
    "ToolCall",
    "ToolCallEvent",
    "ToolResultEvent",
    "ToolState",
    "TranscriptEntry",
    "build_event",
]
