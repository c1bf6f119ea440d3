"""Live conversation state, split in two independent cells.

Responsibilities:
    - ConversationStore: streaming message, flags and last error, updated
      through pure reducers
    - ToolContentStore: large tool payloads, referenced from the message by
      a stable key and resolved lazily

Both are observable; neither knows about HTTP or the session lifecycle.
"""

from chatstream.state.conversation_store import (
    ConversationStore,
    select_content,
    select_error,
    select_is_streaming,
    select_is_thinking,
    select_message,
    select_tools,
)
from chatstream.state.tool_content_store import ToolContentStore, tool_content_ref

__all__ = [
    "ConversationStore",
    "ToolContentStore",
    "select_content",
    "select_error",
    "select_is_streaming",
    "select_is_thinking",
    "select_message",
    "select_tools",
    "tool_content_ref",
]
