"""Pure state transitions for the live conversation.

Every function takes the previous :class:`ConversationState` and returns
a new one; nothing is mutated in place. When a function has nothing to
change it returns the very same object, so observers comparing by
identity see no update. The tool tuple is rebuilt wholesale whenever a
tool changes.
"""

from chatstream.models import ConversationState, StreamingMessage, ToolCall, ToolState

INITIAL_STATE = ConversationState()


def start_streaming(state: ConversationState) -> ConversationState:
    """Begin a fresh turn: empty message, streaming and thinking."""
    return ConversationState(
        streaming_message=StreamingMessage(is_thinking=True),
        is_streaming=True,
        is_thinking=True,
        error_message=None,
    )


def ensure_streaming(state: ConversationState) -> ConversationState:
    """Like :func:`start_streaming`, but keeps an already live turn."""
    if state.is_streaming and state.streaming_message is not None:
        return state
    return start_streaming(state)


def finish_streaming(state: ConversationState) -> ConversationState:
    """Mark the turn done while keeping the message visible."""
    if not state.is_streaming and not state.is_thinking:
        return state
    message = state.streaming_message
    if message is not None and message.is_thinking:
        message = message.model_copy(update={"is_thinking": False})
    return state.model_copy(
        update={"is_streaming": False, "is_thinking": False, "streaming_message": message}
    )


def stop_streaming(state: ConversationState) -> ConversationState:
    """Drop the live message entirely."""
    return state.model_copy(
        update={"is_streaming": False, "is_thinking": False, "streaming_message": None}
    )


def set_thinking(state: ConversationState, thinking: bool) -> ConversationState:
    message = state.streaming_message
    if message is not None and message.is_thinking != thinking:
        message = message.model_copy(update={"is_thinking": thinking})
    if state.is_thinking == thinking and message is state.streaming_message:
        return state
    return state.model_copy(update={"is_thinking": thinking, "streaming_message": message})


def set_error(state: ConversationState, error: str | None) -> ConversationState:
    """Record an error; a non-empty error also ends streaming."""
    if not error:
        return state.model_copy(update={"error_message": None})
    return state.model_copy(
        update={"error_message": error, "is_streaming": False, "is_thinking": False}
    )


def append_text(state: ConversationState, text: str) -> ConversationState:
    """Append a text delta and clear the thinking flag."""
    message = state.streaming_message
    if message is None:
        return state
    return state.model_copy(
        update={
            "is_thinking": False,
            "streaming_message": message.model_copy(
                update={"content": message.content + text, "is_thinking": False}
            ),
        }
    )


def set_content(state: ConversationState, content: str) -> ConversationState:
    message = state.streaming_message
    if message is None:
        return state
    return state.model_copy(
        update={
            "is_thinking": False,
            "streaming_message": message.model_copy(
                update={"content": content, "is_thinking": False}
            ),
        }
    )


def add_or_update_tool(
    state: ConversationState, tool: ToolCall, clear_thinking: bool = True
) -> ConversationState:
    """Upsert a tool by id, keeping its original position.

    Fields of ``tool`` override the existing entry; an existing
    ``content_ref`` survives when ``tool`` carries none. With
    ``clear_thinking`` False the thinking flags are left as they are.
    """
    message = state.streaming_message
    if message is None:
        return state

    tools = list(message.tools)
    for index, existing in enumerate(tools):
        if existing.id == tool.id:
            update = tool.model_dump(exclude={"content_ref"} if tool.content_ref is None else set())
            tools[index] = existing.model_copy(update=update)
            break
    else:
        tools.append(tool)

    if not clear_thinking:
        return state.model_copy(
            update={"streaming_message": message.model_copy(update={"tools": tuple(tools)})}
        )
    return state.model_copy(
        update={
            "is_thinking": False,
            "streaming_message": message.model_copy(
                update={"tools": tuple(tools), "is_thinking": False}
            ),
        }
    )


def set_tool_state(state: ConversationState, tool_id: str, tool_state: ToolState) -> ConversationState:
    return _update_tool(state, tool_id, state=tool_state)


def set_tool_content_ref(state: ConversationState, tool_id: str, content_ref: str) -> ConversationState:
    """Point a tool at its side-store payload and mark its output available."""
    return _update_tool(state, tool_id, state=ToolState.OUTPUT_AVAILABLE, content_ref=content_ref)


def reset(state: ConversationState) -> ConversationState:
    return INITIAL_STATE


def _update_tool(current: ConversationState, tool_id: str, **fields) -> ConversationState:
    message = current.streaming_message
    if message is None or not any(t.id == tool_id for t in message.tools):
        return current

    tools = tuple(
        t.model_copy(update=fields) if t.id == tool_id else t for t in message.tools
    )
    return current.model_copy(
        update={"streaming_message": message.model_copy(update={"tools": tools})}
    )
