"""Observable store for the live conversation turn.

Holds only small, frequently changing fields: the streaming message,
the streaming/thinking flags and the last error. Each operation applies
a pure reducer from :mod:`chatstream.state.reducers` and publishes the
result. Subscribers pass a selector (see the ``select_*`` helpers) and
are only called when their slice changed.
"""

from chatstream.models import ConversationState, StreamingMessage, ToolCall, ToolState
from chatstream.state import reducers
from chatstream.state.observable import Observable
from chatstream.state.tool_content_store import ToolContentStore


class ConversationStore(Observable[ConversationState]):
    """State container for the turn currently being streamed.

    Args:
        tool_contents: Side-store cleared whenever a new turn begins or the
            store is reset.
    """

    def __init__(self, tool_contents: ToolContentStore | None = None) -> None:
        super().__init__(reducers.INITIAL_STATE)
        self.tool_contents = tool_contents if tool_contents is not None else ToolContentStore()

    def commit(self, state: ConversationState) -> None:
        """Publish a state computed elsewhere with the same reducers."""
        self._set_state(state)

    def start_streaming(self) -> None:
        self.tool_contents.clear_all()
        self._set_state(reducers.start_streaming(self.state))

    def ensure_streaming(self) -> None:
        """Start a turn unless one is already live. Safe to call repeatedly."""
        new_state = reducers.ensure_streaming(self.state)
        if new_state is not self.state:
            self.tool_contents.clear_all()
        self._set_state(new_state)

    def finish_streaming(self) -> None:
        self._set_state(reducers.finish_streaming(self.state))

    def stop_streaming(self) -> None:
        self._set_state(reducers.stop_streaming(self.state))

    def set_thinking(self, thinking: bool) -> None:
        self._set_state(reducers.set_thinking(self.state, thinking))

    def set_error(self, error: str | None) -> None:
        self._set_state(reducers.set_error(self.state, error))

    def append_text(self, text: str) -> None:
        self._set_state(reducers.append_text(self.state, text))

    def set_content(self, content: str) -> None:
        self._set_state(reducers.set_content(self.state, content))

    def add_or_update_tool(self, tool: ToolCall) -> None:
        self._set_state(reducers.add_or_update_tool(self.state, tool))

    def set_tool_state(self, tool_id: str, tool_state: ToolState) -> None:
        self._set_state(reducers.set_tool_state(self.state, tool_id, tool_state))

    def set_tool_content_ref(self, tool_id: str, content_ref: str) -> None:
        self._set_state(reducers.set_tool_content_ref(self.state, tool_id, content_ref))

    def reset(self) -> None:
        self.tool_contents.clear_all()
        self._set_state(reducers.reset(self.state))


def select_is_streaming(state: ConversationState) -> bool:
    return state.is_streaming


def select_is_thinking(state: ConversationState) -> bool:
    return state.is_thinking


def select_error(state: ConversationState) -> str | None:
    return state.error_message


def select_message(state: ConversationState) -> StreamingMessage | None:
    return state.streaming_message


def select_content(state: ConversationState) -> str:
    return state.streaming_message.content if state.streaming_message else ""


def select_tools(state: ConversationState) -> tuple[ToolCall, ...]:
    return state.streaming_message.tools if state.streaming_message else ()
