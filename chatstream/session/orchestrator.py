"""Session orchestrator: the state machine behind one streamed turn.

Lifecycle::

    idle -> streaming -> (awaiting_approval -> streaming)* -> completed -> idle

``error`` is reachable from ``streaming`` and ``awaiting_approval`` and
always falls back to ``idle``.

Events are folded synchronously, in wire order, into two places:

1. The transcript buffer, which is what gets persisted. Always current.
2. A working copy of the conversation state. It is published to the
   observable store through a single-slot deferred flush, so subscribers
   see at most one update per ``flush_delay`` however fast tokens arrive.

Tool payloads go straight to the side-store; the live message only
carries their ``content_ref``.

The pending flush is forced before completion, on errors and on cleanup,
so the timer only ever delays propagation and never loses data.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from functools import partial
from typing import Any

import httpx

from chatstream.api.persistence import ConversationGateway
from chatstream.config import ClientConfig, get_client_config
from chatstream.errors import ChatStreamError, ServerReportedError
from chatstream.models import (
    ApprovalRequestEvent,
    ApproveDecision,
    ContentEvent,
    ConversationState,
    DecisionType,
    EditDecision,
    EditedAction,
    ErrorEvent,
    PendingApproval,
    RejectDecision,
    ResumeData,
    StreamEvent,
    ToolCall,
    ToolCallEvent,
    ToolResultEvent,
    ToolState,
    TranscriptEntry,
)
from chatstream.session.scheduler import DeferredAction
from chatstream.session.transcript import TranscriptBuffer
from chatstream.state import ConversationStore, ToolContentStore, reducers, tool_content_ref
from chatstream.transport.sse_client import ChatSSEClient, current_task

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[Exception], None]
Exchange = Callable[..., Awaitable[None]]


class SessionState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    AWAITING_APPROVAL = "awaiting_approval"
    COMPLETED = "completed"
    ERROR = "error"


_STARTABLE = frozenset({SessionState.IDLE, SessionState.COMPLETED, SessionState.ERROR})
_ACTIVE = frozenset({SessionState.STREAMING, SessionState.AWAITING_APPROVAL})

_STREAMING_TOOL_STATUSES = frozenset({"input-streaming", "streaming"})


def _tool_state_for(status: str | None) -> ToolState:
    if status in _STREAMING_TOOL_STATUSES:
        return ToolState.INPUT_STREAMING
    return ToolState.INPUT_AVAILABLE


def _allowed_decisions(values: list[str]) -> tuple[DecisionType, ...]:
    allowed = []
    for value in values:
        try:
            allowed.append(DecisionType(value))
        except ValueError:
            logger.warning(f"Ignoring unknown approval decision {value!r}")
    return tuple(allowed)


def build_resume_data(
    pending: PendingApproval,
    decision: DecisionType,
    edited_args: dict[str, Any] | None = None,
) -> ResumeData:
    """Build the single-decision payload for resuming a paused turn.

    An edit without ``edited_args`` re-submits the original arguments.
    """
    if decision is DecisionType.APPROVE:
        return ResumeData(decisions=[ApproveDecision()])
    if decision is DecisionType.REJECT:
        return ResumeData(decisions=[RejectDecision()])

    args = edited_args if edited_args is not None else pending.args
    return ResumeData(
        decisions=[EditDecision(edited_action=EditedAction(name=pending.tool_name, args=args))]
    )


class ChatStreamingSession:
    """Drives streamed turns for one conversation.

    One instance owns one conversation's buffer, timer and transport; at
    most one turn is in flight at a time. Misuse (starting while a turn is
    live, resuming with nothing to approve) is ignored rather than raised.

    Args:
        chat_id: Conversation identifier.
        token: Bearer token for the backend.
        config: Optional client configuration. Loads from environment if
            not provided.
        client: Streaming transport. Defaults to a ChatSSEClient.
        gateway: Persistence gateway. Defaults to a ConversationGateway.
        store: Conversation state store to publish into.
        tool_contents: Side-store for tool payloads, used when ``store`` is
            not given.
        http_client: Shared ``httpx.AsyncClient`` for the default client and
            gateway.
        on_error: Called with the error (once per turn) when a turn fails.
    """

    def __init__(
        self,
        chat_id: str,
        token: str,
        *,
        config: ClientConfig | None = None,
        client: ChatSSEClient | None = None,
        gateway: ConversationGateway | None = None,
        store: ConversationStore | None = None,
        tool_contents: ToolContentStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self.chat_id = chat_id
        self._token = token
        self._config = config or get_client_config()
        self._client = client or ChatSSEClient(chat_id, token, self._config, http_client)
        self._gateway = gateway or ConversationGateway(self._config, http_client)
        self.store = store if store is not None else ConversationStore(tool_contents)
        self.tool_contents = self.store.tool_contents
        self._on_error = on_error

        self._state = SessionState.IDLE
        self._pending_approval: PendingApproval | None = None
        self._buffer = TranscriptBuffer()
        self._draft: ConversationState = self.store.state
        self._streaming_messages: list[TranscriptEntry] = []
        self._flush = DeferredAction(self._propagate, self._config.flush_delay)
        self._task: asyncio.Task | None = None
        self._error_delivered = False

    # ------------------------------------------------------------------
    # Public state
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state in _ACTIVE

    @property
    def pending_approval(self) -> PendingApproval | None:
        return self._pending_approval

    @property
    def messages(self) -> list[TranscriptEntry]:
        """Current buffer contents, including not yet propagated changes."""
        return self._buffer.snapshot()

    @property
    def streaming_messages(self) -> list[TranscriptEntry]:
        """Buffer contents as of the last propagation."""
        return list(self._streaming_messages)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, message: str) -> bool:
        """Start a new turn with the user's message.

        Must be called from a running event loop; the exchange runs in a
        background task (see :meth:`wait`).

        Returns:
            True if a turn was started, False if one is already live.
        """
        if self._state not in _STARTABLE:
            logger.debug(f"Ignoring start() for chat {self.chat_id}: session is {self._state.value}")
            return False

        self._flush.cancel()
        self.ensure_streaming()
        self._buffer.add_user_message(message)
        self._propagate()
        self._set_state(SessionState.STREAMING)

        logger.info(f"Starting stream for chat {self.chat_id}")
        self._open(partial(self._client.stream, message))
        return True

    def ensure_streaming(self) -> bool:
        """Initialize a fresh live turn unless one is already active.

        Clears the side-store and the buffer and resets the live message
        with ``is_thinking`` set. Does nothing while a turn is live.

        Returns:
            True if the live turn was (re)initialized.
        """
        if self.is_active:
            return False

        self._buffer.clear()
        self._streaming_messages = []
        self._error_delivered = False
        self.store.start_streaming()
        self._draft = self.store.state
        return True

    def resume(
        self,
        decision: DecisionType | str,
        edited_args: dict[str, Any] | None = None,
    ) -> bool:
        """Answer the pending approval and continue the turn.

        Args:
            decision: ``approve``, ``reject`` or ``edit``.
            edited_args: New tool arguments for ``edit``. Defaults to the
                original arguments.

        Returns:
            True if a resume request was opened.
        """
        pending = self._pending_approval
        if self._state is not SessionState.AWAITING_APPROVAL or pending is None:
            logger.debug(f"Ignoring resume() for chat {self.chat_id}: nothing awaits approval")
            return False

        try:
            decision_type = DecisionType(decision)
        except ValueError:
            logger.warning(f"Ignoring unknown decision {decision!r} for chat {self.chat_id}")
            return False

        if not pending.allows(decision_type):
            logger.warning(
                f"Decision '{decision_type.value}' not allowed for {pending.tool_name}; "
                f"allowed: {[d.value for d in pending.allowed_decisions]}"
            )
            return False

        resume_data = build_resume_data(pending, decision_type, edited_args)
        self._pending_approval = None
        self._set_state(SessionState.STREAMING)

        logger.info(f"Resuming chat {self.chat_id} with decision '{decision_type.value}'")
        self._open(partial(self._client.resume, resume_data))
        return True

    async def wait(self) -> None:
        """Wait for the in-flight exchange (if any) to finish."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    def flush(self) -> bool:
        """Propagate pending changes to the store now."""
        return self._flush.flush()

    def cleanup(self) -> None:
        """Tear down: propagate, abort the transport and cancel the timer.

        Safe to call any number of times. An aborted turn is never
        persisted.
        """
        self._flush.flush()
        self._client.close()

        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not current_task():
            task.cancel()

        if self.is_active:
            self._draft = reducers.finish_streaming(self._draft)
            self.store.commit(self._draft)
        self._pending_approval = None
        if self._state is not SessionState.IDLE:
            self._set_state(SessionState.IDLE)

    async def aclose(self) -> None:
        """Like :meth:`cleanup`, then wait until the aborted task has exited."""
        task = self._task
        self.cleanup()
        if task is not None and task is not current_task():
            await asyncio.wait({task})

    def reset(self) -> None:
        """Cleanup and discard everything, including tool payloads."""
        self.cleanup()
        self._buffer.clear()
        self._streaming_messages = []
        self.store.reset()
        self._draft = self.store.state

    def clear_streaming_messages(self) -> bool:
        """Drop the finished turn once the caller has reloaded history.

        Returns:
            False (and leaves everything untouched) while a turn is live.
        """
        if self.is_active:
            return False
        self._flush.cancel()
        self._buffer.clear()
        self._streaming_messages = []
        self.store.stop_streaming()
        self._draft = self.store.state
        return True

    async def reconcile(self, limit: int = 100) -> list[dict[str, Any]] | None:
        """Reload persisted history and drop the local copy of the turn.

        Returns:
            The reloaded history, or None if it could not be fetched (the
            local turn is kept in that case).
        """
        try:
            history = await self._gateway.fetch_messages(self.chat_id, self._token, 0, limit)
        except ChatStreamError as e:
            logger.error(f"Error reloading messages for chat {self.chat_id}: {e}")
            return None

        self.clear_streaming_messages()
        return history

    # ------------------------------------------------------------------
    # Event folding
    # ------------------------------------------------------------------

    def handle_event(self, event: StreamEvent) -> None:
        """Fold one event into the turn. Events must arrive in wire order."""
        if self._state is SessionState.AWAITING_APPROVAL and isinstance(event, ErrorEvent):
            self._on_server_error(event)
            return
        if self._state is not SessionState.STREAMING:
            logger.debug(f"Ignoring '{event.event}' event while {self._state.value}")
            return

        if isinstance(event, ContentEvent):
            self._on_content(event)
        elif isinstance(event, ToolCallEvent):
            self._on_tool_call(event)
        elif isinstance(event, ToolResultEvent):
            self._on_tool_result(event)
        elif isinstance(event, ApprovalRequestEvent):
            self._on_approval_request(event)
        elif isinstance(event, ErrorEvent):
            self._on_server_error(event)
        else:
            logger.debug(f"Stream event '{event.event}' for chat {self.chat_id}")

    def _on_content(self, event: ContentEvent) -> None:
        self._buffer.append_content(event)
        self._draft = reducers.append_text(self._draft, event.text)
        self._flush.schedule()

    def _on_tool_call(self, event: ToolCallEvent) -> None:
        self._buffer.upsert_tool_call(event)

        tool_state = _tool_state_for(event.status)
        existing = self._find_tool(event.id)
        if existing is not None and existing.content_ref is not None:
            # Output already arrived; a late status update must not hide it
            tool_state = ToolState.OUTPUT_AVAILABLE

        tool = ToolCall(id=event.id, name=event.tool_name, args=event.args, state=tool_state)
        self._draft = reducers.add_or_update_tool(self._draft, tool)
        self._flush.schedule()

    def _on_tool_result(self, event: ToolResultEvent) -> None:
        self._buffer.upsert_tool_result(event)

        content_ref = tool_content_ref(event.id)
        self.tool_contents.set(content_ref, event.result)

        if self._find_tool(event.id) is None:
            logger.debug(f"Result for unseen tool call {event.id}; adding it")
            self._draft = reducers.add_or_update_tool(
                self._draft, ToolCall(id=event.id, name=event.tool_name), clear_thinking=False
            )
        self._draft = reducers.set_tool_content_ref(self._draft, event.id, content_ref)
        self._flush.schedule()

    def _on_approval_request(self, event: ApprovalRequestEvent) -> None:
        self._buffer.upsert_approval_request(event)
        self._pending_approval = PendingApproval(
            id=event.id,
            tool_name=event.tool_name,
            args=event.args,
            description=event.description,
            allowed_decisions=_allowed_decisions(event.allowed_decisions),
        )
        self._set_state(SessionState.AWAITING_APPROVAL)
        # The server ends this exchange here; stop reading regardless
        self._client.close()
        self._flush.cancel()
        self._propagate()
        logger.info(f"Chat {self.chat_id} awaiting approval for {event.tool_name}")

    def _on_server_error(self, event: ErrorEvent) -> None:
        logger.error(f"Stream error for chat {self.chat_id}: {event.message}")
        self._fail(ServerReportedError(event.message))

    def _find_tool(self, tool_id: str) -> ToolCall | None:
        message = self._draft.streaming_message
        if message is None:
            return None
        return next((t for t in message.tools if t.id == tool_id), None)

    # ------------------------------------------------------------------
    # Transport plumbing
    # ------------------------------------------------------------------

    def _open(self, exchange: Exchange) -> None:
        self._task = asyncio.create_task(self._run(exchange))

    async def _run(self, exchange: Exchange) -> None:
        try:
            await exchange(self.handle_event, self._on_transport_error, self._on_transport_complete)
        except Exception as e:
            logger.exception(f"Unexpected failure while streaming chat {self.chat_id}")
            self._fail(ChatStreamError(str(e)))
        finally:
            if self._task is current_task():
                self._task = None

    def _on_transport_error(self, error: Exception) -> None:
        self._fail(error)

    async def _on_transport_complete(self) -> None:
        if self._state is SessionState.AWAITING_APPROVAL:
            logger.debug(f"Stream for chat {self.chat_id} paused for approval")
            return
        if self._state is not SessionState.STREAMING:
            return

        self._flush.flush()
        self._set_state(SessionState.COMPLETED)
        self._draft = reducers.finish_streaming(self._draft)
        self._propagate()
        logger.info(f"Stream completed for chat {self.chat_id}")

        messages = self._buffer.snapshot()
        try:
            saved = await self._gateway.save_conversation(self.chat_id, messages, self._token)
        finally:
            if self._state is SessionState.COMPLETED:
                self._set_state(SessionState.IDLE)

        if not saved:
            logger.warning(
                f"Conversation {self.chat_id} not saved; keeping it locally until history is reloaded"
            )

    def _fail(self, error: Exception) -> None:
        if not self.is_active:
            logger.debug(f"Dropping error for chat {self.chat_id} while {self._state.value}: {error}")
            return

        self._flush.flush()
        self._set_state(SessionState.ERROR)
        self._pending_approval = None
        self._client.close()
        task = self._task
        if task is not None and not task.done() and task is not current_task():
            task.cancel()

        self._draft = reducers.set_error(self._draft, str(error))
        self.store.commit(self._draft)

        if not self._error_delivered:
            self._error_delivered = True
            if self._on_error is not None:
                self._on_error(error)
        self._set_state(SessionState.IDLE)

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def _propagate(self) -> None:
        self._streaming_messages = self._buffer.snapshot()
        self.store.commit(self._draft)

    def _set_state(self, new_state: SessionState) -> None:
        logger.debug(f"Chat {self.chat_id}: {self._state.value} -> {new_state.value}")
        self._state = new_state
