"""chatstream - client-side engine for streamed AI conversation turns.

Consumes the server's event stream for one assistant turn (text deltas,
tool calls, tool results, approval requests) and turns it into an
ordered transcript and an observable live state, with pause/resume for
human approvals.

Components:
    - transport: SSE parsing and the streaming HTTP exchanges
    - state: live conversation store and tool payload side-store
    - session: the per-conversation state machine
    - api: persistence and history endpoints
    - models: event, message and request schemas
"""

__version__ = "0.1.0"
