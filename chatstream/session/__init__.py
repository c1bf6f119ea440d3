"""Session orchestration for streamed conversation turns.

Responsibilities:
    - The per-conversation state machine (start, approval gate, resume,
      completion, errors)
    - Ordered transcript buffering for persistence
    - Coalesced propagation of live state to the conversation store
    - Teardown of transports and timers

Owns no HTTP details itself; delegates to the transport and the gateway.
"""

from chatstream.session.orchestrator import ChatStreamingSession, SessionState, build_resume_data
from chatstream.session.scheduler import DeferredAction
from chatstream.session.transcript import TranscriptBuffer

__all__ = [
    "ChatStreamingSession",
    "DeferredAction",
    "SessionState",
    "TranscriptBuffer",
    "build_resume_data",
]
