"""Streaming transport for the chat backend.

Responsibilities:
    - SSE framing: reassembling ``event:``/``data:`` pairs across chunks
    - Typed event decoding with per-line failure isolation
    - The start-turn and resume HTTP exchanges over httpx
    - Aborting an exchange without signalling completion
"""

from chatstream.transport.sse_client import ChatSSEClient
from chatstream.transport.sse_parser import SSEParser, decode_frame

__all__ = ["ChatSSEClient", "SSEParser", "decode_frame"]
