"""Incremental parser for the server-sent event stream.

Turns arbitrary byte chunks into typed events. Chunks may split lines
(and multi-byte characters) anywhere; the parser keeps the unfinished
tail until the next chunk arrives.
"""

import codecs
import json
import logging

from chatstream.errors import FrameDecodeError
from chatstream.models.events import DEFAULT_EVENT_NAME, StreamEvent, build_event

logger = logging.getLogger(__name__)

# Sentinel payloads some backends send instead of JSON objects
START_SENTINEL = "[START]"
END_SENTINEL = "[END]"


class SSEParser:
    """Stateful SSE decoder for a single HTTP response body.

    Each complete ``data:`` line yields one event tagged with the last
    ``event:`` name seen, after which the name resets to ``message``.
    Lines that fail to decode are logged and skipped.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._event_name = DEFAULT_EVENT_NAME

    def feed(self, chunk: bytes | str) -> list[StreamEvent]:
        """Consume one chunk and return the events it completed.

        Args:
            chunk: Raw bytes (or already decoded text) from the body.

        Returns:
            Events in wire order. May be empty.
        """
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        self._buffer += chunk

        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        events: list[StreamEvent] = []
        for line in lines:
            event = self._process_line(line)
            if event is not None:
                events.append(event)
        return events

    def close(self) -> list[StreamEvent]:
        """Flush the decoder and process a final unterminated line.

        Returns:
            Events completed by the remaining buffer.
        """
        self._buffer += self._decoder.decode(b"", final=True)
        remaining, self._buffer = self._buffer, ""

        events: list[StreamEvent] = []
        for line in remaining.split("\n"):
            event = self._process_line(line)
            if event is not None:
                events.append(event)
        return events

    def _process_line(self, line: str) -> StreamEvent | None:
        line = line.rstrip("\r")
        if not line.strip() or line.startswith(":"):
            return None

        if line.startswith("event:"):
            self._event_name = line[6:].strip() or DEFAULT_EVENT_NAME
            return None

        if not line.startswith("data:"):
            # id:, retry: and anything else carry nothing we use
            return None

        name = self._event_name
        self._event_name = DEFAULT_EVENT_NAME
        raw = line[5:].strip()
        try:
            return decode_frame(name, raw)
        except FrameDecodeError as e:
            logger.warning(f"Skipping malformed '{name}' frame: {e}")
            return None


def decode_frame(name: str, raw: str) -> StreamEvent:
    """Decode the payload of one ``data:`` line.

    Args:
        name: Pending event name.
        raw: Text after ``data:``.

    Returns:
        The decoded event.

    Raises:
        FrameDecodeError: If the payload is not valid JSON or does not match
            the event's schema.
    """
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise FrameDecodeError(f"Invalid JSON ({e.msg}): {raw[:80]!r}") from e

    if payload == START_SENTINEL:
        return build_event("start", {})
    if payload == END_SENTINEL:
        return build_event("end", {})

    return build_event(name, payload)
