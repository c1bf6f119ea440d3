"""Ordered message buffer for one streamed turn.

Entries are keyed by ``(message_type, id)`` so repeated events for the
same id update one entry in place, while a tool call and its result
(which share an id) stay separate messages.
"""

import json
import time
from typing import Any

from chatstream.models import (
    ApprovalRequestEvent,
    ContentEvent,
    MessageType,
    ToolCallEvent,
    ToolResultEvent,
    TranscriptEntry,
)


def _result_text(result: Any) -> str:
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


class TranscriptBuffer:
    """Messages of the current turn, in arrival order."""

    def __init__(self) -> None:
        self._entries: list[TranscriptEntry] = []
        self._index: dict[tuple[MessageType, str], int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries = []
        self._index = {}

    def snapshot(self) -> list[TranscriptEntry]:
        """Copies of the entries, safe to hand to other code."""
        return [entry.model_copy(deep=True) for entry in self._entries]

    def add_user_message(self, content: str) -> TranscriptEntry:
        temp_id = f"user-{int(time.time() * 1000)}"
        return self._upsert(
            MessageType.TEXT,
            temp_id,
            lambda: TranscriptEntry(role="user", content=content, temp_id=temp_id),
            lambda entry: None,
        )

    def append_content(self, event: ContentEvent) -> TranscriptEntry:
        text = event.text

        def update(entry: TranscriptEntry) -> None:
            entry.content += text

        return self._upsert(
            MessageType.TEXT,
            event.id,
            lambda: TranscriptEntry(role=event.role, content=text, temp_id=event.id),
            update,
        )

    def upsert_tool_call(self, event: ToolCallEvent) -> TranscriptEntry:
        metadata = {
            "tool_name": event.tool_name,
            "args": event.args,
            "status": event.status,
        }
        return self._upsert(
            MessageType.TOOL_CALL,
            event.id,
            lambda: TranscriptEntry(
                role="assistant",
                message_type=MessageType.TOOL_CALL,
                metadata=metadata,
                temp_id=event.id,
            ),
            lambda entry: setattr(entry, "metadata", metadata),
        )

    def upsert_tool_result(self, event: ToolResultEvent) -> TranscriptEntry:
        content = _result_text(event.result)
        metadata = {
            "tool_name": event.tool_name,
            "result": event.result,
            "status": event.status,
        }

        def update(entry: TranscriptEntry) -> None:
            entry.content = content
            entry.metadata = metadata

        return self._upsert(
            MessageType.TOOL_RESULT,
            event.id,
            lambda: TranscriptEntry(
                role="tool",
                content=content,
                message_type=MessageType.TOOL_RESULT,
                metadata=metadata,
                temp_id=event.id,
            ),
            update,
        )

    def upsert_approval_request(self, event: ApprovalRequestEvent) -> TranscriptEntry:
        metadata = {
            "tool_name": event.tool_name,
            "args": event.args,
            "description": event.description,
            "allowed_decisions": event.allowed_decisions,
        }
        return self._upsert(
            MessageType.APPROVAL_REQUEST,
            event.id,
            lambda: TranscriptEntry(
                role="assistant",
                message_type=MessageType.APPROVAL_REQUEST,
                metadata=metadata,
                temp_id=event.id,
            ),
            lambda entry: setattr(entry, "metadata", metadata),
        )

    def _upsert(self, message_type, temp_id, create, update) -> TranscriptEntry:
        key = (message_type, temp_id)
        position = self._index.get(key)
        if position is None:
            entry = create()
            self._index[key] = len(self._entries)
            self._entries.append(entry)
            return entry

        entry = self._entries[position]
        update(entry)
        return entry
