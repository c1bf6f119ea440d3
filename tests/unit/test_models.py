"""Unit tests for stream event and request models.

Tests event construction from decoded payloads, content block text
extraction and the JSON shape of request bodies.
"""

import pytest
import pytest_check as check
from pydantic import ValidationError

from chatstream.errors import FrameDecodeError
from chatstream.models import (
    ApprovalRequestEvent,
    ApproveDecision,
    ContentEvent,
    DecisionType,
    EditDecision,
    EditedAction,
    MessageType,
    PendingApproval,
    RejectDecision,
    ResumeData,
    ResumeRequest,
    SaveConversationRequest,
    StreamEvent,
    StreamRequest,
    ToolResultEvent,
    TranscriptEntry,
    build_event,
)


class TestBuildEvent:
    """Tests for build_event()."""

    def test_known_event_is_typed(self) -> None:
        """Known names select their model and ignore unknown fields."""
        event = build_event(
            "approval_request",
            {
                "id": "a1",
                "tool_name": "delete_file",
                "args": {"path": "/tmp/x"},
                "allowed_decisions": ["approve", "reject"],
                "trace_id": "ignored",
            },
        )

        assert isinstance(event, ApprovalRequestEvent)
        check.equal(event.event, "approval_request")
        check.equal(event.tool_name, "delete_file")
        check.equal(event.allowed_decisions, ["approve", "reject"])
        check.equal(event.description, "")

    def test_payload_event_field_cannot_override_name(self) -> None:
        """The event name comes from the event line, not the payload."""
        event = build_event("tool_result", {"id": "t1", "event": "content", "result": [1, 2]})

        assert isinstance(event, ToolResultEvent)
        assert event.result == [1, 2]

    def test_unknown_name_keeps_payload(self) -> None:
        """Unknown names produce a generic event carrying the payload."""
        event = build_event("heartbeat", [1, 2, 3])

        assert type(event) is StreamEvent
        check.equal(event.event, "heartbeat")
        check.equal(event.data, [1, 2, 3])

    def test_non_object_payload_for_known_name_raises(self) -> None:
        """A known event must carry a JSON object."""
        with pytest.raises(FrameDecodeError):
            build_event("content", "just text")

    def test_invalid_payload_raises(self) -> None:
        """Schema violations surface as FrameDecodeError."""
        with pytest.raises(FrameDecodeError):
            build_event("tool_call", {"tool_name": "search"})


class TestContentEvent:
    """Tests for ContentEvent.text."""

    def test_plain_string(self) -> None:
        """String content is returned unchanged."""
        assert ContentEvent(id="m1", content="Hi there").text == "Hi there"

    def test_text_blocks_joined(self) -> None:
        """Only text blocks contribute, joined without separator."""
        event = ContentEvent(
            id="m1",
            content=[
                {"type": "text", "text": "Hel"},
                {"type": "image", "extras": {"url": "x.png"}},
                {"type": "text", "text": "lo"},
            ],
        )

        assert event.text == "Hello"

    def test_missing_content(self) -> None:
        """No content means no text."""
        assert ContentEvent(id="m1").text == ""


class TestApprovalModels:
    """Tests for pending approvals and resume payloads."""

    def test_empty_allowed_decisions_allows_everything(self) -> None:
        """An unrestricted approval accepts every decision."""
        pending = PendingApproval(id="a1", tool_name="delete_file")

        for decision in DecisionType:
            check.is_true(pending.allows(decision))

    def test_restricted_allowed_decisions(self) -> None:
        """Decisions outside the allowed list are refused."""
        pending = PendingApproval(
            id="a1",
            tool_name="delete_file",
            allowed_decisions=(DecisionType.APPROVE, DecisionType.REJECT),
        )

        check.is_true(pending.allows(DecisionType.REJECT))
        check.is_false(pending.allows(DecisionType.EDIT))

    def test_resume_data_requires_exactly_one_decision(self) -> None:
        """Zero or two decisions are rejected."""
        with pytest.raises(ValidationError):
            ResumeData(decisions=[])
        with pytest.raises(ValidationError):
            ResumeData(decisions=[ApproveDecision(), RejectDecision()])

    def test_resume_request_body(self) -> None:
        """The approval body nests decisions under resume_data."""
        body = ResumeRequest(
            resume_data=ResumeData(
                decisions=[EditDecision(edited_action=EditedAction(name="search", args={"q": "e"}))]
            )
        ).model_dump(mode="json")

        assert body == {
            "resume_data": {
                "decisions": [
                    {"type": "edit", "edited_action": {"name": "search", "args": {"q": "e"}}}
                ]
            }
        }

    def test_decision_parsed_by_discriminator(self) -> None:
        """Decisions validate from plain dicts by their type."""
        data = ResumeData.model_validate({"decisions": [{"type": "reject"}]})

        assert isinstance(data.decisions[0], RejectDecision)


class TestRequestBodies:
    """Tests for stream and save request bodies."""

    def test_stream_request_defaults_to_user(self) -> None:
        """The stream body carries role user and the message."""
        assert StreamRequest(content="Hi").model_dump() == {"role": "user", "content": "Hi"}

    def test_transcript_entry_excludes_temp_id(self) -> None:
        """The local merge key is never serialized."""
        body = SaveConversationRequest(
            messages=[
                TranscriptEntry(
                    role="assistant",
                    message_type=MessageType.TOOL_CALL,
                    metadata={"tool_name": "search"},
                    temp_id="t1",
                )
            ]
        ).model_dump(mode="json")

        assert body == {
            "messages": [
                {
                    "role": "assistant",
                    "content": "",
                    "message_type": "tool_call",
                    "metadata": {"tool_name": "search"},
                    "parent_message_id": None,
                }
            ]
        }
