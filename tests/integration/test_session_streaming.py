"""Integration tests for full streamed turns.

Drives ChatStreamingSession end to end: real SSE exchanges through
ASGITransport, the approval pause and resume, and persistence of the
finished turn to the scripted backend. No mocks.
"""

import asyncio
from collections.abc import Callable

import pytest_check as check

from chatstream.errors import TransportError
from chatstream.models import ToolState
from chatstream.session import ChatStreamingSession, SessionState
from tests.fake_backend import FakeChatBackend, sse_frame

SessionFactory = Callable[..., ChatStreamingSession]


def saved_shape(backend: FakeChatBackend) -> list[tuple[str, str, str]]:
    """``(role, message_type, content)`` of the single saved batch."""
    assert len(backend.saved) == 1
    return [(m["role"], m["message_type"], m["content"]) for m in backend.saved[0]["messages"]]


class TestTextTurn:
    """Tests for a turn with text only."""

    async def test_turn_streams_and_persists(
        self, session_factory: SessionFactory, backend: FakeChatBackend
    ) -> None:
        """Streamed text reaches the store and is saved once."""
        backend.stream_frames = [
            sse_frame("start", "[START]"),
            sse_frame("content", {"id": "m1", "content": "Hello"}),
            sse_frame("content", {"id": "m1", "content": [{"type": "text", "text": " world"}]}),
            sse_frame("end", "[END]"),
        ]
        session = session_factory()

        assert session.start("Hi") is True
        await session.wait()

        check.equal(session.store.state.streaming_message.content, "Hello world")
        check.is_false(session.store.state.is_streaming)
        check.equal(session.state, SessionState.IDLE)
        assert saved_shape(backend) == [
            ("user", "text", "Hi"),
            ("assistant", "text", "Hello world"),
        ]

    async def test_malformed_frame_skipped(
        self, session_factory: SessionFactory, backend: FakeChatBackend
    ) -> None:
        """A broken frame mid-stream does not stop the turn."""
        backend.stream_frames = [
            sse_frame("content", {"id": "m1", "content": "A"}),
            "event: content\ndata: {oops\n\n",
            sse_frame("content", {"id": "m1", "content": "B"}),
        ]
        session = session_factory()

        session.start("Hi")
        await session.wait()

        assert saved_shape(backend)[-1] == ("assistant", "text", "AB")


class TestToolTurn:
    """Tests for tool calls and results."""

    async def test_tool_result_in_side_store(
        self, session_factory: SessionFactory, backend: FakeChatBackend
    ) -> None:
        """The payload is in the side-store and persisted as text."""
        backend.stream_frames = [
            sse_frame("content", {"id": "a", "content": "Searching. "}),
            sse_frame("tool_call", {"id": "x", "tool_name": "search", "args": {"q": "pi"}}),
            sse_frame("tool_result", {"id": "x", "tool_name": "search", "result": {"hits": 3}}),
            sse_frame("content", {"id": "b", "content": "Found 3."}),
        ]
        session = session_factory()

        session.start("Search pi")
        await session.wait()

        tool = session.store.state.streaming_message.tools[0]
        check.equal(tool.state, ToolState.OUTPUT_AVAILABLE)
        check.equal(session.tool_contents.get(tool.content_ref), {"hits": 3})
        assert saved_shape(backend) == [
            ("user", "text", "Search pi"),
            ("assistant", "text", "Searching. "),
            ("assistant", "tool_call", ""),
            ("tool", "tool_result", '{"hits": 3}'),
            ("assistant", "text", "Found 3."),
        ]


class TestApprovalTurn:
    """Tests for the approval pause and resume."""

    async def test_reject_and_resume(
        self, session_factory: SessionFactory, backend: FakeChatBackend
    ) -> None:
        """The turn pauses, resumes on reject and is saved once in full."""
        backend.stream_frames = [
            sse_frame("tool_call", {"id": "y", "tool_name": "delete_file", "args": {"path": "/tmp/x"}}),
            sse_frame(
                "approval_request",
                {
                    "id": "y",
                    "tool_name": "delete_file",
                    "args": {"path": "/tmp/x"},
                    "description": "Delete /tmp/x",
                    "allowed_decisions": ["approve", "reject"],
                },
            ),
        ]
        backend.resume_frames = [
            sse_frame("content", {"id": "m2", "content": "Okay, I won't."}),
            sse_frame("end", "[END]"),
        ]
        session = session_factory()

        session.start("Delete /tmp/x")
        await session.wait()

        check.equal(session.state, SessionState.AWAITING_APPROVAL)
        check.equal(session.pending_approval.tool_name, "delete_file")
        check.equal(backend.saved, [])

        assert session.resume("reject") is True
        await session.wait()

        check.equal(
            backend.requests_to("/approve"),
            [{"resume_data": {"decisions": [{"type": "reject"}]}}],
        )
        check.is_none(session.pending_approval)
        check.equal(session.state, SessionState.IDLE)
        assert saved_shape(backend) == [
            ("user", "text", "Delete /tmp/x"),
            ("assistant", "tool_call", ""),
            ("assistant", "approval_request", ""),
            ("assistant", "text", "Okay, I won't."),
        ]

    async def test_edit_sends_edited_action(
        self, session_factory: SessionFactory, backend: FakeChatBackend
    ) -> None:
        """An edit carries the tool name and the new arguments."""
        backend.stream_frames = [
            sse_frame("approval_request", {"id": "y", "tool_name": "search", "args": {"q": "a"}}),
        ]
        session = session_factory()
        session.start("Search")
        await session.wait()

        session.resume("edit", {"q": "b"})
        await session.wait()

        assert backend.requests_to("/approve") == [
            {
                "resume_data": {
                    "decisions": [
                        {"type": "edit", "edited_action": {"name": "search", "args": {"q": "b"}}}
                    ]
                }
            }
        ]


class TestFailures:
    """Tests for failed turns."""

    async def test_http_error_not_persisted(
        self, session_factory: SessionFactory, backend: FakeChatBackend
    ) -> None:
        """A failed stream reports one error and saves nothing."""
        backend.stream_status = 500
        errors: list[Exception] = []
        session = session_factory(on_error=errors.append)

        session.start("Hi")
        await session.wait()

        check.equal(len(errors), 1)
        check.is_instance(errors[0], TransportError)
        check.equal(session.store.state.error_message, "HTTP 500")
        check.equal(backend.requests_to("/save-conversation"), [])

    async def test_server_error_event(
        self, session_factory: SessionFactory, backend: FakeChatBackend
    ) -> None:
        """An error frame ends the turn without persisting it."""
        backend.stream_frames = [
            sse_frame("content", {"id": "m1", "content": "Part"}),
            sse_frame("error", {"message": "model overloaded"}),
        ]
        errors: list[Exception] = []
        session = session_factory(on_error=errors.append)

        session.start("Hi")
        await session.wait()

        check.equal([str(e) for e in errors], ["model overloaded"])
        check.equal(session.store.state.streaming_message.content, "Part")
        check.equal(backend.requests_to("/save-conversation"), [])

    async def test_save_failure_is_not_an_error(
        self, session_factory: SessionFactory, backend: FakeChatBackend
    ) -> None:
        """A rejected save leaves the turn visible and raises nothing."""
        backend.save_status = 503
        backend.stream_frames = [sse_frame("content", {"id": "m1", "content": "Hello"})]
        errors: list[Exception] = []
        session = session_factory(on_error=errors.append)

        session.start("Hi")
        await session.wait()

        check.equal(errors, [])
        check.equal(len(backend.requests_to("/save-conversation")), 1)
        check.equal(session.store.state.streaming_message.content, "Hello")


class TestConcurrencyAndTeardown:
    """Tests for overlapping starts and teardown mid-stream."""

    async def test_second_start_opens_no_request(
        self, session_factory: SessionFactory, backend: FakeChatBackend
    ) -> None:
        """Only the first start reaches the backend."""
        backend.gate = asyncio.Event()
        backend.stream_frames = [sse_frame("content", {"id": "m1", "content": "Hello"})]
        session = session_factory()

        check.is_true(session.start("First"))
        await asyncio.sleep(0.05)
        check.is_false(session.start("Second"))
        await asyncio.sleep(0.05)

        check.equal(backend.requests_to("/stream"), [{"role": "user", "content": "First"}])

        backend.gate.set()
        await session.wait()
        assert saved_shape(backend)[0] == ("user", "text", "First")

    async def test_cleanup_mid_stream(
        self, session_factory: SessionFactory, backend: FakeChatBackend
    ) -> None:
        """Cleanup (twice) aborts the turn and nothing is persisted."""
        backend.gate = asyncio.Event()
        backend.stream_frames = [sse_frame("content", {"id": "m1", "content": "Hello"})]
        session = session_factory()

        session.start("Hi")
        await asyncio.sleep(0.05)
        session.cleanup()
        session.cleanup()
        backend.gate.set()
        await asyncio.sleep(0.05)

        check.equal(session.state, SessionState.IDLE)
        check.is_false(session.store.state.is_streaming)
        check.equal(backend.requests_to("/save-conversation"), [])

    async def test_reconcile_after_turn(
        self, session_factory: SessionFactory, backend: FakeChatBackend
    ) -> None:
        """Reloading history drops the local copy of the finished turn."""
        backend.stream_frames = [sse_frame("content", {"id": "m1", "content": "Hello"})]
        backend.history = [{"id": "srv-1", "role": "user", "content": "Hi"}]
        session = session_factory()
        session.start("Hi")
        await session.wait()

        history = await session.reconcile()

        check.equal(history, backend.history)
        check.is_none(session.store.state.streaming_message)
        check.equal(session.streaming_messages, [])
