"""HTTP streaming client for the chat backend.

Opens the two streaming exchanges of a turn ("start turn" and "resume
after approval") and feeds their bodies through :class:`SSEParser`.
Both exchanges share the same framing and the same callback contract:

- ``on_event`` for every decoded event, in wire order
- ``on_error`` exactly once if the exchange fails
- ``on_complete`` once the body ends, never after a failure or abort
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from chatstream.api.endpoints import approve_path, auth_headers, stream_path
from chatstream.config import ClientConfig, get_client_config
from chatstream.errors import TransportError
from chatstream.models import ResumeData, ResumeRequest, StreamEvent, StreamRequest
from chatstream.transport.sse_parser import SSEParser

logger = logging.getLogger(__name__)

EventHandler = Callable[[StreamEvent], None]
ErrorHandler = Callable[[Exception], None]
CompleteHandler = Callable[[], Awaitable[None] | None]


def current_task() -> asyncio.Task | None:
    """The running task, or None outside an event loop."""
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class ChatSSEClient:
    """Streaming client bound to one conversation.

    Args:
        chat_id: Conversation identifier.
        token: Bearer token for the backend.
        config: Optional client configuration. Loads from environment if
            not provided.
        http_client: Optional shared ``httpx.AsyncClient``. When omitted a
            client is created (and closed) per exchange.
    """

    def __init__(
        self,
        chat_id: str,
        token: str,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.chat_id = chat_id
        self._token = token
        self._config = config or get_client_config()
        self._http_client = http_client
        # Bumped by close(); an exchange stops once it sees a newer value
        self._generation = 0
        self._task: asyncio.Task | None = None

    async def stream(
        self,
        message: str,
        on_event: EventHandler,
        on_error: ErrorHandler,
        on_complete: CompleteHandler,
    ) -> None:
        """Start a new turn and consume its event stream.

        Args:
            message: The user's message.
            on_event: Called for each decoded event.
            on_error: Called with a TransportError if the exchange fails.
            on_complete: Called (and awaited, if async) when the body ends.
        """
        body = StreamRequest(content=message).model_dump(mode="json")
        await self._exchange(
            self._config.url(stream_path(self.chat_id)),
            body,
            on_event,
            on_error,
            on_complete,
        )

    async def resume(
        self,
        resume_data: ResumeData,
        on_event: EventHandler,
        on_error: ErrorHandler,
        on_complete: CompleteHandler,
    ) -> None:
        """Continue a turn paused on an approval request.

        Same callback contract as :meth:`stream`.
        """
        body = ResumeRequest(resume_data=resume_data).model_dump(mode="json")
        await self._exchange(
            self._config.url(approve_path(self.chat_id)),
            body,
            on_event,
            on_error,
            on_complete,
        )

    def close(self) -> None:
        """Abort the in-flight exchange, if any.

        Called from inside a callback, the read loop stops at the next
        event boundary. Called from any other task, the task running the
        exchange is cancelled so a stalled body does not keep it alive.
        ``on_complete`` is not called in either case.
        """
        self._generation += 1
        task = self._task
        if task is not None and not task.done() and task is not current_task():
            task.cancel()

    async def _exchange(
        self,
        url: str,
        body: dict[str, Any],
        on_event: EventHandler,
        on_error: ErrorHandler,
        on_complete: CompleteHandler,
    ) -> None:
        generation = self._generation
        headers = {
            **auth_headers(self._token),
            "Accept": "text/event-stream",
        }

        task = current_task()
        self._task = task
        try:
            if self._http_client is not None:
                finished = await self._consume(
                    self._http_client, url, body, headers, generation, on_event
                )
            else:
                async with httpx.AsyncClient(timeout=self._config.stream_timeout) as client:
                    finished = await self._consume(
                        client, url, body, headers, generation, on_event
                    )
        except httpx.HTTPStatusError as e:
            logger.error(f"Stream request to {url} failed: HTTP {e.response.status_code}")
            on_error(TransportError(f"HTTP {e.response.status_code}", e.response.status_code))
            return
        except httpx.RequestError as e:
            logger.error(f"Stream request to {url} failed: {e}")
            on_error(TransportError(f"Connection failed: {e}"))
            return
        finally:
            # Released before on_complete; close() never cancels the callback
            if self._task is task:
                self._task = None

        if not finished:
            logger.info(f"Stream for chat {self.chat_id} aborted")
            return

        result = on_complete()
        if inspect.isawaitable(result):
            await result

    async def _consume(
        self,
        client: httpx.AsyncClient,
        url: str,
        body: dict[str, Any],
        headers: dict[str, str],
        generation: int,
        on_event: EventHandler,
    ) -> bool:
        """Read the body and dispatch events.

        Returns:
            True if the body was read to the end, False if aborted.
        """
        parser = SSEParser()
        async with client.stream("POST", url, json=body, headers=headers) as response:
            response.raise_for_status()

            content_type = response.headers.get("content-type", "")
            if "text/event-stream" not in content_type:
                logger.warning(f"Expected text/event-stream, got: {content_type!r}")

            async for chunk in response.aiter_bytes():
                if generation != self._generation:
                    return False
                for event in parser.feed(chunk):
                    on_event(event)
                    if generation != self._generation:
                        return False

        for event in parser.close():
            on_event(event)
            if generation != self._generation:
                return False
        return True
