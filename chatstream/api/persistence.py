"""REST glue for persisting finished turns and reloading history.

The gateway is deliberately forgiving on the save path: a turn that
streamed fine stays visible locally even if saving it fails, and the
caller is expected to reconcile with a later history fetch.
"""

import logging
from typing import Any

import httpx

from chatstream.api.endpoints import auth_headers, messages_path, save_conversation_path
from chatstream.config import ClientConfig, get_client_config
from chatstream.errors import PersistenceError, TransportError
from chatstream.models import SaveConversationRequest, TranscriptEntry

logger = logging.getLogger(__name__)


class ConversationGateway:
    """Saves transcripts and fetches conversation history.

    Args:
        config: Optional client configuration. Loads from environment if
            not provided.
        http_client: Optional shared ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or get_client_config()
        self._http_client = http_client

    async def save_conversation(
        self,
        chat_id: str,
        messages: list[TranscriptEntry],
        token: str,
    ) -> bool:
        """Persist an ordered batch of messages.

        Args:
            chat_id: Conversation identifier.
            messages: Transcript entries in display order.
            token: Bearer token.

        Returns:
            True if the backend accepted the batch, False otherwise.
        """
        body = SaveConversationRequest(messages=messages).model_dump(mode="json")
        url = self._config.url(save_conversation_path(chat_id))

        try:
            await self._post(url, body, token)
        except PersistenceError as e:
            logger.warning(f"Failed to save conversation {chat_id}: {e}")
            return False

        logger.info(f"Saved {len(messages)} messages for conversation {chat_id}")
        return True

    async def fetch_messages(
        self,
        chat_id: str,
        token: str,
        skip: int = 0,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """Load persisted history for a conversation.

        Args:
            chat_id: Conversation identifier.
            token: Bearer token.
            skip: Number of messages to skip.
            limit: Maximum number of messages to return.

        Returns:
            Messages as returned by the backend.

        Raises:
            TransportError: If the request fails.
        """
        url = self._config.url(messages_path(chat_id))
        params = {"skip": skip, "limit": limit}

        try:
            response = await self._request("GET", url, token, params=params)
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"HTTP {e.response.status_code}", e.response.status_code
            ) from e
        except httpx.RequestError as e:
            raise TransportError(f"Connection failed: {e}") from e

        payload = response.json()
        if isinstance(payload, dict):
            payload = payload.get("data") or []
        return payload

    async def _post(self, url: str, body: dict[str, Any], token: str) -> None:
        try:
            await self._request("POST", url, token, json=body)
        except httpx.HTTPStatusError as e:
            raise PersistenceError(f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise PersistenceError(f"Connection failed: {e}") from e

    async def _request(self, method: str, url: str, token: str, **kwargs: Any) -> httpx.Response:
        headers = auth_headers(token)
        if self._http_client is not None:
            response = await self._http_client.request(method, url, headers=headers, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=self._config.request_timeout) as client:
                response = await client.request(method, url, headers=headers, **kwargs)
        response.raise_for_status()
        return response
