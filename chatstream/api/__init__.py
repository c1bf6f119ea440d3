"""REST endpoints of the chat backend used around a streamed turn.

Endpoints:
    - POST /chats/{id}/stream: start a turn (streamed)
    - POST /chats/{id}/approve: resume after an approval (streamed)
    - POST /chats/{id}/save-conversation: persist a finished turn
    - GET /chats/{id}/messages: reload history
"""

from chatstream.api.persistence import ConversationGateway

__all__ = ["ConversationGateway"]
