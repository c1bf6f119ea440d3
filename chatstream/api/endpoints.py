"""Chat backend route paths, relative to ``ClientConfig.api_prefix``."""


def stream_path(chat_id: str) -> str:
    return f"/chats/{chat_id}/stream"


def approve_path(chat_id: str) -> str:
    return f"/chats/{chat_id}/approve"


def save_conversation_path(chat_id: str) -> str:
    return f"/chats/{chat_id}/save-conversation"


def messages_path(chat_id: str) -> str:
    return f"/chats/{chat_id}/messages"


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
