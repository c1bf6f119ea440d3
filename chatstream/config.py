"""Client configuration with environment variable loading.

Pydantic-based configuration for the streaming client and the
persistence gateway. Values default from the environment (and a
``.env`` file when present).
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()


class ClientConfig(BaseModel):
    """Configuration for talking to the chat backend.

    Attributes:
        base_url: Backend origin, without trailing slash.
        api_prefix: Path prefix for all API routes.
        request_timeout: Timeout for plain REST calls, in seconds.
        stream_timeout: Timeout for streaming exchanges, in seconds.
        flush_delay: Coalescing delay for live state propagation, in seconds.
    """

    base_url: str = Field(
        default_factory=lambda: os.getenv("CHATSTREAM_API_URL", "http://localhost:8000"),
        description="Backend base URL",
    )
    api_prefix: str = Field(
        default_factory=lambda: os.getenv("CHATSTREAM_API_PREFIX", "/api/v1"),
        description="API path prefix",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Timeout for REST calls",
    )
    stream_timeout: float = Field(
        default=120.0,
        gt=0.0,
        description="Timeout for streaming calls",
    )
    flush_delay: float = Field(
        default_factory=lambda: float(os.getenv("CHATSTREAM_FLUSH_DELAY", "0.05")),
        ge=0.0,
        le=5.0,
        description="Delay before live state updates are propagated",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate that the base URL is non-empty and strip the trailing slash."""
        if not v or not v.strip():
            raise ValueError("Base URL required. Set CHATSTREAM_API_URL in .env")
        return v.strip().rstrip("/")

    @field_validator("api_prefix")
    @classmethod
    def normalize_api_prefix(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = f"/{v}"
        return v

    def url(self, path: str) -> str:
        """Build an absolute URL for an API path."""
        return f"{self.base_url}{self.api_prefix}{path}"


def get_client_config() -> ClientConfig:
    """Create client configuration from environment.

    Returns:
        Configured ClientConfig instance.

    Raises:
        ValueError: If the configured base URL is empty.
    """
    return ClientConfig()
