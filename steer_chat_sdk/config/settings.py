"""
Client and instrumentation settings.

Values are read from the environment (and a local ``.env`` file when present).
Explicit constructor arguments always win over the environment.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .constants import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_SECONDS

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: bool = False) -> bool:
    """Return True for ``true`` (any case) or ``1``, False for other set values."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1")


@dataclass
class ClientSettings:
    """Connection settings for the chat-completion service."""
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    model: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "ClientSettings":
        """Build settings from STEER_CHAT_* environment variables."""
        # Allow overriding default timeout via env variable (seconds)
        try:
            timeout = float(os.getenv("STEER_CHAT_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS)))
        except ValueError:
            timeout = DEFAULT_TIMEOUT_SECONDS

        return cls(
            api_key=os.getenv("STEER_CHAT_API_KEY"),
            base_url=os.getenv("STEER_CHAT_BASE_URL", DEFAULT_BASE_URL),
            model=os.getenv("STEER_CHAT_MODEL"),
            timeout=timeout,
        )


@dataclass
class InstrumentationConfig:
    """Configuration for tracing and metrics.

    Attributes:
        enabled: Create spans and record metrics at all
        record_events: Emit per-message and per-choice span events
        record_content: Put message text, tool arguments and image URLs into
            events verbatim instead of a redaction placeholder
    """
    enabled: bool = True
    record_events: bool = False
    record_content: bool = False

    @classmethod
    def from_env(cls) -> "InstrumentationConfig":
        return cls(
            enabled=_env_flag("STEER_CHAT_TELEMETRY_ENABLED", default=True),
            record_events=_env_flag("STEER_CHAT_RECORD_EVENTS"),
            record_content=_env_flag("STEER_CHAT_RECORD_CONTENT"),
        )
