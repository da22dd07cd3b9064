"""Configuration for the chat client and its instrumentation."""

from .settings import ClientSettings, InstrumentationConfig

__all__ = [
    "ClientSettings",
    "InstrumentationConfig",
]
