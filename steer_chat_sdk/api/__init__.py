"""Client API."""

from .client import ChatClient

__all__ = ["ChatClient"]
