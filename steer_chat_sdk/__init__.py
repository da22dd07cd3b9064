"""
Steer Chat SDK - chat-completion client with streaming and OpenTelemetry instrumentation.

Features:
- Unary and server-sent-event streaming chat completions (sync and async)
- Embeddings
- GenAI spans and metrics for every call, reported exactly once per call,
  including streams that fail, get cancelled or are closed early
- Cooperative cancellation through CancellationToken
"""

__version__ = "0.1.0"

from .api.client import ChatClient
from .config import ClientSettings, InstrumentationConfig
from .errors import (
    ChatClientError,
    ErrorMapper,
    OperationCancelledError,
    ServiceError,
    StreamStateError,
)
from .models import (
    AssistantMessage,
    ChatCompletion,
    ChatCompletionOptions,
    EmbeddingCollection,
    EmbeddingOptions,
    ImageContentPart,
    StreamingChatCompletionUpdate,
    SystemMessage,
    TextContentPart,
    ToolMessage,
    UserMessage,
)
from .streaming import (
    AsyncStreamingUpdateIterator,
    CallContext,
    CancellationToken,
    StreamingUpdateIterator,
)

__all__ = [
    # Client
    "ChatClient",

    # Configuration
    "ClientSettings",
    "InstrumentationConfig",

    # Errors
    "ChatClientError",
    "ErrorMapper",
    "OperationCancelledError",
    "ServiceError",
    "StreamStateError",

    # Models
    "AssistantMessage",
    "ChatCompletion",
    "ChatCompletionOptions",
    "EmbeddingCollection",
    "EmbeddingOptions",
    "ImageContentPart",
    "StreamingChatCompletionUpdate",
    "SystemMessage",
    "TextContentPart",
    "ToolMessage",
    "UserMessage",

    # Streaming
    "AsyncStreamingUpdateIterator",
    "CallContext",
    "CancellationToken",
    "StreamingUpdateIterator",
]
