"""Request, response and streaming update models."""

from .chat import (
    AssistantMessage,
    ChatChoice,
    ChatCompletion,
    ChatCompletionOptions,
    ChatFinishReason,
    ChatMessage,
    ChatResponseMessage,
    ChatRole,
    ContentPart,
    FunctionCall,
    FunctionMessage,
    ImageContentPart,
    ImageDetail,
    ImageUrl,
    SystemMessage,
    TextContentPart,
    TokenUsage,
    ToolCall,
    ToolMessage,
    UserMessage,
)
from .embeddings import Embedding, EmbeddingCollection, EmbeddingOptions, EmbeddingUsage
from .streaming import (
    StreamingChatCompletionUpdate,
    StreamingToolCallUpdate,
    decode_updates,
    updates_from_chunk,
)

__all__ = [
    # Chat
    "AssistantMessage",
    "ChatChoice",
    "ChatCompletion",
    "ChatCompletionOptions",
    "ChatFinishReason",
    "ChatMessage",
    "ChatResponseMessage",
    "ChatRole",
    "ContentPart",
    "FunctionCall",
    "FunctionMessage",
    "ImageContentPart",
    "ImageDetail",
    "ImageUrl",
    "SystemMessage",
    "TextContentPart",
    "TokenUsage",
    "ToolCall",
    "ToolMessage",
    "UserMessage",

    # Embeddings
    "Embedding",
    "EmbeddingCollection",
    "EmbeddingOptions",
    "EmbeddingUsage",

    # Streaming
    "StreamingChatCompletionUpdate",
    "StreamingToolCallUpdate",
    "decode_updates",
    "updates_from_chunk",
]
